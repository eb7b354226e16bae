"""Collection 抽象基底クラス"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class Collection(ABC):
    """ページングが利用するドキュメントコレクションの抽象基底クラス。

    接続管理・リトライ・タイムアウトの扱いは実装側の責務。
    """

    @abstractmethod
    async def find(
        self,
        filter: dict[str, Any],
        *,
        sort: list[tuple[str, int]],
        limit: int,
        collation: dict[str, Any] | None = None,
        hint: Any = None,
        projection: dict[str, Any] | None = None,
        max_time_ms: int | None = None,
    ) -> list[dict[str, Any]]:
        """フィルタに一致するドキュメントをソート順に最大 limit 件返す。"""
        ...

    @abstractmethod
    async def count_documents(
        self,
        filter: dict[str, Any],
        *,
        collation: dict[str, Any] | None = None,
        max_time_ms: int | None = None,
    ) -> int:
        """フィルタに一致するドキュメント数を返す。"""
        ...

    @abstractmethod
    async def aggregate(
        self,
        pipeline: list[dict[str, Any]],
        *,
        collation: dict[str, Any] | None = None,
        max_time_ms: int | None = None,
    ) -> list[dict[str, Any]]:
        """集計パイプラインを実行して結果ドキュメントを返す。"""
        ...
