"""pymongo の非同期コレクションを使う Collection 実装"""

from __future__ import annotations

from typing import Any

from pymongo.asynchronous.collection import AsyncCollection

from .collection import Collection


class MongoCollection(Collection):
    """pymongo AsyncCollection のアダプター。

    エラーは pymongo の例外をそのまま伝播する。
    """

    def __init__(self, collection: AsyncCollection) -> None:
        self._collection = collection

    @property
    def name(self) -> str:
        return self._collection.name

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
        kwargs: dict[str, Any] = {"sort": sort, "limit": limit}
        if collation is not None:
            kwargs["collation"] = collation
        if hint is not None:
            kwargs["hint"] = hint
        if projection is not None:
            kwargs["projection"] = projection
        if max_time_ms is not None:
            kwargs["max_time_ms"] = max_time_ms
        cursor = self._collection.find(filter, **kwargs)
        return await cursor.to_list(None)

    async def count_documents(
        self,
        filter: dict[str, Any],
        *,
        collation: dict[str, Any] | None = None,
        max_time_ms: int | None = None,
    ) -> int:
        kwargs: dict[str, Any] = {}
        if collation is not None:
            kwargs["collation"] = collation
        if max_time_ms is not None:
            kwargs["maxTimeMS"] = max_time_ms
        return await self._collection.count_documents(filter, **kwargs)

    async def aggregate(
        self,
        pipeline: list[dict[str, Any]],
        *,
        collation: dict[str, Any] | None = None,
        max_time_ms: int | None = None,
    ) -> list[dict[str, Any]]:
        kwargs: dict[str, Any] = {}
        if collation is not None:
            kwargs["collation"] = collation
        if max_time_ms is not None:
            kwargs["maxTimeMS"] = max_time_ms
        cursor = await self._collection.aggregate(pipeline, **kwargs)
        return await cursor.to_list(None)
