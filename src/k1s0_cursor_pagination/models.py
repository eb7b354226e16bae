"""カーソルページングのデータモデル"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class SortDirection(IntEnum):
    """ソート方向。値は MongoDB のソート指定と同じ。"""

    ASCENDING = 1
    DESCENDING = -1

    @classmethod
    def of(cls, ascending: bool) -> SortDirection:
        return cls.ASCENDING if ascending else cls.DESCENDING

    def inverted(self) -> SortDirection:
        return SortDirection.DESCENDING if self is SortDirection.ASCENDING else SortDirection.ASCENDING


@dataclass(frozen=True)
class SortField:
    """ソートキーの 1 要素。"""

    field: str
    direction: SortDirection = SortDirection.ASCENDING


@dataclass
class FindParams:
    """find クエリのページング条件。

    paginated_field はソート対象フィールド名（単一）。重複値がある場合は主キーで
    二次ソートされる。値は順序付け可能かつ不変で、インデックスが張られていること。
    paginated_fields は複数フィールドでのソートを指定し、paginated_field より優先される。
    sort_orders は paginated_fields と対応する 1 / -1 の並び。省略時は sort_ascending に従う。

    3 フィールド以上のソートでは、先頭と主キー以外のフィールドが null / 欠損のレコードが
    ページ境界になると、その値はカーソルに含まれない。そのカーソルを渡すと
    フィールド数が一致せず CursorError になるため、中間フィールドは全レコードで値を持つこと。
    """

    limit: int
    query: dict[str, Any] = field(default_factory=dict)
    sort_ascending: bool = True
    paginated_field: str = ""
    paginated_fields: list[str] = field(default_factory=list)
    sort_orders: list[int] = field(default_factory=list)
    collation: dict[str, Any] | None = None
    next: str = ""
    previous: str = ""
    count_total: bool = False
    hint: str | list[tuple[str, int]] | dict[str, Any] | None = None
    projection: dict[str, Any] | None = None
    # 秒。None の場合は PaginationConfig.default_timeout を使う
    timeout: float | None = None


@dataclass
class AggregateParams:
    """aggregate パイプラインのページング条件。"""

    limit: int
    pipeline: list[dict[str, Any]] = field(default_factory=list)
    sort_ascending: bool = True
    paginated_field: str = ""
    paginated_fields: list[str] = field(default_factory=list)
    sort_orders: list[int] = field(default_factory=list)
    collation: dict[str, Any] | None = None
    next: str = ""
    previous: str = ""
    count_total: bool = False
    timeout: float | None = None


@dataclass
class Page(Generic[T]):
    """1 ページ分の結果と前後ページへのカーソル。

    previous / next は URL セーフなカーソル文字列で、該当ページがなければ空文字。
    count は count_total 指定時のみ設定される。
    """

    items: list[T]
    has_previous: bool = False
    has_next: bool = False
    previous: str = ""
    next: str = ""
    count: int | None = None
