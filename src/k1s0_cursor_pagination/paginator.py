"""カーソルベースのページング

skip/offset を使わず、直前ページ境界のソートキー値から範囲クエリを組み立てて
次（または前）のページを取得する。limit + 1 件取得して続きの有無を判定する。
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

import structlog

from .collection import Collection
from .config import PaginationConfig
from .cursor import decode_cursor, encode_cursor
from .exceptions import CursorDecodeError, CursorError, InvalidCursorShapeError, InvalidLimitError
from .fields import extract_fields, load_record, validate_paginated_fields
from .models import AggregateParams, FindParams, Page, SortDirection, SortField
from .query import build_cursor_query, build_sort, effective_directions, generate_comparison_ops

T = TypeVar("T")

logger = structlog.stdlib.get_logger(__name__)

_NEXT = "next"
_PREVIOUS = "previous"


@dataclass(frozen=True)
class _Plan:
    """正規化済みのページング条件。1 回の呼び出しの中でのみ使う。"""

    sort_spec: tuple[SortField, ...]
    sort: tuple[tuple[str, int], ...]
    collation: dict[str, Any] | None
    cursor_query: dict[str, Any] | None
    # 渡されたカーソルの種類（"next" / "previous"）。なければ None
    cursor_kind: str | None
    required: tuple[str, ...]

    @property
    def backward(self) -> bool:
        return self.cursor_kind == _PREVIOUS

    @property
    def fields(self) -> tuple[str, ...]:
        return tuple(s.field for s in self.sort_spec)


class Paginator(Generic[T]):
    """コレクションに対するカーソルページングを行う。

    record_type には dict などの Mapping、dataclass、pydantic モデル、または
    FieldAccessor を実装した型を指定する。
    """

    def __init__(
        self,
        collection: Collection | None = None,
        record_type: type = dict,
        config: PaginationConfig | None = None,
    ) -> None:
        self._collection = collection
        self._record_type = record_type
        self._config = config or PaginationConfig()

    def build_queries(
        self, params: FindParams
    ) -> tuple[list[dict[str, Any]], list[tuple[str, int]]]:
        """クエリを実行せずに、find に渡すクエリ群とソート指定を返す。

        クエリ群は [params.query] またはカーソル指定時の [params.query, 範囲クエリ]。
        """
        plan = self._plan(params)
        return self._queries(params.query, plan), list(plan.sort)

    async def find(self, params: FindParams) -> Page[T]:
        """find クエリでページを取得する。

        Raises:
            InvalidLimitError: limit が 1 未満、または max_limit を超える場合
            CursorError: カーソルが不正、または別のソート条件で発行された場合
            PaginatedFieldNotFoundError: レコード型にソート対象フィールドがない場合
            MissingPaginatedFieldError: 境界レコードから必須フィールドを取り出せない場合
        """
        collection = self._require_collection()
        plan = self._plan(params)
        validate_paginated_fields(self._record_type, plan.fields)
        max_time_ms = self._max_time_ms(params.timeout)

        count: int | None = None
        if params.count_total:
            count = await collection.count_documents(
                params.query,
                collation=plan.collation,
                max_time_ms=max_time_ms,
            )

        documents = await collection.find(
            {"$and": self._queries(params.query, plan)},
            sort=list(plan.sort),
            limit=params.limit + 1,
            collation=plan.collation,
            hint=params.hint,
            projection=params.projection,
            max_time_ms=max_time_ms,
        )
        return self._build_page(documents, params.limit, plan, count)

    async def aggregate(self, params: AggregateParams) -> Page[T]:
        """集計パイプラインの末尾に範囲条件・ソート・limit を追加してページを取得する。

        count_total 指定時は元のパイプラインに $count を追加して件数を数える。
        """
        collection = self._require_collection()
        plan = self._plan(params)
        validate_paginated_fields(self._record_type, plan.fields)
        max_time_ms = self._max_time_ms(params.timeout)

        count: int | None = None
        if params.count_total:
            rows = await collection.aggregate(
                [*params.pipeline, {"$count": "count"}],
                collation=plan.collation,
                max_time_ms=max_time_ms,
            )
            count = int(rows[0]["count"]) if rows else 0

        pipeline = list(params.pipeline)
        if plan.cursor_query is not None:
            pipeline.append({"$match": plan.cursor_query})
        pipeline.append({"$sort": dict(plan.sort)})
        pipeline.append({"$limit": params.limit + 1})

        documents = await collection.aggregate(
            pipeline,
            collation=plan.collation,
            max_time_ms=max_time_ms,
        )
        return self._build_page(documents, params.limit, plan, count)

    def _require_collection(self) -> Collection:
        if self._collection is None:
            raise ValueError("collection can't be None")
        return self._collection

    def _max_time_ms(self, timeout: float | None) -> int:
        seconds = timeout if timeout is not None and timeout > 0 else self._config.default_timeout
        return int(seconds * 1000)

    def _plan(self, params: FindParams | AggregateParams) -> _Plan:
        if params.limit <= 0:
            raise InvalidLimitError(params.limit)
        max_limit = self._config.max_limit
        if max_limit is not None and params.limit > max_limit:
            raise InvalidLimitError(
                params.limit,
                f"limit {params.limit} exceeds the maximum of {max_limit}",
            )

        sort_spec, collation = self.normalize_sort(params)
        fields = [s.field for s in sort_spec]
        orders = [s.direction for s in sort_spec]

        cursor_kind: str | None = None
        token = ""
        if params.next:
            cursor_kind, token = _NEXT, params.next
        elif params.previous:
            cursor_kind, token = _PREVIOUS, params.previous

        backward = cursor_kind == _PREVIOUS
        directions = effective_directions(orders, backward)
        cursor_query: dict[str, Any] | None = None
        if cursor_kind is not None:
            values = self._parse_cursor(token, cursor_kind, fields)
            cursor_query = build_cursor_query(
                fields, generate_comparison_ops(orders, backward), values
            )

        pk = self._config.primary_key
        required = (pk,) if len(fields) != 2 else (fields[0], pk)
        return _Plan(
            sort_spec=tuple(sort_spec),
            sort=tuple(build_sort(fields, directions)),
            collation=collation,
            cursor_query=cursor_query,
            cursor_kind=cursor_kind,
            required=required,
        )

    def normalize_sort(
        self, params: FindParams | AggregateParams
    ) -> tuple[list[SortField], dict[str, Any] | None]:
        """ソートキーを正規化し、(ソートキー, collation) を返す。

        ソートフィールド未指定なら主キーのみでソートし collation を無効にする。
        最後のキーが主キーでなければ、sort_ascending の方向で主キーを追加する。
        """
        pk = self._config.primary_key
        default_direction = SortDirection.of(params.sort_ascending)
        collation = params.collation
        fields = list(params.paginated_fields)
        orders = list(params.sort_orders)

        if not fields:
            paginated_field = params.paginated_field or pk
            fields = [paginated_field] if paginated_field == pk else [paginated_field, pk]
            orders = []

        if fields == [pk]:
            # 主キーのみのソートではロケール照合は意味を持たない
            collation = None
        elif fields[-1] != pk:
            fields.append(pk)
            if orders:
                orders.append(int(default_direction))

        if not orders:
            return [SortField(f, default_direction) for f in fields], collation
        if len(orders) != len(fields):
            raise InvalidCursorShapeError("wrong number of sort orders specified")
        try:
            directions = [SortDirection(order) for order in orders]
        except ValueError as e:
            raise InvalidCursorShapeError(f"sort orders must be 1 or -1: {orders}") from e
        return [SortField(f, d) for f, d in zip(fields, directions)], collation

    def _parse_cursor(self, token: str, kind: str, fields: Sequence[str]) -> list[Any]:
        try:
            pairs = decode_cursor(
                token, expected_fields=fields, codec_options=self._config.codec_options()
            )
        except (CursorDecodeError, CursorError) as e:
            logger.warning("rejected pagination cursor", cursor_kind=kind, error=str(e))
            raise CursorError(f"{kind} cursor parse failed: {e}", cause=e) from e
        return [value for _, value in pairs]

    @staticmethod
    def _queries(query: dict[str, Any], plan: _Plan) -> list[dict[str, Any]]:
        if plan.cursor_query is None:
            return [query]
        return [query, plan.cursor_query]

    def _build_page(
        self,
        documents: list[dict[str, Any]],
        limit: int,
        plan: _Plan,
        count: int | None,
    ) -> Page[T]:
        has_more = len(documents) > limit
        if has_more:
            documents = documents[:limit]

        records = [load_record(self._record_type, d) for d in documents]
        if plan.backward:
            records = list(reversed(records))

        has_previous = plan.cursor_kind == _NEXT or (plan.backward and has_more)
        has_next = plan.backward or has_more

        previous_cursor = ""
        next_cursor = ""
        if records:
            if has_previous:
                previous_cursor = self._generate_cursor(records[0], plan)
            if has_next:
                next_cursor = self._generate_cursor(records[-1], plan)

        logger.debug(
            "paginated query executed",
            limit=limit,
            returned=len(records),
            direction="backward" if plan.backward else "forward",
            has_previous=has_previous,
            has_next=has_next,
        )
        return Page(
            items=records,
            has_previous=has_previous,
            has_next=has_next,
            previous=previous_cursor,
            next=next_cursor,
            count=count,
        )

    def _generate_cursor(self, record: Any, plan: _Plan) -> str:
        return encode_cursor(
            extract_fields(record, plan.fields, required=plan.required),
            codec_options=self._config.codec_options(),
        )


async def find(
    collection: Collection,
    params: FindParams,
    record_type: type = dict,
    config: PaginationConfig | None = None,
) -> Page[Any]:
    """Paginator(collection, record_type, config).find(params) のショートカット。"""
    return await Paginator(collection, record_type, config).find(params)


async def aggregate(
    collection: Collection,
    params: AggregateParams,
    record_type: type = dict,
    config: PaginationConfig | None = None,
) -> Page[Any]:
    """Paginator(collection, record_type, config).aggregate(params) のショートカット。"""
    return await Paginator(collection, record_type, config).aggregate(params)


def build_queries(
    params: FindParams,
    config: PaginationConfig | None = None,
) -> tuple[list[dict[str, Any]], list[tuple[str, int]]]:
    """Paginator(config=config).build_queries(params) のショートカット。"""
    return Paginator(config=config).build_queries(params)
