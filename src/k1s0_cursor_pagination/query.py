"""カーソル位置からの範囲クエリ生成"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from .exceptions import InvalidComparisonOperatorError, InvalidCursorShapeError
from .models import SortDirection

GREATER_THAN = "$gt"
LESS_THAN = "$lt"

_COMPARISON_OPS = frozenset({GREATER_THAN, LESS_THAN})


def effective_directions(
    sort_orders: Sequence[int],
    backward: bool,
) -> list[SortDirection]:
    """実際にスキャンする方向を返す。previous カーソル指定時は全フィールドを反転する。

    Raises:
        InvalidCursorShapeError: 1 / -1 以外のソート順が含まれる場合
    """
    try:
        directions = [SortDirection(order) for order in sort_orders]
    except ValueError as e:
        raise InvalidCursorShapeError(f"sort orders must be 1 or -1: {list(sort_orders)}") from e
    if backward:
        return [d.inverted() for d in directions]
    return directions


def generate_comparison_ops(sort_orders: Sequence[int], backward: bool) -> list[str]:
    """フィールドごとの比較演算子（昇順なら $gt、降順なら $lt）を返す。"""
    return [
        GREATER_THAN if d is SortDirection.ASCENDING else LESS_THAN
        for d in effective_directions(sort_orders, backward)
    ]


def build_cursor_query(
    fields: Sequence[str],
    comparison_ops: Sequence[str],
    values: Sequence[Any],
) -> dict[str, Any]:
    """カーソル位置より後ろ（または前）を選択する範囲クエリを組み立てる。

    辞書式比較を次の形で表す:

        (f1 op1 v1) OR (f1 == v1 AND f2 op2 v2) OR ...
            OR (f1 == v1 AND ... AND fK-1 == vK-1 AND fK opK vK)

    フィールドが 1 つの場合は単一の比較になる。クエリを組み立てるだけで実行はしない。
    """
    if len(fields) != len(values):
        raise InvalidCursorShapeError("wrong number of cursor field values specified")
    if len(comparison_ops) != len(values):
        raise InvalidCursorShapeError("wrong number of comparison operators specified")
    if not fields:
        raise InvalidCursorShapeError("at least one paginated field is required")
    for op in comparison_ops:
        if op not in _COMPARISON_OPS:
            raise InvalidComparisonOperatorError(op)

    if len(fields) == 1:
        return {fields[0]: {comparison_ops[0]: values[0]}}

    clauses: list[dict[str, Any]] = []
    for i in range(len(fields)):
        comparison = {fields[i]: {comparison_ops[i]: values[i]}}
        if i == 0:
            clauses.append(comparison)
            continue
        equalities = [{fields[j]: {"$eq": values[j]}} for j in range(i)]
        clauses.append({"$and": [*equalities, comparison]})
    return {"$or": clauses}


def build_sort(fields: Sequence[str], directions: Sequence[int]) -> list[tuple[str, int]]:
    """ソート指定を (フィールド名, 1 / -1) の並びで返す。"""
    if len(fields) != len(directions):
        raise InvalidCursorShapeError("wrong number of sort orders specified")
    return [(name, int(direction)) for name, direction in zip(fields, directions)]
