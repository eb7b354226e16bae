"""InMemoryCollection 実装"""

from __future__ import annotations

import copy
import re
import uuid
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from bson import ObjectId
from bson.regex import Regex

from .collection import Collection

_MISSING = object()


def _resolve(document: Mapping[str, Any], path: str) -> Any:
    if path in document:
        return document[path]
    current: Any = document
    for part in path.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return _MISSING
        current = current[part]
    return current


def _type_rank(value: Any) -> int:
    # MongoDB の BSON 型比較順（null < 数値 < 文字列 < ... < 日時）
    if value is None or value is _MISSING:
        return 1
    if isinstance(value, bool):
        return 8
    if isinstance(value, (int, float)):
        return 2
    if isinstance(value, str):
        return 3
    if isinstance(value, Mapping):
        return 4
    if isinstance(value, (list, tuple)):
        return 5
    if isinstance(value, (bytes, uuid.UUID)):
        return 6
    if isinstance(value, ObjectId):
        return 7
    if isinstance(value, datetime):
        return 9
    if isinstance(value, (re.Pattern, Regex)):
        return 11
    return 12


def _sort_key(value: Any) -> tuple[int, Any]:
    rank = _type_rank(value)
    if rank == 1:
        return (rank, 0)
    if rank == 4:
        return (rank, tuple((k, _sort_key(v)) for k, v in value.items()))
    if rank == 5:
        return (rank, tuple(_sort_key(v) for v in value))
    if rank == 6:
        return (rank, value.bytes if isinstance(value, uuid.UUID) else bytes(value))
    if rank == 9 and value.tzinfo is None:
        return (rank, value.replace(tzinfo=timezone.utc))
    if rank == 11:
        return (rank, str(value.pattern))
    if rank == 12:
        return (rank, repr(value))
    return (rank, value)


def _equals(value: Any, operand: Any) -> bool:
    if value is _MISSING:
        return operand is None
    if isinstance(value, list) and not isinstance(operand, list):
        return any(_equals(v, operand) for v in value)
    return _sort_key(value) == _sort_key(operand)


def _compare(value: Any, operand: Any) -> int | None:
    """同じ型ブラケット同士なら -1 / 0 / 1、比較できなければ None。"""
    if value is _MISSING:
        return None
    left, right = _sort_key(value), _sort_key(operand)
    if left[0] != right[0]:
        return None
    return (left > right) - (left < right)


def _regex_match(value: Any, pattern: Any, options: str) -> bool:
    if not isinstance(value, str):
        return False
    if isinstance(pattern, Regex):
        compiled = pattern.try_compile()
    elif isinstance(pattern, re.Pattern):
        compiled = pattern
    else:
        flags = 0
        if "i" in options:
            flags |= re.IGNORECASE
        if "m" in options:
            flags |= re.MULTILINE
        if "s" in options:
            flags |= re.DOTALL
        compiled = re.compile(pattern, flags)
    return compiled.search(value) is not None


def _apply(op: str, value: Any, operand: Any, options: str) -> bool:
    if op == "$eq":
        return _equals(value, operand)
    if op == "$ne":
        return not _equals(value, operand)
    if op in ("$gt", "$gte", "$lt", "$lte"):
        result = _compare(value, operand)
        if result is None:
            return False
        return {
            "$gt": result > 0,
            "$gte": result >= 0,
            "$lt": result < 0,
            "$lte": result <= 0,
        }[op]
    if op == "$in":
        return any(_equals(value, o) for o in operand)
    if op == "$nin":
        return not any(_equals(value, o) for o in operand)
    if op == "$exists":
        return (value is not _MISSING) == bool(operand)
    if op == "$regex":
        return _regex_match(value, operand, options)
    if op == "$not":
        return not _match_condition(value, operand)
    raise ValueError(f"unsupported query operator: {op}")


def _match_condition(value: Any, condition: Any) -> bool:
    if isinstance(condition, Mapping) and condition and all(k.startswith("$") for k in condition):
        options = condition.get("$options", "")
        return all(
            _apply(op, value, operand, options)
            for op, operand in condition.items()
            if op != "$options"
        )
    if isinstance(condition, (re.Pattern, Regex)):
        return _regex_match(value, condition, "")
    return _equals(value, condition)


def matches(document: Mapping[str, Any], filter: Mapping[str, Any]) -> bool:
    """ドキュメントがクエリフィルタに一致するか判定する。"""
    for key, condition in filter.items():
        if key == "$and":
            if not all(matches(document, c) for c in condition):
                return False
        elif key == "$or":
            if not any(matches(document, c) for c in condition):
                return False
        elif key == "$nor":
            if any(matches(document, c) for c in condition):
                return False
        elif key.startswith("$"):
            raise ValueError(f"unsupported query operator: {key}")
        elif not _match_condition(_resolve(document, key), condition):
            return False
    return True


def sort_documents(
    documents: list[dict[str, Any]],
    sort: list[tuple[str, int]],
) -> list[dict[str, Any]]:
    """複数キーでソートした新しいリストを返す。欠損フィールドは null として扱う。"""
    result = list(documents)
    for field, direction in reversed(sort):
        result.sort(key=lambda d, f=field: _sort_key(_resolve(d, f)), reverse=direction < 0)
    return result


def _truncate_datetimes(value: Any) -> Any:
    # BSON の日時はミリ秒精度。保存時点で揃えておかないとカーソル値と一致しない
    if isinstance(value, datetime):
        return value.replace(microsecond=value.microsecond // 1000 * 1000)
    if isinstance(value, dict):
        return {k: _truncate_datetimes(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_truncate_datetimes(v) for v in value]
    return value


def _project(document: dict[str, Any], projection: Mapping[str, Any] | None) -> dict[str, Any]:
    if not projection:
        return copy.deepcopy(document)
    include_id = bool(projection.get("_id", 1))
    fields = {k: v for k, v in projection.items() if k != "_id"}
    if any(bool(v) for v in fields.values()) or (not fields and include_id):
        result = {k: copy.deepcopy(document[k]) for k in fields if k in document}
        if include_id and "_id" in document:
            result = {"_id": document["_id"], **result}
        return result
    result = {k: copy.deepcopy(v) for k, v in document.items() if k not in fields}
    if not include_id:
        result.pop("_id", None)
    return result


class InMemoryCollection(Collection):
    """テスト用インメモリコレクション。

    collation と hint は受け付けるが、文字列はコードポイント順で比較する。
    """

    def __init__(self, documents: list[dict[str, Any]] | None = None) -> None:
        self._documents: list[dict[str, Any]] = []
        for document in documents or []:
            self.insert_one(document)

    def insert_one(self, document: dict[str, Any]) -> Any:
        stored = _truncate_datetimes(copy.deepcopy(document))
        stored.setdefault("_id", ObjectId())
        self._documents.append(stored)
        return stored["_id"]

    def insert_many(self, documents: list[dict[str, Any]]) -> list[Any]:
        return [self.insert_one(d) for d in documents]

    def delete_many(self, filter: dict[str, Any]) -> int:
        before = len(self._documents)
        self._documents = [d for d in self._documents if not matches(d, filter)]
        return before - len(self._documents)

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
        found = sort_documents([d for d in self._documents if matches(d, filter)], sort)
        if limit > 0:
            found = found[:limit]
        return [_project(d, projection) for d in found]

    async def count_documents(
        self,
        filter: dict[str, Any],
        *,
        collation: dict[str, Any] | None = None,
        max_time_ms: int | None = None,
    ) -> int:
        return sum(1 for d in self._documents if matches(d, filter))

    async def aggregate(
        self,
        pipeline: list[dict[str, Any]],
        *,
        collation: dict[str, Any] | None = None,
        max_time_ms: int | None = None,
    ) -> list[dict[str, Any]]:
        documents = [copy.deepcopy(d) for d in self._documents]
        for stage in pipeline:
            if len(stage) != 1:
                raise ValueError(f"a pipeline stage must have exactly one field: {stage}")
            name, spec = next(iter(stage.items()))
            if name == "$match":
                documents = [d for d in documents if matches(d, spec)]
            elif name == "$sort":
                documents = sort_documents(documents, list(spec.items()))
            elif name == "$limit":
                documents = documents[:spec]
            elif name == "$skip":
                documents = documents[spec:]
            elif name == "$project":
                documents = [_project(d, spec) for d in documents]
            elif name == "$count":
                documents = [{spec: len(documents)}] if documents else []
            else:
                raise ValueError(f"unsupported pipeline stage: {name}")
        return documents
