"""レコードからのソートフィールド値の取り出し

レコード型ごとに RecordSchema を一度だけ組み立ててキャッシュする。対応する型:

- Mapping（dict, bson.RawBSONDocument など）: スキーマ不明のため事前検証はしない
- dataclass: `field(metadata={"bson": "_id"})` で論理名、`metadata={"inline": True}` で
  埋め込み構造体を指定する
- pydantic BaseModel: alias を論理名とし、`json_schema_extra={"inline": True}` で
  埋め込みモデルを指定する
- FieldAccessor プロトコルを実装した任意の型
"""

from __future__ import annotations

import dataclasses
import functools
import typing
from collections.abc import Callable, Mapping, Sequence
from typing import Any, Protocol, runtime_checkable

import bson
from bson.raw_bson import RawBSONDocument
from pydantic import BaseModel

from .cursor import CODEC_OPTIONS, CursorPairs
from .exceptions import (
    InvalidRecordTypeError,
    MissingPaginatedFieldError,
    PaginatedFieldNotFoundError,
)

_MISSING = object()


@runtime_checkable
class FieldAccessor(Protocol):
    """論理フィールド名で値を取り出せるレコード。

    (見つかったか, 値) を返す。ドキュメントからの生成には classmethod
    `from_document(document)` があればそれを使い、なければコンストラクタに渡す。
    """

    def get_field(self, name: str) -> tuple[bool, Any]: ...


@dataclasses.dataclass(frozen=True)
class _FieldRef:
    attribute: str
    # 埋め込み構造体を保持する属性名。トップレベルのフィールドなら None
    inline: str | None = None


class RecordSchema:
    """レコード型ごとのフィールド解決ルール。"""

    def __init__(
        self,
        record_type: type,
        fields: dict[str, _FieldRef] | None,
        loader: Callable[[Mapping[str, Any]], Any],
        getter: Callable[[Any, str], Any],
    ) -> None:
        self.record_type = record_type
        self._fields = fields
        self._loader = loader
        self._getter = getter

    @property
    def is_static(self) -> bool:
        """フィールド一覧が事前にわかる型かどうか。"""
        return self._fields is not None

    def has_field(self, name: str) -> bool:
        return self._fields is None or name in self._fields

    def get(self, record: Any, name: str) -> Any:
        """値を返す。存在しなければ _MISSING。"""
        return self._getter(record, name)

    def load(self, document: Mapping[str, Any]) -> Any:
        if isinstance(document, self.record_type):
            return document
        return self._loader(document)


def _lookup_path(document: Mapping[str, Any], name: str) -> Any:
    if name in document:
        return document[name]
    current: Any = document
    for part in name.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return _MISSING
        current = current[part]
    return current


def _attribute_getter(fields: dict[str, _FieldRef]) -> Callable[[Any, str], Any]:
    def get(record: Any, name: str) -> Any:
        ref = fields.get(name)
        if ref is None:
            return _MISSING
        owner = record if ref.inline is None else getattr(record, ref.inline, None)
        if owner is None:
            return _MISSING
        return getattr(owner, ref.attribute, _MISSING)

    return get


def _mapping_schema(record_type: type) -> RecordSchema:
    def load(document: Mapping[str, Any]) -> Any:
        if issubclass(record_type, RawBSONDocument):
            return record_type(bson.encode(document, codec_options=CODEC_OPTIONS))
        if record_type in (Mapping, dict):
            return dict(document)
        return record_type(document)

    return RecordSchema(record_type, None, load, _lookup_path)


def _dataclass_schema(record_type: type) -> RecordSchema:
    hints = typing.get_type_hints(record_type)
    fields: dict[str, _FieldRef] = {}
    inlines: dict[str, type] = {}
    for f in dataclasses.fields(record_type):
        inline_type = hints.get(f.name)
        if f.metadata.get("inline") and dataclasses.is_dataclass(inline_type):
            inlines[f.name] = inline_type
            for sub in dataclasses.fields(inline_type):
                fields.setdefault(sub.metadata.get("bson", sub.name), _FieldRef(sub.name, f.name))
            continue
        fields[f.metadata.get("bson", f.name)] = _FieldRef(f.name)

    def build(cls: type, document: Mapping[str, Any]) -> Any:
        kwargs: dict[str, Any] = {}
        for f in dataclasses.fields(cls):
            if not f.init:
                continue
            if f.name in inlines and cls is record_type:
                kwargs[f.name] = build(inlines[f.name], document)
                continue
            key = f.metadata.get("bson", f.name)
            if key in document:
                kwargs[f.name] = document[key]
        return cls(**kwargs)

    return RecordSchema(
        record_type,
        fields,
        lambda document: build(record_type, document),
        _attribute_getter(fields),
    )


def _pydantic_schema(record_type: type[BaseModel]) -> RecordSchema:
    fields: dict[str, _FieldRef] = {}
    inlines: dict[str, tuple[str, type[BaseModel]]] = {}
    for name, info in record_type.model_fields.items():
        extra = info.json_schema_extra if isinstance(info.json_schema_extra, dict) else {}
        annotation = info.annotation
        if (
            extra.get("inline")
            and isinstance(annotation, type)
            and issubclass(annotation, BaseModel)
        ):
            inlines[name] = (info.alias or name, annotation)
            for sub_name, sub_info in annotation.model_fields.items():
                fields.setdefault(sub_info.alias or sub_name, _FieldRef(sub_name, name))
            continue
        fields[info.alias or name] = _FieldRef(name)

    def load(document: Mapping[str, Any]) -> Any:
        data = dict(document)
        for key, inline_type in inlines.values():
            data[key] = {
                sub_info.alias or sub_name: document[sub_info.alias or sub_name]
                for sub_name, sub_info in inline_type.model_fields.items()
                if (sub_info.alias or sub_name) in document
            }
        return record_type.model_validate(data)

    return RecordSchema(record_type, fields, load, _attribute_getter(fields))


def _accessor_schema(record_type: type) -> RecordSchema:
    def load(document: Mapping[str, Any]) -> Any:
        from_document = getattr(record_type, "from_document", None)
        if from_document is not None:
            return from_document(document)
        return record_type(document)

    def get(record: Any, name: str) -> Any:
        found, value = record.get_field(name)
        return value if found else _MISSING

    return RecordSchema(record_type, None, load, get)


@functools.lru_cache(maxsize=None)
def schema_for(record_type: type) -> RecordSchema:
    """レコード型の RecordSchema を返す。結果は型ごとにキャッシュされる。"""
    if not isinstance(record_type, type):
        raise InvalidRecordTypeError(record_type)
    if issubclass(record_type, BaseModel):
        return _pydantic_schema(record_type)
    if dataclasses.is_dataclass(record_type):
        return _dataclass_schema(record_type)
    if issubclass(record_type, Mapping):
        return _mapping_schema(record_type)
    if callable(getattr(record_type, "get_field", None)):
        return _accessor_schema(record_type)
    raise InvalidRecordTypeError(record_type)


def validate_paginated_fields(record_type: type, fields: Sequence[str]) -> None:
    """レコード型がソート対象フィールドをすべて持つか事前に検証する。

    Mapping など構造が事前にわからない型は検証をスキップし、カーソル生成時に判定する。
    """
    schema = schema_for(record_type)
    for name in fields:
        if not schema.has_field(name):
            raise PaginatedFieldNotFoundError(name)


def load_record(record_type: type, document: Mapping[str, Any]) -> Any:
    """ドキュメントをレコード型に変換する。"""
    return schema_for(record_type).load(document)


def extract_fields(
    record: Any,
    fields: Sequence[str],
    required: Sequence[str] = (),
) -> CursorPairs:
    """レコードからソートフィールドの値を順に取り出す。

    値がない（または None の）フィールドは省略する。ただし required に含まれる
    フィールドが取り出せない場合は MissingPaginatedFieldError を送出する。
    """
    if record is None:
        raise MissingPaginatedFieldError(fields[0] if fields else "")
    schema = schema_for(type(record))
    pairs: CursorPairs = []
    for name in fields:
        value = schema.get(record, name)
        if value is _MISSING or value is None:
            if name in required:
                raise MissingPaginatedFieldError(name)
            continue
        pairs.append((name, value))
    return pairs
