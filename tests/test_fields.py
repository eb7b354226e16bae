"""レコードからのフィールド取り出しのユニットテスト"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

import bson
import pytest
from bson import ObjectId
from bson.raw_bson import RawBSONDocument
from k1s0_cursor_pagination import (
    InvalidRecordTypeError,
    MissingPaginatedFieldError,
    PaginatedFieldNotFoundError,
    extract_fields,
    load_record,
    schema_for,
    validate_paginated_fields,
)
from pydantic import BaseModel, ConfigDict, Field

OID = ObjectId("5addf533e81549de7696cb04")
CREATED_AT = datetime(2024, 1, 15, tzinfo=timezone.utc)


@dataclass
class Audit:
    created_at: Optional[datetime] = field(default=None, metadata={"bson": "createdAt"})
    created_by: str = ""


@dataclass
class Item:
    id: ObjectId = field(metadata={"bson": "_id"})
    name: str = ""
    audit: Audit = field(default_factory=Audit, metadata={"inline": True})


class AuditModel(BaseModel):
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")


class ItemModel(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True, populate_by_name=True)

    id: ObjectId = Field(alias="_id")
    name: str = ""
    data: Optional[str] = None
    audit: AuditModel = Field(default_factory=AuditModel, json_schema_extra={"inline": True})


class Accessor:
    def __init__(self, document: dict[str, Any]) -> None:
        self._document = document

    def get_field(self, name: str) -> tuple[bool, Any]:
        return (name in self._document, self._document.get(name))


def test_dataclass_schema_resolves_tags_and_inline() -> None:
    """dataclass の bson 名と埋め込み構造体のフィールドを解決できること。"""
    schema = schema_for(Item)
    assert schema.is_static
    assert schema.has_field("_id")
    assert schema.has_field("name")
    assert schema.has_field("createdAt")
    assert not schema.has_field("id")


def test_schema_is_cached() -> None:
    assert schema_for(Item) is schema_for(Item)


def test_extract_fields_from_dataclass_inline() -> None:
    """埋め込み構造体のフィールドから値を取り出せること。"""
    item = Item(id=OID, name="foo", audit=Audit(created_at=CREATED_AT))
    assert extract_fields(item, ["createdAt", "_id"]) == [("createdAt", CREATED_AT), ("_id", OID)]


def test_extract_fields_from_pydantic_model() -> None:
    """pydantic モデルの alias と埋め込みモデルから値を取り出せること。"""
    item = ItemModel(_id=OID, name="foo", audit=AuditModel(createdAt=CREATED_AT))
    assert extract_fields(item, ["name", "createdAt", "_id"]) == [
        ("name", "foo"),
        ("createdAt", CREATED_AT),
        ("_id", OID),
    ]


def test_extract_fields_from_mapping_with_dotted_path() -> None:
    """Mapping ではドット区切りのパスも解決できること。"""
    document = {"_id": OID, "meta": {"rank": 3}}
    assert extract_fields(document, ["meta.rank", "_id"]) == [("meta.rank", 3), ("_id", OID)]


def test_extract_fields_from_raw_bson_document() -> None:
    document = RawBSONDocument(bson.encode({"_id": OID, "name": "foo"}))
    assert extract_fields(document, ["name", "_id"]) == [("name", "foo"), ("_id", OID)]


def test_extract_fields_from_field_accessor() -> None:
    record = Accessor({"_id": OID, "name": "foo"})
    assert extract_fields(record, ["name", "_id"]) == [("name", "foo"), ("_id", OID)]


def test_extract_fields_omits_missing_optional_values() -> None:
    """必須でないフィールドの欠損・None は省略されること。"""
    document = {"_id": OID, "data": None}
    assert extract_fields(document, ["data", "name", "_id"], required=["_id"]) == [("_id", OID)]


def test_extract_fields_missing_required_field() -> None:
    """必須フィールドが欠けている場合は MissingPaginatedFieldError になること。"""
    with pytest.raises(MissingPaginatedFieldError) as exc_info:
        extract_fields({"name": "foo"}, ["name", "_id"], required=["name", "_id"])
    assert exc_info.value.field_name == "_id"


def test_extract_fields_none_record() -> None:
    with pytest.raises(MissingPaginatedFieldError):
        extract_fields(None, ["_id"], required=["_id"])


def test_validate_paginated_fields_static_type() -> None:
    """型に定義されていないソートフィールドは事前検証でエラーになること。"""
    validate_paginated_fields(Item, ["name", "createdAt", "_id"])
    validate_paginated_fields(ItemModel, ["data", "createdAt", "_id"])
    with pytest.raises(PaginatedFieldNotFoundError) as exc_info:
        validate_paginated_fields(Item, ["unknown", "_id"])
    assert exc_info.value.field_name == "unknown"
    with pytest.raises(PaginatedFieldNotFoundError):
        validate_paginated_fields(ItemModel, ["id"])


def test_validate_paginated_fields_skips_raw_documents() -> None:
    """Mapping 型は事前検証をスキップすること。"""
    validate_paginated_fields(dict, ["anything", "_id"])
    validate_paginated_fields(RawBSONDocument, ["anything", "_id"])


def test_unsupported_record_type() -> None:
    with pytest.raises(InvalidRecordTypeError):
        schema_for(int)
    with pytest.raises(InvalidRecordTypeError):
        schema_for("not a type")  # type: ignore[arg-type]


def test_load_record_dataclass_inline() -> None:
    """フラットなドキュメントから埋め込み構造体を組み立てること。"""
    item = load_record(Item, {"_id": OID, "name": "foo", "createdAt": CREATED_AT, "created_by": "bob"})
    assert item == Item(id=OID, name="foo", audit=Audit(created_at=CREATED_AT, created_by="bob"))


def test_load_record_pydantic_inline() -> None:
    item = load_record(ItemModel, {"_id": OID, "name": "foo", "createdAt": CREATED_AT})
    assert item.id == OID
    assert item.audit.created_at == CREATED_AT


def test_load_record_mapping_types() -> None:
    document = {"_id": OID, "name": "foo"}
    assert load_record(dict, document) == document
    raw = load_record(RawBSONDocument, document)
    assert isinstance(raw, RawBSONDocument)
    assert raw["name"] == "foo"


def test_load_record_field_accessor() -> None:
    record = load_record(Accessor, {"_id": OID})
    assert record.get_field("_id") == (True, OID)
