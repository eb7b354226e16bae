"""ページング設定（pydantic BaseModel）と YAML 読み込み"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import yaml
from bson.binary import UuidRepresentation
from bson.codec_options import CodecOptions
from pydantic import BaseModel, Field, ValidationError

from .cursor import CODEC_OPTIONS
from .exceptions import PaginationConfigError

DEFAULT_PRIMARY_KEY = "_id"
DEFAULT_TIMEOUT_SECONDS = 45.0

UuidRepresentationName = Literal[
    "unspecified", "standard", "pythonLegacy", "javaLegacy", "csharpLegacy"
]

_UUID_REPRESENTATIONS: dict[str, int] = {
    "unspecified": UuidRepresentation.UNSPECIFIED,
    "standard": UuidRepresentation.STANDARD,
    "pythonLegacy": UuidRepresentation.PYTHON_LEGACY,
    "javaLegacy": UuidRepresentation.JAVA_LEGACY,
    "csharpLegacy": UuidRepresentation.CSHARP_LEGACY,
}


class PaginationConfig(BaseModel):
    """ページング設定。"""

    primary_key: str = Field(default=DEFAULT_PRIMARY_KEY, min_length=1)
    default_timeout: float = Field(default=DEFAULT_TIMEOUT_SECONDS, gt=0)
    max_limit: int | None = Field(default=None, ge=1)
    # MongoClient の uuidRepresentation と揃える
    uuid_representation: UuidRepresentationName = "unspecified"

    def codec_options(self) -> CodecOptions:
        """カーソルトークンの BSON 直列化に使う CodecOptions を返す。"""
        return CODEC_OPTIONS.with_options(
            uuid_representation=_UUID_REPRESENTATIONS[self.uuid_representation]
        )


def load_config(path: Path) -> PaginationConfig:
    """YAML ファイルから PaginationConfig を読み込む。

    `pagination:` セクションがあればその内容を、なければドキュメント全体を検証する。
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise PaginationConfigError(f"Failed to read config file: {path}", cause=e) from e
    try:
        data: dict[str, Any] = yaml.safe_load(text) or {}
    except yaml.YAMLError as e:
        raise PaginationConfigError(f"Failed to parse YAML: {path}", cause=e) from e
    section = data.get("pagination", data) if isinstance(data, dict) else data
    try:
        return PaginationConfig.model_validate(section or {})
    except ValidationError as e:
        raise PaginationConfigError(f"Config validation failed: {e}", cause=e) from e
