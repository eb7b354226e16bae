"""カーソルトークンのエンコード/デコード

カーソルは (フィールド名, 値) の順序付きペアを BSON で直列化し、パディングなしの
base64url で表現した文字列。BSON を使うため ObjectId や datetime などの型情報が
そのまま往復する。

トップレベルのドキュメントでは `_id` が先頭に並べ替えられるため、ペアは
`{"c": [[name, value], ...]}` の配列として格納する。
"""

from __future__ import annotations

import base64
import binascii
from collections.abc import Sequence
from datetime import timezone
from typing import Any

import bson
from bson.binary import UuidRepresentation
from bson.codec_options import CodecOptions
from bson.errors import BSONError

from .exceptions import CursorDecodeError, CursorEncodeError, CursorError

CursorPairs = list[tuple[str, Any]]

_PAIRS_KEY = "c"

# UUID は既定の MongoClient と同じく Binary (subtype 4) のまま往復させる
CODEC_OPTIONS: CodecOptions = CodecOptions(
    tz_aware=True,
    tzinfo=timezone.utc,
    uuid_representation=UuidRepresentation.UNSPECIFIED,
)


def encode_cursor(
    pairs: Sequence[tuple[str, Any]],
    codec_options: CodecOptions | None = None,
) -> str:
    """順序付きペアを URL セーフなカーソル文字列にエンコードする。"""
    document = {_PAIRS_KEY: [[name, value] for name, value in pairs]}
    try:
        data = bson.encode(document, codec_options=codec_options or CODEC_OPTIONS)
    except (BSONError, TypeError, ValueError, OverflowError) as e:
        raise CursorEncodeError(f"failed to encode cursor using {list(pairs)!r}", cause=e) from e
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _pairs_from(document: dict[str, Any]) -> CursorPairs:
    entries = document.get(_PAIRS_KEY)
    if len(document) != 1 or not isinstance(entries, list):
        raise CursorDecodeError("malformed cursor: unexpected payload")
    pairs: CursorPairs = []
    for entry in entries:
        if not isinstance(entry, list) or len(entry) != 2 or not isinstance(entry[0], str):
            raise CursorDecodeError("malformed cursor: unexpected pair")
        pairs.append((entry[0], entry[1]))
    return pairs


def decode_cursor(
    cursor: str,
    expected_fields: int | Sequence[str] | None = None,
    codec_options: CodecOptions | None = None,
) -> CursorPairs:
    """カーソル文字列を順序付きペアにデコードする。

    Args:
        cursor: encode_cursor で生成したカーソル文字列
        expected_fields: 期待するペア数、またはフィールド名の並び。
            一致しない場合は別のソート条件で発行されたカーソルとみなす。
        codec_options: BSON のデコード設定。エンコード時と同じものを渡す。

    Raises:
        CursorDecodeError: base64url / BSON として不正な場合
        CursorError: ペア数（またはフィールド名）が一致しない場合
    """
    try:
        padded = cursor + "=" * (-len(cursor) % 4)
        data = base64.b64decode(padded, altchars=b"-_", validate=True)
        document = bson.decode(data, codec_options=codec_options or CODEC_OPTIONS)
    except (binascii.Error, ValueError, BSONError) as e:
        raise CursorDecodeError(f"malformed cursor: {e}", cause=e) from e

    pairs = _pairs_from(document)
    if expected_fields is None:
        return pairs

    if isinstance(expected_fields, int):
        expected_count = expected_fields
        expected_names: list[str] | None = None
    else:
        expected_names = list(expected_fields)
        expected_count = len(expected_names)

    if len(pairs) != expected_count:
        if expected_count == 1:
            raise CursorError("expecting a cursor with a single element")
        raise CursorError(f"expecting a cursor with {expected_count} elements")
    if expected_names is not None and [name for name, _ in pairs] != expected_names:
        raise CursorError(
            f"cursor fields {[name for name, _ in pairs]} do not match sort fields {expected_names}"
        )
    return pairs
