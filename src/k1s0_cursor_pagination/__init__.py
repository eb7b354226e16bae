"""k1s0 cursor pagination library."""

from .collection import Collection
from .config import PaginationConfig, load_config
from .cursor import decode_cursor, encode_cursor
from .exceptions import (
    CursorDecodeError,
    CursorEncodeError,
    CursorError,
    InvalidComparisonOperatorError,
    InvalidCursorShapeError,
    InvalidLimitError,
    InvalidRecordTypeError,
    MissingPaginatedFieldError,
    PaginatedFieldNotFoundError,
    PaginationConfigError,
    PaginationError,
    PaginationErrorCodes,
)
from .fields import (
    FieldAccessor,
    RecordSchema,
    extract_fields,
    load_record,
    schema_for,
    validate_paginated_fields,
)
from .memory import InMemoryCollection
from .models import AggregateParams, FindParams, Page, SortDirection, SortField
from .mongo import MongoCollection
from .paginator import Paginator, aggregate, build_queries, find
from .query import build_cursor_query, build_sort, effective_directions, generate_comparison_ops

__all__ = [
    "AggregateParams",
    "Collection",
    "CursorDecodeError",
    "CursorEncodeError",
    "CursorError",
    "FieldAccessor",
    "FindParams",
    "InMemoryCollection",
    "InvalidComparisonOperatorError",
    "InvalidCursorShapeError",
    "InvalidLimitError",
    "InvalidRecordTypeError",
    "MissingPaginatedFieldError",
    "MongoCollection",
    "Page",
    "PaginatedFieldNotFoundError",
    "PaginationConfig",
    "PaginationConfigError",
    "PaginationError",
    "PaginationErrorCodes",
    "Paginator",
    "RecordSchema",
    "SortDirection",
    "SortField",
    "aggregate",
    "build_cursor_query",
    "build_queries",
    "build_sort",
    "decode_cursor",
    "effective_directions",
    "encode_cursor",
    "extract_fields",
    "find",
    "generate_comparison_ops",
    "load_config",
    "load_record",
    "schema_for",
    "validate_paginated_fields",
]
