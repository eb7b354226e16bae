"""cursor_pagination ライブラリの例外型定義"""

from __future__ import annotations


class PaginationError(Exception):
    """cursor_pagination ライブラリのエラー基底クラス。"""

    def __init__(
        self,
        code: str,
        message: str,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        return f"{self.code}: {super().__str__()}"


class PaginationErrorCodes:
    """PaginationError のエラーコード定数。"""

    CURSOR: str = "CURSOR_ERROR"
    CURSOR_DECODE: str = "CURSOR_DECODE_ERROR"
    CURSOR_ENCODE: str = "CURSOR_ENCODE_ERROR"
    INVALID_LIMIT: str = "INVALID_LIMIT"
    INVALID_CURSOR_SHAPE: str = "INVALID_CURSOR_SHAPE"
    INVALID_COMPARISON_OPERATOR: str = "INVALID_COMPARISON_OPERATOR"
    PAGINATED_FIELD_NOT_FOUND: str = "PAGINATED_FIELD_NOT_FOUND"
    MISSING_PAGINATED_FIELD: str = "MISSING_PAGINATED_FIELD"
    INVALID_RECORD_TYPE: str = "INVALID_RECORD_TYPE"
    CONFIG: str = "CONFIG_ERROR"


class CursorError(PaginationError):
    """カーソルが不正または別のソート条件で発行された場合のエラー。

    呼び出し側の入力起因のため、HTTP 層では 400 として扱うことを想定する。
    """

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(PaginationErrorCodes.CURSOR, message, cause)


class CursorDecodeError(PaginationError):
    """カーソル文字列が base64url / BSON としてデコードできない場合のエラー。"""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(PaginationErrorCodes.CURSOR_DECODE, message, cause)


class CursorEncodeError(PaginationError):
    """カーソル値を BSON にエンコードできない場合のエラー。"""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(PaginationErrorCodes.CURSOR_ENCODE, message, cause)


class InvalidLimitError(PaginationError):
    """limit が許容範囲外の場合のエラー。"""

    def __init__(self, limit: int, message: str | None = None) -> None:
        super().__init__(
            PaginationErrorCodes.INVALID_LIMIT,
            message or f"a limit of at least 1 is required: {limit}",
        )
        self.limit = limit


class InvalidCursorShapeError(PaginationError):
    """フィールド数・値の数・演算子の数が一致しない場合のエラー。"""

    def __init__(self, message: str) -> None:
        super().__init__(PaginationErrorCodes.INVALID_CURSOR_SHAPE, message)


class InvalidComparisonOperatorError(PaginationError):
    """比較演算子が $gt / $lt 以外の場合のエラー。"""

    def __init__(self, operator: str) -> None:
        super().__init__(
            PaginationErrorCodes.INVALID_COMPARISON_OPERATOR,
            f"invalid comparison operator specified: {operator!r} (only $lt and $gt are allowed)",
        )
        self.operator = operator


class PaginatedFieldNotFoundError(PaginationError):
    """レコード型にソート対象フィールドが定義されていない場合のエラー。"""

    def __init__(self, field_name: str) -> None:
        super().__init__(
            PaginationErrorCodes.PAGINATED_FIELD_NOT_FOUND,
            f"paginated field {field_name} not found",
        )
        self.field_name = field_name


class MissingPaginatedFieldError(PaginationError):
    """カーソル生成時にレコードが必須ソートフィールドを持たない場合のエラー。"""

    def __init__(self, field_name: str) -> None:
        super().__init__(
            PaginationErrorCodes.MISSING_PAGINATED_FIELD,
            f"record has no value for paginated field {field_name}",
        )
        self.field_name = field_name


class InvalidRecordTypeError(PaginationError):
    """ページングできないレコード型が指定された場合のエラー。"""

    def __init__(self, record_type: object) -> None:
        super().__init__(
            PaginationErrorCodes.INVALID_RECORD_TYPE,
            f"expected a mapping, dataclass, pydantic model or FieldAccessor type: {record_type!r}",
        )
        self.record_type = record_type


class PaginationConfigError(PaginationError):
    """設定ファイルの読み込み・検証に失敗した場合のエラー。"""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(PaginationErrorCodes.CONFIG, message, cause)
