"""API error definitions.

All API errors are defined here with their corresponding HTTP status codes.
"""

from enum import Enum


class ApiErrorCode(str, Enum):
    """Standardized error codes for the API.

    Format: E_CATEGORY_NAME
    """

    # Authentication errors (401)
    E_UNAUTHENTICATED = "E_UNAUTHENTICATED"

    # Token ledger errors (402)
    E_INSUFFICIENT_TOKENS = "E_INSUFFICIENT_TOKENS"

    # Authorization errors (403)
    E_FORBIDDEN = "E_FORBIDDEN"

    # Not found errors (404)
    E_NOT_FOUND = "E_NOT_FOUND"
    E_RL_ITEM_NOT_FOUND = "E_RL_ITEM_NOT_FOUND"
    E_L_ITEM_NOT_FOUND = "E_L_ITEM_NOT_FOUND"

    # Conflict errors (409)
    E_AUDIO_IN_PROGRESS = "E_AUDIO_IN_PROGRESS"
    E_AUDIO_EXISTS = "E_AUDIO_EXISTS"

    # Gone (410)
    E_L_ITEM_DELETED = "E_L_ITEM_DELETED"

    # Validation errors (400)
    E_INVALID_REQUEST = "E_INVALID_REQUEST"
    E_STORAGE_MISSING = "E_STORAGE_MISSING"

    # Server errors
    E_INTERNAL = "E_INTERNAL"  # 500
    E_DB_ERROR = "E_DB_ERROR"  # 500
    E_DISPATCH_FAILED = "E_DISPATCH_FAILED"  # 500
    E_SIGN_DOWNLOAD_FAILED = "E_SIGN_DOWNLOAD_FAILED"  # 500
    E_STORAGE_ERROR = "E_STORAGE_ERROR"  # 500


# Error code to HTTP status mapping
ERROR_CODE_TO_STATUS: dict[ApiErrorCode, int] = {
    ApiErrorCode.E_UNAUTHENTICATED: 401,
    ApiErrorCode.E_INSUFFICIENT_TOKENS: 402,
    ApiErrorCode.E_FORBIDDEN: 403,
    ApiErrorCode.E_NOT_FOUND: 404,
    ApiErrorCode.E_RL_ITEM_NOT_FOUND: 404,
    ApiErrorCode.E_L_ITEM_NOT_FOUND: 404,
    ApiErrorCode.E_AUDIO_IN_PROGRESS: 409,
    ApiErrorCode.E_AUDIO_EXISTS: 409,
    ApiErrorCode.E_L_ITEM_DELETED: 410,
    ApiErrorCode.E_INVALID_REQUEST: 400,
    ApiErrorCode.E_STORAGE_MISSING: 400,
    ApiErrorCode.E_INTERNAL: 500,
    ApiErrorCode.E_DB_ERROR: 500,
    ApiErrorCode.E_DISPATCH_FAILED: 500,
    ApiErrorCode.E_SIGN_DOWNLOAD_FAILED: 500,
    ApiErrorCode.E_STORAGE_ERROR: 500,
}


class ApiError(Exception):
    """Base exception for API errors.

    Attributes:
        code: The error code enum value
        message: Human-readable error message
        status_code: HTTP status code (derived from code)
    """

    def __init__(self, code: ApiErrorCode, message: str):
        self.code = code
        self.message = message
        self.status_code = ERROR_CODE_TO_STATUS.get(code, 500)
        super().__init__(message)


class NotFoundError(ApiError):
    """Resource not found error."""

    def __init__(self, code: ApiErrorCode = ApiErrorCode.E_NOT_FOUND, message: str = "Not found"):
        super().__init__(code, message)


class ConflictError(ApiError):
    """Resource state conflicts with the request."""

    def __init__(self, code: ApiErrorCode, message: str):
        super().__init__(code, message)


class InvalidRequestError(ApiError):
    """Invalid request error."""

    def __init__(
        self, code: ApiErrorCode = ApiErrorCode.E_INVALID_REQUEST, message: str = "Invalid request"
    ):
        super().__init__(code, message)
