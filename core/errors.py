# core/errors.py

from models.enums import BaseStrEnum


class ErrorCode(BaseStrEnum):
    NOT_FOUND = "NOT_FOUND"
    INVALID_STATUS = "INVALID_STATUS"
    INVALID_INPUT = "INVALID_INPUT"
    UNIT_UNAVAILABLE = "UNIT_UNAVAILABLE"
    AGENT_NOT_FOUND = "AGENT_NOT_FOUND"
    DUPLICATE = "DUPLICATE"
    FORBIDDEN = "FORBIDDEN"
    UNAUTHORIZED = "UNAUTHORIZED"


ERROR_STATUS_CODES = {
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.INVALID_STATUS: 409,
    ErrorCode.INVALID_INPUT: 400,
    ErrorCode.UNIT_UNAVAILABLE: 409,
    ErrorCode.AGENT_NOT_FOUND: 404,
    ErrorCode.DUPLICATE: 409,
    ErrorCode.FORBIDDEN: 403,
    ErrorCode.UNAUTHORIZED: 401,
}


class RequestActionError(Exception):
    """
    Business-rule failure raised by the request services.

    `message` is safe to show to the end user as-is.
    """

    def __init__(self, code: ErrorCode, message: str):
        super().__init__(message)
        self.code = ErrorCode(code)
        self.message = message

    @property
    def status_code(self) -> int:
        return ERROR_STATUS_CODES.get(self.code, 500)

    def __repr__(self):
        return f"RequestActionError({self.code.value}, {self.message!r})"


class StoreError(Exception):
    """Supabase / PostgREST failure. Never shown to the caller."""

    def __init__(self, operation: str, detail: str):
        super().__init__(f"{operation}: {detail}")
        self.operation = operation
        self.detail = detail


def extract_supabase_error(error: Exception) -> str:
    """
    Safely extract readable details from Supabase Python client errors.
    Handles:
      • PostgREST errors
      • GoTrue (Auth) errors
      • Generic Python exceptions
    """

    # Case 1: PostgREST / GoTrue errors expose .message
    message = getattr(error, "message", None)
    if message:
        return str(message)

    # Case 2: errors with args (common)
    if getattr(error, "args", None):
        return str(error.args[0])

    # Case 3: Plain string fallback
    return str(error) or error.__class__.__name__


def supabase_error_code(error: Exception) -> str:
    """Postgres SQLSTATE carried by a PostgREST APIError, if any."""
    code = getattr(error, "code", None)
    return str(code) if code else ""
