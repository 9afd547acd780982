"""
Errors

Domain exceptions raised by the registry, codec and token services, and
the catalog the API uses to turn them into JSON bodies and status codes.
Each domain exception names an ``ErrorCategory``; the category alone
decides the user-facing text and the HTTP status.
"""

from enum import Enum
from typing import Any, Dict, NamedTuple, Optional, Tuple


class ErrorCategory(Enum):
    FILE_NOT_FOUND = "file_not_found"
    TOKEN_NOT_FOUND = "token_not_found"
    TOKEN_EXPIRED = "token_expired"
    TOKEN_ALREADY_CONSUMED = "token_already_consumed"
    INVALID_ARGUMENT = "invalid_argument"
    UNSUPPORTED_ENCODING = "unsupported_encoding"
    NOT_TEXT = "not_text"
    DECODE_ERROR = "decode_error"
    UNREPRESENTABLE = "unrepresentable"
    FILE_TOO_LARGE = "file_too_large"
    INSUFFICIENT_STORAGE = "insufficient_storage"
    STORAGE_ERROR = "storage_error"
    BUSY = "busy"
    SYSTEM_ERROR = "system_error"


class _Entry(NamedTuple):
    status: int
    title: str
    message: str
    action: str


_RESCAN = "Generate a new QR code on the computer and scan it again."

_CATALOG: Dict[ErrorCategory, _Entry] = {
    ErrorCategory.FILE_NOT_FOUND: _Entry(
        404, "File Not Found",
        "That file is no longer on the server.",
        "Refresh the file list.",
    ),
    ErrorCategory.TOKEN_NOT_FOUND: _Entry(
        404, "Link Not Valid",
        "This link or QR code is not recognized.",
        _RESCAN,
    ),
    ErrorCategory.TOKEN_EXPIRED: _Entry(
        410, "Link Expired",
        "This link or QR code has expired.",
        _RESCAN,
    ),
    ErrorCategory.TOKEN_ALREADY_CONSUMED: _Entry(
        410, "Link Already Used",
        "This link or QR code has already been used.",
        "Each QR code works once. Generate a new one to transfer again.",
    ),
    ErrorCategory.INVALID_ARGUMENT: _Entry(
        400, "Invalid Request",
        "Some of the submitted values are missing or malformed.",
        "Correct the input and resend.",
    ),
    ErrorCategory.UNSUPPORTED_ENCODING: _Entry(
        400, "Unsupported Encoding",
        "The selected text encoding is not supported.",
        "Choose one of UTF-8, GB18030, GBK, Big5, Windows-1252 or ISO-8859-1.",
    ),
    ErrorCategory.NOT_TEXT: _Entry(
        400, "Not a Text File",
        "Only text files can be converted to another encoding.",
        "Select a text file.",
    ),
    ErrorCategory.DECODE_ERROR: _Entry(
        422, "Cannot Read Text",
        "The file content is not valid in the selected source encoding.",
        "Pick the source encoding explicitly instead of automatic detection.",
    ),
    ErrorCategory.UNREPRESENTABLE: _Entry(
        422, "Characters Not Supported",
        "Some characters have no equivalent in the target encoding.",
        "Choose a wider target encoding, or allow replacement characters.",
    ),
    ErrorCategory.FILE_TOO_LARGE: _Entry(
        413, "File Too Large",
        "The file is bigger than the per-file size limit.",
        "Send a smaller file.",
    ),
    ErrorCategory.INSUFFICIENT_STORAGE: _Entry(
        507, "Storage Full",
        "The server has no room left for this file.",
        "Delete some files first.",
    ),
    ErrorCategory.STORAGE_ERROR: _Entry(
        500, "Storage Error",
        "The file could not be read or written on the server.",
        "Retry; if it keeps failing, check the server's disk.",
    ),
    ErrorCategory.BUSY: _Entry(
        503, "Server Busy",
        "Too many transfers are running at the moment.",
        "Wait a second and retry.",
    ),
    ErrorCategory.SYSTEM_ERROR: _Entry(
        500, "System Error",
        "Something went wrong on the server.",
        "Retry shortly; the server log has the details.",
    ),
}

ERROR_MESSAGES: Dict[ErrorCategory, Dict[str, str]] = {
    category: {"title": e.title, "message": e.message, "action": e.action}
    for category, e in _CATALOG.items()
}

HTTP_STATUS: Dict[ErrorCategory, int] = {
    category: e.status for category, e in _CATALOG.items()
}


class DomainError(Exception):
    """Root of the domain exceptions. ``category`` is fixed per subclass."""

    category = ErrorCategory.SYSTEM_ERROR

    def __init__(self, message: str, original_error: Exception = None):
        super().__init__(message)
        self.original_error = original_error


class NotFoundError(DomainError):
    """Unknown file id."""
    category = ErrorCategory.FILE_NOT_FOUND


class TokenNotFoundError(DomainError):
    """Unknown or purged token, or a token presented at the wrong endpoint."""
    category = ErrorCategory.TOKEN_NOT_FOUND


class TokenExpiredError(DomainError):
    """Token used at or after its expiry. Reported even if also consumed."""
    category = ErrorCategory.TOKEN_EXPIRED


class TokenAlreadyConsumedError(DomainError):
    """Single-use token that is spent or reserved by another request."""
    category = ErrorCategory.TOKEN_ALREADY_CONSUMED


class InvalidArgumentError(DomainError):
    category = ErrorCategory.INVALID_ARGUMENT


class FileTooLargeError(InvalidArgumentError):
    category = ErrorCategory.FILE_TOO_LARGE


class UnsupportedEncodingError(DomainError):
    """Encoding name outside the supported set."""
    category = ErrorCategory.UNSUPPORTED_ENCODING


class NotTextError(DomainError):
    """Transcode requested for a file classified as binary."""
    category = ErrorCategory.NOT_TEXT


class DecodeError(DomainError):
    """Bytes invalid under the source encoding, or auto detection found nothing."""
    category = ErrorCategory.DECODE_ERROR


class UnrepresentableCharacterError(DomainError):
    """Strict encoding hit a character the target cannot express."""
    category = ErrorCategory.UNREPRESENTABLE


class StorageError(DomainError):
    category = ErrorCategory.STORAGE_ERROR


class InsufficientStorageError(StorageError):
    """File cannot fit even after evicting everything evictable."""
    category = ErrorCategory.INSUFFICIENT_STORAGE


class ConfigurationError(Exception):
    """Invalid settings detected at startup."""


class ApplicationError(Exception):
    """
    Error raised by application services, carrying the catalog text.

    ``technical_message`` is surfaced as ``detail`` in the response body
    when present.
    """

    def __init__(
        self,
        category: ErrorCategory,
        technical_message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        entry = _CATALOG.get(category, _CATALOG[ErrorCategory.SYSTEM_ERROR])
        self.category = category
        self.technical_message = technical_message or ""
        self.context = context or {}
        self.title = entry.title
        self.message = entry.message
        self.action = entry.action
        self.http_status_code = entry.status
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        body = {
            "error": self.category.value,
            "title": self.title,
            "message": self.message,
            "action": self.action,
        }
        if self.technical_message:
            body["detail"] = self.technical_message
        return body


class ServiceBusyError(ApplicationError):
    """A concurrency limiter had no free slot; clients should retry after a second."""

    retry_after = 1

    def __init__(
        self,
        technical_message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(ErrorCategory.BUSY, technical_message, context)


def create_error_response(
    category: ErrorCategory,
    technical_message: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None,
    status_code: Optional[int] = None,
) -> Tuple[Dict[str, Any], int]:
    """Build a ``(body, status)`` pair; ``status_code`` overrides the catalog."""
    error = ApplicationError(category, technical_message, context)
    return error.to_dict(), status_code or error.http_status_code


def error_response_for(error: DomainError) -> Tuple[Dict[str, Any], int]:
    return create_error_response(error.category, str(error))
