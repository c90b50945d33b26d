"""
Error taxonomy for the invoice workbench.

Local problems (a missing customer, a line without a product) are raised as
``ValidationError`` and never reach the network. Failures reported by the
invoice API collaborator are ``ApiError`` subclasses selected by HTTP status
with ``api_error_for_status``. Draft persistence failures are
``StorageError`` and only ever degrade to a warning.
"""

from typing import Any, Mapping

UNEXPECTED_VALIDATION_MESSAGE = "Unexpected validation error"

_FRIENDLY_MESSAGES: dict[int, str] = {
    400: "Invalid request. Please check your input.",
    401: "Authentication failed. Please check your API token.",
    403: "You don't have permission to perform this action.",
    404: "Resource not found.",
    409: "Conflict detected. The resource may have been modified.",
    422: "Validation failed. Please check your input.",
    429: "Too many requests. Please try again later.",
    500: "Server error. Please try again later.",
    503: "Service temporarily unavailable. Please try again later.",
}
_DEFAULT_FRIENDLY_MESSAGE = "An unexpected error occurred. Please try again."


class InvoiceWorkbenchError(Exception):
    """Base class for every error raised by this package."""


class ValidationError(InvoiceWorkbenchError):
    """Local, pre-submit validation failure keyed by form field path."""

    def __init__(self, field_errors: Mapping[str, str]) -> None:
        self.field_errors = dict(field_errors)
        super().__init__(", ".join(f"{k}: {v}" for k, v in self.field_errors.items()))


class StorageError(InvoiceWorkbenchError):
    """Draft could not be written to or read from the key-value store."""


class ApiError(InvoiceWorkbenchError):
    """
    Failure reported by the invoice API collaborator.

    Attributes:
        status_code: HTTP status, or None when no response was received.
        payload: Decoded response body, if any.
        message: Human-readable description.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        payload: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    @property
    def field_errors(self) -> dict[str, str]:
        """Server-reported per-field errors, normalized."""
        return normalize_field_errors(self.payload)


class ServerValidationError(ApiError):
    """422: the server rejected one or more fields."""


class ConflictError(ApiError):
    """409 on update: the invoice changed since it was fetched."""


class NotFoundError(ApiError):
    """404: the invoice no longer exists."""


class AuthError(ApiError):
    """401/403: surfaced upstream, not handled by the workflows here."""


class ApiConnectionError(ApiError):
    """Network failure or 5xx; recoverable by retrying."""


class DeleteBlockedError(InvoiceWorkbenchError):
    """The invoice is finalized server-side and cannot be deleted."""


def api_error_for_status(
    status_code: int | None,
    payload: Any = None,
    message: str | None = None,
) -> ApiError:
    """
    Build the ApiError subclass matching an HTTP status code.

    Args:
        status_code: HTTP status, or None for transport failures.
        payload: Decoded response body.
        message: Optional explicit message; defaults to the payload's
            ``message`` or the user-friendly message for the status.
    """
    if message is None and isinstance(payload, Mapping):
        raw = payload.get("message")
        message = raw if isinstance(raw, str) and raw else None
    if message is None:
        message = user_friendly_message(status_code)

    if status_code == 422:
        return ServerValidationError(message, status_code, payload)
    if status_code == 409:
        return ConflictError(message, status_code, payload)
    if status_code == 404:
        return NotFoundError(message, status_code, payload)
    if status_code in (401, 403):
        return AuthError(message, status_code, payload)
    if status_code is None or status_code >= 500:
        return ApiConnectionError(message, status_code, payload)
    return ApiError(message, status_code, payload)


def user_friendly_message(status_code: int | None) -> str:
    """Return the message shown to the user for a given HTTP status."""
    if status_code is None:
        return _FRIENDLY_MESSAGES[500]
    return _FRIENDLY_MESSAGES.get(status_code, _DEFAULT_FRIENDLY_MESSAGE)


def normalize_field_errors(payload: Any) -> dict[str, str]:
    """
    Coerce a loosely typed server error payload into ``{field: message}``.

    The server reports ``{"errors": {field: message}}`` where a message is
    sometimes a string and sometimes a list of strings. Lists are joined
    with ", "; anything that does not yield a non-blank string becomes
    ``UNEXPECTED_VALIDATION_MESSAGE``.

    Args:
        payload: Decoded 422 response body.

    Returns:
        Flat mapping of field path to message, in payload order.
    """
    if not isinstance(payload, Mapping):
        return {}
    errors = payload.get("errors")
    if not isinstance(errors, Mapping):
        return {}

    normalized: dict[str, str] = {}
    for field_name, message in errors.items():
        if isinstance(message, (list, tuple)):
            message = ", ".join(entry for entry in message if isinstance(entry, str))
        if not isinstance(message, str) or not message.strip():
            message = UNEXPECTED_VALIDATION_MESSAGE
        normalized[str(field_name)] = message
    return normalized
