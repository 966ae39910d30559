"""
Error types for the notification pipeline.

Every failure the pipeline can report carries an ErrorKind and the HTTP-style
status code the handler answers with. None of them are process-fatal.
"""

from enum import Enum
from typing import Iterable, Optional


class ErrorKind(str, Enum):
    """Failure categories surfaced to the caller."""
    MISSING_PAYLOAD = 'MissingPayload'
    INVALID_PAYLOAD = 'InvalidPayload'
    MISSING_FIELD = 'MissingField'
    ATTACHMENT_FETCH_FAILED = 'AttachmentFetchFailed'
    DELIVERY_FAILED = 'DeliveryFailed'
    CONFIGURATION = 'Configuration'
    INTERNAL = 'Internal'


class NotificationError(Exception):
    """Base class for pipeline failures."""

    kind = ErrorKind.INTERNAL
    status_code = 500


class MissingPayloadError(NotificationError):
    """Raised when the request carries no body at all."""

    kind = ErrorKind.MISSING_PAYLOAD
    status_code = 400

    def __init__(self, message: str = "No valid payload found in request"):
        super().__init__(message)


class InvalidPayloadError(NotificationError):
    """Raised when the body cannot be parsed into a message request."""

    kind = ErrorKind.INVALID_PAYLOAD
    status_code = 400

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(message)
        self.detail = detail


class MissingFieldError(NotificationError):
    """Raised when required fields are absent from a parsed payload."""

    kind = ErrorKind.MISSING_FIELD
    status_code = 400

    def __init__(self, missing: Iterable[str]):
        self.missing = tuple(missing)
        super().__init__(
            "Missing required fields (to, subject, and either html or text): "
            f"missing {', '.join(self.missing)}"
        )


class AttachmentFetchError(NotificationError):
    """Raised when the evidence record cannot be fetched."""

    kind = ErrorKind.ATTACHMENT_FETCH_FAILED
    status_code = 502

    def __init__(self, message: str = "Failed to fetch serve attempt document"):
        super().__init__(message)


class DeliveryFailedError(NotificationError):
    """Raised when every delivery attempt has failed."""

    kind = ErrorKind.DELIVERY_FAILED
    status_code = 502

    def __init__(self, message: str, attempts: int = 0):
        super().__init__(message)
        self.attempts = attempts
