"""
Common contract for email delivery backends.
"""

from typing import Any, Dict, Optional, Protocol

from domain.models import ComposedMessage


class TransportError(Exception):
    """
    Raised when a single send attempt fails.

    is_retryable marks transient failures (timeouts, connection errors,
    throttling, provider 5xx). Anything else fails the same way every time.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        is_retryable: bool = False
    ):
        super().__init__(message)
        self.status_code = status_code
        self.is_retryable = is_retryable


def is_retryable_status(status_code: int) -> bool:
    return status_code == 429 or status_code >= 500


class Transport(Protocol):
    """A delivery backend: one send() call is one attempt."""

    name: str

    def send(self, message: ComposedMessage) -> Dict[str, Any]:
        """Send the message and return the provider acknowledgment."""
        ...
