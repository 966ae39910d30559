"""
Email delivery with bounded retry.

The dispatcher wraps whichever transport configuration selected in the same
retry policy, so both backends fail and recover identically.
"""

import logging
import time
from typing import Any, Callable, Dict

from domain.errors import DeliveryFailedError
from domain.models import ComposedMessage
from integrations.resend_transport import ResendTransport
from integrations.smtp_transport import SmtpTransport
from integrations.transport import Transport, TransportError
from services.retry import RetryExhaustedError, RetryPolicy, retry_call
from settings import TRANSPORT_API, TRANSPORT_SMTP

logger = logging.getLogger(__name__)


def create_transport(settings) -> Transport:
    """
    Build the transport selected by settings.transport.

    Args:
        settings: Settings instance

    Returns:
        ResendTransport or SmtpTransport

    Raises:
        ValueError: If the transport name is unknown
    """
    if settings.transport == TRANSPORT_API:
        return ResendTransport(
            api_key=settings.resend_api_key,
            api_url=settings.resend_api_url,
            timeout=settings.transport_timeout
        )
    if settings.transport == TRANSPORT_SMTP:
        return SmtpTransport(
            host=settings.smtp_host,
            port=settings.smtp_port,
            secure=settings.smtp_secure,
            username=settings.smtp_username,
            password=settings.smtp_password,
            timeout=settings.transport_timeout
        )
    raise ValueError(f"Unknown transport: {settings.transport}")


class DeliveryDispatcher:
    """Sends composed messages through one transport with bounded retry."""

    def __init__(
        self,
        transport: Transport,
        policy: RetryPolicy,
        sleep: Callable[[float], None] = time.sleep
    ):
        """
        Args:
            transport: Delivery backend
            policy: Attempt cap and backoff schedule
            sleep: Sleep function used between attempts
        """
        self._transport = transport
        self._policy = policy
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings) -> 'DeliveryDispatcher':
        policy = RetryPolicy(
            max_attempts=settings.max_delivery_attempts,
            base_delay=settings.retry_base_delay,
            max_delay=settings.retry_max_delay,
            retry_on=(TransportError,)
        )
        return cls(create_transport(settings), policy)

    @property
    def transport_name(self) -> str:
        return self._transport.name

    def dispatch(self, message: ComposedMessage) -> Dict[str, Any]:
        """
        Send a message, retrying failed attempts.

        Args:
            message: Fully composed message

        Returns:
            Dict: The transport acknowledgment from the successful attempt,
                  unmodified

        Raises:
            DeliveryFailedError: After max_attempts failures or one permanent
                                 failure; the message and cause come from
                                 the final attempt only
        """
        start_time = time.time()
        try:
            response = retry_call(
                lambda: self._transport.send(message),
                self._policy,
                description=f"{self._transport.name} delivery",
                sleep=self._sleep
            )
        except RetryExhaustedError as e:
            logger.error(
                f"Error sending email with {self._transport.name} after "
                f"{e.attempts} attempt(s): {e.last_error}"
            )
            raise DeliveryFailedError(
                f"Failed to send email: {e.last_error}",
                attempts=e.attempts
            ) from e.last_error

        logger.info(
            f"Delivery via {self._transport.name} completed: "
            f"{time.time() - start_time:.3f}s"
        )
        return response
