"""
SMTP relay transport.

Each send() opens its own connection (aiosmtplib.send connects, sends and
quits), so there is no connection state shared between attempts.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

import aiosmtplib

from domain.models import ComposedMessage
from integrations.transport import TransportError
from services.email import build_mime_message

logger = logging.getLogger(__name__)


class SmtpTransport:
    """Sends composed messages through an SMTP relay."""

    name = 'smtp'

    def __init__(
        self,
        host: str,
        port: int = 587,
        secure: bool = False,
        username: Optional[str] = None,
        password: Optional[str] = None,
        timeout: float = 15.0
    ):
        """
        Args:
            host: Relay hostname
            port: Relay port
            secure: Implicit TLS on connect (port 465 style); otherwise
                    STARTTLS is used when the server offers it
            username: Login user (login is skipped when unset)
            password: Login password
            timeout: Timeout for the whole SMTP exchange, in seconds
        """
        if not host:
            raise ValueError("SMTP host is required")
        self._host = host
        self._port = port
        self._secure = secure
        self._username = username
        self._password = password
        self._timeout = timeout

    def send(self, message: ComposedMessage) -> Dict[str, Any]:
        """
        Send the message over SMTP.

        Args:
            message: Fully composed message

        Returns:
            Dict with "id" (the Message-ID), "response" (server reply) and
            "rejected" (per-recipient errors, if any)

        Raises:
            TransportError: On connection, authentication, timeout or
                            protocol errors, or when the message cannot
                            be encoded (never retryable)
        """
        try:
            mime_message = build_mime_message(message)
        except ValueError as e:
            raise TransportError(f"Failed to build MIME message: {e}") from e

        logger.info(
            f"About to send email via SMTP: host={self._host}, port={self._port}, "
            f"secure={self._secure}, recipients={len(message.to)}"
        )

        try:
            rejected, reply = asyncio.run(self._send(mime_message))
        except aiosmtplib.SMTPResponseException as e:
            # 5xx replies are permanent rejections
            raise TransportError(
                f"SMTP error: {e}", status_code=e.code, is_retryable=e.code < 500
            ) from e
        except aiosmtplib.SMTPException as e:
            raise TransportError(f"SMTP error: {e}", is_retryable=True) from e
        except (asyncio.TimeoutError, OSError) as e:
            raise TransportError(f"SMTP connection failed: {e}", is_retryable=True) from e

        result = {
            'id': mime_message['Message-ID'],
            'response': reply,
            'rejected': {addr: str(err) for addr, err in rejected.items()},
        }
        logger.info(f"SMTP response: {result}")
        return result

    async def _send(self, mime_message):
        return await aiosmtplib.send(
            mime_message,
            hostname=self._host,
            port=self._port,
            username=self._username,
            password=self._password,
            use_tls=self._secure,
            start_tls=False if self._secure else None,
            timeout=self._timeout
        )
