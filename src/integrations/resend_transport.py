"""
Resend transactional email API transport.

One send() call is one HTTP POST; retries are left to the dispatcher.

Usage:
    from integrations.resend_transport import ResendTransport

    transport = ResendTransport(api_key="re_...")
    response = transport.send(message)
    print(response['id'])
"""

import logging
from typing import Any, Dict, Optional

import httpx

from domain.models import ComposedMessage
from integrations.transport import TransportError, is_retryable_status
from settings import DEFAULT_RESEND_API_URL

logger = logging.getLogger(__name__)


class ResendTransport:
    """Sends composed messages through the Resend HTTP API."""

    name = 'resend'

    def __init__(
        self,
        api_key: str,
        api_url: str = DEFAULT_RESEND_API_URL,
        timeout: float = 15.0,
        client: Optional[httpx.Client] = None
    ):
        """
        Args:
            api_key: Resend API key (sent as a bearer token, never logged)
            api_url: Send-email endpoint
            timeout: Timeout for one request, in seconds
            client: Preconfigured httpx client (tests pass a MockTransport)
        """
        if not api_key:
            raise ValueError("API key is missing")
        self._api_url = api_url
        self._headers = {
            'Authorization': f'Bearer {api_key}',
            'Content-Type': 'application/json',
        }
        self._client = client or httpx.Client(timeout=timeout)

    def send(self, message: ComposedMessage) -> Dict[str, Any]:
        """
        POST the message to Resend.

        Args:
            message: Fully composed message

        Returns:
            Dict: Decoded Resend response (contains the message "id")

        Raises:
            TransportError: On connection errors, timeouts or non-2xx responses
        """
        payload = message.to_provider_payload()
        logger.info(
            f"About to send email with Resend: recipients={len(payload['to'])}, "
            f"attachments={len(payload['attachments'])}"
        )

        try:
            response = self._client.post(self._api_url, json=payload, headers=self._headers)
        except httpx.TimeoutException as e:
            raise TransportError(f"Resend request timed out: {e}", is_retryable=True) from e
        except httpx.HTTPError as e:
            raise TransportError(f"Resend request failed: {e}", is_retryable=True) from e

        if response.status_code >= 400:
            raise TransportError(
                f"Resend returned {response.status_code}: {_error_message(response)}",
                status_code=response.status_code,
                is_retryable=is_retryable_status(response.status_code)
            )

        try:
            data = response.json()
        except ValueError:
            data = {'raw': response.text}

        logger.info(f"Resend response: {data}")
        return data

    def close(self) -> None:
        self._client.close()


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict):
        return str(body.get('message') or body.get('error') or body)
    return str(body)
