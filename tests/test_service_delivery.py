"""
Tests for the delivery dispatcher.
"""

from unittest.mock import Mock

import pytest

from domain.errors import DeliveryFailedError, ErrorKind
from domain.models import ComposedMessage
from integrations.resend_transport import ResendTransport
from integrations.smtp_transport import SmtpTransport
from integrations.transport import TransportError
from services.delivery import DeliveryDispatcher, create_transport
from services.retry import RetryPolicy
from settings import Settings


@pytest.fixture
def message():
    return ComposedMessage(
        from_address='no-reply@example.com',
        to=['a@x.com'],
        subject='S',
        text='hello'
    )


def make_transport(side_effect):
    transport = Mock()
    transport.name = 'fake'
    transport.send.side_effect = side_effect
    return transport


class TestDeliveryDispatcher:
    """Test retry semantics around a transport."""

    def test_success_returns_response_unmodified(self, message):
        """Test the transport acknowledgment is passed through."""
        ack = {'id': 'msg-1', 'extra': {'nested': True}}
        transport = make_transport([ack])
        dispatcher = DeliveryDispatcher(transport, RetryPolicy(max_attempts=3), sleep=Mock())

        assert dispatcher.dispatch(message) is ack
        transport.send.assert_called_once_with(message)

    def test_fails_twice_then_succeeds(self, message):
        """Test the third attempt's response is returned."""
        transport = make_transport([
            TransportError('first', is_retryable=True),
            TransportError('second', is_retryable=True),
            {'id': 'third-attempt'},
        ])
        dispatcher = DeliveryDispatcher(transport, RetryPolicy(max_attempts=3), sleep=Mock())

        assert dispatcher.dispatch(message) == {'id': 'third-attempt'}
        assert transport.send.call_count == 3

    def test_exhaustion_surfaces_final_error(self, message):
        """Test DeliveryFailedError carries only the final attempt's error."""
        final_error = TransportError('Resend returned 500: boom', is_retryable=True)
        transport = make_transport([
            TransportError('first', is_retryable=True),
            TransportError('second', is_retryable=True),
            final_error,
        ])
        dispatcher = DeliveryDispatcher(transport, RetryPolicy(max_attempts=3), sleep=Mock())

        with pytest.raises(DeliveryFailedError) as exc_info:
            dispatcher.dispatch(message)

        error = exc_info.value
        assert error.kind == ErrorKind.DELIVERY_FAILED
        assert str(error) == 'Failed to send email: Resend returned 500: boom'
        assert 'first' not in str(error)
        assert error.__cause__ is final_error
        assert error.attempts == 3

    def test_single_attempt_policy(self, message):
        """Test a cap of one means no retry."""
        transport = make_transport([TransportError('down', is_retryable=True), {'id': 'never'}])
        dispatcher = DeliveryDispatcher(transport, RetryPolicy(max_attempts=1), sleep=Mock())

        with pytest.raises(DeliveryFailedError):
            dispatcher.dispatch(message)

        assert transport.send.call_count == 1

    def test_permanent_error_is_not_retried(self, message):
        """Test a provider 4xx fails after a single attempt."""
        sleep = Mock()
        transport = make_transport([
            TransportError('Resend returned 422: Invalid `to` field', status_code=422),
            {'id': 'never'},
        ])
        dispatcher = DeliveryDispatcher(transport, RetryPolicy(max_attempts=3), sleep=sleep)

        with pytest.raises(DeliveryFailedError) as exc_info:
            dispatcher.dispatch(message)

        assert str(exc_info.value) == 'Failed to send email: Resend returned 422: Invalid `to` field'
        assert exc_info.value.attempts == 1
        assert transport.send.call_count == 1
        sleep.assert_not_called()

    def test_unexpected_error_is_not_retried(self, message):
        """Test exceptions other than TransportError propagate after one call."""
        sleep = Mock()
        transport = make_transport([ValueError('Attachment content is not valid base64'), {'id': 'never'}])
        policy = RetryPolicy(max_attempts=3, retry_on=(TransportError,))
        dispatcher = DeliveryDispatcher(transport, policy, sleep=sleep)

        with pytest.raises(ValueError, match='not valid base64'):
            dispatcher.dispatch(message)

        assert transport.send.call_count == 1
        sleep.assert_not_called()

    def test_backoff_between_attempts(self, message):
        """Test the dispatcher sleeps between attempts."""
        sleep = Mock()
        transport = make_transport([TransportError('a', is_retryable=True), {'id': 'ok'}])
        dispatcher = DeliveryDispatcher(transport, RetryPolicy(max_attempts=3, base_delay=0.5), sleep=sleep)

        dispatcher.dispatch(message)

        sleep.assert_called_once_with(0.5)


class TestCreateTransport:
    """Test transport selection by configuration."""

    def test_api_transport(self):
        """Test 'api' selects Resend."""
        settings = Settings(transport='api', resend_api_key='re_key')

        transport = create_transport(settings)

        assert isinstance(transport, ResendTransport)
        assert transport.name == 'resend'

    def test_smtp_transport(self):
        """Test 'smtp' selects the SMTP relay."""
        settings = Settings(transport='smtp', smtp_host='smtp.example.com', smtp_port=465, smtp_secure=True)

        transport = create_transport(settings)

        assert isinstance(transport, SmtpTransport)
        assert transport.name == 'smtp'

    def test_from_settings_uses_retry_configuration(self):
        """Test the dispatcher is wired with the configured transport."""
        settings = Settings(transport='api', resend_api_key='re_key', max_delivery_attempts=5)

        dispatcher = DeliveryDispatcher.from_settings(settings)

        assert dispatcher.transport_name == 'resend'
        assert dispatcher._policy.max_attempts == 5
        assert dispatcher._policy.retry_on == (TransportError,)
