"""
Pytest configuration and fixtures for all tests.
"""

import os
import sys
from unittest.mock import MagicMock, Mock

import pytest

# Add src to Python path before any imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../src'))

# Set up test environment variables before importing any modules
os.environ.setdefault('ENVIRONMENT', 'test')
os.environ.setdefault('LOG_LEVEL', 'INFO')
os.environ.setdefault('EMAIL_TRANSPORT', 'api')
os.environ.setdefault('RESEND_KEY', 're_test_key')
os.environ.setdefault('AWS_DEFAULT_REGION', 'us-west-2')

from domain.models import MessageRequest  # noqa: E402

# 1x1 transparent PNG
SAMPLE_IMAGE_BASE64 = (
    'iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNk+M9QDwADhgGAWjR9awAAAABJRU5ErkJggg=='
)


@pytest.fixture(scope="session", autouse=True)
def setup_test_environment():
    """Set up test environment variables for all tests."""
    # Environment variables are already set above
    yield


@pytest.fixture
def sample_image_base64():
    """Bare base64 image content."""
    return SAMPLE_IMAGE_BASE64


@pytest.fixture
def sample_data_uri():
    """The sample image as a data URI."""
    return f'data:image/png;base64,{SAMPLE_IMAGE_BASE64}'


@pytest.fixture
def basic_request():
    """Minimal valid request with an HTML body."""
    return MessageRequest(
        to=('client@example.com',),
        subject='Serve attempt recorded',
        html='<html><body><p>Attempt logged.</p></body></html>',
        text='Attempt logged.'
    )


@pytest.fixture
def mock_store():
    """Evidence store double."""
    store = MagicMock()
    store.is_configured = True
    return store


@pytest.fixture
def mock_context():
    """Mock Lambda context."""
    context = Mock()
    context.aws_request_id = "test-request-id"
    context.invoked_function_arn = "arn:aws:lambda:us-west-2:123456789012:function:test"
    context.function_name = "serve-evidence-notifier-test"
    return context
