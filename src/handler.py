"""
AWS Lambda handler for serve evidence notification emails.

Thin orchestration layer that extracts the request body and delegates to
NotificationProcessor. Always returns a response; failures are reported in
the body with success=false.
"""

import base64
import binascii
import json
import logging
from typing import Any, Dict, Optional

from domain.errors import ErrorKind
from domain.models import ProcessingResult
from domain.notification_processor import NotificationProcessor
from settings import ConfigurationError, Settings

# Configure logging
logger = logging.getLogger()
logger.setLevel(logging.INFO)

# Add console handler for local testing (AWS Lambda provides handlers automatically)
if not logger.handlers:
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO)
    formatter = logging.Formatter('%(levelname)s - %(message)s')
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

# Built on first use and reused across warm invocations
_processor: Optional[NotificationProcessor] = None


def get_processor() -> NotificationProcessor:
    """
    Return the process-wide processor, building it on first call.

    Raises:
        ConfigurationError: If the environment is misconfigured
    """
    global _processor
    if _processor is None:
        settings = Settings.from_env()
        logger.setLevel(settings.log_level)
        _processor = NotificationProcessor.from_settings(settings)
    return _processor


def reset_processor() -> None:
    """Drop the cached processor (used by tests and after config changes)."""
    global _processor
    _processor = None


def extract_body(event: Optional[Dict[str, Any]]) -> Any:
    """
    Pull the request body out of a Lambda event.

    API Gateway proxy events carry it in "body" (possibly base64 encoded);
    direct invocations pass the payload itself as the event.

    Args:
        event: Lambda event

    Returns:
        The body (str or dict), or None when there is none
    """
    if not event:
        return None
    if not isinstance(event, dict):
        return event

    if 'body' not in event:
        return event

    body = event.get('body')
    if body and event.get('isBase64Encoded') and isinstance(body, str):
        try:
            body = base64.b64decode(body).decode('utf-8')
        except (binascii.Error, UnicodeDecodeError) as e:
            logger.warning(f"Body marked base64 but could not be decoded: {e}")
    return body


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Compose and send one serve evidence notification.

    Expected body format:
    {
        "to": "client@example.com" | ["a@example.com", "b@example.com"],
        "subject": "Serve attempt recorded",
        "html": "<html><body>...</body></html>",
        "text": "...",
        "serveId": "optional serve attempt id",
        "imageData": "optional data:image/jpeg;base64,...",
        "coordinates": "40.1,-75.2",
        "notes": "optional notes"
    }

    Args:
        event: API Gateway proxy event or the payload itself
        context: Lambda context

    Returns:
        Dict: proxy response whose body is {success, message, data?}
    """
    request_id = getattr(context, 'aws_request_id', None) or getattr(context, 'request_id', 'UNKNOWN')
    logger.info(f"Serve evidence notifier - request {request_id}")

    try:
        processor = get_processor()
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return ProcessingResult(
            success=False,
            message=str(e),
            error_kind=ErrorKind.CONFIGURATION.value,
            status_code=500
        ).to_response()

    result = processor.process(extract_body(event))

    if result.success:
        logger.info(f"✓ Request {request_id}: {result.message}")
    else:
        logger.warning(f"⚠ Request {request_id} failed: {result.message}")

    return result.to_response()


def health_check(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Simple health check endpoint for monitoring.
    """
    try:
        settings = Settings.from_env()
    except ConfigurationError as e:
        return {
            'statusCode': 200,
            'body': json.dumps({
                'status': 'misconfigured',
                'error': str(e)
            })
        }

    return {
        'statusCode': 200,
        'body': json.dumps({
            'status': 'healthy',
            'environment': settings.environment,
            'transport': settings.transport,
            'evidenceStoreConfigured': settings.evidence_store_configured
        })
    }
