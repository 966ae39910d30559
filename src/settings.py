"""
Runtime configuration for the serve evidence notifier.

All environment variables are read once, here, into a frozen Settings object
that is passed into the pipeline components. Nothing below the handler reads
os.environ directly.
"""

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

TRANSPORT_API = 'api'
TRANSPORT_SMTP = 'smtp'
TRANSPORTS = (TRANSPORT_API, TRANSPORT_SMTP)

POLICY_ABORT = 'abort'
POLICY_OMIT = 'omit'
ATTACHMENT_FAILURE_POLICIES = (POLICY_ABORT, POLICY_OMIT)

LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')

DEFAULT_FROM_ADDRESS = 'no-reply@justlegalsolutions.tech'
DEFAULT_RESEND_API_URL = 'https://api.resend.com/emails'
DEFAULT_ATTACHMENT_FILENAME = 'serve_evidence.jpeg'


class ConfigurationError(Exception):
    """Raised when configuration is invalid or missing."""
    pass


@dataclass(frozen=True)
class Settings:
    """
    Process-wide configuration.

    Attributes:
        environment: Deployment label (dev, staging, prod)
        log_level: Root logger level name
        transport: Delivery backend, 'api' (Resend) or 'smtp'
        from_address: Sender address for every notification
        resend_api_key: Resend API key (required for the api transport)
        resend_api_url: Resend send-email endpoint
        smtp_host: SMTP relay host (required for the smtp transport)
        smtp_port: SMTP relay port
        smtp_secure: Use implicit TLS instead of STARTTLS negotiation
        smtp_username: SMTP login user
        smtp_password: SMTP login password
        evidence_table: DynamoDB table holding serve attempt records
        evidence_key_attribute: Partition key attribute of the table
        evidence_image_field: Record attribute holding the image
        evidence_coordinates_field: Record attribute holding "lat,lon"
        attachment_failure_policy: 'abort' or 'omit' when a lookup fails
        attachment_filename: Filename given to the evidence attachment
        max_delivery_attempts: Total send attempts before giving up
        retry_base_delay: First backoff delay in seconds
        retry_max_delay: Backoff ceiling in seconds
        store_timeout: Connect/read timeout for the record store
        transport_timeout: Timeout for a single send attempt
    """
    environment: str = 'dev'
    log_level: str = 'INFO'
    transport: str = TRANSPORT_API
    from_address: str = DEFAULT_FROM_ADDRESS
    resend_api_key: Optional[str] = None
    resend_api_url: str = DEFAULT_RESEND_API_URL
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_secure: bool = False
    smtp_username: Optional[str] = None
    smtp_password: Optional[str] = None
    evidence_table: Optional[str] = None
    evidence_key_attribute: str = 'id'
    evidence_image_field: str = 'image_data'
    evidence_coordinates_field: str = 'coordinates'
    attachment_failure_policy: str = POLICY_ABORT
    attachment_filename: str = DEFAULT_ATTACHMENT_FILENAME
    max_delivery_attempts: int = 3
    retry_base_delay: float = 1.0
    retry_max_delay: float = 8.0
    store_timeout: float = 10.0
    transport_timeout: float = 15.0

    def __post_init__(self):
        if self.transport not in TRANSPORTS:
            raise ConfigurationError(
                f"EMAIL_TRANSPORT must be one of {', '.join(TRANSPORTS)}, "
                f"got: '{self.transport}'"
            )
        if self.attachment_failure_policy not in ATTACHMENT_FAILURE_POLICIES:
            raise ConfigurationError(
                f"ATTACHMENT_FAILURE_POLICY must be one of "
                f"{', '.join(ATTACHMENT_FAILURE_POLICIES)}, "
                f"got: '{self.attachment_failure_policy}'"
            )
        if self.log_level not in LOG_LEVELS:
            raise ConfigurationError(
                f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}, got: '{self.log_level}'"
            )
        if self.max_delivery_attempts < 1:
            raise ConfigurationError("DELIVERY_MAX_ATTEMPTS must be at least 1")
        if self.transport == TRANSPORT_API and not self.resend_api_key:
            raise ConfigurationError("API key is missing")
        if self.transport == TRANSPORT_SMTP and not self.smtp_host:
            raise ConfigurationError("SMTP_HOST is required for the smtp transport")

    @property
    def evidence_store_configured(self) -> bool:
        """Check if the serve attempts table is set."""
        return bool(self.evidence_table)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'Settings':
        """
        Build settings from environment variables.

        Args:
            environ: Mapping to read from (defaults to os.environ)

        Returns:
            Settings: Validated configuration

        Raises:
            ConfigurationError: If a value is missing or malformed
        """
        env = os.environ if environ is None else environ

        settings = cls(
            environment=env.get('ENVIRONMENT', 'dev'),
            log_level=env.get('LOG_LEVEL', 'INFO').upper(),
            transport=env.get('EMAIL_TRANSPORT', TRANSPORT_API).strip().lower(),
            from_address=env.get('EMAIL_FROM') or DEFAULT_FROM_ADDRESS,
            resend_api_key=env.get('RESEND_KEY') or None,
            resend_api_url=env.get('RESEND_API_URL') or DEFAULT_RESEND_API_URL,
            smtp_host=env.get('SMTP_HOST') or None,
            smtp_port=_read_int(env, 'SMTP_PORT', 587),
            smtp_secure=_read_bool(env, 'SMTP_SECURE', False),
            smtp_username=env.get('SMTP_USERNAME') or None,
            smtp_password=env.get('SMTP_PASSWORD') or None,
            evidence_table=env.get('SERVE_ATTEMPTS_TABLE') or None,
            evidence_key_attribute=env.get('EVIDENCE_KEY_ATTRIBUTE') or 'id',
            evidence_image_field=env.get('EVIDENCE_IMAGE_FIELD') or 'image_data',
            evidence_coordinates_field=env.get('EVIDENCE_COORDINATES_FIELD') or 'coordinates',
            attachment_failure_policy=env.get('ATTACHMENT_FAILURE_POLICY', POLICY_ABORT).strip().lower(),
            attachment_filename=env.get('ATTACHMENT_FILENAME') or DEFAULT_ATTACHMENT_FILENAME,
            max_delivery_attempts=_read_int(env, 'DELIVERY_MAX_ATTEMPTS', 3),
            retry_base_delay=_read_float(env, 'DELIVERY_RETRY_BASE_DELAY', 1.0),
            retry_max_delay=_read_float(env, 'DELIVERY_RETRY_MAX_DELAY', 8.0),
            store_timeout=_read_float(env, 'STORE_TIMEOUT_SECONDS', 10.0),
            transport_timeout=_read_float(env, 'TRANSPORT_TIMEOUT_SECONDS', 15.0),
        )

        logger.info(
            f"Settings loaded: environment={settings.environment}, "
            f"transport={settings.transport}, "
            f"attachment_failure_policy={settings.attachment_failure_policy}, "
            f"max_delivery_attempts={settings.max_delivery_attempts}, "
            f"evidence_store_configured={settings.evidence_store_configured}"
        )
        return settings


def _read_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw == '':
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got: '{raw}'")


def _read_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw == '':
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got: '{raw}'")


def _read_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None or raw == '':
        return default
    value = raw.strip().lower()
    if value in ('1', 'true', 'yes', 'on'):
        return True
    if value in ('0', 'false', 'no', 'off'):
        return False
    raise ConfigurationError(f"{name} must be a boolean, got: '{raw}'")
