"""
Serve attempt record store backed by DynamoDB.

Resolves an evidence reference id into the stored image and coordinates.

Usage:
    from integrations.evidence_store import EvidenceStore

    store = EvidenceStore.from_settings(settings)
    record = store.get_record("serve-123")
    print(record.coordinates)
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger(__name__)


class EvidenceNotFoundError(Exception):
    """Raised when no serve attempt record exists for the id."""
    pass


class EvidenceStoreError(Exception):
    """Raised when the record store is unreachable, misconfigured or errors."""
    pass


@dataclass
class EvidenceRecord:
    """
    Fields read from a serve attempt record.

    Attributes:
        record_id: The evidence reference id that was looked up
        image_data: Base64 or data URI image (None if the record has none)
        coordinates: "lat,lon" string (None if the record has none)
    """
    record_id: str
    image_data: Optional[str] = None
    coordinates: Optional[str] = None


def create_dynamodb_table(table_name: str, timeout: float) -> Any:
    """
    Create a DynamoDB Table resource with bounded timeouts.

    Args:
        table_name: DynamoDB table name
        timeout: Connect and read timeout in seconds

    Returns:
        boto3 Table resource
    """
    # Single attempt; a timeout surfaces as a store error instead of hanging
    dynamodb_config = Config(
        retries={
            'max_attempts': 1,
            'mode': 'standard'
        },
        connect_timeout=timeout,
        read_timeout=timeout
    )
    dynamodb = boto3.resource('dynamodb', config=dynamodb_config)
    logger.info(
        f"DynamoDB table resource initialized: table={table_name}, "
        f"connect_timeout={timeout}s, read_timeout={timeout}s, max_attempts=1"
    )
    return dynamodb.Table(table_name)


class EvidenceStore:
    """Looks up serve attempt records by evidence reference id."""

    def __init__(
        self,
        table: Any,
        key_attribute: str = 'id',
        image_field: str = 'image_data',
        coordinates_field: str = 'coordinates'
    ):
        """
        Args:
            table: boto3 DynamoDB Table resource, or None when not configured
            key_attribute: Partition key attribute name
            image_field: Attribute holding the image
            coordinates_field: Attribute holding the coordinates
        """
        self._table = table
        self._key_attribute = key_attribute
        self._image_field = image_field
        self._coordinates_field = coordinates_field

    @classmethod
    def from_settings(cls, settings) -> 'EvidenceStore':
        """Build a store from Settings; the table is None if not configured."""
        table = None
        if settings.evidence_table:
            table = create_dynamodb_table(settings.evidence_table, settings.store_timeout)
        else:
            logger.warning("SERVE_ATTEMPTS_TABLE not set, evidence lookups will fail")
        return cls(
            table,
            key_attribute=settings.evidence_key_attribute,
            image_field=settings.evidence_image_field,
            coordinates_field=settings.evidence_coordinates_field
        )

    @property
    def is_configured(self) -> bool:
        return self._table is not None

    def get_record(self, record_id: str) -> EvidenceRecord:
        """
        Fetch one serve attempt record.

        Args:
            record_id: Evidence reference id

        Returns:
            EvidenceRecord with whichever optional fields are present

        Raises:
            EvidenceNotFoundError: If no record has this id
            EvidenceStoreError: If the store is not configured, unreachable,
                                times out or rejects the request
        """
        if not self.is_configured:
            raise EvidenceStoreError("Evidence store is not configured (SERVE_ATTEMPTS_TABLE)")

        logger.info(f"Fetching serve attempt with ID: {record_id}")

        try:
            response = self._table.get_item(Key={self._key_attribute: record_id})
        except ClientError as e:
            error_code = e.response.get('Error', {}).get('Code', 'Unknown')
            error_message = e.response.get('Error', {}).get('Message', str(e))
            logger.error(
                f"Failed to fetch serve attempt {record_id}: "
                f"error_code={error_code}, error_message={error_message}"
            )
            raise EvidenceStoreError(f"Record store error ({error_code}): {error_message}") from e
        except BotoCoreError as e:
            # Connection failures and timeouts
            logger.error(f"Record store unreachable while fetching {record_id}: {e}")
            raise EvidenceStoreError(f"Record store unreachable: {e}") from e

        item = response.get('Item')
        if not item:
            logger.error(f"Serve attempt not found: {record_id}")
            raise EvidenceNotFoundError(f"Serve attempt not found: {record_id}")

        return EvidenceRecord(
            record_id=record_id,
            image_data=_string_or_none(item.get(self._image_field)),
            coordinates=_string_or_none(item.get(self._coordinates_field))
        )


def _string_or_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bytes):
        value = value.decode('utf-8')
    value = str(value)
    return value or None
