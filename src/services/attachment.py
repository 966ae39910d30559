"""
Evidence attachment resolution.

This module turns the evidence sources of a request (a serve attempt
reference or an inline image) into at most one base64 attachment, and
decides which coordinates the details block should show.
"""

import logging
from typing import Optional

from domain.errors import AttachmentFetchError
from domain.models import Attachment, MessageRequest, ResolvedEvidence
from integrations.evidence_store import EvidenceNotFoundError, EvidenceStore, EvidenceStoreError
from settings import DEFAULT_ATTACHMENT_FILENAME, POLICY_ABORT, POLICY_OMIT

logger = logging.getLogger(__name__)

BASE64_MARKER = 'base64,'

SOURCE_STORE = 'store'
SOURCE_INLINE = 'inline'


def extract_base64_content(value: str) -> str:
    """
    Strip a data URI prefix from base64 content.

    Args:
        value: Either "data:image/jpeg;base64,<data>" or bare base64

    Returns:
        str: Everything after the first "base64," marker, or the value
             unchanged when there is no marker

    Example:
        >>> extract_base64_content("data:image/png;base64,iVBORw0KGgo=")
        'iVBORw0KGgo='
    """
    marker_index = value.find(BASE64_MARKER)
    if marker_index == -1:
        return value
    return value[marker_index + len(BASE64_MARKER):]


def build_attachment(image_data: str, filename: str = DEFAULT_ATTACHMENT_FILENAME) -> Attachment:
    """Build the evidence attachment from raw or data URI image content."""
    content = extract_base64_content(image_data)
    logger.info(f"Extracted base64 content length: {len(content)}")
    return Attachment(filename=filename, content=content)


class AttachmentResolver:
    """
    Resolves the evidence image for a request.

    Priority: evidence reference (store lookup) > inline image > nothing.
    """

    def __init__(
        self,
        store: EvidenceStore,
        failure_policy: str = POLICY_ABORT,
        filename: str = DEFAULT_ATTACHMENT_FILENAME
    ):
        """
        Args:
            store: Serve attempt record store
            failure_policy: 'abort' raises on lookup failure, 'omit' sends
                            without the attachment
            filename: Filename for the evidence attachment
        """
        if failure_policy not in (POLICY_ABORT, POLICY_OMIT):
            raise ValueError(f"Unknown attachment failure policy: {failure_policy}")
        self._store = store
        self._failure_policy = failure_policy
        self._filename = filename

    def resolve(self, request: MessageRequest) -> ResolvedEvidence:
        """
        Resolve the attachment and effective coordinates for a request.

        Args:
            request: Validated message request

        Returns:
            ResolvedEvidence with zero or one attachment

        Raises:
            AttachmentFetchError: If the store lookup fails under the
                                  'abort' policy
        """
        if request.evidence_reference_id:
            return self._resolve_from_store(request)

        if request.inline_image:
            logger.info("Using imageData provided in payload")
            return ResolvedEvidence(
                attachment=build_attachment(request.inline_image, self._filename),
                coordinates=request.coordinates,
                source=SOURCE_INLINE
            )

        logger.info("No serveId or imageData provided; no image will be attached")
        return ResolvedEvidence(coordinates=request.coordinates)

    def _resolve_from_store(self, request: MessageRequest) -> ResolvedEvidence:
        record_id = request.evidence_reference_id
        try:
            record = self._store.get_record(record_id)
        except (EvidenceNotFoundError, EvidenceStoreError) as e:
            return self._handle_lookup_failure(request, e)

        coordinates = record.coordinates or request.coordinates
        if record.coordinates and request.coordinates and record.coordinates != request.coordinates:
            logger.info("Stored coordinates override coordinates supplied in the request")

        attachment: Optional[Attachment] = None
        if record.image_data:
            logger.info("Found image_data in serve attempt document")
            attachment = build_attachment(record.image_data, self._filename)
        else:
            logger.info("No image_data found in serve attempt document")

        return ResolvedEvidence(
            attachment=attachment,
            coordinates=coordinates,
            source=SOURCE_STORE if attachment else None
        )

    def _handle_lookup_failure(self, request: MessageRequest, error: Exception) -> ResolvedEvidence:
        if self._failure_policy == POLICY_ABORT:
            logger.error(f"Failed to fetch serve attempt document: {error}")
            raise AttachmentFetchError(f"Failed to fetch serve attempt document: {error}") from error

        logger.warning(
            f"Failed to fetch serve attempt document, sending without attachment: {error}"
        )
        return ResolvedEvidence(coordinates=request.coordinates)
