"""
Notification pipeline - core business logic.

This module handles the end-to-end processing of one notification request:
1. Normalize the request body into a MessageRequest
2. Resolve the evidence attachment (store lookup or inline image)
3. Augment the bodies with coordinates and notes
4. Dispatch through the configured transport with bounded retry
5. Return result (success or failure)

All errors are caught and returned as ProcessingResult with success=False.
No exceptions propagate out of the public methods.
"""

import logging
import time
from typing import Any

from .errors import ErrorKind, NotificationError
from .models import ComposedMessage, MessageRequest, ProcessingResult, ResolvedEvidence
from integrations.evidence_store import EvidenceStore
from services import content as content_service
from services import payload as payload_service
from services.attachment import AttachmentResolver
from services.delivery import DeliveryDispatcher

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = "Email sent successfully"


class NotificationProcessor:
    """
    Composes and delivers serve attempt notification emails.

    Holds configuration and clients only; every request gets its own
    working message.
    """

    def __init__(
        self,
        resolver: AttachmentResolver,
        dispatcher: DeliveryDispatcher,
        from_address: str
    ):
        """
        Args:
            resolver: Evidence attachment resolver
            dispatcher: Delivery dispatcher wrapping the selected transport
            from_address: Sender address for every message
        """
        self._resolver = resolver
        self._dispatcher = dispatcher
        self._from_address = from_address

    @classmethod
    def from_settings(cls, settings) -> 'NotificationProcessor':
        """Wire the pipeline from process-wide settings."""
        resolver = AttachmentResolver(
            EvidenceStore.from_settings(settings),
            failure_policy=settings.attachment_failure_policy,
            filename=settings.attachment_filename
        )
        return cls(resolver, DeliveryDispatcher.from_settings(settings), settings.from_address)

    def process(self, body: Any) -> ProcessingResult:
        """
        Process a single notification request.

        Args:
            body: Request body (JSON text, dict, or MessageRequest)

        Returns:
            ProcessingResult with success=True and the provider response, or
            success=False with the error kind and message (errors logged)
        """
        logger.info("Processing request...")
        start_time = time.time()

        try:
            request = payload_service.normalize_payload(body)
            message = self.compose(request)
            response = self._dispatcher.dispatch(message)

            logger.info(f"Request processed in {time.time() - start_time:.3f}s")
            return ProcessingResult(success=True, message=SUCCESS_MESSAGE, data=response)

        except NotificationError as e:
            logger.error(f"Request failed ({e.kind.value}): {e}")
            return ProcessingResult(
                success=False,
                message=str(e),
                error_kind=e.kind.value,
                status_code=e.status_code
            )

        except Exception as e:
            logger.error(f"Error in emailer function: {e}", exc_info=True)
            return ProcessingResult(
                success=False,
                message=f"Error: {e}",
                error_kind=ErrorKind.INTERNAL.value,
                status_code=500
            )

    def compose(self, request: MessageRequest) -> ComposedMessage:
        """
        Build the enriched message for a request.

        Args:
            request: Validated message request

        Returns:
            ComposedMessage ready for dispatch

        Raises:
            AttachmentFetchError: If the evidence lookup fails under the
                                  'abort' policy
        """
        message = ComposedMessage.from_request(request, self._from_address)

        evidence = self._resolver.resolve(request)
        self._attach_evidence(message, evidence)

        content_service.augment_message(message, evidence.coordinates, request.notes)

        logger.info(
            f"Composed: recipients={len(message.to)}, subject={message.subject}, "
            f"attachments={len(message.attachments)}, evidence_source={evidence.source}"
        )
        return message

    def _attach_evidence(self, message: ComposedMessage, evidence: ResolvedEvidence) -> None:
        if evidence.attachment is not None:
            message.attachments.append(evidence.attachment)
