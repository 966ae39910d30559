"""
Data models for the notification domain.

These type-safe data structures define clear contracts between the pipeline
stages: the parsed request, the resolved evidence, the composed message and
the final processing result.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

DEFAULT_IMAGE_CONTENT_TYPE = 'image/jpeg'


@dataclass(frozen=True)
class MessageRequest:
    """
    Canonical, validated notification request.

    Attributes:
        to: Recipient addresses, in caller order (never empty)
        subject: Subject line
        html: HTML body (empty string if not supplied)
        text: Plain text body (empty string if not supplied)
        evidence_reference_id: Key of a serve attempt record in the store
        inline_image: Raw base64 or data URI image supplied by the caller
        coordinates: "lat,lon" string supplied by the caller
        notes: Free text supplied by the caller
    """
    to: Tuple[str, ...]
    subject: str
    html: str = ''
    text: str = ''
    evidence_reference_id: Optional[str] = None
    inline_image: Optional[str] = None
    coordinates: Optional[str] = None
    notes: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """
        Render the canonical wire form.

        Optional fields that are unset are left out, so feeding the result
        back through the normalizer yields an equal request.
        """
        result: Dict[str, Any] = {
            'to': list(self.to),
            'subject': self.subject,
        }
        optional = {
            'html': self.html,
            'text': self.text,
            'evidenceReferenceId': self.evidence_reference_id,
            'inlineImage': self.inline_image,
            'coordinates': self.coordinates,
            'notes': self.notes,
        }
        result.update({k: v for k, v in optional.items() if v})
        return result


@dataclass
class Attachment:
    """
    Email attachment carried as base64 text.

    Attributes:
        filename: Attachment filename
        content: Base64 encoded content
        content_type: MIME type (used when building SMTP messages)
        encoding: Always "base64"
    """
    filename: str
    content: str
    content_type: str = DEFAULT_IMAGE_CONTENT_TYPE
    encoding: str = 'base64'

    def to_provider_dict(self) -> Dict[str, str]:
        """Convert to the transactional API attachment shape."""
        return {
            'filename': self.filename,
            'content': self.content,
            'encoding': self.encoding,
        }


@dataclass
class ResolvedEvidence:
    """
    Outcome of attachment resolution.

    Attributes:
        attachment: The evidence image, if any
        coordinates: Coordinates to render (store value wins over request)
        source: "store", "inline" or None when nothing was attached
    """
    attachment: Optional[Attachment] = None
    coordinates: Optional[str] = None
    source: Optional[str] = None


@dataclass
class ComposedMessage:
    """
    Working copy of the outgoing email.

    Built once per request and mutated by the pipeline stages.

    Attributes:
        from_address: Sender address
        to: Recipient addresses
        subject: Subject line
        html: HTML body
        text: Plain text body
        attachments: Zero or one evidence attachment
        augmented: True once the details block has been injected
    """
    from_address: str
    to: List[str]
    subject: str
    html: str = ''
    text: str = ''
    attachments: List[Attachment] = field(default_factory=list)
    augmented: bool = False

    @classmethod
    def from_request(cls, request: MessageRequest, from_address: str) -> 'ComposedMessage':
        """Start a working copy from a validated request."""
        return cls(
            from_address=from_address,
            to=list(request.to),
            subject=request.subject,
            html=request.html,
            text=request.text,
        )

    def to_provider_payload(self) -> Dict[str, Any]:
        """
        Convert to the transactional API request body.

        Returns:
            Dict with from, to, subject, attachments and whichever bodies
            are non-empty
        """
        payload: Dict[str, Any] = {
            'from': self.from_address,
            'to': list(self.to),
            'subject': self.subject,
            'attachments': [a.to_provider_dict() for a in self.attachments],
        }
        if self.html:
            payload['html'] = self.html
        if self.text:
            payload['text'] = self.text
        return payload


@dataclass(frozen=True)
class Coordinates:
    """Latitude and longitude as trimmed strings."""
    lat: str
    lon: str


@dataclass
class ProcessingResult:
    """
    Result of processing one notification request.

    This explicit result type makes success/failure handling clear
    and prevents exceptions from escaping the handler.

    Attributes:
        success: Whether the email was sent
        message: Human-readable outcome
        data: Provider acknowledgment (on success)
        error_kind: ErrorKind value (on failure)
        status_code: HTTP-style status code for the response
    """
    success: bool
    message: str
    data: Optional[Dict[str, Any]] = None
    error_kind: Optional[str] = None
    status_code: int = 200

    def to_body(self) -> Dict[str, Any]:
        """Response body: success, message and data when present."""
        body: Dict[str, Any] = {'success': self.success, 'message': self.message}
        if self.data is not None:
            body['data'] = self.data
        if self.error_kind:
            body['error'] = self.error_kind
        return body

    def to_response(self) -> Dict[str, Any]:
        """Lambda proxy integration response."""
        return {
            'statusCode': self.status_code,
            'headers': {
                'Content-Type': 'application/json',
                'Access-Control-Allow-Origin': '*'
            },
            'body': json.dumps(self.to_body())
        }

    def __repr__(self) -> str:
        """Human-readable representation for logging."""
        if self.success:
            return f"ProcessingResult(success=True, message={self.message})"
        else:
            return f"ProcessingResult(success=False, error={self.error_kind}, message={self.message})"
