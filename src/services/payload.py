"""
Payload normalization for inbound notification requests.

Turns a request body (JSON string, bytes, dict, or an existing
MessageRequest) into a single canonical MessageRequest, rejecting anything
that does not match the field schema below.
"""

import json
import logging
from typing import Any, Dict, List, Optional, Tuple, Union

from domain.errors import InvalidPayloadError, MissingFieldError, MissingPayloadError
from domain.models import MessageRequest

logger = logging.getLogger(__name__)

# Field schema: canonical attribute -> accepted wire keys (first match wins)
REQUIRED_FIELDS = ('to', 'subject')
BODY_FIELDS = ('html', 'text')
OPTIONAL_FIELDS = ('evidence_reference_id', 'inline_image', 'coordinates', 'notes')
FIELD_ALIASES: Dict[str, Tuple[str, ...]] = {
    'to': ('to',),
    'subject': ('subject',),
    'html': ('html',),
    'text': ('text',),
    'evidence_reference_id': ('evidenceReferenceId', 'serveId'),
    'inline_image': ('inlineImage', 'imageData'),
    'coordinates': ('coordinates',),
    'notes': ('notes',),
}

PREVIEW_LENGTH = 100

Body = Union[None, str, bytes, Dict[str, Any], MessageRequest]


def normalize_payload(body: Body) -> MessageRequest:
    """
    Parse and validate a request body.

    Args:
        body: Raw JSON text/bytes, an already decoded dict, or a
              MessageRequest (returned unchanged)

    Returns:
        MessageRequest: The canonical request

    Raises:
        MissingPayloadError: If the body is absent or blank
        InvalidPayloadError: If the body is not a JSON object or a field
                             has the wrong type
        MissingFieldError: If to, subject, or both html and text are missing

    Example:
        >>> request = normalize_payload('{"to": "a@x.com", "subject": "S", "text": "hi"}')
        >>> request.to
        ('a@x.com',)
    """
    if isinstance(body, MessageRequest):
        return body

    data = _decode_body(body)
    values = {name: _lookup(data, name) for name in FIELD_ALIASES}

    missing = _missing_fields(values)
    if missing:
        logger.warning(f"Payload rejected, missing fields: {missing}")
        raise MissingFieldError(missing)

    request = MessageRequest(
        to=_normalize_recipients(values['to']),
        subject=_require_string('subject', values['subject']),
        html=_optional_string('html', values['html']) or '',
        text=_optional_string('text', values['text']) or '',
        evidence_reference_id=_optional_string('evidence_reference_id', values['evidence_reference_id']),
        inline_image=_optional_string('inline_image', values['inline_image']),
        coordinates=_optional_string('coordinates', values['coordinates']),
        notes=_optional_string('notes', values['notes']),
    )

    logger.info(
        f"Payload normalized: recipients={len(request.to)}, "
        f"html={len(request.html)}, text={len(request.text)}, "
        f"evidence_reference={bool(request.evidence_reference_id)}, "
        f"inline_image={bool(request.inline_image)}"
    )
    return request


def _decode_body(body: Body) -> Dict[str, Any]:
    if body is None:
        raise MissingPayloadError()

    if isinstance(body, bytes):
        try:
            body = body.decode('utf-8')
        except UnicodeDecodeError as e:
            raise InvalidPayloadError(f"Failed to parse payload: {e}", detail=str(e))

    if isinstance(body, str):
        if not body.strip():
            raise MissingPayloadError()
        try:
            data = json.loads(body)
        except json.JSONDecodeError as e:
            logger.error(f"Error parsing payload: {e}")
            logger.info(f"Payload content (truncated): {body[:PREVIEW_LENGTH]}")
            raise InvalidPayloadError(f"Failed to parse payload: {e}", detail=str(e))
    else:
        data = body

    if not isinstance(data, dict):
        raise InvalidPayloadError(
            f"Failed to parse payload: expected a JSON object, got {type(data).__name__}"
        )
    return data


def _lookup(data: Dict[str, Any], name: str) -> Any:
    for key in FIELD_ALIASES[name]:
        value = data.get(key)
        if isinstance(value, str) and not value.strip():
            continue
        if value is not None:
            return value
    return None


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple)):
        return len(value) == 0
    return False


def _missing_fields(values: Dict[str, Any]) -> List[str]:
    missing = [name for name in REQUIRED_FIELDS if _is_blank(values[name])]
    if all(_is_blank(values[name]) for name in BODY_FIELDS):
        missing.append('html or text')
    return missing


def _normalize_recipients(value: Any) -> Tuple[str, ...]:
    if isinstance(value, str):
        return (value.strip(),)
    if isinstance(value, (list, tuple)):
        recipients = []
        for item in value:
            if not isinstance(item, str) or not item.strip():
                raise InvalidPayloadError(
                    "Failed to parse payload: 'to' must contain only non-empty strings"
                )
            recipients.append(item.strip())
        return tuple(recipients)
    raise InvalidPayloadError(
        f"Failed to parse payload: 'to' must be a string or a list, got {type(value).__name__}"
    )


def _require_string(name: str, value: Any) -> str:
    if not isinstance(value, str):
        raise InvalidPayloadError(
            f"Failed to parse payload: '{name}' must be a string, got {type(value).__name__}"
        )
    return value


def _optional_string(name: str, value: Any) -> Optional[str]:
    if value is None:
        return None
    return _require_string(name, value) or None
