"""
MIME message building for SMTP delivery.

This module converts a ComposedMessage into a standard library EmailMessage:
text and HTML alternatives plus the base64 evidence attachment.
"""

import base64
import binascii
import logging
from email.message import EmailMessage
from email.utils import make_msgid

from domain.models import Attachment, ComposedMessage

logger = logging.getLogger(__name__)


def build_mime_message(message: ComposedMessage) -> EmailMessage:
    """
    Build a MIME message from a composed message.

    Args:
        message: Fully composed message

    Returns:
        EmailMessage: multipart message with a generated Message-ID

    Raises:
        ValueError: If the attachment content is not valid base64

    Example:
        >>> msg = build_mime_message(ComposedMessage(
        ...     from_address="no-reply@example.com", to=["a@x.com"],
        ...     subject="S", text="hi"))
        >>> msg['To']
        'a@x.com'
    """
    msg = EmailMessage()
    msg['From'] = message.from_address
    msg['To'] = ', '.join(message.to)
    msg['Subject'] = message.subject
    msg['Message-ID'] = make_msgid(domain=_sender_domain(message.from_address))

    # Plain text first so clients that prefer it pick it up
    if message.text:
        msg.set_content(message.text)
        if message.html:
            msg.add_alternative(message.html, subtype='html')
    elif message.html:
        msg.set_content(message.html, subtype='html')

    for attachment in message.attachments:
        _add_attachment(msg, attachment)

    logger.info(
        f"Built MIME message: html={bool(message.html)}, text={bool(message.text)}, "
        f"attachments={len(message.attachments)}"
    )
    return msg


def _add_attachment(msg: EmailMessage, attachment: Attachment) -> None:
    try:
        content = base64.b64decode(attachment.content, validate=False)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"Attachment {attachment.filename} is not valid base64: {e}")

    maintype, _, subtype = attachment.content_type.partition('/')
    msg.add_attachment(
        content,
        maintype=maintype or 'application',
        subtype=subtype or 'octet-stream',
        filename=attachment.filename
    )


def _sender_domain(address: str) -> str:
    _, _, domain = address.rpartition('@')
    return domain.strip('> ') or 'localhost'
