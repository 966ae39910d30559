"""
Email body augmentation with serve attempt details.

Strips stale map links from caller-supplied HTML and appends an
"Additional Details" block (GPS coordinates and notes) to the HTML and
plain text bodies. Nothing in here raises on malformed input.

Note:
    augment_bodies() is not idempotent: running it on its own output adds a
    second "Additional Details" section (only map links are de-duplicated,
    because they are stripped first). Use augment_message(), which checks
    the ComposedMessage.augmented flag, when working on a message.
"""

import logging
import re
from dataclasses import dataclass
from html import escape
from typing import Optional, Tuple
from urllib.parse import quote

from domain.models import ComposedMessage, Coordinates

logger = logging.getLogger(__name__)

MAP_SEARCH_URL = 'https://www.google.com/maps/search/?api=1&query='

# Any anchor whose href starts with a map search URL, whatever follows it
_MAP_URL_PREFIX = r'https?://(?:www\.)?(?:google\.[a-z.]+/maps/search|maps\.google\.[a-z.]+/)'
MAP_ANCHOR_PATTERN = re.compile(
    r'<a\b[^>]*?\bhref\s*=\s*(["\'])?\s*' + _MAP_URL_PREFIX
    + r'(?(1).*?\1|[^\s>]*)[^>]*>.*?</a\s*>',
    re.IGNORECASE | re.DOTALL
)

CLOSING_BODY_PATTERN = re.compile(r'</body\s*>', re.IGNORECASE)


@dataclass(frozen=True)
class DetailsBlock:
    """Parallel HTML and plain text renderings of the details section."""
    html: str = ''
    text: str = ''

    @property
    def is_empty(self) -> bool:
        return not self.html and not self.text


def parse_coordinates(raw: Optional[str]) -> Optional[Coordinates]:
    """
    Split a "lat,lon" string on its first comma.

    Args:
        raw: Coordinates as supplied (may be None or malformed)

    Returns:
        Coordinates with trimmed parts, or None if there is no comma or
        either part is empty

    Example:
        >>> parse_coordinates(" 40.1 , -75.2 ")
        Coordinates(lat='40.1', lon='-75.2')
        >>> parse_coordinates("somewhere") is None
        True
    """
    if not raw:
        return None
    lat, separator, lon = raw.partition(',')
    lat, lon = lat.strip(), lon.strip()
    if not separator or not lat or not lon:
        return None
    return Coordinates(lat=lat, lon=lon)


def build_map_url(coordinates: Coordinates) -> str:
    """Map search URL for a coordinate pair."""
    return MAP_SEARCH_URL + quote(f"{coordinates.lat},{coordinates.lon}", safe=',')


def strip_map_links(html: str) -> str:
    """Remove every anchor element that points at a map search URL."""
    if not html:
        return html
    stripped, count = MAP_ANCHOR_PATTERN.subn('', html)
    if count:
        logger.info(f"Removed {count} existing map link(s) from HTML body")
    return stripped


def build_details_block(coordinates: Optional[str], notes: Optional[str]) -> DetailsBlock:
    """
    Render the "Additional Details" section.

    Coordinates come first, then notes. A field that is absent is left out;
    if both are absent the block is empty. Text interpolated into the HTML
    rendering is escaped.

    Args:
        coordinates: Raw "lat,lon" string
        notes: Free text

    Returns:
        DetailsBlock with html and text renderings
    """
    html_lines = []
    text_lines = []

    if coordinates and coordinates.strip():
        parsed = parse_coordinates(coordinates)
        if parsed:
            map_url = build_map_url(parsed)
            html_lines.append(
                f'<p><strong>GPS Coordinates:</strong> {escape(coordinates)} '
                f'(<a href="{escape(map_url)}" target="_blank">View on Google Maps</a>)</p>'
            )
            html_lines.append(f'<p><strong>Latitude:</strong> {escape(parsed.lat)}</p>')
            html_lines.append(f'<p><strong>Longitude:</strong> {escape(parsed.lon)}</p>')
            text_lines.append(f"GPS Coordinates: {coordinates}")
            text_lines.append(f"Map: {map_url}")
            text_lines.append(f"Latitude: {parsed.lat}")
            text_lines.append(f"Longitude: {parsed.lon}")
        else:
            logger.info("Coordinates could not be parsed, rendering them as plain text")
            html_lines.append(f'<p><strong>GPS Coordinates:</strong> {escape(coordinates)}</p>')
            text_lines.append(f"GPS Coordinates: {coordinates}")

    if notes and notes.strip():
        html_notes = escape(notes).replace('\n', '<br>')
        html_lines.append(f'<p><strong>Notes:</strong> {html_notes}</p>')
        text_lines.append(f"Notes: {notes}")

    if not html_lines:
        return DetailsBlock()

    html = (
        '<div class="additional-details">'
        '<h3>Additional Details</h3>'
        + ''.join(html_lines) +
        '</div>'
    )
    text = '\n\nAdditional Details\n' + '\n'.join(text_lines) + '\n'
    return DetailsBlock(html=html, text=text)


def inject_details(html: str, block_html: str) -> str:
    """Insert the block right before the last </body>, or append it."""
    if not block_html:
        return html
    matches = list(CLOSING_BODY_PATTERN.finditer(html))
    if not matches:
        return html + block_html
    index = matches[-1].start()
    return html[:index] + block_html + html[index:]


def augment_bodies(
    html: str,
    text: str,
    coordinates: Optional[str],
    notes: Optional[str]
) -> Tuple[str, str]:
    """
    Return the final HTML and text bodies.

    Map links are stripped from the HTML first. The details block is added
    only to bodies the caller supplied (non-empty).

    Args:
        html: HTML body
        text: Plain text body
        coordinates: Raw "lat,lon" string
        notes: Free text

    Returns:
        Tuple of (html, text)
    """
    html = strip_map_links(html)
    block = build_details_block(coordinates, notes)
    if block.is_empty:
        return html, text

    if html:
        html = inject_details(html, block.html)
    if text:
        text = text + block.text
    return html, text


def augment_message(
    message: ComposedMessage,
    coordinates: Optional[str],
    notes: Optional[str]
) -> ComposedMessage:
    """
    Augment a working message in place, at most once.

    Args:
        message: Composed message (post-attachment)
        coordinates: Effective coordinates (store value or request value)
        notes: Request notes

    Returns:
        The same ComposedMessage, with augmented set to True
    """
    if message.augmented:
        logger.warning("Message already augmented, skipping details block")
        return message

    message.html, message.text = augment_bodies(message.html, message.text, coordinates, notes)
    message.augmented = True
    logger.info(
        f"Content augmented: coordinates={bool(coordinates)}, notes={bool(notes)}, "
        f"html={len(message.html)}, text={len(message.text)}"
    )
    return message
