"""
Tests for body augmentation with coordinates and notes.
"""

import pytest

from domain.models import ComposedMessage, Coordinates
from services.content import (
    augment_bodies,
    augment_message,
    build_details_block,
    build_map_url,
    inject_details,
    parse_coordinates,
    strip_map_links,
)

MAP_PREFIX = 'https://www.google.com/maps/search/'


class TestParseCoordinates:
    """Test "lat,lon" parsing."""

    def test_parses_and_trims(self):
        """Test both parts are trimmed."""
        assert parse_coordinates(' 40.1 , -75.2 ') == Coordinates(lat='40.1', lon='-75.2')

    def test_splits_on_first_comma(self):
        """Test only the first comma separates lat from lon."""
        assert parse_coordinates('1,2,3') == Coordinates(lat='1', lon='2,3')

    @pytest.mark.parametrize('raw', [None, '', 'no comma here', ',-75.2', '40.1,', ' , '])
    def test_unparsed_shapes(self, raw):
        """Test malformed strings are unparsed, never errors."""
        assert parse_coordinates(raw) is None


class TestStripMapLinks:
    """Test removal of placeholder map anchors."""

    def test_removes_map_anchor(self):
        """Test a map search anchor is removed with its text."""
        html = '<p>See <a href="https://www.google.com/maps/search/?api=1&query=0,0">map</a>.</p>'

        assert strip_map_links(html) == '<p>See .</p>'

    def test_tolerates_extra_params_and_attributes(self):
        """Test prefix matching with extra query params, attributes and case."""
        html = (
            '<A class="btn" HREF=\'http://google.com/maps/search/?api=1&query=1,2&zoom=5\' '
            'target="_blank"><b>Open\nmap</b></A>'
        )

        assert strip_map_links(html) == ''

    def test_removes_unquoted_href(self):
        """Test anchors with an unquoted href are removed."""
        html = (
            '<p><a href=https://www.google.com/maps/search/?api=1&query=0,0 target=_blank>map</a></p>'
            '<a href=https://maps.google.com/?q=1,2>b</a>'
        )

        assert strip_map_links(html) == '<p></p>'

    def test_removes_every_map_anchor(self):
        """Test multiple anchors are all removed."""
        html = (
            '<a href="https://www.google.com/maps/search/?q=a">a</a>'
            '<a href="https://maps.google.com/?q=1,2">b</a>'
        )

        assert strip_map_links(html) == ''

    def test_keeps_other_links(self):
        """Test unrelated anchors survive."""
        html = '<a href="https://example.com/maps/search">x</a><a href="https://www.google.com/">g</a>'

        assert strip_map_links(html) == html

    def test_empty_html(self):
        """Test an empty body stays empty."""
        assert strip_map_links('') == ''


class TestBuildDetailsBlock:
    """Test the details block renderings."""

    def test_empty_when_nothing_to_show(self):
        """Test no coordinates and no notes produce no block at all."""
        block = build_details_block(None, None)

        assert block.html == ''
        assert block.text == ''
        assert block.is_empty

    def test_parsed_coordinates(self):
        """Test parsed coordinates render a map link and lat/lon lines."""
        block = build_details_block('40.1,-75.2', None)

        assert 'Additional Details' in block.html
        assert '<strong>GPS Coordinates:</strong> 40.1,-75.2' in block.html
        assert f'href="{MAP_PREFIX}?api=1&amp;query=40.1,-75.2"' in block.html
        assert '<strong>Latitude:</strong> 40.1' in block.html
        assert '<strong>Longitude:</strong> -75.2' in block.html
        assert 'GPS Coordinates: 40.1,-75.2' in block.text
        assert f'Map: {MAP_PREFIX}?api=1&query=40.1,-75.2' in block.text
        assert 'Latitude: 40.1' in block.text
        assert 'Longitude: -75.2' in block.text
        assert 'Notes' not in block.text

    def test_unparsed_coordinates_render_verbatim(self):
        """Test malformed coordinates render as plain text only."""
        block = build_details_block('near the blue door', None)

        assert '<strong>GPS Coordinates:</strong> near the blue door' in block.html
        assert 'google.com/maps' not in block.html
        assert 'Latitude' not in block.html
        assert 'GPS Coordinates: near the blue door' in block.text
        assert 'Map:' not in block.text

    def test_notes_only(self):
        """Test notes without coordinates."""
        block = build_details_block(None, 'Left card in door')

        assert 'GPS Coordinates' not in block.html
        assert '<strong>Notes:</strong> Left card in door' in block.html
        assert 'Notes: Left card in door' in block.text

    def test_coordinates_before_notes(self):
        """Test coordinates are rendered before notes."""
        block = build_details_block('1,2', 'n')

        assert block.html.index('GPS Coordinates') < block.html.index('Notes')
        assert block.text.index('GPS Coordinates') < block.text.index('Notes')

    def test_notes_escaped_in_html_only(self):
        """Test notes are HTML-escaped in HTML and verbatim in text."""
        block = build_details_block(None, '<script>alert(1)</script>')

        assert '<script>' not in block.html
        assert '&lt;script&gt;' in block.html
        assert 'Notes: <script>alert(1)</script>' in block.text

    def test_map_url_encodes_spaces(self):
        """Test lat/lon are query-encoded."""
        url = build_map_url(Coordinates(lat='40 N', lon='75 W'))

        assert url == f'{MAP_PREFIX}?api=1&query=40%20N,75%20W'


class TestInjectDetails:
    """Test where the block lands in the HTML."""

    def test_before_closing_body(self):
        """Test the block is inserted right before </body>."""
        assert inject_details('<body><p>x</p></body>', '<div>D</div>') == '<body><p>x</p><div>D</div></body>'

    def test_case_insensitive_body_tag(self):
        """Test an uppercase closing tag is found."""
        assert inject_details('<BODY>x</BODY></HTML>', '<div>D</div>') == '<BODY>x<div>D</div></BODY></HTML>'

    def test_whitespace_in_body_tag(self):
        """Test closing tags with whitespace before '>' are found."""
        assert inject_details('<body>x</body >\n</html>', '<div>D</div>') == '<body>x<div>D</div></body >\n</html>'
        assert inject_details('<BODY>x</BODY\n></HTML>', '<div>D</div>') == '<BODY>x<div>D</div></BODY\n></HTML>'

    def test_last_closing_body_tag(self):
        """Test the block goes before the last closing tag."""
        html = '<body><pre>&lt;/body&gt;</pre></body><body>y</body>'

        assert inject_details(html, 'D') == '<body><pre>&lt;/body&gt;</pre></body><body>yD</body>'

    def test_appends_without_body(self):
        """Test the block is appended when there is no closing body tag."""
        assert inject_details('<p>x</p>', '<div>D</div>') == '<p>x</p><div>D</div>'


class TestAugmentBodies:
    """Test the full augmentation of both bodies."""

    def test_scenario_body_tag(self):
        """Test the empty-body template with coordinates and notes."""
        html, text = augment_bodies('<body></body>', 'Hello', '40.1,-75.2', 'ok')

        assert html.startswith('<body><div class="additional-details">')
        assert html.endswith('</div></body>')
        assert 'query=40.1,-75.2' in html
        assert 'Notes: ok' in text
        assert text.startswith('Hello')

    def test_replaces_placeholder_map_link(self):
        """Test only the generated map link remains."""
        template = (
            '<body><p><a href="https://www.google.com/maps/search/?api=1&query=PLACEHOLDER">'
            'View location</a></p></body>'
        )

        html, _ = augment_bodies(template, '', '40.1,-75.2', None)

        assert 'PLACEHOLDER' not in html
        assert html.count('google.com/maps/search') == 1
        assert 'query=40.1,-75.2' in html

    def test_no_details_leaves_bodies(self):
        """Test bodies are unchanged when there is nothing to add."""
        assert augment_bodies('<body>x</body>', 'x', None, None) == ('<body>x</body>', 'x')

    def test_empty_bodies_not_augmented(self):
        """Test a body the caller left empty stays empty."""
        html, text = augment_bodies('<body>x</body>', '', '1,2', 'n')

        assert 'Additional Details' in html
        assert text == ''

    def test_repeated_augmentation_duplicates_section(self):
        """Test the pure function is not idempotent for the details section."""
        html, text = augment_bodies('<body></body>', 'x', '1,2', 'n')
        html, text = augment_bodies(html, text, '1,2', 'n')

        assert html.count('Additional Details') == 2
        assert text.count('Additional Details') == 2
        assert html.count('google.com/maps/search') == 1


class TestAugmentMessage:
    """Test augmentation of the working message."""

    def test_sets_flag_and_bodies(self):
        """Test the message is augmented in place."""
        message = ComposedMessage(
            from_address='no-reply@example.com', to=['a@x.com'], subject='S',
            html='<body></body>', text='x'
        )

        result = augment_message(message, '1,2', 'n')

        assert result is message
        assert message.augmented is True
        assert 'Additional Details' in message.html
        assert 'Notes: n' in message.text

    def test_second_call_is_skipped(self):
        """Test the augmented flag prevents a duplicate section."""
        message = ComposedMessage(
            from_address='no-reply@example.com', to=['a@x.com'], subject='S',
            html='<body></body>', text='x'
        )

        augment_message(message, '1,2', 'n')
        augment_message(message, '1,2', 'n')

        assert message.html.count('Additional Details') == 1
        assert message.text.count('Additional Details') == 1
