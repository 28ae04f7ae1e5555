"""Property-based tests using hypothesis."""

import asyncio
import xml.etree.ElementTree as ET

import pytest
from hypothesis import given, settings, strategies as st

from tests.mocks import STREAM_HEADER, stream_reader
from xmppconn import templates
from xmppconn.decoder import StreamDecoder, attributes_to_map, inner_xml
from xmppconn.stanzas import Attr, QName

# Everything XML 1.0 can carry, control characters \t \n \r included
_C0_NOT_XML = "".join(chr(c) for c in range(0x20) if c not in (0x09, 0x0A, 0x0D))
xml_text = st.text(st.characters(blacklist_categories=("Cs", "Cn"), blacklist_characters=_C0_NOT_XML))
local_names = st.from_regex(r"[a-z][a-z0-9_]{0,8}", fullmatch=True)


async def _decode_body(stanza: str) -> str:
    decoder = StreamDecoder(stream_reader((STREAM_HEADER + stanza).encode("utf-8")), chunk_size=16)
    await decoder.next_start()
    await decoder.next_start()
    return inner_xml(await decoder.next_element())


class TestPropertyBased:
    """Property-based tests for invariants."""

    @given(xml_text, xml_text)
    def test_stream_header_attributes_roundtrip(self, from_jid, to_host):
        # Act
        root = ET.fromstring(templates.stream_header(from_jid, to_host) + "</stream:stream>")

        # Assert
        assert root.get("from") == from_jid
        assert root.get("to") == to_host
        assert root.get("version") == "1.0"
        assert root.get("{http://www.w3.org/XML/1998/namespace}lang") == "en"

    @settings(max_examples=50)
    @given(xml_text)
    def test_message_body_roundtrip(self, body):
        # Arrange
        stanza = templates.muc_message("groupchat", "room@conf.example.com", "me@example.com", "id", body)

        # Act
        decoded = asyncio.run(_decode_body(stanza))

        # Assert
        assert decoded == body

    @given(st.dictionaries(local_names, xml_text), st.randoms())
    def test_attributes_to_map_order_independent(self, attrs, rnd):
        # Arrange
        pairs = [Attr(QName("", k), v) for k, v in attrs.items()]
        shuffled = list(pairs)
        rnd.shuffle(shuffled)

        # Act & Assert
        assert attributes_to_map(pairs) == attributes_to_map(shuffled) == attrs

    @given(st.lists(st.tuples(local_names, xml_text), min_size=1))
    def test_attributes_to_map_last_wins(self, pairs):
        # Act
        result = attributes_to_map([Attr(QName("urn:x", k), v) for k, v in pairs])

        # Assert
        for key in {k for k, _ in pairs}:
            assert result[key] == [v for k, v in pairs if k == key][-1]

    @given(st.dictionaries(local_names, xml_text))
    def test_attributes_to_map_idempotent(self, attrs):
        once = attributes_to_map(attrs)
        assert attributes_to_map(once) == once

    @settings(max_examples=25)
    @given(st.lists(st.text(st.characters(blacklist_categories=("Cs", "Cn", "Cc")), max_size=10), min_size=1))
    def test_crlf_bodies_roundtrip(self, lines):
        # Arrange
        body = "\r\n".join(lines)
        stanza = templates.muc_message("chat", "bob@example.com", "me@example.com", "id", body)

        # Act
        decoded = asyncio.run(_decode_body(stanza))

        # Assert
        assert decoded == body

    @given(xml_text, st.sampled_from(_C0_NOT_XML), xml_text)
    def test_disallowed_control_characters_raise(self, head, bad, tail):
        with pytest.raises(ValueError):
            templates.stream_header(head + bad + tail, "example.com")
