"""Decoded stanza types. Each is a one-shot snapshot of a single XML read."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import NamedTuple, Union
from xml.etree.ElementTree import Element

from xmppconn.core.errors import ProtocolDecodeError


class QName(NamedTuple):
    """Namespace-qualified XML name."""

    space: str
    local: str

    @classmethod
    def parse(cls, tag: str) -> QName:
        """Split an ElementTree '{ns}local' tag."""
        if tag.startswith("{"):
            space, _, local = tag[1:].partition("}")
            return cls(space, local)
        return cls("", tag)


class Attr(NamedTuple):
    name: QName
    value: str


@dataclass
class StartElement:
    """A start tag as read from the stream (no children, no text)."""

    name: QName
    attrs: list[Attr] = field(default_factory=list)

    @classmethod
    def from_element(cls, elem: Element) -> StartElement:
        return cls(
            name=QName.parse(elem.tag),
            attrs=[Attr(QName.parse(k), v) for k, v in elem.attrib.items()],
        )


@dataclass
class StreamFeatures:
    """<stream:features>: STARTTLS requirement and SASL mechanisms."""

    starttls_required: bool = False
    starttls_offered: bool = False
    mechanisms: list[str] = field(default_factory=list)


@dataclass
class DiscoveryItem:
    """Roster or disco#items entry. Absent fields stay empty."""

    email: str = ""
    jid: str = ""
    last_active: str = ""
    mention_name: str = ""
    name: str = ""
    num_participants: str = ""
    owner: str = ""
    privacy: str = ""
    room_id: str = ""
    topic: str = ""


@dataclass
class QueryResult:
    items: list[DiscoveryItem] = field(default_factory=list)
    attrs: dict[str, str] = field(default_factory=dict)


@dataclass
class MessageBody:
    """Inner content of a body element."""

    text: str = ""
    attrs: dict[str, str] = field(default_factory=dict)


@dataclass
class Ack:
    """Opaque acknowledgement token."""

    value: str = ""


@dataclass
class GenericElement:
    """Any construct read_stanza() has no typed decode for.

    ``element`` is None for the stream root, whose end tag only arrives at
    stream close.
    """

    start: StartElement
    element: Element | None = None

    @property
    def local_name(self) -> str:
        return self.start.name.local


@dataclass
class DecodeError:
    error: ProtocolDecodeError


Stanza = Union[StreamFeatures, QueryResult, MessageBody, GenericElement, DecodeError]
