"""Streaming XML reader bound to one transport, plus typed element decoders."""

from __future__ import annotations

import asyncio
import copy
import ssl
from collections import deque
from collections.abc import Iterable, Mapping
from xml.etree.ElementTree import Element, ParseError, XMLPullParser, tostring

from loguru import logger

from xmppconn.config import cfg
from xmppconn.core.errors import (
    ProtocolDecodeError,
    StreamClosedError,
    TLSError,
    XMPPConnectionError,
)
from xmppconn.stanzas import (
    Ack,
    Attr,
    DecodeError,
    DiscoveryItem,
    GenericElement,
    MessageBody,
    QName,
    QueryResult,
    Stanza,
    StartElement,
    StreamFeatures,
)

# <x> child element -> DiscoveryItem field
_ITEM_X_FIELDS = {
    "last_active": "last_active",
    "num_participants": "num_participants",
    "owner": "owner",
    "privacy": "privacy",
    "id": "room_id",
    "topic": "topic",
}


def local_name(tag: str) -> str:
    return QName.parse(tag).local


def _children(elem: Element, name: str) -> list[Element]:
    return [child for child in elem if local_name(child.tag) == name]


def _expect(elem: Element, name: str) -> None:
    got = local_name(elem.tag)
    if got != name:
        raise ProtocolDecodeError(
            f"expected <{name}>, got <{got}>",
            code="unexpected_element",
            details={"expected": name, "got": got},
        )


def attributes_to_map(
    attrs: StartElement | Mapping[str, str] | Iterable[Attr | tuple[object, str]],
) -> dict[str, str]:
    """Map attribute local name -> value. Last value wins on repeated local names."""
    if isinstance(attrs, StartElement):
        attrs = attrs.attrs
    pairs = attrs.items() if isinstance(attrs, Mapping) else attrs
    result: dict[str, str] = {}
    for name, value in pairs:
        if isinstance(name, QName):
            key = name.local
        else:
            key = local_name(str(name)).rpartition(":")[2]
        result[key] = value
    return result


def decode_features(elem: Element) -> StreamFeatures:
    _expect(elem, "features")
    features = StreamFeatures()
    for tls in _children(elem, "starttls"):
        features.starttls_offered = True
        if _children(tls, "required"):
            features.starttls_required = True
    for mechanisms in _children(elem, "mechanisms"):
        features.mechanisms.extend(m.text or "" for m in _children(mechanisms, "mechanism"))
    return features


def decode_item(elem: Element) -> DiscoveryItem:
    attrs = attributes_to_map(elem.attrib)
    item = DiscoveryItem(
        email=attrs.get("email", ""),
        jid=attrs.get("jid", ""),
        mention_name=attrs.get("mention_name", ""),
        name=attrs.get("name", ""),
    )
    for x in _children(elem, "x"):
        for child in x:
            field_name = _ITEM_X_FIELDS.get(local_name(child.tag))
            if field_name:
                setattr(item, field_name, child.text or "")
    return item


def decode_query(elem: Element) -> QueryResult:
    _expect(elem, "query")
    return QueryResult(items=[decode_item(i) for i in _children(elem, "item")])


def _strip_namespace(elem: Element, namespace: str) -> Element:
    """Copy of elem with tags in namespace made unqualified."""
    prefix = "{%s}" % namespace
    clone = copy.deepcopy(elem)
    for node in clone.iter():
        if isinstance(node.tag, str) and node.tag.startswith(prefix):
            node.tag = node.tag[len(prefix):]
    return clone


def inner_xml(elem: Element) -> str:
    """Character data of elem with child elements serialized back to XML.

    Children that inherited elem's default namespace are written without it,
    so markup reads back as sent (``<b>`` rather than ``<ns0:b xmlns:ns0=...>``).
    """
    namespace = QName.parse(elem.tag).space
    parts = [elem.text or ""]
    for child in elem:
        if namespace:
            child = _strip_namespace(child, namespace)
        parts.append(tostring(child, encoding="unicode"))
    return "".join(parts)


def decode_ack(elem: Element) -> Ack:
    values = _children(elem, "a")
    return Ack(value=(values[-1].text or "") if values else "")


def classify(elem: Element) -> Stanza:
    """Pick the typed decode for a complete top-level element."""
    name = local_name(elem.tag)
    if name == "features":
        return decode_features(elem)
    if name == "query":
        return decode_query(elem)
    if name == "message":
        bodies = _children(elem, "body")
        if bodies:
            return MessageBody(text=inner_xml(bodies[0]), attrs=attributes_to_map(elem.attrib))
    queries = _children(elem, "query")
    if queries:
        result = decode_query(queries[0])
        result.attrs = attributes_to_map(elem.attrib)
        return result
    return GenericElement(start=StartElement.from_element(elem), element=elem)


class StreamDecoder:
    """Pull tokens from an asyncio.StreamReader through an incremental XML parser.

    One decoder per XML stream: after a transport upgrade build a new one.
    Completed top-level stanzas are detached from the stream root as they are
    consumed so the tree does not grow for the life of the connection.
    """

    def __init__(self, reader: asyncio.StreamReader, *, chunk_size: int | None = None) -> None:
        self._reader = reader
        self._chunk_size = chunk_size or cfg.read_chunk_size
        self._parser = XMLPullParser(events=("start", "end"))
        self._events: deque[tuple[str, Element]] = deque()
        self._stack: list[Element] = []
        self._error: ProtocolDecodeError | None = None

    @property
    def depth(self) -> int:
        """Number of currently open elements, stream root included."""
        return len(self._stack)

    async def _fill(self) -> None:
        if self._error is not None:
            raise self._error
        try:
            data = await self._reader.read(self._chunk_size)
        except ssl.SSLError as exc:
            raise TLSError(f"TLS read failed: {exc}", original_error=exc) from exc
        except (ConnectionError, OSError) as exc:
            raise XMPPConnectionError(f"read failed: {exc}", original_error=exc) from exc
        if not data:
            raise StreamClosedError()
        try:
            self._parser.feed(data)
            for item in self._parser.read_events():
                self._events.append(item)
        except ParseError as exc:
            # Tokens parsed before the error are still delivered first.
            self._error = ProtocolDecodeError(
                f"malformed xml: {exc}", code="malformed_xml", original_error=exc
            )
            if not self._events:
                raise self._error from exc

    def _track(self, event: str, elem: Element) -> None:
        if event == "start":
            self._stack.append(elem)
            return
        if self._stack:
            self._stack.pop()
        if len(self._stack) == 1 and elem in list(self._stack[0]):
            self._stack[0].remove(elem)

    async def next_token(self) -> tuple[str, Element]:
        """Next ("start" | "end", element) event from the stream."""
        while not self._events:
            await self._fill()
        event, elem = self._events.popleft()
        self._track(event, elem)
        return event, elem

    async def next_start(self) -> Element:
        """Skip to the next start tag. An empty local name is a protocol error."""
        while True:
            event, elem = await self.next_token()
            if event != "start":
                continue
            if not local_name(elem.tag):
                raise ProtocolDecodeError("invalid xml response", details={"tag": elem.tag})
            return elem

    async def next_element(self, start: Element | None = None) -> Element:
        """Read through the end of ``start`` (or of the next start tag) and return it complete."""
        if start is None:
            start = await self.next_start()
        while True:
            event, elem = await self.next_token()
            if event == "end" and elem is start:
                return elem

    async def next_stanza(self) -> Stanza:
        """Decode the next construct into a tagged variant.

        Decode problems are returned as DecodeError; transport errors raise.
        """
        try:
            start = await self.next_start()
            if self.depth == 1:
                logger.debug("stream root <{}> opened", local_name(start.tag))
                return GenericElement(start=StartElement.from_element(start))
            elem = await self.next_element(start)
            return classify(elem)
        except ProtocolDecodeError as exc:
            return DecodeError(error=exc)
