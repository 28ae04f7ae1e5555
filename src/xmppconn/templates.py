"""Stanza formatting. Pure functions, one per wire template."""

from __future__ import annotations

import html
import re
from xml.sax.saxutils import escape

from xmppconn.core.constants import (
    NS_IQ_AUTH,
    NS_JABBER_CLIENT,
    NS_MUC,
    NS_STREAM,
    NS_TLS,
    XML_IQ_GET,
    XML_IQ_SET_AUTH,
    XML_MUC_MESSAGE,
    XML_MUC_PART,
    XML_MUC_PRESENCE,
    XML_PRESENCE,
    XML_STARTTLS,
    XML_STREAM,
)

_ATTR_ENTITIES = {
    "'": "&apos;",
    '"': "&quot;",
    "\t": "&#9;",
    "\n": "&#10;",
    "\r": "&#13;",
}

# Anything outside the XML 1.0 Char production
_NOT_XML_CHAR = re.compile(r"[^\t\n\r\x20-\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]")


def check_xml_chars(value: str) -> str:
    """Return value unchanged, or raise ValueError if XML 1.0 cannot carry it."""
    match = _NOT_XML_CHAR.search(value)
    if match:
        raise ValueError(
            f"character U+{ord(match.group()):04X} at offset {match.start()} is not allowed in XML"
        )
    return value


def escape_attr(value: str) -> str:
    """Escape a value for a single- or double-quoted attribute or element text.

    Tab, newline and carriage return become character references so attribute
    normalization cannot turn them into spaces.
    """
    return escape(check_xml_chars(value), _ATTR_ENTITIES)


def escape_body(body: str) -> str:
    """HTML-escape a message body (&, <, >, ", '); \\r is kept as &#13;."""
    return html.escape(check_xml_chars(body), quote=True).replace("\r", "&#13;")


def stream_header(from_jid: str, to_host: str) -> str:
    return XML_STREAM.format(
        from_jid=escape_attr(from_jid),
        to_host=escape_attr(to_host),
        ns_client=NS_JABBER_CLIENT,
        ns_stream=NS_STREAM,
    )


def starttls() -> str:
    return XML_STARTTLS.format(ns=NS_TLS)


def iq_auth(request_id: str, user: str, password: str, resource: str) -> str:
    """Legacy non-SASL auth; the password travels in clear text inside the IQ."""
    return XML_IQ_SET_AUTH.format(
        id=escape_attr(request_id),
        ns=NS_IQ_AUTH,
        user=escape_attr(user),
        password=escape_attr(password),
        resource=escape_attr(resource),
    )


def iq_get(from_jid: str, to: str, request_id: str, namespace: str) -> str:
    """IQ-get with an empty <query/> in the given namespace (roster, disco#items)."""
    return XML_IQ_GET.format(
        from_jid=escape_attr(from_jid),
        to=escape_attr(to),
        id=escape_attr(request_id),
        ns=escape_attr(namespace),
    )


def presence(jid: str, show: str) -> str:
    return XML_PRESENCE.format(jid=escape_attr(jid), show=escape_attr(show))


def muc_part(room_id: str) -> str:
    return XML_MUC_PART.format(room_id=escape_attr(room_id))


def muc_presence(request_id: str, room_id: str, jid: str) -> str:
    return XML_MUC_PRESENCE.format(
        id=escape_attr(request_id),
        room_id=escape_attr(room_id),
        jid=escape_attr(jid),
        ns=NS_MUC,
    )


def muc_message(msg_type: str, to: str, from_jid: str, request_id: str, body: str) -> str:
    return XML_MUC_MESSAGE.format(
        from_jid=escape_attr(from_jid),
        id=escape_attr(request_id),
        to=escape_attr(to),
        msg_type=escape_attr(msg_type),
        body=escape_body(body),
    )
