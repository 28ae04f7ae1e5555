"""Protocol constants: namespaces, default port, stanza templates."""

from __future__ import annotations

from typing import Final

DEFAULT_PORT: Final = 5222

NS_JABBER_CLIENT: Final = "jabber:client"
NS_STREAM: Final = "http://etherx.jabber.org/streams"
NS_IQ_AUTH: Final = "jabber:iq:auth"
NS_IQ_ROSTER: Final = "jabber:iq:roster"
NS_TLS: Final = "urn:ietf:params:xml:ns:xmpp-tls"
NS_DISCO_ITEMS: Final = "http://jabber.org/protocol/disco#items"
NS_MUC: Final = "http://jabber.org/protocol/muc"

# Wire templates. Field order and quoting are what existing servers see; keep byte-for-byte.
XML_STREAM: Final = (
    "<stream:stream from='{from_jid}' to='{to_host}' version='1.0' xml:lang='en' "
    "xmlns='{ns_client}' xmlns:stream='{ns_stream}'>"
)
XML_STARTTLS: Final = "<starttls xmlns='{ns}'/>"
XML_IQ_SET_AUTH: Final = (
    "<iq type='set' id='{id}'><query xmlns='{ns}'><username>{user}</username>"
    "<password>{password}</password><resource>{resource}</resource></query></iq>"
)
XML_IQ_GET: Final = "<iq from='{from_jid}' to='{to}' id='{id}' type='get'><query xmlns='{ns}'/></iq>"
XML_PRESENCE: Final = "<presence from='{jid}'><show>{show}</show></presence>"
XML_MUC_PART: Final = "<presence to='{room_id}' type='unavailable'></presence>"
XML_MUC_PRESENCE: Final = "<presence id='{id}' to='{room_id}' from='{jid}'><x xmlns='{ns}'/></presence>"
XML_MUC_MESSAGE: Final = (
    "<message from='{from_jid}' id='{id}' to='{to}' type='{msg_type}'><body>{body}</body></message>"
)
KEEPALIVE: Final = b" "
