"""xmppconn: minimal asyncio XMPP client connection (stream, STARTTLS, stanzas)."""

from xmppconn.conn import Conn, ConnState, dial
from xmppconn.decoder import attributes_to_map
from xmppconn.ids import new_id
from xmppconn.sink import ErrorSink, NullErrorSink, QueueErrorSink
from xmppconn.stanzas import (
    Ack,
    DecodeError,
    DiscoveryItem,
    GenericElement,
    MessageBody,
    QueryResult,
    StartElement,
    StreamFeatures,
)

__version__ = "0.1.0"

__all__ = [
    "Ack",
    "Conn",
    "ConnState",
    "DecodeError",
    "DiscoveryItem",
    "ErrorSink",
    "GenericElement",
    "MessageBody",
    "NullErrorSink",
    "QueryResult",
    "QueueErrorSink",
    "StartElement",
    "StreamFeatures",
    "attributes_to_map",
    "dial",
    "new_id",
]
