"""Conn: one XMPP client connection (socket, XML stream reader, error sink).

The caller drives everything. Writers format one stanza and flush it; readers
consume exactly one XML construct. Use one task for writes and one for reads
if both directions are needed at once.
"""

from __future__ import annotations

import asyncio
import contextlib
import ssl
from enum import Enum

from loguru import logger

from xmppconn import templates
from xmppconn.config import cfg
from xmppconn.core.constants import KEEPALIVE, NS_DISCO_ITEMS, NS_IQ_ROSTER
from xmppconn.core.errors import (
    ConnectionStateError,
    TLSError,
    WriteError,
    XMPPConnectionError,
    XMPPError,
)
from xmppconn.decoder import (
    StreamDecoder,
    decode_ack,
    decode_features,
    decode_query,
    inner_xml,
)
from xmppconn.ids import new_id
from xmppconn.sink import ErrorSink, NullErrorSink
from xmppconn.stanzas import Ack, QueryResult, Stanza, StartElement, StreamFeatures


class ConnState(Enum):
    PLAIN = "plain"
    UPGRADING = "upgrading"
    SECURE = "secure"
    CLOSED = "closed"


_USABLE = (ConnState.PLAIN, ConnState.SECURE)


class Conn:
    """XMPP client connection over asyncio streams."""

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        *,
        error_sink: ErrorSink | None = None,
        chunk_size: int | None = None,
    ) -> None:
        self._reader = reader
        self._writer = writer
        self._chunk_size = chunk_size
        self._decoder = StreamDecoder(reader, chunk_size=chunk_size)
        self._sink: ErrorSink = error_sink or NullErrorSink()
        self._state = ConnState.PLAIN

    @classmethod
    async def dial(
        cls,
        host: str,
        *,
        port: int | None = None,
        timeout: float | None = None,
        error_sink: ErrorSink | None = None,
    ) -> Conn:
        """Open TCP to host (default port 5222) and bind a stream reader to it."""
        port = cfg.port if port is None else port
        timeout = cfg.connect_timeout_seconds if timeout is None else timeout
        try:
            reader, writer = await asyncio.wait_for(asyncio.open_connection(host, port), timeout)
        except (OSError, TimeoutError) as exc:
            raise XMPPConnectionError(
                f"dial {host}:{port} failed: {exc}",
                details={"host": host, "port": port},
                original_error=exc,
            ) from exc
        logger.info("XMPP connected to {}:{}", host, port)
        return cls(reader, writer, error_sink=error_sink)

    async def __aenter__(self) -> Conn:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    @property
    def state(self) -> ConnState:
        return self._state

    @property
    def secure(self) -> bool:
        return self._state is ConnState.SECURE

    def set_error_sink(self, sink: ErrorSink | None) -> None:
        """Install the sink for writer errors. None restores the dropping sink."""
        self._sink = sink or NullErrorSink()

    async def upgrade_tls(self, host: str, *, ssl_context: ssl.SSLContext | None = None) -> None:
        """Wrap the socket in TLS (SNI and verification against host) and rebind the reader.

        Call after reading the server's <proceed/>. Handshake failures raise
        TLSError and leave the connection closed.
        """
        if self._state is not ConnState.PLAIN:
            raise ConnectionStateError(
                f"TLS upgrade not allowed in state {self._state.value}",
                details={"state": self._state.value},
            )
        context = ssl_context or ssl.create_default_context()
        self._state = ConnState.UPGRADING
        try:
            await self._writer.start_tls(context, server_hostname=host)
        except OSError as exc:
            self._state = ConnState.CLOSED
            self._writer.close()
            raise TLSError(
                f"TLS handshake with {host} failed: {exc}",
                details={"host": host},
                original_error=exc,
            ) from exc
        self._decoder = StreamDecoder(self._reader, chunk_size=self._chunk_size)
        self._state = ConnState.SECURE
        logger.info("XMPP stream upgraded to TLS ({})", host)

    async def close(self) -> None:
        if self._state is ConnState.CLOSED:
            return
        self._state = ConnState.CLOSED
        self._writer.close()
        with contextlib.suppress(OSError):
            await self._writer.wait_closed()
        logger.info("XMPP connection closed")

    # -- writers ---------------------------------------------------------

    async def _write(self, data: bytes, what: str) -> None:
        if self._state is ConnState.CLOSED or self._writer.is_closing():
            raise WriteError(f"{what}: connection closed", details={"stanza": what})
        if self._state not in _USABLE:
            raise ConnectionStateError(
                f"{what} not allowed in state {self._state.value}",
                details={"stanza": what, "state": self._state.value},
            )
        try:
            self._writer.write(data)
            await self._writer.drain()
        except (OSError, RuntimeError) as exc:
            raise WriteError(
                f"{what} write failed: {exc}", details={"stanza": what}, original_error=exc
            ) from exc
        logger.debug("sent {}", what)

    async def _send(self, stanza: str, what: str) -> None:
        """Fire-and-forget: errors go to the sink, at most once, never raised."""
        try:
            await self._write(stanza.encode("utf-8"), what)
        except XMPPError as exc:
            self._sink.report(exc)

    async def open_stream(self, from_jid: str, to_host: str) -> None:
        """Send the stream header. First write on a fresh (or freshly upgraded) stream."""
        await self._send(templates.stream_header(from_jid, to_host), "stream header")

    async def request_starttls(self) -> None:
        await self._send(templates.starttls(), "starttls")

    async def authenticate(self, user: str, password: str, resource: str) -> str:
        """Legacy jabber:iq:auth login. The password goes over the wire as-is."""
        request_id = new_id()
        await self._send(templates.iq_auth(request_id, user, password, resource), "auth iq")
        return request_id

    async def request_discovery(self, from_jid: str, to: str) -> str:
        request_id = new_id()
        await self._send(templates.iq_get(from_jid, to, request_id, NS_DISCO_ITEMS), "disco#items iq")
        return request_id

    async def set_presence(self, jid: str, show: str) -> None:
        await self._send(templates.presence(jid, show), "presence")

    async def request_roster(self, from_jid: str, to: str) -> str:
        request_id = new_id()
        await self._send(templates.iq_get(from_jid, to, request_id, NS_IQ_ROSTER), "roster iq")
        return request_id

    async def part_room(self, room_id: str) -> None:
        await self._send(templates.muc_part(room_id), "muc part")

    async def join_room(self, room_id: str, jid: str) -> str:
        request_id = new_id()
        await self._send(templates.muc_presence(request_id, room_id, jid), "muc presence")
        return request_id

    async def send_room_message(self, msg_type: str, to: str, from_jid: str, body: str) -> str:
        """Send a chat/groupchat message. The body is always escaped."""
        request_id = new_id()
        await self._send(templates.muc_message(msg_type, to, from_jid, request_id, body), "message")
        return request_id

    async def send_keepalive(self) -> None:
        """Write one space. Unlike the other writers, failure raises WriteError
        so the caller can decide whether the connection is dead."""
        await self._write(KEEPALIVE, "keepalive")

    # -- readers ---------------------------------------------------------

    def _check_readable(self) -> None:
        if self._state not in _USABLE:
            raise ConnectionStateError(
                f"read not allowed in state {self._state.value}",
                details={"state": self._state.value},
            )

    async def read_features(self) -> StreamFeatures:
        self._check_readable()
        features = decode_features(await self._decoder.next_element())
        logger.debug(
            "features: starttls_required={} mechanisms={}",
            features.starttls_required,
            features.mechanisms,
        )
        return features

    async def read_next_element(self) -> StartElement:
        """Next start tag on the stream; use it to choose the typed read that follows."""
        self._check_readable()
        start = StartElement.from_element(await self._decoder.next_start())
        logger.debug("received <{}>", start.name.local)
        return start

    async def read_body(self) -> str:
        self._check_readable()
        return inner_xml(await self._decoder.next_element())

    async def read_query_result(self) -> QueryResult:
        self._check_readable()
        return decode_query(await self._decoder.next_element())

    async def read_ack(self) -> Ack:
        self._check_readable()
        return decode_ack(await self._decoder.next_element())

    async def read_stanza(self) -> Stanza:
        """Next construct as StreamFeatures | QueryResult | MessageBody | GenericElement | DecodeError."""
        self._check_readable()
        return await self._decoder.next_stanza()


async def dial(
    host: str,
    *,
    port: int | None = None,
    timeout: float | None = None,
    error_sink: ErrorSink | None = None,
) -> Conn:
    """Module-level shortcut for Conn.dial."""
    return await Conn.dial(host, port=port, timeout=timeout, error_sink=error_sink)

