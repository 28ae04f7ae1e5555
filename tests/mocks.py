"""Local stand-ins for an XMPP server and a recording TCP proxy."""

from __future__ import annotations

import asyncio
import contextlib
import ssl
from pathlib import Path

DATA_DIR = Path(__file__).parent / "data"
CERT_FILE = DATA_DIR / "localhost.pem"
KEY_FILE = DATA_DIR / "localhost.key"

STREAM_HEADER = (
    "<?xml version='1.0'?>"
    "<stream:stream from='example.com' id='s1' version='1.0' "
    "xmlns='jabber:client' xmlns:stream='http://etherx.jabber.org/streams'>"
)
FEATURES_STARTTLS_REQUIRED = (
    "<stream:features>"
    "<starttls xmlns='urn:ietf:params:xml:ns:xmpp-tls'><required/></starttls>"
    "<mechanisms xmlns='urn:ietf:params:xml:ns:xmpp-sasl'><mechanism>PLAIN</mechanism></mechanisms>"
    "</stream:features>"
)
PROCEED = "<proceed xmlns='urn:ietf:params:xml:ns:xmpp-tls'/>"


def server_ssl_context() -> ssl.SSLContext:
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    context.load_cert_chain(CERT_FILE, KEY_FILE)
    return context


def client_ssl_context() -> ssl.SSLContext:
    """Client context trusting only the self-signed test certificate."""
    context = ssl.create_default_context(cafile=str(CERT_FILE))
    context.verify_flags &= ~ssl.VERIFY_X509_STRICT
    return context


async def read_until(reader: asyncio.StreamReader, buffer: bytearray, marker: bytes) -> bytes:
    """Append reads to buffer until marker shows up; return the buffer so far."""
    while marker not in buffer:
        data = await reader.read(4096)
        if not data:
            raise ConnectionError(f"EOF before {marker!r}")
        buffer.extend(data)
    return bytes(buffer)


class MockXMPPServer:
    """Single-client scripted server. Records everything it receives."""

    def __init__(self) -> None:
        self.received = bytearray()
        self.port = 0
        self._server: asyncio.base_events.Server | None = None
        self._connected = asyncio.Event()
        self.reader: asyncio.StreamReader | None = None
        self.writer: asyncio.StreamWriter | None = None

    async def __aenter__(self) -> MockXMPPServer:
        self._server = await asyncio.start_server(self._on_client, "127.0.0.1", 0)
        self.port = self._server.sockets[0].getsockname()[1]
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        with contextlib.suppress(TimeoutError):
            await asyncio.wait_for(self._connected.wait(), 1)
        if self.writer:
            self.writer.close()
        if self._server:
            self._server.close()
            await self._server.wait_closed()

    async def _on_client(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        self.reader = reader
        self.writer = writer
        self._connected.set()

    async def wait_connected(self) -> None:
        await asyncio.wait_for(self._connected.wait(), 5)

    async def send(self, data: str) -> None:
        await self.wait_connected()
        assert self.writer is not None
        self.writer.write(data.encode("utf-8"))
        await self.writer.drain()

    async def expect(self, marker: bytes) -> bytes:
        await self.wait_connected()
        assert self.reader is not None
        return await asyncio.wait_for(read_until(self.reader, self.received, marker), 5)

    async def start_tls(self) -> None:
        assert self.writer is not None
        await self.writer.start_tls(server_ssl_context())


class RecordingProxy:
    """TCP relay that keeps a copy of the raw client-to-server bytes."""

    def __init__(self, upstream_port: int) -> None:
        self.upstream_port = upstream_port
        self.client_to_server = bytearray()
        self.port = 0
        self._server: asyncio.base_events.Server | None = None
        self._tasks: list[asyncio.Task] = []

    async def __aenter__(self) -> RecordingProxy:
        self._server = await asyncio.start_server(self._on_client, "127.0.0.1", 0)
        self.port = self._server.sockets[0].getsockname()[1]
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        for task in self._tasks:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        if self._server:
            self._server.close()
            await self._server.wait_closed()

    async def _on_client(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        up_reader, up_writer = await asyncio.open_connection("127.0.0.1", self.upstream_port)
        self._tasks.append(asyncio.create_task(self._pipe(reader, up_writer, self.client_to_server)))
        self._tasks.append(asyncio.create_task(self._pipe(up_reader, writer, None)))

    async def _pipe(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        record: bytearray | None,
    ) -> None:
        try:
            while data := await reader.read(4096):
                if record is not None:
                    record.extend(data)
                writer.write(data)
                await writer.drain()
        except (ConnectionError, OSError):
            pass
        finally:
            writer.close()


def stream_reader(*chunks: bytes) -> asyncio.StreamReader:
    """StreamReader preloaded with chunks and EOF. Call from a running loop."""
    reader = asyncio.StreamReader()
    for chunk in chunks:
        reader.feed_data(chunk)
    reader.feed_eof()
    return reader
