"""XMPP connection exceptions."""

from __future__ import annotations


class XMPPError(Exception):
    """Base for xmppconn errors."""

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        details: dict[str, object] | None = None,
        original_error: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.details = details or {}
        self.original_error = original_error


class XMPPConfigurationError(XMPPError):
    """Config load failure."""


class XMPPConnectionError(XMPPError):
    """Dial or transport failure."""

    def __init__(self, message: str, **kwargs: object) -> None:
        kwargs.setdefault("code", "connection_failed")
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class StreamClosedError(XMPPConnectionError):
    """Peer closed the stream (EOF on the transport)."""

    def __init__(self, message: str = "stream closed by peer", **kwargs: object) -> None:
        kwargs.setdefault("code", "stream_closed")
        super().__init__(message, **kwargs)


class TLSError(XMPPError):
    """TLS handshake or upgrade failure."""

    def __init__(self, message: str, **kwargs: object) -> None:
        kwargs.setdefault("code", "tls_failed")
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class ProtocolDecodeError(XMPPError):
    """Malformed or unexpected XML on the stream."""

    def __init__(self, message: str, **kwargs: object) -> None:
        kwargs.setdefault("code", "invalid_response")
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class WriteError(XMPPError):
    """Transport write failed while emitting a stanza."""

    def __init__(self, message: str, **kwargs: object) -> None:
        kwargs.setdefault("code", "write_failed")
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class ConnectionStateError(XMPPError):
    """Operation not valid in the connection's current state."""

    def __init__(self, message: str, **kwargs: object) -> None:
        kwargs.setdefault("code", "invalid_state")
        super().__init__(message, **kwargs)  # type: ignore[arg-type]
