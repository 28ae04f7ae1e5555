"""Re-export from core.errors."""

from xmppconn.core.errors import (
    ConnectionStateError,
    ProtocolDecodeError,
    StreamClosedError,
    TLSError,
    WriteError,
    XMPPConfigurationError,
    XMPPConnectionError,
    XMPPError,
)

__all__ = [
    "ConnectionStateError",
    "ProtocolDecodeError",
    "StreamClosedError",
    "TLSError",
    "WriteError",
    "XMPPConfigurationError",
    "XMPPConnectionError",
    "XMPPError",
]
