"""SSE transport - JSON-RPC over Server-Sent Events.

The server pushes messages over a long-lived event stream; the client sends
messages with correlated POST requests.
"""

from .app import create_app, create_echo_server
from .config import ServerConfig
from .errors import (
    InvalidMessageError,
    MalformedBodyError,
    MessageEncodingError,
    NotConnectedError,
    SessionTransportError,
    TransportClosedError,
    UnsupportedContentTypeError,
)
from .server import JsonRpcProtocolError, JsonRpcServer
from .session import SessionRegistry
from .transport import SseServerTransport, TransportState
from .types import (
    JsonRpcError,
    JsonRpcErrorCode,
    JsonRpcErrorResponse,
    JsonRpcMessage,
    JsonRpcNotification,
    JsonRpcRequest,
    JsonRpcResultResponse,
    parse_message,
)

__version__ = "0.1.0"

__all__ = [
    "create_app",
    "create_echo_server",
    "ServerConfig",
    # Errors
    "SessionTransportError",
    "NotConnectedError",
    "TransportClosedError",
    "UnsupportedContentTypeError",
    "MalformedBodyError",
    "InvalidMessageError",
    "MessageEncodingError",
    # Transport
    "SseServerTransport",
    "TransportState",
    "SessionRegistry",
    # JSON-RPC
    "JsonRpcServer",
    "JsonRpcProtocolError",
    "JsonRpcMessage",
    "JsonRpcRequest",
    "JsonRpcNotification",
    "JsonRpcResultResponse",
    "JsonRpcErrorResponse",
    "JsonRpcError",
    "JsonRpcErrorCode",
    "parse_message",
]
