"""Transport layer.

- base: transport and sink abstractions, event-stream framing
- sse: Server-Sent Events session transport (stream out, POST in)
"""

from .base import (
    CloseHook,
    ErrorHook,
    EventSink,
    MessageHook,
    ServerTransport,
    TransportState,
    format_sse_event,
)
from .sse import SSE_HEADERS, QueueEventSink, SseServerTransport

__all__ = [
    # Base abstractions
    "CloseHook",
    "ErrorHook",
    "EventSink",
    "MessageHook",
    "ServerTransport",
    "TransportState",
    "format_sse_event",
    # SSE implementation
    "SSE_HEADERS",
    "QueueEventSink",
    "SseServerTransport",
]
