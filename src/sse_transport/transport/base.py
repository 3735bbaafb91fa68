"""Transport abstraction base classes.

Defines the server-side transport contract the JSON-RPC layer talks to,
and the outbound sink contract the transport writes event-stream frames to.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

from starlette.responses import Response

from ..types import JsonRpcMessage

# Hook signatures. A hook may return an awaitable, which the transport
# schedules instead of awaiting.
MessageHook = Callable[[JsonRpcMessage], Awaitable[None] | None]
ErrorHook = Callable[[Exception], Awaitable[None] | None]
CloseHook = Callable[[], Awaitable[None] | None]


class TransportState(str, Enum):
    """Lifecycle states of a session transport."""

    UNINITIALIZED = "uninitialized"
    OPEN = "open"  # outbound stream materialized, handshake sent
    CLOSED = "closed"  # terminal


def format_sse_event(event: str, data: str) -> str:
    """Frame a single event-stream event.

    Raises:
        ValueError: if ``data`` spans more than one line
    """
    if "\n" in data or "\r" in data:
        raise ValueError("Event data must be a single line")
    return f"event: {event}\ndata: {data}\n\n"


class EventSink(ABC):
    """Write handle bound to an open outbound event stream.

    Owned by exactly one transport; nothing else writes to it.
    """

    @property
    @abstractmethod
    def closed(self) -> bool:
        """True once the stream has ended, for any reason."""
        ...

    @abstractmethod
    async def write(self, frame: str) -> None:
        """Hand one complete frame to the underlying stream."""
        ...

    @abstractmethod
    def close(self) -> None:
        """End the stream after frames already written."""
        ...


class ServerTransport(ABC):
    """Abstract server-side half of a message transport.

    The owner sets the hooks; the transport invokes them.
    """

    on_message: MessageHook | None = None
    on_error: ErrorHook | None = None
    on_close: CloseHook | None = None

    @property
    @abstractmethod
    def session_id(self) -> str:
        """Routing key for inbound writes."""
        ...

    @abstractmethod
    async def start(self) -> Response:
        """Open the outbound stream."""
        ...

    @abstractmethod
    async def send(self, message: Any) -> None:
        """Deliver a message to the client."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Tear the session down."""
        ...

    async def __aenter__(self) -> ServerTransport:
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()
