"""Server-Sent Events session transport.

One ``SseServerTransport`` per client connection:

- the client opens ``GET /sse`` and keeps the event stream open; the first
  frame is an ``endpoint`` event telling it where to POST messages
- the client POSTs JSON-RPC messages to ``<endpoint>?sessionId=<id>``; the
  owner looks the transport up by session id and hands it the request
- the server pushes messages back as ``message`` events on the stream

Wire format (one frame per message, never split across ``data:`` lines):

    event: endpoint
    data: /messages?sessionId=4f1c...

    event: message
    data: {"jsonrpc":"2.0","id":1,"result":{}}

"""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
import uuid
from collections.abc import AsyncIterator, Callable
from typing import Any

from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response, StreamingResponse

from ..errors import (
    InvalidMessageError,
    MalformedBodyError,
    MessageEncodingError,
    NotConnectedError,
    SessionTransportError,
    TransportClosedError,
    UnsupportedContentTypeError,
)
from ..types import parse_message, to_payload
from .base import (
    CloseHook,
    ErrorHook,
    EventSink,
    MessageHook,
    ServerTransport,
    TransportState,
    format_sse_event,
)

logger = logging.getLogger(__name__)

SSE_HEADERS = {
    "Content-Type": "text/event-stream",
    "Cache-Control": "no-cache, no-transform",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


class QueueEventSink(EventSink):
    """Event sink backed by an asyncio queue.

    ``stream()`` is the body of the streaming response. If the stream ends
    without ``close()`` having been called (the client went away and the
    server cancelled the response task), ``on_disconnect`` is called once.
    """

    def __init__(self, on_disconnect: Callable[[], None] | None = None) -> None:
        self._queue: asyncio.Queue[str | None] = asyncio.Queue()
        self._on_disconnect = on_disconnect
        self._closing = False
        self._finished = False

    @property
    def closed(self) -> bool:
        return self._closing or self._finished

    async def write(self, frame: str) -> None:
        if self.closed:
            raise NotConnectedError("Event stream closed")
        self._queue.put_nowait(frame)

    def close(self) -> None:
        if self._closing:
            return
        self._closing = True
        self._queue.put_nowait(None)

    async def stream(self) -> AsyncIterator[str]:
        try:
            while True:
                frame = await self._queue.get()
                if frame is None:
                    break
                yield frame
        finally:
            self._finished = True
            if not self._closing and self._on_disconnect is not None:
                self._on_disconnect()


def _parse_content_type(value: str | None) -> tuple[str, str | None]:
    """Split a Content-Type header into (media type, charset)."""
    if not value:
        return "", None

    media_type, *params = value.split(";")
    charset = None
    for param in params:
        key, _, val = param.partition("=")
        if key.strip().lower() == "charset":
            charset = val.strip().strip('"') or None
    return media_type.strip().lower(), charset


def _is_json_media_type(media_type: str) -> bool:
    return media_type == "application/json" or (
        media_type.startswith("application/") and media_type.endswith("+json")
    )


class SseServerTransport(ServerTransport):
    """Server-side SSE transport for a single session.

    Outbound messages go over the event stream created by ``start()``;
    inbound messages arrive through ``handle_post_message()``.

    Example (owner side):
        transport = SseServerTransport("/messages")
        transport.on_message = handle
        transport.on_close = lambda: sessions.pop(transport.session_id, None)
        sessions[transport.session_id] = transport
        return await transport.start()
    """

    def __init__(self, endpoint: str) -> None:
        """Initialize the transport.

        Args:
            endpoint: Path clients POST messages to
        """
        self._session_id = str(uuid.uuid4())
        self._endpoint = endpoint
        self._state = TransportState.UNINITIALIZED
        self._sink: EventSink | None = None
        self._response: StreamingResponse | None = None
        self._send_lock = asyncio.Lock()
        self._close_notified = False
        self._hook_tasks: set[asyncio.Future[Any]] = set()

        self.on_message: MessageHook | None = None
        self.on_error: ErrorHook | None = None
        self.on_close: CloseHook | None = None

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def endpoint(self) -> str:
        return self._endpoint

    @property
    def endpoint_url(self) -> str:
        """Endpoint annotated with this session's id."""
        separator = "&" if "?" in self._endpoint else "?"
        return f"{self._endpoint}{separator}sessionId={self._session_id}"

    @property
    def state(self) -> TransportState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state is TransportState.OPEN and self._sink is not None

    # -------------------------------------------------------------------------
    # Outbound stream
    # -------------------------------------------------------------------------

    async def create_response(self) -> StreamingResponse:
        """Open the event stream and send the endpoint handshake.

        Calling again while open returns the same response without a second
        handshake.

        Raises:
            TransportClosedError: if the session was already closed
        """
        if self._state is TransportState.CLOSED:
            raise TransportClosedError(f"Session {self._session_id} is closed")

        if self._response is not None:
            logger.warning(f"Event stream already open for session {self._session_id}")
            return self._response

        sink = QueueEventSink(on_disconnect=self._handle_disconnect)
        await sink.write(format_sse_event("endpoint", self.endpoint_url))

        self._sink = sink
        self._state = TransportState.OPEN
        self._response = StreamingResponse(sink.stream(), status_code=200, headers=SSE_HEADERS)

        logger.info(f"Opened event stream for session {self._session_id}")
        return self._response

    async def start(self) -> StreamingResponse:
        """Open the event stream (see ``create_response``)."""
        return await self.create_response()

    async def send(self, message: Any) -> None:
        """Send a message to the client as a ``message`` event.

        Raises:
            NotConnectedError: if the event stream is not open
            MessageEncodingError: if the message is not encodable as JSON
                (NaN and infinities included); nothing is written
        """
        async with self._send_lock:
            sink = self._sink
            if self._state is not TransportState.OPEN or sink is None:
                raise NotConnectedError()

            try:
                data = json.dumps(
                    to_payload(message),
                    separators=(",", ":"),
                    ensure_ascii=False,
                    allow_nan=False,
                )
            except (TypeError, ValueError) as e:
                raise MessageEncodingError(f"Cannot encode message as JSON: {e}") from e
            frame = format_sse_event("message", data)

            try:
                await sink.write(frame)
            except Exception:
                logger.exception(f"Failed to write to event stream for session {self._session_id}")
                if sink.closed:
                    self._handle_disconnect()
                raise

            logger.debug(f"Sent to session {self._session_id}: {data}")

    # -------------------------------------------------------------------------
    # Inbound messages
    # -------------------------------------------------------------------------

    async def handle_post_message(self, request: Request) -> Response:
        """Accept a client POST carrying one JSON-RPC message.

        Returns 202 once the message is validated and handed to the message
        hook, 400 for a non-JSON content type, an unparsable body or an
        invalid message, and 500 when the event stream is not open.
        """
        if not self.is_connected:
            error = NotConnectedError("SSE connection not established")
            logger.warning(f"Message for session {self._session_id} before stream opened")
            self._report_error(error)
            return PlainTextResponse(error.message, status_code=error.status_code)

        try:
            body = await self._read_json(request)
        except (UnsupportedContentTypeError, MalformedBodyError) as e:
            logger.warning(f"Rejected message for session {self._session_id}: {e}")
            self._report_error(e)
            return PlainTextResponse(e.message, status_code=e.status_code)

        try:
            await self.handle_message(body)
        except InvalidMessageError as e:
            # Already reported by handle_message
            return PlainTextResponse(e.message, status_code=e.status_code)

        return PlainTextResponse("Accepted", status_code=202)

    async def handle_message(self, message: Any) -> None:
        """Validate a decoded message and pass it to the message hook.

        Raises:
            InvalidMessageError: if the value is not a JSON-RPC message
        """
        try:
            parsed = parse_message(to_payload(message))
        except InvalidMessageError as e:
            logger.warning(f"Invalid message for session {self._session_id}: {e}")
            self._report_error(e)
            raise

        logger.debug(f"Received on session {self._session_id}: {type(parsed).__name__}")
        self._invoke_hook(self.on_message, "message", parsed)

    async def _read_json(self, request: Request) -> Any:
        content_type = request.headers.get("content-type")
        media_type, charset = _parse_content_type(content_type)
        if not _is_json_media_type(media_type):
            raise UnsupportedContentTypeError(content_type)

        body = await request.body()
        try:
            return json.loads(body.decode(charset or "utf-8"))
        except (UnicodeDecodeError, LookupError, ValueError) as e:
            raise MalformedBodyError(f"Invalid JSON body: {e}") from e

    # -------------------------------------------------------------------------
    # Teardown
    # -------------------------------------------------------------------------

    async def close(self) -> None:
        """Close the session.

        Ends the event stream if open. Safe to call in any state; the close
        hook fires once per instance.
        """
        async with self._send_lock:
            if self._sink is not None:
                self._sink.close()
            self._sink = None
            if self._state is not TransportState.CLOSED:
                logger.info(f"Closed session {self._session_id}")
            self._state = TransportState.CLOSED

        self._notify_close()

    def _handle_disconnect(self) -> None:
        """Event stream ended without the owner closing it."""
        if self._state is not TransportState.OPEN:
            return

        logger.info(f"Client disconnected from session {self._session_id}")
        self._sink = None
        self._state = TransportState.CLOSED
        self._notify_close()

    def _notify_close(self) -> None:
        if self._close_notified:
            return
        self._close_notified = True
        self._invoke_hook(self.on_close, "close")

    # -------------------------------------------------------------------------
    # Hooks
    # -------------------------------------------------------------------------

    def _report_error(self, error: SessionTransportError) -> None:
        self._invoke_hook(self.on_error, "error", error)

    def _invoke_hook(self, hook: Callable[..., Any] | None, name: str, *args: Any) -> None:
        """Call a hook; schedule it if it returns an awaitable.

        Hook failures are logged, never raised.
        """
        if hook is None:
            return

        try:
            result = hook(*args)
        except Exception:
            logger.exception(f"Error in {name} hook for session {self._session_id}")
            return

        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._hook_tasks.add(task)
            task.add_done_callback(lambda t: self._hook_done(t, name))

    def _hook_done(self, task: asyncio.Future[Any], name: str) -> None:
        self._hook_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                f"Error in {name} hook for session {self._session_id}",
                exc_info=exc,
            )
