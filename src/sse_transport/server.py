"""JSON-RPC dispatcher bound to session transports.

Routes inbound requests and notifications to registered method handlers and
sends responses back over the transport the request arrived on.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Coroutine
from typing import Any

from .errors import NotConnectedError, SessionTransportError
from .transport.base import ServerTransport
from .types import (
    JsonRpcError,
    JsonRpcErrorCode,
    JsonRpcErrorResponse,
    JsonRpcMessage,
    JsonRpcNotification,
    JsonRpcRequest,
    JsonRpcResultResponse,
    RequestId,
    to_payload,
)

logger = logging.getLogger(__name__)

Params = dict[str, Any] | list[Any] | None
MethodHandler = Callable[[Params], Coroutine[Any, Any, Any]]


class JsonRpcProtocolError(Exception):
    """Raised by a method handler to answer with a specific error code."""

    def __init__(
        self,
        code: int,
        message: str,
        data: Any | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data


def create_error_response(
    request_id: RequestId | None,
    code: int,
    message: str,
    data: Any | None = None,
) -> JsonRpcErrorResponse:
    """Create a JSON-RPC error response."""
    extra = {} if data is None else {"data": data}
    error = JsonRpcError(code=code, message=message, **extra)
    return JsonRpcErrorResponse(id=request_id, error=error)


class JsonRpcServer:
    """Minimal JSON-RPC server.

    Usage:
        server = JsonRpcServer("echo", "1.0.0")

        @server.method("echo")
        async def echo(params):
            return {"message": params["message"]}

        server.connect(transport)
    """

    def __init__(self, name: str, version: str = "0.1.0") -> None:
        self.name = name
        self.version = version
        self._methods: dict[str, MethodHandler] = {"ping": self._ping}

    @property
    def methods(self) -> list[str]:
        return sorted(self._methods)

    def add_method(self, name: str, handler: MethodHandler) -> None:
        """Register a handler for a method name."""
        if name in self._methods and name != "ping":
            raise ValueError(f"Method already registered: {name}")
        self._methods[name] = handler

    def method(self, name: str) -> Callable[[MethodHandler], MethodHandler]:
        """Decorator form of ``add_method``."""

        def decorator(handler: MethodHandler) -> MethodHandler:
            self.add_method(name, handler)
            return handler

        return decorator

    def connect(self, transport: ServerTransport) -> None:
        """Install message and error hooks on a transport.

        Each inbound message is processed in its own task, so the transport
        acknowledges the POST before the handler runs.
        """
        session_id = transport.session_id

        def on_message(message: JsonRpcMessage) -> Coroutine[Any, Any, None]:
            return self.process_message(message, transport)

        def on_error(error: Exception) -> None:
            logger.warning(f"[{self.name}] transport error on session {session_id}: {error}")

        transport.on_message = on_message
        transport.on_error = on_error

    async def process_message(self, message: JsonRpcMessage, transport: ServerTransport) -> None:
        """Dispatch a message and send the response, if any."""
        response = await self.dispatch(message)
        if response is None:
            return

        try:
            await transport.send(response)
        except NotConnectedError:
            logger.warning(
                f"Session {transport.session_id} closed before response to {response.id!r} was sent"
            )
        except SessionTransportError as e:
            logger.error(f"Failed to send response on session {transport.session_id}: {e}")

    async def dispatch(
        self, message: JsonRpcMessage
    ) -> JsonRpcResultResponse | JsonRpcErrorResponse | None:
        """Run the handler for a message.

        Returns a response for requests, None for notifications and responses.
        """
        if isinstance(message, (JsonRpcResultResponse, JsonRpcErrorResponse)):
            # Server-initiated requests are not issued, so nothing awaits these
            logger.warning(f"Received response for unknown request: {message.id!r}")
            return None

        handler = self._methods.get(message.method)

        if isinstance(message, JsonRpcNotification):
            if handler is None:
                logger.debug(f"No handler for notification {message.method}")
                return None
            try:
                await handler(message.params)
            except Exception as e:
                logger.exception(f"Error handling notification {message.method}: {e}")
            return None

        return await self._handle_request(message, handler)

    async def _handle_request(
        self, request: JsonRpcRequest, handler: MethodHandler | None
    ) -> JsonRpcResultResponse | JsonRpcErrorResponse:
        if handler is None:
            return create_error_response(
                request.id,
                JsonRpcErrorCode.METHOD_NOT_FOUND,
                f"Method not found: {request.method}",
            )

        try:
            result = await handler(request.params)
        except JsonRpcProtocolError as e:
            return create_error_response(request.id, e.code, e.message, e.data)
        except ValueError as e:
            return create_error_response(request.id, JsonRpcErrorCode.INVALID_PARAMS, str(e))
        except Exception as e:
            logger.exception(f"Error handling request {request.method}: {e}")
            return create_error_response(request.id, JsonRpcErrorCode.INTERNAL_ERROR, str(e))

        return JsonRpcResultResponse(
            id=request.id,
            result={} if result is None else to_payload(result),
        )

    async def _ping(self, params: Params) -> dict[str, Any]:
        return {}
