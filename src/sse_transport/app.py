"""SSE transport server application.

Creates the Starlette ASGI application that owns the session transports.

Route organization:
- GET  <sse_path>      - open an event stream (one session per request)
- POST <message_path>  - client messages, routed by ``sessionId`` query param
- GET  /health         - health check
"""

from __future__ import annotations

import contextlib
import logging
from collections.abc import AsyncIterator
from typing import Any

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse, Response
from starlette.routing import Route

from .config import ServerConfig
from .server import JsonRpcServer
from .session import SessionRegistry

logger = logging.getLogger(__name__)

SERVER_NAME = "sse-transport-echo"
SERVER_VERSION = "0.1.0"


def create_echo_server() -> JsonRpcServer:
    """Create the default JSON-RPC server exposing ``echo``."""
    server = JsonRpcServer(SERVER_NAME, SERVER_VERSION)

    @server.method("echo")
    async def echo(params: Any) -> dict[str, Any]:
        if not isinstance(params, dict) or "message" not in params:
            raise ValueError("echo requires a 'message' parameter")
        return {"message": params["message"]}

    return server


def create_app(
    config: ServerConfig | None = None,
    server: JsonRpcServer | None = None,
    registry: SessionRegistry | None = None,
) -> Starlette:
    """Create the SSE transport application.

    Args:
        config: Server configuration (defaults to ``ServerConfig.from_env()``)
        server: JSON-RPC server connected to every new session
        registry: Session registry (a fresh one by default)

    Returns:
        Configured Starlette application
    """
    config = config or ServerConfig.from_env()
    server = server or create_echo_server()
    sessions = registry if registry is not None else SessionRegistry()

    async def sse_endpoint(request: Request) -> Response:
        client = f"{request.client.host}:{request.client.port}" if request.client else "unknown"
        transport = sessions.create(config.message_path)
        server.connect(transport)
        logger.info(f"New SSE session {transport.session_id} from {client}")
        return await transport.start()

    async def message_endpoint(request: Request) -> Response:
        session_id = request.query_params.get("sessionId")
        transport = sessions.get(session_id)
        if transport is None:
            logger.warning(f"Message for unknown session: {session_id!r}")
            return PlainTextResponse("Invalid session ID", status_code=400)
        return await transport.handle_post_message(request)

    async def health_endpoint(request: Request) -> Response:
        return JSONResponse({"status": "ok", "sessions": len(sessions)})

    @contextlib.asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        yield
        await sessions.close_all()

    routes = [
        Route(config.sse_path, sse_endpoint, methods=["GET"]),
        Route(config.message_path, message_endpoint, methods=["POST"]),
        Route("/health", health_endpoint, methods=["GET"]),
    ]

    middleware = [
        Middleware(
            CORSMiddleware,
            allow_origins=config.cors_origins,
            allow_origin_regex=config.cors_origin_regex,
            allow_methods=["*"],
            allow_headers=["*"],
        ),
    ]

    app = Starlette(routes=routes, middleware=middleware, lifespan=lifespan)
    app.state.sessions = sessions
    app.state.server = server
    app.state.config = config
    return app
