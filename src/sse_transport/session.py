"""Owner-side session registry.

Maps session ids to live transports so inbound POSTs can be routed. The
registry only looks transports up; each transport owns its own stream.
Entries are removed when the transport's close hook fires.
"""

from __future__ import annotations

import logging

from .transport.sse import SseServerTransport

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Registry of live SSE sessions."""

    def __init__(self) -> None:
        self._sessions: dict[str, SseServerTransport] = {}

    def create(self, endpoint: str) -> SseServerTransport:
        """Create a transport for a new stream and register it."""
        transport = SseServerTransport(endpoint)
        self.register(transport)
        return transport

    def register(self, transport: SseServerTransport) -> None:
        """Register a transport and deregister it when it closes.

        Takes over the transport's close hook.
        """
        session_id = transport.session_id
        if session_id in self._sessions:
            raise ValueError(f"Session already registered: {session_id}")

        self._sessions[session_id] = transport
        transport.on_close = lambda: self.remove(session_id)
        logger.debug(f"Registered session {session_id} ({len(self._sessions)} active)")

    def get(self, session_id: str | None) -> SseServerTransport | None:
        """Look up a live transport; None if unknown."""
        if not session_id:
            return None
        return self._sessions.get(session_id)

    def remove(self, session_id: str) -> SseServerTransport | None:
        """Drop a session from the registry (does not close it)."""
        transport = self._sessions.pop(session_id, None)
        if transport is not None:
            logger.debug(f"Removed session {session_id} ({len(self._sessions)} active)")
        return transport

    def session_ids(self) -> list[str]:
        return list(self._sessions)

    async def close_all(self) -> None:
        """Close every live session."""
        transports = list(self._sessions.values())
        if transports:
            logger.info(f"Closing {len(transports)} active sessions")

        for transport in transports:
            try:
                await transport.close()
            except Exception:
                logger.exception(f"Error closing session {transport.session_id}")

        self._sessions.clear()

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
