"""Server configuration.

Values come from ``SSE_TRANSPORT_*`` environment variables; CLI flags
override them.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field

ENV_PREFIX = "SSE_TRANSPORT_"
DEFAULT_CORS_ORIGIN_REGEX = r"http://(localhost|127\.0\.0\.1)(:\d+)?"


def _split_origins(value: str) -> list[str]:
    return [origin.strip() for origin in value.split(",") if origin.strip()]


@dataclass
class ServerConfig:
    """HTTP server configuration."""

    host: str = "127.0.0.1"
    port: int = 3456

    # Stream-open and inbound-write paths
    sse_path: str = "/sse"
    message_path: str = "/messages"

    # Exact origins, plus any origin fully matching the regex
    cors_origins: list[str] = field(default_factory=list)
    cors_origin_regex: str | None = DEFAULT_CORS_ORIGIN_REGEX
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        for name in ("sse_path", "message_path"):
            value = getattr(self, name)
            if not value.startswith("/"):
                raise ValueError(f"{name} must start with '/': {value!r}")
        if self.sse_path == self.message_path:
            raise ValueError("sse_path and message_path must differ")
        if self.cors_origin_regex is not None:
            try:
                re.compile(self.cors_origin_regex)
            except re.error as e:
                raise ValueError(f"Invalid cors_origin_regex: {e}") from e
        self.log_level = self.log_level.upper()

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> ServerConfig:
        """Build a config from environment variables.

        Args:
            environ: Mapping to read instead of ``os.environ``
        """
        env = os.environ if environ is None else environ
        kwargs: dict = {}

        if host := env.get(f"{ENV_PREFIX}HOST"):
            kwargs["host"] = host
        if port := env.get(f"{ENV_PREFIX}PORT"):
            try:
                kwargs["port"] = int(port)
            except ValueError as e:
                raise ValueError(f"Invalid {ENV_PREFIX}PORT: {port!r}") from e
        if sse_path := env.get(f"{ENV_PREFIX}SSE_PATH"):
            kwargs["sse_path"] = sse_path
        if message_path := env.get(f"{ENV_PREFIX}MESSAGE_PATH"):
            kwargs["message_path"] = message_path
        if origins := env.get(f"{ENV_PREFIX}CORS_ORIGINS"):
            kwargs["cors_origins"] = _split_origins(origins)
        if (origin_regex := env.get(f"{ENV_PREFIX}CORS_ORIGIN_REGEX")) is not None:
            kwargs["cors_origin_regex"] = origin_regex or None
        if log_level := env.get(f"{ENV_PREFIX}LOG_LEVEL"):
            kwargs["log_level"] = log_level

        return cls(**kwargs)
