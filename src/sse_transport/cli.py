"""SSE transport server CLI.

Usage:
    sse-transport                          # Serve on 127.0.0.1:3456
    sse-transport --port 8080              # Custom port
    sse-transport --message-path /rpc      # Custom inbound path
    sse-transport --health                 # Check a running server

Flags override the SSE_TRANSPORT_* environment variables.
"""

from __future__ import annotations

import dataclasses
import logging
import sys

import click
import httpx

from .config import ServerConfig


@click.command()
@click.option("--host", default=None, help="Host to bind to")
@click.option("--port", type=int, default=None, help="Port to bind to")
@click.option("--sse-path", default=None, help="Path that opens the event stream")
@click.option("--message-path", default=None, help="Path clients POST messages to")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Logging level",
)
@click.option("--health", "health_check", is_flag=True, help="Check server health and exit")
@click.option("--health-url", default=None, help="Server URL for health check")
def main(
    host: str | None,
    port: int | None,
    sse_path: str | None,
    message_path: str | None,
    log_level: str | None,
    health_check: bool,
    health_url: str | None,
) -> None:
    """SSE transport server - JSON-RPC over Server-Sent Events."""
    try:
        config = _build_config(host, port, sse_path, message_path, log_level)
    except ValueError as e:
        raise click.UsageError(str(e)) from e

    if health_check:
        _do_health_check(health_url or f"http://{config.host}:{config.port}")
        return

    _run_http_server(config)


def _build_config(
    host: str | None,
    port: int | None,
    sse_path: str | None,
    message_path: str | None,
    log_level: str | None,
) -> ServerConfig:
    config = ServerConfig.from_env()
    overrides = {
        "host": host,
        "port": port,
        "sse_path": sse_path,
        "message_path": message_path,
        "log_level": log_level,
    }
    return dataclasses.replace(config, **{k: v for k, v in overrides.items() if v is not None})


def _do_health_check(url: str) -> None:
    """Check server health via HTTP."""
    try:
        response = httpx.get(f"{url.rstrip('/')}/health", timeout=5.0)
        response.raise_for_status()
        data = response.json()
        click.echo(f"Server healthy: {data.get('status', 'ok')} ({data.get('sessions', 0)} sessions)")
    except httpx.HTTPError as e:
        click.echo(f"Server unhealthy: {e}", err=True)
        sys.exit(1)


def _run_http_server(config: ServerConfig) -> None:
    """Run the HTTP server."""
    import uvicorn

    from .app import create_app

    # Logs go to stderr
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    click.echo(f"Starting SSE transport on http://{config.host}:{config.port}", err=True)
    click.echo(f"  Stream: {config.sse_path}  Messages: {config.message_path}", err=True)
    click.echo("Press Ctrl+C to stop", err=True)

    uvicorn.run(
        create_app(config),
        host=config.host,
        port=config.port,
        log_level=config.log_level.lower(),
    )


if __name__ == "__main__":
    main()
