"""Streamable HTTP and SSE transports served by uvicorn."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import uvicorn
from fastmcp import FastMCP
from fastmcp.utilities.logging import temporary_log_level
from starlette.applications import Starlette

from ..logging import get_logger

logger = get_logger(__name__)

NETWORK_TRANSPORTS = ("http", "sse")


@dataclass(slots=True)
class HttpTransportConfig:
    """Settings for one network transport endpoint."""

    host: str
    port: int
    path: str
    transport: str = "http"
    metrics_path: str = "/metrics"
    enable_metrics: bool = False
    socket_path: Path | None = None

    def __post_init__(self) -> None:
        if self.transport not in NETWORK_TRANSPORTS:
            raise ValueError(f"Unsupported network transport: {self.transport}")


def describe_routes(config: HttpTransportConfig) -> Mapping[str, str]:
    """Return a mapping of logical endpoints to their configured paths."""

    routes: dict[str, str] = {config.transport: normalise_path(config.path)}
    if config.enable_metrics:
        routes["metrics"] = normalise_path(config.metrics_path)
    return routes


def build_app(server: FastMCP, config: HttpTransportConfig) -> Starlette:
    """Create the Starlette application for the configured transport.

    Custom routes registered on ``server`` (such as metrics) are mounted by
    FastMCP alongside the MCP endpoint.
    """

    return server.http_app(path=normalise_path(config.path), transport=config.transport)


def run_http(server: FastMCP, config: HttpTransportConfig) -> None:
    """Run the MCP server over HTTP or SSE until interrupted."""

    context = {
        "host": config.host,
        "port": config.port,
        "transport": config.transport,
        "routes": dict(describe_routes(config)),
        "socket_path": str(config.socket_path) if config.socket_path else None,
    }

    async def _serve() -> None:
        app = build_app(server, config)
        uvicorn_kwargs: dict[str, Any] = {
            "timeout_graceful_shutdown": 0,
            "lifespan": "on",
        }
        if config.socket_path is not None:
            uvicorn_kwargs["uds"] = str(config.socket_path)

        uvicorn_config = uvicorn.Config(app, host=config.host, port=config.port, **uvicorn_kwargs)
        server_instance = uvicorn.Server(uvicorn_config)
        log_level = logging.getLevelName(logger.getEffectiveLevel())
        with temporary_log_level(level=log_level):
            await server_instance.serve()

    logger.info("transport.http.start", extra={"context": context})
    try:
        asyncio.run(_serve())
    except KeyboardInterrupt:
        logger.info("transport.http.interrupted", extra={"context": context})
        raise
    except Exception:
        logger.exception("transport.http.failed", extra={"context": context})
        raise
    logger.info("transport.http.stop", extra={"context": context})


def normalise_path(path: str) -> str:
    if not path.startswith("/"):
        path = "/" + path
    if len(path) > 1 and path.endswith("/"):
        path = path.rstrip("/")
    return path
