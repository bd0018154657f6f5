from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Any

import pytest
from fastmcp import FastMCP

from osm_tagging_schema.transports.http import HttpTransportConfig, describe_routes, normalise_path, run_http


def test_describe_routes_respects_metrics_toggle() -> None:
    config = HttpTransportConfig(host="127.0.0.1", port=1234, path="mcp/", enable_metrics=True)

    routes = describe_routes(config)

    assert routes == {"http": "/mcp", "metrics": "/metrics"}
    assert describe_routes(HttpTransportConfig(host="127.0.0.1", port=1234, path="/sse", transport="sse")) == {
        "sse": "/sse"
    }


def test_stdio_is_not_a_network_transport() -> None:
    with pytest.raises(ValueError):
        HttpTransportConfig(host="127.0.0.1", port=1234, path="/mcp", transport="stdio")


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("mcp", "/mcp"), ("/mcp/", "/mcp"), ("/", "/"), ("/a/b", "/a/b")],
)
def test_normalise_path(raw: str, expected: str) -> None:
    assert normalise_path(raw) == expected


@pytest.mark.parametrize("socket_path", [None, Path("/tmp/mock.sock")])
def test_run_http_invokes_uvicorn(monkeypatch: pytest.MonkeyPatch, socket_path: Path | None) -> None:
    captured: dict[str, Any] = {}

    class DummyConfig:  # mimics uvicorn.Config signature
        def __init__(self, app, host, port, **kwargs):
            captured["app"] = app
            captured["host"] = host
            captured["port"] = port
            captured["kwargs"] = kwargs
            self.app = app

    class DummyServer:
        def __init__(self, config):
            captured["config"] = config

        async def serve(self) -> None:
            captured["served"] = True

    monkeypatch.setattr("osm_tagging_schema.transports.http.uvicorn.Config", DummyConfig)
    monkeypatch.setattr("osm_tagging_schema.transports.http.uvicorn.Server", DummyServer)

    server = FastMCP(name="test-http")
    config = HttpTransportConfig(
        host="127.0.0.1",
        port=0,
        path="/mcp",
        socket_path=socket_path,
    )

    run_http(server, config)

    assert captured["host"] == "127.0.0.1"
    assert captured["port"] == 0
    if socket_path is None:
        assert "uds" not in captured["kwargs"]
    else:
        assert captured["kwargs"]["uds"] == str(socket_path)
    assert captured["served"] is True
    assert getattr(captured["app"].state, "fastmcp_server") is server
    assert captured["app"].state.path == "/mcp"


def test_run_http_passes_level_name_to_log_context(monkeypatch: pytest.MonkeyPatch) -> None:
    levels: list[Any] = []

    @contextmanager
    def recording_log_level(level: Any = None, rich_tracebacks: bool | None = None):
        levels.append(level)
        yield

    class DummyServer:
        def __init__(self, config):
            self.config = config

        async def serve(self) -> None:
            return None

    monkeypatch.setattr("osm_tagging_schema.transports.http.temporary_log_level", recording_log_level)
    monkeypatch.setattr("osm_tagging_schema.transports.http.uvicorn.Server", DummyServer)

    run_http(FastMCP(name="test-http"), HttpTransportConfig(host="127.0.0.1", port=0, path="/mcp", transport="sse"))

    assert len(levels) == 1
    assert isinstance(levels[0], str)
    assert levels[0].isupper()
