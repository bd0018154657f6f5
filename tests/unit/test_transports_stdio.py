from __future__ import annotations

from datetime import timedelta
from pathlib import Path
from typing import Any

import pytest

from osm_tagging_schema.config import Config
from osm_tagging_schema.errors import SchemaLoadError
from osm_tagging_schema.server import SERVER, main as run_main
from osm_tagging_schema.transports.stdio import run_stdio


class _DummyServer:
    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []

    def run(self, *, transport: str, show_banner: bool) -> None:
        self.calls.append({"transport": transport, "show_banner": show_banner})


def _make_config(schema_dir: Path, *, transport: str) -> Config:
    return Config(
        schema_dir=schema_dir,
        cache_dir=schema_dir / "cache",
        schema_version="6",
        schema_base_url="https://cdn.jsdelivr.net/npm/@openstreetmap/id-tagging-schema@{version}",
        download_timeout=timedelta(seconds=30),
        locale="en",
        warmup=True,
        transport=transport,
        http_host="127.0.0.1",
        http_port=8765,
        http_path="/mcp",
        http_socket_path=None,
        enable_metrics=False,
        metrics_path="/metrics",
        log_level="INFO",
        config_file=None,
    )


def _patch_lifecycle(monkeypatch: pytest.MonkeyPatch, config: Config, calls: list[tuple[Any, ...]]) -> None:
    monkeypatch.setattr("osm_tagging_schema.server.configure_logging", lambda *args, **kwargs: None)
    monkeypatch.setattr("osm_tagging_schema.server.initialize_app", lambda cfg: calls.append(("init", cfg)))
    monkeypatch.setattr("osm_tagging_schema.server.shutdown_app", lambda: calls.append(("shutdown",)))
    monkeypatch.setattr("osm_tagging_schema.server.load_config", lambda argv: config)
    monkeypatch.setattr("osm_tagging_schema.server.run_http", lambda *args, **kwargs: calls.append(("http", args)))


def test_run_stdio_invokes_fastmcp() -> None:
    dummy = _DummyServer()

    run_stdio(dummy, show_banner=False)

    assert dummy.calls == [{"transport": "stdio", "show_banner": False}]


def test_run_stdio_propagates_keyboard_interrupt() -> None:
    class InterruptingServer:
        def run(self, *, transport: str, show_banner: bool) -> None:
            raise KeyboardInterrupt

    with pytest.raises(KeyboardInterrupt):
        run_stdio(InterruptingServer())


def test_main_runs_stdio_by_default(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    config = _make_config(tmp_path, transport="stdio")
    calls: list[tuple[Any, ...]] = []
    _patch_lifecycle(monkeypatch, config, calls)

    def _capture_stdio(server: Any, *, show_banner: bool = True) -> None:
        calls.append(("stdio", server, show_banner))

    monkeypatch.setattr("osm_tagging_schema.server.run_stdio", _capture_stdio)

    run_main([])

    assert ("init", config) in calls
    assert ("stdio", SERVER, True) in calls
    assert all(call[0] != "http" for call in calls)
    assert calls[-1] == ("shutdown",)


def test_main_runs_http_for_network_transport(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    config = _make_config(tmp_path, transport="sse")
    calls: list[tuple[Any, ...]] = []
    _patch_lifecycle(monkeypatch, config, calls)
    monkeypatch.setattr("osm_tagging_schema.server.run_stdio", lambda *args, **kwargs: calls.append(("stdio", args)))

    run_main([])

    http_calls = [call for call in calls if call[0] == "http"]
    assert len(http_calls) == 1
    server, http_config = http_calls[0][1]
    assert server is SERVER
    assert http_config.transport == "sse"
    assert http_config.path == "/mcp"
    assert all(call[0] != "stdio" for call in calls)


def test_main_exits_when_schema_cannot_load(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    config = _make_config(tmp_path, transport="stdio")
    calls: list[tuple[Any, ...]] = []
    _patch_lifecycle(monkeypatch, config, calls)

    def _failing_init(cfg: Config) -> None:
        raise SchemaLoadError("Schema file not found: presets.json")

    monkeypatch.setattr("osm_tagging_schema.server.initialize_app", _failing_init)
    monkeypatch.setattr("osm_tagging_schema.server.run_stdio", lambda *args, **kwargs: calls.append(("stdio",)))

    with pytest.raises(SystemExit) as excinfo:
        run_main([])

    assert excinfo.value.code == 1
    assert ("stdio",) not in calls


def test_main_exits_on_invalid_configuration(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("osm_tagging_schema.server.configure_logging", lambda *args, **kwargs: None)

    with pytest.raises(SystemExit) as excinfo:
        run_main(["--transport", "carrier-pigeon"])

    assert excinfo.value.code == 2
