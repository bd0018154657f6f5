"""Configuration loading utilities for the OSM tagging schema MCP server."""

from __future__ import annotations

import argparse
import json
import os
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Any, Mapping, MutableMapping, Sequence

ENV_PREFIX = "OSM_TAGGING_SCHEMA_"

BOOL_TRUE = {"1", "true", "t", "yes", "y", "on"}
BOOL_FALSE = {"0", "false", "f", "no", "n", "off"}

TRANSPORTS = ("stdio", "http", "sse")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

DEFAULT_HTTP_HOST = "127.0.0.1"
DEFAULT_HTTP_PORT = 8765
DEFAULT_HTTP_PATH = "/mcp"
DEFAULT_METRICS_PATH = "/metrics"
DEFAULT_SCHEMA_VERSION = "6"
DEFAULT_SCHEMA_BASE_URL = "https://cdn.jsdelivr.net/npm/@openstreetmap/id-tagging-schema@{version}"
DEFAULT_DOWNLOAD_TIMEOUT = "30s"
DEFAULT_LOCALE = "en"


def _default_cache_dir() -> Path:
    """Return the default download cache directory under the user's home."""

    return (Path.home() / ".cache" / "osm-tagging-schema").resolve()


DEFAULT_CACHE_DIR = _default_cache_dir()

T_DURATION_UNITS = {"s": 1, "m": 60, "h": 3600}

ENV_FIELD_MAP = {
    "config_file": f"{ENV_PREFIX}CONFIG_FILE",
    "schema_dir": f"{ENV_PREFIX}SCHEMA_DIR",
    "cache_dir": f"{ENV_PREFIX}CACHE_DIR",
    "schema_version": f"{ENV_PREFIX}SCHEMA_VERSION",
    "schema_base_url": f"{ENV_PREFIX}SCHEMA_BASE_URL",
    "download_timeout": f"{ENV_PREFIX}DOWNLOAD_TIMEOUT",
    "locale": f"{ENV_PREFIX}LOCALE",
    "warmup": f"{ENV_PREFIX}WARMUP",
    "transport": f"{ENV_PREFIX}TRANSPORT",
    "http_host": f"{ENV_PREFIX}HTTP_HOST",
    "http_port": f"{ENV_PREFIX}HTTP_PORT",
    "http_path": f"{ENV_PREFIX}HTTP_PATH",
    "http_socket_path": f"{ENV_PREFIX}HTTP_SOCKET_PATH",
    "enable_metrics": f"{ENV_PREFIX}ENABLE_METRICS",
    "metrics_path": f"{ENV_PREFIX}METRICS_PATH",
    "log_level": f"{ENV_PREFIX}LOG_LEVEL",
}

DEFAULT_VALUES: dict[str, Any] = {
    "config_file": None,
    "schema_dir": None,
    "cache_dir": str(DEFAULT_CACHE_DIR),
    "schema_version": DEFAULT_SCHEMA_VERSION,
    "schema_base_url": DEFAULT_SCHEMA_BASE_URL,
    "download_timeout": DEFAULT_DOWNLOAD_TIMEOUT,
    "locale": DEFAULT_LOCALE,
    "warmup": True,
    "transport": "stdio",
    "http_host": DEFAULT_HTTP_HOST,
    "http_port": DEFAULT_HTTP_PORT,
    "http_path": DEFAULT_HTTP_PATH,
    "http_socket_path": None,
    "enable_metrics": False,
    "metrics_path": DEFAULT_METRICS_PATH,
    "log_level": "INFO",
}


class ConfigError(ValueError):
    """Raised when configuration values are invalid."""


@dataclass(slots=True)
class Config:
    """Configuration model for the OSM tagging schema MCP server."""

    schema_dir: Path | None
    cache_dir: Path
    schema_version: str
    schema_base_url: str
    download_timeout: timedelta
    locale: str
    warmup: bool
    transport: str
    http_host: str
    http_port: int
    http_path: str
    http_socket_path: Path | None
    enable_metrics: bool
    metrics_path: str
    log_level: str
    config_file: Path | None = None

    @property
    def resolved_base_url(self) -> str:
        return self.schema_base_url.replace("{version}", self.schema_version).rstrip("/")


def load_config(
    argv: Sequence[str] | None = None,
    environ: Mapping[str, str] | None = None,
) -> Config:
    """Load configuration from CLI arguments, environment variables, and optional file."""

    parser = _build_arg_parser()
    parsed = parser.parse_args(argv)
    cli_values = {k: v for k, v in vars(parsed).items() if v is not None}

    env_values = _extract_env_values(environ if environ is not None else os.environ)

    config_path_value = cli_values.get("config_file") or env_values.get("config_file")
    file_values = _load_config_file(config_path_value)

    merged: dict[str, Any] = {}
    _merge_layer(merged, DEFAULT_VALUES)
    _merge_layer(merged, file_values)
    _merge_layer(merged, env_values)
    _merge_layer(merged, cli_values)

    return _normalize_values(merged, config_path_value)


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="osm-tagging-schema-mcp",
        description="OSM tagging schema MCP server configuration flags.",
        add_help=False,
        formatter_class=argparse.RawTextHelpFormatter,
    )
    parser.add_argument("-h", "--help", action="help", help="Show this help message and exit.")
    parser.add_argument(
        "--config-file",
        dest="config_file",
        metavar="PATH",
        help="Path to a JSON configuration file. Default: none.",
    )
    parser.add_argument(
        "--schema-dir",
        dest="schema_dir",
        metavar="PATH",
        help="Directory containing the id-tagging-schema dist files (presets.json, fields.json, ...).",
    )
    parser.add_argument(
        "--cache-dir",
        dest="cache_dir",
        metavar="PATH",
        help=f"Download cache used when --schema-dir is not given (default: {DEFAULT_CACHE_DIR}).",
    )
    parser.add_argument(
        "--schema-version",
        dest="schema_version",
        metavar="VERSION",
        help=f"id-tagging-schema package version or tag to download (default: {DEFAULT_SCHEMA_VERSION}).",
    )
    parser.add_argument(
        "--schema-base-url",
        dest="schema_base_url",
        metavar="URL",
        help="Base URL of the schema package; '{version}' is substituted (default: jsDelivr).",
    )
    parser.add_argument(
        "--download-timeout",
        dest="download_timeout",
        metavar="DURATION",
        help=f"Timeout for each dataset download (default: {DEFAULT_DOWNLOAD_TIMEOUT}).",
    )
    parser.add_argument(
        "--locale",
        dest="locale",
        metavar="LOCALE",
        help=f"Translation locale used for display names (default: {DEFAULT_LOCALE}).",
    )
    parser.add_argument(
        "--warmup",
        dest="warmup",
        metavar="BOOL",
        help="Load and index the schema at startup instead of on first request (default: true).",
    )

    parser.add_argument(
        "--transport",
        dest="transport",
        metavar="MODE",
        help="Transport to serve: stdio, http, or sse (default: stdio).",
    )
    parser.add_argument(
        "--http-host",
        dest="http_host",
        metavar="HOST",
        help=f"HTTP listener host (default: {DEFAULT_HTTP_HOST}).",
    )
    parser.add_argument(
        "--http-port",
        dest="http_port",
        metavar="PORT",
        help=f"HTTP listener port (default: {DEFAULT_HTTP_PORT}).",
    )
    parser.add_argument(
        "--http-path",
        dest="http_path",
        metavar="PATH",
        help=f"Endpoint path for MCP requests (default: {DEFAULT_HTTP_PATH}).",
    )
    parser.add_argument(
        "--http-socket-path",
        dest="http_socket_path",
        metavar="PATH",
        help="Unix domain socket path for the HTTP listener (optional).",
    )
    parser.add_argument(
        "--enable-metrics",
        dest="enable_metrics",
        metavar="BOOL",
        help="Expose Prometheus metrics (requires --transport http or sse; default: false).",
    )
    parser.add_argument(
        "--metrics-path",
        dest="metrics_path",
        metavar="PATH",
        help=f"Metrics endpoint path (default: {DEFAULT_METRICS_PATH}).",
    )
    parser.add_argument(
        "--log-level",
        dest="log_level",
        metavar="LEVEL",
        help="Log level: DEBUG, INFO, WARNING, ERROR, CRITICAL (default: INFO).",
    )

    return parser


def _extract_env_values(env: Mapping[str, str]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for field, env_name in ENV_FIELD_MAP.items():
        if env_name in env:
            values[field] = env[env_name]
    return values


def _load_config_file(path_value: str | Path | None) -> dict[str, Any]:
    if not path_value:
        return {}
    path = _parse_path(path_value, field="config_file")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ConfigError(f"Config file not found: {path}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Config file is not valid JSON: {path}") from exc
    if not isinstance(data, dict):
        raise ConfigError("Config file must contain a JSON object")
    result: dict[str, Any] = {k: v for k, v in data.items() if k in DEFAULT_VALUES}
    result["config_file"] = str(path)
    return result


def _merge_layer(base: MutableMapping[str, Any], overrides: Mapping[str, Any]) -> None:
    for key, value in overrides.items():
        if value is None:
            continue
        base[key] = value


def _normalize_values(values: Mapping[str, Any], config_path_value: str | Path | None) -> Config:
    schema_dir = _parse_optional_path(values.get("schema_dir"), field="schema_dir")
    cache_dir = _parse_path(values.get("cache_dir", DEFAULT_VALUES["cache_dir"]), field="cache_dir")

    schema_version = str(values.get("schema_version", DEFAULT_VALUES["schema_version"])).strip()
    if not schema_version:
        raise ConfigError("schema_version may not be empty")
    schema_base_url = str(values.get("schema_base_url", DEFAULT_VALUES["schema_base_url"])).strip()
    if not schema_base_url.startswith(("http://", "https://")):
        raise ConfigError("schema_base_url must be an http(s) URL")

    download_timeout = _parse_duration(
        values.get("download_timeout", DEFAULT_VALUES["download_timeout"]),
        default_unit="s",
        field="download_timeout",
    )

    locale = str(values.get("locale", DEFAULT_VALUES["locale"])).strip()
    if not locale:
        raise ConfigError("locale may not be empty")

    warmup = _parse_bool(values.get("warmup"), default=DEFAULT_VALUES["warmup"])

    transport = str(values.get("transport", DEFAULT_VALUES["transport"])).strip().lower()
    if transport not in TRANSPORTS:
        raise ConfigError("transport must be one of: stdio, http, sse")

    http_host = str(values.get("http_host", DEFAULT_VALUES["http_host"]))
    http_port = _parse_int(values.get("http_port", DEFAULT_VALUES["http_port"]), field="http_port", minimum=0, maximum=65535)
    http_path = str(values.get("http_path", DEFAULT_VALUES["http_path"]))
    http_socket_path = _parse_optional_path(values.get("http_socket_path"), field="http_socket_path")

    enable_metrics = _parse_bool(values.get("enable_metrics"), default=DEFAULT_VALUES["enable_metrics"])
    if enable_metrics and transport == "stdio":
        raise ConfigError("enable_metrics requires the http or sse transport")
    metrics_path = str(values.get("metrics_path", DEFAULT_VALUES["metrics_path"]))
    if enable_metrics and metrics_path == http_path:
        raise ConfigError("http_path and metrics_path must be distinct")

    log_level = str(values.get("log_level", DEFAULT_VALUES["log_level"])).strip().upper()
    if log_level not in LOG_LEVELS:
        raise ConfigError(f"log_level must be one of: {', '.join(LOG_LEVELS)}")

    config_file_path = _parse_optional_path(config_path_value, field="config_file")

    return Config(
        schema_dir=schema_dir,
        cache_dir=cache_dir,
        schema_version=schema_version,
        schema_base_url=schema_base_url,
        download_timeout=download_timeout,
        locale=locale,
        warmup=warmup,
        transport=transport,
        http_host=http_host,
        http_port=http_port,
        http_path=http_path,
        http_socket_path=http_socket_path,
        enable_metrics=enable_metrics,
        metrics_path=metrics_path,
        log_level=log_level,
        config_file=config_file_path,
    )


def _parse_bool(value: Any, *, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in BOOL_TRUE:
            return True
        if lowered in BOOL_FALSE:
            return False
    raise ConfigError(f"Invalid boolean value: {value!r}")


def _parse_int(value: Any, *, field: str, minimum: int | None = None, maximum: int | None = None) -> int:
    try:
        if isinstance(value, (int, float)):
            int_value = int(value)
        else:
            int_value = int(str(value).strip())
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid integer for {field}: {value!r}") from exc

    if minimum is not None and int_value < minimum:
        raise ConfigError(f"{field} must be >= {minimum}")
    if maximum is not None and int_value > maximum:
        raise ConfigError(f"{field} must be <= {maximum}")
    return int_value


def _parse_duration(value: Any, *, default_unit: str, field: str) -> timedelta:
    if isinstance(value, timedelta):
        return value
    if isinstance(value, (int, float)):
        seconds = float(value)
        if seconds <= 0:
            raise ConfigError(f"{field} must be positive")
        return timedelta(seconds=seconds)
    if not isinstance(value, str):
        raise ConfigError(f"Invalid duration for {field}: {value!r}")

    stripped = value.strip()
    if not stripped:
        raise ConfigError(f"{field} may not be empty")

    unit = default_unit
    suffix = stripped[-1]
    number_part = stripped
    if suffix.lower() in T_DURATION_UNITS:
        unit = suffix.lower()
        number_part = stripped[:-1]
    if not number_part or not number_part.isdigit():
        raise ConfigError(f"{field} must be a positive integer optionally suffixed with s, m, or h")
    amount = int(number_part)
    if amount <= 0:
        raise ConfigError(f"{field} must be positive")
    return timedelta(seconds=amount * T_DURATION_UNITS[unit])


def _parse_path(value: Any, *, field: str) -> Path:
    if isinstance(value, Path):
        return value.expanduser().resolve()
    if not isinstance(value, str):
        raise ConfigError(f"Invalid path for {field}: {value!r}")
    stripped = value.strip()
    if not stripped:
        raise ConfigError(f"{field} may not be empty")
    return Path(stripped).expanduser().resolve()


def _parse_optional_path(value: Any, *, field: str) -> Path | None:
    if value in (None, ""):
        return None
    return _parse_path(value, field=field)
