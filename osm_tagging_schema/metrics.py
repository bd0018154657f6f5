from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from threading import RLock
from time import monotonic
from typing import Mapping

_registry_lock = RLock()
_registry: "MetricsRegistry | None" = None


@dataclass(frozen=True)
class MetricsSnapshot:
    """Immutable snapshot of the current metrics state."""

    tool_calls: Mapping[str, int]
    errors: Mapping[str, int]
    uptime_seconds: float


@dataclass(frozen=True)
class SchemaGauges:
    presets: int = 0
    fields: int = 0
    deprecations: int = 0
    loaded: bool = False


class MetricsRegistry:
    """Thread-safe registry storing counters for Prometheus export."""

    __slots__ = ("_tool_calls", "_errors", "_lock", "_started_at")

    def __init__(self) -> None:
        self._tool_calls: Counter[str] = Counter()
        self._errors: Counter[str] = Counter()
        self._lock = RLock()
        self._started_at = monotonic()

    def record_tool_call(self, name: str, *, count: int = 1) -> None:
        if count <= 0:
            return
        key = name.strip().lower()
        if not key:
            return
        with self._lock:
            self._tool_calls[key] += count

    def record_error(self, code: str, *, count: int = 1) -> None:
        if count <= 0:
            return
        key = code.strip().upper()
        if not key:
            return
        with self._lock:
            self._errors[key] += count

    def snapshot(self) -> MetricsSnapshot:
        with self._lock:
            tool_calls = {name: int(value) for name, value in self._tool_calls.items()}
            errors = {code: int(value) for code, value in self._errors.items()}
            uptime = max(monotonic() - self._started_at, 0.0)
        return MetricsSnapshot(tool_calls=tool_calls, errors=errors, uptime_seconds=uptime)

    def reset(self) -> None:
        with self._lock:
            self._tool_calls.clear()
            self._errors.clear()
            self._started_at = monotonic()


def install_registry(registry: MetricsRegistry | None) -> None:
    """Install the active metrics registry (or disable metrics when None)."""

    with _registry_lock:
        global _registry
        _registry = registry


def get_registry_optional() -> MetricsRegistry | None:
    with _registry_lock:
        return _registry


def record_tool_call(name: str, *, count: int = 1) -> None:
    registry = get_registry_optional()
    if registry is not None:
        registry.record_tool_call(name, count=count)


def record_error(code: str, *, count: int = 1) -> None:
    registry = get_registry_optional()
    if registry is not None:
        registry.record_error(code, count=count)


def format_prometheus(snapshot: MetricsSnapshot, gauges: SchemaGauges) -> str:
    """Render metrics using Prometheus exposition format (text, version 0.0.4)."""

    lines: list[str] = []

    lines.append("# HELP osm_tagging_schema_tool_calls_total Tool invocations by tool name.")
    lines.append("# TYPE osm_tagging_schema_tool_calls_total counter")
    for name in sorted(snapshot.tool_calls):
        lines.append(f'osm_tagging_schema_tool_calls_total{{tool="{name}"}} {snapshot.tool_calls[name]}')

    lines.append("# HELP osm_tagging_schema_errors_total Total errors returned, grouped by error code.")
    lines.append("# TYPE osm_tagging_schema_errors_total counter")
    if snapshot.errors:
        for code in sorted(snapshot.errors):
            lines.append(f'osm_tagging_schema_errors_total{{code="{code}"}} {snapshot.errors[code]}')
    else:
        lines.append('osm_tagging_schema_errors_total{code="none"} 0')

    lines.append("# HELP osm_tagging_schema_loaded Whether the schema index has been built.")
    lines.append("# TYPE osm_tagging_schema_loaded gauge")
    lines.append(f"osm_tagging_schema_loaded {1 if gauges.loaded else 0}")

    lines.append("# HELP osm_tagging_schema_presets Presets in the loaded schema.")
    lines.append("# TYPE osm_tagging_schema_presets gauge")
    lines.append(f"osm_tagging_schema_presets {gauges.presets}")

    lines.append("# HELP osm_tagging_schema_fields Fields in the loaded schema.")
    lines.append("# TYPE osm_tagging_schema_fields gauge")
    lines.append(f"osm_tagging_schema_fields {gauges.fields}")

    lines.append("# HELP osm_tagging_schema_deprecations Deprecation records in the loaded schema.")
    lines.append("# TYPE osm_tagging_schema_deprecations gauge")
    lines.append(f"osm_tagging_schema_deprecations {gauges.deprecations}")

    lines.append("# HELP osm_tagging_schema_uptime_seconds Server uptime in seconds.")
    lines.append("# TYPE osm_tagging_schema_uptime_seconds gauge")
    lines.append(f"osm_tagging_schema_uptime_seconds {snapshot.uptime_seconds:.6f}")

    return "\n".join(lines) + "\n"
