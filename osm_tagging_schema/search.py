"""Keyword search over presets and tag co-occurrence."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .models import WILDCARD, is_literal_value
from .schema import SchemaIndex

__all__ = [
    "DEFAULT_SEARCH_LIMIT",
    "get_related_tags",
    "search_presets",
    "search_tags",
]

DEFAULT_SEARCH_LIMIT = 100
MAX_PRESET_EXAMPLES = 3


def search_tags(index: SchemaIndex, keyword: str, limit: int = DEFAULT_SEARCH_LIMIT) -> list[dict[str, Any]]:
    """Case-insensitive substring search over preset tags and preset names.

    A tag entry is a candidate when its key or value contains the keyword, or
    when the owning preset's name does (which pulls in every tag of that
    preset). Results keep preset order, are unique per ``key=value`` and stop
    as soon as ``limit`` entries are collected.
    """

    needle = keyword.lower()
    results: list[dict[str, Any]] = []
    if limit <= 0:
        return results
    seen: set[str] = set()

    for preset in index.iter_presets():
        preset_name = index.raw_preset_name(preset.id)
        name_match = bool(preset_name) and needle in preset_name.lower()
        for source in (preset.tags, preset.add_tags):
            for key, value in source.items():
                if not is_literal_value(value):
                    continue
                if not (name_match or needle in key.lower() or needle in value.lower()):
                    continue
                pair = f"{key}={value}"
                if pair in seen:
                    continue
                seen.add(pair)
                entry: dict[str, Any] = {"key": key, "value": value}
                if preset_name:
                    entry["preset_name"] = preset_name
                results.append(entry)
                if len(results) >= limit:
                    return results
    return results


def _tag_detail(index: SchemaIndex, key: str, value: str) -> dict[str, str]:
    return {
        "key": key,
        "key_name": index.tag_key_name(key),
        "value": value,
        "value_name": WILDCARD if value == WILDCARD else index.tag_value_name(key, value),
    }


def search_presets(
    index: SchemaIndex,
    keyword: str,
    *,
    limit: int | None = None,
    geometry: str | None = None,
) -> list[dict[str, Any]]:
    """Find presets by ``key=value`` or by a keyword found in IDs and tags."""

    needle = keyword.lower()
    search_key: str | None = None
    search_value: str | None = None
    if "=" in needle:
        search_key, _, search_value = needle.partition("=")

    results: list[dict[str, Any]] = []
    if limit is not None and limit <= 0:
        return results

    candidates = index.presets_for_geometry(geometry) if geometry else index.iter_presets()
    for preset in candidates:
        if search_key is not None:
            actual = preset.tags.get(search_key)
            matches = bool(search_key and search_value) and actual is not None and actual.lower() == search_value
        else:
            matches = needle in preset.id.lower() or any(
                needle in key.lower() or needle in value.lower() for key, value in preset.tags.items()
            )
        if not matches:
            continue

        results.append(
            {
                "id": preset.id,
                "name": index.preset_name(preset.id),
                "tags": dict(preset.tags),
                "tags_detailed": [_tag_detail(index, key, value) for key, value in preset.tags.items()],
                "geometry": list(preset.geometry),
            }
        )
        if limit is not None and len(results) >= limit:
            break
    return results


@dataclass(slots=True)
class _Cooccurrence:
    count: int = 0
    examples: list[str] = field(default_factory=list)


def get_related_tags(index: SchemaIndex, tag: str, limit: int | None = None) -> list[dict[str, Any]]:
    """Tags appearing alongside ``tag`` (``key`` or ``key=value``) across presets.

    Frequencies count presets; results are sorted by frequency, most common
    first, with up to three example preset names each.
    """

    if "=" in tag:
        input_key, _, input_value = tag.partition("=")
        wanted: str | None = input_value
    else:
        input_key, wanted = tag, None

    related: dict[str, _Cooccurrence] = {}
    for preset in index.presets_using_key(input_key):
        if wanted is not None and wanted not in (preset.tags.get(input_key), preset.add_tags.get(input_key)):
            continue

        preset_name = index.raw_preset_name(preset.id)
        for key, value in preset.all_tags().items():
            if not is_literal_value(value):
                continue
            if key == input_key and (wanted is None or value == wanted):
                continue
            entry = related.setdefault(f"{key}={value}", _Cooccurrence())
            entry.count += 1
            if preset_name and len(entry.examples) < MAX_PRESET_EXAMPLES:
                entry.examples.append(preset_name)

    ranked = sorted(related.items(), key=lambda item: item[1].count, reverse=True)
    results: list[dict[str, Any]] = []
    for pair, entry in ranked:
        key, _, value = pair.partition("=")
        result: dict[str, Any] = {"key": key, "value": value, "frequency": entry.count}
        if entry.examples:
            result["preset_examples"] = list(entry.examples)
        results.append(result)

    if limit is not None:
        return results[:limit]
    return results
