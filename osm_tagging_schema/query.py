"""Key, preset, category and statistics lookups over a ``SchemaIndex``.

Every function here is a pure read of the index. Unknown keys, presets and
categories produce empty or ``None`` results rather than errors.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from .models import Field, Preset, WILDCARD, is_literal_value
from .schema import SchemaIndex

__all__ = [
    "TEMPLATES",
    "describe_tag_values",
    "expand_field_references",
    "get_categories",
    "get_category_tags",
    "get_preset_details",
    "get_preset_tags",
    "get_schema_stats",
    "get_tag_info",
    "get_tag_values",
    "resolve_preset_id",
]

# Field groups referenced from presets as ``{@templates/<name>}``.
TEMPLATES: dict[str, tuple[str, ...]] = {
    "contact": ("email", "phone", "website", "fax"),
    "internet_access": ("internet_access", "internet_access/fee", "internet_access/ssid"),
    "poi": ("name", "address"),
    "crossing/markings": ("crossing/markings",),
    "crossing/defaults": ("crossing", "crossing/markings"),
    "crossing/geometry_way_more": ("crossing/island",),
    "crossing/bicycle_more": (),
    "crossing/markings_yes": ("crossing/markings_yes",),
    "crossing/traffic_signal": ("crossing/light", "button_operated"),
    "crossing/traffic_signal_more": ("traffic_signals/sound", "traffic_signals/vibration"),
}

_TEMPLATE_PREFIX = "{@templates/"


def _resolve_key(index: SchemaIndex, key: str) -> tuple[Field | None, str]:
    field = index.field_for_key(key)
    return field, (field.key if field is not None else key)


def _collect_values(index: SchemaIndex, field: Field | None, actual_key: str) -> list[str]:
    values: set[str] = set()
    if field is not None and field.options:
        values.update(option for option in field.options if option)
    for preset in index.presets_using_key(actual_key):
        for source in (preset.tags, preset.add_tags):
            value = source.get(actual_key)
            if is_literal_value(value):
                values.add(value)
    return sorted(values)


def get_tag_values(index: SchemaIndex, key: str) -> list[str]:
    """All known literal values for ``key``: field options plus preset values, sorted."""

    field, actual_key = _resolve_key(index, key)
    return _collect_values(index, field, actual_key)


def _value_details(index: SchemaIndex, field: Field | None, values: Iterable[str]) -> list[dict[str, str]]:
    details: list[dict[str, str]] = []
    for value in values:
        if field is None:
            details.append({"value": value, "title": value})
            continue
        details.append({"value": value, **index.option_translation(field.path, value).to_dict()})
    return details


def describe_tag_values(index: SchemaIndex, key: str) -> dict[str, Any]:
    field, actual_key = _resolve_key(index, key)
    values = _collect_values(index, field, actual_key)
    key_name = index.field_label(field.path) if field is not None else index.tag_key_name(actual_key)
    return {
        "key": actual_key,
        "key_name": key_name,
        "values": values,
        "values_detailed": _value_details(index, field, values),
    }


def get_tag_info(index: SchemaIndex, key: str) -> dict[str, Any]:
    """Values plus field metadata for ``key``.

    The returned ``key`` is always the colon-separated OSM key, even when the
    field was found through its slash path.
    """

    field, actual_key = _resolve_key(index, key)
    values = _collect_values(index, field, actual_key)
    info: dict[str, Any] = {
        "key": actual_key,
        "values": values,
        "values_detailed": _value_details(index, field, values),
        "has_field_definition": field is not None,
    }
    if field is not None:
        info["type"] = field.type
        info["name"] = index.field_label(field.path)
    return info


# -- presets -----------------------------------------------------------------


def expand_field_references(
    index: SchemaIndex,
    references: Iterable[str],
    visited: set[str] | None = None,
) -> list[str]:
    """Expand ``{preset}`` and ``{@templates/name}`` references into field paths.

    Preset references inherit the referenced preset's ``fields`` recursively;
    a preset already visited is skipped so cycles terminate. Unknown
    references are kept verbatim.
    """

    if visited is None:
        visited = set()
    expanded: list[str] = []
    for reference in references:
        if reference.startswith(_TEMPLATE_PREFIX) and reference.endswith("}"):
            template = TEMPLATES.get(reference[len(_TEMPLATE_PREFIX):-1])
            if template is None:
                expanded.append(reference)
            else:
                expanded.extend(template)
        elif reference.startswith("{") and reference.endswith("}"):
            preset_id = reference[1:-1]
            if preset_id in visited:
                continue
            visited.add(preset_id)
            referenced = index.presets.get(preset_id)
            if referenced is None:
                expanded.append(reference)
            else:
                expanded.extend(expand_field_references(index, referenced.fields, visited))
        else:
            expanded.append(reference)
    return expanded


def _find_preset_by_tag(index: SchemaIndex, notation: str) -> str | None:
    key, _, value = notation.partition("=")
    key, value = key.strip(), value.strip()
    if not key or not value:
        return None
    candidates = index.presets_with_tag(key, value)
    return candidates[0].id if candidates else None


def _find_preset_by_tags(index: SchemaIndex, tags: Mapping[str, str]) -> str | None:
    entries = list(tags.items())
    if not entries:
        return None
    first_key, first_value = entries[0]
    candidates: list[Preset] = index.presets_with_tag(first_key, first_value)
    for key, value in entries[1:]:
        candidates = [
            preset for preset in candidates if preset.tags.get(key) in (value, WILDCARD)
        ]
    if not candidates:
        return None
    # exact tag-count matches first, then the most specific preset
    size = len(entries)
    candidates.sort(key=lambda preset: (len(preset.tags) != size, -len(preset.tags)))
    return candidates[0].id


def resolve_preset_id(index: SchemaIndex, preset: str | Mapping[str, str]) -> str | None:
    """Map a preset ID, ``key=value`` notation, or tag mapping to a known preset ID."""

    if isinstance(preset, Mapping):
        return _find_preset_by_tags(index, preset)
    text = preset.strip()
    if "=" in text:
        return _find_preset_by_tag(index, text)
    return text if text in index.presets else None


def _tags_detailed(index: SchemaIndex, tags: Mapping[str, str]) -> list[dict[str, str]]:
    return [
        {
            "key": key,
            "key_name": index.tag_key_name(key),
            "value": value,
            "value_name": index.tag_value_name(key, value),
        }
        for key, value in tags.items()
        if value != WILDCARD
    ]


def get_preset_details(index: SchemaIndex, preset: str | Mapping[str, str]) -> dict[str, Any] | None:
    preset_id = resolve_preset_id(index, preset)
    if preset_id is None:
        return None
    record = index.presets[preset_id]

    details = record.to_dict()
    details["name"] = index.preset_name(preset_id)
    details["tags_detailed"] = _tags_detailed(index, record.tags)
    fields = expand_field_references(index, record.fields)
    more_fields = expand_field_references(index, record.more_fields)
    if fields:
        details["fields"] = fields
    if more_fields:
        details["more_fields"] = more_fields
    return details


def get_preset_tags(index: SchemaIndex, preset_id: str) -> dict[str, Any] | None:
    preset = index.presets.get(preset_id)
    if preset is None:
        return None
    result: dict[str, Any] = {"tags": dict(preset.tags)}
    if preset.add_tags:
        result["add_tags"] = dict(preset.add_tags)
    return result


# -- categories and statistics -----------------------------------------------


def get_categories(index: SchemaIndex) -> list[dict[str, Any]]:
    return [
        {
            "name": category_id,
            "display_name": index.category_name(category_id),
            "count": len(category.members),
        }
        for category_id, category in sorted(index.categories.items())
    ]


def get_category_tags(index: SchemaIndex, category: str) -> list[str]:
    record = index.categories.get(category)
    return list(record.members) if record is not None else []


def get_schema_stats(index: SchemaIndex) -> dict[str, Any]:
    return {
        "preset_count": len(index.presets),
        "field_count": len(index.fields),
        "category_count": len(index.categories),
        "deprecated_count": len(index.deprecations),
        **index.metadata.to_dict(),
    }
