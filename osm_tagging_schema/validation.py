"""Deprecation checks, tag validation and improvement suggestions."""

from __future__ import annotations

from typing import Any, Mapping

from .models import WILDCARD, DeprecationRecord, Preset, key_to_path
from .schema import SchemaIndex

__all__ = [
    "MAX_SUGGESTION_PRESETS",
    "MAX_OPTIONAL_FIELDS",
    "check_deprecated",
    "find_deprecation",
    "match_presets",
    "suggest_improvements",
    "validate_tag",
    "validate_tag_collection",
]

MAX_SUGGESTION_PRESETS = 5
MAX_OPTIONAL_FIELDS = 3
COMBO_FIELD_TYPE = "combo"


def _format_pairs(tags: Mapping[str, str]) -> str:
    return ", ".join(f"{key}={value}" for key, value in tags.items())


def _deprecation_message(record: DeprecationRecord) -> str:
    message = f"Tag {_format_pairs(record.old)} is deprecated"
    if record.replace:
        return f"{message}. Consider using: {_format_pairs(record.replace)}"
    return message


def _case(record: DeprecationRecord, key: str) -> dict[str, Any]:
    case: dict[str, Any] = {
        "old_tags": dict(record.old),
        "deprecation_type": record.deprecation_type(key),
    }
    if record.replace:
        case["replacement"] = dict(record.replace)
    return case


def find_deprecation(index: SchemaIndex, key: str, value: str) -> DeprecationRecord | None:
    """First single-key record deprecating exactly ``key=value`` (no wildcard match)."""

    for record in index.deprecations_by_key.get(key, ()):
        if record.is_single_key and record.old.get(key) == value:
            return record
    return None


def check_deprecated(index: SchemaIndex, key: str, value: str | None = None) -> dict[str, Any]:
    """Collect every deprecation record that applies to ``key`` or ``key=value``.

    Without a value, any record whose ``old`` tags mention the key counts,
    multi-key records included. With a value, only single-key records for
    the key whose old value is the value itself or ``*`` count.
    """

    if not key or not key.strip():
        return {"deprecated": False, "message": "Empty key cannot be deprecated"}

    candidates = index.deprecations_by_key.get(key, ())
    if value is None:
        records = list(candidates)
        subject = f"Tag key '{key}'"
    else:
        records = [
            record
            for record in candidates
            if record.is_single_key and record.old.get(key) in (value, WILDCARD)
        ]
        subject = f"Tag {key}={value}"

    if not records:
        return {"deprecated": False, "message": f"{subject} is not deprecated"}

    if len(records) == 1:
        message = _deprecation_message(records[0])
    else:
        message = f"{subject} has {len(records)} deprecation cases"
    return {
        "deprecated": True,
        "cases": [_case(record, key) for record in records],
        "message": message,
    }


def validate_tag(index: SchemaIndex, key: str, value: str) -> dict[str, Any]:
    """Validate one tag. Unknown keys and non-standard values stay valid."""

    if not key or not key.strip():
        return {"valid": False, "deprecated": False, "message": "Tag key cannot be empty"}
    if not value or not value.strip():
        return {"valid": False, "deprecated": False, "message": "Tag value cannot be empty"}

    record = find_deprecation(index, key, value)
    if record is not None:
        result: dict[str, Any] = {
            "valid": True,
            "deprecated": True,
            "message": _deprecation_message(record),
        }
        if record.replace:
            result["replacement"] = dict(record.replace)
        return result

    field = index.field_for_key(key)
    if field is None:
        message = f"Tag key '{key}' not found in schema (custom tags are allowed in OpenStreetMap)"
    elif field.options and value not in field.options:
        if field.type == COMBO_FIELD_TYPE:
            message = (
                f"Value '{value}' is not in the standard options for '{key}', but custom values are allowed"
            )
        else:
            message = (
                f"Value '{value}' is not in the standard options for '{key}'. "
                f"Expected one of: {', '.join(field.options)}"
            )
    else:
        message = f"Tag {key}={value} is valid"
    return {"valid": True, "deprecated": False, "message": message}


def validate_tag_collection(index: SchemaIndex, tags: Mapping[str, str]) -> dict[str, Any]:
    tag_results: dict[str, dict[str, Any]] = {}
    valid_count = deprecated_count = error_count = 0
    for key, value in tags.items():
        result = validate_tag(index, key, value)
        tag_results[key] = result
        if not result["valid"]:
            error_count += 1
            continue
        valid_count += 1
        if result["deprecated"]:
            deprecated_count += 1
    return {
        "valid": error_count == 0,
        "tag_results": tag_results,
        "valid_count": valid_count,
        "deprecated_count": deprecated_count,
        "error_count": error_count,
    }


def _preset_matches(preset: Preset, tags: Mapping[str, str]) -> bool:
    if not preset.tags:
        return False
    for key, expected in preset.tags.items():
        actual = tags.get(key)
        if expected == WILDCARD:
            if not actual:
                return False
        elif actual != expected:
            return False
    return True


def match_presets(index: SchemaIndex, tags: Mapping[str, str]) -> list[str]:
    """IDs of presets whose whole tag pattern is satisfied by ``tags``, in preset order."""

    return [preset.id for preset in index.iter_presets() if _preset_matches(preset, tags)]


def _reference_key(index: SchemaIndex, reference: str) -> str | None:
    if reference.startswith("{"):
        return None
    field = index.field_for_path(key_to_path(reference))
    return field.key if field is not None else reference


def suggest_improvements(index: SchemaIndex, tags: Mapping[str, str]) -> dict[str, Any]:
    """Warn about deprecated tags and suggest fields missing for the matched presets."""

    suggestions: list[str] = []
    warnings: list[str] = []
    if not tags:
        return {"suggestions": suggestions, "warnings": warnings, "matched_presets": []}

    for key, value in tags.items():
        record = find_deprecation(index, key, value)
        if record is not None:
            warnings.append(_deprecation_message(record))

    matched = match_presets(index, tags)
    suggested: set[str] = set()
    for preset_id in matched[:MAX_SUGGESTION_PRESETS]:
        preset = index.presets[preset_id]
        sources = (
            (preset.fields, f"(common for {preset_id})"),
            (preset.more_fields[:MAX_OPTIONAL_FIELDS], None),
        )
        for references, reason in sources:
            for reference in references:
                field_key = _reference_key(index, reference)
                if not field_key or tags.get(field_key) or field_key in suggested:
                    continue
                suggested.add(field_key)
                if reason:
                    suggestions.append(f"Consider adding '{field_key}' tag {reason}")
                else:
                    suggestions.append(f"Optional: Consider adding '{field_key}' tag")

    return {"suggestions": suggestions, "warnings": warnings, "matched_presets": matched}
