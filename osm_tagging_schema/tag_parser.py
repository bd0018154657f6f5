"""Tag input normalization.

Tags arrive in three shapes: a mapping of key to value, a JSON object
encoded as text, or line-oriented ``key=value`` text. ``parse_tag_input``
funnels all of them into one canonical ``dict[str, str]`` with trimmed keys
and values, in input order.
"""

from __future__ import annotations

import json
import re
from typing import Any, Mapping

from .errors import TagFormatError, TagTypeError

__all__ = [
    "parse_tag_input",
    "parse_json_tags",
    "format_tags",
    "reject_empty_values",
]

_LINE_BREAKS = re.compile(r"\r\n|\r|\n")


def parse_tag_input(value: str | Mapping[str, Any]) -> dict[str, str]:
    """Normalize tag input into a mapping of trimmed keys to trimmed string values.

    Raises ``TagFormatError`` for malformed text and ``TagTypeError`` when a
    mapping value is not a string.
    """

    if isinstance(value, Mapping):
        return _normalize_mapping(value)
    if not isinstance(value, str):
        raise TagFormatError("Input must be a string or an object")

    stripped = value.strip()
    if stripped.startswith(("{", "[")):
        return _parse_json(value)
    return _parse_lines(value)


def parse_json_tags(value: str | Mapping[str, Any]) -> dict[str, str]:
    """Like ``parse_tag_input`` but text must be a JSON object; flat text is rejected."""

    if isinstance(value, Mapping):
        return _normalize_mapping(value)
    if not isinstance(value, str):
        raise TagFormatError("Input must be a string or an object")
    return _parse_json(value)


def format_tags(tags: Mapping[str, str]) -> str:
    """Render tags as ``key=value`` lines in mapping order."""

    return "\n".join(f"{key}={value}" for key, value in tags.items())


def reject_empty_values(tags: Mapping[str, str]) -> dict[str, str]:
    """Return ``tags`` unchanged unless a value is empty."""

    for key, value in tags.items():
        if value == "":
            raise TagFormatError(f'Tag value cannot be empty for key "{key}"')
    return dict(tags)


def _parse_lines(text: str) -> dict[str, str]:
    tags: dict[str, str] = {}
    for number, raw_line in enumerate(_LINE_BREAKS.split(text), start=1):
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, separator, value = line.partition("=")
        if not separator:
            raise TagFormatError(
                f"Invalid tag format at line {number}: missing '=' separator. Expected format: key=value",
                line=number,
            )
        key = key.strip()
        if not key:
            raise TagFormatError(f"Invalid tag format at line {number}: empty key before '='", line=number)
        tags[key] = value.strip()
    return tags


def _parse_json(text: str) -> dict[str, str]:
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as exc:
        raise TagFormatError(f"Invalid JSON format: {exc.msg}", line=exc.lineno) from exc
    if not isinstance(parsed, dict):
        raise TagFormatError("JSON input must be an object, not an array or primitive")
    return _normalize_mapping(parsed)


def _normalize_mapping(tags: Mapping[Any, Any]) -> dict[str, str]:
    normalized: dict[str, str] = {}
    for raw_key, raw_value in tags.items():
        key = str(raw_key).strip()
        if not isinstance(raw_value, str):
            raise TagTypeError(
                f'All values must be strings. Found {type(raw_value).__name__} for key "{key}"',
                key=key,
            )
        if not key:
            raise TagFormatError("Tag keys must not be empty")
        normalized[key] = raw_value.strip()
    return normalized
