"""Centralized error codes and helper utilities."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

__all__ = [
    "FORMAT_ERROR",
    "INVALID_TYPE",
    "MISSING_PARAMETER",
    "INVALID_ARGUMENT",
    "SCHEMA_LOAD_ERROR",
    "CONFIG_ERROR",
    "INTERNAL_ERROR",
    "OsmTaggingSchemaError",
    "TagFormatError",
    "TagTypeError",
    "MissingParameterError",
    "SchemaLoadError",
    "error_payload",
]

FORMAT_ERROR = "FORMAT_ERROR"
INVALID_TYPE = "INVALID_TYPE"
MISSING_PARAMETER = "MISSING_PARAMETER"
INVALID_ARGUMENT = "INVALID_ARGUMENT"
SCHEMA_LOAD_ERROR = "SCHEMA_LOAD_ERROR"
CONFIG_ERROR = "CONFIG_ERROR"
INTERNAL_ERROR = "INTERNAL_ERROR"


@dataclass(slots=True)
class OsmTaggingSchemaError(Exception):
    """Domain-specific exception carrying an error code and message."""

    code: str
    message: str
    details: Mapping[str, Any] | None = None

    def __str__(self) -> str:  # pragma: no cover - delegation to message
        return self.message

    def to_dict(self) -> dict[str, Any]:
        return error_payload(self.code, self.message, details=self.details)


class TagFormatError(OsmTaggingSchemaError):
    """Malformed tag input text (missing separator, empty key, bad JSON)."""

    def __init__(self, message: str, *, line: int | None = None) -> None:
        details = {"line": line} if line is not None else None
        OsmTaggingSchemaError.__init__(self, FORMAT_ERROR, message, details)

    @property
    def line(self) -> int | None:
        return (self.details or {}).get("line")


class TagTypeError(OsmTaggingSchemaError):
    """A tag value that is not a string."""

    def __init__(self, message: str, *, key: str) -> None:
        OsmTaggingSchemaError.__init__(self, INVALID_TYPE, message, {"key": key})

    @property
    def key(self) -> str:
        return str((self.details or {}).get("key", ""))


class MissingParameterError(OsmTaggingSchemaError):
    def __init__(self, parameter: str) -> None:
        OsmTaggingSchemaError.__init__(
            self,
            MISSING_PARAMETER,
            f"Missing required parameter: {parameter}",
            {"parameter": parameter},
        )


class SchemaLoadError(OsmTaggingSchemaError):
    def __init__(self, message: str, *, details: Mapping[str, Any] | None = None) -> None:
        OsmTaggingSchemaError.__init__(self, SCHEMA_LOAD_ERROR, message, details)


def error_payload(code: str, message: str, *, details: Mapping[str, Any] | None = None) -> dict[str, Any]:
    """Build a structured error payload used in tool responses."""

    payload: dict[str, Any] = {
        "code": code,
        "message": message,
    }
    if details:
        payload["details"] = dict(details)
    return payload
