"""FastMCP server entrypoint for the OSM tagging schema MCP service."""

from __future__ import annotations

from dataclasses import dataclass
from functools import wraps
from typing import Any, Mapping

from fastmcp import FastMCP
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response

from . import metrics
from .config import Config, ConfigError, load_config
from .dataset import DatasetSource
from .errors import (
    CONFIG_ERROR,
    INTERNAL_ERROR,
    INVALID_ARGUMENT,
    MissingParameterError,
    OsmTaggingSchemaError,
    SchemaLoadError,
)
from .logging import configure_logging, get_logger
from .models import GEOMETRY_TYPES
from .prompts import PROMPTS
from .query import (
    describe_tag_values,
    get_categories,
    get_category_tags,
    get_preset_details,
    get_preset_tags,
    get_schema_stats,
    get_tag_info,
)
from .schema import SchemaIndex, SchemaLoader
from .search import DEFAULT_SEARCH_LIMIT, get_related_tags, search_presets, search_tags
from .tag_parser import format_tags, parse_json_tags, parse_tag_input, reject_empty_values
from .transports import HttpTransportConfig, run_http, run_stdio
from .validation import check_deprecated, suggest_improvements, validate_tag, validate_tag_collection

LOGGER = get_logger(__name__)
SERVER = FastMCP(name="osm-tagging-schema")


@dataclass(slots=True)
class AppState:
    config: Config
    loader: SchemaLoader


APP_STATE: AppState | None = None
_METRICS_ROUTE_NAME = "__osm_tagging_schema_metrics__"


def _normalise_metrics_path(path: str) -> str:
    if not path:
        return "/metrics"
    normalised = path if path.startswith("/") else f"/{path}"
    if len(normalised) > 1 and normalised.endswith("/"):
        normalised = normalised.rstrip("/")
    return normalised or "/metrics"


def _remove_metrics_route() -> None:
    routes = getattr(SERVER, "_additional_http_routes", None)
    if not routes:
        return
    routes[:] = [route for route in routes if getattr(route, "name", None) != _METRICS_ROUTE_NAME]


def _schema_gauges() -> metrics.SchemaGauges:
    if APP_STATE is None or not APP_STATE.loader.loaded:
        return metrics.SchemaGauges()
    index = APP_STATE.loader.load()
    return metrics.SchemaGauges(
        presets=len(index.presets),
        fields=len(index.fields),
        deprecations=len(index.deprecations),
        loaded=True,
    )


def _register_metrics_route(path: str) -> None:
    cleaned = _normalise_metrics_path(path)
    _remove_metrics_route()

    @SERVER.custom_route(cleaned, methods=["GET"], name=_METRICS_ROUTE_NAME, include_in_schema=False)
    async def metrics_endpoint(_request: Request) -> Response:
        registry = metrics.get_registry_optional()
        if registry is None:
            return PlainTextResponse("metrics unavailable\n", status_code=503)
        body = metrics.format_prometheus(registry.snapshot(), _schema_gauges())
        return PlainTextResponse(body, media_type="text/plain; version=0.0.4")


def initialize_app(config: Config, *, loader: SchemaLoader | None = None) -> None:
    """Initialise application state for tool handlers.

    With ``config.warmup`` the schema index is built here, so a broken
    dataset fails startup instead of the first request.
    """

    global APP_STATE
    schema_loader = loader or SchemaLoader(DatasetSource.from_config(config))
    metrics.install_registry(metrics.MetricsRegistry())
    if config.enable_metrics:
        _register_metrics_route(config.metrics_path)
    else:
        _remove_metrics_route()
    APP_STATE = AppState(config=config, loader=schema_loader)
    if config.warmup:
        schema_loader.load()


def shutdown_app() -> None:
    """Clear application state."""

    global APP_STATE
    if APP_STATE is None:
        return
    metrics.install_registry(None)
    _remove_metrics_route()
    APP_STATE = None


async def get_schema_index() -> SchemaIndex:
    if APP_STATE is None:
        raise OsmTaggingSchemaError(CONFIG_ERROR, "Server is not initialised")
    return await APP_STATE.loader.aload()


def success(payload: Mapping[str, Any]) -> dict[str, Any]:
    return {"ok": True, **payload}


def failure(error: OsmTaggingSchemaError) -> dict[str, Any]:
    metrics.record_error(error.code)
    return {"ok": False, "error": error.to_dict()}


def _tool_guard(name: str):
    """Count the call and convert raised errors into structured failure responses."""

    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            metrics.record_tool_call(name)
            try:
                return await func(*args, **kwargs)
            except OsmTaggingSchemaError as exc:
                return failure(exc)
            except Exception:
                LOGGER.exception("tool.failed", extra={"context": {"tool": name}})
                return failure(OsmTaggingSchemaError(INTERNAL_ERROR, f"Unexpected error in {name}"))

        return wrapper

    return decorator


def _require(name: str, value: Any) -> Any:
    if value is None:
        raise MissingParameterError(name)
    return value


def _require_str(name: str, value: Any) -> str:
    _require(name, value)
    if not isinstance(value, str):
        raise OsmTaggingSchemaError(INVALID_ARGUMENT, f"{name} must be a string", {"parameter": name})
    return value


def _require_tags(name: str, value: Any) -> str | Mapping[str, Any]:
    _require(name, value)
    if not isinstance(value, (str, Mapping)):
        raise OsmTaggingSchemaError(
            INVALID_ARGUMENT,
            f"{name} must be a string or an object",
            {"parameter": name},
        )
    return value


def _normalize_limit(limit: Any, *, default: int | None = None) -> int | None:
    if limit is None:
        return default
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
        raise OsmTaggingSchemaError(INVALID_ARGUMENT, "limit must be a positive integer", {"parameter": "limit"})
    return limit


def _normalize_geometry(geometry: Any) -> str | None:
    if geometry is None:
        return None
    if geometry not in GEOMETRY_TYPES:
        raise OsmTaggingSchemaError(
            INVALID_ARGUMENT,
            f"geometry must be one of: {', '.join(GEOMETRY_TYPES)}",
            {"parameter": "geometry"},
        )
    return geometry


# -- tag lookups ---------------------------------------------------------------


@_tool_guard("get_tag_values")
async def _get_tag_values_impl(tag_key: str | None = None) -> dict[str, Any]:
    key = _require_str("tag_key", tag_key).strip()
    index = await get_schema_index()
    return success(describe_tag_values(index, key))


@_tool_guard("get_tag_info")
async def _get_tag_info_impl(tag_key: str | None = None) -> dict[str, Any]:
    key = _require_str("tag_key", tag_key).strip()
    index = await get_schema_index()
    return success(get_tag_info(index, key))


# -- presets and categories ----------------------------------------------------


@_tool_guard("get_preset_details")
async def _get_preset_details_impl(preset: str | Mapping[str, Any] | None = None) -> dict[str, Any]:
    reference = _require_tags("preset", preset)
    if isinstance(reference, Mapping):
        reference = parse_tag_input(reference)
    index = await get_schema_index()
    details = get_preset_details(index, reference)
    return success({"found": details is not None, "preset": details})


@_tool_guard("get_preset_tags")
async def _get_preset_tags_impl(preset_id: str | None = None) -> dict[str, Any]:
    identifier = _require_str("preset_id", preset_id).strip()
    index = await get_schema_index()
    tags = get_preset_tags(index, identifier)
    payload: dict[str, Any] = {"preset_id": identifier, "found": tags is not None}
    if tags is not None:
        payload.update(tags)
    return success(payload)


@_tool_guard("get_categories")
async def _get_categories_impl() -> dict[str, Any]:
    index = await get_schema_index()
    return success({"categories": get_categories(index)})


@_tool_guard("get_category_tags")
async def _get_category_tags_impl(category: str | None = None) -> dict[str, Any]:
    name = _require_str("category", category).strip()
    index = await get_schema_index()
    return success({"category": name, "presets": get_category_tags(index, name)})


# -- search --------------------------------------------------------------------


@_tool_guard("search_tags")
async def _search_tags_impl(keyword: str | None = None, limit: int | None = None) -> dict[str, Any]:
    text = _require_str("keyword", keyword).strip()
    effective_limit = _normalize_limit(limit, default=DEFAULT_SEARCH_LIMIT)
    index = await get_schema_index()
    return success({"keyword": text, "results": search_tags(index, text, effective_limit)})


@_tool_guard("search_presets")
async def _search_presets_impl(
    keyword: str | None = None,
    limit: int | None = None,
    geometry: str | None = None,
) -> dict[str, Any]:
    text = _require_str("keyword", keyword).strip()
    effective_limit = _normalize_limit(limit)
    geometry_filter = _normalize_geometry(geometry)
    index = await get_schema_index()
    results = search_presets(index, text, limit=effective_limit, geometry=geometry_filter)
    return success({"keyword": text, "results": results})


@_tool_guard("get_related_tags")
async def _get_related_tags_impl(tag: str | None = None, limit: int | None = None) -> dict[str, Any]:
    text = _require_str("tag", tag).strip()
    effective_limit = _normalize_limit(limit)
    index = await get_schema_index()
    return success({"tag": text, "results": get_related_tags(index, text, effective_limit)})


# -- validation ----------------------------------------------------------------


@_tool_guard("validate_tag")
async def _validate_tag_impl(key: str | None = None, value: str | None = None) -> dict[str, Any]:
    tag_key = _require_str("key", key).strip()
    tag_value = _require_str("value", value).strip()
    index = await get_schema_index()
    return success(validate_tag(index, tag_key, tag_value))


@_tool_guard("validate_tag_collection")
async def _validate_tag_collection_impl(tags: str | Mapping[str, Any] | None = None) -> dict[str, Any]:
    parsed = parse_tag_input(_require_tags("tags", tags))
    index = await get_schema_index()
    return success(validate_tag_collection(index, parsed))


@_tool_guard("check_deprecated")
async def _check_deprecated_impl(key: str | None = None, value: str | None = None) -> dict[str, Any]:
    tag_key = _require_str("key", key).strip()
    tag_value = value.strip() if isinstance(value, str) else ""
    index = await get_schema_index()
    # a blank value means the key alone is checked
    return success(check_deprecated(index, tag_key, tag_value or None))


@_tool_guard("suggest_improvements")
async def _suggest_improvements_impl(tags: str | Mapping[str, Any] | None = None) -> dict[str, Any]:
    parsed = parse_tag_input(_require_tags("tags", tags))
    index = await get_schema_index()
    return success(suggest_improvements(index, parsed))


# -- converters and statistics ---------------------------------------------------


@_tool_guard("flat_to_json")
async def _flat_to_json_impl(tags: str | None = None) -> dict[str, Any]:
    parsed = reject_empty_values(parse_tag_input(_require_str("tags", tags)))
    return success({"tags": parsed})


@_tool_guard("json_to_flat")
async def _json_to_flat_impl(tags: str | Mapping[str, Any] | None = None) -> dict[str, Any]:
    parsed = reject_empty_values(parse_json_tags(_require_tags("tags", tags)))
    return success({"text": format_tags(parsed)})


@_tool_guard("get_schema_stats")
async def _get_schema_stats_impl() -> dict[str, Any]:
    index = await get_schema_index()
    return success(get_schema_stats(index))


# -- registration ----------------------------------------------------------------


def _result_schema(properties: Mapping[str, Any], required: list[str]) -> dict[str, Any]:
    return {
        "type": "object",
        "additionalProperties": False,
        "properties": {
            "ok": {"type": "boolean"},
            "error": {"type": ["object", "null"]},
            **properties,
        },
        "required": ["ok"],
        "allOf": [
            {
                "if": {"properties": {"ok": {"const": True}}},
                "then": {"required": required},
                "else": {"required": ["error"]},
            }
        ],
    }


_STRING_MAP_SCHEMA = {"type": "object", "additionalProperties": {"type": "string"}}

_TAGS_INPUT_SCHEMA = {
    "anyOf": [
        {"type": "string"},
        _STRING_MAP_SCHEMA,
    ],
}

_VALUE_DETAIL_SCHEMA = {
    "type": "object",
    "properties": {
        "value": {"type": "string"},
        "title": {"type": "string"},
        "description": {"type": "string"},
    },
    "required": ["value", "title"],
}

_TAG_DETAIL_SCHEMA = {
    "type": "object",
    "properties": {
        "key": {"type": "string"},
        "key_name": {"type": "string"},
        "value": {"type": "string"},
        "value_name": {"type": "string"},
    },
    "required": ["key", "key_name", "value", "value_name"],
}

_VALIDATION_RESULT_SCHEMA = {
    "type": "object",
    "properties": {
        "valid": {"type": "boolean"},
        "deprecated": {"type": "boolean"},
        "message": {"type": "string"},
        "replacement": _STRING_MAP_SCHEMA,
    },
    "required": ["valid", "deprecated", "message"],
}

_LIMIT_PARAMETER = {
    "type": "integer",
    "minimum": 1,
    "description": "Maximum number of results to return.",
}


get_tag_values_tool = SERVER.tool(
    name="get_tag_values",
    description=(
        "Get all known values for an OpenStreetMap tag key (e.g. every value of 'amenity'), "
        "merged from field options and presets, with localized titles and descriptions."
    ),
)(_get_tag_values_impl)

get_tag_values_tool.parameters = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "tag_key": {
            "type": "string",
            "description": "Tag key to list values for, e.g. 'amenity' or 'toilets:wheelchair'.",
        },
    },
    "required": ["tag_key"],
}

get_tag_values_tool.output_schema = _result_schema(
    {
        "key": {"type": "string"},
        "key_name": {"type": "string"},
        "values": {"type": "array", "items": {"type": "string"}},
        "values_detailed": {"type": "array", "items": _VALUE_DETAIL_SCHEMA},
    },
    ["key", "key_name", "values", "values_detailed"],
)

get_tag_info_tool = SERVER.tool(
    name="get_tag_info",
    description=(
        "Get information about a tag key: its values, field type, localized name, and whether the "
        "schema has a field definition for it."
    ),
)(_get_tag_info_impl)

get_tag_info_tool.parameters = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "tag_key": {
            "type": "string",
            "description": "Tag key to describe, e.g. 'parking'.",
        },
    },
    "required": ["tag_key"],
}

get_tag_info_tool.output_schema = _result_schema(
    {
        "key": {"type": "string"},
        "name": {"type": "string"},
        "type": {"type": "string"},
        "values": {"type": "array", "items": {"type": "string"}},
        "values_detailed": {"type": "array", "items": _VALUE_DETAIL_SCHEMA},
        "has_field_definition": {"type": "boolean"},
    },
    ["key", "values", "has_field_definition"],
)

get_preset_details_tool = SERVER.tool(
    name="get_preset_details",
    description=(
        "Get complete details for a preset: tags, localized names, geometry, and expanded fields. "
        "Accepts a preset ID ('amenity/restaurant'), tag notation ('amenity=restaurant'), or a tags "
        "object ({\"amenity\": \"restaurant\"})."
    ),
)(_get_preset_details_impl)

get_preset_details_tool.parameters = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "preset": {
            "anyOf": [{"type": "string"}, _STRING_MAP_SCHEMA],
            "description": "Preset ID, key=value tag notation, or an object of tags.",
        },
    },
    "required": ["preset"],
}

get_preset_details_tool.output_schema = _result_schema(
    {
        "found": {"type": "boolean"},
        "preset": {
            "type": ["object", "null"],
            "properties": {
                "id": {"type": "string"},
                "name": {"type": "string"},
                "tags": _STRING_MAP_SCHEMA,
                "add_tags": _STRING_MAP_SCHEMA,
                "tags_detailed": {"type": "array", "items": _TAG_DETAIL_SCHEMA},
                "geometry": {"type": "array", "items": {"type": "string"}},
                "fields": {"type": "array", "items": {"type": "string"}},
                "more_fields": {"type": "array", "items": {"type": "string"}},
                "icon": {"type": "string"},
            },
        },
    },
    ["found", "preset"],
)

get_preset_tags_tool = SERVER.tool(
    name="get_preset_tags",
    description="Get the identifying tags and the additional tags applied by a preset.",
)(_get_preset_tags_impl)

get_preset_tags_tool.parameters = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "preset_id": {
            "type": "string",
            "description": "Preset ID, e.g. 'amenity/restaurant'.",
        },
    },
    "required": ["preset_id"],
}

get_preset_tags_tool.output_schema = _result_schema(
    {
        "preset_id": {"type": "string"},
        "found": {"type": "boolean"},
        "tags": _STRING_MAP_SCHEMA,
        "add_tags": _STRING_MAP_SCHEMA,
    },
    ["preset_id", "found"],
)

get_categories_tool = SERVER.tool(
    name="get_categories",
    description="List preset categories with their display names and member counts, sorted by name.",
)(_get_categories_impl)

get_categories_tool.parameters = {
    "type": "object",
    "additionalProperties": False,
}

get_categories_tool.output_schema = _result_schema(
    {
        "categories": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "name": {"type": "string"},
                    "display_name": {"type": "string"},
                    "count": {"type": "integer", "minimum": 0},
                },
                "required": ["name", "display_name", "count"],
            },
        },
    },
    ["categories"],
)

get_category_tags_tool = SERVER.tool(
    name="get_category_tags",
    description="List the preset IDs belonging to a category. Unknown categories return an empty list.",
)(_get_category_tags_impl)

get_category_tags_tool.parameters = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "category": {
            "type": "string",
            "description": "Category ID, e.g. 'category-food'.",
        },
    },
    "required": ["category"],
}

get_category_tags_tool.output_schema = _result_schema(
    {
        "category": {"type": "string"},
        "presets": {"type": "array", "items": {"type": "string"}},
    },
    ["category", "presets"],
)

search_tags_tool = SERVER.tool(
    name="search_tags",
    description=(
        "Search OpenStreetMap tags by keyword (case-insensitive substring) in tag keys, tag values, "
        "and preset names. Returns unique key=value pairs in schema order."
    ),
)(_search_tags_impl)

search_tags_tool.parameters = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "keyword": {
            "type": "string",
            "description": "Keyword such as 'restaurant' or 'wheel'. Use search_presets for key=value lookups.",
        },
        "limit": {**_LIMIT_PARAMETER, "default": DEFAULT_SEARCH_LIMIT},
    },
    "required": ["keyword"],
}

search_tags_tool.output_schema = _result_schema(
    {
        "keyword": {"type": "string"},
        "results": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "key": {"type": "string"},
                    "value": {"type": "string"},
                    "preset_name": {"type": "string"},
                },
                "required": ["key", "value"],
            },
        },
    },
    ["keyword", "results"],
)

search_presets_tool = SERVER.tool(
    name="search_presets",
    description=(
        "Search presets by keyword in preset IDs and tags, or by exact 'key=value'. "
        "Optionally filter by geometry type and limit the number of results."
    ),
)(_search_presets_impl)

search_presets_tool.parameters = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "keyword": {
            "type": "string",
            "description": "Keyword ('restaurant') or tag ('amenity=restaurant').",
        },
        "limit": _LIMIT_PARAMETER,
        "geometry": {
            "type": "string",
            "enum": list(GEOMETRY_TYPES),
            "description": "Only return presets usable with this geometry.",
        },
    },
    "required": ["keyword"],
}

search_presets_tool.output_schema = _result_schema(
    {
        "keyword": {"type": "string"},
        "results": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "id": {"type": "string"},
                    "name": {"type": "string"},
                    "tags": _STRING_MAP_SCHEMA,
                    "tags_detailed": {"type": "array", "items": _TAG_DETAIL_SCHEMA},
                    "geometry": {"type": "array", "items": {"type": "string"}},
                },
                "required": ["id", "name", "tags", "tags_detailed", "geometry"],
            },
        },
    },
    ["keyword", "results"],
)

get_related_tags_tool = SERVER.tool(
    name="get_related_tags",
    description="Find tags commonly used together with a tag ('key' or 'key=value'), most frequent first.",
)(_get_related_tags_impl)

get_related_tags_tool.parameters = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "tag": {
            "type": "string",
            "description": "Tag key or key=value, e.g. 'amenity=restaurant'.",
        },
        "limit": _LIMIT_PARAMETER,
    },
    "required": ["tag"],
}

get_related_tags_tool.output_schema = _result_schema(
    {
        "tag": {"type": "string"},
        "results": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "key": {"type": "string"},
                    "value": {"type": "string"},
                    "frequency": {"type": "integer", "minimum": 1},
                    "preset_examples": {"type": "array", "items": {"type": "string"}},
                },
                "required": ["key", "value", "frequency"],
            },
        },
    },
    ["tag", "results"],
)

validate_tag_tool = SERVER.tool(
    name="validate_tag",
    description=(
        "Validate one tag. Reports deprecation with replacement, unknown keys, and values outside a "
        "field's standard options. Unknown keys and custom values remain valid in OpenStreetMap."
    ),
)(_validate_tag_impl)

validate_tag_tool.parameters = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "key": {"type": "string", "description": "Tag key, e.g. 'amenity'."},
        "value": {"type": "string", "description": "Tag value, e.g. 'restaurant'."},
    },
    "required": ["key", "value"],
}

validate_tag_tool.output_schema = _result_schema(
    dict(_VALIDATION_RESULT_SCHEMA["properties"]),
    ["valid", "deprecated", "message"],
)

validate_tag_collection_tool = SERVER.tool(
    name="validate_tag_collection",
    description=(
        "Validate every tag of a collection and aggregate the results. Accepts a tags object, a JSON "
        "string, or flat text with one key=value per line (comments with # and blank lines allowed)."
    ),
)(_validate_tag_collection_impl)

validate_tag_collection_tool.parameters = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "tags": {**_TAGS_INPUT_SCHEMA, "description": "Tags as an object, JSON text, or key=value lines."},
    },
    "required": ["tags"],
}

validate_tag_collection_tool.output_schema = _result_schema(
    {
        "valid": {"type": "boolean"},
        "tag_results": {"type": "object", "additionalProperties": _VALIDATION_RESULT_SCHEMA},
        "valid_count": {"type": "integer", "minimum": 0},
        "deprecated_count": {"type": "integer", "minimum": 0},
        "error_count": {"type": "integer", "minimum": 0},
    },
    ["valid", "tag_results", "valid_count", "deprecated_count", "error_count"],
)

check_deprecated_tool = SERVER.tool(
    name="check_deprecated",
    description=(
        "Check whether a tag key, or a key=value pair, is deprecated and list every matching "
        "deprecation case with its replacement."
    ),
)(_check_deprecated_impl)

check_deprecated_tool.parameters = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "key": {"type": "string", "description": "Tag key to check."},
        "value": {
            "type": "string",
            "description": "Optional value. Without it, every deprecation mentioning the key is returned.",
        },
    },
    "required": ["key"],
}

check_deprecated_tool.output_schema = _result_schema(
    {
        "deprecated": {"type": "boolean"},
        "message": {"type": "string"},
        "cases": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "old_tags": _STRING_MAP_SCHEMA,
                    "replacement": _STRING_MAP_SCHEMA,
                    "deprecation_type": {"type": "string", "enum": ["key", "value"]},
                },
                "required": ["old_tags", "deprecation_type"],
            },
        },
    },
    ["deprecated", "message"],
)

suggest_improvements_tool = SERVER.tool(
    name="suggest_improvements",
    description=(
        "Suggest improvements for a tag collection: warnings for deprecated tags, matched presets, "
        "and fields those presets commonly use that are still missing."
    ),
)(_suggest_improvements_impl)

suggest_improvements_tool.parameters = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "tags": {**_TAGS_INPUT_SCHEMA, "description": "Tags as an object, JSON text, or key=value lines."},
    },
    "required": ["tags"],
}

suggest_improvements_tool.output_schema = _result_schema(
    {
        "suggestions": {"type": "array", "items": {"type": "string"}},
        "warnings": {"type": "array", "items": {"type": "string"}},
        "matched_presets": {"type": "array", "items": {"type": "string"}},
    },
    ["suggestions", "warnings", "matched_presets"],
)

flat_to_json_tool = SERVER.tool(
    name="flat_to_json",
    description=(
        "Convert tags from flat text (one key=value per line) into a JSON object. Handles LF, CRLF and "
        "CR line endings, '#' comments, blank lines, and '=' inside values. Empty values are rejected."
    ),
)(_flat_to_json_impl)

flat_to_json_tool.parameters = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "tags": {
            "type": "string",
            "description": "Flat text such as 'amenity=restaurant\\nname=Test Cafe'.",
        },
    },
    "required": ["tags"],
}

flat_to_json_tool.output_schema = _result_schema({"tags": _STRING_MAP_SCHEMA}, ["tags"])

json_to_flat_tool = SERVER.tool(
    name="json_to_flat",
    description="Convert tags from a JSON object (or JSON text) into flat key=value lines. Empty values are rejected.",
)(_json_to_flat_impl)

json_to_flat_tool.parameters = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "tags": {**_TAGS_INPUT_SCHEMA, "description": "Tags as an object or JSON text."},
    },
    "required": ["tags"],
}

json_to_flat_tool.output_schema = _result_schema({"text": {"type": "string"}}, ["text"])

get_schema_stats_tool = SERVER.tool(
    name="get_schema_stats",
    description="Get counts of presets, fields, categories and deprecations plus the loaded schema version.",
)(_get_schema_stats_impl)

get_schema_stats_tool.parameters = {
    "type": "object",
    "additionalProperties": False,
}

get_schema_stats_tool.output_schema = _result_schema(
    {
        "preset_count": {"type": "integer", "minimum": 0},
        "field_count": {"type": "integer", "minimum": 0},
        "category_count": {"type": "integer", "minimum": 0},
        "deprecated_count": {"type": "integer", "minimum": 0},
        "version": {"type": "string"},
        "loaded_at": {"type": "number"},
    },
    ["preset_count", "field_count", "category_count", "deprecated_count", "version", "loaded_at"],
)

for _prompt in PROMPTS:
    SERVER.prompt(name=_prompt.name, description=_prompt.description)(_prompt.render)


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for running the OSM tagging schema server."""

    configure_logging()
    try:
        config = load_config(argv)
    except ConfigError as exc:
        LOGGER.error("config.invalid", extra={"context": {"error": str(exc)}})
        raise SystemExit(2) from exc

    configure_logging(config.log_level)
    LOGGER.info(
        "config.loaded",
        extra={
            "context": {
                "schema_dir": str(config.schema_dir) if config.schema_dir else None,
                "cache_dir": str(config.cache_dir),
                "schema_version": config.schema_version,
                "transport": config.transport,
                "enable_metrics": config.enable_metrics,
            }
        },
    )

    try:
        initialize_app(config)
    except SchemaLoadError as exc:
        LOGGER.error("schema.unavailable", exc_info=exc, extra={"context": exc.details or {}})
        raise SystemExit(1) from exc

    try:
        if config.transport == "stdio":
            run_stdio(SERVER)
        else:
            http_config = HttpTransportConfig(
                host=config.http_host,
                port=config.http_port,
                path=config.http_path,
                transport=config.transport,
                metrics_path=config.metrics_path,
                enable_metrics=config.enable_metrics,
                socket_path=config.http_socket_path,
            )
            run_http(SERVER, http_config)
    finally:
        shutdown_app()


if __name__ == "__main__":  # pragma: no cover - manual invocation only
    main()
