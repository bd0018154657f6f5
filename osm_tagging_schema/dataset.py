"""Dataset provider for the id-tagging-schema ``dist`` files."""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import httpx
from jsonschema import exceptions as jsonschema_exceptions, validators as jsonschema_validators

from .config import Config
from .errors import SchemaLoadError
from .logging import get_logger

__all__ = [
    "REQUIRED_FILES",
    "DatasetSource",
    "RawDataset",
    "download_dataset",
    "validate_structure",
]

logger = get_logger(__name__)

REQUIRED_FILES: dict[str, str] = {
    "presets": "presets.json",
    "fields": "fields.json",
    "categories": "preset_categories.json",
    "deprecated": "deprecated.json",
    "defaults": "preset_defaults.json",
}
UNKNOWN_VERSION = "unknown"

_OBJECT_MAP_SCHEMA = {"type": "object", "additionalProperties": {"type": "object"}}

DATASET_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "presets": {**_OBJECT_MAP_SCHEMA, "minProperties": 1},
        "fields": {**_OBJECT_MAP_SCHEMA, "minProperties": 1},
        "categories": _OBJECT_MAP_SCHEMA,
        "deprecated": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "old": {"type": "object"},
                    "replace": {"type": "object"},
                },
                "required": ["old"],
            },
        },
        "defaults": {"type": "object"},
    },
    "required": ["presets", "fields", "categories", "deprecated", "defaults"],
}

PRESET_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "tags": {"type": "object"},
        "geometry": {"type": "array", "items": {"type": "string"}},
    },
    "required": ["tags", "geometry"],
}

FIELD_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "key": {"type": "string", "minLength": 1},
        "type": {"type": "string", "minLength": 1},
    },
    "required": ["key", "type"],
}


@dataclass(frozen=True, slots=True)
class RawDataset:
    """The decoded JSON documents making up one schema release."""

    presets: Mapping[str, Any]
    fields: Mapping[str, Any]
    categories: Mapping[str, Any]
    deprecated: list[Any]
    defaults: Mapping[str, Any]
    translations: Mapping[str, Any] = field(default_factory=dict)
    version: str = UNKNOWN_VERSION
    loaded_at: float = 0.0


class DatasetSource:
    """Locate the dataset on disk, downloading it into the cache when needed."""

    def __init__(
        self,
        *,
        schema_dir: Path | None = None,
        cache_dir: Path | None = None,
        base_url: str | None = None,
        locale: str = "en",
        timeout: float = 30.0,
        client: httpx.Client | None = None,
    ) -> None:
        if schema_dir is None and (cache_dir is None or base_url is None):
            raise ValueError("Either schema_dir or both cache_dir and base_url are required")
        self._schema_dir = schema_dir
        self._cache_dir = cache_dir
        self._base_url = base_url.rstrip("/") if base_url else None
        self._locale = locale
        self._timeout = timeout
        self._client = client

    @classmethod
    def from_config(cls, config: Config) -> "DatasetSource":
        return cls(
            schema_dir=config.schema_dir,
            cache_dir=config.cache_dir / config.schema_version,
            base_url=config.resolved_base_url,
            locale=config.locale,
            timeout=config.download_timeout.total_seconds(),
        )

    @property
    def locale(self) -> str:
        return self._locale

    def resolve_dist_dir(self) -> Path:
        """Return the directory holding the dist files, downloading them if absent."""

        if self._schema_dir is not None:
            return self._schema_dir
        assert self._cache_dir is not None and self._base_url is not None
        dist_dir = self._cache_dir / "dist"
        if not all((dist_dir / name).is_file() for name in REQUIRED_FILES.values()):
            download_dataset(
                self._base_url,
                self._cache_dir,
                locale=self._locale,
                timeout=self._timeout,
                client=self._client,
            )
        return dist_dir

    def read(self) -> RawDataset:
        dist_dir = self.resolve_dist_dir()
        documents = {name: _read_json(dist_dir / filename) for name, filename in REQUIRED_FILES.items()}
        validate_structure(documents)

        translations_path = dist_dir / "translations" / f"{self._locale}.json"
        translations: Mapping[str, Any] = {}
        if translations_path.is_file():
            translations = _read_json(translations_path)
        else:
            logger.warning(
                "schema.translations.missing",
                extra={"context": {"path": str(translations_path)}},
            )

        return RawDataset(
            presets=documents["presets"],
            fields=documents["fields"],
            categories=documents["categories"],
            deprecated=documents["deprecated"],
            defaults=documents["defaults"],
            translations=translations,
            version=_read_version(dist_dir.parent / "package.json"),
            loaded_at=time.time(),
        )


def download_dataset(
    base_url: str,
    target_dir: Path,
    *,
    locale: str = "en",
    timeout: float = 30.0,
    client: httpx.Client | None = None,
) -> Path:
    """Fetch the dist files of one schema release into ``target_dir``."""

    targets = {f"dist/{filename}": True for filename in REQUIRED_FILES.values()}
    targets[f"dist/translations/{locale}.json"] = False
    targets["package.json"] = False

    context = {"base_url": base_url, "target_dir": str(target_dir)}
    logger.info("schema.download.start", extra={"context": context})

    owns_client = client is None
    http = client or httpx.Client(timeout=timeout, follow_redirects=True)
    try:
        for relative, required in targets.items():
            url = f"{base_url}/{relative}"
            try:
                response = http.get(url)
                response.raise_for_status()
            except httpx.HTTPError as exc:
                if not required:
                    logger.warning("schema.download.optional_missing", extra={"context": {"url": url}})
                    continue
                raise SchemaLoadError(
                    f"Failed to download {url}: {exc}",
                    details={"url": url},
                ) from exc
            destination = target_dir / relative
            destination.parent.mkdir(parents=True, exist_ok=True)
            partial = destination.with_name(destination.name + ".part")
            partial.write_bytes(response.content)
            partial.replace(destination)
    finally:
        if owns_client:
            http.close()

    logger.info("schema.download.completed", extra={"context": context})
    return target_dir / "dist"


def validate_structure(documents: Mapping[str, Any]) -> None:
    """Check the top-level shape and spot-check the first preset and field."""

    _check(DATASET_SCHEMA, documents, "dataset")

    presets = documents["presets"]
    if presets:
        first_id = next(iter(presets))
        _check(PRESET_SCHEMA, presets[first_id], f"preset '{first_id}'")

    fields = documents["fields"]
    if fields:
        first_path = next(iter(fields))
        _check(FIELD_SCHEMA, fields[first_path], f"field '{first_path}'")


def _check(schema: Mapping[str, Any], instance: Any, label: str) -> None:
    validator_cls = jsonschema_validators.validator_for(schema)
    try:
        validator_cls(schema).validate(instance)
    except jsonschema_exceptions.ValidationError as exc:
        location = "/".join(str(part) for part in exc.absolute_path)
        raise SchemaLoadError(
            f"Invalid schema: {label} {exc.message}",
            details={"path": location} if location else None,
        ) from exc


def _read_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise SchemaLoadError(f"Schema file not found: {path}", details={"path": str(path)}) from exc
    except json.JSONDecodeError as exc:
        raise SchemaLoadError(f"Schema file is not valid JSON: {path}", details={"path": str(path)}) from exc


def _read_version(path: Path) -> str:
    if not path.is_file():
        return UNKNOWN_VERSION
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError:
        logger.warning("schema.version.unreadable", extra={"context": {"path": str(path)}})
        return UNKNOWN_VERSION
    version = payload.get("version") if isinstance(payload, dict) else None
    return str(version) if version else UNKNOWN_VERSION
