"""In-memory index over the tagging schema and its load-once loader."""

from __future__ import annotations

import asyncio
import threading
from concurrent.futures import Future
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from .dataset import DatasetSource, RawDataset
from .errors import SchemaLoadError
from .logging import get_logger
from .models import (
    Category,
    DeprecationRecord,
    Field,
    OptionTranslation,
    Preset,
    SchemaMetadata,
    TranslationEntry,
    WILDCARD,
    key_to_path,
)

__all__ = [
    "TRANSLATION_CATEGORIES",
    "SchemaIndex",
    "SchemaLoader",
    "display_name",
]

logger = get_logger(__name__)

TRANSLATION_CATEGORIES = ("presets", "fields", "categories")


def display_name(identifier: str) -> str:
    """Fallback display name: underscores become spaces, first letter upper-cased."""

    text = identifier.replace("_", " ")
    return text[:1].upper() + text[1:]


def _freeze_groups(groups: Mapping[str, list[Any]]) -> Mapping[str, tuple[Any, ...]]:
    return MappingProxyType({key: tuple(values) for key, values in groups.items()})


@dataclass(frozen=True, slots=True)
class SchemaIndex:
    """Lookup structures derived once from a ``RawDataset``.

    Instances are never mutated after ``build`` and can be shared between
    concurrent requests.
    """

    fields: Mapping[str, Field]
    fields_by_key: Mapping[str, Field]
    presets: Mapping[str, Preset]
    presets_by_key: Mapping[str, tuple[str, ...]]
    presets_by_tag: Mapping[str, tuple[str, ...]]
    presets_by_geometry: Mapping[str, tuple[str, ...]]
    deprecations: tuple[DeprecationRecord, ...]
    deprecations_by_key: Mapping[str, tuple[DeprecationRecord, ...]]
    categories: Mapping[str, Category]
    translations: Mapping[str, Mapping[str, Mapping[str, TranslationEntry]]]
    metadata: SchemaMetadata
    locale: str = "en"

    @classmethod
    def build(cls, raw: RawDataset, *, locale: str = "en") -> "SchemaIndex":
        fields: dict[str, Field] = {}
        fields_by_key: dict[str, Field] = {}
        for path, payload in raw.fields.items():
            if not isinstance(payload, Mapping):
                continue
            field = Field.from_dict(path, payload)
            fields[path] = field
            fields_by_key.setdefault(field.key, field)

        presets: dict[str, Preset] = {}
        by_key: dict[str, list[str]] = {}
        by_tag: dict[str, list[str]] = {}
        by_geometry: dict[str, list[str]] = {}
        for preset_id, payload in raw.presets.items():
            if not isinstance(payload, Mapping):
                continue
            preset = Preset.from_dict(preset_id, payload)
            presets[preset_id] = preset
            for key in dict.fromkeys([*preset.tags, *preset.add_tags]):
                by_key.setdefault(key, []).append(preset_id)
            for key, value in preset.tags.items():
                if value != WILDCARD:
                    by_tag.setdefault(f"{key}={value}", []).append(preset_id)
            for geometry in preset.geometry:
                by_geometry.setdefault(geometry, []).append(preset_id)

        deprecations = tuple(
            DeprecationRecord.from_dict(entry) for entry in raw.deprecated if isinstance(entry, Mapping)
        )
        deprecations_by_key: dict[str, list[DeprecationRecord]] = {}
        for record in deprecations:
            for key in record.old:
                deprecations_by_key.setdefault(key, []).append(record)

        categories = {
            category_id: Category.from_dict(category_id, payload)
            for category_id, payload in raw.categories.items()
            if isinstance(payload, Mapping)
        }

        return cls(
            fields=MappingProxyType(fields),
            fields_by_key=MappingProxyType(fields_by_key),
            presets=MappingProxyType(presets),
            presets_by_key=_freeze_groups(by_key),
            presets_by_tag=_freeze_groups(by_tag),
            presets_by_geometry=_freeze_groups(by_geometry),
            deprecations=deprecations,
            deprecations_by_key=_freeze_groups(deprecations_by_key),
            categories=MappingProxyType(categories),
            translations=MappingProxyType(_index_translations(raw.translations)),
            metadata=SchemaMetadata(version=raw.version, loaded_at=raw.loaded_at),
            locale=locale,
        )

    # -- field and preset access -------------------------------------------------

    def field_for_path(self, path: str) -> Field | None:
        return self.fields.get(path)

    def field_for_key(self, key: str) -> Field | None:
        """Resolve an OSM key through its slash path, then through declared field keys.

        When several fields declare the same key without living at its path,
        the first one in dataset order wins.
        """

        return self.fields.get(key_to_path(key)) or self.fields_by_key.get(key)

    def iter_presets(self) -> Iterable[Preset]:
        return self.presets.values()

    def presets_with_tag(self, key: str, value: str) -> list[Preset]:
        return [self.presets[preset_id] for preset_id in self.presets_by_tag.get(f"{key}={value}", ())]

    def presets_using_key(self, key: str) -> list[Preset]:
        """Presets whose ``tags`` or ``addTags`` mention ``key``."""

        return [self.presets[preset_id] for preset_id in self.presets_by_key.get(key, ())]

    def presets_for_geometry(self, geometry: str) -> list[Preset]:
        return [self.presets[preset_id] for preset_id in self.presets_by_geometry.get(geometry, ())]

    # -- translations ------------------------------------------------------------

    def resolve_translation(self, locale: str, category: str, identifier: str) -> TranslationEntry | None:
        """Return the localized entry for a preset, field, or category, if any."""

        if category not in TRANSLATION_CATEGORIES:
            raise ValueError(f"Unknown translation category: {category}")
        return self.translations.get(locale, {}).get(category, {}).get(identifier)

    def preset_name(self, preset_id: str) -> str:
        entry = self.resolve_translation(self.locale, "presets", preset_id)
        if entry and entry.name:
            return entry.name
        preset = self.presets.get(preset_id)
        if preset is not None and preset.name:
            return preset.name
        return display_name(preset_id.rsplit("/", 1)[-1])

    def raw_preset_name(self, preset_id: str) -> str | None:
        """Preset name from translations or the preset itself, without fallback."""

        entry = self.resolve_translation(self.locale, "presets", preset_id)
        if entry and entry.name:
            return entry.name
        preset = self.presets.get(preset_id)
        return preset.name if preset is not None else None

    def field_label(self, path: str) -> str:
        entry = self.resolve_translation(self.locale, "fields", path)
        if entry and entry.name:
            return entry.name
        field = self.fields.get(path)
        if field is not None and field.label:
            return field.label
        return display_name(path.rsplit("/", 1)[-1])

    def category_name(self, category_id: str) -> str:
        entry = self.resolve_translation(self.locale, "categories", category_id)
        if entry and entry.name:
            return entry.name
        category = self.categories.get(category_id)
        if category is not None and category.name:
            return category.name
        return display_name(category_id.rsplit("-", 1)[-1])

    def option_translation(self, path: str, value: str) -> OptionTranslation:
        """Title/description for a field option, falling back to the bare value."""

        entry = self.resolve_translation(self.locale, "fields", path)
        if entry is not None:
            option = entry.options.get(value)
            if option is not None:
                return option
        return OptionTranslation(title=value)

    def tag_key_name(self, key: str) -> str:
        path = key_to_path(key)
        entry = self.resolve_translation(self.locale, "fields", path)
        if entry and entry.name:
            return entry.name
        return display_name(key)

    def tag_value_name(self, key: str, value: str) -> str:
        """Preset name for ``key/value`` first, then the field option title, then fallback."""

        preset_id = f"{key}/{value}"
        if preset_id in self.presets:
            name = self.raw_preset_name(preset_id)
            if name:
                return name
        entry = self.resolve_translation(self.locale, "fields", key_to_path(key))
        if entry is not None and value in entry.options:
            return entry.options[value].title
        return display_name(value)


def _index_translations(raw: Mapping[str, Any]) -> dict[str, Mapping[str, Mapping[str, TranslationEntry]]]:
    indexed: dict[str, Mapping[str, Mapping[str, TranslationEntry]]] = {}
    for locale, bundle in raw.items():
        if not isinstance(bundle, Mapping):
            continue
        strings = bundle.get("presets")
        if not isinstance(strings, Mapping):
            continue
        by_category: dict[str, Mapping[str, TranslationEntry]] = {}
        for category in TRANSLATION_CATEGORIES:
            entries = strings.get(category)
            if not isinstance(entries, Mapping):
                by_category[category] = MappingProxyType({})
                continue
            by_category[category] = MappingProxyType(
                {
                    str(identifier): TranslationEntry.from_dict(payload)
                    for identifier, payload in entries.items()
                    if isinstance(payload, Mapping)
                }
            )
        indexed[str(locale)] = MappingProxyType(by_category)
    return indexed


class SchemaLoader:
    """Build the ``SchemaIndex`` once and share it with every caller.

    The first caller creates a shared future and performs the load; callers
    arriving while it runs wait on the same future. A failed load is reported
    to everyone waiting and the next call starts over.
    """

    def __init__(self, source: DatasetSource) -> None:
        self._source = source
        self._lock = threading.Lock()
        self._future: Future[SchemaIndex] | None = None

    @property
    def loaded(self) -> bool:
        future = self._future
        return future is not None and future.done() and future.exception() is None

    def load(self) -> SchemaIndex:
        with self._lock:
            future = self._future
            owner = future is None
            if future is None:
                future = Future()
                self._future = future

        if owner:
            self._run_load(future)
        return future.result()

    async def aload(self) -> SchemaIndex:
        """Load from a worker thread so the event loop is never blocked."""

        if self.loaded:
            assert self._future is not None
            return self._future.result()
        return await asyncio.to_thread(self.load)

    def _run_load(self, future: Future[SchemaIndex]) -> None:
        logger.info("schema.load.start")
        try:
            raw = self._source.read()
            index = SchemaIndex.build(raw, locale=self._source.locale)
        except SchemaLoadError as exc:
            logger.error("schema.load.failed", extra={"context": exc.details or {}})
            self._reset(future)
            future.set_exception(exc)
            return
        except Exception as exc:
            logger.exception("schema.load.failed")
            self._reset(future)
            future.set_exception(SchemaLoadError(f"Failed to load schema: {exc}"))
            return

        future.set_result(index)
        logger.info(
            "schema.load.completed",
            extra={
                "context": {
                    "version": index.metadata.version,
                    "presets": len(index.presets),
                    "fields": len(index.fields),
                    "deprecations": len(index.deprecations),
                }
            },
        )

    def _reset(self, future: Future[SchemaIndex]) -> None:
        with self._lock:
            if self._future is future:
                self._future = None
