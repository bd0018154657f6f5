"""Read-only domain models for the id-tagging-schema dataset."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

WILDCARD = "*"
ALTERNATION = "|"

GEOMETRY_TYPES: tuple[str, ...] = ("point", "vertex", "line", "area", "relation")


def is_literal_value(value: Any) -> bool:
    """Return True for a concrete tag value (not a wildcard or alternation pattern)."""

    return isinstance(value, str) and bool(value) and value != WILDCARD and ALTERNATION not in value


def key_to_path(key: str) -> str:
    """Translate an OSM tag key (``toilets:wheelchair``) into a field path."""

    return key.replace(":", "/")


def path_to_key(path: str) -> str:
    return path.replace("/", ":")


def _string_mapping(value: Any) -> dict[str, str]:
    if not isinstance(value, Mapping):
        return {}
    return {str(k): v for k, v in value.items() if isinstance(v, str)}


def _string_list(value: Any) -> list[str]:
    if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
        return []
    return [item for item in value if isinstance(item, str)]


@dataclass(frozen=True, slots=True)
class Field:
    """A tag-key definition stored under a slash-separated path."""

    path: str
    key: str
    type: str
    options: tuple[str, ...] | None = None
    label: str | None = None

    @classmethod
    def from_dict(cls, path: str, payload: Mapping[str, Any]) -> "Field":
        declared_key = payload.get("key")
        key = declared_key if isinstance(declared_key, str) and declared_key else path_to_key(path)
        raw_options = payload.get("options")
        options = tuple(_string_list(raw_options)) if raw_options is not None else None
        label = payload.get("label")
        return cls(
            path=path,
            key=key,
            type=str(payload.get("type", "")),
            options=options,
            label=label if isinstance(label, str) else None,
        )


@dataclass(frozen=True, slots=True)
class Preset:
    """A feature template identified by its tag pattern."""

    id: str
    tags: Mapping[str, str]
    geometry: tuple[str, ...]
    add_tags: Mapping[str, str] = field(default_factory=dict)
    fields: tuple[str, ...] = ()
    more_fields: tuple[str, ...] = ()
    name: str | None = None
    icon: str | None = None

    @classmethod
    def from_dict(cls, preset_id: str, payload: Mapping[str, Any]) -> "Preset":
        name = payload.get("name")
        icon = payload.get("icon")
        return cls(
            id=preset_id,
            tags=_string_mapping(payload.get("tags")),
            geometry=tuple(_string_list(payload.get("geometry"))),
            add_tags=_string_mapping(payload.get("addTags")),
            fields=tuple(_string_list(payload.get("fields"))),
            more_fields=tuple(_string_list(payload.get("moreFields"))),
            name=name if isinstance(name, str) else None,
            icon=icon if isinstance(icon, str) else None,
        )

    def all_tags(self) -> dict[str, str]:
        """Identifying tags merged with ``addTags`` (``addTags`` wins on conflict)."""

        merged = dict(self.tags)
        merged.update(self.add_tags)
        return merged

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "tags": dict(self.tags),
            "geometry": list(self.geometry),
        }
        if self.add_tags:
            payload["add_tags"] = dict(self.add_tags)
        if self.icon:
            payload["icon"] = self.icon
        return payload


@dataclass(frozen=True, slots=True)
class DeprecationRecord:
    old: Mapping[str, str]
    replace: Mapping[str, str] | None = None

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "DeprecationRecord":
        replace = _string_mapping(payload.get("replace"))
        return cls(old=_string_mapping(payload.get("old")), replace=replace or None)

    @property
    def is_single_key(self) -> bool:
        return len(self.old) == 1

    def deprecation_type(self, key: str) -> str:
        """``"key"`` when every value of ``key`` is deprecated, otherwise ``"value"``."""

        return "key" if self.old.get(key) == WILDCARD else "value"


@dataclass(frozen=True, slots=True)
class Category:
    id: str
    members: tuple[str, ...] = ()
    name: str | None = None
    icon: str | None = None

    @classmethod
    def from_dict(cls, category_id: str, payload: Mapping[str, Any]) -> "Category":
        name = payload.get("name")
        icon = payload.get("icon")
        return cls(
            id=category_id,
            members=tuple(_string_list(payload.get("members"))),
            name=name if isinstance(name, str) else None,
            icon=icon if isinstance(icon, str) else None,
        )


@dataclass(frozen=True, slots=True)
class OptionTranslation:
    title: str
    description: str | None = None

    def to_dict(self) -> dict[str, str]:
        payload = {"title": self.title}
        if self.description:
            payload["description"] = self.description
        return payload


@dataclass(frozen=True, slots=True)
class TranslationEntry:
    """Localized strings for one preset, field, or category."""

    name: str | None = None
    options: Mapping[str, OptionTranslation] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "TranslationEntry":
        # presets and categories carry "name"; fields carry "label"
        name = payload.get("name", payload.get("label"))
        options: dict[str, OptionTranslation] = {}
        raw_options = payload.get("options")
        if isinstance(raw_options, Mapping):
            for value, entry in raw_options.items():
                if isinstance(entry, str):
                    options[str(value)] = OptionTranslation(title=entry)
                elif isinstance(entry, Mapping) and isinstance(entry.get("title"), str):
                    description = entry.get("description")
                    options[str(value)] = OptionTranslation(
                        title=entry["title"],
                        description=description if isinstance(description, str) else None,
                    )
        return cls(name=name if isinstance(name, str) else None, options=options)


@dataclass(frozen=True, slots=True)
class SchemaMetadata:
    version: str
    loaded_at: float

    def to_dict(self) -> dict[str, Any]:
        return {"version": self.version, "loaded_at": self.loaded_at}
