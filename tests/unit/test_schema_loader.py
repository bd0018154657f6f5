from __future__ import annotations

import asyncio
import threading
from pathlib import Path

import pytest

from osm_tagging_schema.dataset import DatasetSource, RawDataset
from osm_tagging_schema.errors import SCHEMA_LOAD_ERROR, SchemaLoadError
from osm_tagging_schema.schema import SchemaIndex, SchemaLoader, display_name

FIXTURE_DIST = Path(__file__).resolve().parents[1] / "fixtures" / "id-tagging-schema" / "dist"


class _CountingSource:
    def __init__(self, inner: DatasetSource, *, delay: float = 0.0, failures: int = 0) -> None:
        self._inner = inner
        self._delay = delay
        self._failures = failures
        self._lock = threading.Lock()
        self.reads = 0

    @property
    def locale(self) -> str:
        return self._inner.locale

    def read(self) -> RawDataset:
        with self._lock:
            self.reads += 1
            attempt = self.reads
        if self._delay:
            threading.Event().wait(self._delay)
        if attempt <= self._failures:
            raise SchemaLoadError("Schema file not found: presets.json")
        return self._inner.read()


def _source(**kwargs) -> _CountingSource:
    return _CountingSource(DatasetSource(schema_dir=FIXTURE_DIST), **kwargs)


def test_load_builds_index_from_fixture() -> None:
    loader = SchemaLoader(DatasetSource(schema_dir=FIXTURE_DIST))

    assert loader.loaded is False
    index = loader.load()

    assert loader.loaded is True
    assert isinstance(index, SchemaIndex)
    assert "amenity/restaurant" in index.presets
    assert index.metadata.version == "6.7.3"
    assert index.metadata.loaded_at > 0


def test_repeated_loads_return_same_index() -> None:
    source = _source()
    loader = SchemaLoader(source)

    first = loader.load()
    second = loader.load()

    assert first is second
    assert source.reads == 1


def test_concurrent_loads_read_dataset_once() -> None:
    source = _source(delay=0.05)
    loader = SchemaLoader(source)
    results: list[SchemaIndex] = []
    lock = threading.Lock()

    def _worker() -> None:
        index = loader.load()
        with lock:
            results.append(index)

    threads = [threading.Thread(target=_worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert source.reads == 1
    assert len(results) == 8
    assert all(index is results[0] for index in results)


@pytest.mark.asyncio
async def test_aload_shares_one_load_between_tasks() -> None:
    source = _source(delay=0.05)
    loader = SchemaLoader(source)

    indexes = await asyncio.gather(*(loader.aload() for _ in range(5)))

    assert source.reads == 1
    assert all(index is indexes[0] for index in indexes)


def test_failed_load_is_retried_on_next_call() -> None:
    source = _source(failures=1)
    loader = SchemaLoader(source)

    with pytest.raises(SchemaLoadError) as excinfo:
        loader.load()
    assert excinfo.value.code == SCHEMA_LOAD_ERROR
    assert loader.loaded is False

    index = loader.load()

    assert loader.loaded is True
    assert source.reads == 2
    assert index.presets


def test_unexpected_errors_are_wrapped() -> None:
    class _BrokenSource:
        locale = "en"

        def read(self) -> RawDataset:
            raise RuntimeError("disk on fire")

    loader = SchemaLoader(_BrokenSource())  # type: ignore[arg-type]

    with pytest.raises(SchemaLoadError) as excinfo:
        loader.load()

    assert "Failed to load schema" in excinfo.value.message
    assert "disk on fire" in excinfo.value.message


def test_missing_directory_fails_with_schema_load_error(tmp_path: Path) -> None:
    loader = SchemaLoader(DatasetSource(schema_dir=tmp_path / "missing"))

    with pytest.raises(SchemaLoadError) as excinfo:
        loader.load()

    assert "presets.json" in excinfo.value.message


def test_index_lookups_and_translations() -> None:
    index = SchemaLoader(DatasetSource(schema_dir=FIXTURE_DIST)).load()

    assert index.field_for_key("toilets:wheelchair").path == "toilets/wheelchair"
    assert index.field_for_key("parking:both").path == "parking/side/parking"
    assert index.field_for_key("surface") is None
    assert [preset.id for preset in index.presets_with_tag("amenity", "parking")] == [
        "amenity/parking",
        "amenity/parking/multilevel",
    ]
    assert "amenity" not in index.presets_by_tag.get("amenity=*", ())
    assert index.preset_name("amenity/parking") == "Parking Lot"
    assert index.preset_name("leisure/park") == "Park"
    assert index.preset_name("amenity/toilets") == "Toilets"
    assert index.raw_preset_name("amenity/toilets") is None
    assert index.category_name("category-food") == "Food & Drink"
    assert index.category_name("category-parking") == "Parking"
    assert index.option_translation("parking", "surface").description == "Parking lot on the ground"
    assert index.option_translation("parking", "rooftop").title == "rooftop"
    assert index.tag_value_name("amenity", "restaurant") == "Restaurant"
    assert index.tag_value_name("parking", "multi-storey") == "Multilevel"
    assert index.tag_value_name("parking", "rooftop") == "Rooftop"


def test_resolve_translation_rejects_unknown_category() -> None:
    index = SchemaLoader(DatasetSource(schema_dir=FIXTURE_DIST)).load()

    assert index.resolve_translation("en", "presets", "amenity/cafe").name == "Cafe"
    assert index.resolve_translation("de", "presets", "amenity/cafe") is None
    with pytest.raises(ValueError):
        index.resolve_translation("en", "icons", "amenity/cafe")


def test_missing_translation_file_falls_back_to_identifiers() -> None:
    index = SchemaLoader(DatasetSource(schema_dir=FIXTURE_DIST, locale="xx")).load()

    assert index.locale == "xx"
    assert index.preset_name("amenity/bicycle_parking") == "Bicycle parking"
    assert index.category_name("category-food") == "Food"


@pytest.mark.parametrize(
    ("identifier", "expected"),
    [("bicycle_parking", "Bicycle parking"), ("cafe", "Cafe"), ("", "")],
)
def test_display_name(identifier: str, expected: str) -> None:
    assert display_name(identifier) == expected
