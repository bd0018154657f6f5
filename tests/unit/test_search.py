from __future__ import annotations

from pathlib import Path

import pytest

from osm_tagging_schema.dataset import DatasetSource
from osm_tagging_schema.schema import SchemaIndex, SchemaLoader
from osm_tagging_schema.search import get_related_tags, search_presets, search_tags

FIXTURE_DIST = Path(__file__).resolve().parents[1] / "fixtures" / "id-tagging-schema" / "dist"


@pytest.fixture(scope="module")
def index() -> SchemaIndex:
    return SchemaLoader(DatasetSource(schema_dir=FIXTURE_DIST)).load()


def _pairs(results: list[dict]) -> list[str]:
    return [f"{entry['key']}={entry['value']}" for entry in results]


def test_search_tags_by_value(index: SchemaIndex) -> None:
    assert search_tags(index, "restaurant") == [
        {"key": "amenity", "value": "restaurant", "preset_name": "Restaurant"}
    ]


def test_search_tags_preset_name_pulls_in_all_tags(index: SchemaIndex) -> None:
    results = search_tags(index, "parking")

    assert _pairs(results) == [
        "amenity=parking",
        "parking=surface",
        "parking=multi-storey",
        "amenity=bicycle_parking",
        "bicycle_parking=stands",
    ]
    assert results[0]["preset_name"] == "Parking Lot"


def test_search_tags_is_case_insensitive_and_limited(index: SchemaIndex) -> None:
    results = search_tags(index, "PARKING", limit=2)

    assert _pairs(results) == ["amenity=parking", "parking=surface"]


def test_search_tags_never_returns_patterns(index: SchemaIndex) -> None:
    assert _pairs(search_tags(index, "building")) == ["building=house"]
    assert search_tags(index, "bench") == []
    assert search_tags(index, "seating") == []


def test_search_tags_results_are_unique(index: SchemaIndex) -> None:
    pairs = _pairs(search_tags(index, "a"))

    assert len(pairs) == len(set(pairs))


def test_search_tags_no_match_and_zero_limit(index: SchemaIndex) -> None:
    assert search_tags(index, "zzzz") == []
    assert search_tags(index, "parking", limit=0) == []


def test_search_presets_by_keyword(index: SchemaIndex) -> None:
    results = search_presets(index, "parking")

    assert [entry["id"] for entry in results] == [
        "amenity/parking",
        "amenity/parking/multilevel",
        "amenity/bicycle_parking",
    ]
    assert results[0]["name"] == "Parking Lot"


def test_search_presets_geometry_and_limit(index: SchemaIndex) -> None:
    points = search_presets(index, "parking", geometry="point")
    assert [entry["id"] for entry in points] == ["amenity/parking", "amenity/bicycle_parking"]
    assert all("point" in entry["geometry"] for entry in points)

    limited = search_presets(index, "parking", limit=1)
    assert [entry["id"] for entry in limited] == ["amenity/parking"]


def test_search_presets_by_tag_is_exact_and_case_insensitive(index: SchemaIndex) -> None:
    results = search_presets(index, "AMENITY=CAFE")

    assert [entry["id"] for entry in results] == ["amenity/cafe"]
    assert results[0]["tags_detailed"] == [
        {"key": "amenity", "key_name": "Type", "value": "cafe", "value_name": "Cafe"}
    ]
    assert search_presets(index, "amenity=caf") == []
    assert search_presets(index, "amenity=") == []


def test_search_presets_reports_wildcards(index: SchemaIndex) -> None:
    results = search_presets(index, "building")

    assert [entry["id"] for entry in results] == ["building", "building/house"]
    assert results[0]["tags_detailed"][0]["value_name"] == "*"


def test_related_tags_for_key_value(index: SchemaIndex) -> None:
    results = get_related_tags(index, "amenity=parking")

    assert results == [
        {"key": "parking", "value": "surface", "frequency": 1, "preset_examples": ["Parking Lot"]},
        {
            "key": "parking",
            "value": "multi-storey",
            "frequency": 1,
            "preset_examples": ["Multilevel Parking Garage"],
        },
    ]


def test_related_tags_for_key_counts_presets(index: SchemaIndex) -> None:
    results = get_related_tags(index, "parking")

    assert results == [
        {
            "key": "amenity",
            "value": "parking",
            "frequency": 2,
            "preset_examples": ["Parking Lot", "Multilevel Parking Garage"],
        }
    ]


def test_related_tags_sorted_and_limited(index: SchemaIndex) -> None:
    results = get_related_tags(index, "amenity")
    frequencies = [entry["frequency"] for entry in results]

    assert frequencies == sorted(frequencies, reverse=True)
    assert all(entry["key"] != "amenity" for entry in results)
    assert _pairs(get_related_tags(index, "amenity", limit=2)) == ["parking=surface", "parking=multi-storey"]


def test_related_tags_unknown_tag(index: SchemaIndex) -> None:
    assert get_related_tags(index, "amenity=spaceport") == []
