from __future__ import annotations

import pytest

from osm_tagging_schema.errors import FORMAT_ERROR, INVALID_TYPE, TagFormatError, TagTypeError
from osm_tagging_schema.tag_parser import format_tags, parse_json_tags, parse_tag_input, reject_empty_values


def test_mapping_input_is_trimmed_and_keeps_order() -> None:
    parsed = parse_tag_input({" amenity ": " restaurant ", "name": "Test Cafe"})

    assert parsed == {"amenity": "restaurant", "name": "Test Cafe"}
    assert list(parsed) == ["amenity", "name"]


def test_json_text_is_parsed() -> None:
    parsed = parse_tag_input('{"amenity": "cafe", "cuisine": "coffee_shop"}')

    assert parsed == {"amenity": "cafe", "cuisine": "coffee_shop"}


@pytest.mark.parametrize(
    "text",
    [
        "amenity=restaurant\nname=Test Cafe",
        "amenity=restaurant\r\nname=Test Cafe",
        "amenity=restaurant\rname=Test Cafe",
        "# header\n\namenity=restaurant\n   \nname=Test Cafe\n",
        "  amenity = restaurant  \n name =  Test Cafe ",
    ],
)
def test_flat_text_variants_normalize_identically(text: str) -> None:
    assert parse_tag_input(text) == {"amenity": "restaurant", "name": "Test Cafe"}


def test_flat_text_splits_on_first_equals_only() -> None:
    parsed = parse_tag_input("note=a=b=c\nurl=https://example.org/?q=1")

    assert parsed == {"note": "a=b=c", "url": "https://example.org/?q=1"}


def test_flat_text_allows_empty_value_and_last_duplicate_wins() -> None:
    parsed = parse_tag_input("name=\namenity=cafe\namenity=bar")

    assert parsed == {"name": "", "amenity": "bar"}


def test_missing_separator_reports_line_number() -> None:
    with pytest.raises(TagFormatError) as excinfo:
        parse_tag_input("amenity=cafe\n# comment\nbroken line")

    assert excinfo.value.code == FORMAT_ERROR
    assert excinfo.value.line == 3
    assert "line 3" in excinfo.value.message
    assert "Expected format: key=value" in excinfo.value.message


def test_empty_key_is_rejected() -> None:
    with pytest.raises(TagFormatError) as excinfo:
        parse_tag_input("=restaurant")

    assert excinfo.value.line == 1


@pytest.mark.parametrize("text", ["[1, 2]", '{"amenity": '])
def test_invalid_json_text_is_a_format_error(text: str) -> None:
    with pytest.raises(TagFormatError):
        parse_tag_input(text)


def test_non_string_values_are_type_errors() -> None:
    with pytest.raises(TagTypeError) as excinfo:
        parse_tag_input({"amenity": "cafe", "capacity": 12})

    assert excinfo.value.code == INVALID_TYPE
    assert excinfo.value.key == "capacity"
    assert "int" in excinfo.value.message


def test_json_text_with_non_string_value_is_type_error() -> None:
    with pytest.raises(TagTypeError):
        parse_tag_input('{"building:levels": 3}')


def test_non_string_non_mapping_input_is_rejected() -> None:
    with pytest.raises(TagFormatError):
        parse_tag_input(42)  # type: ignore[arg-type]


def test_parse_json_tags_rejects_flat_text() -> None:
    with pytest.raises(TagFormatError):
        parse_json_tags("amenity=cafe")

    assert parse_json_tags('{"amenity": "cafe"}') == {"amenity": "cafe"}
    assert parse_json_tags({"amenity": " cafe"}) == {"amenity": "cafe"}


def test_format_tags_and_parse_round_trip() -> None:
    tags = {"amenity": "restaurant", "name": "Chez A=B", "cuisine": "italian;pizza"}

    text = format_tags(tags)

    assert text == "amenity=restaurant\nname=Chez A=B\ncuisine=italian;pizza"
    assert parse_tag_input(text) == tags


def test_reject_empty_values() -> None:
    assert reject_empty_values({"amenity": "cafe"}) == {"amenity": "cafe"}
    with pytest.raises(TagFormatError) as excinfo:
        reject_empty_values({"amenity": "cafe", "name": ""})
    assert '"name"' in excinfo.value.message


def test_normalizing_canonical_mapping_is_idempotent() -> None:
    canonical = {"amenity": "restaurant", "name": "Test Cafe", "opening_hours": "Mo-Fr 08:00-18:00"}

    once = parse_tag_input(canonical)

    assert once == canonical
    assert parse_tag_input(once) == once
