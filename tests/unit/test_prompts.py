from __future__ import annotations

import re

from osm_tagging_schema.prompts import PROMPTS, explore_category, improve_tags, learn_tag, validate_osm_feature


def _step_numbers(text: str) -> list[int]:
    return [int(match) for match in re.findall(r"^(\d+)\. ", text, flags=re.MULTILINE)]


def test_prompt_names_are_unique() -> None:
    names = [definition.name for definition in PROMPTS]

    assert len(names) == len(set(names)) == 5


def test_validate_feature_prompt_embeds_tags_and_tools() -> None:
    text = validate_osm_feature("restaurant", "amenity=restaurant\nname=Test")

    assert "amenity=restaurant\nname=Test" in text
    assert "validate_tag_collection" in text
    assert "suggest_improvements" in text
    assert _step_numbers(text) == [1, 2, 3, 4, 5, 6]


def test_learn_tag_prompt_mentions_key() -> None:
    text = learn_tag("cuisine")

    assert 'get_tag_values for "cuisine"' in text
    assert _step_numbers(text) == list(range(1, 7))


def test_explore_category_without_geometry() -> None:
    text = explore_category("shop")

    assert "mapped as" not in text
    assert "filtered by geometry" not in text
    assert _step_numbers(text) == list(range(1, 8))


def test_improve_tags_prompt_has_seven_steps() -> None:
    assert _step_numbers(improve_tags("amenity=cafe")) == list(range(1, 8))
