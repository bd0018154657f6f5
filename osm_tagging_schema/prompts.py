"""Guided-workflow prompt templates.

Each prompt renders one user message walking an assistant through the tools
this server exposes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

__all__ = [
    "PROMPTS",
    "PromptDefinition",
    "explore_category",
    "find_preset",
    "improve_tags",
    "learn_tag",
    "validate_osm_feature",
]


def _steps(*steps: str) -> str:
    return "\n".join(f"{number}. {step}" for number, step in enumerate(steps, start=1))


def validate_osm_feature(feature_type: str, tags: str) -> str:
    return (
        f"I need to validate an OpenStreetMap {feature_type} feature with the following tags:\n\n"
        f"{tags}\n\nPlease help me:\n"
        + _steps(
            "Convert the tags to JSON format if needed (use flat_to_json tool)",
            "Validate each tag using validate_tag_collection",
            "Identify any deprecated tags and show modern replacements",
            f"Check if all tags are appropriate for a {feature_type}",
            "Suggest any missing important tags using suggest_improvements",
            "Provide a summary of the validation results with actionable recommendations",
        )
    )


def find_preset(feature_description: str) -> str:
    return (
        f"I want to map a {feature_description} in OpenStreetMap but I'm not sure what tags to use.\n\n"
        "Please help me:\n"
        + _steps(
            f'Search for relevant presets using search_presets with keywords from "{feature_description}"',
            "Show me the top matching presets with their names and tags",
            "For the most relevant preset, get complete details using get_preset_details",
            "Explain what each tag means and which fields are required vs optional",
            "Provide a complete example of how to tag this feature with realistic values",
        )
    )


def learn_tag(tag_key: str) -> str:
    return (
        f'I want to learn about the OpenStreetMap tag key "{tag_key}".\n\n'
        "Please help me understand:\n"
        + _steps(
            f'Get all possible values using get_tag_values for "{tag_key}"',
            "Show me the complete list of values with their human-readable names",
            f'Search for example presets using search_tags with keyword "{tag_key}"',
            "Show 3-5 concrete examples of how this tag is used in different presets",
            f'Explain the general purpose and common use cases for the "{tag_key}" tag',
            "Highlight any important conventions or rules for using this tag",
        )
    )


def improve_tags(current_tags: str) -> str:
    return (
        f"I have an OpenStreetMap feature with these tags:\n\n{current_tags}\n\n"
        "I want to make it more complete and informative. Please help me:\n"
        + _steps(
            "Convert tags to JSON if needed using flat_to_json",
            "Identify what type of feature this is by searching for matching presets",
            "Use suggest_improvements to get suggestions for missing fields",
            "For each suggested field, explain what it's for and provide example values",
            "Prioritize suggestions by importance (required fields first, then commonly used optional fields)",
            "Show me a complete, improved version of the tags with realistic example values",
            "Validate the improved tag collection to ensure quality",
        )
    )


def explore_category(category: str, geometry_type: str | None = None) -> str:
    scope = f" that can be mapped as {geometry_type} features" if geometry_type else ""
    geometry_filter = f' filtered by geometry="{geometry_type}"' if geometry_type else ""
    return (
        f'I want to explore all the different types of features in the OpenStreetMap "{category}" '
        f"category{scope}.\n\nPlease help me:\n"
        + _steps(
            f'Get all possible values for the "{category}" tag using get_tag_values',
            f"Show me how many different {category} types exist",
            "Group the values into logical subcategories if possible (e.g., food, education, healthcare for amenity)",
            f"For interesting or common values, search for their presets using search_presets{geometry_filter}",
            f"Highlight 5-10 of the most commonly used {category} types",
            "For 2-3 example types, show complete preset details including required fields",
            f'Summarize the diversity and scope of the "{category}" category',
        )
    )


@dataclass(frozen=True, slots=True)
class PromptDefinition:
    name: str
    description: str
    render: Callable[..., str]


PROMPTS: tuple[PromptDefinition, ...] = (
    PromptDefinition(
        "validate-osm-feature",
        "Walk through validating every tag of an OpenStreetMap feature, flagging deprecated tags "
        "and suggesting improvements before upload.",
        validate_osm_feature,
    ),
    PromptDefinition(
        "find-preset",
        "Find the right OpenStreetMap preset for a feature and learn which tags and fields it needs.",
        find_preset,
    ),
    PromptDefinition(
        "learn-tag",
        "Explain an OpenStreetMap tag key with its possible values and usage examples.",
        learn_tag,
    ),
    PromptDefinition(
        "improve-tags",
        "Turn a minimal OpenStreetMap tag collection into a complete one using schema suggestions.",
        improve_tags,
    ),
    PromptDefinition(
        "explore-category",
        "Explore every feature type under an OpenStreetMap tag key, optionally limited to one geometry.",
        explore_category,
    ),
)
