from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from partyhub.agents.json_schema import JsonSchema, closed_object, string_list


class ContentType(StrEnum):
    scenario_generation = "scenario_generation"
    role_generation = "role_generation"
    world_generation = "world_generation"


@dataclass(frozen=True, slots=True)
class ContentSpec:
    content_type: ContentType
    prompt_file: str
    schema: JsonSchema
    # Keys the parsed JSON object must carry before it is handed back.
    required_keys: tuple[str, ...]


_ALIGNMENTS = ["town", "mafia", "neutral", "survivor"]
_ROLE_TYPES = ["vanilla", "power", "investigative", "protective", "killing", "support"]

_SCENARIO_SCHEMA = JsonSchema(
    name="scenario_generation",
    schema=closed_object(
        {
            "name": {"type": "string"},
            "description": {"type": "string"},
            "setting": {"type": "string"},
            "lore": {"type": "string"},
            "win_conditions": string_list(),
            "custom_rules": string_list(),
            "flavor_text": closed_object(
                {
                    "introduction": {"type": "string"},
                    "day_phase_start": {"type": "string"},
                    "night_phase_start": {"type": "string"},
                    "elimination_text": {"type": "string"},
                    "victory_texts": closed_object({a: {"type": "string"} for a in _ALIGNMENTS}),
                }
            ),
        }
    ),
)

_ROLE_SCHEMA = JsonSchema(
    name="role_generation",
    schema=closed_object(
        {
            "roles": {
                "type": "array",
                "items": closed_object(
                    {
                        "role_id": {"type": "string"},
                        "name": {"type": "string"},
                        "alignment": {"type": "string", "enum": _ALIGNMENTS},
                        "type": {"type": "string", "enum": _ROLE_TYPES},
                        "description": {"type": "string"},
                        "win_condition": {"type": "string"},
                        "flavor_text": {"type": "string"},
                    }
                ),
            }
        }
    ),
)

_WORLD_SCHEMA = JsonSchema(
    name="world_generation",
    schema=closed_object(
        {
            "name": {"type": "string"},
            "description": {"type": "string"},
            "locations": {
                "type": "array",
                "items": closed_object(
                    {
                        "location_id": {"type": "string"},
                        "name": {"type": "string"},
                        "description": {"type": "string"},
                        "type": {"type": "string"},
                    }
                ),
            },
            "npcs": {
                "type": "array",
                "items": closed_object(
                    {
                        "npc_id": {"type": "string"},
                        "name": {"type": "string"},
                        "role": {"type": "string"},
                        "location_id": {"type": "string"},
                    }
                ),
            },
            "factions": {
                "type": "array",
                "items": closed_object(
                    {
                        "faction_id": {"type": "string"},
                        "name": {"type": "string"},
                        "disposition": {"type": "string", "enum": ["friendly", "neutral", "hostile"]},
                    }
                ),
            },
        }
    ),
)


CONTENT_SPECS: dict[ContentType, ContentSpec] = {
    ContentType.scenario_generation: ContentSpec(
        content_type=ContentType.scenario_generation,
        prompt_file="scenario_generation.txt",
        schema=_SCENARIO_SCHEMA,
        required_keys=("name", "description", "setting", "lore", "flavor_text"),
    ),
    ContentType.role_generation: ContentSpec(
        content_type=ContentType.role_generation,
        prompt_file="role_generation.txt",
        schema=_ROLE_SCHEMA,
        required_keys=("roles",),
    ),
    ContentType.world_generation: ContentSpec(
        content_type=ContentType.world_generation,
        prompt_file="world_generation.txt",
        schema=_WORLD_SCHEMA,
        required_keys=("name", "description", "locations"),
    ),
}


def content_spec_for(content_type: ContentType | str) -> ContentSpec:
    try:
        return CONTENT_SPECS[ContentType(content_type)]
    except ValueError as e:
        raise ValueError(f"Unknown content type: {content_type}") from e
