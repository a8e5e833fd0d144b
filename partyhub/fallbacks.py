from __future__ import annotations

import uuid
from dataclasses import dataclass

from partyhub.api.models import (
    DeductionScenario,
    FlavorText,
    RoleAlignment,
    RoleDefinition,
    ScenarioData,
)
from partyhub.api.rpg_models import WorldData, WorldFaction, WorldLocation, WorldNPC, WorldPreferences, WorldTone


@dataclass(frozen=True, slots=True)
class ScenarioTemplate:
    setting: str
    lore: str


@dataclass(frozen=True, slots=True)
class WorldTemplate:
    name: str
    description: str
    locations: tuple[tuple[str, str, str], ...]
    npcs: tuple[tuple[str, str], ...]
    faction_names: tuple[str, ...]
    disposition: str


SCENARIO_TEMPLATES: dict[DeductionScenario, ScenarioTemplate] = {
    DeductionScenario.mafia: ScenarioTemplate(
        setting="A modern city plagued by organized crime",
        lore="Crime families operate in the shadows while law enforcement seeks justice.",
    ),
    DeductionScenario.werewolf: ScenarioTemplate(
        setting="A medieval village under supernatural threat",
        lore="Lycanthropes hunt under the full moon while villagers fight for survival.",
    ),
    DeductionScenario.space_station: ScenarioTemplate(
        setting="A high-tech space station in crisis",
        lore="Saboteurs threaten the mission while crew members maintain order.",
    ),
    DeductionScenario.medieval_court: ScenarioTemplate(
        setting="A royal palace filled with political intrigue",
        lore="Nobles scheme for power while loyalists defend the crown.",
    ),
    DeductionScenario.custom: ScenarioTemplate(
        setting="A unique setting crafted for this game",
        lore="A tale waiting to be written by the players.",
    ),
}

DEFAULT_VICTORY_TEXTS: dict[RoleAlignment, str] = {
    RoleAlignment.town: "The town emerges victorious!",
    RoleAlignment.mafia: "The mafia has taken control!",
    RoleAlignment.neutral: "The neutral party achieves their goals!",
    RoleAlignment.survivor: "The survivor lives to tell the tale!",
}


def default_scenario(scenario: DeductionScenario) -> ScenarioData:
    template = SCENARIO_TEMPLATES[scenario]
    label = scenario.value.replace("_", " ")
    return ScenarioData(
        scenario_id=str(uuid.uuid4()),
        name=f"{label.title()} Game",
        theme=scenario.value,
        description=f"A classic {label} social deduction game",
        setting=template.setting,
        lore=template.lore,
        flavor_text=FlavorText(
            introduction=f"Welcome to {label}! Work together to find the truth.",
            day_phase_start="The day begins. Discuss and decide who to eliminate.",
            night_phase_start="Night falls. Those with night abilities may act.",
            elimination_text="A player has been eliminated.",
            victory_texts=dict(DEFAULT_VICTORY_TEXTS),
        ),
    )


def default_roles(player_count: int) -> list[RoleDefinition]:
    """Roughly one third mafia (at least one), the rest town.

    The first mafia role is the boss and the first town role is the detective.
    """

    mafia_count = max(1, player_count // 3)
    town_count = max(0, player_count - mafia_count)

    roles: list[RoleDefinition] = []
    for i in range(mafia_count):
        roles.append(
            RoleDefinition(
                role_id=f"mafia_{i}",
                name="Mafia Boss" if i == 0 else f"Mafia Member {i}",
                alignment=RoleAlignment.mafia,
                type="power" if i == 0 else "vanilla",
                description="Eliminate all town members to win",
                win_condition="Eliminate all town members",
                flavor_text="A member of the criminal organization",
            )
        )
    for i in range(town_count):
        roles.append(
            RoleDefinition(
                role_id=f"town_{i}",
                name="Detective" if i == 0 else f"Townsperson {i}",
                alignment=RoleAlignment.town,
                type="investigative" if i == 0 else "vanilla",
                description="Find and eliminate all mafia members",
                win_condition="Eliminate all mafia members",
                flavor_text="A concerned citizen fighting for justice",
            )
        )
    return roles


WORLD_TEMPLATES: dict[WorldTone, WorldTemplate] = {
    WorldTone.light: WorldTemplate(
        name="Sunmeadow Vale",
        description="Rolling hills, friendly villages, and a festival season about to begin.",
        locations=(
            ("Sunmeadow", "A cheerful market village at the heart of the vale.", "settlement"),
            ("Whistling Woods", "Bright woods full of curious creatures.", "wilderness"),
            ("Old Mill Crossing", "A riverside crossing with a creaky watermill.", "landmark"),
        ),
        npcs=(("Mayor Tilda Brightwater", "mayor"), ("Pip the Peddler", "merchant")),
        faction_names=("Festival Guild", "Vale Rangers", "Millers' Union"),
        disposition="friendly",
    ),
    WorldTone.balanced: WorldTemplate(
        name="The Border Marches",
        description="A frontier of fortified towns and contested roads between two old kingdoms.",
        locations=(
            ("Greywatch", "A walled trading town on the king's road.", "settlement"),
            ("The Fenwood", "Misty marshland where smugglers hide.", "wilderness"),
            ("Ruined Watchtower", "A crumbling tower overlooking the pass.", "dungeon"),
        ),
        npcs=(("Captain Mara Holt", "guard captain"), ("Old Bren", "innkeeper")),
        faction_names=("Crown Wardens", "Free Traders", "Marsh Brotherhood"),
        disposition="neutral",
    ),
    WorldTone.dark: WorldTemplate(
        name="Ashen Reach",
        description="A dying land under a red sky where the last towns bar their gates at dusk.",
        locations=(
            ("Cinderhold", "A soot-black fortress town hoarding its last grain.", "settlement"),
            ("The Hollow Barrows", "Burial mounds where the dead do not rest.", "dungeon"),
            ("Blightwood", "A forest of grey, twisted trees.", "wilderness"),
        ),
        npcs=(("Warden Kael", "gatekeeper"), ("Sister Veyra", "plague doctor")),
        faction_names=("Ember Covenant", "Barrow Cult", "Last Legion"),
        disposition="hostile",
    ),
}


def default_world(prefs: WorldPreferences) -> WorldData:
    """Static world for the requested tone, with exactly the requested number of factions."""

    template = WORLD_TEMPLATES[prefs.tone]
    locations = [
        WorldLocation(location_id=f"loc_{i}", name=name, description=desc, type=kind)
        for i, (name, desc, kind) in enumerate(template.locations)
    ]
    npcs = [
        WorldNPC(npc_id=f"npc_{i}", name=name, role=role, location_id=locations[0].location_id)
        for i, (name, role) in enumerate(template.npcs)
    ]
    factions = [
        WorldFaction(
            faction_id=f"faction_{i}",
            name=template.faction_names[i] if i < len(template.faction_names) else f"{template.name} House {i + 1}",
            disposition=template.disposition,  # type: ignore[arg-type]
        )
        for i in range(prefs.faction_count)
    ]
    return WorldData(
        world_id=str(uuid.uuid4()),
        name=template.name,
        description=template.description,
        theme=prefs.theme,
        locations=locations,
        npcs=npcs,
        factions=factions,
    )
