from __future__ import annotations

import random
import secrets
from collections.abc import Callable

from partyhub.api.models import (
    AssignedRole,
    DurationChoice,
    PublicRoleAssignment,
    RoleAlignment,
    RoleDefinition,
    RoleObjective,
)
from partyhub.errors import BusinessRuleViolation

DURATION_MINUTES: dict[str, int] = {"short": 15, "medium": 30, "long": 60}

JOIN_CODE_ADJECTIVES = (
    "brave", "swift", "wise", "bold", "clever", "mighty", "noble", "fierce",
    "loyal", "bright", "strong", "quick", "keen", "wild", "free", "pure",
)  # fmt: skip
JOIN_CODE_NOUNS = (
    "dragon", "phoenix", "lion", "eagle", "wolf", "bear", "tiger", "falcon",
    "horse", "stag", "raven", "hawk", "fox", "elk", "owl", "shark",
)  # fmt: skip


def duration_minutes(duration: DurationChoice) -> int:
    return DURATION_MINUTES.get(duration, 30)


def secret_info_for(role: RoleDefinition) -> list[str]:
    out: list[str] = []
    if role.alignment == RoleAlignment.mafia:
        out.append("You know who the other mafia members are")
        out.append("You can communicate privately with your team")
    if role.type == "investigative":
        out.append("You have the ability to learn information about other players")
    return out


def objectives_for(role: RoleDefinition) -> list[RoleObjective]:
    if role.alignment == RoleAlignment.town:
        return [
            RoleObjective(
                objective_id="eliminate_mafia",
                description="Eliminate all mafia members",
                target=RoleAlignment.mafia,
            )
        ]
    if role.alignment == RoleAlignment.mafia:
        return [
            RoleObjective(
                objective_id="eliminate_town",
                description="Eliminate all town members",
                target=RoleAlignment.town,
            )
        ]
    return []


def assign_roles(
    *,
    players: list[str],
    roles: list[RoleDefinition],
    rng: random.Random,
) -> dict[str, AssignedRole]:
    """Deal `roles` to `players` in random order.

    Mafia-aligned players learn each other's ids; everyone else gets no teammates.
    Extra roles beyond the player count are left undealt.
    """

    if len(roles) < len(players):
        raise BusinessRuleViolation(
            "Not enough roles defined for all players",
            code="INSUFFICIENT_ROLES",
            details={"players": len(players), "roles": len(roles)},
        )

    shuffled = list(players)
    rng.shuffle(shuffled)

    dealt = dict(zip(shuffled, roles))
    mafia = [pid for pid, role in dealt.items() if role.alignment == RoleAlignment.mafia]

    assignments: dict[str, AssignedRole] = {}
    for pid, role in dealt.items():
        teammates = [m for m in mafia if m != pid] if role.alignment == RoleAlignment.mafia else []
        assignments[pid] = AssignedRole(
            definition=role,
            secret_info=secret_info_for(role),
            teammates=teammates,
            objectives=objectives_for(role),
        )
    return assignments


def public_role_map(assignments: dict[str, AssignedRole]) -> dict[str, PublicRoleAssignment]:
    return {
        pid: PublicRoleAssignment(role=a.definition.name, alignment=a.definition.alignment)
        for pid, a in assignments.items()
    }


def generate_invite_code() -> str:
    # 8 uppercase hex chars.
    return secrets.token_hex(4).upper()


def generate_join_code(rng: random.Random) -> str:
    adjective = rng.choice(JOIN_CODE_ADJECTIVES)
    noun = rng.choice(JOIN_CODE_NOUNS)
    return f"{adjective}-{noun}-{rng.randrange(1000):03d}"


def unique_join_code(*, rng: random.Random, taken: Callable[[str], bool], max_attempts: int = 10) -> str:
    """Draw join codes until one is free; the code space is 256,000 so collisions are rare."""

    for _ in range(max_attempts):
        code = generate_join_code(rng)
        if not taken(code):
            return code
    raise BusinessRuleViolation("Could not allocate a unique join code", code="JOIN_CODE_EXHAUSTED")
