from __future__ import annotations

import logging
import math
from datetime import UTC, datetime
from uuid import uuid4

import redis

from partyhub.api.village_models import (
    ClimateType,
    CreateVillageRequest,
    DerivedStats,
    Economy,
    Policy,
    PolicyUpdate,
    Population,
    ProjectedAmount,
    ResourceAlert,
    ResourceAnalytics,
    ResourceStock,
    Season,
    UpdateVillageRequest,
    Village,
    VillageGameState,
    VillageLocation,
    VillageResources,
    VillageSize,
)
from partyhub.core.village_stats import (
    compute_derived_stats,
    compute_resource_alerts,
    compute_resource_analytics,
    compute_storage_alerts,
    project_resources,
)
from partyhub.errors import AuthRequired, Conflict, NotFound, PermissionDenied
from partyhub.kv_store import KVStore, is_valid_uuid4, key, require_uuid4

logger = logging.getLogger(__name__)

SIZE_MULTIPLIER: dict[VillageSize, float] = {
    VillageSize.hamlet: 1.0,
    VillageSize.village: 1.5,
    VillageSize.town: 2.5,
    VillageSize.city: 4.0,
}

# Only food, wood and water vary by climate.
CLIMATE_MODIFIER: dict[ClimateType, dict[str, float]] = {
    ClimateType.tropical: {"food": 1.2, "wood": 1.3, "water": 0.9},
    ClimateType.temperate: {"food": 1.0, "wood": 1.0, "water": 1.0},
    ClimateType.arid: {"food": 0.7, "wood": 0.6, "water": 1.5},
    ClimateType.continental: {"food": 0.9, "wood": 1.1, "water": 1.0},
    ClimateType.polar: {"food": 0.6, "wood": 0.8, "water": 1.2},
    ClimateType.mediterranean: {"food": 1.1, "wood": 0.9, "water": 0.8},
}

# Flat starting stock before the size multiplier; food and water scale with population instead.
BASE_STOCK: dict[str, float] = {
    "wood": 100,
    "stone": 50,
    "iron": 20,
    "lumber": 30,
    "tools": 15,
    "weapons": 5,
    "cloth": 25,
    "pottery": 10,
    "books": 2,
    "spices": 0,
    "jewelry": 0,
    "art": 0,
    "wine": 5,
    "silk": 0,
    "gold": 500,
    "knowledge": 10,
    "culture": 20,
    "faith": 15,
    "influence": 5,
}

DEFAULT_HAPPINESS = 65
DEFAULT_STABILITY = 70
DEFAULT_PROSPERITY = 40
DEFAULT_DEFENSE = 30


def _now() -> datetime:
    return datetime.now(tz=UTC)


def village_key(village_id: str) -> str:
    return key("village", village_id)


def village_game_state_key(village_id: str) -> str:
    return key("gamestate", village_id)


def village_session_key(session_id: str) -> str:
    return key("village_session", session_id)


def village_aux_keys(village_id: str) -> list[str]:
    return [key(kind, village_id) for kind in ("village_resources", "village_npcs", "village_events", "village_buildings")]


def starting_resources(*, size: VillageSize, climate: ClimateType, population: int) -> dict[str, int]:
    mult = SIZE_MULTIPLIER[size]
    mod = CLIMATE_MODIFIER[climate]
    out = {
        "food": math.floor(population * 3 * mult * mod["food"]),
        "water": math.floor(population * 2 * mult * mod["water"]),
    }
    for resource, base in BASE_STOCK.items():
        factor = mod.get(resource, 1.0)
        out[resource] = math.floor(base * mult * factor)
    return out


def starting_population(total: int) -> Population:
    return Population(
        total=total,
        children=math.floor(total * 0.25),
        adults=math.floor(total * 0.65),
        elderly=math.floor(total * 0.1),
        employed=math.floor(total * 0.6),
        unemployed=math.floor(total * 0.15),
        skilled=math.floor(total * 0.3),
        unskilled=math.floor(total * 0.55),
        birth_rate=25,
        death_rate=8,
        migration_rate=2,
        housed_population=math.floor(total * 0.85),
        homeless_population=math.floor(total * 0.15),
    )


def build_village(req: CreateVillageRequest, *, now: datetime | None = None) -> Village:
    now = now or _now()
    amounts = starting_resources(size=req.size, climate=req.climate, population=req.starting_population)
    stocks = {
        resource: ResourceStock(
            current=amount,
            maximum=math.floor(amount * 2),
            spoilage_rate=0.02 if resource == "food" else 0,
            last_updated=now,
        )
        for resource, amount in amounts.items()
    }
    return Village(
        village_id=str(uuid4()),
        session_id=req.session_id,
        owner_id=req.player_id.lower() if req.player_id else None,
        name=req.name,
        size=req.size,
        founded=now,
        population=starting_population(req.starting_population),
        resources=VillageResources(
            resources=stocks,
            total_capacity=sum(s.maximum for s in stocks.values()),
            used_capacity=sum(s.current for s in stocks.values()),
            updated_at=now,
        ),
        economy=Economy(treasury=amounts["gold"]),
        happiness=DEFAULT_HAPPINESS,
        stability=DEFAULT_STABILITY,
        prosperity=DEFAULT_PROSPERITY,
        defense=DEFAULT_DEFENSE,
        location=VillageLocation(
            region=req.location.region,
            climate=req.climate,
            terrain=list(req.location.terrain),
            water_access=req.location.water_access,
        ),
        season=Season(total_days=req.config.season_length),
        created_at=now,
        updated_at=now,
    )


def create_village(*, r: redis.Redis, req: CreateVillageRequest) -> tuple[Village, VillageGameState]:
    kv = KVStore(r)
    existing = kv.read(village_session_key(req.session_id))
    if existing:
        raise Conflict(
            "Session already has an active village",
            code="SESSION_HAS_VILLAGE",
            details={"village_id": existing.get("village_id") if isinstance(existing, dict) else None},
        )

    now = _now()
    village = build_village(req, now=now)
    game_state = VillageGameState(
        session_id=req.session_id,
        village_id=village.village_id,
        player_id=village.owner_id or "",
        created_at=now,
        updated_at=now,
    )

    kv.set(village_key(village.village_id), village.model_dump(mode="json"))
    kv.set(village_session_key(req.session_id), {"village_id": village.village_id, "session_id": req.session_id})
    kv.set(village_game_state_key(village.village_id), game_state.model_dump(mode="json"))

    logger.info("village created village_id=%s session=%s size=%s", village.village_id, req.session_id, req.size.value)
    return village, game_state


def _require_village(kv: KVStore, village_id: str) -> Village:
    raw = kv.read(village_key(village_id))
    if not isinstance(raw, dict):
        raise NotFound("Village not found", code="VILLAGE_NOT_FOUND")
    return Village.model_validate(raw)


def _require_game_state(kv: KVStore, village_id: str) -> VillageGameState:
    raw = kv.read(village_game_state_key(village_id))
    if not isinstance(raw, dict):
        raise NotFound("Village game state not found", code="GAME_STATE_NOT_FOUND")
    return VillageGameState.model_validate(raw)


def _require_owner(village: Village, requester_id: str | None) -> None:
    if village.owner_id is None:
        return
    if not is_valid_uuid4(requester_id):
        raise AuthRequired("Authentication required")
    if str(requester_id).lower() != village.owner_id:
        raise PermissionDenied("Only the village owner can change this village")


def get_village(
    *,
    r: redis.Redis,
    village_id: str,
) -> tuple[Village, VillageGameState, DerivedStats, list[ResourceAlert]]:
    vid = require_uuid4(village_id, code="INVALID_VILLAGE_ID", label="village ID")
    kv = KVStore(r)
    village = _require_village(kv, vid)
    game_state = _require_game_state(kv, vid)
    return village, game_state, compute_derived_stats(village), compute_resource_alerts(village)


def get_village_resources(
    *,
    r: redis.Redis,
    village_id: str,
) -> tuple[Village, ResourceAnalytics, dict[str, list[ProjectedAmount]], list[ResourceAlert]]:
    """Stock analytics, a week of projections and storage alerts. Read-only."""

    vid = require_uuid4(village_id, code="INVALID_VILLAGE_ID", label="village ID")
    kv = KVStore(r)
    village = _require_village(kv, vid)
    _require_game_state(kv, vid)
    return village, compute_resource_analytics(village), project_resources(village), compute_storage_alerts(village)


def merge_policies(existing: list[Policy], updates: list[PolicyUpdate]) -> list[Policy]:
    """Merge by policy_id. Untouched policies are kept in place; updated ones are replaced wholesale."""

    merged = {p.policy_id: p for p in existing}
    for u in updates:
        merged[u.policy_id] = Policy(policy_id=u.policy_id, name=u.name, type=u.type, is_active=u.is_active)
    return list(merged.values())


def update_village(
    *,
    r: redis.Redis,
    village_id: str,
    req: UpdateVillageRequest,
    requester_id: str | None = None,
) -> Village:
    vid = require_uuid4(village_id, code="INVALID_VILLAGE_ID", label="village ID")
    kv = KVStore(r)
    village = _require_village(kv, vid)
    _require_owner(village, requester_id)
    expected = village.version if req.expected_version is None else req.expected_version

    changes = req.model_dump(exclude_unset=True, exclude={"policies", "expected_version"})
    for field_name, value in changes.items():
        if value is not None:
            setattr(village, field_name, value)
    if req.policies is not None:
        village.economy.policies = merge_policies(village.economy.policies, req.policies)
    village.updated_at = _now()

    village.version = kv.compare_and_set(village_key(vid), village.model_dump(mode="json"), expected_version=expected)
    logger.info("village updated village_id=%s fields=%s version=%s", vid, sorted(changes), village.version)
    return village


def delete_village(*, r: redis.Redis, village_id: str, requester_id: str | None = None) -> None:
    vid = require_uuid4(village_id, code="INVALID_VILLAGE_ID", label="village ID")
    kv = KVStore(r)
    village = _require_village(kv, vid)
    _require_owner(village, requester_id)

    keys = [village_key(vid), village_game_state_key(vid), *village_aux_keys(vid)]
    session = kv.read(village_session_key(village.session_id))
    if isinstance(session, dict) and session.get("village_id") == vid:
        keys.append(village_session_key(village.session_id))
    kv.delete(*keys)
    logger.info("village deleted village_id=%s", vid)
