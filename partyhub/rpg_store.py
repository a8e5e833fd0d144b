from __future__ import annotations

import logging
import random
import time
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

import redis
from pydantic import ValidationError

from partyhub.agents.content_generator import ContentGenerationError, generate_content
from partyhub.api.models import GameRecordHeader, GameStatus
from partyhub.api.rpg_models import (
    CreateRPGGameRequest,
    CreateRPGGameResponse,
    DeleteRPGGameResponse,
    FinalStatistics,
    GetRPGGameResponse,
    PlayerPermissions,
    RPGConfig,
    RPGData,
    RPGGameMeta,
    RPGGameState,
    RPGGameSummary,
    RPGPhase,
    WorldData,
    WorldPreferences,
    WorldSummary,
)
from partyhub.errors import AuthRequired, BusinessRuleViolation, InvalidRequest, NotFound, PermissionDenied
from partyhub.fallbacks import default_world
from partyhub.game_setup import unique_join_code
from partyhub.game_store import creator_games_key, game_key
from partyhub.generation_specs import ContentType
from partyhub.kv_store import DAY_SECONDS, KVStore, is_valid_uuid4, key, require_uuid4
from partyhub.turn_processing.validators import ValidationContext, pipeline_for_action

logger = logging.getLogger(__name__)

RPG_TTL_SECONDS = 30 * DAY_SECONDS
JOIN_CODE_TTL_SECONDS = DAY_SECONDS

_COMPLETION_BY_PHASE: dict[RPGPhase, str] = {
    RPGPhase.world_generation: "setup_incomplete",
    RPGPhase.character_creation: "setup_incomplete",
    RPGPhase.exploration: "in_progress",
    RPGPhase.conversation: "in_progress",
    RPGPhase.combat: "in_progress",
    RPGPhase.rest: "in_progress",
    RPGPhase.shopping: "in_progress",
    RPGPhase.quest_completion: "partially_complete",
}


def _now() -> datetime:
    return datetime.now(tz=UTC)


def rpg_meta_key(game_id: str) -> str:
    return key("rpg_game_meta", game_id)


def join_code_key(code: str) -> str:
    return key("game_join_code", code)


def systems_for(config: RPGConfig, prefs: WorldPreferences) -> list[str]:
    systems = ["exploration", "dialogue", "inventory", "quests"]
    if config.settings.combat_enabled:
        systems.append("combat")
    if prefs.magic_level != "none":
        systems.append("magic")
    if prefs.faction_count > 0:
        systems.append("factions")
    return systems


def completion_status(phase: RPGPhase) -> str:
    return _COMPLETION_BY_PHASE.get(phase, "unknown")


def _optional_player(player_id: str | None) -> str | None:
    if player_id is None or player_id == "":
        return None
    if not is_valid_uuid4(player_id):
        raise AuthRequired("Invalid player identity")
    return player_id.lower()


def _require_player(player_id: str | None) -> str:
    if not is_valid_uuid4(player_id):
        raise AuthRequired("Authentication required")
    return str(player_id).lower()


async def _world_for(req: CreateRPGGameRequest) -> WorldData:
    prefs = req.world_preferences
    try:
        raw = await generate_content(ContentType.world_generation, prefs.model_dump(mode="json"))
        return WorldData.model_validate({**raw, "world_id": str(uuid4()), "theme": prefs.theme})
    except (ContentGenerationError, ValidationError) as e:
        logger.warning("world generation failed, using %s default world: %s", prefs.tone.value, e)
        return default_world(prefs)


def _load_state(kv: KVStore, game_id: str) -> RPGGameState:
    raw = kv.read(game_key(game_id))
    if not isinstance(raw, dict):
        raise NotFound("Game not found", code="GAME_NOT_FOUND")
    if raw.get("type") != "rpg":
        raise BusinessRuleViolation("Invalid game type", code="INVALID_GAME_TYPE")
    return RPGGameState.model_validate(raw)


async def create_rpg_game(
    *,
    r: redis.Redis,
    req: CreateRPGGameRequest,
    creator_id: str | None = None,
    rng: random.Random | None = None,
) -> CreateRPGGameResponse:
    started = time.monotonic()
    config = req.config
    if config.min_players > config.max_players:
        raise InvalidRequest("Minimum players cannot exceed maximum players", code="INVALID_PLAYER_RANGE")

    owner = _optional_player(creator_id)
    kv = KVStore(r)
    rng = rng or random.Random()

    world = await _world_for(req)
    world.systems_enabled = systems_for(config, req.world_preferences)

    game_id = str(uuid4())
    now = _now()
    players = [owner] if owner else []
    state = RPGGameState(
        game_id=game_id,
        status=GameStatus.waiting_for_players,
        phase=RPGPhase.character_creation,
        owner_id=owner,
        players=players,
        current_player_count=len(players),
        created_at=now,
        updated_at=now,
        config=config,
        data=RPGData(world=world, current_location=world.locations[0].location_id if world.locations else ""),
    )
    kv.set(game_key(game_id), state.model_dump(mode="json"), RPG_TTL_SECONDS)

    code = unique_join_code(rng=rng, taken=lambda c: kv.exists(join_code_key(c)))
    kv.set(
        join_code_key(code),
        {"game_id": game_id, "created_by": owner, "created_at": now.isoformat()},
        JOIN_CODE_TTL_SECONDS,
    )

    meta = RPGGameMeta(
        game_id=game_id,
        name=config.name,
        description=config.description,
        created_by=owner,
        created_at=now,
        status=state.status,
        phase=state.phase,
        player_count=state.current_player_count,
        max_players=config.max_players,
        world_theme=req.world_preferences.theme,
        world_size=req.world_preferences.size,
        join_code=code,
    )
    kv.set(rpg_meta_key(game_id), meta.model_dump(mode="json"), RPG_TTL_SECONDS)
    if owner:
        kv.set(creator_games_key(owner), game_id, RPG_TTL_SECONDS)

    logger.info("rpg game created game_id=%s owner=%s join_code=%s", game_id, owner, code)
    return CreateRPGGameResponse(
        game_id=state.game_id,
        config=config,
        world_summary=WorldSummary(
            world_id=world.world_id,
            name=world.name,
            description=world.description,
            theme=world.theme,
            location_count=len(world.locations),
            npc_count=len(world.npcs),
            faction_count=len(world.factions),
            systems_enabled=world.systems_enabled,
        ),
        initial_state=state,
        join_code=code,
        setup_seconds=round(time.monotonic() - started, 3),
    )


def get_rpg_game(*, r: redis.Redis, game_id: str, requester_id: str | None) -> GetRPGGameResponse:
    gid = require_uuid4(game_id, code="INVALID_GAME_ID", label="game ID")
    rid = _require_player(requester_id)
    kv = KVStore(r)
    state = _load_state(kv, gid)

    is_owner = state.owner_id is not None and state.owner_id.lower() == rid
    is_player = rid in state.players
    if not (is_owner or is_player):
        raise PermissionDenied("Access denied to this game")

    meta_raw: dict[str, Any] = kv.read(rpg_meta_key(gid)) or {}
    return GetRPGGameResponse(
        game=RPGGameSummary(
            game_id=state.game_id,
            name=state.config.name,
            description=state.config.description,
            status=state.status,
            phase=state.phase,
            created_at=state.created_at,
            updated_at=state.updated_at,
            created_by=meta_raw.get("created_by", state.owner_id),
            players=state.players,
        ),
        state=state,
        player_permissions=PlayerPermissions(
            can_modify=is_owner or is_player,
            can_invite=is_owner or is_player,
            can_kick=is_owner,
            can_delete=is_owner,
        ),
        last_activity=state.updated_at,
    )


def delete_rpg_game(*, r: redis.Redis, game_id: str, requester_id: str | None) -> DeleteRPGGameResponse:
    gid = require_uuid4(game_id, code="INVALID_GAME_ID", label="game ID")
    rid = _require_player(requester_id)
    kv = KVStore(r)

    raw = kv.read(game_key(gid))
    if not isinstance(raw, dict):
        raise NotFound("Game not found", code="GAME_NOT_FOUND")
    header = GameRecordHeader.model_validate(raw)
    pipeline_for_action("rpg.delete").validate(
        ctx=ValidationContext(game_id=gid, player_id=rid, action="rpg.delete"), state=header
    )
    state = RPGGameState.model_validate(raw)

    now = _now()
    stats = FinalStatistics(
        duration_seconds=max(0.0, (now - state.created_at).total_seconds()),
        total_actions=len(state.metadata.action_history),
        players_joined=state.current_player_count,
        completion_status=completion_status(state.phase),  # type: ignore[arg-type]
    )

    keys = [game_key(gid), rpg_meta_key(gid)]
    meta_raw = kv.read(rpg_meta_key(gid))
    if isinstance(meta_raw, dict) and meta_raw.get("join_code"):
        keys.append(join_code_key(meta_raw["join_code"]))
    if state.owner_id and kv.read(creator_games_key(state.owner_id)) == gid:
        keys.append(creator_games_key(state.owner_id))
    kv.delete(*keys)

    logger.info("rpg game deleted game_id=%s by=%s status=%s", gid, rid, stats.completion_status)
    return DeleteRPGGameResponse(game_id=state.game_id, deleted_at=now, final_statistics=stats)


def resolve_join_code(*, r: redis.Redis, code: str) -> str:
    entry = KVStore(r).read(join_code_key(code.strip().lower()))
    if not isinstance(entry, dict) or not entry.get("game_id"):
        raise NotFound("Join code not found or expired", code="JOIN_CODE_NOT_FOUND")
    return str(entry["game_id"])
