from __future__ import annotations

import logging
import random
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

import redis
from pydantic import ValidationError

from partyhub.agents.content_generator import ContentGenerationError, generate_content
from partyhub.api.models import (
    AssignedRole,
    ClueCard,
    CreateDeductionGameRequest,
    DeductionConfig,
    DeductionData,
    DeductionGameState,
    DeductionScenario,
    GamePhaseEvent,
    GameRecordHeader,
    GameStatus,
    JoinDeductionGameRequest,
    PlayerSpecificData,
    RoleAlignment,
    RoleDefinition,
    ScenarioData,
    StartDeductionGameRequest,
)
from partyhub.core.visibility import require_participant, sanitize_for_public, sanitize_for_viewer
from partyhub.errors import AuthRequired, BusinessRuleViolation, InvalidRequest, NotFound, PermissionDenied
from partyhub.fallbacks import default_roles, default_scenario
from partyhub.fsm import DeductionFSM
from partyhub.game_setup import assign_roles, duration_minutes, generate_invite_code
from partyhub.generation_specs import ContentType
from partyhub.kv_store import DAY_SECONDS, KVStore, is_valid_uuid4, key, require_uuid4
from partyhub.turn_processing.validators import ValidationContext, pipeline_for_action

logger = logging.getLogger(__name__)

DEDUCTION_TTL_SECONDS = 7 * DAY_SECONDS


def _now() -> datetime:
    return datetime.now(tz=UTC)


def game_key(game_id: str) -> str:
    return key("game", game_id)


def creator_games_key(owner_id: str) -> str:
    return key("creator_games", owner_id)


def player_game_key(player_id: str) -> str:
    return key("player_game", player_id)


def invite_code_key(game_id: str) -> str:
    return key("invite_code", game_id)


def voting_session_key(game_id: str) -> str:
    return key("voting_session", game_id)


def game_clues_key(game_id: str, player_id: str | None = None) -> str:
    if player_id is None:
        return key("game_clues", game_id)
    return key("game_clues", game_id, player_id)


def game_role_key(game_id: str, player_id: str) -> str:
    return key("game_role", game_id, player_id)


def voting_history_key(game_id: str, player_id: str) -> str:
    return key("voting_history", game_id, player_id)


def player_data_key(game_id: str, player_id: str) -> str:
    return key("player_data", game_id, player_id)


def _dump(state: DeductionGameState) -> dict[str, Any]:
    return state.model_dump(mode="json")


def _event(*, description: str, affected: list[str], flavor_text: str | None) -> GamePhaseEvent:
    return GamePhaseEvent(
        event_id=str(uuid4()),
        type="phase_change",
        description=description,
        timestamp=_now(),
        affected_players=list(affected),
        is_public=True,
        flavor_text=flavor_text,
    )


def _require_record(kv: KVStore, game_id: str) -> dict[str, Any]:
    raw = kv.read(game_key(game_id))
    if not isinstance(raw, dict):
        raise NotFound("Game not found", code="GAME_NOT_FOUND")
    return raw


def _check(action: str, *, game_id: str, player_id: str | None, raw: dict[str, Any]) -> None:
    header = GameRecordHeader.model_validate(raw)
    ctx = ValidationContext(game_id=game_id, player_id=player_id, action=action)
    pipeline_for_action(action).validate(ctx=ctx, state=header)


def _init_player_records(kv: KVStore, game_id: str, player_id: str) -> None:
    kv.set(player_game_key(player_id), game_id, DEDUCTION_TTL_SECONDS)
    kv.set(
        player_data_key(game_id, player_id),
        {"suspicions": {}, "communications": [], "action_history": [], "joined_at": _now().isoformat()},
        DEDUCTION_TTL_SECONDS,
    )
    kv.set(game_clues_key(game_id, player_id), [], DEDUCTION_TTL_SECONDS)
    kv.set(voting_history_key(game_id, player_id), [], DEDUCTION_TTL_SECONDS)


async def _scenario_for(req: CreateDeductionGameRequest) -> ScenarioData:
    scenario = req.settings.scenario
    try:
        raw = await generate_content(
            ContentType.scenario_generation,
            {
                "theme": req.settings.theme,
                "scenario": scenario.value,
                "max_players": req.max_players,
                "duration": req.settings.duration,
            },
        )
        return ScenarioData.model_validate({**raw, "scenario_id": str(uuid4()), "theme": scenario.value})
    except (ContentGenerationError, ValidationError) as e:
        logger.warning("scenario generation failed, using %s template: %s", scenario.value, e)
        return default_scenario(DeductionScenario(scenario))


async def _roles_for(state: DeductionGameState) -> list[RoleDefinition]:
    count = state.current_player_count
    try:
        raw = await generate_content(
            ContentType.role_generation,
            {
                "scenario": state.data.scenario.model_dump(mode="json", include={"name", "setting", "lore"}),
                "player_count": count,
                "theme": state.config.settings.theme,
            },
        )
        roles = [RoleDefinition.model_validate(item) for item in raw["roles"]]
    except (ContentGenerationError, ValidationError, TypeError) as e:
        logger.warning("role generation failed for game_id=%s, using default roles: %s", state.game_id, e)
        return default_roles(count)

    if len(roles) < count or not any(r.alignment == RoleAlignment.mafia for r in roles):
        logger.warning("generated roles unusable for game_id=%s (%s roles), using default roles", state.game_id, len(roles))
        return default_roles(count)
    return roles


async def create_deduction_game(
    *,
    r: redis.Redis,
    req: CreateDeductionGameRequest,
) -> tuple[DeductionGameState, str | None]:
    """Create a deduction lobby with the creator seated as owner.

    Returns the stored state and, for private games, the invite code.
    """

    if req.min_players > req.max_players:
        raise InvalidRequest("Minimum players cannot exceed maximum players", code="INVALID_PLAYER_RANGE")

    kv = KVStore(r)
    game_id = str(uuid4())
    owner = req.creator_id.lower()
    scenario = await _scenario_for(req)
    now = _now()

    state = DeductionGameState(
        game_id=game_id,
        status=GameStatus.waiting_for_players,
        owner_id=owner,
        players=[owner],
        current_player_count=1,
        created_at=now,
        updated_at=now,
        config=DeductionConfig(
            name=req.name,
            description=req.description,
            max_players=req.max_players,
            min_players=req.min_players,
            estimated_duration_minutes=duration_minutes(req.settings.duration),
            is_private=req.is_private,
            settings=req.settings,
        ),
        data=DeductionData(
            scenario=scenario,
            alive_players=[owner],
            events=[
                _event(
                    description="Game created and waiting for players",
                    affected=[owner],
                    flavor_text=scenario.flavor_text.introduction or "Welcome to the game!",
                )
            ],
        ),
    )

    kv.set(game_key(game_id), _dump(state), DEDUCTION_TTL_SECONDS)
    kv.set(creator_games_key(owner), game_id, DEDUCTION_TTL_SECONDS)
    _init_player_records(kv, game_id, owner)

    invite_code: str | None = None
    if req.is_private:
        invite_code = generate_invite_code()
        kv.set(invite_code_key(game_id), invite_code, DEDUCTION_TTL_SECONDS)

    logger.info("deduction game created game_id=%s owner=%s private=%s", game_id, owner, req.is_private)
    return state, invite_code


def load_player_data(*, r: redis.Redis, state: DeductionGameState, player_id: str) -> PlayerSpecificData:
    kv = KVStore(r)
    gid = str(state.game_id)
    role = kv.read(game_role_key(gid, player_id))
    clues = kv.read(game_clues_key(gid, player_id)) or []
    history = kv.read(voting_history_key(gid, player_id)) or []
    return PlayerSpecificData(
        role=AssignedRole.model_validate(role) if role else None,
        status="eliminated" if player_id in state.data.eliminated_players else "alive",
        clues=[ClueCard.model_validate(c) for c in clues],
        voting_history=history,
    )


def get_deduction_game(
    *,
    r: redis.Redis,
    game_id: str,
    player_id: str | None = None,
    include_secrets: bool = False,
) -> tuple[DeductionGameState, PlayerSpecificData | None]:
    """Read a game as `player_id` sees it, or the public view when no player is given.

    Night-action secrets are only served to the owner.
    """

    gid = require_uuid4(game_id, code="INVALID_GAME_ID", label="game ID")
    kv = KVStore(r)
    raw = _require_record(kv, gid)
    _check("deduction.read", game_id=gid, player_id=player_id, raw=raw)
    state = DeductionGameState.model_validate(raw)

    if player_id is None:
        if include_secrets:
            raise PermissionDenied("Only the game owner may view secrets", code="SECRETS_FORBIDDEN")
        return sanitize_for_public(state), None

    pid = require_uuid4(player_id, code="INVALID_PLAYER_ID", label="player ID")
    require_participant(state, pid)
    if include_secrets and pid != state.owner_id.lower():
        raise PermissionDenied("Only the game owner may view secrets", code="SECRETS_FORBIDDEN")

    view = sanitize_for_viewer(state, pid, include_secrets=include_secrets)
    return view, load_player_data(r=r, state=state, player_id=pid)


def delete_deduction_game(*, r: redis.Redis, game_id: str, requester_id: str | None) -> None:
    gid = require_uuid4(game_id, code="INVALID_GAME_ID", label="game ID")
    if not is_valid_uuid4(requester_id):
        raise AuthRequired("Authentication required")
    rid = str(requester_id).lower()

    kv = KVStore(r)
    raw = _require_record(kv, gid)
    _check("deduction.delete", game_id=gid, player_id=rid, raw=raw)
    header = GameRecordHeader.model_validate(raw)

    keys = [voting_session_key(gid), invite_code_key(gid), game_clues_key(gid)]
    if header.owner_id and kv.read(creator_games_key(header.owner_id)) == gid:
        keys.append(creator_games_key(header.owner_id))
    for pid in header.players:
        keys.extend(
            [
                game_role_key(gid, pid),
                game_clues_key(gid, pid),
                voting_history_key(gid, pid),
                player_data_key(gid, pid),
            ]
        )
        # Only drop the player's lookup if it still points at this game.
        if kv.read(player_game_key(pid)) == gid:
            keys.append(player_game_key(pid))

    # A start that lands after the guard above bumps the version and fails this delete.
    deleted = kv.delete_if_version(game_key(gid), *keys, expected_version=header.version)
    logger.info("deduction game deleted game_id=%s by=%s keys_removed=%s", gid, rid, deleted)


def join_deduction_game(
    *,
    r: redis.Redis,
    game_id: str,
    req: JoinDeductionGameRequest,
) -> tuple[DeductionGameState, int]:
    """Seat a player. Returns the new state and the player's 1-based seat position."""

    gid = require_uuid4(game_id, code="INVALID_GAME_ID", label="game ID")
    pid = req.player_id.lower()
    kv = KVStore(r)
    raw = _require_record(kv, gid)
    _check("deduction.join", game_id=gid, player_id=pid, raw=raw)
    state = DeductionGameState.model_validate(raw)

    if pid in state.players:
        raise BusinessRuleViolation("Player already in game", code="PLAYER_ALREADY_JOINED")
    if state.current_player_count >= state.config.max_players:
        raise BusinessRuleViolation("Game is full", code="GAME_FULL")
    if state.config.is_private:
        if not req.invite_code:
            raise PermissionDenied("Invite code required for private game", code="INVITE_CODE_REQUIRED")
        if req.invite_code != kv.read(invite_code_key(gid)):
            raise PermissionDenied("Invalid invite code", code="INVALID_INVITE_CODE")

    expected = state.version
    state.players.append(pid)
    state.current_player_count = len(state.players)
    state.data.alive_players.append(pid)
    state.data.events.append(
        _event(
            description=f"Player {req.player_name or pid} joined the game",
            affected=[pid],
            flavor_text="Welcome to the game!",
        )
    )
    if state.current_player_count >= state.config.min_players:
        state.status = GameStatus.ready_to_start
    state.updated_at = _now()

    state.version = kv.compare_and_set(
        game_key(gid), _dump(state), expected_version=expected, ttl_seconds=DEDUCTION_TTL_SECONDS
    )
    _init_player_records(kv, gid, pid)

    logger.info("player joined deduction game game_id=%s player=%s count=%s", gid, pid, state.current_player_count)
    return state, len(state.players)


async def start_deduction_game(
    *,
    r: redis.Redis,
    game_id: str,
    req: StartDeductionGameRequest,
    rng: random.Random | None = None,
) -> tuple[DeductionGameState, dict[str, AssignedRole]]:
    """Deal roles and move the game into its first day."""

    gid = require_uuid4(game_id, code="INVALID_GAME_ID", label="game ID")
    rid = req.requester_id.lower()
    kv = KVStore(r)
    raw = _require_record(kv, gid)
    _check("deduction.start", game_id=gid, player_id=rid, raw=raw)
    state = DeductionGameState.model_validate(raw)

    if state.current_player_count < state.config.min_players and not req.force_start:
        raise BusinessRuleViolation(
            f"Need at least {state.config.min_players} players to start", code="INSUFFICIENT_PLAYERS"
        )

    expected = state.version
    roles = await _roles_for(state)
    assignments = assign_roles(players=state.players, roles=roles, rng=rng or random.Random())

    DeductionFSM(state).apply("start")
    state.status = GameStatus.active
    state.data.scenario.available_roles = roles
    state.data.round = 1
    state.data.time_remaining = state.config.settings.discussion_time_per_round * 60
    state.data.events.append(
        _event(
            description="Game has started! Roles have been assigned.",
            affected=state.players,
            flavor_text=state.data.scenario.flavor_text.day_phase_start or "The game begins!",
        )
    )
    state.updated_at = _now()

    # Roles are written only once the state write has won.
    state.version = kv.compare_and_set(
        game_key(gid), _dump(state), expected_version=expected, ttl_seconds=DEDUCTION_TTL_SECONDS
    )
    for pid, assignment in assignments.items():
        kv.set(game_role_key(gid, pid), assignment.model_dump(mode="json"), DEDUCTION_TTL_SECONDS)

    logger.info("deduction game started game_id=%s players=%s roles=%s", gid, len(state.players), len(roles))
    return state, assignments
