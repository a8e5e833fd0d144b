from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Annotated, Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from partyhub.kv_store import UUID4_PATTERN

PlayerId = Annotated[str, Field(pattern=UUID4_PATTERN)]


class GameType(StrEnum):
    rpg = "rpg"
    deduction = "deduction"
    village = "village"


class GameStatus(StrEnum):
    waiting_for_players = "waiting_for_players"
    ready_to_start = "ready_to_start"
    active = "active"
    paused = "paused"
    completed = "completed"
    cancelled = "cancelled"


class GameRecordHeader(BaseModel):
    """Fields every stored game record shares; read before the type-specific body is parsed."""

    model_config = ConfigDict(extra="ignore")

    type: str
    status: str
    phase: str
    owner_id: str | None = None
    players: list[str] = Field(default_factory=list)
    version: int = 0


class RequestModel(BaseModel):
    """Base for request bodies: unknown fields are a validation error, not silently dropped."""

    model_config = ConfigDict(extra="forbid")


# ---- Deduction records ----


class DeductionScenario(StrEnum):
    mafia = "mafia"
    werewolf = "werewolf"
    space_station = "space_station"
    medieval_court = "medieval_court"
    custom = "custom"


class DeductionPhase(StrEnum):
    role_assignment = "role_assignment"
    day_discussion = "day_discussion"
    day_voting = "day_voting"
    night_actions = "night_actions"
    game_over = "game_over"


class RoleAlignment(StrEnum):
    town = "town"
    mafia = "mafia"
    neutral = "neutral"
    survivor = "survivor"


DurationChoice = Literal["short", "medium", "long"]
RoleType = Literal["vanilla", "power", "investigative", "protective", "killing", "support"]
EventKind = Literal["elimination", "ability_used", "clue_revealed", "phase_change", "victory"]


class RoleDefinition(BaseModel):
    role_id: str
    name: str
    alignment: RoleAlignment
    type: RoleType = "vanilla"
    description: str = ""
    win_condition: str = ""
    flavor_text: str = ""
    requires_min_players: int = 4


class RoleObjective(BaseModel):
    objective_id: str
    description: str
    target: RoleAlignment
    is_completed: bool = False
    points: int = 100


class AssignedRole(BaseModel):
    definition: RoleDefinition
    secret_info: list[str] = Field(default_factory=list)
    # Other mafia-aligned players; empty for everyone else.
    teammates: list[str] = Field(default_factory=list)
    objectives: list[RoleObjective] = Field(default_factory=list)


class FlavorText(BaseModel):
    introduction: str
    day_phase_start: str
    night_phase_start: str
    elimination_text: str
    victory_texts: dict[RoleAlignment, str] = Field(default_factory=dict)
    role_reveal_texts: dict[str, str] = Field(default_factory=dict)


class ScenarioData(BaseModel):
    scenario_id: str
    name: str
    theme: str
    description: str
    setting: str
    lore: str
    available_roles: list[RoleDefinition] = Field(default_factory=list)
    win_conditions: list[str] = Field(default_factory=list)
    custom_rules: list[str] = Field(default_factory=list)
    flavor_text: FlavorText


class GamePhaseEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    event_id: str
    type: EventKind
    description: str
    timestamp: datetime
    affected_players: list[str] = Field(default_factory=list)
    is_public: bool
    flavor_text: str | None = None


class ClueCard(BaseModel):
    clue_id: str
    title: str
    content: str
    type: str = "role_hint"
    reliability: Literal["reliable", "unreliable", "misleading"] = "reliable"
    affected_players: list[str] | None = None
    is_revealed: bool = False
    revealed_at: datetime | None = None
    revealed_by: str | None = None


class NightActionResult(BaseModel):
    success: bool
    information: str | None = None
    effects: list[str] = Field(default_factory=list)
    blocked_by: str | None = None
    redirected_to: str | None = None


class NightAction(BaseModel):
    action_id: str
    actor_id: str
    ability: str
    target_id: str | None = None
    result: NightActionResult | None = None
    is_resolved: bool = False
    # Lower number resolves first.
    priority: int = 0


class DeductionSettings(BaseModel):
    theme: str = Field(..., min_length=1, max_length=100)
    scenario: DeductionScenario
    duration: DurationChoice
    discussion_time_per_round: int = Field(..., ge=3, le=30)
    voting_time_limit: int = Field(..., ge=1, le=10)
    allows_whispering: bool
    reveal_roles_on_death: bool
    allows_last_words: bool
    enable_clues: bool
    difficulty_modifiers: list[str] = Field(default_factory=list)


class DeductionConfig(BaseModel):
    type: Literal["deduction"] = "deduction"
    name: str
    description: str | None = None
    max_players: int
    min_players: int
    estimated_duration_minutes: int
    is_private: bool
    settings: DeductionSettings


class DeductionData(BaseModel):
    scenario: ScenarioData
    round: int = 0
    # Seconds.
    time_remaining: int = 0
    alive_players: list[str] = Field(default_factory=list)
    eliminated_players: list[str] = Field(default_factory=list)
    night_actions: list[NightAction] = Field(default_factory=list)
    clues_available: list[ClueCard] = Field(default_factory=list)
    events: list[GamePhaseEvent] = Field(default_factory=list)
    winner: str | None = None


class DeductionGameState(BaseModel):
    game_id: UUID
    type: Literal["deduction"] = "deduction"
    status: GameStatus = GameStatus.waiting_for_players
    phase: DeductionPhase = DeductionPhase.role_assignment

    # Explicit owner set at creation; authorization never infers it from player order.
    owner_id: str

    players: list[str] = Field(default_factory=list)
    current_player_count: int = 0
    created_at: datetime
    updated_at: datetime

    # Optimistic-concurrency token, bumped on every compare-and-set write.
    version: int = 0

    config: DeductionConfig
    data: DeductionData


class PlayerSpecificData(BaseModel):
    role: AssignedRole | None = None
    status: Literal["alive", "eliminated"] = "alive"
    voting_power: int = 1
    clues: list[ClueCard] = Field(default_factory=list)
    voting_history: list[dict[str, Any]] = Field(default_factory=list)


# ---- Deduction requests ----


class CreateDeductionGameRequest(RequestModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    max_players: int = Field(..., ge=4, le=20)
    min_players: int = Field(..., ge=4, le=20)
    is_private: bool
    settings: DeductionSettings
    creator_id: PlayerId


class JoinDeductionGameRequest(RequestModel):
    player_id: PlayerId
    player_name: str | None = Field(default=None, min_length=1, max_length=50)
    invite_code: str | None = None


class StartDeductionGameRequest(RequestModel):
    requester_id: PlayerId
    force_start: bool = False


# ---- Envelopes ----


class ErrorResponse(BaseModel):
    success: Literal[False] = False
    error: str
    code: str
    details: Any = None


class CreateDeductionGameResponse(BaseModel):
    success: bool = True
    game_id: UUID
    game_state: DeductionGameState
    invite_code: str | None = None


class GetDeductionGameResponse(BaseModel):
    success: bool = True
    game_state: DeductionGameState
    player_data: PlayerSpecificData | None = None


class JoinDeductionGameResponse(BaseModel):
    success: bool = True
    game_state: DeductionGameState
    player_position: int


class PublicRoleAssignment(BaseModel):
    role: str
    alignment: RoleAlignment


class StartDeductionGameResponse(BaseModel):
    success: bool = True
    game_state: DeductionGameState
    assigned_roles: dict[str, PublicRoleAssignment]


class SuccessResponse(BaseModel):
    success: bool = True
    message: str | None = None
