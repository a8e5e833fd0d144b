from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, Field

from partyhub.api.models import GameStatus, RequestModel


class RPGPhase(StrEnum):
    world_generation = "world_generation"
    character_creation = "character_creation"
    exploration = "exploration"
    conversation = "conversation"
    combat = "combat"
    rest = "rest"
    shopping = "shopping"
    quest_completion = "quest_completion"


class WorldTone(StrEnum):
    light = "light"
    balanced = "balanced"
    dark = "dark"


class RPGSettings(BaseModel):
    world_theme: str = Field(..., min_length=1, max_length=100)
    difficulty: Literal["easy", "medium", "hard", "custom"]
    combat_enabled: bool
    perma_death: bool
    voice_acting: bool = False
    narrative_style: Literal["epic", "dark", "humorous", "mystery", "adventure"]
    allow_custom_characters: bool = True
    max_level: int = Field(..., ge=1, le=100)
    starting_level: int = Field(..., ge=1, le=20)


class RPGConfig(BaseModel):
    type: Literal["rpg"] = "rpg"
    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    max_players: int = Field(..., ge=1, le=8)
    min_players: int = Field(..., ge=1, le=8)
    estimated_duration_minutes: int = Field(..., ge=30, le=480)
    is_private: bool
    settings: RPGSettings


class WorldPreferences(BaseModel):
    theme: str = Field(..., min_length=1, max_length=100)
    size: Literal["small", "medium", "large"]
    complexity: Literal["simple", "moderate", "complex"]
    tone: WorldTone
    biomes: list[str] = Field(..., min_length=1, max_length=10)
    faction_count: int = Field(..., ge=0, le=10)
    npc_density: Literal["sparse", "normal", "dense"]
    quest_density: Literal["few", "moderate", "many"]
    magic_level: Literal["none", "rare", "common", "abundant"]
    technology_level: Literal["primitive", "medieval", "renaissance", "industrial", "modern", "future"]
    danger_level: Literal["peaceful", "moderate", "dangerous"]
    cultural_diversity: Literal["homogeneous", "diverse", "cosmopolitan"]


class WorldLocation(BaseModel):
    location_id: str
    name: str
    description: str = ""
    type: str = "settlement"


class WorldNPC(BaseModel):
    npc_id: str
    name: str
    role: str = ""
    location_id: str | None = None


class WorldFaction(BaseModel):
    faction_id: str
    name: str
    disposition: Literal["friendly", "neutral", "hostile"] = "neutral"


class WorldData(BaseModel):
    world_id: str
    name: str
    description: str
    theme: str
    locations: list[WorldLocation] = Field(default_factory=list)
    npcs: list[WorldNPC] = Field(default_factory=list)
    factions: list[WorldFaction] = Field(default_factory=list)
    systems_enabled: list[str] = Field(default_factory=list)


class Weather(BaseModel):
    type: str = "clear"
    intensity: Literal["light", "moderate", "heavy"] = "light"
    effects: list[str] = Field(default_factory=list)


class PartyInventory(BaseModel):
    capacity: int = 100
    items: list[dict[str, Any]] = Field(default_factory=list)
    currency: int = 100


class RPGData(BaseModel):
    world: WorldData
    current_location: str = ""
    # Hour of day, 0-23.
    time_of_day: int = 8
    day_count: int = 1
    weather: Weather = Field(default_factory=Weather)
    global_flags: dict[str, Any] = Field(default_factory=dict)
    party_inventory: PartyInventory = Field(default_factory=PartyInventory)
    party_reputation: dict[str, int] = Field(default_factory=dict)


class RPGMetadata(BaseModel):
    action_history: list[dict[str, Any]] = Field(default_factory=list)


class RPGGameState(BaseModel):
    game_id: UUID
    type: Literal["rpg"] = "rpg"
    status: GameStatus = GameStatus.waiting_for_players
    phase: RPGPhase = RPGPhase.character_creation
    owner_id: str | None = None
    players: list[str] = Field(default_factory=list)
    current_player_count: int = 0
    turn: int = 0
    created_at: datetime
    updated_at: datetime
    version: int = 0
    config: RPGConfig
    data: RPGData
    metadata: RPGMetadata = Field(default_factory=RPGMetadata)


class RPGGameMeta(BaseModel):
    game_id: UUID
    name: str
    description: str | None = None
    created_by: str | None = None
    created_at: datetime
    status: GameStatus
    phase: RPGPhase
    player_count: int
    max_players: int
    world_theme: str
    world_size: str
    join_code: str


class CreateRPGGameRequest(RequestModel):
    config: RPGConfig
    world_preferences: WorldPreferences


class WorldSummary(BaseModel):
    world_id: str
    name: str
    description: str
    theme: str
    location_count: int
    npc_count: int
    faction_count: int
    systems_enabled: list[str]


class CreateRPGGameResponse(BaseModel):
    success: bool = True
    game_id: UUID
    config: RPGConfig
    world_summary: WorldSummary
    initial_state: RPGGameState
    join_code: str
    setup_seconds: float


class PlayerPermissions(BaseModel):
    can_modify: bool
    can_invite: bool
    can_kick: bool
    can_delete: bool


class RPGGameSummary(BaseModel):
    game_id: UUID
    name: str
    description: str | None = None
    status: GameStatus
    phase: RPGPhase
    created_at: datetime
    updated_at: datetime
    created_by: str | None = None
    players: list[str]


class GetRPGGameResponse(BaseModel):
    success: bool = True
    game: RPGGameSummary
    state: RPGGameState
    player_permissions: PlayerPermissions
    last_activity: datetime


class FinalStatistics(BaseModel):
    duration_seconds: float
    total_actions: int
    players_joined: int
    completion_status: Literal["setup_incomplete", "in_progress", "partially_complete", "unknown"]


class DeleteRPGGameResponse(BaseModel):
    success: bool = True
    game_id: UUID
    deleted_at: datetime
    final_statistics: FinalStatistics


class JoinCodeResponse(BaseModel):
    success: bool = True
    game_id: UUID
    join_code: str
