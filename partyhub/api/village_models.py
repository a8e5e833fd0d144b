from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field

from partyhub.api.models import PlayerId, RequestModel


class VillageSize(StrEnum):
    hamlet = "hamlet"
    village = "village"
    town = "town"
    city = "city"


class ClimateType(StrEnum):
    tropical = "tropical"
    temperate = "temperate"
    arid = "arid"
    continental = "continental"
    polar = "polar"
    mediterranean = "mediterranean"


class EventSeverity(StrEnum):
    minor = "minor"
    moderate = "moderate"
    major = "major"
    catastrophic = "catastrophic"
    beneficial = "beneficial"


PolicyType = Literal["tax", "trade", "labor", "resource", "military", "social"]
WaterAccess = Literal["riverside", "lakeside", "coastal", "inland_spring", "dry", "oasis"]
StatValue = Annotated[float, Field(ge=0, le=100)]
# Session ids become part of storage keys, so no ":" or whitespace.
SESSION_ID_PATTERN = r"^[A-Za-z0-9_-]+$"


class ResourceStock(BaseModel):
    current: float = Field(..., ge=0)
    maximum: float = Field(..., ge=0)
    reserved: float = 0
    quality: float = 75
    spoilage_rate: float = 0
    last_updated: datetime | None = None


class VillageResources(BaseModel):
    resources: dict[str, ResourceStock] = Field(default_factory=dict)
    total_capacity: float = 0
    used_capacity: float = 0
    daily_production: dict[str, float] = Field(default_factory=dict)
    daily_consumption: dict[str, float] = Field(default_factory=dict)
    updated_at: datetime | None = None


class Population(BaseModel):
    total: int = Field(..., ge=0)
    children: int = 0
    adults: int = 0
    elderly: int = 0
    employed: int = 0
    unemployed: int = 0
    skilled: int = 0
    unskilled: int = 0
    average_happiness: float = 65
    average_health: float = 70
    average_education: float = 40
    birth_rate: float = 0
    death_rate: float = 0
    migration_rate: float = 0
    housed_population: int = 0
    homeless_population: int = 0


class Policy(BaseModel):
    policy_id: str
    name: str
    type: PolicyType
    is_active: bool
    effects: list[dict[str, Any]] = Field(default_factory=list)
    cost: float = 0
    # Days.
    duration: int = 30
    popularity: float = 0


class Economy(BaseModel):
    treasury: float = 0
    monthly_income: float = 0
    monthly_expenses: float = 0
    net_profit: float = 0
    economic_health: float = 60
    inflation: float = 2
    unemployment: float = 15
    tax_rate: float = 10
    trade_fees: float = 5
    policies: list[Policy] = Field(default_factory=list)


class VillageEvent(BaseModel):
    event_id: str
    name: str
    type: str = "social"
    severity: EventSeverity
    description: str = ""
    start_date: datetime
    duration: int = 1


class HistoricalEvent(BaseModel):
    event_id: str
    name: str
    date: datetime
    severity: EventSeverity = EventSeverity.minor
    summary: str = ""


class VillageLocation(BaseModel):
    region: str = "Fertile Valley"
    climate: ClimateType = ClimateType.temperate
    terrain: list[str] = Field(default_factory=lambda: ["plain", "forest"])
    water_access: WaterAccess = "riverside"
    elevation: int = 100
    natural_resources: list[str] = Field(default_factory=lambda: ["food", "wood", "stone"])


class Season(BaseModel):
    current: Literal["spring", "summer", "autumn", "winter"] = "spring"
    day: int = 1
    total_days: int = 90


class VillageWeather(BaseModel):
    current: str = "sunny"
    temperature: float = 20
    humidity: float = 65


class Village(BaseModel):
    village_id: str
    session_id: str
    # None for a session-scoped village that anyone in the session may change.
    owner_id: str | None = None
    name: str
    size: VillageSize
    founded: datetime
    age: int = 0

    population: Population
    resources: VillageResources
    economy: Economy

    happiness: StatValue
    stability: StatValue
    prosperity: StatValue
    defense: StatValue

    location: VillageLocation = Field(default_factory=VillageLocation)
    season: Season = Field(default_factory=Season)
    weather: VillageWeather = Field(default_factory=VillageWeather)

    current_events: list[VillageEvent] = Field(default_factory=list)
    event_history: list[HistoricalEvent] = Field(default_factory=list)

    created_at: datetime
    updated_at: datetime
    version: int = 0


class VillageGameState(BaseModel):
    session_id: str
    village_id: str
    player_id: str = ""
    game_type: Literal["village"] = "village"
    phase: Literal["active", "paused", "completed"] = "active"
    turn: int = 0
    score: int = 0
    game_day: int = 0
    population_growth: float = 0
    happiness_change: float = 0
    created_at: datetime
    updated_at: datetime


# ---- Derived read-only views ----


class DerivedStats(BaseModel):
    resource_efficiency: int
    population_growth_rate: float
    economic_trend: Literal["positive", "negative", "stable"]
    housing_coverage: int
    employment_rate: int
    overall_health: int
    active_issues_count: int
    days_since_last_major_event: int


class ResourceAlert(BaseModel):
    resource: str
    type: Literal["shortage", "surplus", "quality_drop", "spoilage"]
    severity: Literal["critical", "high", "medium", "low"]
    # Days until depletion; -1 when not applicable.
    estimated_time_to_impact: int
    recommended_actions: list[str]


class ResourceBalance(BaseModel):
    flow: float
    status: Literal["surplus", "deficit", "balanced"]
    # -1 unless the stock is draining.
    days_until_empty: int


class CriticalResource(BaseModel):
    resource: str
    current: float
    maximum: float
    percentage: int
    quality: float


class ResourceAnalytics(BaseModel):
    total_resources: float
    storage_utilization: int
    production_efficiency: float
    resource_balance: dict[str, ResourceBalance]
    critical_resources: list[CriticalResource]
    quality_distribution: dict[str, int]


class ProjectedAmount(BaseModel):
    day: int
    amount: float
    status: Literal["depleted", "critical", "low", "stable"]


class ResourceRecommendations(BaseModel):
    priority: Literal["high"] = "high"
    actions: list[str]


# ---- Requests / responses ----


class VillageLocationRequest(RequestModel):
    region: str = "Fertile Valley"
    terrain: list[str] = Field(default_factory=lambda: ["plain", "forest"])
    water_access: WaterAccess = "riverside"


class VillageConfigRequest(RequestModel):
    real_time_progression: bool = False
    # Minutes per game day.
    day_length: int = Field(default=60, ge=1, le=1440)
    # Game days per season.
    season_length: int = Field(default=90, ge=10, le=365)
    resource_scarcity: int = Field(default=30, ge=0, le=100)
    event_frequency: int = Field(default=40, ge=0, le=100)
    crisis_intensity: int = Field(default=25, ge=0, le=100)


class CreateVillageRequest(RequestModel):
    session_id: str = Field(..., min_length=1, max_length=128, pattern=SESSION_ID_PATTERN)
    name: str = Field(..., min_length=1, max_length=50)
    player_id: PlayerId | None = None
    size: VillageSize = VillageSize.hamlet
    climate: ClimateType = ClimateType.temperate
    location: VillageLocationRequest = Field(default_factory=VillageLocationRequest)
    config: VillageConfigRequest = Field(default_factory=VillageConfigRequest)
    starting_population: int = Field(default=50, ge=10, le=1000)


class PolicyUpdate(RequestModel):
    policy_id: str
    name: str
    type: PolicyType
    is_active: bool


class UpdateVillageRequest(RequestModel):
    name: str | None = Field(default=None, min_length=1, max_length=50)
    happiness: float | None = Field(default=None, ge=0, le=100)
    stability: float | None = Field(default=None, ge=0, le=100)
    prosperity: float | None = Field(default=None, ge=0, le=100)
    defense: float | None = Field(default=None, ge=0, le=100)
    policies: list[PolicyUpdate] | None = None
    # When given, the update is rejected unless the stored record still has this version.
    expected_version: int | None = Field(default=None, ge=0)


class VillageSummary(BaseModel):
    village_id: str
    name: str
    size: VillageSize
    population: int
    happiness: float
    stability: float
    prosperity: float
    defense: float
    season: str
    game_day: int


class CreateVillageResponse(BaseModel):
    success: bool = True
    village: VillageSummary
    game_state: VillageGameState


class GetVillageResponse(BaseModel):
    success: bool = True
    village: Village
    game_state: VillageGameState
    derived_stats: DerivedStats
    resource_alerts: list[ResourceAlert]
    last_updated: datetime


class UpdateVillageResponse(BaseModel):
    success: bool = True
    village: Village
    message: str = "Village updated successfully"


class DeleteVillageResponse(BaseModel):
    success: bool = True
    message: str
    deleted_village_id: str


class GetVillageResourcesResponse(BaseModel):
    success: bool = True
    resources: VillageResources
    analytics: ResourceAnalytics
    projections: dict[str, list[ProjectedAmount]]
    alerts: list[ResourceAlert]
    recommendations: ResourceRecommendations
    last_updated: datetime | None
