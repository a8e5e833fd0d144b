from __future__ import annotations

import redis
from fastapi import APIRouter, Depends, Header, status

from partyhub.api.deps import get_redis
from partyhub.api.village_models import (
    CreateVillageRequest,
    CreateVillageResponse,
    DeleteVillageResponse,
    GetVillageResourcesResponse,
    GetVillageResponse,
    ResourceRecommendations,
    UpdateVillageRequest,
    UpdateVillageResponse,
    VillageSummary,
)
from partyhub.village_store import (
    create_village,
    delete_village,
    get_village,
    get_village_resources,
    update_village,
)

router = APIRouter(prefix="/game/village", tags=["village"])


@router.post("/create", response_model=CreateVillageResponse, status_code=status.HTTP_201_CREATED)
async def create_route(payload: CreateVillageRequest, r: redis.Redis = Depends(get_redis)) -> CreateVillageResponse:
    village, game_state = create_village(r=r, req=payload)
    return CreateVillageResponse(
        village=VillageSummary(
            village_id=village.village_id,
            name=village.name,
            size=village.size,
            population=village.population.total,
            happiness=village.happiness,
            stability=village.stability,
            prosperity=village.prosperity,
            defense=village.defense,
            season=village.season.current,
            game_day=game_state.game_day,
        ),
        game_state=game_state,
    )


@router.get("/{village_id}", response_model=GetVillageResponse)
async def get_route(village_id: str, r: redis.Redis = Depends(get_redis)) -> GetVillageResponse:
    village, game_state, derived, alerts = get_village(r=r, village_id=village_id)
    return GetVillageResponse(
        village=village,
        game_state=game_state,
        derived_stats=derived,
        resource_alerts=alerts,
        last_updated=village.updated_at,
    )


@router.get("/{village_id}/resources", response_model=GetVillageResourcesResponse)
async def resources_route(village_id: str, r: redis.Redis = Depends(get_redis)) -> GetVillageResourcesResponse:
    village, analytics, projections, alerts = get_village_resources(r=r, village_id=village_id)
    return GetVillageResourcesResponse(
        resources=village.resources,
        analytics=analytics,
        projections=projections,
        alerts=alerts,
        recommendations=ResourceRecommendations(actions=[a.recommended_actions[0] for a in alerts[:5]]),
        last_updated=village.resources.updated_at,
    )


@router.put("/{village_id}", response_model=UpdateVillageResponse)
async def update_route(
    village_id: str,
    payload: UpdateVillageRequest,
    x_player_id: str | None = Header(default=None),
    r: redis.Redis = Depends(get_redis),
) -> UpdateVillageResponse:
    village = update_village(r=r, village_id=village_id, req=payload, requester_id=x_player_id)
    return UpdateVillageResponse(village=village)


@router.delete("/{village_id}", response_model=DeleteVillageResponse)
async def delete_route(
    village_id: str,
    x_player_id: str | None = Header(default=None),
    r: redis.Redis = Depends(get_redis),
) -> DeleteVillageResponse:
    delete_village(r=r, village_id=village_id, requester_id=x_player_id)
    return DeleteVillageResponse(message="Village deleted successfully", deleted_village_id=village_id)
