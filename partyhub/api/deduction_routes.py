from __future__ import annotations

import redis
from fastapi import APIRouter, Depends, Header, Query, status

from partyhub.api.deps import get_redis
from partyhub.api.models import (
    CreateDeductionGameRequest,
    CreateDeductionGameResponse,
    GetDeductionGameResponse,
    JoinDeductionGameRequest,
    JoinDeductionGameResponse,
    StartDeductionGameRequest,
    StartDeductionGameResponse,
    SuccessResponse,
)
from partyhub.game_setup import public_role_map
from partyhub.game_store import (
    create_deduction_game,
    delete_deduction_game,
    get_deduction_game,
    join_deduction_game,
    start_deduction_game,
)

router = APIRouter(prefix="/game/deduction", tags=["deduction"])


@router.post("/create", response_model=CreateDeductionGameResponse, status_code=status.HTTP_201_CREATED)
async def create_route(
    payload: CreateDeductionGameRequest,
    r: redis.Redis = Depends(get_redis),
) -> CreateDeductionGameResponse:
    state, invite_code = await create_deduction_game(r=r, req=payload)
    return CreateDeductionGameResponse(game_id=state.game_id, game_state=state, invite_code=invite_code)


@router.get("/{game_id}", response_model=GetDeductionGameResponse)
async def get_route(
    game_id: str,
    player_id: str | None = Query(default=None),
    include_secrets: bool = Query(default=False),
    r: redis.Redis = Depends(get_redis),
) -> GetDeductionGameResponse:
    state, player_data = get_deduction_game(
        r=r,
        game_id=game_id,
        player_id=player_id,
        include_secrets=include_secrets,
    )
    return GetDeductionGameResponse(game_state=state, player_data=player_data)


@router.delete("/{game_id}", response_model=SuccessResponse)
async def delete_route(
    game_id: str,
    x_player_id: str | None = Header(default=None),
    r: redis.Redis = Depends(get_redis),
) -> SuccessResponse:
    delete_deduction_game(r=r, game_id=game_id, requester_id=x_player_id)
    return SuccessResponse(message="Game deleted successfully")


@router.post("/{game_id}/join", response_model=JoinDeductionGameResponse)
async def join_route(
    game_id: str,
    payload: JoinDeductionGameRequest,
    r: redis.Redis = Depends(get_redis),
) -> JoinDeductionGameResponse:
    state, position = join_deduction_game(r=r, game_id=game_id, req=payload)
    return JoinDeductionGameResponse(game_state=state, player_position=position)


@router.post("/{game_id}/start", response_model=StartDeductionGameResponse)
async def start_route(
    game_id: str,
    payload: StartDeductionGameRequest,
    r: redis.Redis = Depends(get_redis),
) -> StartDeductionGameResponse:
    state, assignments = await start_deduction_game(r=r, game_id=game_id, req=payload)
    return StartDeductionGameResponse(game_state=state, assigned_roles=public_role_map(assignments))
