from __future__ import annotations

from uuid import UUID

import redis
from fastapi import APIRouter, Depends, Header, status

from partyhub.api.deps import get_redis
from partyhub.api.rpg_models import (
    CreateRPGGameRequest,
    CreateRPGGameResponse,
    DeleteRPGGameResponse,
    GetRPGGameResponse,
    JoinCodeResponse,
)
from partyhub.rpg_store import create_rpg_game, delete_rpg_game, get_rpg_game, resolve_join_code

router = APIRouter(prefix="/game/rpg", tags=["rpg"])


@router.post("/create", response_model=CreateRPGGameResponse, status_code=status.HTTP_201_CREATED)
async def create_route(
    payload: CreateRPGGameRequest,
    x_player_id: str | None = Header(default=None),
    r: redis.Redis = Depends(get_redis),
) -> CreateRPGGameResponse:
    return await create_rpg_game(r=r, req=payload, creator_id=x_player_id)


@router.get("/join/{code}", response_model=JoinCodeResponse)
async def join_code_route(code: str, r: redis.Redis = Depends(get_redis)) -> JoinCodeResponse:
    game_id = resolve_join_code(r=r, code=code)
    return JoinCodeResponse(game_id=UUID(game_id), join_code=code)


@router.get("/{game_id}", response_model=GetRPGGameResponse)
async def get_route(
    game_id: str,
    x_player_id: str | None = Header(default=None),
    r: redis.Redis = Depends(get_redis),
) -> GetRPGGameResponse:
    return get_rpg_game(r=r, game_id=game_id, requester_id=x_player_id)


@router.delete("/{game_id}", response_model=DeleteRPGGameResponse)
async def delete_route(
    game_id: str,
    x_player_id: str | None = Header(default=None),
    r: redis.Redis = Depends(get_redis),
) -> DeleteRPGGameResponse:
    return delete_rpg_game(r=r, game_id=game_id, requester_id=x_player_id)
