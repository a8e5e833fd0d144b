from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from partyhub.api.deduction_routes import router as deduction_router
from partyhub.api.models import ErrorResponse
from partyhub.api.routes import router
from partyhub.api.rpg_routes import router as rpg_router
from partyhub.api.village_routes import router as village_router
from partyhub.errors import GameError
from partyhub.settings import settings_from_env

APP_NAME = "partyhub"
APP_VERSION = "0.1.0"

# Configure logging
logging.basicConfig(level=settings_from_env().log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title=APP_NAME, version=APP_VERSION)
app.include_router(router)
app.include_router(deduction_router)
app.include_router(rpg_router)
app.include_router(village_router)


def _error(status_code: int, *, error: str, code: str, details: object = None) -> JSONResponse:
    body = ErrorResponse(error=error, code=code, details=details).model_dump(exclude_none=True)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


@app.exception_handler(GameError)
async def _game_error(request: Request, exc: GameError) -> JSONResponse:
    if exc.status_code >= 409:
        logger.warning("%s %s -> %s %s", request.method, request.url.path, exc.code, exc.message)
    return _error(exc.status_code, error=exc.message, code=exc.code, details=exc.details or None)


@app.exception_handler(RequestValidationError)
async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _error(
        status.HTTP_400_BAD_REQUEST,
        error="Invalid request format",
        code="VALIDATION_ERROR",
        details=[{k: e[k] for k in ("loc", "msg", "type") if k in e} for e in exc.errors()],
    )


@app.exception_handler(Exception)
async def _unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled error on %s %s", request.method, request.url.path)
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, error="Internal server error", code="INTERNAL_ERROR")


@app.get("/info")
async def info() -> dict[str, str]:
    return {"name": APP_NAME, "version": APP_VERSION}
