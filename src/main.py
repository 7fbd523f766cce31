"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

from config.settings import settings
from src.us_card.api.router import router as card_router
from src.us_common.cache import RecordCache
from src.us_common.database import engine
from src.us_common.errors import AppError
from src.us_common.redis_client import close_redis
from src.us_common.response import error_response
from src.us_gateway.auth.jwt_handler import get_token_verifier
from src.us_gateway.middleware.request_log import RequestLogMiddleware
from src.us_user.api.router import router as user_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: verify key + DB (fatal), probe Redis (advisory). Shutdown: dispose."""
    # Startup: a bad public key or unreachable DB aborts here
    get_token_verifier()
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    if not await RecordCache().ping():
        logger.warning("Starting without record cache; all reads go to PostgreSQL")
    yield
    # Shutdown
    await engine.dispose()
    await close_redis()


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


app.add_middleware(RequestLogMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.http_status >= 500:
        logger.error("Request failed: code=%d %s", exc.code, exc.message)
    resp = error_response(exc.code, exc.message, request)
    headers = {"WWW-Authenticate": "Bearer"} if exc.http_status == 401 else None
    return JSONResponse(
        status_code=exc.http_status,
        content=resp.model_dump(),
        headers=headers,
    )


app.include_router(user_router, prefix="/api/v1")
app.include_router(card_router, prefix="/api/v1")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": "0.1.0"}
