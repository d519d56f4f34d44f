"""FastAPI application for the parimutuel settlement service.

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
from src.pm_account.api.router import router as account_router
from src.pm_admin.api.router import router as admin_router
from src.pm_clearing.api.performance_router import router as performance_router
from src.pm_clearing.api.router import router as settlement_router
from src.pm_common.database import engine
from src.pm_common.errors import AppError, InternalError
from src.pm_common.redis_client import close_redis, get_redis
from src.pm_common.response import error_response
from src.pm_gateway.api.router import router as auth_router
from src.pm_gateway.api.users_router import router as users_router
from src.pm_gateway.middleware.rate_limit import RateLimitMiddleware
from src.pm_gateway.middleware.request_log import RequestLogMiddleware
from src.pm_market.api.router import router as market_router

API_VERSION = "0.1.0"

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Fail fast if PostgreSQL or Redis is unreachable; release both on exit."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    await get_redis()
    logger.info("%s %s started", settings.APP_NAME, API_VERSION)
    yield
    await engine.dispose()
    await close_redis()


app = FastAPI(title=settings.APP_NAME, version=API_VERSION, lifespan=lifespan)

# Last added runs first: request_id is assigned before the rate limiter answers
app.add_middleware(RateLimitMiddleware)
app.add_middleware(RequestLogMiddleware)


def _envelope(request: Request, exc: AppError) -> JSONResponse:
    body = error_response(exc.code, exc.message, request)
    return JSONResponse(status_code=exc.http_status, content=body.model_dump())


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return _envelope(request, exc)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _envelope(request, InternalError())


for _router in (
    auth_router,
    users_router,
    account_router,
    market_router,
    settlement_router,
    performance_router,
    admin_router,
):
    app.include_router(_router, prefix="/api/v1")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": API_VERSION}
