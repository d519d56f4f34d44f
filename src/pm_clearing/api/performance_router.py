"""Trader performance endpoints.

GET  /users/{address}/stats                       invested, claimed, PnL, win rate, rank
GET  /leaderboard?timeframe=&limit=               addresses ranked by realized PnL
"""

from fastapi import APIRouter, Query, Request

from src.pm_clearing.application.performance_service import (
    MAX_LEADERBOARD_SIZE,
    PerformanceService,
)
from src.pm_clearing.domain.performance import Timeframe
from src.pm_common.address import normalize_address
from src.pm_common.database import DbSession
from src.pm_common.response import ApiResponse, success_response

router = APIRouter(tags=["performance"])
_service = PerformanceService()


@router.get("/users/{address}/stats")
async def get_trader_stats(
    address: str,
    request: Request,
    db: DbSession,
) -> ApiResponse:
    result = await _service.get_trader_stats(db, normalize_address(address))
    return success_response(result.model_dump(), request)


@router.get("/leaderboard")
async def get_leaderboard(
    request: Request,
    db: DbSession,
    timeframe: Timeframe = Query(Timeframe.ALL, description="daily, weekly, monthly or all"),
    limit: int = Query(20, ge=1, le=MAX_LEADERBOARD_SIZE),
) -> ApiResponse:
    result = await _service.get_leaderboard(db, timeframe, limit)
    return success_response(result.model_dump(), request)
