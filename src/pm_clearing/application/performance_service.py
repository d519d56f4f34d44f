"""Trader stats and leaderboard reads. No writes, no transactions."""

from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_clearing.application.schemas import LeaderboardResponse, TraderStatsResponse
from src.pm_clearing.domain.performance import Timeframe, TraderStats
from src.pm_clearing.infrastructure.performance import PerformanceRepository
from src.pm_common.datetime_utils import utc_now

MAX_LEADERBOARD_SIZE = 100


class PerformanceService:
    def __init__(self, repo: PerformanceRepository | None = None) -> None:
        self._repo = repo or PerformanceRepository()

    async def get_trader_stats(self, db: AsyncSession, address: str) -> TraderStatsResponse:
        """An address that never staked gets all-zero stats and no rank."""
        stats = await self._repo.get_trader_stats(db, address)
        return TraderStatsResponse.from_domain(stats or TraderStats(address=address))

    async def get_leaderboard(
        self,
        db: AsyncSession,
        timeframe: Timeframe = Timeframe.ALL,
        limit: int = 20,
        now: datetime | None = None,
    ) -> LeaderboardResponse:
        limit = max(1, min(limit, MAX_LEADERBOARD_SIZE))
        since = timeframe.since(now or utc_now())
        rows = await self._repo.list_leaderboard(db, since, limit)
        return LeaderboardResponse(
            timeframe=timeframe.value,
            items=[TraderStatsResponse.from_domain(s) for s in rows],
        )
