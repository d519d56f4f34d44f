"""Read-only SQL aggregates over participations joined to their markets.

Both queries share one ranked CTE so a trader's rank on /users/{address}/stats
is the same number the all-time leaderboard shows.
"""
from datetime import datetime

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_clearing.domain.performance import TraderStats

# SUM over BIGINT comes back as NUMERIC; the mapper casts to int
_RANKED_CTE = """
    WITH positions AS (
        SELECT
            p.user_address,
            p.yes_shares + p.no_shares AS stake,
            p.claimed_amount,
            p.has_claimed,
            p.updated_at,
            m.status,
            CASE m.outcome
                WHEN 'YES' THEN p.yes_shares
                WHEN 'NO'  THEN p.no_shares
                ELSE 0
            END AS winning_stake
        FROM participations p
        JOIN markets m ON m.id = p.market_id
    ),
    per_user AS (
        SELECT
            user_address AS address,
            COUNT(*) AS markets_participated,
            COALESCE(SUM(stake), 0) AS total_invested,
            COALESCE(SUM(stake) FILTER (WHERE status = 'ACTIVE'), 0) AS open_stake,
            COALESCE(SUM(claimed_amount), 0) AS total_claimed,
            COALESCE(SUM(claimed_amount - stake) FILTER (
                WHERE has_claimed OR (status = 'RESOLVED' AND winning_stake = 0)
            ), 0) AS realized_pnl,
            COUNT(*) FILTER (WHERE status = 'RESOLVED' AND winning_stake > 0) AS markets_won,
            COUNT(*) FILTER (WHERE status = 'RESOLVED' AND winning_stake = 0) AS markets_lost,
            COUNT(*) FILTER (
                WHERE NOT has_claimed
                  AND (status = 'CANCELLED' OR (status = 'RESOLVED' AND winning_stake > 0))
            ) AS pending_claims,
            MAX(updated_at) AS last_activity
        FROM positions
        GROUP BY user_address
    ),
    ranked AS (
        SELECT
            per_user.*,
            ROW_NUMBER() OVER (ORDER BY realized_pnl DESC, address ASC) AS rank
        FROM per_user
        WHERE CAST(:since AS TIMESTAMPTZ) IS NULL
           OR last_activity >= CAST(:since AS TIMESTAMPTZ)
    )
"""

_TRADER_STATS_SQL = text(f"{_RANKED_CTE} SELECT * FROM ranked WHERE address = :address")

_LEADERBOARD_SQL = text(f"{_RANKED_CTE} SELECT * FROM ranked ORDER BY rank LIMIT :limit")


def _row_to_stats(row: object) -> TraderStats:
    return TraderStats(
        address=row.address,  # type: ignore[attr-defined]
        markets_participated=int(row.markets_participated),  # type: ignore[attr-defined]
        total_invested=int(row.total_invested),  # type: ignore[attr-defined]
        open_stake=int(row.open_stake),  # type: ignore[attr-defined]
        total_claimed=int(row.total_claimed),  # type: ignore[attr-defined]
        realized_pnl=int(row.realized_pnl),  # type: ignore[attr-defined]
        markets_won=int(row.markets_won),  # type: ignore[attr-defined]
        markets_lost=int(row.markets_lost),  # type: ignore[attr-defined]
        pending_claims=int(row.pending_claims),  # type: ignore[attr-defined]
        last_activity=row.last_activity,  # type: ignore[attr-defined]
        rank=int(row.rank),  # type: ignore[attr-defined]
    )


class PerformanceRepository:
    async def get_trader_stats(self, db: AsyncSession, address: str) -> TraderStats | None:
        """All-time stats and rank for one address; None if it never staked."""
        result = await db.execute(_TRADER_STATS_SQL, {"address": address, "since": None})
        row = result.fetchone()
        return _row_to_stats(row) if row else None

    async def list_leaderboard(
        self, db: AsyncSession, since: datetime | None, limit: int
    ) -> list[TraderStats]:
        """Top ``limit`` addresses by realized PnL, among those active since ``since``."""
        result = await db.execute(_LEADERBOARD_SQL, {"since": since, "limit": limit})
        return [_row_to_stats(row) for row in result.fetchall()]
