"""Per-address trading performance, aggregated from participations.

A position (one address in one market) is *closed* once no more money can
come back from it: the address has claimed (winnings or refund), or the
market resolved against every share it held. Realized PnL sums
``claimed_amount - stake`` over closed positions only, so an unclaimed win
or an unclaimed refund is reported as pending rather than as a loss.

Win rate is counted over resolved markets only; cancelled markets are
neither won nor lost.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum


class Timeframe(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    ALL = "all"

    def since(self, now: datetime) -> datetime | None:
        """Earliest last-activity time still inside the window; None for ALL."""
        days = {"daily": 1, "weekly": 7, "monthly": 30}.get(self.value)
        return now - timedelta(days=days) if days else None


def win_rate_bps(won: int, lost: int) -> int:
    """Share of decided markets won, in basis points, floored. 0 when none decided."""
    decided = won + lost
    if decided <= 0:
        return 0
    return won * 10000 // decided


@dataclass(frozen=True)
class TraderStats:
    address: str
    markets_participated: int = 0
    total_invested: int = 0          # cents staked, all markets
    open_stake: int = 0              # cents staked in still-ACTIVE markets
    total_claimed: int = 0           # winnings + refunds received
    realized_pnl: int = 0            # over closed positions
    markets_won: int = 0
    markets_lost: int = 0
    pending_claims: int = 0          # settled positions with money still to claim
    last_activity: datetime | None = None
    rank: int | None = None          # by realized_pnl; None with no positions

    @property
    def win_rate_bps(self) -> int:
        return win_rate_bps(self.markets_won, self.markets_lost)
