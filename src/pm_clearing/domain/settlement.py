"""Settlement Engine read model: who won, and how much.

Pure functions over a Market and one Participation. The pool split always
uses the fee percentages snapshotted onto the market at resolution, so an
admin fee change afterwards can never alter what a winner receives.
"""

from dataclasses import dataclass

from src.pm_clearing.domain.payout import FeeSchedule, PoolSplit, payout_for_stake, split_pools
from src.pm_common.cents import return_bps
from src.pm_common.enums import MarketStatus
from src.pm_common.errors import InternalError
from src.pm_market.domain.models import Market, Participation


def market_split(market: Market) -> PoolSplit:
    """Pool split of a RESOLVED market, from its resolution snapshot."""
    side = market.winning_side
    if side is None:
        raise InternalError(f"Market {market.id} has no outcome to split on")
    if market.creator_fee_pct is None or market.platform_fee_pct is None:
        raise InternalError(f"Market {market.id} is resolved without a fee snapshot")
    fees = FeeSchedule(market.creator_fee_pct, market.platform_fee_pct)
    return split_pools(market.pool_for(side), market.pool_for(side.opposite), fees)


def winning_stake(market: Market, participation: Participation | None) -> int:
    side = market.winning_side
    if side is None or participation is None:
        return 0
    return participation.shares_on(side)


def is_winner(market: Market, participation: Participation | None) -> bool:
    return winning_stake(market, participation) > 0


def calculate_user_winnings(market: Market, participation: Participation | None) -> int:
    """Amount a participant is owed. 0 for losers, unresolved markets, or an empty winning pool."""
    stake = winning_stake(market, participation)
    if stake == 0:
        return 0
    return payout_for_stake(market_split(market), stake)


@dataclass(frozen=True)
class WinningsBreakdown:
    is_winner: bool
    winning_stake: int
    winnings: int
    has_claimed: bool
    return_bps: int
    split: PoolSplit | None


def winnings_breakdown(market: Market, participation: Participation | None) -> WinningsBreakdown:
    if market.status != MarketStatus.RESOLVED:
        return WinningsBreakdown(
            is_winner=False,
            winning_stake=0,
            winnings=0,
            has_claimed=bool(participation and participation.has_claimed),
            return_bps=0,
            split=None,
        )
    split = market_split(market)
    stake = winning_stake(market, participation)
    winnings = payout_for_stake(split, stake)
    return WinningsBreakdown(
        is_winner=stake > 0,
        winning_stake=stake,
        winnings=winnings,
        has_claimed=bool(participation and participation.has_claimed),
        return_bps=return_bps(stake, winnings),
        split=split,
    )
