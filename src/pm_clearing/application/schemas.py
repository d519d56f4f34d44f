"""Pydantic schemas for the settlement API (claims, winnings, preview)."""

from pydantic import BaseModel

from src.pm_clearing.domain.payout import PoolSplit
from src.pm_clearing.domain.performance import TraderStats
from src.pm_clearing.domain.projection import PayoutProjection
from src.pm_clearing.domain.settlement import WinningsBreakdown
from src.pm_common.cents import cents_to_display


class PoolSplitOut(BaseModel):
    winning_pool_cents: int
    losing_pool_cents: int
    creator_fee_cents: int
    platform_fee_cents: int
    redistributed_cents: int
    total_winner_pool_cents: int

    @classmethod
    def from_domain(cls, s: PoolSplit) -> "PoolSplitOut":
        return cls(
            winning_pool_cents=s.winning_pool,
            losing_pool_cents=s.losing_pool,
            creator_fee_cents=s.creator_fee,
            platform_fee_cents=s.platform_fee,
            redistributed_cents=s.redistributed,
            total_winner_pool_cents=s.total_winner_pool,
        )


class ClaimResponse(BaseModel):
    market_id: int
    address: str
    claim_type: str            # WINNINGS / CREATOR_FEE / REFUND
    amount_cents: int
    amount_display: str
    available_balance_cents: int

    @classmethod
    def build(
        cls, market_id: int, address: str, claim_type: str, amount: int, available: int
    ) -> "ClaimResponse":
        return cls(
            market_id=market_id,
            address=address,
            claim_type=claim_type,
            amount_cents=amount,
            amount_display=cents_to_display(amount),
            available_balance_cents=available,
        )


class WinningsResponse(BaseModel):
    market_id: int
    address: str
    status: str
    outcome: str | None
    is_winner: bool
    winning_stake_cents: int
    winnings_cents: int
    winnings_display: str
    has_claimed: bool
    return_bps: int
    split: PoolSplitOut | None

    @classmethod
    def from_breakdown(
        cls,
        market_id: int,
        address: str,
        status: str,
        outcome: str | None,
        b: WinningsBreakdown,
    ) -> "WinningsResponse":
        return cls(
            market_id=market_id,
            address=address,
            status=status,
            outcome=outcome,
            is_winner=b.is_winner,
            winning_stake_cents=b.winning_stake,
            winnings_cents=b.winnings,
            winnings_display=cents_to_display(b.winnings),
            has_claimed=b.has_claimed,
            return_bps=b.return_bps,
            split=PoolSplitOut.from_domain(b.split) if b.split else None,
        )


class CreatorFeeInfoResponse(BaseModel):
    market_id: int
    creator: str
    status: str
    creator_fee_pct: int | None
    creator_fee_cents: int
    creator_fee_display: str
    claimed: bool


class PreviewResponse(BaseModel):
    market_id: int
    side: str
    amount_cents: int
    stake_after_cents: int
    creator_fee_pct: int
    platform_fee_pct: int
    potential_payout_cents: int
    potential_payout_display: str
    potential_profit_cents: int
    return_bps: int
    split: PoolSplitOut

    @classmethod
    def from_projection(
        cls, market_id: int, creator_fee_pct: int, platform_fee_pct: int, p: PayoutProjection
    ) -> "PreviewResponse":
        return cls(
            market_id=market_id,
            side=p.side.value,
            amount_cents=p.amount,
            stake_after_cents=p.stake_after,
            creator_fee_pct=creator_fee_pct,
            platform_fee_pct=platform_fee_pct,
            potential_payout_cents=p.payout,
            potential_payout_display=cents_to_display(p.payout),
            potential_profit_cents=p.profit,
            return_bps=p.return_bps,
            split=PoolSplitOut.from_domain(p.split),
        )


class TraderStatsResponse(BaseModel):
    address: str
    rank: int | None
    markets_participated: int
    total_invested_cents: int
    open_stake_cents: int
    total_claimed_cents: int
    realized_pnl_cents: int
    realized_pnl_display: str
    markets_won: int
    markets_lost: int
    win_rate_bps: int
    pending_claims: int
    last_activity: str | None

    @classmethod
    def from_domain(cls, s: TraderStats) -> "TraderStatsResponse":
        return cls(
            address=s.address,
            rank=s.rank,
            markets_participated=s.markets_participated,
            total_invested_cents=s.total_invested,
            open_stake_cents=s.open_stake,
            total_claimed_cents=s.total_claimed,
            realized_pnl_cents=s.realized_pnl,
            realized_pnl_display=cents_to_display(s.realized_pnl),
            markets_won=s.markets_won,
            markets_lost=s.markets_lost,
            win_rate_bps=s.win_rate_bps,
            pending_claims=s.pending_claims,
            last_activity=s.last_activity.isoformat() if s.last_activity else None,
        )


class LeaderboardResponse(BaseModel):
    timeframe: str
    items: list[TraderStatsResponse]
