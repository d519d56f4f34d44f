"""Domain models for pm_market: plain dataclasses, no SQLAlchemy."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from src.pm_common.enums import MarketStatus, Side


@dataclass
class Market:
    id: int
    creator: str
    question: str
    description: str | None
    category: str | None
    image_url: str | None
    source_url: str | None
    end_time: datetime
    status: str
    outcome: str | None              # 'YES'/'NO', only once RESOLVED
    total_yes_pool: int              # cents
    total_no_pool: int               # cents
    creator_fee_pct: int | None      # snapshot taken at resolution
    platform_fee_pct: int | None     # snapshot taken at resolution
    creator_fee: int                 # cents, fixed at resolution
    platform_fee: int                # cents, fixed at resolution
    creator_fee_claimed: bool
    paid_out: int                    # cents moved out of escrow so far
    resolved_at: datetime | None
    resolved_by: str | None
    cancelled_at: datetime | None
    created_at: datetime
    updated_at: datetime

    @property
    def total_pool(self) -> int:
        return self.total_yes_pool + self.total_no_pool

    @property
    def escrow_balance(self) -> int:
        return self.total_pool - self.paid_out

    def pool_for(self, side: Side) -> int:
        return self.total_yes_pool if side is Side.YES else self.total_no_pool

    @property
    def winning_side(self) -> Side | None:
        if self.status != MarketStatus.RESOLVED or self.outcome is None:
            return None
        return Side(self.outcome)


@dataclass
class Participation:
    market_id: int
    user_address: str
    side: str | None = None          # last side staked, for display only
    yes_shares: int = 0              # cents staked on YES
    no_shares: int = 0               # cents staked on NO
    has_claimed: bool = False
    claimed_amount: int = 0
    claimed_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def shares_on(self, side: Side) -> int:
        return self.yes_shares if side is Side.YES else self.no_shares

    @property
    def total_stake(self) -> int:
        return self.yes_shares + self.no_shares


@dataclass
class NewMarket:
    """Validated input for market creation."""

    creator: str
    question: str
    end_time: datetime
    description: str | None = None
    category: str | None = None
    image_url: str | None = None
    source_url: str | None = None


@dataclass
class MarketEvent:
    id: int
    market_id: int
    event_type: str
    actor: str | None
    side: str | None
    amount: int | None
    payload: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None
