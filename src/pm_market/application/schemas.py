"""Pydantic schemas for the Market Ledger API.

Pool and fee fields are integer cents suffixed ``_cents``. Markets and events
page with the shared keyset cursor from pm_common.pagination.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from src.pm_common.cents import cents_to_display
from src.pm_common.enums import Side
from src.pm_market.domain.models import Market, MarketEvent, Participation


def _iso(dt: datetime | None) -> str | None:
    return dt.isoformat() if dt is not None else None


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class CreateMarketRequest(BaseModel):
    question: str = Field(..., max_length=500)
    end_time: datetime = Field(..., description="Staking closes at this instant (timezone-aware)")
    description: str | None = Field(None, max_length=5000)
    category: str | None = Field(None, max_length=64)
    image_url: str | None = Field(None, max_length=2048)
    source_url: str | None = Field(None, max_length=2048)


class StakeRequest(BaseModel):
    side: Side
    # Range is checked by the ledger so a bad amount reports InvalidAmount (3006)
    amount_cents: int


# ---------------------------------------------------------------------------
# Market list item (lightweight)
# ---------------------------------------------------------------------------


class MarketListItem(BaseModel):
    id: int
    creator: str
    question: str
    category: str | None
    image_url: str | None
    status: str
    outcome: str | None
    end_time: str
    total_yes_pool_cents: int
    total_no_pool_cents: int
    total_pool_cents: int
    total_pool_display: str

    @classmethod
    def from_domain(cls, m: Market) -> "MarketListItem":
        return cls(
            id=m.id,
            creator=m.creator,
            question=m.question,
            category=m.category,
            image_url=m.image_url,
            status=m.status,
            outcome=m.outcome,
            end_time=m.end_time.isoformat(),
            total_yes_pool_cents=m.total_yes_pool,
            total_no_pool_cents=m.total_no_pool,
            total_pool_cents=m.total_pool,
            total_pool_display=cents_to_display(m.total_pool),
        )


class MarketListResponse(BaseModel):
    items: list[MarketListItem]
    next_cursor: str | None
    has_more: bool


# ---------------------------------------------------------------------------
# Market detail (full fields, including the resolution snapshot)
# ---------------------------------------------------------------------------


class MarketDetail(BaseModel):
    id: int
    creator: str
    question: str
    description: str | None
    category: str | None
    image_url: str | None
    source_url: str | None
    end_time: str
    status: str
    outcome: str | None
    total_yes_pool_cents: int
    total_yes_pool_display: str
    total_no_pool_cents: int
    total_no_pool_display: str
    total_pool_cents: int
    creator_fee_pct: int | None
    platform_fee_pct: int | None
    creator_fee_cents: int
    platform_fee_cents: int
    creator_fee_claimed: bool
    paid_out_cents: int
    escrow_balance_cents: int
    resolved_at: str | None
    resolved_by: str | None
    cancelled_at: str | None
    created_at: str | None

    @classmethod
    def from_domain(cls, m: Market) -> "MarketDetail":
        return cls(
            id=m.id,
            creator=m.creator,
            question=m.question,
            description=m.description,
            category=m.category,
            image_url=m.image_url,
            source_url=m.source_url,
            end_time=m.end_time.isoformat(),
            status=m.status,
            outcome=m.outcome,
            total_yes_pool_cents=m.total_yes_pool,
            total_yes_pool_display=cents_to_display(m.total_yes_pool),
            total_no_pool_cents=m.total_no_pool,
            total_no_pool_display=cents_to_display(m.total_no_pool),
            total_pool_cents=m.total_pool,
            creator_fee_pct=m.creator_fee_pct,
            platform_fee_pct=m.platform_fee_pct,
            creator_fee_cents=m.creator_fee,
            platform_fee_cents=m.platform_fee,
            creator_fee_claimed=m.creator_fee_claimed,
            paid_out_cents=m.paid_out,
            escrow_balance_cents=m.escrow_balance,
            resolved_at=_iso(m.resolved_at),
            resolved_by=m.resolved_by,
            cancelled_at=_iso(m.cancelled_at),
            created_at=_iso(m.created_at),
        )


class CreateMarketResponse(BaseModel):
    market: MarketDetail
    creation_fee_cents: int


# ---------------------------------------------------------------------------
# Participation / stakes
# ---------------------------------------------------------------------------


class ParticipationResponse(BaseModel):
    market_id: int
    user_address: str
    side: str | None
    yes_shares_cents: int
    no_shares_cents: int
    total_stake_cents: int
    has_claimed: bool
    claimed_amount_cents: int
    claimed_at: str | None

    @classmethod
    def from_domain(cls, p: Participation) -> "ParticipationResponse":
        return cls(
            market_id=p.market_id,
            user_address=p.user_address,
            side=p.side,
            yes_shares_cents=p.yes_shares,
            no_shares_cents=p.no_shares,
            total_stake_cents=p.total_stake,
            has_claimed=p.has_claimed,
            claimed_amount_cents=p.claimed_amount,
            claimed_at=_iso(p.claimed_at),
        )


class StakeResponse(BaseModel):
    market_id: int
    side: str
    amount_cents: int
    total_yes_pool_cents: int
    total_no_pool_cents: int
    participation: ParticipationResponse
    available_balance_cents: int


# ---------------------------------------------------------------------------
# Event log
# ---------------------------------------------------------------------------


class MarketEventItem(BaseModel):
    id: int
    market_id: int
    event_type: str
    actor: str | None
    side: str | None
    amount_cents: int | None
    payload: dict
    created_at: str | None

    @classmethod
    def from_domain(cls, e: MarketEvent) -> "MarketEventItem":
        return cls(
            id=e.id,
            market_id=e.market_id,
            event_type=e.event_type,
            actor=e.actor,
            side=e.side,
            amount_cents=e.amount,
            payload=e.payload,
            created_at=_iso(e.created_at),
        )


class MarketEventListResponse(BaseModel):
    items: list[MarketEventItem]
    next_cursor: str | None
    has_more: bool
