# src/pm_market/domain/repository.py
"""Repository Protocol the application service depends on.

Unit tests inject a mock (or the in-memory fake) that conforms to this Protocol.
Infrastructure layer provides the real implementation.

Every mutator is expected to run inside the caller's transaction; the
conditional mutators (mark_participation_claimed, mark_creator_fee_claimed)
return None when their check-and-set loses, never raise.
"""

from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_market.domain.models import Market, MarketEvent, NewMarket, Participation


class MarketRepositoryProtocol(Protocol):
    async def create_market(self, db: AsyncSession, new: NewMarket) -> Market: ...

    async def get_market_by_id(
        self, db: AsyncSession, market_id: int
    ) -> Market | None: ...

    async def lock_market(
        self, db: AsyncSession, market_id: int
    ) -> Market | None: ...

    async def list_markets(
        self,
        db: AsyncSession,
        status: str | None,
        category: str | None,
        creator: str | None,
        cursor_id: int | None,
        limit: int,
    ) -> list[Market]: ...

    async def add_stake(
        self,
        db: AsyncSession,
        market_id: int,
        address: str,
        side: str,
        amount: int,
    ) -> tuple[Market, Participation]: ...

    async def mark_resolved(
        self,
        db: AsyncSession,
        market_id: int,
        outcome: str,
        resolved_by: str,
        creator_fee_pct: int,
        platform_fee_pct: int,
        creator_fee: int,
        platform_fee: int,
    ) -> Market: ...

    async def mark_cancelled(self, db: AsyncSession, market_id: int) -> Market: ...

    async def add_paid_out(
        self, db: AsyncSession, market_id: int, amount: int
    ) -> Market: ...

    async def get_participation(
        self, db: AsyncSession, market_id: int, address: str
    ) -> Participation | None: ...

    async def list_participations(
        self, db: AsyncSession, market_id: int
    ) -> list[Participation]: ...

    async def mark_participation_claimed(
        self, db: AsyncSession, market_id: int, address: str, amount: int
    ) -> Participation | None: ...

    async def mark_creator_fee_claimed(
        self, db: AsyncSession, market_id: int
    ) -> Market | None: ...

    async def append_event(
        self,
        db: AsyncSession,
        market_id: int,
        event_type: str,
        actor: str | None,
        side: str | None = None,
        amount: int | None = None,
        payload: dict[str, Any] | None = None,
    ) -> MarketEvent: ...

    async def list_events(
        self,
        db: AsyncSession,
        market_id: int,
        cursor_id: int | None,
        limit: int,
        event_type: str | None,
    ) -> list[MarketEvent]: ...
