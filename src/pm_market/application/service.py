"""MarketApplicationService: the Market Ledger's transactional boundary.

Mutations (create, stake, resolve, cancel) lock the market row first, run the
state-machine guard against the locked state, write, append the matching
market_events row and commit. Any error rolls the whole unit back.

Reads need no transaction; they see the latest committed state.
"""

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_account.domain.models import MARKET_REFERENCE
from src.pm_account.domain.repository import AccountRepositoryProtocol
from src.pm_account.infrastructure.persistence import AccountRepository
from src.pm_clearing.domain.payout import FeeSchedule, split_pools
from src.pm_common.address import PLATFORM_FEE_ACCOUNT
from src.pm_common.datetime_utils import as_utc, utc_now
from src.pm_common.enums import LedgerEntryType, MarketEventType, MarketStatus, Side
from src.pm_common.errors import MarketNotFoundError
from src.pm_common.pagination import cursor_decode, split_page
from src.pm_common.platform_config import PlatformConfigRepository
from src.pm_market.application.schemas import (
    CreateMarketRequest,
    CreateMarketResponse,
    MarketDetail,
    MarketEventItem,
    MarketEventListResponse,
    MarketListItem,
    MarketListResponse,
    ParticipationResponse,
    StakeResponse,
)
from src.pm_market.domain.models import Market, NewMarket, Participation
from src.pm_market.domain.repository import MarketRepositoryProtocol
from src.pm_market.domain.rules import (
    check_can_cancel,
    check_can_resolve,
    check_can_stake,
    check_new_market,
)
from src.pm_market.infrastructure.persistence import MarketRepository

logger = logging.getLogger(__name__)



class MarketApplicationService:
    def __init__(
        self,
        repo: MarketRepositoryProtocol | None = None,
        account_repo: AccountRepositoryProtocol | None = None,
        config_repo: PlatformConfigRepository | None = None,
    ) -> None:
        self._repo: MarketRepositoryProtocol = repo or MarketRepository()
        self._accounts: AccountRepositoryProtocol = account_repo or AccountRepository()
        self._config = config_repo or PlatformConfigRepository()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def create_market(
        self, db: AsyncSession, creator: str, req: CreateMarketRequest
    ) -> CreateMarketResponse:
        new = NewMarket(
            creator=creator,
            question=req.question.strip(),
            end_time=as_utc(req.end_time),
            description=req.description,
            category=req.category,
            image_url=req.image_url,
            source_url=req.source_url,
        )
        check_new_market(new, utc_now())
        try:
            config = await self._config.get_config(db)
            market = await self._repo.create_market(db, new)
            fee = config.market_creation_fee
            if fee > 0:
                ref_id = str(market.id)
                await self._accounts.debit(
                    db, creator, fee, LedgerEntryType.MARKET_CREATION_FEE,
                    MARKET_REFERENCE, ref_id, "Market creation fee",
                )
                await self._accounts.credit(
                    db, PLATFORM_FEE_ACCOUNT, fee, LedgerEntryType.FEE_REVENUE,
                    MARKET_REFERENCE, ref_id, "Market creation fee",
                )
            await self._repo.append_event(
                db, market.id, MarketEventType.MARKET_CREATED, creator,
                payload={"question": market.question, "end_time": market.end_time.isoformat()},
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Market %d created by %s (fee=%d)", market.id, creator, fee)
        return CreateMarketResponse(
            market=MarketDetail.from_domain(market), creation_fee_cents=fee
        )

    async def record_stake(
        self,
        db: AsyncSession,
        market_id: int,
        address: str,
        side: Side,
        amount: int,
        now: datetime | None = None,
    ) -> tuple[Market, Participation]:
        """Add ``amount`` to the market's ``side`` pool and to the user's shares.

        Runs inside the caller's transaction and does not commit.
        """
        market = await self._repo.lock_market(db, market_id)
        if market is None:
            raise MarketNotFoundError(market_id)
        check_can_stake(market, amount, now or utc_now())
        market, participation = await self._repo.add_stake(
            db, market_id, address, side.value, amount
        )
        await self._repo.append_event(
            db, market_id, MarketEventType.STAKE_RECORDED, address,
            side=side.value, amount=amount,
        )
        return market, participation

    async def buy_shares(
        self,
        db: AsyncSession,
        market_id: int,
        address: str,
        side: Side,
        amount: int,
    ) -> StakeResponse:
        """Move ``amount`` from the caller's account into the market escrow."""
        try:
            market, participation = await self.record_stake(
                db, market_id, address, side, amount
            )
            account, _ = await self._accounts.debit(
                db, address, amount, LedgerEntryType.STAKE,
                MARKET_REFERENCE, str(market_id), f"Stake on {side.value}",
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info(
            "Stake recorded: market=%d user=%s side=%s amount=%d",
            market_id, address, side.value, amount,
        )
        return StakeResponse(
            market_id=market_id,
            side=side.value,
            amount_cents=amount,
            total_yes_pool_cents=market.total_yes_pool,
            total_no_pool_cents=market.total_no_pool,
            participation=ParticipationResponse.from_domain(participation),
            available_balance_cents=account.available_balance,
        )

    async def resolve_market(
        self,
        db: AsyncSession,
        market_id: int,
        outcome: Side,
        resolver: str,
        now: datetime | None = None,
    ) -> MarketDetail:
        """Declare the outcome and freeze the fee split for this market.

        The fee percentages in force right now are copied onto the market row;
        every later claim reads the copy. The platform fee leaves escrow here.
        """
        try:
            market = await self._repo.lock_market(db, market_id)
            if market is None:
                raise MarketNotFoundError(market_id)
            check_can_resolve(market, now or utc_now())

            config = await self._config.get_config(db)
            fees = FeeSchedule(config.creator_fee_pct, config.platform_fee_pct)
            split = split_pools(
                market.pool_for(outcome), market.pool_for(outcome.opposite), fees
            )
            market = await self._repo.mark_resolved(
                db,
                market_id,
                outcome.value,
                resolver,
                fees.creator_fee_pct,
                fees.platform_fee_pct,
                split.creator_fee,
                split.platform_fee,
            )
            if split.platform_fee > 0:
                await self._accounts.credit(
                    db, PLATFORM_FEE_ACCOUNT, split.platform_fee,
                    LedgerEntryType.PLATFORM_FEE_REVENUE,
                    MARKET_REFERENCE, str(market_id), "Platform fee",
                )
                market = await self._repo.add_paid_out(db, market_id, split.platform_fee)
            await self._repo.append_event(
                db, market_id, MarketEventType.MARKET_RESOLVED, resolver,
                side=outcome.value,
                payload={
                    "winning_pool": split.winning_pool,
                    "losing_pool": split.losing_pool,
                    "creator_fee": split.creator_fee,
                    "platform_fee": split.platform_fee,
                    "total_winner_pool": split.total_winner_pool,
                },
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info(
            "Market %d resolved %s by %s (creator_fee=%d platform_fee=%d)",
            market_id, outcome.value, resolver, split.creator_fee, split.platform_fee,
        )
        return MarketDetail.from_domain(market)

    async def cancel_market(
        self, db: AsyncSession, market_id: int, actor: str
    ) -> MarketDetail:
        try:
            market = await self._repo.lock_market(db, market_id)
            if market is None:
                raise MarketNotFoundError(market_id)
            check_can_cancel(market)
            market = await self._repo.mark_cancelled(db, market_id)
            await self._repo.append_event(
                db, market_id, MarketEventType.MARKET_CANCELLED, actor,
                payload={"refundable": market.total_pool},
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Market %d cancelled by %s", market_id, actor)
        return MarketDetail.from_domain(market)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list_markets(
        self,
        db: AsyncSession,
        status: str | None,
        category: str | None,
        creator: str | None,
        cursor: str | None,
        limit: int,
    ) -> MarketListResponse:
        # status=None → default ACTIVE; status='ALL' → no filter
        sql_status = None if status == "ALL" else (status or MarketStatus.ACTIVE.value)
        markets = await self._repo.list_markets(
            db, sql_status, category, creator, cursor_decode(cursor), limit + 1
        )
        page, next_cursor, has_more = split_page(markets, limit, lambda m: m.id)
        return MarketListResponse(
            items=[MarketListItem.from_domain(m) for m in page],
            next_cursor=next_cursor,
            has_more=has_more,
        )

    async def get_market(self, db: AsyncSession, market_id: int) -> MarketDetail:
        market = await self._repo.get_market_by_id(db, market_id)
        if market is None:
            raise MarketNotFoundError(market_id)
        return MarketDetail.from_domain(market)

    async def get_participation(
        self, db: AsyncSession, market_id: int, address: str
    ) -> ParticipationResponse:
        market = await self._repo.get_market_by_id(db, market_id)
        if market is None:
            raise MarketNotFoundError(market_id)
        participation = await self._repo.get_participation(db, market_id, address)
        if participation is None:
            participation = Participation(market_id=market_id, user_address=address)
        return ParticipationResponse.from_domain(participation)

    async def list_events(
        self,
        db: AsyncSession,
        market_id: int,
        cursor: str | None,
        limit: int,
        event_type: str | None,
    ) -> MarketEventListResponse:
        market = await self._repo.get_market_by_id(db, market_id)
        if market is None:
            raise MarketNotFoundError(market_id)
        events = await self._repo.list_events(
            db, market_id, cursor_decode(cursor), limit + 1, event_type
        )
        page, next_cursor, has_more = split_page(events, limit, lambda e: e.id)
        return MarketEventListResponse(
            items=[MarketEventItem.from_domain(e) for e in page],
            next_cursor=next_cursor,
            has_more=has_more,
        )
