"""SettlementService: claims against resolved and cancelled markets.

Each claim is one transaction:

  1. conditional flag flip (has_claimed / creator_fee_claimed), 0 rows → already claimed
  2. credit the claimant's account (ledger entry written alongside)
  3. add the amount to markets.paid_out
  4. append the market event

If step 2 fails the transaction is rolled back, so the flag is not persisted
and the claim can be retried.
"""

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_account.domain.models import MARKET_REFERENCE
from src.pm_account.domain.repository import AccountRepositoryProtocol
from src.pm_account.infrastructure.persistence import AccountRepository
from src.pm_clearing.application.schemas import (
    ClaimResponse,
    CreatorFeeInfoResponse,
    PreviewResponse,
    WinningsResponse,
)
from src.pm_clearing.domain.payout import FeeSchedule
from src.pm_clearing.domain.projection import project_payout
from src.pm_clearing.domain.settlement import (
    calculate_user_winnings,
    is_winner,
    winnings_breakdown,
)
from src.pm_common.cents import cents_to_display
from src.pm_common.datetime_utils import utc_now
from src.pm_common.enums import LedgerEntryType, MarketEventType, MarketStatus, Side
from src.pm_common.errors import (
    AlreadyClaimedError,
    CreatorFeeAlreadyClaimedError,
    MarketNotCancelledError,
    MarketNotFoundError,
    NoCreatorFeeToClaimError,
    NotAWinnerError,
    NotMarketCreatorError,
    NothingToRefundError,
    TransferFailedError,
)
from src.pm_common.platform_config import PlatformConfigRepository
from src.pm_market.domain.models import Market
from src.pm_market.domain.repository import MarketRepositoryProtocol
from src.pm_market.domain.rules import check_can_stake
from src.pm_market.infrastructure.persistence import MarketRepository

logger = logging.getLogger(__name__)



class SettlementService:
    def __init__(
        self,
        market_repo: MarketRepositoryProtocol | None = None,
        account_repo: AccountRepositoryProtocol | None = None,
        config_repo: PlatformConfigRepository | None = None,
    ) -> None:
        self._markets: MarketRepositoryProtocol = market_repo or MarketRepository()
        self._accounts: AccountRepositoryProtocol = account_repo or AccountRepository()
        self._config = config_repo or PlatformConfigRepository()

    async def _get_market(self, db: AsyncSession, market_id: int) -> Market:
        market = await self._markets.get_market_by_id(db, market_id)
        if market is None:
            raise MarketNotFoundError(market_id)
        return market

    # ------------------------------------------------------------------
    # Claims
    # ------------------------------------------------------------------

    async def claim_winnings(
        self, db: AsyncSession, market_id: int, address: str
    ) -> ClaimResponse:
        market = await self._get_market(db, market_id)
        participation = await self._markets.get_participation(db, market_id, address)
        if not is_winner(market, participation):
            raise NotAWinnerError(market_id, address)
        if participation is not None and participation.has_claimed:
            raise AlreadyClaimedError(market_id, address)

        amount = calculate_user_winnings(market, participation)
        try:
            claimed = await self._markets.mark_participation_claimed(
                db, market_id, address, amount
            )
            if claimed is None:
                raise AlreadyClaimedError(market_id, address)
            account, _ = await self._accounts.credit(
                db, address, amount, LedgerEntryType.WINNINGS_PAYOUT,
                MARKET_REFERENCE, str(market_id), "Winnings",
            )
            await self._markets.add_paid_out(db, market_id, amount)
            await self._markets.append_event(
                db, market_id, MarketEventType.WINNINGS_CLAIMED, address,
                side=market.outcome, amount=amount,
            )
            await db.commit()
        except TransferFailedError:
            await db.rollback()
            logger.warning(
                "Winnings transfer failed, claim rolled back: market=%d user=%s amount=%d",
                market_id, address, amount,
            )
            raise
        except Exception:
            await db.rollback()
            raise
        logger.info("Winnings claimed: market=%d user=%s amount=%d", market_id, address, amount)
        return ClaimResponse.build(
            market_id, address, "WINNINGS", amount, account.available_balance
        )

    async def claim_creator_fee(
        self, db: AsyncSession, market_id: int, caller: str
    ) -> ClaimResponse:
        market = await self._get_market(db, market_id)
        if caller != market.creator:
            raise NotMarketCreatorError(market_id)
        if market.creator_fee_claimed:
            raise CreatorFeeAlreadyClaimedError(market_id)
        # An unresolved market has no fee yet
        if market.status != MarketStatus.RESOLVED or market.creator_fee == 0:
            raise NoCreatorFeeToClaimError(market_id)

        amount = market.creator_fee
        try:
            flipped = await self._markets.mark_creator_fee_claimed(db, market_id)
            if flipped is None:
                raise CreatorFeeAlreadyClaimedError(market_id)
            account, _ = await self._accounts.credit(
                db, caller, amount, LedgerEntryType.CREATOR_FEE_PAYOUT,
                MARKET_REFERENCE, str(market_id), "Creator fee",
            )
            await self._markets.add_paid_out(db, market_id, amount)
            await self._markets.append_event(
                db, market_id, MarketEventType.CREATOR_FEE_CLAIMED, caller, amount=amount
            )
            await db.commit()
        except TransferFailedError:
            await db.rollback()
            logger.warning(
                "Creator fee transfer failed, claim rolled back: market=%d creator=%s",
                market_id, caller,
            )
            raise
        except Exception:
            await db.rollback()
            raise
        logger.info("Creator fee claimed: market=%d creator=%s amount=%d", market_id, caller, amount)
        return ClaimResponse.build(
            market_id, caller, "CREATOR_FEE", amount, account.available_balance
        )

    async def claim_refund(
        self, db: AsyncSession, market_id: int, address: str
    ) -> ClaimResponse:
        """Return a participant's full principal from a cancelled market, once."""
        market = await self._get_market(db, market_id)
        if market.status != MarketStatus.CANCELLED:
            raise MarketNotCancelledError(market_id)
        participation = await self._markets.get_participation(db, market_id, address)
        if participation is None or participation.total_stake == 0:
            raise NothingToRefundError(market_id, address)
        if participation.has_claimed:
            raise AlreadyClaimedError(market_id, address)

        amount = participation.total_stake
        try:
            claimed = await self._markets.mark_participation_claimed(
                db, market_id, address, amount
            )
            if claimed is None:
                raise AlreadyClaimedError(market_id, address)
            account, _ = await self._accounts.credit(
                db, address, amount, LedgerEntryType.REFUND,
                MARKET_REFERENCE, str(market_id), "Refund of cancelled market",
            )
            await self._markets.add_paid_out(db, market_id, amount)
            await self._markets.append_event(
                db, market_id, MarketEventType.REFUND_CLAIMED, address, amount=amount
            )
            await db.commit()
        except TransferFailedError:
            await db.rollback()
            logger.warning(
                "Refund transfer failed, claim rolled back: market=%d user=%s",
                market_id, address,
            )
            raise
        except Exception:
            await db.rollback()
            raise
        logger.info("Refund claimed: market=%d user=%s amount=%d", market_id, address, amount)
        return ClaimResponse.build(
            market_id, address, "REFUND", amount, account.available_balance
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_winnings(
        self, db: AsyncSession, market_id: int, address: str
    ) -> WinningsResponse:
        market = await self._get_market(db, market_id)
        participation = await self._markets.get_participation(db, market_id, address)
        breakdown = winnings_breakdown(market, participation)
        return WinningsResponse.from_breakdown(
            market_id, address, market.status, market.outcome, breakdown
        )

    async def get_creator_fee_info(
        self, db: AsyncSession, market_id: int
    ) -> CreatorFeeInfoResponse:
        market = await self._get_market(db, market_id)
        return CreatorFeeInfoResponse(
            market_id=market_id,
            creator=market.creator,
            status=market.status,
            creator_fee_pct=market.creator_fee_pct,
            creator_fee_cents=market.creator_fee,
            creator_fee_display=cents_to_display(market.creator_fee),
            claimed=market.creator_fee_claimed,
        )

    async def preview(
        self,
        db: AsyncSession,
        market_id: int,
        side: Side,
        amount: int,
        address: str | None = None,
        now: datetime | None = None,
    ) -> PreviewResponse:
        """Payout if ``amount`` were staked on ``side`` now and ``side`` won.

        Runs the same guard as buying shares: a stake the ledger would refuse
        is never previewed.
        """
        market = await self._get_market(db, market_id)
        check_can_stake(market, amount, now or utc_now())

        config = await self._config.get_config(db)
        fees = FeeSchedule(config.creator_fee_pct, config.platform_fee_pct)
        existing = 0
        if address is not None:
            participation = await self._markets.get_participation(db, market_id, address)
            if participation is not None:
                existing = participation.shares_on(side)

        projection = project_payout(
            market.total_yes_pool, market.total_no_pool, side, amount, fees, existing
        )
        return PreviewResponse.from_projection(
            market_id, fees.creator_fee_pct, fees.platform_fee_pct, projection
        )
