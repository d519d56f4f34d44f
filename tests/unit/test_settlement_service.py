"""Unit tests for SettlementService: claims, refunds, creator fee, preview."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from src.pm_account.application.service import AccountApplicationService
from src.pm_clearing.application.service import SettlementService
from src.pm_common.address import PLATFORM_FEE_ACCOUNT
from src.pm_common.enums import LedgerEntryType, Side
from src.pm_common.errors import (
    AlreadyClaimedError,
    CreatorFeeAlreadyClaimedError,
    InvalidAmountError,
    MarketExpiredError,
    MarketNotActiveError,
    MarketNotCancelledError,
    MarketNotFoundError,
    NoCreatorFeeToClaimError,
    NotAWinnerError,
    NotMarketCreatorError,
    NothingToRefundError,
    TransferFailedError,
)
from src.pm_market.application.schemas import CreateMarketRequest
from src.pm_market.application.service import MarketApplicationService
from src.pm_market.domain.models import Market, Participation

CREATOR = "0x" + "c" * 40
ALICE = "0x" + "1" * 40
BOB = "0x" + "2" * 40
CAROL = "0x" + "3" * 40
ADMIN = "0x" + "a" * 40


@pytest.fixture
def market_service(markets, accounts, platform_config) -> MarketApplicationService:
    return MarketApplicationService(markets, accounts, platform_config)


@pytest.fixture
def settlement(markets, accounts, platform_config) -> SettlementService:
    return SettlementService(markets, accounts, platform_config)


@pytest.fixture
async def market_id(fake_db, accounts, market_service) -> int:
    """Reference market: ALICE 20 YES, BOB 80 YES, CAROL 50 NO."""
    account_service = AccountApplicationService(accounts)
    for address in (CREATOR, ALICE, BOB, CAROL):
        await account_service.deposit(fake_db, address, 1_000)
    req = CreateMarketRequest(
        question="Reference market", end_time=datetime.now(UTC) + timedelta(hours=1)
    )
    mid = (await market_service.create_market(fake_db, CREATOR, req)).market.id
    await market_service.buy_shares(fake_db, mid, ALICE, Side.YES, 20)
    await market_service.buy_shares(fake_db, mid, BOB, Side.YES, 80)
    await market_service.buy_shares(fake_db, mid, CAROL, Side.NO, 50)
    return mid


async def _resolve(market_service, fake_db, market_id: int, outcome: Side) -> None:
    await market_service.resolve_market(
        fake_db, market_id, outcome, ADMIN, now=datetime.now(UTC) + timedelta(hours=2)
    )


def _resolved_market() -> Market:
    """YES won 100 vs 50 with a 15/15 snapshot; platform fee already paid out."""
    now = datetime.now(UTC)
    return Market(
        id=1, creator=CREATOR, question="Q?", description=None, category=None,
        image_url=None, source_url=None, end_time=now - timedelta(hours=1),
        status="RESOLVED", outcome="YES", total_yes_pool=100, total_no_pool=50,
        creator_fee_pct=15, platform_fee_pct=15, creator_fee=7, platform_fee=7,
        creator_fee_claimed=False, paid_out=7, resolved_at=now, resolved_by=ADMIN,
        cancelled_at=None, created_at=now, updated_at=now,
    )


class TestClaimWinnings:
    async def test_pays_proportional_share(
        self, settlement, market_service, fake_db, accounts, market_id
    ) -> None:
        await _resolve(market_service, fake_db, market_id, Side.YES)
        resp = await settlement.claim_winnings(fake_db, market_id, ALICE)
        assert resp.amount_cents == 27
        assert resp.claim_type == "WINNINGS"
        assert accounts.balance(ALICE) == 1_000 - 20 + 27
        resp = await settlement.claim_winnings(fake_db, market_id, BOB)
        assert resp.amount_cents == 108

    async def test_second_claim_rejected(
        self, settlement, market_service, fake_db, accounts, market_id
    ) -> None:
        await _resolve(market_service, fake_db, market_id, Side.YES)
        await settlement.claim_winnings(fake_db, market_id, ALICE)
        with pytest.raises(AlreadyClaimedError):
            await settlement.claim_winnings(fake_db, market_id, ALICE)
        assert accounts.balance(ALICE) == 1_007

    async def test_loser_rejected(self, settlement, market_service, fake_db, market_id) -> None:
        await _resolve(market_service, fake_db, market_id, Side.YES)
        with pytest.raises(NotAWinnerError):
            await settlement.claim_winnings(fake_db, market_id, CAROL)

    async def test_unresolved_market_has_no_winners(
        self, settlement, fake_db, market_id
    ) -> None:
        with pytest.raises(NotAWinnerError):
            await settlement.claim_winnings(fake_db, market_id, ALICE)

    async def test_unknown_market(self, settlement, fake_db) -> None:
        with pytest.raises(MarketNotFoundError):
            await settlement.claim_winnings(fake_db, 999, ALICE)

    async def test_failed_transfer_leaves_claim_retryable(
        self, settlement, market_service, fake_db, accounts, markets, market_id
    ) -> None:
        await _resolve(market_service, fake_db, market_id, Side.YES)
        accounts.fail_credits_to.add(ALICE)
        with pytest.raises(TransferFailedError):
            await settlement.claim_winnings(fake_db, market_id, ALICE)
        assert markets.state["participations"][(market_id, ALICE)].has_claimed is False
        assert markets.state["markets"][market_id].paid_out == 7

        accounts.fail_credits_to.clear()
        resp = await settlement.claim_winnings(fake_db, market_id, ALICE)
        assert resp.amount_cents == 27

    async def test_winnings_ledger_entry(
        self, settlement, market_service, fake_db, accounts, market_id
    ) -> None:
        await _resolve(market_service, fake_db, market_id, Side.YES)
        await settlement.claim_winnings(fake_db, market_id, BOB)
        entry = accounts.state["ledger"][-1]
        assert entry.address == BOB
        assert entry.entry_type == LedgerEntryType.WINNINGS_PAYOUT.value
        assert entry.amount == 108
        assert entry.reference_id == str(market_id)


class TestClaimRaceAndRollback:
    """Mock-based: the conditional UPDATE loses, or the credit fails."""

    async def test_lost_race_reports_already_claimed(self) -> None:
        repo = AsyncMock()
        repo.get_market_by_id.return_value = _resolved_market()
        repo.get_participation.return_value = Participation(1, ALICE, yes_shares=20)
        repo.mark_participation_claimed.return_value = None
        accounts = AsyncMock()
        service = SettlementService(repo, accounts, AsyncMock())
        db = AsyncMock()

        with pytest.raises(AlreadyClaimedError):
            await service.claim_winnings(db, 1, ALICE)
        accounts.credit.assert_not_awaited()
        db.rollback.assert_awaited_once()
        db.commit.assert_not_awaited()

    async def test_transfer_failure_rolls_back(self) -> None:
        repo = AsyncMock()
        repo.get_market_by_id.return_value = _resolved_market()
        repo.get_participation.return_value = Participation(1, ALICE, yes_shares=20)
        accounts = AsyncMock()
        accounts.credit.side_effect = TransferFailedError(ALICE, 27)
        service = SettlementService(repo, accounts, AsyncMock())
        db = AsyncMock()

        with pytest.raises(TransferFailedError):
            await service.claim_winnings(db, 1, ALICE)
        repo.mark_participation_claimed.assert_awaited_once_with(db, 1, ALICE, 27)
        repo.add_paid_out.assert_not_awaited()
        db.rollback.assert_awaited_once()
        db.commit.assert_not_awaited()


class TestCreatorFee:
    async def test_creator_claims_once(
        self, settlement, market_service, fake_db, accounts, market_id
    ) -> None:
        await _resolve(market_service, fake_db, market_id, Side.YES)
        resp = await settlement.claim_creator_fee(fake_db, market_id, CREATOR)
        assert resp.amount_cents == 7
        assert resp.claim_type == "CREATOR_FEE"
        # deposit - creation fee + creator fee
        assert accounts.balance(CREATOR) == 1_000 - 100 + 7
        with pytest.raises(CreatorFeeAlreadyClaimedError):
            await settlement.claim_creator_fee(fake_db, market_id, CREATOR)

    async def test_non_creator_rejected(
        self, settlement, market_service, fake_db, market_id
    ) -> None:
        await _resolve(market_service, fake_db, market_id, Side.YES)
        with pytest.raises(NotMarketCreatorError):
            await settlement.claim_creator_fee(fake_db, market_id, ALICE)

    async def test_unresolved_market_has_no_fee(self, settlement, fake_db, market_id) -> None:
        with pytest.raises(NoCreatorFeeToClaimError):
            await settlement.claim_creator_fee(fake_db, market_id, CREATOR)

    async def test_zero_fee_rejected(
        self, settlement, market_service, fake_db, platform_config, market_id
    ) -> None:
        platform_config.state.creator_fee_pct = 0
        await _resolve(market_service, fake_db, market_id, Side.YES)
        with pytest.raises(NoCreatorFeeToClaimError):
            await settlement.claim_creator_fee(fake_db, market_id, CREATOR)

    async def test_fee_info(self, settlement, market_service, fake_db, market_id) -> None:
        await _resolve(market_service, fake_db, market_id, Side.NO)
        info = await settlement.get_creator_fee_info(fake_db, market_id)
        # NO wins: losing pool is the 100 YES
        assert info.creator_fee_cents == 15
        assert info.creator_fee_display == "$0.15"
        assert info.claimed is False


class TestRefund:
    async def test_full_principal_returned(
        self, settlement, market_service, fake_db, accounts, market_id
    ) -> None:
        await market_service.cancel_market(fake_db, market_id, ADMIN)
        for address in (ALICE, BOB, CAROL):
            await settlement.claim_refund(fake_db, market_id, address)
            assert accounts.balance(address) == 1_000

    async def test_refund_once(self, settlement, market_service, fake_db, market_id) -> None:
        await market_service.cancel_market(fake_db, market_id, ADMIN)
        await settlement.claim_refund(fake_db, market_id, ALICE)
        with pytest.raises(AlreadyClaimedError):
            await settlement.claim_refund(fake_db, market_id, ALICE)

    async def test_non_participant(self, settlement, market_service, fake_db, market_id) -> None:
        await market_service.cancel_market(fake_db, market_id, ADMIN)
        with pytest.raises(NothingToRefundError):
            await settlement.claim_refund(fake_db, market_id, CREATOR)

    async def test_active_market_not_refundable(self, settlement, fake_db, market_id) -> None:
        with pytest.raises(MarketNotCancelledError):
            await settlement.claim_refund(fake_db, market_id, ALICE)

    async def test_winnings_unavailable_after_cancel(
        self, settlement, market_service, fake_db, market_id
    ) -> None:
        await market_service.cancel_market(fake_db, market_id, ADMIN)
        with pytest.raises(NotAWinnerError):
            await settlement.claim_winnings(fake_db, market_id, ALICE)


class TestReads:
    async def test_winnings_view(self, settlement, market_service, fake_db, market_id) -> None:
        await _resolve(market_service, fake_db, market_id, Side.YES)
        view = await settlement.get_winnings(fake_db, market_id, BOB)
        assert view.is_winner is True
        assert view.winnings_cents == 108
        assert view.split is not None
        assert view.split.total_winner_pool_cents == 136

    async def test_preview_matches_claim(
        self, settlement, market_service, fake_db, market_id
    ) -> None:
        preview = await settlement.preview(fake_db, market_id, Side.NO, 30)
        assert preview.creator_fee_pct == 15
        assert preview.potential_payout_cents == 56
        await market_service.buy_shares(fake_db, market_id, CREATOR, Side.NO, 30)
        await _resolve(market_service, fake_db, market_id, Side.NO)
        resp = await settlement.claim_winnings(fake_db, market_id, CREATOR)
        assert resp.amount_cents == preview.potential_payout_cents

    async def test_preview_counts_existing_stake(self, settlement, fake_db, market_id) -> None:
        preview = await settlement.preview(fake_db, market_id, Side.NO, 30, address=CAROL)
        assert preview.stake_after_cents == 80
        # yes=100, no=80: fees 15+15 of 100 leave 70 for the NO side
        assert preview.potential_payout_cents == 150

    async def test_preview_closed_market(
        self, settlement, market_service, fake_db, market_id
    ) -> None:
        await market_service.cancel_market(fake_db, market_id, ADMIN)
        with pytest.raises(MarketNotActiveError):
            await settlement.preview(fake_db, market_id, Side.YES, 10)

    async def test_preview_after_end_time(self, settlement, fake_db, market_id) -> None:
        # Still ACTIVE until an admin resolves it, but no longer stakeable
        later = datetime.now(UTC) + timedelta(hours=2)
        with pytest.raises(MarketExpiredError):
            await settlement.preview(fake_db, market_id, Side.YES, 10, now=later)

    async def test_preview_rejects_non_positive_amount(self, settlement, fake_db, market_id) -> None:
        with pytest.raises(InvalidAmountError):
            await settlement.preview(fake_db, market_id, Side.YES, 0)


class TestConservation:
    async def test_money_is_neither_created_nor_destroyed(
        self, settlement, market_service, fake_db, accounts, markets, market_id
    ) -> None:
        await _resolve(market_service, fake_db, market_id, Side.YES)
        for address in (ALICE, BOB):
            await settlement.claim_winnings(fake_db, market_id, address)
        await settlement.claim_creator_fee(fake_db, market_id, CREATOR)

        assert accounts.total_balances() + markets.total_escrow() == accounts.net_deposits()
        # Only the rounding dust is left behind
        assert markets.total_escrow() == 1
        assert accounts.balance(PLATFORM_FEE_ACCOUNT) == 107
