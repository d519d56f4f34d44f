"""Unit tests for MarketApplicationService against in-memory repositories."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from src.pm_account.application.service import AccountApplicationService
from src.pm_common.address import PLATFORM_FEE_ACCOUNT
from src.pm_common.enums import MarketEventType, Side
from src.pm_common.errors import (
    AlreadyResolvedError,
    InsufficientBalanceError,
    InvalidAmountError,
    InvalidMarketParamsError,
    MarketExpiredError,
    MarketNotActiveError,
    MarketNotEndedError,
    MarketNotFoundError,
)
from src.pm_market.application.schemas import CreateMarketRequest
from src.pm_market.application.service import MarketApplicationService

CREATOR = "0x" + "c" * 40
ALICE = "0x" + "1" * 40
BOB = "0x" + "2" * 40
ADMIN = "0x" + "a" * 40


@pytest.fixture
def service(markets, accounts, platform_config) -> MarketApplicationService:
    return MarketApplicationService(markets, accounts, platform_config)


@pytest.fixture
async def funded(fake_db, accounts) -> None:
    account_service = AccountApplicationService(accounts)
    for address in (CREATOR, ALICE, BOB):
        await account_service.deposit(fake_db, address, 10_000)


def _request(**kwargs: object) -> CreateMarketRequest:
    body: dict[str, object] = {
        "question": "Will it rain tomorrow?",
        "end_time": datetime.now(UTC) + timedelta(hours=1),
        "category": "weather",
    }
    body.update(kwargs)
    return CreateMarketRequest(**body)  # type: ignore[arg-type]


class TestCreateMarket:
    async def test_charges_creation_fee_to_platform(
        self, service, fake_db, accounts, markets, funded
    ) -> None:
        resp = await service.create_market(fake_db, CREATOR, _request())
        assert resp.creation_fee_cents == 100
        assert resp.market.status == "ACTIVE"
        assert accounts.balance(CREATOR) == 9_900
        assert accounts.balance(PLATFORM_FEE_ACCOUNT) == 100
        events = markets.state["events"]
        assert [e.event_type for e in events] == [MarketEventType.MARKET_CREATED.value]

    async def test_zero_creation_fee_skips_transfer(
        self, service, fake_db, accounts, platform_config, funded
    ) -> None:
        platform_config.state.market_creation_fee = 0
        resp = await service.create_market(fake_db, CREATOR, _request())
        assert resp.creation_fee_cents == 0
        assert accounts.balance(CREATOR) == 10_000

    async def test_creator_cannot_afford_fee(self, service, fake_db, markets) -> None:
        with pytest.raises(InsufficientBalanceError):
            await service.create_market(fake_db, CREATOR, _request())
        assert fake_db.rollbacks == 1
        assert markets.state["markets"] == {}

    async def test_past_end_time_rejected(self, service, fake_db, funded) -> None:
        with pytest.raises(InvalidMarketParamsError):
            await service.create_market(
                fake_db, CREATOR, _request(end_time=datetime.now(UTC) - timedelta(minutes=1))
            )

    async def test_question_is_stripped(self, service, fake_db, funded) -> None:
        resp = await service.create_market(fake_db, CREATOR, _request(question="  Q?  "))
        assert resp.market.question == "Q?"


class TestBuyShares:
    async def test_moves_funds_into_escrow(
        self, service, fake_db, accounts, markets, funded
    ) -> None:
        market = (await service.create_market(fake_db, CREATOR, _request())).market
        resp = await service.buy_shares(fake_db, market.id, ALICE, Side.YES, 250)
        assert resp.total_yes_pool_cents == 250
        assert resp.participation.yes_shares_cents == 250
        assert resp.available_balance_cents == 9_750
        assert accounts.balance(ALICE) == 9_750
        assert markets.total_escrow() == 250

    async def test_stakes_accumulate_on_both_sides(self, service, fake_db, funded) -> None:
        market = (await service.create_market(fake_db, CREATOR, _request())).market
        await service.buy_shares(fake_db, market.id, ALICE, Side.YES, 100)
        resp = await service.buy_shares(fake_db, market.id, ALICE, Side.NO, 40)
        assert resp.participation.yes_shares_cents == 100
        assert resp.participation.no_shares_cents == 40
        assert resp.participation.side == "NO"

    async def test_insufficient_balance_rolls_back_pool(
        self, service, fake_db, markets, funded
    ) -> None:
        market = (await service.create_market(fake_db, CREATOR, _request())).market
        with pytest.raises(InsufficientBalanceError):
            await service.buy_shares(fake_db, market.id, ALICE, Side.YES, 10_001)
        assert markets.state["markets"][market.id].total_yes_pool == 0
        assert markets.state["participations"] == {}

    async def test_zero_amount_rejected(self, service, fake_db, funded) -> None:
        market = (await service.create_market(fake_db, CREATOR, _request())).market
        with pytest.raises(InvalidAmountError):
            await service.buy_shares(fake_db, market.id, ALICE, Side.YES, 0)

    async def test_unknown_market(self, service, fake_db, funded) -> None:
        with pytest.raises(MarketNotFoundError):
            await service.buy_shares(fake_db, 999, ALICE, Side.YES, 10)

    async def test_after_end_time_rejected(self, service, fake_db, funded) -> None:
        market = (await service.create_market(fake_db, CREATOR, _request())).market
        with pytest.raises(MarketExpiredError):
            await service.record_stake(
                fake_db, market.id, ALICE, Side.YES, 10,
                now=datetime.now(UTC) + timedelta(hours=2),
            )


class TestResolveMarket:
    async def _staked_market(self, service, fake_db) -> int:
        market = (await service.create_market(fake_db, CREATOR, _request())).market
        await service.buy_shares(fake_db, market.id, ALICE, Side.YES, 100)
        await service.buy_shares(fake_db, market.id, BOB, Side.NO, 50)
        return market.id

    async def test_snapshots_fees_and_pays_platform(
        self, service, fake_db, accounts, markets, funded
    ) -> None:
        market_id = await self._staked_market(service, fake_db)
        after_end = datetime.now(UTC) + timedelta(hours=2)
        detail = await service.resolve_market(fake_db, market_id, Side.YES, ADMIN, now=after_end)
        assert detail.status == "RESOLVED"
        assert detail.outcome == "YES"
        assert detail.creator_fee_pct == 15
        assert detail.platform_fee_pct == 15
        assert detail.creator_fee_cents == 7
        assert detail.platform_fee_cents == 7
        assert detail.paid_out_cents == 7
        # creation fee + platform fee
        assert accounts.balance(PLATFORM_FEE_ACCOUNT) == 107
        resolved = [e for e in markets.state["events"] if e.event_type == "MarketResolved"]
        assert resolved[0].payload["total_winner_pool"] == 136

    async def test_later_fee_change_does_not_touch_snapshot(
        self, service, fake_db, markets, platform_config, funded
    ) -> None:
        market_id = await self._staked_market(service, fake_db)
        after_end = datetime.now(UTC) + timedelta(hours=2)
        await service.resolve_market(fake_db, market_id, Side.YES, ADMIN, now=after_end)
        platform_config.state.creator_fee_pct = 40
        assert markets.state["markets"][market_id].creator_fee_pct == 15

    async def test_before_end_rejected(self, service, fake_db, funded) -> None:
        market_id = await self._staked_market(service, fake_db)
        with pytest.raises(MarketNotEndedError):
            await service.resolve_market(fake_db, market_id, Side.YES, ADMIN)

    async def test_resolve_twice_rejected(self, service, fake_db, funded) -> None:
        market_id = await self._staked_market(service, fake_db)
        after_end = datetime.now(UTC) + timedelta(hours=2)
        await service.resolve_market(fake_db, market_id, Side.NO, ADMIN, now=after_end)
        with pytest.raises(AlreadyResolvedError):
            await service.resolve_market(fake_db, market_id, Side.YES, ADMIN, now=after_end)

    async def test_stake_after_resolution_rejected(self, service, fake_db, funded) -> None:
        market_id = await self._staked_market(service, fake_db)
        after_end = datetime.now(UTC) + timedelta(hours=2)
        await service.resolve_market(fake_db, market_id, Side.YES, ADMIN, now=after_end)
        with pytest.raises(MarketNotActiveError):
            await service.buy_shares(fake_db, market_id, ALICE, Side.YES, 10)


class TestCancelMarket:
    async def test_cancel_active(self, service, fake_db, markets, funded) -> None:
        market = (await service.create_market(fake_db, CREATOR, _request())).market
        detail = await service.cancel_market(fake_db, market.id, ADMIN)
        assert detail.status == "CANCELLED"
        assert detail.cancelled_at is not None
        assert markets.state["events"][-1].event_type == "MarketCancelled"

    async def test_cancel_resolved_rejected(self, service, fake_db, funded) -> None:
        market = (await service.create_market(fake_db, CREATOR, _request())).market
        await service.resolve_market(
            fake_db, market.id, Side.YES, ADMIN, now=datetime.now(UTC) + timedelta(hours=2)
        )
        with pytest.raises(AlreadyResolvedError):
            await service.cancel_market(fake_db, market.id, ADMIN)


class TestReads:
    async def test_list_defaults_to_active(self, service, fake_db, funded) -> None:
        first = (await service.create_market(fake_db, CREATOR, _request())).market
        await service.create_market(fake_db, CREATOR, _request())
        await service.cancel_market(fake_db, first.id, ADMIN)
        active = await service.list_markets(fake_db, None, None, None, None, 20)
        everything = await service.list_markets(fake_db, "ALL", None, None, None, 20)
        assert len(active.items) == 1
        assert len(everything.items) == 2

    async def test_list_paginates_newest_first(self, service, fake_db, funded) -> None:
        for _ in range(3):
            await service.create_market(fake_db, CREATOR, _request())
        page1 = await service.list_markets(fake_db, None, None, None, None, 2)
        assert [i.id for i in page1.items] == [3, 2]
        assert page1.has_more is True
        page2 = await service.list_markets(fake_db, None, None, None, page1.next_cursor, 2)
        assert [i.id for i in page2.items] == [1]
        assert page2.has_more is False
        assert page2.next_cursor is None

    async def test_get_market_not_found(self, service, fake_db) -> None:
        with pytest.raises(MarketNotFoundError):
            await service.get_market(fake_db, 404)

    async def test_participation_defaults_to_zero(self, service, fake_db, funded) -> None:
        market = (await service.create_market(fake_db, CREATOR, _request())).market
        p = await service.get_participation(fake_db, market.id, BOB)
        assert p.total_stake_cents == 0
        assert p.has_claimed is False

    async def test_events_are_oldest_first(self, service, fake_db, funded) -> None:
        market = (await service.create_market(fake_db, CREATOR, _request())).market
        await service.buy_shares(fake_db, market.id, ALICE, Side.YES, 10)
        await service.buy_shares(fake_db, market.id, BOB, Side.NO, 20)
        page = await service.list_events(fake_db, market.id, None, 2, None)
        assert [e.event_type for e in page.items] == ["MarketCreated", "StakeRecorded"]
        assert page.has_more is True
        rest = await service.list_events(fake_db, market.id, page.next_cursor, 2, None)
        assert [e.amount_cents for e in rest.items] == [20]

    async def test_events_filter_by_type(self, service, fake_db, funded) -> None:
        market = (await service.create_market(fake_db, CREATOR, _request())).market
        await service.buy_shares(fake_db, market.id, ALICE, Side.YES, 10)
        page = await service.list_events(fake_db, market.id, None, 10, "StakeRecorded")
        assert len(page.items) == 1
        assert page.items[0].side == "YES"


class TestTransactionBoundary:
    async def test_repo_error_rolls_back(self) -> None:
        repo = AsyncMock()
        repo.lock_market.return_value = None
        service = MarketApplicationService(repo, AsyncMock(), AsyncMock())
        db = AsyncMock()
        with pytest.raises(MarketNotFoundError):
            await service.cancel_market(db, 1, ADMIN)
        db.rollback.assert_awaited_once()
        db.commit.assert_not_awaited()
