"""In-memory repositories conforming to the domain Protocols, plus fixtures.

FakeDB mimics the transaction boundary the services rely on: commit()
snapshots every registered store and rollback() restores the last snapshot,
so a failed claim leaves no trace, exactly as in PostgreSQL.
"""

import copy
import itertools
from dataclasses import replace
from datetime import UTC, datetime
from typing import Any

import pytest

from src.pm_account.domain.models import Account, LedgerEntry
from src.pm_common.address import PLATFORM_FEE_ACCOUNT
from src.pm_common.enums import LedgerEntryType, MarketEventType, MarketStatus
from src.pm_common.errors import (
    InsufficientBalanceError,
    InternalError,
    MarketNotFoundError,
    TransferFailedError,
)
from src.pm_common.platform_config import PlatformConfig
from src.pm_market.domain.models import Market, MarketEvent, NewMarket, Participation


def _now() -> datetime:
    return datetime.now(UTC)


class FakeDB:
    def __init__(self, *stores: Any) -> None:
        self._stores = stores
        self.commits = 0
        self.rollbacks = 0
        self._saved = [copy.deepcopy(s.state) for s in stores]

    async def commit(self) -> None:
        self.commits += 1
        self._saved = [copy.deepcopy(s.state) for s in self._stores]

    async def rollback(self) -> None:
        self.rollbacks += 1
        for store, saved in zip(self._stores, self._saved, strict=True):
            store.state = copy.deepcopy(saved)


class InMemoryAccountRepository:
    def __init__(self) -> None:
        self.state: dict[str, Any] = {"accounts": {}, "ledger": []}
        self._ids = itertools.count(1)
        self.fail_credits_to: set[str] = set()
        self._open(PLATFORM_FEE_ACCOUNT, 0)

    def _open(self, address: str, balance: int) -> Account:
        now = _now()
        acc = Account(
            id=str(len(self.state["accounts"]) + 1),
            address=address,
            available_balance=balance,
            is_active=True,
            version=0,
            created_at=now,
            updated_at=now,
        )
        self.state["accounts"][address] = acc
        return acc

    def balance(self, address: str) -> int:
        acc = self.state["accounts"].get(address)
        return acc.available_balance if acc else 0

    def total_balances(self) -> int:
        return sum(a.available_balance for a in self.state["accounts"].values())

    def net_deposits(self) -> int:
        return sum(
            e.amount
            for e in self.state["ledger"]
            if e.entry_type in (LedgerEntryType.DEPOSIT.value, LedgerEntryType.WITHDRAW.value)
        )

    def _write(
        self, acc: Account, entry_type: str, amount: int, ref_type: str, ref_id: str | None,
        description: str,
    ) -> LedgerEntry:
        entry = LedgerEntry(
            id=next(self._ids),
            address=acc.address,
            entry_type=LedgerEntryType(entry_type).value,
            amount=amount,
            balance_after=acc.available_balance,
            reference_type=ref_type,
            reference_id=ref_id,
            description=description,
            created_at=_now(),
        )
        self.state["ledger"].append(entry)
        return entry

    async def get_account(self, db: Any, address: str) -> Account | None:
        acc = self.state["accounts"].get(address)
        return replace(acc) if acc else None

    async def deposit(self, db: Any, address: str, amount: int) -> tuple[Account, LedgerEntry]:
        acc = self.state["accounts"].get(address) or self._open(address, 0)
        acc.available_balance += amount
        acc.version += 1
        entry = self._write(acc, LedgerEntryType.DEPOSIT, amount, "DEPOSIT", None, "Deposit")
        return replace(acc), entry

    async def withdraw(self, db: Any, address: str, amount: int) -> tuple[Account, LedgerEntry]:
        return await self.debit(
            db, address, amount, LedgerEntryType.WITHDRAW, "WITHDRAW", "", "Withdrawal"
        )

    async def debit(
        self, db: Any, address: str, amount: int, entry_type: str, ref_type: str,
        ref_id: str, description: str,
    ) -> tuple[Account, LedgerEntry]:
        acc = self.state["accounts"].get(address)
        if acc is None or not acc.is_active or acc.available_balance < amount:
            raise InsufficientBalanceError(amount, acc.available_balance if acc else 0)
        acc.available_balance -= amount
        acc.version += 1
        entry = self._write(acc, entry_type, -amount, ref_type, ref_id or None, description)
        return replace(acc), entry

    async def credit(
        self, db: Any, address: str, amount: int, entry_type: str, ref_type: str,
        ref_id: str, description: str,
    ) -> tuple[Account, LedgerEntry]:
        acc = self.state["accounts"].get(address)
        if address in self.fail_credits_to or acc is None or not acc.is_active:
            raise TransferFailedError(address, amount)
        acc.available_balance += amount
        acc.version += 1
        entry = self._write(acc, entry_type, amount, ref_type, ref_id, description)
        return replace(acc), entry

    async def list_ledger_entries(
        self, db: Any, address: str, cursor_id: int | None, limit: int,
        entry_type: str | None, market_id: int | None = None,
    ) -> list[LedgerEntry]:
        rows = [
            e for e in reversed(self.state["ledger"])
            if e.address == address
            and (cursor_id is None or e.id < cursor_id)
            and (entry_type is None or e.entry_type == entry_type)
            and (market_id is None or e.market_id == market_id)
        ]
        return rows[:limit]


class InMemoryMarketRepository:
    def __init__(self) -> None:
        self.state: dict[str, Any] = {"markets": {}, "participations": {}, "events": []}
        self._market_ids = itertools.count(1)
        self._event_ids = itertools.count(1)

    def _market(self, market_id: int) -> Market:
        market = self.state["markets"].get(market_id)
        if market is None:
            raise MarketNotFoundError(market_id)
        return market

    def total_escrow(self) -> int:
        return sum(m.escrow_balance for m in self.state["markets"].values())

    async def create_market(self, db: Any, new: NewMarket) -> Market:
        now = _now()
        market = Market(
            id=next(self._market_ids),
            creator=new.creator,
            question=new.question,
            description=new.description,
            category=new.category,
            image_url=new.image_url,
            source_url=new.source_url,
            end_time=new.end_time,
            status=MarketStatus.ACTIVE.value,
            outcome=None,
            total_yes_pool=0,
            total_no_pool=0,
            creator_fee_pct=None,
            platform_fee_pct=None,
            creator_fee=0,
            platform_fee=0,
            creator_fee_claimed=False,
            paid_out=0,
            resolved_at=None,
            resolved_by=None,
            cancelled_at=None,
            created_at=now,
            updated_at=now,
        )
        self.state["markets"][market.id] = market
        return replace(market)

    async def get_market_by_id(self, db: Any, market_id: int) -> Market | None:
        market = self.state["markets"].get(market_id)
        return replace(market) if market else None

    async def lock_market(self, db: Any, market_id: int) -> Market | None:
        return await self.get_market_by_id(db, market_id)

    async def list_markets(
        self, db: Any, status: str | None, category: str | None, creator: str | None,
        cursor_id: int | None, limit: int,
    ) -> list[Market]:
        rows = [
            replace(m) for m in sorted(self.state["markets"].values(), key=lambda m: -m.id)
            if (status is None or m.status == status)
            and (category is None or m.category == category)
            and (creator is None or m.creator == creator)
            and (cursor_id is None or m.id < cursor_id)
        ]
        return rows[:limit]

    async def add_stake(
        self, db: Any, market_id: int, address: str, side: str, amount: int
    ) -> tuple[Market, Participation]:
        market = self.state["markets"].get(market_id)
        if market is None or market.status != MarketStatus.ACTIVE:
            raise MarketNotFoundError(market_id)
        key = (market_id, address)
        part = self.state["participations"].get(key)
        if part is None:
            part = Participation(market_id=market_id, user_address=address, created_at=_now())
            self.state["participations"][key] = part
        part.side = side
        if side == "YES":
            market.total_yes_pool += amount
            part.yes_shares += amount
        else:
            market.total_no_pool += amount
            part.no_shares += amount
        return replace(market), replace(part)

    async def mark_resolved(
        self, db: Any, market_id: int, outcome: str, resolved_by: str,
        creator_fee_pct: int, platform_fee_pct: int, creator_fee: int, platform_fee: int,
    ) -> Market:
        market = self._market(market_id)
        if market.status != MarketStatus.ACTIVE:
            raise InternalError(f"Resolve of market {market_id} matched no ACTIVE row")
        market.status = MarketStatus.RESOLVED.value
        market.outcome = outcome
        market.resolved_by = resolved_by
        market.resolved_at = _now()
        market.creator_fee_pct = creator_fee_pct
        market.platform_fee_pct = platform_fee_pct
        market.creator_fee = creator_fee
        market.platform_fee = platform_fee
        return replace(market)

    async def mark_cancelled(self, db: Any, market_id: int) -> Market:
        market = self._market(market_id)
        if market.status != MarketStatus.ACTIVE:
            raise InternalError(f"Cancel of market {market_id} matched no ACTIVE row")
        market.status = MarketStatus.CANCELLED.value
        market.cancelled_at = _now()
        return replace(market)

    async def add_paid_out(self, db: Any, market_id: int, amount: int) -> Market:
        market = self._market(market_id)
        if market.paid_out + amount > market.total_pool:
            raise InternalError(f"Payout of {amount} would exceed escrow of market {market_id}")
        market.paid_out += amount
        return replace(market)

    async def get_participation(
        self, db: Any, market_id: int, address: str
    ) -> Participation | None:
        part = self.state["participations"].get((market_id, address))
        return replace(part) if part else None

    async def list_participations(self, db: Any, market_id: int) -> list[Participation]:
        return [
            replace(p) for (mid, _), p in self.state["participations"].items() if mid == market_id
        ]

    async def mark_participation_claimed(
        self, db: Any, market_id: int, address: str, amount: int
    ) -> Participation | None:
        part = self.state["participations"].get((market_id, address))
        if part is None or part.has_claimed:
            return None
        part.has_claimed = True
        part.claimed_amount = amount
        part.claimed_at = _now()
        return replace(part)

    async def mark_creator_fee_claimed(self, db: Any, market_id: int) -> Market | None:
        market = self._market(market_id)
        if market.creator_fee_claimed:
            return None
        market.creator_fee_claimed = True
        return replace(market)

    async def append_event(
        self, db: Any, market_id: int, event_type: str, actor: str | None,
        side: str | None = None, amount: int | None = None,
        payload: dict[str, Any] | None = None,
    ) -> MarketEvent:
        event = MarketEvent(
            id=next(self._event_ids),
            market_id=market_id,
            event_type=MarketEventType(event_type).value,
            actor=actor,
            side=side,
            amount=amount,
            payload=payload or {},
            created_at=_now(),
        )
        self.state["events"].append(event)
        return event

    async def list_events(
        self, db: Any, market_id: int, cursor_id: int | None, limit: int,
        event_type: str | None,
    ) -> list[MarketEvent]:
        rows = [
            e for e in self.state["events"]
            if e.market_id == market_id
            and (cursor_id is None or e.id > cursor_id)
            and (event_type is None or e.event_type == event_type)
        ]
        return rows[:limit]


class InMemoryConfigRepository:
    def __init__(
        self,
        creator_fee_pct: int = 15,
        platform_fee_pct: int = 15,
        market_creation_fee: int = 100,
        username_change_fee: int = 10,
    ) -> None:
        self.state = PlatformConfig(
            creator_fee_pct=creator_fee_pct,
            platform_fee_pct=platform_fee_pct,
            market_creation_fee=market_creation_fee,
            username_change_fee=username_change_fee,
        )

    async def get_config(self, db: Any) -> PlatformConfig:
        return replace(self.state)

    async def update_config(self, db: Any, updated_by: str, **fields: int | None) -> PlatformConfig:
        for name, value in fields.items():
            if value is not None:
                setattr(self.state, name, value)
        self.state.updated_by = updated_by
        self.state.updated_at = _now()
        return replace(self.state)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def accounts() -> InMemoryAccountRepository:
    return InMemoryAccountRepository()


@pytest.fixture
def markets() -> InMemoryMarketRepository:
    return InMemoryMarketRepository()


@pytest.fixture
def platform_config() -> InMemoryConfigRepository:
    return InMemoryConfigRepository()


@pytest.fixture
def fake_db(
    accounts: InMemoryAccountRepository,
    markets: InMemoryMarketRepository,
    platform_config: InMemoryConfigRepository,
) -> FakeDB:
    return FakeDB(accounts, markets, platform_config)
