"""Unit tests for AccountApplicationService using a mock repository."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.pm_account.application.schemas import (
    BalanceResponse,
    DepositResponse,
    LedgerResponse,
    WithdrawResponse,
)
from src.pm_account.application.service import AccountApplicationService
from src.pm_account.domain.models import Account, LedgerEntry
from src.pm_common.errors import InsufficientBalanceError, InvalidAmountError
from src.pm_common.pagination import cursor_decode, cursor_encode

ADDR = "0x" + "1" * 40


def _make_account(available: int = 100000) -> Account:
    return Account(
        id="1",
        address=ADDR,
        available_balance=available,
        is_active=True,
        version=1,
        created_at=datetime.now(UTC),
        updated_at=datetime.now(UTC),
    )


def _make_ledger_entry(
    entry_id: int = 1,
    amount: int = 10000,
    balance_after: int = 110000,
    entry_type: str = "DEPOSIT",
) -> LedgerEntry:
    return LedgerEntry(
        id=entry_id,
        address=ADDR,
        entry_type=entry_type,
        amount=amount,
        balance_after=balance_after,
        created_at=datetime.now(UTC),
    )


class TestGetBalance:
    async def test_returns_balance_response(self) -> None:
        mock_repo = AsyncMock()
        mock_repo.get_account.return_value = _make_account(150000)
        svc = AccountApplicationService(repo=mock_repo)
        db = MagicMock()

        result = await svc.get_balance(db, ADDR)

        assert isinstance(result, BalanceResponse)
        assert result.address == ADDR
        assert result.available_balance_cents == 150000
        assert result.available_balance_display == "$1,500.00"

    async def test_unknown_wallet_has_zero_balance(self) -> None:
        mock_repo = AsyncMock()
        mock_repo.get_account.return_value = None
        svc = AccountApplicationService(repo=mock_repo)

        result = await svc.get_balance(MagicMock(), ADDR)

        assert result.available_balance_cents == 0
        assert result.available_balance_display == "$0.00"


class TestDeposit:
    async def test_returns_deposit_response(self) -> None:
        mock_repo = AsyncMock()
        mock_repo.deposit.return_value = (
            _make_account(110000),
            _make_ledger_entry(1, 10000, 110000),
        )
        svc = AccountApplicationService(repo=mock_repo)
        db = AsyncMock()

        result = await svc.deposit(db, ADDR, 10000)

        assert isinstance(result, DepositResponse)
        assert result.available_balance_cents == 110000
        assert result.deposited_cents == 10000
        assert result.deposited_display == "$100.00"
        assert result.ledger_entry_id == 1
        db.commit.assert_awaited_once()

    async def test_rejects_non_positive_amount(self) -> None:
        mock_repo = AsyncMock()
        svc = AccountApplicationService(repo=mock_repo)
        db = AsyncMock()

        with pytest.raises(InvalidAmountError):
            await svc.deposit(db, ADDR, 0)
        mock_repo.deposit.assert_not_awaited()

    async def test_rolls_back_on_error(self) -> None:
        mock_repo = AsyncMock()
        mock_repo.deposit.side_effect = RuntimeError("db down")
        svc = AccountApplicationService(repo=mock_repo)
        db = AsyncMock()

        with pytest.raises(RuntimeError):
            await svc.deposit(db, ADDR, 100)
        db.rollback.assert_awaited_once()
        db.commit.assert_not_awaited()


class TestWithdraw:
    async def test_returns_withdraw_response(self) -> None:
        mock_repo = AsyncMock()
        mock_repo.withdraw.return_value = (
            _make_account(95000),
            _make_ledger_entry(2, -5000, 95000, "WITHDRAW"),
        )
        svc = AccountApplicationService(repo=mock_repo)
        db = AsyncMock()

        result = await svc.withdraw(db, ADDR, 5000)

        assert isinstance(result, WithdrawResponse)
        assert result.withdrawn_cents == 5000
        assert result.available_balance_cents == 95000
        db.commit.assert_awaited_once()

    async def test_insufficient_balance_propagates(self) -> None:
        mock_repo = AsyncMock()
        mock_repo.withdraw.side_effect = InsufficientBalanceError(5000, 100)
        svc = AccountApplicationService(repo=mock_repo)
        db = AsyncMock()

        with pytest.raises(InsufficientBalanceError):
            await svc.withdraw(db, ADDR, 5000)
        db.rollback.assert_awaited_once()


class TestListLedger:
    async def test_has_more_and_cursor(self) -> None:
        mock_repo = AsyncMock()
        mock_repo.list_ledger_entries.return_value = [
            _make_ledger_entry(i) for i in (5, 4, 3)
        ]
        svc = AccountApplicationService(repo=mock_repo)

        result = await svc.list_ledger(MagicMock(), ADDR, None, 2, None)

        assert isinstance(result, LedgerResponse)
        assert [i.id for i in result.items] == [5, 4]
        assert result.has_more is True
        assert cursor_decode(result.next_cursor) == 4
        # limit + 1 fetched to detect has_more
        assert mock_repo.list_ledger_entries.call_args.args[1:] == (ADDR, None, 3, None)

    async def test_last_page(self) -> None:
        mock_repo = AsyncMock()
        mock_repo.list_ledger_entries.return_value = [_make_ledger_entry(1)]
        svc = AccountApplicationService(repo=mock_repo)

        result = await svc.list_ledger(MagicMock(), ADDR, cursor_encode(2), 2, "DEPOSIT")

        assert result.has_more is False
        assert result.next_cursor is None
        assert mock_repo.list_ledger_entries.call_args.args[2] == 2

