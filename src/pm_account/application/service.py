"""AccountApplicationService: cash movements for wallet addresses.

Deposit and withdraw commit on success and roll back on any error. Market
modules move money through the repository debit/credit calls inside their own
transactions, so this service only owns the wallet-facing operations.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_account.application.schemas import (
    BalanceResponse,
    DepositResponse,
    LedgerEntryItem,
    LedgerResponse,
    WithdrawResponse,
)
from src.pm_account.domain.repository import AccountRepositoryProtocol
from src.pm_account.infrastructure.persistence import AccountRepository
from src.pm_common.cents import validate_amount
from src.pm_common.pagination import cursor_decode, split_page

logger = logging.getLogger(__name__)


class AccountApplicationService:
    def __init__(self, repo: AccountRepositoryProtocol | None = None) -> None:
        self._repo: AccountRepositoryProtocol = repo or AccountRepository()

    async def get_balance(self, db: AsyncSession, address: str) -> BalanceResponse:
        # A wallet that never deposited simply has nothing yet
        account = await self._repo.get_account(db, address)
        available = account.available_balance if account is not None else 0
        return BalanceResponse.from_cents(address=address, available=available)

    async def deposit(
        self, db: AsyncSession, address: str, amount_cents: int
    ) -> DepositResponse:
        validate_amount(amount_cents)
        try:
            account, entry = await self._repo.deposit(db, address, amount_cents)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Deposit %d cents to %s", amount_cents, address)
        return DepositResponse.from_result(
            available=account.available_balance,
            amount=amount_cents,
            entry_id=entry.id,
        )

    async def withdraw(
        self, db: AsyncSession, address: str, amount_cents: int
    ) -> WithdrawResponse:
        validate_amount(amount_cents)
        try:
            account, entry = await self._repo.withdraw(db, address, amount_cents)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Withdraw %d cents from %s", amount_cents, address)
        return WithdrawResponse.from_result(
            available=account.available_balance,
            amount=amount_cents,
            entry_id=entry.id,
        )

    async def list_ledger(
        self,
        db: AsyncSession,
        address: str,
        cursor: str | None,
        limit: int,
        entry_type: str | None,
        market_id: int | None = None,
    ) -> LedgerResponse:
        entries = await self._repo.list_ledger_entries(
            db, address, cursor_decode(cursor), limit + 1, entry_type, market_id=market_id
        )
        page, next_cursor, has_more = split_page(entries, limit, lambda e: e.id)
        return LedgerResponse(
            items=[LedgerEntryItem.from_domain(e) for e in page],
            next_cursor=next_cursor,
            has_more=has_more,
        )
