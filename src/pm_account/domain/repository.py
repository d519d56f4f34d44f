"""Repository Protocol the application service depends on.

Unit tests inject a mock (or the in-memory fake) that conforms to this Protocol.
Infrastructure layer provides the real implementation.
"""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_account.domain.models import Account, LedgerEntry


class AccountRepositoryProtocol(Protocol):
    async def get_account(
        self, db: AsyncSession, address: str
    ) -> Account | None: ...

    async def deposit(
        self, db: AsyncSession, address: str, amount: int
    ) -> tuple[Account, LedgerEntry]: ...

    async def withdraw(
        self, db: AsyncSession, address: str, amount: int
    ) -> tuple[Account, LedgerEntry]: ...

    async def debit(
        self,
        db: AsyncSession,
        address: str,
        amount: int,
        entry_type: str,
        ref_type: str,
        ref_id: str,
        description: str,
    ) -> tuple[Account, LedgerEntry]: ...

    async def credit(
        self,
        db: AsyncSession,
        address: str,
        amount: int,
        entry_type: str,
        ref_type: str,
        ref_id: str,
        description: str,
    ) -> tuple[Account, LedgerEntry]: ...

    async def list_ledger_entries(
        self,
        db: AsyncSession,
        address: str,
        cursor_id: int | None,
        limit: int,
        entry_type: str | None,
        market_id: int | None = None,
    ) -> list[LedgerEntry]: ...
