"""AccountRepository: concrete implementation of AccountRepositoryProtocol.

All balance-mutating operations use atomic PostgreSQL UPDATE ... RETURNING.
A result of 0 rows means a business constraint was violated (insufficient
funds, or no active account to receive a transfer).

Transaction ownership: The CALLER (application service) is responsible for
committing or rolling back. Every balance change writes exactly one
ledger_entries row in the same transaction.
"""

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_account.domain.models import Account, LedgerEntry
from src.pm_common.enums import LedgerEntryType
from src.pm_common.errors import (
    InsufficientBalanceError,
    InternalError,
    TransferFailedError,
)

_ACCOUNT_COLUMNS = "id, address, available_balance, is_active, version, created_at, updated_at"

# ---------------------------------------------------------------------------
# SQL: accounts mutations
# ---------------------------------------------------------------------------

# Deposits open the account on first use.
_DEPOSIT_SQL = text(f"""
    INSERT INTO accounts (address, available_balance)
    VALUES (:address, :amount)
    ON CONFLICT (address) DO UPDATE
        SET available_balance = accounts.available_balance + EXCLUDED.available_balance,
            version = accounts.version + 1,
            updated_at = NOW()
    RETURNING {_ACCOUNT_COLUMNS}
""")

_DEBIT_SQL = text(f"""
    UPDATE accounts
    SET available_balance = available_balance - :amount,
        version = version + 1,
        updated_at = NOW()
    WHERE address = :address AND is_active AND available_balance >= :amount
    RETURNING {_ACCOUNT_COLUMNS}
""")

_CREDIT_SQL = text(f"""
    UPDATE accounts
    SET available_balance = available_balance + :amount,
        version = version + 1,
        updated_at = NOW()
    WHERE address = :address AND is_active
    RETURNING {_ACCOUNT_COLUMNS}
""")

_INSERT_LEDGER_SQL = text("""
    INSERT INTO ledger_entries
        (address, entry_type, amount, balance_after,
         reference_type, reference_id, description)
    VALUES
        (:address, :entry_type, :amount, :balance_after,
         :reference_type, :reference_id, :description)
    RETURNING id, address, entry_type, amount, balance_after,
              reference_type, reference_id, description, created_at
""")

_LIST_LEDGER_SQL = text("""
    SELECT id, address, entry_type, amount, balance_after,
           reference_type, reference_id, description, created_at
    FROM ledger_entries
    WHERE address = :address
      AND (CAST(:cursor_id AS BIGINT) IS NULL OR id < CAST(:cursor_id AS BIGINT))
      AND (CAST(:entry_type AS TEXT) IS NULL OR entry_type = CAST(:entry_type AS TEXT))
      AND (CAST(:market_ref AS TEXT) IS NULL
           OR (reference_type = 'MARKET' AND reference_id = CAST(:market_ref AS TEXT)))
    ORDER BY id DESC
    LIMIT :limit
""")

_GET_ACCOUNT_SQL = text(f"""
    SELECT {_ACCOUNT_COLUMNS}
    FROM accounts
    WHERE address = :address
""")


def _row_to_account(row: object) -> Account:
    return Account(
        id=str(row.id),  # type: ignore[attr-defined]
        address=row.address,  # type: ignore[attr-defined]
        available_balance=row.available_balance,  # type: ignore[attr-defined]
        is_active=row.is_active,  # type: ignore[attr-defined]
        version=row.version,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _row_to_ledger(row: object) -> LedgerEntry:
    return LedgerEntry(
        id=row.id,  # type: ignore[attr-defined]
        address=row.address,  # type: ignore[attr-defined]
        entry_type=row.entry_type,  # type: ignore[attr-defined]
        amount=row.amount,  # type: ignore[attr-defined]
        balance_after=row.balance_after,  # type: ignore[attr-defined]
        reference_type=row.reference_type,  # type: ignore[attr-defined]
        reference_id=row.reference_id,  # type: ignore[attr-defined]
        description=row.description,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


class AccountRepository:
    """Each balance change is one conditional UPDATE plus its ledger row."""

    async def get_account(self, db: AsyncSession, address: str) -> Account | None:
        result = await db.execute(_GET_ACCOUNT_SQL, {"address": address})
        row = result.fetchone()
        return _row_to_account(row) if row else None

    async def deposit(
        self, db: AsyncSession, address: str, amount: int
    ) -> tuple[Account, LedgerEntry]:
        result = await db.execute(_DEPOSIT_SQL, {"address": address, "amount": amount})
        row = result.fetchone()
        if row is None:
            raise InternalError(f"Deposit upsert returned no rows for {address}")
        account = _row_to_account(row)
        entry = await self._write_ledger(
            db, account, LedgerEntryType.DEPOSIT, amount, "DEPOSIT", None, "Deposit"
        )
        return account, entry

    async def withdraw(
        self, db: AsyncSession, address: str, amount: int
    ) -> tuple[Account, LedgerEntry]:
        return await self.debit(
            db, address, amount, LedgerEntryType.WITHDRAW, "WITHDRAW", "", "Withdrawal"
        )

    async def debit(
        self,
        db: AsyncSession,
        address: str,
        amount: int,
        entry_type: str,
        ref_type: str,
        ref_id: str,
        description: str,
    ) -> tuple[Account, LedgerEntry]:
        result = await db.execute(_DEBIT_SQL, {"address": address, "amount": amount})
        row = result.fetchone()
        if row is None:
            acc_result = await db.execute(_GET_ACCOUNT_SQL, {"address": address})
            acc_row = acc_result.fetchone()
            available = acc_row.available_balance if acc_row else 0
            raise InsufficientBalanceError(amount, available)
        account = _row_to_account(row)
        entry = await self._write_ledger(
            db, account, entry_type, -amount, ref_type, ref_id or None, description
        )
        return account, entry

    async def credit(
        self,
        db: AsyncSession,
        address: str,
        amount: int,
        entry_type: str,
        ref_type: str,
        ref_id: str,
        description: str,
    ) -> tuple[Account, LedgerEntry]:
        """Move funds into an account. Any failure surfaces as TransferFailedError."""
        try:
            result = await db.execute(_CREDIT_SQL, {"address": address, "amount": amount})
        except DBAPIError as e:
            raise TransferFailedError(address, amount) from e
        row = result.fetchone()
        if row is None:
            raise TransferFailedError(address, amount)
        account = _row_to_account(row)
        entry = await self._write_ledger(
            db, account, entry_type, amount, ref_type, ref_id, description
        )
        return account, entry

    async def list_ledger_entries(
        self,
        db: AsyncSession,
        address: str,
        cursor_id: int | None,
        limit: int,
        entry_type: str | None,
        market_id: int | None = None,
    ) -> list[LedgerEntry]:
        result = await db.execute(
            _LIST_LEDGER_SQL,
            {
                "address": address,
                "cursor_id": cursor_id,
                "entry_type": entry_type,
                "market_ref": str(market_id) if market_id is not None else None,
                "limit": limit,
            },
        )
        rows = result.fetchall()
        return [_row_to_ledger(row) for row in rows]

    async def _write_ledger(
        self,
        db: AsyncSession,
        account: Account,
        entry_type: str,
        signed_amount: int,
        ref_type: str,
        ref_id: str | None,
        description: str,
    ) -> LedgerEntry:
        ledger_result = await db.execute(
            _INSERT_LEDGER_SQL,
            {
                "address": account.address,
                "entry_type": LedgerEntryType(entry_type).value,
                "amount": signed_amount,
                "balance_after": account.available_balance,
                "reference_type": ref_type,
                "reference_id": ref_id,
                "description": description,
            },
        )
        ledger_row = ledger_result.fetchone()
        if ledger_row is None:
            raise InternalError("Ledger insert returned no rows")
        return _row_to_ledger(ledger_row)
