"""Pydantic schemas for the pm_account API.

Every money field is integer cents with a ``*_display`` twin for the UI.
Ledger amounts are signed: positive credits the wallet, negative debits it.
"""

from pydantic import BaseModel, Field

from src.pm_account.domain.models import LedgerEntry
from src.pm_common.cents import cents_to_display


class DepositRequest(BaseModel):
    amount_cents: int = Field(..., gt=0, description="Amount to deposit in cents")


class WithdrawRequest(BaseModel):
    amount_cents: int = Field(..., gt=0, description="Amount to withdraw in cents")


class BalanceResponse(BaseModel):
    address: str
    available_balance_cents: int
    available_balance_display: str

    @classmethod
    def from_cents(cls, address: str, available: int) -> "BalanceResponse":
        return cls(
            address=address,
            available_balance_cents=available,
            available_balance_display=cents_to_display(available),
        )


class _MovementResponse(BaseModel):
    available_balance_cents: int
    available_balance_display: str
    ledger_entry_id: int


class DepositResponse(_MovementResponse):
    deposited_cents: int
    deposited_display: str

    @classmethod
    def from_result(cls, available: int, amount: int, entry_id: int) -> "DepositResponse":
        return cls(
            available_balance_cents=available,
            available_balance_display=cents_to_display(available),
            ledger_entry_id=entry_id,
            deposited_cents=amount,
            deposited_display=cents_to_display(amount),
        )


class WithdrawResponse(_MovementResponse):
    withdrawn_cents: int
    withdrawn_display: str

    @classmethod
    def from_result(cls, available: int, amount: int, entry_id: int) -> "WithdrawResponse":
        return cls(
            available_balance_cents=available,
            available_balance_display=cents_to_display(available),
            ledger_entry_id=entry_id,
            withdrawn_cents=amount,
            withdrawn_display=cents_to_display(amount),
        )


class LedgerEntryItem(BaseModel):
    id: int
    entry_type: str
    amount_cents: int
    amount_display: str
    balance_after_cents: int
    market_id: int | None
    description: str | None
    created_at: str | None

    @classmethod
    def from_domain(cls, e: LedgerEntry) -> "LedgerEntryItem":
        return cls(
            id=e.id,
            entry_type=e.entry_type,
            amount_cents=e.amount,
            amount_display=cents_to_display(e.amount),
            balance_after_cents=e.balance_after,
            market_id=e.market_id,
            description=e.description,
            created_at=e.created_at.isoformat() if e.created_at else None,
        )


class LedgerResponse(BaseModel):
    items: list[LedgerEntryItem]
    next_cursor: str | None
    has_more: bool
