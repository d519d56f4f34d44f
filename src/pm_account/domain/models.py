"""Domain models for pm_account: cash accounts keyed by address, and their ledger."""

from dataclasses import dataclass
from datetime import datetime

# reference_type of ledger rows that belong to a market; reference_id is the market id
MARKET_REFERENCE = "MARKET"


@dataclass
class Account:
    id: str
    address: str                # wallet address (lowercase) or a system account name
    available_balance: int      # cents
    is_active: bool
    version: int
    created_at: datetime
    updated_at: datetime


@dataclass
class LedgerEntry:
    """One balance movement. Rows are append-only; amount is signed."""

    id: int
    address: str
    entry_type: str                  # LedgerEntryType value
    amount: int                      # cents, positive credits the wallet
    balance_after: int               # available_balance right after this movement
    reference_type: str | None = None
    reference_id: str | None = None
    description: str | None = None
    created_at: datetime | None = None

    @property
    def market_id(self) -> int | None:
        if self.reference_type != MARKET_REFERENCE or self.reference_id is None:
            return None
        return int(self.reference_id)
