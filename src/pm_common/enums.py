"""Global enums; values match the DB CHECK constraints."""

from enum import Enum


class MarketStatus(str, Enum):
    ACTIVE = "ACTIVE"
    RESOLVED = "RESOLVED"
    CANCELLED = "CANCELLED"


class Side(str, Enum):
    YES = "YES"
    NO = "NO"

    @property
    def opposite(self) -> "Side":
        return Side.NO if self is Side.YES else Side.YES


class LedgerEntryType(str, Enum):
    # Deposit/Withdraw
    DEPOSIT = "DEPOSIT"
    WITHDRAW = "WITHDRAW"
    # Stake escrow (user side)
    STAKE = "STAKE"
    # Settlement payouts (user side)
    WINNINGS_PAYOUT = "WINNINGS_PAYOUT"
    CREATOR_FEE_PAYOUT = "CREATOR_FEE_PAYOUT"
    REFUND = "REFUND"
    # Fees (user + PLATFORM_FEE paired)
    MARKET_CREATION_FEE = "MARKET_CREATION_FEE"
    USERNAME_CHANGE_FEE = "USERNAME_CHANGE_FEE"
    FEE_REVENUE = "FEE_REVENUE"
    PLATFORM_FEE_REVENUE = "PLATFORM_FEE_REVENUE"


class MarketEventType(str, Enum):
    MARKET_CREATED = "MarketCreated"
    STAKE_RECORDED = "StakeRecorded"
    MARKET_RESOLVED = "MarketResolved"
    MARKET_CANCELLED = "MarketCancelled"
    WINNINGS_CLAIMED = "WinningsClaimed"
    CREATOR_FEE_CLAIMED = "CreatorFeeClaimed"
    REFUND_CLAIMED = "RefundClaimed"
