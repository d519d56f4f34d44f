"""Pool split and proportional payout: the one copy of the settlement formula.

Both the authoritative claim path (settlement.py) and the payout preview
(projection.py) call into this module. Any change to rounding or fee order
must happen here and nowhere else.

Given a resolved market with ``winning_pool`` W and ``losing_pool`` L:

    creator_fee       = L * creator_fee_pct  // 100
    platform_fee      = L * platform_fee_pct // 100
    redistributed     = L - creator_fee - platform_fee
    total_winner_pool = W + redistributed

    payout(stake)     = total_winner_pool * stake // W      (0 when W == 0)

Fees are taken from the losing pool only. With L == 0 nothing is taxed and
every winner gets exactly their principal back.

Floor division leaves at most one cent per winner unallocated ("dust"); dust
stays in the market escrow and is never redistributed.
"""

from dataclasses import dataclass

from src.pm_common.cents import percent_of
from src.pm_common.errors import InvalidAmountError, InvalidFeePercentageError

MAX_TOTAL_FEE_PCT = 100
MAX_CREATOR_FEE_PCT = 50
MAX_PLATFORM_FEE_PCT = 50


def validate_fee_pct(name: str, pct: int, upper: int) -> None:
    if isinstance(pct, bool) or not isinstance(pct, int) or not (0 <= pct <= upper):
        raise InvalidFeePercentageError(f"{name}={pct!r} must be an integer in [0, {upper}]")


@dataclass(frozen=True)
class FeeSchedule:
    """Fee percentages applied to the losing pool. Validated on construction."""

    creator_fee_pct: int
    platform_fee_pct: int

    def __post_init__(self) -> None:
        validate_fee_pct("creator_fee_pct", self.creator_fee_pct, MAX_TOTAL_FEE_PCT)
        validate_fee_pct("platform_fee_pct", self.platform_fee_pct, MAX_TOTAL_FEE_PCT)
        total = self.creator_fee_pct + self.platform_fee_pct
        if total > MAX_TOTAL_FEE_PCT:
            raise InvalidFeePercentageError(
                f"creator_fee_pct + platform_fee_pct = {total} exceeds {MAX_TOTAL_FEE_PCT}"
            )


@dataclass(frozen=True)
class PoolSplit:
    winning_pool: int
    losing_pool: int
    creator_fee: int
    platform_fee: int
    redistributed: int
    total_winner_pool: int

    @property
    def total_pool(self) -> int:
        return self.winning_pool + self.losing_pool


def split_pools(winning_pool: int, losing_pool: int, fees: FeeSchedule) -> PoolSplit:
    """Carve creator and platform fees out of the losing pool."""
    if winning_pool < 0 or losing_pool < 0:
        raise InvalidAmountError(min(winning_pool, losing_pool))

    if losing_pool == 0:
        return PoolSplit(
            winning_pool=winning_pool,
            losing_pool=0,
            creator_fee=0,
            platform_fee=0,
            redistributed=0,
            total_winner_pool=winning_pool,
        )

    creator_fee = percent_of(losing_pool, fees.creator_fee_pct)
    platform_fee = percent_of(losing_pool, fees.platform_fee_pct)
    redistributed = losing_pool - creator_fee - platform_fee
    return PoolSplit(
        winning_pool=winning_pool,
        losing_pool=losing_pool,
        creator_fee=creator_fee,
        platform_fee=platform_fee,
        redistributed=redistributed,
        total_winner_pool=winning_pool + redistributed,
    )


def payout_for_stake(split: PoolSplit, winning_stake: int) -> int:
    """Proportional share of total_winner_pool for a stake on the winning side."""
    if winning_stake < 0:
        raise InvalidAmountError(winning_stake)
    if split.winning_pool == 0 or winning_stake == 0:
        return 0
    return split.total_winner_pool * winning_stake // split.winning_pool
