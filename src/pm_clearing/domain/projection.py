"""Payout preview: what a stake placed now would pay if its side won.

Simulates the stake on the current pools, then runs the same split_pools /
payout_for_stake pair the claim path uses. Callers pass the fee schedule read
from platform_config, the same row resolution snapshots from.
"""

from dataclasses import dataclass

from src.pm_clearing.domain.payout import FeeSchedule, PoolSplit, payout_for_stake, split_pools
from src.pm_common.cents import return_bps, validate_amount
from src.pm_common.enums import Side
from src.pm_common.errors import InvalidAmountError


@dataclass(frozen=True)
class PayoutProjection:
    side: Side
    amount: int
    stake_after: int          # caller's total stake on `side` including `amount`
    yes_pool_after: int
    no_pool_after: int
    split: PoolSplit
    payout: int
    profit: int
    return_bps: int


def project_payout(
    yes_pool: int,
    no_pool: int,
    side: Side,
    amount: int,
    fees: FeeSchedule,
    existing_stake: int = 0,
) -> PayoutProjection:
    validate_amount(amount)
    if existing_stake < 0:
        raise InvalidAmountError(existing_stake)

    yes_after = yes_pool + amount if side is Side.YES else yes_pool
    no_after = no_pool + amount if side is Side.NO else no_pool
    winning, losing = (yes_after, no_after) if side is Side.YES else (no_after, yes_after)

    split = split_pools(winning, losing, fees)
    stake_after = existing_stake + amount
    payout = payout_for_stake(split, stake_after)
    return PayoutProjection(
        side=side,
        amount=amount,
        stake_after=stake_after,
        yes_pool_after=yes_after,
        no_pool_after=no_after,
        split=split,
        payout=payout,
        profit=payout - stake_after,
        return_bps=return_bps(stake_after, payout),
    )
