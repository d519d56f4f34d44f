"""Per-market conservation checks.

Returns violation strings rather than raising, so an audit can report every
broken market in one pass. Each violation is also logged at ERROR.

  pools:     sum(yes_shares) == total_yes_pool and sum(no_shares) == total_no_pool
  escrow:    0 <= paid_out <= total_yes_pool + total_no_pool
  paid_out:  equals what the ledger says left escrow for this market
  bound:     sum of owed winnings <= total_winner_pool
  snapshot:  stored creator/platform fee equal a recomputation from the snapshot
"""

import logging

from src.pm_clearing.domain.settlement import calculate_user_winnings, market_split
from src.pm_common.enums import MarketStatus
from src.pm_market.domain.models import Market, Participation

logger = logging.getLogger(__name__)


def check_market_invariants(
    market: Market, participations: list[Participation]
) -> list[str]:
    violations: list[str] = []
    mid = market.id

    yes_sum = sum(p.yes_shares for p in participations)
    no_sum = sum(p.no_shares for p in participations)
    if yes_sum != market.total_yes_pool:
        violations.append(
            f"market {mid}: sum(yes_shares)={yes_sum} != total_yes_pool={market.total_yes_pool}"
        )
    if no_sum != market.total_no_pool:
        violations.append(
            f"market {mid}: sum(no_shares)={no_sum} != total_no_pool={market.total_no_pool}"
        )

    if not 0 <= market.paid_out <= market.total_pool:
        violations.append(
            f"market {mid}: paid_out={market.paid_out} outside [0, {market.total_pool}]"
        )

    claimed = sum(p.claimed_amount for p in participations if p.has_claimed)
    if market.status == MarketStatus.ACTIVE:
        expected_paid = 0
    elif market.status == MarketStatus.CANCELLED:
        expected_paid = claimed
    else:
        expected_paid = (
            claimed
            + market.platform_fee
            + (market.creator_fee if market.creator_fee_claimed else 0)
        )
    if market.paid_out != expected_paid:
        violations.append(
            f"market {mid}: paid_out={market.paid_out} != recorded outflows={expected_paid}"
        )

    if market.status == MarketStatus.RESOLVED:
        split = market_split(market)
        if (split.creator_fee, split.platform_fee) != (market.creator_fee, market.platform_fee):
            violations.append(
                f"market {mid}: stored fees ({market.creator_fee}, {market.platform_fee}) "
                f"!= snapshot recomputation ({split.creator_fee}, {split.platform_fee})"
            )
        owed = sum(calculate_user_winnings(market, p) for p in participations)
        if owed > split.total_winner_pool:
            violations.append(
                f"market {mid}: owed winnings={owed} > total_winner_pool={split.total_winner_pool}"
            )

    for v in violations:
        logger.error("Invariant violated: %s", v)
    return violations
