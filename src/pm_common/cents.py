"""Integer arithmetic utilities for cents-based accounting.

All stakes, pools, fees, and balances use int (cents). No float, no Decimal.
"""

from src.pm_common.errors import InvalidAmountError


def validate_amount(amount: int) -> None:
    """Reject zero and negative amounts (bools are not amounts either)."""
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidAmountError(amount)


def cents_to_display(cents: int) -> str:
    """Convert cents to display string: 6500 -> '$65.00', -1200 -> '-$12.00'."""
    if cents < 0:
        abs_cents = -cents
        return f"-${abs_cents // 100:,}.{abs_cents % 100:02d}"
    return f"${cents // 100:,}.{cents % 100:02d}"


def percent_of(amount: int, pct: int) -> int:
    """Floor of amount * pct / 100. Multiplication first, so no precision is lost early."""
    return amount * pct // 100


def return_bps(stake: int, payout: int) -> int:
    """Net return on stake in basis points, floored: 100 -> 127 gives 2700."""
    if stake <= 0:
        return 0
    return (payout - stake) * 10000 // stake
