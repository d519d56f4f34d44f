"""Platform-wide money checks run by the admin audit.

Per-market arithmetic lives in invariants.py; these queries look across every
account and market at once.
"""
import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

# PLATFORM_FEE is an ordinary row here
_WALLETS_SQL = text("SELECT COALESCE(SUM(available_balance), 0) FROM accounts")
_ESCROW_SQL = text(
    "SELECT COALESCE(SUM(total_yes_pool + total_no_pool - paid_out), 0) FROM markets"
)
_EXTERNAL_FLOW_SQL = text("""
    SELECT COALESCE(SUM(amount), 0)
    FROM ledger_entries
    WHERE entry_type IN ('DEPOSIT', 'WITHDRAW')
""")
_LEDGER_NET_SQL = text("SELECT COALESCE(SUM(amount), 0) FROM ledger_entries")
_OVERDRAWN_MARKETS_SQL = text("""
    SELECT COUNT(*)
    FROM markets
    WHERE paid_out > total_yes_pool + total_no_pool
""")


def _flag(violations: list[str], msg: str) -> None:
    violations.append(msg)
    logger.error(msg)


async def _scalar(db: AsyncSession, stmt) -> int:  # type: ignore[no-untyped-def]
    return int((await db.execute(stmt)).scalar_one())


async def verify_global_invariants(db: AsyncSession) -> list[str]:
    """Return one string per platform-wide violation; empty when the books balance.

    Checks, in order:
      * wallet balances plus market escrow equal net external deposits
      * the signed ledger sums to the wallet balances
      * no market has paid out more than was staked into it
    """
    violations: list[str] = []
    wallets = await _scalar(db, _WALLETS_SQL)
    escrow = await _scalar(db, _ESCROW_SQL)
    external = await _scalar(db, _EXTERNAL_FLOW_SQL)
    ledger_net = await _scalar(db, _LEDGER_NET_SQL)
    overdrawn = await _scalar(db, _OVERDRAWN_MARKETS_SQL)

    if wallets + escrow != external:
        _flag(
            violations,
            f"global: wallets({wallets}) + escrow({escrow}) = {wallets + escrow} "
            f"!= net_deposits({external})",
        )
    if ledger_net != wallets:
        _flag(violations, f"global: ledger_net({ledger_net}) != wallets({wallets})")
    if overdrawn:
        _flag(violations, f"global: {overdrawn} market(s) paid out more than staked")
    return violations
