# src/pm_admin/application/service.py
"""Admin application service: resolution, cancellation, fees, stats, audit.

Every entry point re-checks the caller's admin capability, so the service
is safe to call from places other than the admin router.
"""
import logging
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_clearing.domain.global_invariants import verify_global_invariants
from src.pm_clearing.domain.invariants import check_market_invariants
from src.pm_clearing.domain.payout import (
    MAX_CREATOR_FEE_PCT,
    MAX_PLATFORM_FEE_PCT,
    FeeSchedule,
    validate_fee_pct,
)
from src.pm_common.enums import Side
from src.pm_common.errors import InvalidAmountError, UnauthorizedError
from src.pm_common.platform_config import PlatformConfig, PlatformConfigRepository
from src.pm_gateway.auth.dependencies import Caller
from src.pm_market.application.schemas import MarketDetail
from src.pm_market.application.service import MarketApplicationService
from src.pm_market.domain.repository import MarketRepositoryProtocol
from src.pm_market.infrastructure.persistence import MarketRepository

logger = logging.getLogger(__name__)

_AUDIT_PAGE = 200

_STATS_SQL = text("""
    SELECT
        COUNT(*) AS total_markets,
        COUNT(*) FILTER (WHERE status = 'ACTIVE') AS active_markets,
        COUNT(*) FILTER (WHERE status = 'RESOLVED') AS resolved_markets,
        COUNT(*) FILTER (WHERE status = 'CANCELLED') AS cancelled_markets,
        COALESCE(SUM(total_yes_pool + total_no_pool), 0) AS total_volume,
        COALESCE(SUM(creator_fee), 0) AS total_creator_fees,
        COALESCE(SUM(platform_fee), 0) AS total_platform_fees,
        COALESCE(SUM(paid_out), 0) AS total_paid_out
    FROM markets
""")
_PARTICIPANTS_SQL = text(
    "SELECT COUNT(DISTINCT user_address) FROM participations"
)


def _config_to_dict(config: PlatformConfig) -> dict[str, Any]:
    return {
        "creator_fee_pct": config.creator_fee_pct,
        "platform_fee_pct": config.platform_fee_pct,
        "market_creation_fee_cents": config.market_creation_fee,
        "username_change_fee_cents": config.username_change_fee,
        "updated_by": config.updated_by,
        "updated_at": config.updated_at.isoformat() if config.updated_at else None,
    }


def _require_admin(caller: Caller) -> None:
    if not caller.is_admin:
        raise UnauthorizedError("Admin capability required")


def _validate_fee_amount(amount: int) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
        raise InvalidAmountError(amount)


class AdminService:
    def __init__(
        self,
        market_service: MarketApplicationService | None = None,
        market_repo: MarketRepositoryProtocol | None = None,
        config_repo: PlatformConfigRepository | None = None,
    ) -> None:
        self._market_service = market_service or MarketApplicationService()
        self._markets: MarketRepositoryProtocol = market_repo or MarketRepository()
        self._config = config_repo or PlatformConfigRepository()

    # ------------------------------------------------------------------
    # Market lifecycle
    # ------------------------------------------------------------------

    async def resolve_market(
        self, db: AsyncSession, caller: Caller, market_id: int, outcome: Side
    ) -> MarketDetail:
        _require_admin(caller)
        return await self._market_service.resolve_market(
            db, market_id, outcome, caller.address
        )

    async def cancel_market(
        self, db: AsyncSession, caller: Caller, market_id: int
    ) -> MarketDetail:
        _require_admin(caller)
        return await self._market_service.cancel_market(db, market_id, caller.address)

    # ------------------------------------------------------------------
    # Fee configuration
    # ------------------------------------------------------------------

    async def get_fees(self, db: AsyncSession) -> dict[str, Any]:
        return _config_to_dict(await self._config.get_config(db))

    async def update_creator_fee_pct(
        self, db: AsyncSession, caller: Caller, pct: int
    ) -> dict[str, Any]:
        _require_admin(caller)
        validate_fee_pct("creator_fee_pct", pct, MAX_CREATOR_FEE_PCT)
        return await self._update(db, caller, "creator_fee_pct", pct)

    async def update_platform_fee_pct(
        self, db: AsyncSession, caller: Caller, pct: int
    ) -> dict[str, Any]:
        _require_admin(caller)
        validate_fee_pct("platform_fee_pct", pct, MAX_PLATFORM_FEE_PCT)
        return await self._update(db, caller, "platform_fee_pct", pct)

    async def update_market_creation_fee(
        self, db: AsyncSession, caller: Caller, amount: int
    ) -> dict[str, Any]:
        _require_admin(caller)
        _validate_fee_amount(amount)
        return await self._update(db, caller, "market_creation_fee", amount)

    async def update_username_change_fee(
        self, db: AsyncSession, caller: Caller, amount: int
    ) -> dict[str, Any]:
        _require_admin(caller)
        _validate_fee_amount(amount)
        return await self._update(db, caller, "username_change_fee", amount)

    async def _update(
        self, db: AsyncSession, caller: Caller, field: str, value: int
    ) -> dict[str, Any]:
        try:
            current = await self._config.get_config(db)
            if field in ("creator_fee_pct", "platform_fee_pct"):
                # Combined bound: raises InvalidFeePercentageError, never clamps
                FeeSchedule(
                    value if field == "creator_fee_pct" else current.creator_fee_pct,
                    value if field == "platform_fee_pct" else current.platform_fee_pct,
                )
            updated = await self._config.update_config(
                db, updated_by=caller.address, **{field: value}
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info(
            "Fee config %s: %d -> %d by %s", field, getattr(current, field), value, caller.address
        )
        return _config_to_dict(updated)

    # ------------------------------------------------------------------
    # Stats and audit
    # ------------------------------------------------------------------

    async def get_platform_stats(self, db: AsyncSession) -> dict[str, Any]:
        row = (await db.execute(_STATS_SQL)).fetchone()
        participants = (await db.execute(_PARTICIPANTS_SQL)).scalar_one()
        return {
            "total_markets": row.total_markets if row else 0,
            "active_markets": row.active_markets if row else 0,
            "resolved_markets": row.resolved_markets if row else 0,
            "cancelled_markets": row.cancelled_markets if row else 0,
            "total_volume_cents": int(row.total_volume) if row else 0,
            "total_creator_fees_cents": int(row.total_creator_fees) if row else 0,
            "total_platform_fees_cents": int(row.total_platform_fees) if row else 0,
            "total_paid_out_cents": int(row.total_paid_out) if row else 0,
            "unique_participants": int(participants),
        }

    async def verify_all_invariants(
        self, db: AsyncSession, caller: Caller
    ) -> dict[str, object]:
        """Run per-market conservation checks over every market, then the global check."""
        _require_admin(caller)
        violations: list[str] = []
        checked = 0
        cursor_id: int | None = None
        while True:
            markets = await self._markets.list_markets(
                db, None, None, None, cursor_id, _AUDIT_PAGE
            )
            for market in markets:
                participations = await self._markets.list_participations(db, market.id)
                violations.extend(check_market_invariants(market, participations))
                checked += 1
            if len(markets) < _AUDIT_PAGE:
                break
            cursor_id = markets[-1].id
        violations.extend(await verify_global_invariants(db))
        return {"ok": len(violations) == 0, "markets_checked": checked, "violations": violations}
