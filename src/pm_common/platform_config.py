"""Platform-wide fee configuration, read from the single platform_config row.

One row in ``platform_config`` (id = 1), seeded by migration 006 from
settings. The settlement engine, the payout preview, market creation and the
username registry all read their fees through this repository, so an admin
change is visible to every path at once.
"""

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_common.errors import InternalError

_COLUMNS = """
    creator_fee_pct, platform_fee_pct,
    market_creation_fee, username_change_fee,
    updated_by, updated_at
"""

_GET_CONFIG_SQL = text(f"SELECT {_COLUMNS} FROM platform_config WHERE id = 1")

_UPDATE_CONFIG_SQL = text(f"""
    UPDATE platform_config
    SET creator_fee_pct     = COALESCE(CAST(:creator_fee_pct AS INT), creator_fee_pct),
        platform_fee_pct    = COALESCE(CAST(:platform_fee_pct AS INT), platform_fee_pct),
        market_creation_fee = COALESCE(CAST(:market_creation_fee AS BIGINT), market_creation_fee),
        username_change_fee = COALESCE(CAST(:username_change_fee AS BIGINT), username_change_fee),
        updated_by = :updated_by,
        updated_at = NOW()
    WHERE id = 1
    RETURNING {_COLUMNS}
""")


@dataclass
class PlatformConfig:
    creator_fee_pct: int
    platform_fee_pct: int
    market_creation_fee: int     # cents
    username_change_fee: int     # cents
    updated_by: str | None = None
    updated_at: datetime | None = None


def _row_to_config(row: object) -> PlatformConfig:
    return PlatformConfig(
        creator_fee_pct=row.creator_fee_pct,  # type: ignore[attr-defined]
        platform_fee_pct=row.platform_fee_pct,  # type: ignore[attr-defined]
        market_creation_fee=row.market_creation_fee,  # type: ignore[attr-defined]
        username_change_fee=row.username_change_fee,  # type: ignore[attr-defined]
        updated_by=row.updated_by,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


class PlatformConfigRepository:
    async def get_config(self, db: AsyncSession) -> PlatformConfig:
        row = (await db.execute(_GET_CONFIG_SQL)).fetchone()
        if row is None:
            raise InternalError("platform_config row missing, run migrations")
        return _row_to_config(row)

    async def update_config(
        self,
        db: AsyncSession,
        updated_by: str,
        creator_fee_pct: int | None = None,
        platform_fee_pct: int | None = None,
        market_creation_fee: int | None = None,
        username_change_fee: int | None = None,
    ) -> PlatformConfig:
        """Overwrite only the fields that are not None. Validation is the caller's job."""
        row = (
            await db.execute(
                _UPDATE_CONFIG_SQL,
                {
                    "creator_fee_pct": creator_fee_pct,
                    "platform_fee_pct": platform_fee_pct,
                    "market_creation_fee": market_creation_fee,
                    "username_change_fee": username_change_fee,
                    "updated_by": updated_by,
                },
            )
        ).fetchone()
        if row is None:
            raise InternalError("platform_config row missing, run migrations")
        return _row_to_config(row)
