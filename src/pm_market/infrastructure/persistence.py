"""MarketRepository: concrete implementation of MarketRepositoryProtocol.

All queries use raw text() SQL (no ORM).
asyncpg NULL parameter pattern: CAST(:param AS TYPE) IS NULL required for None values.

Writers to a single market serialize on its row lock (lock_market →
SELECT ... FOR UPDATE). Claim flags are flipped with a conditional UPDATE so
that two racing claims cannot both see has_claimed = FALSE.
"""

import json
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_common.enums import MarketEventType
from src.pm_common.errors import InternalError, MarketNotFoundError
from src.pm_market.domain.models import Market, MarketEvent, NewMarket, Participation

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

_MARKET_COLUMNS = """
    id, creator, question, description, category, image_url, source_url,
    end_time, status, outcome,
    total_yes_pool, total_no_pool,
    creator_fee_pct, platform_fee_pct, creator_fee, platform_fee,
    creator_fee_claimed, paid_out,
    resolved_at, resolved_by, cancelled_at,
    created_at, updated_at
"""

_PARTICIPATION_COLUMNS = """
    market_id, user_address, side, yes_shares, no_shares,
    has_claimed, claimed_amount, claimed_at, created_at, updated_at
"""

_EVENT_COLUMNS = "id, market_id, event_type, actor, side, amount, payload, created_at"

_INSERT_MARKET_SQL = text(f"""
    INSERT INTO markets
        (creator, question, description, category, image_url, source_url, end_time)
    VALUES
        (:creator, :question, :description, :category, :image_url, :source_url, :end_time)
    RETURNING {_MARKET_COLUMNS}
""")

_GET_MARKET_SQL = text(f"SELECT {_MARKET_COLUMNS} FROM markets WHERE id = :market_id")

_LOCK_MARKET_SQL = text(
    f"SELECT {_MARKET_COLUMNS} FROM markets WHERE id = :market_id FOR UPDATE"
)

_LIST_MARKETS_SQL = text(f"""
    SELECT {_MARKET_COLUMNS}
    FROM markets
    WHERE
        (CAST(:status AS TEXT) IS NULL OR status = CAST(:status AS TEXT))
        AND (CAST(:category AS TEXT) IS NULL OR category = CAST(:category AS TEXT))
        AND (CAST(:creator AS TEXT) IS NULL OR creator = CAST(:creator AS TEXT))
        AND (CAST(:cursor_id AS BIGINT) IS NULL OR id < CAST(:cursor_id AS BIGINT))
    ORDER BY id DESC
    LIMIT :limit
""")

_ADD_POOL_SQL = text(f"""
    UPDATE markets
    SET total_yes_pool = total_yes_pool + CASE WHEN CAST(:side AS TEXT) = 'YES' THEN CAST(:amount AS BIGINT) ELSE 0 END,
        total_no_pool  = total_no_pool  + CASE WHEN CAST(:side AS TEXT) = 'NO'  THEN CAST(:amount AS BIGINT) ELSE 0 END,
        updated_at = NOW()
    WHERE id = :market_id AND status = 'ACTIVE'
    RETURNING {_MARKET_COLUMNS}
""")

_UPSERT_PARTICIPATION_SQL = text(f"""
    INSERT INTO participations (market_id, user_address, side, yes_shares, no_shares)
    VALUES (
        :market_id, :address, :side,
        CASE WHEN CAST(:side AS TEXT) = 'YES' THEN CAST(:amount AS BIGINT) ELSE 0 END,
        CASE WHEN CAST(:side AS TEXT) = 'NO'  THEN CAST(:amount AS BIGINT) ELSE 0 END
    )
    ON CONFLICT (market_id, user_address) DO UPDATE
    SET side       = EXCLUDED.side,
        yes_shares = participations.yes_shares + EXCLUDED.yes_shares,
        no_shares  = participations.no_shares  + EXCLUDED.no_shares,
        updated_at = NOW()
    RETURNING {_PARTICIPATION_COLUMNS}
""")

_MARK_RESOLVED_SQL = text(f"""
    UPDATE markets
    SET status = 'RESOLVED',
        outcome = :outcome,
        resolved_by = :resolved_by,
        resolved_at = NOW(),
        creator_fee_pct = :creator_fee_pct,
        platform_fee_pct = :platform_fee_pct,
        creator_fee = :creator_fee,
        platform_fee = :platform_fee,
        updated_at = NOW()
    WHERE id = :market_id AND status = 'ACTIVE'
    RETURNING {_MARKET_COLUMNS}
""")

_MARK_CANCELLED_SQL = text(f"""
    UPDATE markets
    SET status = 'CANCELLED',
        cancelled_at = NOW(),
        updated_at = NOW()
    WHERE id = :market_id AND status = 'ACTIVE'
    RETURNING {_MARKET_COLUMNS}
""")

_ADD_PAID_OUT_SQL = text(f"""
    UPDATE markets
    SET paid_out = paid_out + :amount,
        updated_at = NOW()
    WHERE id = :market_id
      AND paid_out + :amount <= total_yes_pool + total_no_pool
    RETURNING {_MARKET_COLUMNS}
""")

_CLAIM_CREATOR_FEE_SQL = text(f"""
    UPDATE markets
    SET creator_fee_claimed = TRUE,
        updated_at = NOW()
    WHERE id = :market_id AND creator_fee_claimed = FALSE
    RETURNING {_MARKET_COLUMNS}
""")

_GET_PARTICIPATION_SQL = text(f"""
    SELECT {_PARTICIPATION_COLUMNS}
    FROM participations
    WHERE market_id = :market_id AND user_address = :address
""")

_LIST_PARTICIPATIONS_SQL = text(f"""
    SELECT {_PARTICIPATION_COLUMNS}
    FROM participations
    WHERE market_id = :market_id
    ORDER BY created_at, user_address
""")

_CLAIM_PARTICIPATION_SQL = text(f"""
    UPDATE participations
    SET has_claimed = TRUE,
        claimed_amount = :amount,
        claimed_at = NOW(),
        updated_at = NOW()
    WHERE market_id = :market_id
      AND user_address = :address
      AND has_claimed = FALSE
    RETURNING {_PARTICIPATION_COLUMNS}
""")

_INSERT_EVENT_SQL = text(f"""
    INSERT INTO market_events (market_id, event_type, actor, side, amount, payload)
    VALUES (:market_id, :event_type, :actor, :side, :amount, CAST(:payload AS JSONB))
    RETURNING {_EVENT_COLUMNS}
""")

_LIST_EVENTS_SQL = text(f"""
    SELECT {_EVENT_COLUMNS}
    FROM market_events
    WHERE market_id = :market_id
      AND (CAST(:cursor_id AS BIGINT) IS NULL OR id > CAST(:cursor_id AS BIGINT))
      AND (CAST(:event_type AS TEXT) IS NULL OR event_type = CAST(:event_type AS TEXT))
    ORDER BY id ASC
    LIMIT :limit
""")

# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _row_to_market(row: object) -> Market:
    return Market(
        id=row.id,  # type: ignore[attr-defined]
        creator=row.creator,  # type: ignore[attr-defined]
        question=row.question,  # type: ignore[attr-defined]
        description=row.description,  # type: ignore[attr-defined]
        category=row.category,  # type: ignore[attr-defined]
        image_url=row.image_url,  # type: ignore[attr-defined]
        source_url=row.source_url,  # type: ignore[attr-defined]
        end_time=row.end_time,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        outcome=row.outcome,  # type: ignore[attr-defined]
        total_yes_pool=row.total_yes_pool,  # type: ignore[attr-defined]
        total_no_pool=row.total_no_pool,  # type: ignore[attr-defined]
        creator_fee_pct=row.creator_fee_pct,  # type: ignore[attr-defined]
        platform_fee_pct=row.platform_fee_pct,  # type: ignore[attr-defined]
        creator_fee=row.creator_fee,  # type: ignore[attr-defined]
        platform_fee=row.platform_fee,  # type: ignore[attr-defined]
        creator_fee_claimed=row.creator_fee_claimed,  # type: ignore[attr-defined]
        paid_out=row.paid_out,  # type: ignore[attr-defined]
        resolved_at=row.resolved_at,  # type: ignore[attr-defined]
        resolved_by=row.resolved_by,  # type: ignore[attr-defined]
        cancelled_at=row.cancelled_at,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _row_to_participation(row: object) -> Participation:
    return Participation(
        market_id=row.market_id,  # type: ignore[attr-defined]
        user_address=row.user_address,  # type: ignore[attr-defined]
        side=row.side,  # type: ignore[attr-defined]
        yes_shares=row.yes_shares,  # type: ignore[attr-defined]
        no_shares=row.no_shares,  # type: ignore[attr-defined]
        has_claimed=row.has_claimed,  # type: ignore[attr-defined]
        claimed_amount=row.claimed_amount,  # type: ignore[attr-defined]
        claimed_at=row.claimed_at,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _row_to_event(row: object) -> MarketEvent:
    payload = row.payload  # type: ignore[attr-defined]
    # asyncpg hands JSONB back as text unless a codec is registered
    if isinstance(payload, str):
        payload = json.loads(payload)
    return MarketEvent(
        id=row.id,  # type: ignore[attr-defined]
        market_id=row.market_id,  # type: ignore[attr-defined]
        event_type=row.event_type,  # type: ignore[attr-defined]
        actor=row.actor,  # type: ignore[attr-defined]
        side=row.side,  # type: ignore[attr-defined]
        amount=row.amount,  # type: ignore[attr-defined]
        payload=payload or {},
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class MarketRepository:
    """Concrete repository. Transaction ownership stays with the caller."""

    async def create_market(self, db: AsyncSession, new: NewMarket) -> Market:
        result = await db.execute(
            _INSERT_MARKET_SQL,
            {
                "creator": new.creator,
                "question": new.question,
                "description": new.description,
                "category": new.category,
                "image_url": new.image_url,
                "source_url": new.source_url,
                "end_time": new.end_time,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Market insert returned no rows")
        return _row_to_market(row)

    async def get_market_by_id(
        self, db: AsyncSession, market_id: int
    ) -> Market | None:
        result = await db.execute(_GET_MARKET_SQL, {"market_id": market_id})
        row = result.fetchone()
        return _row_to_market(row) if row else None

    async def lock_market(self, db: AsyncSession, market_id: int) -> Market | None:
        """Read the market row and hold its lock until the transaction ends."""
        result = await db.execute(_LOCK_MARKET_SQL, {"market_id": market_id})
        row = result.fetchone()
        return _row_to_market(row) if row else None

    async def list_markets(
        self,
        db: AsyncSession,
        status: str | None,
        category: str | None,
        creator: str | None,
        cursor_id: int | None,
        limit: int,
    ) -> list[Market]:
        result = await db.execute(
            _LIST_MARKETS_SQL,
            {
                "status": status,
                "category": category,
                "creator": creator,
                "cursor_id": cursor_id,
                "limit": limit,
            },
        )
        return [_row_to_market(row) for row in result.fetchall()]

    async def add_stake(
        self,
        db: AsyncSession,
        market_id: int,
        address: str,
        side: str,
        amount: int,
    ) -> tuple[Market, Participation]:
        params = {"market_id": market_id, "address": address, "side": side, "amount": amount}
        market_row = (await db.execute(_ADD_POOL_SQL, params)).fetchone()
        if market_row is None:
            raise MarketNotFoundError(market_id)
        part_row = (await db.execute(_UPSERT_PARTICIPATION_SQL, params)).fetchone()
        if part_row is None:
            raise InternalError("Participation upsert returned no rows")
        return _row_to_market(market_row), _row_to_participation(part_row)

    async def mark_resolved(
        self,
        db: AsyncSession,
        market_id: int,
        outcome: str,
        resolved_by: str,
        creator_fee_pct: int,
        platform_fee_pct: int,
        creator_fee: int,
        platform_fee: int,
    ) -> Market:
        result = await db.execute(
            _MARK_RESOLVED_SQL,
            {
                "market_id": market_id,
                "outcome": outcome,
                "resolved_by": resolved_by,
                "creator_fee_pct": creator_fee_pct,
                "platform_fee_pct": platform_fee_pct,
                "creator_fee": creator_fee,
                "platform_fee": platform_fee,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError(f"Resolve of market {market_id} matched no ACTIVE row")
        return _row_to_market(row)

    async def mark_cancelled(self, db: AsyncSession, market_id: int) -> Market:
        row = (await db.execute(_MARK_CANCELLED_SQL, {"market_id": market_id})).fetchone()
        if row is None:
            raise InternalError(f"Cancel of market {market_id} matched no ACTIVE row")
        return _row_to_market(row)

    async def add_paid_out(
        self, db: AsyncSession, market_id: int, amount: int
    ) -> Market:
        """Record funds leaving escrow. Refuses to pay out more than was staked."""
        row = (
            await db.execute(_ADD_PAID_OUT_SQL, {"market_id": market_id, "amount": amount})
        ).fetchone()
        if row is None:
            raise InternalError(
                f"Payout of {amount} would exceed escrow of market {market_id}"
            )
        return _row_to_market(row)

    async def get_participation(
        self, db: AsyncSession, market_id: int, address: str
    ) -> Participation | None:
        result = await db.execute(
            _GET_PARTICIPATION_SQL, {"market_id": market_id, "address": address}
        )
        row = result.fetchone()
        return _row_to_participation(row) if row else None

    async def list_participations(
        self, db: AsyncSession, market_id: int
    ) -> list[Participation]:
        result = await db.execute(_LIST_PARTICIPATIONS_SQL, {"market_id": market_id})
        return [_row_to_participation(row) for row in result.fetchall()]

    async def mark_participation_claimed(
        self, db: AsyncSession, market_id: int, address: str, amount: int
    ) -> Participation | None:
        result = await db.execute(
            _CLAIM_PARTICIPATION_SQL,
            {"market_id": market_id, "address": address, "amount": amount},
        )
        row = result.fetchone()
        return _row_to_participation(row) if row else None

    async def mark_creator_fee_claimed(
        self, db: AsyncSession, market_id: int
    ) -> Market | None:
        row = (await db.execute(_CLAIM_CREATOR_FEE_SQL, {"market_id": market_id})).fetchone()
        return _row_to_market(row) if row else None

    async def append_event(
        self,
        db: AsyncSession,
        market_id: int,
        event_type: str,
        actor: str | None,
        side: str | None = None,
        amount: int | None = None,
        payload: dict[str, Any] | None = None,
    ) -> MarketEvent:
        result = await db.execute(
            _INSERT_EVENT_SQL,
            {
                "market_id": market_id,
                "event_type": MarketEventType(event_type).value,
                "actor": actor,
                "side": side,
                "amount": amount,
                "payload": json.dumps(payload or {}),
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Event insert returned no rows")
        return _row_to_event(row)

    async def list_events(
        self,
        db: AsyncSession,
        market_id: int,
        cursor_id: int | None,
        limit: int,
        event_type: str | None,
    ) -> list[MarketEvent]:
        result = await db.execute(
            _LIST_EVENTS_SQL,
            {
                "market_id": market_id,
                "cursor_id": cursor_id,
                "event_type": event_type,
                "limit": limit,
            },
        )
        return [_row_to_event(row) for row in result.fetchall()]
