"""005: create market_events table

Revision ID: 005
Revises: 004
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE market_events (
            id          BIGSERIAL       PRIMARY KEY,
            market_id   BIGINT          NOT NULL REFERENCES markets (id),
            event_type  VARCHAR(30)     NOT NULL,
            actor       VARCHAR(42),
            side        VARCHAR(3),
            amount      BIGINT,
            payload     JSONB           NOT NULL DEFAULT '{}'::jsonb,
            created_at  TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_market_events_type CHECK (
                event_type IN (
                    'MarketCreated', 'StakeRecorded', 'MarketResolved', 'MarketCancelled',
                    'WinningsClaimed', 'CreatorFeeClaimed', 'RefundClaimed'
                )
            )
        );
    """)
    op.execute("CREATE INDEX idx_market_events_market_id ON market_events (market_id, id);")
    op.execute("COMMENT ON TABLE market_events IS 'Append-only log, one row per market state transition';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS market_events CASCADE;")
