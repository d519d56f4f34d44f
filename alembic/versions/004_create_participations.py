"""004: create participations table

Revision ID: 004
Revises: 003
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE participations (
            market_id       BIGINT          NOT NULL REFERENCES markets (id),
            user_address    VARCHAR(42)     NOT NULL,
            side            VARCHAR(3),
            yes_shares      BIGINT          NOT NULL DEFAULT 0,
            no_shares       BIGINT          NOT NULL DEFAULT 0,
            has_claimed     BOOLEAN         NOT NULL DEFAULT FALSE,
            claimed_amount  BIGINT          NOT NULL DEFAULT 0,
            claimed_at      TIMESTAMPTZ,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            PRIMARY KEY (market_id, user_address),
            CONSTRAINT ck_participations_address CHECK (fn_is_wallet_address(user_address)),
            CONSTRAINT ck_participations_side CHECK (side IS NULL OR side IN ('YES', 'NO')),
            CONSTRAINT ck_participations_shares_gte_0 CHECK (yes_shares >= 0 AND no_shares >= 0),
            CONSTRAINT ck_participations_claimed_gte_0 CHECK (claimed_amount >= 0)
        );
    """)
    op.execute("CREATE INDEX idx_participations_user ON participations (user_address);")
    op.execute("""
        CREATE TRIGGER trg_participations_updated_at
            BEFORE UPDATE ON participations
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS participations CASCADE;")
