"""003: create markets table

Revision ID: 003
Revises: 002
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE markets (
            id                  BIGSERIAL       PRIMARY KEY,
            creator             VARCHAR(42)     NOT NULL,
            question            VARCHAR(500)    NOT NULL,
            description         TEXT,
            category            VARCHAR(64),
            image_url           VARCHAR(2048),
            source_url          VARCHAR(2048),
            end_time            TIMESTAMPTZ     NOT NULL,
            status              VARCHAR(20)     NOT NULL DEFAULT 'ACTIVE',
            outcome             VARCHAR(3),
            total_yes_pool      BIGINT          NOT NULL DEFAULT 0,
            total_no_pool       BIGINT          NOT NULL DEFAULT 0,
            creator_fee_pct     SMALLINT,
            platform_fee_pct    SMALLINT,
            creator_fee         BIGINT          NOT NULL DEFAULT 0,
            platform_fee        BIGINT          NOT NULL DEFAULT 0,
            creator_fee_claimed BOOLEAN         NOT NULL DEFAULT FALSE,
            paid_out            BIGINT          NOT NULL DEFAULT 0,
            resolved_at         TIMESTAMPTZ,
            resolved_by         VARCHAR(42),
            cancelled_at        TIMESTAMPTZ,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_markets_creator CHECK (fn_is_wallet_address(creator)),
            CONSTRAINT ck_markets_status  CHECK (status IN ('ACTIVE', 'RESOLVED', 'CANCELLED')),
            CONSTRAINT ck_markets_outcome CHECK (
                (status = 'RESOLVED' AND outcome IN ('YES', 'NO'))
                OR (status <> 'RESOLVED' AND outcome IS NULL)
            ),
            CONSTRAINT ck_markets_pools_gte_0 CHECK (total_yes_pool >= 0 AND total_no_pool >= 0),
            CONSTRAINT ck_markets_fee_pct CHECK (
                creator_fee_pct IS NULL
                OR (creator_fee_pct BETWEEN 0 AND 100
                    AND platform_fee_pct BETWEEN 0 AND 100
                    AND creator_fee_pct + platform_fee_pct <= 100)
            ),
            CONSTRAINT ck_markets_paid_out CHECK (
                paid_out >= 0 AND paid_out <= total_yes_pool + total_no_pool
            )
        );
    """)
    op.execute("CREATE INDEX idx_markets_status_id ON markets (status, id DESC);")
    op.execute("CREATE INDEX idx_markets_creator ON markets (creator);")
    op.execute("CREATE INDEX idx_markets_category ON markets (category) WHERE category IS NOT NULL;")
    op.execute("""
        CREATE TRIGGER trg_markets_updated_at
            BEFORE UPDATE ON markets
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE markets IS 'Binary markets: pools, status, resolution fee snapshot; cents';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS markets CASCADE;")
