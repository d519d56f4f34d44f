"""006: create platform_config and seed system accounts

Revision ID: 006
Revises: 005
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

from config.settings import settings

revision: str = "006"
down_revision: Union[str, None] = "005"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE platform_config (
            id                  SMALLINT        PRIMARY KEY DEFAULT 1,
            creator_fee_pct     SMALLINT        NOT NULL,
            platform_fee_pct    SMALLINT        NOT NULL,
            market_creation_fee BIGINT          NOT NULL,
            username_change_fee BIGINT          NOT NULL,
            updated_by          VARCHAR(42),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_platform_config_singleton CHECK (id = 1),
            CONSTRAINT ck_platform_config_pct CHECK (
                creator_fee_pct BETWEEN 0 AND 50
                AND platform_fee_pct BETWEEN 0 AND 50
                AND creator_fee_pct + platform_fee_pct <= 100
            ),
            CONSTRAINT ck_platform_config_fees_gte_0 CHECK (
                market_creation_fee >= 0 AND username_change_fee >= 0
            )
        );
    """)
    op.execute(
        "INSERT INTO platform_config "
        "(id, creator_fee_pct, platform_fee_pct, market_creation_fee, username_change_fee) "
        f"VALUES (1, {int(settings.DEFAULT_CREATOR_FEE_PCT)}, "
        f"{int(settings.DEFAULT_PLATFORM_FEE_PCT)}, "
        f"{int(settings.DEFAULT_MARKET_CREATION_FEE_CENTS)}, "
        f"{int(settings.DEFAULT_USERNAME_CHANGE_FEE_CENTS)});"
    )

    # System special account receiving every fee
    op.execute("""
        INSERT INTO accounts (address, available_balance, version)
        VALUES ('PLATFORM_FEE', 0, 0);
    """)


def downgrade() -> None:
    op.execute("DELETE FROM accounts WHERE address = 'PLATFORM_FEE';")
    op.execute("DROP TABLE IF EXISTS platform_config CASCADE;")
