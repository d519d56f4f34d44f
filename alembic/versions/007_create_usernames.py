"""007: create usernames table

Revision ID: 007
Revises: 006
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "007"
down_revision: Union[str, None] = "006"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE usernames (
            address         VARCHAR(42)     PRIMARY KEY,
            username        VARCHAR(20)     NOT NULL,
            username_lower  VARCHAR(20)     NOT NULL,
            change_count    INTEGER         NOT NULL DEFAULT 0,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_usernames_address CHECK (fn_is_wallet_address(address)),
            CONSTRAINT uq_usernames_lower UNIQUE (username_lower),
            CONSTRAINT ck_usernames_format CHECK (username ~ '^[A-Za-z0-9_]{3,20}$'),
            CONSTRAINT ck_usernames_lower CHECK (username_lower = LOWER(username))
        );
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS usernames CASCADE;")
