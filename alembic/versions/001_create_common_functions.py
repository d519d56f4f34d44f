"""001: shared trigger and check functions

Revision ID: 001
Revises: 
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Touch updated_at on every row update
    op.execute("""
        CREATE OR REPLACE FUNCTION fn_update_timestamp()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.updated_at = NOW();
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)
    # Lowercase 0x-prefixed 20-byte hex; callers normalise before insert
    op.execute("""
        CREATE OR REPLACE FUNCTION fn_is_wallet_address(addr TEXT)
        RETURNS BOOLEAN AS $$
            SELECT addr ~ '^0x[0-9a-f]{40}$';
        $$ LANGUAGE sql IMMUTABLE STRICT;
    """)


def downgrade() -> None:
    op.execute("DROP FUNCTION IF EXISTS fn_is_wallet_address(TEXT);")
    op.execute("DROP FUNCTION IF EXISTS fn_update_timestamp();")
