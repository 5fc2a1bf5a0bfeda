"""003: create counters table

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
        CREATE TABLE counters (
            name            VARCHAR(32)     PRIMARY KEY,
            current_value   BIGINT          NOT NULL,
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_counters_positive CHECK (current_value >= 1)
        );
    """)
    op.execute("COMMENT ON TABLE counters IS 'Display-id sequences; rows created lazily on first use';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS counters CASCADE;")
