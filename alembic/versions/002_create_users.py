"""002: create users table

Revision ID: 002
Revises: 001
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE users (
            id              VARCHAR(128)    PRIMARY KEY,
            display_id      VARCHAR(16),
            name            VARCHAR(255)    NOT NULL DEFAULT '',
            email           VARCHAR(255)    NOT NULL DEFAULT '',
            whatsapp        VARCHAR(32),
            role            VARCHAR(10)     NOT NULL DEFAULT 'user',
            wallet_balance  NUMERIC(14,2)   NOT NULL DEFAULT 0,
            total_spent     NUMERIC(14,2)   NOT NULL DEFAULT 0,
            status          VARCHAR(16)     NOT NULL DEFAULT 'Active',
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_users_display_id  UNIQUE (display_id),
            CONSTRAINT ck_users_role        CHECK (role IN ('user', 'admin')),
            CONSTRAINT ck_users_status      CHECK (status IN ('Active', 'Suspended'))
        );
    """)
    op.execute("CREATE INDEX idx_users_email ON users (email);")
    op.execute("""
        CREATE TRIGGER trg_users_updated_at
            BEFORE UPDATE ON users
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE users IS 'Reseller profiles and wallets; id is the identity-provider uid';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS users CASCADE;")
