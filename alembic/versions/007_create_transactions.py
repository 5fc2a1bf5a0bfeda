"""007: create transactions table

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
        CREATE TABLE transactions (
            id              VARCHAR(64)     PRIMARY KEY DEFAULT gen_random_uuid()::text,
            user_id         VARCHAR(128)    NOT NULL REFERENCES users (id),
            type            VARCHAR(10)     NOT NULL,
            amount          NUMERIC(14,2)   NOT NULL,
            description     VARCHAR(500)    NOT NULL,
            status          VARCHAR(16)     NOT NULL,
            related_id      VARCHAR(64)     NOT NULL,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_transactions_type   CHECK (type IN ('Credit', 'Debit')),
            CONSTRAINT ck_transactions_amount CHECK (amount >= 0)
        );
    """)
    op.execute("CREATE INDEX idx_transactions_user_time ON transactions (user_id, created_at DESC);")
    op.execute("CREATE INDEX idx_transactions_related ON transactions (related_id);")
    op.execute("""
        CREATE TRIGGER trg_transactions_append_only
            BEFORE UPDATE OR DELETE ON transactions
            FOR EACH ROW EXECUTE FUNCTION fn_reject_mutation();
    """)
    op.execute("COMMENT ON TABLE transactions IS 'Wallet audit trail — append-only, amount is a positive magnitude';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS transactions CASCADE;")
