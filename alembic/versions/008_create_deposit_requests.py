"""008: create deposit_requests table

Revision ID: 008
Revises: 007
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "008"
down_revision: Union[str, None] = "007"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE deposit_requests (
            id                  VARCHAR(64)     PRIMARY KEY DEFAULT gen_random_uuid()::text,
            display_id          VARCHAR(16)     NOT NULL,
            user_id             VARCHAR(128)    NOT NULL REFERENCES users (id),
            user_name           VARCHAR(255)    NOT NULL,
            user_display_id     VARCHAR(16),
            amount              NUMERIC(14,2)   NOT NULL,
            utr                 VARCHAR(64)     NOT NULL,
            sender_upi          VARCHAR(128)    NOT NULL,
            screenshot_url      TEXT            NOT NULL DEFAULT '',
            status              VARCHAR(16)     NOT NULL DEFAULT 'Pending',
            coupon_code         VARCHAR(64),
            bonus_amount        NUMERIC(14,2),
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_deposit_requests_display_id UNIQUE (display_id),
            CONSTRAINT ck_deposit_requests_amount CHECK (amount > 0),
            CONSTRAINT ck_deposit_requests_status CHECK (
                status IN ('Pending', 'Approved', 'Rejected')
            )
        );
    """)
    op.execute("CREATE INDEX idx_deposit_requests_user_time ON deposit_requests (user_id, created_at DESC);")
    op.execute("""
        CREATE TRIGGER trg_deposit_requests_updated_at
            BEFORE UPDATE ON deposit_requests
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE deposit_requests IS 'UPI deposit requests awaiting admin approval';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS deposit_requests CASCADE;")
