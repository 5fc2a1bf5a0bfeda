"""006: create orders table

Revision ID: 006
Revises: 005
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "006"
down_revision: Union[str, None] = "005"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE orders (
            id                  VARCHAR(64)     PRIMARY KEY DEFAULT gen_random_uuid()::text,
            display_id          VARCHAR(16)     NOT NULL,
            user_id             VARCHAR(128)    NOT NULL REFERENCES users (id),
            user_name           VARCHAR(255)    NOT NULL,
            user_whatsapp       VARCHAR(32),
            service             VARCHAR(120)    NOT NULL,
            service_id          VARCHAR(16),
            target_url          TEXT            NOT NULL,
            quantity            INT             NOT NULL,
            unit                VARCHAR(32),
            amount              NUMERIC(14,2)   NOT NULL,
            status              VARCHAR(16)     NOT NULL DEFAULT 'Pending',
            coupon_code         VARCHAR(64),
            is_limited_offer    BOOLEAN         NOT NULL DEFAULT FALSE,
            last_updated_by     VARCHAR(255),
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_orders_display_id CHECK (display_id <> ''),
            CONSTRAINT ck_orders_amount     CHECK (amount >= 0),
            CONSTRAINT ck_orders_status     CHECK (
                status IN ('Pending', 'In Progress', 'Completed', 'Cancelled')
            )
        );
    """)
    op.execute("CREATE UNIQUE INDEX uq_orders_display ON orders (display_id);")
    op.execute("CREATE INDEX idx_orders_user_time ON orders (user_id, created_at DESC);")
    op.execute("CREATE INDEX idx_orders_service_time ON orders (service_id, created_at DESC);")
    op.execute("""
        CREATE TRIGGER trg_orders_updated_at
            BEFORE UPDATE ON orders
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE orders IS 'Orders; display_id is 5 digits, L-prefixed for limited offers';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS orders CASCADE;")
