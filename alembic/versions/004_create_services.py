"""004: create services table

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
        CREATE TABLE services (
            id                      VARCHAR(16)     PRIMARY KEY,
            title                   VARCHAR(120)    NOT NULL,
            description             TEXT            NOT NULL DEFAULT '',
            rate                    NUMERIC(14,2)   NOT NULL,
            rate_per_quantity       INT             NOT NULL DEFAULT 1000,
            min_quantity            INT             NOT NULL,
            max_quantity            INT             NOT NULL,
            category_id             VARCHAR(64)     NOT NULL,
            service_type            VARCHAR(32)     NOT NULL DEFAULT 'Other',
            unit_name               VARCHAR(32)     NOT NULL DEFAULT '',
            input_type              VARCHAR(16)     NOT NULL DEFAULT 'link',
            icon_name               VARCHAR(64)     NOT NULL DEFAULT 'HeartIcon',
            min_completion_time     VARCHAR(32),
            max_completion_time     VARCHAR(32),
            is_limited_offer        BOOLEAN         NOT NULL DEFAULT FALSE,
            expiry_date             TIMESTAMPTZ,
            total_limit             INT             NOT NULL DEFAULT 0,
            daily_limit             INT             NOT NULL DEFAULT 0,
            user_daily_limit        INT             NOT NULL DEFAULT 0,
            cooldown_minutes        INT             NOT NULL DEFAULT 0,
            current_orders_count    INT             NOT NULL DEFAULT 0,
            created_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_services_quantity_range CHECK (min_quantity <= max_quantity),
            CONSTRAINT ck_services_rate_per_quantity CHECK (rate_per_quantity > 0),
            CONSTRAINT ck_services_input_type CHECK (input_type IN ('link', 'username'))
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_services_updated_at
            BEFORE UPDATE ON services
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE services IS 'Service packages; limits of 0 mean unlimited';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS services CASCADE;")
