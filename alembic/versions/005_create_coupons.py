"""005: create coupons table

Revision ID: 005
Revises: 004
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE coupons (
            id                  VARCHAR(64)     PRIMARY KEY DEFAULT gen_random_uuid()::text,
            code                VARCHAR(64)     NOT NULL,
            discount_percent    NUMERIC(5,2)    NOT NULL,
            usage_limit         INT             NOT NULL DEFAULT 0,
            used_count          INT             NOT NULL DEFAULT 0,
            expires_at          TIMESTAMPTZ,
            is_auto_apply       BOOLEAN         NOT NULL DEFAULT FALSE,
            type                VARCHAR(10)     NOT NULL DEFAULT 'discount',
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_coupons_code      UNIQUE (code),
            CONSTRAINT ck_coupons_code_upper CHECK (code = UPPER(code)),
            CONSTRAINT ck_coupons_type      CHECK (type IN ('discount', 'bonus')),
            CONSTRAINT ck_coupons_usage     CHECK (usage_limit = 0 OR used_count <= usage_limit)
        );
    """)
    op.execute("COMMENT ON TABLE coupons IS 'Order discount and deposit bonus coupons; usage_limit 0 = unlimited';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS coupons CASCADE;")
