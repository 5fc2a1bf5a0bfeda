"""009: create categories table with the storefront's default platforms

Revision ID: 009
Revises: 008
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "009"
down_revision: Union[str, None] = "008"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE categories (
            id              VARCHAR(64)     PRIMARY KEY DEFAULT gen_random_uuid()::text,
            name            VARCHAR(64)     NOT NULL,
            icon_name       VARCHAR(64)     NOT NULL DEFAULT 'HeartIcon',
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW()
        );
    """)
    op.execute("""
        INSERT INTO categories (id, name, icon_name) VALUES
            ('cat-instagram', 'Instagram', 'InstagramIcon'),
            ('cat-youtube',   'YouTube',   'YouTubeIcon'),
            ('cat-facebook',  'Facebook',  'FacebookIcon'),
            ('cat-telegram',  'Telegram',  'TelegramIcon');
    """)
    op.execute("COMMENT ON TABLE categories IS 'Platforms service packages are grouped under';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS categories CASCADE;")
