"""api token table

Revision ID: 2026_10_19_api_token
Revises:
Create Date: 2026-10-19 00:00:00
"""

from alembic import op
import sqlalchemy as sa


revision = "2026_10_19_api_token"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "api_token",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("prefix", sa.String, nullable=False),
        sa.Column("hash", sa.String, nullable=False),
    )
    op.create_index("ix_api_token_hash", "api_token", ["hash"])


def downgrade():
    op.drop_index("ix_api_token_hash", table_name="api_token")
    op.drop_table("api_token")
