from __future__ import annotations
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = "20261016_0003"
down_revision = "20261016_0002"
branch_labels = None
depends_on = None

def upgrade() -> None:
    op.create_table(
        "config",
        sa.Column("name", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("value", sa.Text(), nullable=False),
    )
    op.create_table(
        "safety_team",
        sa.Column("name", sa.String(length=128), primary_key=True, nullable=False),
        sa.Column("phone", sa.String(length=64), nullable=False),
        sa.Column("date", sa.String(length=10), nullable=False),
    )
    op.create_index("ix_safety_team_date", "safety_team", ["date"])

def downgrade() -> None:
    op.drop_index("ix_safety_team_date", table_name="safety_team")
    op.drop_table("safety_team")
    op.drop_table("config")
