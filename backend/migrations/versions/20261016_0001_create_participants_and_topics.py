from __future__ import annotations
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = "20261016_0001"
down_revision = None
branch_labels = None
depends_on = None

def upgrade() -> None:
    op.create_table(
        "participants",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=False, nullable=False),
        sa.Column("first_name", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("last_name", sa.String(length=255), nullable=True),
        sa.Column("username", sa.String(length=64), nullable=True),
        sa.Column("team", sa.String(length=128), nullable=False),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_participants_team", "participants", ["team"])

    op.create_table(
        "team_topics",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("thread_id", sa.BigInteger(), nullable=False),
        sa.Column("team", sa.String(length=128), nullable=False),
        sa.Column("is_open", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("closed_at", sa.TIMESTAMP(timezone=True), nullable=True),
    )
    op.create_index("ix_team_topics_team", "team_topics", ["team"])
    # one open topic per team; closed rows are kept as history
    op.create_index(
        "uq_team_topics_open_team", "team_topics", ["team"], unique=True,
        sqlite_where=sa.text("is_open"), postgresql_where=sa.text("is_open"),
    )

def downgrade() -> None:
    op.drop_index("uq_team_topics_open_team", table_name="team_topics")
    op.drop_index("ix_team_topics_team", table_name="team_topics")
    op.drop_table("team_topics")
    op.drop_index("ix_participants_team", table_name="participants")
    op.drop_table("participants")
