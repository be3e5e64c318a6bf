from __future__ import annotations
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = "20261016_0002"
down_revision = "20261016_0001"
branch_labels = None
depends_on = None

def upgrade() -> None:
    op.create_table(
        "challenges",
        sa.Column("name", sa.String(length=32), primary_key=True, nullable=False),
        sa.Column("short_name", sa.String(length=128), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("points", sa.Integer(), nullable=False, server_default="1"),
    )

    op.create_table(
        "submissions",
        sa.Column("message_id", sa.BigInteger(), primary_key=True, autoincrement=False, nullable=False),
        sa.Column("participant_id", sa.BigInteger(), sa.ForeignKey("participants.id"), nullable=False),
        sa.Column("team", sa.String(length=128), nullable=False),
        sa.Column("caption", sa.Text(), nullable=False, server_default=""),
        sa.Column("kind", sa.String(length=8), nullable=False),
        sa.Column("storage_key", sa.Text(), nullable=True),
        sa.Column("mime_type", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("kind IN ('photo', 'video')", name="ck_submissions_kind"),
    )
    op.create_index("ix_submissions_participant_id", "submissions", ["participant_id"])
    op.create_index("ix_submissions_team", "submissions", ["team"])

    op.create_table(
        "judgements",
        sa.Column("submission_id", sa.BigInteger(), sa.ForeignKey("submissions.message_id"),
                  primary_key=True, autoincrement=False, nullable=False),
        sa.Column("challenge_name", sa.String(length=128), nullable=False),
        sa.Column("points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("valid", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("judged_at", sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
    )

def downgrade() -> None:
    op.drop_table("judgements")
    op.drop_index("ix_submissions_team", table_name="submissions")
    op.drop_index("ix_submissions_participant_id", table_name="submissions")
    op.drop_table("submissions")
    op.drop_table("challenges")
