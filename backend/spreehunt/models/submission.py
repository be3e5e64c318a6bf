from __future__ import annotations
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import BigInteger, Boolean, CheckConstraint, Integer, String, Text, DateTime, ForeignKey, func
from spreehunt.db import Base


class Submission(Base):
    __tablename__ = "submissions"

    # id of the participant's original message; doubles as the public submission reference
    message_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    participant_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("participants.id"), index=True, nullable=False
    )
    team: Mapped[str] = mapped_column(String(128), index=True, nullable=False)  # frozen at submission time
    caption: Mapped[str] = mapped_column(Text(), nullable=False, default="")
    kind: Mapped[str] = mapped_column(String(8), nullable=False)  # 'photo' | 'video'
    storage_key: Mapped[str | None] = mapped_column(Text(), nullable=True)
    mime_type: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (CheckConstraint("kind IN ('photo', 'video')", name="ck_submissions_kind"),)


class Judgement(Base):
    """
    One row per submission. Re-judging overwrites the row in place (last write wins).
    `challenge_name` holds a catalog name or one of the sentinels ___unclear / ___invalid.
    """
    __tablename__ = "judgements"

    submission_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("submissions.message_id"), primary_key=True, autoincrement=False
    )
    challenge_name: Mapped[str] = mapped_column(String(128), nullable=False)
    points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    valid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    judged_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
