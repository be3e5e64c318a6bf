from __future__ import annotations
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import BigInteger, Boolean, Integer, String, DateTime, Index, func, text
from spreehunt.db import Base


class TeamTopic(Base):
    """
    Binding between a team name and the forum topic allocated for it in the judge chat.
    Rows are never deleted; a vanished team flips `is_open` to false.
    """
    __tablename__ = "team_topics"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    thread_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    team: Mapped[str] = mapped_column(String(128), index=True, nullable=False)
    is_open: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        # at most one open topic per team
        Index(
            "uq_team_topics_open_team", "team", unique=True,
            sqlite_where=text("is_open"), postgresql_where=text("is_open"),
        ),
    )
