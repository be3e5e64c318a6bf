from __future__ import annotations
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, Text
from spreehunt.db import Base

# Judgement outcomes that are not catalog entries
UNCLEAR = "___unclear"
INVALID = "___invalid"
SENTINELS = {UNCLEAR: "Unclear", INVALID: "Invalid"}


class Challenge(Base):
    """Catalog entry, seeded out-of-band and read-only for the bot."""
    __tablename__ = "challenges"

    name: Mapped[str] = mapped_column(String(32), primary_key=True)  # must fit into button callback data
    short_name: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str | None] = mapped_column(Text(), nullable=True)
    points: Mapped[int] = mapped_column(Integer, nullable=False, default=1)  # informational; scoring is flat
