from __future__ import annotations
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text
from spreehunt.db import Base


class ConfigEntry(Base):
    """Free-form key/value settings editable in the database (e.g. schedule_source = 'url::https://...')."""
    __tablename__ = "config"

    name: Mapped[str] = mapped_column(String(64), primary_key=True)
    value: Mapped[str] = mapped_column(Text(), nullable=False)


class SafetyTeamMember(Base):
    __tablename__ = "safety_team"

    name: Mapped[str] = mapped_column(String(128), primary_key=True)
    phone: Mapped[str] = mapped_column(String(64), nullable=False)
    date: Mapped[str] = mapped_column(String(10), index=True, nullable=False)  # YYYY-MM-DD event day
