from __future__ import annotations
from datetime import datetime, timedelta, timezone as dt_tz
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from spreehunt.config import settings
from spreehunt.models.config_entry import SafetyTeamMember

EMERGENCY_NUMBERS = "🚑 <b>Fire brigade & ambulance: +112</b>\n👮 Police: +110"


def event_day(now: datetime, rollover_hour: int) -> str:
    # the night belongs to the previous event day until the rollover hour
    if now.hour < rollover_hour:
        now = now - timedelta(hours=24)
    return now.strftime("%Y-%m-%d")


async def current_safety_team(session: AsyncSession, now: datetime | None = None) -> list[SafetyTeamMember]:
    now = now or datetime.now(dt_tz.utc)
    day = event_day(now, settings.safety_day_rollover_hour)
    rows = (await session.execute(
        select(SafetyTeamMember).where(SafetyTeamMember.date == day).order_by(SafetyTeamMember.name)
    )).scalars().all()
    return list(rows)
