from __future__ import annotations
from sqlalchemy import select, func, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from spreehunt.errors import EmptyInput, NotRegistered, StoreError
from spreehunt.models.participant import Participant
from spreehunt.schemas.telegram import TgUser

log = structlog.get_logger()


async def join_team(session: AsyncSession, user: TgUser, team: str) -> Participant:
    """
    Bind `user` to `team`, creating the participant on first join.
    Rejoining overwrites the team (and refreshes the profile fields); earlier
    submissions keep the team they were filed under.
    The caller is expected to reconcile topics afterwards.
    """
    team = (team or "").strip()
    if not team:
        raise EmptyInput("Please provide a team name. /join_team followed by the team name")
    try:
        await session.execute(text("""
            INSERT INTO participants (id, first_name, last_name, username, team)
            VALUES (:id, :first_name, :last_name, :username, :team)
            ON CONFLICT (id) DO UPDATE SET
                team = excluded.team,
                first_name = excluded.first_name,
                last_name = excluded.last_name,
                username = excluded.username
        """), {
            "id": user.id,
            "first_name": user.first_name,
            "last_name": user.last_name,
            "username": user.username,
            "team": team,
        })
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        log.error("join_team_failed", user_id=user.id, team=team, error=str(e))
        raise StoreError() from e
    log.info("team_joined", user_id=user.id, team=team)
    try:
        participant = await session.get(Participant, user.id, populate_existing=True)
    except SQLAlchemyError as e:
        log.error("join_team_reread_failed", user_id=user.id, error=str(e))
        raise StoreError() from e
    if participant is None:
        raise StoreError()
    return participant


async def get_participant(session: AsyncSession, participant_id: int) -> Participant | None:
    return await session.get(Participant, participant_id, populate_existing=True)


async def require_participant(session: AsyncSession, participant_id: int) -> Participant:
    p = await get_participant(session, participant_id)
    if p is None:
        raise NotRegistered()
    return p


async def team_names(session: AsyncSession) -> set[str]:
    """The live team set: every distinct team currently held by at least one participant."""
    rows = (await session.execute(select(Participant.team).distinct())).scalars().all()
    return set(rows)


async def list_teams(session: AsyncSession) -> list[tuple[str, int]]:
    rows = (await session.execute(
        select(Participant.team, func.count(Participant.id))
        .group_by(Participant.team)
        .order_by(Participant.team)
    )).all()
    return [(team, int(count)) for (team, count) in rows]


async def list_participants(session: AsyncSession, *, order_by_team: bool = False) -> list[Participant]:
    q = select(Participant)
    q = q.order_by(Participant.team, Participant.id) if order_by_team else q.order_by(Participant.id)
    return list((await session.execute(q)).scalars().all())


async def team_members(session: AsyncSession, participant_id: int) -> tuple[str, list[Participant]]:
    """Return (team, members) for the caller's live team."""
    me = await require_participant(session, participant_id)
    members = (await session.execute(
        select(Participant).where(Participant.team == me.team).order_by(Participant.created_at, Participant.id)
    )).scalars().all()
    return me.team, list(members)
