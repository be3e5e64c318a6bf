from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone as dt_tz
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from spreehunt.config import settings
from spreehunt.errors import ExternalTransportError, StoreError, TopicAlreadyClosed
from spreehunt.models.topic import TeamTopic
from spreehunt.services.roster import team_names
from spreehunt.services.transport import ChatTransport
from spreehunt.state import HuntState

log = structlog.get_logger()


@dataclass
class ReconcileReport:
    created: list[str] = field(default_factory=list)
    closed: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)  # team -> reason


async def reconcile_topics(session: AsyncSession, transport: ChatTransport, state: HuntState) -> ReconcileReport:
    """
    Align the judge-chat forum topics with the live team set.
    This is the only entry point that mutates topics; it holds the process-wide
    topology lock for the whole diff-and-mutate pass.
    """
    async with state.topology_lock:
        try:
            return await _reconcile(session, transport)
        except SQLAlchemyError as e:
            await session.rollback()
            log.error("reconcile_failed", error=str(e))
            raise StoreError() from e


async def _reconcile(session: AsyncSession, transport: ChatTransport) -> ReconcileReport:
    teams = await team_names(session)
    open_topics = (await session.execute(
        select(TeamTopic).where(TeamTopic.is_open.is_(True)).order_by(TeamTopic.id)
    )).scalars().all()
    open_teams = {t.team for t in open_topics}

    to_create = sorted(teams - open_teams)
    # plain tuples: a rollback below must not leave us holding expired ORM rows
    to_close = [(t.id, t.team, t.thread_id) for t in open_topics if t.team not in teams]
    report = ReconcileReport()

    for team in to_create:
        try:
            thread_id = await transport.create_topic(settings.judge_chat_id, team)
        except ExternalTransportError as e:
            log.warning("topic_create_failed", team=team, error=str(e))
            report.failed[team] = str(e)
            continue
        try:
            session.add(TeamTopic(thread_id=thread_id, team=team, is_open=True))
            await session.commit()
        except SQLAlchemyError as e:
            # topic exists remotely but is not recorded; the next pass will allocate another
            await session.rollback()
            log.error("topic_record_failed", team=team, thread_id=thread_id, error=str(e))
            report.failed[team] = "store"
            continue
        log.info("topic_created", team=team, thread_id=thread_id)
        report.created.append(team)

    for topic_id, team, thread_id in to_close:
        try:
            await transport.close_topic(settings.judge_chat_id, thread_id)
        except TopicAlreadyClosed:
            log.info("topic_already_closed", team=team, thread_id=thread_id)
        except ExternalTransportError as e:
            log.warning("topic_close_failed", team=team, thread_id=thread_id, error=str(e))
            report.failed[team] = str(e)
            continue
        try:
            await session.execute(
                update(TeamTopic)
                .where(TeamTopic.id == topic_id)
                .values(is_open=False, closed_at=datetime.now(dt_tz.utc))
            )
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            log.error("topic_close_record_failed", team=team, thread_id=thread_id, error=str(e))
            report.failed[team] = "store"
            continue
        log.info("topic_closed", team=team, thread_id=thread_id)
        report.closed.append(team)

    return report


async def lookup_channel(session: AsyncSession, team: str) -> int | None:
    """Open topic thread for `team`, if any. Lock-free; a stale answer only loses threading."""
    return await session.scalar(
        select(TeamTopic.thread_id).where(TeamTopic.team == team, TeamTopic.is_open.is_(True))
    )


async def list_topics(session: AsyncSession, *, include_closed: bool = False) -> list[TeamTopic]:
    q = select(TeamTopic).order_by(TeamTopic.team, TeamTopic.id)
    if not include_closed:
        q = q.where(TeamTopic.is_open.is_(True))
    return list((await session.execute(q)).scalars().all())
