import asyncio
import pytest
from spreehunt.db import create_schema
from spreehunt.errors import StoreError
from spreehunt.services import roster, topics
from spreehunt.state import HuntState
from conftest import JUDGE_CHAT, user

@pytest.mark.asyncio
async def test_reconcile_creates_one_topic_per_team(session, transport, state):
    await roster.join_team(session, user(1), "Owls")
    await roster.join_team(session, user(2), "Falcons")
    await roster.join_team(session, user(3), "Falcons")

    report = await topics.reconcile_topics(session, transport, state)
    assert report.created == ["Falcons", "Owls"]
    assert report.closed == [] and report.failed == {}
    assert [c["name"] for c in transport.sent("create_topic")] == ["Falcons", "Owls"]
    assert all(c["chat_id"] == JUDGE_CHAT for c in transport.sent("create_topic"))
    assert await topics.lookup_channel(session, "Falcons") is not None

    # nothing to do the second time
    again = await topics.reconcile_topics(session, transport, state)
    assert again.created == [] and again.closed == []
    assert len(transport.sent("create_topic")) == 2

@pytest.mark.asyncio
async def test_reconcile_closes_vanished_team(session, transport, state):
    await roster.join_team(session, user(1), "Falcons")
    await topics.reconcile_topics(session, transport, state)
    thread_id = await topics.lookup_channel(session, "Falcons")

    await roster.join_team(session, user(1), "Owls")
    report = await topics.reconcile_topics(session, transport, state)
    assert report.created == ["Owls"]
    assert report.closed == ["Falcons"]
    assert transport.sent("close_topic") == [{"chat_id": JUDGE_CHAT, "thread_id": thread_id}]
    assert await topics.lookup_channel(session, "Falcons") is None

    history = await topics.list_topics(session, include_closed=True)
    closed = [t for t in history if t.team == "Falcons"]
    assert len(closed) == 1 and closed[0].is_open is False and closed[0].closed_at is not None

@pytest.mark.asyncio
async def test_returning_team_gets_a_fresh_topic(session, transport, state):
    await roster.join_team(session, user(1), "Falcons")
    await topics.reconcile_topics(session, transport, state)
    await roster.join_team(session, user(1), "Owls")
    await topics.reconcile_topics(session, transport, state)
    await roster.join_team(session, user(1), "Falcons")
    report = await topics.reconcile_topics(session, transport, state)

    assert report.created == ["Falcons"] and report.closed == ["Owls"]
    open_topics = await topics.list_topics(session)
    assert [t.team for t in open_topics] == ["Falcons"]

@pytest.mark.asyncio
async def test_already_closed_topic_still_recorded_closed(session, transport, state):
    await roster.join_team(session, user(1), "Falcons")
    await topics.reconcile_topics(session, transport, state)
    transport.already_closed.add(await topics.lookup_channel(session, "Falcons"))

    await roster.join_team(session, user(1), "Owls")
    report = await topics.reconcile_topics(session, transport, state)
    assert report.closed == ["Falcons"]
    assert report.failed == {}
    assert await topics.lookup_channel(session, "Falcons") is None

@pytest.mark.asyncio
async def test_failed_create_does_not_stop_other_teams(session, transport, state):
    await roster.join_team(session, user(1), "Falcons")
    await roster.join_team(session, user(2), "Owls")
    transport.fail_topics.add("Falcons")

    report = await topics.reconcile_topics(session, transport, state)
    assert report.created == ["Owls"]
    assert "Falcons" in report.failed
    assert await topics.lookup_channel(session, "Falcons") is None

    # retried on the next pass
    transport.fail_topics.clear()
    report = await topics.reconcile_topics(session, transport, state)
    assert report.created == ["Falcons"]

@pytest.mark.asyncio
async def test_failed_close_keeps_topic_open(session, transport, state):
    await roster.join_team(session, user(1), "Falcons")
    await topics.reconcile_topics(session, transport, state)
    await roster.join_team(session, user(1), "Owls")
    transport.fail.add("close_topic")

    report = await topics.reconcile_topics(session, transport, state)
    assert "Falcons" in report.failed
    assert await topics.lookup_channel(session, "Falcons") is not None

@pytest.mark.asyncio
async def test_concurrent_reconciles_never_duplicate_topics(sessionmaker, transport):
    state = HuntState()
    async with sessionmaker() as s:
        for uid, team in enumerate(["Falcons", "Owls", "Ravens"], start=1):
            await roster.join_team(s, user(uid), team)

    async def run():
        async with sessionmaker() as s:
            return await topics.reconcile_topics(s, transport, state)

    reports = await asyncio.gather(run(), run(), run())
    created = sorted(team for r in reports for team in r.created)
    assert created == ["Falcons", "Owls", "Ravens"]
    assert len(transport.sent("create_topic")) == 3

    async with sessionmaker() as s:
        open_topics = await topics.list_topics(s)
    assert sorted(t.team for t in open_topics) == ["Falcons", "Owls", "Ravens"]

@pytest.mark.asyncio
async def test_store_failure_surfaces_as_store_error(session, transport, state, engine):
    await roster.join_team(session, user(1), "Falcons")
    await session.close()
    await engine.dispose()
    async with engine.begin() as conn:
        await conn.exec_driver_sql("DROP TABLE team_topics")
    with pytest.raises(StoreError):
        await topics.reconcile_topics(session, transport, state)
    assert not state.topology_lock.locked()

    # the lock was released, so the next pass goes through
    await create_schema(engine)
    report = await topics.reconcile_topics(session, transport, state)
    assert report.created == ["Falcons"]
