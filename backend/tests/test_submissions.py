import pytest
from pathlib import Path
from sqlalchemy import select, func
from spreehunt.config import settings
from spreehunt.errors import NotRegistered, StoreError, SubmissionsDisabled
from spreehunt.models.challenge import UNCLEAR, INVALID
from spreehunt.models.submission import Submission
from spreehunt.services import roster, topics
from spreehunt.services.judging import judge
from spreehunt.services.submissions import remaining_challenges, submit
from conftest import JUDGE_CHAT, photo, seed_challenges, user

async def _submit(session, transport, state, uid=1, message_id=101, caption="sunset"):
    return await submit(
        session, transport, state,
        participant_id=uid, chat_id=uid, message_id=message_id, media=photo(f"f{message_id}"), caption=caption,
    )

async def _count(session) -> int:
    return await session.scalar(select(func.count()).select_from(Submission))

@pytest.mark.asyncio
async def test_disabled_submissions_store_nothing(session, transport, state):
    await roster.join_team(session, user(1), "Falcons")
    state.submissions_enabled = False
    with pytest.raises(SubmissionsDisabled):
        await _submit(session, transport, state)
    assert await _count(session) == 0
    assert transport.calls == []

@pytest.mark.asyncio
async def test_unregistered_sender_is_rejected(session, transport, state):
    with pytest.raises(NotRegistered):
        await _submit(session, transport, state, uid=77)
    assert await _count(session) == 0
    assert transport.sent("download_media") == []

@pytest.mark.asyncio
async def test_submission_is_stored_and_routed_to_team_topic(session, transport, state):
    await seed_challenges(session, "photo_safety", "bridge")
    await roster.join_team(session, user(1, "Ada", "ada"), "Falcons")
    await topics.reconcile_topics(session, transport, state)
    thread_id = await topics.lookup_channel(session, "Falcons")

    receipt = await _submit(session, transport, state)
    assert receipt.routed
    assert receipt.thread_id == thread_id
    assert receipt.submission.team == "Falcons"
    assert [c.name for c in receipt.remaining] == ["bridge", "photo_safety"]

    row = await session.get(Submission, 101)
    assert row.team == "Falcons" and row.caption == "sunset" and row.kind == "photo"
    assert row.mime_type == "image/png"
    assert (Path(settings.submissions_dir) / row.storage_key).read_bytes() == transport.media

    [fwd] = transport.sent("forward_message")
    assert fwd == {"chat_id": JUDGE_CHAT, "from_chat_id": 1, "message_id": 101, "thread_id": thread_id}

    summary, prompt = transport.sent("send_message")
    assert "Team: Falcons" in summary["text"] and "ID: 101" in summary["text"]
    assert summary["silent"] and summary["reply_to"] is not None
    assert prompt["text"] == "Select challenge or action"
    labels = [row[0][0] for row in prompt["keyboard"][:-1]]
    assert labels == ["Bridge", "Photo Safety"]
    terminal = [data for (_, data) in prompt["keyboard"][-1]]
    assert terminal == [f"1###101###{UNCLEAR}", f"1###101###{INVALID}"]

@pytest.mark.asyncio
async def test_submission_without_topic_is_still_forwarded(session, transport, state):
    await roster.join_team(session, user(1), "Falcons")
    receipt = await _submit(session, transport, state)
    assert receipt.thread_id is None
    assert transport.sent("forward_message")[0]["thread_id"] is None

@pytest.mark.asyncio
async def test_routing_failure_keeps_the_submission(session, transport, state):
    await roster.join_team(session, user(1), "Falcons")
    transport.fail.add("forward_message")

    receipt = await _submit(session, transport, state)
    assert not receipt.routed
    assert [s.step for s in receipt.routing if not s.ok] == ["forward"]
    assert await _count(session) == 1
    texts = [m["text"] for m in transport.sent("send_message")]
    assert texts[0] == "Select challenge or action"
    assert "failed at: forward" in texts[1] and "/judge 101" in texts[1]

@pytest.mark.asyncio
async def test_remaining_excludes_only_valid_judgements(session, transport, state):
    await seed_challenges(session, "photo_safety", "bridge", "fountain")
    await roster.join_team(session, user(1), "Falcons")
    await roster.join_team(session, user(2), "Falcons")
    await _submit(session, transport, state, uid=1, message_id=101)
    await _submit(session, transport, state, uid=2, message_id=102)

    await judge(session, transport, 101, "photo_safety")
    await judge(session, transport, 102, "bridge")
    await judge(session, transport, 102, INVALID)  # overwritten: bridge is open again

    names = [c.name for c in await remaining_challenges(session, "Falcons")]
    assert names == ["bridge", "fountain"]

    receipt = await _submit(session, transport, state, uid=2, message_id=103)
    assert [c.name for c in receipt.remaining] == ["bridge", "fountain"]

@pytest.mark.asyncio
async def test_team_is_frozen_on_the_submission(session, transport, state):
    await roster.join_team(session, user(1), "Falcons")
    await _submit(session, transport, state)
    await roster.join_team(session, user(1), "Owls")

    row = await session.get(Submission, 101, populate_existing=True)
    assert row.team == "Falcons"

@pytest.mark.asyncio
async def test_failed_insert_is_fatal_and_routes_nothing(session, transport, state, engine):
    await roster.join_team(session, user(1), "Falcons")
    await session.close()
    async with engine.begin() as conn:
        await conn.exec_driver_sql(
            "CREATE TRIGGER reject_submissions BEFORE INSERT ON submissions "
            "BEGIN SELECT RAISE(ABORT, 'disk full'); END"
        )
    with pytest.raises(StoreError):
        await _submit(session, transport, state)
    assert await _count(session) == 0
    assert transport.sent("forward_message") == []
    assert transport.sent("send_message") == []
