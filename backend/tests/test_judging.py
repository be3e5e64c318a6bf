import pytest
import pytest_asyncio
from sqlalchemy import select, func
from spreehunt.config import settings
from spreehunt.errors import ChallengeNotFound, StoreError, SubmissionNotFound
from spreehunt.models.challenge import UNCLEAR, INVALID
from spreehunt.models.submission import Judgement
from spreehunt.services import roster
from spreehunt.services.judging import FEEDBACK_TEXT, get_judgement, judge
from spreehunt.services.submissions import submit
from conftest import photo, seed_challenges, user

@pytest_asyncio.fixture
async def submitted(session, transport, state):
    await seed_challenges(session, "photo_safety", "bridge")
    await roster.join_team(session, user(1), "Falcons")
    await submit(session, transport, state, participant_id=1, chat_id=1, message_id=101,
                 media=photo(), caption="sunset")
    transport.calls.clear()
    return 101

@pytest.mark.asyncio
async def test_valid_judgement_reacts_on_original(session, transport, submitted):
    outcome = await judge(session, transport, submitted, "photo_safety")
    assert outcome.judgement.points == 1 and outcome.judgement.valid
    assert outcome.owner_id == 1
    assert transport.sent("set_reaction") == [{"chat_id": 1, "message_id": 101, "emoji": settings.valid_reaction}]
    assert transport.sent("send_message") == []

@pytest.mark.asyncio
@pytest.mark.parametrize("sentinel", [UNCLEAR, INVALID])
async def test_sentinels_score_nothing_and_notify(session, transport, submitted, sentinel):
    outcome = await judge(session, transport, submitted, sentinel)
    assert outcome.judgement.points == 0 and not outcome.judgement.valid
    [notice] = transport.sent("send_message")
    assert notice["chat_id"] == 1 and notice["reply_to"] == 101
    assert notice["text"] == FEEDBACK_TEXT[sentinel]
    assert transport.sent("set_reaction") == [{"chat_id": 1, "message_id": 101, "emoji": None}]

@pytest.mark.asyncio
async def test_rejudging_overwrites_in_place(session, transport, submitted):
    await judge(session, transport, submitted, "photo_safety")
    await judge(session, transport, submitted, "photo_safety")
    assert await session.scalar(select(func.count()).select_from(Judgement)) == 1

    await judge(session, transport, submitted, INVALID)
    j = await get_judgement(session, submitted)
    assert (j.challenge_name, j.points, j.valid) == (INVALID, 0, False)
    assert await session.scalar(select(func.count()).select_from(Judgement)) == 1

@pytest.mark.asyncio
async def test_unknown_submission_wins_over_unknown_challenge(session, transport, submitted):
    with pytest.raises(SubmissionNotFound):
        await judge(session, transport, 999, "no_such_challenge")

@pytest.mark.asyncio
async def test_unknown_challenge_writes_nothing(session, transport, submitted):
    with pytest.raises(ChallengeNotFound):
        await judge(session, transport, submitted, "no_such_challenge")
    assert await get_judgement(session, submitted) is None
    assert transport.calls == []

@pytest.mark.asyncio
async def test_feedback_failure_does_not_undo_judgement(session, transport, submitted):
    transport.fail.add("set_reaction")
    outcome = await judge(session, transport, submitted, "bridge")
    assert [f.ok for f in outcome.feedback] == [False]
    j = await get_judgement(session, submitted)
    assert j is not None and j.valid

@pytest.mark.asyncio
async def test_failed_upsert_is_fatal_and_sends_no_feedback(session, transport, submitted, engine):
    await session.close()
    async with engine.begin() as conn:
        await conn.exec_driver_sql(
            "CREATE TRIGGER reject_judgements BEFORE INSERT ON judgements "
            "BEGIN SELECT RAISE(ABORT, 'disk full'); END"
        )
    with pytest.raises(StoreError):
        await judge(session, transport, submitted, "bridge")
    assert await get_judgement(session, submitted) is None
    assert transport.calls == []

@pytest.mark.asyncio
async def test_failed_lookup_surfaces_as_store_error(session, transport, submitted, engine):
    await session.close()
    async with engine.begin() as conn:
        await conn.exec_driver_sql("DROP TABLE challenges")
    with pytest.raises(StoreError):
        await judge(session, transport, submitted, "bridge")
    assert transport.calls == []
