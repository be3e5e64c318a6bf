from __future__ import annotations
from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from spreehunt.auth_deps import require_admin
from spreehunt.db import get_session
from spreehunt.errors import (
    ChallengeNotFound, ConfigError, EmptyInput, HuntError, NotRegistered, StoreError,
    SubmissionNotFound, SubmissionsDisabled,
)
from spreehunt.models.submission import Submission
from spreehunt.schemas.hunt import (
    JudgeRequest, JudgementView, ParticipantPublic, ParticipantScore, SubmissionView,
    SubmissionsToggle, TeamRow, TeamScore,
)
from spreehunt.services import roster, scoring, topics
from spreehunt.services.judging import judge
from spreehunt.services.storage import get_bytes
from spreehunt.services.transport import ChatTransport, get_transport
from spreehunt.state import HuntState, get_hunt_state

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])
log = structlog.get_logger()

_STATUS = {
    SubmissionNotFound: 404,
    ChallengeNotFound: 404,
    NotRegistered: 403,
    SubmissionsDisabled: 409,
    EmptyInput: 422,
    ConfigError: 422,
    StoreError: 500,
}

def _http(e: HuntError) -> HTTPException:
    return HTTPException(status_code=_STATUS.get(type(e), 500), detail=e.user_message)


@router.get("/teams", response_model=list[TeamRow])
async def list_teams(session: AsyncSession = Depends(get_session)):
    return [TeamRow(team=team, members=count) for team, count in await roster.list_teams(session)]

@router.get("/participants", response_model=list[ParticipantPublic])
async def list_participants(
    by_team: bool = Query(False),
    session: AsyncSession = Depends(get_session),
):
    people = await roster.list_participants(session, order_by_team=by_team)
    return [ParticipantPublic(id=p.id, display_name=p.display_name, team=p.team) for p in people]

@router.get("/participants/{participant_id}/score", response_model=ParticipantScore)
async def participant_score(participant_id: int, session: AsyncSession = Depends(get_session)):
    try:
        return await scoring.participant_score(session, participant_id)
    except NotRegistered:
        raise HTTPException(status_code=404, detail="Participant not found")

@router.get("/scoreboard", response_model=list[TeamScore])
async def scoreboard(session: AsyncSession = Depends(get_session)):
    return await scoring.leaderboard(session)

@router.get("/submissions", response_model=list[SubmissionView])
async def list_submissions(team: str | None = Query(None), session: AsyncSession = Depends(get_session)):
    return await scoring.list_submissions(session, team=team)

@router.get("/submissions/{submission_id}/media")
async def submission_media(submission_id: int, session: AsyncSession = Depends(get_session)):
    sub = await session.get(Submission, submission_id)
    if sub is None or not sub.storage_key:
        raise HTTPException(status_code=404, detail="Submission not found")
    try:
        data = get_bytes(sub.storage_key)
    except FileNotFoundError:
        raise HTTPException(status_code=404, detail="Media not found")
    return Response(content=data, media_type=sub.mime_type or "application/octet-stream")

@router.get("/judgements", response_model=list[JudgementView])
async def list_judgements(team: str | None = Query(None), session: AsyncSession = Depends(get_session)):
    return await scoring.list_judgements(session, team=team)

@router.post("/judgements", response_model=JudgementView)
async def record_judgement(
    payload: JudgeRequest,
    session: AsyncSession = Depends(get_session),
    transport: ChatTransport = Depends(get_transport),
):
    try:
        outcome = await judge(session, transport, payload.submission_id, payload.challenge)
    except HuntError as e:
        raise _http(e)
    return outcome.judgement

@router.get("/topics")
async def list_topics(include_closed: bool = Query(False), session: AsyncSession = Depends(get_session)):
    rows = await topics.list_topics(session, include_closed=include_closed)
    return [
        {"team": t.team, "thread_id": t.thread_id, "is_open": t.is_open, "closed_at": t.closed_at}
        for t in rows
    ]

@router.post("/topics/reconcile")
async def reconcile(
    session: AsyncSession = Depends(get_session),
    transport: ChatTransport = Depends(get_transport),
    state: HuntState = Depends(get_hunt_state),
):
    try:
        report = await topics.reconcile_topics(session, transport, state)
    except StoreError as e:
        raise _http(e)
    return {"created": report.created, "closed": report.closed, "failed": report.failed}

@router.get("/submissions-enabled", response_model=SubmissionsToggle)
async def submissions_enabled(state: HuntState = Depends(get_hunt_state)):
    return SubmissionsToggle(enabled=state.submissions_enabled)

@router.put("/submissions-enabled", response_model=SubmissionsToggle)
async def set_submissions_enabled(payload: SubmissionsToggle, state: HuntState = Depends(get_hunt_state)):
    state.submissions_enabled = payload.enabled
    log.info("submissions_toggled", enabled=payload.enabled, by="admin_api")
    return SubmissionsToggle(enabled=state.submissions_enabled)
