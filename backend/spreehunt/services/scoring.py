from __future__ import annotations
from sqlalchemy import select, func, case
from sqlalchemy.ext.asyncio import AsyncSession

from spreehunt.models.participant import Participant
from spreehunt.models.submission import Judgement, Submission
from spreehunt.schemas.hunt import ChallengePoints, JudgementView, ParticipantScore, SubmissionView, TeamScore
from spreehunt.services.roster import require_participant

# Read-only rollups. Everything aggregates by the participant's *live* team:
# Judgement -> Submission -> Participant.team, never Submission.team.


async def leaderboard(session: AsyncSession) -> list[TeamScore]:
    """Every live team with its summed valid points, best first (ties by team name)."""
    valid_points = case((Judgement.valid.is_(True), Judgement.points), else_=0)
    score = func.coalesce(func.sum(valid_points), 0).label("score")
    rows = (await session.execute(
        select(Participant.team, score)
        .select_from(Participant)
        .outerjoin(Submission, Submission.participant_id == Participant.id)
        .outerjoin(Judgement, Judgement.submission_id == Submission.message_id)
        .group_by(Participant.team)
        .order_by(score.desc(), Participant.team)
    )).all()
    return [TeamScore(team=team, score=int(total or 0)) for (team, total) in rows]


async def participant_score(session: AsyncSession, participant_id: int) -> ParticipantScore:
    me = await require_participant(session, participant_id)

    breakdown_rows = (await session.execute(
        select(Judgement.challenge_name, func.sum(Judgement.points))
        .join(Submission, Submission.message_id == Judgement.submission_id)
        .join(Participant, Participant.id == Submission.participant_id)
        .where(Participant.team == me.team, Judgement.valid.is_(True))
        .group_by(Judgement.challenge_name)
        .order_by(Judgement.challenge_name)
    )).all()
    breakdown = [ChallengePoints(challenge_name=name, points=int(pts or 0)) for (name, pts) in breakdown_rows]

    submissions = await session.scalar(
        select(func.count(Submission.message_id))
        .join(Participant, Participant.id == Submission.participant_id)
        .where(Participant.team == me.team)
    ) or 0

    return ParticipantScore(
        team=me.team,
        breakdown=breakdown,
        total=sum(c.points for c in breakdown),
        submissions=int(submissions),
    )


async def list_submissions(session: AsyncSession, *, team: str | None = None) -> list[SubmissionView]:
    q = (
        select(Submission, Participant)
        .join(Participant, Participant.id == Submission.participant_id)
        .order_by(Submission.created_at, Submission.message_id)
    )
    if team is not None:
        q = q.where(Participant.team == team)
    rows = (await session.execute(q)).all()
    return [
        SubmissionView(
            message_id=s.message_id,
            team=s.team,
            username=p.username,
            first_name=p.first_name,
            last_name=p.last_name,
            created_at=s.created_at,
            caption=s.caption,
            kind=s.kind,
        )
        for (s, p) in rows
    ]


async def list_judgements(session: AsyncSession, *, team: str | None = None) -> list[JudgementView]:
    q = select(Judgement).order_by(Judgement.submission_id)
    if team is not None:
        q = (
            q.join(Submission, Submission.message_id == Judgement.submission_id)
            .join(Participant, Participant.id == Submission.participant_id)
            .where(Participant.team == team)
        )
    rows = (await session.execute(q.execution_options(populate_existing=True))).scalars().all()
    return [
        JudgementView(submission_id=j.submission_id, challenge_name=j.challenge_name, points=j.points, valid=j.valid)
        for j in rows
    ]
