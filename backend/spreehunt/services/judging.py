from __future__ import annotations
from dataclasses import dataclass, field
from sqlalchemy import select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from spreehunt.config import settings
from spreehunt.errors import BestEffort, ChallengeNotFound, StoreError, SubmissionNotFound
from spreehunt.models.challenge import Challenge, SENTINELS, UNCLEAR, INVALID
from spreehunt.models.participant import Participant
from spreehunt.models.submission import Judgement, Submission
from spreehunt.schemas.hunt import JudgementView
from spreehunt.services.best_effort import attempt
from spreehunt.services.transport import ChatTransport

log = structlog.get_logger()

# Flat scoring: every valid judgement is worth the same, regardless of the catalog entry.
POINTS_PER_VALID = 1

FEEDBACK_TEXT = {
    UNCLEAR: "Please resend your submission with a clear caption",
    INVALID: "Your submission is invalid",
}


@dataclass
class JudgeOutcome:
    judgement: JudgementView
    owner_id: int
    feedback: list[BestEffort] = field(default_factory=list)


def score_for(challenge_name: str) -> tuple[int, bool]:
    """(points, valid) for a resolved challenge name or sentinel."""
    if challenge_name in SENTINELS:
        return 0, False
    return POINTS_PER_VALID, True


async def resolve_challenge(session: AsyncSession, choice: str) -> str:
    if choice in SENTINELS:
        return choice
    name = await session.scalar(select(Challenge.name).where(Challenge.name == choice))
    if name is None:
        raise ChallengeNotFound()
    return name


async def judge(
    session: AsyncSession,
    transport: ChatTransport,
    submission_id: int,
    choice: str,
    *,
    participant_id: int | None = None,
) -> JudgeOutcome:
    """
    Record (or overwrite) the judgement for a submission and notify the submitter.

    The submission is resolved before the challenge, so an unknown submission is
    reported as SubmissionNotFound even when the challenge is unknown too.
    `participant_id` is the owner as seen by the caller (e.g. from button data);
    the stored owner is authoritative.
    """
    try:
        owner_id = await session.scalar(
            select(Participant.id)
            .join(Submission, Submission.participant_id == Participant.id)
            .where(Submission.message_id == submission_id)
        )
        if owner_id is None:
            raise SubmissionNotFound()
        challenge_name = await resolve_challenge(session, choice.strip())
    except SQLAlchemyError as e:
        await session.rollback()
        log.error("judge_lookup_failed", submission_id=submission_id, error=str(e))
        raise StoreError() from e
    if participant_id is not None and participant_id != owner_id:
        log.warning("judge_owner_mismatch", submission_id=submission_id, claimed=participant_id, owner=owner_id)

    points, valid = score_for(challenge_name)

    try:
        await session.execute(text("""
            INSERT INTO judgements (submission_id, challenge_name, points, valid, judged_at)
            VALUES (:submission_id, :challenge_name, :points, :valid, CURRENT_TIMESTAMP)
            ON CONFLICT (submission_id) DO UPDATE SET
                challenge_name = excluded.challenge_name,
                points = excluded.points,
                valid = excluded.valid,
                judged_at = excluded.judged_at
        """), {
            "submission_id": submission_id,
            "challenge_name": challenge_name,
            "points": points,
            "valid": valid,
        })
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        log.error("judgement_upsert_failed", submission_id=submission_id, error=str(e))
        raise StoreError() from e
    log.info("submission_judged", submission_id=submission_id, challenge=challenge_name, points=points, valid=valid)

    outcome = JudgeOutcome(
        judgement=JudgementView(submission_id=submission_id, challenge_name=challenge_name, points=points, valid=valid),
        owner_id=owner_id,
    )
    outcome.feedback = await _notify_submitter(transport, owner_id, submission_id, challenge_name, valid)
    return outcome


async def _notify_submitter(
    transport: ChatTransport, owner_id: int, submission_id: int, challenge_name: str, valid: bool
) -> list[BestEffort]:
    # The private chat id equals the user id. The original message may be gone by now.
    if valid:
        return [await attempt(
            "reaction", transport.set_reaction(owner_id, submission_id, settings.valid_reaction),
            submission_id=submission_id,
        )]
    return [
        await attempt(
            "notice",
            transport.send_message(owner_id, FEEDBACK_TEXT[challenge_name], reply_to=submission_id),
            submission_id=submission_id,
        ),
        await attempt(
            "clear_reaction", transport.set_reaction(owner_id, submission_id, None),
            submission_id=submission_id,
        ),
    ]


async def get_judgement(session: AsyncSession, submission_id: int) -> Judgement | None:
    return await session.get(Judgement, submission_id, populate_existing=True)
