from __future__ import annotations
from dataclasses import dataclass, field
from sqlalchemy import select, text, and_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from spreehunt.bot.formatting import judging_keyboard, submission_message
from spreehunt.config import settings
from spreehunt.errors import BestEffort, ExternalTransportError, NotRegistered, StoreError, SubmissionsDisabled
from spreehunt.models.challenge import Challenge
from spreehunt.models.participant import Participant
from spreehunt.models.submission import Judgement, Submission
from spreehunt.models.topic import TeamTopic
from spreehunt.schemas.hunt import SubmissionView
from spreehunt.schemas.telegram import IncomingMedia
from spreehunt.services.best_effort import attempt
from spreehunt.services.media import content_type_for
from spreehunt.services.roster import get_participant
from spreehunt.services.storage import put_bytes, submission_key
from spreehunt.services.transport import ChatTransport
from spreehunt.state import HuntState

log = structlog.get_logger()


@dataclass
class SubmissionReceipt:
    submission: SubmissionView
    thread_id: int | None
    remaining: list[Challenge] = field(default_factory=list)
    routing: list[BestEffort] = field(default_factory=list)

    @property
    def routed(self) -> bool:
        return all(step.ok for step in self.routing)


async def remaining_challenges(session: AsyncSession, team: str) -> list[Challenge]:
    """
    Catalog challenges the team has not yet completed.
    Only *valid* judgements count as completed; unclear / invalid attempts stay open for a retry.
    Completion follows live membership, same as scoring.
    """
    completed = (
        select(Judgement.challenge_name)
        .join(Submission, Submission.message_id == Judgement.submission_id)
        .join(Participant, Participant.id == Submission.participant_id)
        .where(Participant.team == team, Judgement.valid.is_(True))
    )
    rows = (await session.execute(
        select(Challenge).where(Challenge.name.not_in(completed)).order_by(Challenge.name)
    )).scalars().all()
    return list(rows)


async def load_submission_view(session: AsyncSession, message_id: int) -> SubmissionView | None:
    """Submission joined with its participant and the open topic of its (frozen) team."""
    row = (await session.execute(
        select(Submission, Participant, TeamTopic.thread_id)
        .join(Participant, Participant.id == Submission.participant_id)
        .outerjoin(TeamTopic, and_(TeamTopic.team == Submission.team, TeamTopic.is_open.is_(True)))
        .where(Submission.message_id == message_id)
        .limit(1)
    )).first()
    if row is None:
        return None
    s, p, thread_id = row
    return SubmissionView(
        message_id=s.message_id,
        team=s.team,
        username=p.username,
        first_name=p.first_name,
        last_name=p.last_name,
        created_at=s.created_at,
        caption=s.caption,
        kind=s.kind,
        thread_id=thread_id,
    )


async def submit(
    session: AsyncSession,
    transport: ChatTransport,
    state: HuntState,
    *,
    participant_id: int,
    chat_id: int,
    message_id: int,
    media: IncomingMedia,
    caption: str | None,
) -> SubmissionReceipt:
    """
    Accept a photo/video proof and route it to the judges.

    Guards (in order): kill switch, team binding. Then the media is downloaded and stored,
    the submission row is committed, and the forward + judging prompt are sent best-effort.
    Nothing after the insert is rolled back; routing failures end up in `receipt.routing`.
    """
    if not state.submissions_enabled:
        raise SubmissionsDisabled()
    participant = await get_participant(session, participant_id)
    if participant is None:
        raise NotRegistered()

    downloaded = await transport.download_media(media.file_id)
    key = submission_key(message_id, downloaded.file_path)
    mime = content_type_for(media.kind, downloaded.data, media.mime_type)
    put_bytes(key, downloaded.data, mime)
    log.info("media_stored", submission_id=message_id, key=key, mime=mime, size=len(downloaded.data))

    try:
        # the team is read inside the insert so it is the binding at this exact instant
        result = await session.execute(text("""
            INSERT INTO submissions (message_id, participant_id, team, caption, kind, storage_key, mime_type)
            SELECT :message_id, id, team, :caption, :kind, :storage_key, :mime_type
            FROM participants WHERE id = :participant_id
        """), {
            "message_id": message_id,
            "participant_id": participant_id,
            "caption": caption or "",
            "kind": media.kind,
            "storage_key": key,
            "mime_type": mime,
        })
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        log.error("submission_insert_failed", submission_id=message_id, error=str(e))
        raise StoreError() from e
    if result.rowcount == 0:
        raise NotRegistered()

    view = await load_submission_view(session, message_id)
    if view is None:
        raise StoreError()
    log.info("submission_received", submission_id=message_id, team=view.team, kind=media.kind,
             thread_id=view.thread_id)
    if view.thread_id is None:
        log.warning("team_topic_missing", team=view.team, submission_id=message_id)

    receipt = SubmissionReceipt(submission=view, thread_id=view.thread_id)
    await _route_to_judges(session, transport, receipt, participant_id=participant_id, chat_id=chat_id)
    return receipt


async def _route_to_judges(
    session: AsyncSession, transport: ChatTransport, receipt: SubmissionReceipt, *, participant_id: int, chat_id: int
) -> None:
    view, thread_id = receipt.submission, receipt.thread_id
    judge_chat = settings.judge_chat_id

    try:
        forwarded_id = await transport.forward_message(judge_chat, chat_id, view.message_id, thread_id=thread_id)
        receipt.routing.append(BestEffort("forward"))
    except ExternalTransportError as e:
        log.warning("best_effort_failed", step="forward", submission_id=view.message_id, error=str(e))
        receipt.routing.append(BestEffort("forward", e))
        forwarded_id = None

    if forwarded_id is not None:
        receipt.routing.append(await attempt(
            "summary",
            transport.send_message(judge_chat, submission_message(view), thread_id=thread_id,
                                   reply_to=forwarded_id, silent=True),
            submission_id=view.message_id,
        ))

    try:
        receipt.remaining = await remaining_challenges(session, view.team)
    except SQLAlchemyError as e:
        # still offer the terminal outcomes so the submission can be judged
        await session.rollback()
        log.error("remaining_challenges_failed", submission_id=view.message_id, error=str(e))
        receipt.remaining = []

    receipt.routing.append(await attempt(
        "prompt",
        transport.send_message(
            judge_chat, "Select challenge or action", thread_id=thread_id, silent=True,
            keyboard=judging_keyboard(participant_id, view.message_id, receipt.remaining),
        ),
        submission_id=view.message_id,
    ))

    failed = [step.step for step in receipt.routing if not step.ok]
    if failed:
        await attempt(
            "routing_notice",
            transport.send_message(
                judge_chat,
                f"Routing of submission {view.message_id} (team {view.team}) failed at: {', '.join(failed)}. "
                f"Judge it with /judge {view.message_id} [challenge]",
            ),
            submission_id=view.message_id,
        )
