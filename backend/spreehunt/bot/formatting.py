from __future__ import annotations
import html
from dataclasses import dataclass
from typing import Iterable
import structlog

from spreehunt.models.challenge import Challenge, UNCLEAR, INVALID
from spreehunt.schemas.hunt import JudgementView, ParticipantScore, SubmissionView, TeamScore
from spreehunt.services.transport import Keyboard

CALLBACK_SEP = "###"
MAX_MESSAGE_LEN = 4000  # Telegram caps messages at 4096 chars
MAX_CALLBACK_BYTES = 64

log = structlog.get_logger()


@dataclass(frozen=True)
class JudgeChoice:
    participant_id: int
    submission_id: int
    choice: str


def encode_choice(participant_id: int, submission_id: int, choice: str) -> str:
    return CALLBACK_SEP.join((str(participant_id), str(submission_id), choice))


def decode_choice(data: str) -> JudgeChoice:
    parts = data.split(CALLBACK_SEP)
    if len(parts) != 3:
        raise ValueError(f"malformed callback data: {data!r}")
    participant, submission, choice = parts
    return JudgeChoice(int(participant), int(submission), choice)


def judging_keyboard(participant_id: int, submission_id: int, challenges: Iterable[Challenge]) -> Keyboard:
    """One button per open challenge, then the two terminal outcomes side by side."""
    rows: Keyboard = []
    for c in challenges:
        data = encode_choice(participant_id, submission_id, c.name)
        if len(data.encode()) > MAX_CALLBACK_BYTES:
            # Telegram rejects the whole keyboard otherwise; /judge still works for this one
            log.warning("challenge_button_skipped", challenge=c.name, submission_id=submission_id, size=len(data.encode()))
            continue
        rows.append([(c.short_name, data)])
    rows.append([
        ("⚠️ Unclear", encode_choice(participant_id, submission_id, UNCLEAR)),
        ("❌ Invalid", encode_choice(participant_id, submission_id, INVALID)),
    ])
    return rows


def submission_message(sub: SubmissionView) -> str:
    created = sub.created_at.strftime("%Y-%m-%dT%H:%M:%S") if sub.created_at else "-"
    return (
        f"Submission from @{sub.username or '-'} ({sub.first_name} {sub.last_name or 'NO-LASTNAME'})\n"
        f"Team: {sub.team}\n"
        f"Time: {created}\n"
        f"Caption: {sub.caption or 'N/P'}\n"
        f"ID: {sub.message_id}"
    )


def judgement_line(j: JudgementView) -> str:
    return f"- ref=`{j.submission_id}` challenge=`{j.challenge_name}` pts={j.points} valid={str(j.valid).lower()}"


def scoreboard_text(rows: list[TeamScore]) -> str:
    lines = [f"{place}. `{r.team}` with {r.score} pts." for place, r in enumerate(rows, start=1)]
    return "Scoreboard:\n" + ("\n".join(lines) if lines else "No teams yet")


def score_text(score: ParticipantScore) -> str:
    lines = "\n".join(f"- {c.challenge_name} +{c.points} pts." for c in score.breakdown)
    return f"{lines}\n\nTotal score from {score.submissions} submissions: {score.total}".lstrip("\n")


def decision_text(choice: str, submission_id: int) -> str:
    return (
        f"Decision <b>{html.escape(choice)}</b>\n\n"
        f"Overwrite with '/judge {submission_id} [challenge]'"
    )


def chunk_text(text: str, limit: int = MAX_MESSAGE_LEN) -> list[str]:
    """Split on line boundaries so each piece fits into one chat message."""
    if len(text) <= limit:
        return [text]
    chunks: list[str] = []
    current = ""
    for line in text.split("\n"):
        while len(line) > limit:
            if current:
                chunks.append(current)
                current = ""
            chunks.append(line[:limit])
            line = line[limit:]
        candidate = f"{current}\n{line}" if current else line
        if len(candidate) > limit:
            chunks.append(current)
            current = line
        else:
            current = candidate
    if current:
        chunks.append(current)
    return chunks
