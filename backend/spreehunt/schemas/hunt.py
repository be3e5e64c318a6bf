from __future__ import annotations
from datetime import datetime
from pydantic import BaseModel, Field


class ParticipantPublic(BaseModel):
    id: int
    display_name: str
    team: str


class TeamRow(BaseModel):
    team: str
    members: int


class TeamScore(BaseModel):
    team: str
    score: int


class ChallengePoints(BaseModel):
    challenge_name: str
    points: int


class ParticipantScore(BaseModel):
    team: str
    breakdown: list[ChallengePoints] = Field(default_factory=list)
    total: int = 0
    submissions: int = 0


class SubmissionView(BaseModel):
    message_id: int
    team: str
    username: str | None = None
    first_name: str = ""
    last_name: str | None = None
    created_at: datetime | None = None
    caption: str = ""
    kind: str
    thread_id: int | None = None


class JudgementView(BaseModel):
    submission_id: int
    challenge_name: str
    points: int
    valid: bool


class JudgeRequest(BaseModel):
    submission_id: int
    challenge: str


class SubmissionsToggle(BaseModel):
    enabled: bool
