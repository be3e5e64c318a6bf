from __future__ import annotations
from dataclasses import dataclass


class HuntError(Exception):
    """Base for every error the hunt core raises on purpose."""
    user_message = "Something went wrong"

    def __init__(self, user_message: str | None = None):
        if user_message is not None:
            self.user_message = user_message
        super().__init__(self.user_message)


# ---------- expected, user-facing outcomes ----------

class NotRegistered(HuntError):
    user_message = "You are not part of a team. Use /join_team to join a team."

class SubmissionsDisabled(HuntError):
    user_message = "Submissions are currently disabled"

class SubmissionNotFound(HuntError):
    user_message = "Submission not found"

class ChallengeNotFound(HuntError):
    user_message = "Challenge not found"

class EmptyInput(HuntError):
    user_message = "Empty input"

class ConfigError(HuntError):
    user_message = "This resource is not configured correctly"


# ---------- faults ----------

class ExternalTransportError(HuntError):
    user_message = "Could not reach the chat service"

    def __init__(self, method: str, description: str = "", status_code: int | None = None):
        self.method = method
        self.description = description
        self.status_code = status_code
        super().__init__()

    def __str__(self) -> str:
        return f"{self.method}: {self.description or 'transport failure'}"

class TopicAlreadyClosed(ExternalTransportError):
    pass

class StoreError(HuntError):
    user_message = "Something went wrong, please try again later"


USER_FACING = (NotRegistered, SubmissionsDisabled, SubmissionNotFound, ChallengeNotFound, EmptyInput, ConfigError)


@dataclass(frozen=True)
class BestEffort:
    """Result of a fire-and-forget step. Callers may drop it."""
    step: str
    error: ExternalTransportError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None
