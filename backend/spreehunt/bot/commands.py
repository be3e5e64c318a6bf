from __future__ import annotations
from dataclasses import dataclass

PARTICIPANT_COMMANDS: dict[str, str] = {
    "start": "",
    "join_team": "Join a team. E.g. /join_team team123",
    "team_overview": "Show the team members.",
    "score": "Shows your team score.",
    "emergency_information": "Current safety team and emergency numbers.",
    "survival_guide": "Get the survival guide.",
    "schedule": "Show the schedule.",
    "help": "Shows this message.",
}

MAINTAINER_COMMANDS: dict[str, str] = {
    "enable_submissions": "Enable or disable submissions. E.g. /enable_submissions false",
    "list_teams": "List teams without team members",
    "list_team_members": "List teams and their respective members",
    "scoreboard": "Leaderboard",
    "list_team_submissions": "[CAUTION] List submission for each team",
    "list_team_submission_judgments": "[CAUTION] List judged submission for each team",
    "update_team_forums": "Force update team forums",
    "message_to_participants": "Send a message to all users",
    "list_participants": "List participants",
    "judge": "Rate a submission. E.g. /judge 1234 challenge_name",
    "list_submissions": "[CAUTION] List submissions",
    "list_judgements": "[CAUTION] List judgements",
}

ALIASES = {
    "join": "join_team",
    "update_channels": "update_team_forums",
    "broadcast": "message_to_participants",
}

_TRUE = {"true", "1", "yes", "on"}
_FALSE = {"false", "0", "no", "off"}


@dataclass(frozen=True)
class Command:
    name: str
    args: str = ""


def parse_command(text: str | None, bot_username: str | None = None) -> Command | None:
    """Parse '/name@bot rest of line'. Returns None for plain text or commands addressed to another bot."""
    if not text or not text.startswith("/"):
        return None
    parts = text[1:].split(maxsplit=1)
    if not parts:
        return None
    head = parts[0]
    args = parts[1].strip() if len(parts) > 1 else ""
    name, _, mention = head.partition("@")
    if mention and bot_username and mention.lower() != bot_username.lower():
        return None
    name = name.lower()
    return Command(ALIASES.get(name, name), args)


def parse_bool(raw: str) -> bool | None:
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    return None


def describe(commands: dict[str, str]) -> str:
    return "\n".join(f"/{name} - {desc}" for name, desc in commands.items() if desc)


def help_text(is_maintainer: bool) -> str:
    text = "These commands are supported:\n\n" + describe(PARTICIPANT_COMMANDS)
    if is_maintainer:
        text += "\n\nMaintainer commands:\n\n" + describe(MAINTAINER_COMMANDS)
    return text
