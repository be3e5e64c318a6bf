from __future__ import annotations
import html
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from spreehunt.bot.commands import (
    Command, MAINTAINER_COMMANDS, PARTICIPANT_COMMANDS, help_text, parse_bool, parse_command,
)
from spreehunt.bot.formatting import (
    chunk_text, decision_text, decode_choice, judgement_line, score_text, scoreboard_text, submission_message,
)
from spreehunt.config import settings
from spreehunt.errors import EmptyInput, ExternalTransportError, StoreError, USER_FACING
from spreehunt.schemas.telegram import IncomingMedia, TgCallbackQuery, TgMessage, TgUpdate
from spreehunt.services import broadcast as broadcast_service
from spreehunt.services import roster, scoring, safety, sources
from spreehunt.services.best_effort import attempt
from spreehunt.services.judging import judge
from spreehunt.services.submissions import submit
from spreehunt.services.topics import reconcile_topics
from spreehunt.services.transport import ChatTransport
from spreehunt.state import HuntState

log = structlog.get_logger()

PRIVATE_ONLY = "Please use me in a private chat"
START_TEXT = (
    "Check /help for ways that I can provide you help.\n\n"
    "To get started with the photo challenge use /join_team followed by the team name. "
    "The team name must be identical for all team members.\n\n"
    "Any photos or videos you sent me will be submissions to photo challenge. "
    "Please consider adding meaningful captions!"
)


class Context:
    """Everything a handler needs for one update."""

    def __init__(self, session: AsyncSession, transport: ChatTransport, state: HuntState, msg: TgMessage):
        self.session = session
        self.transport = transport
        self.state = state
        self.msg = msg

    @property
    def chat_id(self) -> int:
        return self.msg.chat.id

    @property
    def user_id(self) -> int:
        return self.msg.from_user.id if self.msg.from_user else self.msg.chat.id

    async def reply(self, text: str, *, parse_mode: str | None = None) -> None:
        for part in chunk_text(text):
            await self.transport.send_message(
                self.chat_id, part, thread_id=self.msg.message_thread_id, parse_mode=parse_mode
            )


async def dispatch(update: TgUpdate, session: AsyncSession, transport: ChatTransport, state: HuntState) -> None:
    if update.callback_query is not None:
        await handle_callback(update.callback_query, session, transport)
        return
    if update.message is None:
        log.debug("update_ignored", update_id=update.update_id)
        return

    ctx = Context(session, transport, state, update.message)
    try:
        await route_message(ctx)
    except USER_FACING as e:
        # expected outcome, not a fault
        await attempt("reply", ctx.reply(e.user_message), chat_id=ctx.chat_id)
    except StoreError as e:
        log.error("request_failed", chat_id=ctx.chat_id, error=repr(e.__cause__ or e))
        await attempt("reply", ctx.reply(e.user_message), chat_id=ctx.chat_id)
    except SQLAlchemyError as e:
        # reads outside the service write paths
        await ctx.session.rollback()
        log.error("request_failed", chat_id=ctx.chat_id, error=repr(e))
        await attempt("reply", ctx.reply(StoreError.user_message), chat_id=ctx.chat_id)
    except ExternalTransportError as e:
        log.warning("transport_failed", chat_id=ctx.chat_id, error=str(e))
        await attempt("reply", ctx.reply("Sorry, something went wrong while talking to Telegram."),
                      chat_id=ctx.chat_id)


async def route_message(ctx: Context) -> None:
    msg = ctx.msg
    judge_chat = settings.judge_chat_id
    cmd = parse_command(msg.text)

    if cmd is not None and cmd.name in PARTICIPANT_COMMANDS and (msg.chat.is_private or msg.chat.id == judge_chat):
        await participant_command(ctx, cmd)
        return
    if (
        cmd is not None and cmd.name in MAINTAINER_COMMANDS
        and msg.from_user is not None and settings.is_maintainer(msg.from_user.id)
        and msg.chat.is_private
    ):
        await maintainer_command(ctx, cmd)
        return

    if msg.chat.id == judge_chat:
        return
    if msg.chat.is_private and msg.from_user is not None:
        media = IncomingMedia.from_message(msg)
        if media is not None:
            await submit(
                ctx.session, ctx.transport, ctx.state,
                participant_id=msg.from_user.id,
                chat_id=msg.chat.id,
                message_id=msg.message_id,
                media=media,
                caption=msg.caption,
            )
            return

    if msg.chat.is_group:
        await ctx.reply(PRIVATE_ONLY)
    elif msg.text:
        await ctx.reply("Sorry, I didn't understand your message. /help")
    else:
        await ctx.reply("Sorry, this type of message isn't supported.")


# ---------- participant commands ----------

async def participant_command(ctx: Context, cmd: Command) -> None:
    if ctx.msg.chat.is_group and cmd.name != "help":
        await ctx.reply(PRIVATE_ONLY)
        return

    if cmd.name == "start":
        first_name = ctx.msg.chat.first_name or (ctx.msg.from_user.first_name if ctx.msg.from_user else "")
        await ctx.reply(f"Hello {first_name or 'Spree Breaker'}")
        await ctx.reply(START_TEXT)
    elif cmd.name == "help":
        await ctx.reply(help_text(settings.is_maintainer(ctx.user_id)))
    elif cmd.name == "join_team":
        await join_team(ctx, cmd.args)
    elif cmd.name == "team_overview":
        team, members = await roster.team_members(ctx.session, ctx.user_id)
        lines = "\n".join(f"- {html.escape(m.display_name)}" for m in members) or "No team members yet"
        await ctx.reply(
            f"Overview team <code>{html.escape(team)}</code>\n\n{len(members)} Member(s):\n{lines}",
            parse_mode="HTML",
        )
    elif cmd.name == "score":
        await ctx.reply(score_text(await scoring.participant_score(ctx.session, ctx.user_id)))
    elif cmd.name == "schedule":
        locator = await sources.resolve_source(ctx.session, sources.SCHEDULE_SOURCE)
        await ctx.transport.send_source(ctx.chat_id, locator, as_photo=True)
    elif cmd.name == "survival_guide":
        locator = await sources.resolve_source(ctx.session, sources.CITY_GUIDE)
        await ctx.transport.send_source(ctx.chat_id, locator, as_photo=False)
    elif cmd.name == "emergency_information":
        members = await safety.current_safety_team(ctx.session)
        team_list = "\n".join(f"{html.escape(m.name)}: {html.escape(m.phone)}" for m in members)
        await ctx.reply(
            "Our safety team right now. Do not hesitate to talk to any other tutors.\n"
            f"{team_list or 'No safety team available right now'}\n\n{safety.EMERGENCY_NUMBERS}",
            parse_mode="HTML",
        )


async def join_team(ctx: Context, team: str) -> None:
    user = ctx.msg.from_user
    if user is None:
        return
    participant = await roster.join_team(ctx.session, user, team)
    await ctx.reply(
        f"You joined team <code>{html.escape(participant.team)}</code>\n\n"
        "Check the team members with /team_overview.\n"
        "Don't change your team (name) after the first submission; previous submissions will not count anymore",
        parse_mode="HTML",
    )
    try:
        await reconcile_topics(ctx.session, ctx.transport, ctx.state)
    except StoreError:
        # the join itself succeeded; the next reconcile picks the team up
        log.warning("reconcile_after_join_failed", team=participant.team)


# ---------- maintainer commands ----------

async def maintainer_command(ctx: Context, cmd: Command) -> None:
    session = ctx.session

    if cmd.name == "enable_submissions":
        status = parse_bool(cmd.args)
        if status is None:
            raise EmptyInput("Usage: /enable_submissions true|false")
        ctx.state.submissions_enabled = status
        log.info("submissions_toggled", enabled=status, by=ctx.user_id)
        await ctx.reply(f"Submissions {'enabled' if status else 'disabled'}")
    elif cmd.name == "list_teams":
        teams = await roster.list_teams(session)
        await ctx.reply("Teams:\n" + "\n".join(f"- {team} (#{count})" for team, count in teams))
    elif cmd.name == "list_team_members":
        people = await roster.list_participants(session, order_by_team=True)
        await ctx.reply("Participants:\n" + "\n".join(f"- {p.display_name} (#{p.id}) -> {p.team}" for p in people))
    elif cmd.name == "list_participants":
        people = await roster.list_participants(session)
        await ctx.reply("Participants:\n" + "\n".join(f"- {p.display_name} (#{p.id})" for p in people))
    elif cmd.name == "scoreboard":
        await ctx.reply(scoreboard_text(await scoring.leaderboard(session)))
    elif cmd.name == "list_team_submissions":
        for row in await scoring.leaderboard(session):
            subs = await scoring.list_submissions(session, team=row.team)
            body = "\n\n".join(submission_message(s) for s in subs)
            await ctx.reply(f"Submissions for team `{row.team}`:\n{body}")
    elif cmd.name == "list_team_submission_judgments":
        for row in await scoring.leaderboard(session):
            judgements = await scoring.list_judgements(session, team=row.team)
            body = "\n".join(judgement_line(j) for j in judgements)
            await ctx.reply(f"Judgements for team `{row.team}`:\n{body}")
    elif cmd.name == "update_team_forums":
        report = await reconcile_topics(session, ctx.transport, ctx.state)
        failed = ", ".join(f"{team} ({reason})" for team, reason in report.failed.items()) or "-"
        await ctx.reply(
            f"Topics updated.\nCreated: {', '.join(report.created) or '-'}\n"
            f"Closed: {', '.join(report.closed) or '-'}\nFailed: {failed}"
        )
    elif cmd.name == "message_to_participants":
        sender = ctx.msg.from_user
        if sender is None:
            return
        report = await broadcast_service.broadcast(session, ctx.transport, sender, cmd.args)
        suffix = f" ({len(report.failed)} failed: {', '.join(map(str, report.failed))})" if report.failed else ""
        await ctx.reply(f"Message sent{suffix}")
    elif cmd.name == "judge":
        submission_id, choice = _judge_args(cmd.args)
        await judge(session, ctx.transport, submission_id, choice)
        await ctx.reply("Submission successfully judged")
    elif cmd.name == "list_submissions":
        subs = await scoring.list_submissions(session)
        await ctx.reply("Submissions:\n" + "\n\n".join(submission_message(s) for s in subs))
    elif cmd.name == "list_judgements":
        judgements = await scoring.list_judgements(session)
        await ctx.reply("Judgements:\n" + "\n".join(judgement_line(j) for j in judgements))


def _judge_args(args: str) -> tuple[int, str]:
    usage = "Usage: /judge <submission id> <challenge>"
    parts = args.split()
    if len(parts) != 2 or not parts[0].isascii():
        raise EmptyInput(usage)
    try:
        return int(parts[0]), parts[1]
    except ValueError as e:
        raise EmptyInput(usage) from e


# ---------- judging buttons ----------

async def handle_callback(q: TgCallbackQuery, session: AsyncSession, transport: ChatTransport) -> None:
    if not q.data:
        return
    if q.message is not None and q.message.chat.id != settings.judge_chat_id:
        log.warning("callback_outside_judge_chat", chat_id=q.message.chat.id, user_id=q.from_user.id)
        return
    try:
        choice = decode_choice(q.data)
    except ValueError:
        log.warning("callback_malformed", data=q.data)
        return
    log.debug("callback_received", participant=choice.participant_id, submission=choice.submission_id,
              choice=choice.choice)

    try:
        await judge(session, transport, choice.submission_id, choice.choice, participant_id=choice.participant_id)
    except USER_FACING as e:
        await attempt("answer_callback", transport.answer_callback(q.id, e.user_message))
        return
    except StoreError as e:
        log.error("callback_judge_failed", submission_id=choice.submission_id, error=repr(e.__cause__ or e))
        await attempt("answer_callback", transport.answer_callback(q.id, e.user_message))
        return
    except SQLAlchemyError as e:
        await session.rollback()
        log.error("callback_judge_failed", submission_id=choice.submission_id, error=repr(e))
        await attempt("answer_callback", transport.answer_callback(q.id, StoreError.user_message))
        return

    await attempt("answer_callback", transport.answer_callback(q.id, f"Choice = {choice.choice}"))
    if q.message is not None:
        await attempt(
            "edit_prompt",
            transport.edit_message_text(
                q.message.chat.id, q.message.message_id,
                decision_text(choice.choice, choice.submission_id), parse_mode="HTML",
            ),
        )
    log.info("judge_chose", submission_id=choice.submission_id, choice=choice.choice)
