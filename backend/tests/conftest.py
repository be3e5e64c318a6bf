from __future__ import annotations
import asyncio
import io
import itertools
import pytest
import pytest_asyncio
from PIL import Image
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from spreehunt.config import settings
from spreehunt.db import create_schema
from spreehunt.errors import ExternalTransportError, TopicAlreadyClosed
from spreehunt.models.challenge import Challenge
from spreehunt.schemas.telegram import IncomingMedia, TgUser
from spreehunt.services.transport import DownloadedMedia
from spreehunt.state import HuntState

JUDGE_CHAT = -1001234


def png_bytes() -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (4, 4), (200, 30, 30)).save(buf, "PNG")
    return buf.getvalue()


class FakeTransport:
    """In-memory chat transport. Records every call; `fail` holds method names that raise."""

    def __init__(self):
        self.calls: list[tuple[str, dict]] = []
        self.fail: set[str] = set()
        self.fail_topics: set[str] = set()
        self.already_closed: set[int] = set()
        self.media = png_bytes()
        self._ids = itertools.count(5000)

    def _record(self, method: str, **kw) -> None:
        self.calls.append((method, kw))
        if method in self.fail:
            raise ExternalTransportError(method, "boom")

    def sent(self, method: str) -> list[dict]:
        return [kw for (m, kw) in self.calls if m == method]

    async def download_media(self, file_id):
        self._record("download_media", file_id=file_id)
        return DownloadedMedia(data=self.media, file_path=f"photos/{file_id}.png")

    async def send_message(self, chat_id, text, *, thread_id=None, reply_to=None, silent=False,
                           parse_mode=None, keyboard=None):
        self._record("send_message", chat_id=chat_id, text=text, thread_id=thread_id, reply_to=reply_to,
                     silent=silent, parse_mode=parse_mode, keyboard=keyboard)
        return next(self._ids)

    async def forward_message(self, chat_id, from_chat_id, message_id, *, thread_id=None):
        self._record("forward_message", chat_id=chat_id, from_chat_id=from_chat_id, message_id=message_id,
                     thread_id=thread_id)
        return next(self._ids)

    async def create_topic(self, chat_id, name):
        # yield so concurrent reconciles interleave here if nothing serializes them
        await asyncio.sleep(0)
        self._record("create_topic", chat_id=chat_id, name=name)
        if name in self.fail_topics:
            raise ExternalTransportError("createForumTopic", "Bad Request: not enough rights")
        return next(self._ids)

    async def close_topic(self, chat_id, thread_id):
        self._record("close_topic", chat_id=chat_id, thread_id=thread_id)
        if thread_id in self.already_closed:
            raise TopicAlreadyClosed("closeForumTopic", "Bad Request: TOPIC_NOT_MODIFIED")

    async def set_reaction(self, chat_id, message_id, emoji):
        self._record("set_reaction", chat_id=chat_id, message_id=message_id, emoji=emoji)

    async def answer_callback(self, callback_id, text):
        self._record("answer_callback", callback_id=callback_id, text=text)

    async def edit_message_text(self, chat_id, message_id, text, *, parse_mode=None):
        self._record("edit_message_text", chat_id=chat_id, message_id=message_id, text=text, parse_mode=parse_mode)

    async def send_source(self, chat_id, source, *, as_photo):
        self._record("send_source", chat_id=chat_id, source=source, as_photo=as_photo)


@pytest.fixture(autouse=True)
def hunt_settings(monkeypatch, tmp_path):
    monkeypatch.setattr(settings, "judge_chat_id", JUDGE_CHAT)
    monkeypatch.setattr(settings, "maintainers", [900])
    monkeypatch.setattr(settings, "media_backend", "local")
    monkeypatch.setattr(settings, "submissions_dir", str(tmp_path / "submissions"))
    monkeypatch.setattr(settings, "admin_token", "letmein")
    monkeypatch.setattr(settings, "webhook_secret", "")
    return settings


@pytest_asyncio.fixture
async def engine(tmp_path):
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'hunt.db'}")
    await create_schema(eng)
    yield eng
    await eng.dispose()


@pytest.fixture
def sessionmaker(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(sessionmaker):
    async with sessionmaker() as s:
        yield s


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def state():
    return HuntState(submissions_enabled=True)


def user(uid: int, first_name: str = "Pat", username: str | None = None) -> TgUser:
    return TgUser(id=uid, first_name=first_name, username=username)


def photo(file_id: str = "f1") -> IncomingMedia:
    return IncomingMedia(kind="photo", file_id=file_id)


async def seed_challenges(session, *names: str) -> None:
    for name in names:
        session.add(Challenge(name=name, short_name=name.replace("_", " ").title(), points=1))
    await session.commit()
