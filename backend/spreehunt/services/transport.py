from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol, TYPE_CHECKING
import httpx
import structlog
from spreehunt.config import settings
from spreehunt.errors import ExternalTransportError, TopicAlreadyClosed

if TYPE_CHECKING:
    from spreehunt.services.sources import SourceLocator

log = structlog.get_logger()

# rows of (label, callback_data)
Keyboard = list[list[tuple[str, str]]]


@dataclass(frozen=True)
class DownloadedMedia:
    data: bytes
    file_path: str


class ChatTransport(Protocol):
    """Outbound side of the chat platform. Every method raises ExternalTransportError on failure."""

    async def download_media(self, file_id: str) -> DownloadedMedia: ...

    async def send_message(
        self,
        chat_id: int,
        text: str,
        *,
        thread_id: int | None = None,
        reply_to: int | None = None,
        silent: bool = False,
        parse_mode: str | None = None,
        keyboard: Keyboard | None = None,
    ) -> int: ...

    async def forward_message(
        self, chat_id: int, from_chat_id: int, message_id: int, *, thread_id: int | None = None
    ) -> int: ...

    async def create_topic(self, chat_id: int, name: str) -> int: ...

    async def close_topic(self, chat_id: int, thread_id: int) -> None: ...

    async def set_reaction(self, chat_id: int, message_id: int, emoji: str | None) -> None: ...

    async def answer_callback(self, callback_id: str, text: str) -> None: ...

    async def edit_message_text(
        self, chat_id: int, message_id: int, text: str, *, parse_mode: str | None = None
    ) -> None: ...

    async def send_source(self, chat_id: int, source: SourceLocator, *, as_photo: bool) -> None: ...


def _keyboard_markup(keyboard: Keyboard) -> dict:
    return {
        "inline_keyboard": [
            [{"text": label, "callback_data": data} for (label, data) in row] for row in keyboard
        ]
    }


class TelegramTransport:
    """ChatTransport backed by the Telegram Bot API over httpx."""

    def __init__(self, token: str, api_base: str = "https://api.telegram.org", timeout: float = 30.0,
                 client: httpx.AsyncClient | None = None):
        self._token = token
        self._api_base = api_base.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _call(self, method: str, payload: dict | None = None, files: dict | None = None) -> Any:
        url = f"{self._api_base}/bot{self._token}/{method}"
        try:
            if files:
                resp = await self._client.post(url, data=payload or {}, files=files)
            else:
                resp = await self._client.post(url, json=payload or {})
            body = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise ExternalTransportError(method, str(e)) from e
        if not body.get("ok"):
            desc = str(body.get("description", ""))
            code = body.get("error_code")
            if "TOPIC_NOT_MODIFIED" in desc or "TOPIC_CLOSED" in desc:
                raise TopicAlreadyClosed(method, desc, code)
            raise ExternalTransportError(method, desc, code)
        return body.get("result")

    async def download_media(self, file_id: str) -> DownloadedMedia:
        info = await self._call("getFile", {"file_id": file_id})
        file_path = info["file_path"]
        try:
            resp = await self._client.get(f"{self._api_base}/file/bot{self._token}/{file_path}")
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise ExternalTransportError("downloadFile", str(e)) from e
        return DownloadedMedia(data=resp.content, file_path=file_path)

    async def send_message(self, chat_id, text, *, thread_id=None, reply_to=None, silent=False,
                           parse_mode=None, keyboard=None) -> int:
        payload: dict[str, Any] = {"chat_id": chat_id, "text": text}
        if thread_id is not None:
            payload["message_thread_id"] = thread_id
        if reply_to is not None:
            payload["reply_parameters"] = {"message_id": reply_to}
        if silent:
            payload["disable_notification"] = True
        if parse_mode:
            payload["parse_mode"] = parse_mode
        if keyboard:
            payload["reply_markup"] = _keyboard_markup(keyboard)
        sent = await self._call("sendMessage", payload)
        return int(sent["message_id"])

    async def forward_message(self, chat_id, from_chat_id, message_id, *, thread_id=None) -> int:
        payload: dict[str, Any] = {"chat_id": chat_id, "from_chat_id": from_chat_id, "message_id": message_id}
        if thread_id is not None:
            payload["message_thread_id"] = thread_id
        sent = await self._call("forwardMessage", payload)
        return int(sent["message_id"])

    async def create_topic(self, chat_id, name) -> int:
        topic = await self._call("createForumTopic", {
            "chat_id": chat_id,
            "name": name[:128],
            "icon_color": settings.topic_icon_color,
        })
        return int(topic["message_thread_id"])

    async def close_topic(self, chat_id, thread_id) -> None:
        await self._call("closeForumTopic", {"chat_id": chat_id, "message_thread_id": thread_id})

    async def set_reaction(self, chat_id, message_id, emoji) -> None:
        reaction = [{"type": "emoji", "emoji": emoji}] if emoji else []
        await self._call("setMessageReaction", {"chat_id": chat_id, "message_id": message_id, "reaction": reaction})

    async def answer_callback(self, callback_id, text) -> None:
        await self._call("answerCallbackQuery", {"callback_query_id": callback_id, "text": text, "show_alert": True})

    async def edit_message_text(self, chat_id, message_id, text, *, parse_mode=None) -> None:
        payload: dict[str, Any] = {"chat_id": chat_id, "message_id": message_id, "text": text}
        if parse_mode:
            payload["parse_mode"] = parse_mode
        await self._call("editMessageText", payload)

    async def send_source(self, chat_id, source, *, as_photo) -> None:
        method, field = ("sendPhoto", "photo") if as_photo else ("sendDocument", "document")
        if source.mode == "url":
            await self._call(method, {"chat_id": chat_id, field: source.path})
            return
        path = Path(source.path)
        try:
            data = path.read_bytes()
        except OSError as e:
            raise ExternalTransportError(method, f"cannot read {path}: {e}") from e
        await self._call(method, {"chat_id": str(chat_id)}, files={field: (path.name, data)})

    async def set_webhook(self, url: str, secret: str = "") -> None:
        payload: dict[str, Any] = {"url": url, "allowed_updates": ["message", "callback_query"]}
        if secret:
            payload["secret_token"] = secret
        await self._call("setWebhook", payload)
        log.info("webhook_registered", url=url)


_transport: TelegramTransport | None = None

def get_transport() -> ChatTransport:
    global _transport
    if _transport is None:
        _transport = TelegramTransport(
            settings.telegram_bot_token, settings.telegram_api_base, settings.telegram_timeout_seconds
        )
    return _transport

async def close_transport() -> None:
    global _transport
    if _transport is not None:
        await _transport.aclose()
        _transport = None
