from __future__ import annotations
from typing import Literal
from pydantic import BaseModel, ConfigDict, Field

# Subset of the Telegram Bot API update payload that the bot reads.

class TgModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class TgUser(TgModel):
    id: int
    is_bot: bool = False
    first_name: str = ""
    last_name: str | None = None
    username: str | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}" if self.last_name else self.first_name


class TgChat(TgModel):
    id: int
    type: Literal["private", "group", "supergroup", "channel"] = "private"
    first_name: str | None = None

    @property
    def is_private(self) -> bool:
        return self.type == "private"

    @property
    def is_group(self) -> bool:
        return self.type in ("group", "supergroup")


class TgFile(TgModel):
    file_id: str
    file_unique_id: str = ""
    file_size: int | None = None


class TgPhotoSize(TgFile):
    width: int = 0
    height: int = 0


class TgVideo(TgFile):
    duration: int = 0
    mime_type: str | None = None


class TgMessage(TgModel):
    message_id: int
    date: int = 0
    chat: TgChat
    from_user: TgUser | None = Field(default=None, alias="from")
    message_thread_id: int | None = None
    text: str | None = None
    caption: str | None = None
    photo: list[TgPhotoSize] | None = None
    video: TgVideo | None = None


class TgCallbackQuery(TgModel):
    id: str
    from_user: TgUser = Field(alias="from")
    message: TgMessage | None = None
    inline_message_id: str | None = None
    data: str | None = None


class TgUpdate(TgModel):
    update_id: int
    message: TgMessage | None = None
    callback_query: TgCallbackQuery | None = None


class IncomingMedia(BaseModel):
    """Media attached to a participant message, reduced to what the pipeline needs."""
    kind: Literal["photo", "video"]
    file_id: str
    mime_type: str | None = None

    @classmethod
    def from_message(cls, msg: TgMessage) -> IncomingMedia | None:
        if msg.photo:
            # sizes are ordered small -> large
            return cls(kind="photo", file_id=msg.photo[-1].file_id)
        if msg.video:
            return cls(kind="video", file_id=msg.video.file_id, mime_type=msg.video.mime_type)
        return None
