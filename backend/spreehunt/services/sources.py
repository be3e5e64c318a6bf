from __future__ import annotations
from dataclasses import dataclass
from typing import Literal
import httpx
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from spreehunt.errors import ConfigError
from spreehunt.models.config_entry import ConfigEntry

log = structlog.get_logger()

SCHEDULE_SOURCE = "schedule_source"
CITY_GUIDE = "city_guide"

DEFAULT_SOURCES = {
    SCHEDULE_SOURCE: "file::assets/schedule.png",
    CITY_GUIDE: "file::assets/survival_guide.pdf",
}


@dataclass(frozen=True)
class SourceLocator:
    mode: Literal["file", "url"]
    path: str


def parse_source(raw: str) -> SourceLocator:
    """Parse a 'mode::path' config value; mode is 'file' or 'url'."""
    mode, sep, path = raw.strip().partition("::")
    if not sep or not path:
        raise ConfigError()
    if mode == "file":
        return SourceLocator("file", path)
    if mode == "url":
        try:
            url = httpx.URL(path)
        except httpx.InvalidURL as e:
            raise ConfigError() from e
        if url.scheme not in ("http", "https") or not url.host:
            raise ConfigError()
        return SourceLocator("url", str(url))
    raise ConfigError()


async def resolve_source(session: AsyncSession, name: str) -> SourceLocator:
    value = await session.scalar(select(ConfigEntry.value).where(ConfigEntry.name == name))
    raw = value if value is not None else DEFAULT_SOURCES.get(name)
    if raw is None:
        raise ConfigError()
    log.debug("source_resolved", name=name, raw=raw)
    return parse_source(raw)
