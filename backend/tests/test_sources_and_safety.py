import pytest
from datetime import datetime, timezone
from spreehunt.errors import ConfigError
from spreehunt.models.config_entry import ConfigEntry, SafetyTeamMember
from spreehunt.services import safety, sources

def test_parse_file_and_url_sources():
    assert sources.parse_source("file::assets/schedule.png") == sources.SourceLocator("file", "assets/schedule.png")
    loc = sources.parse_source("url::https://example.org/guide.pdf")
    assert loc.mode == "url" and loc.path == "https://example.org/guide.pdf"

@pytest.mark.parametrize("raw", ["", "assets/schedule.png", "ftp::somewhere", "url::not a url", "url::mailto:x@y.z"])
def test_parse_rejects_bad_sources(raw):
    with pytest.raises(ConfigError):
        sources.parse_source(raw)

@pytest.mark.asyncio
async def test_resolve_prefers_database_value(session):
    assert (await sources.resolve_source(session, sources.SCHEDULE_SOURCE)).path == "assets/schedule.png"
    session.add(ConfigEntry(name=sources.SCHEDULE_SOURCE, value="url::https://example.org/s.png"))
    await session.commit()
    loc = await sources.resolve_source(session, sources.SCHEDULE_SOURCE)
    assert loc == sources.SourceLocator("url", "https://example.org/s.png")

@pytest.mark.asyncio
async def test_resolve_unknown_name(session):
    with pytest.raises(ConfigError):
        await sources.resolve_source(session, "nope")

def test_event_day_rolls_over_in_the_morning():
    assert safety.event_day(datetime(2026, 10, 16, 3, 0), 6) == "2026-10-15"
    assert safety.event_day(datetime(2026, 10, 16, 6, 0), 6) == "2026-10-16"
    assert safety.event_day(datetime(2026, 10, 16, 23, 59), 6) == "2026-10-16"

@pytest.mark.asyncio
async def test_current_safety_team(session):
    session.add_all([
        SafetyTeamMember(name="Kim", phone="+49 1", date="2026-10-15"),
        SafetyTeamMember(name="Lou", phone="+49 2", date="2026-10-16"),
    ])
    await session.commit()
    night = await safety.current_safety_team(session, datetime(2026, 10, 16, 2, 0, tzinfo=timezone.utc))
    assert [m.name for m in night] == ["Kim"]
    day = await safety.current_safety_team(session, datetime(2026, 10, 16, 12, 0, tzinfo=timezone.utc))
    assert [m.name for m in day] == ["Lou"]
