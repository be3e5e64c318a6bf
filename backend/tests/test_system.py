import httpx
import pytest
from httpx import AsyncClient
from spreehunt.main import app

@pytest.mark.asyncio
async def test_health_ok():
    async with AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as ac:
        r = await ac.get("/health", headers={"x-request-id": "abc"})
    assert r.status_code == 200
    data = r.json()
    assert data["status"] == "ok"
    assert data["request_id"] == "abc"
    assert r.headers["X-Request-ID"] == "abc"

@pytest.mark.asyncio
async def test_version_ok():
    async with AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as ac:
        r = await ac.get("/version")
    assert r.status_code == 200
    data = r.json()
    assert "version" in data and "git_sha" in data
