from __future__ import annotations
from fastapi import APIRouter, Request
from datetime import datetime, timezone
from spreehunt.config import settings
from spreehunt.state import hunt_state

router = APIRouter()

@router.get("/health")
async def health(request: Request):
    return {
        "status": "ok",
        "env": settings.environment,
        "time": datetime.now(timezone.utc).isoformat(),
        "request_id": request.headers.get("x-request-id") or request.state.request_id,
        "submissions_enabled": hunt_state.submissions_enabled,
    }

@router.get("/version")
async def version():
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "git_sha": settings.git_sha,
        "build": "docker",
    }
