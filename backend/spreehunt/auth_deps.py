from __future__ import annotations
import hmac
from fastapi import Header, HTTPException
from spreehunt.config import settings

async def require_admin(x_admin_token: str | None = Header(None)) -> None:
    if not settings.admin_token:
        raise HTTPException(status_code=503, detail="Admin API is not configured")
    if not x_admin_token or not hmac.compare_digest(x_admin_token, settings.admin_token):
        raise HTTPException(status_code=401, detail="Invalid admin token")

async def verify_webhook_secret(
    x_telegram_bot_api_secret_token: str | None = Header(None),
) -> None:
    if not settings.webhook_secret:
        return
    if not x_telegram_bot_api_secret_token or not hmac.compare_digest(
        x_telegram_bot_api_secret_token, settings.webhook_secret
    ):
        raise HTTPException(status_code=401, detail="Invalid webhook secret")
