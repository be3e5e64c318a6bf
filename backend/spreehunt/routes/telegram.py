from __future__ import annotations
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from spreehunt.auth_deps import verify_webhook_secret
from spreehunt.bot.dispatcher import dispatch
from spreehunt.db import get_session
from spreehunt.schemas.telegram import TgUpdate
from spreehunt.services.transport import ChatTransport, get_transport
from spreehunt.state import HuntState, get_hunt_state

router = APIRouter(prefix="/telegram", tags=["telegram"])
log = structlog.get_logger()

@router.post("/webhook", dependencies=[Depends(verify_webhook_secret)])
async def webhook(
    update: TgUpdate,
    session: AsyncSession = Depends(get_session),
    transport: ChatTransport = Depends(get_transport),
    state: HuntState = Depends(get_hunt_state),
):
    # Telegram retries anything but a 2xx, so handled failures still answer ok
    structlog.contextvars.bind_contextvars(update_id=update.update_id)
    await dispatch(update, session, transport, state)
    return {"ok": True}
