from __future__ import annotations
import uuid
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, Response
from spreehunt.config import settings
from spreehunt.db import create_schema
from spreehunt.errors import ExternalTransportError
from spreehunt.logging_setup import configure_logging
from spreehunt.routes.system import router as system_router
from spreehunt.routes.telegram import router as telegram_router
from spreehunt.routes.admin import router as admin_router
from spreehunt.services.transport import TelegramTransport, close_transport, get_transport
import structlog

configure_logging()
log = structlog.get_logger()

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    log.info("startup", env=settings.environment, version=settings.app_version, git_sha=settings.git_sha)
    if settings.auto_create_schema:
        await create_schema()
    if settings.webhook_url:
        transport = get_transport()
        if isinstance(transport, TelegramTransport):
            try:
                await transport.set_webhook(settings.webhook_url, settings.webhook_secret)
            except ExternalTransportError as e:
                log.warning("webhook_register_failed", error=str(e))
    yield
    # Shutdown
    await close_transport()
    log.info("shutdown")

app = FastAPI(
    title="Spree Hunt Bot",
    version=settings.app_version,
    lifespan=lifespan,
    description="Scavenger-hunt submission and judging backend for a Telegram bot",
)

app.include_router(system_router)
app.include_router(telegram_router)
app.include_router(admin_router)

@app.middleware("http")
async def add_request_id(request: Request, call_next):
    rid = request.headers.get("x-request-id") or str(uuid.uuid4())
    request.state.request_id = rid
    structlog.contextvars.bind_contextvars(request_id=rid)
    response: Response = await call_next(request)
    response.headers["X-Request-ID"] = rid
    structlog.contextvars.clear_contextvars()
    return response
