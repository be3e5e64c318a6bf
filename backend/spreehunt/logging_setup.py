from __future__ import annotations
import logging, sys
import structlog
import structlog.stdlib
from spreehunt.config import settings

def _redact_bot_token(_logger, _method, event_dict):
    # transport errors carry request URLs, and those embed the bot token
    token = settings.telegram_bot_token
    if token:
        for key, value in event_dict.items():
            if isinstance(value, str) and token in value:
                event_dict[key] = value.replace(token, "<bot-token>")
    return event_dict

def configure_logging(level: str | None = None):
    lvl = getattr(logging, (level or settings.log_level).upper(), logging.INFO)
    renderer = structlog.dev.ConsoleRenderer() if settings.log_format == "console" else structlog.processors.JSONRenderer()
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            _redact_bot_token,
            structlog.processors.EventRenamer("message"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(lvl),
        cache_logger_on_first_use=True,
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(renderer))
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(lvl)
    # httpx logs every request URL at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
