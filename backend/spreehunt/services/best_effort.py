from __future__ import annotations
from typing import Awaitable
import structlog
from spreehunt.errors import BestEffort, ExternalTransportError

log = structlog.get_logger()


async def attempt(step: str, call: Awaitable, **ctx) -> BestEffort:
    """Await a transport call; log and return the failure instead of raising it."""
    try:
        await call
    except ExternalTransportError as e:
        log.warning("best_effort_failed", step=step, error=str(e), **ctx)
        return BestEffort(step=step, error=e)
    return BestEffort(step=step)
