from __future__ import annotations
from dataclasses import dataclass, field
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from spreehunt.config import settings
from spreehunt.errors import EmptyInput
from spreehunt.schemas.telegram import TgUser
from spreehunt.services.best_effort import attempt
from spreehunt.services.roster import list_participants
from spreehunt.services.transport import ChatTransport

log = structlog.get_logger()


@dataclass
class BroadcastReport:
    sent: int = 0
    failed: list[int] = field(default_factory=list)


async def broadcast(session: AsyncSession, transport: ChatTransport, sender: TgUser, message: str) -> BroadcastReport:
    """
    Send `message` to every participant except the sender.
    Maintainers get a header naming the sender first. Delivery is best-effort per recipient.
    """
    if not message.strip():
        raise EmptyInput("Broadcast error: Empty message")
    report = BroadcastReport()
    for p in await list_participants(session):
        if p.id == sender.id:
            continue
        if settings.is_maintainer(p.id):
            await attempt("broadcast_header", transport.send_message(p.id, f"Broadcast from {sender.full_name}"),
                          recipient=p.id)
        result = await attempt("broadcast", transport.send_message(p.id, message), recipient=p.id)
        if result.ok:
            report.sent += 1
        else:
            report.failed.append(p.id)
    log.info("broadcast_sent", sender=sender.id, sent=report.sent, failed=len(report.failed))
    return report
