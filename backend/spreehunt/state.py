from __future__ import annotations
import asyncio
from spreehunt.config import settings


class HuntState:
    """
    Process-wide mutable state shared by all request paths.
      - topology_lock: serializes every topic reconciliation
      - submissions_enabled: coarse kill switch, read and written without a lock
    """

    def __init__(self, submissions_enabled: bool = True):
        self.topology_lock = asyncio.Lock()
        self.submissions_enabled = submissions_enabled


hunt_state = HuntState(submissions_enabled=settings.submissions_enabled)

def get_hunt_state() -> HuntState:
    return hunt_state
