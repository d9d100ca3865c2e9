"""
Cooldown Tracker

Suppresses duplicate rain triggers for a project within the cooldown window.

Acquisition is linearizable per project: an asyncio.Lock per project id
serialises callers inside this process, and the repository's compare-and-set
guards against other processes writing the same row. Different projects never
contend for the same lock.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Dict, Optional
import asyncio
import logging

from .precipitation import ensure_utc
from .types import CooldownResult, CooldownStatus

logger = logging.getLogger(__name__)

DEFAULT_COOLDOWN = timedelta(hours=24)


class CooldownRepository(ABC):
    """Storage for per-project CooldownState (last_triggered_at)."""

    @abstractmethod
    async def get_last_triggered(self, project_id: str) -> Optional[datetime]:
        """Return the last successful trigger time, or None."""
        pass

    @abstractmethod
    async def compare_and_set(
        self,
        project_id: str,
        expected: Optional[datetime],
        new_value: datetime,
    ) -> bool:
        """
        Store ``new_value`` only if the current value still equals ``expected``.

        Returns False when another writer got there first.
        """
        pass


class InMemoryCooldownRepository(CooldownRepository):
    """Process-local cooldown state."""

    def __init__(self):
        self._state: Dict[str, datetime] = {}

    async def get_last_triggered(self, project_id: str) -> Optional[datetime]:
        return self._state.get(project_id)

    async def compare_and_set(
        self,
        project_id: str,
        expected: Optional[datetime],
        new_value: datetime,
    ) -> bool:
        if self._state.get(project_id) != expected:
            return False
        self._state[project_id] = new_value
        return True


class CooldownTracker:
    """Gate that runs before a Trigger is created."""

    def __init__(
        self,
        repository: Optional[CooldownRepository] = None,
        cooldown: timedelta = DEFAULT_COOLDOWN,
    ):
        self.repository = repository or InMemoryCooldownRepository()
        self.cooldown = cooldown
        self._locks: Dict[str, asyncio.Lock] = {}

    def _lock_for(self, project_id: str) -> asyncio.Lock:
        lock = self._locks.get(project_id)
        if lock is None:
            lock = self._locks.setdefault(project_id, asyncio.Lock())
        return lock

    async def try_acquire(
        self,
        project_id: str,
        now: datetime,
        cooldown: Optional[timedelta] = None,
    ) -> CooldownResult:
        """
        Claim the cooldown slot for ``project_id`` at ``now``.

        On success ``now`` becomes the new last-triggered time. On failure the
        stored state is left unchanged and ``remaining`` says how long the
        cooldown still runs.
        """
        window = cooldown if cooldown is not None else self.cooldown
        now = ensure_utc(now)

        async with self._lock_for(project_id):
            last = await self.repository.get_last_triggered(project_id)
            if last is not None:
                last = ensure_utc(last)
                elapsed = now - last
                if elapsed < window:
                    remaining = window - elapsed
                    logger.info(
                        f"Rain trigger suppressed for project {project_id}: cooldown active "
                        f"for another {remaining.total_seconds() / 3600:.2f}h"
                    )
                    return CooldownResult(acquired=False, remaining=remaining)

            if await self.repository.compare_and_set(project_id, last, now):
                return CooldownResult(acquired=True, remaining=timedelta(0))

            # Another process claimed the slot between our read and write
            current = await self.repository.get_last_triggered(project_id)
            remaining = window - (now - ensure_utc(current)) if current else window
            logger.info(f"Rain trigger for project {project_id} lost cooldown race")
            return CooldownResult(acquired=False, remaining=max(remaining, timedelta(0)))

    async def status(
        self,
        project_id: str,
        now: datetime,
        cooldown: Optional[timedelta] = None,
    ) -> CooldownStatus:
        window = cooldown if cooldown is not None else self.cooldown
        last = await self.repository.get_last_triggered(project_id)
        if last is None:
            return CooldownStatus(active=False, remaining_hours=0.0)

        last = ensure_utc(last)
        remaining = window - (ensure_utc(now) - last)
        if remaining <= timedelta(0):
            return CooldownStatus(active=False, remaining_hours=0.0, last_triggered_at=last)
        return CooldownStatus(
            active=True,
            remaining_hours=round(remaining.total_seconds() / 3600, 4),
            last_triggered_at=last,
        )
