"""In-memory trigger store for development and tests."""
from copy import deepcopy
from datetime import datetime
from typing import Dict, List, Optional
import asyncio

from raintrigger.compliance.types import Trigger, TriggerStatus

from .base import TriggerStore


class InMemoryTriggerStore(TriggerStore):
    """
    Keeps triggers in a dict keyed by id.

    Returned triggers are copies, so callers can't mutate stored state
    behind the store's back.
    """

    def __init__(self):
        self._triggers: Dict[str, Trigger] = {}
        self._lock = asyncio.Lock()

    async def save_trigger(self, trigger: Trigger) -> None:
        async with self._lock:
            stored = deepcopy(trigger)
            stored.saved = True
            stored.error = None
            self._triggers[trigger.id] = stored

    async def get_trigger(self, trigger_id: str) -> Optional[Trigger]:
        trigger = self._triggers.get(trigger_id)
        return deepcopy(trigger) if trigger else None

    async def get_compliance_history(self, project_id: str) -> List[Trigger]:
        history = [t for t in self._triggers.values() if t.project_id == project_id]
        history.sort(key=lambda t: t.triggered_at)
        return [deepcopy(t) for t in history]

    async def list_pending(self) -> List[Trigger]:
        pending = [
            t for t in self._triggers.values()
            if t.status == TriggerStatus.PENDING_INSPECTION
        ]
        pending.sort(key=lambda t: t.deadline)
        return [deepcopy(t) for t in pending]

    async def mark_escalated(self, trigger_id: str, at: datetime) -> bool:
        async with self._lock:
            trigger = self._triggers.get(trigger_id)
            if trigger is None or trigger.escalated_at is not None:
                return False
            trigger.escalated_at = at
            return True

    async def transition_status(
        self,
        trigger_id: str,
        expected: TriggerStatus,
        new_status: TriggerStatus,
        at: datetime,
    ) -> bool:
        async with self._lock:
            trigger = self._triggers.get(trigger_id)
            if trigger is None or trigger.status != expected:
                return False
            trigger.status = new_status
            if new_status == TriggerStatus.DISCHARGED:
                trigger.discharged_at = at
            elif new_status == TriggerStatus.EXPIRED:
                trigger.expired_at = at
            return True
