"""
Trigger storage interface.

The compliance engine persists triggers through this interface only, so
the backing technology (SQL, in-memory, a remote API) can be swapped freely.
Status changes are compare-and-set so concurrent scheduler ticks cannot
escalate or expire the same trigger twice.
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from raintrigger.compliance.types import Trigger, TriggerStatus


class TriggerStore(ABC):
    """Abstract base class for trigger persistence."""

    @abstractmethod
    async def save_trigger(self, trigger: Trigger) -> None:
        """Insert (or re-save) a trigger. Raises on failure."""
        pass

    @abstractmethod
    async def get_trigger(self, trigger_id: str) -> Optional[Trigger]:
        pass

    @abstractmethod
    async def get_compliance_history(self, project_id: str) -> List[Trigger]:
        """All triggers for a project, oldest first."""
        pass

    @abstractmethod
    async def list_pending(self) -> List[Trigger]:
        """All triggers still in PENDING_INSPECTION, earliest deadline first."""
        pass

    @abstractmethod
    async def mark_escalated(self, trigger_id: str, at: datetime) -> bool:
        """Set escalated_at if it is still unset. Returns True if this call set it."""
        pass

    @abstractmethod
    async def transition_status(
        self,
        trigger_id: str,
        expected: TriggerStatus,
        new_status: TriggerStatus,
        at: datetime,
    ) -> bool:
        """Move from ``expected`` to ``new_status``. Returns False if the status had changed."""
        pass
