"""
Deadline Escalation

Periodic scan of open inspection obligations:
- Deadline passed -> EXPIRED (compliance violation)
- Deadline within the escalation threshold (2h) -> one URGENT warning on
  every channel, including phone

A trigger is escalated at most once. The store's mark_escalated is
compare-and-set, so overlapping scans cannot both win.
"""

from datetime import datetime, timezone
from typing import Dict, Optional
import logging

from raintrigger.notifications.base import NotificationSender
from raintrigger.notifications.templates import build_escalation_intent
from raintrigger.storage.base import TriggerStore

from .precipitation import ensure_utc
from .types import Trigger, TriggerStatus

logger = logging.getLogger(__name__)

DEFAULT_ESCALATION_THRESHOLD_HOURS = 2.0


class EscalationScheduler:

    def __init__(
        self,
        store: TriggerStore,
        notifier: NotificationSender,
        threshold_hours: float = DEFAULT_ESCALATION_THRESHOLD_HOURS,
    ):
        self.store = store
        self.notifier = notifier
        self.threshold_hours = threshold_hours

    async def check_pending_deadlines(self, now: Optional[datetime] = None) -> Dict[str, int]:
        """
        Escalate or expire pending triggers as of ``now``.

        Returns counts: checked, escalated, expired, notification_failures,
        errors. A failure on one trigger never stops the scan.
        """
        now = ensure_utc(now or datetime.now(timezone.utc))
        summary = {
            "checked": 0,
            "escalated": 0,
            "expired": 0,
            "notification_failures": 0,
            "errors": 0,
        }

        for trigger in await self.store.list_pending():
            summary["checked"] += 1
            try:
                await self._check_trigger(trigger, now, summary)
            except Exception as e:
                summary["errors"] += 1
                logger.error(f"Deadline check failed for trigger {trigger.id}: {e}")

        if summary["escalated"] or summary["expired"]:
            logger.info(f"Deadline check complete: {summary}")
        return summary

    async def _check_trigger(self, trigger: Trigger, now: datetime, summary: Dict[str, int]) -> None:
        remaining_hours = trigger.remaining(now).total_seconds() / 3600

        if remaining_hours <= 0:
            if await self.store.transition_status(
                trigger.id, TriggerStatus.PENDING_INSPECTION, TriggerStatus.EXPIRED, now
            ):
                summary["expired"] += 1
                logger.error(
                    f"COMPLIANCE VIOLATION: inspection for trigger {trigger.id} "
                    f"(project {trigger.project_id}) missed deadline {trigger.deadline.isoformat()}"
                )
            return

        if remaining_hours > self.threshold_hours or trigger.escalated_at is not None:
            return

        if not await self.store.mark_escalated(trigger.id, now):
            return  # another scan got there first
        summary["escalated"] += 1

        intent = build_escalation_intent(trigger, now)
        try:
            result = await self.notifier.send(intent)
        except Exception as e:
            summary["notification_failures"] += 1
            logger.error(f"Failed to send deadline warning for trigger {trigger.id}: {e}")
            return
        if not result.success:
            summary["notification_failures"] += 1
            logger.error(f"Deadline warning for trigger {trigger.id} not delivered: {result.error}")
