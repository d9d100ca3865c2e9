"""Development sender that writes notifications to the log."""
from typing import List
from uuid import uuid4
import logging

from raintrigger.compliance.types import NotificationIntent

from .base import NotificationSender, SendResult

logger = logging.getLogger(__name__)


class ConsoleNotificationSender(NotificationSender):
    """Logs every intent and keeps the ones it has seen in ``sent``."""

    def __init__(self):
        self.sent: List[NotificationIntent] = []

    async def send(self, intent: NotificationIntent) -> SendResult:
        self.sent.append(intent)
        channels = ", ".join(c.value for c in intent.channels)
        logger.info(
            f"[{intent.priority.value}] {intent.title} "
            f"(project={intent.project_id}, trigger={intent.trigger_id}, channels={channels})"
        )
        return SendResult(success=True, message_id=f"console_{uuid4().hex[:8]}")
