"""
Notification Sender - abstract delivery channel.

The compliance engine only builds NotificationIntents; delivering them
(push, SMS, email, phone) is the job of a sender implementation.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from raintrigger.compliance.types import NotificationIntent


@dataclass
class SendResult:
    """Result of dispatching a notification."""
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


class NotificationSender(ABC):
    """Abstract base class for notification senders."""

    @abstractmethod
    async def send(self, intent: NotificationIntent) -> SendResult:
        """Dispatch a notification intent."""
        pass

    def is_configured(self) -> bool:
        return True
