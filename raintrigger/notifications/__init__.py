"""Notification delivery for compliance intents."""
from .base import NotificationSender, SendResult
from .console import ConsoleNotificationSender
from .webhook import WebhookNotificationSender
from .templates import build_compliance_intent, build_escalation_intent

__all__ = [
    "NotificationSender",
    "SendResult",
    "ConsoleNotificationSender",
    "WebhookNotificationSender",
    "build_compliance_intent",
    "build_escalation_intent",
]
