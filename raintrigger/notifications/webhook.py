"""
Webhook sender.

POSTs the intent as JSON to a configured URL; the receiving service fans it
out to push, SMS, email and phone.
"""
from typing import Optional
import logging

import httpx

from raintrigger.compliance.types import NotificationIntent

from .base import NotificationSender, SendResult

logger = logging.getLogger(__name__)


class WebhookNotificationSender(NotificationSender):

    def __init__(
        self,
        url: str,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.url = url
        self.timeout = timeout
        self._client = client

    def is_configured(self) -> bool:
        return bool(self.url)

    async def send(self, intent: NotificationIntent) -> SendResult:
        if not self.is_configured():
            return SendResult(success=False, error="Notification webhook URL not configured")

        try:
            if self._client is not None:
                response = await self._client.post(self.url, json=intent.to_dict())
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(self.url, json=intent.to_dict())
        except httpx.HTTPError as e:
            logger.exception(f"Failed to deliver notification for trigger {intent.trigger_id}")
            return SendResult(success=False, error=str(e))

        if response.is_success:
            message_id = None
            if response.headers.get("content-type", "").startswith("application/json"):
                message_id = response.json().get("id")
            return SendResult(success=True, message_id=message_id)

        logger.error(f"Notification webhook error: {response.status_code} - {response.text}")
        return SendResult(success=False, error=f"HTTP {response.status_code}")
