"""
Tests for notification templates and senders.
"""

import json

import httpx
import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from raintrigger.compliance.types import NotificationPriority, NotificationType
from raintrigger.notifications import (
    ConsoleNotificationSender,
    WebhookNotificationSender,
    build_compliance_intent,
    build_escalation_intent,
)
from raintrigger.notifications.templates import format_inches

from conftest import NYC, make_trigger

DEADLINE = datetime(2024, 1, 17, 15, 0, tzinfo=timezone.utc)


class TestTemplates:

    def test_format_inches(self):
        assert format_inches(Decimal("0.25")) == "0.25"
        assert format_inches(Decimal("0.2500")) == "0.25"
        assert format_inches(Decimal("0.1")) == "0.10"
        assert format_inches(Decimal("1")) == "1.00"
        assert format_inches(Decimal("0.251234567")) == "0.251234567"

    def test_compliance_intent_message(self):
        intent = build_compliance_intent(make_trigger(DEADLINE, amount="0.26"), NYC)
        assert intent.type == NotificationType.COMPLIANCE_REQUIRED
        assert "0.26" in intent.message
        assert "0.25" in intent.message
        assert intent.remaining_hours is None

    def test_escalation_remaining_hours_rounded(self):
        trigger = make_trigger(DEADLINE)
        intent = build_escalation_intent(trigger, DEADLINE - timedelta(minutes=100))
        assert intent.priority == NotificationPriority.URGENT
        assert intent.remaining_hours == 1.67

    def test_intent_to_dict(self):
        data = build_compliance_intent(make_trigger(DEADLINE), NYC).to_dict()
        assert data["channels"] == ["push", "sms", "email"]
        assert data["deadline"] == "2024-01-17T15:00:00+00:00"
        assert data["metadata"]["location"] == {"lat": 40.7128, "lng": -74.006}


class TestConsoleSender:

    @pytest.mark.asyncio
    async def test_records_and_succeeds(self):
        sender = ConsoleNotificationSender()
        intent = build_compliance_intent(make_trigger(DEADLINE), NYC)
        result = await sender.send(intent)
        assert result.success is True
        assert sender.sent == [intent]


class TestWebhookSender:

    @pytest.mark.asyncio
    async def test_posts_intent_json(self):
        received = []

        def handler(request):
            received.append(json.loads(request.content))
            return httpx.Response(200, json={"id": "msg-1"})

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        sender = WebhookNotificationSender("https://hooks.example.com/notify", client=client)
        trigger = make_trigger(DEADLINE)

        result = await sender.send(build_compliance_intent(trigger, NYC))

        assert result.success is True
        assert result.message_id == "msg-1"
        assert received[0]["trigger_id"] == trigger.id
        assert received[0]["type"] == "COMPLIANCE_REQUIRED"

    @pytest.mark.asyncio
    async def test_error_status_reported(self):
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(502)))
        sender = WebhookNotificationSender("https://hooks.example.com/notify", client=client)
        result = await sender.send(build_compliance_intent(make_trigger(DEADLINE), NYC))
        assert result.success is False
        assert result.error == "HTTP 502"

    @pytest.mark.asyncio
    async def test_unconfigured(self):
        result = await WebhookNotificationSender("").send(build_compliance_intent(make_trigger(DEADLINE), NYC))
        assert result.success is False
