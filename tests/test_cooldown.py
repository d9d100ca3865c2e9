"""
Tests for per-project duplicate suppression.
"""

import asyncio
import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

from raintrigger.compliance.cooldown import CooldownTracker, InMemoryCooldownRepository

T0 = datetime(2024, 1, 16, 15, 0, tzinfo=timezone.utc)


@pytest.fixture
def tracker():
    return CooldownTracker()


class TestTryAcquire:

    @pytest.mark.asyncio
    async def test_first_acquire_succeeds(self, tracker):
        result = await tracker.try_acquire("proj-1", T0)
        assert result.acquired is True
        assert result.remaining == timedelta(0)
        assert await tracker.repository.get_last_triggered("proj-1") == T0

    @pytest.mark.asyncio
    async def test_second_acquire_suppressed_with_remaining(self, tracker):
        await tracker.try_acquire("proj-1", T0)
        result = await tracker.try_acquire("proj-1", T0 + timedelta(hours=3))

        assert result.acquired is False
        assert result.remaining == timedelta(hours=21)
        # State unchanged by the suppressed call
        assert await tracker.repository.get_last_triggered("proj-1") == T0

    @pytest.mark.asyncio
    async def test_acquire_at_exact_expiry(self, tracker):
        await tracker.try_acquire("proj-1", T0)
        result = await tracker.try_acquire("proj-1", T0 + timedelta(hours=24))
        assert result.acquired is True
        assert await tracker.repository.get_last_triggered("proj-1") == T0 + timedelta(hours=24)

    @pytest.mark.asyncio
    async def test_custom_cooldown(self, tracker):
        await tracker.try_acquire("proj-1", T0)
        result = await tracker.try_acquire("proj-1", T0 + timedelta(hours=2), cooldown=timedelta(hours=1))
        assert result.acquired is True

    @pytest.mark.asyncio
    async def test_projects_are_independent(self, tracker):
        assert (await tracker.try_acquire("proj-1", T0)).acquired
        assert (await tracker.try_acquire("proj-2", T0)).acquired

    @pytest.mark.asyncio
    async def test_concurrent_acquire_only_one_wins(self, tracker):
        results = await asyncio.gather(*(tracker.try_acquire("proj-1", T0) for _ in range(20)))
        assert sum(r.acquired for r in results) == 1

    @pytest.mark.asyncio
    async def test_lost_compare_and_set_reports_suppression(self):
        """Another process wrote the row between our read and write."""
        repository = InMemoryCooldownRepository()
        repository.compare_and_set = AsyncMock(return_value=False)
        repository.get_last_triggered = AsyncMock(side_effect=[None, T0 - timedelta(hours=1)])
        tracker = CooldownTracker(repository)

        result = await tracker.try_acquire("proj-1", T0)

        assert result.acquired is False
        assert result.remaining == timedelta(hours=23)


class TestStatus:

    @pytest.mark.asyncio
    async def test_no_state_is_inactive(self, tracker):
        status = await tracker.status("proj-1", T0)
        assert status.active is False
        assert status.remaining_hours == 0.0
        assert status.last_triggered_at is None

    @pytest.mark.asyncio
    async def test_active_after_trigger(self, tracker):
        await tracker.try_acquire("proj-1", T0)
        status = await tracker.status("proj-1", T0 + timedelta(minutes=30))
        assert status.active is True
        assert status.remaining_hours == 23.5
        assert status.last_triggered_at == T0

    @pytest.mark.asyncio
    async def test_inactive_after_expiry(self, tracker):
        await tracker.try_acquire("proj-1", T0)
        status = await tracker.status("proj-1", T0 + timedelta(hours=25))
        assert status.active is False
        assert status.remaining_hours == 0.0
