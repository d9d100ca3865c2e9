"""
Compliance Engine - rain-trigger evaluation.

Per evaluation:
1. Validate the project location (fail fast, before any weather call)
2. Fetch 24h precipitation from the weather collaborator (bounded timeout)
3. Aggregate and compare against the EPA threshold
4. Claim the per-project cooldown slot
5. Compute the inspection deadline in the project's timezone
6. Persist Trigger + AuditTrail
7. Hand a COMPLIANCE_REQUIRED intent to the notification channel

Weather failures are absorbed: the evaluation returns None, the error is kept
for get_last_error() and the project's outcome is WEATHER_UNAVAILABLE, so an
outage is never reported as "no rain".
"""

from datetime import datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Tuple
import asyncio
import logging
import math

from raintrigger.config import Settings, settings as default_settings
from raintrigger.notifications.base import NotificationSender
from raintrigger.notifications.templates import build_compliance_intent
from raintrigger.storage.base import TriggerStore
from raintrigger.storage.memory import InMemoryTriggerStore
from raintrigger.weather.base import WeatherProvider

from .cooldown import CooldownTracker
from .deadline import DeadlineCalculator, DeadlinePolicy, load_zone, to_local
from .escalation import EscalationScheduler
from .exceptions import (
    InvalidInput,
    InvalidLocation,
    InvalidTransition,
    PersistenceFailure,
    TriggerNotFound,
)
from .precipitation import PrecipitationWindow, ensure_utc, readings_to_observations
from .threshold import evaluate
from .types import (
    AuditTrail,
    CalculationMethod,
    CooldownStatus,
    EvaluationOutcome,
    Location,
    Trigger,
    TriggerStatus,
)

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _coordinate(value: Any, name: str, limit: float) -> float:
    if value is None:
        raise InvalidLocation(f"Location {name} is required")
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        raise InvalidLocation(f"Location {name} must be a number, got {value!r}")
    number = float(value)
    if not math.isfinite(number) or not -limit <= number <= limit:
        raise InvalidLocation(f"Location {name} {value} is outside [-{limit}, {limit}]")
    return number


def validate_location(location: Any) -> Location:
    """
    Normalise a Location or a mapping with lat/lng (or latitude/longitude).

    Raises InvalidLocation for missing, non-numeric or out-of-range values.
    """
    if location is None:
        raise InvalidLocation("Location is required")
    if isinstance(location, Location):
        lat, lng = location.lat, location.lng
    elif isinstance(location, dict):
        lat = location.get("lat", location.get("latitude"))
        lng = location.get("lng", location.get("longitude"))
    else:
        raise InvalidLocation(f"Unsupported location value: {location!r}")
    return Location(lat=_coordinate(lat, "lat", 90), lng=_coordinate(lng, "lng", 180))


class ComplianceEngine:
    """
    Decides whether rain fired an inspection obligation and tracks it.

    All collaborators are injected; the defaults (in-memory store and
    cooldown, calendar from settings) are suitable for development and tests.
    """

    def __init__(
        self,
        weather: WeatherProvider,
        notifier: NotificationSender,
        store: Optional[TriggerStore] = None,
        cooldown: Optional[CooldownTracker] = None,
        deadline_calculator: Optional[DeadlineCalculator] = None,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.settings = settings or default_settings
        self.weather = weather
        self.notifier = notifier
        self.store = store or InMemoryTriggerStore()
        self.cooldown = cooldown or CooldownTracker(
            cooldown=timedelta(hours=self.settings.COOLDOWN_HOURS)
        )
        self.deadline_calculator = deadline_calculator or DeadlineCalculator(
            required_hours=self.settings.INSPECTION_WINDOW_HOURS,
            workday_start=time(self.settings.WORKDAY_START_HOUR),
            workday_end=time(self.settings.WORKDAY_END_HOUR),
            policy=DeadlinePolicy(self.settings.DEADLINE_POLICY),
        )
        self.escalation = EscalationScheduler(
            self.store,
            self.notifier,
            threshold_hours=self.settings.ESCALATION_THRESHOLD_HOURS,
        )
        self.threshold = Decimal(self.settings.RAIN_THRESHOLD_INCHES)
        self.clock = clock

        self._last_error: Optional[str] = None
        self._last_outcomes: Dict[str, EvaluationOutcome] = {}

    # =========================================================================
    # Evaluation
    # =========================================================================

    async def check_rain_trigger(
        self,
        project_id: str,
        location: Any,
        timezone: Optional[str] = None,
    ) -> Optional[Trigger]:
        """
        Evaluate one project against the 24h rain threshold.

        Returns the new Trigger, or None when no obligation fired (below
        threshold, cooldown active, or weather unavailable; see
        get_last_outcome). Raises InvalidLocation / InvalidTimezone for bad
        input before the weather source is contacted.
        """
        site = validate_location(location)
        tz_name = timezone or self.settings.DEFAULT_PROJECT_TIMEZONE
        load_zone(tz_name)

        as_of = ensure_utc(self.clock())
        fetched = await self._fetch_precipitation(project_id, site, as_of)
        if fetched is None:
            return None
        window, source = fetched

        amount = window.total
        if not evaluate(amount, self.threshold):
            logger.debug(f"Project {project_id}: {amount}\" below threshold {self.threshold}\"")
            self._last_outcomes[project_id] = EvaluationOutcome.BELOW_THRESHOLD
            return None

        claim = await self.cooldown.try_acquire(project_id, as_of)
        if not claim.acquired:
            self._last_outcomes[project_id] = EvaluationOutcome.COOLDOWN_SUPPRESSED
            return None

        deadline = self.deadline_calculator.compute_deadline(
            as_of, tz_name, working_hours_only=self.settings.WORKING_HOURS_ONLY
        )
        trigger = Trigger(
            project_id=project_id,
            precipitation_amount=amount,
            threshold=self.threshold,
            triggered_at=as_of,
            deadline=deadline,
            regulation=self.settings.REGULATION_ID,
            precipitation_events=list(window.observations),
            audit_trail=AuditTrail(
                triggered_at=as_of,
                precipitation_amount=amount,
                precipitation_source=source,
                threshold=self.threshold,
                regulation=self.settings.REGULATION_ID,
                location=site,
                calculation_method=window.calculation_method,
                timezone=tz_name,
            ),
        )
        self._last_outcomes[project_id] = EvaluationOutcome.TRIGGERED
        logger.info(
            f"Rain trigger {trigger.id} for project {project_id}: {amount}\" >= {self.threshold}\", "
            f"inspection due {deadline.isoformat()}"
        )

        # The cooldown slot stays claimed even if the write fails; the caller
        # retries save_trigger with the returned trigger.
        try:
            await self.save_trigger(trigger)
        except PersistenceFailure as e:
            trigger.saved = False
            trigger.error = str(e)
            self._last_error = str(e)

        await self._dispatch(trigger, site)
        return trigger

    async def _fetch_precipitation(
        self,
        project_id: str,
        site: Location,
        as_of: datetime,
    ) -> Optional[Tuple[PrecipitationWindow, str]]:
        timeout = self.settings.WEATHER_TIMEOUT_SECONDS
        try:
            hourly, cumulative = await asyncio.wait_for(self._read_weather(site), timeout=timeout)
        except asyncio.TimeoutError:
            self._record_weather_failure(project_id, f"Weather API timeout after {timeout}s")
            return None
        except Exception as e:
            self._record_weather_failure(project_id, f"Weather API error: {e}")
            return None

        # A reading we cannot use means the rain was not observed, not that none fell.
        try:
            if hourly is not None:
                window = PrecipitationWindow.build(
                    project_id,
                    readings_to_observations(hourly, as_of),
                    as_of,
                    CalculationMethod.ROLLING_24H_SUM,
                )
            else:
                window = PrecipitationWindow.from_cumulative(project_id, cumulative, as_of)
        except InvalidInput as e:
            self._record_weather_failure(project_id, f"Weather API returned invalid data: {e}")
            return None

        source = getattr(self.weather, "last_source", None) or self.weather.name
        return window, source

    async def _read_weather(self, site: Location):
        hourly = await self.weather.get_hourly_precipitation_24h(site)
        if hourly is not None:
            return hourly, None
        return None, await self.weather.get_precipitation_24h(site)

    def _record_weather_failure(self, project_id: str, message: str) -> None:
        self._last_error = f"{message} (project {project_id})"
        self._last_outcomes[project_id] = EvaluationOutcome.WEATHER_UNAVAILABLE
        logger.error(f"Rain check for project {project_id} could not run: {message}")

    async def save_trigger(self, trigger: Trigger) -> Trigger:
        """
        Persist a trigger. Safe to call again for a trigger returned with
        saved=False.

        Raises PersistenceFailure if the store rejects the write.
        """
        try:
            await self.store.save_trigger(trigger)
        except Exception as e:
            logger.error(f"Failed to save trigger {trigger.id} for project {trigger.project_id}: {e}")
            raise PersistenceFailure(f"Failed to save trigger to database: {e}") from e
        trigger.saved = True
        trigger.error = None
        return trigger

    async def _dispatch(self, trigger: Trigger, site: Location) -> None:
        intent = build_compliance_intent(trigger, site)
        try:
            result = await self.notifier.send(intent)
        except Exception as e:
            logger.error(f"Failed to send compliance notification for trigger {trigger.id}: {e}")
            return
        if not result.success:
            logger.error(f"Compliance notification for trigger {trigger.id} not delivered: {result.error}")

    # =========================================================================
    # Deadlines and lifecycle
    # =========================================================================

    async def check_pending_deadlines(self, now: Optional[datetime] = None) -> Dict[str, int]:
        return await self.escalation.check_pending_deadlines(now or self.clock())

    async def discharge_trigger(self, trigger_id: str, inspected_at: Optional[datetime] = None) -> Trigger:
        """Record that the inspection for a trigger has been performed."""
        trigger = await self.store.get_trigger(trigger_id)
        if trigger is None:
            raise TriggerNotFound(f"Trigger {trigger_id} not found")
        if trigger.status != TriggerStatus.PENDING_INSPECTION:
            raise InvalidTransition(f"Trigger {trigger_id} is {trigger.status.value}, cannot discharge")

        at = ensure_utc(inspected_at or self.clock())
        if not await self.store.transition_status(
            trigger_id, TriggerStatus.PENDING_INSPECTION, TriggerStatus.DISCHARGED, at
        ):
            raise InvalidTransition(f"Trigger {trigger_id} changed status concurrently")

        logger.info(f"Trigger {trigger_id} discharged at {at.isoformat()}")
        return await self.store.get_trigger(trigger_id)

    # =========================================================================
    # Queries
    # =========================================================================

    async def get_compliance_history(self, project_id: str) -> List[Trigger]:
        return await self.store.get_compliance_history(project_id)

    async def get_cooldown_status(self, project_id: str) -> CooldownStatus:
        return await self.cooldown.status(project_id, self.clock())

    def get_last_error(self) -> Optional[str]:
        return self._last_error

    def get_last_outcome(self, project_id: str) -> Optional[EvaluationOutcome]:
        return self._last_outcomes.get(project_id)

    def convert_to_timezone(self, instant: datetime, tz_name: str) -> datetime:
        return to_local(instant, tz_name)
