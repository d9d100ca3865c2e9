"""
Rain Monitoring Scheduler

Background jobs for the compliance engine:
- Rain check for every active project: RAIN_CHECK_INTERVAL_MINUTES (hourly)
- Pending deadline scan (escalate / expire): ESCALATION_CHECK_MINUTES (5)

Uses APScheduler for job scheduling.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional

from raintrigger.config import settings

from .types import EvaluationOutcome, Location

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProjectSite:
    """A project under rain monitoring."""
    project_id: str
    location: Location
    timezone: Optional[str] = None


ProjectLoader = Callable[[], Awaitable[List[ProjectSite]]]


class RainMonitor:
    """
    Runs rain checks across many projects concurrently.

    One project's failure (bad coordinates, unexpected error) is logged and
    counted; it never stops the others.
    """

    def __init__(self, engine):
        self.engine = engine
        self._last_run: Optional[datetime] = None
        self._last_summary: Optional[Dict[str, Any]] = None

    async def check_projects(self, projects: List[ProjectSite]) -> Dict[str, Any]:
        results = await asyncio.gather(
            *(self._check_one(project) for project in projects),
            return_exceptions=True,
        )

        summary: Dict[str, Any] = {
            "checked": len(projects),
            "triggered": [],
            "below_threshold": 0,
            "cooldown_suppressed": 0,
            "weather_unavailable": 0,
            "failed": {},
        }
        for project, result in zip(projects, results):
            if isinstance(result, Exception):
                logger.error(f"Rain check failed for project {project.project_id}: {result}")
                summary["failed"][project.project_id] = str(result)
                continue
            if result is not None:
                summary["triggered"].append(result.id)
                continue
            outcome = self.engine.get_last_outcome(project.project_id)
            if outcome is not None and outcome != EvaluationOutcome.TRIGGERED:
                summary[outcome.value] += 1

        self._last_run = datetime.now(timezone.utc)
        self._last_summary = summary
        if summary["failed"] or summary["weather_unavailable"]:
            logger.warning(
                f"Rain monitoring: {len(summary['failed'])} failed, "
                f"{summary['weather_unavailable']} without weather data"
            )
        return summary

    async def _check_one(self, project: ProjectSite):
        return await self.engine.check_rain_trigger(
            project.project_id, project.location, timezone=project.timezone
        )

    async def run_rain_checks(self, list_projects: ProjectLoader) -> Dict[str, Any]:
        """Job entry point: load the active projects and check them all."""
        try:
            projects = await list_projects()
        except Exception as e:
            logger.error(f"MONITORING FAILURE: could not load projects for rain check: {e}")
            return {"checked": 0, "error": str(e)}
        logger.info(f"Running rain checks for {len(projects)} projects")
        return await self.check_projects(projects)

    def get_status(self) -> dict:
        return {
            "last_run": self._last_run.isoformat() if self._last_run else None,
            "last_summary": self._last_summary,
        }


def setup_apscheduler(scheduler, monitor: RainMonitor, engine, list_projects: ProjectLoader,
                      rain_check_minutes: Optional[int] = None,
                      deadline_check_minutes: Optional[int] = None):
    """
    Configure APScheduler with compliance jobs.

    Usage:
        from apscheduler.schedulers.asyncio import AsyncIOScheduler
        scheduler = AsyncIOScheduler()
        setup_apscheduler(scheduler, monitor, engine, list_projects)
        scheduler.start()

    Args:
        scheduler: APScheduler instance (AsyncIOScheduler)
        monitor: RainMonitor running the per-project checks
        engine: ComplianceEngine whose pending deadlines are scanned
        list_projects: coroutine function returning the active ProjectSites
        rain_check_minutes: defaults to settings.RAIN_CHECK_INTERVAL_MINUTES
        deadline_check_minutes: defaults to settings.ESCALATION_CHECK_MINUTES
    """
    rain_check_minutes = rain_check_minutes or settings.RAIN_CHECK_INTERVAL_MINUTES
    deadline_check_minutes = deadline_check_minutes or settings.ESCALATION_CHECK_MINUTES

    scheduler.add_job(
        monitor.run_rain_checks,
        'interval',
        minutes=rain_check_minutes,
        args=[list_projects],
        id='rain_checks',
        name='Rain Trigger Check',
        replace_existing=True,
        max_instances=1,
    )

    scheduler.add_job(
        engine.check_pending_deadlines,
        'interval',
        minutes=deadline_check_minutes,
        id='deadline_checks',
        name='Inspection Deadline Check',
        replace_existing=True,
        max_instances=1,
    )

    logger.info("Compliance scheduler jobs configured")
