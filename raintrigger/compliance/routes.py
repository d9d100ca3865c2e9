"""
Compliance Routes

API endpoints for rain checks, inspection history, cooldown status and the
deadline scan.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel

from .engine import ComplianceEngine
from .exceptions import InvalidLocation, InvalidTimezone, InvalidTransition, TriggerNotFound
from .types import Trigger

router = APIRouter(prefix="/compliance", tags=["Compliance"])


def get_engine(request: Request) -> ComplianceEngine:
    """The engine is built once at startup and kept on app.state."""
    return request.app.state.engine


# =============================================================================
# SCHEMAS
# =============================================================================

class RainCheckRequest(BaseModel):
    """Project site to evaluate."""
    lat: Optional[float] = None
    lng: Optional[float] = None
    timezone: Optional[str] = None


class TriggerResponse(BaseModel):
    id: str
    project_id: str
    inspection_type: str
    precipitation_amount: str
    threshold: str
    triggered_at: datetime
    deadline: datetime
    regulation: str
    status: str
    saved: bool
    error: Optional[str] = None
    escalated_at: Optional[datetime] = None
    discharged_at: Optional[datetime] = None
    expired_at: Optional[datetime] = None
    precipitation_events: List[Dict[str, Any]] = []
    audit_trail: Dict[str, Any]

    @classmethod
    def from_trigger(cls, trigger: Trigger) -> "TriggerResponse":
        return cls(**trigger.to_dict())


class RainCheckResponse(BaseModel):
    """Result of a rain check. ``trigger`` is set only when an obligation fired."""
    project_id: str
    triggered: bool
    outcome: Optional[str] = None
    trigger: Optional[TriggerResponse] = None
    error: Optional[str] = None


class HistoryResponse(BaseModel):
    project_id: str
    triggers: List[TriggerResponse]
    total: int


class CooldownResponse(BaseModel):
    project_id: str
    active: bool
    remaining_hours: float
    last_triggered_at: Optional[datetime] = None


class DeadlineCheckRequest(BaseModel):
    now: Optional[datetime] = None


class DeadlineCheckResponse(BaseModel):
    checked: int
    escalated: int
    expired: int
    notification_failures: int
    errors: int


class DischargeRequest(BaseModel):
    inspected_at: Optional[datetime] = None


class StatusResponse(BaseModel):
    last_error: Optional[str] = None


# =============================================================================
# ROUTES
# =============================================================================

@router.post("/projects/{project_id}/rain-check", response_model=RainCheckResponse)
async def check_rain(
    project_id: str,
    body: RainCheckRequest,
    engine: ComplianceEngine = Depends(get_engine),
):
    """Evaluate the last 24h of rain for a project site."""
    try:
        trigger = await engine.check_rain_trigger(
            project_id,
            {"lat": body.lat, "lng": body.lng},
            timezone=body.timezone,
        )
    except (InvalidLocation, InvalidTimezone) as e:
        raise HTTPException(status_code=422, detail=str(e))

    outcome = engine.get_last_outcome(project_id)
    return RainCheckResponse(
        project_id=project_id,
        triggered=trigger is not None,
        outcome=outcome.value if outcome else None,
        trigger=TriggerResponse.from_trigger(trigger) if trigger else None,
        error=trigger.error if trigger else None,
    )


@router.get("/projects/{project_id}/history", response_model=HistoryResponse)
async def get_history(project_id: str, engine: ComplianceEngine = Depends(get_engine)):
    """All triggers for a project, oldest first."""
    triggers = await engine.get_compliance_history(project_id)
    return HistoryResponse(
        project_id=project_id,
        triggers=[TriggerResponse.from_trigger(t) for t in triggers],
        total=len(triggers),
    )


@router.get("/projects/{project_id}/cooldown", response_model=CooldownResponse)
async def get_cooldown(project_id: str, engine: ComplianceEngine = Depends(get_engine)):
    status = await engine.get_cooldown_status(project_id)
    return CooldownResponse(
        project_id=project_id,
        active=status.active,
        remaining_hours=status.remaining_hours,
        last_triggered_at=status.last_triggered_at,
    )


@router.post("/deadlines/check", response_model=DeadlineCheckResponse)
async def check_deadlines(
    body: Optional[DeadlineCheckRequest] = None,
    engine: ComplianceEngine = Depends(get_engine),
):
    """Run the escalation / expiry scan now."""
    summary = await engine.check_pending_deadlines(body.now if body else None)
    return DeadlineCheckResponse(**summary)


@router.post("/triggers/{trigger_id}/discharge", response_model=TriggerResponse)
async def discharge(
    trigger_id: str,
    body: Optional[DischargeRequest] = None,
    engine: ComplianceEngine = Depends(get_engine),
):
    """Record the inspection for a pending trigger."""
    try:
        trigger = await engine.discharge_trigger(trigger_id, body.inspected_at if body else None)
    except TriggerNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidTransition as e:
        raise HTTPException(status_code=409, detail=str(e))
    return TriggerResponse.from_trigger(trigger)


@router.get("/status", response_model=StatusResponse)
async def get_status(engine: ComplianceEngine = Depends(get_engine)):
    return StatusResponse(last_error=engine.get_last_error())
