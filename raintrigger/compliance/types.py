"""
Compliance Types - Core Data Structures.

Value objects shared by the rain-trigger pipeline:
- PrecipitationObservation / HourlyReading: what the weather source reports
- Location: validated project coordinates
- AuditTrail: write-once record of how a trigger was decided
- Trigger: the inspection obligation itself
- NotificationIntent: what the engine asks the notification channel to send
"""

from dataclasses import dataclass, field
import datetime as dt
from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4


# =============================================================================
# ENUMS
# =============================================================================

class TriggerStatus(str, Enum):
    """Lifecycle of an inspection obligation."""
    PENDING_INSPECTION = "PENDING_INSPECTION"  # Deadline running
    DISCHARGED = "DISCHARGED"                  # Inspection recorded
    EXPIRED = "EXPIRED"                        # Deadline passed, compliance violation


class CalculationMethod(str, Enum):
    """How the 24h precipitation amount was obtained."""
    SINGLE_READING = "SINGLE_READING"      # Provider reported a rolling 24h total
    ROLLING_24H_SUM = "ROLLING_24H_SUM"    # Discrete observations summed in the window


class NotificationType(str, Enum):
    COMPLIANCE_REQUIRED = "COMPLIANCE_REQUIRED"
    DEADLINE_WARNING = "DEADLINE_WARNING"


class NotificationPriority(str, Enum):
    HIGH = "HIGH"
    URGENT = "URGENT"


class NotificationChannel(str, Enum):
    PUSH = "push"
    SMS = "sms"
    EMAIL = "email"
    PHONE = "phone"


class EvaluationOutcome(str, Enum):
    """Result of the latest rain check for a project."""
    TRIGGERED = "triggered"
    BELOW_THRESHOLD = "below_threshold"
    COOLDOWN_SUPPRESSED = "cooldown_suppressed"
    WEATHER_UNAVAILABLE = "weather_unavailable"  # Status unknown, not "no rain"


COMPLIANCE_CHANNELS: Tuple[NotificationChannel, ...] = (
    NotificationChannel.PUSH,
    NotificationChannel.SMS,
    NotificationChannel.EMAIL,
)
ESCALATION_CHANNELS: Tuple[NotificationChannel, ...] = COMPLIANCE_CHANNELS + (
    NotificationChannel.PHONE,
)

SWPPP_INSPECTION = "SWPPP_INSPECTION"


# =============================================================================
# PRECIPITATION
# =============================================================================

@dataclass(frozen=True)
class PrecipitationObservation:
    """One precipitation amount (inches). Immutable once recorded."""
    amount: Decimal
    observed_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "amount": str(self.amount),
            "observed_at": self.observed_at.isoformat() if self.observed_at else None,
        }


@dataclass(frozen=True)
class HourlyReading:
    """Hourly bucket as reported by weather providers.

    ``date`` may be omitted by sources that only report "the last 24 hours".
    """
    hour: int
    precipitation: Any
    date: Optional[dt.date] = None


@dataclass(frozen=True)
class Location:
    lat: float
    lng: float

    def to_dict(self) -> Dict[str, float]:
        return {"lat": self.lat, "lng": self.lng}


# =============================================================================
# TRIGGER
# =============================================================================

@dataclass(frozen=True)
class AuditTrail:
    """Write-once record kept for regulatory defensibility."""
    triggered_at: datetime
    precipitation_amount: Decimal
    precipitation_source: str
    threshold: Decimal
    regulation: str
    location: Location
    calculation_method: CalculationMethod
    timezone: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "triggered_at": self.triggered_at.isoformat(),
            "precipitation_amount": str(self.precipitation_amount),
            "precipitation_source": self.precipitation_source,
            "threshold": str(self.threshold),
            "regulation": self.regulation,
            "location": self.location.to_dict(),
            "calculation_method": self.calculation_method.value,
            "timezone": self.timezone,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AuditTrail":
        return cls(
            triggered_at=datetime.fromisoformat(data["triggered_at"]),
            precipitation_amount=Decimal(data["precipitation_amount"]),
            precipitation_source=data["precipitation_source"],
            threshold=Decimal(data["threshold"]),
            regulation=data["regulation"],
            location=Location(**data["location"]),
            calculation_method=CalculationMethod(data["calculation_method"]),
            timezone=data["timezone"],
        )


@dataclass
class Trigger:
    """
    An inspection obligation fired by rain.

    ``saved`` is False (and ``error`` set) when the storage write failed;
    the deadline is still valid and the caller may retry the write.
    """
    project_id: str
    precipitation_amount: Decimal
    threshold: Decimal
    triggered_at: datetime
    deadline: datetime
    regulation: str
    audit_trail: AuditTrail
    id: str = field(default_factory=lambda: f"trg_{uuid4().hex[:12]}")
    inspection_type: str = SWPPP_INSPECTION
    status: TriggerStatus = TriggerStatus.PENDING_INSPECTION
    precipitation_events: List[PrecipitationObservation] = field(default_factory=list)
    saved: bool = False
    error: Optional[str] = None
    escalated_at: Optional[datetime] = None
    discharged_at: Optional[datetime] = None
    expired_at: Optional[datetime] = None

    def remaining(self, now: datetime) -> timedelta:
        return self.deadline - now

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "inspection_type": self.inspection_type,
            "precipitation_amount": str(self.precipitation_amount),
            "threshold": str(self.threshold),
            "triggered_at": self.triggered_at.isoformat(),
            "deadline": self.deadline.isoformat(),
            "regulation": self.regulation,
            "status": self.status.value,
            "saved": self.saved,
            "error": self.error,
            "escalated_at": self.escalated_at.isoformat() if self.escalated_at else None,
            "discharged_at": self.discharged_at.isoformat() if self.discharged_at else None,
            "expired_at": self.expired_at.isoformat() if self.expired_at else None,
            "precipitation_events": [e.to_dict() for e in self.precipitation_events],
            "audit_trail": self.audit_trail.to_dict(),
        }


# =============================================================================
# COOLDOWN
# =============================================================================

@dataclass(frozen=True)
class CooldownResult:
    acquired: bool
    remaining: timedelta = timedelta(0)


@dataclass(frozen=True)
class CooldownStatus:
    active: bool
    remaining_hours: float
    last_triggered_at: Optional[datetime] = None


# =============================================================================
# NOTIFICATIONS
# =============================================================================

@dataclass(frozen=True)
class NotificationIntent:
    """Ephemeral request handed to the notification channel; never persisted."""
    type: NotificationType
    priority: NotificationPriority
    channels: Tuple[NotificationChannel, ...]
    project_id: str
    trigger_id: str
    deadline: datetime
    title: str
    message: str
    regulatory_basis: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    remaining_hours: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "priority": self.priority.value,
            "channels": [c.value for c in self.channels],
            "project_id": self.project_id,
            "trigger_id": self.trigger_id,
            "deadline": self.deadline.isoformat(),
            "title": self.title,
            "message": self.message,
            "regulatory_basis": self.regulatory_basis,
            "remaining_hours": self.remaining_hours,
            "metadata": self.metadata,
        }
