"""
Rain-trigger compliance core.

The engine, escalation scheduler and monitoring job live in their own
modules (``engine``, ``escalation``, ``scheduler``) and are imported from
there; this package only exports the value types and errors.
"""

from .exceptions import (
    ComplianceError,
    InvalidLocation,
    InvalidTimezone,
    InvalidInput,
    WeatherUnavailable,
    PersistenceFailure,
    TriggerNotFound,
    InvalidTransition,
)
from .types import (
    TriggerStatus,
    CalculationMethod,
    NotificationType,
    NotificationPriority,
    NotificationChannel,
    EvaluationOutcome,
    PrecipitationObservation,
    HourlyReading,
    Location,
    AuditTrail,
    Trigger,
    CooldownResult,
    CooldownStatus,
    NotificationIntent,
)

__all__ = [
    # Errors
    "ComplianceError",
    "InvalidLocation",
    "InvalidTimezone",
    "InvalidInput",
    "WeatherUnavailable",
    "PersistenceFailure",
    "TriggerNotFound",
    "InvalidTransition",
    # Types
    "TriggerStatus",
    "CalculationMethod",
    "NotificationType",
    "NotificationPriority",
    "NotificationChannel",
    "EvaluationOutcome",
    "PrecipitationObservation",
    "HourlyReading",
    "Location",
    "AuditTrail",
    "Trigger",
    "CooldownResult",
    "CooldownStatus",
    "NotificationIntent",
]
