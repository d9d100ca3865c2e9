"""
Notification Templates

Builds the intents sent when an inspection obligation fires and when its
deadline is about to pass.
"""

from datetime import datetime
from decimal import Decimal

from raintrigger.compliance.types import (
    COMPLIANCE_CHANNELS,
    ESCALATION_CHANNELS,
    Location,
    NotificationIntent,
    NotificationPriority,
    NotificationType,
    Trigger,
)


def format_inches(amount: Decimal) -> str:
    """0.2600 -> 0.26; always at least two decimals."""
    text = format(amount.normalize(), "f")
    whole, _, frac = text.partition(".")
    return f"{whole}.{frac.ljust(2, '0')}"


def build_compliance_intent(trigger: Trigger, location: Location) -> NotificationIntent:
    return NotificationIntent(
        type=NotificationType.COMPLIANCE_REQUIRED,
        priority=NotificationPriority.HIGH,
        channels=COMPLIANCE_CHANNELS,
        project_id=trigger.project_id,
        trigger_id=trigger.id,
        deadline=trigger.deadline,
        title="SWPPP Inspection Required",
        message=(
            f"{format_inches(trigger.precipitation_amount)}\" of rain recorded in the last 24 hours "
            f"(threshold {format_inches(trigger.threshold)}\"). "
            f"Inspection due by {trigger.deadline.isoformat()}."
        ),
        regulatory_basis=trigger.regulation,
        metadata={
            "location": location.to_dict(),
            "regulatory_basis": trigger.regulation,
            "precipitation_amount": str(trigger.precipitation_amount),
        },
    )


def build_escalation_intent(trigger: Trigger, now: datetime) -> NotificationIntent:
    remaining_hours = round((trigger.deadline - now).total_seconds() / 3600, 2)
    return NotificationIntent(
        type=NotificationType.DEADLINE_WARNING,
        priority=NotificationPriority.URGENT,
        channels=ESCALATION_CHANNELS,
        project_id=trigger.project_id,
        trigger_id=trigger.id,
        deadline=trigger.deadline,
        title="URGENT: SWPPP Inspection Deadline Approaching",
        message=(
            f"Inspection for project {trigger.project_id} is due in {remaining_hours} hours "
            f"({trigger.deadline.isoformat()}). Missing it is a compliance violation."
        ),
        regulatory_basis=trigger.regulation,
        remaining_hours=remaining_hours,
        metadata={
            "location": trigger.audit_trail.location.to_dict(),
            "regulatory_basis": trigger.regulation,
        },
    )
