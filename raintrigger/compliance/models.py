"""
Compliance Models

Persistent rain triggers and per-project cooldown state.
"""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import Column, String, DateTime, Numeric, JSON, Index

from raintrigger.database import Base


class RainTrigger(Base):
    """
    A persisted inspection obligation.

    The audit_trail column is written once at creation and never updated.
    """
    __tablename__ = "rain_triggers"

    id = Column(String, primary_key=True, default=lambda: f"trg_{uuid4().hex[:12]}")
    project_id = Column(String, nullable=False, index=True)

    inspection_type = Column(String, nullable=False, default="SWPPP_INSPECTION")
    regulation = Column(String, nullable=False)

    # Inches; scale keeps provider precision (e.g. 0.251234567)
    precipitation_amount = Column(Numeric(precision=18, scale=9), nullable=False)
    threshold = Column(Numeric(precision=6, scale=4), nullable=False)

    status = Column(String, nullable=False, default="PENDING_INSPECTION", index=True)
    # Options: "PENDING_INSPECTION", "DISCHARGED", "EXPIRED"

    triggered_at = Column(DateTime(timezone=True), nullable=False)
    deadline = Column(DateTime(timezone=True), nullable=False, index=True)

    # Write-once audit record and the observations counted in the window
    audit_trail = Column(JSON, nullable=False)
    precipitation_events = Column(JSON, nullable=False, default=list)

    escalated_at = Column(DateTime(timezone=True), nullable=True)
    discharged_at = Column(DateTime(timezone=True), nullable=True)
    expired_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("ix_rain_triggers_project_time", "project_id", "triggered_at"),
        Index("ix_rain_triggers_status_deadline", "status", "deadline"),
    )

    def __repr__(self):
        return f"<RainTrigger {self.id}: {self.project_id} {self.status} due {self.deadline}>"


class CooldownState(Base):
    """One row per project, overwritten on each successful trigger."""
    __tablename__ = "cooldown_states"

    project_id = Column(String, primary_key=True)
    last_triggered_at = Column(DateTime(timezone=True), nullable=False)
