"""
Audit Log model for tracking compliance state changes.

Every trigger creation, status transition and escalation is logged here,
giving a regulator-facing history independent of the trigger rows themselves.
"""
from sqlalchemy import Column, String, DateTime, Text, JSON, Index
from sqlalchemy.sql import func
from uuid import uuid4

from raintrigger.database import Base


class AuditLog(Base):
    """
    Audit Log - Append-only record of compliance events.

    Rows are never updated or deleted by the application.
    """

    __tablename__ = "audit_logs"

    id = Column(String, primary_key=True, default=lambda: f"audit_{uuid4().hex[:12]}")

    # What changed?
    entity_type = Column(String, nullable=False, index=True)
    # Options: "rain_trigger", "cooldown_state"

    entity_id = Column(String, nullable=False, index=True)

    # What kind of change?
    action = Column(String, nullable=False, index=True)
    # Options:
    # - "create": Trigger created
    # - "escalate": Deadline warning sent
    # - "discharge": Inspection recorded
    # - "expire": Deadline passed without inspection

    field_name = Column(String, nullable=True)
    old_value = Column(JSON, nullable=True)
    new_value = Column(JSON, nullable=True)

    project_id = Column(String, nullable=True, index=True)

    # What triggered the change?
    source = Column(String, nullable=False, default="system")
    # Options: "system", "api", "scheduler"

    extra_data = Column("extra_data", JSON, nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    __table_args__ = (
        Index("ix_audit_log_entity", "entity_type", "entity_id"),
        Index("ix_audit_log_project_time", "project_id", "created_at"),
    )

    def __repr__(self):
        return (
            f"<AuditLog {self.id}: "
            f"{self.action} on {self.entity_type}/{self.entity_id} "
            f"at {self.created_at}>"
        )
