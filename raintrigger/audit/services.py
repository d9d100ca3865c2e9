"""
Audit Service for logging compliance state changes.

Provides a small interface over AuditLog so stores and jobs can record what
happened to a trigger without building rows by hand.
"""
from datetime import datetime
from typing import Optional, Dict, Any, List, Literal
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, asc

from raintrigger.audit.models import AuditLog


# Type aliases
EntityType = Literal["rain_trigger"]
ActionType = Literal["create", "escalate", "discharge", "expire"]
SourceType = Literal["system", "api", "scheduler"]


class AuditService:
    """
    Service for logging audit events.

    Usage:
        audit = AuditService(db, source="scheduler")
        await audit.log_create("rain_trigger", trigger.id, trigger.to_dict(), project_id=...)
        await audit.log_transition("rain_trigger", trigger.id, "expire", "PENDING_INSPECTION", "EXPIRED")
    """

    def __init__(self, db: AsyncSession, source: SourceType = "system"):
        self.db = db
        self.source = source

    # ==========================================================================
    # Core Logging Methods
    # ==========================================================================

    async def log(
        self,
        entity_type: EntityType,
        entity_id: str,
        action: ActionType,
        project_id: Optional[str] = None,
        field_name: Optional[str] = None,
        old_value: Optional[Any] = None,
        new_value: Optional[Any] = None,
        extra_data: Optional[Dict[str, Any]] = None,
        notes: Optional[str] = None,
    ) -> AuditLog:
        """
        Log an audit event.

        Args:
            entity_type: Type of entity being changed
            entity_id: ID of the entity
            action: Type of action
            project_id: Project the entity belongs to
            field_name: Optional specific field that changed
            old_value: Previous value
            new_value: New value
            extra_data: Additional context
            notes: Human-readable notes

        Returns:
            Created AuditLog
        """
        log = AuditLog(
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            project_id=project_id,
            field_name=field_name,
            old_value=old_value,
            new_value=new_value,
            source=self.source,
            extra_data=extra_data,
            notes=notes,
        )

        self.db.add(log)
        # Don't commit here - let caller manage transaction
        return log

    # ==========================================================================
    # Convenience Methods
    # ==========================================================================

    async def log_create(
        self,
        entity_type: EntityType,
        entity_id: str,
        new_value: Dict[str, Any],
        project_id: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> AuditLog:
        """Log a create operation."""
        return await self.log(
            entity_type=entity_type,
            entity_id=entity_id,
            action="create",
            project_id=project_id,
            new_value=new_value,
            notes=notes,
        )

    async def log_transition(
        self,
        entity_type: EntityType,
        entity_id: str,
        action: ActionType,
        old_status: Optional[str],
        new_status: Optional[str],
        project_id: Optional[str] = None,
        at: Optional[datetime] = None,
    ) -> AuditLog:
        """Log a status change (or escalation) on an entity."""
        return await self.log(
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            project_id=project_id,
            field_name="status",
            old_value=old_status,
            new_value=new_status,
            extra_data={"at": at.isoformat()} if at else None,
        )

    # ==========================================================================
    # Query Methods
    # ==========================================================================

    async def get_entity_history(
        self,
        entity_type: EntityType,
        entity_id: str,
        limit: int = 100,
    ) -> List[AuditLog]:
        """Get audit history for an entity, oldest first."""
        query = (
            select(AuditLog)
            .where(
                and_(
                    AuditLog.entity_type == entity_type,
                    AuditLog.entity_id == entity_id,
                )
            )
            .order_by(asc(AuditLog.created_at))
            .limit(limit)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())
