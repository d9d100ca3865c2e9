"""
SQLAlchemy-backed trigger store and cooldown repository.

Each operation opens its own session from the session factory, so the store
is safe to share between concurrently running evaluations. Status changes use
conditional UPDATEs (compare-and-set) and every change is written to the
audit log in the same transaction.
"""
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional
import logging

from sqlalchemy import select, update, asc
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from raintrigger.audit.services import AuditService
from raintrigger.compliance.cooldown import CooldownRepository
from raintrigger.compliance.models import CooldownState, RainTrigger
from raintrigger.compliance.types import (
    AuditTrail,
    PrecipitationObservation,
    Trigger,
    TriggerStatus,
)

from .base import TriggerStore

logger = logging.getLogger(__name__)

_TRANSITION_ACTIONS = {
    TriggerStatus.DISCHARGED: "discharge",
    TriggerStatus.EXPIRED: "expire",
}


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; everything is stored as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _row_to_trigger(row: RainTrigger) -> Trigger:
    return Trigger(
        id=row.id,
        project_id=row.project_id,
        inspection_type=row.inspection_type,
        precipitation_amount=Decimal(row.precipitation_amount),
        threshold=Decimal(row.threshold),
        triggered_at=_as_utc(row.triggered_at),
        deadline=_as_utc(row.deadline),
        regulation=row.regulation,
        status=TriggerStatus(row.status),
        audit_trail=AuditTrail.from_dict(row.audit_trail),
        precipitation_events=[
            PrecipitationObservation(
                amount=Decimal(e["amount"]),
                observed_at=_as_utc(datetime.fromisoformat(e["observed_at"])) if e.get("observed_at") else None,
            )
            for e in (row.precipitation_events or [])
        ],
        saved=True,
        escalated_at=_as_utc(row.escalated_at),
        discharged_at=_as_utc(row.discharged_at),
        expired_at=_as_utc(row.expired_at),
    )


class SqlTriggerStore(TriggerStore):
    """Trigger persistence on the rain_triggers table."""

    def __init__(self, session_maker: Optional[async_sessionmaker] = None):
        if session_maker is None:
            from raintrigger.database import async_session_maker as session_maker
        self.session_maker = session_maker

    async def save_trigger(self, trigger: Trigger) -> None:
        async with self.session_maker() as db:
            row = await db.get(RainTrigger, trigger.id)
            created = row is None
            if created:
                row = RainTrigger(id=trigger.id)
                db.add(row)

            row.project_id = trigger.project_id
            row.inspection_type = trigger.inspection_type
            row.regulation = trigger.regulation
            row.precipitation_amount = trigger.precipitation_amount
            row.threshold = trigger.threshold
            row.status = trigger.status.value
            row.triggered_at = _as_utc(trigger.triggered_at)
            row.deadline = _as_utc(trigger.deadline)
            row.escalated_at = _as_utc(trigger.escalated_at)
            row.discharged_at = _as_utc(trigger.discharged_at)
            row.expired_at = _as_utc(trigger.expired_at)
            row.precipitation_events = [e.to_dict() for e in trigger.precipitation_events]
            if created:
                # Audit trail is write-once
                row.audit_trail = trigger.audit_trail.to_dict()
                await AuditService(db).log_create(
                    "rain_trigger",
                    trigger.id,
                    trigger.audit_trail.to_dict(),
                    project_id=trigger.project_id,
                )

            await db.commit()

    async def get_trigger(self, trigger_id: str) -> Optional[Trigger]:
        async with self.session_maker() as db:
            row = await db.get(RainTrigger, trigger_id)
            return _row_to_trigger(row) if row else None

    async def get_compliance_history(self, project_id: str) -> List[Trigger]:
        async with self.session_maker() as db:
            result = await db.execute(
                select(RainTrigger)
                .where(RainTrigger.project_id == project_id)
                .order_by(asc(RainTrigger.triggered_at))
            )
            return [_row_to_trigger(row) for row in result.scalars().all()]

    async def list_pending(self) -> List[Trigger]:
        async with self.session_maker() as db:
            result = await db.execute(
                select(RainTrigger)
                .where(RainTrigger.status == TriggerStatus.PENDING_INSPECTION.value)
                .order_by(asc(RainTrigger.deadline))
            )
            return [_row_to_trigger(row) for row in result.scalars().all()]

    async def mark_escalated(self, trigger_id: str, at: datetime) -> bool:
        async with self.session_maker() as db:
            result = await db.execute(
                update(RainTrigger)
                .where(RainTrigger.id == trigger_id)
                .where(RainTrigger.escalated_at.is_(None))
                .values(escalated_at=_as_utc(at))
            )
            if result.rowcount != 1:
                await db.rollback()
                return False
            await AuditService(db, source="scheduler").log_transition(
                "rain_trigger", trigger_id, "escalate", None, None, at=at
            )
            await db.commit()
            return True

    async def transition_status(
        self,
        trigger_id: str,
        expected: TriggerStatus,
        new_status: TriggerStatus,
        at: datetime,
    ) -> bool:
        values = {"status": new_status.value}
        if new_status == TriggerStatus.DISCHARGED:
            values["discharged_at"] = _as_utc(at)
        elif new_status == TriggerStatus.EXPIRED:
            values["expired_at"] = _as_utc(at)

        async with self.session_maker() as db:
            result = await db.execute(
                update(RainTrigger)
                .where(RainTrigger.id == trigger_id)
                .where(RainTrigger.status == expected.value)
                .values(**values)
            )
            if result.rowcount != 1:
                await db.rollback()
                return False
            await AuditService(db).log_transition(
                "rain_trigger",
                trigger_id,
                _TRANSITION_ACTIONS[new_status],
                expected.value,
                new_status.value,
                at=at,
            )
            await db.commit()
            return True


class SqlCooldownRepository(CooldownRepository):
    """Cooldown state on the cooldown_states table, one row per project."""

    def __init__(self, session_maker: Optional[async_sessionmaker] = None):
        if session_maker is None:
            from raintrigger.database import async_session_maker as session_maker
        self.session_maker = session_maker

    async def get_last_triggered(self, project_id: str) -> Optional[datetime]:
        async with self.session_maker() as db:
            row = await db.get(CooldownState, project_id)
            return _as_utc(row.last_triggered_at) if row else None

    async def compare_and_set(
        self,
        project_id: str,
        expected: Optional[datetime],
        new_value: datetime,
    ) -> bool:
        async with self.session_maker() as db:
            if expected is None:
                return await self._insert_first(db, project_id, new_value)

            result = await db.execute(
                update(CooldownState)
                .where(CooldownState.project_id == project_id)
                .where(CooldownState.last_triggered_at == _as_utc(expected))
                .values(last_triggered_at=_as_utc(new_value))
            )
            if result.rowcount != 1:
                await db.rollback()
                return False
            await db.commit()
            return True

    async def _insert_first(self, db: AsyncSession, project_id: str, new_value: datetime) -> bool:
        db.add(CooldownState(project_id=project_id, last_triggered_at=_as_utc(new_value)))
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            logger.debug(f"Cooldown row for project {project_id} created concurrently")
            return False
        return True
