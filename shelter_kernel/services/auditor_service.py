"""
AuditorService -- best-effort audit trail for workflow mutations.

Responsibility:
    Appends one AuditLog row per state-changing workflow call (who, what,
    which entity, which changes) and answers trace queries for forensic
    review.

Architecture position:
    Kernel > Services -- imperative shell, called by
    AdoptionWorkflowService.

Invariants enforced:
    - Append-only: audit rows are inserted, never modified or deleted.
    - Non-blocking: every write runs in its own SAVEPOINT.  A failed write
      rolls back only that savepoint, is logged as ``audit_write_failed``,
      and the triggering workflow call still succeeds.

Failure modes:
    - None surfaced.  ``record()`` returns None when the write failed.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from shelter_kernel.domain.clock import Clock
from shelter_kernel.domain.requests import as_payload
from shelter_kernel.logging_config import get_logger
from shelter_kernel.models.audit_log import AuditAction, AuditLog
from shelter_kernel.services.base import BaseService

logger = get_logger("services.auditor")


@dataclass(frozen=True)
class AuditTraceEntry:
    """A single entry in an audit trace."""

    action: AuditAction
    occurred_at: datetime
    actor_id: UUID
    changes: dict[str, Any]


@dataclass(frozen=True)
class AuditTrace:
    """All audit entries for one entity, oldest first."""

    entity_type: str
    entity_id: UUID
    entries: tuple[AuditTraceEntry, ...]

    @property
    def is_empty(self) -> bool:
        return len(self.entries) == 0

    @property
    def actions(self) -> tuple[AuditAction, ...]:
        return tuple(e.action for e in self.entries)


class AuditorService(BaseService):
    """
    Service for recording and reading the audit trail.

    Contract:
        ``record()`` never raises.  Changes are converted to JSON-safe
        primitives before they are stored.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session, clock)

    def record(
        self,
        entity_type: str,
        entity_id: UUID,
        action: AuditAction,
        actor_id: UUID,
        changes: dict[str, Any] | None = None,
    ) -> AuditLog | None:
        """
        Append one audit row inside a SAVEPOINT.

        Returns:
            The flushed AuditLog, or None if the write failed.
        """
        try:
            with self.session.begin_nested():
                entry = self._write(entity_type, entity_id, action, actor_id, changes)
        except Exception:
            # Audit must never fail the workflow.
            logger.warning(
                "audit_write_failed",
                extra={
                    "entity_type": entity_type,
                    "entity_id": str(entity_id),
                    "action": action.value,
                },
                exc_info=True,
            )
            return None

        logger.debug(
            "audit_log_created",
            extra={
                "entity_type": entity_type,
                "entity_id": str(entity_id),
                "action": action.value,
            },
        )
        return entry

    def _write(
        self,
        entity_type: str,
        entity_id: UUID,
        action: AuditAction,
        actor_id: UUID,
        changes: dict[str, Any] | None,
    ) -> AuditLog:
        entry = AuditLog(
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            actor_id=actor_id,
            changes=as_payload(changes) if changes else None,
            occurred_at=self.clock.now(),
        )
        self.session.add(entry)
        self.session.flush()
        return entry

    # Trace and query methods

    def get_trace(self, entity_type: str, entity_id: UUID) -> AuditTrace:
        rows = self.session.execute(
            select(AuditLog)
            .where(
                AuditLog.entity_type == entity_type,
                AuditLog.entity_id == entity_id,
            )
            .order_by(AuditLog.occurred_at)
        ).scalars().all()

        return AuditTrace(
            entity_type=entity_type,
            entity_id=entity_id,
            entries=tuple(
                AuditTraceEntry(
                    action=row.action,
                    occurred_at=row.occurred_at,
                    actor_id=row.actor_id,
                    changes=row.changes or {},
                )
                for row in rows
            ),
        )

    def get_recent(self, limit: int = 100) -> list[AuditLog]:
        """Most recent audit rows first."""
        result = self.session.execute(
            select(AuditLog).order_by(AuditLog.occurred_at.desc()).limit(limit)
        )
        return list(result.scalars().all())
