"""
Module: shelter_kernel.models.audit_log
Responsibility: ORM persistence for the append-only audit trail of workflow
    mutations.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - One row per state-changing workflow call.
    - Rows are only ever inserted; nothing in the kernel updates or deletes
      them.

Failure modes:
    - Write failures are caught by AuditorService, logged as
      ``audit_write_failed`` and never reach the caller.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import JSON, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from shelter_kernel.db.base import Base, EnumString, UUIDString


class AuditAction(str, Enum):
    """Kinds of auditable mutation."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class AuditLog(Base):
    """
    Who did what to which entity.

    Guarantees:
        - occurred_at comes from the injected clock, not the database.
        - changes holds the JSON-safe patch (or created snapshot) or None.
    """

    __tablename__ = "audit_logs"

    __table_args__ = (
        Index("idx_audit_entity", "entity_type", "entity_id"),
        Index("idx_audit_actor", "actor_id"),
        Index("idx_audit_occurred", "occurred_at"),
    )

    actor_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    action: Mapped[AuditAction] = mapped_column(
        EnumString(AuditAction, length=20),
        nullable=False,
    )

    # adoption_application, adoption, ...
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)

    entity_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    changes: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    occurred_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<AuditLog {self.action.value} on {self.entity_type}:{self.entity_id}>"
