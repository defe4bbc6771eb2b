"""
Module: shelter_kernel.models.side_effect
Responsibility: ORM persistence for the outbox of secondary writes that
    failed during a workflow call and still need to be applied.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - A row is written in the same transaction as the primary entity, so a
      committed adoption or return never loses its pending sync.
    - Status moves pending -> applied or pending -> abandoned, never back.
    - attempts counts every retry, successful or not.

Failure modes:
    - SideEffectNotFoundError when an id does not resolve.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from shelter_kernel.db.base import Base, EnumString, UUIDString


class SideEffectType(str, Enum):
    """The secondary writes the workflow may defer."""

    APPLICATION_STATUS = "application_status"
    ANIMAL_STATUS = "animal_status"


class SideEffectStatus(str, Enum):
    PENDING = "pending"
    APPLIED = "applied"
    ABANDONED = "abandoned"


class PendingSideEffect(Base):
    """
    A deferred status change for an application or animal.

    Contract:
        ``target_status`` is the status the entity should end up in.
        ``expected_statuses`` lists the statuses it may be in for the
        change to apply (empty means any).  ``source_entity_id`` is the
        adoption that caused the change.
    """

    __tablename__ = "pending_side_effects"

    __table_args__ = (
        Index("idx_side_effect_status", "status"),
        Index("idx_side_effect_entity", "entity_type", "entity_id"),
    )

    effect_type: Mapped[SideEffectType] = mapped_column(
        EnumString(SideEffectType),
        nullable=False,
    )

    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    target_status: Mapped[str] = mapped_column(String(30), nullable=False)

    # Comma-separated
    expected_statuses: Mapped[str | None] = mapped_column(String(255), nullable=True)

    source_entity_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    status: Mapped[SideEffectStatus] = mapped_column(
        EnumString(SideEffectStatus, length=20),
        default=SideEffectStatus.PENDING,
        nullable=False,
    )

    attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(nullable=False)
    updated_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return (
            f"<PendingSideEffect {self.effect_type.value} "
            f"{self.entity_type}:{self.entity_id} -> {self.target_status} "
            f"({self.status.value})>"
        )

    @property
    def expected(self) -> tuple[str, ...]:
        if not self.expected_statuses:
            return ()
        return tuple(self.expected_statuses.split(","))
