"""
Module: shelter_kernel.models.adoption_record
Responsibility: ORM persistence for finalized adoptions and their scheduled
    follow-up visits.
Architecture position: Kernel > Models.  May import from db/ and domain/
    only.

Invariants enforced:
    - At most one adoption per application (uq_adoption_application).  A
      concurrent duplicate insert fails at flush and the service reports
      it as AdoptionAlreadyExistsError.
    - Status follows ADOPTION_TRANSITIONS; payment_status is an independent
      axis.
    - next_follow_up_date always equals the earliest uncompleted follow-up
      that was not already past when it was last recomputed.
    - adoption_fee and amount_paid are non-negative Decimals.

Failure modes:
    - AdoptionNotFoundError when an id does not resolve.
    - IntegrityError on a duplicate application_id (translated by the service).
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shelter_kernel.db.base import Base, EnumString, TrackedBase, UUIDString
from shelter_kernel.domain.follow_up import is_in_trial_period, next_follow_up_date
from shelter_kernel.domain.lifecycle import (
    ACTIVE_ADOPTION_STATUSES,
    SETTLED_PAYMENT_STATUSES,
    AdoptionStatus,
    PaymentStatus,
)


class AdoptionRecord(TrackedBase):
    """
    A finalized adoption.

    Contract:
        Created only by AdoptionWorkflowService.create_adoption from an
        approved application.  Later mutations (payment, contract, return,
        follow-up completion) never re-read the application.

    Guarantees:
        - application_id is unique.
        - follow_ups are ordered by position.
    """

    __tablename__ = "adoption_records"

    __table_args__ = (
        UniqueConstraint("application_id", name="uq_adoption_application"),
        Index("idx_adoption_animal", "animal_id"),
        Index("idx_adoption_adopter", "adopter_id"),
        Index("idx_adoption_status", "status"),
        Index("idx_adoption_date", "adoption_date"),
        Index("idx_adoption_next_follow_up", "next_follow_up_date"),
        CheckConstraint("adoption_fee >= 0", name="chk_adoption_fee_non_negative"),
        CheckConstraint("amount_paid >= 0", name="chk_amount_paid_non_negative"),
    )

    application_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    animal_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    adopter_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    status: Mapped[AdoptionStatus] = mapped_column(
        EnumString(AdoptionStatus),
        default=AdoptionStatus.ACTIVE,
        nullable=False,
    )
    adoption_date: Mapped[datetime] = mapped_column(nullable=False)

    # Payment
    adoption_fee: Mapped[Decimal] = mapped_column(nullable=False)
    payment_status: Mapped[PaymentStatus] = mapped_column(
        EnumString(PaymentStatus),
        default=PaymentStatus.PENDING,
        nullable=False,
    )
    amount_paid: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    payment_date: Mapped[datetime | None] = mapped_column(nullable=True)
    # cash, card, transfer, ...
    payment_method: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # Trial period
    trial_period: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    trial_end_date: Mapped[datetime | None] = mapped_column(nullable=True)

    # Contract
    contract_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    contract_signed_date: Mapped[datetime | None] = mapped_column(nullable=True)

    # Follow-ups
    next_follow_up_date: Mapped[datetime | None] = mapped_column(nullable=True)

    # Return
    return_date: Mapped[datetime | None] = mapped_column(nullable=True)
    return_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    return_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    follow_ups: Mapped[list["FollowUp"]] = relationship(
        back_populates="adoption",
        cascade="all, delete-orphan",
        order_by="FollowUp.position",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<AdoptionRecord {self.animal_id} by {self.adopter_id}: {self.status.value}>"

    @property
    def is_active(self) -> bool:
        """Still holds the animal (not returned or cancelled)."""
        return self.status in ACTIVE_ADOPTION_STATUSES

    @property
    def is_returned(self) -> bool:
        return self.status == AdoptionStatus.RETURNED

    @property
    def is_paid(self) -> bool:
        """Paid in full or fee waived."""
        return self.payment_status in SETTLED_PAYMENT_STATUSES

    def in_trial_period(self, now: datetime) -> bool:
        if not self.trial_period:
            return False
        return is_in_trial_period(self.trial_end_date, now)

    def add_follow_up(self, scheduled_date: datetime, follow_up_type: str) -> "FollowUp":
        follow_up = FollowUp(
            position=len(self.follow_ups),
            scheduled_date=scheduled_date,
            type=follow_up_type,
        )
        self.follow_ups.append(follow_up)
        return follow_up

    def refresh_next_follow_up(self, now: datetime) -> None:
        """Recompute next_follow_up_date from the current follow-up list."""
        self.next_follow_up_date = next_follow_up_date(self.follow_ups, now)


class FollowUp(Base):
    """
    One scheduled post-adoption check-in.

    Guarantees:
        - position is unique within the parent adoption and fixes the order
          the follow-ups were scheduled in.
        - completed_date and completed_by are set together.
    """

    __tablename__ = "adoption_follow_ups"

    __table_args__ = (
        UniqueConstraint("adoption_id", "position", name="uq_follow_up_position"),
        Index("idx_follow_up_scheduled", "scheduled_date"),
    )

    adoption_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("adoption_records.id", ondelete="CASCADE"),
        nullable=False,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    scheduled_date: Mapped[datetime] = mapped_column(nullable=False)
    # visit / call / email
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    completed_date: Mapped[datetime | None] = mapped_column(nullable=True)
    completed_by: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    adoption: Mapped["AdoptionRecord"] = relationship(
        back_populates="follow_ups",
    )

    def __repr__(self) -> str:
        state = "done" if self.completed_date else "open"
        return f"<FollowUp #{self.position} {self.type} {self.scheduled_date:%Y-%m-%d} {state}>"

    @property
    def is_completed(self) -> bool:
        return self.completed_date is not None
