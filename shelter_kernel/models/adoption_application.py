"""
Module: shelter_kernel.models.adoption_application
Responsibility: ORM persistence for adoption applications -- the applicant's
    request to adopt one animal and the reviewer bookkeeping around it.
Architecture position: Kernel > Models.  May import from db/ and domain/
    enums only.

Invariants enforced:
    - Status follows APPLICATION_TRANSITIONS (domain/lifecycle.py); the
      model itself accepts any ApplicationStatus, the service validates.
    - review_date, approval_date and rejection_date are stamped from the
      injected clock by the service when the matching transition fires.
    - animal_id is a plain reference, not a foreign key.

Failure modes:
    - ApplicationNotFoundError when an id does not resolve.
"""

from datetime import date, datetime
from uuid import UUID

from sqlalchemy import JSON, Boolean, Date, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from shelter_kernel.db.base import EnumString, TrackedBase, UUIDString
from shelter_kernel.domain.lifecycle import (
    OPEN_APPLICATION_STATUSES,
    ApplicationStatus,
)


class AdoptionApplication(TrackedBase):
    """
    Applicant submission plus review state.

    Contract:
        Applicant, household, housing and reference data are echoed from
        the intake request without interpretation.  Nested structures
        (address, housing, household members, pets, references) are stored
        as JSON documents.

    Guarantees:
        - status is SUBMITTED on creation.
        - reviewed_by is set whenever review notes are written.
    """

    __tablename__ = "adoption_applications"

    __table_args__ = (
        Index("idx_application_animal", "animal_id"),
        Index("idx_application_status", "status"),
        Index("idx_application_date", "application_date"),
        Index("idx_application_email", "applicant_email"),
    )

    animal_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        nullable=False,
    )

    # Applicant
    applicant_first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    applicant_last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    applicant_email: Mapped[str] = mapped_column(String(255), nullable=False)
    applicant_phone: Mapped[str] = mapped_column(String(50), nullable=False)
    applicant_date_of_birth: Mapped[date | None] = mapped_column(Date, nullable=True)
    applicant_occupation: Mapped[str | None] = mapped_column(String(100), nullable=True)
    applicant_employer: Mapped[str | None] = mapped_column(String(100), nullable=True)

    address: Mapped[dict] = mapped_column(JSON, nullable=False)
    housing: Mapped[dict] = mapped_column(JSON, nullable=False)

    # Household
    household_size: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    household_members: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    has_children: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    children_ages: Mapped[list] = mapped_column(JSON, default=list, nullable=False)

    # Pets
    current_pets: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    previous_pets: Mapped[str | None] = mapped_column(Text, nullable=True)
    pet_experience: Mapped[str | None] = mapped_column(Text, nullable=True)
    surrendered_pets: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    surrender_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Adoption details
    reason_for_adoption: Mapped[str] = mapped_column(Text, nullable=False)
    # indoor / outdoor / both
    pet_location: Mapped[str] = mapped_column(String(50), nullable=False)
    # hours per day
    alone_time: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    activity_level: Mapped[str | None] = mapped_column(String(50), nullable=True)
    prepared_for: Mapped[list] = mapped_column(JSON, default=list, nullable=False)

    references: Mapped[list] = mapped_column(JSON, default=list, nullable=False)

    # Veterinarian
    has_veterinarian: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    vet_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    vet_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    vet_address: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Consent
    agrees_to_home_visit: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    agrees_to_follow_up: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    agrees_to_return_policy: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    understands_commitment: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    additional_info: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Lifecycle
    status: Mapped[ApplicationStatus] = mapped_column(
        EnumString(ApplicationStatus),
        default=ApplicationStatus.SUBMITTED,
        nullable=False,
    )
    application_date: Mapped[datetime] = mapped_column(nullable=False)
    review_date: Mapped[datetime | None] = mapped_column(nullable=True)
    approval_date: Mapped[datetime | None] = mapped_column(nullable=True)
    rejection_date: Mapped[datetime | None] = mapped_column(nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Review
    reviewed_by: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    review_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    home_visit_date: Mapped[datetime | None] = mapped_column(nullable=True)
    home_visit_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    interview_date: Mapped[datetime | None] = mapped_column(nullable=True)
    interview_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return (
            f"<AdoptionApplication {self.applicant_first_name} "
            f"{self.applicant_last_name} for {self.animal_id}: {self.status.value}>"
        )

    @property
    def applicant_name(self) -> str:
        return f"{self.applicant_first_name} {self.applicant_last_name}"

    @property
    def is_approved(self) -> bool:
        return self.status == ApplicationStatus.APPROVED

    @property
    def is_rejected(self) -> bool:
        return self.status == ApplicationStatus.REJECTED

    @property
    def is_pending(self) -> bool:
        """Still awaiting a decision (submitted or under review)."""
        return self.status in OPEN_APPLICATION_STATUSES
