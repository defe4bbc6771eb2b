"""
Module: shelter_kernel.models.animal
Responsibility: ORM persistence for the animal record, the leaf entity whose
    ``status`` gates adoption intake.
Architecture position: Kernel > Models.  May import from db/ and domain/
    enums only.

Invariants enforced:
    - Only ``available`` animals accept new applications (checked by the
      workflow service).
    - ``status`` moves into or out of ``adopted`` only through
      AnimalStatusSync, which issues a conditional UPDATE and bumps
      ``version`` so a concurrent writer is detected.

Failure modes:
    - AnimalNotFoundError when an id does not resolve.
    - AnimalStatusConflictError when a conditional update matches no row.
"""

from sqlalchemy import CheckConstraint, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from shelter_kernel.db.base import EnumString, TrackedBase
from shelter_kernel.domain.lifecycle import AnimalStatus


class Animal(TrackedBase):
    """
    A sheltered animal.

    Contract:
        Intake, medical and kennel data live elsewhere; this table holds
        only what the adoption workflow reads and writes.

    Guarantees:
        - version starts at 1 and increases by exactly one on every
          workflow-driven status change.
    """

    __tablename__ = "animals"

    __table_args__ = (
        Index("idx_animal_status", "status"),
        Index("idx_animal_species", "species"),
        CheckConstraint("version >= 1", name="chk_animal_version_positive"),
    )

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    # dog, cat, rabbit, ...
    species: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    breed: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
    )

    status: Mapped[AnimalStatus] = mapped_column(
        EnumString(AnimalStatus),
        default=AnimalStatus.AVAILABLE,
        nullable=False,
    )

    # Optimistic concurrency counter for status changes
    version: Mapped[int] = mapped_column(
        Integer,
        default=1,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Animal {self.name} ({self.species}): {self.status.value}>"

    @property
    def is_available(self) -> bool:
        return self.status == AnimalStatus.AVAILABLE
