"""
AnimalStatusSync -- conditional animal status changes driven by adoptions.

Responsibility:
    Moves an animal to ``adopted`` when an adoption is created and back to
    ``available`` when it is returned.  Every change is a single
    conditional UPDATE that names the statuses the animal must currently
    be in and bumps ``version``; the database decides, not a prior read.

Architecture position:
    Kernel > Services -- called by AdoptionWorkflowService and by
    SideEffectOutbox when replaying a deferred change.

Invariants enforced:
    - An animal is never flipped to ``adopted`` unless it is available,
      pending or reserved at the moment of the write.
    - A return flips the animal back to ``available`` from any other
      status.  An animal that is already available is left alone.
    - version increases by exactly one per applied change.

Failure modes:
    - AnimalNotFoundError: the id does not resolve.
    - AnimalStatusConflictError: the UPDATE matched no row because the
      animal is in some other status (or, on return, became available
      between the read and the write).
"""

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.orm import Session

from shelter_kernel.domain.clock import Clock
from shelter_kernel.domain.lifecycle import (
    ADOPTABLE_ANIMAL_STATUSES,
    RETURNABLE_ANIMAL_STATUSES,
    AnimalStatus,
)
from shelter_kernel.exceptions import AnimalNotFoundError, AnimalStatusConflictError
from shelter_kernel.logging_config import get_logger
from shelter_kernel.models.animal import Animal
from shelter_kernel.services.base import BaseService

logger = get_logger("services.animal_status_sync")


class AnimalStatusSync(BaseService):
    """
    Conditional status writer for animals.

    Contract:
        Each public method issues at most one UPDATE and flushes nothing
        else.  The caller decides whether a failure is fatal.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session, clock)

    def mark_adopted(self, animal_id: UUID, actor_id: UUID) -> Animal:
        return self.transition(
            animal_id,
            expected=ADOPTABLE_ANIMAL_STATUSES,
            target=AnimalStatus.ADOPTED,
            actor_id=actor_id,
        )

    def mark_available(self, animal_id: UUID, actor_id: UUID) -> Animal:
        """Return the animal to availability from any status.  No-op if already available."""
        animal = self.session.get(Animal, animal_id, populate_existing=True)
        if animal is None:
            raise AnimalNotFoundError(str(animal_id))
        if animal.status == AnimalStatus.AVAILABLE:
            logger.debug(
                "animal_status_unchanged",
                extra={"animal_id": str(animal_id), "status": animal.status.value},
            )
            return animal
        return self.transition(
            animal_id,
            expected=RETURNABLE_ANIMAL_STATUSES,
            target=AnimalStatus.AVAILABLE,
            actor_id=actor_id,
        )

    def transition(
        self,
        animal_id: UUID,
        expected: Iterable[AnimalStatus],
        target: AnimalStatus,
        actor_id: UUID,
    ) -> Animal:
        """
        ``UPDATE animals SET status=target, version=version+1
        WHERE id=? AND status IN (expected)``.

        Raises:
            AnimalNotFoundError, AnimalStatusConflictError
        """
        expected = tuple(sorted(expected, key=lambda s: s.value))
        result = self.session.execute(
            update(Animal)
            .where(
                Animal.id == animal_id,
                Animal.status.in_(expected),
            )
            .values(
                status=target,
                version=Animal.version + 1,
                updated_by_id=actor_id,
            )
            .execution_options(synchronize_session=False)
        )

        if result.rowcount == 0:
            current = self.session.get(Animal, animal_id, populate_existing=True)
            if current is None:
                raise AnimalNotFoundError(str(animal_id))
            raise AnimalStatusConflictError(
                str(animal_id),
                tuple(s.value for s in expected),
                target.value,
                actual_status=current.status.value,
            )

        animal = self.session.get(Animal, animal_id, populate_existing=True)
        logger.info(
            "animal_status_changed",
            extra={
                "animal_id": str(animal_id),
                "status": target.value,
                "version": animal.version,
            },
        )
        return animal
