"""
Typed Exception Hierarchy for the Shelter Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

The adoption workflow has three very different failure classes and callers
(the HTTP layer, the CLI, tests) must be able to tell them apart without
parsing message strings:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example:
    try:
        workflow.create_adoption(request, actor_id)
    except ApplicationNotApprovedError as e:
        return {"error": e.code, "status": e.status}

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from ShelterKernelError:

    ShelterKernelError (base)
    |
    +-- ValidationError                  (bad request, raised before mutation)
    |   +-- InvalidIdentifierError
    |   +-- AnimalNotAvailableError
    |   +-- ApplicationNotApprovedError
    |   +-- AdoptionAlreadyExistsError
    |   +-- AnimalAlreadyAdoptedError
    |   +-- InvalidApplicationTransitionError
    |   +-- InvalidAdoptionTransitionError
    |   +-- FollowUpNotFoundError
    |
    +-- NotFoundError                    (id does not resolve)
    |   +-- AnimalNotFoundError
    |   +-- ApplicationNotFoundError
    |   +-- AdoptionNotFoundError
    |
    +-- ConcurrencyError
    |   +-- AnimalStatusConflictError
    |
    +-- SideEffectError
        +-- SideEffectNotFoundError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                           | When Raised
-------------|--------------------------------|--------------------------------------
Validation   | INVALID_IDENTIFIER             | Malformed id string
             | ANIMAL_NOT_AVAILABLE           | Intake for a non-available animal
             | APPLICATION_NOT_APPROVED       | Adoption from non-approved application
             | ADOPTION_ALREADY_EXISTS        | Second adoption for one application
             | ANIMAL_ALREADY_ADOPTED         | Animal has another active adoption
             | INVALID_APPLICATION_TRANSITION | Illegal application status change
             | INVALID_ADOPTION_TRANSITION    | Illegal adoption status change
             | FOLLOW_UP_NOT_FOUND            | Follow-up index out of range
-------------|--------------------------------|--------------------------------------
Not found    | ANIMAL_NOT_FOUND               | Animal id does not exist
             | APPLICATION_NOT_FOUND          | Application id does not exist
             | ADOPTION_NOT_FOUND             | Adoption id does not exist
-------------|--------------------------------|--------------------------------------
Concurrency  | ANIMAL_STATUS_CONFLICT         | Conditional animal update hit 0 rows
-------------|--------------------------------|--------------------------------------
Side effects | SIDE_EFFECT_NOT_FOUND          | Outbox entry id does not exist

===============================================================================
PROPAGATION
===============================================================================

ValidationError and NotFoundError abort the operation and reach the caller
unchanged.  ConcurrencyError raised by a secondary write (animal status
sync) is caught by the workflow, logged as ``side_effect_failed`` and queued
in the outbox; the primary operation still succeeds.
"""


class ShelterKernelError(Exception):
    """
    Base exception for all shelter kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "SHELTER_KERNEL_ERROR"


# Validation errors


class ValidationError(ShelterKernelError):
    """Base exception for request validation failures."""

    code: str = "VALIDATION_ERROR"


class InvalidIdentifierError(ValidationError):
    """An id string could not be parsed."""

    code: str = "INVALID_IDENTIFIER"

    def __init__(self, field_name: str, value: str):
        self.field_name = field_name
        self.value = value
        super().__init__(f"invalid {field_name.replace('_', ' ')}: {value!r}")


class AnimalNotAvailableError(ValidationError):
    """Animal status does not permit new adoption applications."""

    code: str = "ANIMAL_NOT_AVAILABLE"

    def __init__(self, animal_id: str, status: str):
        self.animal_id = animal_id
        self.status = status
        super().__init__("animal is not available for adoption")


class ApplicationNotApprovedError(ValidationError):
    """Adoption creation attempted from a non-approved application."""

    code: str = "APPLICATION_NOT_APPROVED"

    def __init__(self, application_id: str, status: str):
        self.application_id = application_id
        self.status = status
        super().__init__("application must be approved before creating adoption")


class AdoptionAlreadyExistsError(ValidationError):
    """An adoption record already references the application."""

    code: str = "ADOPTION_ALREADY_EXISTS"

    def __init__(self, application_id: str, adoption_id: str | None = None):
        self.application_id = application_id
        self.adoption_id = adoption_id
        super().__init__("adoption already exists for this application")


class AnimalAlreadyAdoptedError(ValidationError):
    """Another active adoption record already references the animal."""

    code: str = "ANIMAL_ALREADY_ADOPTED"

    def __init__(self, animal_id: str, adoption_id: str):
        self.animal_id = animal_id
        self.adoption_id = adoption_id
        super().__init__(
            f"animal {animal_id} already has an active adoption {adoption_id}"
        )


class InvalidApplicationTransitionError(ValidationError):
    """Application status change is not allowed from the current status."""

    code: str = "INVALID_APPLICATION_TRANSITION"

    def __init__(self, application_id: str, from_status: str, to_status: str):
        self.application_id = application_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"cannot move application {application_id} "
            f"from {from_status} to {to_status}"
        )


class InvalidAdoptionTransitionError(ValidationError):
    """Adoption status change is not allowed from the current status."""

    code: str = "INVALID_ADOPTION_TRANSITION"

    def __init__(self, adoption_id: str, from_status: str, to_status: str):
        self.adoption_id = adoption_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"cannot move adoption {adoption_id} from {from_status} to {to_status}"
        )


class FollowUpNotFoundError(ValidationError):
    """Follow-up index does not exist on the adoption record."""

    code: str = "FOLLOW_UP_NOT_FOUND"

    def __init__(self, adoption_id: str, index: int):
        self.adoption_id = adoption_id
        self.index = index
        super().__init__(f"adoption {adoption_id} has no follow-up #{index}")


# Not-found errors


class NotFoundError(ShelterKernelError):
    """Base exception for ids that do not resolve."""

    code: str = "NOT_FOUND"


class AnimalNotFoundError(NotFoundError):
    """Animal with given ID was not found."""

    code: str = "ANIMAL_NOT_FOUND"

    def __init__(self, animal_id: str):
        self.animal_id = animal_id
        super().__init__(f"Animal not found: {animal_id}")


class ApplicationNotFoundError(NotFoundError):
    """Adoption application with given ID was not found."""

    code: str = "APPLICATION_NOT_FOUND"

    def __init__(self, application_id: str):
        self.application_id = application_id
        super().__init__(f"Adoption application not found: {application_id}")


class AdoptionNotFoundError(NotFoundError):
    """Adoption record with given ID was not found."""

    code: str = "ADOPTION_NOT_FOUND"

    def __init__(self, adoption_id: str):
        self.adoption_id = adoption_id
        super().__init__(f"Adoption not found: {adoption_id}")


# Concurrency errors


class ConcurrencyError(ShelterKernelError):
    """Base exception for concurrent modification errors."""

    code: str = "CONCURRENCY_ERROR"


class AnimalStatusConflictError(ConcurrencyError):
    """
    Conditional animal status update matched no row.

    The animal's status changed between the read and the write, or it is
    not in any of the statuses the transition expects.
    """

    code: str = "ANIMAL_STATUS_CONFLICT"

    def __init__(
        self,
        animal_id: str,
        expected_statuses: tuple[str, ...],
        target_status: str,
        actual_status: str | None = None,
    ):
        self.animal_id = animal_id
        self.expected_statuses = expected_statuses
        self.target_status = target_status
        self.actual_status = actual_status
        super().__init__(
            f"Animal {animal_id} could not move to {target_status}: "
            f"expected one of {', '.join(expected_statuses)}, "
            f"found {actual_status}"
        )


# Side-effect outbox errors


class SideEffectError(ShelterKernelError):
    """Base exception for outbox errors."""

    code: str = "SIDE_EFFECT_ERROR"


class SideEffectNotFoundError(SideEffectError):
    """Outbox entry with given ID was not found."""

    code: str = "SIDE_EFFECT_NOT_FOUND"

    def __init__(self, side_effect_id: str):
        self.side_effect_id = side_effect_id
        super().__init__(f"Pending side effect not found: {side_effect_id}")
