"""
Adoption lifecycle -- status enums and the legal transition tables.

Responsibility:
    Closed enumerations for application, adoption, payment and animal
    statuses, plus the central tables that say which status changes are
    legal.  Services call ``check_application_transition`` /
    ``check_adoption_transition`` and never compare raw strings.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
* Application states move forward only:
  submitted -> under_review -> {approved | rejected}, approved -> completed.
  Review may be skipped (submitted -> approved/rejected).  Applicants may
  withdraw while the application is still open.
* ``completed`` is reachable only from ``approved`` and never through a
  caller-supplied patch, not even as a re-entry; the workflow sets it when
  the adoption is created.
* Re-entering the current status is always legal so reviewers can
  re-stamp review dates.
* Adoption records: active -> {completed, returned, cancelled},
  completed -> returned.  Returned and cancelled are terminal.
* An animal is adoptable only while ``available``; the adoption sync
  accepts ``available``, ``pending`` or ``reserved`` as pre-adoption states.
* A return puts the animal back to ``available`` from whatever status it
  holds at that moment.

Failure modes:
    - InvalidApplicationTransitionError / InvalidAdoptionTransitionError
      when a change is not in the table and enforcement is on.
"""

from __future__ import annotations

from enum import Enum

from shelter_kernel.exceptions import (
    InvalidAdoptionTransitionError,
    InvalidApplicationTransitionError,
)


# =========================================================================
# Application lifecycle
# =========================================================================


class ApplicationStatus(str, Enum):
    """Adoption application lifecycle states."""

    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REJECTED = "rejected"
    WITHDRAWN = "withdrawn"
    COMPLETED = "completed"


APPLICATION_TRANSITIONS: dict[ApplicationStatus, frozenset[ApplicationStatus]] = {
    ApplicationStatus.SUBMITTED: frozenset({
        ApplicationStatus.UNDER_REVIEW,
        ApplicationStatus.APPROVED,
        ApplicationStatus.REJECTED,
        ApplicationStatus.WITHDRAWN,
    }),
    ApplicationStatus.UNDER_REVIEW: frozenset({
        ApplicationStatus.APPROVED,
        ApplicationStatus.REJECTED,
        ApplicationStatus.WITHDRAWN,
    }),
    ApplicationStatus.APPROVED: frozenset({
        ApplicationStatus.COMPLETED,
    }),
    ApplicationStatus.REJECTED: frozenset(),
    ApplicationStatus.WITHDRAWN: frozenset(),
    ApplicationStatus.COMPLETED: frozenset(),
}

TERMINAL_APPLICATION_STATUSES: frozenset[ApplicationStatus] = frozenset({
    ApplicationStatus.REJECTED,
    ApplicationStatus.WITHDRAWN,
    ApplicationStatus.COMPLETED,
})

OPEN_APPLICATION_STATUSES: frozenset[ApplicationStatus] = frozenset({
    ApplicationStatus.SUBMITTED,
    ApplicationStatus.UNDER_REVIEW,
})

# Statuses a caller may never write through an update patch.
ENGINE_ONLY_APPLICATION_STATUSES: frozenset[ApplicationStatus] = frozenset({
    ApplicationStatus.COMPLETED,
})


# =========================================================================
# Adoption record lifecycle
# =========================================================================


class AdoptionStatus(str, Enum):
    """Adoption record lifecycle states."""

    ACTIVE = "active"
    COMPLETED = "completed"
    RETURNED = "returned"
    CANCELLED = "cancelled"


ADOPTION_TRANSITIONS: dict[AdoptionStatus, frozenset[AdoptionStatus]] = {
    AdoptionStatus.ACTIVE: frozenset({
        AdoptionStatus.COMPLETED,
        AdoptionStatus.RETURNED,
        AdoptionStatus.CANCELLED,
    }),
    AdoptionStatus.COMPLETED: frozenset({
        AdoptionStatus.RETURNED,
    }),
    AdoptionStatus.RETURNED: frozenset(),
    AdoptionStatus.CANCELLED: frozenset(),
}

# Records in these states still hold the animal.
ACTIVE_ADOPTION_STATUSES: frozenset[AdoptionStatus] = frozenset({
    AdoptionStatus.ACTIVE,
    AdoptionStatus.COMPLETED,
})

# Records in these states still get follow-up visits.
FOLLOW_UP_ADOPTION_STATUSES: frozenset[AdoptionStatus] = ACTIVE_ADOPTION_STATUSES


class PaymentStatus(str, Enum):
    """Adoption fee payment states, independent of the record status."""

    PENDING = "pending"
    PARTIAL = "partial"
    PAID = "paid"
    WAIVED = "waived"
    REFUNDED = "refunded"


SETTLED_PAYMENT_STATUSES: frozenset[PaymentStatus] = frozenset({
    PaymentStatus.PAID,
    PaymentStatus.WAIVED,
})


# =========================================================================
# Animal status
# =========================================================================


class AnimalStatus(str, Enum):
    """Animal availability states.  Only the workflow moves an animal
    into or out of ``adopted``."""

    AVAILABLE = "available"
    PENDING = "pending"
    RESERVED = "reserved"
    ADOPTED = "adopted"
    UNAVAILABLE = "unavailable"
    UNDER_TREATMENT = "under_treatment"
    QUARANTINE = "quarantine"
    FOSTERED = "fostered"
    DECEASED = "deceased"
    TRANSFERRED = "transferred"


# Statuses from which the adoption sync may flip an animal to adopted.
ADOPTABLE_ANIMAL_STATUSES: frozenset[AnimalStatus] = frozenset({
    AnimalStatus.AVAILABLE,
    AnimalStatus.PENDING,
    AnimalStatus.RESERVED,
})

# A returned adoption resets the animal to available from any of these.
RETURNABLE_ANIMAL_STATUSES: frozenset[AnimalStatus] = frozenset(
    s for s in AnimalStatus if s != AnimalStatus.AVAILABLE
)


# =========================================================================
# Transition checks
# =========================================================================


def is_legal_application_transition(
    current: ApplicationStatus,
    target: ApplicationStatus,
) -> bool:
    """True when the table allows ``current -> target`` or they are equal."""
    if current == target:
        return True
    return target in APPLICATION_TRANSITIONS.get(current, frozenset())


def is_legal_adoption_transition(
    current: AdoptionStatus,
    target: AdoptionStatus,
) -> bool:
    """True when the table allows ``current -> target`` or they are equal."""
    if current == target:
        return True
    return target in ADOPTION_TRANSITIONS.get(current, frozenset())


def check_application_transition(
    application_id: str,
    current: ApplicationStatus,
    target: ApplicationStatus,
    *,
    enforce: bool = True,
) -> None:
    """
    Validate a caller-requested application status change.

    ``completed`` is refused regardless of ``enforce``; only the workflow
    may set it.  With ``enforce`` off any other status is accepted.

    Raises:
        InvalidApplicationTransitionError
    """
    if target in ENGINE_ONLY_APPLICATION_STATUSES:
        raise InvalidApplicationTransitionError(
            application_id, current.value, target.value,
        )
    if enforce and not is_legal_application_transition(current, target):
        raise InvalidApplicationTransitionError(
            application_id, current.value, target.value,
        )


def check_adoption_transition(
    adoption_id: str,
    current: AdoptionStatus,
    target: AdoptionStatus,
    *,
    enforce: bool = True,
) -> None:
    """
    Validate a caller-requested adoption record status change.

    Raises:
        InvalidAdoptionTransitionError
    """
    if enforce and not is_legal_adoption_transition(current, target):
        raise InvalidAdoptionTransitionError(
            adoption_id, current.value, target.value,
        )
