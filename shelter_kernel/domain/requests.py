"""
Requests -- immutable inputs and outputs of the adoption workflow.

Responsibility:
    Frozen dataclasses for the applicant payload, the create/update/list
    requests accepted by ``AdoptionWorkflowService`` and the statistics
    projection it returns.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  No ORM imports;
    services translate between these objects and models.

Invariants enforced:
    - Ids arrive as strings.  Parsing happens in the service so that a
      malformed id becomes an InvalidIdentifierError before any read.
    - Patch requests use ``None`` for "not supplied"; a supplied value
      always overwrites the stored one.
    - Monetary fields are Decimal (floats are coerced by ``to_money``).

Failure modes:
    - ValueError from ``__post_init__`` on negative amounts, household size
      below one, or a sort order other than asc/desc.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from shelter_kernel.domain.lifecycle import (
    AdoptionStatus,
    ApplicationStatus,
    PaymentStatus,
)


def as_payload(value: Any) -> Any:
    """
    Convert a request value into JSON-storable primitives.

    Dataclasses become dicts, tuples become lists, dates become ISO strings,
    Decimals become strings and enums their value.
    """
    if hasattr(value, "__dataclass_fields__"):
        value = asdict(value)
    if isinstance(value, dict):
        return {k: as_payload(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [as_payload(v) for v in value]
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    return value


# =========================================================================
# Applicant payload
# =========================================================================


@dataclass(frozen=True)
class ApplicantInfo:
    first_name: str
    last_name: str
    email: str
    phone: str
    date_of_birth: date | None = None
    occupation: str | None = None
    employer: str | None = None


@dataclass(frozen=True)
class AddressInfo:
    street: str
    city: str
    zip_code: str
    country: str
    state: str | None = None


@dataclass(frozen=True)
class HousingInfo:
    """Housing situation.  ``type`` is house/apartment/condo/farm/other."""

    type: str
    ownership: str
    landlord_name: str | None = None
    landlord_phone: str | None = None
    landlord_approval: bool = False
    has_yard: bool = False
    yard_fenced: bool = False
    yard_size: str | None = None
    allows_pets: bool = False
    pet_deposit: Decimal | None = None


@dataclass(frozen=True)
class HouseholdMember:
    name: str
    age: int
    relationship: str


@dataclass(frozen=True)
class CurrentPet:
    species: str
    name: str
    age: int
    breed: str | None = None
    spayed: bool = False
    vaccinated: bool = False
    vet_name: str | None = None
    vet_phone: str | None = None


@dataclass(frozen=True)
class Reference:
    name: str
    relationship: str
    phone: str
    email: str | None = None
    contacted: bool = False
    notes: str | None = None


# =========================================================================
# Application requests
# =========================================================================


@dataclass(frozen=True)
class CreateApplicationRequest:
    """
    Applicant submission for one animal.

    Everything except ``animal_id`` is echoed verbatim onto the stored
    application; no business validation happens beyond field presence.
    """

    animal_id: str
    applicant: ApplicantInfo
    address: AddressInfo
    housing: HousingInfo
    reason_for_adoption: str
    pet_location: str
    household_size: int = 1
    household_members: tuple[HouseholdMember, ...] = ()
    has_children: bool = False
    children_ages: tuple[int, ...] = ()
    current_pets: tuple[CurrentPet, ...] = ()
    previous_pets: str | None = None
    pet_experience: str | None = None
    surrendered_pets: bool = False
    surrender_reason: str | None = None
    alone_time: int = 0
    activity_level: str | None = None
    prepared_for: tuple[str, ...] = ()
    references: tuple[Reference, ...] = ()
    has_veterinarian: bool = False
    vet_name: str | None = None
    vet_phone: str | None = None
    vet_address: str | None = None
    agrees_to_home_visit: bool = False
    agrees_to_follow_up: bool = False
    agrees_to_return_policy: bool = False
    understands_commitment: bool = False
    additional_info: str | None = None

    def __post_init__(self) -> None:
        if self.household_size < 1:
            raise ValueError("household_size must be at least 1")
        if self.alone_time < 0:
            raise ValueError("alone_time must not be negative")


@dataclass(frozen=True)
class UpdateApplicationRequest:
    """Reviewer patch.  Fields left as None are not touched."""

    status: ApplicationStatus | None = None
    review_notes: str | None = None
    rejection_reason: str | None = None
    home_visit_date: datetime | None = None
    home_visit_notes: str | None = None
    interview_date: datetime | None = None
    interview_notes: str | None = None

    def __post_init__(self) -> None:
        if self.status is not None and not isinstance(self.status, ApplicationStatus):
            object.__setattr__(self, "status", ApplicationStatus(self.status))


# =========================================================================
# Adoption requests
# =========================================================================


@dataclass(frozen=True)
class CreateAdoptionRequest:
    """
    Terminal workflow step: turn an approved application into an adoption.

    ``follow_up_intervals`` are day offsets from creation time, one
    follow-up per offset.  When ``schedule_follow_ups`` is set and the
    intervals are omitted (None), the configured defaults apply; an empty
    tuple schedules nothing.  A trial gets an end date only with positive
    ``trial_period_days`` (or a configured default length).
    ``adopter_id`` defaults to the acting user.
    """

    application_id: str
    adoption_fee: Decimal
    trial_period: bool = False
    trial_period_days: int | None = None
    payment_status: PaymentStatus | None = None
    amount_paid: Decimal = Decimal("0")
    payment_method: str | None = None
    contract_url: str | None = None
    schedule_follow_ups: bool = False
    follow_up_intervals: tuple[int, ...] | None = None
    adopter_id: str | None = None
    notes: str | None = None

    def __post_init__(self) -> None:
        if self.adoption_fee < 0:
            raise ValueError("adoption_fee must not be negative")
        if self.amount_paid < 0:
            raise ValueError("amount_paid must not be negative")
        if self.trial_period_days is not None and self.trial_period_days < 0:
            raise ValueError("trial_period_days must not be negative")
        if self.payment_status is not None and not isinstance(self.payment_status, PaymentStatus):
            object.__setattr__(self, "payment_status", PaymentStatus(self.payment_status))
        if self.follow_up_intervals is not None:
            object.__setattr__(self, "follow_up_intervals", tuple(self.follow_up_intervals))


@dataclass(frozen=True)
class UpdateAdoptionRequest:
    """Payment / contract / return patch.  None means not supplied."""

    status: AdoptionStatus | None = None
    payment_status: PaymentStatus | None = None
    amount_paid: Decimal | None = None
    payment_date: datetime | None = None
    payment_method: str | None = None
    contract_signed_date: datetime | None = None
    return_date: datetime | None = None
    return_reason: str | None = None
    return_notes: str | None = None
    notes: str | None = None

    def __post_init__(self) -> None:
        if self.status is not None and not isinstance(self.status, AdoptionStatus):
            object.__setattr__(self, "status", AdoptionStatus(self.status))
        if self.payment_status is not None and not isinstance(self.payment_status, PaymentStatus):
            object.__setattr__(self, "payment_status", PaymentStatus(self.payment_status))
        if self.amount_paid is not None and self.amount_paid < 0:
            raise ValueError("amount_paid must not be negative")


# =========================================================================
# Queries
# =========================================================================

SORT_ASC = "asc"
SORT_DESC = "desc"


@dataclass(frozen=True)
class ListApplicationsRequest:
    """
    Application filter.  Zero/None limit means "use the configured
    default"; sort_by must be one of the selector's sortable columns.
    """

    animal_id: str | None = None
    status: str | None = None
    applicant_email: str | None = None
    applicant_name: str | None = None
    reviewed_by: str | None = None
    from_date: datetime | None = None
    to_date: datetime | None = None
    limit: int | None = None
    offset: int = 0
    sort_by: str | None = None
    sort_order: str = SORT_DESC

    def __post_init__(self) -> None:
        _check_paging(self.limit, self.offset, self.sort_order)


@dataclass(frozen=True)
class ListAdoptionsRequest:
    animal_id: str | None = None
    adopter_id: str | None = None
    application_id: str | None = None
    status: str | None = None
    payment_status: str | None = None
    trial_period: bool | None = None
    from_date: datetime | None = None
    to_date: datetime | None = None
    limit: int | None = None
    offset: int = 0
    sort_by: str | None = None
    sort_order: str = SORT_DESC

    def __post_init__(self) -> None:
        _check_paging(self.limit, self.offset, self.sort_order)


def _check_paging(limit: int | None, offset: int, sort_order: str) -> None:
    if limit is not None and limit < 0:
        raise ValueError("limit must not be negative")
    if offset < 0:
        raise ValueError("offset must not be negative")
    if sort_order not in (SORT_ASC, SORT_DESC):
        raise ValueError(f"sort_order must be 'asc' or 'desc', got {sort_order!r}")


@dataclass(frozen=True)
class AdoptionStatistics:
    """Aggregate view over all adoption records."""

    total_adoptions: int = 0
    by_status: dict[str, int] = field(default_factory=dict)
    by_payment_status: dict[str, int] = field(default_factory=dict)
    total_fees: Decimal = Decimal("0.00")
    average_fee: Decimal = Decimal("0.00")
    adoptions_this_month: int = 0
    adoptions_this_year: int = 0
    pending_follow_ups: int = 0
    return_rate: Decimal = Decimal("0.00")
