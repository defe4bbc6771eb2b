"""
Module: shelter_kernel.selectors.application_selector
Responsibility: Read queries over adoption applications: filtered, paged
    listing, every application for one animal, and the open review queue.
Architecture position: Kernel > Selectors. Called by the adoption workflow
    service; never writes.

Invariants enforced:
    - Filters narrow with AND; email and name filters are case-insensitive
      substring matches with LIKE wildcards escaped.
    - Listing results are capped by the QueryPolicy limit and paired with
      the total count before paging.
    - ``by_animal`` and ``pending`` return newest applications first;
      ``pending`` covers only submitted and under-review applications.

Failure modes:
    - Malformed animal or reviewer ids raise InvalidIdentifierError.
    - An unknown status or sort column raises ValueError.
"""

from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from shelter_kernel.domain.lifecycle import OPEN_APPLICATION_STATUSES, ApplicationStatus
from shelter_kernel.domain.policy import QueryPolicy
from shelter_kernel.domain.requests import ListApplicationsRequest
from shelter_kernel.models.adoption_application import AdoptionApplication
from shelter_kernel.selectors.base import BaseSelector
from shelter_kernel.utils.identifiers import parse_optional_id

_SORT_COLUMNS = {
    "application_date": AdoptionApplication.application_date,
    "status": AdoptionApplication.status,
    "review_date": AdoptionApplication.review_date,
    "applicant_last_name": AdoptionApplication.applicant_last_name,
    "applicant_email": AdoptionApplication.applicant_email,
    "created_at": AdoptionApplication.created_at,
}


class ApplicationSelector(BaseSelector[AdoptionApplication]):
    """Filtered, paged reads of adoption applications."""

    def __init__(self, session: Session, query_policy: QueryPolicy | None = None):
        super().__init__(session, query_policy)

    def get(self, application_id: UUID) -> AdoptionApplication | None:
        return self.session.get(AdoptionApplication, application_id)

    def search(
        self,
        request: ListApplicationsRequest,
    ) -> tuple[list[AdoptionApplication], int]:
        """
        Filter by animal, status, applicant email/name, reviewer and
        application date range.  Email and name match case-insensitive
        substrings; the name matches first or last name.

        Raises:
            InvalidIdentifierError: malformed animal_id or reviewed_by.
            ValueError: unknown status or sort column.
        """
        stmt = select(AdoptionApplication)

        animal_id = parse_optional_id(request.animal_id, "animal_id")
        if animal_id is not None:
            stmt = stmt.where(AdoptionApplication.animal_id == animal_id)

        if request.status:
            stmt = stmt.where(
                AdoptionApplication.status == ApplicationStatus(request.status)
            )

        if request.applicant_email:
            stmt = stmt.where(
                AdoptionApplication.applicant_email.icontains(
                    request.applicant_email, autoescape=True,
                )
            )

        if request.applicant_name:
            needle = request.applicant_name
            stmt = stmt.where(
                or_(
                    AdoptionApplication.applicant_first_name.icontains(
                        needle, autoescape=True,
                    ),
                    AdoptionApplication.applicant_last_name.icontains(
                        needle, autoescape=True,
                    ),
                )
            )

        reviewed_by = parse_optional_id(request.reviewed_by, "reviewed_by")
        if reviewed_by is not None:
            stmt = stmt.where(AdoptionApplication.reviewed_by == reviewed_by)

        if request.from_date is not None:
            stmt = stmt.where(AdoptionApplication.application_date >= request.from_date)
        if request.to_date is not None:
            stmt = stmt.where(AdoptionApplication.application_date <= request.to_date)

        return self._paginate(
            stmt,
            _SORT_COLUMNS,
            default_sort="application_date",
            sort_by=request.sort_by,
            sort_order=request.sort_order,
            limit=request.limit,
            offset=request.offset,
        )

    def by_animal(self, animal_id: UUID) -> list[AdoptionApplication]:
        """Every application for the animal, newest first."""
        return list(
            self.session.execute(
                select(AdoptionApplication)
                .where(AdoptionApplication.animal_id == animal_id)
                .order_by(AdoptionApplication.application_date.desc())
            ).scalars().all()
        )

    def pending(self) -> list[AdoptionApplication]:
        """Submitted or under-review applications, newest first."""
        return list(
            self.session.execute(
                select(AdoptionApplication)
                .where(AdoptionApplication.status.in_(tuple(OPEN_APPLICATION_STATUSES)))
                .order_by(AdoptionApplication.application_date.desc())
            ).scalars().all()
        )
