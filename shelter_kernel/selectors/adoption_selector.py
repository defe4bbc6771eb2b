"""
Module: shelter_kernel.selectors.adoption_selector
Responsibility: Read queries over adoption records: filtered listing, lookups
    by application and animal, follow-up scheduling views and aggregate
    statistics.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Statistics are derived from adoption rows at query time; nothing is
      stored pre-aggregated.
    - "This month" / "this year" windows and the follow-up horizon come
      from the ``now`` the caller passes in (an injected clock), never
      from the database clock.
"""

from datetime import datetime, timedelta
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from shelter_kernel.db.types import round_money
from shelter_kernel.domain.lifecycle import (
    ACTIVE_ADOPTION_STATUSES,
    FOLLOW_UP_ADOPTION_STATUSES,
    AdoptionStatus,
    PaymentStatus,
)
from shelter_kernel.domain.policy import QueryPolicy
from shelter_kernel.domain.requests import AdoptionStatistics, ListAdoptionsRequest
from shelter_kernel.models.adoption_record import AdoptionRecord
from shelter_kernel.selectors.base import BaseSelector
from shelter_kernel.utils.identifiers import parse_optional_id

_SORT_COLUMNS = {
    "adoption_date": AdoptionRecord.adoption_date,
    "status": AdoptionRecord.status,
    "payment_status": AdoptionRecord.payment_status,
    "adoption_fee": AdoptionRecord.adoption_fee,
    "next_follow_up_date": AdoptionRecord.next_follow_up_date,
    "created_at": AdoptionRecord.created_at,
}


class AdoptionSelector(BaseSelector[AdoptionRecord]):
    """
    Contract:
        Read-only.  Lookups return None rather than raising; the workflow
        service decides whether absence is an error.
    """

    def __init__(self, session: Session, query_policy: QueryPolicy | None = None):
        super().__init__(session, query_policy)

    def get(self, adoption_id: UUID) -> AdoptionRecord | None:
        return self.session.get(AdoptionRecord, adoption_id)

    def get_by_application(self, application_id: UUID) -> AdoptionRecord | None:
        return self.session.execute(
            select(AdoptionRecord).where(AdoptionRecord.application_id == application_id)
        ).scalar_one_or_none()

    def get_latest_by_animal(self, animal_id: UUID) -> AdoptionRecord | None:
        """Most recent adoption of the animal in any status, or None."""
        return self.session.execute(
            select(AdoptionRecord)
            .where(AdoptionRecord.animal_id == animal_id)
            .order_by(AdoptionRecord.adoption_date.desc())
            .limit(1)
        ).scalars().first()

    def get_active_by_animal(self, animal_id: UUID) -> AdoptionRecord | None:
        """The adoption still holding the animal (not returned or cancelled)."""
        return self.session.execute(
            select(AdoptionRecord)
            .where(
                AdoptionRecord.animal_id == animal_id,
                AdoptionRecord.status.in_(tuple(ACTIVE_ADOPTION_STATUSES)),
            )
            .order_by(AdoptionRecord.adoption_date.desc())
            .limit(1)
        ).scalars().first()

    def search(self, request: ListAdoptionsRequest) -> tuple[list[AdoptionRecord], int]:
        """
        Filter by animal, adopter, application, status, payment status,
        trial flag and adoption date range.

        Raises:
            InvalidIdentifierError: malformed id filter.
            ValueError: unknown status, payment status or sort column.
        """
        stmt = select(AdoptionRecord)

        animal_id = parse_optional_id(request.animal_id, "animal_id")
        if animal_id is not None:
            stmt = stmt.where(AdoptionRecord.animal_id == animal_id)

        adopter_id = parse_optional_id(request.adopter_id, "adopter_id")
        if adopter_id is not None:
            stmt = stmt.where(AdoptionRecord.adopter_id == adopter_id)

        application_id = parse_optional_id(request.application_id, "application_id")
        if application_id is not None:
            stmt = stmt.where(AdoptionRecord.application_id == application_id)

        if request.status:
            stmt = stmt.where(AdoptionRecord.status == AdoptionStatus(request.status))

        if request.payment_status:
            stmt = stmt.where(
                AdoptionRecord.payment_status == PaymentStatus(request.payment_status)
            )

        if request.trial_period is not None:
            stmt = stmt.where(AdoptionRecord.trial_period == request.trial_period)

        if request.from_date is not None:
            stmt = stmt.where(AdoptionRecord.adoption_date >= request.from_date)
        if request.to_date is not None:
            stmt = stmt.where(AdoptionRecord.adoption_date <= request.to_date)

        return self._paginate(
            stmt,
            _SORT_COLUMNS,
            default_sort="adoption_date",
            sort_by=request.sort_by,
            sort_order=request.sort_order,
            limit=request.limit,
            offset=request.offset,
        )

    def pending_follow_ups(self, now: datetime, days: int) -> list[AdoptionRecord]:
        """Adoptions whose next follow-up falls within [now, now + days], soonest first."""
        horizon = now + timedelta(days=days)
        return list(
            self.session.execute(
                select(AdoptionRecord)
                .where(
                    AdoptionRecord.next_follow_up_date.is_not(None),
                    AdoptionRecord.next_follow_up_date >= now,
                    AdoptionRecord.next_follow_up_date <= horizon,
                    AdoptionRecord.status.in_(tuple(FOLLOW_UP_ADOPTION_STATUSES)),
                )
                .order_by(AdoptionRecord.next_follow_up_date.asc())
            ).scalars().all()
        )

    def statistics(self, now: datetime) -> AdoptionStatistics:
        """
        Totals, per-status and per-payment-status counts, fee sum and
        average, this month / this year counts, overdue follow-ups and the
        return rate as a percentage with two decimals.
        """
        total, total_fees, average_fee = self.session.execute(
            select(
                func.count(AdoptionRecord.id),
                func.coalesce(func.sum(AdoptionRecord.adoption_fee), 0),
                func.avg(AdoptionRecord.adoption_fee),
            )
        ).one()

        by_status = {
            _value(status): count
            for status, count in self.session.execute(
                select(AdoptionRecord.status, func.count(AdoptionRecord.id))
                .group_by(AdoptionRecord.status)
            ).all()
        }
        by_payment_status = {
            _value(status): count
            for status, count in self.session.execute(
                select(AdoptionRecord.payment_status, func.count(AdoptionRecord.id))
                .group_by(AdoptionRecord.payment_status)
            ).all()
        }

        month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        year_start = month_start.replace(month=1)
        this_month = self._count_since(month_start)
        this_year = self._count_since(year_start)

        overdue = self.session.execute(
            select(func.count(AdoptionRecord.id)).where(
                AdoptionRecord.next_follow_up_date.is_not(None),
                AdoptionRecord.next_follow_up_date <= now,
            )
        ).scalar_one()

        returned = by_status.get(AdoptionStatus.RETURNED.value, 0)
        return_rate = (
            round_money(Decimal(returned) * Decimal(100) / Decimal(total))
            if total else Decimal("0.00")
        )

        return AdoptionStatistics(
            total_adoptions=total,
            by_status=by_status,
            by_payment_status=by_payment_status,
            total_fees=round_money(Decimal(str(total_fees))),
            average_fee=(
                round_money(Decimal(str(average_fee)))
                if average_fee is not None else Decimal("0.00")
            ),
            adoptions_this_month=this_month,
            adoptions_this_year=this_year,
            pending_follow_ups=overdue,
            return_rate=return_rate,
        )

    def _count_since(self, start: datetime) -> int:
        return self.session.execute(
            select(func.count(AdoptionRecord.id)).where(
                AdoptionRecord.adoption_date >= start
            )
        ).scalar_one()


def _value(status) -> str:
    return getattr(status, "value", status)
