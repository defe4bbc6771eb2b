"""
Module: shelter_kernel.selectors.base
Responsibility: Abstract base class for read-only query selectors -- the "Q"
    side of the kernel's CQRS-lite split -- plus the shared paging helper.
Architecture position: Kernel > Selectors.  May import from db/, models/,
    domain/ and utils/.  MUST NOT import from services/.

Invariants enforced:
    - Read-only access: selectors never call session.add(), session.delete(),
      session.commit() or session.flush().
    - Session ownership: the caller owns the session and its transaction.
    - Sorting only on whitelisted columns; an unknown sort key is a
      ValueError, never raw SQL.

Failure modes:
    - ValueError on an unknown sort column.
"""

from abc import ABC
from typing import Any, Generic, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

from shelter_kernel.db.base import Base
from shelter_kernel.domain.policy import QueryPolicy
from shelter_kernel.domain.requests import SORT_ASC

ModelType = TypeVar("ModelType", bound=Base)


class BaseSelector(ABC, Generic[ModelType]):
    """
    Abstract base class for all selectors.

    Contract:
        Selectors accept a Session from the caller and perform read-only
        queries.  They return ORM rows because the workflow hands entities
        straight back to its callers; they never modify them.
    """

    def __init__(self, session: Session, query_policy: QueryPolicy | None = None):
        self.session = session
        self.query_policy = query_policy or QueryPolicy()

    def _paginate(
        self,
        stmt: Select,
        sort_columns: dict[str, Any],
        default_sort: str,
        sort_by: str | None,
        sort_order: str,
        limit: int | None,
        offset: int,
    ) -> tuple[list[ModelType], int]:
        """
        Count the filtered rows, then fetch one sorted page.

        Returns:
            (items, total) where total ignores limit/offset.
        """
        key = sort_by or default_sort
        if key not in sort_columns:
            raise ValueError(
                f"cannot sort by {key!r}; expected one of {', '.join(sorted(sort_columns))}"
            )
        column = sort_columns[key]
        ordering = column.asc() if sort_order == SORT_ASC else column.desc()

        total = self.session.execute(
            select(func.count()).select_from(stmt.order_by(None).subquery())
        ).scalar_one()

        page = (
            stmt.order_by(ordering)
            .limit(self.query_policy.effective_limit(limit))
            .offset(offset)
        )
        items = list(self.session.execute(page).scalars().all())
        return items, total
