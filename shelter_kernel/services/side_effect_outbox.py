"""
SideEffectOutbox -- tracked queue of secondary writes awaiting retry.

Responsibility:
    When the adoption workflow cannot apply a secondary write (application
    -> completed, animal -> adopted / available) it records the intended
    change here instead of dropping it.  Operational tooling replays the
    queue with ``retry_pending()``.

Architecture position:
    Kernel > Services -- imperative shell.  Written to by
    AdoptionWorkflowService; drained by ``scripts/retry_side_effects.py``.

Invariants enforced:
    - An entry is written in the caller's transaction, so it commits or
      rolls back together with the primary write that produced it.
    - Each replay runs in its own SAVEPOINT; one failing entry never
      undoes another entry's success.
    - Status moves pending -> applied or pending -> abandoned.  Entries
      that keep failing are abandoned after ``max_attempts`` retries.
    - Replays are idempotent: an entity already in the target status
      counts as applied.

Failure modes:
    - SideEffectNotFoundError: unknown entry id.
    - Replay errors are recorded on the entry (``last_error``), never
      raised from ``retry_pending()``.

Usage:
    outbox = SideEffectOutbox(session, clock, max_attempts=5)
    report = outbox.retry_pending(actor_id=operator_id)
    print(report.applied, report.failed, report.abandoned)
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from shelter_kernel.domain.clock import Clock
from shelter_kernel.domain.lifecycle import (
    AnimalStatus,
    ApplicationStatus,
    is_legal_application_transition,
)
from shelter_kernel.exceptions import (
    ApplicationNotFoundError,
    InvalidApplicationTransitionError,
    SideEffectNotFoundError,
)
from shelter_kernel.logging_config import LogContext, get_logger
from shelter_kernel.models.adoption_application import AdoptionApplication
from shelter_kernel.models.side_effect import (
    PendingSideEffect,
    SideEffectStatus,
    SideEffectType,
)
from shelter_kernel.services.animal_status_sync import AnimalStatusSync
from shelter_kernel.services.base import BaseService

logger = get_logger("services.side_effect_outbox")


@dataclass(frozen=True)
class RetryReport:
    """Outcome of one ``retry_pending()`` pass."""

    attempted: int = 0
    applied: int = 0
    failed: int = 0
    abandoned: int = 0


class SideEffectOutbox(BaseService):
    """
    Contract:
        ``enqueue()`` only inserts.  ``retry()`` / ``retry_pending()``
        apply entries and update their bookkeeping.  Nothing here commits.
    """

    DEFAULT_MAX_ATTEMPTS = 5

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ):
        super().__init__(session, clock)
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._max_attempts = max_attempts
        self._animals = AnimalStatusSync(session, self.clock)

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    def enqueue(
        self,
        effect_type: SideEffectType,
        entity_type: str,
        entity_id: UUID,
        target_status: str,
        expected_statuses: Iterable[str] = (),
        source_entity_id: UUID | None = None,
        error: BaseException | None = None,
    ) -> PendingSideEffect:
        now = self.clock.now()
        expected = ",".join(expected_statuses)
        entry = PendingSideEffect(
            effect_type=effect_type,
            entity_type=entity_type,
            entity_id=entity_id,
            target_status=target_status,
            expected_statuses=expected or None,
            source_entity_id=source_entity_id,
            status=SideEffectStatus.PENDING,
            attempts=0,
            last_error=_describe(error) if error is not None else None,
            created_at=now,
            updated_at=now,
        )
        self.session.add(entry)
        self.session.flush()

        logger.warning(
            "side_effect_enqueued",
            extra={
                "side_effect_id": str(entry.id),
                "effect_type": effect_type.value,
                "entity_id": str(entity_id),
                "target_status": target_status,
            },
        )
        return entry

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def get(self, side_effect_id: UUID) -> PendingSideEffect:
        entry = self.session.get(PendingSideEffect, side_effect_id)
        if entry is None:
            raise SideEffectNotFoundError(str(side_effect_id))
        return entry

    def pending(self, limit: int | None = None) -> list[PendingSideEffect]:
        """Pending entries, oldest first."""
        stmt = (
            select(PendingSideEffect)
            .where(PendingSideEffect.status == SideEffectStatus.PENDING)
            .order_by(PendingSideEffect.created_at, PendingSideEffect.id)
        )
        if limit:
            stmt = stmt.limit(limit)
        return list(self.session.execute(stmt).scalars().all())

    # ------------------------------------------------------------------
    # Replaying
    # ------------------------------------------------------------------

    def retry_pending(self, actor_id: UUID, limit: int | None = None) -> RetryReport:
        attempted = applied = failed = abandoned = 0
        with LogContext.bind(actor_id=actor_id, operation="retry_side_effects"):
            for entry in self.pending(limit):
                attempted += 1
                self._retry_entry(entry, actor_id)
                if entry.status == SideEffectStatus.APPLIED:
                    applied += 1
                elif entry.status == SideEffectStatus.ABANDONED:
                    abandoned += 1
                else:
                    failed += 1

            report = RetryReport(
                attempted=attempted, applied=applied, failed=failed, abandoned=abandoned,
            )
            logger.info(
                "side_effect_retry_completed",
                extra={
                    "attempted": attempted,
                    "applied": applied,
                    "failed": failed,
                    "abandoned": abandoned,
                },
            )
        return report

    def retry(self, side_effect_id: UUID, actor_id: UUID) -> PendingSideEffect:
        """Replay one entry.  Non-pending entries are returned unchanged."""
        entry = self.get(side_effect_id)
        if entry.status != SideEffectStatus.PENDING:
            return entry
        self._retry_entry(entry, actor_id)
        return entry

    def abandon(self, side_effect_id: UUID, reason: str | None = None) -> PendingSideEffect:
        entry = self.get(side_effect_id)
        if entry.status == SideEffectStatus.PENDING:
            entry.status = SideEffectStatus.ABANDONED
            if reason:
                entry.last_error = reason
            entry.updated_at = self.clock.now()
            self.session.flush()
            logger.warning(
                "side_effect_abandoned",
                extra={"side_effect_id": str(entry.id), "reason": reason},
            )
        return entry

    def _retry_entry(self, entry: PendingSideEffect, actor_id: UUID) -> None:
        entry.attempts += 1
        entry.updated_at = self.clock.now()
        try:
            with self.session.begin_nested():
                self._apply(entry, actor_id)
        except Exception as exc:
            entry.last_error = _describe(exc)
            if entry.attempts >= self._max_attempts:
                entry.status = SideEffectStatus.ABANDONED
            self.session.flush()
            logger.warning(
                "side_effect_retry_failed",
                extra={
                    "side_effect_id": str(entry.id),
                    "attempts": entry.attempts,
                    "abandoned": entry.status == SideEffectStatus.ABANDONED,
                },
                exc_info=True,
            )
            return

        entry.status = SideEffectStatus.APPLIED
        entry.last_error = None
        self.session.flush()
        logger.info(
            "side_effect_applied",
            extra={
                "side_effect_id": str(entry.id),
                "effect_type": entry.effect_type.value,
                "entity_id": str(entry.entity_id),
                "attempts": entry.attempts,
            },
        )

    def _apply(self, entry: PendingSideEffect, actor_id: UUID) -> None:
        if entry.effect_type == SideEffectType.ANIMAL_STATUS:
            target = AnimalStatus(entry.target_status)
            if target == AnimalStatus.AVAILABLE:
                self._animals.mark_available(entry.entity_id, actor_id)
            elif target == AnimalStatus.ADOPTED:
                self._animals.mark_adopted(entry.entity_id, actor_id)
            else:
                self._animals.transition(
                    entry.entity_id,
                    expected=tuple(AnimalStatus(s) for s in entry.expected),
                    target=target,
                    actor_id=actor_id,
                )
            return

        if entry.effect_type == SideEffectType.APPLICATION_STATUS:
            self._apply_application_status(entry, actor_id)
            return

        raise ValueError(f"unknown side effect type: {entry.effect_type}")

    def _apply_application_status(self, entry: PendingSideEffect, actor_id: UUID) -> None:
        application = self.session.get(AdoptionApplication, entry.entity_id)
        if application is None:
            raise ApplicationNotFoundError(str(entry.entity_id))
        target = ApplicationStatus(entry.target_status)
        if application.status == target:
            return
        if not is_legal_application_transition(application.status, target):
            raise InvalidApplicationTransitionError(
                str(application.id), application.status.value, target.value,
            )
        application.status = target
        application.updated_by_id = actor_id
        self.session.flush()


def _describe(exc: BaseException) -> str:
    code = getattr(exc, "code", None)
    prefix = f"{code}: " if code else f"{type(exc).__name__}: "
    return (prefix + str(exc))[:2000]
