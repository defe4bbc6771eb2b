"""
AdoptionWorkflowService -- orchestrator for the adoption lifecycle.

Responsibility:
    The single entry point for every adoption workflow operation: intake,
    review, adoption creation, payment/contract/return bookkeeping,
    follow-up completion, administrative deletes and the read projections
    callers need.  Coordinates three entities (application, adoption
    record, animal) and emits one audit entry per mutating call.

Architecture position:
    Kernel > Services -- imperative shell.  Called by the (external)
    HTTP/CLI layer inside ``session_scope()``.  Delegates reads to
    selectors, animal status flips to AnimalStatusSync, deferred writes to
    SideEffectOutbox and audit rows to AuditorService.

Invariants enforced:
    - Intake: an application can only be created for an animal whose
      status is ``available``.
    - Review: application status changes follow APPLICATION_TRANSITIONS
      when enforcement is on; ``completed`` is never accepted from a
      caller.  under_review / approved / rejected stamp their dates from
      the injected clock.
    - Creation preconditions, first failure wins: application exists,
      application approved, no adoption for the application, no other
      active adoption for the animal.
    - Creation is one transaction.  The adoption row is the primary write;
      application -> completed and animal -> adopted run in SAVEPOINTs.
      A failed secondary write is rolled back to its savepoint, logged as
      ``side_effect_failed`` and queued in the outbox; the caller still
      gets the new adoption.
    - Return: setting ``returned`` moves the animal back to available from
      whatever status it holds, under the same secondary-write policy.
    - Audit writes never fail the workflow.

Failure modes:
    - InvalidIdentifierError: malformed id string.
    - AnimalNotFoundError / ApplicationNotFoundError / AdoptionNotFoundError.
    - AnimalNotAvailableError, ApplicationNotApprovedError,
      AdoptionAlreadyExistsError, AnimalAlreadyAdoptedError.
    - InvalidApplicationTransitionError / InvalidAdoptionTransitionError.
    - FollowUpNotFoundError.
    All of these are raised before anything is written.

Usage:
    with session_scope() as session:
        workflow = AdoptionWorkflowService(session, clock=SystemClock())
        adoption = workflow.create_adoption(
            CreateAdoptionRequest(application_id=app_id, adoption_fee=Decimal("150")),
            actor_id=staff_id,
        )
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from shelter_kernel.db.types import to_money
from shelter_kernel.domain.clock import Clock
from shelter_kernel.domain.follow_up import (
    build_follow_up_schedule,
    compute_trial_end_date,
)
from shelter_kernel.domain.lifecycle import (
    ADOPTABLE_ANIMAL_STATUSES,
    RETURNABLE_ANIMAL_STATUSES,
    AdoptionStatus,
    AnimalStatus,
    ApplicationStatus,
    PaymentStatus,
    check_adoption_transition,
    check_application_transition,
    is_legal_application_transition,
)
from shelter_kernel.domain.policy import QueryPolicy, WorkflowPolicy
from shelter_kernel.domain.requests import (
    AdoptionStatistics,
    CreateAdoptionRequest,
    CreateApplicationRequest,
    ListAdoptionsRequest,
    ListApplicationsRequest,
    UpdateAdoptionRequest,
    UpdateApplicationRequest,
    as_payload,
)
from shelter_kernel.exceptions import (
    AdoptionAlreadyExistsError,
    AdoptionNotFoundError,
    AnimalAlreadyAdoptedError,
    AnimalNotAvailableError,
    AnimalNotFoundError,
    ApplicationNotApprovedError,
    ApplicationNotFoundError,
    FollowUpNotFoundError,
    InvalidApplicationTransitionError,
    ShelterKernelError,
)
from shelter_kernel.logging_config import LogContext, get_logger
from shelter_kernel.models.adoption_application import AdoptionApplication
from shelter_kernel.models.adoption_record import AdoptionRecord
from shelter_kernel.models.animal import Animal
from shelter_kernel.models.audit_log import AuditAction
from shelter_kernel.models.side_effect import SideEffectType
from shelter_kernel.selectors.adoption_selector import AdoptionSelector
from shelter_kernel.selectors.application_selector import ApplicationSelector
from shelter_kernel.services.animal_status_sync import AnimalStatusSync
from shelter_kernel.services.auditor_service import AuditorService
from shelter_kernel.services.base import BaseService
from shelter_kernel.services.side_effect_outbox import SideEffectOutbox
from shelter_kernel.utils.identifiers import parse_id, parse_optional_id

logger = get_logger("services.adoption_workflow")

APPLICATION_ENTITY = "adoption_application"
ADOPTION_ENTITY = "adoption"
ANIMAL_ENTITY = "animal"

# Errors a secondary write may raise without failing the call.
_SECONDARY_WRITE_ERRORS = (ShelterKernelError, SQLAlchemyError)


class AdoptionWorkflowService(BaseService):
    """
    Use-case layer for adoption applications and adoption records.

    Contract:
        Every method takes ids as strings (or UUIDs) and an acting user id.
        Mutating methods flush but never commit; the caller's transaction
        makes the whole call atomic.

    Guarantees:
        - Validation and not-found errors are raised before any write.
        - A successful ``create_adoption`` leaves the application completed
          and the animal adopted, or an outbox entry for each change that
          could not be applied.
        - Exactly one audit entry per successful mutating call (best-effort).
    """

    def __init__(
        self,
        session: Session,
        auditor: AuditorService | None = None,
        clock: Clock | None = None,
        policy: WorkflowPolicy | None = None,
        query_policy: QueryPolicy | None = None,
        outbox: SideEffectOutbox | None = None,
    ):
        super().__init__(session, clock)
        self._policy = policy or WorkflowPolicy()
        self._auditor = auditor or AuditorService(session, self.clock)
        self._outbox = outbox or SideEffectOutbox(session, self.clock)
        self._animals = AnimalStatusSync(session, self.clock)
        self._applications = ApplicationSelector(session, query_policy)
        self._adoptions = AdoptionSelector(session, query_policy)

    @property
    def policy(self) -> WorkflowPolicy:
        return self._policy

    # =====================================================================
    # Applications
    # =====================================================================

    def create_application(
        self,
        request: CreateApplicationRequest,
        actor_id: str | UUID,
    ) -> AdoptionApplication:
        """
        Submit an application for an available animal.

        Raises:
            InvalidIdentifierError, AnimalNotFoundError, AnimalNotAvailableError
        """
        animal_id = parse_id(request.animal_id, "animal_id")
        actor = parse_id(actor_id, "actor_id")

        with LogContext.bind(actor_id=actor, operation="create_application"):
            animal = self.session.get(Animal, animal_id)
            if animal is None:
                raise AnimalNotFoundError(str(animal_id))
            if animal.status != AnimalStatus.AVAILABLE:
                logger.info(
                    "application_rejected_animal_unavailable",
                    extra={"animal_id": str(animal_id), "status": animal.status.value},
                )
                raise AnimalNotAvailableError(str(animal_id), animal.status.value)

            applicant = request.applicant
            application = AdoptionApplication(
                animal_id=animal_id,
                applicant_first_name=applicant.first_name,
                applicant_last_name=applicant.last_name,
                applicant_email=applicant.email,
                applicant_phone=applicant.phone,
                applicant_date_of_birth=applicant.date_of_birth,
                applicant_occupation=applicant.occupation,
                applicant_employer=applicant.employer,
                address=as_payload(request.address),
                housing=as_payload(request.housing),
                household_size=request.household_size,
                household_members=as_payload(request.household_members),
                has_children=request.has_children,
                children_ages=list(request.children_ages),
                current_pets=as_payload(request.current_pets),
                previous_pets=request.previous_pets,
                pet_experience=request.pet_experience,
                surrendered_pets=request.surrendered_pets,
                surrender_reason=request.surrender_reason,
                reason_for_adoption=request.reason_for_adoption,
                pet_location=request.pet_location,
                alone_time=request.alone_time,
                activity_level=request.activity_level,
                prepared_for=list(request.prepared_for),
                references=as_payload(request.references),
                has_veterinarian=request.has_veterinarian,
                vet_name=request.vet_name,
                vet_phone=request.vet_phone,
                vet_address=request.vet_address,
                agrees_to_home_visit=request.agrees_to_home_visit,
                agrees_to_follow_up=request.agrees_to_follow_up,
                agrees_to_return_policy=request.agrees_to_return_policy,
                understands_commitment=request.understands_commitment,
                additional_info=request.additional_info,
                status=ApplicationStatus.SUBMITTED,
                application_date=self.clock.now(),
                created_by_id=actor,
            )
            self.session.add(application)
            self.session.flush()

            self._auditor.record(
                APPLICATION_ENTITY,
                application.id,
                AuditAction.CREATE,
                actor,
                {
                    "animal_id": animal_id,
                    "status": application.status,
                    "applicant_email": applicant.email,
                },
            )
            logger.info(
                "application_created",
                extra={
                    "application_id": str(application.id),
                    "animal_id": str(animal_id),
                },
            )
            return application

    def update_application(
        self,
        application_id: str | UUID,
        request: UpdateApplicationRequest,
        actor_id: str | UUID,
    ) -> AdoptionApplication:
        """
        Apply a reviewer patch.

        Raises:
            InvalidIdentifierError, ApplicationNotFoundError,
            InvalidApplicationTransitionError
        """
        app_id = parse_id(application_id, "application_id")
        actor = parse_id(actor_id, "actor_id")

        with LogContext.bind(
            actor_id=actor, operation="update_application", application_id=app_id,
        ):
            application = self._load_application(app_id)
            previous_status = application.status
            changes: dict[str, Any] = {}

            if request.status is not None:
                check_application_transition(
                    str(app_id),
                    application.status,
                    request.status,
                    enforce=self._policy.enforce_transitions,
                )
                self._apply_application_status(application, request.status)
                changes["status"] = request.status

            if request.review_notes is not None:
                application.review_notes = request.review_notes
                application.reviewed_by = actor
                changes["review_notes"] = request.review_notes
                changes["reviewed_by"] = actor
            if request.rejection_reason is not None:
                application.rejection_reason = request.rejection_reason
                changes["rejection_reason"] = request.rejection_reason
            if request.home_visit_date is not None:
                application.home_visit_date = request.home_visit_date
                changes["home_visit_date"] = request.home_visit_date
            if request.home_visit_notes is not None:
                application.home_visit_notes = request.home_visit_notes
                changes["home_visit_notes"] = request.home_visit_notes
            if request.interview_date is not None:
                application.interview_date = request.interview_date
                changes["interview_date"] = request.interview_date
            if request.interview_notes is not None:
                application.interview_notes = request.interview_notes
                changes["interview_notes"] = request.interview_notes

            application.updated_by_id = actor
            self.session.flush()

            self._auditor.record(
                APPLICATION_ENTITY, app_id, AuditAction.UPDATE, actor, changes,
            )
            logger.info(
                "application_updated",
                extra={
                    "application_id": str(app_id),
                    "from_status": previous_status.value,
                    "to_status": application.status.value,
                    "fields": sorted(changes),
                },
            )
            return application

    def _apply_application_status(
        self,
        application: AdoptionApplication,
        status: ApplicationStatus,
    ) -> None:
        now = self.clock.now()
        application.status = status
        if status == ApplicationStatus.UNDER_REVIEW:
            application.review_date = now
        elif status == ApplicationStatus.APPROVED:
            application.approval_date = now
            application.review_date = now
        elif status == ApplicationStatus.REJECTED:
            application.rejection_date = now
            application.review_date = now

    def delete_application(self, application_id: str | UUID, actor_id: str | UUID) -> None:
        """Administrative delete.  No compensating animal change."""
        app_id = parse_id(application_id, "application_id")
        actor = parse_id(actor_id, "actor_id")

        with LogContext.bind(
            actor_id=actor, operation="delete_application", application_id=app_id,
        ):
            application = self._load_application(app_id)
            self.session.delete(application)
            self.session.flush()

            self._auditor.record(APPLICATION_ENTITY, app_id, AuditAction.DELETE, actor)
            logger.info("application_deleted", extra={"application_id": str(app_id)})

    def get_application(self, application_id: str | UUID) -> AdoptionApplication:
        return self._load_application(parse_id(application_id, "application_id"))

    def list_applications(
        self,
        request: ListApplicationsRequest,
    ) -> tuple[list[AdoptionApplication], int]:
        return self._applications.search(request)

    def get_applications_by_animal_id(
        self,
        animal_id: str | UUID,
    ) -> list[AdoptionApplication]:
        return self._applications.by_animal(parse_id(animal_id, "animal_id"))

    def get_pending_applications(self) -> list[AdoptionApplication]:
        return self._applications.pending()

    def _load_application(self, application_id: UUID) -> AdoptionApplication:
        application = self._applications.get(application_id)
        if application is None:
            raise ApplicationNotFoundError(str(application_id))
        return application

    # =====================================================================
    # Adoption records
    # =====================================================================

    def create_adoption(
        self,
        request: CreateAdoptionRequest,
        actor_id: str | UUID,
    ) -> AdoptionRecord:
        """
        Turn an approved application into an adoption record.

        Preconditions, checked in order (first failure wins):
            1. the application exists;
            2. it is approved (a completed application goes on to 3);
            3. no adoption references it;
            4. no other active adoption holds the animal.

        Postconditions:
            The record is flushed.  The application is completed and the
            animal adopted, or an outbox entry exists for each change that
            failed.

        Raises:
            InvalidIdentifierError, ApplicationNotFoundError,
            ApplicationNotApprovedError, AdoptionAlreadyExistsError,
            AnimalAlreadyAdoptedError
        """
        app_id = parse_id(request.application_id, "application_id")
        actor = parse_id(actor_id, "actor_id")
        adopter = parse_optional_id(request.adopter_id, "adopter_id") or actor

        with LogContext.bind(actor_id=actor, operation="create_adoption"):
            application = self._load_application(app_id)
            # A completed application already produced its adoption; report
            # the duplicate rather than the status.
            if application.status not in (
                ApplicationStatus.APPROVED, ApplicationStatus.COMPLETED,
            ):
                raise ApplicationNotApprovedError(str(app_id), application.status.value)

            existing = self._adoptions.get_by_application(app_id)
            if existing is not None:
                raise AdoptionAlreadyExistsError(str(app_id), str(existing.id))
            if not application.is_approved:
                raise ApplicationNotApprovedError(str(app_id), application.status.value)

            holding = self._adoptions.get_active_by_animal(application.animal_id)
            if holding is not None:
                raise AnimalAlreadyAdoptedError(str(application.animal_id), str(holding.id))

            record = self._build_adoption(request, application, adopter, actor)

            try:
                with self.session.begin_nested():
                    self.session.add(record)
                    self.session.flush()
            except IntegrityError as exc:
                # Concurrent creation won the unique application_id slot.
                raise AdoptionAlreadyExistsError(str(app_id)) from exc

            self._secondary_write(
                "application_completed",
                lambda: self._complete_application(application, actor),
                effect_type=SideEffectType.APPLICATION_STATUS,
                entity_type=APPLICATION_ENTITY,
                entity_id=app_id,
                target_status=ApplicationStatus.COMPLETED.value,
                expected_statuses=(ApplicationStatus.APPROVED.value,),
                source_entity_id=record.id,
            )
            self._secondary_write(
                "animal_adopted",
                lambda: self._animals.mark_adopted(application.animal_id, actor),
                effect_type=SideEffectType.ANIMAL_STATUS,
                entity_type=ANIMAL_ENTITY,
                entity_id=application.animal_id,
                target_status=AnimalStatus.ADOPTED.value,
                expected_statuses=tuple(sorted(s.value for s in ADOPTABLE_ANIMAL_STATUSES)),
                source_entity_id=record.id,
            )

            self._auditor.record(
                ADOPTION_ENTITY,
                record.id,
                AuditAction.CREATE,
                actor,
                {
                    "application_id": app_id,
                    "animal_id": record.animal_id,
                    "adopter_id": record.adopter_id,
                    "adoption_fee": record.adoption_fee,
                    "payment_status": record.payment_status,
                    "trial_end_date": record.trial_end_date,
                    "follow_ups": len(record.follow_ups),
                },
            )
            logger.info(
                "adoption_created",
                extra={
                    "adoption_id": str(record.id),
                    "application_id": str(app_id),
                    "animal_id": str(record.animal_id),
                    "follow_ups": len(record.follow_ups),
                    "trial_period": record.trial_period,
                },
            )
            return record

    def _build_adoption(
        self,
        request: CreateAdoptionRequest,
        application: AdoptionApplication,
        adopter: UUID,
        actor: UUID,
    ) -> AdoptionRecord:
        now = self.clock.now()

        trial_days = request.trial_period_days
        if request.trial_period and trial_days is None:
            trial_days = self._policy.default_trial_period_days

        record = AdoptionRecord(
            application_id=application.id,
            animal_id=application.animal_id,
            adopter_id=adopter,
            status=AdoptionStatus.ACTIVE,
            adoption_date=now,
            adoption_fee=to_money(request.adoption_fee),
            payment_status=request.payment_status or PaymentStatus.PENDING,
            amount_paid=to_money(request.amount_paid),
            payment_method=request.payment_method or None,
            trial_period=request.trial_period,
            trial_end_date=compute_trial_end_date(now, request.trial_period, trial_days),
            contract_url=request.contract_url or None,
            notes=request.notes,
            created_by_id=actor,
        )

        if request.schedule_follow_ups:
            intervals = request.follow_up_intervals
            if intervals is None:
                intervals = self._policy.default_follow_up_intervals
            for slot in build_follow_up_schedule(
                now, intervals, self._policy.default_follow_up_type,
            ):
                record.add_follow_up(slot.scheduled_date, slot.type)
        record.refresh_next_follow_up(now)
        return record

    def _complete_application(self, application: AdoptionApplication, actor: UUID) -> None:
        # Engine-driven; bypasses the caller-patch guard but not the table.
        if not is_legal_application_transition(
            application.status, ApplicationStatus.COMPLETED,
        ):
            raise InvalidApplicationTransitionError(
                str(application.id),
                application.status.value,
                ApplicationStatus.COMPLETED.value,
            )
        application.status = ApplicationStatus.COMPLETED
        application.updated_by_id = actor
        self.session.flush()

    def update_adoption(
        self,
        adoption_id: str | UUID,
        request: UpdateAdoptionRequest,
        actor_id: str | UUID,
    ) -> AdoptionRecord:
        """
        Apply a payment / contract / return patch.

        Moving to ``returned`` resets the animal to available from any
        status (secondary write).  ``return_date`` defaults to now on return.

        Raises:
            InvalidIdentifierError, AdoptionNotFoundError,
            InvalidAdoptionTransitionError
        """
        ad_id = parse_id(adoption_id, "adoption_id")
        actor = parse_id(actor_id, "actor_id")

        with LogContext.bind(actor_id=actor, operation="update_adoption", adoption_id=ad_id):
            record = self._load_adoption(ad_id)
            previous_status = record.status
            changes: dict[str, Any] = {}

            if request.status is not None:
                check_adoption_transition(
                    str(ad_id),
                    record.status,
                    request.status,
                    enforce=self._policy.enforce_transitions,
                )
                record.status = request.status
                changes["status"] = request.status

            if request.payment_status is not None:
                record.payment_status = request.payment_status
                changes["payment_status"] = request.payment_status
            if request.amount_paid is not None:
                record.amount_paid = to_money(request.amount_paid)
                changes["amount_paid"] = record.amount_paid
            if request.payment_date is not None:
                record.payment_date = request.payment_date
                changes["payment_date"] = request.payment_date
            if request.payment_method is not None:
                record.payment_method = request.payment_method
                changes["payment_method"] = request.payment_method
            if request.contract_signed_date is not None:
                record.contract_signed_date = request.contract_signed_date
                changes["contract_signed_date"] = request.contract_signed_date
            if request.return_date is not None:
                record.return_date = request.return_date
                changes["return_date"] = request.return_date
            if request.return_reason is not None:
                record.return_reason = request.return_reason
                changes["return_reason"] = request.return_reason
            if request.return_notes is not None:
                record.return_notes = request.return_notes
                changes["return_notes"] = request.return_notes
            if request.notes is not None:
                record.notes = request.notes
                changes["notes"] = request.notes

            newly_returned = (
                record.status == AdoptionStatus.RETURNED
                and previous_status != AdoptionStatus.RETURNED
            )
            if newly_returned and record.return_date is None:
                record.return_date = self.clock.now()
                changes["return_date"] = record.return_date

            record.updated_by_id = actor
            self.session.flush()

            if newly_returned:
                self._secondary_write(
                    "animal_returned",
                    lambda: self._animals.mark_available(record.animal_id, actor),
                    effect_type=SideEffectType.ANIMAL_STATUS,
                    entity_type=ANIMAL_ENTITY,
                    entity_id=record.animal_id,
                    target_status=AnimalStatus.AVAILABLE.value,
                    expected_statuses=tuple(
                        sorted(s.value for s in RETURNABLE_ANIMAL_STATUSES)
                    ),
                    source_entity_id=record.id,
                )

            self._auditor.record(ADOPTION_ENTITY, ad_id, AuditAction.UPDATE, actor, changes)
            logger.info(
                "adoption_updated",
                extra={
                    "adoption_id": str(ad_id),
                    "from_status": previous_status.value,
                    "to_status": record.status.value,
                    "fields": sorted(changes),
                },
            )
            return record

    def complete_follow_up(
        self,
        adoption_id: str | UUID,
        index: int,
        actor_id: str | UUID,
        notes: str | None = None,
    ) -> AdoptionRecord:
        """
        Mark the follow-up at ``index`` (schedule order) as done and
        recompute ``next_follow_up_date``.  Completing an already
        completed follow-up changes nothing.

        Raises:
            InvalidIdentifierError, AdoptionNotFoundError, FollowUpNotFoundError
        """
        ad_id = parse_id(adoption_id, "adoption_id")
        actor = parse_id(actor_id, "actor_id")

        with LogContext.bind(
            actor_id=actor, operation="complete_follow_up", adoption_id=ad_id,
        ):
            record = self._load_adoption(ad_id)
            if index < 0 or index >= len(record.follow_ups):
                raise FollowUpNotFoundError(str(ad_id), index)

            follow_up = record.follow_ups[index]
            if follow_up.is_completed:
                return record

            now = self.clock.now()
            follow_up.completed_date = now
            follow_up.completed_by = actor
            if notes is not None:
                follow_up.notes = notes
            record.refresh_next_follow_up(now)
            record.updated_by_id = actor
            self.session.flush()

            self._auditor.record(
                ADOPTION_ENTITY,
                ad_id,
                AuditAction.UPDATE,
                actor,
                {
                    "follow_up_completed": index,
                    "next_follow_up_date": record.next_follow_up_date,
                },
            )
            logger.info(
                "follow_up_completed",
                extra={
                    "adoption_id": str(ad_id),
                    "index": index,
                    "type": follow_up.type,
                },
            )
            return record

    def delete_adoption(self, adoption_id: str | UUID, actor_id: str | UUID) -> None:
        """Administrative delete.  The animal's status is left as it is."""
        ad_id = parse_id(adoption_id, "adoption_id")
        actor = parse_id(actor_id, "actor_id")

        with LogContext.bind(actor_id=actor, operation="delete_adoption", adoption_id=ad_id):
            record = self._load_adoption(ad_id)
            self.session.delete(record)
            self.session.flush()

            self._auditor.record(ADOPTION_ENTITY, ad_id, AuditAction.DELETE, actor)
            logger.info("adoption_deleted", extra={"adoption_id": str(ad_id)})

    def get_adoption(self, adoption_id: str | UUID) -> AdoptionRecord:
        return self._load_adoption(parse_id(adoption_id, "adoption_id"))

    def list_adoptions(
        self,
        request: ListAdoptionsRequest,
    ) -> tuple[list[AdoptionRecord], int]:
        return self._adoptions.search(request)

    def get_adoption_by_animal_id(self, animal_id: str | UUID) -> AdoptionRecord | None:
        """Most recent adoption of the animal, or None."""
        return self._adoptions.get_latest_by_animal(parse_id(animal_id, "animal_id"))

    def get_pending_follow_ups(self, days: int = 7) -> list[AdoptionRecord]:
        """Adoptions with a follow-up due within the next ``days`` days."""
        if days < 0:
            raise ValueError("days must not be negative")
        return self._adoptions.pending_follow_ups(self.clock.now(), days)

    def get_adoption_statistics(self) -> AdoptionStatistics:
        return self._adoptions.statistics(self.clock.now())

    def _load_adoption(self, adoption_id: UUID) -> AdoptionRecord:
        record = self._adoptions.get(adoption_id)
        if record is None:
            raise AdoptionNotFoundError(str(adoption_id))
        return record

    # =====================================================================
    # Secondary writes
    # =====================================================================

    def _secondary_write(
        self,
        name: str,
        apply: Callable[[], Any],
        *,
        effect_type: SideEffectType,
        entity_type: str,
        entity_id: UUID,
        target_status: str,
        expected_statuses: tuple[str, ...],
        source_entity_id: UUID,
    ) -> bool:
        """
        Run ``apply`` in a SAVEPOINT.  On failure roll back to the
        savepoint, log ``side_effect_failed`` and queue the change.

        Returns:
            True if applied, False if queued.
        """
        try:
            with self.session.begin_nested():
                apply()
        except _SECONDARY_WRITE_ERRORS as exc:
            logger.error(
                "side_effect_failed",
                extra={
                    "side_effect": name,
                    "entity_type": entity_type,
                    "entity_id": str(entity_id),
                    "target_status": target_status,
                    "source_entity_id": str(source_entity_id),
                },
                exc_info=True,
            )
            self._outbox.enqueue(
                effect_type=effect_type,
                entity_type=entity_type,
                entity_id=entity_id,
                target_status=target_status,
                expected_statuses=expected_statuses,
                source_entity_id=source_entity_id,
                error=exc,
            )
            return False
        return True
