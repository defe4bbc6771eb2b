"""
Tests for application intake, review and deletion.

Covers:
- Intake only for available animals
- Applicant payload stored verbatim
- Review transitions and their date stamps
- Reviewer attribution and patch semantics
- Caller cannot set ``completed``
- Enforcement switch
- Listing, pending and per-animal queries
- Audit trail per mutating call
"""

from datetime import timedelta
from uuid import uuid4

import pytest

from shelter_kernel.domain.lifecycle import AnimalStatus, ApplicationStatus
from shelter_kernel.domain.policy import WorkflowPolicy
from shelter_kernel.domain.requests import (
    CurrentPet,
    HouseholdMember,
    ListApplicationsRequest,
    Reference,
    UpdateApplicationRequest,
)
from shelter_kernel.exceptions import (
    AnimalNotAvailableError,
    AnimalNotFoundError,
    ApplicationNotFoundError,
    InvalidApplicationTransitionError,
    InvalidIdentifierError,
)
from shelter_kernel.models.adoption_application import AdoptionApplication
from shelter_kernel.models.audit_log import AuditAction
from shelter_kernel.services.adoption_workflow_service import (
    APPLICATION_ENTITY,
    AdoptionWorkflowService,
)
from tests.factories import make_application_request


class TestCreateApplication:
    """Application intake."""

    def test_submitted_with_clock_date(self, workflow, animal, test_actor_id, deterministic_clock):
        application = workflow.create_application(
            make_application_request(animal.id), test_actor_id,
        )

        assert application.id is not None
        assert application.status == ApplicationStatus.SUBMITTED
        assert application.application_date == deterministic_clock.now()
        assert application.animal_id == animal.id
        assert application.created_by_id == test_actor_id
        assert application.review_date is None
        assert application.is_pending

    def test_payload_stored_verbatim(self, workflow, animal, test_actor_id, session):
        request = make_application_request(
            animal.id,
            household_size=3,
            household_members=(HouseholdMember(name="Sam", age=9, relationship="son"),),
            has_children=True,
            children_ages=(9,),
            current_pets=(CurrentPet(species="cat", name="Tom", age=4),),
            prepared_for=("vet_bills", "training"),
            references=(Reference(name="Ann", relationship="friend", phone="555-0101"),),
            alone_time=4,
        )
        application = workflow.create_application(request, test_actor_id)
        session.expire_all()

        stored = session.get(AdoptionApplication, application.id)
        assert stored.applicant_name == "Jane Doe"
        assert stored.applicant_email == "jane.doe@example.com"
        assert stored.address["city"] == "Springfield"
        assert stored.housing["has_yard"] is True
        assert stored.household_members == [{"name": "Sam", "age": 9, "relationship": "son"}]
        assert stored.children_ages == [9]
        assert stored.current_pets[0]["name"] == "Tom"
        assert stored.prepared_for == ["vet_bills", "training"]
        assert stored.references[0]["phone"] == "555-0101"
        assert stored.household_size == 3
        assert stored.alone_time == 4

    def test_animal_not_found(self, workflow, test_actor_id):
        with pytest.raises(AnimalNotFoundError):
            workflow.create_application(make_application_request(uuid4()), test_actor_id)

    @pytest.mark.parametrize(
        "status",
        [AnimalStatus.ADOPTED, AnimalStatus.PENDING, AnimalStatus.QUARANTINE],
    )
    def test_animal_not_available(self, workflow, create_animal, test_actor_id, status):
        animal = create_animal(status=status)

        with pytest.raises(AnimalNotAvailableError) as exc_info:
            workflow.create_application(make_application_request(animal.id), test_actor_id)
        assert exc_info.value.status == status.value

    def test_invalid_animal_id(self, workflow, test_actor_id):
        with pytest.raises(InvalidIdentifierError):
            workflow.create_application(make_application_request("not-a-uuid"), test_actor_id)

    def test_multiple_applications_per_animal(self, submit_application, animal):
        first = submit_application(animal)
        second = submit_application(animal, email="other@example.com")
        assert first.id != second.id

    def test_audited(self, workflow, animal, test_actor_id, auditor_service):
        application = workflow.create_application(
            make_application_request(animal.id), test_actor_id,
        )

        trace = auditor_service.get_trace(APPLICATION_ENTITY, application.id)
        assert trace.actions == (AuditAction.CREATE,)
        assert trace.entries[0].actor_id == test_actor_id
        assert trace.entries[0].changes["status"] == "submitted"

    def test_logs_creation(self, workflow, animal, test_actor_id, captured_logs):
        application = workflow.create_application(
            make_application_request(animal.id), test_actor_id,
        )

        records = [r for r in captured_logs() if r["message"] == "application_created"]
        assert len(records) == 1
        assert records[0]["application_id"] == str(application.id)
        assert records[0]["operation"] == "create_application"
        assert records[0]["actor_id"] == str(test_actor_id)


class TestUpdateApplication:
    """Review state machine."""

    def test_under_review_stamps_review_date(
        self, workflow, submit_application, animal, test_actor_id, deterministic_clock,
    ):
        application = submit_application(animal)
        deterministic_clock.advance(days=1)

        updated = workflow.update_application(
            application.id,
            UpdateApplicationRequest(status=ApplicationStatus.UNDER_REVIEW),
            test_actor_id,
        )

        assert updated.status == ApplicationStatus.UNDER_REVIEW
        assert updated.review_date == deterministic_clock.now()
        assert updated.approval_date is None

    def test_approve_stamps_dates(
        self, workflow, submit_application, animal, test_actor_id, deterministic_clock,
    ):
        application = submit_application(animal)
        deterministic_clock.advance(days=2)

        updated = workflow.update_application(
            str(application.id),
            UpdateApplicationRequest(status="approved"),
            test_actor_id,
        )

        assert updated.is_approved
        assert updated.approval_date == deterministic_clock.now()
        assert updated.review_date == deterministic_clock.now()
        assert updated.updated_by_id == test_actor_id

    def test_reject_stamps_dates_and_reason(
        self, workflow, submit_application, animal, test_actor_id, deterministic_clock,
    ):
        application = submit_application(animal)

        updated = workflow.update_application(
            application.id,
            UpdateApplicationRequest(
                status=ApplicationStatus.REJECTED,
                rejection_reason="No fenced yard",
            ),
            test_actor_id,
        )

        assert updated.is_rejected
        assert updated.rejection_date == deterministic_clock.now()
        assert updated.review_date == deterministic_clock.now()
        assert updated.rejection_reason == "No fenced yard"
        assert updated.approval_date is None

    def test_review_notes_set_reviewer(self, workflow, submit_application, animal):
        application = submit_application(animal)
        reviewer = uuid4()

        updated = workflow.update_application(
            application.id,
            UpdateApplicationRequest(review_notes="Great references"),
            reviewer,
        )

        assert updated.review_notes == "Great references"
        assert updated.reviewed_by == reviewer
        assert updated.status == ApplicationStatus.SUBMITTED

    def test_patch_leaves_unsupplied_fields(
        self, workflow, submit_application, animal, test_actor_id, deterministic_clock,
    ):
        application = submit_application(animal)
        visit = deterministic_clock.now() + timedelta(days=3)
        workflow.update_application(
            application.id,
            UpdateApplicationRequest(home_visit_date=visit, home_visit_notes="Booked"),
            test_actor_id,
        )

        updated = workflow.update_application(
            application.id,
            UpdateApplicationRequest(interview_notes="Went well"),
            test_actor_id,
        )

        assert updated.home_visit_date == visit
        assert updated.home_visit_notes == "Booked"
        assert updated.interview_notes == "Went well"

    def test_same_state_reentry_allowed(self, workflow, submit_application, animal, test_actor_id):
        application = submit_application(animal)
        updated = workflow.update_application(
            application.id,
            UpdateApplicationRequest(status=ApplicationStatus.SUBMITTED),
            test_actor_id,
        )
        assert updated.status == ApplicationStatus.SUBMITTED

    def test_rejected_cannot_be_approved(self, workflow, submit_application, animal, test_actor_id):
        application = submit_application(animal)
        workflow.update_application(
            application.id,
            UpdateApplicationRequest(status=ApplicationStatus.REJECTED),
            test_actor_id,
        )

        with pytest.raises(InvalidApplicationTransitionError):
            workflow.update_application(
                application.id,
                UpdateApplicationRequest(status=ApplicationStatus.APPROVED),
                test_actor_id,
            )

    def test_caller_cannot_complete(self, workflow, approved_application, test_actor_id):
        with pytest.raises(InvalidApplicationTransitionError):
            workflow.update_application(
                approved_application.id,
                UpdateApplicationRequest(status=ApplicationStatus.COMPLETED),
                test_actor_id,
            )
        assert approved_application.status == ApplicationStatus.APPROVED

    def test_enforcement_off_allows_any_move(
        self, session, deterministic_clock, submit_application, animal, test_actor_id,
    ):
        application = submit_application(animal)
        relaxed = AdoptionWorkflowService(
            session,
            clock=deterministic_clock,
            policy=WorkflowPolicy(enforce_transitions=False),
        )
        relaxed.update_application(
            application.id,
            UpdateApplicationRequest(status=ApplicationStatus.REJECTED),
            test_actor_id,
        )

        updated = relaxed.update_application(
            application.id,
            UpdateApplicationRequest(status=ApplicationStatus.APPROVED),
            test_actor_id,
        )
        assert updated.status == ApplicationStatus.APPROVED

    def test_not_found(self, workflow, test_actor_id):
        with pytest.raises(ApplicationNotFoundError):
            workflow.update_application(
                uuid4(), UpdateApplicationRequest(review_notes="x"), test_actor_id,
            )

    def test_audited_with_changes(
        self, workflow, submit_application, animal, test_actor_id,
        auditor_service, deterministic_clock,
    ):
        application = submit_application(animal)
        deterministic_clock.advance(60)
        workflow.update_application(
            application.id,
            UpdateApplicationRequest(status=ApplicationStatus.UNDER_REVIEW, review_notes="ok"),
            test_actor_id,
        )

        trace = auditor_service.get_trace(APPLICATION_ENTITY, application.id)
        assert trace.actions == (AuditAction.CREATE, AuditAction.UPDATE)
        assert trace.entries[1].changes["status"] == "under_review"
        assert trace.entries[1].changes["review_notes"] == "ok"


class TestDeleteApplication:
    def test_delete(self, workflow, submit_application, animal, test_actor_id, auditor_service):
        application = submit_application(animal)

        workflow.delete_application(application.id, test_actor_id)

        with pytest.raises(ApplicationNotFoundError):
            workflow.get_application(application.id)
        trace = auditor_service.get_trace(APPLICATION_ENTITY, application.id)
        assert AuditAction.DELETE in trace.actions

    def test_delete_missing(self, workflow, test_actor_id):
        with pytest.raises(ApplicationNotFoundError):
            workflow.delete_application(uuid4(), test_actor_id)

    def test_delete_leaves_animal_untouched(
        self, workflow, submit_application, animal, test_actor_id,
    ):
        application = submit_application(animal)
        workflow.delete_application(application.id, test_actor_id)
        assert animal.status == AnimalStatus.AVAILABLE


class TestApplicationQueries:
    def test_get_by_string_id(self, workflow, submit_application, animal):
        application = submit_application(animal)
        assert workflow.get_application(str(application.id)) is application

    def test_get_invalid_id(self, workflow):
        with pytest.raises(InvalidIdentifierError):
            workflow.get_application("bad-id")

    def test_by_animal_newest_first(
        self, workflow, submit_application, create_animal, deterministic_clock,
    ):
        rex = create_animal(name="Rex")
        other = create_animal(name="Milo")
        first = submit_application(rex)
        deterministic_clock.advance(days=1)
        second = submit_application(rex, email="b@example.com")
        submit_application(other)

        result = workflow.get_applications_by_animal_id(str(rex.id))
        assert [a.id for a in result] == [second.id, first.id]

    def test_pending(
        self, workflow, submit_application, create_animal, test_actor_id, deterministic_clock,
    ):
        a = submit_application(create_animal(name="A"))
        deterministic_clock.advance(days=1)
        b = submit_application(create_animal(name="B"))
        workflow.update_application(
            b.id, UpdateApplicationRequest(status=ApplicationStatus.UNDER_REVIEW), test_actor_id,
        )
        deterministic_clock.advance(days=1)
        c = submit_application(create_animal(name="C"))
        workflow.update_application(
            c.id, UpdateApplicationRequest(status=ApplicationStatus.REJECTED), test_actor_id,
        )

        pending = workflow.get_pending_applications()
        assert [p.id for p in pending] == [b.id, a.id]

    def test_list_filters(self, workflow, submit_application, create_animal, deterministic_clock):
        rex = create_animal(name="Rex")
        submit_application(rex, first_name="Alice", last_name="Smith", email="alice@example.com")
        deterministic_clock.advance(days=1)
        submit_application(rex, first_name="Bob", last_name="Jones", email="bob@example.org")

        items, total = workflow.list_applications(
            ListApplicationsRequest(applicant_email="EXAMPLE.ORG"),
        )
        assert total == 1
        assert items[0].applicant_first_name == "Bob"

        items, total = workflow.list_applications(ListApplicationsRequest(applicant_name="smi"))
        assert total == 1
        assert items[0].applicant_last_name == "Smith"

        items, total = workflow.list_applications(
            ListApplicationsRequest(animal_id=str(rex.id), status="submitted"),
        )
        assert total == 2
