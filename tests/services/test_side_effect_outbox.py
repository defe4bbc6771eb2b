"""
Tests for the side-effect outbox.

Covers:
- Entries produced by failed secondary writes
- Replay applies once the blocking condition clears
- Replay of an already-applied change is a no-op success
- Attempts counted, entries abandoned after max_attempts
- Manual abandon and single-entry retry
"""

from uuid import uuid4

import pytest

from shelter_kernel.domain.lifecycle import AnimalStatus, ApplicationStatus
from shelter_kernel.exceptions import SideEffectNotFoundError
from shelter_kernel.models.side_effect import SideEffectStatus, SideEffectType
from shelter_kernel.services.side_effect_outbox import RetryReport, SideEffectOutbox
from tests.factories import make_adoption_request


@pytest.fixture
def blocked_adoption(workflow, approved_application, animal, test_actor_id, session):
    """Adoption whose animal -> adopted write was queued."""
    animal.status = AnimalStatus.UNDER_TREATMENT
    session.flush()
    return workflow.create_adoption(
        make_adoption_request(approved_application.id), test_actor_id,
    )


class TestEnqueue:
    def test_enqueue_records_intent(self, outbox, deterministic_clock, captured_logs):
        entity_id = uuid4()
        source_id = uuid4()

        entry = outbox.enqueue(
            effect_type=SideEffectType.ANIMAL_STATUS,
            entity_type="animal",
            entity_id=entity_id,
            target_status="adopted",
            expected_statuses=("available", "pending"),
            source_entity_id=source_id,
            error=ValueError("boom"),
        )

        assert entry.status == SideEffectStatus.PENDING
        assert entry.attempts == 0
        assert entry.expected == ("available", "pending")
        assert entry.last_error == "ValueError: boom"
        assert entry.created_at == deterministic_clock.now()
        assert outbox.pending() == [entry]
        assert any(r["message"] == "side_effect_enqueued" for r in captured_logs())

    def test_pending_oldest_first(self, outbox, deterministic_clock):
        first = outbox.enqueue(SideEffectType.ANIMAL_STATUS, "animal", uuid4(), "adopted")
        deterministic_clock.advance(5)
        second = outbox.enqueue(SideEffectType.ANIMAL_STATUS, "animal", uuid4(), "adopted")

        assert outbox.pending() == [first, second]
        assert outbox.pending(limit=1) == [first]

    def test_get_missing(self, outbox):
        with pytest.raises(SideEffectNotFoundError):
            outbox.get(uuid4())


class TestRetry:
    def test_still_blocked_counts_attempt(
        self, outbox, blocked_adoption, test_actor_id, deterministic_clock,
    ):
        deterministic_clock.advance(60)

        report = outbox.retry_pending(test_actor_id)

        assert report == RetryReport(attempted=1, applied=0, failed=1, abandoned=0)
        entry = outbox.pending()[0]
        assert entry.attempts == 1
        assert entry.updated_at == deterministic_clock.now()
        assert entry.last_error.startswith("ANIMAL_STATUS_CONFLICT")

    def test_applies_once_unblocked(
        self, outbox, blocked_adoption, animal, test_actor_id, session, captured_logs,
    ):
        animal.status = AnimalStatus.AVAILABLE
        session.flush()

        report = outbox.retry_pending(test_actor_id)

        assert report.applied == 1
        assert outbox.pending() == []
        session.refresh(animal)
        assert animal.status == AnimalStatus.ADOPTED
        assert any(r["message"] == "side_effect_applied" for r in captured_logs())

    def test_abandoned_after_max_attempts(self, outbox, blocked_adoption, test_actor_id):
        for _ in range(2):
            outbox.retry_pending(test_actor_id)

        report = outbox.retry_pending(test_actor_id)

        assert report.abandoned == 1
        assert outbox.pending() == []

    def test_one_failure_does_not_undo_another(
        self, outbox, blocked_adoption, animal, test_actor_id, session,
    ):
        # Second entry targets an animal that does not exist.
        outbox.enqueue(SideEffectType.ANIMAL_STATUS, "animal", uuid4(), "available")
        animal.status = AnimalStatus.AVAILABLE
        session.flush()

        report = outbox.retry_pending(test_actor_id)

        assert report.attempted == 2
        assert report.applied == 1
        assert report.failed == 1
        session.refresh(animal)
        assert animal.status == AnimalStatus.ADOPTED

    def test_return_replayed_from_any_status(
        self, outbox, create_animal, test_actor_id, session,
    ):
        animal = create_animal(status=AnimalStatus.UNDER_TREATMENT)
        entry = outbox.enqueue(
            SideEffectType.ANIMAL_STATUS, "animal", animal.id, AnimalStatus.AVAILABLE.value,
        )

        report = outbox.retry_pending(test_actor_id)

        assert report.applied == 1
        assert entry.status == SideEffectStatus.APPLIED
        session.refresh(animal)
        assert animal.status == AnimalStatus.AVAILABLE

    def test_application_completion_replayed(
        self, outbox, approved_application, test_actor_id, session,
    ):
        entry = outbox.enqueue(
            SideEffectType.APPLICATION_STATUS,
            "adoption_application",
            approved_application.id,
            ApplicationStatus.COMPLETED.value,
            expected_statuses=(ApplicationStatus.APPROVED.value,),
        )

        outbox.retry(entry.id, test_actor_id)

        assert entry.status == SideEffectStatus.APPLIED
        assert approved_application.status == ApplicationStatus.COMPLETED
        assert approved_application.updated_by_id == test_actor_id

    def test_already_applied_counts_as_success(
        self, outbox, approved_application, test_actor_id,
    ):
        entry = outbox.enqueue(
            SideEffectType.APPLICATION_STATUS,
            "adoption_application",
            approved_application.id,
            ApplicationStatus.APPROVED.value,
        )

        outbox.retry(entry.id, test_actor_id)

        assert entry.status == SideEffectStatus.APPLIED

    def test_illegal_application_replay_fails(
        self, outbox, submit_application, animal, test_actor_id,
    ):
        application = submit_application(animal)
        entry = outbox.enqueue(
            SideEffectType.APPLICATION_STATUS,
            "adoption_application",
            application.id,
            ApplicationStatus.COMPLETED.value,
        )

        outbox.retry(entry.id, test_actor_id)

        assert entry.status == SideEffectStatus.PENDING
        assert entry.last_error.startswith("INVALID_APPLICATION_TRANSITION")
        assert application.status == ApplicationStatus.SUBMITTED

    def test_retry_non_pending_unchanged(self, outbox, test_actor_id):
        entry = outbox.enqueue(SideEffectType.ANIMAL_STATUS, "animal", uuid4(), "adopted")
        outbox.abandon(entry.id, reason="animal transferred")

        outbox.retry(entry.id, test_actor_id)

        assert entry.status == SideEffectStatus.ABANDONED
        assert entry.attempts == 0
        assert entry.last_error == "animal transferred"


class TestMaxAttemptsConfig:
    def test_single_attempt(self, session, deterministic_clock, test_actor_id):
        outbox = SideEffectOutbox(session, deterministic_clock, max_attempts=1)
        outbox.enqueue(SideEffectType.ANIMAL_STATUS, "animal", uuid4(), "adopted")

        report = outbox.retry_pending(test_actor_id)

        assert report.abandoned == 1
