"""Tests for AuditorService: best-effort writes and trace reads."""

from uuid import uuid4

from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from shelter_kernel.domain.lifecycle import ApplicationStatus
from shelter_kernel.models.audit_log import AuditAction, AuditLog


class TestRecord:
    def test_record_flushes_row(self, auditor_service, test_actor_id, deterministic_clock):
        entity_id = uuid4()

        entry = auditor_service.record(
            "adoption",
            entity_id,
            AuditAction.CREATE,
            test_actor_id,
            {"status": ApplicationStatus.APPROVED, "animal_id": entity_id},
        )

        assert entry is not None
        assert entry.id is not None
        assert entry.occurred_at == deterministic_clock.now()
        assert entry.changes == {"status": "approved", "animal_id": str(entity_id)}

    def test_record_without_changes(self, auditor_service, test_actor_id):
        entry = auditor_service.record("adoption", uuid4(), AuditAction.DELETE, test_actor_id)
        assert entry.changes is None

    def test_failure_is_swallowed_and_logged(
        self, auditor_service, test_actor_id, session, monkeypatch, captured_logs,
    ):
        def _fail(*args, **kwargs):
            raise OperationalError("INSERT INTO audit_logs", {}, Exception("disk full"))

        monkeypatch.setattr(auditor_service, "_write", _fail)
        entity_id = uuid4()

        result = auditor_service.record("adoption", entity_id, AuditAction.UPDATE, test_actor_id)

        assert result is None
        assert session.execute(select(func.count(AuditLog.id))).scalar_one() == 0
        failures = [r for r in captured_logs() if r["message"] == "audit_write_failed"]
        assert len(failures) == 1
        assert failures[0]["entity_id"] == str(entity_id)
        assert failures[0]["action"] == "update"
        assert failures[0]["level"] == "WARNING"

    def test_session_usable_after_failure(
        self, auditor_service, test_actor_id, monkeypatch,
    ):
        original = auditor_service._write
        calls = []

        def _fail_once(*args, **kwargs):
            if not calls:
                calls.append(1)
                raise OperationalError("INSERT INTO audit_logs", {}, Exception("busy"))
            return original(*args, **kwargs)

        monkeypatch.setattr(auditor_service, "_write", _fail_once)

        assert auditor_service.record("adoption", uuid4(), AuditAction.UPDATE, test_actor_id) is None
        assert auditor_service.record("adoption", uuid4(), AuditAction.UPDATE, test_actor_id) is not None


class TestTrace:
    def test_trace_in_time_order(self, auditor_service, test_actor_id, deterministic_clock):
        entity_id = uuid4()
        auditor_service.record("adoption", entity_id, AuditAction.CREATE, test_actor_id)
        deterministic_clock.advance(10)
        auditor_service.record("adoption", entity_id, AuditAction.UPDATE, test_actor_id)
        auditor_service.record("adoption", uuid4(), AuditAction.CREATE, test_actor_id)

        trace = auditor_service.get_trace("adoption", entity_id)

        assert trace.actions == (AuditAction.CREATE, AuditAction.UPDATE)
        assert not trace.is_empty

    def test_empty_trace(self, auditor_service):
        assert auditor_service.get_trace("adoption", uuid4()).is_empty

    def test_recent_newest_first(self, auditor_service, test_actor_id, deterministic_clock):
        first = auditor_service.record("animal", uuid4(), AuditAction.UPDATE, test_actor_id)
        deterministic_clock.advance(10)
        second = auditor_service.record("animal", uuid4(), AuditAction.UPDATE, test_actor_id)

        assert auditor_service.get_recent(limit=1) == [second]
        assert auditor_service.get_recent() == [second, first]
