"""Tests for bulk subcontractor import."""

import pytest
from sqlalchemy.exc import OperationalError

from app.core.config import MAX_BULK_RECORDS
from app.models.models import Subcontractor, SubcontractorProject, Worker, ProjectAssignment
from app.services import subcontractor_service
from app.services.errors import ValidationFailedError
from app.services.import_service import bulk_create_subcontractors
from app.services.subcontractor_service import create_subcontractor


def _records(count, prefix="Sub"):
    return [{"name": f"{prefix} {i:02d}"} for i in range(1, count + 1)]


class TestBatchValidation:
    def test_empty_batch_rejected(self, db, actor):
        with pytest.raises(ValidationFailedError):
            bulk_create_subcontractors(db, actor, [])

    def test_oversized_batch_rejected(self, db, actor):
        with pytest.raises(ValidationFailedError):
            bulk_create_subcontractors(db, actor, _records(MAX_BULK_RECORDS + 1))
        assert db.query(Subcontractor).count() == 0

    def test_blank_name_aborts_whole_batch(self, db, actor):
        records = _records(3) + [{"name": "  "}]
        with pytest.raises(ValidationFailedError) as exc:
            bulk_create_subcontractors(db, actor, records)
        assert exc.value.message.startswith("Row 4")
        assert db.query(Subcontractor).count() == 0


class TestBulkCreate:
    def test_creates_all(self, db, actor):
        result = bulk_create_subcontractors(db, actor, _records(5))
        assert len(result.created) == 5
        assert result.skipped_count == 0
        assert result.errors == []
        assert db.query(Subcontractor).filter(Subcontractor.org_id == actor.org_id).count() == 5

    def test_second_run_skips_everything(self, db, actor):
        bulk_create_subcontractors(db, actor, _records(4))
        result = bulk_create_subcontractors(db, actor, _records(4))
        assert result.created == []
        assert result.skipped_count == 4
        assert result.errors == []
        assert db.query(Subcontractor).count() == 4

    def test_existing_name_skipped_case_insensitively(self, db, actor):
        create_subcontractor(db, actor, {"name": "Alpha Corp"})
        result = bulk_create_subcontractors(db, actor, [{"name": "ALPHA CORP"}, {"name": "Beta LLC"}])
        assert [s.name for s in result.created] == ["Beta LLC"]
        assert result.skipped_count == 1

    def test_duplicate_within_batch_skipped(self, db, actor):
        result = bulk_create_subcontractors(
            db, actor, [{"name": "Alpha Corp"}, {"name": " alpha corp "}, {"name": "Beta LLC"}]
        )
        assert len(result.created) == 2
        assert result.skipped_count == 1

    def test_other_tenant_names_do_not_skip(self, db, actor, other_actor):
        create_subcontractor(db, other_actor, {"name": "Alpha Corp"})
        result = bulk_create_subcontractors(db, actor, [{"name": "Alpha Corp"}])
        assert len(result.created) == 1

    def test_failing_record_does_not_stop_batch(self, db, actor, monkeypatch):
        original = subcontractor_service.insert_subcontractor

        def _flaky(db_, actor_, values, action="create"):
            if values["name"] == "Sub 05":
                raise OperationalError("INSERT", {}, Exception("disk I/O error"))
            return original(db_, actor_, values, action=action)

        monkeypatch.setattr(subcontractor_service, "insert_subcontractor", _flaky)
        result = bulk_create_subcontractors(db, actor, _records(10))

        assert len(result.created) == 9
        assert len(result.errors) == 1
        assert result.errors[0].startswith("Row 5 (Sub 05)")
        names = {name for (name,) in db.query(Subcontractor.name).all()}
        assert "Sub 05" not in names
        assert len(names) == 9

    def test_every_record_failing(self, db, actor, monkeypatch):
        def _broken(*args, **kwargs):
            raise OperationalError("INSERT", {}, Exception("database is locked"))

        monkeypatch.setattr(subcontractor_service, "insert_subcontractor", _broken)
        result = bulk_create_subcontractors(db, actor, _records(3))
        assert result.created == []
        assert len(result.errors) == 3

    def test_links_and_foremen_after_rows(self, db, actor, make_project):
        tower = make_project(actor.org_id, "Tower A")
        result = bulk_create_subcontractors(db, actor, [
            {"name": "Alpha Corp", "foreman": "Jane Doe", "project_ids": ["Tower A"]},
            {"name": "Beta LLC", "project_ids": [tower.id, "Unknown Site"]},
            {"name": "Gamma Inc", "foreman": "Lee", "foreman_email": "lee@gamma.example"},
        ])
        assert len(result.created) == 3
        assert db.query(SubcontractorProject).count() == 2

        workers = {w.email: w for w in db.query(Worker).all()}
        assert set(workers) == {"jane.doe@alphacorp.foreman", "lee@gamma.example"}
        assert workers["lee@gamma.example"].last_name == "User"

        assignment = db.query(ProjectAssignment).one()
        assert assignment.project_id == tower.id
        assert assignment.worker_id == workers["jane.doe@alphacorp.foreman"].id
