"""Tests for worker login code generation."""

import re

import pytest

from app.models.models import Worker, WorkerRole
from app.services import code_service
from app.services.errors import ExhaustedRetriesError

CODE_RE = re.compile(r"^[A-Z0-9]{6}$")


def _seed_worker(db, org_id, code):
    db.add(Worker(
        org_id=org_id, first_name="Taken", last_name="Code",
        email=f"{code.lower()}@example.com", code=code, role=WorkerRole.WORKER,
    ))
    db.commit()


class TestGenerateUniqueCode:
    def test_code_shape(self, db):
        for _ in range(20):
            assert CODE_RE.match(code_service.generate_unique_code(db))

    def test_draw_uses_alphabet_only(self):
        code = code_service._draw_code()
        assert len(code) == code_service.CODE_LENGTH
        assert set(code) <= set(code_service.CODE_ALPHABET)

    def test_retries_past_taken_code(self, db, actor, monkeypatch):
        _seed_worker(db, actor.org_id, "AAAAAA")
        draws = iter(["AAAAAA", "AAAAAA", "BBBBBB"])
        monkeypatch.setattr(code_service, "_draw_code", lambda: next(draws))
        assert code_service.generate_unique_code(db) == "BBBBBB"

    def test_exhausted_namespace_raises(self, db, actor, monkeypatch):
        _seed_worker(db, actor.org_id, "ZZZZZZ")
        calls = []

        def _always_taken():
            calls.append(1)
            return "ZZZZZZ"

        monkeypatch.setattr(code_service, "_draw_code", _always_taken)
        with pytest.raises(ExhaustedRetriesError):
            code_service.generate_unique_code(db)
        assert len(calls) == code_service.MAX_CODE_ATTEMPTS == 10

    def test_codes_are_global_not_per_tenant(self, db, actor, other_actor, monkeypatch):
        _seed_worker(db, other_actor.org_id, "CCCCCC")
        draws = iter(["CCCCCC", "DDDDDD"])
        monkeypatch.setattr(code_service, "_draw_code", lambda: next(draws))
        assert code_service.generate_unique_code(db) == "DDDDDD"
