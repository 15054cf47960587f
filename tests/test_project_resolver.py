"""Tests for project id-or-name resolution."""

import uuid

from app.services.project_resolver import resolve_project_id, resolve_project_ids


class TestResolveProjectId:
    def test_empty_tokens(self, db, actor):
        assert resolve_project_id(db, actor.org_id, None) is None
        assert resolve_project_id(db, actor.org_id, "") is None
        assert resolve_project_id(db, actor.org_id, "   ") is None

    def test_id_passes_through_without_lookup(self, db, actor):
        token = str(uuid.uuid4())
        assert resolve_project_id(db, actor.org_id, token) == token

    def test_uppercase_id_is_lowered(self, db, actor):
        token = str(uuid.uuid4())
        assert resolve_project_id(db, actor.org_id, token.upper()) == token

    def test_name_resolves_to_id(self, db, actor, make_project):
        project = make_project(actor.org_id, "ProjectX")
        assert resolve_project_id(db, actor.org_id, "ProjectX") == project.id

    def test_name_match_is_exact(self, db, actor, make_project):
        make_project(actor.org_id, "ProjectX")
        assert resolve_project_id(db, actor.org_id, "projectx") is None

    def test_unknown_name(self, db, actor):
        assert resolve_project_id(db, actor.org_id, "Nowhere Tower") is None

    def test_name_scoped_to_tenant(self, db, actor, other_actor, make_project):
        make_project(other_actor.org_id, "Shared Name")
        assert resolve_project_id(db, actor.org_id, "Shared Name") is None


class TestResolveProjectIds:
    def test_drops_unresolved_and_duplicates(self, db, actor, make_project):
        a = make_project(actor.org_id, "Alpha Site")
        b = make_project(actor.org_id, "Bravo Site")
        resolved = resolve_project_ids(
            db, actor.org_id, ["Bravo Site", "Missing", a.id, "Alpha Site", ""]
        )
        assert resolved == [b.id, a.id]

    def test_none_is_empty(self, db, actor):
        assert resolve_project_ids(db, actor.org_id, None) == []

    def test_same_id_in_two_cases_is_one_project(self, db, actor, make_project):
        project = make_project(actor.org_id, "Tower A")
        resolved = resolve_project_ids(db, actor.org_id, [project.id.upper(), project.id])
        assert resolved == [project.id]
