"""
Shared test fixtures.

Provides an in-memory SQLite database with every table created and foreign
keys enforced, a session bound to it, two tenants with an admin actor each,
and a TestClient whose ``get_db`` dependency points at the same database.
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.auth import Actor, create_access_token
from app.db.session import get_db
from app.models.base import Base
from app.models.models import Org, User, OrgMember, Project, RoleName
from main import app


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_conn, _record):
        dbapi_conn.execute("PRAGMA foreign_keys=ON")

    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


def _make_tenant(db, org_name: str, email: str, full_name: str) -> Actor:
    org = Org(name=org_name)
    user = User(email=email, full_name=full_name)
    db.add_all([org, user])
    db.flush()
    db.add(OrgMember(org_id=org.id, user_id=user.id, role=RoleName.ORG_ADMIN))
    db.commit()
    return Actor(org_id=org.id, user_id=user.id, name=full_name)


@pytest.fixture
def actor(db):
    """Admin of tenant T1."""
    return _make_tenant(db, "Tenant One", "admin@t1.example", "Pat Admin")


@pytest.fixture
def other_actor(db):
    """Admin of a second, unrelated tenant."""
    return _make_tenant(db, "Tenant Two", "admin@t2.example", "Sam Other")


@pytest.fixture
def make_project(db):
    def _make(org_id: str, name: str) -> Project:
        project = Project(org_id=org_id, name=name)
        db.add(project)
        db.commit()
        db.refresh(project)
        return project

    return _make


@pytest.fixture
def client(session_factory):
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(actor):
    token = create_access_token({"sub": actor.user_id})
    return {"Authorization": f"Bearer {token}"}
