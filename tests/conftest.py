# tests/conftest.py
"""
Pytest configuration and fixtures.

Tests run against an in-memory SQLite database created from the ORM
definitions, one fresh database per test. Row-level security only exists
on PostgreSQL; the service applies the same rules itself.
"""

import os

# Point the application engine away from PostgreSQL before it is imported.
os.environ["DATABASE_URL"] = "sqlite://"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from policy_approval.db.engine import Base, get_session, init_db
from policy_approval.main import app
from policy_approval.services.policies import PolicyService
from policy_approval.services.profiles import ProfileService


class FixedRandom:
    """Stands in for random.Random; random() always returns the same value."""

    def __init__(self, value: float):
        self.value = value

    def random(self) -> float:
        return self.value


# Below the 0.2 anomaly rate: the random flag fires
FLAGGED = FixedRandom(0.1)
# Above it: only the deterministic checks count
CLEAN = FixedRandom(0.9)


@pytest.fixture
def flagged_rng():
    return FLAGGED


@pytest.fixture
def clean_rng():
    return CLEAN


@pytest.fixture
def engine():
    """Fresh in-memory database with the schema applied."""
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(eng, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    init_db(eng)
    yield eng
    Base.metadata.drop_all(bind=eng)
    eng.dispose()


@pytest.fixture
def session(engine) -> Session:
    SessionFactory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    session = SessionFactory()

    yield session

    session.rollback()
    session.close()


@pytest.fixture
def profiles(session):
    """One profile per role, plus a second creator."""
    service = ProfileService(session)
    return {
        "creator": service.create_profile("carol@example.com", "Carol Creator", "creator"),
        "other_creator": service.create_profile("chris@example.com", "Chris Creator", "creator"),
        "underwriter": service.create_profile("uma@example.com", "Uma Underwriter", "underwriter"),
        "manager": service.create_profile("max@example.com", "Max Manager", "manager"),
    }


@pytest.fixture
def services(session, profiles):
    """PolicyService per role."""
    return {name: PolicyService(session, profile) for name, profile in profiles.items()}


@pytest.fixture
def draft_policy(services):
    """Draft created by the creator with a clean fraud check."""
    return services["creator"].create_policy(
        customer_name="Jane Doe",
        premium_amount=1200,
        product_type="Auto Insurance",
        rng=CLEAN,
    )


@pytest.fixture
def client(engine):
    """TestClient bound to the test database."""
    SessionFactory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

    def _override_session():
        session = SessionFactory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_session] = _override_session
    yield TestClient(app)
    app.dependency_overrides.clear()


# ============================================================
# AUTO-MARKER FOR DATABASE TESTS
# ============================================================
# Automatically apply @pytest.mark.requires_db to tests that use
# database fixtures, so "pytest -m 'not requires_db'" runs the pure
# workflow tests only.

DB_FIXTURES = {"engine", "session", "profiles", "services", "draft_policy", "client"}


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests that use database fixtures."""
    requires_db_marker = pytest.mark.requires_db

    for item in items:
        if hasattr(item, "fixturenames"):
            if any(fixture in DB_FIXTURES for fixture in item.fixturenames):
                if not any(mark.name == "requires_db" for mark in item.iter_markers()):
                    item.add_marker(requires_db_marker)
