"""Shared fixtures: in-memory database, API client and small reference tables."""

import os

# Settings are read at import time; keep the app off the on-disk default database
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SEED_REFERENCE_DATA", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from backend.complianceiq.db import Base, get_db
from backend.complianceiq.health import HealthSampleBuffer
from backend.complianceiq.main import app
from backend.complianceiq.routers.auth import User, get_current_user
from backend.complianceiq.seed import seed_reference_data


TEST_SECTIONS = [
    {
        "id": "governance",
        "title": "AI Governance",
        "weight": 10,
        "is_critical_blocker": True,
        "questions": [
            ("gov-1", "Is there an AI governance board?", 5),
            ("gov-2", "Are AI policies reviewed annually?", 5),
        ],
    },
    {
        "id": "operations",
        "title": "AI Operations",
        "weight": 10,
        "is_critical_blocker": False,
        "questions": [
            ("ops-1", "Are models versioned?", 4),
            ("ops-2", "Can deployments be rolled back?", 6),
        ],
    },
]


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


def _override_db(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()
    return override_get_db


@pytest.fixture
def anonymous_client(session_factory):
    """Client with the real auth dependency in place."""
    app.dependency_overrides[get_db] = _override_db(session_factory)
    app.state.health_buffer = HealthSampleBuffer(24)
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def client(anonymous_client):
    """Client authenticated as a fixed user."""
    app.dependency_overrides[get_current_user] = lambda: User(username="tester")
    return anonymous_client


@pytest.fixture
def seeded_client(client, db):
    seed_reference_data(db, TEST_SECTIONS)
    return client


@pytest.fixture
def organization_id(seeded_client):
    resp = seeded_client.post("/organizations", json={"name": "Acme Pharma"})
    assert resp.status_code == 201
    return resp.json()["id"]


@pytest.fixture
def assessment_id(seeded_client, organization_id):
    resp = seeded_client.post("/assessments", json={"organization_id": organization_id, "name": "Q3 readiness"})
    assert resp.status_code == 201
    return resp.json()["id"]
