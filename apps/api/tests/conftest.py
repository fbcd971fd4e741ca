"""Pytest configuration and fixtures."""

import os

# Must be set before ctad_api.settings is first imported.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import ctad_api.models  # noqa: F401
from ctad_api.db.base import Base
from ctad_api.db.session import get_db
from ctad_api.ledger.service import DeclarationLedger
from ctad_api.main import app
from ctad_api.models import Work

# Use test database URL from environment or default to SQLite in-memory
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")


@pytest.fixture(scope="function")
def session_factory():
    """
    Session factory bound to a fresh schema.

    Set TEST_DATABASE_URL to run against PostgreSQL instead of SQLite.
    """
    if TEST_DATABASE_URL.startswith("sqlite"):
        engine = create_engine(
            TEST_DATABASE_URL,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_engine(TEST_DATABASE_URL)

    Base.metadata.create_all(engine)
    try:
        yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    finally:
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture(scope="function")
def db(session_factory):
    """Create a test database session."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db: Session):
    """TestClient whose requests share the test session."""

    def _get_test_db():
        yield db

    app.dependency_overrides[get_db] = _get_test_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def ledger(db: Session) -> DeclarationLedger:
    return DeclarationLedger(db)


@pytest.fixture
def test_work(ledger: DeclarationLedger) -> Work:
    """A work with no revisions and no audio."""
    return ledger.create_work(
        title="Harbour Lights",
        intent="A slow piano piece about leaving home.",
        tools="Upright piano, Logic Pro",
        ai_used=False,
        contributors="Mixing: J. Okafor",
    )


@pytest.fixture
def process_payload() -> dict:
    """A valid process capture payload (5 prompt versions, 2 rejections, full selection)."""
    lineage = []
    parent = None
    for i in range(5):
        lineage.append(
            {
                "id": f"pv-{i}",
                "content": f"neon city at dusk, take {i}",
                "timestamp": f"2026-03-01T10:0{i}:00.000Z",
                "parentId": parent,
                "mode": "manual" if i == 0 else "enhance",
                "platform": "stable-diffusion",
            }
        )
        parent = f"pv-{i}"

    return {
        "platform": "stable-diffusion",
        "sessionStartedAt": "2026-03-01T10:00:00.000Z",
        "sessionDuration": 600,
        "iterationCount": 5,
        "promptLineage": lineage,
        "rejectedOutputs": [
            {"id": "rej-1", "promptVersionId": "pv-1", "timestamp": "2026-03-01T10:02:00.000Z", "reason": "wrong-style"},
            {"id": "rej-2", "promptVersionId": "pv-2", "timestamp": "2026-03-01T10:03:00.000Z"},
        ],
        "selectedOutput": {
            "id": "sel-1",
            "promptVersionId": "pv-4",
            "timestamp": "2026-03-01T10:09:00.000Z",
            "likeReason": "matches-intent",
            "customFeedback": "The reflections finally read as wet asphalt.",
        },
        "consentForTrainingData": True,
        "consentTimestamp": "2026-03-01T09:59:00.000Z",
        "consentVersion": "1.0",
        "contributorId": "anon-42",
    }
