"""
Pytest fixtures shared by the test suite.

Every test gets its own in-memory SQLite database and a fake extraction
agent in place of the Gemini client, so no test talks to the network.
"""

import json

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from api.gateway import app
from api.invoice_routes import get_extraction_agent
from database.db_session import Base, get_db
from database.models import User

SAMPLE_AI_RESPONSE = json.dumps(
    {
        "invoiceNumber": "R-2024-001",
        "vendor": "ACME GmbH",
        "amount": "199.99 EUR",
        "date": "2024-03-15",
        "description": "Office supplies",
    }
)


class FakeExtractor:
    """Stands in for GeminiAgent: returns a canned response or raises a canned error."""

    def __init__(self, response=SAMPLE_AI_RESPONSE, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def extract_invoice_data(self, base64_image, mime_type="image/jpeg"):
        self.calls.append((base64_image, mime_type))
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
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


@pytest.fixture
def extractor():
    return FakeExtractor()


@pytest.fixture
def make_user(db):
    def _make_user(username="alice"):
        user = User(username=username, email=f"{username}@example.com", hashed_password="not-a-real-hash")
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def client(session_factory, extractor):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_extraction_agent] = lambda: extractor
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def signup(client):
    """Register a user through the API and return its Authorization headers."""

    def _signup(username="alice", password="secret123"):
        r = client.post(
            "/api/auth/signup",
            json={"username": username, "email": f"{username}@example.com", "password": password},
        )
        assert r.status_code == 200, r.text
        return {"Authorization": f"Bearer {r.json()['access_token']}"}

    return _signup


@pytest.fixture
def fake_extractor():
    """The FakeExtractor class, for tests that need a custom response or error."""
    return FakeExtractor
