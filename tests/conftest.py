"""Shared test fixtures for the design request desk test suite.

Provides:
- app: Flask app configured for testing (in-memory SQLite, no Trello/Supabase)
- client: Flask test client
- db_session: clean database per test (tables created/dropped)
- valid_fields: a complete, valid submission payload
- make_request: factory inserting DesignRequest rows directly
- trello_config / supabase_config: switch the external services "on"
- fake_response: builds a requests.Response stand-in
"""

from datetime import date
from unittest.mock import MagicMock

import pytest
import requests

from design_desk import create_app
from design_desk.extensions import db as _db
from design_desk.models.design_request import DesignRequest


@pytest.fixture(scope="session")
def app():
    """Create the Flask application configured for testing."""
    app = create_app("testing")
    yield app


@pytest.fixture(autouse=True)
def db_session(app):
    """Create all tables before each test, drop after."""
    with app.app_context():
        _db.create_all()
        yield _db.session
        _db.session.rollback()
        _db.drop_all()


@pytest.fixture
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture
def valid_fields():
    return {
        "requester_name": "Ana Souza",
        "requester_email": "ana@example.com",
        "department": "Marketing",
        "request_type": "social_media",
        "title": "Spring campaign posts",
        "description": "Three Instagram posts for the spring launch.",
        "objective": "Drive sign-ups",
        "target_audience": "Existing customers",
        "deadline": "2025-03-01",
        "priority": "medium",
    }


@pytest.fixture
def make_request(db_session):
    """Insert a DesignRequest directly in the DB and return it."""

    def _make(**kwargs):
        defaults = {
            "requester_name": "Ana Souza",
            "requester_email": "ana@example.com",
            "department": "Marketing",
            "request_type": "social_media",
            "title": "Test request",
            "description": "Test description",
            "objective": "Test objective",
            "target_audience": "Everyone",
            "deadline": date(2025, 1, 10),
            "priority": "medium",
            "reference_images": [],
            "status": "pending",
        }
        defaults.update(kwargs)
        design_request = DesignRequest(**defaults)
        db_session.add(design_request)
        db_session.commit()
        return design_request

    return _make


@pytest.fixture
def trello_config(app):
    """Configure Trello credentials for the duration of one test."""
    keys = {
        "TRELLO_API_KEY": "trello-key",
        "TRELLO_TOKEN": "trello-token",
        "TRELLO_LIST_ID": "list-123",
    }
    app.config.update(keys)
    yield keys
    app.config.update({k: None for k in keys})


@pytest.fixture
def supabase_config(app):
    """Configure Supabase Storage for the duration of one test."""
    keys = {
        "SUPABASE_URL": "https://proj.supabase.test",
        "SUPABASE_SERVICE_KEY": "service-key",
    }
    app.config.update(keys)
    yield keys
    app.config.update({k: None for k in keys})


@pytest.fixture
def fake_response():
    """Build a MagicMock shaped like a requests.Response."""

    def _make(status=200, payload=None, text=""):
        resp = MagicMock()
        resp.status_code = status
        resp.ok = 200 <= status < 300
        resp.json.return_value = payload if payload is not None else {}
        resp.text = text
        if not resp.ok:
            resp.raise_for_status.side_effect = requests.HTTPError(f"HTTP {status}")
        return resp

    return _make
