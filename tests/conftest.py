"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import os

# ---------------------------------------------------------------------------
# Ensure a valid SESSION_SECRET is always set for test runs.
# This must happen before any import of findmyanime.api.deps which validates
# the secret at module-load time.
# ---------------------------------------------------------------------------
_TEST_SESSION_SECRET = "test-secret-for-pytest-only-" + "x" * 40  # > 32 chars
os.environ.setdefault("SESSION_SECRET", _TEST_SESSION_SECRET)

import pytest  # noqa: E402
from sqlalchemy import Engine, create_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from findmyanime.database.models import Base  # noqa: E402


@pytest.fixture
def db_engine() -> Engine:
    """Create an in-memory SQLite engine with all FindMyAnime tables.

    Uses StaticPool so all threads share the same in-memory database
    (FastAPI runs sync endpoints on a threadpool).
    """
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture
def client(db_engine):
    """FastAPI TestClient bound to the in-memory engine.

    The lifespan is not entered, so the auth limiter is reset here and
    catalog tests install their own client on ``app.state``.
    """
    import findmyanime.api.rate_limit as rl_mod
    from fastapi.testclient import TestClient

    from findmyanime.api.deps import get_engine
    from findmyanime.api.main import app

    rl_mod._limiter = None
    app.dependency_overrides[get_engine] = lambda: db_engine

    yield TestClient(app, raise_server_exceptions=False)

    app.dependency_overrides.clear()
    rl_mod._limiter = None
    if hasattr(app.state, "catalog"):
        del app.state.catalog


def signup(client, username: str = "tester", password: str = "hunter2-long-pass"):
    """Create an account through the API; the client keeps the session cookie."""
    resp = client.post("/api/signup", json={"username": username, "password": password})
    assert resp.status_code == 200, resp.text
    return resp


@pytest.fixture
def logged_in(client):
    """A client with a live session for user ``tester``."""
    signup(client)
    return client
