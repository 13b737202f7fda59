import os
import sys
from urllib.parse import parse_qs, urlparse

# --- ensure project root is importable ---
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

import pytest
from fastapi.testclient import TestClient
from sqlmodel import create_engine, Session, select

from fittrack import config
from fittrack.main import app
from fittrack.db import create_tables, get_session as prod_get_session
from fittrack.models import Exercise
from fittrack.schemas import GoogleProfile
from fittrack.seed import seed_library
from fittrack.services.adapters import google


@pytest.fixture
def engine(tmp_path):
    # file-backed so that threads in concurrency tests see one database
    engine = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    create_tables(engine)
    with Session(engine) as s:
        seed_library(s)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    with Session(engine) as s:
        yield s


@pytest.fixture
def google_configured(monkeypatch):
    monkeypatch.setattr(config, "GOOGLE_CLIENT_ID", "test-client-id")
    monkeypatch.setattr(config, "GOOGLE_CLIENT_SECRET", "test-client-secret")
    monkeypatch.setattr(config, "GOOGLE_CALLBACK_URL", "http://testserver/api/auth/google/callback")


@pytest.fixture
def make_client(engine):
    # Override the app's DB session dependency to use the test engine.
    # No lifespan: tables and library come from the engine fixture.
    def _get_session_override():
        with Session(engine) as s:
            yield s

    app.dependency_overrides[prod_get_session] = _get_session_override
    try:
        yield lambda: TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def client(make_client):
    return make_client()


@pytest.fixture
def login(monkeypatch, google_configured):
    """Sign a client in through the real OAuth callback and install a CSRF header."""

    def _login(client, sub="google-alice", email="alice@example.com", name="Alice"):
        profile = GoogleProfile(sub=sub, email=email, name=name)

        async def fake_fetch(code, transport=None):
            assert code == "test-code"
            return profile

        monkeypatch.setattr(google, "fetch_google_profile", fake_fetch)

        r = client.get("/api/auth/google", follow_redirects=False)
        assert r.status_code == 302
        state = parse_qs(urlparse(r.headers["location"]).query)["state"][0]

        r = client.get(
            "/api/auth/google/callback",
            params={"code": "test-code", "state": state},
            follow_redirects=False,
        )
        assert r.status_code == 302
        assert r.headers["location"] == config.CORS_ORIGIN

        token = client.get("/api/auth/csrf").json()["csrf_token"]
        client.headers["X-CSRF-Token"] = token
        return client.get("/api/auth/me").json()

    return _login


@pytest.fixture
def alice(client, login):
    login(client)
    return client


@pytest.fixture
def bob(make_client, login):
    c = make_client()
    login(c, sub="google-bob", email="bob@example.com", name="Bob")
    return c


def library_id(db, name):
    ex = db.exec(
        select(Exercise).where(Exercise.name == name).where(Exercise.is_custom == False)  # noqa: E712
    ).one()
    return ex.id


@pytest.fixture
def bench_id(db):
    return library_id(db, "Barbell Bench Press")


@pytest.fixture
def running_id(db):
    return library_id(db, "Running")
