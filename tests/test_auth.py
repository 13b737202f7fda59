import asyncio
from urllib.parse import parse_qs, urlparse

from fittrack import config
from fittrack.auth import make_token
from fittrack.services import users_service
from fittrack.services.adapters import google


def test_login_me_logout_flow(client, login):
    me = login(client)
    assert me["email"] == "alice@example.com"
    assert me["display_name"] == "Alice"
    assert me["preferred_weight_unit"] == "lbs"
    assert "session" in client.cookies  # cookie should be set

    r = client.post("/api/auth/logout")
    assert r.status_code == 204

    # Me should now be unauthorized
    r = client.get("/api/auth/me")
    assert r.status_code == 401


def test_me_unauthorized_without_cookie(client):
    r = client.get("/api/auth/me")
    assert r.status_code == 401
    assert r.json()["error"] == "unauthorized"


def test_garbage_session_cookie_is_rejected(client):
    client.cookies.set("session", "not-a-jwt")
    r = client.get("/api/auth/me")
    assert r.status_code == 401


def test_session_for_unknown_user_is_rejected(client):
    client.cookies.set("session", make_token(9999))
    r = client.get("/api/auth/me")
    assert r.status_code == 401


def test_second_login_refreshes_profile(make_client, login):
    first = login(make_client())
    again = login(make_client(), sub="google-alice", email="alice@new.example.com", name="Alice B")
    assert again["id"] == first["id"]
    assert again["email"] == "alice@new.example.com"
    assert again["display_name"] == "Alice B"


def test_google_login_redirects_with_state(client, google_configured):
    r = client.get("/api/auth/google", follow_redirects=False)
    assert r.status_code == 302
    location = urlparse(r.headers["location"])
    assert location.netloc == "accounts.google.com"
    query = parse_qs(location.query)
    assert query["client_id"] == ["test-client-id"]
    assert query["state"][0] == client.cookies.get("oauth_state")


def test_google_login_unconfigured_is_503(client, monkeypatch):
    monkeypatch.setattr(config, "GOOGLE_CLIENT_ID", "")
    r = client.get("/api/auth/google", follow_redirects=False)
    assert r.status_code == 503
    assert r.json()["error"] == "unavailable"


def test_callback_with_wrong_state_fails(client, google_configured):
    client.get("/api/auth/google", follow_redirects=False)
    r = client.get(
        "/api/auth/google/callback",
        params={"code": "test-code", "state": "forged"},
        follow_redirects=False,
    )
    assert r.status_code == 302
    assert r.headers["location"] == f"{config.CORS_ORIGIN}/login?error=auth_failed"
    assert "session" not in client.cookies


def test_callback_adapter_failure_fails(client, google_configured, monkeypatch):
    async def broken(code, transport=None):
        raise google.GoogleAuthError("No email found in Google profile")

    monkeypatch.setattr(google, "fetch_google_profile", broken)
    r = client.get("/api/auth/google", follow_redirects=False)
    state = parse_qs(urlparse(r.headers["location"]).query)["state"][0]

    r = client.get(
        "/api/auth/google/callback",
        params={"code": "test-code", "state": state},
        follow_redirects=False,
    )
    assert r.status_code == 302
    assert r.headers["location"].endswith("/login?error=auth_failed")
    assert client.get("/api/auth/me").status_code == 401


def test_csrf_token_is_stable_per_client(client):
    first = client.get("/api/auth/csrf").json()["csrf_token"]
    second = client.get("/api/auth/csrf").json()["csrf_token"]
    assert first and first == second


def test_mutation_without_csrf_header_is_forbidden(alice):
    del alice.headers["X-CSRF-Token"]
    r = alice.post("/api/workouts")
    assert r.status_code == 403
    assert r.json()["error"] == "forbidden"


def test_mutation_with_wrong_csrf_header_is_forbidden(alice):
    r = alice.post("/api/workouts", headers={"X-CSRF-Token": "wrong"})
    assert r.status_code == 403


def test_unauthenticated_mutation_is_401_not_403(client):
    r = client.post("/api/workouts")
    assert r.status_code == 401


def test_callback_stores_user_off_the_event_loop(client, login, monkeypatch):
    original = users_service.upsert_oauth_user
    seen = []

    def recording_upsert(db, profile):
        try:
            asyncio.get_running_loop()
            seen.append("loop")
        except RuntimeError:
            seen.append("worker")
        return original(db, profile)

    monkeypatch.setattr(users_service, "upsert_oauth_user", recording_upsert)
    assert login(client)["email"] == "alice@example.com"
    assert seen == ["worker"]
