"""Tests for the broker's HTTP routes."""
import json
import re

import jwt
import pytest
from fastapi.testclient import TestClient

from oauth_broker import main
from oauth_broker.audit import EVENT_OAUTH_COMPLETED, EVENT_OAUTH_STARTED
from oauth_broker.database import SessionLocal, init_db
from oauth_broker.errors import TokenExchangeError
from oauth_broker.main import app
from oauth_broker.models import AuditLog
from oauth_broker.token_client import Credentials

client = TestClient(app)


@pytest.fixture(autouse=True)
def db():
    init_db()
    yield


@pytest.fixture
def exchange_calls(monkeypatch):
    """Replace the provider call and the account registry on the app's broker."""
    calls = []

    async def fake_exchange(code, redirect_uri, limiter):
        calls.append((code, redirect_uri))
        if code == "bad-code":
            raise TokenExchangeError("invalid_grant")
        return Credentials(access_token="at", refresh_token="rt", expires_in=3600, scope="s")

    class Registry:
        def add_account(self, credentials):
            return None

    monkeypatch.setattr(main.broker, "_exchange", fake_exchange)
    monkeypatch.setattr(main.broker, "_registry", Registry())
    return calls


def _start() -> dict:
    r = client.post("/oauth/start")
    assert r.status_code == 200
    return r.json()


def test_health():
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json().get("service") == "oauth_broker"


def test_start_returns_auth_url_and_state():
    body = _start()
    assert body["redirect_uri"] == "http://localhost:3000/oauth-callback"
    assert body["expires_in_ms"] == 1800000
    assert body["auth_url"].startswith("https://accounts.google.com/o/oauth2/v2/auth?")
    assert f"state={body['state']}" in body["auth_url"]
    assert "client_id=test-client-id.apps.googleusercontent.com" in body["auth_url"]


def test_status_pending_and_unknown():
    state = _start()["state"]
    assert client.get("/oauth/status", params={"state": state}).json() == {"status": "pending"}
    assert client.get("/oauth/status", params={"state": "unknown"}).json()["status"] == "expired"
    assert client.get("/oauth/status").json()["status"] == "expired"


def test_callback_success_renders_page_and_completes(exchange_calls):
    state = _start()["state"]
    r = client.get("/oauth-callback", params={"state": state, "code": "good-code"})
    assert r.status_code == 200
    assert "text/html" in r.headers["content-type"]
    payload = json.loads(re.search(r"const payload = (\{.*?\});\n", r.text).group(1))
    assert payload == {"type": "oauth_result", "state": state, "success": True, "message": "Authorization succeeded"}
    assert exchange_calls == [("good-code", "http://localhost:3000/oauth-callback")]
    status = client.get("/oauth/status", params={"state": state}).json()
    assert status == {"status": "completed", "success": True, "message": "Authorization succeeded"}


def test_callback_provider_error(exchange_calls):
    state = _start()["state"]
    r = client.get(
        "/oauth-callback",
        params={"state": state, "error": "access_denied", "error_description": "User denied"},
    )
    assert r.status_code == 400
    assert "User denied" in r.text
    assert exchange_calls == []


def test_callback_missing_state(exchange_calls):
    r = client.get("/oauth-callback", params={"code": "c"})
    assert r.status_code == 400
    assert "Missing state" in r.text
    assert exchange_calls == []


def test_callback_exchange_failure(exchange_calls):
    state = _start()["state"]
    r = client.get("/oauth-callback", params={"state": state, "code": "bad-code"})
    assert r.status_code == 400
    assert "Failed to obtain token: invalid_grant" in r.text


def test_manual_complete_with_callback_url(exchange_calls):
    state = _start()["state"]
    r = client.post(
        "/oauth/complete",
        json={"callback_url": f"localhost:3000/oauth-callback?code=pasted&state={state}"},
    )
    assert r.status_code == 200
    assert r.json() == {"success": True, "message": "Authorization succeeded", "state": state}
    assert exchange_calls[0][0] == "pasted"


def test_manual_complete_missing_input(exchange_calls):
    r = client.post("/oauth/complete", json={})
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is False
    assert body["state"] == ""
    assert exchange_calls == []


def test_audit_records_start_and_completion(exchange_calls):
    db = SessionLocal()
    try:
        before = db.query(AuditLog).count()
    finally:
        db.close()
    state = _start()["state"]
    client.get("/oauth-callback", params={"state": state, "code": "bad-code"})
    db = SessionLocal()
    try:
        rows = db.query(AuditLog).order_by(AuditLog.id).all()[before:]
        assert [(r.event_type, r.outcome) for r in rows] == [
            (EVENT_OAUTH_STARTED, "success"),
            (EVENT_OAUTH_COMPLETED, "fail"),
        ]
        # Codes never end up in the audit trail
        assert all("bad-code" not in (r.detail or "") for r in rows)
    finally:
        db.close()


def test_audit_endpoint_lists_recent_events(exchange_calls):
    _start()
    r = client.get("/audit", params={"event_type": EVENT_OAUTH_STARTED, "limit": 1})
    assert r.status_code == 200
    events = r.json()
    assert len(events) == 1
    assert events[0]["event_type"] == EVENT_OAUTH_STARTED


def test_accounts_lists_registered_accounts_without_tokens():
    id_token = jwt.encode({"email": "listed@example.com"}, "k", algorithm="HS256")
    main.registry.add_account(
        Credentials(access_token="secret-at", refresh_token="secret-rt", expires_in=3600, scope="s", id_token=id_token)
    )
    r = client.get("/accounts")
    assert r.status_code == 200
    listed = [a for a in r.json() if a["email"] == "listed@example.com"]
    assert len(listed) == 1
    assert listed[0]["scope"] == "s"
    assert listed[0]["has_refresh_token"] is True
    assert "secret" not in r.text
