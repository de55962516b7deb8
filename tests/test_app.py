import os
import sys
from datetime import timedelta

from fastapi.testclient import TestClient

from helpers import auth_headers
from podhub.core.config import Settings
from podhub.core.security import create_access_token, extract_bearer_token, verify_access_token
from podhub.main import create_asgi_app

sys.path.append(os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "scripts"))
from make_admin import set_admin  # noqa: E402


def test_tokens():
    token = create_access_token("user-1")

    assert verify_access_token(token) == "user-1"
    assert verify_access_token(create_access_token("user-1", timedelta(seconds=-5))) is None
    assert verify_access_token("garbage") is None


def test_extract_bearer_token():
    assert extract_bearer_token("Bearer abc") == "abc"
    assert extract_bearer_token("bearer abc ") == "abc"
    assert extract_bearer_token("Basic abc") is None
    assert extract_bearer_token("Bearer ") is None
    assert extract_bearer_token(None) is None


def test_cors_origins_from_comma_separated_env(monkeypatch):
    monkeypatch.setenv("BACKEND_CORS_ORIGINS", "https://a.example, https://b.example")

    assert Settings().BACKEND_CORS_ORIGINS == ["https://a.example", "https://b.example"]


def test_push_enabled_follows_private_key(monkeypatch):
    monkeypatch.setenv("VAPID_PRIVATE_KEY", "private")

    assert Settings().push_enabled is True


def test_lifespan_registers_socket_handlers(app, owner):
    with TestClient(app) as client:
        assert "join-room" in app.state.realtime.sio.handlers["/"]
        me = client.get("/api/v1/users/me", headers=auth_headers(owner))
        assert me.json()["username"] == "olivia"
        assert me.headers["X-Process-Time"]


def test_asgi_app_routes_rest_to_fastapi(app):
    client = TestClient(create_asgi_app(app))

    assert client.get("/").json()["message"] == "Welcome to PodHub API"


def test_user_lookup(client, owner, member):
    assert client.get(f"/api/v1/users/{member.id}", headers=auth_headers(owner)).json()["username"] == "marco"
    assert client.get("/api/v1/users/missing", headers=auth_headers(owner)).status_code == 404


def test_make_admin(db, member):
    assert set_admin(db, "marco") is True
    db.refresh(member)
    assert member.is_admin is True

    assert set_admin(db, "marco", is_admin=False) is True
    db.refresh(member)
    assert member.is_admin is False

    assert set_admin(db, "nobody") is False
