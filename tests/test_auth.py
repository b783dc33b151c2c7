import json
import time

import jwt
import pytest

from claims_crm.config import settings
from claims_crm.services.auth import (
    create_password_credentials, decode_token, issue_token, main, verify_password,
)

SECRET = "unit-test-session-secret-0123456789abcdef"


@pytest.fixture
def credentials(tmp_path, monkeypatch):
    salt, password_hash = create_password_credentials("s3cret-pass")
    store = tmp_path / "credentials.json"
    store.write_text(json.dumps([{
        "id": 1, "username": "admin", "name": "Admin User", "role": "admin",
        "salt": salt, "password_hash": password_hash,
    }]))
    monkeypatch.setattr(settings, "CREDENTIALS_FILE", str(store))
    monkeypatch.setattr(settings, "SESSION_SECRET", SECRET)
    return store


def test_password_hashing():
    salt, password_hash = create_password_credentials("hunter22")
    assert password_hash != "hunter22"
    assert verify_password("hunter22", salt, password_hash)
    assert not verify_password("hunter23", salt, password_hash)
    assert not verify_password("", salt, password_hash)
    assert not verify_password("hunter22", None, password_hash)


def test_login_sets_session_cookie(client, credentials):
    response = client.post("/api/auth/login", json={"username": "admin", "password": "s3cret-pass"})
    assert response.status_code == 200
    assert response.json()["user"] == {"id": 1, "username": "admin", "name": "Admin User", "role": "admin"}
    set_cookie = response.headers["set-cookie"]
    assert set_cookie.startswith("auth-token=")
    assert "HttpOnly" in set_cookie

    session = client.get("/api/auth/session").json()
    assert session["user"]["username"] == "admin"
    assert "password_hash" not in session["user"]


def test_login_rejects_bad_credentials(client, credentials):
    for username, password in (("admin", "wrong"), ("nobody", "s3cret-pass")):
        response = client.post("/api/auth/login", json={"username": username, "password": password})
        assert response.status_code == 401
        assert response.json()["error"] == "Invalid username or password"
        assert "set-cookie" not in response.headers


def test_login_without_credential_store(client, tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "CREDENTIALS_FILE", str(tmp_path / "missing.json"))
    response = client.post("/api/auth/login", json={"username": "admin", "password": "x"})
    assert response.status_code == 401


def test_session_without_cookie(client):
    assert client.get("/api/auth/session").json() == {"user": None}


def test_logout_clears_cookie(client, credentials):
    client.post("/api/auth/login", json={"username": "admin", "password": "s3cret-pass"})
    assert client.post("/api/auth/logout").json() == {"success": True}
    assert client.get("/api/auth/session").json() == {"user": None}


def test_tampered_and_expired_tokens(monkeypatch):
    monkeypatch.setattr(settings, "SESSION_SECRET", SECRET)
    token = issue_token({"username": "admin", "role": "admin"})
    assert decode_token(token) == {"username": "admin", "role": "admin"}

    header, payload, signature = token.split(".")
    assert decode_token(f"{header}.{payload}x.{signature}") is None
    assert decode_token(token + ".extra") is None
    assert decode_token("ünïcode.tökén") is None
    assert decode_token(jwt.encode({"username": "admin"}, SECRET, algorithm="HS256")) is None

    issued_long_ago = time.time() - settings.SESSION_TTL_HOURS * 3600 - 60
    assert decode_token(issue_token({"username": "admin"}, now=issued_long_ago)) is None

    monkeypatch.setattr(settings, "SESSION_SECRET", "rotated-" + SECRET)
    assert decode_token(token) is None


def test_hash_password_command(monkeypatch, capsys):
    monkeypatch.setattr("getpass.getpass", lambda prompt="": "correct horse")
    main(["hash-password"])
    entry = json.loads(capsys.readouterr().out)
    assert verify_password("correct horse", entry["salt"], entry["password_hash"])
