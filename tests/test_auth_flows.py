from datetime import timedelta
from urllib.parse import parse_qs, urlparse

import httpx

from conftest import create_user, login
from linxify.extensions import db
from linxify.models import User, hash_token, utcnow
from linxify.services.accounts import clear_expired_reset_tokens


def _capture_reset_emails(monkeypatch):
    sent = []

    def _fake_send(to, reset_url):
        sent.append((to, reset_url))
        return True

    monkeypatch.setattr(
        "linxify.services.accounts.send_password_reset_email", _fake_send
    )
    return sent


def _token_from_url(reset_url: str) -> str:
    return parse_qs(urlparse(reset_url).query)["token"][0]


def test_register_rejects_duplicate_email(client):
    payload = {"email": "ada@example.com", "password": "correct-horse", "name": "Ada"}
    response = client.post("/api/auth/register", json=payload)
    assert response.status_code == 201
    assert response.get_json()["user"]["email"] == "ada@example.com"

    response = client.post(
        "/api/auth/register",
        json={**payload, "email": "ADA@example.com"},
    )
    assert response.status_code == 400
    assert "already exists" in response.get_json()["error"]


def test_register_validates_input(client):
    response = client.post("/api/auth/register", json={"email": "a@example.com"})
    assert response.status_code == 400

    response = client.post(
        "/api/auth/register", json={"email": "a@example.com", "password": "short"}
    )
    assert response.status_code == 400

    response = client.post(
        "/api/auth/register", json={"email": "not-an-email", "password": "long-enough"}
    )
    assert response.status_code == 400


def test_register_hashes_password(client, app):
    client.post(
        "/api/auth/register",
        json={"email": "hash@example.com", "password": "plain-password"},
    )
    with app.app_context():
        user = User.query.filter_by(email="hash@example.com").first()
        assert user.password_hash != "plain-password"
        assert user.check_password("plain-password")


def test_login_session_and_logout(client, app):
    with app.app_context():
        create_user("sam@example.com")

    assert client.get("/api/auth/session").status_code == 401

    response = client.post(
        "/api/auth/login", json={"email": "sam@example.com", "password": "wrong-pass"}
    )
    assert response.status_code == 401

    login(client, "SAM@example.com")
    response = client.get("/api/auth/session")
    assert response.status_code == 200
    assert response.get_json()["user"]["email"] == "sam@example.com"

    client.post("/api/auth/logout")
    assert client.get("/api/auth/session").status_code == 401


def test_forgot_password_response_is_identical_for_unknown_email(
    client, app, monkeypatch
):
    sent = _capture_reset_emails(monkeypatch)
    with app.app_context():
        create_user("known@example.com")

    known = client.post("/api/auth/forgot-password", json={"email": "known@example.com"})
    unknown = client.post(
        "/api/auth/forgot-password", json={"email": "nobody@example.com"}
    )

    assert known.status_code == unknown.status_code == 200
    assert known.get_json() == unknown.get_json()
    assert [to for to, _ in sent] == ["known@example.com"]
    assert sent[0][1].startswith("http://linxify.test/auth/reset-password?token=")


def test_forgot_password_requires_email(client):
    response = client.post("/api/auth/forgot-password", json={})
    assert response.status_code == 400


def test_forgot_password_hides_email_provider_failures(client, app, monkeypatch):
    def _failing_send(to, reset_url):
        raise httpx.ConnectError("provider down")

    monkeypatch.setattr(
        "linxify.services.accounts.send_password_reset_email", _failing_send
    )
    with app.app_context():
        create_user("known@example.com")

    response = client.post(
        "/api/auth/forgot-password", json={"email": "known@example.com"}
    )
    assert response.status_code == 200


def test_forgot_password_hides_misconfigured_provider_url(client, app, monkeypatch):
    def _bad_url_send(to, reset_url):
        raise httpx.InvalidURL("Invalid non-printable ASCII character in URL")

    monkeypatch.setattr(
        "linxify.services.accounts.send_password_reset_email", _bad_url_send
    )
    with app.app_context():
        create_user("known@example.com")

    known = client.post("/api/auth/forgot-password", json={"email": "known@example.com"})
    unknown = client.post(
        "/api/auth/forgot-password", json={"email": "nobody@example.com"}
    )

    assert known.status_code == unknown.status_code == 200
    assert known.get_json() == unknown.get_json()


def test_reset_password_with_valid_token(client, app, monkeypatch):
    sent = _capture_reset_emails(monkeypatch)
    with app.app_context():
        create_user("reset@example.com", password="old-password")

    client.post("/api/auth/forgot-password", json={"email": "reset@example.com"})
    token = _token_from_url(sent[0][1])

    with app.app_context():
        user = User.query.filter_by(email="reset@example.com").first()
        assert user.reset_token_hash == hash_token(token)
        assert user.reset_token_hash != token

    response = client.post(
        "/api/auth/reset-password", json={"token": token, "password": "new-password"}
    )
    assert response.status_code == 200

    with app.app_context():
        user = User.query.filter_by(email="reset@example.com").first()
        assert user.check_password("new-password")
        assert user.reset_token_hash is None
        assert user.reset_token_expires_at is None

    response = client.post(
        "/api/auth/reset-password", json={"token": token, "password": "other-password"}
    )
    assert response.status_code == 400


def test_reset_password_rejects_expired_token(client, app, monkeypatch):
    sent = _capture_reset_emails(monkeypatch)
    with app.app_context():
        create_user("late@example.com", password="old-password")

    client.post("/api/auth/forgot-password", json={"email": "late@example.com"})
    token = _token_from_url(sent[0][1])

    with app.app_context():
        user = User.query.filter_by(email="late@example.com").first()
        user.reset_token_expires_at = utcnow() - timedelta(minutes=1)
        db.session.commit()

    response = client.post(
        "/api/auth/reset-password", json={"token": token, "password": "new-password"}
    )
    assert response.status_code == 400
    assert response.get_json()["error"] == "invalid or expired token"

    with app.app_context():
        user = User.query.filter_by(email="late@example.com").first()
        assert user.check_password("old-password")


def test_reset_password_requires_token_and_password(client):
    response = client.post("/api/auth/reset-password", json={"password": "whatever1"})
    assert response.status_code == 400


def test_clear_expired_reset_tokens_keeps_fresh_ones(app):
    with app.app_context():
        fresh = create_user("fresh@example.com")
        stale = create_user("stale@example.com")
        fresh.issue_reset_token(15)
        stale.issue_reset_token(15)
        stale.reset_token_expires_at = utcnow() - timedelta(minutes=5)
        db.session.commit()

        assert clear_expired_reset_tokens() == 1
        assert db.session.get(User, fresh.id).reset_token_hash is not None
        assert db.session.get(User, stale.id).reset_token_hash is None


def test_web_register_login_and_logout(client):
    response = client.get("/auth/register")
    assert response.status_code == 200

    response = client.post(
        "/auth/register",
        data={
            "email": "web@example.com",
            "password": "web-password",
            "confirm_password": "web-password",
        },
    )
    assert response.status_code == 302
    assert response.headers["Location"].endswith("/auth/login")

    response = client.post(
        "/auth/login",
        data={"email": "web@example.com", "password": "web-password"},
    )
    assert response.status_code == 302
    assert response.headers["Location"].endswith("/dashboard")

    response = client.post("/auth/logout")
    assert response.status_code == 302
    assert client.get("/dashboard").status_code == 302


def test_web_reset_page_rejects_unknown_token(client):
    response = client.get("/auth/reset-password?token=bogus")
    assert response.status_code == 302
    assert response.headers["Location"].endswith("/auth/forgot-password")
