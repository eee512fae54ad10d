from unittest.mock import patch

import pytest
from google.auth import exceptions as google_exceptions
from sqlalchemy.exc import IntegrityError

from login_platform.login_platform.auth_service import google
from login_platform.login_platform.auth_service.auth import decode_token
from login_platform.login_platform.auth_service.config import settings
from login_platform.login_platform.auth_service.google import GoogleIdentity, GoogleTokenError, verify_google_token
from login_platform.login_platform.auth_service.models import User
from login_platform.login_platform.auth_service.routes import auth as auth_routes
from .conftest import API, ensure_user


def identity(**overrides):
    values = {
        "sub": "google-sub-123",
        "email": "gina@example.com",
        "email_verified": True,
        "name": "Gina Google",
        "picture": "https://example.com/gina.png",
    }
    values.update(overrides)
    return GoogleIdentity(**values)


def test_invalid_google_token_is_rejected_without_session(client, db_session):
    with patch.object(auth_routes, "verify_google_token", side_effect=GoogleTokenError("Token expired")):
        resp = client.post(f"{API}/google", json={"token": "expired-id-token"})

    assert resp.status_code == 400
    assert resp.json() == {"success": False, "message": "Error verifying Google token"}
    assert db_session.query(User).count() == 0


def test_google_token_is_required(client):
    resp = client.post(f"{API}/google", json={})
    assert resp.status_code == 400
    assert resp.json()["errors"][0]["field"] == "token"


def test_missing_client_id_is_a_server_error(client, monkeypatch):
    monkeypatch.setattr(settings, "GOOGLE_CLIENT_ID", None)
    with patch.object(auth_routes, "verify_google_token") as verify:
        resp = client.post(f"{API}/google", json={"token": "some-token"})

    assert resp.status_code == 500
    assert resp.json()["message"] == "Google OAuth configuration not found"
    verify.assert_not_called()


def test_incomplete_google_profile_is_rejected(client):
    with patch.object(auth_routes, "verify_google_token", return_value=identity(name=None)):
        resp = client.post(f"{API}/google", json={"token": "id-token"})

    assert resp.status_code == 400
    assert resp.json()["message"] == "Incomplete Google profile information"


def test_first_google_sign_in_creates_user(client, db_session):
    with patch.object(auth_routes, "verify_google_token", return_value=identity()) as verify:
        resp = client.post(f"{API}/google", json={"token": "id-token"})

    verify.assert_called_once_with("id-token", settings.GOOGLE_CLIENT_ID)
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["user"]["email"] == "gina@example.com"
    assert data["user"]["avatar"] == "https://example.com/gina.png"

    # Real signed session, not a placeholder
    claims = decode_token(data["token"])
    assert claims["userId"] == data["user"]["id"]

    user = db_session.query(User).filter(User.email == "gina@example.com").first()
    assert user.google_id == "google-sub-123"
    assert user.password is None


def test_repeat_google_sign_in_reuses_user(client, db_session):
    with patch.object(auth_routes, "verify_google_token", return_value=identity()):
        first = client.post(f"{API}/google", json={"token": "id-token"})
        second = client.post(f"{API}/google", json={"token": "id-token"})

    assert first.json()["data"]["user"]["id"] == second.json()["data"]["user"]["id"]
    assert db_session.query(User).count() == 1


def test_google_sign_in_links_existing_password_account(client, db_session):
    existing = ensure_user(email="gina@example.com", password="goodpassword")

    with patch.object(auth_routes, "verify_google_token", return_value=identity()):
        resp = client.post(f"{API}/google", json={"token": "id-token"})

    assert resp.status_code == 200
    assert resp.json()["data"]["user"]["id"] == existing["id"]
    user = db_session.get(User, existing["id"])
    assert user.google_id == "google-sub-123"

    # Password login keeps working after linking
    login = client.post(f"{API}/login", json={"email": "gina@example.com", "password": "goodpassword"})
    assert login.status_code == 200


def test_unverified_google_email_does_not_link(client, db_session):
    existing = ensure_user(email="gina@example.com", password="goodpassword")

    with patch.object(auth_routes, "verify_google_token", return_value=identity(email_verified=False)):
        resp = client.post(f"{API}/google", json={"token": "id-token"})

    assert resp.status_code == 400
    assert "data" not in resp.json()
    assert db_session.get(User, existing["id"]).google_id is None


def test_unverified_google_email_does_not_create_account(client, db_session):
    with patch.object(auth_routes, "verify_google_token", return_value=identity(email="owner@example.com", email_verified=False)):
        resp = client.post(f"{API}/google", json={"token": "id-token"})

    assert resp.status_code == 400
    assert resp.json() == {"success": False, "message": "Google email is not verified"}
    assert db_session.query(User).count() == 0

    # The address stays free for its real owner
    register = client.post(f"{API}/register", json={
        "name": "Owner", "email": "owner@example.com", "password": "goodpassword"
    })
    assert register.status_code == 201


def test_linked_google_account_signs_in_without_rechecking_verification(client):
    ensure_user(email="gina@example.com", password=None, google_id="google-sub-123")

    with patch.object(auth_routes, "verify_google_token", return_value=identity(email_verified=False)):
        resp = client.post(f"{API}/google", json={"token": "id-token"})

    assert resp.status_code == 200


def test_concurrent_first_google_sign_in_returns_the_winning_user(db_session):
    real_commit = db_session.commit
    winner = {}

    def commit_after_other_request():
        winner.update(ensure_user(email="gina@example.com", password=None, google_id="google-sub-123"))
        real_commit()

    with patch.object(db_session, "commit", side_effect=commit_after_other_request):
        user = auth_routes._find_or_create_google_user(identity(), db_session)

    assert user.id == winner["id"]
    assert db_session.query(User).count() == 1


def test_google_sign_in_racing_a_registration_is_a_duplicate(client):
    conflict = IntegrityError("INSERT INTO users", {}, Exception("UNIQUE constraint failed: users.email"))

    with patch.object(auth_routes, "verify_google_token", return_value=identity()), \
            patch.object(auth_routes, "_find_or_create_google_user", side_effect=conflict):
        resp = client.post(f"{API}/google", json={"token": "id-token"})

    assert resp.status_code == 400
    assert resp.json() == {"success": False, "message": "A user with this email already exists"}


def test_google_sign_in_rejects_deactivated_account(client):
    ensure_user(email="gina@example.com", password=None, google_id="google-sub-123", is_active=False)

    with patch.object(auth_routes, "verify_google_token", return_value=identity()):
        resp = client.post(f"{API}/google", json={"token": "id-token"})

    assert resp.status_code == 401
    assert resp.json()["message"] == "Account deactivated"


def test_verify_google_token_maps_claims():
    payload = {
        "sub": "123",
        "email": "gina@example.com",
        "email_verified": True,
        "name": "Gina",
        "picture": "https://example.com/p.png",
        "aud": "client-id",
    }
    with patch.object(google.id_token, "verify_oauth2_token", return_value=payload) as verify:
        result = verify_google_token("id-token", "client-id")

    assert verify.call_args.args[0] == "id-token"
    assert verify.call_args.args[2] == "client-id"
    assert result == GoogleIdentity(
        sub="123", email="gina@example.com", email_verified=True, name="Gina", picture="https://example.com/p.png"
    )


@pytest.mark.parametrize("error", [
    ValueError("Token expired"),
    ValueError("Token has wrong audience"),
    google_exceptions.TransportError("connection refused"),
])
def test_verify_google_token_wraps_library_errors(error):
    with patch.object(google.id_token, "verify_oauth2_token", side_effect=error):
        with pytest.raises(GoogleTokenError):
            verify_google_token("bad-token", "client-id")


def test_verify_google_token_requires_subject():
    with patch.object(google.id_token, "verify_oauth2_token", return_value={"email": "x@example.com"}):
        with pytest.raises(GoogleTokenError):
            verify_google_token("id-token", "client-id")
