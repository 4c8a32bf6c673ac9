"""
Tests for password login and access-token authentication.
"""
from datetime import timedelta

from healthvault.auth.models import User, UserSession, AccountStatus
from healthvault.core.security import create_access_token, decode_access_token, decode_refresh_token
from tests.conftest import TEST_PASSWORD, doctor_payload, patient_payload


def signup_patient(client, **overrides):
    response = client.post("/signup", json=patient_payload(**overrides))
    assert response.status_code == 201
    return response.json()["user"]


def login(client, email="patient@example.com", password=TEST_PASSWORD):
    return client.post("/login", json={"email": email, "password": password})


def test_login_returns_tokens_and_opens_session(client, db):
    user = signup_patient(client)
    response = login(client)
    assert response.status_code == 200
    data = response.json()
    assert data["token_type"] == "bearer"
    assert data["expires_in"] == 15 * 60
    assert data["user"]["id"] == user["id"]

    access = decode_access_token(data["access_token"])
    assert access["id"] == user["id"]
    assert access["role"] == "PATIENT"
    assert decode_refresh_token(data["refresh_token"])["id"] == user["id"]

    session = db.query(UserSession).one()
    assert session.refresh_token == data["refresh_token"]
    assert db.query(User).one().last_login is not None


def test_login_email_is_case_insensitive(client):
    signup_patient(client)
    assert login(client, email="PATIENT@example.com").status_code == 200


def test_wrong_password_and_unknown_email_look_the_same(client):
    signup_patient(client)
    wrong_password = login(client, password="wrong-password")
    unknown_email = login(client, email="nobody@example.com")
    assert wrong_password.status_code == unknown_email.status_code == 401
    assert wrong_password.json() == unknown_email.json() == {"error": "Invalid credentials"}


def test_pending_doctor_cannot_log_in(client, db):
    client.post("/signup", json=doctor_payload())
    response = login(client, email="john.smith@example.com")
    assert response.status_code == 403
    assert "pending verification" in response.json()["error"]
    assert db.query(UserSession).count() == 0


def test_suspended_account_cannot_log_in(client, db):
    signup_patient(client)
    user = db.query(User).one()
    user.account_status = AccountStatus.SUSPENDED
    db.commit()
    response = login(client)
    assert response.status_code == 403
    assert "suspended" in response.json()["error"]


def test_deleted_account_is_treated_as_unknown(client, db):
    signup_patient(client)
    user = db.query(User).one()
    user.account_status = AccountStatus.DELETED
    db.commit()
    response = login(client)
    assert response.status_code == 401
    assert response.json() == {"error": "Invalid credentials"}


def test_every_login_opens_a_distinct_session(client, db):
    signup_patient(client)
    first = login(client).json()["refresh_token"]
    second = login(client).json()["refresh_token"]
    assert first != second
    assert db.query(UserSession).count() == 2


def test_me_returns_current_account(client):
    user = signup_patient(client)
    token = login(client).json()["access_token"]
    response = client.get("/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 200
    assert response.json()["id"] == user["id"]
    assert response.json()["profile"]["role"] == "PATIENT"


def test_me_requires_bearer_token(client):
    response = client.get("/me")
    assert response.status_code == 401
    assert "error" in response.json()


def test_expired_access_token_is_rejected(client, db):
    signup_patient(client)
    user = db.query(User).one()
    token = create_access_token(user.id, user.role, expires_delta=timedelta(seconds=-1))
    response = client.get("/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


def test_refresh_token_is_not_an_access_token(client):
    signup_patient(client)
    refresh_token = login(client).json()["refresh_token"]
    response = client.get("/me", headers={"Authorization": f"Bearer {refresh_token}"})
    assert response.status_code == 401


def test_failed_logins_never_open_sessions(client, db):
    signup_patient(client)
    for _ in range(3):
        assert login(client, password="wrong-password").status_code == 401
    assert db.query(UserSession).count() == 0
