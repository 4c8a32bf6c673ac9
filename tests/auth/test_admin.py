"""
Tests for administrator review of doctor and staff verification.
"""
from healthvault.auth.models import User, AccountStatus, VerificationStatus
from healthvault.core.bootstrap import admin_exists, create_bootstrap_admin
from healthvault.config import settings
from tests.conftest import TEST_PASSWORD, doctor_payload, patient_payload, staff_payload


def signup(client, payload):
    response = client.post("/signup", json=payload)
    assert response.status_code == 201
    return response.json()["user"]["id"]


def test_pending_list_shows_doctor_and_staff(client, admin_headers):
    signup(client, patient_payload())
    signup(client, doctor_payload())
    signup(client, staff_payload())
    response = client.get("/admin/verifications/pending", headers=admin_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 2
    assert {user["role"] for user in data["users"]} == {"DOCTOR", "STAFF"}


def test_approval_activates_account_and_allows_login(client, db, admin_user, admin_headers):
    user_id = signup(client, doctor_payload())
    response = client.post(f"/admin/verifications/{user_id}/approve", headers=admin_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["account_status"] == "ACTIVE"
    assert data["profile"]["verification_status"] == "APPROVED"
    assert data["profile"]["verified_by"] == admin_user.id
    assert data["profile"]["verified_at"] is not None

    login = client.post("/login", json={"email": "john.smith@example.com", "password": TEST_PASSWORD})
    assert login.status_code == 200


def test_rejection_suspends_account(client, db, admin_headers):
    user_id = signup(client, staff_payload())
    response = client.post(
        f"/admin/verifications/{user_id}/reject",
        json={"reason": "Document unreadable"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    user = db.query(User).filter(User.id == user_id).one()
    assert user.account_status == AccountStatus.SUSPENDED
    assert user.staff_profile.verification_status == VerificationStatus.REJECTED


def test_decision_is_final(client, admin_headers):
    user_id = signup(client, doctor_payload())
    client.post(f"/admin/verifications/{user_id}/approve", headers=admin_headers)
    again = client.post(f"/admin/verifications/{user_id}/reject", headers=admin_headers)
    assert again.status_code == 400


def test_patient_cannot_be_reviewed(client, admin_headers):
    user_id = signup(client, patient_payload())
    response = client.post(f"/admin/verifications/{user_id}/approve", headers=admin_headers)
    assert response.status_code == 404


def test_review_requires_admin(client):
    signup(client, patient_payload())
    token = client.post(
        "/login", json={"email": "patient@example.com", "password": TEST_PASSWORD}
    ).json()["access_token"]
    response = client.get("/admin/verifications/pending", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 403
    assert "Required roles" in response.json()["error"]


def test_review_requires_token(client):
    assert client.get("/admin/verifications/pending").status_code == 401


def test_bootstrap_admin_is_created_once(db, monkeypatch):
    monkeypatch.setattr(settings, "bootstrap_admin_email", "Root@HealthVault.com")
    monkeypatch.setattr(settings, "bootstrap_admin_password", "change-me-now")
    assert not admin_exists(db)
    assert create_bootstrap_admin(db) is True
    assert admin_exists(db)
    admin = db.query(User).one()
    assert admin.email == "root@healthvault.com"
    assert admin.profile is None
    assert create_bootstrap_admin(db) is False


def test_bootstrap_without_credentials_does_nothing(db, monkeypatch):
    monkeypatch.setattr(settings, "bootstrap_admin_email", None)
    assert create_bootstrap_admin(db) is False
    assert db.query(User).count() == 0
