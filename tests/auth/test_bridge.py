"""
Tests for linking externally authenticated principals to local accounts.
"""
import pytest
from firebase_admin import auth as firebase_auth

from healthvault.auth.exceptions import IdentityProviderUnavailableException, InvalidTokenException
from healthvault.auth.models import User, AccountStatus
from healthvault.core.firebase import ExternalIdentityProvider
from healthvault.patients.models import Patient


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


def sync_body(uid="ext-uid-1", **overrides):
    body = {
        "firebaseUid": uid,
        "email": "hybrid@example.com",
        "role": "PATIENT",
        "fullName": "Hybrid Patient",
    }
    body.update(overrides)
    return body


def test_sync_creates_account_once(client, db, identity_provider):
    token = identity_provider.add_token("id-token-1", uid="ext-uid-1", email="hybrid@example.com")

    first = client.post("/sync-external-user", json=sync_body(), headers=bearer(token))
    assert first.status_code == 200
    assert first.json()["created"] is True
    user = first.json()["user"]
    assert user["external_uid"] == "ext-uid-1"
    assert user["email_verified"] is True
    assert user["account_status"] == "ACTIVE"

    second = client.post("/sync-external-user", json=sync_body(), headers=bearer(token))
    assert second.status_code == 200
    assert second.json()["created"] is False
    assert second.json()["user"]["id"] == user["id"]
    assert db.query(User).count() == 1


def test_synced_account_has_no_password(client, db, identity_provider):
    token = identity_provider.add_token("id-token-1", uid="ext-uid-1")
    client.post("/sync-external-user", json=sync_body(), headers=bearer(token))
    assert db.query(User).one().password_hash is None

    response = client.post("/login", json={"email": "hybrid@example.com", "password": "anything"})
    assert response.status_code == 401


def test_uid_mismatch_is_forbidden(client, db, identity_provider):
    token = identity_provider.add_token("id-token-1", uid="ext-uid-1")
    response = client.post("/sync-external-user", json=sync_body(uid="someone-else"), headers=bearer(token))
    assert response.status_code == 403
    assert response.json() == {"error": "External UID mismatch"}
    assert db.query(User).count() == 0


def test_invalid_id_token_is_rejected(client):
    response = client.post("/sync-external-user", json=sync_body(), headers=bearer("forged"))
    assert response.status_code == 401


def test_missing_id_token_is_rejected(client):
    assert client.post("/sync-external-user", json=sync_body()).status_code == 401


def test_sync_verifies_doctor_credentials(client, db, identity_provider):
    token = identity_provider.add_token("id-token-1", uid="ext-doc")
    body = sync_body(
        uid="ext-doc",
        email="dr.smith@example.com",
        role="DOCTOR",
        fullName="Dr. John Smith",
        licenseNumber="MH12345",
        medicalCouncil="Medical Council of India",
    )
    response = client.post("/sync-external-user", json=body, headers=bearer(token))
    assert response.status_code == 200
    assert response.json()["user"]["account_status"] == "PENDING_VERIFICATION"

    token2 = identity_provider.add_token("id-token-2", uid="ext-fake-doc")
    fake = dict(body, firebaseUid="ext-fake-doc", email="fake@example.com", licenseNumber="ZZ99999")
    rejected = client.post("/sync-external-user", json=fake, headers=bearer(token2))
    assert rejected.status_code == 403
    assert db.query(User).count() == 1


def test_sync_with_email_of_password_account_conflicts(client, identity_provider):
    client.post("/signup", json={
        "email": "hybrid@example.com",
        "password": "secret123",
        "role": "PATIENT",
        "fullName": "Existing",
    })
    token = identity_provider.add_token("id-token-1", uid="ext-uid-1")
    response = client.post("/sync-external-user", json=sync_body(), headers=bearer(token))
    assert response.status_code == 400
    assert response.json() == {"error": "Email already registered"}


def test_profile_returns_linked_account(client, identity_provider):
    token = identity_provider.add_token("id-token-1", uid="ext-uid-1")
    client.post("/sync-external-user", json=sync_body(), headers=bearer(token))
    response = client.get("/profile", headers=bearer(token))
    assert response.status_code == 200
    assert response.json()["profile"]["full_name"] == "Hybrid Patient"


def test_profile_for_unlinked_principal_is_not_found(client, identity_provider):
    token = identity_provider.add_token("id-token-1", uid="ext-uid-1")
    response = client.get("/profile", headers=bearer(token))
    assert response.status_code == 404
    assert response.json() == {"error": "User not found"}


def test_profile_with_missing_role_profile_is_a_mismatch(client, db, identity_provider):
    token = identity_provider.add_token("id-token-1", uid="ext-uid-1")
    client.post("/sync-external-user", json=sync_body(), headers=bearer(token))
    db.query(Patient).delete()
    db.commit()
    db.expire_all()
    response = client.get("/profile", headers=bearer(token))
    assert response.status_code == 409


def test_external_principal_cannot_use_native_endpoints(client, identity_provider):
    token = identity_provider.add_token("id-token-1", uid="ext-uid-1")
    client.post("/sync-external-user", json=sync_body(), headers=bearer(token))
    assert client.get("/me", headers=bearer(token)).status_code == 401
    user_status = client.get("/profile", headers=bearer(token)).json()["account_status"]
    assert user_status == AccountStatus.ACTIVE.value


def test_sync_email_must_match_token_email(client, db, identity_provider):
    token = identity_provider.add_token("id-token-1", uid="ext-staff", email="attacker@gmail.com")
    body = sync_body(
        uid="ext-staff",
        email="staff@cityhospital.com",
        role="STAFF",
        fullName="Staff Member",
        organizationId="ORG001",
        employeeId="EMP001",
        department="Nursing",
    )
    response = client.post("/sync-external-user", json=body, headers=bearer(token))
    assert response.status_code == 403
    assert response.json() == {"error": "Email does not match the external identity"}
    assert db.query(User).count() == 0


def test_sync_email_match_ignores_case(client, identity_provider):
    token = identity_provider.add_token("id-token-1", uid="ext-uid-1", email="Hybrid@Example.com")
    response = client.post("/sync-external-user", json=sync_body(), headers=bearer(token))
    assert response.status_code == 200
    assert response.json()["user"]["email_verified"] is True


def test_token_without_email_does_not_verify_body_email(client, identity_provider):
    token = identity_provider.add_token("id-token-1", uid="ext-uid-1", email_verified=True)
    response = client.post("/sync-external-user", json=sync_body(), headers=bearer(token))
    assert response.status_code == 200
    assert response.json()["user"]["email_verified"] is False


def test_unreachable_key_service_is_an_outage(monkeypatch):
    def fail(id_token, app=None):
        raise firebase_auth.CertificateFetchError("Failed to fetch public key certificates", None)

    monkeypatch.setattr(firebase_auth, "verify_id_token", fail)
    provider = ExternalIdentityProvider(app=None)
    with pytest.raises(IdentityProviderUnavailableException) as exc_info:
        provider.verify_id_token("id-token-1")
    assert exc_info.value.status_code == 503


def test_forged_id_token_is_invalid(monkeypatch):
    def fail(id_token, app=None):
        raise firebase_auth.InvalidIdTokenError("Invalid signature")

    monkeypatch.setattr(firebase_auth, "verify_id_token", fail)
    with pytest.raises(InvalidTokenException):
        ExternalIdentityProvider(app=None).verify_id_token("forged")
