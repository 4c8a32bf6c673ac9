"""
Test configuration for the HealthVault auth backend.

Settings are read at import time, so the environment is prepared before any
healthvault module is imported.
"""
import os
import tempfile

_TEST_DIR = tempfile.mkdtemp(prefix="healthvault-tests-")
os.environ["SECRET_KEY"] = "test-access-secret"
os.environ["REFRESH_SECRET_KEY"] = "test-refresh-secret"
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TEST_DIR, 'app.db')}"
os.environ["UPLOAD_DIR"] = os.path.join(_TEST_DIR, "uploads")
os.environ["VERIFICATION_MODE"] = "registry"
os.environ["STORAGE_BACKEND"] = "local"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["FIREBASE_CREDENTIALS_PATH"] = ""
os.environ["BOOTSTRAP_ADMIN_EMAIL"] = ""
os.environ["BOOTSTRAP_ADMIN_PASSWORD"] = ""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from healthvault.database import Base, get_db
from healthvault.main import app
from healthvault.auth.models import User, UserRole, AccountStatus
from healthvault.core.firebase import get_identity_provider
from healthvault.core.security import create_access_token, hash_password
from healthvault.verification.registry import CredentialRegistry, get_optional_credential_registry
from tests.fakes import FakeFirestore, FakeIdentityProvider, seed_sample_registry

# Test database URL
TEST_DATABASE_URL = "sqlite://"

# Create test database engine
engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

# Create test session factory
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

TEST_PASSWORD = "secret123"


@pytest.fixture(scope="function")
def db():
    """
    Create a fresh database for each test.
    """
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def firestore():
    """A fresh in-memory registry store holding the sample data."""
    store = FakeFirestore()
    seed_sample_registry(CredentialRegistry(store, timeout=1))
    return store


@pytest.fixture(scope="function")
def registry(firestore):
    return CredentialRegistry(firestore, timeout=1)


@pytest.fixture(scope="function")
def identity_provider():
    return FakeIdentityProvider()


@pytest.fixture(scope="function")
def client(db, registry, identity_provider):
    """
    Create a test client wired to the test database, the fake registry and the
    fake identity provider.
    """
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_optional_credential_registry] = lambda: registry
    app.dependency_overrides[get_identity_provider] = lambda: identity_provider

    with TestClient(app) as client:
        yield client

    app.dependency_overrides = {}


@pytest.fixture
def admin_user(db):
    admin = User(
        email="admin@healthvault.com",
        password_hash=hash_password(TEST_PASSWORD),
        role=UserRole.ADMIN,
        email_verified=True,
        account_status=AccountStatus.ACTIVE,
    )
    db.add(admin)
    db.commit()
    db.refresh(admin)
    return admin


@pytest.fixture
def admin_headers(admin_user):
    return {"Authorization": f"Bearer {create_access_token(admin_user.id, admin_user.role)}"}


def patient_payload(**overrides):
    payload = {
        "email": "patient@example.com",
        "password": TEST_PASSWORD,
        "role": "PATIENT",
        "fullName": "Pat Patient",
        "dateOfBirth": "1990-04-12",
        "bloodGroup": "O+",
    }
    payload.update(overrides)
    return payload


def doctor_payload(**overrides):
    payload = {
        "email": "john.smith@example.com",
        "password": TEST_PASSWORD,
        "role": "DOCTOR",
        "fullName": "Dr. John Smith",
        "licenseNumber": "MH12345",
        "medicalCouncil": "Medical Council of India",
    }
    payload.update(overrides)
    return payload


def staff_payload(**overrides):
    payload = {
        "email": "staff@cityhospital.com",
        "password": TEST_PASSWORD,
        "role": "STAFF",
        "fullName": "Jane Doe",
        "organizationId": "ORG001",
        "employeeId": "EMP001",
        "department": "Reception",
    }
    payload.update(overrides)
    return payload
