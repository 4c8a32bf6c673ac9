"""
Tests for the Firestore-backed credential registry.
"""
import pytest

from healthvault.auth.exceptions import RegistryUnavailableException
from healthvault.verification.registry import (
    DOCTORS_COLLECTION,
    EMPLOYEES_COLLECTION,
    ORGANIZATIONS_COLLECTION,
    CredentialRegistry,
)
from healthvault.verification.schemas import EmployeeRecord
from tests.fakes import FakeFirestore


@pytest.fixture
def empty_registry():
    store = FakeFirestore()
    return store, CredentialRegistry(store, timeout=1)


def test_add_doctor_normalizes_fields(empty_registry):
    store, registry = empty_registry
    record = registry.add_doctor(" ab123 ", "  Dr. New Doctor ", "Medical Council of India")
    assert record.license_number == "AB123"
    assert record.full_name == "Dr. New Doctor"
    assert record.specialization == "General Physician"
    assert record.status == "active"

    stored = [data for path, data in store.documents.items() if path[0] == DOCTORS_COLLECTION]
    assert stored[0]["licenseNumber"] == "AB123"
    assert "verifiedAt" in stored[0]
    assert registry.find_doctor("AB123", "Dr. New Doctor", "Medical Council of India") is not None


def test_add_organization_writes_employees(empty_registry):
    store, registry = empty_registry
    record = registry.add_organization(
        "ORG009",
        "Lake Clinic",
        ["LakeClinic.com"],
        [EmployeeRecord(employee_id="LC1", email="a@lakeclinic.com", name="A")],
    )
    assert record.email_domains == ["lakeclinic.com"]
    assert (ORGANIZATIONS_COLLECTION, "ORG009") in store.documents
    assert (ORGANIZATIONS_COLLECTION, "ORG009", EMPLOYEES_COLLECTION, "LC1") in store.documents

    org = registry.get_organization("ORG009")
    assert org.id == "ORG009"
    assert org.name == "Lake Clinic"
    assert registry.get_employee("ORG009", "LC1").name == "A"


def test_add_organization_is_all_or_nothing(empty_registry):
    store, registry = empty_registry
    store.fail = True
    with pytest.raises(RegistryUnavailableException):
        registry.add_organization(
            "ORG009",
            "Lake Clinic",
            ["lakeclinic.com"],
            [EmployeeRecord(employee_id="LC1"), EmployeeRecord(employee_id="LC2")],
        )
    assert store.documents == {}


def test_missing_documents_return_none(registry):
    assert registry.get_organization("ORG404") is None
    assert registry.get_employee("ORG001", "EMP404") is None
    assert registry.find_doctor("XX00000", "Nobody", "Nowhere") is None


def test_every_read_maps_outage(registry, firestore):
    firestore.fail = True
    with pytest.raises(RegistryUnavailableException):
        registry.find_doctor("MH12345", "Dr. John Smith", "Medical Council of India")
    with pytest.raises(RegistryUnavailableException):
        registry.get_organization("ORG001")
    with pytest.raises(RegistryUnavailableException):
        registry.get_employee("ORG001", "EMP001")
    with pytest.raises(RegistryUnavailableException):
        registry.add_doctor("MH1", "Dr. X", "Council")


def test_malformed_entry_is_reported_as_unavailable(registry, firestore):
    firestore.documents[(ORGANIZATIONS_COLLECTION, "ORG009")] = {"emailDomains": ["riverclinic.com"]}
    with pytest.raises(RegistryUnavailableException):
        registry.get_organization("ORG009")
