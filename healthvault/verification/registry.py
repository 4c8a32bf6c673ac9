"""
Credential Registry - Firestore-backed store of pre-approved professional identities.

Layout:
- verified_doctors/{auto id}: DoctorRecord
- verified_organizations/{organization id}: OrganizationRecord
- verified_organizations/{organization id}/employees/{employee id}: EmployeeRecord

The auth flow only reads from it; writes come from the admin seeding endpoints
and scripts/seed_registry.py.
"""
import logging
from datetime import datetime, timezone
from typing import Iterable, Optional

from fastapi import Depends
from google.api_core.exceptions import GoogleAPICallError, RetryError
from google.cloud.firestore_v1.base_query import FieldFilter
from pydantic import ValidationError

from ..config import settings
from ..auth.exceptions import RegistryUnavailableException
from ..core.firebase import get_firestore_client
from .schemas import DoctorRecord, EmployeeRecord, OrganizationRecord

logger = logging.getLogger(__name__)

DOCTORS_COLLECTION = "verified_doctors"
ORGANIZATIONS_COLLECTION = "verified_organizations"
EMPLOYEES_COLLECTION = "employees"
DEFAULT_REGISTRY_SPECIALIZATION = "General Physician"

# Errors the Firestore client raises for transport, quota and server failures
REGISTRY_ERRORS = (GoogleAPICallError, RetryError, TimeoutError, ConnectionError)


class CredentialRegistry:
    """
    Read/write access to the credential registry through an injected Firestore client.

    Every failure of the underlying store surfaces as RegistryUnavailableException.
    """

    def __init__(self, client, timeout: Optional[float] = None):
        self.client = client
        self.timeout = timeout if timeout is not None else settings.registry_timeout_seconds

    def _organization_ref(self, organization_id: str):
        return self.client.collection(ORGANIZATIONS_COLLECTION).document(organization_id)

    def _parse(self, model, data: dict, label: str):
        try:
            return model.model_validate(data)
        except ValidationError as e:
            logger.error(f"Malformed registry entry {label}: {e.error_count()} invalid field(s)")
            raise RegistryUnavailableException()

    def find_doctor(self, license_number: str, full_name: str, medical_council: str) -> Optional[DoctorRecord]:
        """
        Exact match on (license_number, full_name, medical_council).

        Args:
            license_number: Already normalized (upper-cased)
            full_name: Already normalized (trimmed)
            medical_council: Compared as given

        Returns:
            The first matching record, or None
        """
        query = (
            self.client.collection(DOCTORS_COLLECTION)
            .where(filter=FieldFilter("licenseNumber", "==", license_number))
            .where(filter=FieldFilter("fullName", "==", full_name))
            .where(filter=FieldFilter("medicalCouncil", "==", medical_council))
            .limit(1)
        )
        try:
            snapshots = list(query.stream(timeout=self.timeout))
        except REGISTRY_ERRORS as e:
            logger.error(f"Doctor registry lookup failed: {str(e)}")
            raise RegistryUnavailableException()
        if not snapshots:
            return None
        return self._parse(DoctorRecord, snapshots[0].to_dict(), f"{DOCTORS_COLLECTION}/{snapshots[0].id}")

    def get_organization(self, organization_id: str) -> Optional[OrganizationRecord]:
        """Fetch an organization by id, or None if absent."""
        try:
            snapshot = self._organization_ref(organization_id).get(timeout=self.timeout)
        except REGISTRY_ERRORS as e:
            logger.error(f"Organization registry lookup failed for {organization_id}: {str(e)}")
            raise RegistryUnavailableException()
        if not snapshot.exists:
            return None
        return self._parse(
            OrganizationRecord,
            {**snapshot.to_dict(), "id": snapshot.id},
            f"{ORGANIZATIONS_COLLECTION}/{organization_id}",
        )

    def get_employee(self, organization_id: str, employee_id: str) -> Optional[EmployeeRecord]:
        """Fetch an employee within one organization, or None if absent."""
        try:
            snapshot = (
                self._organization_ref(organization_id)
                .collection(EMPLOYEES_COLLECTION)
                .document(employee_id)
                .get(timeout=self.timeout)
            )
        except REGISTRY_ERRORS as e:
            logger.error(f"Employee registry lookup failed for {organization_id}/{employee_id}: {str(e)}")
            raise RegistryUnavailableException()
        if not snapshot.exists:
            return None
        data = snapshot.to_dict()
        data.setdefault("employeeId", snapshot.id)
        return self._parse(EmployeeRecord, data, f"{organization_id}/{EMPLOYEES_COLLECTION}/{employee_id}")

    def add_doctor(
        self,
        license_number: str,
        full_name: str,
        medical_council: str,
        specialization: Optional[str] = None
    ) -> DoctorRecord:
        """
        Add a verified doctor. The license number is upper-cased and the name trimmed,
        matching the normalization applied at verification time.
        """
        record = DoctorRecord(
            license_number=license_number.strip().upper(),
            full_name=full_name.strip(),
            medical_council=medical_council.strip(),
            specialization=specialization or DEFAULT_REGISTRY_SPECIALIZATION,
        )
        data = record.model_dump(by_alias=True)
        data["verifiedAt"] = datetime.now(timezone.utc)
        try:
            self.client.collection(DOCTORS_COLLECTION).add(data, timeout=self.timeout)
        except REGISTRY_ERRORS as e:
            logger.error(f"Failed to add verified doctor {record.license_number}: {str(e)}")
            raise RegistryUnavailableException()
        logger.info(f"Verified doctor added to registry: {record.license_number}")
        return record

    def add_organization(
        self,
        organization_id: str,
        name: str,
        email_domains: Iterable[str],
        employees: Iterable[EmployeeRecord] = ()
    ) -> OrganizationRecord:
        """
        Write an organization and its employees as one atomic batch.

        Either the organization and every employee are stored, or nothing is.
        """
        record = OrganizationRecord(id=organization_id, name=name, email_domains=list(email_domains))
        now = datetime.now(timezone.utc)
        org_ref = self._organization_ref(organization_id)

        batch = self.client.batch()
        org_data = record.model_dump(by_alias=True, exclude={"id"})
        org_data["createdAt"] = now
        batch.set(org_ref, org_data)
        employee_count = 0
        for employee in employees:
            employee_data = employee.model_dump(by_alias=True)
            employee_data["addedAt"] = now
            batch.set(org_ref.collection(EMPLOYEES_COLLECTION).document(employee.employee_id), employee_data)
            employee_count += 1
        try:
            batch.commit(timeout=self.timeout)
        except REGISTRY_ERRORS as e:
            logger.error(f"Failed to add verified organization {organization_id}: {str(e)}")
            raise RegistryUnavailableException()
        logger.info(f"Verified organization added to registry: {organization_id} with {employee_count} employees")
        return record


def get_optional_credential_registry() -> Optional[CredentialRegistry]:
    """
    FastAPI dependency returning the registry over the shared Firestore client,
    or None when Firebase is not configured.
    """
    client = get_firestore_client()
    if client is None:
        return None
    return CredentialRegistry(client)


def get_credential_registry(
    registry: Optional[CredentialRegistry] = Depends(get_optional_credential_registry)
) -> CredentialRegistry:
    """
    FastAPI dependency for endpoints that cannot work without the registry.

    Raises:
        RegistryUnavailableException: If Firebase is not configured
    """
    if registry is None:
        raise RegistryUnavailableException("Credential registry not configured")
    return registry
