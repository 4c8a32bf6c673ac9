"""
Verification Engine - Decides whether a claimed professional identity is legitimate.

Two modes exist, selected by VERIFICATION_MODE:
- registry: doctors and staff are matched against the credential registry
- domain: the email domain is compared with a per-role allow-list

Both are read-only. A registry outage raises RegistryUnavailableException so
callers can tell "store down" from "credentials invalid" in their logs, while
still denying access in either case.
"""
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Optional

from ..config import settings
from ..auth.models import UserRole
from .registry import CredentialRegistry
from .schemas import DoctorRecord, OrganizationRecord

logger = logging.getLogger(__name__)

ORGANIZATION_NOT_FOUND = "Organization not found"
EMAIL_DOMAIN_NOT_AUTHORIZED = "Email domain not authorized for this organization"
EMPLOYEE_NOT_FOUND = "Employee ID not found in organization"


def email_domain(email: str) -> str:
    """Lower-cased part after the last '@', or an empty string."""
    if "@" not in email:
        return ""
    return email.rsplit("@", 1)[1].strip().lower()


@dataclass
class StaffVerificationResult:
    """Outcome of a staff check; reason names the first failed condition."""
    verified: bool
    reason: Optional[str] = None
    organization: Optional[OrganizationRecord] = None


class VerificationEngine:
    """
    Registry-backed doctor and staff checks.
    """

    def __init__(self, registry: CredentialRegistry):
        self.registry = registry

    def find_doctor(self, license_number: str, full_name: str, medical_council: str) -> Optional[DoctorRecord]:
        """
        Look up the registry entry matching all three fields exactly.

        The license number is upper-cased and the name trimmed before lookup;
        nothing else is normalized, so a case difference in the name fails.
        """
        return self.registry.find_doctor(
            license_number.strip().upper(),
            full_name.strip(),
            medical_council,
        )

    def verify_doctor(self, license_number: str, full_name: str, medical_council: str) -> bool:
        return self.find_doctor(license_number, full_name, medical_council) is not None

    def check_staff(self, email: str, organization_id: str, employee_id: str) -> StaffVerificationResult:
        """
        Check, in order and stopping at the first failure:
        1. the organization exists
        2. the email domain is one of the organization's domains
        3. the employee id exists inside that organization
        """
        organization = self.registry.get_organization(organization_id)
        if organization is None:
            return StaffVerificationResult(False, ORGANIZATION_NOT_FOUND)

        if email_domain(email) not in set(organization.email_domains):
            return StaffVerificationResult(False, EMAIL_DOMAIN_NOT_AUTHORIZED, organization)

        if self.registry.get_employee(organization_id, employee_id) is None:
            return StaffVerificationResult(False, EMPLOYEE_NOT_FOUND, organization)

        return StaffVerificationResult(True, organization=organization)

    def verify_staff(self, email: str, organization_id: str, employee_id: str) -> bool:
        return self.check_staff(email, organization_id, employee_id).verified


class DomainAllowList:
    """
    Email-domain verification used when VERIFICATION_MODE is "domain".

    Patients are always allowed. Other roles pass when the email domain matches
    any allow-listed domain for the role, compared case-insensitively.
    """

    def __init__(self, domains_by_role: Dict[UserRole, Iterable[str]]):
        self.domains_by_role = {
            role: {domain.strip().lower() for domain in domains}
            for role, domains in domains_by_role.items()
        }

    @classmethod
    def from_settings(cls) -> "DomainAllowList":
        return cls({
            UserRole.DOCTOR: settings.doctor_email_domains,
            UserRole.STAFF: settings.staff_email_domains,
        })

    def is_allowed(self, email: str, role: UserRole) -> bool:
        if role == UserRole.PATIENT:
            return True
        return email_domain(email) in self.domains_by_role.get(role, set())
