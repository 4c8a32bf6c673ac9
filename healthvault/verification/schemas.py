"""
Verification Schemas - Credential registry records and the verify endpoint payloads.

Registry documents use camelCase field names (licenseNumber, emailDomains, ...)
because the registry is shared with the mobile client; the models accept both
spellings and serialize in snake_case like the rest of the API.
"""
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

class RegistryModel(BaseModel):
    """Base for registry records and requests: camelCase or snake_case input."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DoctorRecord(RegistryModel):
    """
    Doctor Record - A pre-approved medical practitioner

    Fields:
    - license_number: Upper-cased license number
    - full_name: Trimmed name exactly as registered
    - medical_council: Issuing medical council
    - specialization: Registered specialization
    - status: Registry status ("active")
    """
    license_number: str
    full_name: str
    medical_council: str
    specialization: Optional[str] = None
    status: str = "active"


class EmployeeRecord(RegistryModel):
    """
    Employee Record - A pre-approved employee of an organization

    Stored in the organization's employees sub-collection, keyed by employee_id.
    """
    employee_id: str
    email: Optional[str] = None
    name: str = ""
    department: Optional[str] = None
    status: str = "active"


class OrganizationRecord(RegistryModel):
    """
    Organization Record - A pre-approved healthcare organization

    Fields:
    - id: Document id (e.g. ORG001)
    - name: Organization name
    - email_domains: Lower-cased email domains its staff may sign up with
    - status: Registry status ("active")
    """
    id: str
    name: str
    email_domains: List[str] = Field(default_factory=list)
    status: str = "active"

    @field_validator("email_domains")
    @classmethod
    def lowercase_domains(cls, v: List[str]) -> List[str]:
        return [domain.strip().lower() for domain in v]


class DoctorVerificationRequest(RegistryModel):
    """Direct doctor credential check without account creation."""
    license_number: str = Field(..., min_length=1)
    full_name: str = Field(..., min_length=1)
    medical_council: str = Field(..., min_length=1)


class StaffVerificationRequest(RegistryModel):
    """Direct staff credential check without account creation."""
    email: EmailStr
    organization_id: str = Field(..., min_length=1)
    employee_id: str = Field(..., min_length=1)


class DoctorVerificationResponse(BaseModel):
    message: str
    license_number: str
    full_name: str
    medical_council: str
    verified: bool = True


class StaffVerificationResponse(BaseModel):
    message: str
    organization_id: str
    organization_name: str
    employee_id: str
    verified: bool = True


class VerifiedDoctorCreate(RegistryModel):
    """Admin request adding a doctor to the registry."""
    license_number: str = Field(..., min_length=1)
    full_name: str = Field(..., min_length=1)
    medical_council: str = Field(..., min_length=1)
    specialization: Optional[str] = None


class VerifiedOrganizationCreate(RegistryModel):
    """Admin request adding an organization and its employees to the registry."""
    organization_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    email_domains: List[str] = Field(..., min_length=1)
    employees: List[EmployeeRecord] = Field(default_factory=list)
