"""
Auth Schemas - Pydantic models for signup, login, sessions and account responses.

Requests accept snake_case or camelCase keys (the mobile client sends camelCase).
Responses are snake_case.
"""
from datetime import date, datetime
from typing import Annotated, List, Literal, Optional, Union
from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    StringConstraints,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from ..config import settings
from ..doctors.models import DEFAULT_SPECIALIZATION
from .models import UserRole, AccountStatus, VerificationStatus

SIGNUP_ROLES = (UserRole.PATIENT, UserRole.DOCTOR, UserRole.STAFF)

# Fields a role cannot sign up without
ROLE_REQUIRED_FIELDS = {
    UserRole.PATIENT: (),
    UserRole.DOCTOR: ("license_number", "medical_council"),
    UserRole.STAFF: ("organization_id", "employee_id", "department"),
}

class RequestModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)


# Passwords are hashed exactly as typed
Password = Annotated[str, StringConstraints(strip_whitespace=False)]


class ProfileFields(RequestModel):
    """
    Account role plus the role-specific profile fields.

    - Patient: optional demographics
    - Doctor: license_number and medical_council required; specialization
      defaults to "General Medicine"
    - Staff: organization_id, employee_id and department required
    """
    role: UserRole
    full_name: str = Field(..., min_length=2)

    # Patient fields
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    address: Optional[str] = None
    blood_group: Optional[str] = None
    emergency_contact: Optional[str] = None
    phone_number: Optional[str] = None

    # Doctor fields
    specialization: Optional[str] = None
    license_number: Optional[str] = None
    medical_council: Optional[str] = None
    qualification: Optional[str] = None
    experience: Optional[int] = Field(None, ge=0)

    # Staff fields
    organization_id: Optional[str] = None
    employee_id: Optional[str] = None
    department: Optional[str] = None
    position: Optional[str] = None

    @field_validator("role", mode="before")
    @classmethod
    def normalize_role(cls, v):
        if isinstance(v, str):
            v = v.strip().upper()
        if v not in [role.value for role in SIGNUP_ROLES]:
            raise ValueError("Role must be one of PATIENT, DOCTOR, STAFF")
        return v

    @model_validator(mode="after")
    def check_role_fields(self):
        missing = [name for name in ROLE_REQUIRED_FIELDS[self.role] if not getattr(self, name)]
        if missing:
            raise ValueError(f"Missing required fields for role {self.role.value}: {', '.join(missing)}")
        if self.role == UserRole.DOCTOR and not self.specialization:
            self.specialization = DEFAULT_SPECIALIZATION
        if self.license_number:
            self.license_number = self.license_number.upper()
        return self


class SignupRequest(ProfileFields):
    """
    Signup Schema - Password registration for patients, doctors and staff

    Fields:
    - email: Account email (unique)
    - password: Plain text password, at least PASSWORD_MIN_LENGTH characters
    - role and profile fields: see ProfileFields
    """
    email: EmailStr
    password: Password

    @field_validator("password")
    @classmethod
    def check_password_length(cls, v: str) -> str:
        if len(v) < settings.password_min_length:
            raise ValueError(f"Password must be at least {settings.password_min_length} characters")
        return v


class SyncExternalUserRequest(ProfileFields):
    """
    Sync Schema - Reconciles an externally authenticated principal

    external_uid must equal the uid of the bearer ID token. The mobile client
    sends it as firebaseUid.
    """
    external_uid: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("external_uid", "externalUid", "firebase_uid", "firebaseUid"),
    )
    email: EmailStr


class LoginRequest(RequestModel):
    email: EmailStr
    password: Password = Field(..., min_length=1)


class RefreshRequest(RequestModel):
    refresh_token: str = Field(..., min_length=1)


class LogoutRequest(RequestModel):
    refresh_token: str = Field(..., min_length=1)


class VerificationDecisionRequest(RequestModel):
    """Admin note attached to an approval or rejection."""
    reason: Optional[str] = Field(None, max_length=500)


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

class PatientProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    role: Literal["PATIENT"] = "PATIENT"
    id: int
    full_name: str
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    phone_number: Optional[str] = None
    address: Optional[str] = None
    blood_group: Optional[str] = None
    emergency_contact: Optional[str] = None


class DoctorProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    role: Literal["DOCTOR"] = "DOCTOR"
    id: int
    full_name: str
    specialization: str
    license_number: Optional[str] = None
    medical_council: Optional[str] = None
    qualification: Optional[str] = None
    experience: Optional[int] = None
    phone_number: Optional[str] = None
    verification_status: VerificationStatus
    verification_document: Optional[str] = None
    verified_at: Optional[datetime] = None
    verified_by: Optional[int] = None


class StaffProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    role: Literal["STAFF"] = "STAFF"
    id: int
    full_name: str
    organization_id: Optional[str] = None
    employee_id: Optional[str] = None
    department: Optional[str] = None
    position: Optional[str] = None
    phone_number: Optional[str] = None
    verification_status: VerificationStatus
    verification_document: Optional[str] = None
    verified_at: Optional[datetime] = None
    verified_by: Optional[int] = None


ProfileResponse = Annotated[
    Union[PatientProfileResponse, DoctorProfileResponse, StaffProfileResponse],
    Field(discriminator="role"),
]

PROFILE_RESPONSES = {
    UserRole.PATIENT: PatientProfileResponse,
    UserRole.DOCTOR: DoctorProfileResponse,
    UserRole.STAFF: StaffProfileResponse,
}


class UserResponse(BaseModel):
    """
    User Response Schema - Non-secret account fields plus the role profile

    The password hash is never part of any response.
    """
    id: int
    email: EmailStr
    role: UserRole
    email_verified: bool
    account_status: AccountStatus
    external_uid: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    last_login: Optional[datetime] = None
    profile: Optional[ProfileResponse] = None

    @classmethod
    def from_user(cls, user) -> "UserResponse":
        profile = user.profile
        profile_response = None
        if profile is not None:
            profile_response = PROFILE_RESPONSES[user.role].model_validate(profile)
        return cls(
            id=user.id,
            email=user.email,
            role=user.role,
            email_verified=user.email_verified,
            account_status=user.account_status,
            external_uid=user.external_uid,
            created_at=user.created_at,
            updated_at=user.updated_at,
            last_login=user.last_login,
            profile=profile_response,
        )


class SignupResponse(BaseModel):
    message: str
    user: UserResponse
    next_step: Optional[str] = None


class LoginResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse


class AccessTokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int


class MessageResponse(BaseModel):
    message: str


class SyncExternalUserResponse(BaseModel):
    message: str
    created: bool
    user: UserResponse


class VerificationDocumentResponse(BaseModel):
    message: str
    document_path: str
    verification_status: VerificationStatus


class PendingVerificationListResponse(BaseModel):
    users: List[UserResponse]
    total: int
