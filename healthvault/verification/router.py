"""
Verification routes: direct credential checks and credential registry administration.
"""
import logging

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..core.audit_service import create_audit_log
from ..auth.dependencies import require_admin
from ..auth.exceptions import DoctorVerificationFailedException, StaffVerificationFailedException
from ..auth.models import User
from .registry import CredentialRegistry, get_credential_registry
from .schemas import (
    DoctorRecord,
    DoctorVerificationRequest,
    DoctorVerificationResponse,
    OrganizationRecord,
    StaffVerificationRequest,
    StaffVerificationResponse,
    VerifiedDoctorCreate,
    VerifiedOrganizationCreate,
)
from .service import VerificationEngine

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Verification"])
registry_router = APIRouter(prefix="/admin/registry", tags=["Credential Registry"])


@router.post("/verify-doctor", response_model=DoctorVerificationResponse, summary="Verify Doctor Credentials")
def verify_doctor_route(
    data: DoctorVerificationRequest,
    registry: CredentialRegistry = Depends(get_credential_registry)
):
    """
    Check a license number, name and medical council against the registry
    without creating an account. Registry outages answer 503.
    """
    record = VerificationEngine(registry).find_doctor(data.license_number, data.full_name, data.medical_council)
    if record is None:
        logger.info(f"Direct doctor check failed for license {data.license_number.upper()}")
        raise DoctorVerificationFailedException()
    return DoctorVerificationResponse(
        message="Doctor verified successfully",
        license_number=record.license_number,
        full_name=record.full_name,
        medical_council=record.medical_council,
    )


@router.post("/verify-staff", response_model=StaffVerificationResponse, summary="Verify Staff Credentials")
def verify_staff_route(
    data: StaffVerificationRequest,
    registry: CredentialRegistry = Depends(get_credential_registry)
):
    """
    Check organization, email domain and employee id, reporting the first
    condition that fails.
    """
    result = VerificationEngine(registry).check_staff(data.email, data.organization_id, data.employee_id)
    if not result.verified:
        logger.info(f"Direct staff check failed for {data.organization_id}/{data.employee_id}: {result.reason}")
        raise StaffVerificationFailedException(result.reason)
    return StaffVerificationResponse(
        message="Staff verified successfully",
        organization_id=result.organization.id,
        organization_name=result.organization.name,
        employee_id=data.employee_id,
    )


@registry_router.post(
    "/doctors",
    response_model=DoctorRecord,
    status_code=status.HTTP_201_CREATED,
    summary="Add Verified Doctor"
)
def add_verified_doctor_route(
    data: VerifiedDoctorCreate,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
    registry: CredentialRegistry = Depends(get_credential_registry)
):
    record = registry.add_doctor(data.license_number, data.full_name, data.medical_council, data.specialization)
    create_audit_log(db, action="REGISTRY_DOCTOR_ADDED", user_id=admin.id, request=request, details={"license_number": record.license_number})
    return record


@registry_router.post(
    "/organizations",
    response_model=OrganizationRecord,
    status_code=status.HTTP_201_CREATED,
    summary="Add Verified Organization"
)
def add_verified_organization_route(
    data: VerifiedOrganizationCreate,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
    registry: CredentialRegistry = Depends(get_credential_registry)
):
    """
    Add an organization and its employees in one all-or-nothing write.
    """
    record = registry.add_organization(data.organization_id, data.name, data.email_domains, data.employees)
    create_audit_log(
        db,
        action="REGISTRY_ORGANIZATION_ADDED",
        user_id=admin.id,
        request=request,
        details={"organization_id": record.id, "employees": len(data.employees)}
    )
    return record
