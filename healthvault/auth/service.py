"""
Authentication service layer for business logic.

Signup runs: validate -> uniqueness pre-check -> professional identity check
(doctor/staff) -> hash password -> persist account and profile in one commit.
Nothing is written before the identity check passes, and the unique email
constraint (not the pre-check) is what rejects concurrent duplicates.
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import Request
from starlette.concurrency import run_in_threadpool
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..config import settings
from ..core.audit_service import create_audit_log
from ..core.security import (
    hash_password,
    verify_password,
    create_access_token,
    create_refresh_token,
    decode_refresh_token,
    is_token_expired,
)
from ..doctors.models import Doctor
from ..patients.models import Patient
from ..staff.models import Staff
from ..exceptions import AppException, ConflictException, DependencyException, NotFoundException
from ..verification.registry import CredentialRegistry
from ..verification.service import DomainAllowList, VerificationEngine
from .models import User, UserRole, UserSession, AccountStatus, VerificationStatus
from .schemas import (
    ProfileFields,
    SignupRequest,
    SignupResponse,
    LoginResponse,
    AccessTokenResponse,
    UserResponse,
    VerificationDocumentResponse,
)
from .exceptions import (
    InvalidCredentialsException,
    SessionExpiredException,
    EmailAlreadyExistsException,
    LicenseAlreadyRegisteredException,
    AccountStatusException,
    AuthorizationException,
    DoctorVerificationFailedException,
    StaffVerificationFailedException,
    EmailDomainNotAllowedException,
    ProfileMismatchException,
    RegistryUnavailableException,
)

# Set up logging
logger = logging.getLogger(__name__)

LOGIN_STATUS_MESSAGES = {
    AccountStatus.SUSPENDED: "Account suspended. Please contact support.",
    AccountStatus.PENDING_VERIFICATION: (
        "Account pending verification. Please upload your verification document "
        "and wait for administrator approval."
    ),
}

def initial_account_status(role: UserRole) -> AccountStatus:
    """Patients are active at once; doctors and staff wait for verification."""
    if role == UserRole.PATIENT:
        return AccountStatus.ACTIVE
    return AccountStatus.PENDING_VERIFICATION

def build_profile(data: ProfileFields):
    """
    Create the single role-specific profile for a new account.

    Doctor and staff profiles start with verification status PENDING.
    """
    if data.role == UserRole.PATIENT:
        return Patient(
            full_name=data.full_name,
            date_of_birth=data.date_of_birth,
            gender=data.gender,
            phone_number=data.phone_number,
            address=data.address,
            blood_group=data.blood_group,
            emergency_contact=data.emergency_contact,
        )
    if data.role == UserRole.DOCTOR:
        return Doctor(
            full_name=data.full_name,
            specialization=data.specialization,
            license_number=data.license_number,
            medical_council=data.medical_council,
            qualification=data.qualification,
            experience=data.experience,
            phone_number=data.phone_number,
            verification_status=VerificationStatus.PENDING,
        )
    if data.role == UserRole.STAFF:
        return Staff(
            full_name=data.full_name,
            organization_id=data.organization_id,
            employee_id=data.employee_id,
            department=data.department,
            position=data.position,
            phone_number=data.phone_number,
            verification_status=VerificationStatus.PENDING,
        )
    raise ValueError(f"Role {data.role} cannot own a profile")

def attach_profile(user: User, profile) -> None:
    if isinstance(profile, Patient):
        user.patient_profile = profile
    elif isinstance(profile, Doctor):
        user.doctor_profile = profile
    elif isinstance(profile, Staff):
        user.staff_profile = profile
    else:
        raise ValueError(f"Unknown profile type: {type(profile).__name__}")

def verify_professional_identity(
    email: str,
    data: ProfileFields,
    registry: Optional[CredentialRegistry]
) -> None:
    """
    Gate doctor and staff accounts before anything is persisted.

    Patients pass without any check. A registry outage is logged as such and
    then denied exactly like invalid credentials.

    Raises:
        VerificationFailedException subclass: If the claimed identity is not confirmed
    """
    if data.role == UserRole.PATIENT:
        return

    failure = (
        DoctorVerificationFailedException if data.role == UserRole.DOCTOR
        else StaffVerificationFailedException
    )

    if settings.verification_mode == "domain":
        if not DomainAllowList.from_settings().is_allowed(email, data.role):
            logger.warning(f"Email domain of {email} not allowed for role {data.role.value}")
            raise EmailDomainNotAllowedException()
        return

    if registry is None:
        logger.error(f"Verification engine error for {email}: credential registry not configured")
        raise failure()

    engine = VerificationEngine(registry)
    try:
        if data.role == UserRole.DOCTOR:
            verified = engine.verify_doctor(data.license_number, data.full_name, data.medical_council)
        else:
            verified = engine.verify_staff(email, data.organization_id, data.employee_id)
    except RegistryUnavailableException:
        logger.error(f"Verification engine error for {email}: credential registry unavailable")
        raise failure()

    if not verified:
        logger.warning(f"{data.role.value} credentials rejected by registry for {email}")
        raise failure()

def conflict_for_integrity_error(db: Session, email: str, license_number: Optional[str]) -> ConflictException:
    """Work out which unique constraint a failed insert hit."""
    if db.query(User).filter(User.email == email).first():
        return EmailAlreadyExistsException()
    if license_number and db.query(Doctor).filter(Doctor.license_number == license_number).first():
        return LicenseAlreadyRegisteredException()
    return ConflictException("Account already exists")

async def signup(
    db: Session,
    data: SignupRequest,
    registry: Optional[CredentialRegistry] = None,
    request: Optional[Request] = None
) -> SignupResponse:
    """
    Register a new patient, doctor or staff account.

    Args:
        db: Database session
        data: Validated signup payload
        registry: Credential registry (only consulted for doctor/staff in registry mode)
        request: FastAPI request object for audit logging

    Returns:
        SignupResponse with the created account (never the password hash)

    Raises:
        EmailAlreadyExistsException: If email already exists
        VerificationFailedException: If doctor/staff credentials are not confirmed
    """
    email = data.email.lower()
    logger.info(f"Signup attempt for {email} as {data.role.value}")

    if db.query(User).filter(User.email == email).first():
        logger.warning(f"Signup failed: Email {email} already registered")
        create_audit_log(db, action="SIGNUP_FAILED_EMAIL_EXISTS", request=request, details={"email": email})
        raise EmailAlreadyExistsException()

    try:
        await run_in_threadpool(verify_professional_identity, email, data, registry)
    except AppException:
        create_audit_log(db, action="SIGNUP_REJECTED_VERIFICATION", request=request, details={"email": email, "role": data.role.value})
        raise

    user = User(
        email=email,
        password_hash=await run_in_threadpool(hash_password, data.password),
        role=data.role,
        email_verified=False,
        account_status=initial_account_status(data.role),
    )
    attach_profile(user, build_profile(data))

    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning(f"Signup failed: unique constraint hit for {email}")
        raise conflict_for_integrity_error(db, email, data.license_number)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Signup failed for {email}: {str(e)}")
        raise DependencyException("An error occurred while creating the account")
    db.refresh(user)

    logger.info(f"Account created: {user.id} ({data.role.value}, {user.account_status.value})")
    create_audit_log(db, action="SIGNUP_SUCCESS", user_id=user.id, request=request, details={"email": email, "role": data.role.value})

    if user.account_status == AccountStatus.ACTIVE:
        message = "Account created successfully."
        next_step = "login"
    else:
        message = "Account created successfully. Your account is pending verification."
        next_step = "upload_verification"
    return SignupResponse(message=message, user=UserResponse.from_user(user), next_step=next_step)

async def authenticate_credentials(
    db: Session,
    email: str,
    password: str,
    request: Optional[Request] = None
) -> User:
    """
    Check email and password without looking at account status.

    Unknown email, deleted account and wrong password all raise the same error.

    Raises:
        InvalidCredentialsException: If credentials are invalid
    """
    email = email.lower()
    user = db.query(User).filter(User.email == email).first()
    password_ok = await run_in_threadpool(verify_password, password, user.password_hash if user else None)

    if not user or not password_ok or user.account_status == AccountStatus.DELETED:
        logger.warning(f"Login failed: Invalid credentials for {email}")
        create_audit_log(
            db,
            action="LOGIN_FAILED_INVALID_CREDENTIALS",
            user_id=user.id if user else None,
            request=request,
            details={"email": email}
        )
        raise InvalidCredentialsException()
    return user

async def login_user(
    db: Session,
    email: str,
    password: str,
    request: Optional[Request] = None
) -> LoginResponse:
    """
    Authenticate a user, open a refresh session and issue tokens.

    Args:
        db: Database session
        email: User's email address
        password: User's password
        request: FastAPI request object for audit logging

    Returns:
        LoginResponse with access token, refresh token and account

    Raises:
        InvalidCredentialsException: If credentials are invalid
        AccountStatusException: If the account is suspended or pending verification
    """
    user = await authenticate_credentials(db, email, password, request)

    if user.account_status != AccountStatus.ACTIVE:
        logger.warning(f"Login refused: Account status {user.account_status.value} for user {user.id}")
        create_audit_log(db, action="LOGIN_REFUSED_ACCOUNT_STATUS", user_id=user.id, request=request, details={"status": user.account_status.value})
        raise AccountStatusException(
            user.account_status,
            LOGIN_STATUS_MESSAGES.get(user.account_status, "Account access denied")
        )

    access_token = create_access_token(user.id, user.role)
    refresh_token, expires_at = create_refresh_token(user.id)

    db.add(UserSession(user_id=user.id, refresh_token=refresh_token, expires_at=expires_at))
    user.last_login = datetime.now(timezone.utc)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Could not open session for user {user.id}: {str(e)}")
        raise DependencyException("An error occurred during login")
    db.refresh(user)

    logger.info(f"Login successful: User {user.id}")
    create_audit_log(db, action="LOGIN_SUCCESS", user_id=user.id, request=request)

    return LoginResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        expires_in=settings.access_token_expire_minutes * 60,
        user=UserResponse.from_user(user),
    )

async def refresh_access_token(
    db: Session,
    refresh_token: str,
    request: Optional[Request] = None
) -> AccessTokenResponse:
    """
    Issue a new access token for a live refresh session.

    The refresh token itself is not rotated. An expired session row is deleted
    on the spot.

    Raises:
        InvalidTokenException: If the refresh token signature or expiry is invalid
        SessionExpiredException: If no live session holds this token
        AccountStatusException: If the account is no longer active
    """
    payload = decode_refresh_token(refresh_token)

    session = db.query(UserSession).filter(UserSession.refresh_token == refresh_token).first()
    if not session or session.user_id != payload["id"]:
        logger.warning(f"Refresh refused: no session for user {payload['id']}")
        raise SessionExpiredException()

    if is_token_expired(session.expires_at):
        logger.info(f"Refresh refused: session {session.id} expired, removing it")
        try:
            db.delete(session)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.warning(f"Could not remove expired session: {str(e)}")
        raise SessionExpiredException()

    user = session.user
    if user.account_status != AccountStatus.ACTIVE:
        raise AccountStatusException(user.account_status)

    logger.info(f"Access token refreshed for user {user.id}")
    create_audit_log(db, action="ACCESS_TOKEN_REFRESHED", user_id=user.id, request=request)
    return AccessTokenResponse(
        access_token=create_access_token(user.id, user.role),
        expires_in=settings.access_token_expire_minutes * 60,
    )

async def logout_user(
    db: Session,
    refresh_token: str,
    request: Optional[Request] = None
) -> None:
    """
    Delete the session holding this refresh token.

    Logging out an unknown or already removed session succeeds, and a failed
    delete is treated as already logged out.
    """
    try:
        session = db.query(UserSession).filter(UserSession.refresh_token == refresh_token).first()
        if session is None:
            logger.info("Logout for unknown session, nothing to delete")
            return
        user_id = session.user_id
        db.delete(session)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning(f"Logout session delete failed, treating as logged out: {str(e)}")
        return
    logger.info(f"Logout: session removed for user {user_id}")
    create_audit_log(db, action="LOGOUT", user_id=user_id, request=request)

def get_user_by_id(db: Session, user_id: int) -> Optional[User]:
    return db.query(User).filter(User.id == user_id).first()

async def attach_verification_document(
    db: Session,
    user: User,
    document_path: str,
    request: Optional[Request] = None
) -> VerificationDocumentResponse:
    """
    Record an uploaded verification document on a pending doctor/staff profile.

    Raises:
        AuthorizationException: If the account is not a doctor or staff account
        ProfileMismatchException: If the account has no profile for its role
        ConflictException: If the profile is no longer pending review
    """
    if not user.requires_verification:
        raise AuthorizationException("Only doctor and staff accounts upload verification documents")
    profile = user.profile
    if profile is None:
        raise ProfileMismatchException()
    if not profile.is_pending:
        raise ConflictException(f"Verification already {profile.verification_status.value.lower()}")

    profile.verification_document = document_path
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Could not save verification document for user {user.id}: {str(e)}")
        raise DependencyException("An error occurred while saving the verification document")

    logger.info(f"Verification document attached for user {user.id}")
    create_audit_log(db, action="VERIFICATION_DOCUMENT_UPLOADED", user_id=user.id, request=request)
    return VerificationDocumentResponse(
        message="Verification document uploaded. An administrator will review it.",
        document_path=document_path,
        verification_status=profile.verification_status,
    )

def list_pending_verifications(db: Session) -> List[User]:
    """Doctor and staff accounts still waiting for review."""
    return (
        db.query(User)
        .filter(
            User.role.in_([UserRole.DOCTOR, UserRole.STAFF]),
            User.account_status == AccountStatus.PENDING_VERIFICATION,
        )
        .order_by(User.created_at)
        .all()
    )

async def decide_verification(
    db: Session,
    user_id: int,
    admin: User,
    approve: bool,
    reason: Optional[str] = None,
    request: Optional[Request] = None
) -> User:
    """
    Approve or reject a pending doctor/staff verification.

    Approval activates the account; rejection suspends it.

    Returns:
        The updated user

    Raises:
        NotFoundException: If no doctor/staff account has this id
        ConflictException: If the profile is not pending review
    """
    user = get_user_by_id(db, user_id)
    if not user or not user.requires_verification:
        raise NotFoundException("Doctor or staff account not found")
    profile = user.profile
    if profile is None:
        raise ProfileMismatchException()
    if not profile.is_pending:
        raise ConflictException(f"Verification already {profile.verification_status.value.lower()}")

    now = datetime.now(timezone.utc)
    profile.verification_status = VerificationStatus.APPROVED if approve else VerificationStatus.REJECTED
    profile.verified_at = now
    profile.verified_by = admin.id
    user.account_status = AccountStatus.ACTIVE if approve else AccountStatus.SUSPENDED
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Could not record verification decision for user {user_id}: {str(e)}")
        raise DependencyException("An error occurred while processing the verification")
    db.refresh(user)

    action = "VERIFICATION_APPROVED" if approve else "VERIFICATION_REJECTED"
    logger.info(f"{action}: user {user_id} by admin {admin.id}")
    create_audit_log(db, action=action, user_id=admin.id, request=request, details={"target_user_id": user_id, "reason": reason})
    return user
