"""
Authentication routes: password accounts, sessions, hybrid (external identity)
accounts, verification documents and admin review.

Errors raised by the service layer are AppException subclasses and are turned
into {"error": ...} responses by the handlers registered in main.py.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..core.firebase import ExternalPrincipal
from ..core.storage import read_document, store_document
from ..verification.registry import CredentialRegistry, get_optional_credential_registry
from .models import User
from .schemas import (
    SignupRequest,
    SignupResponse,
    LoginRequest,
    LoginResponse,
    RefreshRequest,
    LogoutRequest,
    AccessTokenResponse,
    MessageResponse,
    SyncExternalUserRequest,
    SyncExternalUserResponse,
    UserResponse,
    VerificationDocumentResponse,
    VerificationDecisionRequest,
    PendingVerificationListResponse,
)
from .dependencies import get_current_user, get_external_principal, require_admin
from . import bridge, service

# Set up logging
logger = logging.getLogger(__name__)

router = APIRouter(tags=["Authentication"])
admin_router = APIRouter(prefix="/admin/verifications", tags=["Verification Review"])

# ============================================================================
# PASSWORD ACCOUNTS
# ============================================================================

@router.post("/signup", response_model=SignupResponse, status_code=status.HTTP_201_CREATED, summary="Create Account")
async def signup_route(
    signup_data: SignupRequest,
    request: Request,
    db: Session = Depends(get_db),
    registry: Optional[CredentialRegistry] = Depends(get_optional_credential_registry)
):
    """
    Create a patient, doctor or staff account.

    Patients are active immediately. Doctors and staff are checked against the
    credential registry first and then wait for document review.
    """
    return await service.signup(db=db, data=signup_data, registry=registry, request=request)


@router.post("/login", response_model=LoginResponse, summary="User Login")
async def login_route(
    login_data: LoginRequest,
    request: Request,
    db: Session = Depends(get_db)
):
    """
    Exchange email and password for an access token and a refresh token.
    """
    return await service.login_user(
        db=db,
        email=login_data.email,
        password=login_data.password,
        request=request
    )


@router.post("/refresh", response_model=AccessTokenResponse, summary="Refresh Access Token")
async def refresh_route(
    refresh_data: RefreshRequest,
    request: Request,
    db: Session = Depends(get_db)
):
    return await service.refresh_access_token(db=db, refresh_token=refresh_data.refresh_token, request=request)


@router.post("/logout", response_model=MessageResponse, summary="User Logout")
async def logout_route(
    logout_data: LogoutRequest,
    request: Request,
    db: Session = Depends(get_db)
):
    """
    End the session behind a refresh token. Repeating the call is harmless.
    """
    await service.logout_user(db=db, refresh_token=logout_data.refresh_token, request=request)
    return MessageResponse(message="Logged out successfully")


@router.get("/me", response_model=UserResponse, summary="Current Account")
async def me_route(current_user: User = Depends(get_current_user)):
    return UserResponse.from_user(current_user)

# ============================================================================
# VERIFICATION DOCUMENTS
# ============================================================================

@router.post("/upload-verification", response_model=VerificationDocumentResponse, summary="Upload Verification Document")
async def upload_verification_route(
    request: Request,
    email: str = Form(...),
    password: str = Form(...),
    file: UploadFile = File(...),
    db: Session = Depends(get_db)
):
    """
    Attach a license or employment document to a pending doctor/staff profile.

    Pending accounts cannot log in yet, so the form carries email and password.
    """
    user = await service.authenticate_credentials(db, email, password, request)
    content = await read_document(file)
    document_path = await store_document(user.id, content, file.content_type)
    return await service.attach_verification_document(db, user, document_path, request)


@router.post(
    "/upload-verification/external",
    response_model=VerificationDocumentResponse,
    summary="Upload Verification Document (External Identity)"
)
async def upload_verification_external_route(
    request: Request,
    file: UploadFile = File(...),
    principal: ExternalPrincipal = Depends(get_external_principal),
    db: Session = Depends(get_db)
):
    user = bridge.get_external_profile(db, principal.uid)
    content = await read_document(file)
    document_path = await store_document(user.id, content, file.content_type)
    return await service.attach_verification_document(db, user, document_path, request)

# ============================================================================
# HYBRID ACCOUNTS
# ============================================================================

@router.post("/sync-external-user", response_model=SyncExternalUserResponse, summary="Link External Identity")
async def sync_external_user_route(
    sync_data: SyncExternalUserRequest,
    request: Request,
    principal: ExternalPrincipal = Depends(get_external_principal),
    db: Session = Depends(get_db),
    registry: Optional[CredentialRegistry] = Depends(get_optional_credential_registry)
):
    """
    Create (or return) the local account for the principal in the bearer ID token.

    The uid in the body must equal the token's uid.
    """
    user, created = await bridge.sync_external_user(
        db=db,
        principal=principal,
        data=sync_data,
        registry=registry,
        request=request
    )
    message = "User synced successfully" if created else "User already exists"
    return SyncExternalUserResponse(message=message, created=created, user=UserResponse.from_user(user))


@router.get("/profile", response_model=UserResponse, summary="External Account Profile")
async def profile_route(
    principal: ExternalPrincipal = Depends(get_external_principal),
    db: Session = Depends(get_db)
):
    return UserResponse.from_user(bridge.get_external_profile(db, principal.uid))

# ============================================================================
# ADMIN REVIEW
# ============================================================================

@admin_router.get("/pending", response_model=PendingVerificationListResponse, summary="Pending Verifications")
async def pending_verifications_route(
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin)
):
    users = service.list_pending_verifications(db)
    return PendingVerificationListResponse(users=[UserResponse.from_user(u) for u in users], total=len(users))


@admin_router.post("/{user_id}/approve", response_model=UserResponse, summary="Approve Verification")
async def approve_verification_route(
    user_id: int,
    request: Request,
    decision: Optional[VerificationDecisionRequest] = None,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin)
):
    user = await service.decide_verification(
        db, user_id, admin, approve=True, reason=decision.reason if decision else None, request=request
    )
    return UserResponse.from_user(user)


@admin_router.post("/{user_id}/reject", response_model=UserResponse, summary="Reject Verification")
async def reject_verification_route(
    user_id: int,
    request: Request,
    decision: Optional[VerificationDecisionRequest] = None,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin)
):
    user = await service.decide_verification(
        db, user_id, admin, approve=False, reason=decision.reason if decision else None, request=request
    )
    return UserResponse.from_user(user)
