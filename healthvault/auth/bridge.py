"""
Identity bridge between the external identity provider and local accounts.

An externally authenticated principal (a verified ID token) is linked to a
local User through its external uid. Linking is idempotent: syncing the same
uid twice returns the existing account instead of creating another one.
"""
import logging
from typing import Optional, Tuple

from fastapi import Request
from starlette.concurrency import run_in_threadpool
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..core.audit_service import create_audit_log
from ..core.firebase import ExternalPrincipal
from ..exceptions import AppException, AuthorizationException, DependencyException
from ..verification.registry import CredentialRegistry
from .models import User, UserRole
from .schemas import SyncExternalUserRequest
from .service import (
    attach_profile,
    build_profile,
    conflict_for_integrity_error,
    initial_account_status,
    verify_professional_identity,
)
from .exceptions import (
    EmailAlreadyExistsException,
    ExternalUidMismatchException,
    ProfileMismatchException,
    UserNotFoundException,
)

logger = logging.getLogger(__name__)

def get_user_by_external_uid(db: Session, external_uid: str) -> Optional[User]:
    return db.query(User).filter(User.external_uid == external_uid).first()

async def sync_external_user(
    db: Session,
    principal: ExternalPrincipal,
    data: SyncExternalUserRequest,
    registry: Optional[CredentialRegistry] = None,
    request: Optional[Request] = None
) -> Tuple[User, bool]:
    """
    Create the local account for an external principal, or return the one already linked.

    Doctor and staff accounts go through the same credential check as password
    signup before anything is written.

    Args:
        db: Database session
        principal: Identity from the verified bearer ID token
        data: Role and profile fields sent by the client
        registry: Credential registry for doctor/staff checks
        request: FastAPI request object for audit logging

    Returns:
        (user, created) where created is False when the uid was already linked

    Raises:
        ExternalUidMismatchException: If the body uid is not the token's uid
        AuthorizationException: If the body email is not the token's email
        EmailAlreadyExistsException: If the email belongs to another account
        VerificationFailedException: If doctor/staff credentials are not confirmed
    """
    if data.external_uid != principal.uid:
        logger.warning(f"Sync refused: body uid {data.external_uid} does not match token uid {principal.uid}")
        create_audit_log(db, action="EXTERNAL_SYNC_UID_MISMATCH", request=request, details={"token_uid": principal.uid})
        raise ExternalUidMismatchException()

    existing = get_user_by_external_uid(db, principal.uid)
    if existing:
        logger.info(f"External principal {principal.uid} already linked to user {existing.id}")
        return existing, False

    email = data.email.lower()
    token_email = principal.email.lower() if principal.email else None
    if token_email and token_email != email:
        logger.warning(f"Sync refused for {principal.uid}: body email differs from token email")
        create_audit_log(db, action="EXTERNAL_SYNC_EMAIL_MISMATCH", request=request, details={"token_uid": principal.uid})
        raise AuthorizationException("Email does not match the external identity")

    if db.query(User).filter(User.email == email).first():
        logger.warning(f"Sync refused: Email {email} already registered to another account")
        create_audit_log(db, action="EXTERNAL_SYNC_EMAIL_EXISTS", request=request, details={"email": email})
        raise EmailAlreadyExistsException()

    try:
        await run_in_threadpool(verify_professional_identity, email, data, registry)
    except AppException:
        create_audit_log(db, action="EXTERNAL_SYNC_REJECTED_VERIFICATION", request=request, details={"email": email, "role": data.role.value})
        raise

    user = User(
        email=email,
        password_hash=None,
        external_uid=principal.uid,
        role=data.role,
        email_verified=principal.email_verified and token_email == email,
        account_status=initial_account_status(data.role),
    )
    attach_profile(user, build_profile(data))

    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        # a concurrent sync for the same uid won the race
        raced = get_user_by_external_uid(db, principal.uid)
        if raced:
            logger.info(f"External principal {principal.uid} linked concurrently to user {raced.id}")
            return raced, False
        raise conflict_for_integrity_error(db, email, data.license_number)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"External sync failed for {principal.uid}: {str(e)}")
        raise DependencyException("An error occurred while creating the account")
    db.refresh(user)

    logger.info(f"External principal {principal.uid} linked to new user {user.id} ({data.role.value})")
    create_audit_log(db, action="EXTERNAL_USER_SYNCED", user_id=user.id, request=request, details={"role": data.role.value})
    return user, True

def get_external_profile(db: Session, external_uid: str) -> User:
    """
    Load the local account linked to an external uid.

    Raises:
        UserNotFoundException: If no account is linked to the uid
        ProfileMismatchException: If the account lacks the profile its role requires
    """
    user = get_user_by_external_uid(db, external_uid)
    if not user:
        raise UserNotFoundException()
    if user.role != UserRole.ADMIN and user.profile is None:
        logger.error(f"User {user.id} has role {user.role.value} but no matching profile")
        raise ProfileMismatchException()
    return user
