"""
FastAPI dependencies for authentication and authorization.

Two bearer credentials exist: the service's own access token (get_current_user)
and an ID token from the external identity provider (get_external_principal).
"""
from typing import List, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from ..database import get_db
from ..core.firebase import ExternalIdentityProvider, ExternalPrincipal, get_identity_provider
from ..core.security import decode_access_token
from .models import User, UserRole, AccountStatus
from .exceptions import (
    AccountStatusException,
    InvalidTokenException,
    RoleDeniedException,
)

# auto_error is off so a missing header maps to our own 401 body
bearer_scheme = HTTPBearer(auto_error=False)

def get_bearer_token(credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)) -> str:
    """
    Extract the bearer token from the Authorization header.

    Raises:
        InvalidTokenException: If the header is missing or not a bearer credential
    """
    if credentials is None or not credentials.credentials:
        raise InvalidTokenException("Missing bearer token")
    return credentials.credentials

def get_current_user(token: str = Depends(get_bearer_token), db: Session = Depends(get_db)) -> User:
    """
    Get current authenticated user from an access token.

    Raises:
        InvalidTokenException: If the token is invalid or the user no longer exists
    """
    payload = decode_access_token(token)
    user = db.query(User).filter(User.id == payload["id"]).first()
    if not user or user.account_status == AccountStatus.DELETED:
        raise InvalidTokenException("User not found")
    return user

def get_current_active_user(current_user: User = Depends(get_current_user)) -> User:
    """
    Get current user and verify the account is active.

    Raises:
        AccountStatusException: If the account is suspended or pending verification
    """
    if current_user.account_status != AccountStatus.ACTIVE:
        raise AccountStatusException(current_user.account_status)
    return current_user

def require_roles(allowed_roles: List[UserRole]):
    """
    Dependency factory to require specific roles.

    Args:
        allowed_roles: List of roles that are allowed access

    Returns:
        Function that checks if user has required role
    """
    def role_checker(current_user: User = Depends(get_current_active_user)) -> User:
        if current_user.role not in allowed_roles:
            raise RoleDeniedException([role.value for role in allowed_roles], current_user.role.value)
        return current_user
    return role_checker

require_admin = require_roles([UserRole.ADMIN])

def get_external_principal(
    token: str = Depends(get_bearer_token),
    provider: ExternalIdentityProvider = Depends(get_identity_provider)
) -> ExternalPrincipal:
    """
    Verify an external ID token and return the principal it asserts.

    Raises:
        InvalidTokenException: If the ID token does not verify
        IdentityProviderUnavailableException: If the provider is not configured
    """
    return provider.verify_id_token(token)
