"""
Authentication-specific exceptions.
"""
from fastapi import status
from typing import Union
from .models import AccountStatus
from ..exceptions import (
    AppException,
    AuthenticationException,
    AuthorizationException,
    ConflictException,
    DependencyException,
    NotFoundException,
    ValidationException,
    VerificationFailedException,
)

class InvalidCredentialsException(AuthenticationException):
    """Exception raised for an unknown email or a wrong password (same message for both)."""
    default_detail = "Invalid credentials"

class InvalidTokenException(AuthenticationException):
    """Exception raised when a token is malformed, expired or of the wrong type."""
    default_detail = "Invalid or expired token"

class SessionExpiredException(AuthenticationException):
    """Exception raised when a refresh token has no live session behind it."""
    default_detail = "Session expired or revoked"

class EmailAlreadyExistsException(ConflictException):
    """Exception raised when email already exists."""
    default_detail = "Email already registered"

class LicenseAlreadyRegisteredException(ConflictException):
    """Exception raised when a license number is already attached to another account."""
    default_detail = "License number already registered"

class AccountStatusException(AuthorizationException):
    """Exception raised when account status prevents an operation."""
    def __init__(self, account_status: Union[str, AccountStatus], detail: str = None):
        status_value = account_status.value if hasattr(account_status, 'value') else str(account_status)
        message = detail or f"Account status '{status_value}' prevents this operation"
        self.account_status = status_value
        super().__init__(message)

class RoleDeniedException(AuthorizationException):
    """Exception raised when user doesn't have required role."""
    def __init__(self, required_roles: list, user_role: str):
        super().__init__(f"Access denied. Required roles: {required_roles}. Your role: {user_role}")

class ExternalUidMismatchException(AuthorizationException):
    """The uid in the request body differs from the uid in the verified external token."""
    default_detail = "External UID mismatch"

class DoctorVerificationFailedException(VerificationFailedException):
    default_detail = (
        "Doctor license verification failed. Please ensure your license number, "
        "name, and medical council are correct."
    )

class StaffVerificationFailedException(VerificationFailedException):
    default_detail = (
        "Staff verification failed. Please check your organization ID, "
        "employee ID, and email domain."
    )

class EmailDomainNotAllowedException(VerificationFailedException):
    default_detail = "Email domain is not authorized for this role"

class UserNotFoundException(NotFoundException):
    default_detail = "User not found"

class ProfileMismatchException(AppException):
    """The account exists but its stored profile does not match its role."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Account profile does not match account role"

class InvalidDocumentException(ValidationException):
    default_detail = "Invalid verification document"

class RegistryUnavailableException(DependencyException):
    """The credential registry could not be reached or answered with an error."""
    default_detail = "Credential registry unavailable"

class IdentityProviderUnavailableException(DependencyException):
    default_detail = "External identity provider not configured"
