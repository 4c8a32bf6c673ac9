"""
Core security utilities for authentication and password handling.

Access tokens carry the account id and role and are signed with SECRET_KEY.
Refresh tokens carry the account id only and are signed with REFRESH_SECRET_KEY,
so one can never be accepted in place of the other.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import jwt, JWTError
from passlib.context import CryptContext
import secrets
import logging

from ..config import settings
from ..auth.models import UserRole
from ..auth.exceptions import InvalidTokenException

# Set up logging
logger = logging.getLogger(__name__)

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

def hash_password(password: str) -> str:
    """
    Hash a password using bcrypt.

    Args:
        password: Plain text password

    Returns:
        str: Hashed password
    """
    return pwd_context.hash(password)

def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """
    Verify a password against a hash.

    A missing hash (no such account, or an account created through the identity
    bridge) still costs one hash round so both failure paths take the same time.

    Args:
        plain_password: Plain text password
        hashed_password: Hashed password to compare against

    Returns:
        bool: True if password matches hash
    """
    if not hashed_password:
        pwd_context.dummy_verify()
        return False
    return pwd_context.verify(plain_password, hashed_password)

def create_access_token(user_id: int, role: UserRole, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a short-lived JWT access token.

    Args:
        user_id: Account id
        role: Account role
        expires_delta: Token expiration time (default: ACCESS_TOKEN_EXPIRE_MINUTES)

    Returns:
        str: Encoded JWT token
    """
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    to_encode = {
        "id": user_id,
        "role": role.value if isinstance(role, UserRole) else str(role),
        "type": ACCESS_TOKEN_TYPE,
        "exp": expire,
    }
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)

def create_refresh_token(user_id: int, expires_delta: Optional[timedelta] = None) -> tuple:
    """
    Create a long-lived refresh token for token renewal.

    Every token gets a random jti so two logins in the same second still yield
    distinct session keys.

    Args:
        user_id: Account id
        expires_delta: Optional custom expiration time (default: REFRESH_TOKEN_EXPIRE_DAYS)

    Returns:
        tuple: (encoded refresh token, expiry datetime)
    """
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(days=settings.refresh_token_expire_days)
    )
    to_encode = {
        "id": user_id,
        "type": REFRESH_TOKEN_TYPE,
        "jti": secrets.token_urlsafe(16),
        "exp": expire,
    }
    token = jwt.encode(to_encode, settings.refresh_secret_key, algorithm=settings.algorithm)
    return token, expire

def _decode(token: str, secret: str, expected_type: str) -> Dict[str, Any]:
    try:
        payload = jwt.decode(token, secret, algorithms=[settings.algorithm])
    except JWTError as e:
        logger.info(f"Rejected {expected_type} token: {str(e)}")
        raise InvalidTokenException()
    if payload.get("type") != expected_type or payload.get("id") is None:
        raise InvalidTokenException()
    return payload

def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Verify and decode an access token.

    Raises:
        InvalidTokenException: If the signature, expiry or token type is wrong
    """
    return _decode(token, settings.secret_key, ACCESS_TOKEN_TYPE)

def decode_refresh_token(token: str) -> Dict[str, Any]:
    """
    Verify and decode a refresh token.

    Raises:
        InvalidTokenException: If the signature, expiry or token type is wrong
    """
    return _decode(token, settings.refresh_secret_key, REFRESH_TOKEN_TYPE)

def is_token_expired(expiry_time: datetime) -> bool:
    """
    Check if a stored expiry has passed.

    Naive datetimes (as returned by SQLite) are read as UTC.

    Args:
        expiry_time: Token expiration time

    Returns:
        bool: True if token has expired
    """
    if expiry_time.tzinfo is None:
        expiry_time = expiry_time.replace(tzinfo=timezone.utc)
    return datetime.now(timezone.utc) >= expiry_time
