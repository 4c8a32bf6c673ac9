"""
Bootstrap utilities for first admin creation.
Creates the first admin account from BOOTSTRAP_ADMIN_EMAIL / BOOTSTRAP_ADMIN_PASSWORD.
"""
import logging
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from ..config import settings
from ..auth.models import User, UserRole, AccountStatus
from .security import hash_password

logger = logging.getLogger(__name__)

def admin_exists(db: Session) -> bool:
    """
    Check if any admin user exists in the database.

    Args:
        db: Database session

    Returns:
        bool: True if at least one admin exists, False otherwise
    """
    return db.query(User).filter(User.role == UserRole.ADMIN).count() > 0

def create_bootstrap_admin(db: Session) -> bool:
    """
    Create the first admin user from settings.

    Admin accounts have no profile and are active and verified from the start.

    Returns:
        bool: True if admin was created successfully, False otherwise
    """
    if not settings.bootstrap_admin_email or not settings.bootstrap_admin_password:
        logger.warning("Bootstrap admin credentials not provided in environment variables")
        return False

    email = settings.bootstrap_admin_email.lower()
    if db.query(User).filter(User.email == email).first():
        logger.warning(f"Bootstrap failed: Email {email} already exists")
        return False

    bootstrap_admin = User(
        email=email,
        password_hash=hash_password(settings.bootstrap_admin_password),
        role=UserRole.ADMIN,
        email_verified=True,
        account_status=AccountStatus.ACTIVE,
    )
    try:
        db.add(bootstrap_admin)
        db.commit()
    except SQLAlchemyError as e:
        logger.error(f"❌ Failed to create bootstrap admin: {str(e)}")
        db.rollback()
        return False
    db.refresh(bootstrap_admin)

    logger.info(f"✅ Bootstrap admin created successfully: {bootstrap_admin.email} (ID: {bootstrap_admin.id})")
    return True

def bootstrap_admin_if_needed(db: Session) -> None:
    """
    Create the bootstrap admin when no admin exists yet.
    Called once during application startup.
    """
    if admin_exists(db):
        logger.info("✅ Admin users found. Bootstrap not needed.")
        return

    logger.info("🚀 No admin users found. Attempting bootstrap admin creation...")
    if not create_bootstrap_admin(db):
        logger.info("💡 To create the first admin, set BOOTSTRAP_ADMIN_EMAIL and BOOTSTRAP_ADMIN_PASSWORD in your .env file.")
