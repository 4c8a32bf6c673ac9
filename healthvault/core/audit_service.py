import logging
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from fastapi import Request
from typing import Optional, Dict, Any

from .audit_models import AuditLog

logger = logging.getLogger(__name__)

def create_audit_log(
    db: Session,
    action: str,
    user_id: Optional[int] = None,
    request: Optional[Request] = None,
    details: Optional[Dict[str, Any]] = None,
    commit: bool = True
) -> Optional[AuditLog]:
    """
    Creates an audit log entry.

    With commit=False the entry joins the caller's open transaction and is
    persisted (or rolled back) together with it.

    Args:
        db: The database session.
        action: A string describing the action performed (e.g., 'LOGIN_SUCCESS', 'SIGNUP_REJECTED_VERIFICATION').
        user_id: The ID of the user who performed the action (if applicable).
        request: The FastAPI request object to extract IP address (if available).
        details: A dictionary containing additional context or data related to the action.
        commit: Whether to commit immediately.

    Returns:
        The created AuditLog object, or None if it could not be written.
    """
    ip_address = None
    if request and request.client:
        ip_address = request.client.host

    audit_entry = AuditLog(
        user_id=user_id,
        action=action,
        ip_address=ip_address,
        details=details
    )
    db.add(audit_entry)
    if not commit:
        return audit_entry
    try:
        db.commit()
    except SQLAlchemyError as e:
        # audit failures are logged, never raised
        db.rollback()
        logger.error(f"Failed to write audit log '{action}': {str(e)}")
        return None
    return audit_entry
