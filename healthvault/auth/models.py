"""
User Model - Stores account identity, credentials and refresh sessions.

Every account owns exactly one role-specific profile (patient, doctor or staff;
admins have none) and zero or more refresh sessions. Both cascade on delete.
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum, ForeignKey, func
from sqlalchemy.orm import relationship
import enum
from ..database import Base

class UserRole(str, enum.Enum):
    """
    Enumeration for user roles. A role is fixed once the account exists.

    Roles:
    - PATIENT: Self-registered patients, active immediately
    - DOCTOR: Medical practitioners, verified against the credential registry
    - STAFF: Organization employees, verified against the credential registry
    - ADMIN: System administrators who approve doctor/staff verification
    """
    PATIENT = "PATIENT"
    DOCTOR = "DOCTOR"
    STAFF = "STAFF"
    ADMIN = "ADMIN"

class AccountStatus(str, enum.Enum):
    """
    Canonical account status shared by password and external-provider accounts.

    Status Types:
    - PENDING_VERIFICATION: Doctor/staff account awaiting document review
    - ACTIVE: Account allowed to log in
    - SUSPENDED: Account blocked by an administrator
    - DELETED: Account closed; treated as absent at login
    """
    PENDING_VERIFICATION = "PENDING_VERIFICATION"
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"
    DELETED = "DELETED"

class VerificationStatus(str, enum.Enum):
    """Review state of a doctor or staff profile."""
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"

# Roles that go through professional identity verification
VERIFIED_ROLES = (UserRole.DOCTOR, UserRole.STAFF)

class User(Base):
    """
    User Model - Stores all account information in the system

    Fields:
    - id: Primary key for user identification
    - email: Unique email address for login
    - password_hash: Bcrypt hash; empty for accounts created through the identity bridge
    - external_uid: Principal id issued by the external identity provider (hybrid auth)
    - role: User role (patient, doctor, staff, admin)
    - email_verified: Whether the email address has been confirmed
    - account_status: Current account status
    - created_at / updated_at / last_login: Timestamps
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=True)
    external_uid = Column(String, unique=True, index=True, nullable=True)
    role = Column(Enum(UserRole), nullable=False, default=UserRole.PATIENT)
    email_verified = Column(Boolean, nullable=False, default=False)
    account_status = Column(Enum(AccountStatus), nullable=False, default=AccountStatus.PENDING_VERIFICATION)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    last_login = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    patient_profile = relationship("Patient", back_populates="user", uselist=False, cascade="all, delete-orphan")
    doctor_profile = relationship("Doctor", back_populates="user", uselist=False, cascade="all, delete-orphan")
    staff_profile = relationship("Staff", back_populates="user", uselist=False, cascade="all, delete-orphan")
    sessions = relationship("UserSession", back_populates="user", cascade="all, delete-orphan")

    def __repr__(self):
        """String representation of the User model"""
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"

    @property
    def profile(self):
        """
        The role-specific profile, or None for admins.

        A stored profile of a different kind than the role is ignored.
        """
        if self.role == UserRole.PATIENT:
            return self.patient_profile
        if self.role == UserRole.DOCTOR:
            return self.doctor_profile
        if self.role == UserRole.STAFF:
            return self.staff_profile
        if self.role == UserRole.ADMIN:
            return None
        raise ValueError(f"Unknown role: {self.role}")

    @property
    def requires_verification(self) -> bool:
        return self.role in VERIFIED_ROLES

class UserSession(Base):
    """
    Refresh session issued at login.

    Fields:
    - user_id: Owning account
    - refresh_token: Opaque signed refresh credential (unique)
    - expires_at: Session is invalid after this instant (deleted lazily)
    """
    __tablename__ = "sessions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    refresh_token = Column(String, unique=True, index=True, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="sessions")

    def __repr__(self):
        return f"<UserSession(id={self.id}, user_id={self.user_id})>"

class VerifiableProfileMixin:
    """
    Review fields shared by doctor and staff profiles.

    Profiles start PENDING; an administrator moves them to APPROVED or REJECTED.
    """
    verification_status = Column(Enum(VerificationStatus), nullable=False, default=VerificationStatus.PENDING)
    verification_document = Column(String, nullable=True)
    verified_at = Column(DateTime(timezone=True), nullable=True)
    verified_by = Column(Integer, nullable=True)  # admin user id, kept without FK

    @property
    def is_pending(self) -> bool:
        return self.verification_status == VerificationStatus.PENDING
