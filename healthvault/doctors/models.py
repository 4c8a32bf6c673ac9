"""
Doctor Model - Stores doctor-specific information and verification state.

This model extends the base User model with professional credentials checked
against the credential registry at signup and reviewed by an administrator.
"""
from sqlalchemy import Column, Integer, String, ForeignKey
from sqlalchemy.orm import relationship
from ..database import Base
from ..auth.models import VerifiableProfileMixin

DEFAULT_SPECIALIZATION = "General Medicine"

class Doctor(VerifiableProfileMixin, Base):
    """
    Doctor Model - Stores doctor-specific information

    Fields:
    - id: Primary key for doctor profile
    - user_id: Foreign key to User model (one profile per account)
    - full_name: Name as registered with the medical council
    - specialization: Doctor's medical specialization
    - license_number: Upper-cased license number (unique)
    - medical_council: Issuing medical council
    - qualification / experience / phone_number: Optional details
    - verification_status / verification_document / verified_at / verified_by: Review state
    """
    __tablename__ = "doctors"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    full_name = Column(String, nullable=False)
    specialization = Column(String, nullable=False, default=DEFAULT_SPECIALIZATION)
    license_number = Column(String, unique=True, index=True, nullable=True)
    medical_council = Column(String, nullable=True)
    qualification = Column(String, nullable=True)
    experience = Column(Integer, nullable=True)
    phone_number = Column(String, nullable=True)

    # Relationships
    user = relationship("User", back_populates="doctor_profile")

    def __repr__(self):
        """String representation of the Doctor model"""
        return f"<Doctor(id={self.id}, user_id={self.user_id}, specialization='{self.specialization}')>"

    @property
    def email(self) -> str:
        """Get doctor's email from associated user"""
        return self.user.email if self.user else None
