"""
Patient Model - Stores patient-specific information.

This model extends the base User model with patient-specific fields.
"""
from sqlalchemy import Column, Integer, String, Date, ForeignKey
from sqlalchemy.orm import relationship
from ..database import Base

class Patient(Base):
    """
    Patient Model - Stores patient-specific information

    Fields:
    - id: Primary key for patient profile
    - user_id: Foreign key to User model (one profile per account)
    - full_name: Patient's full name
    - date_of_birth / gender / blood_group: Demographic fields
    - phone_number / address / emergency_contact: Contact fields
    """
    __tablename__ = "patients"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    full_name = Column(String, nullable=False)
    date_of_birth = Column(Date, nullable=True)
    gender = Column(String, nullable=True)
    phone_number = Column(String, nullable=True)
    address = Column(String, nullable=True)
    blood_group = Column(String, nullable=True)
    emergency_contact = Column(String, nullable=True)

    # Relationships
    user = relationship("User", back_populates="patient_profile")

    def __repr__(self):
        """String representation of the Patient model"""
        return f"<Patient(id={self.id}, user_id={self.user_id})>"

    @property
    def email(self) -> str:
        """Get patient's email from associated user"""
        return self.user.email if self.user else None
