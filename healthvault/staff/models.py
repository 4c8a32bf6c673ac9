"""
Staff Model - Stores organization employee information and verification state.
"""
from sqlalchemy import Column, Integer, String, ForeignKey
from sqlalchemy.orm import relationship
from ..database import Base
from ..auth.models import VerifiableProfileMixin

class Staff(VerifiableProfileMixin, Base):
    """
    Staff Model - Stores staff-specific information

    Fields:
    - id: Primary key for staff profile
    - user_id: Foreign key to User model (one profile per account)
    - full_name: Staff member's full name
    - organization_id: Credential registry organization id
    - employee_id: Employee id within that organization
    - department / position / phone_number: Employment details
    - verification_status / verification_document / verified_at / verified_by: Review state
    """
    __tablename__ = "staff"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    full_name = Column(String, nullable=False)
    organization_id = Column(String, nullable=True, index=True)
    employee_id = Column(String, nullable=True)
    department = Column(String, nullable=True)
    position = Column(String, nullable=True)
    phone_number = Column(String, nullable=True)

    user = relationship("User", back_populates="staff_profile")

    def __repr__(self):
        return f"<Staff(id={self.id}, user_id={self.user_id}, organization_id='{self.organization_id}')>"
