"""
Patient Model - Stores patient records kept by a practitioner.
"""
from datetime import date
import enum

from sqlalchemy import Column, Integer, String, DateTime, Date, Enum, ForeignKey, Index, func
from sqlalchemy.orm import relationship

from ..database import Base


class Gender(str, enum.Enum):
    MALE = "Male"
    FEMALE = "Female"
    OTHER = "Other"


class Patient(Base):
    """
    Patient Model - Stores patient-specific information

    Fields:
    - id: Primary key for the patient record
    - full_name: Patient's full name (letters and spaces)
    - gender: Male, Female or Other
    - date_of_birth: Patient's date of birth
    - last_scan: When the patient was last scanned (optional)
    - created_by: Practitioner who owns the record
    - created_at: When the record was created
    - updated_at: When the record was last updated
    """
    __tablename__ = "patients"
    __table_args__ = (
        Index("ix_patients_created_by_full_name", "created_by", "full_name"),
    )

    id = Column(Integer, primary_key=True, index=True)
    full_name = Column(String(100), nullable=False)
    gender = Column(Enum(Gender, values_callable=lambda e: [m.value for m in e]), nullable=False)
    date_of_birth = Column(Date, nullable=False)
    last_scan = Column(DateTime(timezone=True), nullable=True)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    owner = relationship("User")

    @property
    def age(self):
        """Age in whole years, or None without a birth date."""
        if not self.date_of_birth:
            return None
        today = date.today()
        born = self.date_of_birth
        return today.year - born.year - ((today.month, today.day) < (born.month, born.day))

    def __repr__(self):
        return f"<Patient(id={self.id}, full_name='{self.full_name}', created_by={self.created_by})>"
