"""
Patient Schemas - Pydantic models for patient data validation and serialization.
"""
from datetime import date, datetime, timezone
from typing import Optional
import re

from pydantic import field_validator

from ..core.responses import CamelModel
from .models import Gender

FULL_NAME_PATTERN = re.compile(r"^[a-zA-Z\s]+$")


def check_full_name(value: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValueError("Full name is required")
    if not 2 <= len(value) <= 100:
        raise ValueError("Full name must be between 2 and 100 characters")
    if not FULL_NAME_PATTERN.match(value):
        raise ValueError("Full name can only contain letters and spaces")
    return value


def check_date_of_birth(value: date) -> date:
    today = date.today()
    if value > today:
        raise ValueError("Date of birth cannot be in the future")
    if today.year - value.year > 150:
        raise ValueError("Please provide a valid date of birth")
    return value


def check_last_scan(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    if value > datetime.now(timezone.utc):
        raise ValueError("Last scan date cannot be in the future")
    return value


class PatientCreate(CamelModel):
    """
    Patient Creation Schema

    Fields:
    - fullName: 2-100 letters and spaces
    - gender: Male, Female or Other
    - dateOfBirth: Not in the future, at most 150 years ago
    - lastScan: Optional, not in the future
    """
    full_name: str
    gender: Gender
    date_of_birth: date
    last_scan: Optional[datetime] = None

    @field_validator("full_name")
    @classmethod
    def validate_full_name(cls, v: str) -> str:
        return check_full_name(v)

    @field_validator("date_of_birth")
    @classmethod
    def validate_date_of_birth(cls, v: date) -> date:
        return check_date_of_birth(v)

    @field_validator("last_scan")
    @classmethod
    def validate_last_scan(cls, v: Optional[datetime]) -> Optional[datetime]:
        return check_last_scan(v)


class PatientUpdate(CamelModel):
    """Partial update; only the fields sent are changed."""
    full_name: Optional[str] = None
    gender: Optional[Gender] = None
    date_of_birth: Optional[date] = None
    last_scan: Optional[datetime] = None

    @field_validator("full_name")
    @classmethod
    def validate_full_name(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else check_full_name(v)

    @field_validator("date_of_birth")
    @classmethod
    def validate_date_of_birth(cls, v: Optional[date]) -> Optional[date]:
        return None if v is None else check_date_of_birth(v)

    @field_validator("last_scan")
    @classmethod
    def validate_last_scan(cls, v: Optional[datetime]) -> Optional[datetime]:
        return check_last_scan(v)


class PatientResponse(CamelModel):
    id: int
    full_name: str
    gender: Gender
    date_of_birth: date
    last_scan: Optional[datetime] = None
    age: Optional[int] = None
    created_by: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PatientSearchResult(PatientResponse):
    relevance_score: int = 0
