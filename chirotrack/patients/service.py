"""
Patient service functions.

Every query is scoped to the requesting practitioner; a record owned by
someone else is reported as not found.
"""
from typing import Any, Dict, List, Optional, Tuple
import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..auth.models import User
from ..core.pagination import PageParams, paginate
from ..exceptions import NotFoundException, ValidationException
from .models import Patient
from .schemas import PatientCreate, PatientSearchResult, PatientUpdate

logger = logging.getLogger(__name__)

DUPLICATE_NAME_MESSAGE = "A patient with this name already exists in your records"


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _owned(db: Session, owner: User):
    return db.query(Patient).filter(Patient.created_by == owner.id)


def _ensure_unique_name(db: Session, owner: User, full_name: str, exclude_id: Optional[int] = None) -> None:
    query = _owned(db, owner).filter(func.lower(Patient.full_name) == full_name.lower())
    if exclude_id is not None:
        query = query.filter(Patient.id != exclude_id)
    if query.first():
        raise ValidationException(DUPLICATE_NAME_MESSAGE)


def relevance_score(full_name: str, term: str) -> int:
    """
    Rank a name against a search term.

    100 exact, 80 prefix, 60 substring, else 0.
    Comparison is case-insensitive.
    """
    name = full_name.lower()
    term = term.lower()
    if name == term:
        return 100
    if name.startswith(term):
        return 80
    if term in name:
        return 60
    return 0


async def create_patient(db: Session, owner: User, data: PatientCreate) -> Patient:
    """
    Create a patient record for the practitioner.

    Raises:
        ValidationException: If the practitioner already has a patient with
            the same name (case-insensitive)
    """
    _ensure_unique_name(db, owner, data.full_name)

    patient = Patient(
        full_name=data.full_name,
        gender=data.gender,
        date_of_birth=data.date_of_birth,
        last_scan=data.last_scan,
        created_by=owner.id,
    )
    db.add(patient)
    db.commit()
    db.refresh(patient)
    logger.info(f"Patient {patient.id} created by user {owner.id}")
    return patient


async def list_patients(
    db: Session,
    owner: User,
    page_params: PageParams,
    search: Optional[str] = None
) -> Tuple[List[Patient], int]:
    query = _owned(db, owner)
    if search and search.strip():
        pattern = f"%{_escape_like(search.strip())}%"
        query = query.filter(Patient.full_name.ilike(pattern, escape="\\"))
    query = query.order_by(Patient.created_at.desc(), Patient.id.desc())
    return paginate(query, page_params)


async def search_patients(
    db: Session,
    owner: User,
    q: Optional[str],
    page_params: PageParams
) -> Tuple[List[PatientSearchResult], int, str]:
    """
    Search the practitioner's patients by name and rank the matches.

    The term is matched literally. Results are ordered by relevance, then
    by name.

    Returns:
        Tuple of the ranked page, the total match count and the trimmed term

    Raises:
        ValidationException: If the search term is blank
    """
    term = (q or "").strip()
    if not term:
        raise ValidationException("Search query is required")

    pattern = f"%{_escape_like(term)}%"
    matches = _owned(db, owner).filter(Patient.full_name.ilike(pattern, escape="\\")).all()

    ranked = [
        PatientSearchResult.model_validate(patient).model_copy(
            update={"relevance_score": relevance_score(patient.full_name, term)}
        )
        for patient in matches
    ]
    ranked.sort(key=lambda result: (-result.relevance_score, result.full_name.lower()))

    start = page_params.offset
    return ranked[start:start + page_params.limit], len(ranked), term


async def get_patient(db: Session, owner: User, patient_id: int) -> Patient:
    patient = _owned(db, owner).filter(Patient.id == patient_id).first()
    if not patient:
        raise NotFoundException("Patient record not found")
    return patient


async def update_patient(db: Session, owner: User, patient_id: int, data: PatientUpdate) -> Patient:
    """
    Apply a partial update to one of the practitioner's patients.

    Raises:
        NotFoundException: If the patient is missing or owned by someone else
        ValidationException: If the new name collides with another patient
    """
    patient = await get_patient(db, owner, patient_id)
    changes = data.model_dump(exclude_unset=True)

    if changes.get("full_name"):
        _ensure_unique_name(db, owner, changes["full_name"], exclude_id=patient.id)

    for field, value in changes.items():
        if value is None and field != "last_scan":
            continue
        setattr(patient, field, value)

    db.commit()
    db.refresh(patient)
    logger.info(f"Patient {patient.id} updated by user {owner.id}")
    return patient


async def delete_patient(db: Session, owner: User, patient_id: int) -> Dict[str, Any]:
    patient = await get_patient(db, owner, patient_id)
    deleted = {"id": patient.id, "fullName": patient.full_name}
    db.delete(patient)
    db.commit()
    logger.info(f"Patient {patient_id} deleted by user {owner.id}")
    return deleted
