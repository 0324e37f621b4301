"""
Patient routes. Every route requires authentication and only sees the
caller's own records.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..auth.dependencies import get_current_user
from ..auth.models import User
from ..core.pagination import PageParams, pagination_block
from ..core.responses import success_response
from ..database import get_db
from .schemas import PatientCreate, PatientResponse, PatientUpdate
from .service import (
    create_patient,
    delete_patient,
    get_patient,
    list_patients,
    search_patients,
    update_patient,
)

router = APIRouter(prefix="/api/patients", tags=["Patients"])


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create(
    data: PatientCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    patient = await create_patient(db, current_user, data)
    return success_response(
        "Patient record created successfully", {"patient": PatientResponse.model_validate(patient)}
    )


@router.get("/search")
async def search(
    q: Optional[str] = Query(None, description="Name to search for"),
    page_params: PageParams = Depends(),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Search patients by name, ranked by relevance.
    """
    results, total, term = await search_patients(db, current_user, q, page_params)
    return success_response(
        "Patient search completed successfully",
        {
            "patients": results,
            "searchQuery": term,
            "pagination": pagination_block(page_params, total, "totalResults"),
        },
    )


@router.get("/")
async def list_all(
    page_params: PageParams = Depends(),
    search: Optional[str] = Query(None, description="Case-insensitive name filter"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    patients, total = await list_patients(db, current_user, page_params, search)
    return success_response(
        "Patients retrieved successfully",
        {
            "patients": [PatientResponse.model_validate(p) for p in patients],
            "pagination": pagination_block(page_params, total, "totalPatients"),
        },
    )


@router.get("/{patient_id}")
async def get_one(
    patient_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    patient = await get_patient(db, current_user, patient_id)
    return success_response(
        "Patient retrieved successfully", {"patient": PatientResponse.model_validate(patient)}
    )


@router.put("/{patient_id}")
async def update(
    patient_id: int,
    data: PatientUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    patient = await update_patient(db, current_user, patient_id, data)
    return success_response(
        "Patient record updated successfully", {"patient": PatientResponse.model_validate(patient)}
    )


@router.delete("/{patient_id}")
async def delete(
    patient_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    deleted = await delete_patient(db, current_user, patient_id)
    return success_response("Patient record deleted successfully", {"deletedPatient": deleted})
