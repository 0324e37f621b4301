"""
Pose detection routes. Every route requires authentication.
"""
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..auth.dependencies import get_current_user
from ..auth.models import User
from ..core.pagination import PageParams, pagination_block
from ..core.responses import success_response
from ..database import get_db
from .schemas import (
    PoseDetectionCreate,
    PoseDetectionResponse,
    PoseDetectionUpdate,
    RecentScan,
    ScanStatistics,
)
from .service import (
    create_pose_detection,
    delete_pose_detection,
    get_pose_detection,
    list_patient_pose_detections,
    list_pose_detections,
    pose_detection_stats,
    update_pose_detection,
)

router = APIRouter(prefix="/api/pose-detections", tags=["Pose Detections"])


def _record(record) -> PoseDetectionResponse:
    return PoseDetectionResponse.model_validate(record)


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create(
    data: PoseDetectionCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Save a scan for one of the caller's patients.
    """
    record = await create_pose_detection(db, current_user, data)
    return success_response("Pose detection data saved successfully", {"poseDetection": _record(record)})


@router.get("/")
async def list_all(
    page_params: PageParams = Depends(),
    patient_id: Optional[int] = Query(None, alias="patientId", description="Only scans of this patient"),
    sort_by: Literal["scanDate", "bestPoseAccuracy", "createdAt"] = Query("scanDate", alias="sortBy"),
    sort_order: Literal["asc", "desc"] = Query("desc", alias="sortOrder"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    records, total = await list_pose_detections(
        db, current_user, page_params, patient_id=patient_id, sort_by=sort_by, sort_order=sort_order
    )
    return success_response(
        "Pose detection records retrieved successfully",
        {
            "poseDetections": [_record(r) for r in records],
            "pagination": pagination_block(page_params, total, "totalRecords"),
        },
    )


@router.get("/stats/{patient_id}")
async def stats(
    patient_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Accuracy statistics and the latest scans for a patient.
    """
    patient, statistics, recent = await pose_detection_stats(db, current_user, patient_id)
    return success_response(
        "Pose detection statistics retrieved successfully",
        {
            "patient": {"id": patient.id, "fullName": patient.full_name},
            "statistics": ScanStatistics(**statistics),
            "recentScans": [RecentScan.model_validate(r) for r in recent],
        },
    )


@router.get("/patient/{patient_id}")
async def list_for_patient(
    patient_id: int,
    page_params: PageParams = Depends(),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    patient, records, total = await list_patient_pose_detections(db, current_user, patient_id, page_params)
    return success_response(
        "Pose detection records retrieved successfully",
        {
            "poseDetections": [_record(r) for r in records],
            "patient": {"id": patient.id, "fullName": patient.full_name, "gender": patient.gender},
            "pagination": pagination_block(page_params, total, "totalRecords"),
        },
    )


@router.get("/{record_id}")
async def get_one(
    record_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    record = await get_pose_detection(db, current_user, record_id)
    return success_response("Pose detection record retrieved successfully", {"poseDetection": _record(record)})


@router.put("/{record_id}")
async def update(
    record_id: int,
    data: PoseDetectionUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Update a scan's notes.
    """
    record = await update_pose_detection(db, current_user, record_id, data)
    return success_response("Pose detection record updated successfully", {"poseDetection": _record(record)})


@router.delete("/{record_id}")
async def delete(
    record_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    deleted = await delete_pose_detection(db, current_user, record_id)
    return success_response("Pose detection record deleted successfully", {"deletedRecord": deleted})
