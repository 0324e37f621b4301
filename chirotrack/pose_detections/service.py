"""
Pose detection service functions.

Scans are only reachable through the practitioner who recorded them, and
new scans can only be attached to that practitioner's own patients.
"""
from typing import Any, Dict, List, Optional, Tuple
import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..auth.models import User
from ..core.pagination import PageParams, paginate
from ..core.security import utc_now
from ..exceptions import NotFoundException
from ..patients.models import Patient
from .models import PoseDetection
from .schemas import PoseDetectionCreate, PoseDetectionUpdate

logger = logging.getLogger(__name__)

PATIENT_NOT_FOUND_MESSAGE = "Patient not found or you do not have permission to access this patient"
RECORD_NOT_FOUND_MESSAGE = "Pose detection record not found"
RECENT_SCANS_LIMIT = 5

SORT_COLUMNS = {
    "scanDate": PoseDetection.scan_date,
    "bestPoseAccuracy": PoseDetection.best_pose_accuracy,
    "createdAt": PoseDetection.created_at,
}


def _owned(db: Session, owner: User):
    return db.query(PoseDetection).filter(PoseDetection.created_by == owner.id)


def _owned_patient(db: Session, owner: User, patient_id: int) -> Patient:
    patient = (
        db.query(Patient)
        .filter(Patient.id == patient_id, Patient.created_by == owner.id)
        .first()
    )
    if not patient:
        raise NotFoundException(PATIENT_NOT_FOUND_MESSAGE)
    return patient


def _newest_first(query):
    return query.order_by(PoseDetection.scan_date.desc(), PoseDetection.id.desc())


async def create_pose_detection(db: Session, owner: User, data: PoseDetectionCreate) -> PoseDetection:
    """
    Record a scan for one of the practitioner's patients.

    The patient's ``last_scan`` is moved to the scan date.

    Raises:
        NotFoundException: If the patient is missing or owned by someone else
    """
    patient = _owned_patient(db, owner, data.patient_id)
    scanned_at = utc_now()

    record = PoseDetection(
        patient_id=patient.id,
        created_by=owner.id,
        valid_poses_detected=data.summary.valid_poses_detected,
        best_pose_accuracy=data.summary.best_pose_accuracy,
        joints_detected=data.summary.joints_detected,
        critical_joints_detected=data.summary.critical_joints_detected,
        body_detection=[region.model_dump(mode="json") for region in data.body_detection],
        proportions=data.proportions.model_dump(mode="json") if data.proportions else None,
        joints=[joint.model_dump(mode="json") for joint in data.joints],
        notes=data.notes,
        scan_date=scanned_at,
    )
    db.add(record)
    patient.last_scan = scanned_at
    db.commit()
    db.refresh(record)
    logger.info(f"Pose detection {record.id} saved for patient {patient.id} by user {owner.id}")
    return record


async def list_pose_detections(
    db: Session,
    owner: User,
    page_params: PageParams,
    patient_id: Optional[int] = None,
    sort_by: str = "scanDate",
    sort_order: str = "desc"
) -> Tuple[List[PoseDetection], int]:
    """
    Page through every scan the practitioner recorded.

    Args:
        db: Database session
        owner: Requesting practitioner
        page_params: Pagination parameters
        patient_id: Only scans of this patient
        sort_by: ``scanDate``, ``bestPoseAccuracy`` or ``createdAt``
        sort_order: ``asc`` or ``desc``

    Returns:
        Tuple of the page and the total count
    """
    query = _owned(db, owner)
    if patient_id is not None:
        query = query.filter(PoseDetection.patient_id == patient_id)

    column = SORT_COLUMNS.get(sort_by, PoseDetection.scan_date)
    if sort_order == "asc":
        query = query.order_by(column.asc(), PoseDetection.id.asc())
    else:
        query = query.order_by(column.desc(), PoseDetection.id.desc())
    return paginate(query, page_params)


async def list_patient_pose_detections(
    db: Session,
    owner: User,
    patient_id: int,
    page_params: PageParams
) -> Tuple[Patient, List[PoseDetection], int]:
    """
    Page through one patient's scans, newest first.

    Raises:
        NotFoundException: If the patient is missing or owned by someone else
    """
    patient = _owned_patient(db, owner, patient_id)
    query = _newest_first(db.query(PoseDetection).filter(PoseDetection.patient_id == patient.id))
    items, total = paginate(query, page_params)
    return patient, items, total


async def get_pose_detection(db: Session, owner: User, record_id: int) -> PoseDetection:
    record = _owned(db, owner).filter(PoseDetection.id == record_id).first()
    if not record:
        raise NotFoundException(RECORD_NOT_FOUND_MESSAGE)
    return record


async def update_pose_detection(
    db: Session,
    owner: User,
    record_id: int,
    data: PoseDetectionUpdate
) -> PoseDetection:
    """Update the notes of a scan; measurements are immutable."""
    record = await get_pose_detection(db, owner, record_id)
    changes = data.model_dump(exclude_unset=True)
    if "notes" in changes:
        record.notes = changes["notes"]
        db.commit()
        db.refresh(record)
        logger.info(f"Pose detection {record.id} updated by user {owner.id}")
    return record


async def delete_pose_detection(db: Session, owner: User, record_id: int) -> Dict[str, Any]:
    record = await get_pose_detection(db, owner, record_id)
    deleted = {"id": record.id, "scanDate": record.scan_date}
    db.delete(record)
    db.commit()
    logger.info(f"Pose detection {record_id} deleted by user {owner.id}")
    return deleted


async def pose_detection_stats(
    db: Session,
    owner: User,
    patient_id: int
) -> Tuple[Patient, Dict[str, Any], List[PoseDetection]]:
    """
    Aggregate a patient's scan history.

    Returns:
        Tuple of the patient, the statistics (count, average, highest and
        lowest best-pose accuracy, first and last scan date) and the most
        recent scans

    Raises:
        NotFoundException: If the patient is missing or owned by someone else
    """
    patient = _owned_patient(db, owner, patient_id)
    scans = db.query(PoseDetection).filter(PoseDetection.patient_id == patient.id)

    total, average, highest, lowest, first_scan, last_scan = scans.with_entities(
        func.count(PoseDetection.id),
        func.avg(PoseDetection.best_pose_accuracy),
        func.max(PoseDetection.best_pose_accuracy),
        func.min(PoseDetection.best_pose_accuracy),
        func.min(PoseDetection.scan_date),
        func.max(PoseDetection.scan_date),
    ).one()

    statistics = {
        "total_scans": total or 0,
        "average_accuracy": round(float(average), 2) if average is not None else 0,
        "highest_accuracy": highest or 0,
        "lowest_accuracy": lowest or 0,
        "first_scan": first_scan,
        "last_scan": last_scan,
    }
    recent = _newest_first(scans).limit(RECENT_SCANS_LIMIT).all()
    return patient, statistics, recent
