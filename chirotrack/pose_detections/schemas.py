"""
Pose Detection Schemas - Pydantic models for scan uploads and responses.
"""
from datetime import date, datetime
from typing import List, Optional

from pydantic import Field

from ..core.responses import CamelModel
from ..patients.models import Gender
from .models import BodyRegionName, JointName


class Point(CamelModel):
    x: Optional[float] = None
    y: Optional[float] = None


class JointReading(CamelModel):
    name: JointName
    status: bool
    confidence: float = Field(..., ge=0, le=100, description="Detection confidence in percent")
    screen_coordinates: Optional[Point] = None
    vision_coordinates: Optional[Point] = None


class BodyRegion(CamelModel):
    region: BodyRegionName
    detected: int = Field(..., ge=0)
    total: int = Field(..., ge=0)
    accuracy: float = Field(..., ge=0, le=100)


class Proportions(CamelModel):
    height: float = Field(..., ge=0)
    shoulders: float = Field(..., ge=0)
    ratio: float = Field(..., ge=0)


class ScanSummary(CamelModel):
    """
    Scan Summary

    Fields:
    - validPosesDetected: Number of usable poses in the scan
    - bestPoseAccuracy: Accuracy of the best pose, 0-100
    - jointsDetected: Detected over total joints, e.g. "12/15"
    - criticalJointsDetected: Whether every critical joint was found
    """
    valid_poses_detected: int = Field(..., ge=0)
    best_pose_accuracy: float = Field(..., ge=0, le=100)
    joints_detected: str = Field(..., pattern=r"^\d+/\d+$")
    critical_joints_detected: bool


class PoseDetectionCreate(CamelModel):
    patient_id: int
    summary: ScanSummary
    body_detection: List[BodyRegion] = []
    proportions: Optional[Proportions] = None
    joints: List[JointReading] = []
    notes: Optional[str] = Field(None, max_length=1000)


class PoseDetectionUpdate(CamelModel):
    """Only the notes of a recorded scan can change."""
    notes: Optional[str] = Field(None, max_length=1000)


class ScannedPatient(CamelModel):
    id: int
    full_name: str
    gender: Gender
    date_of_birth: date


class JointsCount(CamelModel):
    detected: int
    total: int


class PoseDetectionResponse(CamelModel):
    id: int
    patient_id: int
    patient: Optional[ScannedPatient] = None
    created_by: int
    summary: ScanSummary
    body_detection: List[BodyRegion] = []
    proportions: Optional[Proportions] = None
    joints: List[JointReading] = []
    joints_detected_count: JointsCount
    overall_assessment: str
    scan_date: Optional[datetime] = None
    device_info: str
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class RecentScan(CamelModel):
    id: int
    summary: ScanSummary
    scan_date: Optional[datetime] = None
    overall_assessment: str


class ScanStatistics(CamelModel):
    total_scans: int = 0
    average_accuracy: float = 0
    highest_accuracy: float = 0
    lowest_accuracy: float = 0
    first_scan: Optional[datetime] = None
    last_scan: Optional[datetime] = None
