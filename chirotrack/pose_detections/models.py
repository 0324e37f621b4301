"""
Pose Detection Model - Stores posture scan results attached to a patient.

The scan summary lives in plain columns so it can be sorted and aggregated;
the per-region, per-joint and proportion detail is stored as JSON.
"""
import enum

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import backref, relationship

from ..database import Base

DEFAULT_DEVICE_INFO = "Apple Vision API"


class JointName(str, enum.Enum):
    HEAD = "Head"
    LEFT_SHOULDER = "L. Shoulder"
    RIGHT_SHOULDER = "R. Shoulder"
    LEFT_ELBOW = "L. Elbow"
    RIGHT_ELBOW = "R. Elbow"
    LEFT_WRIST = "L. Wrist"
    RIGHT_WRIST = "R. Wrist"
    LEFT_HIP = "L. Hip"
    RIGHT_HIP = "R. Hip"
    LEFT_KNEE = "L. Knee"
    RIGHT_KNEE = "R. Knee"
    LEFT_ANKLE = "L. Ankle"
    RIGHT_ANKLE = "R. Ankle"
    NECK = "Neck"
    TORSO = "Torso"


class BodyRegionName(str, enum.Enum):
    HEAD = "Head"
    TORSO = "Torso"
    ARMS = "Arms"
    LEGS = "Legs"


def assessment_for(accuracy: float) -> str:
    if accuracy >= 90:
        return "Excellent"
    if accuracy >= 80:
        return "Good"
    if accuracy >= 70:
        return "Fair"
    return "Needs Improvement"


class PoseDetection(Base):
    """
    Pose Detection Model - One posture scan of a patient

    Fields:
    - id: Primary key for the scan
    - patient_id: Scanned patient
    - created_by: Practitioner who recorded the scan
    - valid_poses_detected / best_pose_accuracy / joints_detected /
      critical_joints_detected: Scan summary
    - body_detection: Per-region detection counts and accuracy (JSON list)
    - proportions: Height, shoulder width and their ratio (JSON object)
    - joints: Per-joint status, confidence and coordinates (JSON list)
    - scan_date: When the scan was taken
    - device_info: Capturing device or framework
    - notes: Practitioner notes (up to 1000 characters)
    - created_at / updated_at: Record timestamps
    """
    __tablename__ = "pose_detections"
    __table_args__ = (
        Index("ix_pose_detections_patient_scan_date", "patient_id", "scan_date"),
        Index("ix_pose_detections_created_by_scan_date", "created_by", "scan_date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    patient_id = Column(Integer, ForeignKey("patients.id", ondelete="CASCADE"), nullable=False)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    valid_poses_detected = Column(Integer, nullable=False)
    best_pose_accuracy = Column(Float, nullable=False, index=True)
    joints_detected = Column(String(20), nullable=False)
    critical_joints_detected = Column(Boolean, nullable=False)

    body_detection = Column(JSON, nullable=False, default=list)
    proportions = Column(JSON, nullable=True)
    joints = Column(JSON, nullable=False, default=list)

    scan_date = Column(DateTime(timezone=True), server_default=func.now())
    device_info = Column(String, nullable=False, default=DEFAULT_DEVICE_INFO)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    patient = relationship(
        "Patient",
        backref=backref("pose_detections", cascade="all, delete-orphan"),
    )
    creator = relationship("User")

    @property
    def summary(self) -> dict:
        return {
            "valid_poses_detected": self.valid_poses_detected,
            "best_pose_accuracy": self.best_pose_accuracy,
            "joints_detected": self.joints_detected,
            "critical_joints_detected": self.critical_joints_detected,
        }

    @property
    def joints_detected_count(self) -> dict:
        """``"12/15"`` as ``{"detected": 12, "total": 15}``."""
        detected, total = (int(part) for part in self.joints_detected.split("/"))
        return {"detected": detected, "total": total}

    @property
    def overall_assessment(self) -> str:
        return assessment_for(self.best_pose_accuracy)

    def __repr__(self):
        return f"<PoseDetection(id={self.id}, patient_id={self.patient_id}, accuracy={self.best_pose_accuracy})>"
