from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from claims_crm.models.base import ApiModel, Row


class ClaimStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    SURVEYED = "surveyed"


class SurveyStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class ClaimCreate(ApiModel):
    """New claim against an existing policy"""
    policy_id: int = Field(..., gt=0, description="Policy the claim is filed against")
    incident_date: date = Field(..., description="Date of the incident (YYYY-MM-DD)")
    report_date: Optional[date] = Field(None, description="Date reported; defaults to today")
    incident_location: Optional[str] = None
    incident_description: Optional[str] = None
    damage_description: Optional[str] = None
    estimated_amount: Optional[float] = Field(None, ge=0)


class ClaimStatusUpdate(ApiModel):
    status: ClaimStatus
    approved_amount: Optional[float] = Field(None, ge=0, description="Amount approved for payout")


class SurveyorAssignment(ApiModel):
    surveyor_id: int = Field(..., gt=0)


class SurveyUpsert(ApiModel):
    """Survey report for a claim; one per claim"""
    surveyor_id: int = Field(..., gt=0)
    survey_date: date
    survey_location: Optional[str] = None
    survey_report: Optional[str] = None
    survey_amount: Optional[float] = Field(None, ge=0)
    status: SurveyStatus = SurveyStatus.PENDING


class NoteCreate(ApiModel):
    note_text: str = Field(..., min_length=1)
    created_by: Optional[str] = None


class DocumentCreate(ApiModel):
    """Document metadata supplied as JSON instead of a multipart upload"""
    document_type: Optional[str] = None
    file_name: str = Field(..., min_length=1)
    file_path: Optional[str] = None
    file_size: Optional[int] = Field(None, ge=0)
    mime_type: Optional[str] = None


# =========================
# RESPONSES
# =========================
class ClaimRecord(Row):
    id: int
    claim_number: str
    policy_id: int
    status: ClaimStatus
    estimated_amount: Optional[float] = None
    approved_amount: Optional[float] = None


class ClaimListResponse(BaseModel):
    claims: List[ClaimRecord]


class ClaimResponse(BaseModel):
    success: bool = True
    claim: ClaimRecord


class ClaimCreatedResponse(ClaimResponse):
    message: str = Field(..., description="Human readable confirmation")


class SurveyRecord(Row):
    id: int
    claim_id: int
    surveyor_id: Optional[int] = Field(None, description="Null once the authoring surveyor is deleted")
    status: SurveyStatus
    amount: Optional[float] = None


class ClaimDetailResponse(BaseModel):
    """Claim with everything hanging off it; survey and payment are lists"""
    claim: ClaimRecord
    documents: List[Dict[str, Any]] = Field(default_factory=list)
    notes: List[Dict[str, Any]] = Field(default_factory=list)
    survey: List[SurveyRecord] = Field(default_factory=list)
    payment: List[Dict[str, Any]] = Field(default_factory=list)


class SurveyResponse(BaseModel):
    success: bool = True
    survey: SurveyRecord


class AssignedSurveyor(BaseModel):
    id: int
    name: str
    specialization: str


class SurveyView(BaseModel):
    survey: Optional[SurveyRecord] = None
    assignedSurveyor: Optional[AssignedSurveyor] = None
