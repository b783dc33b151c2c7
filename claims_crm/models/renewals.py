from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from claims_crm.models.base import ApiModel, Row


class RenewalStatus(str, Enum):
    PENDING = "pending"
    URGENT = "urgent"
    OVERDUE = "overdue"
    CONVERTED = "converted"
    LOST = "lost"


# statuses that close the renewal and are mirrored into conversion_status
TERMINAL_STATUSES = {RenewalStatus.CONVERTED, RenewalStatus.LOST}

# activity types that count as a customer contact
CONTACT_ACTIVITY_TYPES = {"call", "email", "meeting", "sms", "whatsapp"}


class RenewalCreate(ApiModel):
    policy_id: int = Field(..., gt=0)
    renewal_date: date
    renewal_premium: Optional[float] = Field(None, ge=0)
    original_premium: Optional[float] = Field(None, ge=0, description="Defaults to the policy premium")
    assigned_to: Optional[int] = Field(None, gt=0)
    renewal_notes: Optional[str] = None


class RenewalAssign(ApiModel):
    assigned_to: int = Field(..., gt=0, description="User id of the new owner")


class RenewalStatusChange(ApiModel):
    status: RenewalStatus


class RenewalActivityCreate(ApiModel):
    activity_type: str = Field(..., min_length=1, description="call, email, meeting, note...")
    subject: Optional[str] = None
    description: Optional[str] = None
    next_follow_up_date: Optional[date] = None


# =========================
# RESPONSES
# =========================
class RenewalRecord(Row):
    id: int
    policy_id: int
    status: RenewalStatus
    conversion_status: Optional[str] = None
    assigned_to: Optional[int] = None
    contact_count: int = 0
    renewal_premium: Optional[float] = None
    original_premium: Optional[float] = None


class RenewalHistoryRecord(Row):
    id: int
    renewal_id: int
    old_status: Optional[str] = None
    new_status: str
    changed_by: Optional[str] = None


class RenewalListResponse(BaseModel):
    renewals: List[RenewalRecord]


class RenewalResponse(BaseModel):
    success: bool = True
    renewal: RenewalRecord


class RenewalStatusResponse(RenewalResponse):
    history: RenewalHistoryRecord


class RenewalDetailResponse(BaseModel):
    renewal: RenewalRecord
    activities: List[Dict[str, Any]] = Field(default_factory=list)
    history: List[RenewalHistoryRecord] = Field(default_factory=list)
