import re
from datetime import date
from enum import Enum
from typing import Optional

from pydantic import Field, field_validator, model_validator

from claims_crm.models.base import ApiModel
from claims_crm.product_catalog import validate_product

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_RE = re.compile(r"^\+?[1-9]\d{0,15}$")
MAX_LEAD_VALUE = 10_000_000


class LeadStatus(str, Enum):
    NEW = "new"
    CONTACTED = "contacted"
    QUALIFIED = "qualified"
    PROPOSAL = "proposal"
    NEGOTIATION = "negotiation"
    CLOSED_WON = "closed_won"
    CLOSED_LOST = "closed_lost"


class LeadPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


def check_email(value: Optional[str]) -> Optional[str]:
    if value and not EMAIL_RE.match(value):
        raise ValueError("Invalid email format")
    return value or None


def check_phone(value: Optional[str]) -> Optional[str]:
    if value and not PHONE_RE.match(re.sub(r"[\s\-()]", "", value)):
        raise ValueError("Invalid phone number format")
    return value or None


class LeadFields(ApiModel):
    source_id: Optional[int] = Field(None, gt=0)
    email: Optional[str] = None
    phone: Optional[str] = None
    company_name: Optional[str] = None
    industry: Optional[str] = None
    lead_value: Optional[float] = Field(None, ge=0, le=MAX_LEAD_VALUE)
    product_category: Optional[str] = None
    product_subtype: Optional[str] = None
    assigned_to: Optional[int] = Field(None, gt=0)
    expected_close_date: Optional[date] = None
    notes: Optional[str] = None

    @field_validator("email")
    @classmethod
    def validate_email(cls, value):
        return check_email(value)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, value):
        return check_phone(value)


class LeadCreate(LeadFields):
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    status: LeadStatus = LeadStatus.NEW
    priority: LeadPriority = LeadPriority.MEDIUM

    @model_validator(mode="after")
    def check_product(self):
        error = validate_product(self.product_category, self.product_subtype)
        if error:
            raise ValueError(error)
        return self


class LeadUpdate(LeadFields):
    """Partial update; only the keys sent are written"""
    first_name: Optional[str] = Field(None, min_length=1)
    last_name: Optional[str] = Field(None, min_length=1)
    status: Optional[LeadStatus] = None
    priority: Optional[LeadPriority] = None


class LeadSourceCreate(ApiModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    is_active: bool = True
