from datetime import date
from typing import Optional

from pydantic import Field, model_validator

from claims_crm.models.base import ApiModel


class PolicyHolderCreate(ApiModel):
    name: str = Field(..., min_length=1)
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    id_number: Optional[str] = Field(None, description="National id or passport number")
    notes: Optional[str] = None


class VehicleCreate(ApiModel):
    registration: str = Field(..., min_length=1)
    make: str = Field(..., min_length=1)
    model: str = Field(..., min_length=1)
    year: Optional[int] = Field(None, ge=1900, le=2100)
    color: Optional[str] = None
    chassis_number: Optional[str] = None
    engine_number: Optional[str] = None
    policy_holder_id: Optional[int] = Field(None, gt=0)


class PolicyCreate(ApiModel):
    """New policy; policy_number is generated when omitted"""
    policy_number: Optional[str] = None
    policy_holder_id: int = Field(..., gt=0)
    vehicle_id: Optional[int] = Field(None, gt=0)
    policy_type: str = Field(..., min_length=1, description="e.g. comprehensive, third_party")
    start_date: date
    end_date: date
    premium_amount: float = Field(..., ge=0)
    coverage_amount: float = Field(..., ge=0)
    status: str = "active"

    @model_validator(mode="after")
    def check_dates(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class SurveyorCreate(ApiModel):
    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    specialization: str = Field(..., min_length=1)
    license_number: str = Field(..., min_length=1)
    years_experience: int = Field(..., ge=0)
    address: str = Field(..., min_length=1)
    notes: Optional[str] = None


class SurveyorUpdate(SurveyorCreate):
    pass
