from typing import List, Optional

from pydantic import Field, field_validator

from claims_crm.models.base import ApiModel
from claims_crm.models.leads import check_email


class UserCreate(ApiModel):
    full_name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=1, max_length=255)
    role: str = "user"
    is_active: bool = True

    @field_validator("email")
    @classmethod
    def validate_email(cls, value):
        return check_email(value)


class UserUpdate(ApiModel):
    full_name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[str] = Field(None, min_length=1, max_length=255)
    role: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("email")
    @classmethod
    def validate_email(cls, value):
        return check_email(value)


class RoleUpdate(ApiModel):
    """Replace a role's name, description and its full permission set"""
    id: int = Field(..., gt=0)
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    permissions: List[int] = Field(default_factory=list, description="Permission ids")


class SettingsUpdate(ApiModel):
    company_name: Optional[str] = Field(None, min_length=1)
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    dark_mode: Optional[bool] = None
    email_notifications: Optional[bool] = None


class LoginRequest(ApiModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
