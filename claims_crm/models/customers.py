from enum import Enum
from typing import Optional

from pydantic import Field

from claims_crm.models.base import ApiModel


class InteractionType(str, Enum):
    CALL = "call"
    EMAIL = "email"
    MEETING = "meeting"
    SMS = "sms"
    COMPLAINT = "complaint"
    NOTE = "note"


class InteractionCreate(ApiModel):
    """A logged touchpoint with a policy holder"""
    interaction_type: InteractionType
    subject: str = Field(..., min_length=1, max_length=200)
    summary: Optional[str] = Field(None, description="What was discussed")
    follow_up_required: bool = False
    agent_id: Optional[int] = Field(None, gt=0, description="User who handled the interaction")
