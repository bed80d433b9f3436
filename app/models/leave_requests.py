from datetime import datetime, timezone
from enum import Enum
from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List

UTC = timezone.utc


class LeaveType(str, Enum):
    FULL_DAY = "Full Day"
    HALF_DAY = "Half Day"
    SHORT_LEAVE = "Short Leave"


class HalfDayType(str, Enum):
    MORNING = "morning"
    AFTERNOON = "afternoon"


class LeaveStatus(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class LeaveRequest(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True, use_enum_values=True)

    user_id: ObjectId
    leave_type: LeaveType
    dates: List[datetime]
    reason: str = ""
    half_day_type: Optional[HalfDayType] = None
    proof_document: Optional[bytes] = None # AES-256-CBC, IV prefixed
    proof_document_mime_type: Optional[str] = None
    status: LeaveStatus = LeaveStatus.PENDING
    approver_id: Optional[ObjectId] = None
    comments: List[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
