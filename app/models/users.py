from datetime import datetime, timezone
from pydantic import BaseModel, Field
from typing import Optional, List

UTC = timezone.utc

ACTIVE_STATUS = "active"
DELETED_STATUS = "user was deleted"


class LeaveBalance(BaseModel):
    annual: float = 20
    medical: float = 4
    shortleave: float = 24
    leaves_taken: float = 0


class Avatar(BaseModel):
    data: bytes
    content_type: str


class User(BaseModel):
    emp_id: str
    name: str
    email: str
    password: str # bcrypt hash
    roles: List[str] = Field(default_factory=lambda: ["employee"])
    department: str
    phone: Optional[str] = None
    leave_balance: LeaveBalance = Field(default_factory=LeaveBalance)
    avatar: Optional[Avatar] = None
    status: str = ACTIVE_STATUS
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
