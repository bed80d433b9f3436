from datetime import datetime
from pydantic import BaseModel, Field
from typing import Optional, List

from models.leave_requests import HalfDayType, LeaveStatus, LeaveType
from schemas.user import UserSummary, serialize_user_summary


class LeaveUpdate(BaseModel):
    reason: Optional[str] = None
    dates: Optional[List[datetime]] = None
    half_day_type: Optional[HalfDayType] = None
    comments: Optional[List[str]] = None
    status: Optional[LeaveStatus] = None
    approver_id: Optional[str] = None


class StatusUpdate(BaseModel):
    status: LeaveStatus
    approver_id: Optional[str] = None


class LeaveResponse(BaseModel):
    id: str
    user_id: str
    user: Optional[UserSummary] = None
    leave_type: LeaveType
    dates: List[datetime]
    reason: str
    half_day_type: Optional[HalfDayType] = None
    has_proof_document: bool = False
    proof_document_mime_type: Optional[str] = None
    status: LeaveStatus
    approver_id: Optional[str] = None
    approver: Optional[UserSummary] = None
    comments: List[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


def serialize_leave(leave: dict, user: Optional[dict] = None, approver: Optional[dict] = None) -> dict:
    return {
        "id": str(leave["_id"]),
        "user_id": str(leave["user_id"]),
        "user": serialize_user_summary(user) if user else None,
        "leave_type": leave["leave_type"],
        "dates": leave.get("dates", []),
        "reason": leave.get("reason", ""),
        "half_day_type": leave.get("half_day_type"),
        "has_proof_document": bool(leave.get("proof_document")),
        "proof_document_mime_type": leave.get("proof_document_mime_type"),
        "status": leave["status"],
        "approver_id": str(leave["approver_id"]) if leave.get("approver_id") else None,
        "approver": serialize_user_summary(approver) if approver else None,
        "comments": leave.get("comments") or [],
        "created_at": leave["created_at"],
        "updated_at": leave.get("updated_at", leave["created_at"]),
    }
