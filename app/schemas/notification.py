from pydantic import BaseModel
from typing import Optional
from datetime import datetime
from enum import Enum

class NotificationType(str, Enum):
    LEAVE_SUBMITTED = "leave_submitted"
    LEAVE_APPROVED = "leave_approved"
    LEAVE_REJECTED = "leave_rejected"
    GENERAL = "general"
    REMINDER = "reminder"

class NotificationCreate(BaseModel):
    recipient_id: str
    message: str
    type: NotificationType = NotificationType.GENERAL
    related_leave_request_id: Optional[str] = None

class NotificationResponse(BaseModel):
    id: str
    notification_id: str
    recipient_id: str
    sender_id: Optional[str] = None
    type: NotificationType
    message: str
    status: str
    is_read: bool
    related_leave_request_id: Optional[str] = None
    created_at: datetime


def serialize_notification(notification: dict) -> dict:
    return {
        "id": str(notification["_id"]),
        "notification_id": notification["notification_id"],
        "recipient_id": str(notification["recipient_id"]),
        "sender_id": str(notification["sender_id"]) if notification.get("sender_id") else None,
        "type": notification["type"],
        "message": notification["message"],
        "status": notification.get("status", "unread"),
        "is_read": notification.get("is_read", False),
        "related_leave_request_id": (
            str(notification["related_leave_request_id"])
            if notification.get("related_leave_request_id") else None
        ),
        "created_at": notification["created_at"],
    }
