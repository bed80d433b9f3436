from datetime import datetime, timezone
from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from schemas.notification import NotificationType

UTC = timezone.utc


class Notification(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True, use_enum_values=True)

    notification_id: str # dedup key
    recipient_id: ObjectId
    sender_id: Optional[ObjectId] = None
    type: NotificationType
    message: str
    status: str = "unread"
    is_read: bool = False
    related_leave_request_id: Optional[ObjectId] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
