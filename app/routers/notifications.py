import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING, ReturnDocument

from db import get_database, NOTIFICATIONS, USERS
from exceptions import NotFoundException, get_forbidden_exception, to_object_id
from models.notifications import Notification
from schemas.notification import NotificationCreate, NotificationResponse, serialize_notification
from utils.app_utils import get_current_user, get_current_admin
from utils.notification_utils import create_notification

router = APIRouter()


@router.post("/", status_code=status.HTTP_201_CREATED, response_model=NotificationResponse)
async def send_notification(
    notification: NotificationCreate,
    admin: dict = Depends(get_current_admin),
    database: AsyncIOMotorDatabase = Depends(get_database),
):
    recipient_id = to_object_id(notification.recipient_id, "Recipient")
    if not await database[USERS].find_one({"_id": recipient_id}):
        raise NotFoundException("Recipient")

    related_id = None
    if notification.related_leave_request_id:
        related_id = to_object_id(notification.related_leave_request_id, "Leave request")

    created = await create_notification(database, Notification(
        notification_id=str(uuid.uuid4()),
        recipient_id=recipient_id,
        sender_id=admin["_id"],
        type=notification.type,
        message=notification.message,
        related_leave_request_id=related_id,
    ))
    return serialize_notification(created)


@router.get("/", response_model=List[NotificationResponse])
async def get_notifications(
    recipient: Optional[str] = Query(None, description="Notifications addressed to this user"),
    role: Optional[str] = Query(None),
    department: Optional[str] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    user_and_type: tuple = Depends(get_current_user),
    database: AsyncIOMotorDatabase = Depends(get_database),
):
    """
    Retrieve notifications, newest first.
    Filters by ``recipient``, or by every user with the given ``role`` in
    ``department``. Employees only ever see their own notifications.
    """
    user, user_type = user_and_type
    query = {}

    if user_type != "admin":
        query["recipient_id"] = user["_id"]
    elif recipient:
        query["recipient_id"] = to_object_id(recipient, "Recipient")
    elif role and department:
        members = await database[USERS].find({"roles": role, "department": department}, {"_id": 1}).to_list(length=None)
        query["recipient_id"] = {"$in": [member["_id"] for member in members]}

    notifications = await database[NOTIFICATIONS].find(query)\
        .sort("created_at", DESCENDING)\
        .skip(skip)\
        .limit(limit)\
        .to_list(length=None)

    return [serialize_notification(notification) for notification in notifications]


def ensure_recipient(user_and_type: tuple, notification: dict):
    user, user_type = user_and_type
    if user_type != "admin" and notification["recipient_id"] != user["_id"]:
        raise get_forbidden_exception()


@router.get("/{notification_id}", response_model=NotificationResponse)
async def get_notification(
    notification_id: str,
    user_and_type: tuple = Depends(get_current_user),
    database: AsyncIOMotorDatabase = Depends(get_database),
):
    notification = await database[NOTIFICATIONS].find_one({"_id": to_object_id(notification_id, "Notification")})
    if not notification:
        raise NotFoundException("Notification")
    ensure_recipient(user_and_type, notification)
    return serialize_notification(notification)


@router.put("/{notification_id}/read", response_model=NotificationResponse)
async def mark_notification_read(
    notification_id: str,
    user_and_type: tuple = Depends(get_current_user),
    database: AsyncIOMotorDatabase = Depends(get_database),
):
    notifications = database[NOTIFICATIONS]
    notification_oid = to_object_id(notification_id, "Notification")

    notification = await notifications.find_one({"_id": notification_oid})
    if not notification:
        raise NotFoundException("Notification")
    ensure_recipient(user_and_type, notification)

    updated = await notifications.find_one_and_update(
        {"_id": notification_oid},
        {"$set": {"is_read": True, "status": "read"}},
        return_document=ReturnDocument.AFTER,
    )
    return serialize_notification(updated)
