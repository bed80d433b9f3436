import logging
import uuid
from datetime import datetime
from html import escape
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING
from pymongo.errors import DuplicateKeyError

from config import settings
from db import USERS, NOTIFICATIONS
from exceptions import to_object_id
from models.notifications import Notification
from models.users import DELETED_STATUS
from schemas.notification import NotificationType
from utils.mail_utils import Mailer, MailMessage

logger = logging.getLogger(__name__)

# submissions fall back to any department mentioning HR; reminders need an exact match
HR_DEPARTMENT_LIKE = {"$regex": r"(hr|human resources)", "$options": "i"}
HR_DEPARTMENT = {"$regex": r"^\s*(hr|human resources)\s*$", "$options": "i"}

# oldest admin first; _id breaks ties between identical timestamps
ADMIN_ORDER = [("created_at", ASCENDING), ("_id", ASCENDING)]


def admin_filter(extra: dict) -> dict:
    query = {"roles": "admin", "status": {"$ne": DELETED_STATUS}}
    query.update(extra)
    return query


def format_dates(dates) -> str:
    if not dates:
        return "-"
    return ", ".join(d.strftime("%Y-%m-%d") if isinstance(d, datetime) else str(d) for d in dates)


async def create_notification(database: AsyncIOMotorDatabase, notification: Notification) -> Optional[dict]:
    """
    Persist a notification unless one with the same dedup key exists.

    Returns the stored document, or None when the key was already taken.
    The unique index on notification_id catches writers that race past the
    lookup.
    """
    document = notification.model_dump()
    collection = database[NOTIFICATIONS]

    if await collection.find_one({"notification_id": document["notification_id"]}):
        logger.info("Notification %s already exists; skipping", document["notification_id"])
        return None

    try:
        result = await collection.insert_one(document)
    except DuplicateKeyError:
        logger.info("Notification %s created concurrently; skipping", document["notification_id"])
        return None

    document["_id"] = result.inserted_id
    return document


async def find_submission_admin(database: AsyncIOMotorDatabase, department: Optional[str]) -> Optional[dict]:
    """Pick the single admin who reviews a new request: same department first, else HR."""
    users = database[USERS]

    if department:
        admins = await users.find(admin_filter({"department": department})).sort(ADMIN_ORDER).to_list(length=1)
        if admins:
            return admins[0]

    admins = await users.find(admin_filter({"department": HR_DEPARTMENT_LIKE})).sort(ADMIN_ORDER).to_list(length=1)
    return admins[0] if admins else None


async def find_reviewing_admins(database: AsyncIOMotorDatabase, department: str) -> list:
    query = admin_filter({"$or": [{"department": department}, {"department": HR_DEPARTMENT}]})
    return await database[USERS].find(query).sort(ADMIN_ORDER).to_list(length=None)


def leave_details(leave: dict) -> list:
    return [
        f"Dates: {format_dates(leave.get('dates'))}",
        f"Type: {leave.get('leave_type') or '-'}",
        f"Reason: {leave.get('reason') or '-'}",
    ]


async def notify_admin_of_submission(database: AsyncIOMotorDatabase, mailer: Mailer, leave: dict, owner: dict):
    department = owner.get("department")
    admin = await find_submission_admin(database, department)
    if admin is None:
        logger.warning("No admin found to notify for department: %s", department)
        return None

    employee_name = owner.get("name") or "an employee"
    notification = await create_notification(database, Notification(
        notification_id=f"leave_{leave['_id']}_{admin['_id']}",
        recipient_id=admin["_id"],
        sender_id=owner.get("_id"),
        type=NotificationType.LEAVE_SUBMITTED,
        message=f"New leave request from {employee_name}.",
        related_leave_request_id=leave["_id"],
    ))
    if notification is None:
        return None

    if admin.get("email"):
        text = "\n".join([
            "A new leave request has been submitted.",
            "",
            f"Employee: {owner.get('name') or 'N/A'}",
            f"Department: {department or 'N/A'}",
            *leave_details(leave),
            "",
            "View in admin panel to approve or reject.",
        ])
        mailer.dispatch(MailMessage(
            to=admin["email"],
            subject=f"New leave request from {owner.get('name') or 'employee'}",
            text=text,
            from_address=settings.MAIL_FROM,
        ))

    return notification


def split_user_reference(reference):
    """An approver may be stored as a raw id or as an already expanded user document."""
    if isinstance(reference, dict):
        return reference.get("_id"), reference
    return reference, None


async def notify_requester_of_status_change(
    database: AsyncIOMotorDatabase,
    mailer: Mailer,
    leave: dict,
    approver_id,
    new_status: str,
):
    users = database[USERS]

    if approver_id:
        effective_id, approver = split_user_reference(approver_id)
    else:
        effective_id, approver = split_user_reference(leave.get("approver") or leave.get("approver_id"))

    if approver is None and effective_id:
        approver = await users.find_one({"_id": to_object_id(effective_id, "Approver")})

    status_lower = str(new_status).lower()
    basic_message = f"Your leave request has been {status_lower}"
    approver_name = approver.get("name") if approver else None
    message = f"{basic_message} by {approver_name}." if approver_name else basic_message

    sender_id = approver["_id"] if approver else (to_object_id(effective_id, "Approver") if effective_id else None)
    notification_type = (
        NotificationType.LEAVE_APPROVED if status_lower == "approved" else NotificationType.LEAVE_REJECTED
    )

    notification = await create_notification(database, Notification(
        notification_id=str(uuid.uuid4()),
        recipient_id=leave["user_id"],
        sender_id=sender_id,
        type=notification_type,
        message=message,
        related_leave_request_id=leave["_id"],
    ))

    recipient = await users.find_one({"_id": leave["user_id"]})
    recipient_email = recipient.get("email") if recipient else None
    sender_email = (approver or {}).get("email") or settings.MAIL_FROM
    if recipient_email and sender_email:
        details = leave_details(leave)
        mailer.dispatch(MailMessage(
            to=recipient_email,
            subject=f"Leave request {new_status}",
            text="\n".join([message, "", "Request details:", *[f"- {line}" for line in details]]),
            html="".join([
                f"<p>{escape(message)}</p>",
                "<p><strong>Request details:</strong></p>",
                "<ul>",
                *[f"<li>{escape(line)}</li>" for line in details],
                "</ul>",
            ]),
            from_address=f"{approver_name or settings.MAIL_FROM_NAME} <{sender_email}>",
        ))

    return notification


async def notify_reminder(database: AsyncIOMotorDatabase, mailer: Mailer, leave: dict, owner: dict,
                          admin: dict, hour_key: str):
    notification = await create_notification(database, Notification(
        notification_id=f"reminder_{leave['_id']}_{admin['_id']}_{hour_key}",
        recipient_id=admin["_id"],
        type=NotificationType.REMINDER,
        message=f"Reminder: Pending leave request from {owner.get('name') or 'an employee'}.",
        related_leave_request_id=leave["_id"],
    ))
    if notification is None:
        return None

    if admin.get("email"):
        text = "\n".join([
            "You have a pending leave request to review.",
            "",
            f"Employee: {owner.get('name') or 'N/A'}",
            f"Department: {owner.get('department') or 'N/A'}",
            *leave_details(leave),
            "",
            "Please review the request in the admin panel.",
        ])
        mailer.dispatch(MailMessage(
            to=admin["email"],
            subject=f"Reminder: Pending leave request from {owner.get('name') or 'Employee'}",
            text=text,
            from_address=settings.MAIL_FROM,
        ))

    return notification
