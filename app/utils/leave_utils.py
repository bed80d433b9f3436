import logging
from datetime import date, datetime, timezone
from typing import Optional, List, Tuple

from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING, ReturnDocument

from db import get_database, USERS, LEAVE_REQUESTS
from exceptions import ConflictException, NotFoundException, ValidationException, to_object_id
from models.leave_requests import HalfDayType, LeaveRequest, LeaveStatus, LeaveType
from models.users import LeaveBalance
from utils.crypto_utils import encrypt_document, decrypt_document
from utils.mail_utils import Mailer, get_mailer
from utils.notification_utils import notify_admin_of_submission, notify_requester_of_status_change

UTC = timezone.utc

logger = logging.getLogger(__name__)

SICK_REASON = "Sick"
OTHER_REASON = "Other"
SHORT_LEAVE_WEIGHT = 0.5

EDITABLE_FIELDS = ("reason", "dates", "half_day_type", "comments")


def calculate_leave_balance(balance: Optional[dict], leave_type: str, reason: str, dates: list) -> dict:
    """
    Compute the balance left after an approved leave.

    Full-day sick leave draws on ``medical``, any other full-day leave on
    ``annual``, and each short leave costs half a day of ``shortleave``.
    Half-day leave does not touch the balance. Counters are floored at zero
    but ``leaves_taken`` always grows by the full requested amount.
    """
    current = LeaveBalance(**(balance or {}))
    annual = current.annual
    medical = current.medical
    shortleave = current.shortleave
    leaves_taken = current.leaves_taken
    days = len(dates or [])

    if leave_type == LeaveType.FULL_DAY.value:
        if reason == SICK_REASON:
            medical -= days
        else:
            annual -= days
        leaves_taken += days
    elif leave_type == LeaveType.SHORT_LEAVE.value:
        shortleave -= days * SHORT_LEAVE_WEIGHT
        leaves_taken += days * SHORT_LEAVE_WEIGHT

    return {
        "annual": max(0, annual),
        "medical": max(0, medical),
        "shortleave": max(0, shortleave),
        "leaves_taken": leaves_taken,
    }


async def apply_leave_balance(database: AsyncIOMotorDatabase, user_id, leave: dict) -> dict:
    users = database[USERS]
    user = await users.find_one({"_id": to_object_id(user_id, "User")})
    if not user:
        raise NotFoundException("User")

    new_balance = calculate_leave_balance(
        user.get("leave_balance"), leave.get("leave_type"), leave.get("reason"), leave.get("dates")
    )
    await users.update_one({"_id": user["_id"]}, {"$set": {"leave_balance": new_balance}})
    return new_balance


def normalize_dates(dates) -> List[datetime]:
    if isinstance(dates, (str, date)):
        dates = [dates]

    normalized = []
    for value in dates or []:
        if isinstance(value, datetime):
            parsed = value
        elif isinstance(value, date):
            parsed = datetime.combine(value, datetime.min.time())
        else:
            try:
                parsed = datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
            except ValueError:
                raise ValidationException(f"Invalid date: {value}")
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=UTC)
        normalized.append(parsed)
    return normalized


def parse_choice(enum_class, value, label: str):
    try:
        return enum_class(value)
    except ValueError:
        raise ValidationException(f"Invalid {label}: {value}")


class LeaveManager:
    """Keeps leave requests, balances and notifications consistent with each other."""

    def __init__(self, database: AsyncIOMotorDatabase, mailer: Mailer):
        self.database = database
        self.mailer = mailer

    @property
    def leaves(self):
        return self.database[LEAVE_REQUESTS]

    @property
    def users(self):
        return self.database[USERS]

    async def submit(
        self,
        user_id,
        leave_type: Optional[str],
        dates,
        reason: Optional[str] = "",
        half_day_type: Optional[str] = None,
        other_reason: Optional[str] = None,
        proof: Optional[bytes] = None,
        proof_mime_type: Optional[str] = None,
    ) -> dict:
        leave_dates = normalize_dates(dates)
        if not user_id or not leave_type or not leave_dates:
            raise ValidationException("Required fields missing")

        leave_type = parse_choice(LeaveType, leave_type, "leave type")
        if half_day_type:
            half_day_type = parse_choice(HalfDayType, half_day_type, "half day type")

        owner = await self.users.find_one({"_id": to_object_id(user_id, "User")})
        if not owner:
            raise NotFoundException("User")

        final_reason = other_reason if reason == OTHER_REASON and other_reason else reason

        leave = LeaveRequest(
            user_id=owner["_id"],
            leave_type=leave_type,
            dates=leave_dates,
            reason=final_reason or "",
            half_day_type=half_day_type or None,
            proof_document=encrypt_document(proof) if proof else None,
            proof_document_mime_type=proof_mime_type if proof else None,
        )
        document = leave.model_dump()
        result = await self.leaves.insert_one(document)
        document["_id"] = result.inserted_id

        try:
            await notify_admin_of_submission(self.database, self.mailer, document, owner)
        except Exception:
            logger.exception("Failed to notify admin of leave request %s", document["_id"])

        return document

    async def get_leave(self, leave_id) -> dict:
        leave = await self.leaves.find_one({"_id": to_object_id(leave_id, "Leave request")})
        if not leave:
            raise NotFoundException("Leave request")
        return leave

    async def transition(self, leave_id, new_status, approver_id=None, changes: Optional[dict] = None) -> dict:
        """
        Approve or reject a pending request.

        The status write is conditional on the request still being Pending,
        so concurrent reviewers cannot both apply the balance deduction.
        Side effects run in order: status, balance (approvals only),
        approver, notification. A failing balance update leaves the status
        change in place. Field ``changes`` are written in the same conditional
        update, so nothing is stored when the request is no longer pending.
        """
        leave_oid = to_object_id(leave_id, "Leave request")
        status = parse_choice(LeaveStatus, new_status, "status")
        if status == LeaveStatus.PENDING:
            raise ValidationException("Leave requests can only be approved or rejected")
        approver_oid = to_object_id(approver_id, "Approver") if approver_id else None

        updated = await self.leaves.find_one_and_update(
            {"_id": leave_oid, "status": LeaveStatus.PENDING.value},
            {"$set": {**(changes or {}), "status": status.value, "updated_at": datetime.now(UTC)}},
            return_document=ReturnDocument.AFTER,
        )
        if updated is None:
            current = await self.get_leave(leave_oid)
            raise ConflictException(f"Leave request has already been {str(current['status']).lower()}")

        if status == LeaveStatus.APPROVED:
            await apply_leave_balance(self.database, updated["user_id"], updated)

        if approver_oid:
            await self.leaves.update_one({"_id": leave_oid}, {"$set": {"approver_id": approver_oid}})
            updated["approver_id"] = approver_oid

        try:
            await notify_requester_of_status_change(self.database, self.mailer, updated, approver_oid, status.value)
        except Exception:
            logger.exception("Failed to notify requester of leave request %s", leave_oid)

        return updated

    async def update(self, leave_id, changes: dict, status=None, approver_id=None) -> dict:
        leave_oid = to_object_id(leave_id, "Leave request")
        fields = {key: value for key, value in changes.items() if key in EDITABLE_FIELDS and value is not None}
        if "dates" in fields:
            fields["dates"] = normalize_dates(fields["dates"])
            if not fields["dates"]:
                raise ValidationException("Dates cannot be empty")
        if "half_day_type" in fields:
            fields["half_day_type"] = parse_choice(HalfDayType, fields["half_day_type"], "half day type").value

        if status:
            return await self.transition(leave_oid, status, approver_id, changes=fields)

        if fields:
            fields["updated_at"] = datetime.now(UTC)
            result = await self.leaves.update_one({"_id": leave_oid}, {"$set": fields})
            if result.matched_count == 0:
                raise NotFoundException("Leave request")
        return await self.get_leave(leave_oid)

    async def list_leaves(self, status: Optional[str] = None, user_id=None) -> list:
        query = {}
        if status:
            query["status"] = status
        if user_id:
            query["user_id"] = to_object_id(user_id, "User")
        return await self.leaves.find(query).sort("created_at", DESCENDING).to_list(length=None)

    async def load_users(self, leaves: list) -> dict:
        """Fetch owners and approvers of the given requests in one query, keyed by id."""
        ids = set()
        for leave in leaves:
            ids.add(leave["user_id"])
            if leave.get("approver_id"):
                ids.add(leave["approver_id"])
        if not ids:
            return {}
        users = await self.users.find({"_id": {"$in": list(ids)}}).to_list(length=None)
        return {user["_id"]: user for user in users}

    async def delete(self, leave_id):
        result = await self.leaves.delete_one({"_id": to_object_id(leave_id, "Leave request")})
        if result.deleted_count == 0:
            raise NotFoundException("Leave request")

    async def read_proof(self, leave_id) -> Tuple[bytes, str]:
        leave = await self.get_leave(leave_id)
        if not leave.get("proof_document"):
            raise NotFoundException("Proof document")
        mime_type = leave.get("proof_document_mime_type") or "application/octet-stream"
        return decrypt_document(leave["proof_document"]), mime_type


def get_leave_manager(
    database: AsyncIOMotorDatabase = Depends(get_database),
    mailer: Mailer = Depends(get_mailer),
) -> LeaveManager:
    return LeaveManager(database, mailer)
