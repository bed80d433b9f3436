import logging
from datetime import datetime
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pytz import UTC

from db import USERS, LEAVE_REQUESTS
from utils.mail_utils import Mailer
from utils.notification_utils import find_reviewing_admins, notify_reminder

logger = logging.getLogger(__name__)

PENDING_STATUS = {"$regex": "^pending$", "$options": "i"}


def hour_bucket(now: datetime) -> str:
    return now.strftime("%Y%m%d%H")


class ReminderSweep:
    """Reminds reviewing admins about pending leave requests, at most once per hour each."""

    def __init__(self, database: AsyncIOMotorDatabase, mailer: Mailer):
        self.database = database
        self.mailer = mailer

    async def run(self, now: Optional[datetime] = None) -> int:
        now = now or datetime.now(UTC)
        hour_key = hour_bucket(now)
        created = 0

        try:
            async for leave in self.database[LEAVE_REQUESTS].find({"status": PENDING_STATUS}):
                owner = await self.database[USERS].find_one({"_id": leave.get("user_id")})
                if not owner or not owner.get("department"):
                    continue

                department = str(owner["department"]).strip()
                for admin in await find_reviewing_admins(self.database, department):
                    if await notify_reminder(self.database, self.mailer, leave, owner, admin, hour_key):
                        created += 1
        except Exception:
            logger.exception("Reminder sweep failed after creating %s reminders", created)

        logger.info("Reminder sweep for %s created %s reminders", hour_key, created)
        return created
