import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from db import get_database
from utils.mail_utils import get_mailer
from utils.reminder_utils import ReminderSweep

logger = logging.getLogger(__name__)

# Create a shared scheduler instance
scheduler = AsyncIOScheduler(timezone="UTC")


async def send_pending_leave_reminders():
    await ReminderSweep(get_database(), get_mailer()).run()

# Top of every hour; a slow sweep is never overlapped by the next tick
scheduler.add_job(
    send_pending_leave_reminders,
    "cron",
    minute=0,
    id="pending_leave_reminders",
    max_instances=1,
    coalesce=True,
    replace_existing=True,
)
