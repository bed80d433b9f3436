from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING
from config import settings


client = AsyncIOMotorClient(settings.MONGODB_URL)
db = client[settings.DATABASE_NAME]


USERS = "users"
LEAVE_REQUESTS = "leave_requests"
NOTIFICATIONS = "notifications"


def get_database() -> AsyncIOMotorDatabase:
    return db


async def ensure_indexes(database: AsyncIOMotorDatabase):
    # notification_id doubles as the dedup key for reminders and submissions
    await database[NOTIFICATIONS].create_index([("notification_id", ASCENDING)], unique=True)
    await database[USERS].create_index([("emp_id", ASCENDING)], unique=True)
    await database[USERS].create_index([("email", ASCENDING)], unique=True)
    await database[LEAVE_REQUESTS].create_index([("status", ASCENDING)])
