"""Shared test fixtures: in-memory Mongo database, recording mailer, HTTP client and factories."""

import os

# Settings are read at import time, so these must be set first
os.environ.setdefault("MONGODB_URL", "mongodb://localhost:27017")
os.environ.setdefault("SECRET_KEY", "test-secret-for-ci-do-not-use-in-production")
os.environ.setdefault("DOC_ENCRYPTION_KEY", "test-document-key")
os.environ["ENABLE_SCHEDULER"] = "false"

from datetime import datetime, timezone
from typing import List, Optional

import pytest
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient

from db import USERS, ensure_indexes, get_database
from main import app as fastapi_app
from models.users import User
from utils.app_utils import create_access_token, hash_password
from utils.mail_utils import Mailer, get_mailer

UTC = timezone.utc

DEFAULT_PASSWORD = "secret123"


class RecordingBackend:
    name = "recording"

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent = []

    async def send(self, message):
        if self.fail:
            raise ConnectionError("mail server unavailable")
        self.sent.append(message)


@pytest.fixture
async def database():
    client = AsyncMongoMockClient()
    test_db = client["leave_management_test"]
    await ensure_indexes(test_db)
    return test_db


@pytest.fixture
def mail_backend():
    return RecordingBackend()


@pytest.fixture
async def mailer(mail_backend):
    mailer = Mailer([mail_backend])
    yield mailer
    await mailer.drain()


@pytest.fixture
async def app(database, mailer):
    fastapi_app.dependency_overrides[get_database] = lambda: database
    fastapi_app.dependency_overrides[get_mailer] = lambda: mailer
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


async def make_user(
    database,
    *,
    name: str = "Test User",
    emp_id: Optional[str] = None,
    email: Optional[str] = None,
    department: str = "Engineering",
    roles: Optional[List[str]] = None,
    leave_balance: Optional[dict] = None,
    created_at: Optional[datetime] = None,
    status: str = "active",
) -> dict:
    emp_id = emp_id or name.lower().replace(" ", ".")
    user = User(
        emp_id=emp_id,
        name=name,
        email=email or f"{emp_id}@example.com",
        password=hash_password(DEFAULT_PASSWORD),
        department=department,
        roles=roles or ["employee"],
        status=status,
    ).model_dump()
    if leave_balance is not None:
        user["leave_balance"] = leave_balance
    if created_at is not None:
        user["created_at"] = created_at

    result = await database[USERS].insert_one(user)
    user["_id"] = result.inserted_id
    return user


def auth_headers(user: dict) -> dict:
    token = create_access_token(payload={"sub": str(user["_id"])})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def employee(database):
    return await make_user(database, name="Jane Employee", department="Engineering")


@pytest.fixture
async def admin(database):
    return await make_user(
        database,
        name="Alex Admin",
        department="Engineering",
        roles=["admin"],
        created_at=datetime(2024, 1, 1, tzinfo=UTC),
    )
