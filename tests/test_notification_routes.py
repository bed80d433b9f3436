"""HTTP endpoints under /api/notifications."""

from datetime import datetime, timezone

from db import NOTIFICATIONS
from models.notifications import Notification
from schemas.notification import NotificationType
from utils.notification_utils import create_notification
from tests.conftest import auth_headers, make_user

UTC = timezone.utc


async def seed(database, recipient, message, created_at):
    return await create_notification(database, Notification(
        notification_id=f"seed_{message}",
        recipient_id=recipient["_id"],
        type=NotificationType.GENERAL,
        message=message,
        created_at=created_at,
    ))


async def test_admin_sends_general_notification(client, database, admin, employee):
    response = await client.post("/api/notifications/", headers=auth_headers(admin), json={
        "recipient_id": str(employee["_id"]),
        "message": "Office closed on Friday",
    })

    assert response.status_code == 201
    body = response.json()
    assert body["type"] == "general"
    assert body["sender_id"] == str(admin["_id"])
    assert body["is_read"] is False
    assert await database[NOTIFICATIONS].count_documents({"recipient_id": employee["_id"]}) == 1


async def test_employee_cannot_send_notifications(client, employee):
    response = await client.post("/api/notifications/", headers=auth_headers(employee), json={
        "recipient_id": str(employee["_id"]),
        "message": "hi",
    })

    assert response.status_code == 403


async def test_list_is_newest_first_and_scoped(client, database, admin, employee):
    await seed(database, employee, "older", datetime(2025, 1, 1, tzinfo=UTC))
    await seed(database, employee, "newer", datetime(2025, 2, 1, tzinfo=UTC))
    await seed(database, admin, "for admin", datetime(2025, 3, 1, tzinfo=UTC))

    response = await client.get("/api/notifications/", headers=auth_headers(employee))

    assert [n["message"] for n in response.json()] == ["newer", "older"]


async def test_admin_filters_by_role_and_department(client, database, admin, employee):
    sales_admin = await make_user(database, name="Sales Admin", roles=["admin"], department="Sales")
    await seed(database, admin, "engineering admin", datetime(2025, 1, 1, tzinfo=UTC))
    await seed(database, sales_admin, "sales admin", datetime(2025, 1, 2, tzinfo=UTC))
    await seed(database, employee, "engineering employee", datetime(2025, 1, 3, tzinfo=UTC))

    response = await client.get("/api/notifications/", params={"role": "admin", "department": "Engineering"},
                                headers=auth_headers(admin))

    assert [n["message"] for n in response.json()] == ["engineering admin"]


async def test_mark_as_read(client, database, employee):
    notification = await seed(database, employee, "read me", datetime(2025, 1, 1, tzinfo=UTC))

    response = await client.put(f"/api/notifications/{notification['_id']}/read", headers=auth_headers(employee))

    assert response.status_code == 200
    assert response.json()["is_read"] is True
    assert response.json()["status"] == "read"


async def test_cannot_read_someone_elses_notification(client, database, admin, employee):
    notification = await seed(database, admin, "private", datetime(2025, 1, 1, tzinfo=UTC))

    fetched = await client.get(f"/api/notifications/{notification['_id']}", headers=auth_headers(employee))
    marked = await client.put(f"/api/notifications/{notification['_id']}/read", headers=auth_headers(employee))

    assert fetched.status_code == 403
    assert marked.status_code == 403


async def test_unknown_notification(client, admin):
    response = await client.get("/api/notifications/65f000000000000000000000", headers=auth_headers(admin))

    assert response.status_code == 404
