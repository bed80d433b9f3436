"""Registration, login and password change."""

from db import USERS
from tests.conftest import DEFAULT_PASSWORD, auth_headers, make_user


async def test_register_then_login(client, database):
    response = await client.post("/api/auth/register", json={
        "emp_id": "E100",
        "name": "New Hire",
        "email": "new.hire@acme-corp.io",
        "password": "hunter22",
        "department": "Finance",
    })
    assert response.status_code == 201

    stored = await database[USERS].find_one({"emp_id": "E100"})
    assert stored["password"] != "hunter22"
    assert stored["leave_balance"] == {"annual": 20, "medical": 4, "shortleave": 24, "leaves_taken": 0}

    response = await client.post("/api/auth/login", data={"username": "E100", "password": "hunter22"})
    assert response.status_code == 200
    body = response.json()
    assert body["token_type"] == "bearer"
    assert body["user"]["department"] == "Finance"

    me = await client.get(f"/api/users/{stored['_id']}",
                          headers={"Authorization": f"Bearer {body['access_token']}"})
    assert me.status_code == 200


async def test_register_duplicate_emp_id(client, employee):
    response = await client.post("/api/auth/register", json={
        "emp_id": employee["emp_id"],
        "name": "Copy",
        "email": "copy@acme-corp.io",
        "password": "hunter22",
        "department": "Finance",
    })

    assert response.status_code == 400


async def test_self_registration_cannot_grant_admin(client, database):
    response = await client.post("/api/auth/register", json={
        "emp_id": "E101",
        "name": "Eager Hire",
        "email": "eager.hire@acme-corp.io",
        "password": "hunter22",
        "department": "Finance",
        "roles": ["admin"],
    })
    assert response.status_code == 201

    stored = await database[USERS].find_one({"emp_id": "E101"})
    assert stored["roles"] == ["employee"]

    login = await client.post("/api/auth/login", data={"username": "E101", "password": "hunter22"})
    headers = {"Authorization": f"Bearer {login.json()['access_token']}"}
    approval = await client.put("/api/leaverequests/65f000000000000000000000/status",
                                json={"status": "Approved"}, headers=headers)
    assert approval.status_code == 403


async def test_login_with_wrong_password(client, employee):
    response = await client.post("/api/auth/login", data={"username": employee["emp_id"], "password": "nope"})

    assert response.status_code == 401


async def test_deleted_user_cannot_login(client, database):
    user = await make_user(database, name="Former Staff", status="user was deleted")

    response = await client.post("/api/auth/login", data={"username": user["emp_id"], "password": DEFAULT_PASSWORD})

    assert response.status_code == 401


async def test_invalid_token_is_rejected(client):
    response = await client.get("/api/leaverequests/", headers={"Authorization": "Bearer not-a-token"})

    assert response.status_code == 401


async def test_change_password(client, employee):
    response = await client.post("/api/auth/change-password", headers=auth_headers(employee),
                                 json={"current_password": DEFAULT_PASSWORD, "new_password": "brand-new"})
    assert response.status_code == 200

    response = await client.post("/api/auth/login", data={"username": employee["emp_id"], "password": "brand-new"})
    assert response.status_code == 200


async def test_change_password_validations(client, employee):
    too_short = await client.post("/api/auth/change-password", headers=auth_headers(employee),
                                  json={"current_password": DEFAULT_PASSWORD, "new_password": "abc"})
    wrong_current = await client.post("/api/auth/change-password", headers=auth_headers(employee),
                                      json={"current_password": "wrong", "new_password": "brand-new"})

    assert too_short.status_code == 400
    assert wrong_current.status_code == 400
