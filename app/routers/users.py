from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Request, Response, UploadFile, status
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError

from db import get_database, USERS
from exceptions import NotFoundException, get_forbidden_exception, to_object_id
from models.users import User, ACTIVE_STATUS, DELETED_STATUS
from schemas.user import LeaveBalanceResponse, UserLeaveBalance, UserResponse, serialize_user
from utils.app_utils import get_current_user, get_current_admin, hash_password
from utils.image_utils import avatar_url_for, read_avatar

UTC = timezone.utc

router = APIRouter()


async def find_user(database: AsyncIOMotorDatabase, user_id: str) -> dict:
    user = await database[USERS].find_one({"_id": to_object_id(user_id, "User")})
    if not user:
        raise NotFoundException("User")
    return user


def user_response(request: Request, user: dict) -> dict:
    return serialize_user(user, avatar_url=avatar_url_for(str(request.base_url), user))


def ensure_self_or_admin(user_and_type: tuple, user_id) -> dict:
    current_user, user_type = user_and_type
    if user_type != "admin" and str(current_user["_id"]) != str(user_id):
        raise get_forbidden_exception()
    return current_user


async def apply_user_changes(database, request: Request, user: dict, changes: dict,
                             avatar: Optional[UploadFile], remove_avatar: bool) -> dict:
    update = {key: value for key, value in changes.items() if value is not None}
    unset = {}

    if avatar is not None and avatar.filename:
        update["avatar"] = await read_avatar(avatar)
        update["avatar_updated_at"] = datetime.now(UTC)
    elif remove_avatar:
        unset["avatar"] = ""

    operations = {}
    if update:
        operations["$set"] = update
    if unset:
        operations["$unset"] = unset

    if operations:
        try:
            await database[USERS].update_one({"_id": user["_id"]}, operations)
        except DuplicateKeyError:
            raise HTTPException(status_code=400, detail="Employee id or email already in use")

    return user_response(request, await find_user(database, user["_id"]))


@router.post("/", status_code=status.HTTP_201_CREATED, response_model=UserResponse)
async def create_user(
    request: Request,
    emp_id: str = Form(...),
    name: str = Form(...),
    email: str = Form(...),
    password: str = Form(...),
    department: str = Form(...),
    roles: List[str] = Form(["employee"]),
    phone: Optional[str] = Form(None),
    avatar: Optional[UploadFile] = File(None),
    admin: dict = Depends(get_current_admin),
    database: AsyncIOMotorDatabase = Depends(get_database),
):
    """
    Create a user, optionally with an avatar image stored alongside the record.
    Only admins can create users.
    """
    user = User(
        emp_id=emp_id,
        name=name,
        email=email,
        password=hash_password(password),
        department=department,
        roles=roles,
        phone=phone,
    ).model_dump()

    if avatar is not None and avatar.filename:
        user["avatar"] = await read_avatar(avatar)

    try:
        result = await database[USERS].insert_one(user)
    except DuplicateKeyError:
        raise HTTPException(status_code=400, detail="Employee already exists")

    user["_id"] = result.inserted_id
    return user_response(request, user)


@router.get("/", response_model=List[UserResponse])
async def list_users(
    request: Request,
    include_deleted: bool = Query(False, description="Include soft-deleted users"),
    user_and_type: tuple = Depends(get_current_user),
    database: AsyncIOMotorDatabase = Depends(get_database),
):
    query = {} if include_deleted else {"status": {"$ne": DELETED_STATUS}}
    users = await database[USERS].find(query).to_list(length=None)
    return [user_response(request, user) for user in users]


@router.get("/all/leave-balances", response_model=List[UserLeaveBalance])
async def all_leave_balances(
    user_and_type: tuple = Depends(get_current_user),
    database: AsyncIOMotorDatabase = Depends(get_database),
):
    users = await database[USERS].find({}, {"name": 1, "emp_id": 1, "leave_balance": 1}).to_list(length=None)
    return [
        {"id": str(user["_id"]), "emp_id": user["emp_id"], "name": user["name"],
         "leave_balance": user["leave_balance"]}
        for user in users
    ]


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    request: Request,
    user_and_type: tuple = Depends(get_current_user),
    database: AsyncIOMotorDatabase = Depends(get_database),
):
    return user_response(request, await find_user(database, user_id))


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: str,
    request: Request,
    name: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    department: Optional[str] = Form(None),
    phone: Optional[str] = Form(None),
    emp_id: Optional[str] = Form(None),
    roles: Optional[List[str]] = Form(None),
    remove_avatar: bool = Form(False),
    avatar: Optional[UploadFile] = File(None),
    user_and_type: tuple = Depends(get_current_user),
    database: AsyncIOMotorDatabase = Depends(get_database),
):
    ensure_self_or_admin(user_and_type, user_id)
    if roles is not None and user_and_type[1] != "admin":
        raise get_forbidden_exception()

    user = await find_user(database, user_id)
    changes = {"name": name, "email": email, "department": department,
               "phone": phone, "emp_id": emp_id, "roles": roles}
    return await apply_user_changes(database, request, user, changes, avatar, remove_avatar)


@router.patch("/{user_id}", response_model=UserResponse)
async def patch_user(
    user_id: str,
    request: Request,
    name: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    department: Optional[str] = Form(None),
    phone: Optional[str] = Form(None),
    emp_id: Optional[str] = Form(None),
    roles: Optional[List[str]] = Form(None),
    user_status: Optional[str] = Form(None, alias="status"),
    remove_avatar: bool = Form(False),
    avatar: Optional[UploadFile] = File(None),
    user_and_type: tuple = Depends(get_current_user),
    database: AsyncIOMotorDatabase = Depends(get_database),
):
    """Partial update; admins may also set ``status`` (e.g. restore a soft-deleted user)."""
    ensure_self_or_admin(user_and_type, user_id)
    if (roles is not None or user_status is not None) and user_and_type[1] != "admin":
        raise get_forbidden_exception()
    if user_status is not None and user_status not in (ACTIVE_STATUS, DELETED_STATUS):
        raise HTTPException(status_code=400, detail="Invalid status")

    user = await find_user(database, user_id)
    changes = {"name": name, "email": email, "department": department, "phone": phone,
               "emp_id": emp_id, "roles": roles, "status": user_status}
    return await apply_user_changes(database, request, user, changes, avatar, remove_avatar)


@router.put("/{user_id}/avatar", response_model=UserResponse)
async def upload_avatar(
    user_id: str,
    request: Request,
    remove_avatar: bool = Form(False),
    avatar: Optional[UploadFile] = File(None),
    user_and_type: tuple = Depends(get_current_user),
    database: AsyncIOMotorDatabase = Depends(get_database),
):
    ensure_self_or_admin(user_and_type, user_id)
    user = await find_user(database, user_id)

    if (avatar is None or not avatar.filename) and not remove_avatar:
        raise HTTPException(status_code=400, detail="No avatar file provided")

    return await apply_user_changes(database, request, user, {}, avatar, remove_avatar)


@router.get("/{user_id}/avatar")
async def get_avatar(user_id: str, database: AsyncIOMotorDatabase = Depends(get_database)):
    user = await database[USERS].find_one({"_id": to_object_id(user_id, "User")}, {"avatar": 1})
    avatar = (user or {}).get("avatar") or {}
    if not avatar.get("data"):
        raise NotFoundException("Avatar")

    return Response(
        content=bytes(avatar["data"]),
        media_type=avatar.get("content_type") or "application/octet-stream",
        headers={"Cache-Control": "no-store, no-cache, must-revalidate, proxy-revalidate"},
    )


@router.delete("/{user_id}")
async def delete_user(
    user_id: str,
    admin: dict = Depends(get_current_admin),
    database: AsyncIOMotorDatabase = Depends(get_database),
):
    user = await find_user(database, user_id)
    await database[USERS].update_one({"_id": user["_id"]}, {"$set": {"status": DELETED_STATUS}})
    return {"message": "User marked as deleted"}


@router.get("/{user_id}/leave-balance", response_model=LeaveBalanceResponse)
async def get_leave_balance(
    user_id: str,
    user_and_type: tuple = Depends(get_current_user),
    database: AsyncIOMotorDatabase = Depends(get_database),
):
    user = await find_user(database, user_id)
    return user["leave_balance"]
