from fastapi import APIRouter, HTTPException, Depends, status
from fastapi.security import OAuth2PasswordRequestForm
from motor.motor_asyncio import AsyncIOMotorDatabase
from db import get_database, USERS
from models.users import User
from schemas.auth import Token, ChangePassword
from schemas.user import RegisterUser
from utils.app_utils import (create_access_token, authenticate_user, hash_password,
                             verify_password, get_current_user)

router = APIRouter()

MIN_PASSWORD_LENGTH = 6


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(user: RegisterUser, database: AsyncIOMotorDatabase = Depends(get_database)):
    """
    Register a new user.
    Args:
        user (RegisterUser): employee id, name, email, password and department.
            Self-registered accounts are always plain employees; admins are
            created through /api/users.
    Returns:
        dict: A success message
    Raises:
        HTTPException: 400 if the employee id or email is already registered
    """
    users = database[USERS]

    existing_user = await users.find_one({"$or": [{"emp_id": user.emp_id}, {"email": user.email}]})
    if existing_user:
        raise HTTPException(status_code=400, detail="Employee already exists")

    user_dict = user.model_dump()
    user_dict["password"] = hash_password(user.password)
    user_dict["roles"] = ["employee"]

    await users.insert_one(User(**user_dict).model_dump())

    return {"message": "User registered successfully"}


@router.post("/login")
async def login_for_access_token(form_data: OAuth2PasswordRequestForm = Depends(),
                                 database: AsyncIOMotorDatabase = Depends(get_database)):
    """
    Authenticate with employee id (as the form username) and password.
    Returns:
        dict: access token, token type and a short user profile
    Raises:
        HTTPException: 401 Unauthorized if login credentials are invalid
    """
    user = await authenticate_user(database, emp_id=form_data.username, password=form_data.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid login details",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token = create_access_token(payload={"sub": str(user["_id"]), "emp_id": user["emp_id"]})

    return {
        **Token(access_token=token, token_type="bearer").model_dump(),
        "user": {
            "id": str(user["_id"]),
            "emp_id": user["emp_id"],
            "name": user["name"],
            "email": user["email"],
            "roles": user.get("roles", []),
            "department": user["department"],
        },
    }


@router.post("/change-password")
async def change_password(passwords: ChangePassword,
                          user_and_type: tuple = Depends(get_current_user),
                          database: AsyncIOMotorDatabase = Depends(get_database)):
    user, _ = user_and_type

    if len(passwords.new_password) < MIN_PASSWORD_LENGTH:
        raise HTTPException(status_code=400, detail="New password must be at least 6 characters")

    if not verify_password(passwords.current_password, user["password"]):
        raise HTTPException(status_code=400, detail="Current password is incorrect")

    await database[USERS].update_one(
        {"_id": user["_id"]},
        {"$set": {"password": hash_password(passwords.new_password)}}
    )

    return {"message": "Password changed successfully"}
