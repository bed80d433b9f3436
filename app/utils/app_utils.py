import logging
from fastapi import Depends, HTTPException
from fastapi.security import OAuth2PasswordBearer
from motor.motor_asyncio import AsyncIOMotorDatabase
from typing import Dict, Any
import bcrypt
from bson import ObjectId
from bson.errors import InvalidId
from jose import JWTError, jwt
from db import get_database, USERS
from exceptions import get_user_exception, get_forbidden_exception
from models.users import DELETED_STATUS
from config import settings

from datetime import datetime, timezone, timedelta

UTC = timezone.utc

logger = logging.getLogger(__name__)

oauth2_bearer = OAuth2PasswordBearer(tokenUrl="api/auth/login")

secret_key = settings.SECRET_KEY
algorithm = settings.ALGORITHM


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt()
    hashed_password = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed_password.decode('utf-8')


def verify_password(plain_password: str, hashed_password: str) -> bool:
    if isinstance(hashed_password, str):
        hashed_password = hashed_password.encode('utf-8')

    return bcrypt.checkpw(plain_password.encode('utf-8'), hashed_password)


def create_access_token(payload: Dict[str, Any], expiry: timedelta = None):
    if expiry is None:
        expiry = timedelta(hours=settings.ACCESS_TOKEN_EXPIRE_HOURS)
    data_to_encode = {"data": payload}
    expiry_delta = datetime.now(UTC) + expiry
    data_to_encode.update({"exp": expiry_delta})
    encoded_data: str = jwt.encode(data_to_encode, secret_key, algorithm)

    return encoded_data


def is_admin(user: dict) -> bool:
    return "admin" in (user.get("roles") or [])


async def authenticate_user(database: AsyncIOMotorDatabase, emp_id: str, password: str):
    """
    authenticates user
    args:-
        - emp_id: employee id used as login name
        - password: plain password
    """
    user = await database[USERS].find_one({"emp_id": emp_id})
    if not user or user.get("status") == DELETED_STATUS:
        return False

    if not verify_password(plain_password=password, hashed_password=user["password"]):
        return False
    return user


async def get_current_user(
    token: str = Depends(oauth2_bearer),
    database: AsyncIOMotorDatabase = Depends(get_database),
) -> tuple:
    try:
        payload = jwt.decode(token, secret_key, algorithms=[algorithm])
    except JWTError as e:
        logger.info("JWT error: %s", e)
        raise get_user_exception()

    data = payload.get("data")
    if data is None:
        raise HTTPException(status_code=401, detail="Invalid token data.")

    pk = data.get("sub")
    if pk is None:
        raise get_user_exception()

    try:
        user = await database[USERS].find_one({"_id": ObjectId(pk)})
    except InvalidId:
        raise get_user_exception()

    if not user or user.get("status") == DELETED_STATUS:
        raise HTTPException(status_code=401, detail="User not found.")

    user_type = "admin" if is_admin(user) else "employee"
    return user, user_type


async def get_current_admin(user_and_type: tuple = Depends(get_current_user)) -> dict:
    user, user_type = user_and_type
    if user_type != "admin":
        raise get_forbidden_exception()
    return user
