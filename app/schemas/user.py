from datetime import datetime
from pydantic import BaseModel, EmailStr
from typing import Optional, List


class LeaveBalanceResponse(BaseModel):
    annual: float
    medical: float
    shortleave: float
    leaves_taken: float


class UserSummary(BaseModel):
    id: str
    emp_id: str
    name: str
    email: str
    department: str


class UserResponse(UserSummary):
    roles: List[str]
    phone: Optional[str] = None
    leave_balance: LeaveBalanceResponse
    status: str
    avatar_url: Optional[str] = None
    created_at: Optional[datetime] = None


class UserLeaveBalance(BaseModel):
    id: str
    emp_id: str
    name: str
    leave_balance: LeaveBalanceResponse


class RegisterUser(BaseModel):
    emp_id: str
    name: str
    email: EmailStr
    password: str
    department: str


def serialize_user_summary(user: dict) -> dict:
    return {
        "id": str(user["_id"]),
        "emp_id": user["emp_id"],
        "name": user["name"],
        "email": user["email"],
        "department": user["department"],
    }


def serialize_user(user: dict, avatar_url: Optional[str] = None) -> dict:
    data = serialize_user_summary(user)
    data.update({
        "roles": user.get("roles", []),
        "phone": user.get("phone"),
        "leave_balance": user["leave_balance"],
        "status": user.get("status", "active"),
        "avatar_url": avatar_url,
        "created_at": user.get("created_at"),
    })
    return data
