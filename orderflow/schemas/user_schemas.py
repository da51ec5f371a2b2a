# orderflow/schemas/user_schemas.py
from pydantic import BaseModel, EmailStr, Field
from typing import Optional, List, Literal
from datetime import datetime

from orderflow.models.user_models import UserRole

UserType = Literal["admin", "manufacturer", "client"]


class UserCreate(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)
    name: str
    role: UserRole
    userType: Optional[UserType] = None
    # Link to an existing party instead of creating one
    client_id: Optional[int] = None
    manufacturer_id: Optional[int] = None


class UserFieldsUpdate(BaseModel):
    email: Optional[EmailStr] = None
    name: Optional[str] = None
    password: Optional[str] = Field(default=None, min_length=6)
    role: Optional[UserRole] = None
    is_active: Optional[bool] = None


class UserUpdate(BaseModel):
    userId: int
    updates: UserFieldsUpdate
    userType: Optional[UserType] = None


class UserDelete(BaseModel):
    userId: int
    userType: Optional[UserType] = None


class UserOut(BaseModel):
    id: int
    email: str
    name: str
    role: str
    is_active: bool
    client_id: Optional[int] = None
    manufacturer_id: Optional[int] = None
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# Unified structure for all endpoints
class UserResponse(BaseModel):
    msg: str
    data: Optional[UserOut] = None


class UsersListResponse(BaseModel):
    msg: str
    data: List[UserOut]
