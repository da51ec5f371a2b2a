# orderflow/routers/auth/users.py
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from orderflow.core.db import get_db
from orderflow.schemas.user_schemas import (
    UserCreate, UserUpdate, UserDelete, UserResponse, UsersListResponse
)
from orderflow.utils.get_user import get_current_user
from orderflow.utils.check_roles import require_role, USER_ADMIN_ROLES
from orderflow.services.auth_services.user_service import (
    create_user, list_users, get_user_by_id, update_user, delete_user
)

router = APIRouter(prefix="/users", tags=["Users CRUD"])


# ---------------------------
# CREATE USER
# ---------------------------
@router.post("/", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
@require_role(USER_ADMIN_ROLES)
async def create_user_route(
    user_data: UserCreate,
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user)
):
    new_user = await create_user(db, user_data, _user)
    return {"msg": f"User '{new_user.email}' created successfully.", "data": new_user}


# ---------------------------
# LIST ALL USERS
# ---------------------------
@router.get("/", response_model=UsersListResponse)
@require_role(USER_ADMIN_ROLES)
async def list_users_route(
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
    role: Optional[str] = Query(None),
    include_inactive: bool = Query(True),
):
    users = await list_users(db, role=role, include_inactive=include_inactive)
    return {"msg": f"{len(users)} users fetched successfully.", "data": users}


# ---------------------------
# GET SINGLE USER
# ---------------------------
@router.get("/{user_id}", response_model=UserResponse)
@require_role(USER_ADMIN_ROLES)
async def get_user_route(user_id: int, db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    target_user = await get_user_by_id(db, user_id)
    return {"msg": f"User with ID {user_id} fetched successfully.", "data": target_user}


# ---------------------------
# UPDATE USER
# ---------------------------
@router.patch("/", response_model=UserResponse)
@require_role(USER_ADMIN_ROLES)
async def update_user_route(user_data: UserUpdate, db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    updated_user = await update_user(db, user_data, _user)
    return {"msg": f"User '{updated_user.email}' updated successfully.", "data": updated_user}


# ---------------------------
# DELETE USER
# ---------------------------
@router.delete("/", response_model=UserResponse)
@require_role(USER_ADMIN_ROLES)
async def delete_user_route(user_data: UserDelete, db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    deleted_user = await delete_user(db, user_data, _user)
    return {"msg": f"User '{deleted_user.email}' deactivated successfully.", "data": deleted_user}
