# orderflow/routers/notifications/notifications.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from orderflow.core.db import get_db
from orderflow.schemas.notification_schemas import NotificationListResponse
from orderflow.services.notification_services.notification_service import (
    list_notifications, mark_all_read, mark_read
)
from orderflow.utils.get_user import get_current_user

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("/", response_model=NotificationListResponse)
async def list_notifications_route(
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
    unread_only: bool = Query(False),
    limit: int = Query(50, ge=1, le=200),
):
    return await list_notifications(db, current_user, unread_only=unread_only, limit=limit)


@router.post("/{notification_id}/read")
async def mark_read_route(notification_id: int, db: AsyncSession = Depends(get_db), current_user=Depends(get_current_user)):
    return await mark_read(db, notification_id, current_user)


@router.post("/read-all")
async def mark_all_read_route(db: AsyncSession = Depends(get_db), current_user=Depends(get_current_user)):
    return await mark_all_read(db, current_user)
