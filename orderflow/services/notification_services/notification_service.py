# orderflow/services/notification_services/notification_service.py
import logging
from typing import Iterable, Optional

from sqlalchemy import func, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from orderflow.core.exceptions import NotFoundError
from orderflow.models.notification_models import Notification
from orderflow.models.user_models import User
from orderflow.schemas.notification_schemas import NotificationOut

logger = logging.getLogger(__name__)


# ---------------------------------------------------
# NOTIFY (no commit, joins the caller's transaction)
# ---------------------------------------------------
async def notify(
    db: AsyncSession,
    user_ids: Iterable[Optional[int]],
    type: str,
    message: str,
    order_id: Optional[int] = None,
    order_product_id: Optional[int] = None,
    link: Optional[str] = None,
) -> list[Notification]:
    created = []
    for user_id in dict.fromkeys(u for u in user_ids if u is not None):
        notification = Notification(
            user_id=user_id,
            order_id=order_id,
            order_product_id=order_product_id,
            type=type,
            message=message,
            link=link or (f"/orders/{order_id}" if order_id else None),
        )
        db.add(notification)
        created.append(notification)
    if created:
        logger.info("Queued %s notification(s) of type %s", len(created), type)
    return created


async def party_user_ids(db: AsyncSession, client_id: Optional[int] = None, manufacturer_id: Optional[int] = None) -> list[int]:
    """Active users acting for a client or a manufacturer."""
    query = select(User.id).where(User.is_active == True)
    if client_id is not None:
        query = query.where(User.client_id == client_id)
    elif manufacturer_id is not None:
        query = query.where(User.manufacturer_id == manufacturer_id)
    else:
        return []
    result = await db.execute(query)
    return list(result.scalars().all())


# ---------------------------------------------------
# LIST NOTIFICATIONS
# ---------------------------------------------------
async def list_notifications(db: AsyncSession, current_user, unread_only: bool = False, limit: int = 50):
    query = select(Notification).where(Notification.user_id == current_user.id)
    if unread_only:
        query = query.where(Notification.is_read == False)
    result = await db.execute(query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit))
    notifications = result.scalars().all()

    unread = await db.execute(
        select(func.count(Notification.id)).where(
            Notification.user_id == current_user.id, Notification.is_read == False
        )
    )
    return {
        "message": "Notifications fetched successfully",
        "unread_count": unread.scalar() or 0,
        "data": [NotificationOut.model_validate(n) for n in notifications],
    }


# ---------------------------------------------------
# MARK READ
# ---------------------------------------------------
async def mark_read(db: AsyncSession, notification_id: int, current_user):
    result = await db.execute(
        select(Notification).where(
            Notification.id == notification_id, Notification.user_id == current_user.id
        )
    )
    notification = result.scalars().first()
    if not notification:
        raise NotFoundError("Notification", notification_id)
    if not notification.is_read:
        notification.is_read = True
        await db.commit()
    return {"message": "Notification marked as read", "data": NotificationOut.model_validate(notification)}


async def mark_all_read(db: AsyncSession, current_user):
    result = await db.execute(
        update(Notification)
        .where(Notification.user_id == current_user.id, Notification.is_read == False)
        .values(is_read=True)
    )
    await db.commit()
    return {"message": "All notifications marked as read", "updated": result.rowcount or 0}
