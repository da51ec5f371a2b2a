# orderflow/routers/notifications/email.py
import httpx
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from orderflow.core.db import get_db
from orderflow.schemas.notification_schemas import EmailSendRequest, EmailSendResponse
from orderflow.services.notification_services.email_service import (
    CLIENT, MANUFACTURER, get_http_client, send_order_email
)
from orderflow.utils.get_user import get_current_user
from orderflow.utils.check_roles import require_role, ORDER_CREATOR_ROLES

router = APIRouter(prefix="/email", tags=["Order Emails"])


@router.post("/send-to-manufacturer", response_model=EmailSendResponse)
@require_role(ORDER_CREATOR_ROLES)
async def send_to_manufacturer(
    data: EmailSendRequest,
    db: AsyncSession = Depends(get_db),
    client: httpx.AsyncClient = Depends(get_http_client),
    _user=Depends(get_current_user),
):
    return await send_order_email(db, MANUFACTURER, data, _user, client)


@router.post("/send-to-client", response_model=EmailSendResponse)
@require_role(ORDER_CREATOR_ROLES)
async def send_to_client(
    data: EmailSendRequest,
    db: AsyncSession = Depends(get_db),
    client: httpx.AsyncClient = Depends(get_http_client),
    _user=Depends(get_current_user),
):
    return await send_order_email(db, CLIENT, data, _user, client)
