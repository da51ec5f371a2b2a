# orderflow/routers/inventory/alerts.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from orderflow.core.db import get_db
from orderflow.services.inventory_services.accessory_service import resolve_manufacturer
from orderflow.services.inventory_services.alerts_service import get_stock_alerts
from orderflow.schemas.inventory_schemas import StockAlert
from orderflow.utils.get_user import get_current_user
from orderflow.utils.check_roles import require_role, INVENTORY_ROLES, LOCK_ROLES

router = APIRouter(prefix="/alerts", tags=["Inventory Stock Alerts"])


@router.get("/", response_model=List[StockAlert])
@require_role(INVENTORY_ROLES)
async def stock_alerts(
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
    manufacturer_id: Optional[int] = Query(None),
):
    if _user.role not in LOCK_ROLES:
        manufacturer_id = resolve_manufacturer(_user, manufacturer_id)
    return await get_stock_alerts(db, manufacturer_id)
