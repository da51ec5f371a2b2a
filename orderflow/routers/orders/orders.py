# orderflow/routers/orders/orders.py
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from orderflow.core.db import get_db
from orderflow.schemas.catalog_schemas import MediaCreate
from orderflow.schemas.order_schemas import (
    BulkRouteRequest, OrderCreate, OrderProductCreate, SampleRoute, SampleUpdate, ShipDatesUpdate
)
from orderflow.services.audit_service import order_history
from orderflow.services.order_services.catalog_service import add_media
from orderflow.services.order_services.order_service import add_product, create_order, get_order, list_orders
from orderflow.services.order_services.product_service import list_deleted_products, set_ship_dates
from orderflow.services.order_services.routing_service import bulk_route
from orderflow.services.order_services.sample_service import route_sample, update_sample
from orderflow.utils.get_user import get_current_user
from orderflow.utils.check_roles import (
    require_role, LOCK_ROLES, MANUFACTURER_ROLES, ORDER_CREATOR_ROLES, ORDER_PARTICIPANT_ROLES
)

router = APIRouter(prefix="/orders", tags=["Orders"])


# ---------------------------
# CREATE ORDER
# ---------------------------
@router.post("/", status_code=status.HTTP_201_CREATED)
@require_role(ORDER_CREATOR_ROLES)
async def create_order_route(data: OrderCreate, db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    return await create_order(db, data, _user)


# ---------------------------
# LIST / GET ORDERS
# ---------------------------
@router.get("/")
@require_role(ORDER_PARTICIPANT_ROLES)
async def list_orders_route(
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
):
    return await list_orders(db, _user, search=search, page=page, page_size=page_size)


@router.get("/{order_id}")
@require_role(ORDER_PARTICIPANT_ROLES)
async def get_order_route(order_id: int, db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    return await get_order(db, order_id, _user)


@router.post("/{order_id}/products", status_code=status.HTTP_201_CREATED)
@require_role(ORDER_CREATOR_ROLES)
async def add_product_route(order_id: int, data: OrderProductCreate, db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    return await add_product(db, order_id, data, _user)


# ---------------------------
# SAVE ALL & ROUTE
# ---------------------------
@router.post("/{order_id}/route")
@require_role(ORDER_PARTICIPANT_ROLES)
async def bulk_route_route(order_id: int, data: BulkRouteRequest, db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    """
    Applies one routing action to every visible product of the order and
    reports the outcome per product.
    """
    return await bulk_route(db, order_id, data, _user)


# ---------------------------
# SAMPLE
# ---------------------------
@router.patch("/{order_id}/sample")
@require_role(ORDER_PARTICIPANT_ROLES)
async def update_sample_route(order_id: int, data: SampleUpdate, db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    return await update_sample(db, order_id, data, _user)


@router.post("/{order_id}/sample/route")
@require_role(ORDER_PARTICIPANT_ROLES)
async def route_sample_route(order_id: int, data: SampleRoute, db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    return await route_sample(db, order_id, data.destination.value, data.notes, _user)


# ---------------------------
# SHIP DATES / DELETED PRODUCTS
# ---------------------------
@router.patch("/{order_id}/ship-dates")
@require_role(ORDER_CREATOR_ROLES | MANUFACTURER_ROLES)
async def ship_dates_route(order_id: int, data: ShipDatesUpdate, db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    return await set_ship_dates(db, order_id, data, _user)


@router.get("/{order_id}/deleted-products")
@require_role(LOCK_ROLES)
async def deleted_products_route(order_id: int, db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    return await list_deleted_products(db, order_id, _user)


# ---------------------------
# MEDIA / HISTORY
# ---------------------------
@router.post("/{order_id}/media", status_code=status.HTTP_201_CREATED)
@require_role(ORDER_PARTICIPANT_ROLES)
async def add_media_route(order_id: int, data: MediaCreate, db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    return await add_media(db, order_id, data, _user)


@router.get("/{order_id}/history")
@require_role(ORDER_PARTICIPANT_ROLES)
async def order_history_route(order_id: int, db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    entries = await order_history(db, order_id, _user)
    return {"message": "Order history fetched successfully", "data": entries}
