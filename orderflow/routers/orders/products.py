# orderflow/routers/orders/products.py
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from orderflow.core.db import get_db
from orderflow.schemas.order_schemas import (
    EditableRequest, ItemStatusUpdate, LockRequest, NoteCreate, ProductDelete, ProductUpdate, RouteRequest
)
from orderflow.services.audit_service import product_history
from orderflow.services.order_services.product_service import (
    add_note, delete_product, restore_product, set_item_status, update_product
)
from orderflow.services.order_services.routing_service import route_product, set_editable, set_lock
from orderflow.utils.get_user import get_current_user
from orderflow.utils.check_roles import (
    require_role, LOCK_ROLES, ORDER_CREATOR_ROLES, ORDER_PARTICIPANT_ROLES, MANUFACTURER_ROLES
)

router = APIRouter(tags=["Order Products"])


@router.patch("/order-products/{product_id}")
@require_role(ORDER_PARTICIPANT_ROLES)
async def update_product_route(product_id: int, data: ProductUpdate, db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    return await update_product(db, product_id, data, _user)


@router.post("/order-products/{product_id}/route")
@require_role(ORDER_PARTICIPANT_ROLES)
async def route_product_route(product_id: int, data: RouteRequest, db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    return await route_product(db, product_id, data, _user)


@router.post("/order-products/{product_id}/lock")
@require_role(LOCK_ROLES)
async def lock_product_route(product_id: int, data: LockRequest, db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    return await set_lock(db, product_id, data.locked, _user)


@router.post("/order-products/{product_id}/editable")
@require_role(LOCK_ROLES)
async def editable_product_route(product_id: int, data: EditableRequest, db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    return await set_editable(db, product_id, data.editable, _user)


@router.post("/order-products/{product_id}/notes")
@require_role(ORDER_PARTICIPANT_ROLES)
async def add_note_route(product_id: int, data: NoteCreate, db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    return await add_note(db, product_id, data, _user)


@router.delete("/order-products/{product_id}")
@require_role(ORDER_CREATOR_ROLES)
async def delete_product_route(product_id: int, data: ProductDelete, db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    return await delete_product(db, product_id, data.reason, _user)


@router.post("/order-products/{product_id}/restore")
@require_role(LOCK_ROLES)
async def restore_product_route(product_id: int, db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    return await restore_product(db, product_id, _user)


@router.get("/order-products/{product_id}/history")
@require_role(ORDER_PARTICIPANT_ROLES)
async def product_history_route(product_id: int, db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    entries = await product_history(db, product_id, _user)
    return {"message": "Product history fetched successfully", "data": entries}


@router.patch("/order-items/{item_id}/status")
@require_role(ORDER_CREATOR_ROLES | MANUFACTURER_ROLES)
async def item_status_route(item_id: int, data: ItemStatusUpdate, db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    return await set_item_status(db, item_id, data.status.value, _user)
