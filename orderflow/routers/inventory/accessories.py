# orderflow/routers/inventory/accessories.py
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from orderflow.core.db import get_db
from orderflow.schemas.inventory_schemas import (
    AccessoryTypeCreate, AccessoryTypeUpdate, InventoryAdjust, InventoryCreate, InventoryUpdate
)
from orderflow.services.inventory_services.accessory_service import (
    adjust_inventory, create_inventory, create_type, delete_inventory, delete_type,
    list_inventory, list_types, update_inventory, update_type,
)
from orderflow.utils.get_user import get_current_user
from orderflow.utils.check_roles import require_role, INVENTORY_ROLES
from orderflow.utils.translation import Translator, get_translator

router = APIRouter(tags=["Accessory Inventory"])


# ---------------------------
# ACCESSORY TYPES
# ---------------------------
@router.post("/accessory-types", status_code=status.HTTP_201_CREATED)
@require_role(INVENTORY_ROLES)
async def create_type_route(
    data: AccessoryTypeCreate,
    db: AsyncSession = Depends(get_db),
    translator: Translator = Depends(get_translator),
    _user=Depends(get_current_user),
):
    return await create_type(db, data, _user, translator)


@router.get("/accessory-types")
@require_role(INVENTORY_ROLES)
async def list_types_route(
    db: AsyncSession = Depends(get_db),
    translator: Translator = Depends(get_translator),
    _user=Depends(get_current_user),
    manufacturer_id: Optional[int] = Query(None),
    lang: Optional[str] = Query(None, description="Translate names for display"),
):
    return await list_types(db, _user, translator, manufacturer_id=manufacturer_id, lang=lang)


@router.patch("/accessory-types/{type_id}")
@require_role(INVENTORY_ROLES)
async def update_type_route(
    type_id: int,
    data: AccessoryTypeUpdate,
    db: AsyncSession = Depends(get_db),
    translator: Translator = Depends(get_translator),
    _user=Depends(get_current_user),
):
    return await update_type(db, type_id, data, _user, translator)


@router.delete("/accessory-types/{type_id}")
@require_role(INVENTORY_ROLES)
async def delete_type_route(type_id: int, db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    return await delete_type(db, type_id, _user)


# ---------------------------
# INVENTORY ROWS
# ---------------------------
@router.post("/items", status_code=status.HTTP_201_CREATED)
@require_role(INVENTORY_ROLES)
async def create_inventory_route(
    data: InventoryCreate,
    db: AsyncSession = Depends(get_db),
    translator: Translator = Depends(get_translator),
    _user=Depends(get_current_user),
):
    return await create_inventory(db, data, _user, translator)


@router.get("/items")
@require_role(INVENTORY_ROLES)
async def list_inventory_route(
    db: AsyncSession = Depends(get_db),
    translator: Translator = Depends(get_translator),
    _user=Depends(get_current_user),
    manufacturer_id: Optional[int] = Query(None),
    client_id: Optional[int] = Query(None),
    low_stock_only: bool = Query(False),
    lang: Optional[str] = Query(None),
):
    return await list_inventory(
        db, _user, translator,
        manufacturer_id=manufacturer_id, client_id=client_id, low_stock_only=low_stock_only, lang=lang,
    )


@router.patch("/items/{inventory_id}")
@require_role(INVENTORY_ROLES)
async def update_inventory_route(
    inventory_id: int,
    data: InventoryUpdate,
    db: AsyncSession = Depends(get_db),
    translator: Translator = Depends(get_translator),
    _user=Depends(get_current_user),
):
    return await update_inventory(db, inventory_id, data, _user, translator)


@router.post("/items/{inventory_id}/adjust")
@require_role(INVENTORY_ROLES)
async def adjust_inventory_route(
    inventory_id: int,
    data: InventoryAdjust,
    db: AsyncSession = Depends(get_db),
    translator: Translator = Depends(get_translator),
    _user=Depends(get_current_user),
):
    return await adjust_inventory(db, inventory_id, data, _user, translator)


@router.delete("/items/{inventory_id}")
@require_role(INVENTORY_ROLES)
async def delete_inventory_route(inventory_id: int, db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    return await delete_inventory(db, inventory_id, _user)
