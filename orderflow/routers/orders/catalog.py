# orderflow/routers/orders/catalog.py
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from orderflow.core.db import get_db
from orderflow.schemas.catalog_schemas import CatalogProductCreate, ClientMarginUpdate
from orderflow.services.order_services.catalog_service import (
    create_catalog_product, list_catalog_products, list_clients, list_manufacturers, set_client_margin
)
from orderflow.utils.get_user import get_current_user
from orderflow.utils.check_roles import require_role, LOCK_ROLES, ORDER_CREATOR_ROLES, ORDER_PARTICIPANT_ROLES

router = APIRouter(tags=["Catalog"])


@router.get("/catalog/products")
@require_role(ORDER_PARTICIPANT_ROLES)
async def list_catalog_route(db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    return await list_catalog_products(db)


@router.post("/catalog/products", status_code=status.HTTP_201_CREATED)
@require_role(ORDER_CREATOR_ROLES)
async def create_catalog_route(data: CatalogProductCreate, db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    return await create_catalog_product(db, data, _user)


@router.get("/clients")
@require_role(ORDER_CREATOR_ROLES)
async def list_clients_route(db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    return await list_clients(db)


@router.patch("/clients/{client_id}/sample-margin")
@require_role(LOCK_ROLES)
async def client_margin_route(client_id: int, data: ClientMarginUpdate, db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    return await set_client_margin(db, client_id, data, _user)


@router.get("/manufacturers")
@require_role(ORDER_CREATOR_ROLES)
async def list_manufacturers_route(db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    return await list_manufacturers(db)
