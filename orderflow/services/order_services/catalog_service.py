# orderflow/services/order_services/catalog_service.py
from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from orderflow.core.exceptions import ConflictError, NotFoundError, ValidationFailed
from orderflow.models.order_models import CatalogProduct, OrderMedia, OrderProduct
from orderflow.models.user_models import Client, Manufacturer
from orderflow.schemas.catalog_schemas import (
    CatalogProductCreate, CatalogProductOut, ClientMarginUpdate, ClientOut, ManufacturerOut, MediaCreate
)
from orderflow.schemas.order_schemas import OrderMediaOut
from orderflow.services.order_services.order_access import ensure_order_access, load_order
from orderflow.utils.audit_helpers import field_change, log_audit


# ---------------------------------------------------
# CATALOG PRODUCTS
# ---------------------------------------------------
async def create_catalog_product(db: AsyncSession, data: CatalogProductCreate, current_user):
    try:
        title = data.title.strip()
        existing = await db.execute(select(CatalogProduct.id).where(CatalogProduct.title == title))
        if existing.first():
            raise ConflictError(f"Product '{title}' already exists")

        product = CatalogProduct(title=title, description=data.description)
        db.add(product)
        await db.commit()
        return {"message": "Product created successfully", "data": CatalogProductOut.model_validate(product)}

    except HTTPException:
        await db.rollback()
        raise
    except Exception as e:
        await db.rollback()
        raise HTTPException(status_code=500, detail=f"Error creating product: {e}")


async def list_catalog_products(db: AsyncSession):
    result = await db.execute(select(CatalogProduct).order_by(CatalogProduct.title))
    return {
        "message": "Products fetched successfully",
        "data": [CatalogProductOut.model_validate(p) for p in result.scalars().all()],
    }


# ---------------------------------------------------
# CLIENTS / MANUFACTURERS
# ---------------------------------------------------
async def list_clients(db: AsyncSession):
    result = await db.execute(select(Client).order_by(Client.name))
    return {"message": "Clients fetched successfully", "data": [ClientOut.model_validate(c) for c in result.scalars().all()]}


async def list_manufacturers(db: AsyncSession):
    result = await db.execute(select(Manufacturer).order_by(Manufacturer.name))
    return {
        "message": "Manufacturers fetched successfully",
        "data": [ManufacturerOut.model_validate(m) for m in result.scalars().all()],
    }


async def set_client_margin(db: AsyncSession, client_id: int, data: ClientMarginUpdate, current_user):
    """A null margin falls back to the system default."""
    try:
        client = await db.get(Client, client_id)
        if not client:
            raise NotFoundError("Client", client_id)
        old = client.custom_sample_margin_percentage
        client.custom_sample_margin_percentage = data.custom_sample_margin_percentage
        await log_audit(
            db, current_user, "client_margin_updated", "client", client.id,
            changes=[field_change("custom_sample_margin_percentage", old, data.custom_sample_margin_percentage)],
        )
        await db.commit()
        return {"message": "Client margin updated", "data": ClientOut.model_validate(client)}

    except HTTPException:
        await db.rollback()
        raise
    except Exception as e:
        await db.rollback()
        raise HTTPException(status_code=500, detail=f"Error updating client margin: {e}")


# ---------------------------------------------------
# ORDER MEDIA
# ---------------------------------------------------
async def add_media(db: AsyncSession, order_id: int, data: MediaCreate, current_user):
    """Registers a file already uploaded to the media bucket."""
    try:
        order = await load_order(db, order_id)
        ensure_order_access(order, current_user)
        if data.order_product_id is not None:
            product = await db.get(OrderProduct, data.order_product_id)
            if not product or product.order_id != order_id or product.deleted_at is not None:
                raise ValidationFailed("Product does not belong to this order", field="order_product_id")

        media = OrderMedia(order_id=order_id, uploaded_by=current_user.id, **data.model_dump())
        db.add(media)
        await db.flush()
        await log_audit(
            db, current_user, "media_uploaded",
            "order_product" if data.order_product_id else "order",
            data.order_product_id or order_id,
            new_value=data.original_filename or data.file_url,
        )
        await db.commit()
        return {"message": "Media added", "data": OrderMediaOut.model_validate(media)}

    except HTTPException:
        await db.rollback()
        raise
    except Exception as e:
        await db.rollback()
        raise HTTPException(status_code=500, detail=f"Error adding media: {e}")
