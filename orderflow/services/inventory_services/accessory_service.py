# orderflow/services/inventory_services/accessory_service.py
import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from orderflow.core.exceptions import ConflictError, NotFoundError, PermissionDenied, ValidationFailed
from orderflow.models.inventory_models import AccessoryInventory, AccessoryType
from orderflow.models.user_models import Client, Manufacturer
from orderflow.schemas.inventory_schemas import (
    AccessoryTypeCreate, AccessoryTypeOut, AccessoryTypeUpdate,
    InventoryAdjust, InventoryCreate, InventoryOut, InventoryUpdate,
)
from orderflow.services.inventory_services.alerts_service import stock_state
from orderflow.utils.audit_helpers import diff_fields, apply_updates, field_change, log_audit
from orderflow.utils.check_roles import LOCK_ROLES
from orderflow.utils.translation import Translator

logger = logging.getLogger(__name__)


def resolve_manufacturer(current_user, requested: Optional[int]) -> int:
    """Admins pick a manufacturer; everyone else works on their own."""
    if current_user.role in LOCK_ROLES:
        if requested is None:
            raise ValidationFailed("manufacturer_id is required", field="manufacturer_id")
        return requested
    if current_user.manufacturer_id is None:
        raise PermissionDenied("Your account is not linked to a manufacturer")
    if requested is not None and requested != current_user.manufacturer_id:
        raise PermissionDenied("You can only manage your own manufacturer's inventory")
    return current_user.manufacturer_id


def _ensure_owner(current_user, manufacturer_id: int) -> None:
    if current_user.role not in LOCK_ROLES and current_user.manufacturer_id != manufacturer_id:
        raise PermissionDenied("You can only manage your own manufacturer's inventory")


async def _name_taken(db: AsyncSession, manufacturer_id: int, name: str, exclude_id: Optional[int] = None) -> bool:
    query = select(AccessoryType.id).where(
        AccessoryType.manufacturer_id == manufacturer_id,
        func.lower(AccessoryType.name) == name.lower(),
    )
    if exclude_id is not None:
        query = query.where(AccessoryType.id != exclude_id)
    result = await db.execute(query)
    return result.first() is not None


async def _type_out(t: AccessoryType, translator: Translator, lang: Optional[str]) -> AccessoryTypeOut:
    out = AccessoryTypeOut.model_validate(t)
    out.name = await translator.for_display(t.name, lang)
    out.description = await translator.for_display(t.description, lang)
    return out


async def _inventory_out(row: AccessoryInventory, translator: Translator, lang: Optional[str] = None) -> InventoryOut:
    return InventoryOut(
        id=row.id,
        manufacturer_id=row.manufacturer_id,
        client_id=row.client_id,
        client_name=row.client.name if row.client else None,
        accessory_type_id=row.accessory_type_id,
        accessory_type_name=await translator.for_display(row.accessory_type.name, lang),
        description=await translator.for_display(row.description, lang),
        quantity_on_hand=row.quantity_on_hand,
        low_stock_threshold=row.low_stock_threshold,
        stock_state=stock_state(row.quantity_on_hand, row.low_stock_threshold),
        updated_at=row.updated_at,
    )


# ---------------------------------------------------
# ACCESSORY TYPES
# ---------------------------------------------------
async def create_type(db: AsyncSession, data: AccessoryTypeCreate, current_user, translator: Translator):
    try:
        manufacturer_id = resolve_manufacturer(current_user, data.manufacturer_id)
        if not await db.get(Manufacturer, manufacturer_id):
            raise NotFoundError("Manufacturer", manufacturer_id)

        name = (await translator.to_storage(data.name)).strip()
        if await _name_taken(db, manufacturer_id, name):
            raise ConflictError(f"Accessory type '{name}' already exists")

        accessory_type = AccessoryType(
            manufacturer_id=manufacturer_id,
            name=name,
            description=await translator.to_storage(data.description),
        )
        db.add(accessory_type)
        await db.flush()
        await log_audit(
            db, current_user, "inventory_type_created", "accessory_type", accessory_type.id,
            new_value=name,
        )
        await db.commit()
        return {"message": "Accessory type created successfully", "data": AccessoryTypeOut.model_validate(accessory_type)}

    except HTTPException:
        await db.rollback()
        raise
    except Exception as e:
        await db.rollback()
        raise HTTPException(status_code=500, detail=f"Error creating accessory type: {e}")


async def list_types(db: AsyncSession, current_user, translator: Translator, manufacturer_id: Optional[int] = None, lang: Optional[str] = None):
    query = select(AccessoryType)
    if current_user.role in LOCK_ROLES:
        if manufacturer_id is not None:
            query = query.where(AccessoryType.manufacturer_id == manufacturer_id)
    else:
        query = query.where(AccessoryType.manufacturer_id == resolve_manufacturer(current_user, manufacturer_id))
    result = await db.execute(query.order_by(AccessoryType.name))
    types = result.scalars().all()
    return {
        "message": "Accessory types fetched successfully",
        "data": [await _type_out(t, translator, lang) for t in types],
    }


async def update_type(db: AsyncSession, type_id: int, data: AccessoryTypeUpdate, current_user, translator: Translator):
    try:
        accessory_type = await db.get(AccessoryType, type_id)
        if not accessory_type:
            raise NotFoundError("Accessory type", type_id)
        _ensure_owner(current_user, accessory_type.manufacturer_id)

        updates = {}
        if data.name is not None:
            name = (await translator.to_storage(data.name.strip())).strip()
            if not name:
                raise ValidationFailed("Name is required", field="name")
            if await _name_taken(db, accessory_type.manufacturer_id, name, exclude_id=type_id):
                raise ConflictError(f"Accessory type '{name}' already exists")
            updates["name"] = name
        if data.description is not None:
            updates["description"] = await translator.to_storage(data.description)

        changes = diff_fields(accessory_type, updates)
        if changes:
            apply_updates(accessory_type, updates)
            await log_audit(
                db, current_user, "inventory_type_updated", "accessory_type", accessory_type.id,
                changes=changes,
            )
            await db.commit()
        return {"message": "Accessory type updated successfully", "data": AccessoryTypeOut.model_validate(accessory_type)}

    except HTTPException:
        await db.rollback()
        raise
    except Exception as e:
        await db.rollback()
        raise HTTPException(status_code=500, detail=f"Error updating accessory type: {e}")


async def delete_type(db: AsyncSession, type_id: int, current_user):
    """Refused with 409 while any inventory row still uses the type."""
    try:
        accessory_type = await db.get(AccessoryType, type_id)
        if not accessory_type:
            raise NotFoundError("Accessory type", type_id)
        _ensure_owner(current_user, accessory_type.manufacturer_id)

        in_use = await db.execute(
            select(func.count(AccessoryInventory.id)).where(AccessoryInventory.accessory_type_id == type_id)
        )
        count = in_use.scalar() or 0
        if count:
            raise ConflictError(f"Accessory type '{accessory_type.name}' is in use by {count} inventory item(s)")

        name = accessory_type.name
        await db.delete(accessory_type)
        await log_audit(
            db, current_user, "inventory_type_deleted", "accessory_type", type_id,
            old_value=name,
        )
        await db.commit()
        logger.info("%s deleted accessory type %s", current_user.email, name)
        return {"message": "Accessory type deleted successfully"}

    except HTTPException:
        await db.rollback()
        raise
    except Exception as e:
        await db.rollback()
        raise HTTPException(status_code=500, detail=f"Error deleting accessory type: {e}")


# ---------------------------------------------------
# INVENTORY ROWS
# ---------------------------------------------------
async def _load_row(db: AsyncSession, inventory_id: int, current_user) -> AccessoryInventory:
    row = await db.get(AccessoryInventory, inventory_id)
    if not row:
        raise NotFoundError("Inventory item", inventory_id)
    _ensure_owner(current_user, row.manufacturer_id)
    return row


async def create_inventory(db: AsyncSession, data: InventoryCreate, current_user, translator: Translator):
    try:
        manufacturer_id = resolve_manufacturer(current_user, data.manufacturer_id)
        client = await db.get(Client, data.client_id)
        if not client:
            raise NotFoundError("Client", data.client_id)
        accessory_type = await db.get(AccessoryType, data.accessory_type_id)
        if not accessory_type or accessory_type.manufacturer_id != manufacturer_id:
            raise NotFoundError("Accessory type", data.accessory_type_id)

        existing = await db.execute(
            select(AccessoryInventory.id).where(
                AccessoryInventory.manufacturer_id == manufacturer_id,
                AccessoryInventory.client_id == data.client_id,
                AccessoryInventory.accessory_type_id == data.accessory_type_id,
            )
        )
        if existing.first():
            raise ConflictError(f"Inventory for '{accessory_type.name}' already exists for this client")

        row = AccessoryInventory(
            manufacturer_id=manufacturer_id,
            client_id=data.client_id,
            accessory_type_id=data.accessory_type_id,
            accessory_type=accessory_type,
            client=client,
            description=await translator.to_storage(data.description),
            quantity_on_hand=data.quantity_on_hand,
            low_stock_threshold=data.low_stock_threshold,
        )
        db.add(row)
        await db.flush()
        await log_audit(
            db, current_user, "inventory_item_created", "inventory", row.id,
            new_value=accessory_type.name,
            changes=[field_change("quantity_on_hand", None, row.quantity_on_hand)],
        )
        await db.commit()
        return {"message": "Inventory item created successfully", "data": await _inventory_out(row, translator)}

    except HTTPException:
        await db.rollback()
        raise
    except Exception as e:
        await db.rollback()
        raise HTTPException(status_code=500, detail=f"Error creating inventory item: {e}")


async def list_inventory(
    db: AsyncSession,
    current_user,
    translator: Translator,
    manufacturer_id: Optional[int] = None,
    client_id: Optional[int] = None,
    low_stock_only: bool = False,
    lang: Optional[str] = None,
):
    query = select(AccessoryInventory)
    if current_user.role in LOCK_ROLES:
        if manufacturer_id is not None:
            query = query.where(AccessoryInventory.manufacturer_id == manufacturer_id)
    else:
        query = query.where(AccessoryInventory.manufacturer_id == resolve_manufacturer(current_user, manufacturer_id))
    if client_id is not None:
        query = query.where(AccessoryInventory.client_id == client_id)
    if low_stock_only:
        query = query.where(AccessoryInventory.quantity_on_hand <= AccessoryInventory.low_stock_threshold)

    result = await db.execute(query.order_by(AccessoryInventory.client_id, AccessoryInventory.id))
    rows = result.scalars().all()
    return {
        "message": "Inventory fetched successfully",
        "data": [await _inventory_out(r, translator, lang) for r in rows],
    }


async def update_inventory(db: AsyncSession, inventory_id: int, data: InventoryUpdate, current_user, translator: Translator):
    try:
        row = await _load_row(db, inventory_id, current_user)
        updates = data.model_dump(exclude_unset=True)
        if "description" in updates:
            updates["description"] = await translator.to_storage(updates["description"])

        changes = diff_fields(row, updates)
        if changes:
            apply_updates(row, updates)
            await log_audit(
                db, current_user, "inventory_item_updated", "inventory", row.id,
                changes=changes,
            )
            await db.commit()
        return {"message": "Inventory item updated successfully", "data": await _inventory_out(row, translator)}

    except HTTPException:
        await db.rollback()
        raise
    except Exception as e:
        await db.rollback()
        raise HTTPException(status_code=500, detail=f"Error updating inventory item: {e}")


async def adjust_inventory(db: AsyncSession, inventory_id: int, data: InventoryAdjust, current_user, translator: Translator):
    """Adds ``delta`` (negative to consume) to the quantity on hand."""
    try:
        row = await _load_row(db, inventory_id, current_user)
        new_quantity = row.quantity_on_hand + data.delta
        if new_quantity < 0:
            raise ValidationFailed(
                f"Only {row.quantity_on_hand} on hand, cannot remove {-data.delta}", field="delta"
            )

        old_quantity = row.quantity_on_hand
        row.quantity_on_hand = new_quantity
        await log_audit(
            db, current_user, "inventory_item_adjusted", "inventory", row.id,
            old_value=str(old_quantity), new_value=str(new_quantity),
            changes=[field_change("quantity_on_hand", old_quantity, new_quantity)]
            + ([field_change("reason", None, data.reason)] if data.reason else []),
        )
        await db.commit()
        return {"message": "Stock adjusted successfully", "data": await _inventory_out(row, translator)}

    except HTTPException:
        await db.rollback()
        raise
    except Exception as e:
        await db.rollback()
        raise HTTPException(status_code=500, detail=f"Error adjusting stock: {e}")


async def delete_inventory(db: AsyncSession, inventory_id: int, current_user):
    try:
        row = await _load_row(db, inventory_id, current_user)
        type_name = row.accessory_type.name
        await db.delete(row)
        await log_audit(
            db, current_user, "inventory_item_deleted", "inventory", inventory_id,
            old_value=type_name,
            changes=[field_change("quantity_on_hand", row.quantity_on_hand, None)],
        )
        await db.commit()
        return {"message": "Inventory item deleted successfully"}

    except HTTPException:
        await db.rollback()
        raise
    except Exception as e:
        await db.rollback()
        raise HTTPException(status_code=500, detail=f"Error deleting inventory item: {e}")
