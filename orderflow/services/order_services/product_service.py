# orderflow/services/order_services/product_service.py
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Dict, List

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload
from sqlalchemy.orm.exc import StaleDataError

from orderflow.core.exceptions import (
    InvalidTransition, NotFoundError, PermissionDenied, StaleWriteError, ValidationFailed
)
from orderflow.models.order_models import OrderItem, OrderProduct, ProductStatus
from orderflow.models.user_models import UserRole
from orderflow.schemas.order_schemas import NoteCreate, OrderItemOut, ProductUpdate, ShipDatesUpdate
from orderflow.services.order_services.order_access import (
    check_version, ensure_order_access, is_visible, load_order, load_product, load_visible_product, product_out
)
from orderflow.utils.audit_helpers import _plain, apply_updates, diff_fields, field_change, log_audit
from orderflow.utils.check_roles import (
    CLIENT_ROLES, LOCK_ROLES, MANUFACTURER_ROLES, ORDER_CREATOR_ROLES
)
from orderflow.utils.note_helpers import append_note
from orderflow.utils.time_utils import utcnow

logger = logging.getLogger(__name__)

# ---------------------------
# Field ownership
# ---------------------------
MANUFACTURER_FIELDS = {
    "product_price", "sample_fee", "shipping_air_price", "shipping_boat_price",
    "production_time", "manufacturer_notes",
}
ADMIN_FIELDS = {
    "client_product_price", "client_sample_fee", "admin_notes", "client_notes",
    "internal_notes", "description",
}
CLIENT_FIELDS = {"client_notes"}
NOTE_FIELDS = {"admin_notes", "manufacturer_notes", "client_notes", "internal_notes"}

# note audience -> column
NOTE_AUDIENCES = {
    "admin": "admin_notes",
    "manufacturer": "manufacturer_notes",
    "client": "client_notes",
    "internal": "internal_notes",
}


def editable_fields(role: str) -> set:
    if role == UserRole.super_admin.value:
        return MANUFACTURER_FIELDS | ADMIN_FIELDS
    if role in ORDER_CREATOR_ROLES:
        return ADMIN_FIELDS
    if role in MANUFACTURER_ROLES:
        return MANUFACTURER_FIELDS
    if role in CLIENT_ROLES:
        return CLIENT_FIELDS
    return set()


@dataclass
class FieldUpdatePlan:
    updates: Dict[str, object]
    changes: List[dict]
    note_changes: List[dict]
    action_type: str


def plan_field_update(product: OrderProduct, user, fields: dict) -> FieldUpdatePlan:
    """Checks a set of field edits against the caller's role and the lock."""
    denied = sorted(set(fields) - editable_fields(user.role))
    if denied:
        raise PermissionDenied(f"Role '{user.role}' cannot edit: {', '.join(denied)}")
    if product.is_locked and user.role in MANUFACTURER_ROLES:
        raise InvalidTransition(f"Product {product.product_order_number} is locked for editing")

    changes = diff_fields(product, fields)
    note_changes = [c for c in changes if c["field"] in NOTE_FIELDS]
    field_changes = [c for c in changes if c["field"] not in NOTE_FIELDS]
    action_type = "manufacturer_pricing_updated" if user.role in MANUFACTURER_ROLES else "product_updated"
    updates = {c["field"]: fields[c["field"]] for c in changes}
    return FieldUpdatePlan(updates, field_changes, note_changes, action_type)


async def apply_field_update(db: AsyncSession, product: OrderProduct, plan: FieldUpdatePlan, current_user) -> None:
    apply_updates(product, plan.updates)
    if plan.changes:
        await log_audit(
            db, current_user, plan.action_type, "order_product", product.id,
            changes=plan.changes,
        )
    for change in plan.note_changes:
        await log_audit(
            db, current_user, "note_added", "order_product", product.id,
            new_value=change["new"], changes=[change],
        )


# ---------------------------------------------------
# UPDATE PRODUCT FIELDS
# ---------------------------------------------------
async def update_product(db: AsyncSession, product_id: int, data: ProductUpdate, current_user):
    """
    Role-gated field edits. Manufacturers price their side, admins price the
    client side and keep the internal notes.
    """
    try:
        product, _ = await load_visible_product(db, product_id, current_user)
        check_version(product, data.expected_version)

        fields = data.model_dump(exclude_unset=True, exclude={"expected_version"})
        if not fields:
            raise ValidationFailed("No fields to update")
        plan = plan_field_update(product, current_user, fields)
        if not plan.updates:
            return {"message": "No changes detected", "data": product_out(product, current_user)}

        await apply_field_update(db, product, plan, current_user)
        await db.commit()
        logger.info(
            "%s updated %s: %s", current_user.email, product.product_order_number, ", ".join(plan.updates)
        )
        return {"message": "Product updated successfully", "data": product_out(product, current_user)}

    except HTTPException:
        await db.rollback()
        raise
    except StaleDataError:
        await db.rollback()
        raise StaleWriteError()
    except Exception as e:
        await db.rollback()
        logger.exception("Error updating product %s", product_id)
        raise HTTPException(status_code=500, detail=f"Error updating product: {e}")


# ---------------------------------------------------
# ADD NOTE
# ---------------------------------------------------
async def add_note(db: AsyncSession, product_id: int, data: NoteCreate, current_user):
    try:
        product, _ = await load_visible_product(db, product_id, current_user)

        audience = data.audience
        if audience is None:
            if current_user.role in MANUFACTURER_ROLES:
                audience = "manufacturer"
            elif current_user.role in CLIENT_ROLES:
                audience = "client"
            else:
                audience = "admin"
        column = NOTE_AUDIENCES.get(audience)
        if column is None:
            raise ValidationFailed(f"Unknown note audience '{audience}'", field="audience")
        if column not in editable_fields(current_user.role):
            raise PermissionDenied(f"Role '{current_user.role}' cannot write {audience} notes")

        setattr(product, column, append_note(getattr(product, column), data.text, current_user.role))
        await log_audit(
            db, current_user, "note_added", "order_product", product.id,
            new_value=data.text, changes=[field_change(column, None, data.text)],
        )
        await db.commit()
        return {"message": "Note added", "data": product_out(product, current_user)}

    except HTTPException:
        await db.rollback()
        raise
    except StaleDataError:
        await db.rollback()
        raise StaleWriteError()
    except Exception as e:
        await db.rollback()
        raise HTTPException(status_code=500, detail=f"Error adding note: {e}")


# ---------------------------------------------------
# ITEM APPROVAL STATUS
# ---------------------------------------------------
async def set_item_status(db: AsyncSession, item_id: int, status: str, current_user):
    """Admins set the admin flag, manufacturers the manufacturer flag."""
    try:
        if current_user.role in ORDER_CREATOR_ROLES:
            column = "admin_status"
        elif current_user.role in MANUFACTURER_ROLES:
            column = "manufacturer_status"
        else:
            raise PermissionDenied("Only admins and manufacturers can approve items")

        item = await db.get(OrderItem, item_id)
        if not item:
            raise NotFoundError("Order item", item_id)
        await load_visible_product(db, item.order_product_id, current_user)

        old = getattr(item, column)
        if old != status:
            setattr(item, column, status)
            await log_audit(
                db, current_user, "item_status_changed", "order_item", item.id,
                old_value=old, new_value=status, changes=[field_change(column, old, status)],
            )
            await db.commit()
        return {"message": "Item status updated", "data": OrderItemOut.model_validate(item)}

    except HTTPException:
        await db.rollback()
        raise
    except Exception as e:
        await db.rollback()
        raise HTTPException(status_code=500, detail=f"Error updating item status: {e}")


# ---------------------------------------------------
# DELETE PRODUCT (Soft Delete)
# ---------------------------------------------------
SNAPSHOT_FIELDS = (
    "product_order_number", "product_status", "routed_to", "product_price",
    "client_product_price", "invoiced", "invoice_id",
)


async def delete_product(db: AsyncSession, product_id: int, reason: str, current_user):
    """
    Soft delete with a mandatory reason. Invoiced products can only be
    removed by a super admin.
    """
    try:
        if current_user.role not in ORDER_CREATOR_ROLES:
            raise PermissionDenied("Only admins can delete products")
        reason = (reason or "").strip()
        if not reason:
            raise ValidationFailed("A deletion reason is required", field="reason")

        product = await load_product(db, product_id)
        if product.invoiced and current_user.role != UserRole.super_admin.value:
            raise PermissionDenied("Only a super admin can delete an invoiced product")

        snapshot = [field_change(name, getattr(product, name), None) for name in SNAPSHOT_FIELDS]
        product.deleted_at = utcnow()
        product.deleted_by = current_user.id
        product.deleted_by_name = current_user.name
        product.deletion_reason = reason

        await log_audit(
            db, current_user, "product_deleted", "order_product", product.id,
            old_value=_plain(product.product_status), new_value=reason, changes=snapshot,
        )
        await db.commit()
        logger.info("%s deleted %s: %s", current_user.email, product.product_order_number, reason)
        return {"message": "Product deleted successfully"}

    except HTTPException:
        await db.rollback()
        raise
    except StaleDataError:
        await db.rollback()
        raise StaleWriteError()
    except Exception as e:
        await db.rollback()
        raise HTTPException(status_code=500, detail=f"Error deleting product: {e}")


# ---------------------------------------------------
# DELETED PRODUCTS / RESTORE
# ---------------------------------------------------
async def list_deleted_products(db: AsyncSession, order_id: int, current_user):
    order = await load_order(db, order_id)
    ensure_order_access(order, current_user)
    result = await db.execute(
        select(OrderProduct)
        .options(selectinload(OrderProduct.items))
        .where(OrderProduct.order_id == order_id, OrderProduct.deleted_at.is_not(None))
        .order_by(OrderProduct.deleted_at.desc())
    )
    products = result.scalars().all()
    return {"message": "Deleted products fetched successfully", "data": [product_out(p, current_user) for p in products]}


async def restore_product(db: AsyncSession, product_id: int, current_user):
    """Brings a soft-deleted product back exactly as it was when it was deleted."""
    try:
        if current_user.role not in LOCK_ROLES:
            raise PermissionDenied("Only admins can restore products")
        result = await db.execute(
            select(OrderProduct)
            .options(selectinload(OrderProduct.items))
            .where(OrderProduct.id == product_id)
        )
        product = result.scalars().first()
        if not product:
            raise NotFoundError("Order product", product_id)
        ensure_order_access(await load_order(db, product.order_id), current_user)
        if product.deleted_at is None:
            raise InvalidTransition(f"Product {product.product_order_number} is not deleted")

        reason = product.deletion_reason
        changes = diff_fields(product, {"deleted_at": None, "deletion_reason": None})
        apply_updates(product, {
            "deleted_at": None, "deleted_by": None, "deleted_by_name": None, "deletion_reason": None,
        })
        await log_audit(
            db, current_user, "product_restored", "order_product", product.id,
            old_value=reason, new_value=_plain(product.product_status), changes=changes,
        )
        await db.commit()
        logger.info("%s restored %s", current_user.email, product.product_order_number)
        return {"message": "Product restored successfully", "data": product_out(product, current_user)}

    except HTTPException:
        await db.rollback()
        raise
    except StaleDataError:
        await db.rollback()
        raise StaleWriteError()
    except Exception as e:
        await db.rollback()
        raise HTTPException(status_code=500, detail=f"Error restoring product: {e}")


# ---------------------------------------------------
# ESTIMATED SHIP DATES
# ---------------------------------------------------
SHIP_DATE_STATUSES = {
    ProductStatus.pending.value,
    ProductStatus.sent_to_manufacturer.value,
    ProductStatus.approved_for_production.value,
    ProductStatus.in_production.value,
}


async def set_ship_dates(db: AsyncSession, order_id: int, data: ShipDatesUpdate, current_user):
    """
    Sets or clears the estimated ship date of several products in one go.
    Every product is checked before any is written.
    """
    try:
        order = await load_order(db, order_id, with_products=True)
        ensure_order_access(order, current_user)
        by_id = {p.id: p for p in order.products if is_visible(p, current_user)}

        today = utcnow().date()
        planned = []
        for product_id, days in data.days.items():
            product = by_id.get(product_id)
            if product is None:
                raise NotFoundError("Order product", product_id)
            if product.product_status not in SHIP_DATE_STATUSES:
                raise InvalidTransition(
                    f"Cannot set a ship date on {product.product_order_number} while it is {product.product_status}"
                )
            planned.append((product, today + timedelta(days=days) if days else None))

        for product, ship_date in planned:
            changes = diff_fields(product, {"estimated_ship_date": ship_date})
            if not changes:
                continue
            product.estimated_ship_date = ship_date
            await log_audit(
                db, current_user, "ship_date_set" if ship_date else "ship_date_cleared",
                "order_product", product.id,
                new_value=_plain(ship_date), changes=changes,
            )
        await db.commit()
        logger.info("%s set ship dates on %s product(s) of %s", current_user.email, len(planned), order.order_number)
        return {
            "message": f"Ship dates updated for {len(planned)} product(s)",
            "data": [product_out(p, current_user) for p, _ in planned],
        }

    except HTTPException:
        await db.rollback()
        raise
    except StaleDataError:
        await db.rollback()
        raise StaleWriteError()
    except Exception as e:
        await db.rollback()
        raise HTTPException(status_code=500, detail=f"Error setting ship dates: {e}")
