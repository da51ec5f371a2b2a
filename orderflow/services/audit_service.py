# orderflow/services/audit_service.py
"""
Reading and rendering the audit log.

Entries carry structured ``{field, old, new}`` changes written at the time of
the action; display text is produced here from those and from the static
``ACTION_LABELS`` table.
"""
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy import desc, asc, func, or_, and_
from fastapi import HTTPException
from typing import Any, Collection, List, Optional, Tuple

from orderflow.models.audit_models import AuditLogEntry
from orderflow.schemas.audit_schemas import AuditEntryOut, FieldChange
from orderflow.services.order_services.order_access import (
    ensure_order_access, hidden_fields, is_visible, load_order, load_visible_product
)
from orderflow.utils.check_roles import ORDER_CREATOR_ROLES

ALLOWED_SORT_FIELDS = {"id", "user_id", "user_name", "action_type", "timestamp"}

ACTION_LABELS = {
    "order_created": "Order created",
    "order_sample_updated": "Sample updated",
    "sample_routed": "Sample routed",
    "product_added": "Product added",
    "product_updated": "Product updated",
    "manufacturer_pricing_updated": "Manufacturer pricing updated",
    "note_added": "Note added",
    "routing_note": "Routing note",
    "item_status_changed": "Item status changed",
    "product_deleted": "Product deleted",
    "product_restored": "Product restored",
    "ship_date_set": "Ship date set",
    "ship_date_cleared": "Ship date cleared",
    "product_locked": "Product locked",
    "product_unlocked": "Product unlocked",
    "product_editability_changed": "Editability changed",
    "product_routed_send_to_production": "Sent to production",
    "product_routed_request_sample": "Sample requested",
    "product_routed_send_for_approval": "Sent for client approval",
    "product_routed_send_back_to_manufacturer": "Sent back to manufacturer",
    "product_routed_send_to_manufacturer": "Sent to manufacturer",
    "product_routed_approve_for_production": "Approved for production",
    "product_routed_send_to_admin": "Sent to admin",
    "product_routed_in_production": "Production started",
    "product_routed_shipped": "Shipped",
    "product_routed_approve": "Approved by client",
    "product_routed_request_changes": "Changes requested by client",
    "inventory_type_created": "Accessory type created",
    "inventory_type_updated": "Accessory type updated",
    "inventory_type_deleted": "Accessory type deleted",
    "inventory_item_created": "Inventory item created",
    "inventory_item_updated": "Inventory item updated",
    "inventory_item_adjusted": "Stock adjusted",
    "inventory_item_deleted": "Inventory item deleted",
    "user_created": "User created",
    "user_updated": "User updated",
    "user_deactivated": "User deactivated",
    "client_margin_updated": "Sample margin updated",
    "media_uploaded": "File uploaded",
}

FIELD_LABELS = {
    "sample_fee": "Fee",
    "client_sample_fee": "Client fee",
    "sample_eta": "ETA",
    "sample_status": "Sample status",
    "sample_notes": "Sample note",
    "sample_routed_to": "Sample with",
    "sample_workflow_status": "Sample stage",
    "sample_required": "Sample required",
    "product_status": "Status",
    "routed_to": "Routed to",
    "is_locked": "Locked",
    "product_price": "Product price",
    "client_product_price": "Client price",
    "shipping_air_price": "Air shipping",
    "shipping_boat_price": "Boat shipping",
    "production_time": "Production time",
    "estimated_ship_date": "Estimated ship date",
    "admin_notes": "Admin note",
    "manufacturer_notes": "Manufacturer note",
    "client_notes": "Client note",
    "internal_notes": "Internal note",
    "quantity_on_hand": "Quantity",
    "low_stock_threshold": "Low stock threshold",
    "custom_sample_margin_percentage": "Sample margin %",
}

MONEY_FIELDS = {
    "sample_fee", "client_sample_fee", "product_price", "client_product_price",
    "shipping_air_price", "shipping_boat_price",
}
NOTE_FIELDS = {"sample_notes", "admin_notes", "manufacturer_notes", "client_notes", "internal_notes"}


def action_label(action_type: str) -> str:
    if action_type in ACTION_LABELS:
        return ACTION_LABELS[action_type]
    if action_type.startswith("product_routed_"):
        return "Routed: " + action_type[len("product_routed_"):].replace("_", " ")
    return action_type.replace("_", " ").capitalize()


def _render(field: str, value: Any) -> str:
    if value is None:
        return "none"
    if field in MONEY_FIELDS and isinstance(value, (int, float)) and not isinstance(value, bool):
        return f"${int(value):,}" if float(value).is_integer() else f"${value:,.2f}"
    if isinstance(value, bool):
        return "yes" if value else "no"
    if isinstance(value, str):
        return value.replace("_", " ") if field in {"product_status", "routed_to", "sample_status",
                                                    "sample_workflow_status", "sample_routed_to"} else value
    return str(value)


def format_change(change: dict) -> str:
    field = change.get("field", "")
    label = FIELD_LABELS.get(field, field.replace("_", " ").capitalize())
    old, new = change.get("old"), change.get("new")
    if field in NOTE_FIELDS and old is None:
        return f"{label}: {new}"
    if old is None and new is not None:
        return f"{label} set to {_render(field, new)}"
    if new is None and old is not None:
        return f"{label} cleared (was {_render(field, old)})"
    return f"{label}: {_render(field, old)} → {_render(field, new)}"


def format_audit_entry(entry: AuditLogEntry) -> dict:
    """Display form of an entry: a label plus one line per change."""
    lines = [format_change(c) for c in (entry.changes or [])]
    if not lines:
        if entry.old_value and entry.new_value:
            lines = [f"{entry.old_value} → {entry.new_value}"]
        elif entry.new_value:
            lines = [entry.new_value]
    return {"label": action_label(entry.action_type), "lines": lines}


def to_out(entry: AuditLogEntry) -> AuditEntryOut:
    out = AuditEntryOut.model_validate(entry)
    display = format_audit_entry(entry)
    out.label = display["label"]
    out.lines = display["lines"]
    return out


def redacted_out(entry: AuditLogEntry, hidden: Collection[str]) -> Optional[AuditEntryOut]:
    """
    ``to_out`` without the changes to ``hidden`` fields. An entry whose changes
    all touch hidden fields is left out altogether.
    """
    changes = entry.changes or []
    kept = [c for c in changes if c.get("field") not in hidden]
    if changes and not kept:
        return None
    out = to_out(entry)
    if len(kept) != len(changes):
        out.changes = [FieldChange(**c) for c in kept]
        out.lines = [format_change(c) for c in kept]
    return out


def _visible_entries(entries, user) -> List[AuditEntryOut]:
    hidden = hidden_fields(user)
    rendered = (redacted_out(e, hidden) for e in entries)
    return [out for out in rendered if out is not None]


async def list_audit(
    db: AsyncSession,
    target_type: Optional[str] = None,
    target_id: Optional[int] = None,
    action_type: Optional[str] = None,
    user_id: Optional[int] = None,
    page: int = 1,
    page_size: int = 20,
    sort_by: str = "timestamp",
    order: str = "desc",
) -> Tuple[int, List[AuditLogEntry]]:
    """
    Fetch paginated audit entries with optional filters and sorting.
    Returns total count and list of entries.
    """
    try:
        if sort_by not in ALLOWED_SORT_FIELDS:
            sort_by = "timestamp"
        column = getattr(AuditLogEntry, sort_by)
        sort_order = desc(column) if order.lower() == "desc" else asc(column)

        filters = []
        if target_type:
            filters.append(AuditLogEntry.target_type == target_type)
        if target_id is not None:
            filters.append(AuditLogEntry.target_id == target_id)
        if action_type:
            filters.append(AuditLogEntry.action_type.ilike(f"{action_type}%"))
        if user_id:
            filters.append(AuditLogEntry.user_id == user_id)

        total_result = await db.execute(select(func.count(AuditLogEntry.id)).where(*filters))
        total = total_result.scalar() or 0

        stmt = (
            select(AuditLogEntry).where(*filters)
            .order_by(sort_order, desc(AuditLogEntry.id))
            .offset((page - 1) * page_size).limit(page_size)
        )
        result = await db.execute(stmt)
        return total, result.scalars().all()

    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to fetch audit log: {str(e)}")


async def product_history(db: AsyncSession, product_id: int, current_user) -> List[AuditEntryOut]:
    await load_visible_product(db, product_id, current_user)
    result = await db.execute(
        select(AuditLogEntry)
        .where(AuditLogEntry.target_type == "order_product", AuditLogEntry.target_id == product_id)
        .order_by(desc(AuditLogEntry.timestamp), desc(AuditLogEntry.id))
    )
    return _visible_entries(result.scalars().all(), current_user)


async def order_history(db: AsyncSession, order_id: int, current_user) -> List[AuditEntryOut]:
    """Entries for the order itself and for every product in it the caller can see."""
    order = await load_order(db, order_id, with_products=True)
    ensure_order_access(order, current_user)
    product_ids = [
        p.id for p in order.products
        if current_user.role in ORDER_CREATOR_ROLES or is_visible(p, current_user)
    ]
    result = await db.execute(
        select(AuditLogEntry)
        .where(or_(
            and_(AuditLogEntry.target_type == "order", AuditLogEntry.target_id == order_id),
            and_(AuditLogEntry.target_type == "order_product", AuditLogEntry.target_id.in_(product_ids)),
        ))
        .order_by(desc(AuditLogEntry.timestamp), desc(AuditLogEntry.id))
    )
    return _visible_entries(result.scalars().all(), current_user)
