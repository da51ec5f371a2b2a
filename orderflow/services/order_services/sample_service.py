# orderflow/services/order_services/sample_service.py
"""
Order-level sample side-track.

A sample request travels between admin, manufacturer and client on its own,
independently of the per-product routing. The manufacturer quotes a fee, the
client is shown that fee plus the sample margin.
"""
import logging
from typing import List, Optional

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from orderflow.core.config import DEFAULT_SAMPLE_MARGIN_PERCENTAGE
from orderflow.core.exceptions import (
    InvalidTransition, PermissionDenied, ValidationFailed
)
from orderflow.models.order_models import Order, RoutedTo, SampleStatus
from orderflow.schemas.order_schemas import SampleOut, SampleUpdate
from orderflow.services.notification_services.notification_service import notify, party_user_ids
from orderflow.services.order_services.order_access import ensure_order_access, load_order, redact
from orderflow.utils.audit_helpers import apply_updates, diff_fields, field_change, log_audit
from orderflow.utils.check_roles import CLIENT_ROLES, ORDER_CREATOR_ROLES, role_group
from orderflow.utils.note_helpers import append_note
from orderflow.utils.time_utils import utcnow

logger = logging.getLogger(__name__)

# (from, to) -> sample_workflow_status after the hand-off
SAMPLE_ROUTES = {
    (RoutedTo.admin.value, RoutedTo.manufacturer.value): SampleStatus.sent_to_manufacturer.value,
    (RoutedTo.admin.value, RoutedTo.client.value): SampleStatus.sent_to_client.value,
    (RoutedTo.manufacturer.value, RoutedTo.admin.value): SampleStatus.priced_by_manufacturer.value,
    (RoutedTo.client.value, RoutedTo.admin.value): SampleStatus.client_reviewed.value,
}


def sample_margin(order: Order) -> float:
    client = order.client
    if client is not None and client.custom_sample_margin_percentage is not None:
        return client.custom_sample_margin_percentage
    return DEFAULT_SAMPLE_MARGIN_PERCENTAGE


def client_fee(fee: Optional[float], margin: float) -> Optional[float]:
    if fee is None:
        return None
    return round(fee * (1 + margin / 100), 2)


def _sender_group(user) -> Optional[str]:
    if user.role in ORDER_CREATOR_ROLES:
        return RoutedTo.admin.value
    return role_group(user.role)


# ---------------------------------------------------
# SAMPLE DATA (no commit)
# ---------------------------------------------------
async def apply_sample_update(db: AsyncSession, order: Order, data: SampleUpdate, current_user) -> List[dict]:
    if current_user.role in CLIENT_ROLES and (data.fee is not None or data.eta is not None or data.status is not None):
        raise PermissionDenied("Clients may only add sample notes")

    updates = {}
    if data.fee is not None:
        updates["sample_fee"] = data.fee
        updates["client_sample_fee"] = client_fee(data.fee, sample_margin(order))
    if data.eta is not None:
        updates["sample_eta"] = data.eta.strip() or None

    note = (data.notes or "").strip()
    fee = updates.get("sample_fee", order.sample_fee)
    eta = updates.get("sample_eta", order.sample_eta)
    has_data = fee is not None or bool(eta) or bool(note) or bool(order.sample_notes)

    if not has_data:
        updates["sample_status"] = SampleStatus.no_sample.value
        updates["sample_workflow_status"] = SampleStatus.no_sample.value
        updates["sample_required"] = False
    else:
        updates["sample_required"] = True
        if data.status is not None:
            updates["sample_status"] = data.status.value
        elif order.sample_status == SampleStatus.no_sample.value:
            updates["sample_status"] = SampleStatus.pending.value
        if order.sample_workflow_status == SampleStatus.no_sample.value:
            updates["sample_workflow_status"] = SampleStatus.pending.value

    changes = diff_fields(order, updates)
    apply_updates(order, updates)
    if note:
        order.sample_notes = append_note(order.sample_notes, note, current_user.role)
        changes.append(field_change("sample_notes", None, note))

    if changes:
        await log_audit(
            db, current_user, "order_sample_updated", "order", order.id,
            old_value=None, new_value=order.sample_status, changes=changes,
        )
    return changes


async def apply_sample_route(db: AsyncSession, order: Order, destination: str, notes: Optional[str], current_user) -> str:
    source = _sender_group(current_user)
    if source is None:
        raise PermissionDenied("Your role cannot route samples")

    workflow_status = SAMPLE_ROUTES.get((source, destination))
    if workflow_status is None:
        raise InvalidTransition(f"Samples cannot be routed from {source} to {destination}")
    if order.sample_routed_to != source:
        raise InvalidTransition(
            f"Sample for order {order.order_number} is with {order.sample_routed_to}, not {source}"
        )
    if not order.sample_required:
        raise ValidationFailed("Order has no sample request to route", field="sample")

    previous = order.sample_routed_to
    updates = {
        "sample_routed_to": destination,
        "sample_workflow_status": workflow_status,
    }
    changes = diff_fields(order, updates)
    apply_updates(order, updates)
    order.sample_routed_at = utcnow()
    order.sample_routed_by = current_user.id
    note = (notes or "").strip()
    if note:
        order.sample_notes = append_note(order.sample_notes, note, current_user.role)
        changes.append(field_change("sample_notes", None, note))

    await log_audit(
        db, current_user, "sample_routed", "order", order.id,
        old_value=previous, new_value=destination, changes=changes,
    )

    if destination == RoutedTo.admin.value:
        recipients = [order.created_by]
    elif destination == RoutedTo.manufacturer.value:
        recipients = await party_user_ids(db, manufacturer_id=order.manufacturer_id)
    else:
        recipients = await party_user_ids(db, client_id=order.client_id)
    await notify(
        db, recipients, "sample_routed",
        f"Sample for order {order.order_number} was sent to you ({workflow_status.replace('_', ' ')})",
        order_id=order.id,
    )
    return workflow_status


# ---------------------------------------------------
# UPDATE SAMPLE
# ---------------------------------------------------
async def update_sample(db: AsyncSession, order_id: int, data: SampleUpdate, current_user):
    try:
        order = await load_order(db, order_id)
        ensure_order_access(order, current_user)
        changes = await apply_sample_update(db, order, data, current_user)
        await db.commit()
        logger.info("Sample data for %s updated by %s (%s change(s))", order.order_number, current_user.email, len(changes))
        return {"message": "Sample updated successfully", "data": redact(SampleOut.model_validate(order), current_user)}

    except HTTPException:
        await db.rollback()
        raise
    except Exception as e:
        await db.rollback()
        logger.exception("Error updating sample for order %s", order_id)
        raise HTTPException(status_code=500, detail=f"Error updating sample: {e}")


# ---------------------------------------------------
# ROUTE SAMPLE
# ---------------------------------------------------
async def route_sample(db: AsyncSession, order_id: int, destination: str, notes: Optional[str], current_user):
    try:
        order = await load_order(db, order_id)
        ensure_order_access(order, current_user)
        workflow_status = await apply_sample_route(db, order, destination, notes, current_user)
        await db.commit()
        logger.info("Sample for %s routed to %s (%s)", order.order_number, destination, workflow_status)
        return {"message": f"Sample routed to {destination}", "data": redact(SampleOut.model_validate(order), current_user)}

    except HTTPException:
        await db.rollback()
        raise
    except Exception as e:
        await db.rollback()
        logger.exception("Error routing sample for order %s", order_id)
        raise HTTPException(status_code=500, detail=f"Error routing sample: {e}")
