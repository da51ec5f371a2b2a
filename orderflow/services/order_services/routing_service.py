# orderflow/services/order_services/routing_service.py
"""
Order-product routing.

A product sits in exactly one queue (``routed_to``: admin, manufacturer or
client) and carries a production stage (``product_status``). Every action in
``TRANSITIONS`` moves it to a new queue and stage. Checking an action is a
pure function of the product and the acting user (``plan_transition``);
applying it updates the product, any order-level sample fields, the audit log
and the notifications inside the caller's transaction.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from orderflow.core.exceptions import (
    AppError, InvalidTransition, NotFoundError, PermissionDenied, StaleWriteError, ValidationFailed
)
from orderflow.models.order_models import Order, OrderProduct, ProductStatus, RoutedTo, SampleStatus
from orderflow.schemas.order_schemas import (
    BulkRouteItem, BulkRouteOut, BulkRouteRequest, RouteRequest
)
from orderflow.services.notification_services.notification_service import notify
from orderflow.services.order_services import sample_service
from orderflow.services.order_services.order_access import (
    check_version, ensure_order_access, load_order, load_visible_product, product_out, visible_products
)
from orderflow.services.order_services.product_service import apply_field_update, plan_field_update
from orderflow.utils.audit_helpers import apply_updates, diff_fields, field_change, log_audit
from orderflow.utils.check_roles import LOCK_ROLES, ORDER_CREATOR_ROLES, role_group
from orderflow.utils.note_helpers import append_note
from orderflow.utils.time_utils import utcnow

logger = logging.getLogger(__name__)

ADMIN = RoutedTo.admin.value
MANUFACTURER = RoutedTo.manufacturer.value
CLIENT = RoutedTo.client.value


@dataclass(frozen=True)
class Transition:
    group: str
    action: str
    routed_from: str
    status: str
    routed_to: str
    requires_status: Optional[str] = None
    requires_note: bool = False
    note_field: str = "admin_notes"
    sets: Dict[str, object] = field(default_factory=dict)
    notify_type: Optional[str] = None
    notify_message: Optional[str] = None


TRANSITIONS: Dict[tuple, Transition] = {
    (t.group, t.action): t
    for t in [
        # Admin
        Transition(ADMIN, "send_to_production", ADMIN, ProductStatus.in_production.value, MANUFACTURER,
                   note_field="manufacturer_notes", sets={"is_locked": True}),
        Transition(ADMIN, "request_sample", ADMIN, ProductStatus.sample_requested.value, MANUFACTURER,
                   note_field="manufacturer_notes", sets={"requires_sample": True}),
        Transition(ADMIN, "send_for_approval", ADMIN, ProductStatus.pending_client_approval.value, CLIENT,
                   note_field="client_notes", sets={"requires_client_approval": True}),
        Transition(ADMIN, "send_back_to_manufacturer", ADMIN, ProductStatus.revision_requested.value, MANUFACTURER,
                   note_field="manufacturer_notes"),
        Transition(ADMIN, "send_to_manufacturer", ADMIN, ProductStatus.sent_to_manufacturer.value, MANUFACTURER,
                   note_field="manufacturer_notes"),
        Transition(ADMIN, "approve_for_production", ADMIN, ProductStatus.approved_for_production.value, MANUFACTURER,
                   note_field="manufacturer_notes", sets={"is_locked": False}),
        # Manufacturer
        Transition(MANUFACTURER, "send_to_admin", MANUFACTURER, ProductStatus.pending_admin.value, ADMIN,
                   note_field="manufacturer_notes", notify_type="manufacturer_question",
                   notify_message="Manufacturer has a question about {pon}"),
        Transition(MANUFACTURER, "in_production", MANUFACTURER, ProductStatus.in_production.value, MANUFACTURER,
                   note_field="manufacturer_notes", sets={"is_locked": True}, notify_type="production_started",
                   notify_message="Product {pon} is now in production"),
        Transition(MANUFACTURER, "shipped", MANUFACTURER, ProductStatus.shipped.value, ADMIN,
                   note_field="manufacturer_notes", notify_type="product_shipped",
                   notify_message="Product {pon} has been shipped"),
        # Client
        Transition(CLIENT, "approve", CLIENT, ProductStatus.client_approved.value, ADMIN,
                   requires_status=ProductStatus.pending_client_approval.value, note_field="client_notes",
                   sets={"client_approved": True}, notify_type="client_approved",
                   notify_message="Client approved {pon}"),
        Transition(CLIENT, "request_changes", CLIENT, ProductStatus.revision_requested.value, ADMIN,
                   requires_status=ProductStatus.pending_client_approval.value, requires_note=True,
                   note_field="client_notes", notify_type="client_changes_requested",
                   notify_message="Client requested changes to {pon}"),
    ]
}

ACTIONS = {t.action for t in TRANSITIONS.values()}

# Bookkeeping columns kept out of the audit diff
_UNTRACKED = {"routed_at", "routed_by", "client_approved_at", "shipped_date"}


@dataclass
class TransitionPlan:
    transition: Transition
    previous_status: str
    updates: Dict[str, object]
    changes: List[dict]
    note: Optional[str] = None


def acting_group(user) -> Optional[str]:
    if user.role in ORDER_CREATOR_ROLES:
        return ADMIN
    return role_group(user.role)


def plan_transition(product: OrderProduct, user, action: str, note: Optional[str] = None, now=None) -> TransitionPlan:
    """
    Checks ``action`` against the product's current queue and stage and
    returns the field updates it would make. Touches nothing.
    """
    if action not in ACTIONS:
        raise ValidationFailed(f"Unknown routing action '{action}'", field="action")

    group = acting_group(user)
    transition = TRANSITIONS.get((group, action)) if group else None
    if transition is None:
        raise PermissionDenied(f"Role '{user.role}' cannot perform '{action}'")

    if product.deleted_at is not None:
        raise NotFoundError("Order product", product.id)
    if product.product_status == ProductStatus.shipped.value:
        raise InvalidTransition(f"Product {product.product_order_number} has shipped and cannot be re-routed")
    if product.routed_to != transition.routed_from:
        raise InvalidTransition(
            f"Product {product.product_order_number} is routed to {product.routed_to}, "
            f"'{action}' needs it to be with {transition.routed_from}"
        )
    if transition.requires_status and product.product_status != transition.requires_status:
        raise InvalidTransition(
            f"'{action}' needs status {transition.requires_status}, product is {product.product_status}"
        )

    text = (note or "").strip()
    if transition.requires_note and not text:
        raise ValidationFailed("A note describing the requested changes is required", field="notes")

    now = now or utcnow()
    updates: Dict[str, object] = {
        "product_status": transition.status,
        "routed_to": transition.routed_to,
        **transition.sets,
    }
    if action == "shipped":
        updates["shipped_date"] = now
    if action == "approve":
        updates["client_approved_at"] = now
    if text:
        updates[transition.note_field] = append_note(
            getattr(product, transition.note_field), text, user.role, when=now
        )

    changes = diff_fields(product, {k: v for k, v in updates.items() if k not in _UNTRACKED})
    updates["routed_at"] = now
    updates["routed_by"] = user.id
    return TransitionPlan(transition, product.product_status, updates, changes, text or None)


async def apply_transition(db: AsyncSession, order: Order, product: OrderProduct, plan: TransitionPlan, current_user) -> None:
    """Writes a checked plan into the session. The caller commits."""
    transition = plan.transition
    apply_updates(product, plan.updates)
    changes = list(plan.changes)

    if transition.action == "request_sample":
        order_updates = {
            "sample_required": True,
            "sample_routed_to": MANUFACTURER,
            "sample_workflow_status": SampleStatus.sent_to_manufacturer.value,
        }
        if order.sample_status == SampleStatus.no_sample.value:
            order_updates["sample_status"] = SampleStatus.pending.value
        changes.extend(diff_fields(order, order_updates))
        apply_updates(order, order_updates)
        order.sample_routed_at = plan.updates["routed_at"]
        order.sample_routed_by = current_user.id

    await log_audit(
        db, current_user, f"product_routed_{transition.action}", "order_product", product.id,
        old_value=plan.previous_status, new_value=transition.status, changes=changes,
    )
    if plan.note:
        await log_audit(
            db, current_user, "routing_note", "order_product", product.id,
            new_value=plan.note, changes=[field_change(transition.note_field, None, plan.note)],
        )
    if transition.notify_type:
        await notify(
            db, [order.created_by], transition.notify_type,
            transition.notify_message.format(pon=product.product_order_number),
            order_id=order.id, order_product_id=product.id,
        )


# ---------------------------------------------------
# ROUTE ONE PRODUCT
# ---------------------------------------------------
async def route_product(db: AsyncSession, product_id: int, data: RouteRequest, current_user):
    try:
        product, order = await load_visible_product(db, product_id, current_user)
        check_version(product, data.expected_version)

        plan = plan_transition(product, current_user, data.action, data.notes)
        await apply_transition(db, order, product, plan, current_user)
        await db.commit()

        logger.info(
            "%s routed %s via %s: %s -> %s (%s)",
            current_user.email, product.product_order_number, data.action,
            plan.previous_status, product.product_status, product.routed_to,
        )
        return {"message": f"Product routed ({data.action})", "data": product_out(product, current_user)}

    except HTTPException:
        await db.rollback()
        raise
    except StaleDataError:
        await db.rollback()
        raise StaleWriteError()
    except Exception as e:
        await db.rollback()
        logger.exception("Error routing product %s", product_id)
        raise HTTPException(status_code=500, detail=f"Error routing product: {e}")


# ---------------------------------------------------
# BULK "SAVE ALL & ROUTE"
# ---------------------------------------------------
def _failure(product_id: int, exc: AppError) -> BulkRouteItem:
    return BulkRouteItem(
        product_id=product_id, ok=False, error=str(exc.detail),
        error_code=exc.error_code, retryable=exc.retryable,
    )


async def _auto_route_sample(db: AsyncSession, order: Order, action: str, notes: Optional[str], current_user) -> None:
    """Carries the order's sample along with the products it travels with."""
    if not order.sample_required:
        return
    group = acting_group(current_user)
    destination = None
    if group == MANUFACTURER and action == "send_to_admin" and order.sample_routed_to == MANUFACTURER:
        destination = ADMIN
    elif group == ADMIN and order.sample_routed_to == ADMIN:
        if action == "send_to_manufacturer":
            destination = MANUFACTURER
        elif action == "send_for_approval":
            destination = CLIENT
    if destination:
        await sample_service.apply_sample_route(db, order, destination, notes, current_user)


async def bulk_route(db: AsyncSession, order_id: int, data: BulkRouteRequest, current_user):
    """
    Saves pending field edits and applies one action to every product of the
    order the caller can see (or the ``product_ids`` subset), in one
    transaction. Each product is checked on its own and reported in
    ``results``; with ``all_or_nothing`` a single failure commits nothing.
    """
    try:
        order = await load_order(db, order_id, with_products=True)
        order_number, actor = order.order_number, current_user.email
        ensure_order_access(order, current_user)
        if data.action not in ACTIONS:
            raise ValidationFailed(f"Unknown routing action '{data.action}'", field="action")

        candidates = visible_products(order.products, current_user)
        results: List[BulkRouteItem] = []
        if data.product_ids is not None:
            wanted = list(dict.fromkeys(data.product_ids))
            by_id = {p.id: p for p in candidates}
            candidates = [by_id[pid] for pid in wanted if pid in by_id]
            for pid in wanted:
                if pid not in by_id:
                    results.append(_failure(pid, NotFoundError("Order product", pid)))
        if not candidates and not results:
            raise ValidationFailed("No products to route in this order", field="product_ids")

        if data.sample is not None:
            await sample_service.apply_sample_update(db, order, data.sample, current_user)

        applied: List[OrderProduct] = []
        for product in candidates:
            try:
                edits = data.updates.get(product.id)
                field_plan = None
                if edits is not None:
                    field_plan = plan_field_update(product, current_user, edits.model_dump(exclude_unset=True))
                plan = plan_transition(product, current_user, data.action, data.notes)
            except AppError as exc:
                results.append(_failure(product.id, exc))
                continue

            if field_plan is not None:
                await apply_field_update(db, product, field_plan, current_user)
                plan = plan_transition(product, current_user, data.action, data.notes)
            await apply_transition(db, order, product, plan, current_user)
            applied.append(product)
            results.append(BulkRouteItem(
                product_id=product.id, ok=True, status=product.product_status, routed_to=product.routed_to,
            ))

        failed = [r for r in results if not r.ok]
        committed = False
        if failed and data.all_or_nothing:
            await db.rollback()
            results = [
                r if not r.ok else BulkRouteItem(
                    product_id=r.product_id, ok=False, error="Batch aborted because another product failed",
                    error_code="BATCH_ABORTED", retryable=True,
                )
                for r in results
            ]
        elif applied or data.sample is not None:
            if applied:
                await _auto_route_sample(db, order, data.action, data.notes, current_user)
            try:
                await db.commit()
                committed = True
            except StaleDataError:
                await db.rollback()
                stale = StaleWriteError()
                results = [r if not r.ok else _failure(r.product_id, stale) for r in results]

        ok_count = sum(1 for r in results if r.ok)
        logger.info(
            "Bulk %s on %s by %s: %s ok, %s failed, committed=%s",
            data.action, order_number, actor, ok_count, len(results) - ok_count, committed,
        )
        return {
            "message": "Bulk routing finished",
            "data": BulkRouteOut(
                action=data.action, committed=committed, succeeded=ok_count,
                failed=len(results) - ok_count, results=results,
            ),
        }

    except HTTPException:
        await db.rollback()
        raise
    except Exception as e:
        await db.rollback()
        logger.exception("Error bulk routing order %s", order_id)
        raise HTTPException(status_code=500, detail=f"Error routing products: {e}")


# ---------------------------------------------------
# LOCK / EDITABILITY
# ---------------------------------------------------
async def set_lock(db: AsyncSession, product_id: int, locked: bool, current_user):
    """
    Locking puts the product into production, unlocking sends it back to
    pending, whatever its stage was. Locking a locked product is a no-op.
    """
    try:
        if current_user.role not in LOCK_ROLES:
            raise PermissionDenied("Only admins can lock or unlock products")
        product, _ = await load_visible_product(db, product_id, current_user)

        updates = {
            "is_locked": locked,
            "product_status": ProductStatus.in_production.value if locked else ProductStatus.pending.value,
        }
        changes = diff_fields(product, updates)
        if not changes:
            return {
                "message": f"Product already {'locked' if locked else 'unlocked'}",
                "data": product_out(product, current_user),
            }

        previous = product.product_status
        apply_updates(product, updates)
        await log_audit(
            db, current_user, "product_locked" if locked else "product_unlocked", "order_product", product.id,
            old_value=previous, new_value=product.product_status, changes=changes,
        )
        await db.commit()
        logger.info("%s %s %s", current_user.email, "locked" if locked else "unlocked", product.product_order_number)
        return {
            "message": f"Product {'locked' if locked else 'unlocked'}",
            "data": product_out(product, current_user),
        }

    except HTTPException:
        await db.rollback()
        raise
    except StaleDataError:
        await db.rollback()
        raise StaleWriteError()
    except Exception as e:
        await db.rollback()
        raise HTTPException(status_code=500, detail=f"Error changing lock: {e}")


async def set_editable(db: AsyncSession, product_id: int, editable: bool, current_user):
    """Flips editability only; the production stage is left alone."""
    try:
        if current_user.role not in LOCK_ROLES:
            raise PermissionDenied("Only admins can change product editability")
        product, _ = await load_visible_product(db, product_id, current_user)

        changes = diff_fields(product, {"is_locked": not editable})
        if changes:
            product.is_locked = not editable
            await log_audit(
                db, current_user, "product_editability_changed", "order_product", product.id,
                old_value="locked" if editable else "editable",
                new_value="editable" if editable else "locked", changes=changes,
            )
            await db.commit()
        return {
            "message": "Product is now editable" if editable else "Product is now read-only",
            "data": product_out(product, current_user),
        }

    except HTTPException:
        await db.rollback()
        raise
    except StaleDataError:
        await db.rollback()
        raise StaleWriteError()
    except Exception as e:
        await db.rollback()
        raise HTTPException(status_code=500, detail=f"Error changing editability: {e}")
