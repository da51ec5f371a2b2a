# orderflow/services/order_services/order_access.py
"""
Who may see which orders and products.

Admin roles see every order and every non-deleted product. Manufacturer and
client users only see orders of the party they belong to, and within an order
only the products routed to their queue plus products in an always-visible
stage. Every product, sample or order view handed to them is passed through
``redact`` first: manufacturers never read client pricing or internal notes,
clients never read manufacturer pricing, admin notes or internal notes.
"""
from typing import Iterable, List, Optional, Set, Tuple

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload

from orderflow.core.exceptions import NotFoundError, PermissionDenied, StaleWriteError
from orderflow.models.order_models import Order, OrderProduct, ProductStatus
from orderflow.schemas.order_schemas import OrderProductOut
from orderflow.utils.check_roles import (
    ORDER_CREATOR_ROLES, MANUFACTURER_ROLES, CLIENT_ROLES, role_group
)
from orderflow.models.user_models import UserRole

ALWAYS_VISIBLE_STATUSES = {ProductStatus.in_production.value, ProductStatus.completed.value}


def can_access_order(order: Order, user) -> bool:
    if user.role in ORDER_CREATOR_ROLES:
        return True
    if user.role in MANUFACTURER_ROLES:
        if user.role == UserRole.sub_manufacturer.value and order.sub_manufacturer_id == user.id:
            return True
        return user.manufacturer_id is not None and order.manufacturer_id == user.manufacturer_id
    if user.role in CLIENT_ROLES:
        return user.client_id is not None and order.client_id == user.client_id
    return False


def ensure_order_access(order: Order, user) -> None:
    if not can_access_order(order, user):
        raise PermissionDenied(f"You do not have access to order {order.order_number}")


def is_visible(product: OrderProduct, user) -> bool:
    if product.deleted_at is not None:
        return False
    group = role_group(user.role)
    if group == "admin" or user.role in ORDER_CREATOR_ROLES:
        return True
    if product.product_status in ALWAYS_VISIBLE_STATUSES:
        return True
    return group is not None and product.routed_to == group


def visible_products(products: Iterable[OrderProduct], user) -> List[OrderProduct]:
    return [p for p in products if is_visible(p, user)]


# ---------------------------------------------------
# REDACTION
# ---------------------------------------------------
MANUFACTURER_HIDDEN_FIELDS = {"client_product_price", "client_sample_fee", "internal_notes"}
CLIENT_HIDDEN_FIELDS = {
    "product_price", "sample_fee", "shipping_air_price", "shipping_boat_price",
    "admin_notes", "internal_notes",
}


def hidden_fields(user) -> Set[str]:
    """Product and sample fields ``user`` may not read."""
    if user.role in ORDER_CREATOR_ROLES:
        return set()
    if user.role in MANUFACTURER_ROLES:
        return MANUFACTURER_HIDDEN_FIELDS
    if user.role in CLIENT_ROLES:
        return CLIENT_HIDDEN_FIELDS
    return MANUFACTURER_HIDDEN_FIELDS | CLIENT_HIDDEN_FIELDS


def redact(out, user):
    """Blanks hidden fields on a product, sample or order view, products included."""
    hidden = hidden_fields(user)
    for name in hidden & set(type(out).model_fields):
        setattr(out, name, None)
    for product in getattr(out, "products", None) or []:
        redact(product, user)
    return out


def product_out(product: OrderProduct, user) -> OrderProductOut:
    return redact(OrderProductOut.model_validate(product), user)


# ---------------------------------------------------
# LOADERS
# ---------------------------------------------------
async def load_order(db: AsyncSession, order_id: int, with_products: bool = False) -> Order:
    query = select(Order).where(Order.id == order_id)
    if with_products:
        query = query.options(
            selectinload(Order.products).selectinload(OrderProduct.items),
            selectinload(Order.media),
        )
    result = await db.execute(query)
    order = result.scalars().first()
    if not order:
        raise NotFoundError("Order", order_id)
    return order


async def load_product(db: AsyncSession, product_id: int) -> OrderProduct:
    result = await db.execute(
        select(OrderProduct)
        .options(selectinload(OrderProduct.items))
        .where(OrderProduct.id == product_id, OrderProduct.deleted_at.is_(None))
    )
    product = result.scalars().first()
    if not product:
        raise NotFoundError("Order product", product_id)
    return product


async def load_visible_product(db: AsyncSession, product_id: int, user) -> Tuple[OrderProduct, Order]:
    """
    Product and its order, provided ``user`` has access to the order and the
    product is currently in view for them. Hidden products read as missing.
    """
    product = await load_product(db, product_id)
    order = await db.get(Order, product.order_id)
    ensure_order_access(order, user)
    if not is_visible(product, user):
        raise NotFoundError("Order product", product_id)
    return product, order


def check_version(product: OrderProduct, expected_version: Optional[int]) -> None:
    if expected_version is not None and expected_version != product.version:
        raise StaleWriteError(
            f"Product {product.product_order_number} is at version {product.version}, "
            f"not {expected_version}. Reload and try again."
        )
