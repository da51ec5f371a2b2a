# orderflow/services/order_services/order_service.py
import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from orderflow.core.exceptions import (
    NotFoundError, PermissionDenied, StaleWriteError
)
from orderflow.models.order_models import (
    CatalogProduct, Order, OrderItem, OrderProduct, ProductStatus, RoutedTo, SampleStatus
)
from orderflow.models.user_models import Client, Manufacturer, UserRole
from orderflow.schemas.order_schemas import (
    OrderCreate, OrderOut, OrderProductCreate, OrderProductOut, OrderSummaryOut
)
from orderflow.services.order_services.order_access import (
    ensure_order_access, load_order, redact, visible_products
)
from orderflow.utils.audit_helpers import field_change, log_audit
from orderflow.utils.check_roles import CLIENT_ROLES, MANUFACTURER_ROLES, ORDER_CREATOR_ROLES

logger = logging.getLogger(__name__)


def format_order_number(sequence: int) -> str:
    return f"ORD-{sequence:04d}"


def format_product_order_number(order_number: str, position: int) -> str:
    return f"{order_number}-P{position:02d}"


async def _next_order_number(db: AsyncSession) -> str:
    result = await db.execute(select(func.max(Order.id)))
    return format_order_number((result.scalar() or 0) + 1)


async def _build_product(db: AsyncSession, order: Order, data: OrderProductCreate, position: int) -> OrderProduct:
    if not await db.get(CatalogProduct, data.product_id):
        raise NotFoundError("Product", data.product_id)
    product = OrderProduct(
        product_id=data.product_id,
        product_order_number=format_product_order_number(order.order_number, position),
        description=data.description,
        product_status=ProductStatus.pending.value,
        routed_to=RoutedTo.admin.value,
        requires_sample=data.requires_sample,
        items=[OrderItem(**item.model_dump()) for item in data.items],
    )
    order.products.append(product)
    return product


# ---------------------------------------------------
# CREATE ORDER
# ---------------------------------------------------
async def create_order(db: AsyncSession, data: OrderCreate, current_user):
    """
    Create an order with its products. Every product starts pending in the
    admin queue.
    """
    try:
        if current_user.role not in ORDER_CREATOR_ROLES:
            raise PermissionDenied("Only admins and order creators can create orders")
        if not await db.get(Client, data.client_id):
            raise NotFoundError("Client", data.client_id)
        if not await db.get(Manufacturer, data.manufacturer_id):
            raise NotFoundError("Manufacturer", data.manufacturer_id)

        order = Order(
            order_number=await _next_order_number(db),
            order_name=data.order_name,
            client_id=data.client_id,
            manufacturer_id=data.manufacturer_id,
            sub_manufacturer_id=data.sub_manufacturer_id,
            created_by=current_user.id,
            sample_required=data.sample_required,
            sample_status=SampleStatus.pending.value if data.sample_required else SampleStatus.no_sample.value,
            products=[],
            media=[],
        )
        db.add(order)
        for position, product_data in enumerate(data.products, start=1):
            await _build_product(db, order, product_data, position)
        await db.flush()

        await log_audit(
            db, current_user, "order_created", "order", order.id,
            new_value=order.order_number,
            changes=[field_change("products", None, len(order.products))],
        )
        await db.commit()
        logger.info("%s created %s with %s product(s)", current_user.email, order.order_number, len(order.products))

        order = await load_order(db, order.id, with_products=True)
        return {"message": "Order created successfully", "data": OrderOut.model_validate(order)}

    except HTTPException:
        await db.rollback()
        raise
    except IntegrityError:
        await db.rollback()
        raise StaleWriteError("Order number was taken by a concurrent request. Retry.")
    except Exception as e:
        await db.rollback()
        logger.exception("Error creating order")
        raise HTTPException(status_code=500, detail=f"Error creating order: {e}")


# ---------------------------------------------------
# ADD PRODUCT TO ORDER
# ---------------------------------------------------
async def add_product(db: AsyncSession, order_id: int, data: OrderProductCreate, current_user):
    try:
        if current_user.role not in ORDER_CREATOR_ROLES:
            raise PermissionDenied("Only admins and order creators can add products")
        order = await load_order(db, order_id, with_products=True)
        product = await _build_product(db, order, data, len(order.products) + 1)
        await db.flush()
        await log_audit(
            db, current_user, "product_added", "order_product", product.id,
            new_value=product.product_order_number,
        )
        await db.commit()
        return {"message": "Product added successfully", "data": OrderProductOut.model_validate(product)}

    except HTTPException:
        await db.rollback()
        raise
    except Exception as e:
        await db.rollback()
        raise HTTPException(status_code=500, detail=f"Error adding product: {e}")


# ---------------------------------------------------
# LIST ORDERS
# ---------------------------------------------------
async def list_orders(db: AsyncSession, current_user, search: Optional[str] = None, page: int = 1, page_size: int = 20):
    query = select(Order)
    if current_user.role in ORDER_CREATOR_ROLES:
        pass
    elif current_user.role in MANUFACTURER_ROLES:
        conditions = []
        if current_user.manufacturer_id is not None:
            conditions.append(Order.manufacturer_id == current_user.manufacturer_id)
        if current_user.role == UserRole.sub_manufacturer.value:
            conditions.append(Order.sub_manufacturer_id == current_user.id)
        if not conditions:
            return {"message": "Orders fetched successfully", "total": 0, "data": []}
        query = query.where(or_(*conditions))
    elif current_user.role in CLIENT_ROLES:
        if current_user.client_id is None:
            return {"message": "Orders fetched successfully", "total": 0, "data": []}
        query = query.where(Order.client_id == current_user.client_id)
    else:
        raise PermissionDenied("Your role cannot view orders")

    if search:
        like = f"%{search.strip()}%"
        query = query.where(or_(Order.order_number.ilike(like), Order.order_name.ilike(like)))

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar() or 0
    result = await db.execute(
        query.order_by(Order.created_at.desc(), Order.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    orders = result.unique().scalars().all()
    return {
        "message": "Orders fetched successfully",
        "total": total,
        "data": [OrderSummaryOut.model_validate(o) for o in orders],
    }


# ---------------------------------------------------
# GET ORDER
# ---------------------------------------------------
async def get_order(db: AsyncSession, order_id: int, current_user):
    """Order graph with only the products the caller may see."""
    order = await load_order(db, order_id, with_products=True)
    ensure_order_access(order, current_user)
    data = OrderOut.model_validate(order)
    data.products = [OrderProductOut.model_validate(p) for p in visible_products(order.products, current_user)]
    return {"message": "Order fetched successfully", "data": redact(data, current_user)}
