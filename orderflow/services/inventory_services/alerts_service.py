from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from typing import List, Optional

from orderflow.models.inventory_models import AccessoryInventory
from orderflow.schemas.inventory_schemas import StockAlert

OUT_OF_STOCK = "out_of_stock"
LOW_STOCK = "low_stock"
IN_STOCK = "in_stock"


def stock_state(quantity_on_hand: int, low_stock_threshold: int) -> str:
    if quantity_on_hand <= 0:
        return OUT_OF_STOCK
    if quantity_on_hand <= low_stock_threshold:
        return LOW_STOCK
    return IN_STOCK


async def get_stock_alerts(db: AsyncSession, manufacturer_id: Optional[int] = None) -> List[StockAlert]:
    """Inventory rows at or below their low-stock threshold, emptiest first."""
    query = select(AccessoryInventory).where(
        AccessoryInventory.quantity_on_hand <= AccessoryInventory.low_stock_threshold
    )
    if manufacturer_id is not None:
        query = query.where(AccessoryInventory.manufacturer_id == manufacturer_id)
    result = await db.execute(query.order_by(AccessoryInventory.quantity_on_hand, AccessoryInventory.id))
    rows = result.scalars().all()
    return [
        StockAlert(
            inventory_id=row.id,
            manufacturer_id=row.manufacturer_id,
            client_id=row.client_id,
            client_name=row.client.name if row.client else None,
            accessory_type_name=row.accessory_type.name,
            quantity_on_hand=row.quantity_on_hand,
            low_stock_threshold=row.low_stock_threshold,
            stock_state=stock_state(row.quantity_on_hand, row.low_stock_threshold),
        )
        for row in rows
    ]
