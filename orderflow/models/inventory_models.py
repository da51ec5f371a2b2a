from sqlalchemy import (
    Column, Integer, String, ForeignKey, DateTime, Text,
    CheckConstraint, Index, UniqueConstraint
)
from sqlalchemy.orm import relationship
from orderflow.core.db import Base
from orderflow.utils.time_utils import utcnow


# --------------------------
# Accessory type (per-manufacturer catalog)
# --------------------------
class AccessoryType(Base):
    __tablename__ = "accessory_types"

    id = Column(Integer, primary_key=True, index=True)
    manufacturer_id = Column(Integer, ForeignKey("manufacturers.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False, index=True)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    inventory = relationship("AccessoryInventory", back_populates="accessory_type", passive_deletes=True)


# --------------------------
# Stock per (manufacturer, client, accessory type)
# --------------------------
class AccessoryInventory(Base):
    __tablename__ = "manufacturer_accessories_inventory"

    id = Column(Integer, primary_key=True, index=True)
    manufacturer_id = Column(Integer, ForeignKey("manufacturers.id", ondelete="CASCADE"), nullable=False, index=True)
    client_id = Column(Integer, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True)
    # RESTRICT: a type cannot disappear under existing stock rows
    accessory_type_id = Column(Integer, ForeignKey("accessory_types.id", ondelete="RESTRICT"), nullable=False, index=True)
    description = Column(Text, nullable=True)
    quantity_on_hand = Column(Integer, default=0, nullable=False)
    low_stock_threshold = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint(quantity_on_hand >= 0, name="check_quantity_on_hand_non_negative"),
        CheckConstraint(low_stock_threshold >= 0, name="check_low_stock_threshold_non_negative"),
        UniqueConstraint("manufacturer_id", "client_id", "accessory_type_id", name="uq_inventory_mfr_client_type"),
    )

    accessory_type = relationship("AccessoryType", back_populates="inventory", lazy="joined")
    client = relationship("Client", lazy="joined")


# --------------------------
# Index Optimization
# --------------------------
Index("ix_inventory_mfr_client", AccessoryInventory.manufacturer_id, AccessoryInventory.client_id)
