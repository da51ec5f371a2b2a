from sqlalchemy import (
    Column, Integer, String, Float, ForeignKey, Date, DateTime, Text,
    CheckConstraint, Index, Boolean
)
from sqlalchemy.orm import relationship
from orderflow.core.db import Base
from orderflow.utils.time_utils import utcnow
import enum


# --------------------------
# Enums
# --------------------------
class RoutedTo(str, enum.Enum):
    admin = "admin"
    manufacturer = "manufacturer"
    client = "client"


class ProductStatus(str, enum.Enum):
    pending = "pending"
    sent_to_manufacturer = "sent_to_manufacturer"
    pending_admin = "pending_admin"
    sample_requested = "sample_requested"
    pending_client_approval = "pending_client_approval"
    revision_requested = "revision_requested"
    approved_for_production = "approved_for_production"
    client_approved = "client_approved"
    in_production = "in_production"
    completed = "completed"
    shipped = "shipped"


class ItemStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class SampleStatus(str, enum.Enum):
    no_sample = "no_sample"
    pending = "pending"
    sent_to_manufacturer = "sent_to_manufacturer"
    priced_by_manufacturer = "priced_by_manufacturer"
    sent_to_client = "sent_to_client"
    client_reviewed = "client_reviewed"
    approved = "approved"
    rejected = "rejected"


# --------------------------
# Catalog product
# --------------------------
class CatalogProduct(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False, index=True)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)


# --------------------------
# Order
# --------------------------
class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String, unique=True, nullable=False, index=True)
    order_name = Column(String, nullable=True)
    status = Column(String, default="draft", nullable=False, index=True)
    is_paid = Column(Boolean, default=False, nullable=False)

    client_id = Column(Integer, ForeignKey("clients.id", ondelete="RESTRICT"), nullable=False, index=True)
    manufacturer_id = Column(Integer, ForeignKey("manufacturers.id", ondelete="RESTRICT"), nullable=False, index=True)
    sub_manufacturer_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    # Order-level sample request
    sample_required = Column(Boolean, default=False, nullable=False)
    sample_fee = Column(Float, nullable=True)
    client_sample_fee = Column(Float, nullable=True)
    sample_eta = Column(String, nullable=True)
    sample_status = Column(String, default=SampleStatus.no_sample.value, nullable=False)
    sample_notes = Column(Text, nullable=True)
    sample_routed_to = Column(String, default=RoutedTo.admin.value, nullable=False)
    sample_workflow_status = Column(String, default=SampleStatus.no_sample.value, nullable=False)
    sample_routed_at = Column(DateTime(timezone=True), nullable=True)
    sample_routed_by = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    client = relationship("Client", lazy="joined")
    manufacturer = relationship("Manufacturer", lazy="joined")
    products = relationship(
        "OrderProduct", back_populates="order", cascade="all, delete-orphan",
        order_by="OrderProduct.id"
    )
    media = relationship("OrderMedia", back_populates="order", cascade="all, delete-orphan")


# --------------------------
# Order product
# --------------------------
class OrderProduct(Base):
    __tablename__ = "order_products"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="RESTRICT"), nullable=False, index=True)
    product_order_number = Column(String, nullable=False, index=True)
    description = Column(Text, nullable=True)

    product_status = Column(String, default=ProductStatus.pending.value, nullable=False, index=True)
    routed_to = Column(String, default=RoutedTo.admin.value, nullable=False, index=True)
    routed_at = Column(DateTime(timezone=True), nullable=True)
    routed_by = Column(Integer, nullable=True)
    is_locked = Column(Boolean, default=False, nullable=False)

    requires_sample = Column(Boolean, default=False, nullable=False)
    requires_client_approval = Column(Boolean, default=False, nullable=False)
    client_approved = Column(Boolean, default=False, nullable=False)
    client_approved_at = Column(DateTime(timezone=True), nullable=True)
    shipped_date = Column(DateTime(timezone=True), nullable=True)
    estimated_ship_date = Column(Date, nullable=True)

    # Manufacturer side pricing
    product_price = Column(Float, nullable=True)
    sample_fee = Column(Float, nullable=True)
    shipping_air_price = Column(Float, nullable=True)
    shipping_boat_price = Column(Float, nullable=True)
    production_time = Column(String, nullable=True)

    # Client side pricing (kept separately, never derived)
    client_product_price = Column(Float, nullable=True)
    client_sample_fee = Column(Float, nullable=True)

    admin_notes = Column(Text, nullable=True)
    manufacturer_notes = Column(Text, nullable=True)
    client_notes = Column(Text, nullable=True)
    internal_notes = Column(Text, nullable=True)

    invoiced = Column(Boolean, default=False, nullable=False)
    invoice_id = Column(Integer, nullable=True)

    deleted_at = Column(DateTime(timezone=True), nullable=True, index=True)
    deleted_by = Column(Integer, nullable=True)
    deleted_by_name = Column(String, nullable=True)
    deletion_reason = Column(Text, nullable=True)

    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint("product_price IS NULL OR product_price >= 0", name="check_product_price_non_negative"),
        CheckConstraint(
            "client_product_price IS NULL OR client_product_price >= 0",
            name="check_client_product_price_non_negative",
        ),
    )
    __mapper_args__ = {"version_id_col": version}

    order = relationship("Order", back_populates="products")
    product = relationship("CatalogProduct", lazy="joined")
    items = relationship(
        "OrderItem", back_populates="order_product", cascade="all, delete-orphan",
        order_by="OrderItem.id"
    )
    media = relationship("OrderMedia", back_populates="order_product")


# --------------------------
# Order item (variant line)
# --------------------------
class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_product_id = Column(Integer, ForeignKey("order_products.id", ondelete="CASCADE"), nullable=False, index=True)
    variant_combo = Column(String, nullable=False)
    quantity = Column(Integer, default=0, nullable=False)
    notes = Column(Text, nullable=True)
    admin_status = Column(String, default=ItemStatus.pending.value, nullable=False)
    manufacturer_status = Column(String, default=ItemStatus.pending.value, nullable=False)
    standard_price = Column(Float, nullable=True)
    bulk_price = Column(Float, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        CheckConstraint(quantity >= 0, name="check_order_item_quantity_non_negative"),
    )

    order_product = relationship("OrderProduct", back_populates="items")


# --------------------------
# Order media
# --------------------------
class OrderMedia(Base):
    __tablename__ = "order_media"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    order_product_id = Column(Integer, ForeignKey("order_products.id", ondelete="CASCADE"), nullable=True, index=True)
    file_url = Column(String, nullable=False)
    file_type = Column(String, nullable=True)
    original_filename = Column(String, nullable=True)
    uploaded_by = Column(Integer, nullable=True)
    is_sample = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    order = relationship("Order", back_populates="media")
    order_product = relationship("OrderProduct", back_populates="media")


# --------------------------
# Index Optimization
# --------------------------
Index("ix_order_product_order_routed", OrderProduct.order_id, OrderProduct.routed_to)
