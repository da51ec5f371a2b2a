from pydantic import BaseModel, Field, field_validator
from typing import Dict, List, Optional
from datetime import date, datetime

from orderflow.models.order_models import ItemStatus, RoutedTo, SampleStatus


# --------------------------
# Order Item Schemas
# --------------------------
class OrderItemCreate(BaseModel):
    variant_combo: str
    quantity: int = 0
    notes: Optional[str] = None
    standard_price: Optional[float] = None
    bulk_price: Optional[float] = None

    @field_validator('quantity')
    def non_negative_quantity(cls, value):
        if value < 0:
            raise ValueError('Quantity must be non-negative')
        return value


class OrderItemOut(BaseModel):
    id: int
    variant_combo: str
    quantity: int
    notes: Optional[str] = None
    admin_status: str
    manufacturer_status: str
    standard_price: Optional[float] = None
    bulk_price: Optional[float] = None

    class Config:
        from_attributes = True


class ItemStatusUpdate(BaseModel):
    status: ItemStatus


# --------------------------
# Order Product Schemas
# --------------------------
class OrderProductCreate(BaseModel):
    product_id: int
    description: Optional[str] = None
    requires_sample: bool = False
    items: List[OrderItemCreate] = []


class OrderProductOut(BaseModel):
    id: int
    order_id: int
    product_id: int
    product_order_number: str
    description: Optional[str] = None
    product_status: str
    routed_to: str
    routed_at: Optional[datetime] = None
    is_locked: bool
    requires_sample: bool
    requires_client_approval: bool
    client_approved: bool
    shipped_date: Optional[datetime] = None
    estimated_ship_date: Optional[date] = None

    product_price: Optional[float] = None
    sample_fee: Optional[float] = None
    shipping_air_price: Optional[float] = None
    shipping_boat_price: Optional[float] = None
    production_time: Optional[str] = None
    client_product_price: Optional[float] = None
    client_sample_fee: Optional[float] = None

    admin_notes: Optional[str] = None
    manufacturer_notes: Optional[str] = None
    client_notes: Optional[str] = None
    internal_notes: Optional[str] = None

    invoiced: bool
    version: int
    items: List[OrderItemOut] = []

    deleted_at: Optional[datetime] = None
    deleted_by_name: Optional[str] = None
    deletion_reason: Optional[str] = None

    class Config:
        from_attributes = True


class ProductFieldsUpdate(BaseModel):
    """Editable product fields; which ones a caller may set depends on the role."""
    product_price: Optional[float] = Field(default=None, ge=0)
    sample_fee: Optional[float] = Field(default=None, ge=0)
    shipping_air_price: Optional[float] = Field(default=None, ge=0)
    shipping_boat_price: Optional[float] = Field(default=None, ge=0)
    production_time: Optional[str] = None
    client_product_price: Optional[float] = Field(default=None, ge=0)
    client_sample_fee: Optional[float] = Field(default=None, ge=0)
    admin_notes: Optional[str] = None
    manufacturer_notes: Optional[str] = None
    client_notes: Optional[str] = None
    internal_notes: Optional[str] = None
    description: Optional[str] = None


class ProductUpdate(ProductFieldsUpdate):
    expected_version: Optional[int] = None


class NoteCreate(BaseModel):
    text: str
    audience: Optional[str] = None  # admin | manufacturer | client | internal

    @field_validator('text')
    def not_blank(cls, value):
        if not value or not value.strip():
            raise ValueError('Note text is required')
        return value.strip()


class ProductDelete(BaseModel):
    reason: str = ""


class ShipDatesUpdate(BaseModel):
    """Days from today until each product ships; ``None`` clears the date."""
    days: Dict[int, Optional[int]]

    @field_validator('days')
    def valid_days(cls, value):
        if not value:
            raise ValueError('At least one product is required')
        if any(d is not None and d <= 0 for d in value.values()):
            raise ValueError('Days must be positive')
        return value


# --------------------------
# Routing Schemas
# --------------------------
class RouteRequest(BaseModel):
    action: str
    notes: Optional[str] = None
    expected_version: Optional[int] = None


class LockRequest(BaseModel):
    locked: bool


class EditableRequest(BaseModel):
    editable: bool


class SampleUpdate(BaseModel):
    fee: Optional[float] = Field(default=None, ge=0)
    eta: Optional[str] = None
    status: Optional[SampleStatus] = None
    notes: Optional[str] = None


class SampleRoute(BaseModel):
    destination: RoutedTo
    notes: Optional[str] = None


class BulkRouteRequest(BaseModel):
    action: str
    notes: Optional[str] = None
    updates: Dict[int, ProductFieldsUpdate] = {}
    product_ids: Optional[List[int]] = None
    all_or_nothing: bool = False
    sample: Optional[SampleUpdate] = None


class BulkRouteItem(BaseModel):
    product_id: int
    ok: bool
    status: Optional[str] = None
    routed_to: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    retryable: bool = False


class BulkRouteOut(BaseModel):
    action: str
    committed: bool
    succeeded: int
    failed: int
    results: List[BulkRouteItem]


# --------------------------
# Order Schemas
# --------------------------
class OrderCreate(BaseModel):
    client_id: int
    manufacturer_id: int
    order_name: Optional[str] = None
    sub_manufacturer_id: Optional[int] = None
    sample_required: bool = False
    products: List[OrderProductCreate] = []


class OrderSummaryOut(BaseModel):
    id: int
    order_number: str
    order_name: Optional[str] = None
    status: str
    is_paid: bool
    client_id: int
    manufacturer_id: int
    sub_manufacturer_id: Optional[int] = None
    created_by: Optional[int] = None
    sample_status: str
    sample_routed_to: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class OrderMediaOut(BaseModel):
    id: int
    order_product_id: Optional[int] = None
    file_url: str
    file_type: Optional[str] = None
    original_filename: Optional[str] = None
    is_sample: bool

    class Config:
        from_attributes = True


class OrderOut(OrderSummaryOut):
    sample_required: bool
    sample_fee: Optional[float] = None
    client_sample_fee: Optional[float] = None
    sample_eta: Optional[str] = None
    sample_notes: Optional[str] = None
    sample_workflow_status: str
    sample_routed_at: Optional[datetime] = None
    products: List[OrderProductOut] = []
    media: List[OrderMediaOut] = []


class SampleOut(BaseModel):
    id: int
    order_number: str
    sample_required: bool
    sample_fee: Optional[float] = None
    client_sample_fee: Optional[float] = None
    sample_eta: Optional[str] = None
    sample_status: str
    sample_notes: Optional[str] = None
    sample_routed_to: str
    sample_workflow_status: str
    sample_routed_at: Optional[datetime] = None

    class Config:
        from_attributes = True
