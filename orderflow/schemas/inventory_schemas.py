from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from datetime import datetime


# --------------------------
# Accessory Type Schemas
# --------------------------
class AccessoryTypeCreate(BaseModel):
    name: str
    description: Optional[str] = None
    manufacturer_id: Optional[int] = None

    @field_validator('name')
    def name_not_blank(cls, value):
        if not value or not value.strip():
            raise ValueError('Name is required')
        return value.strip()


class AccessoryTypeUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None


class AccessoryTypeOut(BaseModel):
    id: int
    manufacturer_id: int
    name: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# --------------------------
# Inventory Schemas
# --------------------------
class InventoryCreate(BaseModel):
    client_id: int
    accessory_type_id: int
    manufacturer_id: Optional[int] = None
    description: Optional[str] = None
    quantity_on_hand: int = Field(default=0, ge=0)
    low_stock_threshold: int = Field(default=0, ge=0)


class InventoryUpdate(BaseModel):
    """All fields optional for partial updates."""
    description: Optional[str] = None
    quantity_on_hand: Optional[int] = Field(default=None, ge=0)
    low_stock_threshold: Optional[int] = Field(default=None, ge=0)


class InventoryAdjust(BaseModel):
    delta: int
    reason: Optional[str] = None


class InventoryOut(BaseModel):
    id: int
    manufacturer_id: int
    client_id: int
    client_name: Optional[str] = None
    accessory_type_id: int
    accessory_type_name: Optional[str] = None
    description: Optional[str] = None
    quantity_on_hand: int
    low_stock_threshold: int
    stock_state: str
    updated_at: Optional[datetime] = None


# --------------------------
# Stock Alert Schema
# --------------------------
class StockAlert(BaseModel):
    inventory_id: int
    manufacturer_id: int
    client_id: int
    client_name: Optional[str] = None
    accessory_type_name: str
    quantity_on_hand: int
    low_stock_threshold: int
    stock_state: str


class StockAlertResponse(BaseModel):
    message: str
    data: List[StockAlert]
