# orderflow/schemas/catalog_schemas.py
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class CatalogProductCreate(BaseModel):
    title: str = Field(min_length=1)
    description: Optional[str] = None


class CatalogProductOut(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ClientOut(BaseModel):
    id: int
    name: str
    email: Optional[str] = None
    user_id: Optional[int] = None
    custom_sample_margin_percentage: Optional[float] = None

    class Config:
        from_attributes = True


class ClientMarginUpdate(BaseModel):
    custom_sample_margin_percentage: Optional[float] = Field(default=None, ge=0)


class ManufacturerOut(BaseModel):
    id: int
    name: str
    email: Optional[str] = None
    user_id: Optional[int] = None

    class Config:
        from_attributes = True


class MediaCreate(BaseModel):
    file_url: str
    file_type: Optional[str] = None
    original_filename: Optional[str] = None
    order_product_id: Optional[int] = None
    is_sample: bool = False
