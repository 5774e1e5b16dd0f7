# app/schemas/masters/product_schemas.py

from pydantic import BaseModel, Field
from typing import Optional
from decimal import Decimal
from datetime import datetime

from app.models.enums.product_status import ProductStatus


class ProductCreate(BaseModel):
    sku: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=255)
    price: Decimal = Field(Decimal("0"), ge=0)
    status: ProductStatus = ProductStatus.active
    supplier_id: Optional[int] = None
    track_inventory: bool = True
    reorder_threshold: Optional[int] = Field(None, ge=0)
    reorder_quantity: Optional[int] = Field(None, ge=0)
    lead_time_days: Optional[int] = Field(None, ge=0)


class InventorySettingsUpdate(BaseModel):
    track_inventory: Optional[bool] = None
    reorder_threshold: Optional[int] = Field(None, ge=0)
    reorder_quantity: Optional[int] = Field(None, ge=0)
    lead_time_days: Optional[int] = Field(None, ge=0)
    supplier_id: Optional[int] = None
    status: Optional[ProductStatus] = None
    version: int


class ProductOut(BaseModel):
    id: int
    sku: str
    name: str
    price: Decimal
    status: ProductStatus
    supplier_id: Optional[int]
    stock: int
    track_inventory: bool
    reorder_threshold: Optional[int]
    reorder_quantity: Optional[int]
    lead_time_days: Optional[int]
    version: int
    created_at: datetime
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


class ProductListData(BaseModel):
    total: int
    items: list[ProductOut]
