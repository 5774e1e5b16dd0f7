# app/schemas/inventory/inventory_schemas.py

from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from decimal import Decimal
from datetime import datetime

from app.constants.inventory import StockPolicy
from app.models.enums.inventory_status import InventoryStatus, MovementType
from app.models.enums.inventory_transaction_status import (
    TransactionType,
    TransactionStatus,
    ReferenceType,
)


def _unique_serials(values: List[str]) -> List[str]:
    cleaned = [v.strip() for v in values]
    if any(not v for v in cleaned):
        raise ValueError("Serial numbers cannot be blank")
    if len(set(cleaned)) != len(cleaned):
        raise ValueError("Serial numbers must be unique")
    return cleaned


# -------------------------
# COMMANDS
# -------------------------
class InventoryUpdateRequest(BaseModel):
    product_id: int
    location_id: int
    quantity_change: int
    transaction_type: TransactionType = TransactionType.adjustment
    policy: StockPolicy = StockPolicy.CLAMP
    batch_number: Optional[str] = None
    serial_numbers: List[str] = []
    reference_id: Optional[str] = None
    reference_type: Optional[ReferenceType] = None
    notes: Optional[str] = Field(None, max_length=500)
    cost_price: Optional[Decimal] = Field(None, ge=0)
    supplier_id: Optional[int] = None
    customer_id: Optional[int] = None
    to_location_id: Optional[int] = None

    @field_validator("quantity_change")
    @classmethod
    def non_zero(cls, v):
        if v == 0:
            raise ValueError("quantity_change cannot be zero")
        return v

    @field_validator("serial_numbers")
    @classmethod
    def unique_serials(cls, v):
        return _unique_serials(v)


class StockTransferRequest(BaseModel):
    product_id: int
    from_location_id: int
    to_location_id: int
    quantity: int = Field(gt=0)
    batch_number: Optional[str] = None
    serial_numbers: List[str] = []
    reference_id: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=500)

    @field_validator("serial_numbers")
    @classmethod
    def unique_serials(cls, v):
        return _unique_serials(v)


class BatchData(BaseModel):
    batch_number: str = Field(..., min_length=1, max_length=100)
    quantity: int = Field(gt=0)
    expiration_date: Optional[datetime] = None
    cost_price: Optional[Decimal] = Field(None, ge=0)
    serial_numbers: List[str] = []
    supplier_id: Optional[int] = None
    notes: Optional[str] = Field(None, max_length=500)

    @field_validator("serial_numbers")
    @classmethod
    def unique_serials(cls, v):
        return _unique_serials(v)


class BatchCreateRequest(BaseModel):
    product_id: int
    location_id: int
    batch: BatchData


class SerialTrackRequest(BaseModel):
    product_id: int
    location_id: int
    serial_numbers: List[str] = Field(..., min_length=1)
    batch_number: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=500)

    @field_validator("serial_numbers")
    @classmethod
    def unique_serials(cls, v):
        return _unique_serials(v)


class TransactionReverseRequest(BaseModel):
    notes: Optional[str] = Field(None, max_length=500)


# -------------------------
# READ MODELS
# -------------------------
class InventoryMovementOut(BaseModel):
    id: int
    movement_type: MovementType
    quantity: int
    from_location_id: Optional[int]
    to_location_id: Optional[int]
    actor_id: Optional[int]
    reference: Optional[str]
    timestamp: datetime

    class Config:
        from_attributes = True


class InventoryRecordOut(BaseModel):
    id: int
    product_id: int
    location_id: int
    location_code: Optional[str]
    location_name: Optional[str]
    quantity: int
    batch_number: Optional[str]
    serial_numbers: List[str]
    expiration_date: Optional[datetime]
    received_date: datetime
    last_updated: datetime
    status: InventoryStatus
    cost_price: Optional[Decimal]
    inventory_value: Decimal
    supplier_id: Optional[int]
    notes: Optional[str]
    version: int


class InventoryTransactionOut(BaseModel):
    id: int
    transaction_type: TransactionType
    product_id: int
    record_id: Optional[int]
    location_id: int
    from_location_id: Optional[int]
    to_location_id: Optional[int]
    quantity: int
    applied_quantity: int
    unit_price: Optional[Decimal]
    total_value: Decimal
    batch_number: Optional[str]
    serial_numbers: List[str]
    reference_id: Optional[str]
    reference_type: Optional[ReferenceType]
    related_transaction_id: Optional[int]
    actor_id: int
    supplier_id: Optional[int]
    customer_id: Optional[int]
    status: TransactionStatus
    notes: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class QuantityUpdateResult(BaseModel):
    record: InventoryRecordOut
    transaction: InventoryTransactionOut
    old_quantity: int
    new_quantity: int


class StockTransferResult(BaseModel):
    transfer_reference: str
    product_id: int
    from_location_id: int
    to_location_id: int
    quantity: int
    actor_id: int
    timestamp: datetime
    source: QuantityUpdateResult
    destination: QuantityUpdateResult


class RecordTransactionResult(BaseModel):
    record: InventoryRecordOut
    transaction: InventoryTransactionOut


class SerialLookupOut(BaseModel):
    serial_number: str
    product_id: int
    location_id: int
    batch_number: Optional[str]
    status: InventoryStatus
    found_at: datetime


class ProductInventoryOut(BaseModel):
    product_id: int
    total_quantity: int
    available_quantity: int
    by_location: List[InventoryRecordOut]
    last_updated: datetime


class LocationInventoryOut(BaseModel):
    location_id: int
    total_quantity: int
    total_value: Decimal
    by_product: List[InventoryRecordOut]
    last_updated: datetime


class MovementHistoryEntry(BaseModel):
    product_id: int
    record_id: int
    location_id: int
    location_code: Optional[str]
    location_name: Optional[str]
    batch_number: Optional[str]
    movement_type: MovementType
    quantity: int
    from_location_id: Optional[int]
    to_location_id: Optional[int]
    actor_id: Optional[int]
    reference: Optional[str]
    timestamp: datetime


class TransactionListData(BaseModel):
    total: int
    items: List[InventoryTransactionOut]
