# app/schemas/inventory/reorder_alert_schemas.py

from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime

from app.models.enums.reorder_alert_status import AlertStatus, AlertPriority


class AlertActionRequest(BaseModel):
    notes: Optional[str] = Field(None, max_length=200)


class ReorderAlertEventOut(BaseModel):
    status: AlertStatus
    actor_id: Optional[int]
    notes: Optional[str]
    timestamp: datetime

    class Config:
        from_attributes = True


class ReorderAlertOut(BaseModel):
    id: int
    product_id: int
    product_name: Optional[str]
    product_sku: Optional[str]
    location_id: Optional[int]
    location_name: Optional[str]

    threshold: int
    current_stock: int
    status: AlertStatus
    priority: AlertPriority

    triggered_at: Optional[datetime]
    acknowledged_at: Optional[datetime]
    acknowledged_by_id: Optional[int]
    resolved_at: Optional[datetime]
    resolved_by_id: Optional[int]
    cancelled_at: Optional[datetime]
    cancelled_by_id: Optional[int]

    notes: Optional[str]
    suggested_quantity: Optional[int]
    lead_time_days: Optional[int]
    supplier_id: Optional[int]

    days_since_triggered: Optional[int]
    is_overdue: bool
    events: List[ReorderAlertEventOut]

    created_at: datetime
    updated_at: Optional[datetime]


class ReorderAlertListData(BaseModel):
    total: int
    items: List[ReorderAlertOut]


class ScanResult(BaseModel):
    products_scanned: int
    locations_scanned: int
    alerts_created: List[ReorderAlertOut]
