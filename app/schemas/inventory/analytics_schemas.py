# app/schemas/inventory/analytics_schemas.py

from pydantic import BaseModel
from typing import Optional, List
from decimal import Decimal
from datetime import datetime


class ProductTurnover(BaseModel):
    product_id: int
    product_name: Optional[str]
    total_sold: int
    total_received: int
    total_transferred_out: int
    total_adjusted: int
    current_stock: int
    turnover_rate: float
    days_of_supply: Optional[float]


class TurnoverReport(BaseModel):
    timeframe: str
    window_days: float
    since: datetime
    products: List[ProductTurnover]


class AgingRecord(BaseModel):
    record_id: int
    product_id: int
    product_name: Optional[str]
    location_id: int
    batch_number: Optional[str]
    quantity: int
    value: Decimal
    days_in_stock: int


class AgingBucket(BaseModel):
    label: str
    record_count: int
    product_count: int
    total_quantity: int
    total_value: Decimal
    average_days: float
    top_products: List[AgingRecord]


class AgingReport(BaseModel):
    generated_at: datetime
    buckets: List[AgingBucket]


class LocationValuation(BaseModel):
    location_id: int
    location_code: Optional[str]
    location_name: Optional[str]
    total_quantity: int
    total_value: Decimal


class ValuationReport(BaseModel):
    total_value: Decimal
    total_quantity: int
    record_count: int
    average_cost: Decimal
    by_location: List[LocationValuation]


class InventoryDashboard(BaseModel):
    total_products: int
    total_locations: int
    total_quantity: int
    total_value: Decimal
    low_stock_products: int
    critical_stock_products: int
    out_of_stock_products: int
    open_alerts: int
    overdue_alerts: int
    generated_at: datetime
