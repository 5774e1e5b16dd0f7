# app/constants/inventory.py

from enum import Enum

from app.models.enums.inventory_status import MovementType
from app.models.enums.inventory_transaction_status import TransactionType


class StockPolicy(str, Enum):
    """What a decrement does when it would take a record below zero."""

    CLAMP = "clamp"    # floor the balance at zero (legacy behaviour)
    REJECT = "reject"  # raise InsufficientStockError, nothing is written


MOVEMENT_TYPE_BY_TRANSACTION = {
    TransactionType.purchase: MovementType.received,
    TransactionType.sale: MovementType.sold,
    TransactionType.transfer: MovementType.transferred,
    TransactionType.adjustment: MovementType.adjusted,
    TransactionType.return_: MovementType.returned,
    TransactionType.damage: MovementType.damaged,
    TransactionType.write_off: MovementType.adjusted,
}

BATCH_REFERENCE_PREFIX = "BATCH-"
SERIAL_REFERENCE_PREFIX = "SERIAL-"
TRANSFER_REFERENCE_PREFIX = "TRF-"

# Turnover lookback windows, in seconds
TIMEFRAME_SECONDS = {
    "1h": 60 * 60,
    "24h": 24 * 60 * 60,
    "7d": 7 * 24 * 60 * 60,
    "30d": 30 * 24 * 60 * 60,
    "90d": 90 * 24 * 60 * 60,
    "1y": 365 * 24 * 60 * 60,
}
DEFAULT_TIMEFRAME = "30d"

# (label, lower bound inclusive, upper bound exclusive) in days
AGING_BUCKETS = (
    ("0-30 days", 0, 30),
    ("31-90 days", 30, 90),
    ("91-180 days", 90, 180),
    ("181-365 days", 180, 365),
    ("365+ days", 365, None),
)

# Dashboard stock bands over tracked products
LOW_STOCK_LIMIT = 10
CRITICAL_STOCK_LIMIT = 5
