import enum


class TransactionType(str, enum.Enum):
    purchase = "purchase"
    sale = "sale"
    transfer = "transfer"
    adjustment = "adjustment"
    return_ = "return"
    damage = "damage"
    write_off = "write-off"


class TransactionStatus(str, enum.Enum):
    pending = "pending"
    completed = "completed"
    cancelled = "cancelled"
    reversed = "reversed"


class ReferenceType(str, enum.Enum):
    order = "order"
    purchase_order = "purchase_order"
    purchase = "purchase"
    transfer = "transfer"
    adjustment = "adjustment"
    return_ = "return"
    serial_tracking = "serial_tracking"
    reversal = "reversal"
    other = "other"
