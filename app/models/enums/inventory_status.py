import enum


class InventoryStatus(str, enum.Enum):
    active = "active"
    quarantined = "quarantined"
    expired = "expired"
    damaged = "damaged"
    reserved = "reserved"


class MovementType(str, enum.Enum):
    received = "received"
    transferred = "transferred"
    sold = "sold"
    adjusted = "adjusted"
    returned = "returned"
    damaged = "damaged"
