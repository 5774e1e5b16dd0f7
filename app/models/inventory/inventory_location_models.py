from sqlalchemy import Column, Integer, String, Boolean, Enum, Float, Text, CheckConstraint, Index
from app.core.db import Base
from app.models.base.mixins import TimestampMixin, AuditMixin
from app.models.enums.location_type import LocationType


class InventoryLocation(Base, TimestampMixin, AuditMixin):
    __tablename__ = "inventory_locations"

    id = Column(Integer, primary_key=True)
    code = Column(String(20), nullable=False, unique=True, index=True)  # business identifier (WH1, store-3, ...)
    name = Column(String(100), nullable=False, index=True)
    type = Column(Enum(LocationType), nullable=False, default=LocationType.warehouse, index=True)

    capacity = Column(Integer, nullable=True)
    current_usage = Column(Integer, nullable=False, default=0)  # derived: SUM(inventory_records.quantity)

    street = Column(String(255), nullable=True)
    city = Column(String(100), nullable=True, index=True)
    state = Column(String(100), nullable=True)
    postal_code = Column(String(20), nullable=True)
    country = Column(String(100), nullable=True, index=True)

    manager_id = Column(Integer, nullable=True)
    contact_name = Column(String(100), nullable=True)
    contact_email = Column(String(255), nullable=True)
    contact_phone = Column(String(50), nullable=True)

    opening_time = Column(String(10), nullable=True)
    closing_time = Column(String(10), nullable=True)
    timezone = Column(String(50), nullable=True)

    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    notes = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    version = Column(Integer, nullable=False, default=1)

    __table_args__ = (
        CheckConstraint("capacity IS NULL OR capacity >= 0", name="ck_location_capacity_non_negative"),
        CheckConstraint("current_usage >= 0", name="ck_location_usage_non_negative"),
        Index("ix_inventory_location_active", "is_active"),
    )

    @property
    def usage_percentage(self) -> int:
        if not self.capacity or self.capacity <= 0:
            return 0
        return round((self.current_usage or 0) / self.capacity * 100)

    @property
    def available_capacity(self) -> int:
        if not self.capacity or self.capacity <= 0:
            return 0
        return self.capacity - (self.current_usage or 0)

    def __repr__(self):
        return f"<InventoryLocation id={self.id} code={self.code} usage={self.current_usage}/{self.capacity}>"
