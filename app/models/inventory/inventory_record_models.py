from decimal import Decimal

from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Enum,
    Numeric,
    DateTime,
    ForeignKey,
    CheckConstraint,
    UniqueConstraint,
    Index,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func, text

from app.core.db import Base
from app.models.base.mixins import TimestampMixin, AuditMixin
from app.models.enums.inventory_status import InventoryStatus, MovementType


class InventoryRecord(Base, TimestampMixin, AuditMixin):
    """Current stock balance of a product at a location, optionally scoped to a batch."""

    __tablename__ = "inventory_records"

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="RESTRICT"), nullable=False, index=True)
    location_id = Column(Integer, ForeignKey("inventory_locations.id", ondelete="RESTRICT"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False, default=0)
    batch_number = Column(String(100), nullable=True, index=True)
    expiration_date = Column(DateTime(timezone=True), nullable=True, index=True)
    received_date = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    last_updated = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    status = Column(Enum(InventoryStatus), nullable=False, default=InventoryStatus.active, index=True)
    cost_price = Column(Numeric(12, 2), nullable=True)
    supplier_id = Column(Integer, nullable=True)
    notes = Column(String(500), nullable=True)
    version = Column(Integer, nullable=False, default=1)

    product = relationship("Product", lazy="selectin")
    location = relationship("InventoryLocation", lazy="selectin")
    serials = relationship(
        "InventorySerial",
        back_populates="record",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="InventorySerial.id",
    )
    movements = relationship(
        "InventoryMovement",
        back_populates="record",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="InventoryMovement.id",
    )

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_inventory_record_quantity_non_negative"),
        CheckConstraint("cost_price IS NULL OR cost_price >= 0", name="ck_inventory_record_cost_non_negative"),
        UniqueConstraint("product_id", "location_id", "batch_number", name="uq_inventory_record_product_location_batch"),
        # NULL batch numbers never collide in the key above
        Index(
            "uq_inventory_record_product_location_unbatched",
            "product_id",
            "location_id",
            unique=True,
            postgresql_where=text("batch_number IS NULL"),
            sqlite_where=text("batch_number IS NULL"),
        ),
        Index("ix_inventory_record_product_status", "product_id", "status"),
        Index("ix_inventory_record_location_status", "location_id", "status"),
    )

    @property
    def serial_numbers(self) -> list[str]:
        return [s.serial_number for s in self.serials]

    @property
    def inventory_value(self) -> Decimal:
        return Decimal(self.quantity) * (self.cost_price or Decimal("0"))

    def __repr__(self):
        return (
            f"<InventoryRecord id={self.id} product_id={self.product_id} "
            f"location_id={self.location_id} batch={self.batch_number} qty={self.quantity}>"
        )


class InventorySerial(Base):
    """A serial number held by exactly one inventory record; unique platform-wide."""

    __tablename__ = "inventory_serials"

    id = Column(Integer, primary_key=True)
    record_id = Column(Integer, ForeignKey("inventory_records.id", ondelete="CASCADE"), nullable=False, index=True)
    serial_number = Column(String(100), nullable=False, unique=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    record = relationship("InventoryRecord", back_populates="serials")

    def __repr__(self):
        return f"<InventorySerial {self.serial_number} record_id={self.record_id}>"


class InventoryMovement(Base):
    """Append-only movement log entry of a single inventory record."""

    __tablename__ = "inventory_movements"

    id = Column(Integer, primary_key=True)
    record_id = Column(Integer, ForeignKey("inventory_records.id", ondelete="CASCADE"), nullable=False, index=True)
    movement_type = Column(Enum(MovementType), nullable=False)
    quantity = Column(Integer, nullable=False)  # signed delta as requested by the caller
    from_location_id = Column(Integer, ForeignKey("inventory_locations.id", ondelete="SET NULL"), nullable=True)
    to_location_id = Column(Integer, ForeignKey("inventory_locations.id", ondelete="SET NULL"), nullable=True)
    actor_id = Column(Integer, nullable=True, index=True)
    reference = Column(String(255), nullable=True)
    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    record = relationship("InventoryRecord", back_populates="movements")

    __table_args__ = (
        CheckConstraint("quantity <> 0", name="ck_inventory_movement_quantity_non_zero"),
    )

    def __repr__(self):
        return f"<InventoryMovement id={self.id} record_id={self.record_id} {self.movement_type} {self.quantity}>"
