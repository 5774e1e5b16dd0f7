from sqlalchemy import (
    Column,
    Integer,
    String,
    Enum,
    Numeric,
    JSON,
    ForeignKey,
    CheckConstraint,
    Index,
)
from app.core.db import Base
from app.models.base.mixins import TimestampMixin
from app.models.enums.inventory_transaction_status import (
    TransactionType,
    TransactionStatus,
    ReferenceType,
)


def _enum_values(enum_cls):
    return [e.value for e in enum_cls]


class InventoryTransaction(Base, TimestampMixin):
    """Immutable fact about one stock movement. The ledger of record for history."""

    __tablename__ = "inventory_transactions"

    id = Column(Integer, primary_key=True)
    transaction_type = Column(
        Enum(TransactionType, values_callable=_enum_values),
        nullable=False,
        index=True,
    )
    product_id = Column(Integer, ForeignKey("products.id", ondelete="RESTRICT"), nullable=False, index=True)
    record_id = Column(Integer, ForeignKey("inventory_records.id", ondelete="RESTRICT"), nullable=True, index=True)
    # location of the record this entry mutated; from/to encode direction
    location_id = Column(Integer, ForeignKey("inventory_locations.id", ondelete="RESTRICT"), nullable=False, index=True)
    from_location_id = Column(Integer, ForeignKey("inventory_locations.id", ondelete="RESTRICT"), nullable=True, index=True)
    to_location_id = Column(Integer, ForeignKey("inventory_locations.id", ondelete="RESTRICT"), nullable=True, index=True)

    quantity = Column(Integer, nullable=False)  # magnitude requested by the caller
    applied_quantity = Column(Integer, nullable=False)  # magnitude actually moved after clamping
    unit_price = Column(Numeric(12, 2), nullable=True)
    total_value = Column(Numeric(14, 2), nullable=False, default=0)

    batch_number = Column(String(100), nullable=True, index=True)
    serial_numbers = Column(JSON, nullable=False, default=list)

    reference_id = Column(String(255), nullable=True, index=True)
    reference_type = Column(Enum(ReferenceType, values_callable=_enum_values), nullable=True)
    related_transaction_id = Column(Integer, ForeignKey("inventory_transactions.id", ondelete="SET NULL"), nullable=True)

    actor_id = Column(Integer, nullable=False, index=True)
    supplier_id = Column(Integer, nullable=True)
    customer_id = Column(Integer, nullable=True)
    status = Column(Enum(TransactionStatus), nullable=False, default=TransactionStatus.completed, index=True)
    notes = Column(String(500), nullable=True)

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_inventory_transaction_quantity_non_negative"),
        CheckConstraint("applied_quantity >= 0 AND applied_quantity <= quantity", name="ck_inventory_transaction_applied_within_quantity"),
        CheckConstraint("unit_price IS NULL OR unit_price >= 0", name="ck_inventory_transaction_price_non_negative"),
        Index("ix_inventory_transaction_product_type", "product_id", "transaction_type"),
        Index("ix_inventory_transaction_from_to", "from_location_id", "to_location_id"),
        Index("ix_inventory_transaction_type_created", "transaction_type", "created_at"),
    )

    @property
    def is_inbound(self) -> bool:
        return self.to_location_id is not None and self.location_id == self.to_location_id

    def __repr__(self):
        return (
            f"<InventoryTransaction id={self.id} {self.transaction_type} product_id={self.product_id} "
            f"{self.from_location_id}->{self.to_location_id} qty={self.quantity} status={self.status}>"
        )
