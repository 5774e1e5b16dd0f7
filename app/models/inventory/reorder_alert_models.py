from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    Integer,
    String,
    Enum,
    DateTime,
    ForeignKey,
    CheckConstraint,
    Index,
    text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.core.db import Base
from app.models.base.mixins import TimestampMixin
from app.utils.time_utils import as_utc
from app.models.enums.reorder_alert_status import (
    AlertStatus,
    AlertPriority,
    OPEN_ALERT_STATUSES,
)

OVERDUE_FALLBACK_DAYS = 3


class ReorderAlert(Base, TimestampMixin):
    __tablename__ = "reorder_alerts"

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="RESTRICT"), nullable=False, index=True)
    # NULL location = platform-wide alert
    location_id = Column(Integer, ForeignKey("inventory_locations.id", ondelete="RESTRICT"), nullable=True, index=True)

    threshold = Column(Integer, nullable=False)
    current_stock = Column(Integer, nullable=False)
    status = Column(Enum(AlertStatus), nullable=False, default=AlertStatus.pending, index=True)
    priority = Column(Enum(AlertPriority), nullable=False, default=AlertPriority.medium, index=True)

    triggered_at = Column(DateTime(timezone=True), nullable=True, index=True)
    acknowledged_at = Column(DateTime(timezone=True), nullable=True)
    acknowledged_by_id = Column(Integer, nullable=True)
    resolved_at = Column(DateTime(timezone=True), nullable=True)
    resolved_by_id = Column(Integer, nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_by_id = Column(Integer, nullable=True)

    notes = Column(String(500), nullable=True)
    suggested_quantity = Column(Integer, nullable=True)
    lead_time_days = Column(Integer, nullable=True)
    supplier_id = Column(Integer, nullable=True)

    product = relationship("Product", lazy="selectin")
    location = relationship("InventoryLocation", lazy="selectin")
    events = relationship(
        "ReorderAlertEvent",
        back_populates="alert",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="ReorderAlertEvent.id",
    )

    __table_args__ = (
        CheckConstraint("threshold >= 0", name="ck_reorder_alert_threshold_non_negative"),
        CheckConstraint("current_stock >= 0", name="ck_reorder_alert_stock_non_negative"),
        Index("ix_reorder_alert_scope_status", "product_id", "location_id", "status"),
        # one open alert per (product, location); NULL location folded to 0
        Index(
            "uq_reorder_alert_open_scope",
            "product_id",
            func.coalesce(location_id, 0),
            unique=True,
            postgresql_where=text("status IN ('pending', 'triggered')"),
            sqlite_where=text("status IN ('pending', 'triggered')"),
        ),
    )

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_ALERT_STATUSES

    @property
    def days_since_triggered(self) -> int | None:
        if not self.triggered_at:
            return None
        delta = datetime.now(timezone.utc) - as_utc(self.triggered_at)
        return delta.days

    @property
    def is_overdue(self) -> bool:
        if not self.triggered_at or not self.is_open:
            return False
        return self.days_since_triggered > (self.lead_time_days or OVERDUE_FALLBACK_DAYS)

    def __repr__(self):
        return (
            f"<ReorderAlert id={self.id} product_id={self.product_id} location_id={self.location_id} "
            f"status={self.status} priority={self.priority}>"
        )


class ReorderAlertEvent(Base):
    """Append-only status history of a reorder alert."""

    __tablename__ = "reorder_alert_events"

    id = Column(Integer, primary_key=True)
    alert_id = Column(Integer, ForeignKey("reorder_alerts.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(Enum(AlertStatus), nullable=False)
    actor_id = Column(Integer, nullable=True)
    notes = Column(String(200), nullable=True)
    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    alert = relationship("ReorderAlert", back_populates="events")

    def __repr__(self):
        return f"<ReorderAlertEvent alert_id={self.alert_id} status={self.status}>"
