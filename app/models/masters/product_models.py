from sqlalchemy import Column, Integer, String, Numeric, Boolean, Enum, CheckConstraint, Index
from app.core.db import Base
from app.models.base.mixins import TimestampMixin, AuditMixin
from app.models.enums.product_status import ProductStatus


class Product(Base, TimestampMixin, AuditMixin):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    sku = Column(String(50), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    price = Column(Numeric(12, 2), nullable=False, default=0)
    status = Column(Enum(ProductStatus), nullable=False, default=ProductStatus.active, index=True)
    supplier_id = Column(Integer, nullable=True, index=True)

    # Denormalized cache of SUM(inventory_records.quantity); never the source of truth.
    stock = Column(Integer, nullable=False, default=0)

    # Inventory settings; NULL means "use the configured default".
    track_inventory = Column(Boolean, nullable=False, default=True)
    reorder_threshold = Column(Integer, nullable=True)
    reorder_quantity = Column(Integer, nullable=True)
    lead_time_days = Column(Integer, nullable=True)

    version = Column(Integer, nullable=False, default=1)

    __table_args__ = (
        CheckConstraint("stock >= 0", name="ck_product_stock_non_negative"),
        CheckConstraint("reorder_threshold IS NULL OR reorder_threshold >= 0", name="ck_product_threshold_non_negative"),
        Index("ix_product_stock_status", "stock", "status"),
    )

    def __repr__(self):
        return f"<Product id={self.id} sku={self.sku} stock={self.stock}>"
