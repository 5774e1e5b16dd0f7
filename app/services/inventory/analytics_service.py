from collections import defaultdict
from datetime import timedelta
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, case, and_

from app.constants.inventory import (
    TIMEFRAME_SECONDS,
    DEFAULT_TIMEFRAME,
    AGING_BUCKETS,
    LOW_STOCK_LIMIT,
    CRITICAL_STOCK_LIMIT,
)
from app.models.inventory.inventory_record_models import InventoryRecord
from app.models.inventory.inventory_transaction_models import InventoryTransaction
from app.models.inventory.inventory_location_models import InventoryLocation
from app.models.inventory.reorder_alert_models import ReorderAlert
from app.models.masters.product_models import Product
from app.models.enums.inventory_status import InventoryStatus
from app.models.enums.inventory_transaction_status import TransactionType, TransactionStatus
from app.models.enums.reorder_alert_status import OPEN_ALERT_STATUSES
from app.schemas.inventory.analytics_schemas import (
    ProductTurnover,
    TurnoverReport,
    AgingRecord,
    AgingBucket,
    AgingReport,
    LocationValuation,
    ValuationReport,
    InventoryDashboard,
)
from app.utils.decimal_utils import to_decimal
from app.utils.time_utils import utcnow, as_utc
import logging

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60


def _sum_when(condition):
    return func.coalesce(func.sum(case((condition, InventoryTransaction.applied_quantity), else_=0)), 0)


# =====================================================
# TURNOVER
# =====================================================
async def turnover_analytics(db: AsyncSession, timeframe: str = DEFAULT_TIMEFRAME) -> TurnoverReport:
    if timeframe not in TIMEFRAME_SECONDS:
        timeframe = DEFAULT_TIMEFRAME

    window_seconds = TIMEFRAME_SECONDS[timeframe]
    window_days = window_seconds / SECONDS_PER_DAY
    since = utcnow() - timedelta(seconds=window_seconds)

    tx = InventoryTransaction
    movement_rows = (
        await db.execute(
            select(
                tx.product_id,
                _sum_when(tx.transaction_type == TransactionType.sale),
                _sum_when(tx.transaction_type == TransactionType.purchase),
                _sum_when(
                    and_(
                        tx.transaction_type == TransactionType.transfer,
                        tx.location_id == tx.from_location_id,
                    )
                ),
                _sum_when(tx.transaction_type == TransactionType.adjustment),
            )
            .where(
                tx.created_at >= since,
                tx.status == TransactionStatus.completed,
            )
            .group_by(tx.product_id)
        )
    ).all()

    if not movement_rows:
        return TurnoverReport(timeframe=timeframe, window_days=window_days, since=since, products=[])

    product_ids = [row[0] for row in movement_rows]

    stock = dict(
        (
            await db.execute(
                select(InventoryRecord.product_id, func.sum(InventoryRecord.quantity))
                .where(InventoryRecord.product_id.in_(product_ids))
                .group_by(InventoryRecord.product_id)
            )
        ).all()
    )
    names = dict(
        (await db.execute(select(Product.id, Product.name).where(Product.id.in_(product_ids)))).all()
    )

    products = []
    for product_id, sold, received, transferred_out, adjusted in movement_rows:
        current = int(stock.get(product_id) or 0)
        sold = int(sold)
        daily_sales = sold / window_days

        products.append(
            ProductTurnover(
                product_id=product_id,
                product_name=names.get(product_id),
                total_sold=sold,
                total_received=int(received),
                total_transferred_out=int(transferred_out),
                total_adjusted=int(adjusted),
                current_stock=current,
                turnover_rate=round(sold / current, 4) if current > 0 else 0.0,
                days_of_supply=round(current / daily_sales, 2) if sold > 0 else None,
            )
        )

    products.sort(key=lambda p: p.turnover_rate, reverse=True)
    return TurnoverReport(timeframe=timeframe, window_days=window_days, since=since, products=products)


# =====================================================
# AGING
# =====================================================
def _bucket_label(days: float) -> str:
    for label, lower, upper in AGING_BUCKETS:
        if days >= lower and (upper is None or days < upper):
            return label
    return AGING_BUCKETS[0][0]


async def aging_analytics(db: AsyncSession, top: int = 5) -> AgingReport:
    now = utcnow()

    rows = (
        await db.execute(
            select(InventoryRecord, Product.name)
            .join(Product, InventoryRecord.product_id == Product.id)
            .where(
                InventoryRecord.quantity > 0,
                InventoryRecord.status == InventoryStatus.active,
            )
            .order_by(InventoryRecord.received_date, InventoryRecord.id)
            .execution_options(populate_existing=True)
        )
    ).all()

    grouped: dict[str, list[tuple[float, AgingRecord]]] = defaultdict(list)
    for record, product_name in rows:
        days = (now - as_utc(record.received_date)).total_seconds() / SECONDS_PER_DAY
        grouped[_bucket_label(days)].append(
            (
                days,
                AgingRecord(
                    record_id=record.id,
                    product_id=record.product_id,
                    product_name=product_name,
                    location_id=record.location_id,
                    batch_number=record.batch_number,
                    quantity=record.quantity,
                    value=to_decimal(record.inventory_value),
                    days_in_stock=int(days),
                ),
            )
        )

    buckets = []
    for label, _, _ in AGING_BUCKETS:
        entries = grouped.get(label, [])
        items = [item for _, item in entries]
        buckets.append(
            AgingBucket(
                label=label,
                record_count=len(items),
                product_count=len({i.product_id for i in items}),
                total_quantity=sum(i.quantity for i in items),
                total_value=to_decimal(sum((i.value for i in items), Decimal("0"))),
                average_days=round(sum(d for d, _ in entries) / len(entries), 1) if entries else 0.0,
                top_products=sorted(items, key=lambda i: i.quantity, reverse=True)[:top],
            )
        )

    return AgingReport(generated_at=now, buckets=buckets)


# =====================================================
# VALUATION
# =====================================================
async def valuation(db: AsyncSession) -> ValuationReport:
    record_value = InventoryRecord.quantity * func.coalesce(InventoryRecord.cost_price, 0)

    rows = (
        await db.execute(
            select(
                InventoryLocation.id,
                InventoryLocation.code,
                InventoryLocation.name,
                func.coalesce(func.sum(InventoryRecord.quantity), 0),
                func.coalesce(func.sum(record_value), 0),
            )
            .join(InventoryRecord, InventoryRecord.location_id == InventoryLocation.id)
            .group_by(InventoryLocation.id, InventoryLocation.code, InventoryLocation.name)
            .order_by(InventoryLocation.id)
        )
    ).all()

    record_count, average_cost = (
        await db.execute(
            select(func.count(InventoryRecord.id), func.avg(InventoryRecord.cost_price))
        )
    ).one()

    by_location = [
        LocationValuation(
            location_id=location_id,
            location_code=code,
            location_name=name,
            total_quantity=int(quantity),
            total_value=to_decimal(value),
        )
        for location_id, code, name, quantity, value in rows
    ]

    return ValuationReport(
        total_value=to_decimal(sum((l.total_value for l in by_location), Decimal("0"))),
        total_quantity=sum(l.total_quantity for l in by_location),
        record_count=record_count or 0,
        average_cost=to_decimal(average_cost),
        by_location=by_location,
    )


# =====================================================
# DASHBOARD
# =====================================================
async def dashboard(db: AsyncSession) -> InventoryDashboard:
    report = await valuation(db)

    tracked = Product.track_inventory.is_(True)

    async def count_products(*conditions) -> int:
        return await db.scalar(select(func.count(Product.id)).where(tracked, *conditions)) or 0

    open_alerts = (
        await db.execute(
            select(ReorderAlert)
            .where(ReorderAlert.status.in_(OPEN_ALERT_STATUSES))
            .execution_options(populate_existing=True)
        )
    ).scalars().all()

    return InventoryDashboard(
        total_products=await count_products(),
        total_locations=await db.scalar(
            select(func.count(InventoryLocation.id)).where(InventoryLocation.is_active.is_(True))
        ) or 0,
        total_quantity=report.total_quantity,
        total_value=report.total_value,
        low_stock_products=await count_products(Product.stock > 0, Product.stock < LOW_STOCK_LIMIT),
        critical_stock_products=await count_products(Product.stock <= CRITICAL_STOCK_LIMIT),
        out_of_stock_products=await count_products(Product.stock == 0),
        open_alerts=len(open_alerts),
        overdue_alerts=sum(1 for a in open_alerts if a.is_overdue),
        generated_at=utcnow(),
    )
