from decimal import Decimal
from typing import NamedTuple, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete, insert, func
from sqlalchemy.exc import IntegrityError

from app.core.config import INVENTORY_UPDATE_MAX_RETRIES
from app.core.exceptions import (
    NotFoundError,
    ValidationError,
    InsufficientStockError,
    DuplicateSerialError,
    ConcurrencyConflictError,
)
from app.constants.error_codes import ErrorCode
from app.constants.inventory import StockPolicy, MOVEMENT_TYPE_BY_TRANSACTION
from app.models.inventory.inventory_record_models import (
    InventoryRecord,
    InventorySerial,
    InventoryMovement,
)
from app.models.inventory.inventory_transaction_models import InventoryTransaction
from app.models.inventory.inventory_location_models import InventoryLocation
from app.models.masters.product_models import Product
from app.models.enums.inventory_status import InventoryStatus
from app.models.enums.inventory_transaction_status import (
    TransactionType,
    TransactionStatus,
    ReferenceType,
)
from app.schemas.auth.actor_schemas import Actor
from app.utils.decimal_utils import line_value
from app.utils.time_utils import utcnow
import logging

logger = logging.getLogger(__name__)


class AppliedChange(NamedTuple):
    record_id: int
    transaction: InventoryTransaction
    old_quantity: int
    new_quantity: int


# =====================================================
# LOOKUPS
# =====================================================
async def get_product_or_404(db: AsyncSession, product_id: int) -> Product:
    product = await db.get(Product, product_id, populate_existing=True)
    if not product:
        raise NotFoundError("Product not found", ErrorCode.PRODUCT_NOT_FOUND, {"product_id": product_id})
    return product


async def get_location_or_404(db: AsyncSession, location_id: int) -> InventoryLocation:
    location = await db.get(InventoryLocation, location_id, populate_existing=True)
    if not location:
        raise NotFoundError("Location not found", ErrorCode.LOCATION_NOT_FOUND, {"location_id": location_id})
    return location


async def load_record(db: AsyncSession, record_id: int) -> InventoryRecord:
    """Fresh read of a record, overwriting whatever the session holds."""
    result = await db.execute(
        select(InventoryRecord)
        .where(InventoryRecord.id == record_id)
        .execution_options(populate_existing=True)
    )
    record = result.scalar_one_or_none()
    if not record:
        raise NotFoundError(
            "Inventory record not found",
            ErrorCode.INVENTORY_RECORD_NOT_FOUND,
            {"record_id": record_id},
        )
    return record


async def find_record(
    db: AsyncSession,
    product_id: int,
    location_id: int,
    batch_number: Optional[str] = None,
) -> Optional[InventoryRecord]:
    """
    Resolve the record a (product, location[, batch]) command targets.

    With a batch number the match is exact. Without one the unbatched
    record wins; otherwise the oldest record still holding stock, then the
    oldest record of any quantity.
    """
    query = (
        select(InventoryRecord)
        .where(
            InventoryRecord.product_id == product_id,
            InventoryRecord.location_id == location_id,
        )
        .execution_options(populate_existing=True)
    )

    if batch_number is not None:
        result = await db.execute(query.where(InventoryRecord.batch_number == batch_number))
        return result.scalar_one_or_none()

    result = await db.execute(
        query.order_by(
            InventoryRecord.batch_number.isnot(None),
            (InventoryRecord.quantity > 0).desc(),
            InventoryRecord.received_date,
            InventoryRecord.id,
        ).limit(1)
    )
    return result.scalars().first()


async def require_record(
    db: AsyncSession,
    product_id: int,
    location_id: int,
    batch_number: Optional[str] = None,
) -> InventoryRecord:
    record = await find_record(db, product_id, location_id, batch_number)
    if not record:
        raise NotFoundError(
            "No inventory record for this product at this location",
            ErrorCode.INVENTORY_RECORD_NOT_FOUND,
            {"product_id": product_id, "location_id": location_id, "batch_number": batch_number},
        )
    return record


async def ensure_record(
    db: AsyncSession,
    *,
    product_id: int,
    location_id: int,
    actor: Actor,
    batch_number: Optional[str] = None,
    **attrs,
) -> InventoryRecord:
    """Find the (product, location, batch) record or create it empty."""
    record = await find_record(db, product_id, location_id, batch_number)
    if record and (batch_number is not None or record.batch_number is None):
        return record

    now = utcnow()
    record = InventoryRecord(
        product_id=product_id,
        location_id=location_id,
        batch_number=batch_number,
        quantity=0,
        status=InventoryStatus.active,
        received_date=now,
        last_updated=now,
        version=1,
        created_by_id=actor.id,
        updated_by_id=actor.id,
        **attrs,
    )

    db.add(record)
    try:
        await db.flush()
    except IntegrityError:
        raise ConcurrencyConflictError(
            "Inventory record was created concurrently",
            details={"product_id": product_id, "location_id": location_id, "batch_number": batch_number},
        )

    logger.info(
        "Inventory record created",
        extra={"record_id": record.id, "product_id": product_id, "location_id": location_id},
    )
    return record


async def ensure_serials_available(db: AsyncSession, serial_numbers: Sequence[str]) -> None:
    if not serial_numbers:
        return

    taken = (
        await db.execute(
            select(InventorySerial.serial_number).where(
                InventorySerial.serial_number.in_(list(serial_numbers))
            )
        )
    ).scalars().all()

    if taken:
        raise DuplicateSerialError(
            "Serial numbers already tracked",
            {"serial_numbers": sorted(taken)},
        )


# =====================================================
# DENORMALIZED FIELDS
# =====================================================
async def recompute_product_stock(db: AsyncSession, product_id: int) -> None:
    total = (
        select(func.coalesce(func.sum(InventoryRecord.quantity), 0))
        .where(InventoryRecord.product_id == product_id)
        .scalar_subquery()
    )
    await db.execute(
        update(Product)
        .where(Product.id == product_id)
        .values(stock=total)
        .execution_options(synchronize_session=False)
    )


async def recompute_location_usage(db: AsyncSession, location_id: int) -> None:
    total = (
        select(func.coalesce(func.sum(InventoryRecord.quantity), 0))
        .where(InventoryRecord.location_id == location_id)
        .scalar_subquery()
    )
    await db.execute(
        update(InventoryLocation)
        .where(InventoryLocation.id == location_id)
        .values(current_usage=total)
        .execution_options(synchronize_session=False)
    )


# =====================================================
# CORE WRITE PATH (NO COMMIT HERE)
# =====================================================
def _check_serials(record: InventoryRecord, quantity_change: int, serial_numbers: Sequence[str]) -> None:
    tracked = set(record.serial_numbers)

    if not tracked and not serial_numbers:
        return

    if tracked and not serial_numbers:
        raise ValidationError(
            "Serial-tracked inventory requires the serial numbers being moved",
            details={"record_id": record.id},
        )

    if len(serial_numbers) != abs(quantity_change):
        raise ValidationError(
            "Number of serial numbers must match the quantity change",
            details={"quantity_change": quantity_change, "serial_count": len(serial_numbers)},
        )

    if quantity_change < 0:
        missing = sorted(set(serial_numbers) - tracked)
        if missing:
            raise NotFoundError(
                "Serial numbers not held by this inventory record",
                ErrorCode.INVENTORY_SERIAL_NOT_FOUND,
                {"record_id": record.id, "serial_numbers": missing},
            )
    elif record.quantity != len(tracked):
        raise ValidationError(
            "Inventory record holds units without serial numbers",
            details={"record_id": record.id, "quantity": record.quantity, "serial_count": len(tracked)},
        )


async def apply_quantity_change(
    db: AsyncSession,
    *,
    record_id: int,
    quantity_change: int,
    transaction_type: TransactionType,
    actor: Actor,
    policy: StockPolicy = StockPolicy.CLAMP,
    serial_numbers: Sequence[str] = (),
    reference_id: Optional[str] = None,
    reference_type: Optional[ReferenceType] = None,
    notes: Optional[str] = None,
    cost_price: Optional[Decimal] = None,
    supplier_id: Optional[int] = None,
    customer_id: Optional[int] = None,
    from_location_id: Optional[int] = None,
    to_location_id: Optional[int] = None,
    related_transaction_id: Optional[int] = None,
    quantity_from_serials: bool = False,
) -> AppliedChange:
    """
    Apply a signed quantity delta to one inventory record.

    Writes the record with an optimistic version check, appends a movement
    entry and a transaction entry, and recomputes the product's stock and
    the location's usage. Runs inside the caller's transaction; the caller
    commits or rolls back.

    With ``quantity_from_serials`` the given serial numbers are added to the
    record and its quantity becomes the size of the resulting serial set;
    the delta is whatever that takes from the current quantity.
    """
    if quantity_change == 0 and not quantity_from_serials:
        raise ValidationError("Quantity change cannot be zero")

    serial_numbers = list(serial_numbers)
    if quantity_from_serials and not serial_numbers:
        raise ValidationError("At least one serial number is required")

    for attempt in range(1, INVENTORY_UPDATE_MAX_RETRIES + 1):
        # ------------------------------------
        # 1. Fresh read
        # ------------------------------------
        record = await load_record(db, record_id)
        old_quantity = record.quantity
        seen_version = record.version

        if quantity_from_serials:
            quantity_change = len(record.serial_numbers) + len(serial_numbers) - old_quantity
        else:
            _check_serials(record, quantity_change, serial_numbers)

        # ------------------------------------
        # 2. Stock policy
        # ------------------------------------
        new_quantity = old_quantity + quantity_change
        if new_quantity < 0:
            if policy == StockPolicy.REJECT:
                raise InsufficientStockError(
                    "Insufficient stock",
                    details={
                        "record_id": record.id,
                        "available": old_quantity,
                        "requested": abs(quantity_change),
                    },
                )
            new_quantity = 0

        now = utcnow()

        # ------------------------------------
        # 3. Conditional write
        # ------------------------------------
        values = dict(
            quantity=new_quantity,
            version=InventoryRecord.version + 1,
            last_updated=now,
            updated_by_id=actor.id,
        )
        if cost_price is not None and quantity_change > 0:
            values["cost_price"] = cost_price

        result = await db.execute(
            update(InventoryRecord)
            .where(
                InventoryRecord.id == record_id,
                InventoryRecord.version == seen_version,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )

        if result.rowcount == 1:
            break

        logger.info(
            "Inventory record version conflict, retrying",
            extra={"record_id": record_id, "attempt": attempt, "seen_version": seen_version},
        )
    else:
        raise ConcurrencyConflictError(
            "Inventory record was modified concurrently",
            details={"record_id": record_id, "attempts": INVENTORY_UPDATE_MAX_RETRIES},
        )

    # ------------------------------------
    # 4. Serial set
    # ------------------------------------
    if serial_numbers and quantity_change < 0 and not quantity_from_serials:
        await db.execute(
            delete(InventorySerial)
            .where(
                InventorySerial.record_id == record_id,
                InventorySerial.serial_number.in_(serial_numbers),
            )
            .execution_options(synchronize_session=False)
        )
    elif serial_numbers:
        await ensure_serials_available(db, serial_numbers)
        await db.execute(
            insert(InventorySerial),
            [
                {"record_id": record_id, "serial_number": s, "created_at": now}
                for s in serial_numbers
            ],
        )

    # ------------------------------------
    # 5. Movement log + transaction log
    # ------------------------------------
    if quantity_change < 0:
        from_location_id = record.location_id
    else:
        to_location_id = record.location_id

    applied = abs(new_quantity - old_quantity)
    unit_price = cost_price if cost_price is not None else record.cost_price

    # registering serials on units already counted moves no stock
    if quantity_change != 0:
        db.add(
            InventoryMovement(
                record_id=record_id,
                movement_type=MOVEMENT_TYPE_BY_TRANSACTION[transaction_type],
                quantity=quantity_change,
                from_location_id=from_location_id,
                to_location_id=to_location_id,
                actor_id=actor.id,
                reference=reference_id or transaction_type.value,
                timestamp=now,
            )
        )

    transaction = InventoryTransaction(
        transaction_type=transaction_type,
        product_id=record.product_id,
        record_id=record_id,
        location_id=record.location_id,
        from_location_id=from_location_id,
        to_location_id=to_location_id,
        quantity=abs(quantity_change),
        applied_quantity=applied,
        unit_price=unit_price,
        total_value=line_value(abs(quantity_change), unit_price),
        batch_number=record.batch_number,
        serial_numbers=serial_numbers,
        reference_id=reference_id,
        reference_type=reference_type,
        related_transaction_id=related_transaction_id,
        actor_id=actor.id,
        supplier_id=supplier_id,
        customer_id=customer_id,
        status=TransactionStatus.completed,
        notes=notes,
        created_at=now,
    )
    db.add(transaction)
    await db.flush()

    # ------------------------------------
    # 6. Derived fields
    # ------------------------------------
    await recompute_product_stock(db, record.product_id)
    await recompute_location_usage(db, record.location_id)

    logger.info(
        "Inventory quantity changed",
        extra={
            "record_id": record_id,
            "product_id": record.product_id,
            "location_id": record.location_id,
            "transaction_type": transaction_type.value,
            "old_quantity": old_quantity,
            "new_quantity": new_quantity,
            "actor_id": actor.id,
        },
    )

    return AppliedChange(record_id, transaction, old_quantity, new_quantity)
