from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import uuid4

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func, or_

from app.core.exceptions import (
    NotFoundError,
    ValidationError,
    InsufficientStockError,
    DuplicateBatchError,
    InvalidStateError,
    ConcurrencyConflictError,
)
from app.constants.error_codes import ErrorCode
from app.constants.inventory import (
    StockPolicy,
    BATCH_REFERENCE_PREFIX,
    SERIAL_REFERENCE_PREFIX,
    TRANSFER_REFERENCE_PREFIX,
)
from app.constants.notification_codes import InventoryEvent, NotificationCode
from app.models.inventory.inventory_record_models import (
    InventoryRecord,
    InventorySerial,
    InventoryMovement,
)
from app.models.inventory.inventory_transaction_models import InventoryTransaction
from app.models.inventory.inventory_location_models import InventoryLocation
from app.models.enums.inventory_status import InventoryStatus
from app.models.enums.inventory_transaction_status import (
    TransactionType,
    TransactionStatus,
    ReferenceType,
)
from app.schemas.auth.actor_schemas import Actor
from app.schemas.inventory.inventory_schemas import (
    InventoryUpdateRequest,
    StockTransferRequest,
    BatchCreateRequest,
    SerialTrackRequest,
    QuantityUpdateResult,
    StockTransferResult,
    RecordTransactionResult,
    SerialLookupOut,
    ProductInventoryOut,
    LocationInventoryOut,
    MovementHistoryEntry,
    TransactionListData,
)
from app.services.common.cache_service import InventoryCache
from app.services.common.notification_service import (
    Notifier,
    EventBroadcaster,
    notify_safely,
    publish_safely,
)
from app.services.inventory.inventory_movement_service import (
    AppliedChange,
    apply_quantity_change,
    ensure_record,
    ensure_serials_available,
    get_location_or_404,
    get_product_or_404,
    load_record,
    require_record,
)
from app.services.inventory.inventory_mappers import map_record, map_transaction
from app.utils.notification_helpers import render_notification
import logging

logger = logging.getLogger(__name__)


class InventoryService:
    """
    Write path and read views over inventory records.

    Every mutating call runs as one database transaction and commits once.
    Cache invalidation and event publication run only after the commit and
    never fail the call.
    """

    def __init__(
        self,
        cache: InventoryCache,
        notifier: Optional[Notifier] = None,
        broadcaster: Optional[EventBroadcaster] = None,
    ):
        self.cache = cache
        self.notifier = notifier
        self.broadcaster = broadcaster

    # =====================================================
    # INTERNALS
    # =====================================================
    async def _reload_transaction(self, db: AsyncSession, transaction_id: int) -> InventoryTransaction:
        result = await db.execute(
            select(InventoryTransaction)
            .where(InventoryTransaction.id == transaction_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()

    async def _result(self, db: AsyncSession, change: AppliedChange) -> QuantityUpdateResult:
        record = await load_record(db, change.record_id)
        tx = await self._reload_transaction(db, change.transaction.id)
        return QuantityUpdateResult(
            record=map_record(record),
            transaction=map_transaction(tx),
            old_quantity=change.old_quantity,
            new_quantity=change.new_quantity,
        )

    async def _after_commit(
        self,
        product_ids: set[int],
        location_ids: set[int],
        events: list[tuple[str, dict]],
    ) -> None:
        await self.cache.invalidate(product_ids, location_ids)
        for event, payload in events:
            await publish_safely(self.broadcaster, event, payload)

    @staticmethod
    def _changed_event(result: QuantityUpdateResult) -> tuple[str, dict]:
        return (
            InventoryEvent.INVENTORY_CHANGED.value,
            {
                "product_id": result.record.product_id,
                "location_id": result.record.location_id,
                "old_quantity": result.old_quantity,
                "new_quantity": result.new_quantity,
                "transaction_type": result.transaction.transaction_type.value,
                "timestamp": result.transaction.created_at.isoformat(),
            },
        )

    # =====================================================
    # UPDATE QUANTITY
    # =====================================================
    async def update_quantity(
        self,
        db: AsyncSession,
        payload: InventoryUpdateRequest,
        actor: Actor,
    ) -> QuantityUpdateResult:
        logger.info(
            "Update inventory quantity",
            extra={
                "product_id": payload.product_id,
                "location_id": payload.location_id,
                "quantity_change": payload.quantity_change,
                "policy": payload.policy.value,
            },
        )

        try:
            record = await require_record(
                db, payload.product_id, payload.location_id, payload.batch_number
            )

            change = await apply_quantity_change(
                db,
                record_id=record.id,
                quantity_change=payload.quantity_change,
                transaction_type=payload.transaction_type,
                actor=actor,
                policy=payload.policy,
                serial_numbers=payload.serial_numbers,
                reference_id=payload.reference_id,
                reference_type=payload.reference_type,
                notes=payload.notes,
                cost_price=payload.cost_price,
                supplier_id=payload.supplier_id,
                customer_id=payload.customer_id,
                to_location_id=payload.to_location_id if payload.quantity_change < 0 else None,
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        result = await self._result(db, change)
        await self._after_commit(
            {result.record.product_id},
            {result.record.location_id},
            [self._changed_event(result)],
        )
        if result.transaction.applied_quantity < result.transaction.quantity:
            await self._notify_clamped(result)
        return result

    async def _notify_clamped(self, result: QuantityUpdateResult) -> None:
        tx = result.transaction
        message = render_notification(
            NotificationCode.STOCK_CLAMPED,
            transaction_type=tx.transaction_type.value.capitalize(),
            requested=tx.quantity,
            applied=tx.applied_quantity,
            product_id=tx.product_id,
            location_name=result.record.location_name or f"location #{tx.location_id}",
        )
        await notify_safely(
            self.notifier,
            NotificationCode.STOCK_CLAMPED.value,
            "warning",
            message,
            {
                "transaction_id": tx.id,
                "record_id": result.record.id,
                "product_id": tx.product_id,
                "location_id": tx.location_id,
                "requested": tx.quantity,
                "applied": tx.applied_quantity,
            },
        )

    # =====================================================
    # TRANSFER
    # =====================================================
    async def transfer(
        self,
        db: AsyncSession,
        payload: StockTransferRequest,
        actor: Actor,
    ) -> StockTransferResult:
        logger.info(
            "Transfer stock",
            extra={
                "product_id": payload.product_id,
                "from_location_id": payload.from_location_id,
                "to_location_id": payload.to_location_id,
                "quantity": payload.quantity,
            },
        )

        if payload.from_location_id == payload.to_location_id:
            raise ValidationError(
                "Source and destination locations must differ",
                ErrorCode.STOCK_TRANSFER_INVALID_LOCATION,
            )

        reference = payload.reference_id or f"{TRANSFER_REFERENCE_PREFIX}{uuid4().hex[:12].upper()}"

        try:
            destination = await get_location_or_404(db, payload.to_location_id)
            if not destination.is_active:
                raise ValidationError(
                    "Destination location is inactive",
                    ErrorCode.STOCK_TRANSFER_INVALID_LOCATION,
                    {"location_id": destination.id},
                )

            source = await require_record(
                db, payload.product_id, payload.from_location_id, payload.batch_number
            )
            if source.quantity < payload.quantity:
                raise InsufficientStockError(
                    "Insufficient stock at source location",
                    ErrorCode.STOCK_TRANSFER_INSUFFICIENT_STOCK,
                    {"available": source.quantity, "requested": payload.quantity},
                )

            target = await ensure_record(
                db,
                product_id=payload.product_id,
                location_id=payload.to_location_id,
                actor=actor,
                batch_number=source.batch_number,
                expiration_date=source.expiration_date,
                cost_price=source.cost_price,
                supplier_id=source.supplier_id,
            )

            outbound = await apply_quantity_change(
                db,
                record_id=source.id,
                quantity_change=-payload.quantity,
                transaction_type=TransactionType.transfer,
                actor=actor,
                policy=StockPolicy.REJECT,
                serial_numbers=payload.serial_numbers,
                reference_id=reference,
                reference_type=ReferenceType.transfer,
                notes=payload.notes,
                to_location_id=payload.to_location_id,
            )

            inbound = await apply_quantity_change(
                db,
                record_id=target.id,
                quantity_change=payload.quantity,
                transaction_type=TransactionType.transfer,
                actor=actor,
                policy=StockPolicy.REJECT,
                serial_numbers=payload.serial_numbers,
                reference_id=reference,
                reference_type=ReferenceType.transfer,
                notes=payload.notes,
                from_location_id=payload.from_location_id,
                related_transaction_id=outbound.transaction.id,
            )

            outbound.transaction.related_transaction_id = inbound.transaction.id
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        source_result = await self._result(db, outbound)
        destination_result = await self._result(db, inbound)

        await self._after_commit(
            {payload.product_id},
            {payload.from_location_id, payload.to_location_id},
            [
                self._changed_event(source_result),
                self._changed_event(destination_result),
                (
                    InventoryEvent.STOCK_TRANSFERRED.value,
                    {
                        "product_id": payload.product_id,
                        "from_location_id": payload.from_location_id,
                        "to_location_id": payload.to_location_id,
                        "quantity": payload.quantity,
                        "reference": reference,
                    },
                ),
            ],
        )

        return StockTransferResult(
            transfer_reference=reference,
            product_id=payload.product_id,
            from_location_id=payload.from_location_id,
            to_location_id=payload.to_location_id,
            quantity=payload.quantity,
            actor_id=actor.id,
            timestamp=source_result.transaction.created_at,
            source=source_result,
            destination=destination_result,
        )

    # =====================================================
    # BATCH RECEIPT
    # =====================================================
    async def add_batch(
        self,
        db: AsyncSession,
        payload: BatchCreateRequest,
        actor: Actor,
    ) -> RecordTransactionResult:
        batch = payload.batch
        logger.info(
            "Add inventory batch",
            extra={
                "product_id": payload.product_id,
                "location_id": payload.location_id,
                "batch_number": batch.batch_number,
                "quantity": batch.quantity,
            },
        )

        if batch.serial_numbers and len(batch.serial_numbers) != batch.quantity:
            raise ValidationError(
                "Number of serial numbers must match the batch quantity",
                details={"quantity": batch.quantity, "serial_count": len(batch.serial_numbers)},
            )

        try:
            await get_product_or_404(db, payload.product_id)
            location = await get_location_or_404(db, payload.location_id)
            if not location.is_active:
                raise ValidationError(
                    "Location is inactive",
                    ErrorCode.LOCATION_STATE_INVALID,
                    {"location_id": location.id},
                )

            exists = await db.scalar(
                select(InventoryRecord.id).where(
                    InventoryRecord.product_id == payload.product_id,
                    InventoryRecord.location_id == payload.location_id,
                    InventoryRecord.batch_number == batch.batch_number,
                )
            )
            if exists:
                raise DuplicateBatchError(
                    "Batch already exists for this product at this location",
                    {"batch_number": batch.batch_number, "record_id": exists},
                )

            await ensure_serials_available(db, batch.serial_numbers)

            record = await ensure_record(
                db,
                product_id=payload.product_id,
                location_id=payload.location_id,
                actor=actor,
                batch_number=batch.batch_number,
                expiration_date=batch.expiration_date,
                cost_price=batch.cost_price,
                supplier_id=batch.supplier_id,
                notes=batch.notes,
            )

            change = await apply_quantity_change(
                db,
                record_id=record.id,
                quantity_change=batch.quantity,
                transaction_type=TransactionType.purchase,
                actor=actor,
                serial_numbers=batch.serial_numbers,
                reference_id=f"{BATCH_REFERENCE_PREFIX}{batch.batch_number}",
                reference_type=ReferenceType.purchase,
                notes=batch.notes,
                cost_price=batch.cost_price,
                supplier_id=batch.supplier_id,
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        result = await self._result(db, change)
        await self._after_commit(
            {payload.product_id},
            {payload.location_id},
            [
                self._changed_event(result),
                (
                    InventoryEvent.BATCH_ADDED.value,
                    {
                        "product_id": payload.product_id,
                        "location_id": payload.location_id,
                        "batch_number": batch.batch_number,
                        "quantity": batch.quantity,
                    },
                ),
            ],
        )
        return RecordTransactionResult(record=result.record, transaction=result.transaction)

    # =====================================================
    # SERIAL TRACKING
    # =====================================================
    async def track_serials(
        self,
        db: AsyncSession,
        payload: SerialTrackRequest,
        actor: Actor,
    ) -> RecordTransactionResult:
        logger.info(
            "Track serial numbers",
            extra={
                "product_id": payload.product_id,
                "location_id": payload.location_id,
                "count": len(payload.serial_numbers),
            },
        )

        try:
            await get_product_or_404(db, payload.product_id)
            await get_location_or_404(db, payload.location_id)

            record = await ensure_record(
                db,
                product_id=payload.product_id,
                location_id=payload.location_id,
                actor=actor,
                batch_number=payload.batch_number,
            )

            # quantity becomes the size of the serial set; untracked units are written off or added
            change = await apply_quantity_change(
                db,
                record_id=record.id,
                quantity_change=len(payload.serial_numbers),
                transaction_type=TransactionType.adjustment,
                actor=actor,
                serial_numbers=payload.serial_numbers,
                reference_id=f"{SERIAL_REFERENCE_PREFIX}{record.id}",
                reference_type=ReferenceType.serial_tracking,
                notes=payload.notes,
                quantity_from_serials=True,
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        result = await self._result(db, change)
        await self._after_commit(
            {payload.product_id},
            {payload.location_id},
            [
                self._changed_event(result),
                (
                    InventoryEvent.SERIALS_TRACKED.value,
                    {
                        "product_id": payload.product_id,
                        "location_id": payload.location_id,
                        "serial_numbers": payload.serial_numbers,
                    },
                ),
            ],
        )
        return RecordTransactionResult(record=result.record, transaction=result.transaction)

    async def find_serial(self, db: AsyncSession, serial_number: str) -> SerialLookupOut:
        result = await db.execute(
            select(InventorySerial).where(InventorySerial.serial_number == serial_number.strip())
        )
        serial = result.scalar_one_or_none()
        if not serial:
            raise NotFoundError(
                "Serial number not found",
                ErrorCode.INVENTORY_SERIAL_NOT_FOUND,
                {"serial_number": serial_number},
            )

        record = await load_record(db, serial.record_id)
        return SerialLookupOut(
            serial_number=serial.serial_number,
            product_id=record.product_id,
            location_id=record.location_id,
            batch_number=record.batch_number,
            status=record.status,
            found_at=serial.created_at,
        )

    # =====================================================
    # REVERSAL
    # =====================================================
    async def reverse_transaction(
        self,
        db: AsyncSession,
        transaction_id: int,
        actor: Actor,
        notes: Optional[str] = None,
    ) -> QuantityUpdateResult:
        logger.info("Reverse inventory transaction", extra={"transaction_id": transaction_id})

        try:
            original = await db.get(InventoryTransaction, transaction_id, populate_existing=True)
            if not original:
                raise NotFoundError(
                    "Transaction not found",
                    ErrorCode.TRANSACTION_NOT_FOUND,
                    {"transaction_id": transaction_id},
                )

            if original.status != TransactionStatus.completed:
                raise InvalidStateError(
                    f"Cannot reverse a {original.status.value} transaction",
                    ErrorCode.TRANSACTION_INVALID_STATUS,
                )

            if original.transaction_type == TransactionType.transfer:
                raise InvalidStateError(
                    "Transfers cannot be reversed; transfer the stock back instead",
                    ErrorCode.TRANSACTION_INVALID_STATUS,
                )

            if original.record_id is None or original.applied_quantity == 0:
                raise InvalidStateError(
                    "Transaction moved no stock",
                    ErrorCode.TRANSACTION_INVALID_STATUS,
                )

            delta = -original.applied_quantity if original.is_inbound else original.applied_quantity

            change = await apply_quantity_change(
                db,
                record_id=original.record_id,
                quantity_change=delta,
                transaction_type=TransactionType.adjustment,
                actor=actor,
                policy=StockPolicy.REJECT,
                serial_numbers=original.serial_numbers or [],
                reference_id=str(original.id),
                reference_type=ReferenceType.reversal,
                notes=notes or f"Reversal of transaction #{original.id}",
                related_transaction_id=original.id,
            )

            marked = await db.execute(
                update(InventoryTransaction)
                .where(
                    InventoryTransaction.id == original.id,
                    InventoryTransaction.status == TransactionStatus.completed,
                )
                .values(status=TransactionStatus.reversed)
                .execution_options(synchronize_session=False)
            )
            if marked.rowcount != 1:
                raise ConcurrencyConflictError("Transaction was reversed concurrently")

            await db.commit()
        except Exception:
            await db.rollback()
            raise

        result = await self._result(db, change)
        await self._after_commit(
            {result.record.product_id},
            {result.record.location_id},
            [self._changed_event(result)],
        )
        return result

    # =====================================================
    # READ VIEWS (CACHED)
    # =====================================================
    async def get_product_inventory(self, db: AsyncSession, product_id: int) -> ProductInventoryOut:
        cached = await self.cache.get_product(product_id)
        if cached is not None:
            return ProductInventoryOut.model_validate(cached)

        product = await get_product_or_404(db, product_id)

        result = await db.execute(
            select(InventoryRecord)
            .where(InventoryRecord.product_id == product_id)
            .order_by(InventoryRecord.location_id, InventoryRecord.id)
            .execution_options(populate_existing=True)
        )
        records = result.scalars().all()

        view = ProductInventoryOut(
            product_id=product_id,
            total_quantity=sum(r.quantity for r in records),
            available_quantity=sum(
                r.quantity for r in records if r.status == InventoryStatus.active
            ),
            by_location=[map_record(r) for r in records],
            last_updated=max(
                (r.last_updated for r in records),
                default=product.updated_at or product.created_at,
            ),
        )

        await self.cache.set_product(product_id, view.model_dump(mode="json"))
        return view

    async def get_location_inventory(self, db: AsyncSession, location_id: int) -> LocationInventoryOut:
        cached = await self.cache.get_location(location_id)
        if cached is not None:
            return LocationInventoryOut.model_validate(cached)

        location = await get_location_or_404(db, location_id)

        result = await db.execute(
            select(InventoryRecord)
            .where(InventoryRecord.location_id == location_id)
            .order_by(InventoryRecord.product_id, InventoryRecord.id)
            .execution_options(populate_existing=True)
        )
        records = result.scalars().all()

        view = LocationInventoryOut(
            location_id=location_id,
            total_quantity=sum(r.quantity for r in records),
            total_value=sum((r.inventory_value for r in records), Decimal("0")),
            by_product=[map_record(r) for r in records],
            last_updated=max(
                (r.last_updated for r in records),
                default=location.updated_at or location.created_at,
            ),
        )

        await self.cache.set_location(location_id, view.model_dump(mode="json"))
        return view

    # =====================================================
    # HISTORY
    # =====================================================
    async def list_transactions(
        self,
        db: AsyncSession,
        *,
        product_id: Optional[int] = None,
        location_id: Optional[int] = None,
        transaction_type: Optional[TransactionType] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        page: int = 1,
        page_size: int = 50,
    ) -> TransactionListData:
        query = select(InventoryTransaction)

        if product_id is not None:
            query = query.where(InventoryTransaction.product_id == product_id)
        if location_id is not None:
            query = query.where(
                or_(
                    InventoryTransaction.location_id == location_id,
                    InventoryTransaction.from_location_id == location_id,
                    InventoryTransaction.to_location_id == location_id,
                )
            )
        if transaction_type is not None:
            query = query.where(InventoryTransaction.transaction_type == transaction_type)
        if start_date is not None:
            query = query.where(InventoryTransaction.created_at >= start_date)
        if end_date is not None:
            query = query.where(InventoryTransaction.created_at <= end_date)

        total = await db.scalar(select(func.count()).select_from(query.subquery()))

        result = await db.execute(
            query.order_by(InventoryTransaction.created_at.desc(), InventoryTransaction.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .execution_options(populate_existing=True)
        )

        return TransactionListData(
            total=total or 0,
            items=[map_transaction(t) for t in result.scalars().all()],
        )

    async def movement_history(
        self,
        db: AsyncSession,
        product_id: int,
        location_id: Optional[int] = None,
    ) -> list[MovementHistoryEntry]:
        await get_product_or_404(db, product_id)

        query = (
            select(InventoryMovement, InventoryRecord, InventoryLocation)
            .join(InventoryRecord, InventoryMovement.record_id == InventoryRecord.id)
            .join(InventoryLocation, InventoryRecord.location_id == InventoryLocation.id)
            .where(InventoryRecord.product_id == product_id)
        )
        if location_id is not None:
            query = query.where(InventoryRecord.location_id == location_id)

        result = await db.execute(
            query.order_by(InventoryMovement.timestamp.desc(), InventoryMovement.id.desc())
        )

        return [
            MovementHistoryEntry(
                product_id=record.product_id,
                record_id=record.id,
                location_id=record.location_id,
                location_code=location.code,
                location_name=location.name,
                batch_number=record.batch_number,
                movement_type=movement.movement_type,
                quantity=movement.quantity,
                from_location_id=movement.from_location_id,
                to_location_id=movement.to_location_id,
                actor_id=movement.actor_id,
                reference=movement.reference,
                timestamp=movement.timestamp,
            )
            for movement, record, location in result.all()
        ]
