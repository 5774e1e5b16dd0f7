import asyncio
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func

from app.core.config import (
    DEFAULT_REORDER_THRESHOLD,
    DEFAULT_REORDER_QUANTITY,
    DEFAULT_LEAD_TIME_DAYS,
)
from app.core.exceptions import NotFoundError, InvalidStateError, ConcurrencyConflictError
from app.constants.error_codes import ErrorCode
from app.constants.notification_codes import NotificationCode, InventoryEvent
from app.models.inventory.reorder_alert_models import ReorderAlert, ReorderAlertEvent
from app.models.inventory.inventory_record_models import InventoryRecord
from app.models.inventory.inventory_location_models import InventoryLocation
from app.models.masters.product_models import Product
from app.models.enums.product_status import ProductStatus
from app.models.enums.reorder_alert_status import (
    AlertStatus,
    AlertPriority,
    OPEN_ALERT_STATUSES,
)
from app.schemas.auth.actor_schemas import Actor
from app.schemas.inventory.reorder_alert_schemas import (
    ReorderAlertOut,
    ReorderAlertEventOut,
    ReorderAlertListData,
    ScanResult,
)
from app.services.common.notification_service import (
    Notifier,
    EventBroadcaster,
    notify_safely,
    publish_safely,
)
from app.services.inventory.inventory_movement_service import get_location_or_404
from app.utils.notification_helpers import render_notification
from app.utils.time_utils import utcnow
import logging

logger = logging.getLogger(__name__)

ACKNOWLEDGEABLE = OPEN_ALERT_STATUSES
RESOLVABLE = (*OPEN_ALERT_STATUSES, AlertStatus.acknowledged)
CANCELLABLE = OPEN_ALERT_STATUSES


def alert_priority(current_stock: int, threshold: int) -> AlertPriority:
    if current_stock <= threshold / 2:
        return AlertPriority.high
    return AlertPriority.medium


def reorder_threshold(product: Product) -> int:
    if product.reorder_threshold is not None:
        return product.reorder_threshold
    return DEFAULT_REORDER_THRESHOLD


# =====================================================
# MAPPER
# =====================================================
def _map_alert(alert: ReorderAlert) -> ReorderAlertOut:
    return ReorderAlertOut(
        id=alert.id,
        product_id=alert.product_id,
        product_name=alert.product.name if alert.product else None,
        product_sku=alert.product.sku if alert.product else None,
        location_id=alert.location_id,
        location_name=alert.location.name if alert.location else None,
        threshold=alert.threshold,
        current_stock=alert.current_stock,
        status=alert.status,
        priority=alert.priority,
        triggered_at=alert.triggered_at,
        acknowledged_at=alert.acknowledged_at,
        acknowledged_by_id=alert.acknowledged_by_id,
        resolved_at=alert.resolved_at,
        resolved_by_id=alert.resolved_by_id,
        cancelled_at=alert.cancelled_at,
        cancelled_by_id=alert.cancelled_by_id,
        notes=alert.notes,
        suggested_quantity=alert.suggested_quantity,
        lead_time_days=alert.lead_time_days,
        supplier_id=alert.supplier_id,
        days_since_triggered=alert.days_since_triggered,
        is_overdue=alert.is_overdue,
        events=[ReorderAlertEventOut.model_validate(e) for e in alert.events],
        created_at=alert.created_at,
        updated_at=alert.updated_at,
    )


class ReorderAlertService:
    """Derives low-stock alerts from current totals and drives their lifecycle."""

    def __init__(
        self,
        notifier: Optional[Notifier] = None,
        broadcaster: Optional[EventBroadcaster] = None,
    ):
        self.notifier = notifier
        self.broadcaster = broadcaster

    # =====================================================
    # INTERNALS
    # =====================================================
    async def _load(self, db: AsyncSession, alert_ids: list[int]) -> list[ReorderAlert]:
        if not alert_ids:
            return []
        result = await db.execute(
            select(ReorderAlert)
            .where(ReorderAlert.id.in_(alert_ids))
            .order_by(ReorderAlert.id)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def _get_or_404(self, db: AsyncSession, alert_id: int) -> ReorderAlert:
        alerts = await self._load(db, [alert_id])
        if not alerts:
            raise NotFoundError("Reorder alert not found", ErrorCode.ALERT_NOT_FOUND, {"alert_id": alert_id})
        return alerts[0]

    async def _open_scopes(self, db: AsyncSession, location_id: Optional[int]) -> set[int]:
        scope = (
            ReorderAlert.location_id.is_(None)
            if location_id is None
            else ReorderAlert.location_id == location_id
        )
        result = await db.execute(
            select(ReorderAlert.product_id).where(
                scope,
                ReorderAlert.status.in_(OPEN_ALERT_STATUSES),
            )
        )
        return set(result.scalars().all())

    def _new_alert(
        self,
        product: Product,
        location_id: Optional[int],
        threshold: int,
        current_stock: int,
    ) -> ReorderAlert:
        now = utcnow()
        alert = ReorderAlert(
            product_id=product.id,
            location_id=location_id,
            threshold=threshold,
            current_stock=current_stock,
            status=AlertStatus.pending,
            priority=alert_priority(current_stock, threshold),
            triggered_at=now,
            suggested_quantity=(
                product.reorder_quantity
                if product.reorder_quantity is not None
                else DEFAULT_REORDER_QUANTITY
            ),
            lead_time_days=(
                product.lead_time_days
                if product.lead_time_days is not None
                else DEFAULT_LEAD_TIME_DAYS
            ),
            supplier_id=product.supplier_id,
            created_at=now,
        )
        alert.events.append(
            ReorderAlertEvent(
                status=AlertStatus.pending,
                notes=f"Stock {current_stock} at or below threshold {threshold}",
                timestamp=now,
            )
        )
        return alert

    async def _announce(self, alerts: list[ReorderAlertOut]) -> None:
        for alert in alerts:
            code = (
                NotificationCode.LOW_STOCK_ALERT
                if alert.location_id is None
                else NotificationCode.LOCATION_LOW_STOCK_ALERT
            )
            message = render_notification(
                code,
                product_name=alert.product_name,
                location_name=alert.location_name,
                current_stock=alert.current_stock,
                threshold=alert.threshold,
            )
            await notify_safely(
                self.notifier,
                code.value,
                alert.priority.value,
                message,
                {
                    "alert_id": alert.id,
                    "product_id": alert.product_id,
                    "sku": alert.product_sku,
                    "location_id": alert.location_id,
                    "current_stock": alert.current_stock,
                    "threshold": alert.threshold,
                    "suggested_reorder": alert.suggested_quantity,
                },
            )
            await publish_safely(
                self.broadcaster,
                InventoryEvent.REORDER_ALERT.value,
                {
                    "alert_id": alert.id,
                    "product_id": alert.product_id,
                    "location_id": alert.location_id,
                    "priority": alert.priority.value,
                },
            )

    async def _commit_new(self, db: AsyncSession, alerts: list[ReorderAlert]) -> list[ReorderAlertOut]:
        try:
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        created = [_map_alert(a) for a in await self._load(db, [a.id for a in alerts])]
        await self._announce(created)
        return created

    # =====================================================
    # SCANS
    # =====================================================
    async def scan_and_trigger(self, db: AsyncSession) -> ScanResult:
        """
        Platform-wide sweep: one alert per tracked product whose total stock
        across all locations is at or below its threshold. Re-running while an
        alert is open creates nothing.
        """
        products = (
            await db.execute(
                select(Product)
                .where(
                    Product.status == ProductStatus.active,
                    Product.track_inventory.is_(True),
                )
                .order_by(Product.id)
                .execution_options(populate_existing=True)
            )
        ).scalars().all()

        totals = dict(
            (
                await db.execute(
                    select(InventoryRecord.product_id, func.sum(InventoryRecord.quantity))
                    .group_by(InventoryRecord.product_id)
                )
            ).all()
        )
        open_products = await self._open_scopes(db, None)

        alerts: list[ReorderAlert] = []
        for product in products:
            # yield between products so a long sweep stays cancellable
            await asyncio.sleep(0)

            total = int(totals.get(product.id) or 0)
            threshold = reorder_threshold(product)
            if total > threshold or product.id in open_products:
                continue

            alert = self._new_alert(product, None, threshold, total)
            db.add(alert)
            alerts.append(alert)

        if alerts:
            await db.flush()

        created = await self._commit_new(db, alerts)

        logger.info(
            "Reorder scan finished",
            extra={"products_scanned": len(products), "alerts_created": len(created)},
        )
        return ScanResult(products_scanned=len(products), locations_scanned=0, alerts_created=created)

    async def scan_location(self, db: AsyncSession, location_id: int) -> ScanResult:
        """Same check per product at one location, using that location's stock."""
        await get_location_or_404(db, location_id)

        rows = (
            await db.execute(
                select(Product, func.sum(InventoryRecord.quantity))
                .join(InventoryRecord, InventoryRecord.product_id == Product.id)
                .where(
                    InventoryRecord.location_id == location_id,
                    Product.track_inventory.is_(True),
                )
                .group_by(Product.id)
                .order_by(Product.id)
                .execution_options(populate_existing=True)
            )
        ).all()

        open_products = await self._open_scopes(db, location_id)

        alerts: list[ReorderAlert] = []
        for product, quantity in rows:
            await asyncio.sleep(0)

            quantity = int(quantity or 0)
            threshold = reorder_threshold(product)
            # empty shelves are covered by the platform-wide sweep
            if quantity <= 0 or quantity > threshold or product.id in open_products:
                continue

            alert = self._new_alert(product, location_id, threshold, quantity)
            db.add(alert)
            alerts.append(alert)

        if alerts:
            await db.flush()

        created = await self._commit_new(db, alerts)

        logger.info(
            "Location reorder scan finished",
            extra={"location_id": location_id, "products_scanned": len(rows), "alerts_created": len(created)},
        )
        return ScanResult(products_scanned=len(rows), locations_scanned=1, alerts_created=created)

    async def scan_all_locations(self, db: AsyncSession) -> ScanResult:
        location_ids = (
            await db.execute(
                select(InventoryLocation.id)
                .where(InventoryLocation.is_active.is_(True))
                .order_by(InventoryLocation.id)
            )
        ).scalars().all()

        products_scanned = 0
        created: list[ReorderAlertOut] = []
        for location_id in location_ids:
            result = await self.scan_location(db, location_id)
            products_scanned += result.products_scanned
            created.extend(result.alerts_created)

        return ScanResult(
            products_scanned=products_scanned,
            locations_scanned=len(location_ids),
            alerts_created=created,
        )

    # =====================================================
    # LIFECYCLE
    # =====================================================
    async def _transition(
        self,
        db: AsyncSession,
        alert_id: int,
        actor: Actor,
        notes: Optional[str],
        *,
        target: AlertStatus,
        allowed: tuple[AlertStatus, ...],
        stamp: str,
    ) -> ReorderAlertOut:
        try:
            alert = await self._get_or_404(db, alert_id)

            if alert.status not in allowed:
                raise InvalidStateError(
                    f"Cannot move a {alert.status.value} alert to {target.value}",
                    ErrorCode.ALERT_INVALID_STATUS,
                    {"alert_id": alert_id, "status": alert.status.value},
                )

            now = utcnow()
            values = {
                "status": target,
                f"{stamp}_at": now,
                f"{stamp}_by_id": actor.id,
            }
            if notes:
                values["notes"] = notes

            result = await db.execute(
                update(ReorderAlert)
                .where(
                    ReorderAlert.id == alert_id,
                    ReorderAlert.status == alert.status,
                )
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise ConcurrencyConflictError(
                    "Reorder alert was modified concurrently",
                    details={"alert_id": alert_id},
                )

            db.add(
                ReorderAlertEvent(
                    alert_id=alert_id,
                    status=target,
                    actor_id=actor.id,
                    notes=notes[:200] if notes else None,
                    timestamp=now,
                )
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Reorder alert status changed",
            extra={"alert_id": alert_id, "status": target.value, "actor_id": actor.id},
        )
        return _map_alert(await self._get_or_404(db, alert_id))

    async def acknowledge(
        self, db: AsyncSession, alert_id: int, actor: Actor, notes: Optional[str] = None
    ) -> ReorderAlertOut:
        alert = await self._transition(
            db, alert_id, actor, notes,
            target=AlertStatus.acknowledged,
            allowed=ACKNOWLEDGEABLE,
            stamp="acknowledged",
        )
        await self._notify_status(alert, NotificationCode.REORDER_ALERT_ACKNOWLEDGED, actor)
        return alert

    async def resolve(
        self, db: AsyncSession, alert_id: int, actor: Actor, notes: Optional[str] = None
    ) -> ReorderAlertOut:
        alert = await self._transition(
            db, alert_id, actor, notes,
            target=AlertStatus.resolved,
            allowed=RESOLVABLE,
            stamp="resolved",
        )
        await self._notify_status(alert, NotificationCode.REORDER_ALERT_RESOLVED, actor)
        return alert

    async def cancel(
        self, db: AsyncSession, alert_id: int, actor: Actor, notes: Optional[str] = None
    ) -> ReorderAlertOut:
        alert = await self._transition(
            db, alert_id, actor, notes,
            target=AlertStatus.cancelled,
            allowed=CANCELLABLE,
            stamp="cancelled",
        )
        await self._notify_status(alert, NotificationCode.REORDER_ALERT_CANCELLED, actor)
        return alert

    async def _notify_status(self, alert: ReorderAlertOut, code: NotificationCode, actor: Actor) -> None:
        message = render_notification(
            code,
            actor_name=actor.display_name,
            alert_id=alert.id,
            product_name=alert.product_name,
        )
        await notify_safely(
            self.notifier,
            code.value,
            AlertPriority.low.value,
            message,
            {"alert_id": alert.id, "product_id": alert.product_id, "status": alert.status.value},
        )

    # =====================================================
    # READS
    # =====================================================
    async def get_alert(self, db: AsyncSession, alert_id: int) -> ReorderAlertOut:
        return _map_alert(await self._get_or_404(db, alert_id))

    async def list_alerts(
        self,
        db: AsyncSession,
        *,
        status: Optional[AlertStatus] = None,
        priority: Optional[AlertPriority] = None,
        product_id: Optional[int] = None,
        location_id: Optional[int] = None,
        open_only: bool = False,
        page: int = 1,
        page_size: int = 50,
    ) -> ReorderAlertListData:
        query = select(ReorderAlert)

        if status is not None:
            query = query.where(ReorderAlert.status == status)
        elif open_only:
            query = query.where(ReorderAlert.status.in_(OPEN_ALERT_STATUSES))
        if priority is not None:
            query = query.where(ReorderAlert.priority == priority)
        if product_id is not None:
            query = query.where(ReorderAlert.product_id == product_id)
        if location_id is not None:
            query = query.where(ReorderAlert.location_id == location_id)

        total = await db.scalar(select(func.count()).select_from(query.subquery()))

        result = await db.execute(
            query.order_by(ReorderAlert.created_at.desc(), ReorderAlert.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .execution_options(populate_existing=True)
        )

        return ReorderAlertListData(
            total=total or 0,
            items=[_map_alert(a) for a in result.scalars().all()],
        )
