from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.constants.notification_codes import NotificationCode
from app.models.inventory.inventory_location_models import InventoryLocation
from app.models.masters.product_models import Product
from app.services.common.cache_service import InventoryCache
from app.services.common.notification_service import Notifier, notify_safely
from app.services.inventory.inventory_expiry_core import _expire_batches_stmt
from app.utils.notification_helpers import render_notification
from app.utils.time_utils import utcnow
import logging

logger = logging.getLogger(__name__)


async def auto_expire_batches(
    db: AsyncSession,
    cache: InventoryCache | None = None,
    notifier: Notifier | None = None,
) -> int:
    """Mark active batches past their expiration date as expired. Quantities are untouched."""
    now = utcnow()

    try:
        result = await db.execute(_expire_batches_stmt(now, updated_by_id=None))  # system action
        expired = result.all()

        if not expired:
            await db.rollback()
            return 0

        await db.commit()
    except Exception:
        await db.rollback()
        raise

    product_ids = {row.product_id for row in expired}
    location_ids = {row.location_id for row in expired}

    logger.info("Expired inventory batches", extra={"count": len(expired), "record_ids": [r.id for r in expired]})

    if cache is not None:
        await cache.invalidate(product_ids, location_ids)

    if notifier is not None:
        products = dict(
            (await db.execute(select(Product.id, Product.name).where(Product.id.in_(product_ids)))).all()
        )
        locations = dict(
            (
                await db.execute(
                    select(InventoryLocation.id, InventoryLocation.name).where(
                        InventoryLocation.id.in_(location_ids)
                    )
                )
            ).all()
        )

        for row in expired:
            if row.quantity <= 0:
                continue
            message = render_notification(
                NotificationCode.BATCH_EXPIRED,
                batch_number=row.batch_number or "-",
                product_name=products.get(row.product_id),
                location_name=locations.get(row.location_id),
                quantity=row.quantity,
            )
            await notify_safely(
                notifier,
                NotificationCode.BATCH_EXPIRED.value,
                "medium",
                message,
                {
                    "record_id": row.id,
                    "product_id": row.product_id,
                    "location_id": row.location_id,
                    "batch_number": row.batch_number,
                    "quantity": row.quantity,
                },
            )

    return len(expired)
