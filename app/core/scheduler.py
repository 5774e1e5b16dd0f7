from apscheduler.schedulers.asyncio import AsyncIOScheduler
from app.core.db import AsyncSessionLocal
from app.core.config import REORDER_SCAN_INTERVAL_MINUTES
from app.core.container import cache_backend, inventory_cache, notifier, reorder_alert_service

from app.services.inventory.inventory_expiry_service import auto_expire_batches
import logging

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()

@scheduler.scheduled_job(
    "interval",
    minutes=REORDER_SCAN_INTERVAL_MINUTES,
    id="reorder_scan",
    max_instances=1,
    coalesce=True,
)
async def reorder_scan_job():
    async with AsyncSessionLocal() as db:
        await reorder_alert_service.scan_and_trigger(db)

@scheduler.scheduled_job("cron", hour=0, minute=5, id="batch_expiry")  # daily at 00:05
async def expire_batches_job():
    async with AsyncSessionLocal() as db:
        count = await auto_expire_batches(db, cache=inventory_cache, notifier=notifier)
    if count:
        logger.info("Batch expiry sweep finished", extra={"expired": count})

@scheduler.scheduled_job("interval", minutes=10, id="cache_cleanup")
async def cache_cleanup_job():
    await cache_backend.cleanup_expired()
