# app/core/container.py

from app.services.common.cache_service import InMemoryCache, InventoryCache
from app.services.common.notification_service import InMemoryBroadcaster, build_notifier
from app.services.inventory.inventory_service import InventoryService
from app.services.inventory.reorder_alert_service import ReorderAlertService

# =====================================================
# PROCESS-WIDE COMPONENTS
# =====================================================
cache_backend = InMemoryCache()
inventory_cache = InventoryCache(cache_backend)
notifier = build_notifier()
broadcaster = InMemoryBroadcaster()

inventory_service = InventoryService(inventory_cache, notifier, broadcaster)
reorder_alert_service = ReorderAlertService(notifier, broadcaster)


# =====================================================
# DEPENDENCIES
# =====================================================
def get_inventory_service() -> InventoryService:
    return inventory_service


def get_reorder_alert_service() -> ReorderAlertService:
    return reorder_alert_service


def get_broadcaster() -> InMemoryBroadcaster:
    return broadcaster
