# app/routers/__init__.py

from .masters.product_router import router as product_router

from .inventory.inventory_location_router import router as inventory_location_router
from .inventory.inventory_router import router as inventory_router
from .inventory.reorder_alert_router import router as reorder_alert_router
from .inventory.analytics_router import router as analytics_router
from .inventory.inventory_events_router import router as inventory_events_router


__all__ = [
"product_router",

"inventory_location_router",
"inventory_router",
"reorder_alert_router",
"analytics_router",
"inventory_events_router",
]
