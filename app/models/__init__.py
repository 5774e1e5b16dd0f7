# Inventory
from app.models.inventory.inventory_location_models import InventoryLocation
from app.models.inventory.inventory_record_models import (
    InventoryRecord,
    InventorySerial,
    InventoryMovement,
)
from app.models.inventory.inventory_transaction_models import InventoryTransaction
from app.models.inventory.reorder_alert_models import ReorderAlert, ReorderAlertEvent

# Masters
from app.models.masters.product_models import Product
