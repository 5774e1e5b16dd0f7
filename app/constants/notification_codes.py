# app/constants/notification_codes.py

from enum import Enum


class NotificationCode(str, Enum):
    # ---------------- REORDER ALERTS ----------------
    LOW_STOCK_ALERT = "LOW_STOCK_ALERT"
    LOCATION_LOW_STOCK_ALERT = "LOCATION_LOW_STOCK_ALERT"
    REORDER_ALERT_ACKNOWLEDGED = "REORDER_ALERT_ACKNOWLEDGED"
    REORDER_ALERT_RESOLVED = "REORDER_ALERT_RESOLVED"
    REORDER_ALERT_CANCELLED = "REORDER_ALERT_CANCELLED"

    # ---------------- STOCK ----------------
    STOCK_CLAMPED = "STOCK_CLAMPED"

    # ---------------- BATCHES ----------------
    BATCH_EXPIRED = "BATCH_EXPIRED"


class InventoryEvent(str, Enum):
    INVENTORY_CHANGED = "inventory_changed"
    STOCK_TRANSFERRED = "stock_transferred"
    BATCH_ADDED = "batch_added"
    SERIALS_TRACKED = "serials_tracked"
    REORDER_ALERT = "reorder_alert"
