# app/constants/error_codes.py

from enum import Enum


class ErrorCode(str, Enum):
    # ---------------- GENERIC ----------------
    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNAUTHORIZED = "UNAUTHORIZED"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    NO_CHANGES_DETECTED = "NO_CHANGES_DETECTED"

    # ---------------- PRODUCTS ----------------
    PRODUCT_NOT_FOUND = "PRODUCT_NOT_FOUND"
    PRODUCT_SKU_EXISTS = "PRODUCT_SKU_EXISTS"
    PRODUCT_VERSION_CONFLICT = "PRODUCT_VERSION_CONFLICT"

    # ---------------- LOCATIONS ----------------
    LOCATION_NOT_FOUND = "LOCATION_NOT_FOUND"
    LOCATION_CODE_EXISTS = "LOCATION_CODE_EXISTS"
    LOCATION_STATE_INVALID = "LOCATION_STATE_INVALID"
    LOCATION_VERSION_CONFLICT = "LOCATION_VERSION_CONFLICT"

    # ---------------- INVENTORY RECORDS ----------------
    INVENTORY_RECORD_NOT_FOUND = "INVENTORY_RECORD_NOT_FOUND"
    INVENTORY_INSUFFICIENT_STOCK = "INVENTORY_INSUFFICIENT_STOCK"
    INVENTORY_DUPLICATE_BATCH = "INVENTORY_DUPLICATE_BATCH"
    INVENTORY_DUPLICATE_SERIAL = "INVENTORY_DUPLICATE_SERIAL"
    INVENTORY_SERIAL_NOT_FOUND = "INVENTORY_SERIAL_NOT_FOUND"
    INVENTORY_CONCURRENT_UPDATE = "INVENTORY_CONCURRENT_UPDATE"

    # ---------------- TRANSFERS ----------------
    STOCK_TRANSFER_INVALID_LOCATION = "STOCK_TRANSFER_INVALID_LOCATION"
    STOCK_TRANSFER_INSUFFICIENT_STOCK = "STOCK_TRANSFER_INSUFFICIENT_STOCK"

    # ---------------- TRANSACTIONS ----------------
    TRANSACTION_NOT_FOUND = "TRANSACTION_NOT_FOUND"
    TRANSACTION_INVALID_STATUS = "TRANSACTION_INVALID_STATUS"

    # ---------------- REORDER ALERTS ----------------
    ALERT_NOT_FOUND = "ALERT_NOT_FOUND"
    ALERT_INVALID_STATUS = "ALERT_INVALID_STATUS"
