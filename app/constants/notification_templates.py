from app.constants.notification_codes import NotificationCode


NOTIFICATION_TEMPLATES = {
    # ---------------- REORDER ALERTS ----------------
    NotificationCode.LOW_STOCK_ALERT:
        "Low stock for {product_name}: {current_stock} units left (threshold {threshold})",

    NotificationCode.LOCATION_LOW_STOCK_ALERT:
        "Low stock for {product_name} at {location_name}: {current_stock} units left (threshold {threshold})",

    NotificationCode.REORDER_ALERT_ACKNOWLEDGED:
        "{actor_name} acknowledged reorder alert #{alert_id} for {product_name}",

    NotificationCode.REORDER_ALERT_RESOLVED:
        "{actor_name} resolved reorder alert #{alert_id} for {product_name}",

    NotificationCode.REORDER_ALERT_CANCELLED:
        "{actor_name} cancelled reorder alert #{alert_id} for {product_name}",

    # ---------------- STOCK ----------------
    NotificationCode.STOCK_CLAMPED:
        "{transaction_type} of {requested} units of product #{product_id} at {location_name} "
        "only found {applied} on hand; stock floored at zero",

    # ---------------- BATCHES ----------------
    NotificationCode.BATCH_EXPIRED:
        "Batch {batch_number} of {product_name} at {location_name} expired with {quantity} units on hand",
}
