import enum


class AlertStatus(str, enum.Enum):
    pending = "pending"
    triggered = "triggered"
    acknowledged = "acknowledged"
    resolved = "resolved"
    cancelled = "cancelled"


class AlertPriority(str, enum.Enum):
    low = "low"
    medium = "medium"
    high = "high"
    critical = "critical"


OPEN_ALERT_STATUSES = (AlertStatus.pending, AlertStatus.triggered)
TERMINAL_ALERT_STATUSES = (AlertStatus.resolved, AlertStatus.cancelled)
