"""Services for probing, scheduling, and alerting."""
from .prober import Prober, CheckOutcome, classify_error
from .status_tracker import StatusTracker, AlertAction, AlertKind, ALERT_COOLDOWN
from .scheduler import SchedulerService, ScheduleEntry
from .storage import Storage, SqlStorage
from .notifier import Notifier, AlertHistory, AlertNotifier, build_notifier
from .engine import MonitorEngine

__all__ = [
    "Prober",
    "CheckOutcome",
    "classify_error",
    "StatusTracker",
    "AlertAction",
    "AlertKind",
    "ALERT_COOLDOWN",
    "SchedulerService",
    "ScheduleEntry",
    "Storage",
    "SqlStorage",
    "Notifier",
    "AlertHistory",
    "AlertNotifier",
    "build_notifier",
    "MonitorEngine",
]
