"""Automatic password rotation for protected WordPress posts."""

from .config import RotationPolicy, WordPressConfig, NotificationConfig
from .client import ContentStoreError, WordPressClient
from .store import DEFAULT_INTERVAL_DAYS, IntervalStore, SiteClock
from .scheduler import DueItemSelector, PasswordRotationEngine, ProtectedItem, RotationOutcome
from .handlers import IntervalUpdateHandler
from .triggers import JobScheduler, ManualTrigger, ScheduledTrigger, TriggerResult
from .notification import AWSSNSNotifier, NotificationOutbox, NotificationResult, RotationNotice

__all__ = [
    "RotationPolicy",
    "WordPressConfig",
    "NotificationConfig",
    "ContentStoreError",
    "WordPressClient",
    "DEFAULT_INTERVAL_DAYS",
    "IntervalStore",
    "SiteClock",
    "DueItemSelector",
    "PasswordRotationEngine",
    "ProtectedItem",
    "RotationOutcome",
    "IntervalUpdateHandler",
    "JobScheduler",
    "ManualTrigger",
    "ScheduledTrigger",
    "TriggerResult",
    "AWSSNSNotifier",
    "NotificationOutbox",
    "NotificationResult",
    "RotationNotice",
]
