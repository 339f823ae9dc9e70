"""
Notification dispatch core.

This package provides:
- Preference gate with do-not-disturb windows
- Batching queue that collapses notifications per category
- Click and action routing for shown notifications
- Delivery sinks (in-memory and HTTP worker)
"""

from .models import (
    DeliveredNotification,
    NotificationCategory,
    NotificationInteraction,
    NotificationPreferences,
    NotificationPriority,
    NotificationRequest,
)
from .preferences import PreferenceGate, PreferenceStore
from .routing import resolve_target
from .service import NotificationDispatcher
from .sinks import DeliveryError, InMemorySink, WebhookSink

__all__ = [
    "DeliveredNotification",
    "NotificationCategory",
    "NotificationInteraction",
    "NotificationPreferences",
    "NotificationPriority",
    "NotificationRequest",
    "PreferenceGate",
    "PreferenceStore",
    "resolve_target",
    "NotificationDispatcher",
    "DeliveryError",
    "InMemorySink",
    "WebhookSink",
]
