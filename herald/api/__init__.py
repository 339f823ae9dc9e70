"""
HTTP surface for the notification dispatcher.
"""

from .notifications import configure_notifications_api, notifications_router

__all__ = ["configure_notifications_api", "notifications_router"]
