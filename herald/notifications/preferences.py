"""
Per-user notification preferences and the delivery gate.

Preferences live in memory for the lifetime of the process. A user without
stored preferences always receives notifications.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Dict, Mapping, Optional

from .models import (
    DoNotDisturb,
    NotificationCategory,
    NotificationPreferences,
    NotificationPriority,
    PreferencesUpdate,
)

logger = logging.getLogger(__name__)

SUPPRESSED_CATEGORY = "category_disabled"
SUPPRESSED_DND = "do_not_disturb"


def in_quiet_hours(dnd: DoNotDisturb, hour: int) -> bool:
    """Return True when ``hour`` falls inside the do-not-disturb window.

    Windows where ``start_hour > end_hour`` wrap around midnight.
    """
    if not dnd.enabled:
        return False
    start, end = dnd.start_hour, dnd.end_hour
    if start <= end:
        return start <= hour < end
    return hour >= start or hour < end


def suppression_reason(
    prefs: Optional[NotificationPreferences],
    category: NotificationCategory,
    priority: NotificationPriority,
    hour: int,
) -> Optional[str]:
    """Return why a notification must not be delivered, or None to deliver."""
    if prefs is None:
        return None
    if prefs.category_enabled.get(category, True) is False:
        return SUPPRESSED_CATEGORY
    if in_quiet_hours(prefs.do_not_disturb, hour):
        if priority != NotificationPriority.high:
            return SUPPRESSED_DND
    return None


class PreferenceStore:
    """In-memory preference store keyed by user id."""

    def __init__(
        self, initial: Optional[Mapping[str, NotificationPreferences]] = None
    ) -> None:
        self._prefs: Dict[str, NotificationPreferences] = dict(initial or {})

    def get(self, user_id: Optional[str]) -> Optional[NotificationPreferences]:
        if not user_id:
            return None
        return self._prefs.get(user_id)

    def set(self, user_id: str, prefs: NotificationPreferences) -> None:
        self._prefs[user_id] = prefs

    def update(
        self, user_id: str, partial: Mapping[str, Any]
    ) -> NotificationPreferences:
        """Merge ``partial`` into the stored preferences for ``user_id``.

        ``partial`` may contain ``category_enabled`` (category -> bool) and
        ``do_not_disturb`` (any subset of enabled/start_hour/end_hour), in
        snake_case or camelCase. Unknown keys or categories, non-boolean
        flags and out-of-range hours raise ``pydantic.ValidationError``.
        """
        changes = PreferencesUpdate.model_validate(dict(partial or {}))
        current = self._prefs.get(user_id) or NotificationPreferences()

        categories = dict(current.category_enabled)
        categories.update(changes.category_enabled)

        dnd = current.do_not_disturb.model_dump()
        if changes.do_not_disturb is not None:
            dnd.update(changes.do_not_disturb.model_dump(exclude_unset=True))

        updated = NotificationPreferences(
            category_enabled=categories,
            do_not_disturb=DoNotDisturb(**dnd),
        )
        self._prefs[user_id] = updated
        logger.info("Notification preferences updated for user %s", user_id)
        return updated

    def clear(self) -> None:
        self._prefs.clear()


class PreferenceGate:
    """Decides whether a notification may be delivered to its recipient."""

    def __init__(
        self,
        store: PreferenceStore,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.store = store
        self._clock = clock

    def check(
        self,
        category: NotificationCategory,
        priority: NotificationPriority,
        user_id: Optional[str],
    ) -> Optional[str]:
        prefs = self.store.get(user_id)
        return suppression_reason(prefs, category, priority, self._clock().hour)

    def should_deliver(
        self,
        category: NotificationCategory,
        priority: NotificationPriority,
        user_id: Optional[str],
    ) -> bool:
        return self.check(category, priority, user_id) is None
