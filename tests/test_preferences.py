from datetime import datetime

import pytest
from pydantic import ValidationError

from herald.notifications.models import (
    DoNotDisturb,
    NotificationCategory,
    NotificationPreferences,
    NotificationPriority,
)
from herald.notifications.preferences import (
    SUPPRESSED_CATEGORY,
    SUPPRESSED_DND,
    PreferenceGate,
    PreferenceStore,
    in_quiet_hours,
    suppression_reason,
)


def _gate_at(store: PreferenceStore, hour: int) -> PreferenceGate:
    return PreferenceGate(store, clock=lambda: datetime(2024, 5, 1, hour, 30))


@pytest.mark.parametrize("category", list(NotificationCategory))
@pytest.mark.parametrize("priority", list(NotificationPriority))
def test_no_preferences_always_allows(category, priority):
    gate = _gate_at(PreferenceStore(), 23)
    assert gate.should_deliver(category, priority, "u1") is True
    assert gate.should_deliver(category, priority, None) is True


@pytest.mark.parametrize("priority", list(NotificationPriority))
def test_disabled_category_blocks_every_priority(priority):
    store = PreferenceStore()
    store.update("u1", {"category_enabled": {"message": False}})
    gate = _gate_at(store, 12)

    assert gate.should_deliver(NotificationCategory.message, priority, "u1") is False
    assert gate.check(NotificationCategory.message, priority, "u1") == SUPPRESSED_CATEGORY
    assert gate.should_deliver(NotificationCategory.mention, priority, "u1") is True


def test_dnd_wraparound_window():
    store = PreferenceStore()
    store.update(
        "u1", {"do_not_disturb": {"enabled": True, "start_hour": 22, "end_hour": 8}}
    )

    late = _gate_at(store, 23)
    assert late.check(NotificationCategory.message, NotificationPriority.normal, "u1") == SUPPRESSED_DND
    assert late.should_deliver(NotificationCategory.message, NotificationPriority.low, "u1") is False
    assert late.should_deliver(NotificationCategory.message, NotificationPriority.high, "u1") is True

    noon = _gate_at(store, 12)
    for priority in NotificationPriority:
        assert noon.should_deliver(NotificationCategory.message, priority, "u1") is True


@pytest.mark.parametrize(
    ("start", "end", "hour", "expected"),
    [
        (22, 8, 22, True),
        (22, 8, 0, True),
        (22, 8, 7, True),
        (22, 8, 8, False),
        (22, 8, 21, False),
        (9, 17, 9, True),
        (9, 17, 16, True),
        (9, 17, 17, False),
        (9, 17, 3, False),
        (5, 5, 5, False),
    ],
)
def test_in_quiet_hours(start, end, hour, expected):
    dnd = DoNotDisturb(enabled=True, start_hour=start, end_hour=end)
    assert in_quiet_hours(dnd, hour) is expected


def test_disabled_dnd_never_quiet():
    dnd = DoNotDisturb(enabled=False, start_hour=0, end_hour=23)
    assert in_quiet_hours(dnd, 12) is False


def test_suppression_reason_prefers_category_over_dnd():
    prefs = NotificationPreferences(
        category_enabled={NotificationCategory.system: False},
        do_not_disturb=DoNotDisturb(enabled=True, start_hour=0, end_hour=23),
    )
    assert (
        suppression_reason(prefs, NotificationCategory.system, NotificationPriority.high, 3)
        == SUPPRESSED_CATEGORY
    )
    assert suppression_reason(prefs, NotificationCategory.security, NotificationPriority.high, 3) is None


def test_update_merges_partial_preferences():
    store = PreferenceStore()
    store.update("u1", {"category_enabled": {"message": False}})
    prefs = store.update("u1", {"do_not_disturb": {"enabled": True}})

    assert prefs.category_enabled[NotificationCategory.message] is False
    assert prefs.category_enabled[NotificationCategory.security] is True
    assert prefs.do_not_disturb.enabled is True
    assert prefs.do_not_disturb.start_hour == 22
    assert prefs.do_not_disturb.end_hour == 8

    prefs = store.update("u1", {"category_enabled": {"message": True}})
    assert prefs.category_enabled[NotificationCategory.message] is True
    assert prefs.do_not_disturb.enabled is True


def test_update_rejects_bad_values():
    store = PreferenceStore()
    with pytest.raises(ValidationError):
        store.update("u1", {"do_not_disturb": {"start_hour": 24}})
    with pytest.raises(ValueError):
        store.update("u1", {"category_enabled": {"bogus": False}})
    assert store.get("u1") is None


def test_update_accepts_camel_case_keys():
    store = PreferenceStore()
    prefs = store.update(
        "u1",
        {
            "categoryEnabled": {"mention": False},
            "doNotDisturb": {"enabled": True, "startHour": 21, "endHour": 7},
        },
    )
    assert prefs.category_enabled[NotificationCategory.mention] is False
    assert prefs.do_not_disturb == DoNotDisturb(enabled=True, start_hour=21, end_hour=7)


def test_update_parses_boolean_strings():
    store = PreferenceStore()
    prefs = store.update("u1", {"category_enabled": {"message": "false"}})
    assert prefs.category_enabled[NotificationCategory.message] is False


@pytest.mark.parametrize(
    "partial",
    [
        {"categories": {"message": False}},
        {"do_not_disturb": {"enabled": True, "start": 22}},
        {"category_enabled": {"message": "sometimes"}},
        {"do_not_disturb": {"enabled": "maybe"}},
    ],
)
def test_update_rejects_unknown_keys_and_non_boolean_flags(partial):
    store = PreferenceStore()
    with pytest.raises(ValidationError):
        store.update("u1", partial)
    assert store.get("u1") is None
