"""
Notification domain models.
"""

from __future__ import annotations

import time
from enum import Enum
from typing import List, Optional, Dict, Any
from datetime import datetime
from uuid import uuid4

from pydantic import AliasChoices, BaseModel, Field, field_validator, model_validator


class NotificationCategory(str, Enum):
    message = "message"
    group_invite = "group_invite"
    mention = "mention"
    file_share = "file_share"
    system = "system"
    security = "security"


class NotificationPriority(str, Enum):
    low = "low"
    normal = "normal"
    high = "high"


CATEGORY_TITLES: Dict[str, str] = {
    NotificationCategory.message.value: "New Messages",
    NotificationCategory.group_invite.value: "Group Invitations",
    NotificationCategory.mention.value: "Mentions",
    NotificationCategory.file_share.value: "File Shares",
    NotificationCategory.system.value: "System Notifications",
    NotificationCategory.security.value: "Security Alerts",
}

# Most platforms render at most two action buttons
MAX_ACTIONS = 2


def category_title(category: Any) -> str:
    return CATEGORY_TITLES.get(getattr(category, "value", category), "Notifications")


def generate_notification_id() -> str:
    return f"notif_{int(time.time() * 1000)}_{uuid4().hex[:9]}"


class NotificationAction(BaseModel):
    action: str
    title: str
    icon: Optional[str] = None


class NotificationRequest(BaseModel):
    """A request to notify a user, or everyone when no recipient is set.

    Accepts both snake_case fields and the camelCase keys used by the web
    client (``recipientUserId``/``userId``, ``data``, ``requireInteraction``).
    Unknown keys are rejected.
    """

    title: str
    body: str
    category: NotificationCategory = NotificationCategory.message
    priority: NotificationPriority = NotificationPriority.normal
    payload: Dict[str, Any] = Field(
        default_factory=dict, validation_alias=AliasChoices("payload", "data")
    )
    recipient_user_id: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("recipient_user_id", "recipientUserId", "userId"),
    )
    tag: Optional[str] = None
    actions: List[NotificationAction] = Field(default_factory=list)
    image: Optional[str] = None
    icon: Optional[str] = None
    badge: Optional[str] = None
    vibrate: Optional[List[int]] = None
    require_interaction: bool = Field(
        False,
        validation_alias=AliasChoices("require_interaction", "requireInteraction"),
    )
    silent: bool = False

    class Config:
        populate_by_name = True
        extra = "forbid"

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("title must not be empty")
        return v

    @model_validator(mode="after")
    def _default_tag(self) -> "NotificationRequest":
        # Same category and recipient collapse into one shown notification
        if not self.tag:
            self.tag = f"{self.category.value}_{self.recipient_user_id or 'system'}"
        return self


class QueuedNotification(BaseModel):
    id: str = Field(default_factory=generate_notification_id)
    request: NotificationRequest
    enqueued_at: datetime
    timestamp: int

    @property
    def category(self) -> NotificationCategory:
        return self.request.category


class DoNotDisturb(BaseModel):
    enabled: bool = False
    start_hour: int = Field(22, ge=0, le=23)
    end_hour: int = Field(8, ge=0, le=23)


def _all_categories_enabled() -> Dict[NotificationCategory, bool]:
    return {c: True for c in NotificationCategory}


class NotificationPreferences(BaseModel):
    category_enabled: Dict[NotificationCategory, bool] = Field(
        default_factory=_all_categories_enabled
    )
    do_not_disturb: DoNotDisturb = Field(default_factory=DoNotDisturb)


class NotificationOptions(BaseModel):
    body: str
    icon: str
    badge: str
    vibrate: List[int] = Field(default_factory=list)
    actions: List[NotificationAction] = Field(default_factory=list)
    image: Optional[str] = None
    require_interaction: bool = False
    silent: bool = False
    data: Dict[str, Any] = Field(default_factory=dict)


class DeliveredNotification(BaseModel):
    id: str
    title: str
    category: NotificationCategory
    tag: str
    renotify: bool = False
    summary: bool = False
    options: NotificationOptions


class HistoryStatus(str, Enum):
    delivered = "delivered"
    queued = "queued"
    suppressed = "suppressed"
    rejected = "rejected"


class HistoryEntry(BaseModel):
    id: str
    status: HistoryStatus
    category: Optional[str] = None
    priority: Optional[str] = None
    title: Optional[str] = None
    tag: Optional[str] = None
    recipient_user_id: Optional[str] = None
    timestamp: datetime
    reason: Optional[str] = None


class NotificationInteraction(BaseModel):
    """A click on a shown notification, or on one of its action buttons."""

    action: Optional[str] = None
    data: Dict[str, Any] = Field(default_factory=dict)


class DoNotDisturbUpdate(BaseModel):
    enabled: Optional[bool] = None
    start_hour: Optional[int] = Field(
        None, ge=0, le=23, validation_alias=AliasChoices("start_hour", "startHour")
    )
    end_hour: Optional[int] = Field(
        None, ge=0, le=23, validation_alias=AliasChoices("end_hour", "endHour")
    )

    class Config:
        populate_by_name = True
        extra = "forbid"


class PreferencesUpdate(BaseModel):
    """Partial preferences; only the keys that were sent are applied."""

    category_enabled: Dict[NotificationCategory, bool] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("category_enabled", "categoryEnabled"),
    )
    do_not_disturb: Optional[DoNotDisturbUpdate] = Field(
        None, validation_alias=AliasChoices("do_not_disturb", "doNotDisturb")
    )

    class Config:
        populate_by_name = True
        extra = "forbid"
