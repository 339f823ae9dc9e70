"""
Click routing for shown notifications.

A plain click resolves a navigation target from the notification category
and its data. Clicks on action buttons go through a fixed handler table.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Protocol

from .models import NotificationCategory, NotificationInteraction

logger = logging.getLogger(__name__)

DEFAULT_TARGET = "/notifications"


def resolve_target(category: Any, payload: Optional[Mapping[str, Any]]) -> str:
    """Map a notification category and payload to an in-app location."""
    data = payload or {}
    url = data.get("url")
    if url:
        return str(url)

    category = str(getattr(category, "value", category))
    group_id = data.get("groupId")

    if category == NotificationCategory.message.value:
        if group_id:
            return f"/groups/{group_id}"
        if data.get("chatId"):
            return f"/chat/{data['chatId']}"
    elif category == NotificationCategory.group_invite.value:
        if group_id:
            return f"/groups/{group_id}"
    elif category == NotificationCategory.mention.value:
        if group_id and data.get("messageId"):
            return f"/groups/{group_id}?message={data['messageId']}"
        if group_id:
            return f"/groups/{group_id}"
    elif category == NotificationCategory.security.value:
        return "/admin/security"
    return DEFAULT_TARGET


class MessageActions(Protocol):
    async def mark_read(self, message_id: Optional[str]) -> None: ...
    async def accept_invite(
        self, group_id: Optional[str], invite_id: Optional[str]
    ) -> None: ...


class LoggingMessageActions:
    """Default collaborator: records the request in the log only."""

    async def mark_read(self, message_id: Optional[str]) -> None:
        logger.info("Marked message as read: %s", message_id)

    async def accept_invite(
        self, group_id: Optional[str], invite_id: Optional[str]
    ) -> None:
        logger.info("Accepted group invite: group=%s invite=%s", group_id, invite_id)


class InteractionRouter:
    """Turns user interactions into navigation or background actions.

    ``open_window`` is the sink capability that focuses or opens the app at
    a location. Every handler returns the location it navigated to, or None.
    """

    def __init__(
        self,
        open_window: Callable[[str], Awaitable[None]],
        actions: Optional[MessageActions] = None,
    ) -> None:
        self._open_window = open_window
        self.actions: MessageActions = actions or LoggingMessageActions()
        self._handlers: Dict[
            str, Callable[[Dict[str, Any]], Awaitable[Optional[str]]]
        ] = {
            "reply": self._reply,
            "mark_read": self._mark_read,
            "dismiss": self._dismiss,
            "view_group": self._view_group,
            "accept_invite": self._accept_invite,
        }

    @property
    def action_ids(self) -> list[str]:
        return list(self._handlers.keys())

    async def handle(self, interaction: NotificationInteraction) -> Optional[str]:
        data = dict(interaction.data or {})
        if not interaction.action:
            target = resolve_target(data.get("category"), data)
            await self._open_window(target)
            return target

        handler = self._handlers.get(interaction.action)
        if handler is None:
            logger.warning("Unknown notification action: %s", interaction.action)
            return None
        logger.debug("Notification action: %s", interaction.action)
        return await handler(data)

    async def _reply(self, data: Dict[str, Any]) -> Optional[str]:
        target = f"/chat/{data.get('chatId') or data.get('groupId')}?reply=true"
        await self._open_window(target)
        return target

    async def _mark_read(self, data: Dict[str, Any]) -> Optional[str]:
        await self.actions.mark_read(data.get("messageId"))
        return None

    async def _dismiss(self, data: Dict[str, Any]) -> Optional[str]:
        # Notification is already closed by the sink
        return None

    async def _view_group(self, data: Dict[str, Any]) -> Optional[str]:
        target = f"/groups/{data.get('groupId')}"
        await self._open_window(target)
        return target

    async def _accept_invite(self, data: Dict[str, Any]) -> Optional[str]:
        await self.actions.accept_invite(data.get("groupId"), data.get("inviteId"))
        return None
