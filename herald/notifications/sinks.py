"""
Delivery sinks.

A sink owns the notification surface shown to the user. The dispatcher only
needs the capabilities in :class:`DeliverySink`; display is fire-and-forget
from its point of view and sink errors never fail a send.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol

import httpx

from .models import DeliveredNotification, NotificationInteraction

logger = logging.getLogger(__name__)

InteractionCallback = Callable[[NotificationInteraction], Awaitable[Optional[str]]]


class DeliveryError(Exception):
    """Raised by a sink when a worker message could not be handed over."""


class DeliverySink(Protocol):
    async def display(self, notification: DeliveredNotification) -> None: ...
    async def set_badge(self, count: int) -> None: ...
    async def clear_all(self) -> None: ...
    async def open_window(self, url: str) -> None: ...
    def on_user_interaction(self, callback: InteractionCallback) -> None: ...


class InMemorySink:
    """Sink that keeps shown notifications in memory (dry-run and tests).

    Notifications sharing a tag replace each other in ``shown``, the way an
    OS notification centre collapses them; ``displayed`` keeps every display.
    """

    def __init__(self) -> None:
        self.shown: List[DeliveredNotification] = []
        self.displayed: List[DeliveredNotification] = []
        self.opened: List[str] = []
        self.badge: Optional[int] = None
        self._callback: Optional[InteractionCallback] = None

    async def display(self, notification: DeliveredNotification) -> None:
        self.shown = [n for n in self.shown if n.tag != notification.tag]
        self.shown.append(notification)
        self.displayed.append(notification)

    async def set_badge(self, count: int) -> None:
        self.badge = count

    async def clear_all(self) -> None:
        self.shown.clear()

    async def open_window(self, url: str) -> None:
        self.opened.append(url)

    def on_user_interaction(self, callback: InteractionCallback) -> None:
        self._callback = callback

    async def click(self, tag: str, action: Optional[str] = None) -> Optional[str]:
        """Simulate the user clicking the shown notification with ``tag``."""
        match = next((n for n in self.shown if n.tag == tag), None)
        if match is None:
            raise KeyError(f"No shown notification with tag {tag}")
        self.shown.remove(match)
        if self._callback is None:
            return None
        return await self._callback(
            NotificationInteraction(action=action, data=dict(match.options.data))
        )


class WebhookSink:
    """Posts worker messages to a background delivery worker over HTTP.

    Message types mirror the worker protocol: ``SHOW_NOTIFICATION``,
    ``CLEAR_NOTIFICATIONS``, ``UPDATE_BADGE`` and ``OPEN_WINDOW``.
    """

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        if not url:
            raise ValueError("webhook url is required")
        self.url = url
        self.timeout = timeout
        self._client = client
        self._callback: Optional[InteractionCallback] = None

    async def display(self, notification: DeliveredNotification) -> None:
        await self._post(
            {
                "type": "SHOW_NOTIFICATION",
                "notification": notification.model_dump(mode="json"),
            }
        )

    async def set_badge(self, count: int) -> None:
        await self._post({"type": "UPDATE_BADGE", "count": int(count)})

    async def clear_all(self) -> None:
        await self._post({"type": "CLEAR_NOTIFICATIONS"})

    async def open_window(self, url: str) -> None:
        await self._post({"type": "OPEN_WINDOW", "url": url})

    def on_user_interaction(self, callback: InteractionCallback) -> None:
        # Interactions arrive through the HTTP surface; kept for parity
        self._callback = callback

    async def _post(self, message: Dict[str, Any]) -> None:
        try:
            if self._client is not None:
                resp = await self._client.post(self.url, json=message)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    resp = await client.post(self.url, json=message)
        except httpx.HTTPError as e:
            raise DeliveryError(f"{message['type']} failed: {e}") from e
        if resp.status_code >= 400:
            logger.info(
                "worker message rejected: type=%s status=%s",
                message["type"],
                resp.status_code,
            )
            raise DeliveryError(
                f"{message['type']} rejected with status {resp.status_code}"
            )
