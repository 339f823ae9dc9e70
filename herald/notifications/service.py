"""
Notification dispatch service.

Responsibilities:
- Validate NotificationRequest and apply per-user preferences / do-not-disturb
- Deliver high priority notifications immediately
- Batch normal/low priority notifications and collapse them per category
- Decode push-transport payloads into ordinary sends
- Route user interactions with shown notifications
- Keep a bounded in-memory history (resets on restart)
- Emit Prometheus metrics
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from datetime import datetime
from typing import Any, Callable, Deque, Dict, List, Mapping, Optional, Union
from uuid import uuid4

from pydantic import ValidationError

from herald.config.settings import DispatcherConfig
from herald.monitoring.metrics import (
    batch_flushes_total,
    batch_queue_depth,
    notifications_accepted_total,
    notifications_delivered_total,
    notifications_display_failures_total,
    notifications_rejected_total,
    notifications_requests_total,
    notifications_send_latency,
    notifications_suppressed_total,
    push_decode_failures_total,
)
from .batching import BatchQueue, FlushTrigger, Sleeper, group_by_category
from .models import (
    MAX_ACTIONS,
    DeliveredNotification,
    HistoryEntry,
    HistoryStatus,
    NotificationCategory,
    NotificationInteraction,
    NotificationOptions,
    NotificationPreferences,
    NotificationPriority,
    NotificationRequest,
    QueuedNotification,
    category_title,
    generate_notification_id,
)
from .preferences import PreferenceGate, PreferenceStore
from .push import PushDecodeError, PushPayload, decode_push_payload
from .routing import InteractionRouter, MessageActions
from .sinks import DeliverySink, InMemorySink

logger = logging.getLogger(__name__)

RequestLike = Union[NotificationRequest, Mapping[str, Any]]


def _validation_reason(e: ValidationError) -> str:
    errors = e.errors()
    if not errors:
        return "invalid"
    first = errors[0]
    loc = ".".join(str(p) for p in first.get("loc", ())) or "request"
    return f"{loc}: {first.get('msg', 'invalid')}"


def _epoch_ms(dt: datetime) -> int:
    return int(dt.timestamp() * 1000)


class NotificationDispatcher:
    def __init__(
        self,
        sink: Optional[DeliverySink] = None,
        preferences: Optional[PreferenceStore] = None,
        config: Optional[DispatcherConfig] = None,
        *,
        clock: Callable[[], datetime] = datetime.now,
        sleep: Optional[Sleeper] = None,
        actions: Optional[MessageActions] = None,
    ) -> None:
        self.config = config or DispatcherConfig()
        self.sink: DeliverySink = sink if sink is not None else InMemorySink()
        self.preferences = preferences if preferences is not None else PreferenceStore()
        self.gate = PreferenceGate(self.preferences, clock)
        self._clock = clock
        self._sleep: Sleeper = sleep or asyncio.sleep
        self.queue = BatchQueue(
            self._deliver_batch,
            batch_size=self.config.batch_size,
            batch_delay_ms=self.config.batch_delay_ms,
            sleep=self._sleep,
        )
        self.router = InteractionRouter(self.sink.open_window, actions)
        self._history: Deque[HistoryEntry] = deque(maxlen=self.config.history_limit)
        self._scheduled: Dict[str, asyncio.Task] = {}
        self._badge_count = 0
        self._running = False
        self.sink.on_user_interaction(self.on_notification_clicked)

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        logger.info(
            "Notification dispatcher started (batch_size=%s, batch_delay_ms=%s)",
            self.config.batch_size,
            self.config.batch_delay_ms,
        )

    async def stop(self) -> None:
        """Deliver whatever is still queued and cancel scheduled sends."""
        tasks = list(self._scheduled.values())
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._scheduled.clear()
        await self.queue.flush(FlushTrigger.manual.value)
        await self.queue.close()
        self._running = False
        logger.info("Notification dispatcher stopped")

    # Sending

    async def send_notification(self, request: RequestLike) -> bool:
        """Accept ``request`` for delivery.

        Returns False when the request is invalid or suppressed by the
        recipient's preferences; the two cases differ only in history.
        """
        start = time.perf_counter()
        req = self._validate(request)
        if req is None:
            return False

        notifications_requests_total.labels(category=req.category.value).inc()
        reason = self.gate.check(req.category, req.priority, req.recipient_user_id)
        if reason is not None:
            notifications_suppressed_total.labels(reason=reason).inc()
            logger.info(
                "Notification suppressed: category=%s priority=%s user=%s reason=%s",
                req.category.value,
                req.priority.value,
                req.recipient_user_id,
                reason,
            )
            self._record(
                HistoryStatus.suppressed,
                generate_notification_id(),
                req.category.value,
                req.priority.value,
                req.title,
                req.tag,
                req.recipient_user_id,
                reason=reason,
            )
            return False

        now = self._clock()
        queued = QueuedNotification(request=req, enqueued_at=now, timestamp=_epoch_ms(now))

        if req.priority == NotificationPriority.high:
            await self._display(self._build_single(queued), kind="immediate")
            status = HistoryStatus.delivered
            notifications_accepted_total.labels(path="immediate").inc()
        else:
            await self.queue.enqueue(queued)
            status = HistoryStatus.queued
            notifications_accepted_total.labels(path="batched").inc()

        self._record(
            status,
            queued.id,
            req.category.value,
            req.priority.value,
            req.title,
            req.tag,
            req.recipient_user_id,
        )
        batch_queue_depth.set(len(self.queue))
        notifications_send_latency.observe(time.perf_counter() - start)
        return True

    async def flush(self) -> int:
        """Flush the batch queue now; returns the number of deliveries."""
        return await self.queue.flush(FlushTrigger.manual.value)

    async def schedule_notification(self, request: RequestLike, at: datetime) -> str:
        """Send ``request`` at ``at`` (immediately if already past).

        Scheduled sends live in memory only and are cancelled by ``stop``.
        """
        sid = f"sched_{uuid4().hex[:12]}"
        now = self._clock()
        if at.tzinfo is not None and now.tzinfo is None:
            now = now.astimezone()
        elif at.tzinfo is None and now.tzinfo is not None:
            at = at.astimezone(now.tzinfo)
        delay = max(0.0, (at - now).total_seconds())
        self._scheduled[sid] = asyncio.create_task(self._send_later(sid, request, delay))
        logger.info("Notification %s scheduled for %s", sid, at.isoformat())
        return sid

    def scheduled_ids(self) -> List[str]:
        return list(self._scheduled.keys())

    # Inbound events

    async def on_push_received(self, payload: PushPayload) -> bool:
        """Handle a push-transport event; never raises to the transport."""
        try:
            fields = decode_push_payload(payload)
        except PushDecodeError as e:
            push_decode_failures_total.inc()
            logger.error("Failed to parse push data: %s", e)
            return False
        if fields is None:
            return False
        return await self.send_notification(fields)

    async def on_notification_clicked(
        self, interaction: Union[NotificationInteraction, Mapping[str, Any]]
    ) -> Optional[str]:
        """Route a click; returns the navigation target, if any."""
        try:
            if not isinstance(interaction, NotificationInteraction):
                interaction = NotificationInteraction.model_validate(dict(interaction))
            return await self.router.handle(interaction)
        except Exception as e:  # noqa: BLE001
            logger.error("Notification interaction error: %s", e)
            return None

    # Preferences

    def get_preferences(self, user_id: str) -> Optional[NotificationPreferences]:
        return self.preferences.get(user_id)

    def update_preferences(
        self, user_id: str, partial: Mapping[str, Any]
    ) -> NotificationPreferences:
        return self.preferences.update(user_id, partial)

    # Surface management

    async def clear_all(self) -> None:
        """Dismiss every shown notification and reset the badge."""
        try:
            await self.sink.clear_all()
        except Exception as e:  # noqa: BLE001
            logger.error("Clear notifications error: %s", e)
        self._badge_count = 0
        await self._update_badge(0)
        logger.info("All notifications cleared")

    def get_history(self, limit: int = 50) -> List[HistoryEntry]:
        if limit <= 0:
            return []
        return list(self._history)[-limit:]

    @property
    def pending(self) -> int:
        return len(self.queue)

    # Internals

    def _validate(self, request: Any) -> Optional[NotificationRequest]:
        if isinstance(request, NotificationRequest):
            return request
        if not isinstance(request, Mapping):
            self._reject({}, f"unsupported request type {type(request).__name__}")
            return None
        raw = dict(request)
        try:
            return NotificationRequest.model_validate(raw)
        except ValidationError as e:
            self._reject(raw, _validation_reason(e))
            return None

    def _reject(self, raw: Dict[str, Any], reason: str) -> None:
        def _str_or_none(*keys: str) -> Optional[str]:
            v = next((raw[k] for k in keys if raw.get(k) is not None), None)
            return None if v is None else str(v)

        notifications_rejected_total.inc()
        logger.warning("Notification rejected: %s", reason)
        self._record(
            HistoryStatus.rejected,
            generate_notification_id(),
            _str_or_none("category"),
            _str_or_none("priority"),
            _str_or_none("title"),
            _str_or_none("tag"),
            _str_or_none("recipient_user_id", "recipientUserId", "userId"),
            reason=reason,
        )

    def _build_single(self, queued: QueuedNotification) -> DeliveredNotification:
        req = queued.request
        data = {
            **req.payload,
            "category": req.category.value,
            "priority": req.priority.value,
            "timestamp": queued.timestamp,
            "notificationId": queued.id,
        }
        options = NotificationOptions(
            body=req.body,
            icon=req.icon or self.config.icon,
            badge=req.badge or self.config.badge,
            vibrate=list(req.vibrate if req.vibrate is not None else self.config.vibrate),
            actions=req.actions[:MAX_ACTIONS],
            image=req.image,
            require_interaction=req.require_interaction,
            silent=req.silent,
            data=data,
        )
        return DeliveredNotification(
            id=queued.id,
            title=req.title,
            category=req.category,
            tag=req.tag,
            renotify=req.category == NotificationCategory.security,
            options=options,
        )

    def _build_summary(
        self, category: NotificationCategory, items: List[QueuedNotification]
    ) -> DeliveredNotification:
        count = len(items)
        body = f"{count} new {category.value} notifications"
        return DeliveredNotification(
            id=generate_notification_id(),
            title=category_title(category),
            category=category,
            tag=f"{category.value}_summary",
            summary=True,
            options=NotificationOptions(
                body=body,
                icon=self.config.icon,
                badge=self.config.badge,
                vibrate=list(self.config.vibrate),
                data={
                    "type": "summary",
                    "category": category.value,
                    "count": count,
                    "itemIds": [i.id for i in items],
                },
            ),
        )

    async def _deliver_batch(self, batch: List[QueuedNotification], trigger: str) -> int:
        batch_flushes_total.labels(trigger=trigger).inc()
        batch_queue_depth.set(len(self.queue))
        delivered = 0
        for category, items in group_by_category(batch).items():
            if len(items) == 1:
                await self._display(self._build_single(items[0]), kind="single")
            else:
                await self._display(self._build_summary(category, items), kind="summary")
            delivered += 1
        logger.debug(
            "Batch flushed: trigger=%s items=%s deliveries=%s",
            trigger,
            len(batch),
            delivered,
        )
        return delivered

    async def _display(self, notification: DeliveredNotification, kind: str) -> bool:
        try:
            await self.sink.display(notification)
        except Exception as e:  # noqa: BLE001
            notifications_display_failures_total.inc()
            logger.error("Notification display failed: tag=%s error=%s", notification.tag, e)
            return False
        notifications_delivered_total.labels(kind=kind).inc()
        self._badge_count += 1
        await self._update_badge(self._badge_count)
        return True

    async def _update_badge(self, count: int) -> None:
        try:
            await self.sink.set_badge(count)
        except Exception as e:  # noqa: BLE001
            logger.debug("Update badge error: %s", e)

    async def _send_later(self, sid: str, request: RequestLike, delay: float) -> None:
        try:
            await self._sleep(delay)
        except asyncio.CancelledError:
            return
        self._scheduled.pop(sid, None)
        await self.send_notification(request)

    def _record(
        self,
        status: HistoryStatus,
        nid: str,
        category: Optional[str],
        priority: Optional[str],
        title: Optional[str],
        tag: Optional[str],
        recipient_user_id: Optional[str],
        reason: Optional[str] = None,
    ) -> None:
        self._history.append(
            HistoryEntry(
                id=nid,
                status=status,
                category=category,
                priority=priority,
                title=title,
                tag=tag,
                recipient_user_id=recipient_user_id,
                timestamp=self._clock(),
                reason=reason,
            )
        )
