"""
Batching queue for normal and low priority notifications.

Items accumulate until either ``batch_size`` items are queued or
``batch_delay_ms`` elapses after the first item of a cycle, whichever comes
first. Exactly one flush runs per accumulation cycle.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, Dict, Iterable, List, Optional

from .models import NotificationCategory, QueuedNotification

logger = logging.getLogger(__name__)

FlushCallback = Callable[[List[QueuedNotification], str], Awaitable[int]]
Sleeper = Callable[[float], Awaitable[None]]


class BatchState(str, Enum):
    idle = "idle"
    accumulating = "accumulating"
    flushing = "flushing"


class FlushTrigger(str, Enum):
    size = "size"
    timer = "timer"
    manual = "manual"


def group_by_category(
    items: Iterable[QueuedNotification],
) -> Dict[NotificationCategory, List[QueuedNotification]]:
    """Partition ``items`` by category, keeping first-seen category order."""
    grouped: Dict[NotificationCategory, List[QueuedNotification]] = {}
    for item in items:
        grouped.setdefault(item.category, []).append(item)
    return grouped


class BatchQueue:
    """Ordered buffer of queued notifications with size and time triggers.

    ``flush_callback`` receives the drained batch and the trigger name and
    returns the number of deliveries it produced.
    """

    def __init__(
        self,
        flush_callback: FlushCallback,
        *,
        batch_size: int = 10,
        batch_delay_ms: int = 5000,
        sleep: Optional[Sleeper] = None,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self._flush_callback = flush_callback
        self.batch_size = batch_size
        self.batch_delay_ms = batch_delay_ms
        self._sleep: Sleeper = sleep or asyncio.sleep
        self._items: List[QueuedNotification] = []
        self._timer: Optional[asyncio.Task] = None
        self._flushing = 0

    def __len__(self) -> int:
        return len(self._items)

    @property
    def state(self) -> BatchState:
        if self._flushing:
            return BatchState.flushing
        if self._items:
            return BatchState.accumulating
        return BatchState.idle

    @property
    def timer_running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    def pending(self) -> List[QueuedNotification]:
        return list(self._items)

    async def enqueue(self, item: QueuedNotification) -> bool:
        """Queue ``item``; returns True when it triggered a size flush."""
        self._items.append(item)
        if len(self._items) >= self.batch_size:
            await self.flush(FlushTrigger.size.value)
            return True
        if self._timer is None:
            self._timer = asyncio.create_task(self._flush_after_delay())
        return False

    async def flush(self, trigger: str = FlushTrigger.manual.value) -> int:
        """Drain the queue and hand the batch to the flush callback.

        Flushing an empty queue is a no-op and returns 0.
        """
        self._cancel_timer()
        if not self._items:
            return 0
        # Snapshot and clear without yielding to the loop
        batch, self._items = self._items, []
        self._flushing += 1
        try:
            return await self._flush_callback(batch, trigger)
        except Exception as e:  # noqa: BLE001
            logger.exception("Batch flush error (%s items): %s", len(batch), e)
            return 0
        finally:
            self._flushing -= 1

    async def close(self) -> None:
        self._cancel_timer()

    async def _flush_after_delay(self) -> None:
        try:
            await self._sleep(self.batch_delay_ms / 1000.0)
        except asyncio.CancelledError:
            return
        self._timer = None
        await self.flush(FlushTrigger.timer.value)

    def _cancel_timer(self) -> None:
        timer, self._timer = self._timer, None
        if timer is None or timer.done():
            return
        if timer is not asyncio.current_task():
            timer.cancel()
