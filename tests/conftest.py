from datetime import datetime

import pytest

from herald.config import DispatcherConfig
from herald.notifications.service import NotificationDispatcher
from herald.notifications.sinks import InMemorySink

from support import VirtualClock


@pytest.fixture
def clock() -> VirtualClock:
    return VirtualClock(datetime(2024, 5, 1, 12, 0, 0))


@pytest.fixture
def sink() -> InMemorySink:
    return InMemorySink()


@pytest.fixture
def dispatcher(sink: InMemorySink, clock: VirtualClock) -> NotificationDispatcher:
    return NotificationDispatcher(
        sink=sink,
        config=DispatcherConfig(batch_size=10, batch_delay_ms=5000),
        clock=clock,
        sleep=clock.sleep,
    )
