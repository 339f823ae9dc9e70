import asyncio
from datetime import datetime, timedelta
from typing import List, Tuple

from herald.notifications.sinks import InMemorySink


async def settle(rounds: int = 20) -> None:
    """Let pending tasks run until they block again."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class VirtualClock:
    """Callable clock plus sleeper whose time only moves on ``advance``."""

    def __init__(self, start: datetime) -> None:
        self.now = start
        self._waiters: List[Tuple[datetime, asyncio.Future]] = []

    def __call__(self) -> datetime:
        return self.now

    async def sleep(self, delay: float) -> None:
        fut = asyncio.get_running_loop().create_future()
        self._waiters.append((self.now + timedelta(seconds=delay), fut))
        await fut

    async def advance(self, seconds: float) -> None:
        await settle()
        self.now += timedelta(seconds=seconds)
        due = [w for w in self._waiters if w[0] <= self.now]
        self._waiters = [w for w in self._waiters if w[0] > self.now]
        for _, fut in due:
            if not fut.done():
                fut.set_result(None)
        await settle()


class FailingSink(InMemorySink):
    async def display(self, notification) -> None:
        raise RuntimeError("worker unavailable")

    async def set_badge(self, count: int) -> None:
        raise RuntimeError("badge api unavailable")
