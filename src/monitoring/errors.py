"""
src/monitoring/errors.py
────────────────────────
Error records published by the alert monitor and the bounded channel
they travel on.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum


class ErrorKind(str, Enum):
    FEED = "feed"
    EVALUATION = "evaluation"
    STORE = "store"
    DIRECTORY = "directory"
    DISPATCH = "dispatch"


@dataclass(frozen=True)
class MonitorError:
    device_id: str
    kind: ErrorKind
    message: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(tz=UTC))


class ErrorChannel:
    """
    Bounded queue of MonitorError records.

    When full, the oldest record is dropped so the newest failure is always
    observable and publishing never blocks the monitor.
    """

    def __init__(self, maxsize: int = 100):
        self._queue: asyncio.Queue[MonitorError] = asyncio.Queue(maxsize=maxsize)
        self.dropped = 0

    def publish(self, error: MonitorError) -> None:
        try:
            self._queue.put_nowait(error)
        except asyncio.QueueFull:
            self._queue.get_nowait()
            self.dropped += 1
            self._queue.put_nowait(error)

    async def get(self) -> MonitorError:
        return await self._queue.get()

    def get_nowait(self) -> MonitorError:
        return self._queue.get_nowait()

    def drain(self) -> list[MonitorError]:
        """Take every pending record without waiting."""
        errors: list[MonitorError] = []
        while not self._queue.empty():
            errors.append(self._queue.get_nowait())
        return errors

    def __len__(self) -> int:
        return self._queue.qsize()
