"""
src/monitoring/feed.py
──────────────────────
Live reading feed.

A subscription is an explicit channel: an async iterator of FeedMessage
objects with a close() handle. Messages for one device arrive in publish
order; nothing is promised across devices.

InMemoryFeed is the in-process implementation used by the simulator and
the tests. Raw payloads are validated into ParameterSnapshot at publish
time, so consumers never see feed-specific field names.
"""
from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from src.data.models import ParameterSnapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FeedMessage:
    """Either a snapshot or a feed error for one device."""
    device_id: str
    snapshot: ParameterSnapshot | None = None
    error: Exception | None = None
    received_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))

    @property
    def is_error(self) -> bool:
        return self.error is not None


class FeedSubscription(ABC):
    """Handle for one device subscription."""

    def __init__(self, device_id: str):
        self.device_id = device_id
        self.closed = False

    def __aiter__(self) -> FeedSubscription:
        return self

    @abstractmethod
    async def __anext__(self) -> FeedMessage:
        ...

    @abstractmethod
    def close(self) -> None:
        """Stop delivery. Safe to call more than once."""


class LiveFeed(ABC):
    @abstractmethod
    def subscribe(self, device_id: str) -> FeedSubscription:
        ...


# ── In-memory implementation ──────────────────────────────────────────────────

_CLOSED = object()


class _QueueSubscription(FeedSubscription):
    def __init__(self, device_id: str, feed: InMemoryFeed):
        super().__init__(device_id)
        self._feed = feed
        self._queue: asyncio.Queue = asyncio.Queue()

    def _deliver(self, message: FeedMessage) -> None:
        if not self.closed:
            self._queue.put_nowait(message)

    async def __anext__(self) -> FeedMessage:
        if self.closed and self._queue.empty():
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        return item

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._feed._detach(self)
        self._queue.put_nowait(_CLOSED)


class InMemoryFeed(LiveFeed):
    def __init__(self) -> None:
        self._subscribers: dict[str, list[_QueueSubscription]] = defaultdict(list)

    def subscribe(self, device_id: str) -> FeedSubscription:
        subscription = _QueueSubscription(device_id, self)
        self._subscribers[device_id].append(subscription)
        logger.debug("Feed subscription opened for %s", device_id)
        return subscription

    def _detach(self, subscription: _QueueSubscription) -> None:
        listeners = self._subscribers.get(subscription.device_id, [])
        if subscription in listeners:
            listeners.remove(subscription)
        if not listeners:
            self._subscribers.pop(subscription.device_id, None)
        logger.debug("Feed subscription closed for %s", subscription.device_id)

    def subscriber_count(self, device_id: str) -> int:
        return len(self._subscribers.get(device_id, []))

    def publish(self, device_id: str, payload: dict[str, Any] | ParameterSnapshot) -> ParameterSnapshot:
        """Validate a payload and deliver it to every subscriber of `device_id`."""
        if isinstance(payload, ParameterSnapshot):
            snapshot = payload
        else:
            snapshot = ParameterSnapshot.from_feed(device_id, payload)
        message = FeedMessage(device_id=device_id, snapshot=snapshot)
        for subscription in list(self._subscribers.get(device_id, [])):
            subscription._deliver(message)
        return snapshot

    def publish_error(self, device_id: str, error: Exception) -> None:
        """Deliver a connectivity/read error to every subscriber of `device_id`."""
        message = FeedMessage(device_id=device_id, error=error)
        for subscription in list(self._subscribers.get(device_id, [])):
            subscription._deliver(message)
