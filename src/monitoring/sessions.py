"""
src/monitoring/sessions.py
──────────────────────────
Registry of active monitoring sessions.

One session per device. The registry is owned by an AlertMonitor instance,
so independent monitors never share state. Mutations are guarded by a
lock so the start/stop idempotence checks stay atomic even if the registry
is touched from worker threads.
"""
from __future__ import annotations

import asyncio
import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

from src.monitoring.feed import FeedSubscription


class SessionState(str, Enum):
    UNMONITORED = "unmonitored"
    MONITORING = "monitoring"
    EVALUATING = "evaluating"


@dataclass
class MonitoringSession:
    device_id: str
    subscription: FeedSubscription
    task: asyncio.Task | None = None
    state: SessionState = SessionState.MONITORING
    started_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))
    last_seen: datetime | None = None
    updates: int = 0


class MonitoringRegistry:
    def __init__(self) -> None:
        self._sessions: dict[str, MonitoringSession] = {}
        self._lock = threading.Lock()

    def add(self, session: MonitoringSession) -> bool:
        """Register a session. False if the device is already monitored."""
        with self._lock:
            if session.device_id in self._sessions:
                return False
            self._sessions[session.device_id] = session
            return True

    def remove(self, device_id: str) -> MonitoringSession | None:
        with self._lock:
            return self._sessions.pop(device_id, None)

    def get(self, device_id: str) -> MonitoringSession | None:
        with self._lock:
            return self._sessions.get(device_id)

    def state(self, device_id: str) -> SessionState:
        session = self.get(device_id)
        return session.state if session else SessionState.UNMONITORED

    def device_ids(self) -> list[str]:
        with self._lock:
            return list(self._sessions)

    def sessions(self) -> list[MonitoringSession]:
        with self._lock:
            return list(self._sessions.values())

    def __contains__(self, device_id: object) -> bool:
        with self._lock:
            return device_id in self._sessions

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
