"""
src/monitoring/monitor.py
─────────────────────────
Alert monitor: turns per-device live feeds into alert records.

Per device:  unmonitored → monitoring → evaluating → monitoring
             monitoring → unmonitored on stop()

  - start()/stop() are idempotent; repeats are logged no-ops.
  - Every update with a fault creates an AlertRecord, appends it to the
    alert store and hands it to the dispatcher. Repeated identical
    violations re-alert unless `cooldown_seconds` > 0, in which case the
    same violation signature (parameter + direction set) is suppressed
    for that long. Normal updates emit nothing.
  - Feed errors are logged and published on `errors`; the device stays
    monitored and evaluation resumes with the next snapshot.
  - An exception while evaluating one update skips that update only.
  - Dispatches run as their own tasks; stopping a device does not cancel
    notifications already issued.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import Protocol

from config.parameters import THRESHOLD_TABLE, Direction, Parameter, ThresholdRule
from config.settings import settings
from src.analytics.diagnosis import diagnose_faults
from src.data.models import AlertRecord, DeviceInfo, DispatchReport, FaultDiagnosisResult, ParameterSnapshot
from src.monitoring.errors import ErrorChannel, ErrorKind, MonitorError
from src.monitoring.feed import LiveFeed
from src.monitoring.sessions import MonitoringRegistry, MonitoringSession, SessionState

logger = logging.getLogger(__name__)


class DeviceDirectory(Protocol):
    async def get_device(self, device_id: str) -> DeviceInfo | None: ...

    async def list_devices(self) -> list[DeviceInfo]: ...


class AlertSink(Protocol):
    async def append(self, record: AlertRecord) -> str: ...


class AlertDispatcher(Protocol):
    async def dispatch(self, record: AlertRecord) -> DispatchReport: ...


Signature = frozenset[tuple[Parameter, Direction]]


class AlertMonitor:
    def __init__(
        self,
        feed: LiveFeed,
        directory: DeviceDirectory,
        alert_store: AlertSink,
        dispatcher: AlertDispatcher | None = None,
        *,
        rules: Mapping[Parameter, ThresholdRule] = THRESHOLD_TABLE,
        cooldown_seconds: float = settings.ALERT_COOLDOWN_SECONDS,
        offline_after_seconds: float = settings.OFFLINE_AFTER_SECONDS,
        registry: MonitoringRegistry | None = None,
        errors: ErrorChannel | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self._feed = feed
        self._directory = directory
        self._store = alert_store
        self._dispatcher = dispatcher
        self._rules = rules
        self.cooldown_seconds = cooldown_seconds
        self.offline_after_seconds = offline_after_seconds
        self.registry = registry if registry is not None else MonitoringRegistry()
        self.errors = errors if errors is not None else ErrorChannel(settings.ERROR_QUEUE_SIZE)
        self._clock = clock or (lambda: datetime.now(tz=UTC))

        self._dispatches: set[asyncio.Task] = set()
        self._last_results: dict[str, FaultDiagnosisResult] = {}
        self._last_alerts: dict[str, tuple[Signature, datetime]] = {}

    # ── Session control ───────────────────────────────────────────────────────

    def start(self, device_id: str) -> bool:
        """Start monitoring a device. False (no-op) if already monitored."""
        if device_id in self.registry:
            logger.info("Alert monitoring already active for device %s", device_id)
            return False

        loop = asyncio.get_running_loop()
        subscription = self._feed.subscribe(device_id)
        session = MonitoringSession(device_id=device_id, subscription=subscription, started_at=self._clock())
        if not self.registry.add(session):
            subscription.close()
            logger.info("Alert monitoring already active for device %s", device_id)
            return False

        session.task = loop.create_task(self._consume(session), name=f"alert-monitor:{device_id}")
        logger.info("Starting alert monitoring for device %s", device_id)
        return True

    def stop(self, device_id: str) -> bool:
        """Stop monitoring a device. False (no-op) if it was not monitored."""
        session = self.registry.remove(device_id)
        if session is None:
            logger.info("No active alert monitoring for device %s", device_id)
            return False

        logger.info("Stopping alert monitoring for device %s", device_id)
        session.state = SessionState.UNMONITORED
        session.subscription.close()
        if session.task is not None and not session.task.done():
            session.task.cancel()
        self._last_alerts.pop(device_id, None)
        self._last_results.pop(device_id, None)
        return True

    async def start_all(self) -> int:
        """Start monitoring every device in the directory. Returns how many started."""
        try:
            devices = await self._directory.list_devices()
        except Exception as exc:
            logger.error("Error starting alert monitoring for all devices: %s", exc)
            self._report("*", ErrorKind.DIRECTORY, f"device listing failed: {exc}")
            return 0

        started = sum(self.start(device.id) for device in devices)
        logger.info("Started alert monitoring for %d devices", started)
        return started

    def stop_all(self) -> int:
        stopped = sum(self.stop(device_id) for device_id in self.registry.device_ids())
        logger.info("Stopped all alert monitoring sessions")
        return stopped

    async def shutdown(self) -> None:
        """Stop every session, wait for the consumers to exit and flush dispatches."""
        tasks = [s.task for s in self.registry.sessions() if s.task is not None]
        self.stop_all()
        await asyncio.gather(*tasks, return_exceptions=True)
        await self.drain()

    async def drain(self) -> None:
        """Wait until every dispatch issued so far has finished."""
        while self._dispatches:
            await asyncio.gather(*list(self._dispatches), return_exceptions=True)

    # ── Introspection ─────────────────────────────────────────────────────────

    def state(self, device_id: str) -> SessionState:
        return self.registry.state(device_id)

    def is_monitoring(self, device_id: str) -> bool:
        return device_id in self.registry

    def last_result(self, device_id: str) -> FaultDiagnosisResult | None:
        return self._last_results.get(device_id)

    def offline_devices(self, now: datetime | None = None) -> list[str]:
        """Monitored devices with no snapshot for more than `offline_after_seconds`."""
        now = now or self._clock()
        offline = []
        for session in self.registry.sessions():
            reference = session.last_seen or session.started_at
            if (now - reference).total_seconds() > self.offline_after_seconds:
                offline.append(session.device_id)
        return offline

    # ── Evaluation ────────────────────────────────────────────────────────────

    async def _consume(self, session: MonitoringSession) -> None:
        device_id = session.device_id
        async for message in session.subscription:
            if message.is_error:
                logger.warning("Error monitoring device %s: %s", device_id, message.error)
                self._report(device_id, ErrorKind.FEED, str(message.error))
                continue

            session.last_seen = self._clock()
            session.updates += 1
            session.state = SessionState.EVALUATING
            try:
                await self.process_snapshot(device_id, message.snapshot)
            except Exception as exc:
                logger.exception("Evaluation failed for device %s; skipping update", device_id)
                self._report(device_id, ErrorKind.EVALUATION, str(exc))
            finally:
                if session.state is SessionState.EVALUATING:
                    session.state = SessionState.MONITORING

    async def process_snapshot(
        self,
        device_id: str,
        snapshot: ParameterSnapshot,
        *,
        notify: bool = True,
    ) -> AlertRecord | None:
        """
        Run one evaluation cycle. Returns the alert created, or None when the
        snapshot is normal or the alert was suppressed by the cooldown.
        """
        result = diagnose_faults(snapshot, self._rules)
        self._last_results[device_id] = result
        if not result.has_fault:
            return None

        now = self._clock()
        signature: Signature = frozenset((f.parameter, f.direction) for f in result.faults)
        if self._in_cooldown(device_id, signature, now):
            logger.info("Suppressing repeated alert for device %s (cooldown %.0fs)", device_id, self.cooldown_seconds)
            return None

        record = AlertRecord(
            device_id=device_id,
            device_name=await self._device_name(device_id),
            violations=result.faults,
            snapshot=snapshot,
            severity=result.severity,
            recommendations=result.recommendations,
            created_at=now,
        )

        try:
            await self._store.append(record)
            logger.info("Alert created with ID: %s (%s, %s)", record.id, device_id, record.severity.value)
        except Exception as exc:
            logger.error("Error creating alert for device %s: %s", device_id, exc)
            self._report(device_id, ErrorKind.STORE, f"alert append failed: {exc}")

        self._last_alerts[device_id] = (signature, now)
        if notify and self._dispatcher is not None:
            self._schedule_dispatch(record)
        return record

    def _in_cooldown(self, device_id: str, signature: Signature, now: datetime) -> bool:
        if self.cooldown_seconds <= 0:
            return False
        last = self._last_alerts.get(device_id)
        if last is None or last[0] != signature:
            return False
        return (now - last[1]).total_seconds() < self.cooldown_seconds

    async def _device_name(self, device_id: str) -> str:
        try:
            device = await self._directory.get_device(device_id)
        except Exception as exc:
            logger.error("Error fetching device details for %s: %s", device_id, exc)
            self._report(device_id, ErrorKind.DIRECTORY, f"device lookup failed: {exc}")
            return device_id
        return device.name if device else device_id

    # ── Dispatch ──────────────────────────────────────────────────────────────

    def _schedule_dispatch(self, record: AlertRecord) -> None:
        task = asyncio.get_running_loop().create_task(self._dispatch(record), name=f"dispatch:{record.id}")
        self._dispatches.add(task)
        task.add_done_callback(self._dispatches.discard)

    async def _dispatch(self, record: AlertRecord) -> None:
        try:
            report = await self._dispatcher.dispatch(record)
        except Exception as exc:
            logger.exception("Dispatch failed for alert %s", record.id)
            self._report(record.device_id, ErrorKind.DISPATCH, f"failed to send: {exc}")
            return
        if not report.success:
            self._report(record.device_id, ErrorKind.DISPATCH, "failed to send")

    def _report(self, device_id: str, kind: ErrorKind, message: str) -> None:
        self.errors.publish(MonitorError(device_id=device_id, kind=kind, message=message, timestamp=self._clock()))
