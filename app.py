"""
app.py
──────
Wastewater Alert Engine: Application Entry Point.

Startup sequence:
  1. Configure logging
  2. Initialize SQLite DB and seed devices + simulated history
  3. Build push/email transports from settings (dry-run when unconfigured)
  4. Start alert monitoring for every known device
  5. Feed simulated readings until Ctrl-C, then shut down cleanly
"""
import asyncio
import logging

from config.settings import settings
from src.analytics.thresholds import snapshot_status
from src.data.directory import SqliteDirectory
from src.data.simulator import run_simulation
from src.data.store import SqliteAlertStore, get_latest, initialize_db
from src.monitoring.feed import InMemoryFeed
from src.monitoring.monitor import AlertMonitor
from src.notifications.dispatcher import NotificationDispatcher
from src.notifications.transports import HttpPushTransport, SmtpEmailTransport

logger = logging.getLogger("wastewater")


def build_dispatcher(directory: SqliteDirectory) -> NotificationDispatcher:
    push = HttpPushTransport(
        url=settings.PUSH_GATEWAY_URL,
        server_key=settings.PUSH_SERVER_KEY,
        timeout_seconds=settings.PUSH_TIMEOUT_S,
    )
    email = SmtpEmailTransport(
        smtp_host=settings.SMTP_HOST,
        smtp_port=settings.SMTP_PORT,
        sender=settings.EMAIL_FROM,
        username=settings.SMTP_USERNAME,
        password=settings.SMTP_PASSWORD,
        use_tls=settings.SMTP_USE_TLS,
    )
    return NotificationDispatcher(directory, push=push, email=email)


async def log_device_status(device_id: str) -> None:
    snapshot = await asyncio.to_thread(get_latest, device_id)
    if snapshot is None:
        return
    flagged = {p.value: s for p, s in snapshot_status(snapshot).items() if s != "ok"}
    if flagged:
        logger.info("Device %s out of range: %s", device_id, ", ".join(f"{p}={s}" for p, s in flagged.items()))
    else:
        logger.info("Device %s: all parameters in range", device_id)


async def watch_devices(monitor: AlertMonitor, stop: asyncio.Event) -> None:
    """Periodic offline check and per-device status line."""
    while not stop.is_set():
        offline = set(monitor.offline_devices())
        for device_id in monitor.registry.device_ids():
            if device_id in offline:
                logger.warning("Device %s is offline (no data for %.0fs)", device_id, monitor.offline_after_seconds)
            else:
                await log_device_status(device_id)
        try:
            await asyncio.wait_for(stop.wait(), timeout=monitor.offline_after_seconds)
        except TimeoutError:
            pass


async def main() -> None:
    # ── 2. Seed database ──────────────────────────────────────────────────────
    logger.info("Initializing database and seeding simulation data...")
    await asyncio.to_thread(initialize_db)
    logger.info("Database ready.")

    # ── 3. Wiring ─────────────────────────────────────────────────────────────
    directory = SqliteDirectory()
    feed = InMemoryFeed()
    monitor = AlertMonitor(feed, directory, SqliteAlertStore(), build_dispatcher(directory))

    # ── 4. Monitoring ─────────────────────────────────────────────────────────
    await monitor.start_all()

    # ── 5. Run ────────────────────────────────────────────────────────────────
    stop = asyncio.Event()
    try:
        await asyncio.gather(
            run_simulation(feed, monitor.registry.device_ids(), stop),
            watch_devices(monitor, stop),
        )
    finally:
        stop.set()
        await monitor.shutdown()
        logger.info("Shutdown complete.")


if __name__ == "__main__":
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
