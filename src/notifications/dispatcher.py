"""
src/notifications/dispatcher.py
───────────────────────────────
Resolve an alert's audience and forward it to the push and email transports.

  - Audience: every user whose preference for the channel is enabled.
    An empty audience is a successful dispatch with zero recipients.
  - Push: one transport call per recipient holding at least one token;
    a failure for one recipient never blocks the others.
  - Email: one transport call for the whole batch of addresses.
  - A missing or unconfigured transport switches that channel to dry-run:
    the would-be message is logged instead of sent.
  - SMS / WhatsApp preferences are stored but have no transport.

dispatch() never raises. Reports carry the generic "failed to send" text;
transport details stay in the log.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Protocol

from config.alerts import NotificationChannel
from src.data.models import AlertRecord, ChannelReport, DispatchReport, UserRecord
from src.notifications.templates import build_push_message, email_subject, render_email_html
from src.notifications.transports import DeliveryResult, EmailTransport, PushTransport

logger = logging.getLogger(__name__)

FAILED_TO_SEND = "failed to send"


class UserDirectory(Protocol):
    async def find_users(self, channel: NotificationChannel) -> list[UserRecord]: ...


class NotificationDispatcher:
    def __init__(
        self,
        directory: UserDirectory,
        push: PushTransport | None = None,
        email: EmailTransport | None = None,
    ):
        self._directory = directory
        self._push = push
        self._email = email

    async def dispatch(self, record: AlertRecord) -> DispatchReport:
        push, email = await asyncio.gather(self.dispatch_push(record), self.dispatch_email(record))
        report = DispatchReport(alert_id=record.id, push=push, email=email)
        logger.info(
            "Alert %s dispatched: push %d/%d, email %d/%d%s",
            record.id,
            push.delivered, push.recipients,
            email.delivered, email.recipients,
            "" if report.success else " (with failures)",
        )
        return report

    async def _audience(self, channel: NotificationChannel) -> list[UserRecord]:
        try:
            return await self._directory.find_users(channel)
        except Exception as exc:
            logger.error("Error resolving %s audience, notifying nobody: %s", channel.value, exc)
            return []

    # ── Push ──────────────────────────────────────────────────────────────────

    async def dispatch_push(self, record: AlertRecord) -> ChannelReport:
        users = [u for u in await self._audience(NotificationChannel.PUSH) if u.fcm_tokens]
        if not users:
            logger.info("No users to notify by push for alert %s", record.id)
            return ChannelReport(channel=NotificationChannel.PUSH)

        title, body, data = build_push_message(record)
        if self._push is None or not self._push.configured:
            logger.info("Push would be sent to %d user(s): %s | %s | %s", len(users), title, body, data)
            return ChannelReport(channel=NotificationChannel.PUSH, recipients=len(users), dry_run=True)

        outcomes = await asyncio.gather(*(self._push_one(u, title, body, data) for u in users))
        delivered = sum(outcomes)
        failed = len(users) - delivered
        return ChannelReport(
            channel=NotificationChannel.PUSH,
            recipients=len(users),
            delivered=delivered,
            failed=failed,
            error=FAILED_TO_SEND if failed else None,
        )

    async def _push_one(self, user: UserRecord, title: str, body: str, data: dict[str, str]) -> bool:
        try:
            result = await self._push.send(user.fcm_tokens, title, body, data)
        except Exception:
            logger.exception("Push transport raised for user %s", user.id)
            return False
        if not result.success:
            logger.warning(
                "Push to user %s failed (%d of %d tokens): %s",
                user.id, result.failure_count, len(user.fcm_tokens), result.error_message,
            )
        return result.success

    # ── Email ─────────────────────────────────────────────────────────────────

    async def dispatch_email(self, record: AlertRecord) -> ChannelReport:
        users = await self._audience(NotificationChannel.EMAIL)
        addresses = list(dict.fromkeys(u.email for u in users if u.email))
        if not addresses:
            logger.info("No email recipients for alert %s", record.id)
            return ChannelReport(channel=NotificationChannel.EMAIL)

        subject = email_subject(record)
        if self._email is None or not self._email.configured:
            logger.info("Email would be sent to %s: %s", ", ".join(addresses), subject)
            return ChannelReport(channel=NotificationChannel.EMAIL, recipients=len(addresses), dry_run=True)

        try:
            result = await self._email.send(addresses, subject, render_email_html(record))
        except Exception as exc:
            logger.exception("Email transport raised for alert %s", record.id)
            result = DeliveryResult(success=False, error_message=str(exc))

        if not result.success:
            logger.error("Error sending email notification: %s", result.error_message)
            return ChannelReport(
                channel=NotificationChannel.EMAIL,
                recipients=len(addresses),
                failed=len(addresses),
                error=FAILED_TO_SEND,
            )
        logger.info("Email notification sent to %d recipients", len(addresses))
        return ChannelReport(channel=NotificationChannel.EMAIL, recipients=len(addresses), delivered=len(addresses))
