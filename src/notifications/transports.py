"""
src/notifications/transports.py
───────────────────────────────
Outbound notification transports.

  - PushTransport.send(tokens, title, body, data)  → PushResult
  - EmailTransport.send(addresses, subject, html)  → DeliveryResult

Transports never raise for delivery problems; failures come back in the
result. Both accept an empty recipient list and return immediately without
touching the network.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from email.message import EmailMessage

import aiosmtplib
import httpx


@dataclass
class PushResult:
    success_count: int = 0
    failure_count: int = 0
    error_message: str | None = None

    @property
    def success(self) -> bool:
        return self.failure_count == 0 and self.error_message is None


@dataclass
class DeliveryResult:
    success: bool
    response_code: int | None = None
    error_message: str | None = None


class PushTransport(ABC):
    @property
    def configured(self) -> bool:
        return True

    @abstractmethod
    async def send(self, tokens: list[str], title: str, body: str, data: dict[str, str]) -> PushResult:
        ...


class EmailTransport(ABC):
    @property
    def configured(self) -> bool:
        return True

    @abstractmethod
    async def send(self, addresses: list[str], subject: str, html_body: str) -> DeliveryResult:
        ...


class HttpPushTransport(PushTransport):
    """
    Multicast push through an HTTP gateway.

    Posts {"tokens", "notification": {"title", "body"}, "data"} and reads
    per-token counts from the {"success": n, "failure": m} response. A
    response without counts is taken as delivered to every token.
    """

    def __init__(
        self,
        url: str,
        server_key: str = "",
        timeout_seconds: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.url = url
        self.server_key = server_key
        self.timeout_seconds = timeout_seconds
        self._client = client

    @property
    def configured(self) -> bool:
        return bool(self.url)

    async def send(self, tokens: list[str], title: str, body: str, data: dict[str, str]) -> PushResult:
        if not tokens:
            return PushResult()

        payload = {
            "tokens": tokens,
            "notification": {"title": title, "body": body},
            "data": data,
        }
        headers = {"Authorization": f"key={self.server_key}"} if self.server_key else {}

        try:
            if self._client is not None:
                response = await self._client.post(self.url, json=payload, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                    response = await client.post(self.url, json=payload, headers=headers)
            response.raise_for_status()
        except httpx.TimeoutException:
            return PushResult(failure_count=len(tokens), error_message="Request timed out")
        except httpx.HTTPStatusError as e:
            return PushResult(failure_count=len(tokens), error_message=str(e))
        except httpx.RequestError as e:
            return PushResult(failure_count=len(tokens), error_message=str(e))

        try:
            counts = response.json()
        except ValueError:
            counts = {}
        if not isinstance(counts, dict):
            counts = {}
        try:
            succeeded = int(counts.get("success", len(tokens)))
            failed = int(counts.get("failure", len(tokens) - succeeded))
        except (TypeError, ValueError):
            return PushResult(failure_count=len(tokens), error_message=f"Malformed gateway response: {counts!r}")
        return PushResult(success_count=succeeded, failure_count=failed)


class SmtpEmailTransport(EmailTransport):
    """SMTP email via aiosmtplib. All addresses go out in one message."""

    def __init__(
        self,
        smtp_host: str,
        smtp_port: int,
        sender: str,
        username: str | None = None,
        password: str | None = None,
        use_tls: bool = True,
    ):
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.sender = sender
        self.username = username
        self.password = password
        self.use_tls = use_tls

    @property
    def configured(self) -> bool:
        return bool(self.smtp_host and self.username and self.password)

    def build_message(self, addresses: list[str], subject: str, html_body: str) -> EmailMessage:
        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = self.sender or self.username or ""
        message["To"] = ", ".join(addresses)
        message.set_content("This alert is best viewed in an HTML-capable mail client.")
        message.add_alternative(html_body, subtype="html")
        return message

    async def send(self, addresses: list[str], subject: str, html_body: str) -> DeliveryResult:
        if not addresses:
            return DeliveryResult(success=True)

        message = self.build_message(addresses, subject, html_body)
        try:
            await aiosmtplib.send(
                message,
                hostname=self.smtp_host,
                port=self.smtp_port,
                username=self.username,
                password=self.password,
                start_tls=self.use_tls,
            )
            return DeliveryResult(success=True, response_code=250)
        except aiosmtplib.SMTPException as e:
            return DeliveryResult(success=False, error_message=str(e))
        except OSError as e:
            return DeliveryResult(success=False, error_message=str(e))
