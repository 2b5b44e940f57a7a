"""Email transport adapters."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

import httpx

from ark.config import settings
from ark.exceptions import DependencyException
from ark.modules.notification.templates import render
from ark.modules.notification.trigger import NotificationAttachment

logger = logging.getLogger(__name__)


@dataclass
class EmailMessage:
    to: list[str]
    subject: str
    template_kind: str
    payload: dict = field(default_factory=dict)
    attachment: NotificationAttachment | None = None


@dataclass
class EmailResult:
    success: bool
    message_id: str | None = None
    error: str | None = None


class EmailTransport(ABC):
    """Sends one rendered email. Implementations raise ``DependencyException`` on failure."""

    @abstractmethod
    async def send(self, message: EmailMessage) -> EmailResult: ...

    async def close(self) -> None:
        return None


class ResendEmailTransport(EmailTransport):
    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        sender: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.resend_api_key
        self.base_url = base_url or settings.resend_base_url
        self.sender = sender or settings.email_from
        self.timeout = timeout or settings.email_timeout_seconds
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout)
        return self._client

    def _build_body(self, message: EmailMessage) -> dict:
        body = {
            "from": self.sender,
            "to": message.to,
            "subject": message.subject,
            "html": render(message.template_kind, message.payload),
        }
        if message.attachment is not None:
            body["attachments"] = [{
                "filename": message.attachment.filename,
                "content": message.attachment.content,
                "content_type": message.attachment.content_type,
            }]
        return body

    async def send(self, message: EmailMessage) -> EmailResult:
        if not self.api_key:
            raise DependencyException("Email transport is not configured")

        client = await self._get_client()
        try:
            response = await client.post(
                "/emails",
                json=self._build_body(message),
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
        except httpx.TimeoutException as exc:
            logger.warning("Email send to %s timed out after %.1fs", message.to, self.timeout)
            raise DependencyException("Email provider timed out") from exc
        except httpx.RequestError as exc:
            logger.warning("Email send to %s failed: %s", message.to, exc)
            raise DependencyException("Email provider unreachable") from exc

        if response.status_code >= 400:
            logger.warning(
                "Email provider returned %d for %s: %s",
                response.status_code, message.to, response.text[:500],
            )
            raise DependencyException(
                f"Email provider rejected the message ({response.status_code})",
                details=[{"status_code": response.status_code}],
            )

        # The provider accepted the message; an unreadable receipt must not trigger a resend
        try:
            receipt = response.json()
        except ValueError:
            logger.warning("Email provider returned a non-JSON receipt for %s", message.to)
            receipt = None
        message_id = receipt.get("id") if isinstance(receipt, dict) else None
        logger.info("Sent %s email to %s (id=%s)", message.template_kind, message.to, message_id)
        return EmailResult(success=True, message_id=message_id)

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()


def get_email_transport() -> EmailTransport:
    """FastAPI dependency / worker factory for the configured transport."""
    return ResendEmailTransport()
