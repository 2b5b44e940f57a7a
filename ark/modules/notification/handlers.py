"""Outbox handler that delivers queued order-status emails."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from ark.modules.notification.service import NotificationService
from ark.modules.notification.transport import get_email_transport
from ark.modules.notification.trigger import NotificationPayload


async def send_status_notification(session: AsyncSession, payload: dict) -> None:
    transport = get_email_transport()
    try:
        await NotificationService(session, transport).send_payload(
            NotificationPayload.from_dict(payload)
        )
    finally:
        await transport.close()
