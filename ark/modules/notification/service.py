"""Notification delivery: sends prepared payloads through an EmailTransport."""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ark.config import settings
from ark.exceptions import DependencyException, NotFoundException
from ark.models.enums import NotificationStatus, OrderStatus
from ark.models.order import Order
from ark.models.quote import Quote
from ark.modules.notification.templates import TEMPLATE_COMPANY_QUOTE
from ark.modules.notification.transport import EmailMessage, EmailResult, EmailTransport
from ark.modules.notification.trigger import (
    NotificationAttachment,
    NotificationPayload,
    build_notification_payload,
    should_notify,
)

logger = logging.getLogger(__name__)


class NotificationService:
    def __init__(self, db: AsyncSession, transport: EmailTransport):
        self.db = db
        self.transport = transport

    async def send_payload(self, payload: NotificationPayload) -> EmailResult:
        message = EmailMessage(
            to=[payload.to],
            subject=payload.subject,
            template_kind=payload.template_kind,
            payload=payload.to_dict(),
            attachment=payload.attachment,
        )
        return await self.transport.send(message)

    async def notify_order_status(
        self,
        order_id: uuid.UUID,
        status: OrderStatus | NotificationStatus | str,
        send_notification: bool,
        attachment: NotificationAttachment | dict | None = None,
    ) -> dict:
        """Email the customer about ``status`` right away (the admin "notify" action)."""
        if not send_notification:
            return {"email_sent": False, "message": "Email notification skipped"}

        result = await self.db.execute(select(Order).where(Order.id == order_id))
        order = result.scalar_one_or_none()
        if order is None:
            raise NotFoundException(f"Order {order_id} not found")

        if not should_notify(order, status, send_notification):
            return {
                "email_sent": False,
                "message": f"No customer email for status '{getattr(status, 'value', status)}'",
            }

        payload = build_notification_payload(order, status, attachment)
        sent = await self.send_payload(payload)
        logger.info("Notified customer of order %s about %s", order.order_number, payload.status)
        return {
            "email_sent": True,
            "message_id": sent.message_id,
            "message": f'Customer notified about "{payload.status}" status',
        }

    async def notify_company_of_quote(self, quote: Quote) -> bool:
        """Alert the company inbox about a new quote. Never raises."""
        if not settings.company_email:
            logger.info("No company inbox configured; skipping alert for quote %s", quote.id)
            return False

        title = (
            f"New quote request - {quote.customer_name}"
            + (f" - {quote.dumpster_size} yard dumpster" if quote.dumpster_size else "")
        )
        message = EmailMessage(
            to=[settings.company_email],
            subject=title,
            template_kind=TEMPLATE_COMPANY_QUOTE,
            payload={
                "title": title,
                "fields": [
                    ("Name", quote.customer_name),
                    ("Email", quote.email),
                    ("Phone", quote.phone),
                    ("Address", ", ".join(p for p in (quote.address, quote.city, quote.state, quote.zip_code) if p)),
                    ("Dumpster size", quote.dumpster_size),
                    ("Drop-off date", quote.dropoff_date.isoformat() if quote.dropoff_date else None),
                    ("Time needed", quote.time_needed),
                    ("Message", quote.message),
                ],
            },
        )
        try:
            await self.transport.send(message)
        except DependencyException:
            logger.exception("Company alert for quote %s failed", quote.id)
            return False
        return True
