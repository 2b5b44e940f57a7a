"""Payment bookkeeping driven by payments-provider webhooks."""

from __future__ import annotations

import logging
import secrets
import uuid
from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ark.database.errors import store_errors
from ark.exceptions import ConflictException, NotFoundException, ValidationException
from ark.models.enums import PaymentStatus
from ark.models.order import Order
from ark.models.payment import Payment
from ark.models.payment_webhook_event import PaymentWebhookEvent
from ark.modules.payment.webhook import WebhookEvent

logger = logging.getLogger(__name__)

# Provider invoice status -> local payment status for invoice.updated
_INVOICE_STATUS_MAP: dict[str, PaymentStatus] = {
    "SENT": PaymentStatus.SENT,
    "VIEWED": PaymentStatus.VIEWED,
    "PARTIALLY_PAID": PaymentStatus.PARTIALLY_PAID,
    "PAID": PaymentStatus.PAID,
    "CANCELED": PaymentStatus.CANCELED,
    "REFUNDED": PaymentStatus.REFUNDED,
    "FAILED": PaymentStatus.FAILED,
    "UNPAID": PaymentStatus.PENDING,
}


class PaymentService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_order_payments(self, order_id: uuid.UUID) -> list[Payment]:
        with store_errors("list payments"):
            result = await self.db.execute(
                select(Payment).where(Payment.order_id == order_id).order_by(Payment.created_at.desc())
            )
            return list(result.scalars().all())

    async def create_payment(
        self,
        order_id: uuid.UUID,
        total_amount: int,
        square_invoice_id: str | None = None,
        public_payment_url: str | None = None,
    ) -> Payment:
        if total_amount <= 0:
            raise ValidationException(
                "Payment total must be positive", details=[{"field": "total_amount"}]
            )
        with store_errors("load order"):
            order = (await self.db.execute(select(Order).where(Order.id == order_id))).scalar_one_or_none()
        if order is None:
            raise NotFoundException(f"Order {order_id} not found")

        payment = Payment(
            order_id=order_id,
            payment_number=f"PAY-{datetime.now(UTC):%Y%m%d}-{secrets.token_hex(3).upper()}",
            status=PaymentStatus.DRAFT,
            total_amount=total_amount,
            paid_amount=0,
            square_invoice_id=square_invoice_id,
            public_payment_url=public_payment_url,
        )
        self.db.add(payment)
        with store_errors("create payment"):
            try:
                await self.db.flush()
            except IntegrityError as exc:
                raise ConflictException(
                    f"Invoice {square_invoice_id} is already linked to a payment"
                ) from exc
        order.payment_status = payment.status
        await self.db.flush()
        logger.info("Created payment %s for order %s", payment.payment_number, order.order_number)
        return payment

    async def handle_webhook_event(self, event: WebhookEvent) -> dict:
        """Apply one webhook event. Replays of the same ``event_id`` are no-ops."""
        with store_errors("record webhook event"):
            seen = await self.db.execute(
                select(PaymentWebhookEvent.id).where(PaymentWebhookEvent.event_id == event.event_id)
            )
            if seen.scalar_one_or_none() is not None:
                logger.info("Duplicate webhook event %s ignored", event.event_id)
                return {"processed": False, "duplicate": True, "payment_id": None}

            try:
                async with self.db.begin_nested():
                    self.db.add(PaymentWebhookEvent(
                        event_id=event.event_id,
                        event_type=event.event_type,
                        invoice_id=event.invoice_id,
                        invoice_status=event.invoice_status,
                        payload=event.payload,
                    ))
                    await self.db.flush()
            except IntegrityError:
                logger.info("Concurrent delivery of webhook event %s ignored", event.event_id)
                return {"processed": False, "duplicate": True, "payment_id": None}

        if not event.invoice_id:
            logger.info("Webhook %s carries no invoice id", event.event_id)
            return {"processed": False, "duplicate": False, "payment_id": None}

        with store_errors("load payment"):
            payment = (
                await self.db.execute(
                    select(Payment).where(Payment.square_invoice_id == event.invoice_id)
                )
            ).scalar_one_or_none()
        if payment is None:
            logger.info("No payment for invoice %s; webhook acknowledged", event.invoice_id)
            return {"processed": False, "duplicate": False, "payment_id": None}

        now = datetime.now(UTC)
        changed = self._apply(payment, event, now)
        payment.last_webhook_event_id = event.event_id
        payment.last_webhook_at = now

        with store_errors("update payment"):
            order = (
                await self.db.execute(select(Order).where(Order.id == payment.order_id))
            ).scalar_one_or_none()
            if order is not None:
                order.payment_status = payment.status
            await self.db.flush()

        logger.info(
            "Webhook %s (%s) -> payment %s status %s",
            event.event_id, event.event_type, payment.payment_number, payment.status.value,
        )
        return {"processed": changed, "duplicate": False, "payment_id": str(payment.id)}

    @staticmethod
    def _apply(payment: Payment, event: WebhookEvent, now: datetime) -> bool:
        if event.event_type == "invoice.sent":
            payment.status = PaymentStatus.SENT
            payment.sent_at = payment.sent_at or now
            if event.public_url:
                payment.public_payment_url = event.public_url
        elif event.event_type == "invoice.viewed":
            if payment.status not in {PaymentStatus.PAID, PaymentStatus.PARTIALLY_PAID}:
                payment.status = PaymentStatus.VIEWED
            payment.viewed_at = payment.viewed_at or now
        elif event.event_type == "invoice.payment_made":
            if event.paid_amount is None:
                return False
            payment.paid_amount = event.paid_amount
            if event.paid_amount >= payment.total_amount:
                payment.status = PaymentStatus.PAID
                payment.paid_at = now
            else:
                payment.status = PaymentStatus.PARTIALLY_PAID
        elif event.event_type == "invoice.canceled":
            payment.status = PaymentStatus.CANCELED
            payment.canceled_at = now
        elif event.event_type == "invoice.updated":
            mapped = _INVOICE_STATUS_MAP.get((event.invoice_status or "").upper())
            if mapped is None:
                return False
            payment.status = mapped
        else:
            logger.info("Unhandled webhook event type %s", event.event_type)
            return False
        return True
