"""PaymentWebhookEvent model: idempotency ledger for provider webhooks."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from ark.database.base import Base, JSONVariant, UUIDPrimaryKeyMixin, utcnow


class PaymentWebhookEvent(UUIDPrimaryKeyMixin, Base):
    __tablename__ = "payment_webhook_events"

    event_id: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    event_type: Mapped[str] = mapped_column(String(100), nullable=False)
    invoice_id: Mapped[str | None] = mapped_column(String(255))
    invoice_status: Mapped[str | None] = mapped_column(String(50))
    payload: Mapped[dict] = mapped_column(JSONVariant, nullable=False, default=dict)
    received_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    __table_args__ = (Index("ix_payment_webhook_events_invoice_id", "invoice_id"),)
