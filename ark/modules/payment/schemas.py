"""Pydantic v2 schemas for payment endpoints."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from ark.models.enums import PaymentStatus


class PaymentCreate(BaseModel):
    total_amount: int = Field(..., gt=0, description="Amount in cents")
    square_invoice_id: str | None = Field(None, max_length=255)
    public_payment_url: str | None = None


class PaymentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    order_id: uuid.UUID
    payment_number: str
    status: PaymentStatus
    total_amount: int
    paid_amount: int
    square_invoice_id: str | None = None
    public_payment_url: str | None = None
    sent_at: datetime | None = None
    viewed_at: datetime | None = None
    paid_at: datetime | None = None
    canceled_at: datetime | None = None
    created_at: datetime


class WebhookAck(BaseModel):
    received: bool = True
    processed: bool
    duplicate: bool
    payment_id: str | None = None
