"""Pydantic v2 schemas for order management endpoints."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from ark.models.enums import (
    OrderServiceStatus,
    OrderStatus,
    PaymentStatus,
    Priority,
)
from ark.modules.dumpster.schemas import DumpsterResponse

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class ServiceSelectionIn(BaseModel):
    service_id: uuid.UUID
    quantity: int = 1
    unit_price: Decimal | None = None
    service_date: date | None = None
    notes: str | None = None
    invoice_description: str | None = Field(None, max_length=500)


class PromoteQuoteRequest(BaseModel):
    services: list[ServiceSelectionIn] = []
    quoted_price_override: Decimal | None = Field(None, ge=0)
    assigned_to: str | None = Field(None, max_length=100)
    priority: Priority | None = None
    scheduled_delivery_date: date | None = None
    scheduled_pickup_date: date | None = None
    internal_notes: str | None = None


class OrderCreate(PromoteQuoteRequest):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str | None = Field(None, max_length=100)
    email: EmailStr
    phone: str | None = Field(None, max_length=30)
    address: str | None = Field(None, max_length=255)
    address2: str | None = Field(None, max_length=255)
    city: str | None = Field(None, max_length=100)
    state: str | None = Field(None, max_length=50)
    zip_code: str | None = Field(None, max_length=20)


class OrderUpdate(BaseModel):
    first_name: str | None = Field(None, min_length=1, max_length=100)
    last_name: str | None = Field(None, max_length=100)
    email: EmailStr | None = None
    phone: str | None = Field(None, max_length=30)
    address: str | None = Field(None, max_length=255)
    address2: str | None = Field(None, max_length=255)
    city: str | None = Field(None, max_length=100)
    state: str | None = Field(None, max_length=50)
    zip_code: str | None = Field(None, max_length=20)
    priority: Priority | None = None
    assigned_to: str | None = Field(None, max_length=100)
    driver_notes: str | None = None
    internal_notes: str | None = None
    scheduled_delivery_date: date | None = None
    scheduled_pickup_date: date | None = None
    actual_pickup_date: datetime | None = None
    quoted_price: Decimal | None = Field(None, ge=0)
    final_price: Decimal | None = Field(None, ge=0)


class AttachmentIn(BaseModel):
    filename: str = Field(..., max_length=255)
    content: str
    content_type: str = Field(..., max_length=100)


class StatusChangeRequest(BaseModel):
    # Plain string so deprecated aliases get a domain error, not a schema error
    status: str
    send_notification: bool = False
    attachment: AttachmentIn | None = None


class BoardMoveRequest(BaseModel):
    to_status: str
    from_status: str | None = None
    send_notification: bool = False
    attachment: AttachmentIn | None = None


class OrderDumpsterRequest(BaseModel):
    dumpster_id: uuid.UUID | None = None
    address: str | None = Field(None, max_length=255)


class InvoiceDescriptionUpdate(BaseModel):
    invoice_description: str | None = Field(None, max_length=500)


class NotifyRequest(BaseModel):
    status: str
    send_email: bool = True
    attachment: AttachmentIn | None = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class OrderServiceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    order_id: uuid.UUID
    service_id: uuid.UUID
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    invoice_description: str | None = None
    service_date: date | None = None
    notes: str | None = None
    status: OrderServiceStatus


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    quote_id: uuid.UUID | None = None
    order_number: str
    status: OrderStatus
    priority: Priority
    first_name: str
    last_name: str | None = None
    email: str
    phone: str | None = None
    address: str | None = None
    address2: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    quoted_price: Decimal | None = None
    final_price: Decimal | None = None
    payment_status: PaymentStatus | None = None
    assigned_to: str | None = None
    driver_notes: str | None = None
    internal_notes: str | None = None
    scheduled_delivery_date: date | None = None
    scheduled_pickup_date: date | None = None
    actual_delivery_date: datetime | None = None
    actual_pickup_date: datetime | None = None
    completed_at: datetime | None = None
    completed_with_dumpster_id: uuid.UUID | None = None
    completed_with_dumpster_name: str | None = None
    created_at: datetime
    updated_at: datetime


class OrderDetailResponse(OrderResponse):
    services: list[OrderServiceResponse] = []
    dumpster: DumpsterResponse | None = None


class OrderListResponse(BaseModel):
    items: list[OrderResponse]
    total: int
    limit: int
    offset: int


class PromotionResponse(BaseModel):
    order: OrderResponse
    order_services: list[OrderServiceResponse]


class TransitionResponse(BaseModel):
    order: OrderResponse
    previous_status: OrderStatus
    freed_dumpster_id: uuid.UUID | None = None
    completed_with_dumpster: str | None = None
    dumpster_release_pending: bool = False
    dumpster_error: str | None = None
    notification_queued: bool = False


class BoardColumnResponse(BaseModel):
    status: OrderStatus
    label: str
    color: str
    count: int
    total_value: Decimal
    average_value: Decimal
    orders: list[OrderResponse]


class OrderStatsResponse(BaseModel):
    total: int
    by_status: dict[str, int]
    total_quoted_value: Decimal
    dumpsters_in_use: int


class NotifyResponse(BaseModel):
    email_sent: bool
    message: str
    message_id: str | None = None
