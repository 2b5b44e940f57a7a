"""Pydantic v2 schemas for quote endpoints."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from ark.models.enums import Priority, QuoteStatus


class QuoteSubmit(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str | None = Field(None, max_length=100)
    email: EmailStr
    phone: str | None = Field(None, max_length=30)
    address: str | None = Field(None, max_length=255)
    address2: str | None = Field(None, max_length=255)
    city: str | None = Field(None, max_length=100)
    state: str | None = Field(None, max_length=50)
    zip_code: str | None = Field(None, max_length=20)
    dumpster_size: str | None = Field(None, max_length=20)
    dropoff_date: date | None = None
    dropoff_time: str | None = Field(None, max_length=20)
    time_needed: str | None = Field(None, max_length=30)
    message: str | None = Field(None, max_length=5000)


class QuoteUpdate(BaseModel):
    status: str | None = None
    priority: Priority | None = None
    quoted_price: Decimal | None = Field(None, ge=0)
    quote_notes: str | None = None
    assigned_to: str | None = Field(None, max_length=100)
    dropoff_date: date | None = None
    dropoff_time: str | None = Field(None, max_length=20)
    time_needed: str | None = Field(None, max_length=30)
    dumpster_size: str | None = Field(None, max_length=20)


class QuoteResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    first_name: str
    last_name: str | None = None
    email: str
    phone: str | None = None
    address: str | None = None
    address2: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    dumpster_size: str | None = None
    dropoff_date: date | None = None
    dropoff_time: str | None = None
    time_needed: str | None = None
    message: str | None = None
    status: QuoteStatus
    priority: Priority
    quoted_price: Decimal | None = None
    quote_notes: str | None = None
    assigned_to: str | None = None
    quoted_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class QuoteListResponse(BaseModel):
    items: list[QuoteResponse]
    total: int
    limit: int
    offset: int
