"""Pydantic v2 schemas for the service catalog."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from ark.models.enums import ServicePriceType


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    display_name: str = Field(..., min_length=1, max_length=150)
    description: str | None = None
    sort_order: int = 0
    is_active: bool = True


class CategoryUpdate(BaseModel):
    display_name: str | None = Field(None, min_length=1, max_length=150)
    description: str | None = None
    sort_order: int | None = None
    is_active: bool | None = None


class CategoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    display_name: str
    description: str | None = None
    sort_order: int
    is_active: bool
    created_at: datetime
    updated_at: datetime


class ServiceCreate(BaseModel):
    category_id: uuid.UUID
    sku: str | None = Field(None, max_length=50)
    name: str = Field(..., min_length=1, max_length=150)
    display_name: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    base_price: Decimal = Field(..., ge=0)
    price_type: ServicePriceType = ServicePriceType.FIXED
    dumpster_size: str | None = Field(None, max_length=20)
    is_active: bool = True
    is_taxable: bool = False
    tax_rate: Decimal = Field(Decimal("0"), ge=0, le=1)
    sort_order: int = 0


class ServiceUpdate(BaseModel):
    category_id: uuid.UUID | None = None
    sku: str | None = Field(None, max_length=50)
    name: str | None = Field(None, min_length=1, max_length=150)
    display_name: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = None
    base_price: Decimal | None = Field(None, ge=0)
    price_type: ServicePriceType | None = None
    dumpster_size: str | None = Field(None, max_length=20)
    is_active: bool | None = None
    is_taxable: bool | None = None
    tax_rate: Decimal | None = Field(None, ge=0, le=1)
    sort_order: int | None = None


class ServiceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    category_id: uuid.UUID
    sku: str | None = None
    name: str
    display_name: str
    description: str | None = None
    base_price: Decimal
    price_type: ServicePriceType
    dumpster_size: str | None = None
    is_active: bool
    is_taxable: bool
    tax_rate: Decimal
    sort_order: int
    created_at: datetime
    updated_at: datetime
