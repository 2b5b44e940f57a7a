"""Pydantic v2 schemas for dumpster inventory endpoints."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from ark.models.enums import DumpsterCondition, DumpsterStatus


class DumpsterCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    size: str | None = Field(None, max_length=20)
    condition: DumpsterCondition = DumpsterCondition.GOOD
    notes: str | None = None
    last_known_location: str | None = Field(None, max_length=255)
    gps_latitude: Decimal | None = Field(None, ge=-90, le=90)
    gps_longitude: Decimal | None = Field(None, ge=-180, le=180)


class DumpsterUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=100)
    size: str | None = Field(None, max_length=20)
    condition: DumpsterCondition | None = None
    notes: str | None = None
    last_known_location: str | None = Field(None, max_length=255)
    gps_latitude: Decimal | None = Field(None, ge=-90, le=90)
    gps_longitude: Decimal | None = Field(None, ge=-180, le=180)
    last_maintenance_at: datetime | None = None


class DumpsterAssignRequest(BaseModel):
    order_id: uuid.UUID
    address: str | None = Field(None, max_length=255)


class DumpsterResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    size: str | None = None
    status: DumpsterStatus
    condition: DumpsterCondition
    current_order_id: uuid.UUID | None = None
    address: str | None = None
    last_known_location: str | None = None
    gps_latitude: Decimal | None = None
    gps_longitude: Decimal | None = None
    notes: str | None = None
    last_assigned_at: datetime | None = None
    last_maintenance_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class DumpsterStatsResponse(BaseModel):
    total: int
    by_status: dict[str, int]
    by_condition: dict[str, int]
