"""Response envelope schemas shared by every router."""

from typing import Generic, TypeVar

from pydantic import BaseModel, Field

DataT = TypeVar("DataT")


class ApiResponse(BaseModel, Generic[DataT]):
    """Success envelope: ``{"success": true, "data": ...}``."""

    success: bool = True
    data: DataT


class ErrorDetail(BaseModel):
    """A single field-level or contextual error detail."""

    field: str | None = None
    message: str


class ErrorBody(BaseModel):
    """Structured error body returned inside every error response."""

    code: str
    message: str
    details: list[dict] = []
    request_id: str = Field(alias="requestId")

    model_config = {"populate_by_name": True}


class ErrorResponse(BaseModel):
    """Top-level error envelope."""

    success: bool = False
    error: ErrorBody


class PageMeta(BaseModel):
    total: int
    limit: int
    offset: int
