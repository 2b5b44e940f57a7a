"""Dumpster inventory and assignment API router."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ark.database.session import get_db
from ark.models.enums import DumpsterStatus
from ark.modules.auth.dependencies import AuthenticatedAdmin, get_current_admin
from ark.modules.dumpster.schemas import (
    DumpsterAssignRequest,
    DumpsterCreate,
    DumpsterResponse,
    DumpsterStatsResponse,
    DumpsterUpdate,
)
from ark.modules.dumpster.service import DumpsterLedger
from ark.schemas.responses import ApiResponse

router = APIRouter(prefix="/dumpsters", tags=["dumpsters"])


@router.get("/", response_model=ApiResponse[list[DumpsterResponse]])
async def list_dumpsters(
    status: DumpsterStatus | None = Query(None),
    admin: AuthenticatedAdmin = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    items = await DumpsterLedger(db).list_dumpsters(status=status)
    return ApiResponse(data=[DumpsterResponse.model_validate(d) for d in items])


@router.get("/available", response_model=ApiResponse[list[DumpsterResponse]])
async def list_available_dumpsters(
    admin: AuthenticatedAdmin = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    items = await DumpsterLedger(db).list_available()
    return ApiResponse(data=[DumpsterResponse.model_validate(d) for d in items])


@router.get("/stats", response_model=ApiResponse[DumpsterStatsResponse])
async def dumpster_stats(
    admin: AuthenticatedAdmin = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    return ApiResponse(data=DumpsterStatsResponse(**await DumpsterLedger(db).stats()))


@router.post("/", response_model=ApiResponse[DumpsterResponse], status_code=201)
async def create_dumpster(
    body: DumpsterCreate,
    admin: AuthenticatedAdmin = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    dumpster = await DumpsterLedger(db).create_dumpster(**body.model_dump())
    return ApiResponse(data=DumpsterResponse.model_validate(dumpster))


@router.get("/{dumpster_id}", response_model=ApiResponse[DumpsterResponse])
async def get_dumpster(
    dumpster_id: uuid.UUID,
    admin: AuthenticatedAdmin = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    dumpster = await DumpsterLedger(db).get_dumpster(dumpster_id)
    return ApiResponse(data=DumpsterResponse.model_validate(dumpster))


@router.patch("/{dumpster_id}", response_model=ApiResponse[DumpsterResponse])
async def update_dumpster(
    dumpster_id: uuid.UUID,
    body: DumpsterUpdate,
    admin: AuthenticatedAdmin = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    dumpster = await DumpsterLedger(db).update_dumpster(
        dumpster_id, **body.model_dump(exclude_unset=True)
    )
    return ApiResponse(data=DumpsterResponse.model_validate(dumpster))


@router.delete("/{dumpster_id}", response_model=ApiResponse[dict])
async def delete_dumpster(
    dumpster_id: uuid.UUID,
    admin: AuthenticatedAdmin = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    await DumpsterLedger(db).delete_dumpster(dumpster_id)
    return ApiResponse(data={"id": str(dumpster_id), "deleted": True})


@router.post("/{dumpster_id}/assign", response_model=ApiResponse[DumpsterResponse])
async def assign_dumpster(
    dumpster_id: uuid.UUID,
    body: DumpsterAssignRequest,
    admin: AuthenticatedAdmin = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """Put an available dumpster in use for an order (409 if already taken)."""
    dumpster = await DumpsterLedger(db).assign(dumpster_id, body.order_id, body.address)
    return ApiResponse(data=DumpsterResponse.model_validate(dumpster))


@router.post("/{dumpster_id}/free", response_model=ApiResponse[DumpsterResponse])
async def free_dumpster(
    dumpster_id: uuid.UUID,
    admin: AuthenticatedAdmin = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    dumpster = await DumpsterLedger(db).free(dumpster_id)
    return ApiResponse(data=DumpsterResponse.model_validate(dumpster))
