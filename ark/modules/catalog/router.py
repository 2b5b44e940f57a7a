"""Service catalog API router."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ark.database.session import get_db
from ark.modules.auth.dependencies import AuthenticatedAdmin, get_current_admin
from ark.modules.catalog.schemas import (
    CategoryCreate,
    CategoryResponse,
    CategoryUpdate,
    ServiceCreate,
    ServiceResponse,
    ServiceUpdate,
)
from ark.modules.catalog.service import CatalogService
from ark.schemas.responses import ApiResponse

category_router = APIRouter(prefix="/service-categories", tags=["catalog"])
service_router = APIRouter(prefix="/services", tags=["catalog"])


@category_router.get("/", response_model=ApiResponse[list[CategoryResponse]])
async def list_categories(
    active: bool | None = Query(None),
    db: AsyncSession = Depends(get_db),
):
    items = await CatalogService(db).list_categories(active=active)
    return ApiResponse(data=[CategoryResponse.model_validate(c) for c in items])


@category_router.post("/", response_model=ApiResponse[CategoryResponse], status_code=201)
async def create_category(
    body: CategoryCreate,
    admin: AuthenticatedAdmin = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    category = await CatalogService(db).create_category(**body.model_dump())
    return ApiResponse(data=CategoryResponse.model_validate(category))


@category_router.patch("/{category_id}", response_model=ApiResponse[CategoryResponse])
async def update_category(
    category_id: uuid.UUID,
    body: CategoryUpdate,
    admin: AuthenticatedAdmin = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    category = await CatalogService(db).update_category(
        category_id, **body.model_dump(exclude_unset=True)
    )
    return ApiResponse(data=CategoryResponse.model_validate(category))


@category_router.delete("/{category_id}", response_model=ApiResponse[CategoryResponse])
async def deactivate_category(
    category_id: uuid.UUID,
    admin: AuthenticatedAdmin = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    category = await CatalogService(db).deactivate_category(category_id)
    return ApiResponse(data=CategoryResponse.model_validate(category))


@service_router.get("/", response_model=ApiResponse[list[ServiceResponse]])
async def list_services(
    active: bool | None = Query(None),
    category_id: uuid.UUID | None = Query(None),
    db: AsyncSession = Depends(get_db),
):
    items = await CatalogService(db).list_services(active=active, category_id=category_id)
    return ApiResponse(data=[ServiceResponse.model_validate(s) for s in items])


@service_router.get("/{service_id}", response_model=ApiResponse[ServiceResponse])
async def get_service(service_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    service = await CatalogService(db).get_service(service_id)
    return ApiResponse(data=ServiceResponse.model_validate(service))


@service_router.post("/", response_model=ApiResponse[ServiceResponse], status_code=201)
async def create_service(
    body: ServiceCreate,
    admin: AuthenticatedAdmin = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    service = await CatalogService(db).create_service(**body.model_dump())
    return ApiResponse(data=ServiceResponse.model_validate(service))


@service_router.patch("/{service_id}", response_model=ApiResponse[ServiceResponse])
async def update_service(
    service_id: uuid.UUID,
    body: ServiceUpdate,
    admin: AuthenticatedAdmin = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    service = await CatalogService(db).update_service(
        service_id, **body.model_dump(exclude_unset=True)
    )
    return ApiResponse(data=ServiceResponse.model_validate(service))


@service_router.delete("/{service_id}", response_model=ApiResponse[ServiceResponse])
async def deactivate_service(
    service_id: uuid.UUID,
    admin: AuthenticatedAdmin = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    service = await CatalogService(db).deactivate_service(service_id)
    return ApiResponse(data=ServiceResponse.model_validate(service))
