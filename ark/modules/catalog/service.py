"""Service catalog: categories and billable services."""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ark.database.errors import store_errors
from ark.exceptions import ConflictException, NotFoundException
from ark.models.service import Service
from ark.models.service_category import ServiceCategory

logger = logging.getLogger(__name__)


class CatalogService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _flush(self, action: str, conflict_message: str) -> None:
        with store_errors(action):
            try:
                await self.db.flush()
            except IntegrityError as exc:
                raise ConflictException(conflict_message) from exc

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    async def list_categories(self, active: bool | None = None) -> list[ServiceCategory]:
        query = select(ServiceCategory)
        if active is not None:
            query = query.where(ServiceCategory.is_active.is_(active))
        with store_errors("list categories"):
            result = await self.db.execute(
                query.order_by(ServiceCategory.sort_order.asc(), ServiceCategory.name.asc())
            )
            return list(result.scalars().all())

    async def get_category(self, category_id: uuid.UUID) -> ServiceCategory:
        with store_errors("load category"):
            category = (
                await self.db.execute(select(ServiceCategory).where(ServiceCategory.id == category_id))
            ).scalar_one_or_none()
        if category is None:
            raise NotFoundException(f"Service category {category_id} not found")
        return category

    async def create_category(self, **fields) -> ServiceCategory:
        category = ServiceCategory(**fields)
        self.db.add(category)
        await self._flush("create category", f"Category '{category.name}' already exists")
        logger.info("Created service category %s", category.name)
        return category

    async def update_category(self, category_id: uuid.UUID, **fields) -> ServiceCategory:
        category = await self.get_category(category_id)
        for key, value in fields.items():
            setattr(category, key, value)
        await self._flush("update category", f"Category '{category.name}' already exists")
        return category

    async def deactivate_category(self, category_id: uuid.UUID) -> ServiceCategory:
        return await self.update_category(category_id, is_active=False)

    # ------------------------------------------------------------------
    # Services
    # ------------------------------------------------------------------

    async def list_services(
        self,
        active: bool | None = None,
        category_id: uuid.UUID | None = None,
    ) -> list[Service]:
        query = select(Service)
        if active is not None:
            query = query.where(Service.is_active.is_(active))
        if category_id is not None:
            query = query.where(Service.category_id == category_id)
        with store_errors("list services"):
            result = await self.db.execute(
                query.order_by(Service.sort_order.asc(), Service.display_name.asc())
            )
            return list(result.scalars().all())

    async def get_service(self, service_id: uuid.UUID) -> Service:
        with store_errors("load service"):
            service = (
                await self.db.execute(select(Service).where(Service.id == service_id))
            ).scalar_one_or_none()
        if service is None:
            raise NotFoundException(f"Service {service_id} not found")
        return service

    async def create_service(self, **fields) -> Service:
        await self.get_category(fields["category_id"])
        service = Service(**fields)
        self.db.add(service)
        await self._flush("create service", f"Service SKU '{service.sku}' already exists")
        logger.info("Created service %s (%s)", service.display_name, service.sku)
        return service

    async def update_service(self, service_id: uuid.UUID, **fields) -> Service:
        service = await self.get_service(service_id)
        if fields.get("category_id") is not None:
            await self.get_category(fields["category_id"])
        for key, value in fields.items():
            setattr(service, key, value)
        await self._flush("update service", f"Service SKU '{service.sku}' already exists")
        return service

    async def deactivate_service(self, service_id: uuid.UUID) -> Service:
        """Services referenced by orders are never deleted, only deactivated."""
        return await self.update_service(service_id, is_active=False)
