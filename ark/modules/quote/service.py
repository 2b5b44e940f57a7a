"""Quote intake and admin handling."""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ark.database.errors import store_errors
from ark.exceptions import NotFoundException, PreconditionException
from ark.models.enums import QuoteStatus
from ark.models.order import Order
from ark.models.quote import Quote
from ark.modules.notification.service import NotificationService
from ark.modules.order.constants import parse_quote_status

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = {
    "priority",
    "quoted_price",
    "quote_notes",
    "assigned_to",
    "dropoff_date",
    "dropoff_time",
    "time_needed",
    "dumpster_size",
}


class QuoteService:
    def __init__(self, db: AsyncSession, notifications: NotificationService | None = None):
        self.db = db
        self.notifications = notifications

    async def submit_quote(self, **fields) -> Quote:
        """Record a public quote request and alert the company inbox."""
        quote = Quote(status=QuoteStatus.PENDING, **fields)
        with store_errors("save quote"):
            self.db.add(quote)
            await self.db.flush()
        logger.info("New quote %s from %s", quote.id, quote.email)

        if self.notifications is not None:
            await self.notifications.notify_company_of_quote(quote)
        return quote

    async def get_quote(self, quote_id: uuid.UUID) -> Quote:
        with store_errors("load quote"):
            result = await self.db.execute(select(Quote).where(Quote.id == quote_id))
            quote = result.scalar_one_or_none()
        if quote is None:
            raise NotFoundException(f"Quote {quote_id} not found")
        return quote

    async def list_quotes(
        self,
        status: QuoteStatus | str | None = None,
        email: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[Quote], int]:
        filters = []
        if status is not None:
            filters.append(Quote.status == parse_quote_status(status))
        if email:
            filters.append(func.lower(Quote.email) == email.strip().lower())

        with store_errors("list quotes"):
            total = (
                await self.db.execute(select(func.count()).select_from(Quote).where(*filters))
            ).scalar() or 0
            result = await self.db.execute(
                select(Quote)
                .where(*filters)
                .order_by(Quote.created_at.desc())
                .offset(offset)
                .limit(limit)
            )
            return list(result.scalars().all()), total

    async def update_quote(self, quote_id: uuid.UUID, **fields) -> Quote:
        quote = await self.get_quote(quote_id)

        raw_status = fields.pop("status", None)
        if raw_status is not None:
            new_status = parse_quote_status(raw_status)
            if new_status == QuoteStatus.QUOTED and quote.status != QuoteStatus.QUOTED:
                quote.quoted_at = datetime.now(UTC)
            quote.status = new_status

        for key, value in fields.items():
            if key in _UPDATABLE_FIELDS:
                setattr(quote, key, value)

        with store_errors("update quote"):
            await self.db.flush()
        logger.info("Updated quote %s (status=%s)", quote.id, quote.status.value)
        return quote

    async def delete_quote(self, quote_id: uuid.UUID) -> None:
        quote = await self.get_quote(quote_id)
        with store_errors("check quote orders"):
            order_number = (
                await self.db.execute(
                    select(Order.order_number).where(Order.quote_id == quote_id).limit(1)
                )
            ).scalar_one_or_none()
        if order_number is not None:
            raise PreconditionException(
                f"Quote {quote_id} has order {order_number}; delete the order first"
            )
        with store_errors("delete quote"):
            await self.db.delete(quote)
            await self.db.flush()
        logger.info("Deleted quote %s", quote_id)
