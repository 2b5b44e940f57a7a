"""Tests for PromotionService: quote-to-order promotion and direct orders."""

import re
import uuid
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from ark.exceptions import (
    ConflictException,
    DependencyException,
    NotFoundException,
    PreconditionException,
    ValidationException,
)
from ark.models.enums import OrderStatus, QuoteStatus
from ark.models.event_outbox import EventOutbox
from ark.models.order import Order
from ark.models.order_service import OrderService as OrderServiceLine
from ark.models.quote import Quote
from ark.modules.order.constants import EVENT_ORDER_CREATED
from ark.modules.order.promotion import (
    GENERAL_SERVICE_SKU,
    CustomerDetails,
    PromotionService,
    ServiceSelection,
)


async def _count(session, model) -> int:
    result = await session.execute(select(func.count()).select_from(model))
    return result.scalar()


class TestPromote:
    @pytest.mark.asyncio
    async def test_quote_becomes_pending_order(self, db_session, factory):
        quote = await factory.quote()
        rental = await factory.service(base_price=Decimal("350.00"))
        tonnage = await factory.service(
            name="overage", display_name="Overage per ton", base_price=Decimal("65.50")
        )

        result = await PromotionService(db_session).promote(quote.id, [
            ServiceSelection(service_id=rental.id),
            ServiceSelection(service_id=tonnage.id, quantity=2, invoice_description="2 tons"),
        ])

        order = result.order
        assert order.status == OrderStatus.PENDING
        assert order.quote_id == quote.id
        assert order.first_name == "Dana"
        assert order.email == "dana@example.com"
        assert order.scheduled_delivery_date == quote.dropoff_date
        assert re.fullmatch(r"ORD-\d{8}-[0-9A-F]{6}", order.order_number)
        assert order.quoted_price == Decimal("481.00")

        assert [line.total_price for line in result.order_services] == [
            Decimal("350.00"), Decimal("131.00"),
        ]
        assert result.order_services[1].invoice_description == "2 tons"

        stored_quote = await db_session.get(Quote, quote.id)
        assert stored_quote.status == QuoteStatus.ACCEPTED

        events = (await db_session.execute(
            select(EventOutbox).where(EventOutbox.event_type == EVENT_ORDER_CREATED)
        )).scalars().all()
        assert events[0].payload["line_count"] == 2

    @pytest.mark.asyncio
    async def test_price_override_and_custom_unit_price(self, db_session, factory):
        quote = await factory.quote()
        rental = await factory.service()

        result = await PromotionService(db_session).promote(
            quote.id,
            [ServiceSelection(service_id=rental.id, unit_price=Decimal("299.999"))],
            quoted_price_override=Decimal("275"),
        )

        assert result.order_services[0].unit_price == Decimal("300.00")
        assert result.order.quoted_price == Decimal("275.00")

    @pytest.mark.asyncio
    async def test_empty_selection_is_rejected(self, db_session, factory):
        quote = await factory.quote()
        with pytest.raises(ValidationException):
            await PromotionService(db_session).promote(quote.id, [])

        assert await _count(db_session, Order) == 0

    @pytest.mark.asyncio
    async def test_missing_quote(self, db_session, factory):
        rental = await factory.service()
        with pytest.raises(NotFoundException):
            await PromotionService(db_session).promote(
                uuid.uuid4(), [ServiceSelection(service_id=rental.id)]
            )

    @pytest.mark.asyncio
    async def test_declined_quote_is_refused(self, db_session, factory):
        quote = await factory.quote(status=QuoteStatus.DECLINED)
        rental = await factory.service()
        with pytest.raises(PreconditionException):
            await PromotionService(db_session).promote(
                quote.id, [ServiceSelection(service_id=rental.id)]
            )

    @pytest.mark.asyncio
    async def test_second_promotion_names_existing_order(self, db_session, factory):
        quote = await factory.quote()
        rental = await factory.service()
        promotion = PromotionService(db_session)
        first = await promotion.promote(quote.id, [ServiceSelection(service_id=rental.id)])

        with pytest.raises(ConflictException) as exc_info:
            await promotion.promote(quote.id, [ServiceSelection(service_id=rental.id)])

        assert first.order.order_number in exc_info.value.message
        assert await _count(db_session, Order) == 1

    @pytest.mark.asyncio
    async def test_unknown_service(self, db_session, factory):
        quote = await factory.quote()
        with pytest.raises(NotFoundException):
            await PromotionService(db_session).promote(
                quote.id, [ServiceSelection(service_id=uuid.uuid4())]
            )

    @pytest.mark.asyncio
    async def test_inactive_service(self, db_session, factory):
        quote = await factory.quote()
        retired = await factory.service(is_active=False)
        with pytest.raises(ValidationException):
            await PromotionService(db_session).promote(
                quote.id, [ServiceSelection(service_id=retired.id)]
            )

    @pytest.mark.asyncio
    async def test_non_positive_quantity(self, db_session, factory):
        quote = await factory.quote()
        rental = await factory.service()
        with pytest.raises(ValidationException):
            await PromotionService(db_session).promote(
                quote.id, [ServiceSelection(service_id=rental.id, quantity=0)]
            )

    @pytest.mark.asyncio
    async def test_failed_line_insert_leaves_nothing_behind(
        self, db_session, factory, monkeypatch
    ):
        quote = await factory.quote()
        rental = await factory.service()
        original = PromotionService._build_lines

        def broken_lines(self, order, selections, services):
            lines = original(self, order, selections, services)
            lines[0].unit_price = None  # NOT NULL violation on insert
            return lines

        monkeypatch.setattr(PromotionService, "_build_lines", broken_lines)

        with pytest.raises(DependencyException):
            await PromotionService(db_session).promote(
                quote.id, [ServiceSelection(service_id=rental.id)]
            )

        assert await _count(db_session, Order) == 0
        assert await _count(db_session, OrderServiceLine) == 0
        stored = (await db_session.execute(
            select(Quote).where(Quote.id == quote.id).execution_options(populate_existing=True)
        )).scalar_one()
        assert stored.status == QuoteStatus.PENDING

    @pytest.mark.asyncio
    async def test_order_number_collision_is_retried(self, db_session, factory, monkeypatch):
        existing = await factory.order()
        quote = await factory.quote()
        rental = await factory.service()
        numbers = iter([existing.order_number, "ORD-20261018-F00D42"])

        async def next_number(self):
            return next(numbers)

        monkeypatch.setattr(PromotionService, "_generate_order_number", next_number)

        result = await PromotionService(db_session).promote(
            quote.id, [ServiceSelection(service_id=rental.id)]
        )

        assert result.order.order_number == "ORD-20261018-F00D42"
        assert await _count(db_session, Order) == 2
        assert await _count(db_session, OrderServiceLine) == 1


class TestDirectOrders:
    @pytest.mark.asyncio
    async def test_create_order_without_quote(self, db_session, factory):
        rental = await factory.service()

        result = await PromotionService(db_session).create_order(
            CustomerDetails(first_name="Lee", email="lee@example.com", city="Peoria"),
            [ServiceSelection(service_id=rental.id)],
            assigned_to="  Sam  ",
        )

        assert result.order.quote_id is None
        assert result.order.assigned_to == "Sam"
        assert result.order.status == OrderStatus.PENDING

    @pytest.mark.asyncio
    async def test_convert_matches_dumpster_size(self, db_session, factory):
        quote = await factory.quote(dumpster_size="30", quoted_price=Decimal("499.00"))
        await factory.service(dumpster_size="20")
        thirty = await factory.service(dumpster_size="30", base_price=Decimal("450.00"))

        result = await PromotionService(db_session).convert_quote(quote.id)

        assert result.order_services[0].service_id == thirty.id
        assert result.order.quoted_price == Decimal("499.00")

    @pytest.mark.asyncio
    async def test_convert_falls_back_to_general_service(self, db_session, factory):
        quote = await factory.quote(dumpster_size="40")
        general = await factory.service(sku=GENERAL_SERVICE_SKU, dumpster_size=None)

        result = await PromotionService(db_session).convert_quote(quote.id)

        assert result.order_services[0].service_id == general.id

    @pytest.mark.asyncio
    async def test_convert_requires_dropoff_date(self, db_session, factory):
        quote = await factory.quote(dropoff_date=None)
        with pytest.raises(ValidationException):
            await PromotionService(db_session).convert_quote(quote.id)
