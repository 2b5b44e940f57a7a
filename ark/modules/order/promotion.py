"""Quote-to-order promotion: one quote plus selected services becomes an order."""

from __future__ import annotations

import logging
import secrets
import uuid
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ark.config import settings
from ark.database.errors import store_errors
from ark.exceptions import (
    ConflictException,
    DependencyException,
    NotFoundException,
    PreconditionException,
    ValidationException,
)
from ark.models.enums import OrderServiceStatus, OrderStatus, Priority, QuoteStatus
from ark.models.order import Order
from ark.models.order_service import OrderService as OrderServiceLine
from ark.models.quote import Quote
from ark.models.service import Service
from ark.modules.events.outbox_service import OutboxService
from ark.modules.order.constants import EVENT_ORDER_CREATED

logger = logging.getLogger(__name__)

_CENTS = Decimal("0.01")
_ORDER_NUMBER_ATTEMPTS = 5
GENERAL_SERVICE_SKU = "GENERAL-SERVICE"


def _money(value: Decimal | int | float | str) -> Decimal:
    return Decimal(str(value)).quantize(_CENTS, rounding=ROUND_HALF_UP)


def _is_order_number_collision(exc: Exception) -> bool:
    cause = exc.__cause__
    return isinstance(cause, IntegrityError) and "order_number" in str(cause.orig)


@dataclass
class ServiceSelection:
    service_id: uuid.UUID
    quantity: int = 1
    unit_price: Decimal | None = None
    service_date: date | None = None
    notes: str | None = None
    invoice_description: str | None = None


@dataclass
class CustomerDetails:
    first_name: str
    email: str
    last_name: str | None = None
    phone: str | None = None
    address: str | None = None
    address2: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None


@dataclass
class PromotionResult:
    order: Order
    order_services: list[OrderServiceLine] = field(default_factory=list)


class PromotionService:
    def __init__(self, db: AsyncSession, outbox: OutboxService | None = None):
        self.db = db
        self.outbox = outbox or OutboxService(db)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    async def _load_quote(self, quote_id: uuid.UUID) -> Quote:
        with store_errors("load quote"):
            result = await self.db.execute(select(Quote).where(Quote.id == quote_id))
            quote = result.scalar_one_or_none()
        if quote is None:
            raise NotFoundException(f"Quote {quote_id} not found")
        if quote.status == QuoteStatus.DECLINED:
            raise PreconditionException(f"Quote {quote_id} was declined and cannot become an order")

        with store_errors("check existing orders"):
            existing = await self.db.execute(
                select(Order.order_number).where(Order.quote_id == quote_id).limit(1)
            )
            order_number = existing.scalar_one_or_none()
        if order_number is not None:
            raise ConflictException(
                f"Quote {quote_id} was already promoted to order {order_number}",
                details=[{"quote_id": str(quote_id), "order_number": order_number}],
            )
        return quote

    async def _load_services(self, selections: list[ServiceSelection]) -> dict[uuid.UUID, Service]:
        ids = {s.service_id for s in selections}
        with store_errors("load services"):
            result = await self.db.execute(select(Service).where(Service.id.in_(ids)))
            services = {s.id: s for s in result.scalars().all()}

        for selection in selections:
            service = services.get(selection.service_id)
            if service is None:
                raise NotFoundException(f"Service not found: {selection.service_id}")
            if not service.is_active:
                raise ValidationException(
                    f"Service '{service.display_name}' is inactive",
                    details=[{"field": "service_id", "value": str(service.id)}],
                )
            if selection.quantity <= 0:
                raise ValidationException(
                    f"Quantity for '{service.display_name}' must be positive",
                    details=[{"field": "quantity", "value": selection.quantity}],
                )
            if selection.unit_price is not None and selection.unit_price < 0:
                raise ValidationException(
                    f"Unit price for '{service.display_name}' cannot be negative",
                    details=[{"field": "unit_price", "value": str(selection.unit_price)}],
                )
        return services

    # ------------------------------------------------------------------
    # Building
    # ------------------------------------------------------------------

    async def _generate_order_number(self) -> str:
        """``ORD-YYYYMMDD-XXXXXX`` with a random hex suffix, checked for uniqueness."""
        day = datetime.now(UTC).strftime("%Y%m%d")
        for _ in range(_ORDER_NUMBER_ATTEMPTS):
            candidate = f"{settings.order_number_prefix}-{day}-{secrets.token_hex(3).upper()}"
            with store_errors("generate order number"):
                taken = await self.db.execute(
                    select(Order.id).where(Order.order_number == candidate)
                )
            if taken.scalar_one_or_none() is None:
                return candidate
        raise DependencyException("Could not generate a unique order number")

    def _build_lines(
        self,
        order: Order,
        selections: list[ServiceSelection],
        services: dict[uuid.UUID, Service],
    ) -> list[OrderServiceLine]:
        lines = []
        for selection in selections:
            service = services[selection.service_id]
            unit_price = _money(
                selection.unit_price if selection.unit_price is not None else service.base_price
            )
            lines.append(OrderServiceLine(
                order_id=order.id,
                service_id=service.id,
                quantity=selection.quantity,
                unit_price=unit_price,
                total_price=_money(unit_price * selection.quantity),
                invoice_description=selection.invoice_description,
                service_date=selection.service_date,
                notes=selection.notes,
                status=OrderServiceStatus.PENDING,
            ))
        return lines

    async def _create(
        self,
        customer: CustomerDetails,
        selections: list[ServiceSelection],
        *,
        quote: Quote | None = None,
        quoted_price_override: Decimal | None = None,
        assigned_to: str | None = None,
        priority: Priority | None = None,
        scheduled_delivery_date: date | None = None,
        scheduled_pickup_date: date | None = None,
        internal_notes: str | None = None,
    ) -> PromotionResult:
        if not selections:
            raise ValidationException(
                "At least one service is required to create an order",
                details=[{"field": "services"}],
            )
        services = await self._load_services(selections)

        for attempt in range(_ORDER_NUMBER_ATTEMPTS):
            order_number = await self._generate_order_number()
            order = Order(
                id=uuid.uuid4(),
                quote_id=quote.id if quote else None,
                first_name=customer.first_name,
                last_name=customer.last_name,
                email=customer.email,
                phone=customer.phone,
                address=customer.address,
                address2=customer.address2,
                city=customer.city,
                state=customer.state,
                zip_code=customer.zip_code,
                order_number=order_number,
                status=OrderStatus.PENDING,
                priority=priority or (quote.priority if quote else Priority.NORMAL),
                assigned_to=(assigned_to or "").strip() or settings.default_driver,
                scheduled_delivery_date=scheduled_delivery_date
                or (quote.dropoff_date if quote else None),
                scheduled_pickup_date=scheduled_pickup_date,
                internal_notes=internal_notes,
            )
            lines = self._build_lines(order, selections, services)
            line_total = sum((line.total_price for line in lines), Decimal("0"))
            order.quoted_price = (
                _money(quoted_price_override) if quoted_price_override is not None else line_total
            )

            try:
                # Savepoint: a failed line insert takes the order row with it
                with store_errors("create order"):
                    async with self.db.begin_nested():
                        self.db.add(order)
                        await self.db.flush()
                        self.db.add_all(lines)
                        await self.db.flush()
                        if quote is not None:
                            quote.status = QuoteStatus.ACCEPTED
                            await self.db.flush()
            except DependencyException as exc:
                if _is_order_number_collision(exc) and attempt + 1 < _ORDER_NUMBER_ATTEMPTS:
                    logger.warning("Order number %s collided, retrying", order_number)
                    continue
                raise
            break

        await self.outbox.publish_event(
            event_type=EVENT_ORDER_CREATED,
            aggregate_type="order",
            aggregate_id=str(order.id),
            payload={
                "order_id": str(order.id),
                "order_number": order.order_number,
                "quote_id": str(quote.id) if quote else None,
                "quoted_price": str(order.quoted_price),
                "line_count": len(lines),
            },
        )
        logger.info(
            "Created order %s with %d service line(s)%s",
            order.order_number, len(lines), f" from quote {quote.id}" if quote else "",
        )
        return PromotionResult(order=order, order_services=lines)

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def promote(
        self,
        quote_id: uuid.UUID,
        selections: list[ServiceSelection],
        *,
        quoted_price_override: Decimal | None = None,
        assigned_to: str | None = None,
        priority: Priority | None = None,
        scheduled_delivery_date: date | None = None,
        scheduled_pickup_date: date | None = None,
        internal_notes: str | None = None,
    ) -> PromotionResult:
        """Create a pending order with one service line per selection and accept the quote."""
        if not selections:
            raise ValidationException(
                "At least one service is required to create an order",
                details=[{"field": "services"}],
            )
        quote = await self._load_quote(quote_id)
        customer = CustomerDetails(
            first_name=quote.first_name,
            last_name=quote.last_name,
            email=quote.email,
            phone=quote.phone,
            address=quote.address,
            address2=quote.address2,
            city=quote.city,
            state=quote.state,
            zip_code=quote.zip_code,
        )
        return await self._create(
            customer,
            selections,
            quote=quote,
            quoted_price_override=quoted_price_override,
            assigned_to=assigned_to,
            priority=priority,
            scheduled_delivery_date=scheduled_delivery_date,
            scheduled_pickup_date=scheduled_pickup_date,
            internal_notes=internal_notes,
        )

    async def create_order(
        self,
        customer: CustomerDetails,
        selections: list[ServiceSelection],
        **options,
    ) -> PromotionResult:
        """Create an order directly (phone bookings) without an originating quote."""
        return await self._create(customer, selections, **options)

    async def convert_quote(self, quote_id: uuid.UUID) -> PromotionResult:
        """Promote a quote using the catalog service that matches its dumpster size.

        Falls back to the general-service SKU when no size-specific service is active.
        """
        quote = await self._load_quote(quote_id)
        if quote.dropoff_date is None:
            raise ValidationException(
                "Dropoff date is required to create an order",
                details=[{"field": "dropoff_date"}],
            )

        service_id = None
        with store_errors("find matching service"):
            if quote.dumpster_size:
                result = await self.db.execute(
                    select(Service.id)
                    .where(Service.dumpster_size == quote.dumpster_size, Service.is_active.is_(True))
                    .order_by(Service.sort_order.asc())
                    .limit(1)
                )
                service_id = result.scalar_one_or_none()
            if service_id is None:
                result = await self.db.execute(
                    select(Service.id).where(Service.sku == GENERAL_SERVICE_SKU)
                )
                service_id = result.scalar_one_or_none()
        if service_id is None:
            raise NotFoundException("No suitable service found for this quote")

        return await self.promote(
            quote_id,
            [ServiceSelection(service_id=service_id, quantity=1)],
            quoted_price_override=quote.quoted_price,
        )
