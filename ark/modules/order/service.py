"""Order lifecycle service: status transitions, board moves, order CRUD.

``transition`` is the authoritative mutator: it accepts any valid status
(admin override) and applies the side effects that keep an order's
timestamps and dumpster bookkeeping consistent with its status.
``move_on_board`` is the stricter policy layer used by the dispatch board;
it validates the move and then calls ``transition``.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ark.database.errors import store_errors
from ark.exceptions import (
    ConflictException,
    DependencyException,
    InvalidTransitionException,
    NotFoundException,
    PreconditionException,
    ValidationException,
)
from ark.models.dumpster import Dumpster
from ark.models.enums import OrderStatus, Priority
from ark.models.order import Order
from ark.models.order_service import OrderService as OrderServiceLine
from ark.models.payment import Payment
from ark.modules.dumpster.service import DumpsterLedger
from ark.modules.events.outbox_service import OutboxService
from ark.modules.notification.trigger import (
    NotificationAttachment,
    build_notification_payload,
    should_notify,
)
from ark.modules.order.constants import (
    BOARD_COLUMNS,
    DRIVER_REQUIRED_STATUSES,
    EVENT_DUMPSTER_RELEASE_REQUESTED,
    EVENT_ORDER_DELETED,
    EVENT_ORDER_STATUS_CHANGED,
    EVENT_ORDER_STATUS_NOTIFICATION,
    ORDER_BOARD_TRANSITIONS,
    ORDER_STATUS_COLORS,
    ORDER_STATUS_LABELS,
    parse_order_status,
)

logger = logging.getLogger(__name__)

# Statuses that precede delivery; entering one clears actual_delivery_date
_PRE_DELIVERY = {OrderStatus.PENDING, OrderStatus.SCHEDULED, OrderStatus.ON_WAY}

_UPDATABLE_FIELDS = {
    "first_name",
    "last_name",
    "email",
    "phone",
    "address",
    "address2",
    "city",
    "state",
    "zip_code",
    "priority",
    "assigned_to",
    "driver_notes",
    "internal_notes",
    "scheduled_delivery_date",
    "scheduled_pickup_date",
    "actual_pickup_date",
    "quoted_price",
    "final_price",
}


@dataclass
class TransitionResult:
    """Outcome of a status write.

    The order write always stands. ``dumpster_release_pending`` reports that
    the asset could not be freed inline and a retry was queued.
    """

    order: Order
    previous_status: OrderStatus
    freed_dumpster_id: uuid.UUID | None = None
    completed_with_dumpster: str | None = None
    dumpster_release_pending: bool = False
    dumpster_error: str | None = None
    notification_queued: bool = False


class OrderService:
    def __init__(
        self,
        db: AsyncSession,
        ledger: DumpsterLedger | None = None,
        outbox: OutboxService | None = None,
    ):
        self.db = db
        self.ledger = ledger or DumpsterLedger(db)
        self.outbox = outbox or OutboxService(db)

    # ------------------------------------------------------------------
    # Get / List orders
    # ------------------------------------------------------------------

    async def _get_order_row(self, order_id: uuid.UUID) -> Order:
        with store_errors("load order"):
            result = await self.db.execute(select(Order).where(Order.id == order_id))
            order = result.scalar_one_or_none()
        if order is None:
            raise NotFoundException(f"Order {order_id} not found")
        return order

    async def get_order(self, order_id: uuid.UUID) -> Order:
        """Get an order with its service lines."""
        with store_errors("load order"):
            result = await self.db.execute(
                select(Order)
                .options(selectinload(Order.services))
                .where(Order.id == order_id)
                .execution_options(populate_existing=True)
            )
            order = result.scalar_one_or_none()
        if order is None:
            raise NotFoundException(f"Order {order_id} not found")
        return order

    async def list_orders(
        self,
        status: OrderStatus | None = None,
        assigned_to: str | None = None,
        email: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[Order], int]:
        """List orders newest first, with optional filters."""
        filters = []
        if status is not None:
            filters.append(Order.status == status)
        if assigned_to:
            filters.append(Order.assigned_to == assigned_to)
        if email:
            filters.append(func.lower(Order.email) == email.strip().lower())

        with store_errors("list orders"):
            total_result = await self.db.execute(
                select(func.count()).select_from(Order).where(*filters)
            )
            total = total_result.scalar() or 0

            result = await self.db.execute(
                select(Order)
                .where(*filters)
                .order_by(Order.created_at.desc())
                .offset(offset)
                .limit(limit)
            )
            items = list(result.scalars().all())
        return items, total

    # ------------------------------------------------------------------
    # Status transitions
    # ------------------------------------------------------------------

    async def transition(
        self,
        order_id: uuid.UUID,
        new_status: OrderStatus | str,
        *,
        send_notification: bool = False,
        attachment: NotificationAttachment | dict | None = None,
    ) -> TransitionResult:
        """Write a new status and apply its side effects."""
        new_status = parse_order_status(new_status)
        order = await self._get_order_row(order_id)
        previous = order.status
        now = datetime.now(UTC)

        order.status = new_status

        if new_status == OrderStatus.DELIVERED:
            order.actual_delivery_date = now
        elif new_status in _PRE_DELIVERY:
            order.actual_delivery_date = None
        elif new_status in {OrderStatus.ON_WAY_PICKUP, OrderStatus.COMPLETED}:
            if order.actual_delivery_date is None:
                order.actual_delivery_date = now

        if new_status == OrderStatus.COMPLETED:
            order.completed_at = now
        else:
            order.completed_at = None

        with store_errors("update order status"):
            await self.db.flush()

        result = TransitionResult(order=order, previous_status=previous)

        if new_status == OrderStatus.COMPLETED:
            await self._release_dumpster(order, result)

        await self.outbox.publish_event(
            event_type=EVENT_ORDER_STATUS_CHANGED,
            aggregate_type="order",
            aggregate_id=str(order.id),
            payload={
                "order_id": str(order.id),
                "order_number": order.order_number,
                "from_status": previous.value,
                "to_status": new_status.value,
                "freed_dumpster_id": str(result.freed_dumpster_id) if result.freed_dumpster_id else None,
                "dumpster_release_pending": result.dumpster_release_pending,
            },
        )

        if should_notify(order, new_status, send_notification):
            payload = build_notification_payload(order, new_status, attachment)
            await self.outbox.publish_event(
                event_type=EVENT_ORDER_STATUS_NOTIFICATION,
                aggregate_type="order",
                aggregate_id=str(order.id),
                payload=payload.to_dict(),
            )
            result.notification_queued = True

        logger.info(
            "Order %s transitioned %s -> %s", order.order_number, previous.value, new_status.value
        )
        return result

    async def _release_dumpster(self, order: Order, result: TransitionResult) -> None:
        """Record and free the dumpster serving a completed order.

        Failures are contained in savepoints so the status write survives;
        a ``dumpster.release_requested`` event retries the free later.
        """
        try:
            with store_errors("find completing dumpster"):
                async with self.db.begin_nested():
                    dumpster = await self.ledger.find_assigned(order.id)
        except DependencyException as exc:
            await self._defer_release(order, None, exc, result)
            return

        if dumpster is None:
            return

        order.completed_with_dumpster_id = dumpster.id
        order.completed_with_dumpster_name = dumpster.name
        result.completed_with_dumpster = dumpster.name
        dumpster_id = dumpster.id
        with store_errors("record completing dumpster"):
            await self.db.flush()

        try:
            with store_errors("release dumpster"):
                async with self.db.begin_nested():
                    await self.ledger.free(dumpster_id)
        except (DependencyException, NotFoundException) as exc:
            await self._defer_release(order, dumpster_id, exc, result)
            return

        result.freed_dumpster_id = dumpster_id

    async def _defer_release(
        self,
        order: Order,
        dumpster_id: uuid.UUID | None,
        exc: DependencyException | NotFoundException,
        result: TransitionResult,
    ) -> None:
        logger.error(
            "Order %s completed but dumpster %s was not released: %s",
            order.order_number, dumpster_id, exc.message,
        )
        result.dumpster_release_pending = True
        result.dumpster_error = exc.message
        await self.outbox.publish_event(
            event_type=EVENT_DUMPSTER_RELEASE_REQUESTED,
            aggregate_type="dumpster",
            aggregate_id=str(dumpster_id or order.id),
            payload={
                "order_id": str(order.id),
                "dumpster_id": str(dumpster_id) if dumpster_id else None,
                "reason": exc.message,
            },
            max_retries=10,
        )

    async def move_on_board(
        self,
        order_id: uuid.UUID,
        to_status: OrderStatus | str,
        from_status: OrderStatus | str | None = None,
        *,
        send_notification: bool = False,
        attachment: NotificationAttachment | dict | None = None,
    ) -> TransitionResult:
        """Policy-checked move used by the dispatch board.

        ``from_status`` is the column the card was dragged from. It is checked
        against the adjacency table, then against the stored status so a stale
        board cannot apply a move to an order that has since changed.
        """
        to_status = parse_order_status(to_status)
        order = await self._get_order_row(order_id)
        source = parse_order_status(from_status) if from_status is not None else order.status

        if to_status not in ORDER_BOARD_TRANSITIONS[source]:
            raise InvalidTransitionException(source.value, to_status.value)

        if to_status in DRIVER_REQUIRED_STATUSES and not (order.assigned_to or "").strip():
            raise PreconditionException(
                f"Cannot move to \"{ORDER_STATUS_LABELS[to_status]}\" without assigning a driver first.",
                details=[{"field": "assigned_to", "order_id": str(order.id)}],
            )

        if source != order.status:
            raise ConflictException(
                f"Order {order.order_number} is '{order.status.value}', not '{source.value}'; "
                "refresh the board and try again",
                details=[{"expected": source.value, "actual": order.status.value}],
            )

        return await self.transition(
            order_id, to_status, send_notification=send_notification, attachment=attachment
        )

    # ------------------------------------------------------------------
    # Board
    # ------------------------------------------------------------------

    async def board(self) -> list[dict]:
        """Orders grouped into board columns with per-column value stats."""
        with store_errors("load board"):
            result = await self.db.execute(
                select(Order)
                .where(Order.status.in_(BOARD_COLUMNS))
                .order_by(Order.created_at.desc())
            )
            orders = list(result.scalars().all())

        columns = []
        for status in BOARD_COLUMNS:
            column_orders = [o for o in orders if o.status == status]
            total_value = sum((o.quoted_price or Decimal("0") for o in column_orders), Decimal("0"))
            count = len(column_orders)
            columns.append({
                "status": status,
                "label": ORDER_STATUS_LABELS[status],
                "color": ORDER_STATUS_COLORS[status],
                "count": count,
                "total_value": total_value,
                "average_value": (total_value / count).quantize(Decimal("0.01")) if count else Decimal("0"),
                "orders": column_orders,
            })
        return columns

    # ------------------------------------------------------------------
    # Updates / delete
    # ------------------------------------------------------------------

    async def update_order(self, order_id: uuid.UUID, **fields) -> Order:
        """Edit descriptive fields. Status only changes through ``transition``."""
        if "status" in fields:
            raise ValidationException(
                "Order status cannot be edited directly; use the status endpoint",
                details=[{"field": "status"}],
            )
        order = await self._get_order_row(order_id)
        for key, value in fields.items():
            if key not in _UPDATABLE_FIELDS:
                continue
            if key == "assigned_to" and isinstance(value, str):
                value = value.strip() or None
            if key == "priority" and value is not None:
                value = Priority(value)
            setattr(order, key, value)
        with store_errors("update order"):
            await self.db.flush()
        logger.info("Updated order %s fields %s", order.order_number, sorted(fields))
        return order

    async def update_line_invoice_description(
        self,
        order_id: uuid.UUID,
        line_id: uuid.UUID,
        invoice_description: str | None,
    ) -> OrderServiceLine:
        with store_errors("load order service line"):
            result = await self.db.execute(
                select(OrderServiceLine).where(
                    OrderServiceLine.id == line_id,
                    OrderServiceLine.order_id == order_id,
                )
            )
            line = result.scalar_one_or_none()
        if line is None:
            raise NotFoundException(f"Service line {line_id} not found on order {order_id}")
        line.invoice_description = (invoice_description or "").strip() or None
        with store_errors("update invoice description"):
            await self.db.flush()
        return line

    async def delete_order(self, order_id: uuid.UUID) -> None:
        """Delete an order, freeing any dumpster it holds first."""
        order = await self._get_order_row(order_id)

        held = await self.ledger.find_assigned(order_id)
        if held is not None:
            await self.ledger.free(held.id)

        with store_errors("delete order"):
            await self.db.execute(
                delete(OrderServiceLine).where(OrderServiceLine.order_id == order_id)
            )
            await self.db.execute(delete(Payment).where(Payment.order_id == order_id))
            await self.db.delete(order)
            await self.db.flush()

        await self.outbox.publish_event(
            event_type=EVENT_ORDER_DELETED,
            aggregate_type="order",
            aggregate_id=str(order_id),
            payload={
                "order_id": str(order_id),
                "order_number": order.order_number,
                "freed_dumpster_id": str(held.id) if held else None,
            },
        )
        logger.info("Deleted order %s", order.order_number)

    async def stats(self) -> dict:
        with store_errors("compute order stats"):
            rows = await self.db.execute(
                select(Order.status, func.count(), func.coalesce(func.sum(Order.quoted_price), 0))
                .group_by(Order.status)
            )
        by_status = {s.value: 0 for s in OrderStatus}
        total_value = Decimal("0")
        for status, count, value in rows.all():
            by_status[status.value] = count
            total_value += Decimal(str(value))
        in_use = await self.db.execute(
            select(func.count()).select_from(Dumpster).where(Dumpster.current_order_id.is_not(None))
        )
        return {
            "total": sum(by_status.values()),
            "by_status": by_status,
            "total_quoted_value": total_value,
            "dumpsters_in_use": in_use.scalar() or 0,
        }
