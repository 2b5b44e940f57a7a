"""Tests for OrderService: status transitions, dumpster release, board moves."""

import uuid
from datetime import UTC, datetime
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from ark.exceptions import (
    ConflictException,
    DependencyException,
    InvalidTransitionException,
    NotFoundException,
    PreconditionException,
    ValidationException,
)
from ark.models.enums import DumpsterStatus, EventStatus, OrderStatus
from ark.models.event_outbox import EventOutbox
from ark.models.order import Order
from ark.models.order_service import OrderService as OrderServiceLine
from ark.modules.dumpster.handlers import release_dumpster
from ark.modules.dumpster.service import DumpsterLedger
from ark.modules.events.handlers import EventHandlerRegistry
from ark.modules.events.outbox_processor import OutboxProcessor
from ark.modules.order.constants import (
    EVENT_DUMPSTER_RELEASE_REQUESTED,
    EVENT_ORDER_DELETED,
    EVENT_ORDER_STATUS_CHANGED,
    EVENT_ORDER_STATUS_NOTIFICATION,
)
from ark.modules.order.service import OrderService


async def _events(session, event_type: str) -> list[EventOutbox]:
    result = await session.execute(
        select(EventOutbox).where(EventOutbox.event_type == event_type)
    )
    return list(result.scalars().all())


async def _delivered_with_dumpster(factory, db_session, **order_fields):
    order = await factory.order(status=OrderStatus.DELIVERED, **order_fields)
    dumpster = await factory.dumpster(name="D-20")
    await DumpsterLedger(db_session).assign(dumpster.id, order.id)
    return order, dumpster


class TestTransition:
    @pytest.mark.asyncio
    async def test_completion_frees_dumpster_and_records_it(self, db_session, factory):
        order, dumpster = await _delivered_with_dumpster(factory, db_session)

        result = await OrderService(db_session).transition(order.id, OrderStatus.COMPLETED)

        assert result.order.status == OrderStatus.COMPLETED
        assert result.order.completed_at is not None
        assert result.order.completed_with_dumpster_id == dumpster.id
        assert result.order.completed_with_dumpster_name == "D-20"
        assert result.freed_dumpster_id == dumpster.id
        assert result.dumpster_release_pending is False

        freed = await DumpsterLedger(db_session).get_dumpster(dumpster.id)
        assert freed.status == DumpsterStatus.AVAILABLE
        assert freed.current_order_id is None

        changed = await _events(db_session, EVENT_ORDER_STATUS_CHANGED)
        assert changed[0].payload["from_status"] == "delivered"
        assert changed[0].payload["to_status"] == "completed"
        assert changed[0].payload["freed_dumpster_id"] == str(dumpster.id)

    @pytest.mark.asyncio
    async def test_completion_without_dumpster(self, db_session, factory):
        order = await factory.order(status=OrderStatus.ON_WAY_PICKUP)

        result = await OrderService(db_session).transition(order.id, "completed")

        assert result.freed_dumpster_id is None
        assert result.order.completed_with_dumpster_name is None

    @pytest.mark.asyncio
    async def test_failed_release_keeps_completion_and_queues_retry(
        self, db_session, factory, session_factory
    ):
        order, dumpster = await _delivered_with_dumpster(factory, db_session)
        ledger = DumpsterLedger(db_session)
        ledger.free = AsyncMock(side_effect=DependencyException("database unavailable"))

        result = await OrderService(db_session, ledger=ledger).transition(
            order.id, OrderStatus.COMPLETED
        )

        assert result.order.status == OrderStatus.COMPLETED
        assert result.dumpster_release_pending is True
        assert result.dumpster_error == "database unavailable"
        assert result.order.completed_with_dumpster_name == "D-20"

        retries = await _events(db_session, EVENT_DUMPSTER_RELEASE_REQUESTED)
        assert len(retries) == 1
        assert retries[0].max_retries == 10
        assert retries[0].payload["dumpster_id"] == str(dumpster.id)
        await db_session.commit()

        # The worker picks the retry up and frees the dumpster
        EventHandlerRegistry.register(EVENT_DUMPSTER_RELEASE_REQUESTED, release_dumpster)
        stats = await OutboxProcessor(session_factory).process_batch()
        assert stats["failed"] == 0

        async with session_factory() as check:
            freed = await DumpsterLedger(check).get_dumpster(dumpster.id)
            assert freed.status == DumpsterStatus.AVAILABLE
            stored = await check.get(Order, order.id)
            assert stored.status == OrderStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_savepoint_failure_defers_release(self, db_session, factory, monkeypatch):
        order, dumpster = await _delivered_with_dumpster(factory, db_session)

        def no_savepoint():
            raise OperationalError("SAVEPOINT sa_savepoint_1", {}, Exception("connection reset"))

        monkeypatch.setattr(db_session, "begin_nested", no_savepoint)

        result = await OrderService(db_session).transition(order.id, OrderStatus.COMPLETED)

        assert result.order.status == OrderStatus.COMPLETED
        assert result.dumpster_release_pending is True
        assert result.freed_dumpster_id is None
        retries = await _events(db_session, EVENT_DUMPSTER_RELEASE_REQUESTED)
        assert retries[0].payload["dumpster_id"] is None
        assert retries[0].payload["order_id"] == str(order.id)

    @pytest.mark.asyncio
    async def test_release_retry_skips_dumpster_now_on_another_order(
        self, db_session, factory
    ):
        completed = await factory.order(status=OrderStatus.COMPLETED)
        current = await factory.order()
        dumpster = await factory.dumpster()
        await DumpsterLedger(db_session).assign(dumpster.id, current.id)

        await release_dumpster(
            db_session, {"order_id": str(completed.id), "dumpster_id": str(dumpster.id)}
        )

        still = await DumpsterLedger(db_session).get_dumpster(dumpster.id)
        assert still.current_order_id == current.id

    @pytest.mark.asyncio
    async def test_delivered_always_restamps(self, db_session, factory):
        order = await factory.order(status=OrderStatus.ON_WAY)
        service = OrderService(db_session)
        await service.transition(order.id, OrderStatus.DELIVERED)

        stale = datetime(2020, 1, 1, tzinfo=UTC)
        order.actual_delivery_date = stale
        await db_session.flush()

        result = await service.transition(order.id, OrderStatus.DELIVERED)

        assert result.order.actual_delivery_date is not None
        assert result.order.actual_delivery_date.year != 2020

    @pytest.mark.asyncio
    async def test_moving_back_before_delivery_clears_delivery_date(self, db_session, factory):
        order = await factory.order(status=OrderStatus.ON_WAY)
        service = OrderService(db_session)
        await service.transition(order.id, OrderStatus.DELIVERED)

        result = await service.transition(order.id, OrderStatus.ON_WAY)

        assert result.order.actual_delivery_date is None

    @pytest.mark.asyncio
    async def test_pickup_stamps_missing_delivery_date(self, db_session, factory):
        order = await factory.order(status=OrderStatus.SCHEDULED)

        result = await OrderService(db_session).transition(order.id, OrderStatus.ON_WAY_PICKUP)

        assert result.order.actual_delivery_date is not None

    @pytest.mark.asyncio
    async def test_leaving_completed_clears_completed_at(self, db_session, factory):
        order = await factory.order(status=OrderStatus.ON_WAY_PICKUP)
        service = OrderService(db_session)
        await service.transition(order.id, OrderStatus.COMPLETED)

        result = await service.transition(order.id, OrderStatus.DELIVERED)

        assert result.order.completed_at is None
        assert result.previous_status == OrderStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_cancel_keeps_delivery_date(self, db_session, factory):
        order = await factory.order(status=OrderStatus.ON_WAY)
        service = OrderService(db_session)
        delivered = await service.transition(order.id, OrderStatus.DELIVERED)
        stamped = delivered.order.actual_delivery_date

        result = await service.transition(order.id, OrderStatus.CANCELLED)

        assert result.order.actual_delivery_date == stamped
        assert result.order.completed_at is None

    @pytest.mark.asyncio
    async def test_admin_override_skips_adjacency(self, db_session, factory):
        order = await factory.order(status=OrderStatus.PENDING, assigned_to=None)

        result = await OrderService(db_session).transition(order.id, OrderStatus.COMPLETED)

        assert result.order.status == OrderStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_deprecated_alias_is_rejected(self, db_session, factory):
        order = await factory.order()
        with pytest.raises(ValidationException):
            await OrderService(db_session).transition(order.id, "picked_up")

    @pytest.mark.asyncio
    async def test_unknown_order(self, db_session):
        with pytest.raises(NotFoundException):
            await OrderService(db_session).transition(uuid.uuid4(), OrderStatus.DELIVERED)


class TestNotificationQueue:
    @pytest.mark.asyncio
    async def test_on_way_with_flag_queues_email(self, db_session, factory):
        order = await factory.order(status=OrderStatus.SCHEDULED)

        result = await OrderService(db_session).transition(
            order.id, OrderStatus.ON_WAY, send_notification=True
        )

        assert result.notification_queued is True
        queued = await _events(db_session, EVENT_ORDER_STATUS_NOTIFICATION)
        assert queued[0].payload["to"] == "dana@example.com"
        assert queued[0].payload["notification_status"] == "on_way"
        assert queued[0].payload["location"] == "12 Elm St, Springfield, IL"

    @pytest.mark.asyncio
    async def test_without_flag_nothing_is_queued(self, db_session, factory):
        order = await factory.order(status=OrderStatus.SCHEDULED)

        result = await OrderService(db_session).transition(order.id, OrderStatus.ON_WAY)

        assert result.notification_queued is False
        assert await _events(db_session, EVENT_ORDER_STATUS_NOTIFICATION) == []

    @pytest.mark.asyncio
    async def test_status_without_copy_is_not_emailed(self, db_session, factory):
        order = await factory.order(status=OrderStatus.PENDING)

        result = await OrderService(db_session).transition(
            order.id, OrderStatus.SCHEDULED, send_notification=True
        )

        assert result.notification_queued is False


class TestBoardMove:
    @pytest.mark.asyncio
    async def test_on_way_requires_driver(self, db_session, factory):
        order = await factory.order(status=OrderStatus.SCHEDULED, assigned_to=None)

        with pytest.raises(PreconditionException) as exc_info:
            await OrderService(db_session).move_on_board(order.id, OrderStatus.ON_WAY)

        assert "assigning a driver" in exc_info.value.message
        stored = await db_session.get(Order, order.id)
        assert stored.status == OrderStatus.SCHEDULED

    @pytest.mark.asyncio
    async def test_blank_driver_counts_as_missing(self, db_session, factory):
        order = await factory.order(status=OrderStatus.SCHEDULED, assigned_to="   ")

        with pytest.raises(PreconditionException):
            await OrderService(db_session).move_on_board(order.id, "on_way")

    @pytest.mark.asyncio
    async def test_adjacent_move_with_driver(self, db_session, factory):
        order = await factory.order(status=OrderStatus.SCHEDULED)

        result = await OrderService(db_session).move_on_board(
            order.id, OrderStatus.ON_WAY, OrderStatus.SCHEDULED
        )

        assert result.order.status == OrderStatus.ON_WAY

    @pytest.mark.asyncio
    async def test_skipping_a_column_is_invalid(self, db_session, factory):
        order = await factory.order(status=OrderStatus.SCHEDULED)

        with pytest.raises(InvalidTransitionException) as exc_info:
            await OrderService(db_session).move_on_board(order.id, OrderStatus.COMPLETED)

        assert exc_info.value.from_status == "scheduled"
        assert exc_info.value.to_status == "completed"

    @pytest.mark.asyncio
    async def test_completed_card_cannot_move(self, db_session, factory):
        order = await factory.order(status=OrderStatus.COMPLETED)

        with pytest.raises(InvalidTransitionException):
            await OrderService(db_session).move_on_board(order.id, OrderStatus.ON_WAY_PICKUP)

    @pytest.mark.asyncio
    async def test_stale_board_conflicts(self, db_session, factory):
        order = await factory.order(status=OrderStatus.ON_WAY)

        with pytest.raises(ConflictException):
            await OrderService(db_session).move_on_board(
                order.id, OrderStatus.ON_WAY, from_status=OrderStatus.SCHEDULED
            )

    @pytest.mark.asyncio
    async def test_board_move_to_completed_frees_dumpster(self, db_session, factory):
        order = await factory.order(status=OrderStatus.ON_WAY_PICKUP)
        dumpster = await factory.dumpster()
        await DumpsterLedger(db_session).assign(dumpster.id, order.id)

        result = await OrderService(db_session).move_on_board(order.id, OrderStatus.COMPLETED)

        assert result.freed_dumpster_id == dumpster.id


class TestBoardAndCrud:
    @pytest.mark.asyncio
    async def test_board_columns_and_values(self, db_session, factory):
        await factory.order(status=OrderStatus.SCHEDULED, quoted_price=Decimal("300.00"))
        await factory.order(status=OrderStatus.SCHEDULED, quoted_price=Decimal("401.00"))
        await factory.order(status=OrderStatus.PENDING)

        columns = {c["status"]: c for c in await OrderService(db_session).board()}

        assert OrderStatus.PENDING not in columns
        scheduled = columns[OrderStatus.SCHEDULED]
        assert scheduled["count"] == 2
        assert scheduled["total_value"] == Decimal("701.00")
        assert scheduled["average_value"] == Decimal("350.50")
        assert columns[OrderStatus.DELIVERED]["count"] == 0

    @pytest.mark.asyncio
    async def test_status_is_not_directly_editable(self, db_session, factory):
        order = await factory.order()
        with pytest.raises(ValidationException):
            await OrderService(db_session).update_order(order.id, status="completed")

    @pytest.mark.asyncio
    async def test_update_trims_driver(self, db_session, factory):
        order = await factory.order(assigned_to=None)

        updated = await OrderService(db_session).update_order(order.id, assigned_to="  Lee ")

        assert updated.assigned_to == "Lee"

    @pytest.mark.asyncio
    async def test_delete_frees_dumpster_and_lines(self, db_session, factory):
        service_row = await factory.service()
        order = await factory.order()
        db_session.add(OrderServiceLine(
            order_id=order.id,
            service_id=service_row.id,
            quantity=1,
            unit_price=Decimal("350.00"),
            total_price=Decimal("350.00"),
        ))
        dumpster = await factory.dumpster()
        await DumpsterLedger(db_session).assign(dumpster.id, order.id)

        await OrderService(db_session).delete_order(order.id)

        lines = await db_session.execute(select(func.count()).select_from(OrderServiceLine))
        assert lines.scalar() == 0
        freed = await DumpsterLedger(db_session).get_dumpster(dumpster.id)
        assert freed.status == DumpsterStatus.AVAILABLE
        deleted = await _events(db_session, EVENT_ORDER_DELETED)
        assert deleted[0].payload["freed_dumpster_id"] == str(dumpster.id)
        assert deleted[0].status == EventStatus.PENDING

    @pytest.mark.asyncio
    async def test_invoice_description_is_trimmed(self, db_session, factory):
        service_row = await factory.service()
        order = await factory.order()
        line = OrderServiceLine(
            order_id=order.id,
            service_id=service_row.id,
            quantity=1,
            unit_price=Decimal("350.00"),
            total_price=Decimal("350.00"),
        )
        db_session.add(line)
        await db_session.flush()

        updated = await OrderService(db_session).update_line_invoice_description(
            order.id, line.id, "  20yd rental, 7 days  "
        )

        assert updated.invoice_description == "20yd rental, 7 days"
