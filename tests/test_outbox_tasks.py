"""Tests for the Celery entry points that drive the outbox processor."""

from unittest.mock import AsyncMock, MagicMock, patch

from celery_app import celery
from ark.modules.events import tasks
from ark.modules.events.handlers import EventHandlerRegistry
from ark.modules.order.constants import (
    EVENT_DUMPSTER_RELEASE_REQUESTED,
    EVENT_ORDER_STATUS_NOTIFICATION,
)


def test_beat_schedule_points_at_registered_tasks():
    scheduled = {entry["task"] for entry in celery.conf.beat_schedule.values()}
    assert scheduled == {tasks.process_outbox.name, tasks.cleanup_outbox.name}


def test_process_outbox_registers_handlers_and_disposes_engine():
    processor = MagicMock()
    processor.process_batch = AsyncMock(return_value={"processed": 2, "failed": 0})
    engine = MagicMock()
    engine.dispose = AsyncMock()

    with patch.object(tasks, "OutboxProcessor", return_value=processor), \
            patch.object(tasks, "engine", engine):
        stats = tasks.process_outbox()

    assert stats == {"processed": 2, "failed": 0}
    engine.dispose.assert_awaited_once()
    assert EventHandlerRegistry.get_handlers(EVENT_DUMPSTER_RELEASE_REQUESTED)
    assert EventHandlerRegistry.get_handlers(EVENT_ORDER_STATUS_NOTIFICATION)


def test_cleanup_outbox_returns_deleted_count():
    processor = MagicMock()
    processor.cleanup_completed = AsyncMock(return_value=7)
    engine = MagicMock()
    engine.dispose = AsyncMock()

    with patch.object(tasks, "OutboxProcessor", return_value=processor), \
            patch.object(tasks, "engine", engine):
        assert tasks.cleanup_outbox() == 7
