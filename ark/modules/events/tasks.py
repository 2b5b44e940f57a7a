"""Celery tasks for event outbox processing."""

from __future__ import annotations

import asyncio
import logging

from celery_app import celery
from ark.database.engine import async_session, engine
from ark.modules.events.outbox_processor import OutboxProcessor
from ark.modules.events.subscriptions import register_default_handlers

logger = logging.getLogger(__name__)


async def _process_outbox_async() -> dict:
    register_default_handlers()
    try:
        return await OutboxProcessor(async_session).process_batch()
    finally:
        # Pooled connections are bound to this event loop
        await engine.dispose()


async def _cleanup_outbox_async() -> int:
    try:
        return await OutboxProcessor(async_session).cleanup_completed()
    finally:
        await engine.dispose()


@celery.task(name="ark.modules.events.tasks.process_outbox")
def process_outbox():
    """Process a batch of pending outbox events."""
    stats = asyncio.run(_process_outbox_async())
    logger.info("process_outbox complete: %s", stats)
    return stats


@celery.task(name="ark.modules.events.tasks.cleanup_outbox")
def cleanup_outbox():
    """Delete completed outbox events past the retention window."""
    return asyncio.run(_cleanup_outbox_async())
