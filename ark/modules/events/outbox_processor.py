"""OutboxProcessor: drains pending outbox events for the Celery worker."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ark.config import settings
from ark.modules.events.handlers import EventHandlerRegistry
from ark.modules.events.outbox_service import OutboxService

logger = logging.getLogger(__name__)


class HandlerError(RuntimeError):
    pass


class OutboxProcessor:
    """Processes pending outbox events in batches.

    Events are claimed with ``FOR UPDATE SKIP LOCKED`` for safe multi-worker
    concurrency. Each event runs inside its own savepoint: a failing handler
    rolls back only its own writes, and the event goes back to PENDING (or
    FAILED once ``max_retries`` is reached).
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def process_batch(self, batch_size: int | None = None) -> dict:
        """Process a batch of pending events.

        Returns dict with 'processed' and 'failed' counts.
        """
        batch_size = batch_size or settings.event_outbox_batch_size
        processed_count = 0
        failed_count = 0

        async with self.session_factory() as session:
            outbox = OutboxService(session)
            events = await outbox.get_pending_events(batch_size, lock=True)

            for event in events:
                # A rolled-back savepoint expires the event; never lazy-load it
                event_id, event_type = event.id, event.event_type
                payload = dict(event.payload)
                try:
                    async with session.begin_nested():
                        await outbox.mark_processing(event)
                        results = await EventHandlerRegistry.dispatch(
                            event_type, session, payload
                        )
                        errors = [r for r in results if r["status"] == "error"]
                        if errors:
                            raise HandlerError(
                                "; ".join(f"{r['handler']}: {r['error']}" for r in errors)
                            )
                        await outbox.mark_completed(event)
                    processed_count += 1
                except Exception as exc:
                    logger.warning(
                        "Outbox event %s (type=%s) failed: %s", event_id, event_type, exc
                    )
                    await session.refresh(event)
                    await outbox.mark_failed(event, str(exc))
                    failed_count += 1

            await session.commit()

        if processed_count or failed_count:
            logger.info(
                "Outbox batch done: %d processed, %d failed", processed_count, failed_count
            )
        return {"processed": processed_count, "failed": failed_count}

    async def cleanup_completed(self, retention_days: int | None = None) -> int:
        """Delete completed outbox events older than the retention window."""
        retention_days = retention_days or settings.event_outbox_retention_days
        async with self.session_factory() as session:
            deleted = await OutboxService(session).delete_completed_before(retention_days)
            await session.commit()
        logger.info("Cleaned up %d completed outbox events", deleted)
        return deleted
