"""OutboxService: async service for publishing and managing outbox events."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from ark.models.enums import EventStatus
from ark.models.event_outbox import EventOutbox


class OutboxService:
    """Manages the event outbox lifecycle (publish, fetch, mark)."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def publish_event(
        self,
        event_type: str,
        aggregate_type: str,
        aggregate_id: str,
        payload: dict,
        max_retries: int = 5,
    ) -> EventOutbox:
        """Create a new event in the outbox with PENDING status.

        The row is flushed on the caller's session, so it commits or rolls
        back together with the state change that produced it.
        """
        event = EventOutbox(
            event_type=event_type,
            aggregate_type=aggregate_type,
            aggregate_id=aggregate_id,
            payload=payload,
            status=EventStatus.PENDING,
            retry_count=0,
            max_retries=max_retries,
        )
        self.session.add(event)
        await self.session.flush()
        return event

    async def get_pending_events(
        self, batch_size: int = 50, *, lock: bool = False
    ) -> list[EventOutbox]:
        """Get pending events ordered by created_at, limited to batch_size.

        With ``lock=True`` rows are selected ``FOR UPDATE SKIP LOCKED`` so
        concurrent workers never pick up the same event.
        """
        statement = (
            select(EventOutbox)
            .where(EventOutbox.status == EventStatus.PENDING)
            .order_by(EventOutbox.created_at.asc())
            .limit(batch_size)
        )
        if lock:
            statement = statement.with_for_update(skip_locked=True)
        result = await self.session.execute(statement)
        return list(result.scalars().all())

    async def mark_processing(self, event: EventOutbox) -> None:
        event.status = EventStatus.PROCESSING
        await self.session.flush()

    async def mark_completed(self, event: EventOutbox) -> None:
        event.status = EventStatus.COMPLETED
        event.processed_at = datetime.now(UTC)
        event.last_error = None
        await self.session.flush()

    async def mark_failed(self, event: EventOutbox, error: str) -> None:
        """Increment retry_count and set last_error.

        If retry_count >= max_retries, set status to FAILED.
        Otherwise, set status back to PENDING for retry.
        """
        event.retry_count += 1
        event.last_error = error[:2000]
        event.status = (
            EventStatus.FAILED
            if event.retry_count >= event.max_retries
            else EventStatus.PENDING
        )
        await self.session.flush()

    async def get_event(self, event_id: uuid.UUID) -> EventOutbox | None:
        result = await self.session.execute(
            select(EventOutbox).where(EventOutbox.id == event_id)
        )
        return result.scalar_one_or_none()

    async def delete_completed_before(self, retention_days: int) -> int:
        cutoff = datetime.now(UTC) - timedelta(days=retention_days)
        result = await self.session.execute(
            delete(EventOutbox)
            .where(
                EventOutbox.status == EventStatus.COMPLETED,
                EventOutbox.processed_at < cutoff,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0
