"""EventHandlerRegistry: central registry for outbox event handlers."""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Awaitable, Callable

from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

EventHandler = Callable[[AsyncSession, dict], Awaitable[None]]


class EventHandlerRegistry:
    """Class-level registry for event handlers.

    Handlers are coroutines accepting ``(session, payload)``. They run inside
    the processor's transaction, so their writes commit together with the
    event being marked COMPLETED. Multiple handlers can be registered for the
    same event type.
    """

    _handlers: dict[str, list[EventHandler]] = defaultdict(list)

    @classmethod
    def register(cls, event_type: str, handler: EventHandler) -> None:
        if handler in cls._handlers[event_type]:
            return
        cls._handlers[event_type].append(handler)
        logger.info("Registered handler %s for event type %s", handler.__name__, event_type)

    @classmethod
    def get_handlers(cls, event_type: str) -> list[EventHandler]:
        return list(cls._handlers.get(event_type, []))

    @classmethod
    async def dispatch(cls, event_type: str, session: AsyncSession, payload: dict) -> list[dict]:
        """Dispatch an event to all registered handlers.

        Returns a list of result dicts with handler name and status.
        Errors are logged and captured but do not stop other handlers.
        """
        results = []
        for handler in cls.get_handlers(event_type):
            try:
                await handler(session, payload)
                results.append({"handler": handler.__name__, "status": "ok"})
            except Exception as exc:
                logger.exception(
                    "Handler %s failed for event type %s", handler.__name__, event_type
                )
                results.append({
                    "handler": handler.__name__,
                    "status": "error",
                    "error": str(exc),
                })
        return results

    @classmethod
    def clear(cls) -> None:
        """Remove all registered handlers. Useful for testing."""
        cls._handlers.clear()
