"""Wires domain handlers to outbox event types."""

from __future__ import annotations

from ark.modules.dumpster.handlers import release_dumpster
from ark.modules.events.handlers import EventHandlerRegistry
from ark.modules.notification.handlers import send_status_notification
from ark.modules.order.constants import (
    EVENT_DUMPSTER_RELEASE_REQUESTED,
    EVENT_ORDER_STATUS_NOTIFICATION,
)


def register_default_handlers() -> None:
    EventHandlerRegistry.register(EVENT_DUMPSTER_RELEASE_REQUESTED, release_dumpster)
    EventHandlerRegistry.register(EVENT_ORDER_STATUS_NOTIFICATION, send_status_notification)
