"""Order status vocabulary: board adjacency, display tables, event types."""

from __future__ import annotations

import logging

from ark.exceptions import ValidationException
from ark.models.enums import DumpsterStatus, OrderStatus, QuoteStatus

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Board moves: current_status -> set of allowed next statuses.
# The authoritative transition path ignores this table (admin override).
# ---------------------------------------------------------------------------

ORDER_BOARD_TRANSITIONS: dict[OrderStatus, set[OrderStatus]] = {
    OrderStatus.PENDING: set(),
    OrderStatus.SCHEDULED: {
        OrderStatus.ON_WAY,
        OrderStatus.CANCELLED,
    },
    OrderStatus.ON_WAY: {
        OrderStatus.SCHEDULED,
        OrderStatus.DELIVERED,
    },
    OrderStatus.DELIVERED: {
        OrderStatus.ON_WAY,
        OrderStatus.ON_WAY_PICKUP,
    },
    OrderStatus.ON_WAY_PICKUP: {
        OrderStatus.DELIVERED,
        OrderStatus.COMPLETED,
    },
    OrderStatus.COMPLETED: set(),
    OrderStatus.CANCELLED: set(),
}

# Moves into these statuses need a driver on the order
DRIVER_REQUIRED_STATUSES: set[OrderStatus] = {OrderStatus.ON_WAY}

ORDER_TERMINAL_STATUSES: set[OrderStatus] = {
    OrderStatus.COMPLETED,
    OrderStatus.CANCELLED,
}

# Statuses at or past delivery; actual_delivery_date is set exactly here
ORDER_DELIVERED_OR_LATER: set[OrderStatus] = {
    OrderStatus.DELIVERED,
    OrderStatus.ON_WAY_PICKUP,
    OrderStatus.COMPLETED,
}

BOARD_COLUMNS: tuple[OrderStatus, ...] = (
    OrderStatus.SCHEDULED,
    OrderStatus.ON_WAY,
    OrderStatus.DELIVERED,
    OrderStatus.ON_WAY_PICKUP,
    OrderStatus.COMPLETED,
)

# ---------------------------------------------------------------------------
# Display tables. Every enum member must have an entry.
# ---------------------------------------------------------------------------

ORDER_STATUS_LABELS: dict[OrderStatus, str] = {
    OrderStatus.PENDING: "Pending",
    OrderStatus.SCHEDULED: "Scheduled",
    OrderStatus.ON_WAY: "On Way",
    OrderStatus.DELIVERED: "Delivered",
    OrderStatus.ON_WAY_PICKUP: "On Way to Pickup",
    OrderStatus.COMPLETED: "Completed",
    OrderStatus.CANCELLED: "Cancelled",
}

ORDER_STATUS_COLORS: dict[OrderStatus, str] = {
    OrderStatus.PENDING: "gray",
    OrderStatus.SCHEDULED: "blue",
    OrderStatus.ON_WAY: "indigo",
    OrderStatus.DELIVERED: "green",
    OrderStatus.ON_WAY_PICKUP: "yellow",
    OrderStatus.COMPLETED: "slate",
    OrderStatus.CANCELLED: "red",
}

QUOTE_STATUS_LABELS: dict[QuoteStatus, str] = {
    QuoteStatus.PENDING: "Pending",
    QuoteStatus.QUOTED: "Quoted",
    QuoteStatus.ACCEPTED: "Accepted",
    QuoteStatus.DECLINED: "Declined",
    QuoteStatus.COMPLETED: "Completed",
}

QUOTE_STATUS_COLORS: dict[QuoteStatus, str] = {
    QuoteStatus.PENDING: "yellow",
    QuoteStatus.QUOTED: "blue",
    QuoteStatus.ACCEPTED: "green",
    QuoteStatus.DECLINED: "red",
    QuoteStatus.COMPLETED: "slate",
}

DUMPSTER_STATUS_LABELS: dict[DumpsterStatus, str] = {
    DumpsterStatus.AVAILABLE: "Available",
    DumpsterStatus.IN_USE: "In Use",
}

# Values seen in older records; rejected rather than mapped silently
DEPRECATED_ORDER_STATUS_ALIASES: dict[str, OrderStatus] = {
    "in_progress": OrderStatus.ON_WAY,
    "picked_up": OrderStatus.ON_WAY_PICKUP,
}

# ---------------------------------------------------------------------------
# Event type strings for the outbox
# ---------------------------------------------------------------------------

EVENT_ORDER_CREATED = "order.created"
EVENT_ORDER_STATUS_CHANGED = "order.status_changed"
EVENT_ORDER_STATUS_NOTIFICATION = "order.status_notification"
EVENT_ORDER_DELETED = "order.deleted"
EVENT_DUMPSTER_RELEASE_REQUESTED = "dumpster.release_requested"


def parse_order_status(value: str | OrderStatus) -> OrderStatus:
    """Coerce a raw value into an ``OrderStatus``.

    Unknown values and the deprecated aliases raise ``ValidationException``.
    """
    if isinstance(value, OrderStatus):
        return value
    normalized = (value or "").strip().lower()
    if normalized in DEPRECATED_ORDER_STATUS_ALIASES:
        suggestion = DEPRECATED_ORDER_STATUS_ALIASES[normalized].value
        logger.warning("Rejected deprecated order status alias %r", normalized)
        raise ValidationException(
            f"Order status '{normalized}' is deprecated; use '{suggestion}'",
            details=[{"field": "status", "value": normalized, "suggestion": suggestion}],
        )
    try:
        return OrderStatus(normalized)
    except ValueError:
        raise ValidationException(
            f"Invalid order status '{value}'",
            details=[{"field": "status", "allowed": [s.value for s in OrderStatus]}],
        ) from None


def parse_quote_status(value: str | QuoteStatus) -> QuoteStatus:
    if isinstance(value, QuoteStatus):
        return value
    try:
        return QuoteStatus((value or "").strip().lower())
    except ValueError:
        raise ValidationException(
            f"Invalid quote status '{value}'",
            details=[{"field": "status", "allowed": [s.value for s in QuoteStatus]}],
        ) from None


def order_status_label(status: OrderStatus) -> str:
    return ORDER_STATUS_LABELS[status]
