import enum


class QuoteStatus(str, enum.Enum):
    PENDING = "pending"
    QUOTED = "quoted"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    COMPLETED = "completed"


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    SCHEDULED = "scheduled"
    ON_WAY = "on_way"
    DELIVERED = "delivered"
    ON_WAY_PICKUP = "on_way_pickup"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class DumpsterStatus(str, enum.Enum):
    AVAILABLE = "available"
    IN_USE = "in_use"


class DumpsterCondition(str, enum.Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    NEEDS_REPAIR = "needs_repair"


class Priority(str, enum.Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class ServicePriceType(str, enum.Enum):
    FIXED = "fixed"
    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"
    CUSTOM = "custom"


class OrderServiceStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    PENDING = "PENDING"
    SENT = "SENT"
    VIEWED = "VIEWED"
    PARTIALLY_PAID = "PARTIALLY_PAID"
    PAID = "PAID"
    OVERDUE = "OVERDUE"
    CANCELED = "CANCELED"
    REFUNDED = "REFUNDED"
    FAILED = "FAILED"


class NotificationStatus(str, enum.Enum):
    """Order states that have dedicated customer-facing email copy."""

    ON_WAY = "on_way"
    DELIVERED = "delivered"
    PICKED_UP = "picked_up"
    COMPLETED = "completed"


class EventStatus(str, enum.Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


def enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    """Persist enum *values* (``on_way``) rather than member names (``ON_WAY``)."""
    return [member.value for member in enum_cls]
