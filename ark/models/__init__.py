# Import all models so SQLAlchemy metadata is populated for Alembic autogenerate
from ark.models.dumpster import Dumpster
from ark.models.enums import (
    DumpsterCondition,
    DumpsterStatus,
    EventStatus,
    NotificationStatus,
    OrderServiceStatus,
    OrderStatus,
    PaymentStatus,
    Priority,
    QuoteStatus,
    ServicePriceType,
)
from ark.models.event_outbox import EventOutbox
from ark.models.order import Order
from ark.models.order_service import OrderService
from ark.models.payment import Payment
from ark.models.payment_webhook_event import PaymentWebhookEvent
from ark.models.quote import Quote
from ark.models.service import Service
from ark.models.service_category import ServiceCategory

__all__ = [
    "Dumpster",
    "DumpsterCondition",
    "DumpsterStatus",
    "EventOutbox",
    "EventStatus",
    "NotificationStatus",
    "Order",
    "OrderService",
    "OrderServiceStatus",
    "OrderStatus",
    "Payment",
    "PaymentStatus",
    "PaymentWebhookEvent",
    "Priority",
    "Quote",
    "QuoteStatus",
    "Service",
    "ServiceCategory",
    "ServicePriceType",
]
