"""Decides when an order status change warrants a customer email.

Everything here is pure: no I/O, no session, no transport. The lifecycle
engine asks ``should_notify`` and, when true, queues the payload built by
``build_notification_payload`` on the outbox.
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING

from ark.models.enums import NotificationStatus, OrderStatus

if TYPE_CHECKING:
    from ark.models.order import Order

TEMPLATE_ORDER_STATUS = "order_status"


@dataclass(frozen=True)
class NotificationAttachment:
    filename: str
    content: str  # base64
    content_type: str


@dataclass(frozen=True)
class StatusCopy:
    title: str
    message: str
    action: str


STATUS_COPY: dict[NotificationStatus, StatusCopy] = {
    NotificationStatus.ON_WAY: StatusCopy(
        title="We're On Our Way!",
        message="Our team is currently en route to your location with your dumpster.",
        action="We should arrive within the next hour. Please ensure the delivery area is accessible.",
    ),
    NotificationStatus.DELIVERED: StatusCopy(
        title="Your Dumpster Has Been Delivered!",
        message="Your dumpster has been successfully delivered to your location.",
        action="You can now begin using your dumpster. Please follow the guidelines provided.",
    ),
    NotificationStatus.PICKED_UP: StatusCopy(
        title="Your Dumpster Has Been Picked Up!",
        message="We have successfully picked up your dumpster from your location.",
        action="Thank you for choosing ARK Dumpster! We hope you were satisfied with our service.",
    ),
    NotificationStatus.COMPLETED: StatusCopy(
        title="Your Order Is Complete!",
        message="Your dumpster rental order has been completed successfully.",
        action="Thank you for your business! We look forward to serving you again.",
    ),
}

GENERIC_COPY = StatusCopy(
    title="Order Update",
    message="There has been an update to your dumpster rental order.",
    action="Reply to this email or call us if you have any questions.",
)

_ORDER_TO_NOTIFICATION: dict[OrderStatus, NotificationStatus] = {
    OrderStatus.ON_WAY: NotificationStatus.ON_WAY,
    OrderStatus.DELIVERED: NotificationStatus.DELIVERED,
    OrderStatus.COMPLETED: NotificationStatus.COMPLETED,
}


@dataclass(frozen=True)
class NotificationPayload:
    to: str
    customer_name: str
    order_id: str
    order_number: str
    status: str
    notification_status: NotificationStatus | None
    subject: str
    title: str
    message: str
    action: str
    location: str
    template_kind: str = TEMPLATE_ORDER_STATUS
    attachment: NotificationAttachment | None = None

    def to_dict(self) -> dict:
        data = asdict(self)
        data["notification_status"] = (
            self.notification_status.value if self.notification_status else None
        )
        return data

    @classmethod
    def from_dict(cls, data: dict) -> NotificationPayload:
        data = dict(data)
        raw_status = data.get("notification_status")
        data["notification_status"] = NotificationStatus(raw_status) if raw_status else None
        if data.get("attachment"):
            data["attachment"] = NotificationAttachment(**data["attachment"])
        return cls(**data)


def notification_status_for(status: OrderStatus | NotificationStatus | str) -> NotificationStatus | None:
    """Map an order status (or an explicit notification status) onto the email subset."""
    if isinstance(status, NotificationStatus):
        return status
    if isinstance(status, OrderStatus):
        return _ORDER_TO_NOTIFICATION.get(status)
    try:
        return NotificationStatus(status)
    except ValueError:
        try:
            return _ORDER_TO_NOTIFICATION.get(OrderStatus(status))
        except ValueError:
            return None


def should_notify(
    order: Order,
    new_status: OrderStatus | NotificationStatus | str,
    send_notification: bool,
) -> bool:
    if not send_notification:
        return False
    if not (order.email or "").strip():
        return False
    return notification_status_for(new_status) is not None


def validate_attachment(attachment: NotificationAttachment | dict | None) -> NotificationAttachment | None:
    """Return the attachment only when it is a decodable base64 image."""
    if attachment is None:
        return None
    if isinstance(attachment, dict):
        try:
            attachment = NotificationAttachment(
                filename=attachment["filename"],
                content=attachment["content"],
                content_type=attachment["content_type"],
            )
        except KeyError:
            return None
    if not attachment.content or not attachment.content_type.lower().startswith("image/"):
        return None
    try:
        decoded = base64.b64decode(attachment.content, validate=True)
    except (binascii.Error, ValueError):
        return None
    if not decoded:
        return None
    return attachment


def build_notification_payload(
    order: Order,
    new_status: OrderStatus | NotificationStatus | str,
    attachment: NotificationAttachment | dict | None = None,
) -> NotificationPayload:
    notification_status = notification_status_for(new_status)
    copy = STATUS_COPY.get(notification_status, GENERIC_COPY) if notification_status else GENERIC_COPY

    if order.address and order.city and order.state:
        location = f"{order.address}, {order.city}, {order.state}"
    else:
        location = "your location"

    # Delivery confirmation photos only ride along with the delivered email
    image = None
    if notification_status == NotificationStatus.DELIVERED:
        image = validate_attachment(attachment)

    raw_status = new_status.value if hasattr(new_status, "value") else str(new_status)
    return NotificationPayload(
        to=order.email,
        customer_name=order.customer_name,
        order_id=str(order.id),
        order_number=order.order_number,
        status=raw_status,
        notification_status=notification_status,
        subject=f"{copy.title} - Order #{order.order_number}",
        title=copy.title,
        message=copy.message,
        action=copy.action,
        location=location,
        attachment=image,
    )
