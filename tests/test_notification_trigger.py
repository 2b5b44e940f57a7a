"""Tests for the pure notification trigger: status mapping, copy, attachments."""

import base64
import uuid

import pytest

from ark.models.enums import NotificationStatus, OrderStatus
from ark.models.order import Order
from ark.modules.notification.trigger import (
    GENERIC_COPY,
    STATUS_COPY,
    NotificationAttachment,
    NotificationPayload,
    build_notification_payload,
    notification_status_for,
    should_notify,
    validate_attachment,
)

PNG = base64.b64encode(b"\x89PNG\r\n\x1a\nfake-image-bytes").decode()


def _order(**overrides) -> Order:
    fields = {
        "id": uuid.uuid4(),
        "order_number": "ORD-20261018-ABC123",
        "first_name": "Dana",
        "last_name": "Reyes",
        "email": "dana@example.com",
        "address": "12 Elm St",
        "city": "Springfield",
        "state": "IL",
        "status": OrderStatus.DELIVERED,
    }
    fields.update(overrides)
    return Order(**fields)


class TestStatusMapping:
    @pytest.mark.parametrize("status,expected", [
        (OrderStatus.ON_WAY, NotificationStatus.ON_WAY),
        (OrderStatus.DELIVERED, NotificationStatus.DELIVERED),
        (OrderStatus.COMPLETED, NotificationStatus.COMPLETED),
        (OrderStatus.SCHEDULED, None),
        (OrderStatus.CANCELLED, None),
        ("picked_up", NotificationStatus.PICKED_UP),
        ("on_way", NotificationStatus.ON_WAY),
        ("nonsense", None),
    ])
    def test_notification_status_for(self, status, expected):
        assert notification_status_for(status) == expected

    def test_every_notification_status_has_copy(self):
        assert set(STATUS_COPY) == set(NotificationStatus)


class TestShouldNotify:
    def test_requires_flag(self):
        assert should_notify(_order(), OrderStatus.DELIVERED, False) is False

    def test_requires_email(self):
        assert should_notify(_order(email="  "), OrderStatus.DELIVERED, True) is False

    def test_requires_copy(self):
        assert should_notify(_order(), OrderStatus.SCHEDULED, True) is False

    def test_notifies(self):
        assert should_notify(_order(), OrderStatus.DELIVERED, True) is True


class TestAttachment:
    def test_valid_image(self):
        attachment = validate_attachment(
            {"filename": "drop.png", "content": PNG, "content_type": "image/png"}
        )
        assert attachment == NotificationAttachment("drop.png", PNG, "image/png")

    @pytest.mark.parametrize("attachment", [
        None,
        {"filename": "drop.png", "content": PNG},
        {"filename": "notes.pdf", "content": PNG, "content_type": "application/pdf"},
        {"filename": "drop.png", "content": "not base64!!", "content_type": "image/png"},
        {"filename": "drop.png", "content": "", "content_type": "image/png"},
    ])
    def test_invalid_attachments_are_dropped(self, attachment):
        assert validate_attachment(attachment) is None


class TestBuildPayload:
    def test_delivered_payload_carries_photo(self):
        payload = build_notification_payload(
            _order(),
            OrderStatus.DELIVERED,
            {"filename": "drop.png", "content": PNG, "content_type": "image/png"},
        )

        assert payload.to == "dana@example.com"
        assert payload.customer_name == "Dana Reyes"
        assert payload.location == "12 Elm St, Springfield, IL"
        assert payload.subject == (
            "Your Dumpster Has Been Delivered! - Order #ORD-20261018-ABC123"
        )
        assert payload.attachment is not None

    def test_photo_only_rides_with_delivered(self):
        payload = build_notification_payload(
            _order(),
            OrderStatus.ON_WAY,
            {"filename": "drop.png", "content": PNG, "content_type": "image/png"},
        )
        assert payload.attachment is None

    def test_partial_address_falls_back(self):
        payload = build_notification_payload(_order(city=None), OrderStatus.ON_WAY)
        assert payload.location == "your location"

    def test_unknown_status_uses_generic_copy(self):
        payload = build_notification_payload(_order(), OrderStatus.SCHEDULED)
        assert payload.title == GENERIC_COPY.title
        assert payload.notification_status is None

    def test_payload_survives_outbox_serialization(self):
        payload = build_notification_payload(
            _order(),
            OrderStatus.DELIVERED,
            NotificationAttachment("drop.png", PNG, "image/png"),
        )

        restored = NotificationPayload.from_dict(payload.to_dict())

        assert restored == payload
        assert payload.to_dict()["notification_status"] == "delivered"

    def test_building_does_not_touch_order(self):
        order = _order()
        before = (order.status, order.email, order.actual_delivery_date)

        build_notification_payload(order, OrderStatus.COMPLETED)

        assert (order.status, order.email, order.actual_delivery_date) == before
