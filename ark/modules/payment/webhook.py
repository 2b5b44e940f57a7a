"""Payments-provider webhook parsing and signature verification."""

from __future__ import annotations

import base64
import hashlib
import hmac
from dataclasses import dataclass, field

from ark.config import settings
from ark.exceptions import ValidationException

SIGNATURE_HEADER = "x-square-hmacsha256-signature"


@dataclass
class WebhookEvent:
    event_type: str
    event_id: str
    invoice_id: str | None = None
    invoice_status: str | None = None
    paid_amount: int | None = None  # cents
    public_url: str | None = None
    payload: dict = field(default_factory=dict)


def verify_signature(
    body: bytes,
    signature: str | None,
    *,
    signature_key: str | None = None,
    notification_url: str | None = None,
) -> bool:
    """Check the provider's HMAC-SHA256 signature over ``notification_url + body``.

    Verification is skipped (returns True) when no signature key is configured.
    """
    key = signature_key if signature_key is not None else settings.square_webhook_signature_key
    if not key:
        return True
    if not signature:
        return False
    url = notification_url if notification_url is not None else settings.square_webhook_notification_url
    digest = hmac.new(key.encode(), url.encode() + body, hashlib.sha256).digest()
    expected = base64.b64encode(digest).decode()
    return hmac.compare_digest(expected, signature)


def parse_webhook_payload(payload: dict) -> WebhookEvent:
    if not isinstance(payload, dict):
        raise ValidationException("Webhook payload must be a JSON object")
    event_type = payload.get("type")
    event_id = payload.get("event_id")
    if not event_type or not event_id:
        raise ValidationException(
            "Webhook payload is missing type or event_id",
            details=[{"field": "type" if not event_type else "event_id"}],
        )

    obj = (payload.get("data") or {}).get("object") or {}
    invoice = obj.get("invoice") or {}
    paid_amount = None
    requests = invoice.get("paymentRequests") or invoice.get("payment_requests") or []
    if requests:
        money = (
            requests[0].get("totalCompletedAmountMoney")
            or requests[0].get("total_completed_amount_money")
            or {}
        )
        if money.get("amount") is not None:
            paid_amount = int(money["amount"])

    return WebhookEvent(
        event_type=event_type,
        event_id=event_id,
        invoice_id=invoice.get("id"),
        invoice_status=invoice.get("status"),
        paid_amount=paid_amount,
        public_url=invoice.get("publicUrl") or invoice.get("public_url"),
        payload=payload,
    )
