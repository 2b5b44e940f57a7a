"""Plain HTML bodies for transactional emails."""

from __future__ import annotations

from html import escape

TEMPLATE_COMPANY_QUOTE = "company_quote"


def _layout(title: str, body: str) -> str:
    return (
        "<!DOCTYPE html><html><body style=\"font-family:Arial,sans-serif;color:#1f2937\">"
        f"<h1 style=\"font-size:22px\">{escape(title)}</h1>{body}"
        "<p style=\"color:#6b7280;font-size:12px\">ARK Dumpster Rentals</p>"
        "</body></html>"
    )


def render_order_status(payload: dict) -> str:
    body = (
        f"<p>Hi {escape(payload.get('customer_name') or 'there')},</p>"
        f"<p><strong>Order #{escape(payload.get('order_number', ''))}</strong></p>"
        f"<p>{escape(payload.get('message', ''))}</p>"
        f"<p>Location: {escape(payload.get('location', 'your location'))}</p>"
        f"<p>{escape(payload.get('action', ''))}</p>"
    )
    return _layout(payload.get("title", "Order Update"), body)


def render_company_quote(payload: dict) -> str:
    rows = "".join(
        f"<tr><td><strong>{escape(label)}</strong></td><td>{escape(str(value))}</td></tr>"
        for label, value in payload.get("fields", [])
        if value
    )
    return _layout(payload.get("title", "New Quote Request"), f"<table>{rows}</table>")


RENDERERS = {
    "order_status": render_order_status,
    TEMPLATE_COMPANY_QUOTE: render_company_quote,
}


def render(template_kind: str, payload: dict) -> str:
    renderer = RENDERERS.get(template_kind, render_order_status)
    return renderer(payload)
