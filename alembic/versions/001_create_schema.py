"""Create schema - quotes, catalog, orders, dumpsters, payments, outbox

Revision ID: 001
Revises: None
Create Date: 2026-10-18

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB, UUID

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def _pk() -> sa.Column:
    return sa.Column("id", UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), primary_key=True)


def _customer_columns() -> list[sa.Column]:
    return [
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(30), nullable=True),
        sa.Column("address", sa.String(255), nullable=True),
        sa.Column("address2", sa.String(255), nullable=True),
        sa.Column("city", sa.String(100), nullable=True),
        sa.Column("state", sa.String(50), nullable=True),
        sa.Column("zip_code", sa.String(20), nullable=True),
    ]


def upgrade() -> None:
    op.execute('CREATE EXTENSION IF NOT EXISTS "pgcrypto";')

    # 1. quotes
    op.create_table(
        "quotes",
        _pk(),
        *_customer_columns(),
        sa.Column("dumpster_size", sa.String(20), nullable=True),
        sa.Column("dropoff_date", sa.Date, nullable=True),
        sa.Column("dropoff_time", sa.String(20), nullable=True),
        sa.Column("time_needed", sa.String(30), nullable=True),
        sa.Column("message", sa.Text, nullable=True),
        sa.Column("status", sa.String(20), server_default="pending", nullable=False),
        sa.Column("priority", sa.String(20), server_default="normal", nullable=False),
        sa.Column("quoted_price", sa.Numeric(10, 2), nullable=True),
        sa.Column("quote_notes", sa.Text, nullable=True),
        sa.Column("assigned_to", sa.String(100), nullable=True),
        sa.Column("quoted_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('pending', 'quoted', 'accepted', 'declined', 'completed')",
            name="ck_quotes_status",
        ),
    )
    op.create_index("ix_quotes_status", "quotes", ["status"])
    op.create_index("ix_quotes_email", "quotes", ["email"])
    op.create_index("ix_quotes_created_at", "quotes", ["created_at"])

    # 2. service_categories
    op.create_table(
        "service_categories",
        _pk(),
        sa.Column("name", sa.String(100), unique=True, nullable=False),
        sa.Column("display_name", sa.String(150), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("sort_order", sa.Integer, server_default="0", nullable=False),
        sa.Column("is_active", sa.Boolean, server_default="true", nullable=False),
        *_timestamps(),
    )

    # 3. services
    op.create_table(
        "services",
        _pk(),
        sa.Column("category_id", UUID(as_uuid=True), sa.ForeignKey("service_categories.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("sku", sa.String(50), unique=True, nullable=True),
        sa.Column("name", sa.String(150), nullable=False),
        sa.Column("display_name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("base_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("price_type", sa.String(20), server_default="fixed", nullable=False),
        sa.Column("dumpster_size", sa.String(20), nullable=True),
        sa.Column("is_active", sa.Boolean, server_default="true", nullable=False),
        sa.Column("is_taxable", sa.Boolean, server_default="false", nullable=False),
        sa.Column("tax_rate", sa.Numeric(5, 4), server_default="0", nullable=False),
        sa.Column("sort_order", sa.Integer, server_default="0", nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_services_category_id", "services", ["category_id"])
    op.create_index("ix_services_is_active", "services", ["is_active"])

    # 4. orders
    op.create_table(
        "orders",
        _pk(),
        sa.Column("quote_id", UUID(as_uuid=True), sa.ForeignKey("quotes.id", ondelete="SET NULL"), nullable=True),
        *_customer_columns(),
        sa.Column("order_number", sa.String(50), unique=True, nullable=False),
        sa.Column("status", sa.String(20), server_default="pending", nullable=False),
        sa.Column("priority", sa.String(20), server_default="normal", nullable=False),
        sa.Column("quoted_price", sa.Numeric(10, 2), nullable=True),
        sa.Column("final_price", sa.Numeric(10, 2), nullable=True),
        sa.Column("payment_status", sa.String(20), nullable=True),
        sa.Column("assigned_to", sa.String(100), nullable=True),
        sa.Column("driver_notes", sa.Text, nullable=True),
        sa.Column("internal_notes", sa.Text, nullable=True),
        sa.Column("scheduled_delivery_date", sa.Date, nullable=True),
        sa.Column("scheduled_pickup_date", sa.Date, nullable=True),
        sa.Column("actual_delivery_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("actual_pickup_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_with_dumpster_id", UUID(as_uuid=True), nullable=True),
        sa.Column("completed_with_dumpster_name", sa.String(100), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('pending', 'scheduled', 'on_way', 'delivered', "
            "'on_way_pickup', 'completed', 'cancelled')",
            name="ck_orders_status",
        ),
    )
    op.create_index("ix_orders_status", "orders", ["status"])
    op.create_index("ix_orders_email", "orders", ["email"])
    op.create_index("ix_orders_quote_id", "orders", ["quote_id"])
    op.create_index("ix_orders_created_at", "orders", ["created_at"])

    # 5. order_services
    op.create_table(
        "order_services",
        _pk(),
        sa.Column("order_id", UUID(as_uuid=True), sa.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False),
        sa.Column("service_id", UUID(as_uuid=True), sa.ForeignKey("services.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("quantity", sa.Integer, nullable=False),
        sa.Column("unit_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("total_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("invoice_description", sa.Text, nullable=True),
        sa.Column("service_date", sa.Date, nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("status", sa.String(20), server_default="pending", nullable=False),
        *_timestamps(),
        sa.CheckConstraint("quantity > 0", name="ck_order_services_quantity_positive"),
    )
    op.create_index("ix_order_services_order_id", "order_services", ["order_id"])
    op.create_index("ix_order_services_service_id", "order_services", ["service_id"])

    # 6. dumpsters
    op.create_table(
        "dumpsters",
        _pk(),
        sa.Column("name", sa.String(100), unique=True, nullable=False),
        sa.Column("size", sa.String(20), nullable=True),
        sa.Column("status", sa.String(20), server_default="available", nullable=False),
        sa.Column("condition", sa.String(20), server_default="good", nullable=False),
        sa.Column("current_order_id", UUID(as_uuid=True), sa.ForeignKey("orders.id", ondelete="SET NULL"), nullable=True),
        sa.Column("address", sa.String(255), nullable=True),
        sa.Column("last_known_location", sa.String(255), nullable=True),
        sa.Column("gps_latitude", sa.Numeric(10, 7), nullable=True),
        sa.Column("gps_longitude", sa.Numeric(10, 7), nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("last_assigned_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_maintenance_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "(status = 'in_use') = (current_order_id IS NOT NULL)",
            name="ck_dumpsters_in_use_has_order",
        ),
    )
    op.create_index("uq_dumpsters_current_order_id", "dumpsters", ["current_order_id"], unique=True)
    op.create_index("ix_dumpsters_status", "dumpsters", ["status"])

    # 7. payments
    op.create_table(
        "payments",
        _pk(),
        sa.Column("order_id", UUID(as_uuid=True), sa.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False),
        sa.Column("payment_number", sa.String(50), unique=True, nullable=False),
        sa.Column("status", sa.String(20), server_default="DRAFT", nullable=False),
        sa.Column("total_amount", sa.BigInteger, nullable=False),
        sa.Column("paid_amount", sa.BigInteger, server_default="0", nullable=False),
        sa.Column("square_invoice_id", sa.String(255), unique=True, nullable=True),
        sa.Column("public_payment_url", sa.Text, nullable=True),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("viewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("canceled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_webhook_event_id", sa.String(255), nullable=True),
        sa.Column("last_webhook_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_payments_order_id", "payments", ["order_id"])
    op.create_index("ix_payments_status", "payments", ["status"])

    # 8. payment_webhook_events
    op.create_table(
        "payment_webhook_events",
        _pk(),
        sa.Column("event_id", sa.String(255), unique=True, nullable=False),
        sa.Column("event_type", sa.String(100), nullable=False),
        sa.Column("invoice_id", sa.String(255), nullable=True),
        sa.Column("invoice_status", sa.String(50), nullable=True),
        sa.Column("payload", JSONB, server_default="{}", nullable=False),
        sa.Column("received_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_payment_webhook_events_invoice_id", "payment_webhook_events", ["invoice_id"])

    # 9. event_outbox
    op.create_table(
        "event_outbox",
        _pk(),
        sa.Column("event_type", sa.String(255), nullable=False),
        sa.Column("aggregate_type", sa.String(100), nullable=False),
        sa.Column("aggregate_id", sa.String(255), nullable=False),
        sa.Column("payload", JSONB, server_default="{}", nullable=False),
        sa.Column("status", sa.String(20), server_default="PENDING", nullable=False),
        sa.Column("retry_count", sa.Integer, server_default="0", nullable=False),
        sa.Column("max_retries", sa.Integer, server_default="5", nullable=False),
        sa.Column("last_error", sa.Text, nullable=True),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_event_outbox_status_created", "event_outbox", ["status", "created_at"])
    op.create_index("ix_event_outbox_aggregate", "event_outbox", ["aggregate_type", "aggregate_id"])
    op.execute(
        "CREATE INDEX ix_event_outbox_pending ON event_outbox (created_at) "
        "WHERE status = 'PENDING'"
    )


def downgrade() -> None:
    op.drop_table("event_outbox")
    op.drop_table("payment_webhook_events")
    op.drop_table("payments")
    op.drop_table("dumpsters")
    op.drop_table("order_services")
    op.drop_table("orders")
    op.drop_table("services")
    op.drop_table("service_categories")
    op.drop_table("quotes")
