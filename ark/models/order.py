"""Order model: a schedulable unit of work, usually promoted from a quote."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import Date, DateTime, ForeignKey, Index, Numeric, String, Text, Uuid
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ark.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from ark.models.enums import OrderStatus, PaymentStatus, Priority, enum_values

if TYPE_CHECKING:
    from ark.models.order_service import OrderService
    from ark.models.quote import Quote


class Order(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "orders"

    quote_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("quotes.id", ondelete="SET NULL")
    )

    # Customer
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str | None] = mapped_column(String(100))
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(30))

    # Address
    address: Mapped[str | None] = mapped_column(String(255))
    address2: Mapped[str | None] = mapped_column(String(255))
    city: Mapped[str | None] = mapped_column(String(100))
    state: Mapped[str | None] = mapped_column(String(50))
    zip_code: Mapped[str | None] = mapped_column(String(20))

    order_number: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    status: Mapped[OrderStatus] = mapped_column(
        SQLAlchemyEnum(OrderStatus, name="orderstatus", native_enum=False, values_callable=enum_values),
        nullable=False,
        default=OrderStatus.PENDING,
    )
    priority: Mapped[Priority] = mapped_column(
        SQLAlchemyEnum(Priority, name="priority", native_enum=False, values_callable=enum_values),
        nullable=False,
        default=Priority.NORMAL,
    )

    # Pricing
    quoted_price: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))
    final_price: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))
    payment_status: Mapped[PaymentStatus | None] = mapped_column(
        SQLAlchemyEnum(PaymentStatus, name="paymentstatus", native_enum=False, values_callable=enum_values)
    )

    # Assignment
    assigned_to: Mapped[str | None] = mapped_column(String(100))
    driver_notes: Mapped[str | None] = mapped_column(Text)
    internal_notes: Mapped[str | None] = mapped_column(Text)

    # Scheduling
    scheduled_delivery_date: Mapped[date | None] = mapped_column(Date)
    scheduled_pickup_date: Mapped[date | None] = mapped_column(Date)
    actual_delivery_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    actual_pickup_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Completion audit trail; survives the dumpster being freed or deleted
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    completed_with_dumpster_id: Mapped[uuid.UUID | None] = mapped_column(Uuid)
    completed_with_dumpster_name: Mapped[str | None] = mapped_column(String(100))

    # Relationships
    quote: Mapped[Quote | None] = relationship("Quote", lazy="noload")
    services: Mapped[list[OrderService]] = relationship(
        "OrderService",
        back_populates="order",
        lazy="noload",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("ix_orders_status", "status"),
        Index("ix_orders_email", "email"),
        Index("ix_orders_quote_id", "quote_id"),
        Index("ix_orders_created_at", "created_at"),
    )

    @property
    def customer_name(self) -> str:
        return f"{self.first_name} {self.last_name or ''}".strip()

    @property
    def location(self) -> str | None:
        """Street address joined with city and state, as written on a dumpster."""
        parts = [p for p in (self.address, self.city, self.state) if p]
        return ", ".join(parts) or None
