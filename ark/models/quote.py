"""Quote model: a customer's initial, unscheduled request for service."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Date, DateTime, Index, Numeric, String, Text
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column

from ark.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from ark.models.enums import Priority, QuoteStatus, enum_values


class Quote(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "quotes"

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

    # Requested service
    dumpster_size: Mapped[str | None] = mapped_column(String(20))
    dropoff_date: Mapped[date | None] = mapped_column(Date)
    dropoff_time: Mapped[str | None] = mapped_column(String(20))
    time_needed: Mapped[str | None] = mapped_column(String(30))
    message: Mapped[str | None] = mapped_column(Text)

    # Admin handling
    status: Mapped[QuoteStatus] = mapped_column(
        SQLAlchemyEnum(QuoteStatus, name="quotestatus", native_enum=False, values_callable=enum_values),
        nullable=False,
        default=QuoteStatus.PENDING,
    )
    priority: Mapped[Priority] = mapped_column(
        SQLAlchemyEnum(Priority, name="priority", native_enum=False, values_callable=enum_values),
        nullable=False,
        default=Priority.NORMAL,
    )
    quoted_price: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))
    quote_notes: Mapped[str | None] = mapped_column(Text)
    assigned_to: Mapped[str | None] = mapped_column(String(100))
    quoted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        Index("ix_quotes_status", "status"),
        Index("ix_quotes_email", "email"),
        Index("ix_quotes_created_at", "created_at"),
    )

    @property
    def customer_name(self) -> str:
        return f"{self.first_name} {self.last_name or ''}".strip()
