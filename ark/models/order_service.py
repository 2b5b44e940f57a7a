"""OrderService model: a service line item owned by an order."""

from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import Date, ForeignKey, Index, Integer, Numeric, Text, Uuid
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ark.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from ark.models.enums import OrderServiceStatus, enum_values

if TYPE_CHECKING:
    from ark.models.order import Order
    from ark.models.service import Service


class OrderService(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "order_services"

    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False
    )
    service_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("services.id", ondelete="RESTRICT"), nullable=False
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    total_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    invoice_description: Mapped[str | None] = mapped_column(Text)
    service_date: Mapped[date | None] = mapped_column(Date)
    notes: Mapped[str | None] = mapped_column(Text)
    status: Mapped[OrderServiceStatus] = mapped_column(
        SQLAlchemyEnum(OrderServiceStatus, name="orderservicestatus", native_enum=False, values_callable=enum_values),
        nullable=False,
        default=OrderServiceStatus.PENDING,
    )

    order: Mapped[Order] = relationship("Order", back_populates="services", lazy="noload")
    service: Mapped[Service] = relationship("Service", lazy="noload")

    __table_args__ = (
        Index("ix_order_services_order_id", "order_id"),
        Index("ix_order_services_service_id", "service_id"),
    )
