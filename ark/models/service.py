"""Service model: master catalog of billable services."""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, Index, Integer, Numeric, String, Text, Uuid
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ark.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from ark.models.enums import ServicePriceType, enum_values

if TYPE_CHECKING:
    from ark.models.service_category import ServiceCategory


class Service(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "services"

    category_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("service_categories.id", ondelete="RESTRICT"), nullable=False
    )
    sku: Mapped[str | None] = mapped_column(String(50), unique=True)
    name: Mapped[str] = mapped_column(String(150), nullable=False)
    display_name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)

    base_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    price_type: Mapped[ServicePriceType] = mapped_column(
        SQLAlchemyEnum(ServicePriceType, name="servicepricetype", native_enum=False, values_callable=enum_values),
        nullable=False,
        default=ServicePriceType.FIXED,
    )
    dumpster_size: Mapped[str | None] = mapped_column(String(20))

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_taxable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    tax_rate: Mapped[Decimal] = mapped_column(Numeric(5, 4), nullable=False, default=Decimal("0"))
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    category: Mapped[ServiceCategory] = relationship(
        "ServiceCategory", back_populates="services", lazy="noload"
    )

    __table_args__ = (
        Index("ix_services_category_id", "category_id"),
        Index("ix_services_is_active", "is_active"),
    )
