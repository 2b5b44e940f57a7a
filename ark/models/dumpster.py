"""Dumpster model: a physical asset tracked by the dumpster ledger."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Numeric, String, Text, Uuid
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column

from ark.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from ark.models.enums import DumpsterCondition, DumpsterStatus, enum_values


class Dumpster(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "dumpsters"

    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    size: Mapped[str | None] = mapped_column(String(20))
    status: Mapped[DumpsterStatus] = mapped_column(
        SQLAlchemyEnum(DumpsterStatus, name="dumpsterstatus", native_enum=False, values_callable=enum_values),
        nullable=False,
        default=DumpsterStatus.AVAILABLE,
    )
    condition: Mapped[DumpsterCondition] = mapped_column(
        SQLAlchemyEnum(DumpsterCondition, name="dumpstercondition", native_enum=False, values_callable=enum_values),
        nullable=False,
        default=DumpsterCondition.GOOD,
    )

    # Weak back-reference: the dumpster does not own the order
    current_order_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("orders.id", ondelete="SET NULL")
    )
    address: Mapped[str | None] = mapped_column(String(255))

    # Location
    last_known_location: Mapped[str | None] = mapped_column(String(255))
    gps_latitude: Mapped[Decimal | None] = mapped_column(Numeric(10, 7))
    gps_longitude: Mapped[Decimal | None] = mapped_column(Numeric(10, 7))

    notes: Mapped[str | None] = mapped_column(Text)
    last_assigned_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    last_maintenance_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        CheckConstraint(
            "(status = 'in_use') = (current_order_id IS NOT NULL)",
            name="ck_dumpsters_in_use_has_order",
        ),
        # One dumpster per order; NULLs do not collide
        Index("uq_dumpsters_current_order_id", "current_order_id", unique=True),
        Index("ix_dumpsters_status", "status"),
    )
