"""Dumpster ledger: inventory and the asset-to-order assignment state.

Assignment is a check-and-set: a single conditional ``UPDATE ... WHERE
status = 'available'`` decides which of two racing admins wins, so the
losing request sees zero affected rows and gets a ``ConflictException``
naming the order that now holds the asset.
"""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ark.database.errors import store_errors
from ark.exceptions import (
    ConflictException,
    NotFoundException,
    PreconditionException,
    ValidationException,
)
from ark.models.dumpster import Dumpster
from ark.models.enums import DumpsterCondition, DumpsterStatus
from ark.models.order import Order
from ark.modules.order.constants import ORDER_TERMINAL_STATUSES

logger = logging.getLogger(__name__)

# Fields an admin may edit directly; assignment state goes through assign/free
_EDITABLE_FIELDS = {
    "name",
    "size",
    "condition",
    "notes",
    "last_known_location",
    "gps_latitude",
    "gps_longitude",
    "last_maintenance_at",
}


class DumpsterLedger:
    def __init__(self, db: AsyncSession):
        self.db = db

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def _fetch(self, dumpster_id: uuid.UUID) -> Dumpster | None:
        # populate_existing: conditional UPDATEs bypass the identity map
        result = await self.db.execute(
            select(Dumpster)
            .where(Dumpster.id == dumpster_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_dumpster(self, dumpster_id: uuid.UUID) -> Dumpster:
        with store_errors("load dumpster"):
            dumpster = await self._fetch(dumpster_id)
        if dumpster is None:
            raise NotFoundException(f"Dumpster {dumpster_id} not found")
        return dumpster

    async def find_assigned(self, order_id: uuid.UUID) -> Dumpster | None:
        """Return the dumpster whose ``current_order_id`` points at the order."""
        with store_errors("look up assigned dumpster"):
            result = await self.db.execute(
                select(Dumpster)
                .where(Dumpster.current_order_id == order_id)
                .execution_options(populate_existing=True)
            )
            return result.scalars().first()

    async def list_dumpsters(self, status: DumpsterStatus | None = None) -> list[Dumpster]:
        query = select(Dumpster)
        if status is not None:
            query = query.where(Dumpster.status == status)
        with store_errors("list dumpsters"):
            result = await self.db.execute(
                query.order_by(Dumpster.name.asc()).execution_options(populate_existing=True)
            )
            return list(result.scalars().all())

    async def list_available(self) -> list[Dumpster]:
        return await self.list_dumpsters(status=DumpsterStatus.AVAILABLE)

    async def stats(self) -> dict:
        """Counts by status and by condition, plus the total."""
        with store_errors("compute dumpster stats"):
            status_rows = await self.db.execute(
                select(Dumpster.status, func.count()).group_by(Dumpster.status)
            )
            condition_rows = await self.db.execute(
                select(Dumpster.condition, func.count()).group_by(Dumpster.condition)
            )
        by_status = {s.value: 0 for s in DumpsterStatus}
        by_status.update({status.value: count for status, count in status_rows.all()})
        by_condition = {c.value: 0 for c in DumpsterCondition}
        by_condition.update({cond.value: count for cond, count in condition_rows.all()})
        return {
            "total": sum(by_status.values()),
            "by_status": by_status,
            "by_condition": by_condition,
        }

    # ------------------------------------------------------------------
    # Inventory CRUD
    # ------------------------------------------------------------------

    async def create_dumpster(self, **fields) -> Dumpster:
        data = {k: v for k, v in fields.items() if k in _EDITABLE_FIELDS}
        if not data.get("name"):
            raise ValidationException("Dumpster name is required")
        with store_errors("create dumpster"):
            existing = await self.db.execute(
                select(Dumpster.id).where(Dumpster.name == data["name"])
            )
            if existing.scalar_one_or_none() is not None:
                raise ConflictException(f"Dumpster '{data['name']}' already exists")
            dumpster = Dumpster(
                status=DumpsterStatus.AVAILABLE,
                condition=data.pop("condition", None) or DumpsterCondition.GOOD,
                **data,
            )
            self.db.add(dumpster)
            await self.db.flush()
        logger.info("Created dumpster %s (%s)", dumpster.id, dumpster.name)
        return dumpster

    async def update_dumpster(self, dumpster_id: uuid.UUID, **fields) -> Dumpster:
        """Update descriptive fields. Assignment state is never edited here."""
        dumpster = await self.get_dumpster(dumpster_id)
        for key, value in fields.items():
            if key in _EDITABLE_FIELDS:
                setattr(dumpster, key, value)
        with store_errors("update dumpster"):
            try:
                await self.db.flush()
            except IntegrityError as exc:
                raise ConflictException(f"Dumpster '{dumpster.name}' already exists") from exc
        return dumpster

    async def delete_dumpster(self, dumpster_id: uuid.UUID) -> None:
        dumpster = await self.get_dumpster(dumpster_id)
        if dumpster.status == DumpsterStatus.IN_USE:
            raise PreconditionException(
                f"Dumpster {dumpster.name} is in use; free it before deleting",
                details=[{"current_order_id": str(dumpster.current_order_id)}],
            )
        with store_errors("delete dumpster"):
            await self.db.delete(dumpster)
            await self.db.flush()
        logger.info("Deleted dumpster %s", dumpster_id)

    # ------------------------------------------------------------------
    # Assignment
    # ------------------------------------------------------------------

    async def _get_order(self, order_id: uuid.UUID) -> Order:
        with store_errors("load order"):
            result = await self.db.execute(select(Order).where(Order.id == order_id))
            order = result.scalar_one_or_none()
        if order is None:
            raise NotFoundException(f"Order {order_id} not found")
        return order

    async def _holder_number(self, order_id: uuid.UUID | None) -> str | None:
        if order_id is None:
            return None
        result = await self.db.execute(select(Order.order_number).where(Order.id == order_id))
        return result.scalar_one_or_none()

    async def assign(
        self,
        dumpster_id: uuid.UUID,
        order_id: uuid.UUID,
        address: str | None = None,
    ) -> Dumpster:
        """Put a dumpster in use for an order.

        Raises ``ConflictException`` when the dumpster is already in use or the
        order already holds a different dumpster. Assigning the dumpster an
        order already holds is a no-op.
        """
        order = await self._get_order(order_id)
        if order.status in ORDER_TERMINAL_STATUSES:
            raise PreconditionException(
                f"Order {order.order_number} is {order.status.value}; "
                "dumpsters cannot be assigned to it"
            )

        held = await self.find_assigned(order_id)
        if held is not None:
            if held.id == dumpster_id:
                return held
            raise ConflictException(
                f"Order {order.order_number} already holds dumpster {held.name}",
                details=[{"order_id": str(order_id), "dumpster_id": str(held.id)}],
            )

        now = datetime.now(UTC)
        with store_errors("assign dumpster"):
            try:
                result = await self.db.execute(
                    update(Dumpster)
                    .where(
                        Dumpster.id == dumpster_id,
                        Dumpster.status == DumpsterStatus.AVAILABLE,
                    )
                    .values(
                        status=DumpsterStatus.IN_USE,
                        current_order_id=order_id,
                        address=address or order.location,
                        last_assigned_at=now,
                        updated_at=now,
                    )
                    .execution_options(synchronize_session=False)
                )
            except IntegrityError as exc:
                # Unique index on current_order_id: a concurrent assign won
                raise ConflictException(
                    f"Order {order.order_number} already holds a dumpster"
                ) from exc

            dumpster = await self._fetch(dumpster_id)
            if dumpster is None:
                raise NotFoundException(f"Dumpster {dumpster_id} not found")

            if result.rowcount == 0:
                holder_number = await self._holder_number(dumpster.current_order_id)
                raise ConflictException(
                    f"Dumpster {dumpster.name} is already assigned to order "
                    f"{holder_number or dumpster.current_order_id}",
                    details=[{
                        "dumpster_id": str(dumpster.id),
                        "current_order_id": str(dumpster.current_order_id),
                        "order_number": holder_number,
                    }],
                )

        logger.info(
            "Assigned dumpster %s to order %s", dumpster.name, order.order_number
        )
        return dumpster

    async def free(self, dumpster_id: uuid.UUID) -> Dumpster:
        """Make a dumpster available again. Freeing a free dumpster is a no-op."""
        dumpster = await self.get_dumpster(dumpster_id)
        if dumpster.status == DumpsterStatus.AVAILABLE and dumpster.current_order_id is None:
            return dumpster

        previous_order_id = dumpster.current_order_id
        with store_errors("free dumpster"):
            dumpster.status = DumpsterStatus.AVAILABLE
            dumpster.current_order_id = None
            dumpster.address = None
            await self.db.flush()

        logger.info("Freed dumpster %s (was on order %s)", dumpster.name, previous_order_id)
        return dumpster

    async def reassign(
        self,
        order_id: uuid.UUID,
        dumpster_id: uuid.UUID | None,
        address: str | None = None,
    ) -> Dumpster | None:
        """Point an order at a different dumpster, or at none when ``dumpster_id`` is None."""
        current = await self.find_assigned(order_id)
        if current is not None and current.id == dumpster_id:
            return current
        if current is not None:
            await self.free(current.id)
        if dumpster_id is None:
            return None
        return await self.assign(dumpster_id, order_id, address)
