"""Tests for DumpsterLedger: inventory CRUD and the assignment check-and-set."""

import uuid

import pytest
from sqlalchemy.exc import IntegrityError

from ark.exceptions import (
    ConflictException,
    NotFoundException,
    PreconditionException,
    ValidationException,
)
from ark.models.enums import DumpsterStatus, OrderStatus
from ark.modules.dumpster.service import DumpsterLedger


class TestInventory:
    @pytest.mark.asyncio
    async def test_create_dumpster_starts_available(self, db_session):
        dumpster = await DumpsterLedger(db_session).create_dumpster(name="D-01", size="20")

        assert dumpster.status == DumpsterStatus.AVAILABLE
        assert dumpster.current_order_id is None

    @pytest.mark.asyncio
    async def test_create_requires_name(self, db_session):
        with pytest.raises(ValidationException):
            await DumpsterLedger(db_session).create_dumpster(size="20")

    @pytest.mark.asyncio
    async def test_duplicate_name_conflicts(self, db_session, factory):
        await factory.dumpster(name="D-01")
        with pytest.raises(ConflictException):
            await DumpsterLedger(db_session).create_dumpster(name="D-01")

    @pytest.mark.asyncio
    async def test_update_ignores_assignment_fields(self, db_session, factory):
        dumpster = await factory.dumpster()
        updated = await DumpsterLedger(db_session).update_dumpster(
            dumpster.id, notes="dented lid", status=DumpsterStatus.IN_USE
        )
        assert updated.notes == "dented lid"
        assert updated.status == DumpsterStatus.AVAILABLE

    @pytest.mark.asyncio
    async def test_delete_in_use_dumpster_is_refused(self, db_session, factory):
        order = await factory.order()
        dumpster = await factory.dumpster()
        ledger = DumpsterLedger(db_session)
        await ledger.assign(dumpster.id, order.id)

        with pytest.raises(PreconditionException):
            await ledger.delete_dumpster(dumpster.id)

    @pytest.mark.asyncio
    async def test_stats_counts_by_status(self, db_session, factory):
        order = await factory.order()
        first = await factory.dumpster()
        await factory.dumpster()
        await DumpsterLedger(db_session).assign(first.id, order.id)

        stats = await DumpsterLedger(db_session).stats()

        assert stats["total"] == 2
        assert stats["by_status"] == {"available": 1, "in_use": 1}


class TestAssign:
    @pytest.mark.asyncio
    async def test_assign_marks_in_use(self, db_session, factory):
        order = await factory.order()
        dumpster = await factory.dumpster()

        assigned = await DumpsterLedger(db_session).assign(dumpster.id, order.id)

        assert assigned.status == DumpsterStatus.IN_USE
        assert assigned.current_order_id == order.id
        assert assigned.address == "12 Elm St, Springfield, IL"
        assert assigned.last_assigned_at is not None

    @pytest.mark.asyncio
    async def test_assign_uses_explicit_address(self, db_session, factory):
        order = await factory.order()
        dumpster = await factory.dumpster()

        assigned = await DumpsterLedger(db_session).assign(
            dumpster.id, order.id, address="Back lot"
        )
        assert assigned.address == "Back lot"

    @pytest.mark.asyncio
    async def test_assigning_in_use_dumpster_names_holder(self, db_session, factory):
        holder = await factory.order(order_number="ORD-20261018-AAAAAA")
        other = await factory.order()
        dumpster = await factory.dumpster(name="D-07")
        ledger = DumpsterLedger(db_session)
        await ledger.assign(dumpster.id, holder.id)

        with pytest.raises(ConflictException) as exc_info:
            await ledger.assign(dumpster.id, other.id)

        assert "ORD-20261018-AAAAAA" in exc_info.value.message
        assert exc_info.value.details[0]["order_number"] == "ORD-20261018-AAAAAA"

    @pytest.mark.asyncio
    async def test_order_cannot_hold_two_dumpsters(self, db_session, factory):
        order = await factory.order()
        first = await factory.dumpster()
        second = await factory.dumpster()
        ledger = DumpsterLedger(db_session)
        await ledger.assign(first.id, order.id)

        with pytest.raises(ConflictException):
            await ledger.assign(second.id, order.id)

        refreshed = await ledger.get_dumpster(second.id)
        assert refreshed.status == DumpsterStatus.AVAILABLE

    @pytest.mark.asyncio
    async def test_reassigning_same_dumpster_is_noop(self, db_session, factory):
        order = await factory.order()
        dumpster = await factory.dumpster()
        ledger = DumpsterLedger(db_session)
        await ledger.assign(dumpster.id, order.id)

        again = await ledger.assign(dumpster.id, order.id)

        assert again.id == dumpster.id
        assert again.current_order_id == order.id

    @pytest.mark.asyncio
    async def test_assign_to_closed_order_is_refused(self, db_session, factory):
        order = await factory.order(status=OrderStatus.CANCELLED)
        dumpster = await factory.dumpster()

        with pytest.raises(PreconditionException):
            await DumpsterLedger(db_session).assign(dumpster.id, order.id)

    @pytest.mark.asyncio
    async def test_assign_unknown_dumpster(self, db_session, factory):
        order = await factory.order()
        with pytest.raises(NotFoundException):
            await DumpsterLedger(db_session).assign(uuid.uuid4(), order.id)

    @pytest.mark.asyncio
    async def test_racing_admins_one_wins(self, session_factory, factory_for):
        """Two admins load the same available dumpster; only the first assign lands."""
        async with session_factory() as setup:
            seed = factory_for(setup)
            order_a = await seed.order(order_number="ORD-20261018-00000A")
            order_b = await seed.order(order_number="ORD-20261018-00000B")
            dumpster = await seed.dumpster(name="D-12")
            await setup.commit()

        async with session_factory() as admin_a, session_factory() as admin_b:
            seen_by_b = await DumpsterLedger(admin_b).get_dumpster(dumpster.id)
            assert seen_by_b.status == DumpsterStatus.AVAILABLE
            await admin_b.commit()

            await DumpsterLedger(admin_a).assign(dumpster.id, order_a.id)
            await admin_a.commit()

            with pytest.raises(ConflictException) as exc_info:
                await DumpsterLedger(admin_b).assign(dumpster.id, order_b.id)
            await admin_b.rollback()

        assert "ORD-20261018-00000A" in exc_info.value.message

        async with session_factory() as check:
            final = await DumpsterLedger(check).get_dumpster(dumpster.id)
            assert final.current_order_id == order_a.id


class TestFree:
    @pytest.mark.asyncio
    async def test_free_clears_assignment(self, db_session, factory):
        order = await factory.order()
        dumpster = await factory.dumpster()
        ledger = DumpsterLedger(db_session)
        await ledger.assign(dumpster.id, order.id)

        freed = await ledger.free(dumpster.id)

        assert freed.status == DumpsterStatus.AVAILABLE
        assert freed.current_order_id is None
        assert freed.address is None
        assert await ledger.find_assigned(order.id) is None

    @pytest.mark.asyncio
    async def test_free_is_idempotent(self, db_session, factory):
        dumpster = await factory.dumpster()
        ledger = DumpsterLedger(db_session)

        first = await ledger.free(dumpster.id)
        second = await ledger.free(dumpster.id)

        assert first.status == second.status == DumpsterStatus.AVAILABLE

    @pytest.mark.asyncio
    async def test_free_unknown_dumpster(self, db_session):
        with pytest.raises(NotFoundException):
            await DumpsterLedger(db_session).free(uuid.uuid4())


class TestReassign:
    @pytest.mark.asyncio
    async def test_swap_frees_previous(self, db_session, factory):
        order = await factory.order()
        first = await factory.dumpster()
        second = await factory.dumpster()
        ledger = DumpsterLedger(db_session)
        await ledger.assign(first.id, order.id)

        current = await ledger.reassign(order.id, second.id)

        assert current.id == second.id
        assert (await ledger.get_dumpster(first.id)).status == DumpsterStatus.AVAILABLE
        assert (await ledger.find_assigned(order.id)).id == second.id

    @pytest.mark.asyncio
    async def test_reassign_to_none_releases(self, db_session, factory):
        order = await factory.order()
        dumpster = await factory.dumpster()
        ledger = DumpsterLedger(db_session)
        await ledger.assign(dumpster.id, order.id)

        assert await ledger.reassign(order.id, None) is None
        assert (await ledger.get_dumpster(dumpster.id)).status == DumpsterStatus.AVAILABLE


class TestInvariant:
    @pytest.mark.asyncio
    async def test_in_use_without_order_is_rejected_by_database(self, db_session, factory):
        with pytest.raises(IntegrityError):
            await factory.dumpster(status=DumpsterStatus.IN_USE, current_order_id=None)

    @pytest.mark.asyncio
    async def test_available_with_order_is_rejected_by_database(self, db_session, factory):
        order = await factory.order()
        with pytest.raises(IntegrityError):
            await factory.dumpster(status=DumpsterStatus.AVAILABLE, current_order_id=order.id)
