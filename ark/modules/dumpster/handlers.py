"""Outbox handler that retries dumpster releases left pending by order completion."""

from __future__ import annotations

import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from ark.modules.dumpster.service import DumpsterLedger

logger = logging.getLogger(__name__)


async def release_dumpster(session: AsyncSession, payload: dict) -> None:
    ledger = DumpsterLedger(session)
    order_id = uuid.UUID(payload["order_id"])

    if payload.get("dumpster_id"):
        dumpster = await ledger.get_dumpster(uuid.UUID(payload["dumpster_id"]))
    else:
        # The lookup itself failed at completion time
        dumpster = await ledger.find_assigned(order_id)
        if dumpster is None:
            return

    if dumpster.current_order_id is not None and dumpster.current_order_id != order_id:
        logger.info(
            "Skipping release of dumpster %s: now held by order %s",
            dumpster.name, dumpster.current_order_id,
        )
        return

    await ledger.free(dumpster.id)
    logger.info("Released dumpster %s for completed order %s", dumpster.name, order_id)
