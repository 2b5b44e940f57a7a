"""Centralized v1 API router: all module routers are included here."""

from fastapi import APIRouter

from ark.modules.catalog.router import category_router, service_router
from ark.modules.dumpster.router import router as dumpster_router
from ark.modules.order.router import router as order_router
from ark.modules.payment.router import router as payment_router
from ark.modules.quote.router import router as quote_router

v1_router = APIRouter(prefix="/api/v1")
v1_router.include_router(quote_router)
v1_router.include_router(order_router)
v1_router.include_router(dumpster_router)
v1_router.include_router(category_router)
v1_router.include_router(service_router)
v1_router.include_router(payment_router)
