"""Payments API router: admin bookkeeping and the provider webhook."""

from __future__ import annotations

import json
import logging
import uuid

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ark.database.session import get_db
from ark.exceptions import UnauthorizedException, ValidationException
from ark.modules.auth.dependencies import AuthenticatedAdmin, get_current_admin
from ark.modules.payment.schemas import PaymentCreate, PaymentResponse, WebhookAck
from ark.modules.payment.service import PaymentService
from ark.modules.payment.webhook import SIGNATURE_HEADER, parse_webhook_payload, verify_signature
from ark.schemas.responses import ApiResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["payments"])


@router.get("/orders/{order_id}", response_model=ApiResponse[list[PaymentResponse]])
async def list_order_payments(
    order_id: uuid.UUID,
    admin: AuthenticatedAdmin = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    payments = await PaymentService(db).list_order_payments(order_id)
    return ApiResponse(data=[PaymentResponse.model_validate(p) for p in payments])


@router.post("/orders/{order_id}", response_model=ApiResponse[PaymentResponse], status_code=201)
async def create_payment(
    order_id: uuid.UUID,
    body: PaymentCreate,
    admin: AuthenticatedAdmin = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    payment = await PaymentService(db).create_payment(order_id, **body.model_dump())
    return ApiResponse(data=PaymentResponse.model_validate(payment))


@router.post("/webhooks/square", response_model=ApiResponse[WebhookAck])
async def square_webhook(request: Request, db: AsyncSession = Depends(get_db)):
    """Provider webhook. Authenticated by HMAC signature, not JWT."""
    body = await request.body()
    if not verify_signature(body, request.headers.get(SIGNATURE_HEADER)):
        logger.warning("Rejected webhook with bad signature")
        raise UnauthorizedException("Invalid webhook signature")

    try:
        payload = json.loads(body)
    except ValueError as exc:
        raise ValidationException("Webhook body is not valid JSON") from exc

    result = await PaymentService(db).handle_webhook_event(parse_webhook_payload(payload))
    return ApiResponse(data=WebhookAck(**result))
