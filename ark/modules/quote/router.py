"""Quote API router: public submission plus admin management."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ark.config import settings
from ark.database.session import get_db
from ark.middleware.rate_limit import limiter
from ark.modules.auth.dependencies import AuthenticatedAdmin, get_current_admin
from ark.modules.notification.service import NotificationService
from ark.modules.notification.transport import EmailTransport, get_email_transport
from ark.modules.quote.schemas import QuoteListResponse, QuoteResponse, QuoteSubmit, QuoteUpdate
from ark.modules.quote.service import QuoteService
from ark.schemas.responses import ApiResponse

router = APIRouter(prefix="/quotes", tags=["quotes"])


@router.post("/", response_model=ApiResponse[QuoteResponse], status_code=201)
@limiter.limit(settings.quote_submission_rate_limit)
async def submit_quote(
    request: Request,
    body: QuoteSubmit,
    db: AsyncSession = Depends(get_db),
    transport: EmailTransport = Depends(get_email_transport),
):
    """Public quote request form."""
    try:
        quote = await QuoteService(db, NotificationService(db, transport)).submit_quote(
            **body.model_dump()
        )
    finally:
        await transport.close()
    return ApiResponse(data=QuoteResponse.model_validate(quote))


@router.get("/", response_model=ApiResponse[QuoteListResponse])
async def list_quotes(
    status: str | None = Query(None),
    email: str | None = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    admin: AuthenticatedAdmin = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    items, total = await QuoteService(db).list_quotes(
        status=status, email=email, limit=limit, offset=offset
    )
    return ApiResponse(data=QuoteListResponse(
        items=[QuoteResponse.model_validate(q) for q in items],
        total=total,
        limit=limit,
        offset=offset,
    ))


@router.get("/{quote_id}", response_model=ApiResponse[QuoteResponse])
async def get_quote(
    quote_id: uuid.UUID,
    admin: AuthenticatedAdmin = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    return ApiResponse(data=QuoteResponse.model_validate(await QuoteService(db).get_quote(quote_id)))


@router.patch("/{quote_id}", response_model=ApiResponse[QuoteResponse])
async def update_quote(
    quote_id: uuid.UUID,
    body: QuoteUpdate,
    admin: AuthenticatedAdmin = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    quote = await QuoteService(db).update_quote(quote_id, **body.model_dump(exclude_unset=True))
    return ApiResponse(data=QuoteResponse.model_validate(quote))


@router.delete("/{quote_id}", response_model=ApiResponse[dict])
async def delete_quote(
    quote_id: uuid.UUID,
    admin: AuthenticatedAdmin = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    await QuoteService(db).delete_quote(quote_id)
    return ApiResponse(data={"id": str(quote_id), "deleted": True})
