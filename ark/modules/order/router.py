"""Order management API router."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ark.database.session import get_db
from ark.models.enums import OrderStatus
from ark.modules.auth.dependencies import AuthenticatedAdmin, get_current_admin
from ark.modules.dumpster.schemas import DumpsterResponse
from ark.modules.dumpster.service import DumpsterLedger
from ark.modules.notification.service import NotificationService
from ark.modules.notification.transport import EmailTransport, get_email_transport
from ark.modules.order.promotion import (
    CustomerDetails,
    PromotionResult,
    PromotionService,
    ServiceSelection,
)
from ark.modules.order.schemas import (
    BoardColumnResponse,
    BoardMoveRequest,
    InvoiceDescriptionUpdate,
    NotifyRequest,
    NotifyResponse,
    OrderCreate,
    OrderDetailResponse,
    OrderDumpsterRequest,
    OrderListResponse,
    OrderResponse,
    OrderServiceResponse,
    OrderStatsResponse,
    OrderUpdate,
    PromoteQuoteRequest,
    PromotionResponse,
    ServiceSelectionIn,
    StatusChangeRequest,
    TransitionResponse,
)
from ark.modules.order.service import OrderService, TransitionResult
from ark.schemas.responses import ApiResponse

router = APIRouter(prefix="/orders", tags=["orders"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _selections(items: list[ServiceSelectionIn]) -> list[ServiceSelection]:
    return [ServiceSelection(**item.model_dump()) for item in items]


def _promotion_response(result: PromotionResult) -> PromotionResponse:
    return PromotionResponse(
        order=OrderResponse.model_validate(result.order),
        order_services=[OrderServiceResponse.model_validate(s) for s in result.order_services],
    )


def _transition_response(result: TransitionResult) -> TransitionResponse:
    return TransitionResponse(
        order=OrderResponse.model_validate(result.order),
        previous_status=result.previous_status,
        freed_dumpster_id=result.freed_dumpster_id,
        completed_with_dumpster=result.completed_with_dumpster,
        dumpster_release_pending=result.dumpster_release_pending,
        dumpster_error=result.dumpster_error,
        notification_queued=result.notification_queued,
    )


# ---------------------------------------------------------------------------
# Order CRUD
# ---------------------------------------------------------------------------


@router.get("/", response_model=ApiResponse[OrderListResponse])
async def list_orders(
    status: OrderStatus | None = Query(None),
    assigned_to: str | None = Query(None),
    email: str | None = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    admin: AuthenticatedAdmin = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    items, total = await OrderService(db).list_orders(
        status=status, assigned_to=assigned_to, email=email, limit=limit, offset=offset
    )
    return ApiResponse(data=OrderListResponse(
        items=[OrderResponse.model_validate(o) for o in items],
        total=total,
        limit=limit,
        offset=offset,
    ))


@router.post("/", response_model=ApiResponse[PromotionResponse], status_code=201)
async def create_order(
    body: OrderCreate,
    admin: AuthenticatedAdmin = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """Create an order directly, without an originating quote."""
    customer = CustomerDetails(**body.model_dump(include=set(CustomerDetails.__dataclass_fields__)))
    result = await PromotionService(db).create_order(
        customer,
        _selections(body.services),
        quoted_price_override=body.quoted_price_override,
        assigned_to=body.assigned_to,
        priority=body.priority,
        scheduled_delivery_date=body.scheduled_delivery_date,
        scheduled_pickup_date=body.scheduled_pickup_date,
        internal_notes=body.internal_notes,
    )
    return ApiResponse(data=_promotion_response(result))


@router.post("/from-quote/{quote_id}", response_model=ApiResponse[PromotionResponse], status_code=201)
async def promote_quote(
    quote_id: uuid.UUID,
    body: PromoteQuoteRequest,
    admin: AuthenticatedAdmin = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """Promote a quote plus selected services into a pending order."""
    result = await PromotionService(db).promote(
        quote_id,
        _selections(body.services),
        quoted_price_override=body.quoted_price_override,
        assigned_to=body.assigned_to,
        priority=body.priority,
        scheduled_delivery_date=body.scheduled_delivery_date,
        scheduled_pickup_date=body.scheduled_pickup_date,
        internal_notes=body.internal_notes,
    )
    return ApiResponse(data=_promotion_response(result))


@router.post(
    "/from-quote/{quote_id}/convert",
    response_model=ApiResponse[PromotionResponse],
    status_code=201,
)
async def convert_quote(
    quote_id: uuid.UUID,
    admin: AuthenticatedAdmin = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """Promote a quote using the catalog service matching its dumpster size."""
    result = await PromotionService(db).convert_quote(quote_id)
    return ApiResponse(data=_promotion_response(result))


@router.get("/board", response_model=ApiResponse[list[BoardColumnResponse]])
async def order_board(
    admin: AuthenticatedAdmin = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    columns = await OrderService(db).board()
    return ApiResponse(data=[
        BoardColumnResponse(
            **{k: v for k, v in column.items() if k != "orders"},
            orders=[OrderResponse.model_validate(o) for o in column["orders"]],
        )
        for column in columns
    ])


@router.get("/stats", response_model=ApiResponse[OrderStatsResponse])
async def order_stats(
    admin: AuthenticatedAdmin = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    return ApiResponse(data=OrderStatsResponse(**await OrderService(db).stats()))


@router.get("/{order_id}", response_model=ApiResponse[OrderDetailResponse])
async def get_order(
    order_id: uuid.UUID,
    admin: AuthenticatedAdmin = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    order = await OrderService(db).get_order(order_id)
    dumpster = await DumpsterLedger(db).find_assigned(order_id)
    detail = OrderDetailResponse.model_validate(order)
    detail.dumpster = DumpsterResponse.model_validate(dumpster) if dumpster else None
    return ApiResponse(data=detail)


@router.patch("/{order_id}", response_model=ApiResponse[OrderResponse])
async def update_order(
    order_id: uuid.UUID,
    body: OrderUpdate,
    admin: AuthenticatedAdmin = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    order = await OrderService(db).update_order(order_id, **body.model_dump(exclude_unset=True))
    return ApiResponse(data=OrderResponse.model_validate(order))


@router.delete("/{order_id}", response_model=ApiResponse[dict])
async def delete_order(
    order_id: uuid.UUID,
    admin: AuthenticatedAdmin = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    await OrderService(db).delete_order(order_id)
    return ApiResponse(data={"id": str(order_id), "deleted": True})


# ---------------------------------------------------------------------------
# Status
# ---------------------------------------------------------------------------


@router.put("/{order_id}/status", response_model=ApiResponse[TransitionResponse])
async def change_status(
    order_id: uuid.UUID,
    body: StatusChangeRequest,
    admin: AuthenticatedAdmin = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """Set any valid status (admin override) and apply its side effects."""
    result = await OrderService(db).transition(
        order_id,
        body.status,
        send_notification=body.send_notification,
        attachment=body.attachment.model_dump() if body.attachment else None,
    )
    return ApiResponse(data=_transition_response(result))


@router.post("/{order_id}/board-move", response_model=ApiResponse[TransitionResponse])
async def board_move(
    order_id: uuid.UUID,
    body: BoardMoveRequest,
    admin: AuthenticatedAdmin = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """Adjacency-checked move from the dispatch board."""
    result = await OrderService(db).move_on_board(
        order_id,
        body.to_status,
        body.from_status,
        send_notification=body.send_notification,
        attachment=body.attachment.model_dump() if body.attachment else None,
    )
    return ApiResponse(data=_transition_response(result))


@router.post("/{order_id}/notify", response_model=ApiResponse[NotifyResponse])
async def notify_customer(
    order_id: uuid.UUID,
    body: NotifyRequest,
    admin: AuthenticatedAdmin = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
    transport: EmailTransport = Depends(get_email_transport),
):
    """Email the customer about a status right away."""
    try:
        result = await NotificationService(db, transport).notify_order_status(
            order_id,
            body.status,
            body.send_email,
            body.attachment.model_dump() if body.attachment else None,
        )
    finally:
        await transport.close()
    return ApiResponse(data=NotifyResponse(**result))


# ---------------------------------------------------------------------------
# Dumpster and service lines
# ---------------------------------------------------------------------------


@router.put("/{order_id}/dumpster", response_model=ApiResponse[DumpsterResponse | None])
async def set_order_dumpster(
    order_id: uuid.UUID,
    body: OrderDumpsterRequest,
    admin: AuthenticatedAdmin = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """Assign, swap, or (with a null id) release the order's dumpster."""
    await OrderService(db).get_order(order_id)
    dumpster = await DumpsterLedger(db).reassign(order_id, body.dumpster_id, body.address)
    return ApiResponse(data=DumpsterResponse.model_validate(dumpster) if dumpster else None)


@router.patch(
    "/{order_id}/services/{line_id}",
    response_model=ApiResponse[OrderServiceResponse],
)
async def update_service_line(
    order_id: uuid.UUID,
    line_id: uuid.UUID,
    body: InvoiceDescriptionUpdate,
    admin: AuthenticatedAdmin = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    line = await OrderService(db).update_line_invoice_description(
        order_id, line_id, body.invoice_description
    )
    return ApiResponse(data=OrderServiceResponse.model_validate(line))
