# src/me_order/api/router.py
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from src.me_common.context import AppContext, get_context
from src.me_common.database import get_db_session
from src.me_order.application.schemas import (
    CancelOrderRequest,
    OrderListResponse,
    OrderResponse,
    SubmitOrderRequest,
)
from src.me_order.application.service import OrderApplicationService

router = APIRouter(prefix="/orders", tags=["orders"])

_service = OrderApplicationService()


@router.post("", response_model=OrderResponse, status_code=201)
async def submit_order(
    req: SubmitOrderRequest,
    ctx: Annotated[AppContext, Depends(get_context)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> OrderResponse:
    return await _service.submit_order(req, db, ctx.verifier, ctx.settings.CHAIN_ID)


@router.get("", response_model=OrderListResponse)
async def list_orders(
    db: Annotated[AsyncSession, Depends(get_db_session)],
    inscription_id: str | None = Query(None, description="Filter by inscription ID"),
    maker: str | None = Query(None, description="Filter by maker address"),
    status: str | None = Query(None, description="Filter by order status"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
    cursor: str | None = Query(None, description="Pagination cursor (order ID)"),
) -> OrderListResponse:
    return await _service.list_orders(inscription_id, maker, status, limit, cursor, db)


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> OrderResponse:
    return await _service.get_order(order_id, db)


@router.post("/{order_id}/cancel", status_code=204)
async def cancel_order(
    order_id: str,
    req: CancelOrderRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> Response:
    await _service.cancel_order(order_id, req.maker, db)
    return Response(status_code=204)
