# src/me_order/application/service.py
"""OrderApplicationService — submission, lookup, listing and maker soft-cancel.

Submission pipeline: parse → hash → duplicate check → account signature
check → deadline check → insert. Each mutating call owns its transaction.
"""
import logging
import uuid

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.me_common.datetime_utils import to_epoch_seconds, utc_now
from src.me_common.enums import OrderStatus
from src.me_common.errors import (
    BadRequestError,
    DuplicateOrderError,
    InvalidSignatureError,
    NotOrderMakerError,
    OrderExpiredError,
    OrderNotCancellableError,
    OrderNotFoundError,
)
from src.me_common.felt import normalize_address, parse_felt, parse_u256
from src.me_order.application.schemas import (
    OrderListResponse,
    OrderResponse,
    SignedOrderIn,
    SubmitOrderRequest,
)
from src.me_order.domain.models import OrderRecord
from src.me_order.domain.repository import OrderRepositoryProtocol
from src.me_order.infrastructure.persistence import OrderRepository
from src.me_signature.application.verifier import SignatureVerifier
from src.me_signature.domain.models import SignedOrder

logger = logging.getLogger(__name__)

MAX_BPS = 10_000
# deadline is stored as a signed 64-bit BIGINT.
MAX_DEADLINE = (1 << 63) - 1


def parse_signed_order(raw: SignedOrderIn) -> SignedOrder:
    """Validate wire fields and convert them to the canonical typed order."""
    try:
        order = SignedOrder(
            maker=normalize_address(raw.maker, "maker"),
            allowed_taker=normalize_address(raw.allowed_taker, "allowed_taker"),
            inscription_id=parse_u256(raw.inscription_id, "inscription_id"),
            bps=parse_u256(raw.bps, "bps"),
            deadline=raw.deadline,
            nonce=parse_felt(raw.nonce, "nonce"),
            min_fill_bps=parse_u256(raw.min_fill_bps, "min_fill_bps"),
        )
    except ValueError as exc:
        raise BadRequestError(str(exc)) from None
    if not 0 < order.bps <= MAX_BPS:
        raise BadRequestError(f"bps must be between 1 and {MAX_BPS}, got {order.bps}")
    if order.min_fill_bps > order.bps:
        raise BadRequestError("min_fill_bps must not exceed bps")
    if order.deadline > MAX_DEADLINE:
        raise BadRequestError(f"deadline must not exceed {MAX_DEADLINE}")
    return order


def parse_order_id(order_id: str) -> str | None:
    try:
        return str(uuid.UUID(order_id))
    except ValueError:
        return None


class OrderApplicationService:
    def __init__(self, repo: OrderRepositoryProtocol | None = None) -> None:
        self._repo: OrderRepositoryProtocol = repo or OrderRepository()

    async def submit_order(
        self,
        req: SubmitOrderRequest,
        db: AsyncSession,
        verifier: SignatureVerifier,
        chain_id: str,
    ) -> OrderResponse:
        order = parse_signed_order(req.order)
        order_hash = verifier.order_hash(chain_id, order)

        if await self._repo.get_by_hash(order_hash, db) is not None:
            raise DuplicateOrderError(order_hash)

        verification = await verifier.verify(chain_id, order, req.signature)
        if not verification.admissible:
            raise InvalidSignatureError()

        if order.deadline <= to_epoch_seconds(utc_now()):
            raise OrderExpiredError()

        record = OrderRecord(
            id="",
            order_hash=order_hash,
            maker=order.maker,
            allowed_taker=order.allowed_taker,
            inscription_id=order.inscription_id,
            bps=order.bps,
            deadline=order.deadline,
            nonce=order.nonce,
            min_fill_bps=order.min_fill_bps,
            signature_r=req.signature[0],
            signature_s=req.signature[1],
        )
        try:
            stored = await self._repo.insert(record, db)
            await db.commit()
        except IntegrityError:
            # Lost a race with an identical submission.
            await db.rollback()
            raise DuplicateOrderError(order_hash) from None
        except Exception:
            await db.rollback()
            raise
        logger.info("Order %s accepted from maker %s", order_hash, order.maker)
        return OrderResponse.from_record(stored)

    async def get_order(self, order_id: str, db: AsyncSession) -> OrderResponse:
        parsed = parse_order_id(order_id)
        order = await self._repo.get_by_id(parsed, db) if parsed else None
        if order is None:
            raise OrderNotFoundError(order_id)
        return OrderResponse.from_record(order)

    async def list_orders(
        self,
        inscription_id: str | None,
        maker: str | None,
        status: str | None,
        limit: int,
        cursor: str | None,
        db: AsyncSession,
    ) -> OrderListResponse:
        try:
            inscription = (
                parse_u256(inscription_id, "inscription_id") if inscription_id else None
            )
            maker_address = normalize_address(maker, "maker") if maker else None
        except ValueError as exc:
            raise BadRequestError(str(exc)) from None
        if status is not None and status not in {s.value for s in OrderStatus}:
            raise BadRequestError(f"Unknown order status: {status}")
        cursor_id = None
        if cursor:
            cursor_id = parse_order_id(cursor)
            if cursor_id is None:
                raise BadRequestError(f"Invalid cursor: {cursor}")

        orders = await self._repo.list_orders(
            inscription_id=inscription,
            maker=maker_address,
            status=status,
            limit=limit + 1,
            cursor_id=cursor_id,
            db=db,
        )
        has_more = len(orders) > limit
        if has_more:
            orders = orders[:limit]
        next_cursor = orders[-1].id if has_more else None
        return OrderListResponse(
            items=[OrderResponse.from_record(o) for o in orders],
            next_cursor=next_cursor,
            has_more=has_more,
        )

    async def cancel_order(self, order_id: str, maker: str, db: AsyncSession) -> None:
        """Maker soft-cancel: off-book only, the on-chain signature stays valid."""
        parsed = parse_order_id(order_id)
        order = await self._repo.get_by_id(parsed, db) if parsed else None
        if order is None or parsed is None:
            raise OrderNotFoundError(order_id)

        try:
            maker_address = normalize_address(maker, "maker")
        except ValueError:
            raise NotOrderMakerError() from None
        if order.maker != maker_address:
            raise NotOrderMakerError()

        now = utc_now()
        if not order.is_logically_open(now):
            raise OrderNotCancellableError(order_id, order.status)

        try:
            changed = await self._repo.soft_cancel(parsed, maker_address, now, db)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        if not changed:
            # Reserved or settled between the read and the conditional update.
            current = await self._repo.get_by_id(parsed, db)
            raise OrderNotCancellableError(order_id, current.status if current else order.status)
        logger.info("Order %s soft-cancelled by maker", order.order_hash)
