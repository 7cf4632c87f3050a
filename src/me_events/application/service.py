"""EventReconciler — folds settlement notifications into order state.

Delivery upstream is at-least-once and may reorder, so every event is applied
on its own transaction and every effect is an overwrite with the value the
ledger reports. A bad, unknown or failing event is logged and skipped; the
batch itself never fails.
"""
import logging
from typing import Any

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.me_common.datetime_utils import utc_now
from src.me_common.enums import EventType, OrderStatus
from src.me_common.felt import felt_to_hex, normalize_address, parse_felt, parse_u256
from src.me_events.application.schemas import WebhookEvent, WebhookResponse
from src.me_order.domain.repository import OrderRepositoryProtocol
from src.me_order.infrastructure.persistence import OrderRepository

logger = logging.getLogger(__name__)


class SkipEvent(Exception):
    """Raised inside a handler when an event cannot be applied."""


def _order_hash(event: WebhookEvent) -> str:
    if not event.order_hash:
        raise SkipEvent(f"{event.event_type} event missing order_hash")
    try:
        return felt_to_hex(parse_felt(event.order_hash, "order_hash"))
    except ValueError as exc:
        raise SkipEvent(str(exc)) from None


class EventReconciler:
    def __init__(self, repo: OrderRepositoryProtocol | None = None) -> None:
        self._repo: OrderRepositoryProtocol = repo or OrderRepository()

    async def process(self, events: list[Any], db: AsyncSession) -> WebhookResponse:
        """Apply raw or pre-validated events in order; returns how many took effect."""
        processed = 0
        for event in events:
            if await self._apply_one(event, db):
                processed += 1
        return WebhookResponse(ok=True, processed=processed)

    async def _apply_one(self, raw: Any, db: AsyncSession) -> bool:
        try:
            event = WebhookEvent.model_validate(raw)
        except ValidationError as exc:
            first = exc.errors()[0]
            logger.warning(
                "Malformed webhook event, skipping: %s: %s",
                ".".join(str(part) for part in first.get("loc", ())) or "event",
                first.get("msg", "invalid value"),
            )
            return False

        try:
            event_type = EventType(event.event_type)
        except ValueError:
            logger.warning("Unknown webhook event type %r, skipping", event.event_type)
            return False

        try:
            if event_type == EventType.ORDER_FILLED:
                applied = await self._order_filled(event, db)
            elif event_type == EventType.ORDER_CANCELLED:
                applied = await self._order_cancelled(event, db)
            else:
                applied = await self._bulk_cancelled(event, db)
            await db.commit()
        except SkipEvent as exc:
            await db.rollback()
            logger.warning("Skipping webhook event: %s", exc)
            return False
        except SQLAlchemyError:
            await db.rollback()
            logger.exception("Failed to apply %s event, skipping", event.event_type)
            return False
        return applied

    async def _order_filled(self, event: WebhookEvent, db: AsyncSession) -> bool:
        order_hash = _order_hash(event)
        if event.total_filled is None:
            raise SkipEvent("order_filled event missing total_filled")
        try:
            total_filled = parse_u256(event.total_filled, "total_filled")
        except ValueError as exc:
            raise SkipEvent(str(exc)) from None

        # total_filled is cumulative: overwrite, never add.
        order_bps = await self._repo.update_filled(order_hash, total_filled, db)
        if order_bps is None:
            logger.info("order_filled for unknown order %s, ignoring", order_hash)
            return False
        if total_filled > order_bps:
            logger.warning(
                "Order %s reported filled %d above its size %d", order_hash, total_filled, order_bps
            )
        if total_filled == order_bps:
            await self._repo.update_status(order_hash, OrderStatus.FILLED.value, db)
        return True

    async def _order_cancelled(self, event: WebhookEvent, db: AsyncSession) -> bool:
        order_hash = _order_hash(event)
        changed = await self._repo.update_status(order_hash, OrderStatus.CANCELLED.value, db)
        if not changed:
            logger.info("order_cancelled for unknown order %s, ignoring", order_hash)
        return changed

    async def _bulk_cancelled(self, event: WebhookEvent, db: AsyncSession) -> bool:
        if not event.maker or not event.min_nonce:
            raise SkipEvent("orders_bulk_cancelled event missing maker or min_nonce")
        try:
            maker = normalize_address(event.maker, "maker")
            min_nonce = parse_felt(event.min_nonce, "min_nonce")
        except ValueError as exc:
            raise SkipEvent(str(exc)) from None

        count = await self._repo.bulk_cancel_by_nonce(maker, min_nonce, utc_now(), db)
        logger.info("Bulk cancelled %d orders for maker %s below nonce %d", count, maker, min_nonce)
        return True
