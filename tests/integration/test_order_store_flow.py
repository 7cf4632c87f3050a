"""Integration tests for the order store: reservation CAS, TTL, event replay.

Runs the repository and services against a real PostgreSQL database.
"""

import asyncio
import uuid
from datetime import timedelta

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker

from src.me_common.datetime_utils import utc_now
from src.me_common.enums import ActionType
from src.me_common.felt import felt_to_hex, normalize_address
from src.me_events.application.schemas import WebhookEvent
from src.me_events.application.service import EventReconciler
from src.me_matching.application.schemas import MatchRequest
from src.me_matching.application.service import MatchingService
from src.me_order.domain.models import ANY_TAKER, OrderRecord
from src.me_order.infrastructure.persistence import OrderRepository

pytestmark = pytest.mark.integration

MAKER = normalize_address("0xabc")
INSCRIPTION = 42


def _order(bps: int = 1000, nonce: int = 1) -> OrderRecord:
    return OrderRecord(
        id="",
        order_hash=felt_to_hex(uuid.uuid4().int % (1 << 250)),
        maker=MAKER,
        allowed_taker=ANY_TAKER,
        inscription_id=INSCRIPTION,
        bps=bps,
        deadline=int(utc_now().timestamp()) + 3600,
        nonce=nonce,
        min_fill_bps=0,
        signature_r="0x1",
        signature_s="0x2",
    )


async def _seed(session_factory: async_sessionmaker, *orders: OrderRecord) -> list[OrderRecord]:
    repo = OrderRepository()
    async with session_factory() as db:
        stored = [await repo.insert(o, db) for o in orders]
        await db.commit()
    return stored


class TestReservation:
    async def test_concurrent_matches_are_disjoint(
        self, session_factory: async_sessionmaker
    ) -> None:
        await _seed(session_factory, *(_order() for _ in range(6)))
        service = MatchingService()
        req = MatchRequest(action=ActionType.BORROW, bps=4000, inscription_id=str(INSCRIPTION))

        async def _match() -> list[str]:
            async with session_factory() as db:
                resp = await service.match_intent(req, db, 120)
            return [m.order.id for m in resp.matches]

        results = await asyncio.gather(*(_match() for _ in range(4)))
        taken = [order_id for ids in results for order_id in ids]
        assert len(taken) == len(set(taken))
        assert len(taken) <= 6

    async def test_lapsed_reservation_is_reservable(
        self, session_factory: async_sessionmaker
    ) -> None:
        (order,) = await _seed(session_factory, _order())
        repo = OrderRepository()
        past = utc_now() - timedelta(seconds=10)
        async with session_factory() as db:
            assert await repo.reserve([order.id], 1, past, db) == [order.id]
            await db.commit()
        async with session_factory() as db:
            assert await repo.reserve([order.id], 120, utc_now(), db) == [order.id]
            await db.commit()
        async with session_factory() as db:
            assert await repo.reserve([order.id], 120, utc_now(), db) == []

    async def test_soft_cancel_blocks_reservation(
        self, session_factory: async_sessionmaker
    ) -> None:
        (order,) = await _seed(session_factory, _order())
        repo = OrderRepository()
        async with session_factory() as db:
            assert await repo.soft_cancel(order.id, MAKER, utc_now(), db)
            await db.commit()
            assert await repo.reserve([order.id], 120, utc_now(), db) == []


class TestEventReplay:
    async def test_filled_replay_is_idempotent(
        self, session_factory: async_sessionmaker
    ) -> None:
        (order,) = await _seed(session_factory, _order(bps=5000))
        event = WebhookEvent(
            event_type="order_filled", order_hash=order.order_hash, total_filled="5000"
        )
        reconciler = EventReconciler()
        async with session_factory() as db:
            first = await reconciler.process([event], db)
            second = await reconciler.process([event], db)
            stored = await OrderRepository().get_by_id(order.id, db)
        assert first.processed == second.processed == 1
        assert stored is not None
        assert stored.filled_bps == 5000
        assert stored.status == "filled"

    async def test_bulk_cancel_below_nonce(self, session_factory: async_sessionmaker) -> None:
        low, high = await _seed(session_factory, _order(nonce=3), _order(nonce=10))
        event = WebhookEvent(event_type="orders_bulk_cancelled", maker="0xabc", min_nonce="5")
        repo = OrderRepository()
        async with session_factory() as db:
            await EventReconciler().process([event], db)
            low_after = await repo.get_by_id(low.id, db)
            high_after = await repo.get_by_id(high.id, db)
        assert low_after is not None and low_after.status == "cancelled"
        assert high_after is not None and high_after.status == "open"
