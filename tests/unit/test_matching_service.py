"""Unit tests for MatchingService: query → score → aggregate → reserve."""
import asyncio
from datetime import UTC, datetime, timedelta
from typing import Any
from unittest.mock import AsyncMock

import pytest

from src.me_common.enums import ActionType
from src.me_common.errors import BadRequestError
from src.me_common.felt import normalize_address
from src.me_matching.application.schemas import MatchRequest
from src.me_matching.application.service import MatchingService
from src.me_order.domain.models import ANY_TAKER, OrderRecord

TAKER = normalize_address("0x7")


def _record(order_id: str, bps: int = 5000, filled: int = 0, **kwargs: Any) -> OrderRecord:
    defaults: dict[str, Any] = {
        "id": order_id,
        "order_hash": f"0x{order_id}",
        "maker": normalize_address("0xabc"),
        "allowed_taker": ANY_TAKER,
        "inscription_id": 42,
        "bps": bps,
        "deadline": 4_000_000_000,
        "nonce": 1,
        "min_fill_bps": 0,
        "signature_r": "0x1",
        "signature_s": "0x2",
        "filled_bps": filled,
    }
    defaults.update(kwargs)
    return OrderRecord(**defaults)


def _request(bps: int = 5000, action: str = "Borrow", **kwargs: Any) -> MatchRequest:
    return MatchRequest(action=ActionType(action), bps=bps, inscription_id="42", **kwargs)


def _repo(candidates: list[OrderRecord], reserved: list[str] | None = None) -> AsyncMock:
    repo = AsyncMock()
    repo.query_eligible.return_value = candidates
    if reserved is None:
        repo.reserve.side_effect = lambda ids, *args: list(ids)
    else:
        repo.reserve.return_value = reserved
    return repo


class InMemoryOrderStore:
    """Fake store whose reserve() is an atomic compare-and-swap on status."""

    def __init__(self, orders: list[OrderRecord]) -> None:
        self.orders = {o.id: o for o in orders}

    async def query_eligible(self, inscription_id: int, now: datetime, db: Any) -> list[OrderRecord]:
        await asyncio.sleep(0)
        return [o for o in self.orders.values() if o.is_logically_open(now)]

    async def reserve(self, order_ids: list[str], ttl_secs: int, now: datetime, db: Any) -> list[str]:
        await asyncio.sleep(0)
        won = []
        for order_id in order_ids:
            order = self.orders[order_id]
            if order.is_logically_open(now):
                order.status = "reserved"
                order.reserved_until = now + timedelta(seconds=ttl_secs)
                won.append(order_id)
        return won


class TestMatchIntent:
    async def test_no_candidates_is_empty_response(self) -> None:
        repo = _repo([])
        resp = await MatchingService(repo).match_intent(_request(), AsyncMock(), 120)
        assert resp.matches == []
        assert resp.total_available_bps == 0
        assert resp.fully_covered is False
        repo.reserve.assert_not_called()

    async def test_fully_covered_single_order(self) -> None:
        repo = _repo([_record("a", bps=8000)])
        db = AsyncMock()
        resp = await MatchingService(repo).match_intent(_request(bps=5000), db, 120)
        assert resp.fully_covered
        assert resp.total_available_bps == 8000
        assert resp.matches[0].fill_bps == 5000
        assert resp.matches[0].available_bps == 8000
        db.commit.assert_awaited_once()
        assert repo.reserve.await_args.args[1] == 120

    async def test_fill_split_across_orders(self) -> None:
        repo = _repo([_record("a", bps=3000), _record("b", bps=3000)])
        resp = await MatchingService(repo).match_intent(_request(bps=5000), AsyncMock(), 120)
        assert [m.fill_bps for m in resp.matches] == [3000, 2000]
        assert resp.fully_covered

    async def test_partially_filled_orders_use_remaining(self) -> None:
        repo = _repo([_record("a", bps=5000, filled=4000)])
        resp = await MatchingService(repo).match_intent(_request(bps=5000), AsyncMock(), 120)
        assert resp.matches[0].available_bps == 1000
        assert not resp.fully_covered

    async def test_lost_reservation_reduces_coverage(self) -> None:
        repo = _repo([_record("a", bps=3000), _record("b", bps=3000)], reserved=["b"])
        resp = await MatchingService(repo).match_intent(_request(bps=5000), AsyncMock(), 120)
        assert [m.order.id for m in resp.matches] == ["b"]
        assert resp.matches[0].fill_bps == 3000
        assert resp.total_available_bps == 3000
        assert resp.fully_covered is False

    async def test_reserves_only_aggregated_subset(self) -> None:
        repo = _repo([_record("a", bps=5000), _record("b", bps=5000), _record("c", bps=5000)])
        await MatchingService(repo).match_intent(_request(bps=5000, action="Lend"), AsyncMock(), 120)
        assert len(repo.reserve.await_args.args[0]) == 1

    async def test_taker_filter_drops_restricted_orders(self) -> None:
        restricted = _record("r", allowed_taker=normalize_address("0x8"))
        mine = _record("m", allowed_taker=TAKER)
        repo = _repo([restricted, mine, _record("o")])
        resp = await MatchingService(repo).match_intent(
            _request(bps=10_000, taker="0x7"), AsyncMock(), 120
        )
        assert {m.order.id for m in resp.matches} == {"m", "o"}

    async def test_bad_inscription_id(self) -> None:
        with pytest.raises(BadRequestError):
            await MatchingService(_repo([])).match_intent(
                MatchRequest(action=ActionType.BORROW, bps=1, inscription_id="0xnope"),
                AsyncMock(),
                120,
            )

    async def test_store_failure_rolls_back(self) -> None:
        repo = _repo([_record("a")])
        repo.reserve.side_effect = RuntimeError("db down")
        db = AsyncMock()
        with pytest.raises(RuntimeError):
            await MatchingService(repo).match_intent(_request(), db, 120)
        db.rollback.assert_awaited_once()


class TestConcurrentMatches:
    async def test_single_order_goes_to_exactly_one_taker(self) -> None:
        store = InMemoryOrderStore([_record("only", bps=5000)])
        service = MatchingService(store)  # type: ignore[arg-type]
        first, second = await asyncio.gather(
            service.match_intent(_request(bps=5000), AsyncMock(), 120),
            service.match_intent(_request(bps=5000), AsyncMock(), 120),
        )
        winners = [r for r in (first, second) if r.matches]
        losers = [r for r in (first, second) if not r.matches]
        assert len(winners) == 1 and len(losers) == 1
        assert losers[0].fully_covered is False
        assert losers[0].total_available_bps == 0

    async def test_overlapping_sets_are_disjoint(self) -> None:
        store = InMemoryOrderStore([_record(str(i), bps=1000) for i in range(6)])
        service = MatchingService(store)  # type: ignore[arg-type]
        results = await asyncio.gather(
            *(service.match_intent(_request(bps=4000), AsyncMock(), 120) for _ in range(3))
        )
        taken = [m.order.id for r in results for m in r.matches]
        assert len(taken) == len(set(taken))

    async def test_lapsed_reservation_is_matchable_again(self) -> None:
        order = _record("a", status="reserved", reserved_until=datetime.now(UTC) - timedelta(seconds=1))
        store = InMemoryOrderStore([order])
        resp = await MatchingService(store).match_intent(_request(), AsyncMock(), 120)  # type: ignore[arg-type]
        assert [m.order.id for m in resp.matches] == ["a"]


class TestExhaustedOrders:
    async def test_fully_reported_fills_are_not_reserved(self) -> None:
        spent = _record("spent", bps=3000, filled=3000)
        overfilled = _record("over", bps=3000, filled=4000)
        repo = _repo([spent, overfilled, _record("live", bps=2000)])
        resp = await MatchingService(repo).match_intent(_request(bps=5000), AsyncMock(), 120)
        assert repo.reserve.await_args.args[0] == ["live"]
        assert [m.order.id for m in resp.matches] == ["live"]
        assert all(m.fill_bps > 0 for m in resp.matches)

    async def test_only_exhausted_orders_is_empty(self) -> None:
        repo = _repo([_record("spent", bps=3000, filled=3000)])
        resp = await MatchingService(repo).match_intent(_request(), AsyncMock(), 120)
        assert resp.matches == []
        repo.reserve.assert_not_called()
