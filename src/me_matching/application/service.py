"""MatchingService — query → score → aggregate → reserve, strictly in that order.

The reservation UPDATE is the only concurrency control between match
requests. Whatever the aggregator proposed, the response is built from the
ids the UPDATE actually returned.
"""
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.me_common.datetime_utils import utc_now
from src.me_common.errors import BadRequestError
from src.me_common.felt import normalize_address, parse_u256
from src.me_matching.application.schemas import MatchedOrder, MatchRequest, MatchResponse
from src.me_matching.domain.models import OrderScoreInput, ScoredCandidate, TakerIntent
from src.me_matching.domain.scoring import aggregate_orders, available_bps, score_order
from src.me_order.application.schemas import OrderResponse
from src.me_order.domain.models import OrderRecord
from src.me_order.domain.repository import OrderRepositoryProtocol
from src.me_order.infrastructure.persistence import OrderRepository

logger = logging.getLogger(__name__)


def to_intent(req: MatchRequest) -> TakerIntent:
    try:
        inscription_id = parse_u256(req.inscription_id, "inscription_id")
        taker = normalize_address(req.taker, "taker") if req.taker else None
    except ValueError as exc:
        raise BadRequestError(str(exc)) from None
    return TakerIntent(
        action=req.action, bps=req.bps, inscription_id=inscription_id, taker=taker
    )


def score_input(order: OrderRecord) -> OrderScoreInput:
    # Orders carry no separate rate term; the order's bps doubles as its rate.
    return OrderScoreInput(
        rate_bps=order.bps, total_bps=order.bps, filled_bps=order.filled_bps
    )


def score_candidates(
    candidates: list[OrderRecord], intent: TakerIntent
) -> list[ScoredCandidate]:
    scored: list[ScoredCandidate] = []
    for idx, order in enumerate(candidates):
        inputs = score_input(order)
        scored.append(
            ScoredCandidate(
                index=idx,
                score=score_order(inputs, intent.action, intent.bps),
                available_bps=available_bps(inputs),
            )
        )
    return scored


def build_response(
    candidates: list[OrderRecord],
    selected: list[ScoredCandidate],
    reserved_ids: set[str],
    intent_bps: int,
) -> MatchResponse:
    """Fill amounts and coverage over reserved candidates only."""
    remaining = intent_bps
    total_available = 0
    matches: list[MatchedOrder] = []
    for candidate in selected:
        order = candidates[candidate.index]
        if order.id not in reserved_ids:
            continue
        fill_bps = min(candidate.available_bps, remaining)
        remaining -= fill_bps
        total_available += candidate.available_bps
        matches.append(
            MatchedOrder(
                order=OrderResponse.from_record(order),
                score=candidate.score,
                available_bps=candidate.available_bps,
                fill_bps=fill_bps,
            )
        )
    return MatchResponse(
        matches=matches,
        total_available_bps=total_available,
        fully_covered=total_available >= intent_bps,
    )


class MatchingService:
    def __init__(self, repo: OrderRepositoryProtocol | None = None) -> None:
        self._repo: OrderRepositoryProtocol = repo or OrderRepository()

    async def match_intent(
        self, req: MatchRequest, db: AsyncSession, ttl_secs: int
    ) -> MatchResponse:
        intent = to_intent(req)
        now = utc_now()

        candidates = await self._repo.query_eligible(intent.inscription_id, now, db)
        if intent.taker is not None:
            taker = intent.taker
            candidates = [c for c in candidates if c.accepts_taker(taker)]
        # Over-reported fills leave nothing to take.
        candidates = [c for c in candidates if c.available_bps > 0]
        if not candidates:
            return MatchResponse.empty()

        selected = aggregate_orders(score_candidates(candidates, intent), intent.bps)
        if not selected:
            return MatchResponse.empty()

        proposed = [candidates[s.index].id for s in selected]
        try:
            reserved = await self._repo.reserve(proposed, ttl_secs, now, db)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        lost = len(proposed) - len(reserved)
        if lost:
            logger.info(
                "Reservation race: %d of %d proposed orders already taken", lost, len(proposed)
            )
        return build_response(candidates, selected, set(reserved), intent.bps)
