"""Scoring Engine and Aggregator — pure functions, integer arithmetic only.

score in [0, MAX_BPS], higher is better for the taker:
  - rate component, weight 0.8: Borrow prefers low rates, Lend prefers high
  - fill-fit component, weight 0.2: MAX_BPS on full coverage, else proportional
Subtractions saturate at zero; nothing here can go negative.
"""
from src.me_common.enums import ActionType
from src.me_matching.domain.models import OrderScoreInput, ScoredCandidate

MAX_BPS = 10_000

RATE_WEIGHT = 8
FILL_WEIGHT = 2
WEIGHT_TOTAL = RATE_WEIGHT + FILL_WEIGHT


def _saturating_sub(a: int, b: int) -> int:
    return a - b if a > b else 0


def available_bps(order: OrderScoreInput) -> int:
    return _saturating_sub(order.total_bps, order.filled_bps)


def score_order(order: OrderScoreInput, action: ActionType, intent_bps: int) -> int:
    available = available_bps(order)
    if available == 0 or intent_bps <= 0:
        return 0

    rate = min(max(order.rate_bps, 0), MAX_BPS)
    if action == ActionType.BORROW:
        rate_score = _saturating_sub(MAX_BPS, rate)
    else:
        rate_score = rate

    if available >= intent_bps:
        fill_fit = MAX_BPS
    else:
        fill_fit = available * MAX_BPS // intent_bps

    return (rate_score * RATE_WEIGHT + fill_fit * FILL_WEIGHT) // WEIGHT_TOTAL


def aggregate_orders(
    candidates: list[ScoredCandidate], intent_bps: int
) -> list[ScoredCandidate]:
    """Greedy coverage: highest score first until the intent is covered.

    The candidate that crosses the threshold is taken whole. If everything
    together falls short, every candidate is returned (best effort). Ties keep
    their incoming order.
    """
    if intent_bps <= 0:
        return []

    ranked = sorted(candidates, key=lambda c: c.score, reverse=True)

    accumulated = 0
    selected: list[ScoredCandidate] = []
    for candidate in ranked:
        if accumulated >= intent_bps:
            break
        accumulated += candidate.available_bps
        selected.append(candidate)
    return selected
