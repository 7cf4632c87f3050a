"""Matching domain models — ephemeral, never persisted."""
from dataclasses import dataclass

from src.me_common.enums import ActionType


@dataclass(frozen=True)
class TakerIntent:
    action: ActionType
    bps: int
    inscription_id: int
    taker: str | None = None  # normalized address; None means no taker filtering


@dataclass(frozen=True)
class OrderScoreInput:
    """Only the numbers scoring needs, decoupled from the stored record."""

    rate_bps: int
    total_bps: int
    filled_bps: int


@dataclass(frozen=True)
class ScoredCandidate:
    index: int  # position in the candidate list handed to the scorer
    score: int
    available_bps: int
