from pydantic import BaseModel, Field

from src.me_common.enums import ActionType
from src.me_order.application.schemas import OrderResponse


class MatchRequest(BaseModel):
    action: ActionType
    bps: int = Field(gt=0)
    inscription_id: str = Field(min_length=1)
    taker: str | None = None


class MatchedOrder(BaseModel):
    order: OrderResponse
    score: int
    available_bps: int
    fill_bps: int  # how much of this order to take for the intent


class MatchResponse(BaseModel):
    matches: list[MatchedOrder]
    total_available_bps: int
    fully_covered: bool

    @classmethod
    def empty(cls) -> "MatchResponse":
        return cls(matches=[], total_available_bps=0, fully_covered=False)
