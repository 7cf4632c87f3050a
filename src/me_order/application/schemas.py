# src/me_order/application/schemas.py
from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, Field, field_validator

from src.me_common.felt import felt_to_hex
from src.me_order.domain.models import OrderRecord


class SignedOrderIn(BaseModel):
    maker: str
    allowed_taker: str = "0x0"
    inscription_id: str  # u256, decimal string
    bps: str  # u256, decimal string
    deadline: int = Field(ge=0)  # unix seconds
    nonce: str  # felt, hex or decimal
    min_fill_bps: str = "0"  # u256, decimal string

    @field_validator("inscription_id", "bps", "min_fill_bps", mode="before")
    @classmethod
    def accept_integers(cls, v: object) -> object:
        # Wallet SDKs sometimes send small u256 values as JSON numbers.
        return str(v) if isinstance(v, int) and not isinstance(v, bool) else v


class SubmitOrderRequest(BaseModel):
    order: SignedOrderIn
    signature: Annotated[list[str], Field(min_length=2, max_length=2)]  # [r, s]


class CancelOrderRequest(BaseModel):
    maker: str


class OrderResponse(BaseModel):
    id: str
    order_hash: str
    maker: str
    allowed_taker: str
    inscription_id: str
    bps: str
    deadline: int
    nonce: str
    min_fill_bps: str
    signature_r: str
    signature_s: str
    status: str
    filled_bps: str
    reserved_until: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_record(cls, order: OrderRecord) -> "OrderResponse":
        return cls(
            id=order.id,
            order_hash=order.order_hash,
            maker=order.maker,
            allowed_taker=order.allowed_taker,
            inscription_id=str(order.inscription_id),
            bps=str(order.bps),
            deadline=order.deadline,
            nonce=felt_to_hex(order.nonce),
            min_fill_bps=str(order.min_fill_bps),
            signature_r=order.signature_r,
            signature_s=order.signature_s,
            status=order.status,
            filled_bps=str(order.filled_bps),
            reserved_until=order.reserved_until,
            created_at=order.created_at,
            updated_at=order.updated_at,
        )


class OrderListResponse(BaseModel):
    items: list[OrderResponse]
    next_cursor: str | None
    has_more: bool
