"""Signature domain models — pure dataclasses, no I/O."""
from dataclasses import dataclass


@dataclass(frozen=True)
class SignedOrder:
    """Canonical order terms, already parsed and normalized.

    Field order mirrors the on-chain ``SignedOrder`` struct and is part of the
    hashing contract.
    """

    maker: str  # 0x + 64 hex
    allowed_taker: str  # 0x + 64 hex; zero means any taker
    inscription_id: int  # u256
    bps: int  # u256
    deadline: int  # unix seconds, u128
    nonce: int  # felt
    min_fill_bps: int  # u256


@dataclass(frozen=True)
class Verification:
    order_hash: str
    admissible: bool
    reason: str | None = None
