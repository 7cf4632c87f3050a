"""Order domain model — pure dataclass, no SQLAlchemy dependency."""
from dataclasses import dataclass
from datetime import datetime

from src.me_common.enums import OrderStatus
from src.me_common.felt import felt_to_hex

ANY_TAKER = felt_to_hex(0)


@dataclass
class OrderRecord:
    id: str
    order_hash: str
    # Terms (as signed)
    maker: str
    allowed_taker: str
    inscription_id: int
    bps: int
    deadline: int  # unix seconds
    nonce: int
    min_fill_bps: int
    signature_r: str
    signature_s: str
    # Progress
    status: str = OrderStatus.OPEN.value
    filled_bps: int = 0
    reserved_until: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def available_bps(self) -> int:
        # Saturating: an over-reported fill never yields a negative quantity.
        return max(self.bps - self.filled_bps, 0)

    def is_logically_open(self, now: datetime) -> bool:
        """Open, or Reserved with a lapsed reservation."""
        if self.status == OrderStatus.OPEN.value:
            return True
        return (
            self.status == OrderStatus.RESERVED.value
            and self.reserved_until is not None
            and self.reserved_until < now
        )

    def accepts_taker(self, taker: str) -> bool:
        return self.allowed_taker in (ANY_TAKER, taker)
