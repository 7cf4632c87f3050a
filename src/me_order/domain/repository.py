"""OrderRepository Protocol — interface contract for persistence layer."""
from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.me_order.domain.models import OrderRecord


class OrderRepositoryProtocol(Protocol):
    async def insert(self, order: OrderRecord, db: AsyncSession) -> OrderRecord: ...

    async def get_by_id(self, order_id: str, db: AsyncSession) -> OrderRecord | None: ...

    async def get_by_hash(self, order_hash: str, db: AsyncSession) -> OrderRecord | None: ...

    async def list_orders(
        self,
        inscription_id: int | None,
        maker: str | None,
        status: str | None,
        limit: int,
        cursor_id: str | None,
        db: AsyncSession,
    ) -> list[OrderRecord]: ...

    async def query_eligible(
        self, inscription_id: int, now: datetime, db: AsyncSession
    ) -> list[OrderRecord]: ...

    async def reserve(
        self, order_ids: list[str], ttl_secs: int, now: datetime, db: AsyncSession
    ) -> list[str]: ...

    async def soft_cancel(
        self, order_id: str, maker: str, now: datetime, db: AsyncSession
    ) -> bool: ...

    async def update_status(self, order_hash: str, status: str, db: AsyncSession) -> bool: ...

    async def update_filled(
        self, order_hash: str, filled_bps: int, db: AsyncSession
    ) -> int | None: ...

    async def bulk_cancel_by_nonce(
        self, maker: str, min_nonce: int, now: datetime, db: AsyncSession
    ) -> int: ...
