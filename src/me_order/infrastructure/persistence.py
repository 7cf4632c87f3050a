# src/me_order/infrastructure/persistence.py
"""OrderRepository — raw SQL persistence implementation.

Every state transition that the matching layer relies on is a single
conditional UPDATE; the WHERE clause is the compare-and-swap. No statement
here reads a row and writes it back in a separate round trip.
"""
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any

from sqlalchemy import bindparam, text
from sqlalchemy.ext.asyncio import AsyncSession

from src.me_common.datetime_utils import to_epoch_seconds
from src.me_order.domain.models import OrderRecord

# ---------------------------------------------------------------------------
# SQL statements
# ---------------------------------------------------------------------------

_SELECT_COLUMNS = """
    id, order_hash, maker, allowed_taker, inscription_id, bps, deadline, nonce,
    min_fill_bps, signature_r, signature_s, status, filled_bps, reserved_until,
    created_at, updated_at
"""

# Open, or reserved with a lapsed reservation.
_LOGICALLY_OPEN = "(status = 'open' OR (status = 'reserved' AND reserved_until < :now))"

_INSERT_ORDER_SQL = text(f"""
    INSERT INTO signed_orders (order_hash, maker, allowed_taker, inscription_id, bps,
        deadline, nonce, min_fill_bps, signature_r, signature_s)
    VALUES (:order_hash, :maker, :allowed_taker, :inscription_id, :bps,
        :deadline, :nonce, :min_fill_bps, :signature_r, :signature_s)
    RETURNING {_SELECT_COLUMNS}
""")

_GET_ORDER_BY_ID_SQL = text(f"""
    SELECT {_SELECT_COLUMNS}
    FROM signed_orders WHERE id = :id
""")

_GET_ORDER_BY_HASH_SQL = text(f"""
    SELECT {_SELECT_COLUMNS}
    FROM signed_orders WHERE order_hash = :order_hash
""")

_LIST_ORDERS_SQL = text(f"""
    SELECT {_SELECT_COLUMNS}
    FROM signed_orders
    WHERE (CAST(:inscription_id AS NUMERIC) IS NULL
           OR inscription_id = CAST(:inscription_id AS NUMERIC))
      AND (CAST(:maker AS TEXT) IS NULL OR maker = :maker)
      AND (CAST(:status AS TEXT) IS NULL OR status = :status)
      AND (CAST(:cursor_id AS UUID) IS NULL OR (created_at, id) < (
           SELECT created_at, id FROM signed_orders WHERE id = CAST(:cursor_id AS UUID)))
    ORDER BY created_at DESC, id DESC
    LIMIT :limit
""")

_QUERY_ELIGIBLE_SQL = text(f"""
    SELECT {_SELECT_COLUMNS}
    FROM signed_orders
    WHERE inscription_id = :inscription_id
      AND {_LOGICALLY_OPEN}
      AND deadline > :now_epoch
    ORDER BY created_at ASC
""")

_RESERVE_ORDERS_SQL = text(f"""
    UPDATE signed_orders
    SET status = 'reserved', reserved_until = :reserved_until, updated_at = NOW()
    WHERE id IN :ids AND {_LOGICALLY_OPEN}
    RETURNING id
""").bindparams(bindparam("ids", expanding=True))

_SOFT_CANCEL_SQL = text(f"""
    UPDATE signed_orders
    SET status = 'soft_cancelled', reserved_until = NULL, updated_at = NOW()
    WHERE id = :id AND maker = :maker AND {_LOGICALLY_OPEN}
""")

_UPDATE_STATUS_SQL = text("""
    UPDATE signed_orders
    SET status = :status, updated_at = NOW()
    WHERE order_hash = :order_hash
""")

_UPDATE_FILLED_SQL = text("""
    UPDATE signed_orders
    SET filled_bps = :filled_bps, updated_at = NOW()
    WHERE order_hash = :order_hash
    RETURNING bps
""")

_BULK_CANCEL_SQL = text(f"""
    UPDATE signed_orders
    SET status = 'cancelled', reserved_until = NULL, updated_at = NOW()
    WHERE maker = :maker AND nonce < :min_nonce AND {_LOGICALLY_OPEN}
""")


# ---------------------------------------------------------------------------
# Row mapper
# ---------------------------------------------------------------------------


def _row_to_order(row: Any) -> OrderRecord:
    """Convert a DB result row to an OrderRecord domain object."""
    return OrderRecord(
        id=str(row.id),
        order_hash=row.order_hash,
        maker=row.maker,
        allowed_taker=row.allowed_taker,
        inscription_id=int(row.inscription_id),
        bps=int(row.bps),
        deadline=int(row.deadline),
        nonce=int(row.nonce),
        min_fill_bps=int(row.min_fill_bps),
        signature_r=row.signature_r,
        signature_s=row.signature_s,
        status=row.status,
        filled_bps=int(row.filled_bps),
        reserved_until=row.reserved_until,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class OrderRepository:
    """Concrete implementation of OrderRepositoryProtocol using raw SQL."""

    async def insert(self, order: OrderRecord, db: AsyncSession) -> OrderRecord:
        """Insert a new order. A duplicate order_hash raises IntegrityError."""
        result = await db.execute(
            _INSERT_ORDER_SQL,
            {
                "order_hash": order.order_hash,
                "maker": order.maker,
                "allowed_taker": order.allowed_taker,
                "inscription_id": Decimal(order.inscription_id),
                "bps": Decimal(order.bps),
                "deadline": order.deadline,
                "nonce": Decimal(order.nonce),
                "min_fill_bps": Decimal(order.min_fill_bps),
                "signature_r": order.signature_r,
                "signature_s": order.signature_s,
            },
        )
        return _row_to_order(result.fetchone())

    async def get_by_id(self, order_id: str, db: AsyncSession) -> OrderRecord | None:
        result = await db.execute(_GET_ORDER_BY_ID_SQL, {"id": order_id})
        row = result.fetchone()
        return _row_to_order(row) if row else None

    async def get_by_hash(self, order_hash: str, db: AsyncSession) -> OrderRecord | None:
        result = await db.execute(_GET_ORDER_BY_HASH_SQL, {"order_hash": order_hash})
        row = result.fetchone()
        return _row_to_order(row) if row else None

    async def list_orders(
        self,
        inscription_id: int | None,
        maker: str | None,
        status: str | None,
        limit: int,
        cursor_id: str | None,
        db: AsyncSession,
    ) -> list[OrderRecord]:
        result = await db.execute(
            _LIST_ORDERS_SQL,
            {
                "inscription_id": Decimal(inscription_id) if inscription_id is not None else None,
                "maker": maker,
                "status": status,
                "cursor_id": cursor_id,
                "limit": limit,
            },
        )
        return [_row_to_order(row) for row in result.fetchall()]

    async def query_eligible(
        self, inscription_id: int, now: datetime, db: AsyncSession
    ) -> list[OrderRecord]:
        """Orders matchable at ``now``, oldest first."""
        result = await db.execute(
            _QUERY_ELIGIBLE_SQL,
            {
                "inscription_id": Decimal(inscription_id),
                "now": now,
                "now_epoch": to_epoch_seconds(now),
            },
        )
        return [_row_to_order(row) for row in result.fetchall()]

    async def reserve(
        self, order_ids: list[str], ttl_secs: int, now: datetime, db: AsyncSession
    ) -> list[str]:
        """Reserve whichever of ``order_ids`` are still open; return exactly those ids."""
        if not order_ids:
            return []
        result = await db.execute(
            _RESERVE_ORDERS_SQL,
            {
                "ids": order_ids,
                "now": now,
                "reserved_until": now + timedelta(seconds=ttl_secs),
            },
        )
        return [str(row.id) for row in result.fetchall()]

    async def soft_cancel(
        self, order_id: str, maker: str, now: datetime, db: AsyncSession
    ) -> bool:
        result: Any = await db.execute(
            _SOFT_CANCEL_SQL, {"id": order_id, "maker": maker, "now": now}
        )
        return bool(result.rowcount > 0)

    async def update_status(self, order_hash: str, status: str, db: AsyncSession) -> bool:
        result: Any = await db.execute(
            _UPDATE_STATUS_SQL, {"order_hash": order_hash, "status": status}
        )
        return bool(result.rowcount > 0)

    async def update_filled(
        self, order_hash: str, filled_bps: int, db: AsyncSession
    ) -> int | None:
        """Overwrite filled_bps; returns the order's total bps, or None if unknown."""
        result = await db.execute(
            _UPDATE_FILLED_SQL,
            {"order_hash": order_hash, "filled_bps": Decimal(filled_bps)},
        )
        row = result.fetchone()
        return int(row.bps) if row else None

    async def bulk_cancel_by_nonce(
        self, maker: str, min_nonce: int, now: datetime, db: AsyncSession
    ) -> int:
        result: Any = await db.execute(
            _BULK_CANCEL_SQL,
            {"maker": maker, "min_nonce": Decimal(min_nonce), "now": now},
        )
        return int(result.rowcount)
