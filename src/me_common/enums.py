"""Global enums — must match DB CHECK constraints exactly."""

from enum import Enum


class OrderStatus(str, Enum):
    OPEN = "open"
    RESERVED = "reserved"
    SOFT_CANCELLED = "soft_cancelled"
    CANCELLED = "cancelled"
    FILLED = "filled"
    # Never written by the engine; deadline filtering happens at query time.
    EXPIRED = "expired"


class ActionType(str, Enum):
    BORROW = "Borrow"
    LEND = "Lend"


class EventType(str, Enum):
    ORDER_FILLED = "order_filled"
    ORDER_CANCELLED = "order_cancelled"
    ORDERS_BULK_CANCELLED = "orders_bulk_cancelled"
