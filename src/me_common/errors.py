"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Signature / maker account
  4xxx: Order
  7xxx: Webhook
  9xxx: System

Store and remote-service errors carry a generic message only; the detail is
logged where the failure is caught.
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 1xxx: Signature / account ---

class InvalidSignatureError(AppError):
    def __init__(self) -> None:
        super().__init__(1001, "Invalid signature", 422)


class UndeployedAccountError(AppError):
    def __init__(self, address: str) -> None:
        super().__init__(1002, f"Account not deployed: {address}", 422)


# --- 4xxx: Order ---

class BadRequestError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(4000, detail, 400)


class OrderNotFoundError(AppError):
    def __init__(self, order_id: str) -> None:
        super().__init__(4004, f"Order not found: {order_id}", 404)


class DuplicateOrderError(AppError):
    def __init__(self, order_hash: str) -> None:
        super().__init__(4005, f"Order already exists: {order_hash}", 409)


class OrderNotCancellableError(AppError):
    def __init__(self, order_id: str, status: str) -> None:
        super().__init__(
            4006, f"Order {order_id} is not open (current status: {status})", 409
        )


class OrderExpiredError(AppError):
    def __init__(self) -> None:
        super().__init__(4007, "Order expired", 422)


class NotOrderMakerError(AppError):
    def __init__(self) -> None:
        super().__init__(4008, "Only the maker can cancel this order", 401)


# --- 7xxx: Webhook ---

class UnauthorizedError(AppError):
    def __init__(self) -> None:
        super().__init__(7001, "Unauthorized", 401)


# --- 9xxx: System ---

class StoreError(AppError):
    def __init__(self) -> None:
        super().__init__(9001, "Internal server error", 500)


class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)


class RemoteServiceError(AppError):
    def __init__(self) -> None:
        super().__init__(9003, "StarkNet RPC error", 502)
