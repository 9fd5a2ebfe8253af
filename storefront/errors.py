"""Error taxonomy for the checkout core and the store beneath it."""

from typing import Any


class StorefrontError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 500
    code = "internal_error"

    def __init__(self, message: str, **detail: Any) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.code, "message": self.message}
        if self.detail:
            body["detail"] = self.detail
        return body


class ValidationError(StorefrontError):
    """Malformed or missing input fields."""

    status_code = 400
    code = "validation_error"


class ProductNotFound(StorefrontError):
    status_code = 404
    code = "product_not_found"

    def __init__(self, product_id: str) -> None:
        super().__init__(f"Product {product_id} not found", product_id=product_id)
        self.product_id = product_id


class ProductUnavailable(StorefrontError):
    status_code = 400
    code = "product_unavailable"

    def __init__(self, product_id: str, title: str | None = None) -> None:
        super().__init__(
            f"Product {title or product_id} is not available", product_id=product_id
        )
        self.product_id = product_id


class InsufficientStock(StorefrontError):
    status_code = 400
    code = "insufficient_stock"

    def __init__(self, product_id: str, available: int, requested: int) -> None:
        super().__init__(
            f"Insufficient stock for product {product_id}. "
            f"Available: {available}, Requested: {requested}",
            product_id=product_id,
            available=available,
            requested=requested,
        )
        self.product_id = product_id
        self.available = available
        self.requested = requested


class PaymentInitiationFailed(StorefrontError):
    """The order is stored and its stock held, but no payment request exists."""

    status_code = 500
    code = "payment_initiation_failed"

    def __init__(self, order_id: str, order_number: str) -> None:
        super().__init__(
            f"Payment initialization failed for order {order_number}. "
            "The order was kept and needs manual follow-up.",
            order_id=order_id,
            order_number=order_number,
        )
        self.order_id = order_id
        self.order_number = order_number


class InternalError(StorefrontError):
    """Unexpected failure; callers only ever see the generic message."""

    status_code = 500
    code = "internal_error"

    def __init__(self, message: str = "Internal server error") -> None:
        super().__init__(message)


class PaymentGatewayError(Exception):
    """The payment provider rejected or could not receive a request."""


class StoreError(Exception):
    """Base class for store failures."""


class ItemNotFound(StoreError):
    def __init__(self, table: str, key: str) -> None:
        super().__init__(f"{table}/{key} does not exist")
        self.table = table
        self.key = key


class ConditionFailed(StoreError):
    """A conditional write found the item in an unexpected state."""

    def __init__(self, table: str, key: str) -> None:
        super().__init__(f"Condition failed for {table}/{key}")
        self.table = table
        self.key = key


class IndexNotFound(StoreError):
    def __init__(self, table: str, index: str) -> None:
        super().__init__(f"Table {table} has no index on {index}")
        self.table = table
        self.index = index


class StoreConflict(StoreError):
    """Optimistic write retries were exhausted."""
