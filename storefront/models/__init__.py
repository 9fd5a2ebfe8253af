"""Data models for the storefront backend."""

from storefront.models.checkout import (
    CheckoutCartLine,
    CheckoutOrder,
    CheckoutRequest,
    CheckoutResponse,
    OrderSummary,
    PaymentDescriptor,
    PaymentMethod,
)
from storefront.models.order import Order, OrderCartItem, OrderInformation, OrderStatus
from storefront.models.payment import (
    CallbackAck,
    PaymentRequestResult,
    PaymentStatus,
    SwishCallback,
    SwishPaymentRequest,
)
from storefront.models.product import Product, ProductStatus
from storefront.models.reservation import ReservationStatus, StockRequest, StockReservation

__all__ = [
    # Checkout
    "CheckoutCartLine",
    "CheckoutOrder",
    "CheckoutRequest",
    "CheckoutResponse",
    "OrderSummary",
    "PaymentDescriptor",
    "PaymentMethod",
    # Order
    "Order",
    "OrderCartItem",
    "OrderInformation",
    "OrderStatus",
    # Payment
    "CallbackAck",
    "PaymentRequestResult",
    "PaymentStatus",
    "SwishCallback",
    "SwishPaymentRequest",
    # Product
    "Product",
    "ProductStatus",
    # Reservation
    "ReservationStatus",
    "StockRequest",
    "StockReservation",
]
