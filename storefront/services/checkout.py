"""Checkout orchestrator - the single entrypoint for placing an order."""

from decimal import Decimal
from uuid import uuid4

from storefront.config import Settings
from storefront.errors import (
    InsufficientStock,
    InternalError,
    PaymentGatewayError,
    PaymentInitiationFailed,
    ProductNotFound,
    ProductUnavailable,
)
from storefront.models.checkout import (
    CheckoutRequest,
    CheckoutResponse,
    OrderSummary,
    PaymentDescriptor,
    PaymentMethod,
)
from storefront.models.order import Order
from storefront.models.product import Product
from storefront.models.reservation import StockRequest
from storefront.services.notifier import Notifier
from storefront.services.order_assembler import OrderAssembler
from storefront.services.payment_gateway import SwishGateway
from storefront.services.stock_ledger import StockLedger, merge_requests
from storefront.state.store import Store
from storefront.utils.logging import get_logger
from storefront.utils.tracing import OperationTracer

logger = get_logger(__name__)


class CheckoutOrchestrator:
    """
    Validates a cart, creates the order, holds its stock and starts payment.

    Everything that can reject the request (missing or inactive products,
    insufficient stock) is checked before the first write. The reservation is
    then taken before the order is saved, so losing a stock race leaves
    neither an order nor a hold behind.
    """

    def __init__(
        self,
        store: Store,
        settings: Settings,
        ledger: StockLedger,
        assembler: OrderAssembler,
        gateway: SwishGateway,
        notifier: Notifier,
    ):
        self.store = store
        self.products_table = settings.products_table
        self.orders_table = settings.orders_table
        self.ledger = ledger
        self.assembler = assembler
        self.gateway = gateway
        self.notifier = notifier

    async def checkout(self, request: CheckoutRequest) -> CheckoutResponse:
        """
        Place an order.

        Raises:
            ProductNotFound: a cart line references an unknown product
            ProductUnavailable: a product is not active
            InsufficientStock: available stock cannot cover a line
            PaymentInitiationFailed: the order exists but payment could not start
            InternalError: the order could not be stored
        """
        tracer = OperationTracer("checkout", uuid4().hex)
        details = request.order
        quantities = merge_requests(
            StockRequest(product_id=line.id, quantity=line.number) for line in request.cart
        )

        with tracer.trace_operation("validate_cart", lines=len(request.cart)):
            products = await self._load_products(quantities)
            self._check_stock(products, quantities)
            total = self._total(products, quantities, details.delivery_cost)

        with tracer.trace_operation("assemble_order"):
            order = await self.assembler.create_order(
                details.information(), request.cart, details.delivery, details.delivery_cost
            )

        with tracer.trace_operation("reserve_stock"):
            reservation_ids = await self.ledger.reserve_stock(
                order.id,
                [StockRequest(product_id=pid, quantity=q) for pid, q in quantities.items()],
            )

        with tracer.trace_operation("save_order"):
            await self._save(order, reservation_ids)

        logger.info(
            "order_created",
            order_id=order.id,
            order_number=order.number,
            total=str(total),
            payment=details.payment.value,
        )

        payment = PaymentDescriptor(method=details.payment, status="pending")
        if details.payment == PaymentMethod.SWISH:
            with tracer.trace_operation("initiate_payment"):
                payment = await self._start_swish(order, total, details.phone)

        logger.info("checkout_completed", **tracer.get_trace_summary())
        return CheckoutResponse(
            order=OrderSummary(id=order.id, number=order.number, status=order.status),
            payment=payment,
        )

    async def _load_products(self, quantities: dict[str, int]) -> dict[str, Product]:
        products: dict[str, Product] = {}
        for product_id in quantities:
            await self.ledger.release_lapsed(product_id)
            item = await self.store.get(self.products_table, product_id)
            if item is None:
                raise ProductNotFound(product_id)
            product = Product.model_validate(item)
            if not product.is_active:
                raise ProductUnavailable(product_id, title=product.title)
            products[product_id] = product
        return products

    @staticmethod
    def _check_stock(products: dict[str, Product], quantities: dict[str, int]) -> None:
        for product_id, quantity in quantities.items():
            available = products[product_id].available_stock
            if available < quantity:
                raise InsufficientStock(product_id, available=available, requested=quantity)

    @staticmethod
    def _total(
        products: dict[str, Product], quantities: dict[str, int], delivery_cost: Decimal
    ) -> Decimal:
        subtotal = sum(
            (products[pid].effective_price * q for pid, q in quantities.items()),
            Decimal("0"),
        )
        return subtotal + delivery_cost

    async def _save(self, order: Order, reservation_ids: list[str]) -> None:
        try:
            await self.store.put(self.orders_table, order.to_item())
        except Exception:
            logger.exception("order_save_failed", order_id=order.id, order_number=order.number)
            await self.ledger.cancel_reservations(reservation_ids)
            raise InternalError() from None

    async def _start_swish(self, order: Order, total: Decimal, phone: str) -> PaymentDescriptor:
        try:
            result = await self.gateway.create_payment_request(
                order.number, total, payer_alias=phone, message=f"Order {order.number}"
            )
        except PaymentGatewayError as e:
            logger.error(
                "payment_initiation_failed",
                order_id=order.id,
                order_number=order.number,
                error=str(e),
            )
            await self.notifier.alert(
                "Swish payment initiation failed",
                order_id=order.id,
                order_number=order.number,
                error=str(e),
            )
            raise PaymentInitiationFailed(order.id, order.number) from e

        logger.info("swish_payment_initiated", order_number=order.number, reference=result.id)
        return PaymentDescriptor(
            method=PaymentMethod.SWISH,
            status=result.status.value.lower(),
            reference=result.id,
            swish_url=result.location,
        )
