"""Reconciles Swish payment callbacks into order status and stock."""

import pydantic

from storefront.config import Settings
from storefront.errors import ConditionFailed, ItemNotFound
from storefront.models.order import Order, OrderStatus
from storefront.models.payment import CallbackAck, PaymentStatus, SwishCallback
from storefront.models.reservation import ReservationStatus
from storefront.services.notifier import Notifier
from storefront.services.stock_ledger import StockLedger
from storefront.state.store import Store
from storefront.state.workflow import OrderTransitions
from storefront.utils.clock import Clock, epoch_millis, utcnow
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

PROCESSING_ERROR = "Processing error - logged for review"

FAILED_PAYMENT_STATUSES = {
    PaymentStatus.DECLINED,
    PaymentStatus.ERROR,
    PaymentStatus.CANCELLED,
}


class PaymentCallbackHandler:
    """
    Applies provider callbacks to orders and reservations.

    Swish retries any delivery that is not acknowledged with a 200, so every
    outcome, including unknown orders and internal failures, is acknowledged.
    Problems are logged and raised as operational alerts instead.

    Deliveries may repeat or arrive out of order. A PAID that already
    confirmed the order's reservations confirms nothing the second time, and a
    late failure status never undoes a confirmed payment.
    """

    def __init__(
        self,
        store: Store,
        settings: Settings,
        ledger: StockLedger,
        notifier: Notifier,
        clock: Clock = utcnow,
    ):
        self.store = store
        self.orders_table = settings.orders_table
        self.currency = settings.swish_currency
        self.ledger = ledger
        self.notifier = notifier
        self.clock = clock

    async def handle_payload(self, raw: bytes | str | None) -> CallbackAck:
        """Parse a raw webhook body and handle it."""
        if not raw:
            logger.warning("swish_callback_empty_body")
            return CallbackAck()

        try:
            callback = SwishCallback.model_validate_json(raw)
        except pydantic.ValidationError as e:
            logger.error("swish_callback_malformed", errors=e.errors(include_url=False))
            await self.notifier.alert("Malformed Swish callback", body=_preview(raw))
            return CallbackAck(error=PROCESSING_ERROR)

        return await self.handle_callback(callback)

    async def handle_callback(self, callback: SwishCallback) -> CallbackAck:
        order_number = callback.payee_payment_reference
        logger.info(
            "swish_callback_received",
            payment_id=callback.id,
            order_number=order_number,
            status=callback.status.value,
            amount=str(callback.amount) if callback.amount is not None else None,
            error_code=callback.error_code,
        )
        ack = CallbackAck(order_number=order_number, status=callback.status.value)

        try:
            error = await self._process(callback)
        except Exception as e:
            logger.exception(
                "swish_callback_processing_failed",
                order_number=order_number,
                status=callback.status.value,
            )
            await self.notifier.alert(
                "Swish callback processing failed",
                order_number=order_number,
                status=callback.status.value,
                error=repr(e),
            )
            error = PROCESSING_ERROR

        if error:
            ack.error = error
        return ack

    async def _process(self, callback: SwishCallback) -> str | None:
        if callback.status == PaymentStatus.CREATED:
            # Waiting for the customer to approve; stock is already held
            return None

        order_number = callback.payee_payment_reference
        order = await self._find_order(order_number)
        if order is None:
            logger.error("swish_callback_order_not_found", order_number=order_number)
            await self.notifier.alert(
                "Swish callback for unknown order",
                order_number=order_number,
                payment_id=callback.id,
                status=callback.status.value,
            )
            return "Order not found"

        if callback.status == PaymentStatus.PAID:
            await self._on_paid(order, callback)
        elif callback.status in FAILED_PAYMENT_STATUSES:
            await self._on_failed(order, callback)
        return None

    async def _on_paid(self, order: Order, callback: SwishCallback) -> None:
        confirmed = await self.ledger.confirm_order_reservations(order.id)
        await self._set_status(order, OrderStatus.ACTIVE)

        if callback.amount is not None and callback.amount != order.total:
            await self.notifier.alert(
                "Swish paid amount differs from order total",
                order_number=order.number,
                paid=str(callback.amount),
                expected=str(order.total),
            )

        if confirmed:
            logger.info("order_paid", order_number=order.number, confirmed=confirmed)
            await self.notifier.send_order_confirmation(
                order,
                payment_reference=callback.id,
                currency=callback.currency or self.currency,
            )
            return

        reservations = await self.ledger.order_reservations(order.id)
        if any(r.status == ReservationStatus.CONFIRMED for r in reservations):
            logger.info("duplicate_paid_callback_ignored", order_number=order.number)
            return

        # Paid after the hold lapsed: the stock was never decremented
        logger.warning(
            "paid_without_reserved_stock",
            order_number=order.number,
            reservation_statuses=[r.status.value for r in reservations],
        )
        await self.notifier.alert(
            "Payment received for order without reserved stock",
            order_number=order.number,
            order_id=order.id,
            payment_id=callback.id,
        )

    async def _on_failed(self, order: Order, callback: SwishCallback) -> None:
        status = callback.status.value
        if callback.status == PaymentStatus.ERROR:
            await self.notifier.alert(
                "Swish payment error",
                order_number=order.number,
                error_code=callback.error_code,
                error_message=callback.error_message,
            )

        # Cancel before looking for confirmations: once no reservation is
        # active a concurrent PAID can no longer confirm any of them
        cancelled = await self.ledger.cancel_order_reservations(order.id)
        reservations = await self.ledger.order_reservations(order.id)
        if any(r.status == ReservationStatus.CONFIRMED for r in reservations):
            logger.warning(
                "late_payment_failure_ignored",
                order_number=order.number,
                status=status,
                reservations_cancelled=cancelled,
            )
            return

        await self._set_status(order, OrderStatus.INVALID)
        logger.info(
            "order_payment_failed",
            order_number=order.number,
            status=status,
            reservations_cancelled=cancelled,
        )

    async def _find_order(self, order_number: str) -> Order | None:
        items = await self.store.query_by_index(self.orders_table, "number", order_number)
        if not items:
            return None
        return Order.model_validate(items[0])

    async def _set_status(self, order: Order, status: OrderStatus) -> bool:
        now = self.clock()
        try:
            await self.store.update(
                self.orders_table,
                order.id,
                {
                    "status": status.value,
                    "date_change": epoch_millis(now),
                    "updatedAt": now.isoformat(),
                },
                condition=lambda current: OrderTransitions.can_transition(
                    OrderStatus(current["status"]), status
                ),
            )
        except ConditionFailed:
            logger.debug("order_status_unchanged", order_number=order.number, status=status.value)
            return False
        except ItemNotFound:
            logger.error("order_vanished", order_id=order.id, order_number=order.number)
            return False

        logger.info("order_status_changed", order_number=order.number, status=status.value)
        return True


def _preview(raw: bytes | str, limit: int = 500) -> str:
    text = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
    return text[:limit]
