"""Stock ledger - gates orders on availability and owns reservations."""

from collections.abc import Iterable
from datetime import timedelta
from typing import Any

from storefront.config import Settings
from storefront.errors import (
    ConditionFailed,
    IndexNotFound,
    InsufficientStock,
    ItemNotFound,
    ProductNotFound,
    ValidationError,
)
from storefront.models.product import Product
from storefront.models.reservation import ReservationStatus, StockRequest, StockReservation
from storefront.state.store import Store
from storefront.state.workflow import ReservationTransitions
from storefront.utils.clock import Clock, utcnow
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def _available(item: dict[str, Any]) -> int:
    return int(item.get("stock") or 0) - int(item.get("reserved") or 0)


def merge_requests(items: Iterable[StockRequest]) -> dict[str, int]:
    """Sum quantities per product, keeping first-seen order."""
    merged: dict[str, int] = {}
    for item in items:
        if item.quantity <= 0:
            raise ValidationError(
                "Quantity must be greater than 0",
                product_id=item.product_id,
                quantity=item.quantity,
            )
        merged[item.product_id] = merged.get(item.product_id, 0) + item.quantity
    return merged


class StockLedger:
    """
    Tracks available versus reserved stock per product.

    A reservation moves a quantity from available to ``reserved`` on the
    product. Confirming it turns the hold into a permanent decrement of
    ``stock``; cancelling or expiring it only gives the hold back. Every status
    change is a conditional write on the reservation, so when a payment
    callback and the expiry sweep race the first writer wins and the loser
    becomes a no-op.
    """

    def __init__(self, store: Store, settings: Settings, clock: Clock = utcnow):
        self.store = store
        self.products_table = settings.products_table
        self.reservations_table = settings.reservations_table
        self.ttl = timedelta(seconds=settings.reservation_ttl)
        self.clock = clock

    async def get_product(self, product_id: str) -> Product:
        item = await self.store.get(self.products_table, product_id)
        if item is None:
            raise ProductNotFound(product_id)
        return Product.model_validate(item)

    async def available_stock(self, product_id: str) -> int:
        """Recorded stock minus quantities held by unexpired reservations."""
        await self.release_lapsed(product_id)
        product = await self.get_product(product_id)
        return product.available_stock

    async def reserve_stock(
        self,
        order_id: str,
        items: Iterable[StockRequest],
    ) -> list[str]:
        """
        Hold stock for every item of an order.

        Args:
            order_id: Order the reservations belong to
            items: Products and quantities; repeated products are merged

        Returns:
            Reservation ids, one per distinct product

        Raises:
            InsufficientStock: a product cannot cover its quantity. Holds taken
                earlier in the same call are cancelled first.
            ProductNotFound: a product does not exist
        """
        merged = merge_requests(items)
        reservation_ids: list[str] = []

        try:
            for product_id, quantity in merged.items():
                await self.release_lapsed(product_id)
                reservation = await self._reserve_one(order_id, product_id, quantity)
                reservation_ids.append(reservation.reservation_id)
        except Exception:
            if reservation_ids:
                logger.warning(
                    "reservation_batch_rolled_back",
                    order_id=order_id,
                    reservation_ids=reservation_ids,
                )
                await self.cancel_reservations(reservation_ids)
            raise

        logger.info(
            "stock_reserved",
            order_id=order_id,
            reservation_ids=reservation_ids,
            expires_in_seconds=int(self.ttl.total_seconds()),
        )
        return reservation_ids

    async def confirm_reservations(self, reservation_ids: Iterable[str]) -> int:
        """
        Turn active reservations into permanent stock decrements.

        Reservations that are missing or already terminal are skipped, so a
        repeated payment callback never decrements twice.

        Returns:
            Number of reservations confirmed by this call
        """
        confirmed = 0
        for reservation_id in reservation_ids:
            reservation = await self._settle(reservation_id, ReservationStatus.CONFIRMED)
            if reservation is None:
                continue

            quantity = reservation.quantity
            try:
                product = await self.store.update(
                    self.products_table,
                    reservation.product_id,
                    increments={"stock": -quantity, "reserved": -quantity},
                )
            except ItemNotFound:
                logger.error(
                    "confirmed_reservation_product_missing",
                    reservation_id=reservation_id,
                    product_id=reservation.product_id,
                )
                continue

            if product["stock"] < 0:
                logger.warning(
                    "stock_below_zero",
                    product_id=reservation.product_id,
                    stock=product["stock"],
                )
            logger.info(
                "stock_permanently_reduced",
                product_id=reservation.product_id,
                quantity=quantity,
                reservation_id=reservation_id,
            )
            confirmed += 1

        return confirmed

    async def cancel_reservations(self, reservation_ids: Iterable[str]) -> int:
        """Cancel active reservations and give their holds back."""
        cancelled = 0
        for reservation_id in reservation_ids:
            if await self._release(reservation_id, ReservationStatus.CANCELLED):
                cancelled += 1
        return cancelled

    async def order_reservations(self, order_id: str) -> list[StockReservation]:
        items = await self._query("orderId", order_id)
        return [StockReservation.model_validate(item) for item in items]

    async def confirm_order_reservations(self, order_id: str) -> int:
        reservations = await self.order_reservations(order_id)
        return await self.confirm_reservations(
            r.reservation_id for r in reservations if r.status == ReservationStatus.ACTIVE
        )

    async def cancel_order_reservations(self, order_id: str) -> int:
        reservations = await self.order_reservations(order_id)
        active_ids = [
            r.reservation_id for r in reservations if r.status == ReservationStatus.ACTIVE
        ]
        if not active_ids:
            return 0
        return await self.cancel_reservations(active_ids)

    async def cleanup_expired_reservations(self) -> int:
        """
        Expire active reservations whose TTL has passed.

        Returns:
            Number of reservations expired by this sweep
        """
        now = self.clock()
        expired = 0
        for item in await self._query("status", ReservationStatus.ACTIVE.value):
            reservation = StockReservation.model_validate(item)
            if not reservation.is_expired(now):
                continue
            if await self._release(reservation.reservation_id, ReservationStatus.EXPIRED):
                expired += 1

        if expired:
            logger.info("expired_reservations_cleaned", count=expired)
        return expired

    async def _reserve_one(
        self, order_id: str, product_id: str, quantity: int
    ) -> StockReservation:
        try:
            await self.store.update(
                self.products_table,
                product_id,
                increments={"reserved": quantity},
                condition=lambda item: _available(item) >= quantity,
            )
        except ItemNotFound:
            raise ProductNotFound(product_id) from None
        except ConditionFailed:
            item = await self.store.get(self.products_table, product_id)
            available = _available(item) if item else 0
            raise InsufficientStock(product_id, available=available, requested=quantity) from None

        now = self.clock()
        reservation = StockReservation(
            product_id=product_id,
            order_id=order_id,
            quantity=quantity,
            created_at=now,
            expires_at=now + self.ttl,
        )
        try:
            await self.store.put(self.reservations_table, reservation.to_item())
        except Exception:
            await self._give_back(product_id, quantity)
            raise
        return reservation

    async def release_lapsed(self, product_id: str) -> int:
        """
        Expire the lapsed reservations of one product.

        Run before reading a product's availability so holds past their TTL
        stop counting without waiting for the periodic sweep.

        Returns:
            Number of reservations expired by this call
        """
        now = self.clock()
        released = 0
        for item in await self._query("productId", product_id):
            reservation = StockReservation.model_validate(item)
            if reservation.status != ReservationStatus.ACTIVE or not reservation.is_expired(now):
                continue
            if await self._release(reservation.reservation_id, ReservationStatus.EXPIRED):
                released += 1
        return released

    async def _release(self, reservation_id: str, status: ReservationStatus) -> bool:
        reservation = await self._settle(reservation_id, status)
        if reservation is None:
            return False
        await self._give_back(reservation.product_id, reservation.quantity)
        logger.info(
            "reservation_released",
            reservation_id=reservation_id,
            product_id=reservation.product_id,
            status=status.value,
        )
        return True

    async def _settle(
        self, reservation_id: str, status: ReservationStatus
    ) -> StockReservation | None:
        """Move an active reservation to a terminal status, first writer wins."""
        try:
            item = await self.store.update(
                self.reservations_table,
                reservation_id,
                {"status": status.value, "settledAt": self.clock().isoformat()},
                condition=lambda current: ReservationTransitions.can_transition(
                    ReservationStatus(current["status"]), status
                ),
            )
        except ItemNotFound:
            logger.warning("reservation_not_found", reservation_id=reservation_id)
            return None
        except ConditionFailed:
            logger.debug(
                "reservation_already_settled",
                reservation_id=reservation_id,
                requested_status=status.value,
            )
            return None
        return StockReservation.model_validate(item)

    async def _give_back(self, product_id: str, quantity: int) -> None:
        try:
            await self.store.update(
                self.products_table, product_id, increments={"reserved": -quantity}
            )
        except ItemNotFound:
            logger.warning("released_hold_product_missing", product_id=product_id)

    async def _query(self, field: str, value: str) -> list[dict[str, Any]]:
        try:
            return await self.store.query_by_index(self.reservations_table, field, value)
        except IndexNotFound:
            logger.warning("index_unavailable_scanning", table=self.reservations_table, index=field)
            items = await self.store.scan(self.reservations_table)
            return [item for item in items if item.get(field) == value]
