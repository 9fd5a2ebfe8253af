"""Order assembler - freezes a cart into an immutable order record."""

from collections.abc import Iterable
from decimal import Decimal
from uuid import uuid4

from storefront.config import Settings
from storefront.errors import ProductNotFound
from storefront.models.checkout import CheckoutCartLine
from storefront.models.order import Order, OrderCartItem, OrderInformation, OrderStatus
from storefront.models.product import Product
from storefront.services.order_number import OrderNumberGenerator
from storefront.state.store import Store
from storefront.utils.clock import Clock, epoch_millis, utcnow
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class OrderAssembler:
    """Builds orders from carts; persisting them is left to the caller."""

    def __init__(
        self,
        store: Store,
        settings: Settings,
        number_generator: OrderNumberGenerator,
        clock: Clock = utcnow,
    ):
        self.store = store
        self.products_table = settings.products_table
        self.number_generator = number_generator
        self.clock = clock

    async def create_order(
        self,
        information: OrderInformation,
        cart: Iterable[CheckoutCartLine],
        delivery: str,
        delivery_cost: Decimal,
    ) -> Order:
        """
        Create a new order with a frozen copy of every cart line's product.

        Args:
            information: Customer and address details
            cart: Product references and quantities
            delivery: Delivery method
            delivery_cost: Delivery cost added to the order total

        Returns:
            The unsaved order, status ACTIVE

        Raises:
            ProductNotFound: a product vanished since the caller checked it
        """
        frozen: list[OrderCartItem] = []
        for line in cart:
            item = await self.store.get(self.products_table, line.id)
            if item is None:
                raise ProductNotFound(line.id)
            frozen.append(OrderCartItem.freeze(Product.model_validate(item), line.number))

        number = await self.number_generator.generate()
        now = self.clock()
        order = Order(
            id=f"order-{uuid4().hex}",
            number=number,
            date=epoch_millis(now),
            date_change=epoch_millis(now),
            status=OrderStatus.ACTIVE,
            delivery=delivery,
            delivery_cost=delivery_cost,
            information=information,
            cart=frozen,
            created_at=now,
            updated_at=now,
        )

        logger.debug("order_assembled", order_id=order.id, number=number, lines=len(frozen))
        return order
