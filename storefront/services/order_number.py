"""Month-scoped, human-readable order numbers (``YYMM.NNN``)."""

import re
from zoneinfo import ZoneInfo

from storefront.config import Settings
from storefront.state.store import Store
from storefront.utils.clock import Clock, utcnow
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

ORDER_NUMBER_PATTERN = re.compile(r"^(\d{4})\.(\d+)$")


class OrderNumberGenerator:
    """Draws order numbers from an atomic per-month counter in the store.

    A month's counter is seeded from the highest number already stored for that
    month the first time it is used, so orders written before the counter
    existed are never numbered twice.
    """

    def __init__(self, store: Store, settings: Settings, clock: Clock = utcnow):
        self.store = store
        self.orders_table = settings.orders_table
        self.timezone = ZoneInfo(settings.order_number_timezone)
        self.clock = clock

    async def generate(self) -> str:
        prefix = self.clock().astimezone(self.timezone).strftime("%y%m")
        sequence_name = f"order-number:{prefix}"

        floor = 0
        if not await self.store.has_sequence(sequence_name):
            floor = await self._highest_stored(prefix)
            logger.info("order_number_sequence_seeded", prefix=prefix, floor=floor)

        sequence = await self.store.next_sequence(sequence_name, floor=floor)
        return f"{prefix}.{sequence:03d}"

    async def _highest_stored(self, prefix: str) -> int:
        highest = 0
        for order in await self.store.scan(self.orders_table):
            match = ORDER_NUMBER_PATTERN.match(str(order.get("number", "")))
            if match and match.group(1) == prefix:
                highest = max(highest, int(match.group(2)))
        return highest
