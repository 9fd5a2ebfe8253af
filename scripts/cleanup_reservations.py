"""Expire lapsed stock reservations; run from cron or a scheduler."""

import asyncio

from storefront.config import get_settings
from storefront.services.stock_ledger import StockLedger
from storefront.state.store import Store
from storefront.utils.logging import get_logger, setup_logging

logger = get_logger(__name__)


async def cleanup() -> int:
    settings = get_settings()
    store = Store(settings)
    await store.connect()
    try:
        expired = await StockLedger(store, settings).cleanup_expired_reservations()
    finally:
        await store.disconnect()

    logger.info("reservation_cleanup_finished", expired=expired)
    return expired


if __name__ == "__main__":
    setup_logging()
    asyncio.run(cleanup())
