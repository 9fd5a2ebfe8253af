"""Delete all storefront data from Redis (useful for testing)."""

import asyncio

from storefront.config import get_settings
from storefront.state.store import Store


async def reset_all_state() -> None:
    """Remove every key under the configured prefix."""
    settings = get_settings()
    print(f"\n⚠️  WARNING: This will delete ALL keys under '{settings.key_prefix}:' in Redis!")
    response = input("Are you sure? (yes/no): ")

    if response.lower() != "yes":
        print("Cancelled.")
        return

    print("\nResetting state...")

    store = Store(settings)
    await store.connect()

    # SCAN instead of FLUSHDB so other data in the same database survives
    deleted = 0
    async for key in store.redis_client.scan_iter(match=f"{settings.key_prefix}:*"):
        deleted += await store.redis_client.delete(key)

    await store.disconnect()

    print(f"✓ Deleted {deleted} keys\n")


if __name__ == "__main__":
    asyncio.run(reset_all_state())
