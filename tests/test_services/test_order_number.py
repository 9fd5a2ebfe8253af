"""Tests for order number generation."""

import asyncio
from datetime import datetime, timezone

import pytest

from storefront.config import Settings
from storefront.services.order_number import ORDER_NUMBER_PATTERN, OrderNumberGenerator
from storefront.state.store import Store


@pytest.fixture
def generator(store: Store, settings: Settings, clock) -> OrderNumberGenerator:
    return OrderNumberGenerator(store, settings, clock=clock)


@pytest.mark.asyncio
async def test_numbers_are_sequential_per_month(generator: OrderNumberGenerator) -> None:
    numbers = [await generator.generate() for _ in range(3)]

    assert numbers == ["2503.001", "2503.002", "2503.003"]
    assert all(ORDER_NUMBER_PATTERN.match(number) for number in numbers)


@pytest.mark.asyncio
async def test_new_month_restarts_sequence(generator: OrderNumberGenerator, clock) -> None:
    await generator.generate()
    clock.now = datetime(2025, 4, 2, 9, 0, tzinfo=timezone.utc)

    assert await generator.generate() == "2504.001"


@pytest.mark.asyncio
async def test_month_follows_shop_timezone(generator: OrderNumberGenerator, clock) -> None:
    """Test that the prefix uses Stockholm time, not UTC."""
    clock.now = datetime(2025, 3, 31, 22, 30, tzinfo=timezone.utc)

    assert await generator.generate() == "2504.001"


@pytest.mark.asyncio
async def test_sequence_seeded_from_stored_orders(
    generator: OrderNumberGenerator, store: Store, settings: Settings
) -> None:
    await store.put(settings.orders_table, {"id": "o1", "number": "2503.041", "status": "active"})
    await store.put(settings.orders_table, {"id": "o2", "number": "2502.090", "status": "active"})

    assert await generator.generate() == "2503.042"


@pytest.mark.asyncio
async def test_sequence_widens_past_999(
    generator: OrderNumberGenerator, store: Store, settings: Settings
) -> None:
    await store.put(settings.orders_table, {"id": "o1", "number": "2503.999", "status": "active"})

    assert await generator.generate() == "2503.1000"


@pytest.mark.asyncio
async def test_concurrent_numbers_are_unique(generator: OrderNumberGenerator) -> None:
    numbers = await asyncio.gather(*(generator.generate() for _ in range(25)))

    assert len(set(numbers)) == 25
    assert sorted(numbers) == [f"2503.{n:03d}" for n in range(1, 26)]
