"""Pytest configuration and fixtures."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, AsyncGenerator, Awaitable, Callable

import fakeredis
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from storefront.config import Settings
from storefront.models.checkout import CheckoutRequest
from storefront.models.order import Order
from storefront.models.product import Product
from storefront.services import Services, build_services
from storefront.services.notifier import Notifier
from storefront.services.payment_gateway import SwishGateway
from storefront.state.store import Store


class FakeClock:
    """Controllable clock; starts mid-March 2025 so order numbers begin with 2503."""

    def __init__(self, now: datetime | None = None):
        self.now = now or datetime(2025, 3, 14, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now += timedelta(**delta)


class RecordingNotifier(Notifier):
    """Notifier that records what it would have sent."""

    def __init__(self, settings: Settings):
        super().__init__(settings)
        self.confirmations: list[dict[str, Any]] = []
        self.alerts: list[dict[str, Any]] = []

    async def send_order_confirmation(
        self, order: Order, payment_reference: str | None = None, currency: str = "SEK"
    ) -> int:
        self.confirmations.append(
            {"order": order, "payment_reference": payment_reference, "currency": currency}
        )
        return 2

    async def alert(self, summary: str, **context: Any) -> None:
        self.alerts.append({"summary": summary, **context})


@pytest.fixture
def settings() -> Settings:
    """Test settings, independent of any local .env file."""
    return Settings(
        _env_file=None,
        key_prefix="test",
        swish_environment="mock",
        reservation_ttl=600,
        smtp_host=None,
        alert_webhook_url=None,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest_asyncio.fixture
async def store(settings: Settings) -> AsyncGenerator[Store, None]:
    """Store backed by an in-process fake Redis server."""
    client = fakeredis.FakeAsyncRedis(decode_responses=True)
    store = Store(settings, client=client)
    yield store
    await client.flushall()
    await store.disconnect()


@pytest.fixture
def notifier(settings: Settings) -> RecordingNotifier:
    return RecordingNotifier(settings)


@pytest.fixture
def services(
    settings: Settings, store: Store, notifier: RecordingNotifier, clock: FakeClock
) -> Services:
    return build_services(
        settings, store, gateway=SwishGateway(settings), notifier=notifier, clock=clock
    )


SeedProduct = Callable[..., Awaitable[Product]]


@pytest.fixture
def seed_product(store: Store, settings: Settings) -> SeedProduct:
    """Factory writing a product to the store."""

    async def seed(product_id: str = "prod-jam", **fields: Any) -> Product:
        values: dict[str, Any] = {
            "id": product_id,
            "slug": product_id.removeprefix("prod-"),
            "brand": "Smultron",
            "title": product_id.removeprefix("prod-").replace("-", " ").title(),
            "price": Decimal("89.00"),
            "description": ["Homemade"],
            "stock": 10,
        }
        values.update(fields)
        product = Product(**values)
        await store.put(settings.products_table, product.to_item())
        return product

    return seed


def checkout_payload(
    cart: list[tuple[str, int]],
    payment: str = "swish",
    delivery_cost: str = "49.00",
    **order_fields: Any,
) -> dict[str, Any]:
    """Checkout request body as the shop front sends it."""
    order = {
        "payment": payment,
        "delivery": "postnord",
        "delivery_cost": delivery_cost,
        "name": "Anna Svensson",
        "company": "",
        "address": "Storgatan 1",
        "zip": "11122",
        "city": "Stockholm",
        "email": "anna.svensson@smultron.se",
        "phone": "070-123 45 67",
    }
    order.update(order_fields)
    return {
        "order": order,
        "cart": [{"id": product_id, "number": number} for product_id, number in cart],
    }


def checkout_request(cart: list[tuple[str, int]], **kwargs: Any) -> CheckoutRequest:
    return CheckoutRequest.model_validate(checkout_payload(cart, **kwargs))


@pytest_asyncio.fixture
async def test_client(services: Services) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client talking to an app wired with the test services."""
    from storefront.main import create_app

    app = create_app()
    app.state.services = services
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
