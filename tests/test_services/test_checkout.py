"""Tests for the checkout orchestrator."""

import asyncio
import json
from decimal import Decimal

import httpx
import pytest

from conftest import checkout_payload, checkout_request
from storefront.config import Settings
from storefront.errors import (
    InsufficientStock,
    InternalError,
    PaymentInitiationFailed,
    ProductNotFound,
    ProductUnavailable,
    StoreError,
)
from storefront.models.checkout import CheckoutRequest, PaymentMethod
from storefront.models.order import OrderStatus
from storefront.models.product import ProductStatus
from storefront.models.reservation import ReservationStatus
from storefront.services import Services, build_services
from storefront.services.payment_gateway import SwishGateway
from storefront.state.store import Store


@pytest.mark.asyncio
async def test_swish_checkout_creates_order_and_holds_stock(
    services: Services, seed_product, store: Store, settings: Settings
) -> None:
    """Test the happy path: order stored, stock held, payment request created."""
    await seed_product("prod-jam", stock=5)

    response = await services.checkout.checkout(checkout_request([("prod-jam", 2)]))

    assert response.order.number == "2503.001"
    assert response.order.status == OrderStatus.ACTIVE
    assert response.payment.method == PaymentMethod.SWISH
    assert response.payment.status == "created"
    assert response.payment.reference
    assert response.payment.swish_url.endswith(f"/paymentrequests/{response.payment.reference}")

    stored = await store.get(settings.orders_table, response.order.id)
    assert stored["number"] == "2503.001"
    assert stored["cart"][0]["id"] == "prod-jam"

    product = await services.ledger.get_product("prod-jam")
    assert (product.stock, product.reserved) == (5, 2)
    [reservation] = await services.ledger.order_reservations(response.order.id)
    assert reservation.status == ReservationStatus.ACTIVE


@pytest.mark.asyncio
async def test_card_checkout_leaves_payment_pending(services: Services, seed_product) -> None:
    await seed_product("prod-jam")

    response = await services.checkout.checkout(
        checkout_request([("prod-jam", 1)], payment="card")
    )

    assert response.payment.method == PaymentMethod.CARD
    assert response.payment.status == "pending"
    assert response.payment.reference is None
    assert response.payment.swish_url is None


@pytest.mark.asyncio
async def test_last_unit_sold_once(
    services: Services, seed_product, store: Store, settings: Settings
) -> None:
    """Test that two shoppers racing for the last unit get one order."""
    await seed_product("prod-jam", stock=1)

    results = await asyncio.gather(
        services.checkout.checkout(checkout_request([("prod-jam", 1)])),
        services.checkout.checkout(checkout_request([("prod-jam", 1)])),
        return_exceptions=True,
    )

    failures = [r for r in results if isinstance(r, Exception)]
    assert len(failures) == 1
    assert isinstance(failures[0], InsufficientStock)
    assert len(await store.scan(settings.orders_table)) == 1
    assert await services.ledger.available_stock("prod-jam") == 0


@pytest.mark.asyncio
async def test_insufficient_stock_writes_nothing(
    services: Services, seed_product, store: Store, settings: Settings
) -> None:
    await seed_product("prod-jam", stock=1)

    with pytest.raises(InsufficientStock) as exc_info:
        await services.checkout.checkout(checkout_request([("prod-jam", 2)]))

    assert (exc_info.value.available, exc_info.value.requested) == (1, 2)
    assert await store.scan(settings.orders_table) == []
    assert await store.scan(settings.reservations_table) == []


@pytest.mark.asyncio
async def test_lapsed_hold_does_not_block_checkout(
    services: Services, seed_product, clock
) -> None:
    """Test that an abandoned checkout stops holding stock once its TTL passes."""
    await seed_product("prod-jam", stock=2)
    abandoned = await services.checkout.checkout(checkout_request([("prod-jam", 2)]))
    clock.advance(minutes=11)

    response = await services.checkout.checkout(checkout_request([("prod-jam", 1)]))

    assert response.order.number == "2503.002"
    [old] = await services.ledger.order_reservations(abandoned.order.id)
    assert old.status == ReservationStatus.EXPIRED
    product = await services.ledger.get_product("prod-jam")
    assert (product.stock, product.reserved) == (2, 1)


@pytest.mark.asyncio
async def test_repeated_lines_checked_together(services: Services, seed_product) -> None:
    await seed_product("prod-jam", stock=3)

    with pytest.raises(InsufficientStock):
        await services.checkout.checkout(checkout_request([("prod-jam", 2), ("prod-jam", 2)]))


@pytest.mark.asyncio
async def test_inactive_product_rejected(services: Services, seed_product) -> None:
    await seed_product("prod-gift-box", status=ProductStatus.INACTIVE)

    with pytest.raises(ProductUnavailable) as exc_info:
        await services.checkout.checkout(checkout_request([("prod-gift-box", 1)]))

    assert "Gift Box" in exc_info.value.message


@pytest.mark.asyncio
async def test_unknown_product_rejected(services: Services) -> None:
    with pytest.raises(ProductNotFound):
        await services.checkout.checkout(checkout_request([("prod-missing", 1)]))


def swish_transport(captured: list[httpx.Request], status_code: int = 201) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        if status_code != 201:
            return httpx.Response(status_code, text="ACMT03")
        return httpx.Response(status_code, headers={"Location": str(request.url)})

    return httpx.MockTransport(handler)


@pytest.mark.asyncio
async def test_total_uses_live_prices(
    settings: Settings, store: Store, notifier, clock, seed_product
) -> None:
    """Test that the payment amount comes from stored prices, not the cart."""
    await seed_product("prod-jam", price=Decimal("79.00"), price_reduced=Decimal("59.00"))
    captured: list[httpx.Request] = []
    mss = settings.model_copy(update={"swish_environment": "mss"})
    gateway = SwishGateway(mss, client=httpx.AsyncClient(transport=swish_transport(captured)))
    services = build_services(settings, store, gateway=gateway, notifier=notifier, clock=clock)
    payload = checkout_payload([("prod-jam", 2)])
    payload["cart"][0]["price"] = "1.00"

    await services.checkout.checkout(CheckoutRequest.model_validate(payload))

    body = json.loads(captured[0].content)
    assert body["amount"] == "167.00"
    assert body["payeePaymentReference"] == "2503.001"
    assert body["payerAlias"] == "46701234567"


@pytest.mark.asyncio
async def test_payment_failure_keeps_order(
    settings: Settings, store: Store, notifier, clock, seed_product
) -> None:
    """Test that a failed payment request leaves order and hold for follow-up."""
    await seed_product("prod-jam", stock=5)
    mss = settings.model_copy(update={"swish_environment": "mss"})
    gateway = SwishGateway(
        mss, client=httpx.AsyncClient(transport=swish_transport([], status_code=500))
    )
    services = build_services(settings, store, gateway=gateway, notifier=notifier, clock=clock)

    with pytest.raises(PaymentInitiationFailed) as exc_info:
        await services.checkout.checkout(checkout_request([("prod-jam", 2)]))

    order_id = exc_info.value.order_id
    assert exc_info.value.order_number == "2503.001"
    assert await store.get(settings.orders_table, order_id) is not None
    [reservation] = await services.ledger.order_reservations(order_id)
    assert reservation.status == ReservationStatus.ACTIVE
    assert notifier.alerts[0]["order_number"] == "2503.001"


@pytest.mark.asyncio
async def test_order_save_failure_releases_stock(
    services: Services, seed_product, store: Store, settings: Settings, monkeypatch
) -> None:
    await seed_product("prod-jam", stock=5)
    original_put = store.put

    async def failing_put(table: str, item: dict) -> None:
        if table == settings.orders_table:
            raise StoreError("disk on fire")
        await original_put(table, item)

    monkeypatch.setattr(store, "put", failing_put)

    with pytest.raises(InternalError):
        await services.checkout.checkout(checkout_request([("prod-jam", 2)]))

    product = await services.ledger.get_product("prod-jam")
    assert product.reserved == 0
    [reservation] = await store.scan(settings.reservations_table)
    assert reservation["status"] == ReservationStatus.CANCELLED.value
