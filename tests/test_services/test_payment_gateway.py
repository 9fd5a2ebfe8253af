"""Tests for the Swish gateway client."""

import json
from decimal import Decimal

import httpx
import pytest

from storefront.config import Settings
from storefront.errors import PaymentGatewayError
from storefront.models.payment import PaymentStatus
from storefront.services.payment_gateway import (
    SWISH_BASE_URLS,
    SwishGateway,
    format_amount,
    normalize_payer_alias,
)


@pytest.mark.parametrize(
    ("phone", "expected"),
    [
        ("070-123 45 67", "46701234567"),
        ("+46 70 123 45 67", "46701234567"),
        ("46701234567", "46701234567"),
        ("701234567", "46701234567"),
    ],
)
def test_normalize_payer_alias(phone: str, expected: str) -> None:
    assert normalize_payer_alias(phone) == expected


def test_format_amount() -> None:
    assert format_amount(Decimal("167")) == "167.00"
    assert format_amount(Decimal("99.995")) == "100.00"


@pytest.mark.asyncio
async def test_mock_mode_never_calls_out(settings: Settings) -> None:
    gateway = SwishGateway(settings)

    result = await gateway.create_payment_request("2503.001", Decimal("227.00"))

    assert result.status == PaymentStatus.CREATED
    assert len(result.id) == 32
    assert result.id == result.id.upper()
    assert result.location == f"{SWISH_BASE_URLS['mss']}/paymentrequests/{result.id}"


@pytest.mark.asyncio
async def test_payment_request_sent_to_swish(settings: Settings) -> None:
    """Test the request shape sent to the Swish API."""
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(201, headers={"Location": "https://swish.test/paymentrequests/X"})

    sandbox = settings.model_copy(update={"swish_environment": "sandbox"})
    gateway = SwishGateway(sandbox, client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))

    result = await gateway.create_payment_request(
        "2503.001", Decimal("227"), payer_alias="0701234567", message="x" * 80
    )

    [request] = captured
    assert request.method == "PUT"
    assert str(request.url) == f"{SWISH_BASE_URLS['sandbox']}/paymentrequests/{result.id}"
    body = json.loads(request.content)
    assert body == {
        "payeePaymentReference": "2503.001",
        "callbackUrl": settings.swish_callback_url,
        "payeeAlias": settings.swish_merchant_number,
        "payerAlias": "46701234567",
        "amount": "227.00",
        "currency": "SEK",
        "message": "x" * 50,
    }
    assert result.location == "https://swish.test/paymentrequests/X"


@pytest.mark.asyncio
async def test_default_message_and_no_payer(settings: Settings) -> None:
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(201)

    mss = settings.model_copy(update={"swish_environment": "mss"})
    gateway = SwishGateway(mss, client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))

    result = await gateway.create_payment_request("2503.007", Decimal("10"))

    body = json.loads(captured[0].content)
    assert body["message"] == "Order 2503.007"
    assert "payerAlias" not in body
    # Without a Location header the request URL is the payment's location
    assert result.location == str(captured[0].url)


@pytest.mark.asyncio
async def test_rejected_request_raises(settings: Settings) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(422, json=[{"errorCode": "RP03", "errorMessage": "Bad callback"}])

    mss = settings.model_copy(update={"swish_environment": "mss"})
    gateway = SwishGateway(mss, client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))

    with pytest.raises(PaymentGatewayError, match="422"):
        await gateway.create_payment_request("2503.001", Decimal("10"))


@pytest.mark.asyncio
async def test_transport_failure_raises(settings: Settings) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    mss = settings.model_copy(update={"swish_environment": "mss"})
    gateway = SwishGateway(mss, client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))

    with pytest.raises(PaymentGatewayError):
        await gateway.create_payment_request("2503.001", Decimal("10"))


@pytest.mark.asyncio
async def test_missing_certificates_raise(settings: Settings) -> None:
    production = settings.model_copy(update={"swish_environment": "production"})
    gateway = SwishGateway(production)

    with pytest.raises(PaymentGatewayError, match="certificates"):
        await gateway.create_payment_request("2503.001", Decimal("10"))
