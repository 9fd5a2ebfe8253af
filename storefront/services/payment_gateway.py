"""Swish payment gateway client."""

import re
import ssl
from decimal import ROUND_HALF_UP, Decimal
from uuid import uuid4

import httpx

from storefront.config import Settings
from storefront.errors import PaymentGatewayError
from storefront.models.payment import PaymentRequestResult, PaymentStatus, SwishPaymentRequest
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

SWISH_BASE_URLS = {
    "production": "https://cpc.getswish.net/swish-cpcapi/api/v2",
    "sandbox": "https://staging.getswish.pub.tds.tieto.com/swish-cpcapi/api/v2",
    "mss": "https://mss.cpc.getswish.net/swish-cpcapi/api/v2",
    # Mock mode never calls out; the URL only shapes the returned location
    "mock": "https://mss.cpc.getswish.net/swish-cpcapi/api/v2",
}

MESSAGE_MAX_LENGTH = 50


def normalize_payer_alias(phone: str) -> str:
    """Turn a Swedish phone number into the ``46...`` form Swish expects."""
    digits = re.sub(r"[^0-9]", "", phone)
    if digits.startswith("0"):
        digits = "46" + digits[1:]
    if not digits.startswith("46"):
        digits = "46" + digits
    return digits


def format_amount(amount: Decimal) -> str:
    return str(Decimal(amount).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


class SwishGateway:
    """Creates Swish payment requests; results arrive later by callback."""

    def __init__(self, settings: Settings, client: httpx.AsyncClient | None = None):
        self.environment = settings.swish_environment
        self.base_url = SWISH_BASE_URLS[self.environment]
        self.merchant_number = settings.swish_merchant_number
        self.callback_url = settings.swish_callback_url
        self.currency = settings.swish_currency
        self.settings = settings
        self._client = client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def create_payment_request(
        self,
        order_number: str,
        amount: Decimal,
        payer_alias: str | None = None,
        message: str | None = None,
    ) -> PaymentRequestResult:
        """
        Create a payment request keyed by the order number.

        Args:
            order_number: Used as the payee payment reference
            amount: Amount to charge
            payer_alias: Customer phone number; omitted for e-commerce flows
            message: Text shown in the Swish app

        Returns:
            Provider id, location and initial status

        Raises:
            PaymentGatewayError: the request could not be created
        """
        instruction_id = uuid4().hex.upper()
        request = SwishPaymentRequest(
            payee_payment_reference=order_number,
            callback_url=self.callback_url,
            payee_alias=self.merchant_number,
            payer_alias=normalize_payer_alias(payer_alias) if payer_alias else None,
            amount=format_amount(amount),
            currency=self.currency,
            message=(message or f"Order {order_number}")[:MESSAGE_MAX_LENGTH],
        )
        url = f"{self.base_url}/paymentrequests/{instruction_id}"

        logger.info(
            "swish_payment_requested",
            instruction_id=instruction_id,
            order_number=order_number,
            amount=request.amount,
            environment=self.environment,
        )

        if self.environment == "mock":
            return PaymentRequestResult(id=instruction_id, location=url)

        client = self._get_client()
        try:
            response = await client.put(
                url, json=request.model_dump(by_alias=True, exclude_none=True)
            )
        except httpx.HTTPError as e:
            logger.error("swish_request_failed", order_number=order_number, error=str(e))
            raise PaymentGatewayError("Failed to create Swish payment request") from e

        if response.status_code not in (200, 201):
            logger.error(
                "swish_request_rejected",
                order_number=order_number,
                status_code=response.status_code,
                body=response.text,
            )
            raise PaymentGatewayError(
                f"Swish API error: {response.status_code} {response.text}"
            )

        location = response.headers.get("location") or url
        logger.info("swish_payment_created", instruction_id=instruction_id, location=location)
        return PaymentRequestResult(
            id=instruction_id, location=location, status=PaymentStatus.CREATED
        )

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                verify=self._ssl_context(), timeout=self.settings.swish_timeout
            )
        return self._client

    def _ssl_context(self) -> ssl.SSLContext:
        """Client-certificate context required by every non-mock environment."""
        settings = self.settings
        if not settings.swish_cert_path or not settings.swish_key_path:
            raise PaymentGatewayError(
                f"Swish certificates not configured for {self.environment} environment. "
                "Set SWISH_CERT_PATH and SWISH_KEY_PATH."
            )
        context = ssl.create_default_context(cafile=settings.swish_ca_cert_path)
        context.load_cert_chain(
            settings.swish_cert_path,
            settings.swish_key_path,
            password=settings.swish_passphrase,
        )
        return context
