"""Swish payment request and callback models."""

from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class PaymentStatus(str, Enum):
    """Statuses reported by Swish for a payment request."""

    CREATED = "CREATED"
    PAID = "PAID"
    DECLINED = "DECLINED"
    ERROR = "ERROR"
    CANCELLED = "CANCELLED"


class SwishPaymentRequest(BaseModel):
    """Body of a Swish ``PUT /paymentrequests/{id}`` call."""

    model_config = ConfigDict(populate_by_name=True)

    payee_payment_reference: str = Field(alias="payeePaymentReference", max_length=35)
    callback_url: str = Field(alias="callbackUrl")
    payee_alias: str = Field(alias="payeeAlias")
    payer_alias: str | None = Field(default=None, alias="payerAlias")
    amount: str
    currency: str = "SEK"
    message: str = Field(max_length=50)


class PaymentRequestResult(BaseModel):
    """Payment request created at the provider."""

    id: str
    location: str
    status: PaymentStatus = PaymentStatus.CREATED


class SwishCallback(BaseModel):
    """Asynchronous status callback delivered by Swish."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    payee_payment_reference: str = Field(alias="payeePaymentReference")
    status: PaymentStatus
    amount: Decimal | None = None
    currency: str | None = None
    payer_alias: str | None = Field(default=None, alias="payerAlias")
    date_created: str | None = Field(default=None, alias="dateCreated")
    date_paid: str | None = Field(default=None, alias="datePaid")
    error_code: str | None = Field(default=None, alias="errorCode")
    error_message: str | None = Field(default=None, alias="errorMessage")


class CallbackAck(BaseModel):
    """Transport-level acknowledgement, returned for every delivery."""

    model_config = ConfigDict(populate_by_name=True)

    received: bool = True
    order_number: str | None = Field(default=None, alias="orderNumber")
    status: str | None = None
    error: str | None = None
