"""Checkout request and response schemas."""

from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from storefront.models.order import OrderInformation, OrderStatus


class PaymentMethod(str, Enum):
    SWISH = "swish"
    CARD = "card"
    INVOICE = "invoice"


class CheckoutOrder(BaseModel):
    """Customer, delivery and payment choices submitted with the cart."""

    payment: PaymentMethod
    delivery: str = Field(min_length=1)
    delivery_cost: Decimal = Field(ge=0)
    name: str = Field(min_length=1)
    company: str = ""
    address: str = Field(min_length=1)
    zip: str = Field(min_length=1)
    city: str = Field(min_length=1)
    email: EmailStr
    phone: str = Field(min_length=1)

    def information(self) -> OrderInformation:
        return OrderInformation(
            name=self.name,
            company=self.company,
            address=self.address,
            zip=self.zip,
            city=self.city,
            email=self.email,
            phone=self.phone,
        )


class CheckoutCartLine(BaseModel):
    """Cart line as sent by the shop front.

    Clients may echo product fields (title, price, ...) alongside ``id`` and
    ``number``; they are ignored in favour of the live product.
    """

    model_config = ConfigDict(extra="ignore")

    id: str = Field(min_length=1)
    number: int = Field(ge=1)


class CheckoutRequest(BaseModel):
    order: CheckoutOrder
    cart: list[CheckoutCartLine] = Field(min_length=1)


class OrderSummary(BaseModel):
    id: str
    number: str
    status: OrderStatus


class PaymentDescriptor(BaseModel):
    """Pending payment returned to the client after checkout."""

    model_config = ConfigDict(populate_by_name=True)

    method: PaymentMethod
    status: str
    reference: str | None = None
    swish_url: str | None = Field(default=None, alias="swishUrl")


class CheckoutResponse(BaseModel):
    order: OrderSummary
    payment: PaymentDescriptor
