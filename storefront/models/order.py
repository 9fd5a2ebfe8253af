"""Order-related data models."""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from storefront.models.product import Product


class OrderStatus(str, Enum):
    """Order status.

    Orders are created ACTIVE; a failed payment turns them INVALID.
    """

    ACTIVE = "active"
    INACTIVE = "inactive"
    INVALID = "invalid"


class OrderInformation(BaseModel):
    """Customer and delivery address details."""

    name: str
    company: str = ""
    address: str
    zip: str
    city: str
    email: EmailStr
    phone: str


class OrderCartItem(BaseModel):
    """Line item frozen from the live product at order time."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    number: int = Field(ge=1)
    slug: str
    category_slug: str | None = Field(default=None, alias="categorySlug")
    article: str | None = None
    brand: str = ""
    title: str
    subtitle: str = ""
    price: Decimal
    price_reduced: Decimal | None = None
    description: tuple[str, ...] | None = None
    tag: str | None = None
    image: str | None = None
    images: tuple[str, ...] | None = None

    @classmethod
    def freeze(cls, product: Product, number: int) -> "OrderCartItem":
        """Snapshot the descriptive fields of ``product``."""
        return cls(
            id=product.id,
            number=number,
            slug=product.slug,
            category_slug=product.category_slug,
            article=product.article,
            brand=product.brand,
            title=product.title,
            subtitle=product.subtitle,
            price=product.price,
            price_reduced=product.price_reduced,
            description=tuple(product.description),
            tag=product.tag,
            image=product.image,
            images=tuple(product.images),
        )

    @property
    def unit_price(self) -> Decimal:
        if self.price_reduced:
            return self.price_reduced
        return self.price

    @property
    def subtotal(self) -> Decimal:
        return self.unit_price * self.number


class Order(BaseModel):
    """Complete order record."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    number: str
    date: int
    date_change: int
    status: OrderStatus = OrderStatus.ACTIVE
    delivery: str
    delivery_cost: Decimal = Field(ge=0)
    information: OrderInformation
    cart: list[OrderCartItem]
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")

    @property
    def total(self) -> Decimal:
        """Sum of the frozen line prices plus delivery."""
        return sum((item.subtotal for item in self.cart), Decimal("0")) + self.delivery_cost

    def to_item(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
