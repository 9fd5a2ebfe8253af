"""Catalogue product model."""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ProductStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class Product(BaseModel):
    """Product as stored in the products table.

    ``stock`` is the recorded quantity on hand and ``reserved`` the running
    total of quantities held by active reservations. Both are written only by
    the stock ledger.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str
    slug: str
    category_slug: str | None = Field(default=None, alias="categorySlug")
    article: str | None = None
    brand: str = ""
    title: str
    subtitle: str = ""
    price: Decimal = Field(ge=0)
    price_reduced: Decimal | None = Field(default=None, ge=0)
    description: list[str] = Field(default_factory=list)
    tag: str | None = None
    index: int | None = None
    stock: int = Field(default=0, ge=0)
    reserved: int = Field(default=0, ge=0)
    max_order: int | None = None
    image: str | None = None
    images: list[str] = Field(default_factory=list)
    status: ProductStatus = ProductStatus.ACTIVE
    created_at: datetime | None = Field(default=None, alias="createdAt")
    updated_at: datetime | None = Field(default=None, alias="updatedAt")

    @property
    def available_stock(self) -> int:
        """Stock that is neither sold nor held for a pending payment."""
        return self.stock - self.reserved

    @property
    def effective_price(self) -> Decimal:
        if self.price_reduced:
            return self.price_reduced
        return self.price

    @property
    def is_active(self) -> bool:
        return self.status == ProductStatus.ACTIVE

    def to_item(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
