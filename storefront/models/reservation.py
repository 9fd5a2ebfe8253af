"""Stock reservation models."""

from datetime import datetime
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


def new_reservation_id() -> str:
    return f"RES-{uuid4().hex}"


class ReservationStatus(str, Enum):
    """Reservation lifecycle."""

    ACTIVE = "active"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class StockReservation(BaseModel):
    """Temporary hold on inventory pending payment."""

    model_config = ConfigDict(populate_by_name=True)

    reservation_id: str = Field(default_factory=new_reservation_id, alias="reservationId")
    product_id: str = Field(alias="productId")
    order_id: str = Field(alias="orderId")
    quantity: int = Field(ge=1)
    created_at: datetime = Field(alias="createdAt")
    expires_at: datetime = Field(alias="expiresAt")
    status: ReservationStatus = ReservationStatus.ACTIVE
    settled_at: datetime | None = Field(default=None, alias="settledAt")

    def is_expired(self, now: datetime) -> bool:
        """Check if the reservation has outlived its TTL."""
        return now > self.expires_at

    def to_item(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class StockRequest(BaseModel):
    """Quantity of one product to hold for an order."""

    product_id: str
    quantity: int
