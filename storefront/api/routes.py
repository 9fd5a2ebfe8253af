"""API routes for checkout and payment callbacks."""

from fastapi import APIRouter, Depends, Request, status

from storefront.models.checkout import CheckoutRequest, CheckoutResponse
from storefront.models.payment import CallbackAck
from storefront.services import Services
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()


# Dependency to get the wired services


async def get_services(request: Request) -> Services:
    """Services built by the application lifespan."""
    return request.app.state.services


# Routes


@router.post(
    "/checkout",
    response_model=CheckoutResponse,
    response_model_by_alias=True,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
)
async def checkout(
    request: CheckoutRequest,
    services: Services = Depends(get_services),
) -> CheckoutResponse:
    """
    Place an order.

    Validates the cart against live stock, creates the order, reserves its
    stock and starts payment. Swish orders return the payment request
    location for the shop front to hand over to the Swish app.
    """
    return await services.checkout.checkout(request)


@router.post(
    "/swish/callback",
    response_model=CallbackAck,
    response_model_by_alias=True,
    response_model_exclude_none=True,
)
async def swish_callback(
    request: Request,
    services: Services = Depends(get_services),
) -> CallbackAck:
    """
    Receive a Swish payment status callback.

    Always answers 200, otherwise Swish keeps retrying the delivery.
    """
    body = await request.body()
    return await services.callbacks.handle_payload(body)
