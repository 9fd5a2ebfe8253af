"""Checkout services and their wiring."""

from dataclasses import dataclass

from storefront.config import Settings
from storefront.services.checkout import CheckoutOrchestrator
from storefront.services.notifier import Notifier
from storefront.services.order_assembler import OrderAssembler
from storefront.services.order_number import OrderNumberGenerator
from storefront.services.payment_callback import PaymentCallbackHandler
from storefront.services.payment_gateway import SwishGateway
from storefront.services.stock_ledger import StockLedger
from storefront.state.store import Store
from storefront.utils.clock import Clock, utcnow


@dataclass
class Services:
    """Everything the API needs, built once per process."""

    store: Store
    ledger: StockLedger
    numbers: OrderNumberGenerator
    assembler: OrderAssembler
    gateway: SwishGateway
    notifier: Notifier
    checkout: CheckoutOrchestrator
    callbacks: PaymentCallbackHandler

    async def close(self) -> None:
        await self.gateway.close()
        await self.notifier.close()
        await self.store.disconnect()


def build_services(
    settings: Settings,
    store: Store,
    gateway: SwishGateway | None = None,
    notifier: Notifier | None = None,
    clock: Clock = utcnow,
) -> Services:
    """Wire the checkout services around a shared store."""
    gateway = gateway or SwishGateway(settings)
    notifier = notifier or Notifier(settings)
    ledger = StockLedger(store, settings, clock=clock)
    numbers = OrderNumberGenerator(store, settings, clock=clock)
    assembler = OrderAssembler(store, settings, numbers, clock=clock)
    return Services(
        store=store,
        ledger=ledger,
        numbers=numbers,
        assembler=assembler,
        gateway=gateway,
        notifier=notifier,
        checkout=CheckoutOrchestrator(store, settings, ledger, assembler, gateway, notifier),
        callbacks=PaymentCallbackHandler(store, settings, ledger, notifier, clock=clock),
    )


__all__ = [
    "Services",
    "build_services",
    "CheckoutOrchestrator",
    "Notifier",
    "OrderAssembler",
    "OrderNumberGenerator",
    "PaymentCallbackHandler",
    "StockLedger",
    "SwishGateway",
]
