"""State management modules."""

from storefront.state.store import Store
from storefront.state.workflow import OrderTransitions, ReservationTransitions

__all__ = ["Store", "OrderTransitions", "ReservationTransitions"]
