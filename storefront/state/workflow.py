"""Status state machines for reservations and orders."""

from storefront.models.order import OrderStatus
from storefront.models.reservation import ReservationStatus


class ReservationTransitions:
    """Valid stock reservation transitions.

    Every status reachable from ACTIVE is terminal.
    """

    TRANSITIONS = {
        ReservationStatus.ACTIVE: [
            ReservationStatus.CONFIRMED,
            ReservationStatus.CANCELLED,
            ReservationStatus.EXPIRED,
        ],
        ReservationStatus.CONFIRMED: [],
        ReservationStatus.CANCELLED: [],
        ReservationStatus.EXPIRED: [],
    }

    @classmethod
    def can_transition(
        cls, from_state: ReservationStatus, to_state: ReservationStatus
    ) -> bool:
        """Check if a state transition is valid."""
        return to_state in cls.TRANSITIONS.get(from_state, [])

    @classmethod
    def is_terminal(cls, state: ReservationStatus) -> bool:
        return not cls.TRANSITIONS.get(state)


class OrderTransitions:
    """Order status changes driven by payment callbacks."""

    TRANSITIONS = {
        OrderStatus.ACTIVE: [OrderStatus.INVALID],
        OrderStatus.INACTIVE: [OrderStatus.ACTIVE, OrderStatus.INVALID],
        # A payment may still land after a decline was reported
        OrderStatus.INVALID: [OrderStatus.ACTIVE],
    }

    @classmethod
    def can_transition(cls, from_state: OrderStatus, to_state: OrderStatus) -> bool:
        return to_state in cls.TRANSITIONS.get(from_state, [])
