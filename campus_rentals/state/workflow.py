"""Status transition tables for requests, orders and returns."""

from campus_rentals.models.requests import RequestKind, RequestStatus, ReturnStatus


class RentTransitions:
    """A rent request is decided exactly once."""

    TRANSITIONS = {
        RequestStatus.PENDING: [RequestStatus.APPROVED, RequestStatus.REJECTED],
        RequestStatus.APPROVED: [],
        RequestStatus.REJECTED: [],
    }

    @classmethod
    def can_transition(cls, from_state: RequestStatus, to_state: RequestStatus) -> bool:
        """Check if a state transition is valid."""
        return to_state in cls.TRANSITIONS.get(from_state, [])


class OrderTransitions:
    """Food orders move forward only; there is no cancel once out for delivery."""

    TRANSITIONS = {
        RequestStatus.PENDING: [RequestStatus.PREPARING, RequestStatus.REJECTED],
        RequestStatus.PREPARING: [
            RequestStatus.OUT_FOR_DELIVERY,
            RequestStatus.REJECTED,
        ],
        RequestStatus.OUT_FOR_DELIVERY: [RequestStatus.DELIVERED],
        RequestStatus.DELIVERED: [],
        RequestStatus.REJECTED: [],
        RequestStatus.COMPLETED: [],
    }

    # States in which stock has been charged to `reserved`
    RESERVING = {
        RequestStatus.PREPARING,
        RequestStatus.OUT_FOR_DELIVERY,
        RequestStatus.DELIVERED,
    }

    @classmethod
    def can_transition(cls, from_state: RequestStatus, to_state: RequestStatus) -> bool:
        """Check if a state transition is valid."""
        return to_state in cls.TRANSITIONS.get(from_state, [])


class ReturnTransitions:
    """A return request is decided exactly once."""

    TRANSITIONS = {
        ReturnStatus.PENDING: [ReturnStatus.APPROVED, ReturnStatus.REJECTED],
        ReturnStatus.APPROVED: [],
        ReturnStatus.REJECTED: [],
    }

    @classmethod
    def can_transition(cls, from_state: ReturnStatus, to_state: ReturnStatus) -> bool:
        """Check if a state transition is valid."""
        return to_state in cls.TRANSITIONS.get(from_state, [])


def can_transition(kind: RequestKind, from_state: RequestStatus, to_state: RequestStatus) -> bool:
    """Dispatch to the transition table for the request kind."""
    if kind == RequestKind.ORDER:
        return OrderTransitions.can_transition(from_state, to_state)
    return RentTransitions.can_transition(from_state, to_state)
