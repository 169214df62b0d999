"""Booking status transition table."""

from __future__ import annotations

from app.core.enums import BookingStatusEnum
from app.shared.exceptions import InvalidTransitionException

VALID_STATUS_TRANSITIONS: dict[BookingStatusEnum, frozenset[BookingStatusEnum]] = {
    BookingStatusEnum.PENDING: frozenset({BookingStatusEnum.CONFIRMED, BookingStatusEnum.CANCELLED}),
    BookingStatusEnum.CONFIRMED: frozenset(
        {BookingStatusEnum.COMPLETED, BookingStatusEnum.CANCELLED, BookingStatusEnum.NO_SHOW},
    ),
    BookingStatusEnum.COMPLETED: frozenset({BookingStatusEnum.REFUNDED}),
    BookingStatusEnum.NO_SHOW: frozenset({BookingStatusEnum.REFUNDED}),
    BookingStatusEnum.CANCELLED: frozenset(),
    BookingStatusEnum.REFUNDED: frozenset(),
}

TERMINAL_STATUSES = frozenset(status for status, targets in VALID_STATUS_TRANSITIONS.items() if not targets)

# A customer-won dispute pays out on a closed booking; this edge is only taken by dispute resolution.
DISPUTE_REFUND_SOURCES = frozenset({BookingStatusEnum.CANCELLED, BookingStatusEnum.NO_SHOW})


def can_transition(current: BookingStatusEnum, requested: BookingStatusEnum) -> bool:
    """Return True when ``current -> requested`` is a legal move."""
    return requested in VALID_STATUS_TRANSITIONS.get(current, frozenset())


def ensure_transition(current: BookingStatusEnum, requested: BookingStatusEnum) -> None:
    """Raise InvalidTransitionException unless ``current -> requested`` is legal."""
    if not can_transition(current, requested):
        raise InvalidTransitionException(
            f"Cannot transition booking from {current} to {requested}",
            current=str(current),
            requested=str(requested),
        )


def ensure_dispute_refund(current: BookingStatusEnum) -> None:
    """Raise InvalidTransitionException unless a dispute payout may move ``current`` to refunded."""
    if current not in DISPUTE_REFUND_SOURCES:
        raise InvalidTransitionException(
            f"Cannot refund a dispute on a booking in status {current}",
            current=str(current),
            requested=str(BookingStatusEnum.REFUNDED),
        )
