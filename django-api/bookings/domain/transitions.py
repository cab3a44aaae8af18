"""Offer and booking state machines as lookup tables.

These tables are the single source of truth for which status changes are
allowed. Guards that depend on more than the two states (payment thresholds,
cancellation windows) live with the entity or service that owns the data.
"""

from enum import Enum


class OfferStatus(Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class OfferInitiator(Enum):
    """Which party created the offer; the other party must answer it."""

    SELLER = "seller"
    BUYER = "buyer"


class OfferAction(Enum):
    ACCEPT = "accept"
    REJECT = "reject"
    CANCEL = "cancel"
    EXPIRE = "expire"


class OfferActor(Enum):
    """Role required to perform an offer action."""

    INITIATOR = "initiator"
    RESPONDER = "responder"
    SYSTEM = "system"


class BookingStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


OFFER_TRANSITIONS: dict[tuple[OfferStatus, OfferAction], tuple[OfferActor, OfferStatus]] = {
    (OfferStatus.PENDING, OfferAction.ACCEPT): (OfferActor.RESPONDER, OfferStatus.ACCEPTED),
    (OfferStatus.PENDING, OfferAction.REJECT): (OfferActor.RESPONDER, OfferStatus.REJECTED),
    (OfferStatus.PENDING, OfferAction.CANCEL): (OfferActor.INITIATOR, OfferStatus.CANCELLED),
    (OfferStatus.PENDING, OfferAction.EXPIRE): (OfferActor.SYSTEM, OfferStatus.EXPIRED),
}

BOOKING_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.IN_PROGRESS, BookingStatus.CANCELLED}),
    BookingStatus.IN_PROGRESS: frozenset({BookingStatus.COMPLETED}),
    BookingStatus.COMPLETED: frozenset(),
    BookingStatus.CANCELLED: frozenset({BookingStatus.REFUNDED}),
    BookingStatus.REFUNDED: frozenset(),
}

# Statuses in which a booking can still take payments.
PAYABLE_BOOKING_STATUSES = frozenset(
    {BookingStatus.PENDING, BookingStatus.CONFIRMED, BookingStatus.IN_PROGRESS}
)


def offer_transition(status: OfferStatus, action: OfferAction) -> tuple[OfferActor, OfferStatus] | None:
    """Return the required actor and resulting status, or None if not allowed."""
    return OFFER_TRANSITIONS.get((status, action))


def is_offer_terminal(status: OfferStatus) -> bool:
    return not any(current is status for current, _ in OFFER_TRANSITIONS)


def is_valid_status_transition(current: BookingStatus, target: BookingStatus) -> bool:
    """Whether ``current -> target`` is in the booking table. Never reflexive."""
    return target in BOOKING_TRANSITIONS[current]


def allowed_booking_transitions(current: BookingStatus) -> frozenset[BookingStatus]:
    return BOOKING_TRANSITIONS[current]


def can_be_cancelled(status: BookingStatus) -> bool:
    return is_valid_status_transition(status, BookingStatus.CANCELLED)


def is_booking_active(status: BookingStatus) -> bool:
    """Pending or confirmed bookings still have an outcome to settle."""
    return can_be_cancelled(status)


def is_booking_terminal(status: BookingStatus) -> bool:
    """Completed, cancelled and refunded bookings are settled outcomes."""
    return status in (BookingStatus.COMPLETED, BookingStatus.CANCELLED, BookingStatus.REFUNDED)
