"""Store interfaces (repository pattern).

Stores must be swappable and return domain models. They raise ``StoreError``
when the underlying storage fails; they never return partial results.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import date, datetime
from typing import Any

from bookings.domain import (
    Booking,
    BookingId,
    BookingPayment,
    BookingStatus,
    Money,
    Offer,
    OfferId,
    OfferStatus,
)


class TransactionalStore(ABC):
    """A store whose writes can be grouped into one all-or-nothing unit."""

    @abstractmethod
    def atomic(self) -> AbstractContextManager[None]:
        """Return a context manager; an exception inside it discards every write."""
        ...


class BookingStore(TransactionalStore):
    """Interface for booking persistence operations."""

    @abstractmethod
    def create_booking(self, booking: Booking) -> Booking:
        """Persist a new booking and return it as stored."""
        ...

    @abstractmethod
    def get_booking(self, booking_id: BookingId, *, for_update: bool = False) -> Booking | None:
        """Return a booking by ID, or None if not found.

        ``for_update`` locks the record until the surrounding ``atomic()`` block ends.
        """
        ...

    @abstractmethod
    def update_booking_status(
        self,
        booking_id: BookingId,
        new_status: BookingStatus,
        actor_id: str,
        *,
        refund_amount: Money | None = None,
    ) -> Booking:
        """Apply a status transition and return the updated booking.

        Raises:
            BookingNotFoundError: If the booking does not exist.
            InvalidStatusTransitionError: If the stored status does not allow it.
        """
        ...

    @abstractmethod
    def add_payment(self, booking_id: BookingId, payment: BookingPayment) -> Booking:
        """Append a payment and return the updated booking."""
        ...

    @abstractmethod
    def cancel_booking(
        self,
        booking_id: BookingId,
        cancelled_by: str,
        reason: str | None = None,
        *,
        refund_amount: Money | None = None,
        cancelled_at: datetime | None = None,
    ) -> Booking:
        """Cancel a booking, recording who cancelled and the refund owed.

        ``cancelled_at`` defaults to the store clock; pass the instant the
        refund was computed from so both agree on the cancellation day.
        """
        ...

    @abstractmethod
    def check_availability(
        self,
        supplier_id: str,
        event_date: date,
        exclude_booking_id: BookingId | None = None,
    ) -> bool:
        """Return True if the supplier has no active booking on ``event_date``."""
        ...

    @abstractmethod
    def list_client_bookings(
        self, client_id: str, status: BookingStatus | None = None
    ) -> list[Booking]:
        """Return the bookings made by a client, optionally only those in ``status``."""
        ...

    @abstractmethod
    def list_supplier_bookings(
        self, supplier_id: str, status: BookingStatus | None = None
    ) -> list[Booking]:
        """Return the bookings held by a supplier, optionally only those in ``status``."""
        ...


class OfferStore(TransactionalStore):
    """Interface for offer persistence operations."""

    @abstractmethod
    def create_offer(self, offer: Offer) -> Offer:
        """Persist a new offer and return it as stored."""
        ...

    @abstractmethod
    def get_offer(self, offer_id: OfferId, *, for_update: bool = False) -> Offer | None:
        """Return an offer by ID, or None if not found."""
        ...

    @abstractmethod
    def conditionally_transition_offer(
        self,
        offer_id: OfferId,
        expected_status: OfferStatus,
        new_status: OfferStatus,
        patch: dict[str, Any],
    ) -> Offer | None:
        """Atomically move an offer from ``expected_status`` to ``new_status``.

        ``patch`` holds the other fields to write in the same update. Returns
        the updated offer, or None if the stored status was no longer
        ``expected_status`` (another writer got there first).
        """
        ...

    @abstractmethod
    def list_expirable_offers(self, now: datetime) -> list[Offer]:
        """Return pending offers whose ``valid_until`` is at or before ``now``."""
        ...
