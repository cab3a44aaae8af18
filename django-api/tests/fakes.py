"""In-memory store and builders for service tests."""

import copy
import threading
from contextlib import contextmanager
from dataclasses import replace
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Iterator

from bookings.domain import (
    Booking,
    BookingId,
    BookingPayment,
    BookingStatus,
    Money,
    Offer,
    OfferId,
    OfferInitiator,
    OfferStatus,
    PaymentId,
    PaymentStatus,
)
from bookings.domain.errors import BookingNotFoundError, StoreError
from bookings.stores.interfaces import BookingStore, OfferStore


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class InMemoryStore(BookingStore, OfferStore):
    """Implements both store contracts over dicts.

    ``atomic()`` holds a re-entrant lock for the whole block and restores a
    snapshot if the block raises. Method names added to ``fail_on`` raise
    ``StoreError``.
    """

    def __init__(self, clock: Callable[[], datetime]) -> None:
        self._clock = clock
        self._lock = threading.RLock()
        self._depth = 0
        self.offers: dict[OfferId, Offer] = {}
        self.bookings: dict[BookingId, Booking] = {}
        self.fail_on: set[str] = set()

    def _maybe_fail(self, operation: str) -> None:
        if operation in self.fail_on:
            raise StoreError()

    @contextmanager
    def atomic(self) -> Iterator[None]:
        with self._lock:
            snapshot = None
            if self._depth == 0:
                snapshot = (copy.copy(self.offers), copy.copy(self.bookings))
            self._depth += 1
            try:
                yield
            except BaseException:
                if snapshot is not None:
                    self.offers, self.bookings = snapshot
                raise
            finally:
                self._depth -= 1

    # BookingStore

    def create_booking(self, booking: Booking) -> Booking:
        with self._lock:
            self._maybe_fail("create_booking")
            if booking.origin_offer_id is not None and any(
                existing.origin_offer_id == booking.origin_offer_id
                for existing in self.bookings.values()
            ):
                raise StoreError("Offer already has a booking")
            self.bookings[booking.id] = booking
            return booking

    def get_booking(self, booking_id: BookingId, *, for_update: bool = False) -> Booking | None:
        with self._lock:
            self._maybe_fail("get_booking")
            return self.bookings.get(booking_id)

    def _require(self, booking_id: BookingId) -> Booking:
        booking = self.bookings.get(booking_id)
        if booking is None:
            raise BookingNotFoundError()
        return booking

    def update_booking_status(
        self,
        booking_id: BookingId,
        new_status: BookingStatus,
        actor_id: str,
        *,
        refund_amount: Money | None = None,
    ) -> Booking:
        with self._lock:
            self._maybe_fail("update_booking_status")
            updated = self._require(booking_id).transition_to(
                new_status, self._clock(), actor_id=actor_id, refund_amount=refund_amount
            )
            self.bookings[booking_id] = updated
            return updated

    def add_payment(self, booking_id: BookingId, payment: BookingPayment) -> Booking:
        with self._lock:
            self._maybe_fail("add_payment")
            updated = self._require(booking_id).record_payment(payment, self._clock())
            self.bookings[booking_id] = updated
            return updated

    def cancel_booking(
        self,
        booking_id: BookingId,
        cancelled_by: str,
        reason: str | None = None,
        *,
        refund_amount: Money | None = None,
        cancelled_at: datetime | None = None,
    ) -> Booking:
        with self._lock:
            self._maybe_fail("cancel_booking")
            updated = self._require(booking_id).cancel(
                cancelled_by, cancelled_at or self._clock(), reason, refund_amount
            )
            self.bookings[booking_id] = updated
            return updated

    def check_availability(
        self,
        supplier_id: str,
        event_date: date,
        exclude_booking_id: BookingId | None = None,
    ) -> bool:
        with self._lock:
            self._maybe_fail("check_availability")
            return not any(
                booking.supplier_id == supplier_id
                and booking.event_date == event_date
                and booking.status not in (BookingStatus.CANCELLED, BookingStatus.REFUNDED)
                and booking.id != exclude_booking_id
                for booking in self.bookings.values()
            )

    def list_client_bookings(
        self, client_id: str, status: BookingStatus | None = None
    ) -> list[Booking]:
        with self._lock:
            self._maybe_fail("list_client_bookings")
            return [
                booking
                for booking in self.bookings.values()
                if booking.client_id == client_id and (status is None or booking.status is status)
            ]

    def list_supplier_bookings(
        self, supplier_id: str, status: BookingStatus | None = None
    ) -> list[Booking]:
        with self._lock:
            self._maybe_fail("list_supplier_bookings")
            return [
                booking
                for booking in self.bookings.values()
                if booking.supplier_id == supplier_id and (status is None or booking.status is status)
            ]

    # OfferStore

    def create_offer(self, offer: Offer) -> Offer:
        with self._lock:
            self._maybe_fail("create_offer")
            self.offers[offer.id] = offer
            return offer

    def get_offer(self, offer_id: OfferId, *, for_update: bool = False) -> Offer | None:
        with self._lock:
            self._maybe_fail("get_offer")
            return self.offers.get(offer_id)

    def conditionally_transition_offer(
        self,
        offer_id: OfferId,
        expected_status: OfferStatus,
        new_status: OfferStatus,
        patch: dict[str, Any],
    ) -> Offer | None:
        with self._lock:
            self._maybe_fail("conditionally_transition_offer")
            stored = self.offers.get(offer_id)
            if stored is None or stored.status is not expected_status:
                return None
            updated = replace(stored, status=new_status, **patch)
            self.offers[offer_id] = updated
            return updated

    def list_expirable_offers(self, now: datetime) -> list[Offer]:
        with self._lock:
            self._maybe_fail("list_expirable_offers")
            return [
                offer
                for offer in self.offers.values()
                if offer.status is OfferStatus.PENDING and offer.is_expired(now)
            ]


class StaleReadStore(InMemoryStore):
    """Serves offers from ``stale_offers`` when present.

    Lets a test read an offer as pending after another writer has already
    moved it on, so the conditional update is what decides the outcome.
    """

    def __init__(self, clock: Callable[[], datetime]) -> None:
        super().__init__(clock)
        self.stale_offers: dict[OfferId, Offer] = {}

    def get_offer(self, offer_id: OfferId, *, for_update: bool = False) -> Offer | None:
        if offer_id in self.stale_offers:
            return self.stale_offers[offer_id]
        return super().get_offer(offer_id, for_update=for_update)


# 13:00 in Luanda, so the local date is the same as the UTC date.
NOW = datetime(2026, 1, 10, 12, 0, tzinfo=timezone.utc)
TODAY = date(2026, 1, 10)

SUPPLIER = "supplier-1"
CLIENT = "client-1"


def build_offer(now: datetime, **overrides) -> Offer:
    fields = {
        "id": OfferId.generate(),
        "seller_id": SUPPLIER,
        "buyer_id": CLIENT,
        "seller_name": "Kianda Eventos",
        "buyer_name": "Ana",
        "custom_price": Money(amount=25_000_000),
        "description": "Decoration for 120 guests",
        "initiated_by": OfferInitiator.SELLER,
        "created_at": now,
        "updated_at": now,
        "valid_until": now + timedelta(days=7),
    }
    fields.update(overrides)
    return Offer(**fields)


def build_booking(now: datetime, event_date: date, total: int = 25_000_000, **overrides) -> Booking:
    fields = {
        "id": BookingId.generate(),
        "client_id": CLIENT,
        "supplier_id": SUPPLIER,
        "event_name": "Wedding",
        "event_date": event_date,
        "payment_status": PaymentStatus.unpaid(Money(amount=total)),
        "created_at": now,
        "updated_at": now,
    }
    fields.update(overrides)
    return Booking(**fields)


def pay(booking: Booking, amount: int, now: datetime, method: str = "bank_transfer") -> Booking:
    payment = BookingPayment(
        id=PaymentId.generate(), amount=Money(amount=amount, currency=booking.currency), method=method, paid_at=now
    )
    return booking.record_payment(payment, now)
