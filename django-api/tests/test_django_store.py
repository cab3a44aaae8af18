"""Integration tests for the Django ORM stores.

Run with: pytest tests/test_django_store.py -v
"""

from datetime import timedelta

import pytest
from django.db import DatabaseError

from bookings import models as orm
from bookings.domain import BookingId, BookingPayment, BookingStatus, Money, OfferStatus, PaymentId
from bookings.domain.errors import BookingNotFoundError, ErrorCode, InvalidStatusTransitionError, StoreError
from bookings.services.offer_service import OfferService
from bookings.services.settlement_service import SettlementService
from bookings.stores.django_store import DjangoBookingStore, DjangoOfferStore
from tests.fakes import CLIENT, NOW, SUPPLIER, TODAY, build_booking, build_offer, pay

EVENT_DATE = TODAY + timedelta(days=30)


@pytest.fixture
def booking_store(clock) -> DjangoBookingStore:
    return DjangoBookingStore(clock=clock)


@pytest.fixture
def offer_store() -> DjangoOfferStore:
    return DjangoOfferStore()


@pytest.mark.django_db
class TestDjangoOfferStore:
    """Tests for DjangoOfferStore."""

    def test_round_trip(self, offer_store):
        """An offer reads back as written."""
        offer = build_offer(NOW, base_package_id="pkg-1", event_date=EVENT_DATE)
        assert offer_store.create_offer(offer) == offer
        assert offer_store.get_offer(offer.id) == offer

    def test_get_missing_offer(self, offer_store):
        """get_offer returns None for an unknown ID."""
        assert offer_store.get_offer(build_offer(NOW).id) is None

    def test_conditional_transition(self, offer_store):
        """Only the first writer moves the offer out of pending."""
        offer = offer_store.create_offer(build_offer(NOW))
        accepted = offer.accept(CLIENT, BookingId.generate(), NOW)

        updated = offer_store.conditionally_transition_offer(
            offer.id, OfferStatus.PENDING, OfferStatus.ACCEPTED, accepted.transition_patch()
        )
        assert updated.status is OfferStatus.ACCEPTED
        assert updated.booking_id == accepted.booking_id

        again = offer_store.conditionally_transition_offer(
            offer.id, OfferStatus.PENDING, OfferStatus.ACCEPTED, accepted.transition_patch()
        )
        assert again is None

    def test_list_expirable_offers(self, offer_store):
        """Only pending offers past their validity are listed."""
        stale = offer_store.create_offer(build_offer(NOW, valid_until=NOW - timedelta(hours=1)))
        offer_store.create_offer(build_offer(NOW, valid_until=NOW + timedelta(days=1)))
        assert [offer.id for offer in offer_store.list_expirable_offers(NOW)] == [stale.id]


@pytest.mark.django_db
class TestDjangoBookingStore:
    """Tests for DjangoBookingStore."""

    def test_round_trip_with_payments(self, booking_store):
        """A booking reads back with its payments."""
        booking = pay(pay(build_booking(NOW, EVENT_DATE, total=1000), 300, NOW), 200, NOW)
        assert booking_store.create_booking(booking) == booking
        loaded = booking_store.get_booking(booking.id)
        assert loaded == booking
        assert [payment.amount.amount for payment in loaded.payments] == [300, 200]

    def test_get_missing_booking(self, booking_store):
        """get_booking returns None for an unknown ID."""
        assert booking_store.get_booking(BookingId.generate()) is None

    def test_add_payment(self, booking_store):
        """add_payment stores the payment row and the paid total."""
        booking = booking_store.create_booking(build_booking(NOW, EVENT_DATE, total=1000))
        payment = BookingPayment(
            id=PaymentId.generate(), amount=Money(amount=400), method="cash", paid_at=NOW
        )
        updated = booking_store.add_payment(booking.id, payment)
        assert updated.paid_amount == Money(amount=400)
        assert updated.payments == (payment,)
        assert orm.BookingPayment.objects.get(id=payment.id.value).sequence == 1

    def test_update_status(self, booking_store):
        """update_booking_status writes the new status."""
        booking = booking_store.create_booking(build_booking(NOW, EVENT_DATE))
        confirmed = booking_store.update_booking_status(booking.id, BookingStatus.CONFIRMED, SUPPLIER)
        assert confirmed.status is BookingStatus.CONFIRMED
        assert confirmed.confirmed_at == NOW
        assert orm.Booking.objects.get(id=booking.id.value).status == "confirmed"

    def test_invalid_status_change_is_not_written(self, booking_store):
        """A refused transition leaves the row unchanged."""
        booking = booking_store.create_booking(build_booking(NOW, EVENT_DATE))
        with pytest.raises(InvalidStatusTransitionError):
            booking_store.update_booking_status(booking.id, BookingStatus.COMPLETED, SUPPLIER)
        assert booking_store.get_booking(booking.id).status is BookingStatus.PENDING

    def test_update_missing_booking(self, booking_store):
        """Updating an unknown booking raises BookingNotFoundError."""
        with pytest.raises(BookingNotFoundError):
            booking_store.update_booking_status(BookingId.generate(), BookingStatus.CONFIRMED, SUPPLIER)

    def test_cancel_stores_refund(self, booking_store):
        """cancel_booking stores the actor and refund."""
        booking = booking_store.create_booking(pay(build_booking(NOW, EVENT_DATE, total=1000), 300, NOW))
        cancelled = booking_store.cancel_booking(
            booking.id, CLIENT, "Venue closed", refund_amount=Money(amount=300)
        )
        assert cancelled.status is BookingStatus.CANCELLED
        assert cancelled.cancelled_by == CLIENT
        assert cancelled.refund_amount == Money(amount=300)

    def test_check_availability(self, booking_store):
        """Cancelled bookings free the supplier's date."""
        booking = booking_store.create_booking(build_booking(NOW, EVENT_DATE))
        assert not booking_store.check_availability(SUPPLIER, EVENT_DATE)
        assert booking_store.check_availability(SUPPLIER, EVENT_DATE, exclude_booking_id=booking.id)
        assert booking_store.check_availability("supplier-2", EVENT_DATE)

        booking_store.cancel_booking(booking.id, CLIENT)
        assert booking_store.check_availability(SUPPLIER, EVENT_DATE)

    def test_cancel_uses_given_time(self, booking_store):
        """An explicit cancellation time is stored instead of the store clock."""
        booking = booking_store.create_booking(build_booking(NOW, EVENT_DATE))
        at = NOW - timedelta(hours=13)
        cancelled = booking_store.cancel_booking(booking.id, CLIENT, cancelled_at=at)
        assert cancelled.cancelled_at == at
        assert orm.Booking.objects.get(id=booking.id.value).cancelled_at == at

    def test_list_bookings_by_party_and_status(self, booking_store):
        """Listings filter by client or supplier and optionally by status."""
        later = booking_store.create_booking(build_booking(NOW, EVENT_DATE + timedelta(days=5)))
        sooner = booking_store.create_booking(build_booking(NOW, EVENT_DATE))
        other = booking_store.create_booking(
            build_booking(NOW, EVENT_DATE, client_id="client-2", supplier_id="supplier-2")
        )
        booking_store.cancel_booking(later.id, CLIENT)

        assert [b.id for b in booking_store.list_client_bookings(CLIENT)] == [sooner.id, later.id]
        assert [b.id for b in booking_store.list_supplier_bookings("supplier-2")] == [other.id]
        cancelled = booking_store.list_supplier_bookings(SUPPLIER, BookingStatus.CANCELLED)
        assert [b.id for b in cancelled] == [later.id]
        assert booking_store.list_client_bookings("nobody") == []

    def test_one_booking_per_offer(self, booking_store):
        """origin_offer_id is unique at the database level."""
        offer = build_offer(NOW)
        booking_store.create_booking(build_booking(NOW, EVENT_DATE, origin_offer_id=offer.id))
        with pytest.raises(StoreError):
            booking_store.create_booking(
                build_booking(NOW, EVENT_DATE + timedelta(days=1), origin_offer_id=offer.id)
            )


@pytest.mark.django_db
class TestAcceptOfferWithDjangoStores:
    """Tests for the offer-to-booking conversion against the database."""

    @pytest.fixture
    def offer_service(self, clock, booking_store, offer_store):
        return OfferService(
            offers=offer_store,
            bookings=booking_store,
            settlement=SettlementService(clock=clock),
            clock=clock,
        )

    def test_accept_writes_offer_and_booking(self, offer_service, offer_store):
        """Accepting writes the booking and links the offer row."""
        offer = offer_store.create_offer(build_offer(NOW))
        booking = offer_service.accept_offer(offer.id, CLIENT, "Wedding", EVENT_DATE).unwrap()

        row = orm.Booking.objects.get(id=booking.id.value)
        assert row.origin_offer_id == offer.id.value
        assert row.total_amount == 25_000_000
        assert orm.Offer.objects.get(id=offer.id.value).booking_id == booking.id.value

    def test_database_failure_rolls_back(self, offer_service, offer_store, monkeypatch):
        """A database error during conversion leaves no partial writes."""
        offer = offer_store.create_offer(build_offer(NOW))

        def unavailable(**kwargs):
            raise DatabaseError("connection lost")

        monkeypatch.setattr(orm.Booking.objects, "create", unavailable)
        result = offer_service.accept_offer(offer.id, CLIENT, "Wedding", EVENT_DATE)

        assert result.code is ErrorCode.CONVERSION_FAILED
        assert orm.Offer.objects.get(id=offer.id.value).status == "pending"
        assert not orm.Booking.objects.exists()

    def test_stale_read_loses_conditional_update(self, offer_service, offer_store, monkeypatch):
        """The filtered UPDATE rejects an accept that read the offer before it was cancelled."""
        offer = offer_store.create_offer(build_offer(NOW))
        orm.Offer.objects.filter(id=offer.id.value).update(status="cancelled")
        monkeypatch.setattr(offer_store, "get_offer", lambda offer_id, for_update=False: offer)

        result = offer_service.accept_offer(offer.id, CLIENT, "Wedding", EVENT_DATE)

        assert result.code is ErrorCode.INVALID_TRANSITION
        assert not orm.Booking.objects.exists()
        row = orm.Offer.objects.get(id=offer.id.value)
        assert row.status == "cancelled"
        assert row.booking_id is None
