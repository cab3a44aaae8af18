"""End-to-end walk through an offer, its booking and a late cancellation."""

from datetime import timedelta
from decimal import Decimal

from bookings.domain import BookingStatus, Money, OfferStatus
from bookings.services.offer_service import OfferRequest
from tests.fakes import CLIENT, NOW, SUPPLIER, TODAY


def test_offer_to_refunded_booking(offer_service, booking_service, settlement, store, clock):
    """A 250,000 AOA offer is accepted for an event 60 days out, 30% is paid,
    the booking is confirmed and then cancelled on day 50 for half the deposit back."""
    offer = offer_service.create_offer(
        OfferRequest(
            seller_id=SUPPLIER,
            buyer_id=CLIENT,
            seller_name="Kianda Eventos",
            custom_price=Money(amount=25_000_000),
            description="Decoration and lighting for 120 guests",
        )
    ).unwrap()
    assert offer.valid_until == NOW + timedelta(days=7)

    booking = offer_service.accept_offer(
        offer.id, CLIENT, "Casamento X", TODAY + timedelta(days=60), "Luanda"
    ).unwrap()
    assert store.offers[offer.id].status is OfferStatus.ACCEPTED
    assert booking.status is BookingStatus.PENDING
    assert booking.total_amount == Money(amount=25_000_000)
    assert booking.paid_amount == Money(amount=0)
    assert booking.total_amount.format_compact() == "250K AOA"

    paid = booking_service.record_payment(booking.id, Money(amount=7_500_000), "multicaixa").unwrap()
    assert paid.payment_status.completion_percentage == Decimal(30)
    assert settlement.should_auto_confirm(paid)

    confirmed = booking_service.confirm_booking(booking.id, SUPPLIER).unwrap()
    assert confirmed.status is BookingStatus.CONFIRMED

    clock.advance(days=50)
    cancelled = booking_service.cancel_booking(booking.id, CLIENT, "Family emergency").unwrap()
    assert cancelled.status is BookingStatus.CANCELLED
    assert cancelled.cancelled_at == NOW + timedelta(days=50)
    assert cancelled.refund_amount == Money(amount=3_750_000)

    summary = booking_service.settlement_summary(booking.id).unwrap()
    assert summary.refund_amount == Money(amount=3_750_000)
    assert summary.cancellation_penalty == Money(amount=3_750_000)
    assert summary.schedule == ()

    refunded = booking_service.refund_booking(booking.id, SUPPLIER).unwrap()
    assert refunded.status is BookingStatus.REFUNDED
    assert refunded.refund_amount == Money(amount=3_750_000)
    assert store.check_availability(SUPPLIER, booking.event_date)
