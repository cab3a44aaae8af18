"""Service wiring for the HTTP handlers and management commands.

One SettlementService is built from settings and shared by the other services.
"""

from functools import lru_cache

from bookings.conf import SettlementPolicy
from bookings.services.booking_service import BookingService
from bookings.services.offer_service import OfferService
from bookings.services.settlement_service import SettlementService
from bookings.stores.django_store import DjangoBookingStore, DjangoOfferStore


@lru_cache(maxsize=1)
def get_settlement_service() -> SettlementService:
    return SettlementService(policy=SettlementPolicy.from_settings())


def get_offer_service() -> OfferService:
    return OfferService(
        offers=DjangoOfferStore(),
        bookings=DjangoBookingStore(),
        settlement=get_settlement_service(),
    )


def get_booking_service() -> BookingService:
    return BookingService(store=DjangoBookingStore(), settlement=get_settlement_service())
