"""Pytest configuration and shared fixtures."""

import pytest
from rest_framework.test import APIClient

from bookings.conf import SettlementPolicy
from bookings.services.booking_service import BookingService
from bookings.services.offer_service import OfferService
from bookings.services.settlement_service import SettlementService
from tests.fakes import NOW, FakeClock, InMemoryStore


@pytest.fixture
def api_client() -> APIClient:
    return APIClient()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(NOW)


@pytest.fixture
def store(clock) -> InMemoryStore:
    return InMemoryStore(clock)


@pytest.fixture
def settlement(clock) -> SettlementService:
    return SettlementService(policy=SettlementPolicy(), clock=clock)


@pytest.fixture
def offer_service(store, settlement, clock) -> OfferService:
    return OfferService(offers=store, bookings=store, settlement=settlement, clock=clock)


@pytest.fixture
def booking_service(store, settlement, clock) -> BookingService:
    return BookingService(store=store, settlement=settlement, clock=clock)
