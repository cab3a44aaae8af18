"""Offer service - negotiation lifecycle and offer-to-booking conversion.

Services:
- Depend only on interfaces (stores)
- Validate domain invariants
- Perform orchestration and error mapping
- Return ``Ok``/``Err`` results, never raise for business outcomes
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable

from django.utils import timezone

from bookings import signals
from bookings.domain import (
    Booking,
    BookingDate,
    BookingId,
    Money,
    Offer,
    OfferId,
    OfferInitiator,
    OfferStatus,
)
from bookings.domain.errors import (
    ConversionFailedError,
    InvalidIdError,
    InvalidTransitionError,
    OfferNotFoundError,
    StoreError,
    ValidationError,
)
from bookings.domain.result import returns_result
from bookings.services.settlement_service import SettlementService
from bookings.stores.interfaces import BookingStore, OfferStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OfferRequest:
    """An offer or price proposal as submitted from a conversation."""

    seller_id: str
    buyer_id: str
    seller_name: str
    custom_price: Money
    description: str
    initiated_by: OfferInitiator = OfferInitiator.SELLER
    buyer_name: str | None = None
    base_package_id: str | None = None
    base_package_name: str | None = None
    delivery_time: str | None = None
    valid_until: datetime | None = None
    event_date: date | None = None
    event_name: str | None = None


class OfferService:
    """Service for offer negotiation operations."""

    def __init__(
        self,
        offers: OfferStore,
        bookings: BookingStore,
        settlement: SettlementService,
        clock: Callable[[], datetime] = timezone.now,
    ) -> None:
        self._offers = offers
        self._bookings = bookings
        self._settlement = settlement
        self._clock = clock

    @staticmethod
    def _parse_id(offer_id: str | OfferId) -> OfferId:
        if isinstance(offer_id, OfferId):
            return offer_id
        try:
            return OfferId.from_string(offer_id)
        except (ValueError, TypeError, AttributeError):
            raise InvalidIdError("offer ID") from None

    def _load(self, offer_id: OfferId, for_update: bool = False) -> Offer:
        offer = self._offers.get_offer(offer_id, for_update=for_update)
        if offer is None:
            raise OfferNotFoundError()
        return offer

    @returns_result
    def create_offer(self, request: OfferRequest) -> Offer:
        """Open a new pending offer.

        ``valid_until`` defaults to the configured validity period.

        Raises:
            ValidationError: For a non-positive price, an empty description,
                identical parties or a validity that has already ended.
        """
        now = self._clock()
        policy = self._settlement.policy
        if not request.description or not request.description.strip():
            raise ValidationError("Offer description is required")
        valid_until = request.valid_until or now + timedelta(days=policy.offer_validity_days)
        if valid_until <= now:
            raise ValidationError("Offer validity must end in the future")

        offer = Offer(
            id=OfferId.generate(),
            seller_id=request.seller_id,
            buyer_id=request.buyer_id,
            seller_name=request.seller_name,
            buyer_name=request.buyer_name,
            custom_price=request.custom_price,
            description=request.description.strip(),
            initiated_by=request.initiated_by,
            created_at=now,
            updated_at=now,
            base_package_id=request.base_package_id,
            base_package_name=request.base_package_name,
            delivery_time=request.delivery_time,
            valid_until=valid_until,
            event_date=request.event_date,
            event_name=request.event_name,
        )
        created = self._offers.create_offer(offer)
        logger.info(
            "Offer %s created by %s for %s",
            created.id,
            created.initiated_by.value,
            created.custom_price.format(),
        )
        signals.offer_status_changed.send(
            sender=self.__class__, offer=created, previous_status=None, actor_id=created.initiator_id
        )
        return created

    @returns_result
    def get_offer(self, offer_id: str | OfferId) -> Offer:
        """Return an offer by ID.

        Raises:
            InvalidIdError: If the offer_id is not a valid UUID.
            OfferNotFoundError: If the offer does not exist.
        """
        return self._load(self._parse_id(offer_id))

    @returns_result
    def accept_offer(
        self,
        offer_id: str | OfferId,
        actor_id: str,
        event_name: str,
        event_date: date,
        event_location: str | None = None,
        notes: str | None = None,
    ) -> Booking:
        """Accept a pending offer and create its booking in one transaction.

        The offer is re-read under lock and moved to ``accepted`` with a
        conditional update, so concurrent accepts produce exactly one booking;
        the others get ``InvalidTransitionError``. If storage fails, nothing
        is written and the offer stays pending.

        Raises:
            InvalidTransitionError: If the offer is no longer pending.
            UnauthorizedError: If ``actor_id`` is not the party who must answer.
            OfferExpiredError: If the offer's validity has passed.
            ValidationError: If the event date is too soon or the supplier is
                already booked on it.
            ConversionFailedError: If storage failed; safe to retry.
        """
        parsed = self._parse_id(offer_id)
        now = self._clock()
        today = timezone.localdate(now)
        policy = self._settlement.policy
        if not BookingDate(event_date=event_date).is_valid_for_booking(policy.min_advance_days, today):
            raise ValidationError(
                f"Event date must be at least {policy.min_advance_days} day(s) from today"
            )

        try:
            with self._offers.atomic():
                offer = self._load(parsed, for_update=True)
                accepted = offer.accept(actor_id, BookingId.generate(), now)
                if not self._bookings.check_availability(offer.seller_id, event_date):
                    raise ValidationError("The supplier is not available on that date")
                booking = Booking.from_offer(
                    accepted,
                    booking_id=accepted.booking_id,
                    event_name=event_name,
                    event_date=event_date,
                    now=now,
                    event_location=event_location,
                    notes=notes,
                )
                transitioned = self._offers.conditionally_transition_offer(
                    parsed, OfferStatus.PENDING, OfferStatus.ACCEPTED, accepted.transition_patch()
                )
                if transitioned is None:
                    raise InvalidTransitionError("accept", "no longer pending")
                created = self._bookings.create_booking(booking)
        except StoreError as exc:
            logger.error("Offer %s could not be converted: %s", parsed, exc.message)
            raise ConversionFailedError() from exc

        logger.info("Offer %s accepted by %s, booking %s created", parsed, actor_id, created.id)
        signals.offer_status_changed.send(
            sender=self.__class__,
            offer=transitioned,
            previous_status=OfferStatus.PENDING,
            actor_id=actor_id,
        )
        signals.booking_created.send(sender=self.__class__, booking=created, offer=transitioned)
        return created

    def _transition(
        self,
        offer_id: str | OfferId,
        actor_id: str | None,
        action: str,
        apply: Callable[[Offer, datetime], Offer],
    ) -> Offer:
        parsed = self._parse_id(offer_id)
        now = self._clock()
        with self._offers.atomic():
            offer = self._load(parsed, for_update=True)
            changed = apply(offer, now)
            updated = self._offers.conditionally_transition_offer(
                parsed, OfferStatus.PENDING, changed.status, changed.transition_patch()
            )
            if updated is None:
                raise InvalidTransitionError(action, "no longer pending")

        logger.info("Offer %s %s by %s", parsed, updated.status.value, actor_id or "system")
        signals.offer_status_changed.send(
            sender=self.__class__,
            offer=updated,
            previous_status=OfferStatus.PENDING,
            actor_id=actor_id,
        )
        return updated

    @returns_result
    def reject_offer(self, offer_id: str | OfferId, actor_id: str, reason: str | None = None) -> Offer:
        """Reject a pending offer. Only the party answering the offer may reject it."""
        return self._transition(
            offer_id, actor_id, "reject", lambda offer, now: offer.reject(actor_id, now, reason)
        )

    @returns_result
    def cancel_offer(self, offer_id: str | OfferId, actor_id: str) -> Offer:
        """Withdraw a pending offer. Only its initiator may cancel it."""
        return self._transition(
            offer_id, actor_id, "cancel", lambda offer, now: offer.cancel(actor_id, now)
        )

    @returns_result
    def expire_offer(self, offer_id: str | OfferId) -> Offer:
        """Mark a pending offer whose validity has passed as expired."""
        return self._transition(offer_id, None, "expire", lambda offer, now: offer.expire(now))

    @returns_result
    def expire_stale_offers(self) -> list[Offer]:
        """Expire every pending offer past its validity. Returns those expired."""
        now = self._clock()
        expired = []
        for offer in self._offers.list_expirable_offers(now):
            updated = self._offers.conditionally_transition_offer(
                offer.id, OfferStatus.PENDING, OfferStatus.EXPIRED, offer.expire(now).transition_patch()
            )
            if updated is None:
                logger.debug("Offer %s changed before it could expire", offer.id)
                continue
            signals.offer_status_changed.send(
                sender=self.__class__,
                offer=updated,
                previous_status=OfferStatus.PENDING,
                actor_id=None,
            )
            expired.append(updated)
        logger.info("Expired %d stale offer(s)", len(expired))
        return expired
