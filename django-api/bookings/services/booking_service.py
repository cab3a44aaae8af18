"""Booking service - lifecycle, payments, cancellation and refunds.

Bookings normally come from ``OfferService.accept_offer``; ``create_booking``
covers direct bookings of a catalogue package. Every public operation returns
``Ok``/``Err``.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Callable

from django.utils import timezone

from bookings import signals
from bookings.domain import (
    Booking,
    BookingDate,
    BookingId,
    BookingPayment,
    BookingStatus,
    Money,
    PaymentId,
    PaymentStatus,
)
from bookings.domain.errors import (
    BookingNotFoundError,
    InvalidIdError,
    InvalidStatusTransitionError,
    UnauthorizedError,
    ValidationError,
)
from bookings.domain.result import returns_result
from bookings.domain.transitions import is_valid_status_transition
from bookings.services.settlement_service import SettlementService, SettlementSummary
from bookings.stores.interfaces import BookingStore

logger = logging.getLogger(__name__)

_STATUS_ACTIONS = {
    BookingStatus.CONFIRMED: "confirm",
    BookingStatus.IN_PROGRESS: "start",
    BookingStatus.COMPLETED: "complete",
    BookingStatus.REFUNDED: "refund",
}


@dataclass(frozen=True)
class BookingRequest:
    """A direct booking of a supplier's package, without a negotiated offer."""

    client_id: str
    supplier_id: str
    event_name: str
    event_date: date
    total_amount: Money
    package_id: str | None = None
    package_name: str | None = None
    event_time: str | None = None
    event_location: str | None = None
    notes: str | None = None


class BookingService:
    """Service for booking operations."""

    def __init__(
        self,
        store: BookingStore,
        settlement: SettlementService,
        clock: Callable[[], datetime] = timezone.now,
    ) -> None:
        self._store = store
        self._settlement = settlement
        self._clock = clock

    @staticmethod
    def _parse_id(booking_id: str | BookingId) -> BookingId:
        if isinstance(booking_id, BookingId):
            return booking_id
        try:
            return BookingId.from_string(booking_id)
        except (ValueError, TypeError, AttributeError):
            raise InvalidIdError("booking ID") from None

    def _load(self, booking_id: BookingId, for_update: bool = False) -> Booking:
        booking = self._store.get_booking(booking_id, for_update=for_update)
        if booking is None:
            raise BookingNotFoundError()
        return booking

    def _today(self) -> date:
        return timezone.localdate(self._clock())

    @returns_result
    def create_booking(self, request: BookingRequest) -> Booking:
        """Create a pending, unpaid booking.

        Raises:
            ValidationError: For a non-positive total, identical parties, a
                date too soon, or a supplier already booked on that date.
        """
        if not request.total_amount.is_positive:
            raise ValidationError("Booking total must be positive")
        if not request.client_id or not request.supplier_id:
            raise ValidationError("Booking requires both a client and a supplier")
        if request.client_id == request.supplier_id:
            raise ValidationError("Client and supplier must be different users")

        policy = self._settlement.policy
        booking_date = BookingDate(event_date=request.event_date, event_time=request.event_time)
        if not booking_date.is_valid_for_booking(policy.min_advance_days, self._today()):
            raise ValidationError(
                f"Event date must be at least {policy.min_advance_days} day(s) from today"
            )

        now = self._clock()
        booking = Booking(
            id=BookingId.generate(),
            client_id=request.client_id,
            supplier_id=request.supplier_id,
            event_name=request.event_name,
            event_date=request.event_date,
            payment_status=PaymentStatus.unpaid(request.total_amount),
            created_at=now,
            updated_at=now,
            package_id=request.package_id,
            package_name=request.package_name,
            event_time=request.event_time,
            event_location=request.event_location,
            notes=request.notes,
        )
        with self._store.atomic():
            if not self._store.check_availability(request.supplier_id, request.event_date):
                raise ValidationError("The supplier is not available on that date")
            created = self._store.create_booking(booking)

        logger.info("Booking %s created directly for %s", created.id, created.event_date)
        signals.booking_created.send(sender=self.__class__, booking=created, offer=None)
        return created

    @returns_result
    def get_booking(self, booking_id: str | BookingId) -> Booking:
        """Return a booking by ID.

        Raises:
            InvalidIdError: If the booking_id is not a valid UUID.
            BookingNotFoundError: If the booking does not exist.
        """
        return self._load(self._parse_id(booking_id))

    @returns_result
    def check_availability(self, supplier_id: str, event_date: date) -> bool:
        return self._store.check_availability(supplier_id, event_date)

    @returns_result
    def list_client_bookings(
        self, client_id: str, status: BookingStatus | None = None
    ) -> list[Booking]:
        """Return a client's bookings, most urgent first."""
        return self._settlement.sort_by_priority(self._store.list_client_bookings(client_id, status))

    @returns_result
    def list_supplier_bookings(
        self, supplier_id: str, status: BookingStatus | None = None
    ) -> list[Booking]:
        """Return a supplier's bookings, most urgent first."""
        return self._settlement.sort_by_priority(
            self._store.list_supplier_bookings(supplier_id, status)
        )

    @returns_result
    def record_payment(
        self,
        booking_id: str | BookingId,
        amount: Money,
        method: str,
        reference: str | None = None,
        notes: str | None = None,
    ) -> Booking:
        """Record a payment against the booking's remaining balance.

        Raises:
            InvalidPaymentError: If the booking no longer takes payments, or the
                amount is not positive, in another currency, or more than the
                remaining balance.
        """
        parsed = self._parse_id(booking_id)
        now = self._clock()
        payment = BookingPayment(
            id=PaymentId.generate(),
            amount=amount,
            method=method,
            paid_at=now,
            reference=reference,
            notes=notes,
        )
        with self._store.atomic():
            booking = self._load(parsed, for_update=True)
            booking.record_payment(payment, now)
            updated = self._store.add_payment(parsed, payment)

        logger.info(
            "Payment of %s recorded on booking %s (%s%% paid)",
            amount.format(),
            parsed,
            updated.payment_status.completion_percentage,
        )
        signals.payment_recorded.send(sender=self.__class__, booking=updated, payment=payment)
        return updated

    def _require_supplier(self, booking: Booking, actor_id: str, action: str) -> None:
        if actor_id != booking.supplier_id:
            raise UnauthorizedError(f"Only the supplier can {action} this booking")

    def _change_status(
        self,
        booking_id: str | BookingId,
        target: BookingStatus,
        actor_id: str,
        administrative: bool,
        refund_amount: Money | None = None,
    ) -> Booking:
        parsed = self._parse_id(booking_id)
        with self._store.atomic():
            booking = self._load(parsed, for_update=True)
            if not administrative:
                self._require_supplier(booking, actor_id, _STATUS_ACTIONS[target])
            if (
                target is BookingStatus.CONFIRMED
                and is_valid_status_transition(booking.status, target)
                and not self._settlement.meets_deposit_threshold(booking)
            ):
                raise InvalidStatusTransitionError(
                    booking.status.value,
                    target.value,
                    f"the {self._settlement.policy.deposit_percentage}% deposit has not been paid",
                )
            updated = self._store.update_booking_status(
                parsed, target, actor_id, refund_amount=refund_amount
            )

        logger.info("Booking %s moved %s -> %s", parsed, booking.status.value, updated.status.value)
        signals.booking_status_changed.send(
            sender=self.__class__, booking=updated, previous_status=booking.status, actor_id=actor_id
        )
        return updated

    @returns_result
    def confirm_booking(
        self, booking_id: str | BookingId, actor_id: str, administrative: bool = False
    ) -> Booking:
        """Confirm a pending booking once the deposit threshold is reached."""
        return self._change_status(booking_id, BookingStatus.CONFIRMED, actor_id, administrative)

    @returns_result
    def start_booking(
        self, booking_id: str | BookingId, actor_id: str, administrative: bool = False
    ) -> Booking:
        return self._change_status(booking_id, BookingStatus.IN_PROGRESS, actor_id, administrative)

    @returns_result
    def complete_booking(
        self, booking_id: str | BookingId, actor_id: str, administrative: bool = False
    ) -> Booking:
        """Complete a booking in progress. It must be fully paid."""
        return self._change_status(booking_id, BookingStatus.COMPLETED, actor_id, administrative)

    @returns_result
    def update_status(
        self,
        booking_id: str | BookingId,
        new_status: BookingStatus,
        actor_id: str,
        reason: str | None = None,
        administrative: bool = False,
    ) -> Booking:
        """Dispatch a requested status change to the operation that owns it."""
        if new_status is BookingStatus.CANCELLED:
            return self._cancel(booking_id, actor_id, reason, administrative)
        if new_status is BookingStatus.REFUNDED:
            return self._refund(booking_id, actor_id, administrative)
        if new_status is BookingStatus.PENDING:
            booking = self._load(self._parse_id(booking_id))
            raise InvalidStatusTransitionError(booking.status.value, new_status.value)
        return self._change_status(booking_id, new_status, actor_id, administrative)

    def _cancel(
        self,
        booking_id: str | BookingId,
        cancelled_by: str,
        reason: str | None,
        administrative: bool,
    ) -> Booking:
        parsed = self._parse_id(booking_id)
        now = self._clock()
        policy = self._settlement.policy
        with self._store.atomic():
            booking = self._load(parsed, for_update=True)
            if not administrative and not booking.is_participant(cancelled_by):
                raise UnauthorizedError("Only the client or the supplier can cancel this booking")
            if not is_valid_status_transition(booking.status, BookingStatus.CANCELLED):
                raise InvalidStatusTransitionError(booking.status.value, BookingStatus.CANCELLED.value)
            if not administrative and not booking.booking_date.is_within_cancellation_period(
                policy.min_cancellation_days, self._today()
            ):
                raise InvalidStatusTransitionError(
                    booking.status.value,
                    BookingStatus.CANCELLED.value,
                    f"cancellations need at least {policy.min_cancellation_days} days' notice",
                )
            cancelled = booking.cancel(cancelled_by, now, reason)
            refund = self._settlement.calculate_refund_amount(cancelled)
            updated = self._store.cancel_booking(
                parsed, cancelled_by, reason, refund_amount=refund, cancelled_at=now
            )

        logger.info(
            "Booking %s cancelled by %s, refund %s", parsed, cancelled_by, refund.format()
        )
        signals.booking_status_changed.send(
            sender=self.__class__,
            booking=updated,
            previous_status=booking.status,
            actor_id=cancelled_by,
        )
        return updated

    @returns_result
    def cancel_booking(
        self,
        booking_id: str | BookingId,
        cancelled_by: str,
        reason: str | None = None,
        administrative: bool = False,
    ) -> Booking:
        """Cancel a pending or confirmed booking and fix the refund owed.

        The refund is computed from the cancellation date and stored on the
        booking. ``administrative`` skips the participant check and the
        minimum notice period.

        Raises:
            UnauthorizedError: If ``cancelled_by`` is neither client nor supplier.
            InvalidStatusTransitionError: If the booking cannot be cancelled
                from its current status or it is too close to the event.
        """
        return self._cancel(booking_id, cancelled_by, reason, administrative)

    def _refund(self, booking_id: str | BookingId, actor_id: str, administrative: bool) -> Booking:
        parsed = self._parse_id(booking_id)
        booking = self._load(parsed)
        refund = booking.refund_amount
        if refund is None and booking.status is BookingStatus.CANCELLED:
            refund = self._settlement.calculate_refund_amount(booking)
        return self._change_status(parsed, BookingStatus.REFUNDED, actor_id, administrative, refund)

    @returns_result
    def refund_booking(
        self, booking_id: str | BookingId, actor_id: str, administrative: bool = False
    ) -> Booking:
        """Mark a cancelled booking as refunded with its stored refund amount."""
        return self._refund(booking_id, actor_id, administrative)

    @returns_result
    def settlement_summary(
        self,
        booking_id: str | BookingId,
        commission_rate: Decimal | None = None,
        tier: str | None = None,
    ) -> SettlementSummary:
        booking = self._load(self._parse_id(booking_id))
        if commission_rate is None and tier is not None:
            commission_rate = self._settlement.commission_rate_for_tier(tier)
        return self._settlement.summarize(booking, commission_rate)
