"""Domain models representing persisted state.

These are pure, immutable domain objects. Every transition returns a new
instance. Django ORM models are in bookings/models.py (persistence layer).
"""

from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Any, Self

from bookings.domain.errors import (
    InvalidPaymentError,
    InvalidStatusTransitionError,
    InvalidTransitionError,
    OfferExpiredError,
    UnauthorizedError,
    ValidationError,
)
from bookings.domain.transitions import (
    PAYABLE_BOOKING_STATUSES,
    BookingStatus,
    OfferAction,
    OfferActor,
    OfferInitiator,
    OfferStatus,
    is_valid_status_transition,
    offer_transition,
)
from bookings.domain.value_objects import (
    BookingDate,
    BookingId,
    Money,
    OfferId,
    PaymentId,
    PaymentStatus,
)


@dataclass(frozen=True)
class Offer:
    """A negotiable price proposal between a supplier (seller) and a client (buyer).

    ``initiated_by`` decides who may answer: a seller offer is accepted or
    rejected by the buyer, a buyer proposal by the seller. Only the initiator
    may cancel.
    """

    id: OfferId
    seller_id: str
    buyer_id: str
    seller_name: str
    buyer_name: str | None
    custom_price: Money
    description: str
    initiated_by: OfferInitiator
    created_at: datetime
    updated_at: datetime
    status: OfferStatus = OfferStatus.PENDING
    base_package_id: str | None = None
    base_package_name: str | None = None
    delivery_time: str | None = None
    valid_until: datetime | None = None
    event_date: date | None = None
    event_name: str | None = None
    booking_id: BookingId | None = None
    rejection_reason: str | None = None
    accepted_at: datetime | None = None
    rejected_at: datetime | None = None

    def __post_init__(self) -> None:
        if not self.seller_id or not self.buyer_id:
            raise ValidationError("Offer requires both a seller and a buyer")
        if self.seller_id == self.buyer_id:
            raise ValidationError("Seller and buyer must be different users")
        if not self.custom_price.is_positive:
            raise ValidationError("Offer price must be positive")

    @property
    def initiator_id(self) -> str:
        return self.seller_id if self.initiated_by is OfferInitiator.SELLER else self.buyer_id

    @property
    def responder_id(self) -> str:
        return self.buyer_id if self.initiated_by is OfferInitiator.SELLER else self.seller_id

    @property
    def is_client_proposal(self) -> bool:
        return self.initiated_by is OfferInitiator.BUYER

    def is_expired(self, now: datetime) -> bool:
        """Expiry is derived from ``valid_until``, whatever the stored status says."""
        return self.valid_until is not None and now >= self.valid_until

    def _authorize(self, action: OfferAction, actor_id: str | None) -> OfferStatus:
        transition = offer_transition(self.status, action)
        if transition is None:
            raise InvalidTransitionError(action.value, self.status.value)
        role, target = transition
        if role is OfferActor.SYSTEM:
            return target
        expected = self.initiator_id if role is OfferActor.INITIATOR else self.responder_id
        if actor_id != expected:
            raise UnauthorizedError(self._unauthorized_message(action, role))
        return target

    def _unauthorized_message(self, action: OfferAction, role: OfferActor) -> str:
        seller_acts = (role is OfferActor.INITIATOR) != self.is_client_proposal
        party = "supplier" if seller_acts else "client"
        noun = "proposal" if self.is_client_proposal else "offer"
        return f"Only the {party} can {action.value} this {noun}"

    def accept(self, actor_id: str, booking_id: BookingId, now: datetime) -> Self:
        target = self._authorize(OfferAction.ACCEPT, actor_id)
        if self.is_expired(now):
            raise OfferExpiredError()
        return replace(self, status=target, booking_id=booking_id, accepted_at=now, updated_at=now)

    def reject(self, actor_id: str, now: datetime, reason: str | None = None) -> Self:
        target = self._authorize(OfferAction.REJECT, actor_id)
        return replace(self, status=target, rejection_reason=reason, rejected_at=now, updated_at=now)

    def cancel(self, actor_id: str, now: datetime) -> Self:
        target = self._authorize(OfferAction.CANCEL, actor_id)
        return replace(self, status=target, updated_at=now)

    def expire(self, now: datetime) -> Self:
        target = self._authorize(OfferAction.EXPIRE, None)
        if not self.is_expired(now):
            raise ValidationError("Offer is still within its validity period")
        return replace(self, status=target, updated_at=now)

    def transition_patch(self) -> dict[str, Any]:
        """Fields a status transition may change, for conditional store updates."""
        return {
            "booking_id": self.booking_id,
            "rejection_reason": self.rejection_reason,
            "accepted_at": self.accepted_at,
            "rejected_at": self.rejected_at,
            "updated_at": self.updated_at,
        }


@dataclass(frozen=True)
class BookingPayment:
    """A single payment received against a booking. Append-only."""

    id: PaymentId
    amount: Money
    method: str
    paid_at: datetime
    reference: str | None = None
    notes: str | None = None

    def __post_init__(self) -> None:
        if not self.method:
            raise ValidationError("Payment method is required")


@dataclass(frozen=True)
class Installment:
    """One step of a suggested payment schedule."""

    sequence: int
    due_by: date
    amount: Money


@dataclass(frozen=True)
class Booking:
    """A confirmed reservation and the source of truth for its payment state.

    ``payment_status.paid`` must always equal the sum of ``payments``; this is
    checked whenever a Booking is built, including when loaded from storage.
    """

    id: BookingId
    client_id: str
    supplier_id: str
    event_name: str
    event_date: date
    payment_status: PaymentStatus
    created_at: datetime
    updated_at: datetime
    status: BookingStatus = BookingStatus.PENDING
    payments: tuple[BookingPayment, ...] = ()
    package_id: str | None = None
    package_name: str | None = None
    event_time: str | None = None
    event_location: str | None = None
    notes: str | None = None
    origin_offer_id: OfferId | None = None
    refund_amount: Money | None = None
    confirmed_at: datetime | None = None
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None
    cancelled_by: str | None = None
    cancellation_reason: str | None = None
    refunded_at: datetime | None = None

    def __post_init__(self) -> None:
        if not self.event_name or not self.event_name.strip():
            raise ValidationError("Event name is required")
        if not isinstance(self.payments, tuple):
            object.__setattr__(self, "payments", tuple(self.payments))
        self._check_payment_ledger()

    def _check_payment_ledger(self) -> None:
        paid = Money.zero(self.currency)
        for payment in self.payments:
            paid = paid + payment.amount
        if paid != self.payment_status.paid:
            raise ValidationError("Recorded payments do not add up to the paid amount")
        if self.refund_amount is not None:
            if self.refund_amount.is_negative or self.refund_amount.gt(self.payment_status.paid):
                raise ValidationError("Refund must be between zero and the paid amount")

    @classmethod
    def from_offer(
        cls,
        offer: Offer,
        booking_id: BookingId,
        event_name: str,
        event_date: date,
        now: datetime,
        event_location: str | None = None,
        notes: str | None = None,
    ) -> Self:
        """Seed a pending, unpaid booking from an offer being accepted."""
        combined_notes = "\n\n".join(
            part.strip() for part in (offer.description, notes or "") if part and part.strip()
        )
        return cls(
            id=booking_id,
            client_id=offer.buyer_id,
            supplier_id=offer.seller_id,
            event_name=event_name,
            event_date=event_date,
            payment_status=PaymentStatus.unpaid(offer.custom_price),
            created_at=now,
            updated_at=now,
            package_id=offer.base_package_id,
            package_name=offer.base_package_name,
            event_location=event_location,
            notes=combined_notes or None,
            origin_offer_id=offer.id,
        )

    @property
    def currency(self) -> str:
        return self.payment_status.currency

    @property
    def total_amount(self) -> Money:
        return self.payment_status.total

    @property
    def paid_amount(self) -> Money:
        return self.payment_status.paid

    @property
    def remaining_amount(self) -> Money:
        return self.payment_status.remaining

    @property
    def booking_date(self) -> BookingDate:
        return BookingDate(event_date=self.event_date, event_time=self.event_time)

    def is_participant(self, user_id: str) -> bool:
        return user_id in (self.client_id, self.supplier_id)

    def record_payment(self, payment: BookingPayment, now: datetime) -> Self:
        """Append a payment and return the updated booking.

        Raises:
            InvalidPaymentError: If the booking no longer takes payments or the
                amount is not acceptable for the remaining balance.
        """
        if self.status not in PAYABLE_BOOKING_STATUSES:
            raise InvalidPaymentError(f"Cannot record a payment on a {self.status.value} booking")
        payment_status = self.payment_status.record_payment(payment.amount)
        return replace(
            self,
            payments=self.payments + (payment,),
            payment_status=payment_status,
            updated_at=now,
        )

    def transition_to(
        self,
        target: BookingStatus,
        now: datetime,
        *,
        actor_id: str | None = None,
        reason: str | None = None,
        refund_amount: Money | None = None,
    ) -> Self:
        """Move to ``target`` if the transition table and entity guards allow it.

        Raises:
            InvalidStatusTransitionError: Naming the current and attempted states.
        """
        if not is_valid_status_transition(self.status, target):
            raise InvalidStatusTransitionError(self.status.value, target.value)

        if target is BookingStatus.CONFIRMED:
            return replace(self, status=target, confirmed_at=now, updated_at=now)

        if target is BookingStatus.COMPLETED:
            if not self.payment_status.is_fully_paid:
                raise InvalidStatusTransitionError(
                    self.status.value, target.value, "booking is not fully paid"
                )
            return replace(self, status=target, completed_at=now, updated_at=now)

        if target is BookingStatus.CANCELLED:
            return replace(
                self,
                status=target,
                cancelled_at=now,
                cancelled_by=actor_id,
                cancellation_reason=reason,
                refund_amount=refund_amount,
                updated_at=now,
            )

        if target is BookingStatus.REFUNDED:
            refund = refund_amount if refund_amount is not None else self.refund_amount
            if refund is None:
                raise InvalidStatusTransitionError(
                    self.status.value, target.value, "no refund amount has been computed"
                )
            return replace(self, status=target, refund_amount=refund, refunded_at=now, updated_at=now)

        return replace(self, status=target, updated_at=now)

    def cancel(
        self,
        cancelled_by: str,
        now: datetime,
        reason: str | None = None,
        refund_amount: Money | None = None,
    ) -> Self:
        return self.transition_to(
            BookingStatus.CANCELLED,
            now,
            actor_id=cancelled_by,
            reason=reason,
            refund_amount=refund_amount,
        )
