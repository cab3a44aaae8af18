"""Django ORM implementation of the BookingStore and OfferStore.

Rows are converted to domain models on the way out; status changes are applied
through the domain entities so the same rules hold whichever store is used.
Database failures surface as ``StoreError``.
"""

import functools
import logging
from contextlib import AbstractContextManager
from datetime import date, datetime
from typing import Any, Callable, ParamSpec, TypeVar

from django.db import DatabaseError, transaction
from django.utils import timezone

from bookings import models as orm
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

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")

# Bookings in these statuses no longer hold the supplier's date.
RELEASED_STATUSES = (BookingStatus.CANCELLED.value, BookingStatus.REFUNDED.value)


def _database_errors_as_store_errors(func: Callable[P, T]) -> Callable[P, T]:
    @functools.wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
        try:
            return func(*args, **kwargs)
        except DatabaseError as exc:
            logger.exception("Database error in %s", func.__qualname__)
            raise StoreError() from exc

    return wrapper


def _offer_to_domain(row: orm.Offer) -> Offer:
    return Offer(
        id=OfferId(value=row.id),
        seller_id=row.seller_id,
        buyer_id=row.buyer_id,
        seller_name=row.seller_name,
        buyer_name=row.buyer_name,
        custom_price=Money(amount=row.price_amount, currency=row.currency),
        description=row.description,
        initiated_by=OfferInitiator(row.initiated_by),
        created_at=row.created_at,
        updated_at=row.updated_at,
        status=OfferStatus(row.status),
        base_package_id=row.base_package_id,
        base_package_name=row.base_package_name,
        delivery_time=row.delivery_time,
        valid_until=row.valid_until,
        event_date=row.event_date,
        event_name=row.event_name,
        booking_id=BookingId(value=row.booking_id) if row.booking_id else None,
        rejection_reason=row.rejection_reason,
        accepted_at=row.accepted_at,
        rejected_at=row.rejected_at,
    )


def _payment_to_domain(row: orm.BookingPayment) -> BookingPayment:
    return BookingPayment(
        id=PaymentId(value=row.id),
        amount=Money(amount=row.amount, currency=row.currency),
        method=row.method,
        paid_at=row.paid_at,
        reference=row.reference,
        notes=row.notes,
    )


def _booking_to_domain(row: orm.Booking) -> Booking:
    currency = row.currency
    return Booking(
        id=BookingId(value=row.id),
        client_id=row.client_id,
        supplier_id=row.supplier_id,
        event_name=row.event_name,
        event_date=row.event_date,
        payment_status=PaymentStatus(
            total=Money(amount=row.total_amount, currency=currency),
            paid=Money(amount=row.paid_amount, currency=currency),
        ),
        created_at=row.created_at,
        updated_at=row.updated_at,
        status=BookingStatus(row.status),
        payments=tuple(_payment_to_domain(payment) for payment in row.payments.all()),
        package_id=row.package_id,
        package_name=row.package_name,
        event_time=row.event_time,
        event_location=row.event_location,
        notes=row.notes,
        origin_offer_id=OfferId(value=row.origin_offer_id) if row.origin_offer_id else None,
        refund_amount=(
            Money(amount=row.refund_amount, currency=currency)
            if row.refund_amount is not None
            else None
        ),
        confirmed_at=row.confirmed_at,
        completed_at=row.completed_at,
        cancelled_at=row.cancelled_at,
        cancelled_by=row.cancelled_by,
        cancellation_reason=row.cancellation_reason,
        refunded_at=row.refunded_at,
    )


def _booking_fields(booking: Booking) -> dict[str, Any]:
    """Mutable booking columns, as written after a state change."""
    return {
        "status": booking.status.value,
        "paid_amount": booking.paid_amount.amount,
        "refund_amount": booking.refund_amount.amount if booking.refund_amount else None,
        "confirmed_at": booking.confirmed_at,
        "completed_at": booking.completed_at,
        "cancelled_at": booking.cancelled_at,
        "cancelled_by": booking.cancelled_by,
        "cancellation_reason": booking.cancellation_reason,
        "refunded_at": booking.refunded_at,
        "updated_at": booking.updated_at,
    }


class DjangoBookingStore(BookingStore):
    """Relational booking store using Django ORM."""

    def __init__(self, clock: Callable[[], datetime] = timezone.now) -> None:
        self._clock = clock

    def atomic(self) -> AbstractContextManager[None]:
        return transaction.atomic()

    def _fetch(self, booking_id: BookingId, for_update: bool = False) -> Booking | None:
        queryset = orm.Booking.objects.prefetch_related("payments")
        if for_update:
            queryset = queryset.select_for_update()
        row = queryset.filter(id=booking_id.value).first()
        return _booking_to_domain(row) if row else None

    def _require(self, booking_id: BookingId) -> Booking:
        booking = self._fetch(booking_id, for_update=True)
        if booking is None:
            raise BookingNotFoundError()
        return booking

    def _save_state(self, booking: Booking) -> Booking:
        orm.Booking.objects.filter(id=booking.id.value).update(**_booking_fields(booking))
        return self._fetch(booking.id)

    @_database_errors_as_store_errors
    def create_booking(self, booking: Booking) -> Booking:
        with transaction.atomic():
            row = orm.Booking.objects.create(
                id=booking.id.value,
                client_id=booking.client_id,
                supplier_id=booking.supplier_id,
                event_name=booking.event_name,
                event_date=booking.event_date,
                event_time=booking.event_time,
                event_location=booking.event_location,
                package_id=booking.package_id,
                package_name=booking.package_name,
                notes=booking.notes,
                status=booking.status.value,
                total_amount=booking.total_amount.amount,
                paid_amount=booking.paid_amount.amount,
                currency=booking.currency,
                origin_offer_id=booking.origin_offer_id.value if booking.origin_offer_id else None,
                refund_amount=booking.refund_amount.amount if booking.refund_amount else None,
                confirmed_at=booking.confirmed_at,
                completed_at=booking.completed_at,
                cancelled_at=booking.cancelled_at,
                cancelled_by=booking.cancelled_by,
                cancellation_reason=booking.cancellation_reason,
                refunded_at=booking.refunded_at,
                created_at=booking.created_at,
                updated_at=booking.updated_at,
            )
            for sequence, payment in enumerate(booking.payments, start=1):
                self._insert_payment(row.id, sequence, payment)
        return self._fetch(booking.id)

    @_database_errors_as_store_errors
    def get_booking(self, booking_id: BookingId, *, for_update: bool = False) -> Booking | None:
        return self._fetch(booking_id, for_update=for_update)

    @_database_errors_as_store_errors
    def update_booking_status(
        self,
        booking_id: BookingId,
        new_status: BookingStatus,
        actor_id: str,
        *,
        refund_amount: Money | None = None,
    ) -> Booking:
        with transaction.atomic():
            booking = self._require(booking_id)
            updated = booking.transition_to(
                new_status, self._clock(), actor_id=actor_id, refund_amount=refund_amount
            )
            return self._save_state(updated)

    def _insert_payment(self, booking_pk: Any, sequence: int, payment: BookingPayment) -> None:
        orm.BookingPayment.objects.create(
            id=payment.id.value,
            booking_id=booking_pk,
            sequence=sequence,
            amount=payment.amount.amount,
            currency=payment.amount.currency,
            method=payment.method,
            reference=payment.reference,
            notes=payment.notes,
            paid_at=payment.paid_at,
        )

    @_database_errors_as_store_errors
    def add_payment(self, booking_id: BookingId, payment: BookingPayment) -> Booking:
        with transaction.atomic():
            booking = self._require(booking_id)
            updated = booking.record_payment(payment, self._clock())
            self._insert_payment(booking_id.value, len(updated.payments), payment)
            return self._save_state(updated)

    @_database_errors_as_store_errors
    def cancel_booking(
        self,
        booking_id: BookingId,
        cancelled_by: str,
        reason: str | None = None,
        *,
        refund_amount: Money | None = None,
        cancelled_at: datetime | None = None,
    ) -> Booking:
        with transaction.atomic():
            booking = self._require(booking_id)
            cancelled = booking.cancel(
                cancelled_by, cancelled_at or self._clock(), reason, refund_amount
            )
            return self._save_state(cancelled)

    @_database_errors_as_store_errors
    def check_availability(
        self,
        supplier_id: str,
        event_date: date,
        exclude_booking_id: BookingId | None = None,
    ) -> bool:
        queryset = orm.Booking.objects.filter(supplier_id=supplier_id, event_date=event_date).exclude(
            status__in=RELEASED_STATUSES
        )
        if exclude_booking_id is not None:
            queryset = queryset.exclude(id=exclude_booking_id.value)
        return not queryset.exists()

    def _list(self, status: BookingStatus | None, **filters: Any) -> list[Booking]:
        queryset = orm.Booking.objects.prefetch_related("payments").filter(**filters)
        if status is not None:
            queryset = queryset.filter(status=status.value)
        return [_booking_to_domain(row) for row in queryset.order_by("event_date", "created_at")]

    @_database_errors_as_store_errors
    def list_client_bookings(
        self, client_id: str, status: BookingStatus | None = None
    ) -> list[Booking]:
        return self._list(status, client_id=client_id)

    @_database_errors_as_store_errors
    def list_supplier_bookings(
        self, supplier_id: str, status: BookingStatus | None = None
    ) -> list[Booking]:
        return self._list(status, supplier_id=supplier_id)


class DjangoOfferStore(OfferStore):
    """Relational offer store using Django ORM."""

    def atomic(self) -> AbstractContextManager[None]:
        return transaction.atomic()

    def _fetch(self, offer_id: OfferId, for_update: bool = False) -> Offer | None:
        queryset = orm.Offer.objects.all()
        if for_update:
            queryset = queryset.select_for_update()
        row = queryset.filter(id=offer_id.value).first()
        return _offer_to_domain(row) if row else None

    @_database_errors_as_store_errors
    def create_offer(self, offer: Offer) -> Offer:
        orm.Offer.objects.create(
            id=offer.id.value,
            seller_id=offer.seller_id,
            buyer_id=offer.buyer_id,
            seller_name=offer.seller_name,
            buyer_name=offer.buyer_name,
            price_amount=offer.custom_price.amount,
            currency=offer.custom_price.currency,
            description=offer.description,
            initiated_by=offer.initiated_by.value,
            status=offer.status.value,
            base_package_id=offer.base_package_id,
            base_package_name=offer.base_package_name,
            delivery_time=offer.delivery_time,
            valid_until=offer.valid_until,
            event_date=offer.event_date,
            event_name=offer.event_name,
            booking_id=offer.booking_id.value if offer.booking_id else None,
            rejection_reason=offer.rejection_reason,
            accepted_at=offer.accepted_at,
            rejected_at=offer.rejected_at,
            created_at=offer.created_at,
            updated_at=offer.updated_at,
        )
        return self._fetch(offer.id)

    @_database_errors_as_store_errors
    def get_offer(self, offer_id: OfferId, *, for_update: bool = False) -> Offer | None:
        return self._fetch(offer_id, for_update=for_update)

    @_database_errors_as_store_errors
    def conditionally_transition_offer(
        self,
        offer_id: OfferId,
        expected_status: OfferStatus,
        new_status: OfferStatus,
        patch: dict[str, Any],
    ) -> Offer | None:
        fields = dict(patch)
        if isinstance(fields.get("booking_id"), BookingId):
            fields["booking_id"] = fields["booking_id"].value
        changed = orm.Offer.objects.filter(id=offer_id.value, status=expected_status.value).update(
            status=new_status.value, **fields
        )
        if changed == 0:
            logger.info(
                "Offer %s was not %s; %s transition skipped",
                offer_id,
                expected_status.value,
                new_status.value,
            )
            return None
        return self._fetch(offer_id)

    @_database_errors_as_store_errors
    def list_expirable_offers(self, now: datetime) -> list[Offer]:
        rows = orm.Offer.objects.filter(
            status=OfferStatus.PENDING.value,
            valid_until__isnull=False,
            valid_until__lte=now,
        ).order_by("valid_until")
        return [_offer_to_domain(row) for row in rows]
