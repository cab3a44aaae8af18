"""Domain signals and the audit-trail receivers connected to them.

Services send these after the surrounding store transaction has finished, so
receivers only ever see committed state.
"""

import logging

from django.dispatch import Signal, receiver

audit_logger = logging.getLogger("bookings.audit")

# offer, previous_status, actor_id
offer_status_changed = Signal()
# booking, offer (None for direct bookings)
booking_created = Signal()
# booking, previous_status, actor_id
booking_status_changed = Signal()
# booking, payment
payment_recorded = Signal()


@receiver(offer_status_changed)
def audit_offer_status_change(sender, offer, previous_status, actor_id, **kwargs):
    """Record every offer status change."""
    audit_logger.info(
        "offer %s: %s -> %s by %s",
        offer.id,
        previous_status.value if previous_status else None,
        offer.status.value,
        actor_id or "system",
        extra={
            "event": "offer_status_changed",
            "offer_id": str(offer.id),
            "seller_id": offer.seller_id,
            "buyer_id": offer.buyer_id,
            "status": offer.status.value,
            "booking_id": str(offer.booking_id) if offer.booking_id else None,
        },
    )


@receiver(booking_created)
def audit_booking_created(sender, booking, offer=None, **kwargs):
    """Record new bookings and the offer they came from."""
    audit_logger.info(
        "booking %s created for %s (%s)",
        booking.id,
        booking.event_date.isoformat(),
        booking.total_amount.format(),
        extra={
            "event": "booking_created",
            "booking_id": str(booking.id),
            "client_id": booking.client_id,
            "supplier_id": booking.supplier_id,
            "origin_offer_id": str(offer.id) if offer else None,
        },
    )


@receiver(booking_status_changed)
def audit_booking_status_change(sender, booking, previous_status, actor_id, **kwargs):
    """Record every booking status change."""
    audit_logger.info(
        "booking %s: %s -> %s by %s",
        booking.id,
        previous_status.value,
        booking.status.value,
        actor_id,
        extra={
            "event": "booking_status_changed",
            "booking_id": str(booking.id),
            "status": booking.status.value,
            "refund_amount": booking.refund_amount.amount if booking.refund_amount else None,
        },
    )


@receiver(payment_recorded)
def audit_payment_recorded(sender, booking, payment, **kwargs):
    """Record payments received."""
    audit_logger.info(
        "booking %s: payment %s of %s via %s (%s%% paid)",
        booking.id,
        payment.id,
        payment.amount.format(),
        payment.method,
        booking.payment_status.completion_percentage,
        extra={
            "event": "payment_recorded",
            "booking_id": str(booking.id),
            "payment_id": str(payment.id),
            "amount": payment.amount.amount,
        },
    )
