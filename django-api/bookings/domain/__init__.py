from bookings.domain.models import Booking, BookingPayment, Installment, Offer
from bookings.domain.result import Err, Ok, Result
from bookings.domain.transitions import BookingStatus, OfferInitiator, OfferStatus
from bookings.domain.value_objects import (
    BookingDate,
    BookingId,
    Money,
    OfferId,
    PaymentId,
    PaymentStatus,
)

__all__ = [
    "Booking",
    "BookingPayment",
    "Installment",
    "Offer",
    "BookingStatus",
    "OfferInitiator",
    "OfferStatus",
    "BookingId",
    "OfferId",
    "PaymentId",
    "Money",
    "PaymentStatus",
    "BookingDate",
    "Ok",
    "Err",
    "Result",
]
