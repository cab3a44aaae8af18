from bookings.handlers.views import (
    BookingCancelView,
    BookingListView,
    BookingDetailView,
    BookingPaymentView,
    BookingSettlementView,
    BookingStatusView,
    OfferAcceptView,
    OfferCancelView,
    OfferCreateView,
    OfferDetailView,
    OfferRejectView,
)

__all__ = [
    "BookingCancelView",
    "BookingListView",
    "BookingDetailView",
    "BookingPaymentView",
    "BookingSettlementView",
    "BookingStatusView",
    "OfferAcceptView",
    "OfferCancelView",
    "OfferCreateView",
    "OfferDetailView",
    "OfferRejectView",
]
