from django.urls import path

from bookings.handlers import (
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

urlpatterns = [
    path("offers", OfferCreateView.as_view(), name="offer-create"),
    path("offers/<str:offer_id>", OfferDetailView.as_view(), name="offer-detail"),
    path("offers/<str:offer_id>/accept", OfferAcceptView.as_view(), name="offer-accept"),
    path("offers/<str:offer_id>/reject", OfferRejectView.as_view(), name="offer-reject"),
    path("offers/<str:offer_id>/cancel", OfferCancelView.as_view(), name="offer-cancel"),
    path("bookings", BookingListView.as_view(), name="booking-list"),
    path("bookings/<str:booking_id>", BookingDetailView.as_view(), name="booking-detail"),
    path(
        "bookings/<str:booking_id>/payments",
        BookingPaymentView.as_view(),
        name="booking-payments",
    ),
    path("bookings/<str:booking_id>/status", BookingStatusView.as_view(), name="booking-status"),
    path("bookings/<str:booking_id>/cancel", BookingCancelView.as_view(), name="booking-cancel"),
    path(
        "bookings/<str:booking_id>/settlement",
        BookingSettlementView.as_view(),
        name="booking-settlement",
    ),
]
