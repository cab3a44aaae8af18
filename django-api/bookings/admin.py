from django.contrib import admin

from bookings.models import Booking, BookingPayment, Offer


class BookingPaymentInline(admin.TabularInline):
    model = BookingPayment
    extra = 0
    can_delete = False
    readonly_fields = ["sequence", "amount", "currency", "method", "reference", "paid_at"]


@admin.register(Offer)
class OfferAdmin(admin.ModelAdmin):
    list_display = ["seller_name", "buyer_id", "price_amount", "currency", "status", "valid_until"]
    list_filter = ["status", "initiated_by"]
    search_fields = ["seller_id", "buyer_id", "seller_name", "buyer_name"]


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = [
        "event_name",
        "event_date",
        "supplier_id",
        "client_id",
        "status",
        "total_amount",
        "paid_amount",
    ]
    list_filter = ["status", "event_date"]
    search_fields = ["event_name", "supplier_id", "client_id"]
    inlines = [BookingPaymentInline]
