"""Django ORM models (persistence layer).

These models handle database concerns. Domain logic lives in domain/models.py.
Amounts are stored as integer minor units next to their currency code, and
timestamps are written from the domain objects rather than auto-filled.
"""

import uuid

from django.db import models


class Offer(models.Model):
    """Persistence model for offers."""

    class Status(models.TextChoices):
        PENDING = "pending"
        ACCEPTED = "accepted"
        REJECTED = "rejected"
        CANCELLED = "cancelled"
        EXPIRED = "expired"

    class Initiator(models.TextChoices):
        SELLER = "seller"
        BUYER = "buyer"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    seller_id = models.CharField(max_length=128)
    buyer_id = models.CharField(max_length=128)
    seller_name = models.CharField(max_length=255)
    buyer_name = models.CharField(max_length=255, blank=True, null=True)
    price_amount = models.BigIntegerField()
    currency = models.CharField(max_length=3, default="AOA")
    description = models.TextField()
    initiated_by = models.CharField(max_length=10, choices=Initiator.choices)
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.PENDING)
    base_package_id = models.CharField(max_length=128, blank=True, null=True)
    base_package_name = models.CharField(max_length=255, blank=True, null=True)
    delivery_time = models.CharField(max_length=100, blank=True, null=True)
    valid_until = models.DateTimeField(blank=True, null=True)
    event_date = models.DateField(blank=True, null=True)
    event_name = models.CharField(max_length=255, blank=True, null=True)
    booking_id = models.UUIDField(blank=True, null=True)
    rejection_reason = models.TextField(blank=True, null=True)
    accepted_at = models.DateTimeField(blank=True, null=True)
    rejected_at = models.DateTimeField(blank=True, null=True)
    created_at = models.DateTimeField()
    updated_at = models.DateTimeField()

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "valid_until"], name="offer_status_valid_idx"),
            models.Index(fields=["seller_id", "-created_at"], name="offer_seller_created_idx"),
            models.Index(fields=["buyer_id", "-created_at"], name="offer_buyer_created_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.seller_name} -> {self.buyer_id} ({self.status})"


class Booking(models.Model):
    """Persistence model for bookings."""

    class Status(models.TextChoices):
        PENDING = "pending"
        CONFIRMED = "confirmed"
        IN_PROGRESS = "in_progress"
        COMPLETED = "completed"
        CANCELLED = "cancelled"
        REFUNDED = "refunded"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    client_id = models.CharField(max_length=128)
    supplier_id = models.CharField(max_length=128)
    event_name = models.CharField(max_length=255)
    event_date = models.DateField()
    event_time = models.CharField(max_length=20, blank=True, null=True)
    event_location = models.CharField(max_length=255, blank=True, null=True)
    package_id = models.CharField(max_length=128, blank=True, null=True)
    package_name = models.CharField(max_length=255, blank=True, null=True)
    notes = models.TextField(blank=True, null=True)
    status = models.CharField(max_length=12, choices=Status.choices, default=Status.PENDING)
    total_amount = models.BigIntegerField()
    paid_amount = models.BigIntegerField(default=0)
    currency = models.CharField(max_length=3, default="AOA")
    origin_offer_id = models.UUIDField(unique=True, blank=True, null=True)
    refund_amount = models.BigIntegerField(blank=True, null=True)
    confirmed_at = models.DateTimeField(blank=True, null=True)
    completed_at = models.DateTimeField(blank=True, null=True)
    cancelled_at = models.DateTimeField(blank=True, null=True)
    cancelled_by = models.CharField(max_length=128, blank=True, null=True)
    cancellation_reason = models.TextField(blank=True, null=True)
    refunded_at = models.DateTimeField(blank=True, null=True)
    created_at = models.DateTimeField()
    updated_at = models.DateTimeField()

    class Meta:
        ordering = ["event_date", "created_at"]
        indexes = [
            models.Index(fields=["supplier_id", "event_date"], name="booking_supplier_date_idx"),
            models.Index(fields=["client_id", "event_date"], name="booking_client_date_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.event_name} - {self.event_date}"


class BookingPayment(models.Model):
    """Persistence model for payments received against a booking."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    booking = models.ForeignKey(Booking, on_delete=models.CASCADE, related_name="payments")
    sequence = models.PositiveIntegerField()
    amount = models.BigIntegerField()
    currency = models.CharField(max_length=3, default="AOA")
    method = models.CharField(max_length=50)
    reference = models.CharField(max_length=255, blank=True, null=True)
    notes = models.TextField(blank=True, null=True)
    paid_at = models.DateTimeField()

    class Meta:
        ordering = ["sequence"]
        constraints = [
            models.UniqueConstraint(
                fields=["booking", "sequence"], name="unique_booking_payment_sequence"
            ),
        ]

    def __str__(self) -> str:
        return f"{self.booking_id} #{self.sequence} - {self.amount} {self.currency}"
