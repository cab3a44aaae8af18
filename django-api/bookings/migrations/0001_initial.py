import uuid

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Booking",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("client_id", models.CharField(max_length=128)),
                ("supplier_id", models.CharField(max_length=128)),
                ("event_name", models.CharField(max_length=255)),
                ("event_date", models.DateField()),
                ("event_time", models.CharField(blank=True, max_length=20, null=True)),
                ("event_location", models.CharField(blank=True, max_length=255, null=True)),
                ("package_id", models.CharField(blank=True, max_length=128, null=True)),
                ("package_name", models.CharField(blank=True, max_length=255, null=True)),
                ("notes", models.TextField(blank=True, null=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("confirmed", "Confirmed"),
                            ("in_progress", "In Progress"),
                            ("completed", "Completed"),
                            ("cancelled", "Cancelled"),
                            ("refunded", "Refunded"),
                        ],
                        default="pending",
                        max_length=12,
                    ),
                ),
                ("total_amount", models.BigIntegerField()),
                ("paid_amount", models.BigIntegerField(default=0)),
                ("currency", models.CharField(default="AOA", max_length=3)),
                ("origin_offer_id", models.UUIDField(blank=True, null=True, unique=True)),
                ("refund_amount", models.BigIntegerField(blank=True, null=True)),
                ("confirmed_at", models.DateTimeField(blank=True, null=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("cancelled_by", models.CharField(blank=True, max_length=128, null=True)),
                ("cancellation_reason", models.TextField(blank=True, null=True)),
                ("refunded_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField()),
                ("updated_at", models.DateTimeField()),
            ],
            options={
                "ordering": ["event_date", "created_at"],
                "indexes": [
                    models.Index(fields=["supplier_id", "event_date"], name="booking_supplier_date_idx"),
                    models.Index(fields=["client_id", "event_date"], name="booking_client_date_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Offer",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("seller_id", models.CharField(max_length=128)),
                ("buyer_id", models.CharField(max_length=128)),
                ("seller_name", models.CharField(max_length=255)),
                ("buyer_name", models.CharField(blank=True, max_length=255, null=True)),
                ("price_amount", models.BigIntegerField()),
                ("currency", models.CharField(default="AOA", max_length=3)),
                ("description", models.TextField()),
                (
                    "initiated_by",
                    models.CharField(choices=[("seller", "Seller"), ("buyer", "Buyer")], max_length=10),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("accepted", "Accepted"),
                            ("rejected", "Rejected"),
                            ("cancelled", "Cancelled"),
                            ("expired", "Expired"),
                        ],
                        default="pending",
                        max_length=10,
                    ),
                ),
                ("base_package_id", models.CharField(blank=True, max_length=128, null=True)),
                ("base_package_name", models.CharField(blank=True, max_length=255, null=True)),
                ("delivery_time", models.CharField(blank=True, max_length=100, null=True)),
                ("valid_until", models.DateTimeField(blank=True, null=True)),
                ("event_date", models.DateField(blank=True, null=True)),
                ("event_name", models.CharField(blank=True, max_length=255, null=True)),
                ("booking_id", models.UUIDField(blank=True, null=True)),
                ("rejection_reason", models.TextField(blank=True, null=True)),
                ("accepted_at", models.DateTimeField(blank=True, null=True)),
                ("rejected_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField()),
                ("updated_at", models.DateTimeField()),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["status", "valid_until"], name="offer_status_valid_idx"),
                    models.Index(fields=["seller_id", "-created_at"], name="offer_seller_created_idx"),
                    models.Index(fields=["buyer_id", "-created_at"], name="offer_buyer_created_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="BookingPayment",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("sequence", models.PositiveIntegerField()),
                ("amount", models.BigIntegerField()),
                ("currency", models.CharField(default="AOA", max_length=3)),
                ("method", models.CharField(max_length=50)),
                ("reference", models.CharField(blank=True, max_length=255, null=True)),
                ("notes", models.TextField(blank=True, null=True)),
                ("paid_at", models.DateTimeField()),
                (
                    "booking",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="payments",
                        to="bookings.booking",
                    ),
                ),
            ],
            options={
                "ordering": ["sequence"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("booking", "sequence"), name="unique_booking_payment_sequence"
                    )
                ],
            },
        ),
    ]
