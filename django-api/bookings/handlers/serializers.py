"""Serializers for request validation and for rendering domain models.

Input serializers check the shape of a request only; business rules are
checked by the services. Output serializers read domain dataclasses directly.
"""

from rest_framework import serializers

from bookings.dependencies import get_settlement_service
from bookings.domain import BookingStatus, Money, OfferInitiator
from bookings.domain.errors import DomainError


class MoneyField(serializers.Field):
    """``{"amount": <minor units>, "currency": "AOA"}`` in and out.

    A missing currency falls back to the configured ``DEFAULT_CURRENCY``.
    """

    default_error_messages = {
        "invalid": "Expected an object with an integer 'amount' in minor units.",
    }

    def to_internal_value(self, data):
        if not isinstance(data, dict):
            self.fail("invalid")
        amount = data.get("amount")
        if isinstance(amount, bool) or not isinstance(amount, int):
            self.fail("invalid")
        currency = data.get("currency") or get_settlement_service().policy.default_currency
        try:
            return Money(amount=amount, currency=currency)
        except DomainError as exc:
            raise serializers.ValidationError(exc.message) from None

    def to_representation(self, value: Money):
        return {"amount": value.amount, "currency": value.currency, "formatted": value.format()}


class ValueField(serializers.Field):
    """Renders an Enum member as its value."""

    def __init__(self, **kwargs):
        kwargs["read_only"] = True
        super().__init__(**kwargs)

    def to_representation(self, value):
        return value.value


class IdField(serializers.Field):
    def __init__(self, **kwargs):
        kwargs["read_only"] = True
        super().__init__(**kwargs)

    def to_representation(self, value):
        return str(value)


# Requests


class OfferCreateSerializer(serializers.Serializer):
    counterparty_id = serializers.CharField(max_length=128)
    initiated_by = serializers.ChoiceField(
        choices=[initiator.value for initiator in OfferInitiator], default=OfferInitiator.SELLER.value
    )
    seller_name = serializers.CharField(max_length=255)
    buyer_name = serializers.CharField(max_length=255, required=False, allow_null=True)
    custom_price = MoneyField()
    description = serializers.CharField()
    base_package_id = serializers.CharField(max_length=128, required=False, allow_null=True)
    base_package_name = serializers.CharField(max_length=255, required=False, allow_null=True)
    delivery_time = serializers.CharField(max_length=100, required=False, allow_null=True)
    valid_until = serializers.DateTimeField(required=False, allow_null=True)
    event_date = serializers.DateField(required=False, allow_null=True)
    event_name = serializers.CharField(max_length=255, required=False, allow_null=True)


class OfferAcceptSerializer(serializers.Serializer):
    event_name = serializers.CharField(max_length=255)
    event_date = serializers.DateField()
    event_location = serializers.CharField(max_length=255, required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_null=True, allow_blank=True)


class OfferRejectSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_null=True, allow_blank=True)


class BookingCreateSerializer(serializers.Serializer):
    supplier_id = serializers.CharField(max_length=128)
    event_name = serializers.CharField(max_length=255)
    event_date = serializers.DateField()
    total_amount = MoneyField()
    package_id = serializers.CharField(max_length=128, required=False, allow_null=True)
    package_name = serializers.CharField(max_length=255, required=False, allow_null=True)
    event_time = serializers.CharField(max_length=20, required=False, allow_null=True)
    event_location = serializers.CharField(max_length=255, required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_null=True, allow_blank=True)


class BookingListQuerySerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=["client", "supplier"], default="client")
    status = serializers.ChoiceField(
        choices=[status.value for status in BookingStatus], required=False
    )


class PaymentCreateSerializer(serializers.Serializer):
    amount = MoneyField()
    method = serializers.CharField(max_length=50)
    reference = serializers.CharField(max_length=255, required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_null=True, allow_blank=True)


class StatusUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[status.value for status in BookingStatus])
    reason = serializers.CharField(required=False, allow_null=True, allow_blank=True)


class CancelSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_null=True, allow_blank=True)


# Responses


class OfferSerializer(serializers.Serializer):
    """Serializer for the Offer domain model."""

    id = IdField()
    seller_id = serializers.CharField()
    buyer_id = serializers.CharField()
    seller_name = serializers.CharField()
    buyer_name = serializers.CharField(allow_null=True)
    custom_price = MoneyField()
    description = serializers.CharField()
    initiated_by = ValueField()
    status = ValueField()
    base_package_id = serializers.CharField(allow_null=True)
    base_package_name = serializers.CharField(allow_null=True)
    delivery_time = serializers.CharField(allow_null=True)
    valid_until = serializers.DateTimeField(allow_null=True)
    event_date = serializers.DateField(allow_null=True)
    event_name = serializers.CharField(allow_null=True)
    booking_id = IdField(allow_null=True)
    rejection_reason = serializers.CharField(allow_null=True)
    accepted_at = serializers.DateTimeField(allow_null=True)
    rejected_at = serializers.DateTimeField(allow_null=True)
    created_at = serializers.DateTimeField()
    updated_at = serializers.DateTimeField()


class PaymentSerializer(serializers.Serializer):
    id = IdField()
    amount = MoneyField()
    method = serializers.CharField()
    reference = serializers.CharField(allow_null=True)
    notes = serializers.CharField(allow_null=True)
    paid_at = serializers.DateTimeField()


class BookingSerializer(serializers.Serializer):
    """Serializer for the Booking domain model."""

    id = IdField()
    client_id = serializers.CharField()
    supplier_id = serializers.CharField()
    event_name = serializers.CharField()
    event_date = serializers.DateField()
    event_time = serializers.CharField(allow_null=True)
    event_location = serializers.CharField(allow_null=True)
    package_id = serializers.CharField(allow_null=True)
    package_name = serializers.CharField(allow_null=True)
    notes = serializers.CharField(allow_null=True)
    status = ValueField()
    total_amount = MoneyField()
    paid_amount = MoneyField()
    remaining_amount = MoneyField()
    completion_percentage = serializers.DecimalField(
        source="payment_status.completion_percentage",
        max_digits=5,
        decimal_places=2,
        read_only=True,
    )
    payments = PaymentSerializer(many=True)
    origin_offer_id = IdField(allow_null=True)
    refund_amount = MoneyField(allow_null=True)
    confirmed_at = serializers.DateTimeField(allow_null=True)
    completed_at = serializers.DateTimeField(allow_null=True)
    cancelled_at = serializers.DateTimeField(allow_null=True)
    cancelled_by = serializers.CharField(allow_null=True)
    cancellation_reason = serializers.CharField(allow_null=True)
    refunded_at = serializers.DateTimeField(allow_null=True)
    created_at = serializers.DateTimeField()
    updated_at = serializers.DateTimeField()


class InstallmentSerializer(serializers.Serializer):
    sequence = serializers.IntegerField()
    due_by = serializers.DateField()
    amount = MoneyField()


class SettlementSummarySerializer(serializers.Serializer):
    total = MoneyField()
    paid = MoneyField()
    remaining = MoneyField()
    completion_percentage = serializers.DecimalField(max_digits=5, decimal_places=2)
    suggested_deposit = MoneyField()
    final_payment = MoneyField()
    commission_rate = serializers.DecimalField(max_digits=5, decimal_places=4)
    platform_commission = MoneyField()
    supplier_earnings = MoneyField()
    refund_amount = MoneyField()
    cancellation_penalty = MoneyField()
    urgency_level = serializers.IntegerField()
    at_risk = serializers.BooleanField()
    should_auto_confirm = serializers.BooleanField()
    schedule = InstallmentSerializer(many=True)
