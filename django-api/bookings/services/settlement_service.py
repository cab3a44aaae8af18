"""Settlement calculations over bookings.

SettlementService is stateless and side-effect free: construct it once with a
policy and a clock and share it between callers. Every calculation is total
over valid bookings; only malformed arguments raise ``ValidationError``.
"""

import functools
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Callable, Iterable

from django.utils import timezone

from bookings.conf import SettlementPolicy
from bookings.domain import Booking, BookingStatus, Installment, Money, PaymentStatus
from bookings.domain.errors import ValidationError
from bookings.domain.transitions import PAYABLE_BOOKING_STATUSES, is_booking_active
from bookings.domain.transitions import is_valid_status_transition as _is_valid_status_transition


@dataclass(frozen=True)
class SettlementSummary:
    """Everything owed, earned and refundable for one booking at a point in time."""

    total: Money
    paid: Money
    remaining: Money
    completion_percentage: Decimal
    suggested_deposit: Money
    final_payment: Money
    commission_rate: Decimal
    platform_commission: Money
    supplier_earnings: Money
    refund_amount: Money
    cancellation_penalty: Money
    urgency_level: int
    at_risk: bool
    should_auto_confirm: bool
    schedule: tuple[Installment, ...]


class SettlementService:
    """Refunds, commissions, deposits, schedules and priority for bookings."""

    def __init__(
        self,
        policy: SettlementPolicy | None = None,
        clock: Callable[[], datetime] = timezone.now,
    ) -> None:
        self._policy = policy or SettlementPolicy()
        self._clock = clock

    @property
    def policy(self) -> SettlementPolicy:
        return self._policy

    def today(self) -> date:
        return timezone.localdate(self._clock())

    def _days_until_event(self, booking: Booking, on: date | None = None) -> int:
        return booking.booking_date.days_until_event(on or self.today())

    def _cancellation_day(self, booking: Booking) -> date:
        if booking.cancelled_at is not None:
            return timezone.localdate(booking.cancelled_at)
        return self.today()

    # Refunds

    def refund_percentage(self, booking: Booking) -> Decimal:
        days = self._days_until_event(booking, self._cancellation_day(booking))
        return self._policy.refund_percentage(days)

    def calculate_refund_amount(self, booking: Booking) -> Money:
        """Share of the paid amount returned, tiered by days before the event.

        Days are counted from the cancellation date when the booking is
        already cancelled, otherwise from today. An event that is today or
        already past refunds nothing.
        """
        return booking.paid_amount.multiply(self.refund_percentage(booking) / 100)

    def calculate_cancellation_penalty(self, booking: Booking) -> Money:
        return booking.paid_amount - self.calculate_refund_amount(booking)

    # Payments

    def calculate_suggested_deposit(self, booking: Booking) -> Money:
        unpaid = PaymentStatus.unpaid(booking.total_amount)
        return unpaid.minimum_payment_for_percentage(self._policy.deposit_percentage)

    def calculate_final_payment(self, booking: Booking) -> Money:
        return booking.remaining_amount

    def meets_deposit_threshold(self, booking: Booking) -> bool:
        return booking.payment_status.completion_percentage >= self._policy.deposit_percentage

    def should_auto_confirm(self, booking: Booking) -> bool:
        return booking.status is BookingStatus.PENDING and self.meets_deposit_threshold(booking)

    def generate_payment_schedule(
        self, booking: Booking, installments: int | None = None
    ) -> list[Installment]:
        """Split the remaining balance into dated installments.

        Installments are positive and sum exactly to the remaining amount. The
        first falls due today and the last on the final-payment deadline
        before the event (or today, when that deadline has passed).
        """
        remaining = booking.remaining_amount
        if not remaining.is_positive:
            return []

        days = self._days_until_event(booking)
        count = installments
        if count is None:
            count = self._policy.default_installments or self._default_installments(days)
        if not 1 <= count <= self._policy.max_installments:
            raise ValidationError(
                f"Installments must be between 1 and {self._policy.max_installments}"
            )
        count = min(count, remaining.amount)

        today = self.today()
        deadline = booking.event_date - timedelta(days=self._policy.final_payment_days_before_event)
        deadline = max(deadline, today)
        span = (deadline - today).days

        base, extra = divmod(remaining.amount, count)
        schedule = []
        for index in range(count):
            if count == 1:
                due_by = deadline
            else:
                due_by = today + timedelta(days=span * index // (count - 1))
            amount = base + (1 if index < extra else 0)
            schedule.append(
                Installment(
                    sequence=index + 1,
                    due_by=due_by,
                    amount=Money(amount=amount, currency=remaining.currency),
                )
            )
        return schedule

    def _default_installments(self, days_until_event: int) -> int:
        if days_until_event > 30:
            return 3
        if days_until_event > self._policy.final_payment_days_before_event:
            return 2
        return 1

    # Commission

    def commission_rate_for_tier(self, tier: str | None = None) -> Decimal:
        tier = (tier or self._policy.default_supplier_tier).lower()
        try:
            return self._policy.commission_rates[tier]
        except KeyError:
            raise ValidationError(f"Unknown supplier tier: {tier}") from None

    def calculate_platform_commission(
        self, booking: Booking, commission_rate: Decimal | None = None
    ) -> Money:
        """Platform share of the total, ``commission_rate`` as a fraction (0.10 = 10%)."""
        rate = self.commission_rate_for_tier() if commission_rate is None else Decimal(commission_rate)
        if rate < 0 or rate > 1:
            raise ValidationError("Commission rate must be between 0 and 1")
        return booking.total_amount.multiply(rate)

    def calculate_supplier_earnings(
        self, booking: Booking, commission_rate: Decimal | None = None
    ) -> Money:
        return booking.total_amount - self.calculate_platform_commission(booking, commission_rate)

    # Prioritisation

    def calculate_urgency_level(self, booking: Booking) -> int:
        """0 (low) to 4 (critical); a fully paid booking is one level calmer."""
        days = self._days_until_event(booking)
        if days <= 1:
            level = 4
        elif days <= 3:
            level = 3
        elif days <= 7:
            level = 2
        elif days <= 30:
            level = 1
        else:
            level = 0
        if booking.payment_status.is_fully_paid and level > 0:
            level -= 1
        return level

    def is_at_risk_of_cancellation(self, booking: Booking) -> bool:
        if not is_booking_active(booking.status):
            return False
        return (
            self._days_until_event(booking) < self._policy.at_risk_days
            and booking.payment_status.completion_percentage < self._policy.at_risk_completion
        )

    def is_valid_status_transition(self, current: BookingStatus, target: BookingStatus) -> bool:
        return _is_valid_status_transition(current, target)

    def compare_by_priority(self, a: Booking, b: Booking) -> int:
        """Negative when ``a`` should be handled before ``b``."""
        urgency_a = self.calculate_urgency_level(a)
        urgency_b = self.calculate_urgency_level(b)
        if urgency_a != urgency_b:
            return urgency_b - urgency_a
        if a.event_date != b.event_date:
            return -1 if a.event_date < b.event_date else 1
        if a.created_at != b.created_at:
            return -1 if a.created_at < b.created_at else 1
        return 0

    def sort_by_priority(self, bookings: Iterable[Booking]) -> list[Booking]:
        return sorted(bookings, key=functools.cmp_to_key(self.compare_by_priority))

    def summarize(self, booking: Booking, commission_rate: Decimal | None = None) -> SettlementSummary:
        rate = self.commission_rate_for_tier() if commission_rate is None else Decimal(commission_rate)
        commission = self.calculate_platform_commission(booking, rate)
        refund = self.calculate_refund_amount(booking)
        # Settled bookings take no further payments.
        schedule = (
            self.generate_payment_schedule(booking)
            if booking.status in PAYABLE_BOOKING_STATUSES
            else []
        )
        return SettlementSummary(
            total=booking.total_amount,
            paid=booking.paid_amount,
            remaining=booking.remaining_amount,
            completion_percentage=booking.payment_status.completion_percentage,
            suggested_deposit=self.calculate_suggested_deposit(booking),
            final_payment=self.calculate_final_payment(booking),
            commission_rate=rate,
            platform_commission=commission,
            supplier_earnings=booking.total_amount - commission,
            refund_amount=refund,
            cancellation_penalty=booking.paid_amount - refund,
            urgency_level=self.calculate_urgency_level(booking),
            at_risk=self.is_at_risk_of_cancellation(booking),
            should_auto_confirm=self.should_auto_confirm(booking),
            schedule=tuple(schedule),
        )
