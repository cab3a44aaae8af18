"""Unit tests for SettlementService and SettlementPolicy."""

from dataclasses import replace
from datetime import timedelta
from decimal import Decimal

import pytest

from bookings.conf import SettlementPolicy
from bookings.domain import BookingStatus, Money
from bookings.domain.errors import ValidationError
from bookings.services.settlement_service import SettlementService
from tests.fakes import NOW, TODAY, build_booking, pay


def booking_in(days: int, total: int = 1000, paid: int = 0, **overrides):
    booking = build_booking(NOW, TODAY + timedelta(days=days), total=total)
    if paid:
        booking = pay(booking, paid, NOW)
    return replace(booking, **overrides) if overrides else booking


class TestRefunds:
    """Tests for refund and penalty calculation."""

    @pytest.mark.parametrize(
        "days, expected",
        [
            (45, 1000),
            (30, 1000),
            (29, 750),
            (15, 750),
            (14, 500),
            (7, 500),
            (6, 250),
            (1, 250),
            (0, 0),
            (-3, 0),
        ],
    )
    def test_refund_tiers(self, settlement, days, expected):
        """Refund share depends on whole days left before the event."""
        booking = booking_in(days, paid=1000)
        assert settlement.calculate_refund_amount(booking) == Money(amount=expected)

    def test_refund_of_unpaid_booking_is_zero(self, settlement):
        """Nothing paid means nothing refunded."""
        assert settlement.calculate_refund_amount(booking_in(40)) == Money(amount=0)

    def test_refund_is_measured_from_cancellation_date(self, settlement):
        """A cancelled booking keeps the tier it was cancelled in."""
        booking = booking_in(
            10,
            paid=1000,
            status=BookingStatus.CANCELLED,
            cancelled_at=NOW - timedelta(days=20),
        )
        assert settlement.calculate_refund_amount(booking) == Money(amount=1000)

    def test_penalty_is_paid_minus_refund(self, settlement):
        """The penalty is what is paid but not refunded."""
        booking = booking_in(10, paid=800)
        assert settlement.calculate_refund_amount(booking) == Money(amount=400)
        assert settlement.calculate_cancellation_penalty(booking) == Money(amount=400)

    def test_refund_tiers_are_configurable(self, clock):
        """Refund tiers come from the policy."""
        settlement = SettlementService(
            policy=SettlementPolicy(refund_tiers=((14, 100), (1, 50))), clock=clock
        )
        assert settlement.calculate_refund_amount(booking_in(20, paid=1000)) == Money(amount=1000)
        assert settlement.calculate_refund_amount(booking_in(5, paid=1000)) == Money(amount=500)


class TestDeposits:
    """Tests for deposit and final payment amounts."""

    def test_suggested_deposit_is_thirty_percent_rounded_up(self, settlement):
        """The deposit is 30% of the total, rounded up."""
        assert settlement.calculate_suggested_deposit(booking_in(30, total=25_000_000)) == Money(
            amount=7_500_000
        )
        assert settlement.calculate_suggested_deposit(booking_in(30, total=1001)) == Money(amount=301)

    def test_final_payment_is_remaining(self, settlement):
        """The final payment is the remaining balance."""
        assert settlement.calculate_final_payment(booking_in(30, paid=300)) == Money(amount=700)

    def test_deposit_threshold(self, settlement):
        """30% paid meets the deposit threshold."""
        assert settlement.meets_deposit_threshold(booking_in(30, paid=300))
        assert not settlement.meets_deposit_threshold(booking_in(30, paid=299))

    def test_should_auto_confirm_only_pending(self, settlement):
        """Only pending bookings auto-confirm."""
        assert settlement.should_auto_confirm(booking_in(30, paid=300))
        confirmed = booking_in(30, paid=300, status=BookingStatus.CONFIRMED)
        assert not settlement.should_auto_confirm(confirmed)


class TestPaymentSchedule:
    """Tests for generate_payment_schedule."""

    def test_fully_paid_booking_has_no_schedule(self, settlement):
        """A fully paid booking needs no installments."""
        assert settlement.generate_payment_schedule(booking_in(60, paid=1000)) == []

    def test_default_schedule_far_from_event(self, settlement):
        """Three installments from today to a week before the event."""
        schedule = settlement.generate_payment_schedule(booking_in(60))
        assert [item.sequence for item in schedule] == [1, 2, 3]
        assert [item.amount.amount for item in schedule] == [334, 333, 333]
        assert [item.due_by for item in schedule] == [
            TODAY,
            TODAY + timedelta(days=26),
            TODAY + timedelta(days=53),
        ]

    def test_installments_sum_to_remaining(self, settlement):
        """Installments add up to the remaining balance."""
        booking = booking_in(60, total=1000, paid=1)
        schedule = settlement.generate_payment_schedule(booking, installments=7)
        assert sum(item.amount.amount for item in schedule) == 999
        assert all(item.amount.is_positive for item in schedule)

    def test_due_dates_never_decrease(self, settlement):
        """Installment due dates are in order."""
        schedule = settlement.generate_payment_schedule(booking_in(40), installments=10)
        dates = [item.due_by for item in schedule]
        assert dates == sorted(dates)

    def test_close_event_gets_single_installment_due_today(self, settlement):
        """Events inside the final payment window are paid in one go."""
        schedule = settlement.generate_payment_schedule(booking_in(3))
        assert len(schedule) == 1
        assert schedule[0].due_by == TODAY
        assert schedule[0].amount == Money(amount=1000)

    def test_count_is_capped_by_remaining_minor_units(self, settlement):
        """No installment is smaller than one minor unit."""
        schedule = settlement.generate_payment_schedule(booking_in(60, total=2), installments=5)
        assert [item.amount.amount for item in schedule] == [1, 1]

    @pytest.mark.parametrize("installments", [0, 11, -1])
    def test_out_of_range_count_is_rejected(self, settlement, installments):
        """Installment counts outside 1-10 are rejected."""
        with pytest.raises(ValidationError):
            settlement.generate_payment_schedule(booking_in(60), installments=installments)


class TestCommission:
    """Tests for platform commission and supplier earnings."""

    def test_default_tier_commission(self, settlement):
        """The default tier takes 15%."""
        booking = booking_in(30, total=25_000_000)
        assert settlement.calculate_platform_commission(booking) == Money(amount=3_750_000)
        assert settlement.calculate_supplier_earnings(booking) == Money(amount=21_250_000)

    def test_explicit_rate(self, settlement):
        """An explicit rate overrides the tier."""
        booking = booking_in(30, total=25_000_000)
        commission = settlement.calculate_platform_commission(booking, Decimal("0.10"))
        assert commission == Money(amount=2_500_000)

    def test_tier_lookup_is_case_insensitive(self, settlement):
        """Tier names ignore case."""
        assert settlement.commission_rate_for_tier("GOLD") == Decimal("0.08")

    def test_unknown_tier_is_rejected(self, settlement):
        """An unknown tier raises ValidationError."""
        with pytest.raises(ValidationError):
            settlement.commission_rate_for_tier("diamond")

    @pytest.mark.parametrize("rate", [Decimal("-0.01"), Decimal("1.5")])
    def test_out_of_range_rate_is_rejected(self, settlement, rate):
        """Rates outside 0-1 raise ValidationError."""
        with pytest.raises(ValidationError):
            settlement.calculate_platform_commission(booking_in(30), rate)


class TestPriority:
    """Tests for urgency, risk and ordering."""

    @pytest.mark.parametrize(
        "days, expected",
        [(-1, 4), (0, 4), (1, 4), (2, 3), (3, 3), (5, 2), (7, 2), (20, 1), (30, 1), (31, 0)],
    )
    def test_urgency_level(self, settlement, days, expected):
        """Urgency rises as the event gets closer."""
        assert settlement.calculate_urgency_level(booking_in(days)) == expected

    def test_fully_paid_lowers_urgency(self, settlement):
        """A fully paid booking is one level less urgent."""
        assert settlement.calculate_urgency_level(booking_in(2, paid=1000)) == 2
        assert settlement.calculate_urgency_level(booking_in(31, paid=1000)) == 0

    def test_at_risk(self, settlement):
        """Active bookings close to the event with under half paid are at risk."""
        assert settlement.is_at_risk_of_cancellation(booking_in(5, paid=400))
        assert not settlement.is_at_risk_of_cancellation(booking_in(5, paid=500))
        assert not settlement.is_at_risk_of_cancellation(booking_in(7, paid=0))

    def test_settled_bookings_are_not_at_risk(self, settlement):
        """Only active bookings can be at risk."""
        assert not settlement.is_at_risk_of_cancellation(
            booking_in(2, status=BookingStatus.CANCELLED)
        )
        assert not settlement.is_at_risk_of_cancellation(
            booking_in(2, status=BookingStatus.IN_PROGRESS)
        )

    def test_is_valid_status_transition(self, settlement):
        """The service exposes the transition table."""
        assert settlement.is_valid_status_transition(BookingStatus.PENDING, BookingStatus.CONFIRMED)
        assert not settlement.is_valid_status_transition(
            BookingStatus.PENDING, BookingStatus.COMPLETED
        )

    def test_compare_by_priority(self, settlement):
        """Urgency first, then event date, then creation time."""
        urgent = booking_in(2)
        soon = booking_in(10)
        later = booking_in(20)
        same_day_older = booking_in(20, created_at=NOW - timedelta(days=1))
        assert settlement.compare_by_priority(urgent, soon) < 0
        assert settlement.compare_by_priority(later, soon) > 0
        assert settlement.compare_by_priority(same_day_older, later) < 0
        assert settlement.compare_by_priority(later, later) == 0
        assert settlement.sort_by_priority([later, soon, same_day_older, urgent]) == [
            urgent,
            soon,
            same_day_older,
            later,
        ]

    def test_summarize(self, settlement):
        """The summary gathers payment, refund and commission figures."""
        summary = settlement.summarize(booking_in(10, total=1000, paid=300))
        assert summary.remaining == Money(amount=700)
        assert summary.completion_percentage == 30
        assert summary.refund_amount == Money(amount=150)
        assert summary.cancellation_penalty == Money(amount=150)
        assert summary.commission_rate == Decimal("0.15")
        assert sum(item.amount.amount for item in summary.schedule) == 700

    @pytest.mark.parametrize("status", [BookingStatus.CANCELLED, BookingStatus.COMPLETED])
    def test_summary_of_settled_booking_has_no_schedule(self, settlement, status):
        """Bookings that take no more payments are not offered installments."""
        booking = booking_in(40, total=1000, paid=300, status=status, cancelled_at=NOW)
        summary = settlement.summarize(booking)
        assert summary.remaining == Money(amount=700)
        assert summary.schedule == ()


class TestSettlementPolicy:
    """Tests for reading the policy from settings."""

    def test_defaults(self):
        """Defaults match the platform policy."""
        policy = SettlementPolicy()
        assert policy.deposit_percentage == 30
        assert policy.min_cancellation_days == 7
        assert policy.refund_tiers[0] == (30, Decimal(100))

    def test_tiers_are_sorted_descending(self):
        """Refund tiers are matched from the longest notice down."""
        policy = SettlementPolicy(refund_tiers=[(7, 50), (30, 100)])
        assert [days for days, _ in policy.refund_tiers] == [30, 7]
        assert policy.refund_percentage(10) == 50

    def test_from_settings_overrides_defaults(self, settings):
        """BOOKINGS overrides only the keys it sets."""
        settings.BOOKINGS = {"DEPOSIT_PERCENTAGE": 40, "COMMISSION_RATES": {"basic": "0.2"}}
        policy = SettlementPolicy.from_settings()
        assert policy.deposit_percentage == 40
        assert policy.commission_rates == {"basic": Decimal("0.2")}
        assert policy.min_advance_days == 1
