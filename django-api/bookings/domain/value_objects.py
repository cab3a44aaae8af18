"""Domain primitives that enforce validity at creation time."""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import ROUND_CEILING, ROUND_HALF_UP, Decimal
from typing import Self
from uuid import UUID, uuid4

from django.utils.translation import gettext as _
from django.utils.translation import ngettext

from bookings.domain.errors import (
    CurrencyMismatchError,
    InvalidOperationError,
    InvalidPaymentError,
    ValidationError,
)

DEFAULT_CURRENCY = "AOA"

# All supported currencies use two decimal places.
MINOR_UNITS_PER_MAJOR = 100


@dataclass(frozen=True)
class OfferId:
    """Unique identifier for an Offer."""

    value: UUID

    @classmethod
    def from_string(cls, value: str) -> Self:
        return cls(value=UUID(value))

    @classmethod
    def generate(cls) -> Self:
        return cls(value=uuid4())

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class BookingId:
    """Unique identifier for a Booking."""

    value: UUID

    @classmethod
    def from_string(cls, value: str) -> Self:
        return cls(value=UUID(value))

    @classmethod
    def generate(cls) -> Self:
        return cls(value=uuid4())

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class PaymentId:
    """Unique identifier for a BookingPayment."""

    value: UUID

    @classmethod
    def generate(cls) -> Self:
        return cls(value=uuid4())

    def __str__(self) -> str:
        return str(self.value)


def _as_decimal(value: int | float | Decimal | str) -> Decimal:
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def _round_to_minor_unit(value: Decimal) -> int:
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class Money:
    """Monetary value held as an integer number of minor units.

    Arithmetic and comparisons are only defined between equal currencies.
    Every operation returns a new instance.
    """

    amount: int
    currency: str = DEFAULT_CURRENCY

    def __post_init__(self) -> None:
        if isinstance(self.amount, bool) or not isinstance(self.amount, int):
            raise ValidationError("Money amount must be a whole number of minor units")
        if not (
            isinstance(self.currency, str)
            and len(self.currency) == 3
            and self.currency.isalpha()
            and self.currency.isupper()
        ):
            raise ValidationError("Currency must be a three-letter upper-case code")

    @classmethod
    def zero(cls, currency: str = DEFAULT_CURRENCY) -> Self:
        return cls(amount=0, currency=currency)

    @classmethod
    def from_decimal(cls, value: int | float | Decimal | str, currency: str = DEFAULT_CURRENCY) -> Self:
        """Build Money from a major-unit value, e.g. ``100.50`` -> 10050 minor units."""
        minor = _as_decimal(value) * MINOR_UNITS_PER_MAJOR
        return cls(amount=_round_to_minor_unit(minor), currency=currency)

    def to_decimal(self) -> Decimal:
        return Decimal(self.amount) / MINOR_UNITS_PER_MAJOR

    @property
    def is_zero(self) -> bool:
        return self.amount == 0

    @property
    def is_positive(self) -> bool:
        return self.amount > 0

    @property
    def is_negative(self) -> bool:
        return self.amount < 0

    def _ensure_same_currency(self, other: "Money") -> None:
        if self.currency != other.currency:
            raise CurrencyMismatchError(self.currency, other.currency)

    def add(self, other: "Money") -> "Money":
        self._ensure_same_currency(other)
        return Money(amount=self.amount + other.amount, currency=self.currency)

    def subtract(self, other: "Money") -> "Money":
        self._ensure_same_currency(other)
        return Money(amount=self.amount - other.amount, currency=self.currency)

    def multiply(self, factor: int | float | Decimal) -> "Money":
        product = Decimal(self.amount) * _as_decimal(factor)
        return Money(amount=_round_to_minor_unit(product), currency=self.currency)

    def divide(self, divisor: int | float | Decimal) -> "Money":
        divisor = _as_decimal(divisor)
        if divisor == 0:
            raise InvalidOperationError("Cannot divide money by zero")
        return Money(amount=_round_to_minor_unit(Decimal(self.amount) / divisor), currency=self.currency)

    def gt(self, other: "Money") -> bool:
        self._ensure_same_currency(other)
        return self.amount > other.amount

    def gte(self, other: "Money") -> bool:
        self._ensure_same_currency(other)
        return self.amount >= other.amount

    def lt(self, other: "Money") -> bool:
        self._ensure_same_currency(other)
        return self.amount < other.amount

    def lte(self, other: "Money") -> bool:
        self._ensure_same_currency(other)
        return self.amount <= other.amount

    def eq(self, other: "Money") -> bool:
        """Currency-checked equality; ``==`` stays a plain structural compare."""
        self._ensure_same_currency(other)
        return self.amount == other.amount

    def __add__(self, other: object) -> "Money":
        if not isinstance(other, Money):
            return NotImplemented
        return self.add(other)

    def __sub__(self, other: object) -> "Money":
        if not isinstance(other, Money):
            return NotImplemented
        return self.subtract(other)

    def __mul__(self, factor: int | float | Decimal) -> "Money":
        return self.multiply(factor)

    __rmul__ = __mul__

    def __truediv__(self, divisor: int | float | Decimal) -> "Money":
        return self.divide(divisor)

    def __lt__(self, other: "Money") -> bool:
        return self.lt(other)

    def __le__(self, other: "Money") -> bool:
        return self.lte(other)

    def __gt__(self, other: "Money") -> bool:
        return self.gt(other)

    def __ge__(self, other: "Money") -> bool:
        return self.gte(other)

    def format(self, show_currency: bool = True) -> str:
        """Fixed two-decimal rendering, e.g. ``100.50 AOA``."""
        formatted = f"{self.to_decimal():.2f}"
        return f"{formatted} {self.currency}" if show_currency else formatted

    def format_compact(self) -> str:
        """Short rendering for large amounts, e.g. ``1.5M AOA`` or ``250K AOA``."""
        value = self.to_decimal()
        if abs(value) >= 1_000_000:
            scaled = (value / 1_000_000).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
            return f"{scaled}M {self.currency}"
        if abs(value) >= 1_000:
            scaled = (value / 1_000).quantize(Decimal(1), rounding=ROUND_HALF_UP)
            return f"{scaled}K {self.currency}"
        return self.format()

    def __str__(self) -> str:
        return self.format()


@dataclass(frozen=True)
class PaymentStatus:
    """Total owed versus paid so far for a booking.

    ``paid <= total`` is enforced by ``record_payment``, not here, so an
    unpaid status with ``paid == 0`` is always constructible.
    """

    total: Money
    paid: Money

    def __post_init__(self) -> None:
        if self.total.currency != self.paid.currency:
            raise CurrencyMismatchError(self.total.currency, self.paid.currency)
        if self.total.is_negative:
            raise ValidationError("Total amount cannot be negative")
        if self.paid.is_negative:
            raise ValidationError("Paid amount cannot be negative")

    @classmethod
    def unpaid(cls, total: Money) -> Self:
        return cls(total=total, paid=Money.zero(total.currency))

    @property
    def currency(self) -> str:
        return self.total.currency

    @property
    def remaining(self) -> Money:
        return self.total - self.paid

    @property
    def completion_percentage(self) -> Decimal:
        """Share of the total already paid, between 0 and 100."""
        if self.total.is_zero:
            return Decimal(0)
        percentage = Decimal(self.paid.amount) * 100 / Decimal(self.total.amount)
        return min(max(percentage, Decimal(0)), Decimal(100))

    @property
    def is_fully_paid(self) -> bool:
        return self.remaining.is_zero

    @property
    def is_unpaid(self) -> bool:
        return self.paid.is_zero

    @property
    def is_partially_paid(self) -> bool:
        return self.paid.is_positive and not self.is_fully_paid

    def can_pay_amount(self, amount: Money) -> bool:
        return (
            amount.currency == self.currency
            and amount.is_positive
            and amount.amount <= self.remaining.amount
        )

    def record_payment(self, amount: Money) -> "PaymentStatus":
        """Return a new status with ``amount`` added to the paid total.

        Raises:
            InvalidPaymentError: If the amount is not positive, is in another
                currency, or would take the paid total past the total owed.
        """
        if amount.currency != self.currency:
            raise InvalidPaymentError(
                f"Payment currency {amount.currency} does not match booking currency {self.currency}"
            )
        if not amount.is_positive:
            raise InvalidPaymentError("Payment amount must be positive")
        if amount.gt(self.remaining):
            raise InvalidPaymentError(
                f"Payment of {amount.format()} exceeds the remaining balance of {self.remaining.format()}"
            )
        return PaymentStatus(total=self.total, paid=self.paid + amount)

    def minimum_payment_for_percentage(self, percentage: int | float | Decimal) -> Money:
        """Money still needed so that ``paid >= total * percentage / 100``."""
        percentage = _as_decimal(percentage)
        if percentage < 0 or percentage > 100:
            raise ValidationError("Percentage must be between 0 and 100")
        target = Decimal(self.total.amount) * percentage / 100
        target_amount = int(target.to_integral_value(rounding=ROUND_CEILING))
        required = target_amount - self.paid.amount
        return Money(amount=max(required, 0), currency=self.currency)


@dataclass(frozen=True)
class BookingDate:
    """Event date with the calendar rules bookings depend on.

    Thresholds are supplied by the caller. ``today`` defaults to the local
    date and can be passed explicitly for deterministic evaluation.
    """

    event_date: date
    event_time: str | None = None

    def __post_init__(self) -> None:
        if isinstance(self.event_date, datetime) or not isinstance(self.event_date, date):
            raise ValidationError("Event date must be a calendar date")

    @staticmethod
    def _resolve(today: date | None) -> date:
        return today if today is not None else date.today()

    def days_until_event(self, today: date | None = None) -> int:
        """Whole days from ``today`` to the event; negative once it has passed."""
        return (self.event_date - self._resolve(today)).days

    def is_past(self, today: date | None = None) -> bool:
        return self.days_until_event(today) < 0

    def is_today(self, today: date | None = None) -> bool:
        return self.days_until_event(today) == 0

    def is_tomorrow(self, today: date | None = None) -> bool:
        return self.days_until_event(today) == 1

    def is_future(self, today: date | None = None) -> bool:
        return self.days_until_event(today) >= 0

    def is_within_days(self, days: int, today: date | None = None) -> bool:
        return self.event_date <= self._resolve(today) + timedelta(days=days)

    def is_same_day(self, other: "date | BookingDate") -> bool:
        if isinstance(other, BookingDate):
            other = other.event_date
        if isinstance(other, datetime):
            other = other.date()
        return self.event_date == other

    def is_valid_for_booking(self, minimum_advance_days: int, today: date | None = None) -> bool:
        """Whether a new booking may be made for this date."""
        if self.is_past(today):
            return False
        return self.days_until_event(today) >= minimum_advance_days

    def is_within_cancellation_period(self, minimum_days: int, today: date | None = None) -> bool:
        """True while cancelling now still leaves ``minimum_days`` before the event."""
        return self.days_until_event(today) >= minimum_days

    def get_relative_description(self, today: date | None = None) -> str:
        days = self.days_until_event(today)
        if days == 0:
            return _("today")
        if days == 1:
            return _("tomorrow")
        if days == -1:
            return _("yesterday")
        if days > 0:
            return ngettext("in %(days)d day", "in %(days)d days", days) % {"days": days}
        past = abs(days)
        return ngettext("%(days)d day ago", "%(days)d days ago", past) % {"days": past}

    def format_short(self) -> str:
        return self.event_date.strftime("%d/%m/%Y")

    def __str__(self) -> str:
        if self.event_time:
            return f"{self.format_short()} {self.event_time}"
        return self.format_short()
