"""Engine policy read from the ``BOOKINGS`` Django setting.

Thresholds live here rather than in the value objects, which take them as
arguments.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Self

from django.conf import settings

DEFAULTS: dict[str, Any] = {
    "DEFAULT_CURRENCY": "AOA",
    "DEPOSIT_PERCENTAGE": 30,
    "MIN_ADVANCE_DAYS": 1,
    "MIN_CANCELLATION_DAYS": 7,
    "OFFER_VALIDITY_DAYS": 7,
    "FINAL_PAYMENT_DAYS_BEFORE_EVENT": 7,
    # (minimum days before the event, percentage of the paid amount refunded)
    "REFUND_TIERS": [(30, 100), (15, 75), (7, 50), (1, 25)],
    "AT_RISK_DAYS": 7,
    "AT_RISK_COMPLETION": 50,
    "DEFAULT_INSTALLMENTS": None,
    "MAX_INSTALLMENTS": 10,
    "DEFAULT_SUPPLIER_TIER": "basic",
    "COMMISSION_RATES": {
        "basic": "0.15",
        "bronze": "0.12",
        "silver": "0.10",
        "gold": "0.08",
        "platinum": "0.06",
    },
}


@dataclass(frozen=True)
class SettlementPolicy:
    """Business thresholds for offers, bookings and settlement."""

    default_currency: str = "AOA"
    deposit_percentage: Decimal = Decimal(30)
    min_advance_days: int = 1
    min_cancellation_days: int = 7
    offer_validity_days: int = 7
    final_payment_days_before_event: int = 7
    refund_tiers: tuple[tuple[int, Decimal], ...] = (
        (30, Decimal(100)),
        (15, Decimal(75)),
        (7, Decimal(50)),
        (1, Decimal(25)),
    )
    at_risk_days: int = 7
    at_risk_completion: Decimal = Decimal(50)
    default_installments: int | None = None
    max_installments: int = 10
    default_supplier_tier: str = "basic"
    commission_rates: dict[str, Decimal] = field(
        default_factory=lambda: {k: Decimal(v) for k, v in DEFAULTS["COMMISSION_RATES"].items()}
    )

    def __post_init__(self) -> None:
        tiers = tuple(
            sorted(
                ((int(days), Decimal(pct)) for days, pct in self.refund_tiers),
                key=lambda tier: tier[0],
                reverse=True,
            )
        )
        object.__setattr__(self, "refund_tiers", tiers)

    @classmethod
    def from_settings(cls) -> Self:
        configured = {**DEFAULTS, **getattr(settings, "BOOKINGS", {})}
        return cls(
            default_currency=configured["DEFAULT_CURRENCY"],
            deposit_percentage=Decimal(configured["DEPOSIT_PERCENTAGE"]),
            min_advance_days=int(configured["MIN_ADVANCE_DAYS"]),
            min_cancellation_days=int(configured["MIN_CANCELLATION_DAYS"]),
            offer_validity_days=int(configured["OFFER_VALIDITY_DAYS"]),
            final_payment_days_before_event=int(configured["FINAL_PAYMENT_DAYS_BEFORE_EVENT"]),
            refund_tiers=tuple(configured["REFUND_TIERS"]),
            at_risk_days=int(configured["AT_RISK_DAYS"]),
            at_risk_completion=Decimal(configured["AT_RISK_COMPLETION"]),
            default_installments=configured["DEFAULT_INSTALLMENTS"],
            max_installments=int(configured["MAX_INSTALLMENTS"]),
            default_supplier_tier=configured["DEFAULT_SUPPLIER_TIER"],
            commission_rates={
                tier: Decimal(str(rate)) for tier, rate in configured["COMMISSION_RATES"].items()
            },
        )

    def refund_percentage(self, days_until_event: int) -> Decimal:
        for minimum_days, percentage in self.refund_tiers:
            if days_until_event >= minimum_days:
                return percentage
        return Decimal(0)
