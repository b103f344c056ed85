# app/services/pricing.py
"""
Parking cost calculator.

Cost model: base = rate × hours, tax on base, card-processing fee on the
taxed subtotal (percent + flat), total = subtotal + fee. Every step is rounded
half-up to the cent on its own, so results match the amounts already charged.

Early termination refunds the unused base + tax only; the processing fee
is kept by the processor and never refunded.
"""

from dataclasses import dataclass, asdict
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Optional

from app.config import settings
from app.services.exceptions import ValidationError

CENT = Decimal("0.01")

# Hourly rates by location type. Swap this table to re-price every zone type.
RATE_TABLE = {
    "STREET": Decimal("1.25"),
    "GARAGE": Decimal("1.00"),
    "LOT": Decimal("1.00"),
    "METER": Decimal("1.25"),
}
DEFAULT_LOCATION_TYPE = "STREET"


@dataclass(frozen=True)
class CostBreakdown:
    base_cost: Decimal
    tax_amount: Decimal
    processing_fee: Decimal
    total_cost: Decimal

    @property
    def subtotal(self) -> Decimal:
        return self.base_cost + self.tax_amount

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class RefundBreakdown:
    time_used_hours: Decimal
    chargeable_hours: Decimal
    should_pay: CostBreakdown
    refund_amount: Decimal


def round_cents(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def to_decimal(value, name: str = "value") -> Decimal:
    """Convert ints, floats, strings and Decimals to a finite Decimal."""
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{name} must be a number")
    try:
        number = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f"{name} must be a number")
    if not number.is_finite():
        raise ValidationError(f"{name} must be a finite number")
    return number


def _positive(value, name: str) -> Decimal:
    number = to_decimal(value, name)
    if number <= 0:
        raise ValidationError(f"{name} must be greater than 0")
    return number


def calculate_processing_fee(subtotal: Decimal) -> Decimal:
    return round_cents(subtotal * settings.PROCESSING_FEE_PERCENT + settings.PROCESSING_FEE_FLAT)


def calculate_cost(rate_per_hour, duration_hours, tax_rate: Optional[Decimal] = None) -> CostBreakdown:
    """
    Cost breakdown for parking `duration_hours` at `rate_per_hour`.
    Raises ValidationError for non-positive or non-numeric input.
    """
    rate = _positive(rate_per_hour, "rate_per_hour")
    hours = _positive(duration_hours, "duration_hours")
    tax_rate = settings.TAX_RATE if tax_rate is None else to_decimal(tax_rate, "tax_rate")

    base_cost = round_cents(rate * hours)
    tax_amount = round_cents(base_cost * tax_rate)
    subtotal = base_cost + tax_amount
    processing_fee = calculate_processing_fee(subtotal)
    total_cost = round_cents(subtotal + processing_fee)

    return CostBreakdown(base_cost, tax_amount, processing_fee, total_cost)


def rate_for_location_type(location_type: Optional[str]) -> Decimal:
    return RATE_TABLE.get((location_type or "").upper(), RATE_TABLE[DEFAULT_LOCATION_TYPE])


def effective_rate(zone) -> Decimal:
    """Rate charged for a zone. Creation, extension and refunds all price from here."""
    return rate_for_location_type(zone.location_type)


def estimate_cost(zone, duration_hours, tax_rate: Optional[Decimal] = None) -> CostBreakdown:
    """Preview of what a new session in `zone` would cost."""
    return calculate_cost(effective_rate(zone), duration_hours, tax_rate=tax_rate)


def calculate_refund(rate_per_hour, paid_base_cost, paid_tax_amount, time_used_hours,
                     tax_rate: Optional[Decimal] = None) -> RefundBreakdown:
    """
    Refund owed when a session ends early.

    Billing uses at least MIN_CHARGEABLE_HOURS, and the refund is
    (paid base + paid tax) - (base + tax for the chargeable time), floored at 0.
    """
    time_used = max(Decimal("0"), to_decimal(time_used_hours, "time_used_hours"))
    chargeable = max(settings.MIN_CHARGEABLE_HOURS, time_used)
    should_pay = calculate_cost(rate_per_hour, chargeable, tax_rate=tax_rate)

    paid_subtotal = to_decimal(paid_base_cost, "paid_base_cost") + to_decimal(paid_tax_amount, "paid_tax_amount")
    refund = round_cents(max(Decimal("0"), paid_subtotal - should_pay.subtotal))

    return RefundBreakdown(
        time_used_hours=time_used,
        chargeable_hours=chargeable,
        should_pay=should_pay,
        refund_amount=refund,
    )
