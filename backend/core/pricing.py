"""Fee schedules and total computation for orders and bookings."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.http import JsonResponse

PRODUCT_ORDER = "product_order"
PROPERTY_BOOKING = "property_booking"
_CENT = Decimal("0.01")


def quantize_money(value: Decimal) -> Decimal:
    """Round to cents, halves away from zero."""
    return value.quantize(_CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class FeeSchedule:
    name: str
    service_fee_rate: Decimal
    tax_rate: Decimal


@dataclass(frozen=True)
class PriceBreakdown:
    """
    Charges for a priced flow.

    subtotal, service_fee and tax keep full precision; total is the only
    value rounded to cents, computed from the unrounded components.
    """

    subtotal: Decimal
    service_fee: Decimal
    tax: Decimal

    @property
    def total(self) -> Decimal:
        return quantize_money(self.subtotal + self.service_fee + self.tax)

    def rounded(self) -> dict[str, Decimal]:
        return {
            "subtotal": quantize_money(self.subtotal),
            "service_fee": quantize_money(self.service_fee),
            "tax": quantize_money(self.tax),
            "total": self.total,
        }

    def as_totals(self) -> dict[str, str]:
        """Return string values for stable JSON storage."""
        return {key: str(value) for key, value in self.rounded().items()}


def get_fee_schedule(name: str) -> FeeSchedule:
    """Look up a per-flow fee schedule from settings.FEE_SCHEDULES."""
    schedules = getattr(settings, "FEE_SCHEDULES", {}) or {}
    config = schedules.get(name)
    if config is None:
        raise ImproperlyConfigured(f"No fee schedule configured for '{name}'.")
    return FeeSchedule(
        name=name,
        service_fee_rate=Decimal(str(config["service_fee_rate"])),
        tax_rate=Decimal(str(config["tax_rate"])),
    )


def compute_total(base: Decimal, units: int, schedule: FeeSchedule) -> PriceBreakdown:
    """
    Price `units` of `base`:
    - subtotal: base * units
    - service fee: schedule.service_fee_rate * subtotal
    - tax: schedule.tax_rate * subtotal
    """
    if units < 1:
        raise ValueError("units must be at least 1")
    base = Decimal(str(base))
    if base < 0:
        raise ValueError("base price cannot be negative")
    subtotal = base * units
    return PriceBreakdown(
        subtotal=subtotal,
        service_fee=subtotal * schedule.service_fee_rate,
        tax=subtotal * schedule.tax_rate,
    )


def _rate_to_bps(rate: Decimal) -> int:
    """Convert a decimal rate (e.g. 0.10) to basis points."""
    return int((rate * Decimal("10000")).to_integral_value(rounding=ROUND_HALF_UP))


def pricing_summary(_request):
    """Public endpoint that surfaces the configured fee schedules."""
    payload = {}
    for name in (PRODUCT_ORDER, PROPERTY_BOOKING):
        schedule = get_fee_schedule(name)
        payload[name] = {
            "service_fee_bps": _rate_to_bps(schedule.service_fee_rate),
            "tax_bps": _rate_to_bps(schedule.tax_rate),
        }
    return JsonResponse(payload)
