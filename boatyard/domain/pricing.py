"""
Pricing - Centralized monetary calculations.

All amounts are Decimal quantized to cents with ROUND_HALF_UP. Configuration
and quote totals are always derived from their lines through these
functions; no total is stored without being recomputed from its inputs.
"""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional, Union

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")

Number = Union[Decimal, int, float, str]


def to_decimal(value: Optional[Number]) -> Optional[Decimal]:
    """Convert input to Decimal without rounding (floats go through str)."""
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def to_money(value: Optional[Number]) -> Decimal:
    """Convert input to a Decimal amount rounded to cents."""
    if value is None:
        return ZERO
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def calculate_line_total(quantity: Number, unit_price: Number) -> Decimal:
    """Line total excluding VAT: quantity x unit price."""
    return to_money(to_decimal(quantity) * to_decimal(unit_price))


def calculate_subtotal(lines: Iterable) -> Decimal:
    """Sum of line totals for included lines."""
    return to_money(sum(
        (line.line_total_excl_vat for line in lines if getattr(line, "is_included", True)),
        ZERO,
    ))


def calculate_discount_amount(subtotal: Decimal, discount_percent: Optional[Number]) -> Decimal:
    if not discount_percent or to_decimal(discount_percent) <= 0:
        return ZERO
    return to_money(subtotal * to_decimal(discount_percent) / HUNDRED)


def calculate_vat_amount(total_excl_vat: Decimal, vat_rate: Number) -> Decimal:
    return to_money(total_excl_vat * to_decimal(vat_rate) / HUNDRED)


@dataclass(frozen=True)
class PricingTotals:
    """Derived totals for a set of priced lines."""
    subtotal_excl_vat: Decimal
    discount_amount: Decimal
    total_excl_vat: Decimal
    vat_amount: Decimal
    total_incl_vat: Decimal


def calculate_totals(
    lines: Iterable,
    discount_percent: Optional[Number],
    vat_rate: Number,
) -> PricingTotals:
    """
    Calculate all totals for a configuration or a quote.

    Args:
        lines: Objects exposing line_total_excl_vat (and optionally is_included)
        discount_percent: Discount percentage (0-100) or None
        vat_rate: VAT rate in percent (e.g. 21)

    Returns:
        PricingTotals with every derived amount
    """
    subtotal = calculate_subtotal(lines)
    discount_amount = calculate_discount_amount(subtotal, discount_percent)
    total_excl_vat = to_money(subtotal - discount_amount)
    vat_amount = calculate_vat_amount(total_excl_vat, vat_rate)
    return PricingTotals(
        subtotal_excl_vat=subtotal,
        discount_amount=discount_amount,
        total_excl_vat=total_excl_vat,
        vat_amount=vat_amount,
        total_incl_vat=to_money(total_excl_vat + vat_amount),
    )
