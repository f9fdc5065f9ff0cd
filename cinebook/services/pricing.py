"""
Booking price derivation

All arithmetic is Decimal. Each derived field is rounded exactly once, to the
cent, with banker's rounding, so fee and tax never compound rounding error.
"""

from decimal import Decimal, ROUND_HALF_EVEN
from typing import Iterable, Union

from cinebook.schemas.booking import PricingBreakdown

CENT = Decimal("0.01")
HUNDRED = Decimal("100")

Money = Union[Decimal, int, str]


def to_decimal(value: Money) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        # floats are never valid money; go through str to avoid binary artifacts
        return Decimal(str(value))
    return Decimal(value)


def round_currency(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_EVEN)


def calculate_pricing(
    prices: Iterable[Money],
    convenience_fee_percent: Money,
    tax_percent: Money
) -> PricingBreakdown:
    """
    subtotal = sum of seat prices
    fee      = subtotal * fee%
    tax      = (subtotal + fee) * tax%
    total    = subtotal + fee + tax
    """
    subtotal = round_currency(sum((to_decimal(p) for p in prices), Decimal("0")))
    convenience_fee = round_currency(subtotal * to_decimal(convenience_fee_percent) / HUNDRED)
    tax = round_currency((subtotal + convenience_fee) * to_decimal(tax_percent) / HUNDRED)
    return PricingBreakdown(
        subtotal=subtotal,
        convenience_fee=convenience_fee,
        tax=tax,
        total=subtotal + convenience_fee + tax,
    )
