"""
Discount Calculator — maps (price, discount type, value) to a final price.

All arithmetic runs on Decimal; results are whole minor units.
Percentage discounts and surcharges round up; fixed amounts round half-up.
"""

from __future__ import annotations

from decimal import ROUND_CEILING, ROUND_HALF_UP, Decimal
from typing import Optional, Union

from checkout_pricing.models.enums import DiscountType
from checkout_pricing.models.errors import InvalidDiscountType
from checkout_pricing.models.schemas import Discount, DiscountCalculation

HUNDRED = Decimal(100)
_ONE = Decimal(1)

_CURRENCY_SYMBOLS = {"USD": "$", "EUR": "€", "GBP": "£"}

Number = Union[int, float, str, Decimal]


def to_decimal(value: Number) -> Decimal:
    """Exact Decimal for ints/strings, shortest-repr Decimal for floats."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


def round_up(amount: Decimal) -> int:
    return int(amount.quantize(_ONE, rounding=ROUND_CEILING))


def round_half_up(amount: Decimal) -> int:
    return int(amount.quantize(_ONE, rounding=ROUND_HALF_UP))


def percentage_of(amount: int, percentage: Number) -> int:
    """Surcharge of `percentage`% on `amount`, rounded up to a whole unit."""
    return round_up(Decimal(amount) * to_decimal(percentage) / HUNDRED)


def parse_discount_type(discount_type: Union[str, DiscountType], code: str = "") -> DiscountType:
    try:
        return DiscountType(discount_type)
    except ValueError:
        raise InvalidDiscountType(discount_type, code) from None


def calculate_discount(
    original_price: int,
    discount_type: Union[str, DiscountType],
    discount_value: Number,
    max_discount_amount: Optional[int] = None,
) -> DiscountCalculation:
    """
    Apply a single discount to `original_price`.

    Percentage: discount = round_up(price * value / 100).
    Fixed: discount = value, reported at face value even when it exceeds
    the price; the final price is clamped at 0.
    Raises InvalidDiscountType for anything but percentage / fixed.
    """
    dtype = parse_discount_type(discount_type)
    price = Decimal(original_price)
    value = to_decimal(discount_value)

    if dtype is DiscountType.PERCENTAGE:
        discount_amount = round_up(price * value / HUNDRED)
    else:
        discount_amount = round_half_up(value)

    if max_discount_amount is not None and max_discount_amount > 0:
        discount_amount = min(discount_amount, max_discount_amount)
    discount_amount = max(discount_amount, 0)

    final_price = max(0, original_price - discount_amount)

    return DiscountCalculation(
        original_price=original_price,
        discount_amount=discount_amount,
        final_price=final_price,
        discount_type=dtype,
        discount_value=value,
    )


def apply_discount(
    original_price: int,
    discount: Discount,
    max_discount_amount: Optional[int] = None,
) -> DiscountCalculation:
    """calculate_discount() for a typed discount descriptor."""
    return calculate_discount(original_price, discount.type, discount.value, max_discount_amount)


def actual_discount_percentage(original_price: int, final_price: int) -> int:
    """Effective percentage off, rounded up. 0 for a zero price."""
    if original_price == 0:
        return 0
    saved = Decimal(original_price - final_price)
    return round_up(saved / Decimal(original_price) * HUNDRED)


# ── Display helpers ──────────────────────────────────────


def format_price(amount: int, currency: str = "USD") -> str:
    """Minor units -> '$1,234.50'."""
    symbol = _CURRENCY_SYMBOLS.get(currency.upper(), "$")
    major = Decimal(amount) / HUNDRED
    return f"{symbol}{major:,.2f}"


def format_discount_amount(discount: Discount, currency: str = "USD") -> str:
    if discount.type == DiscountType.PERCENTAGE.value:
        return f"{discount.value.normalize():f}% OFF"
    return f"{format_price(round_half_up(discount.value), currency)} OFF"
