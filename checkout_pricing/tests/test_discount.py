"""
Tests: Discount math and display helpers.

Run with:
    pytest checkout_pricing/tests/test_discount.py -v
"""

from decimal import Decimal

import pytest

from checkout_pricing.models.enums import DiscountType
from checkout_pricing.models.errors import InvalidDiscountType
from checkout_pricing.models.schemas import FixedDiscount, PercentageDiscount
from checkout_pricing.pricing.discount import (
    actual_discount_percentage,
    apply_discount,
    calculate_discount,
    format_discount_amount,
    format_price,
    percentage_of,
)


class TestCalculateDiscount:
    def test_percentage(self):
        calc = calculate_discount(10000, "percentage", 20)
        assert calc.original_price == 10000
        assert calc.discount_amount == 2000
        assert calc.final_price == 8000
        assert calc.discount_type == DiscountType.PERCENTAGE

    def test_fixed_larger_than_price_is_clamped(self):
        calc = calculate_discount(10000, "fixed", 15000)
        assert calc.discount_amount == 15000
        assert calc.final_price == 0

    def test_fixed_within_price(self):
        calc = calculate_discount(10000, DiscountType.FIXED, 500)
        assert calc.discount_amount == 500
        assert calc.final_price == 9500

    def test_percentage_rounds_up_fraction(self):
        # 999 * 15% = 149.85
        calc = calculate_discount(999, "percentage", 15)
        assert calc.discount_amount == 150
        assert calc.final_price == 849

    def test_percentage_rounds_up_below_half(self):
        # 1001 * 12.5% = 125.125
        calc = calculate_discount(1001, "percentage", "12.5")
        assert calc.discount_amount == 126
        assert calc.final_price == 875

    def test_percentage_ten_percent_of_odd_price(self):
        # 1001 * 10% = 100.1
        calc = calculate_discount(1001, "percentage", 10)
        assert calc.discount_amount == 101
        assert calc.final_price == 900

    def test_float_values_do_not_drift(self):
        a = calculate_discount(3333, "percentage", 0.1 + 0.2)
        b = calculate_discount(3333, "percentage", 0.1 + 0.2)
        assert a == b
        assert a.final_price + a.discount_amount == 3333

    def test_max_discount_cap(self):
        calc = calculate_discount(10000, "percentage", 50, max_discount_amount=1000)
        assert calc.discount_amount == 1000
        assert calc.final_price == 9000

    def test_zero_price(self):
        calc = calculate_discount(0, "percentage", 20)
        assert calc.discount_amount == 0
        assert calc.final_price == 0

    def test_invalid_type_raises(self):
        with pytest.raises(InvalidDiscountType):
            calculate_discount(10000, "bogo", 10)

    def test_apply_typed_descriptor(self):
        calc = apply_discount(10000, FixedDiscount(value=Decimal(2500)))
        assert calc.final_price == 7500


class TestHelpers:
    def test_percentage_of_rounds_up(self):
        assert percentage_of(9999, 10) == 1000
        assert percentage_of(10000, 10) == 1000
        assert percentage_of(10000, 0) == 0

    def test_actual_discount_percentage(self):
        assert actual_discount_percentage(10000, 8000) == 20
        assert actual_discount_percentage(3000, 2000) == 34
        assert actual_discount_percentage(0, 0) == 0

    def test_format_price(self):
        assert format_price(123450) == "$1,234.50"
        assert format_price(500, "EUR") == "€5.00"

    def test_format_discount_amount(self):
        assert format_discount_amount(PercentageDiscount(value=Decimal(20))) == "20% OFF"
        assert format_discount_amount(PercentageDiscount(value=Decimal("12.50"))) == "12.5% OFF"
        assert format_discount_amount(FixedDiscount(value=Decimal(500))) == "$5.00 OFF"
