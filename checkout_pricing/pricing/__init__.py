"""
Pricing core — discount math, coupon eligibility and the checkout orchestrator.

HTTP handlers and the CLI import from here:
    from checkout_pricing.pricing import CheckoutPriceCalculator
"""

from .discount import calculate_discount, apply_discount
from .coupon_rules import CouponRules, resolve_best_coupon
from .checkout_calculator import CheckoutPriceCalculator, calculate_checkout_prices

__all__ = [
    "calculate_discount",
    "apply_discount",
    "CouponRules",
    "resolve_best_coupon",
    "CheckoutPriceCalculator",
    "calculate_checkout_prices",
]
