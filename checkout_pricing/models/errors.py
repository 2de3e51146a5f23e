"""
Pricing errors.

Genuine misconfiguration (missing tier, missing fee) is raised to the caller.
Coupon problems are not errors at checkout time; they degrade to a smaller
or no discount.
"""

from __future__ import annotations


class PricingError(Exception):
    """Base class for errors that reject a checkout price calculation."""


class TierNotFoundError(PricingError):
    """No pricing tier matches the requested program / account size / tier id."""

    def __init__(self, program_id: str, account_size: str, tier_id: str | None = None):
        self.program_id = program_id
        self.account_size = account_size
        self.tier_id = tier_id
        detail = f"Could not find pricing tier for program {program_id} and account size {account_size}"
        if tier_id:
            detail += f" (tier {tier_id})"
        super().__init__(detail)


class ProgramNotFoundError(TierNotFoundError):
    """The program itself does not exist, so no tier can match."""

    def __init__(self, program_id: str, account_size: str = ""):
        super().__init__(program_id, account_size)
        self.args = (f"Program {program_id} not found",)


class FeeNotConfiguredError(PricingError):
    """The fee for the requested purchase type is missing on the tier/program."""

    def __init__(self, purchase_type: str, program_id: str, account_size: str = ""):
        self.purchase_type = purchase_type
        self.program_id = program_id
        self.account_size = account_size
        where = f"program {program_id}"
        if account_size:
            where += f" and account size {account_size}"
        super().__init__(f"No {purchase_type} fee configured for {where}")


class InvalidDiscountType(PricingError):
    """A coupon carries a discount type other than percentage / fixed."""

    def __init__(self, discount_type: object, code: str = ""):
        self.discount_type = discount_type
        self.code = code
        suffix = f" on coupon {code}" if code else ""
        super().__init__(f"Invalid discount type: {discount_type!r}{suffix}")
