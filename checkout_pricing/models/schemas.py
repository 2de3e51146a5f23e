"""
Data schemas for the checkout pricing core.

Catalog records (programs, tiers, coupons) are read-only snapshots handed
to the core by the repositories. Money is stored as integer minor units
(cents); discount values and percentages are Decimals.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from decimal import Decimal
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

from .enums import (
    CouponStatus,
    DiscountType,
    ProgramCategory,
    PurchaseType,
    ResetProductType,
)


_SIZE_NOISE = re.compile(r"[\s$,]")


def normalize_account_size(size: str) -> str:
    """'$10,000 ' -> '10000', '10k' -> '10K'."""
    return _SIZE_NOISE.sub("", size or "").upper()


def _as_utc(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ── Catalog: programs ────────────────────────────────────


class PricingTier(BaseModel):
    """A priced account-size option within a program."""
    id: str
    account_size: str
    price: Optional[int] = Field(default=None, ge=0)
    reset_fee: Optional[int] = Field(default=None, ge=0)
    reset_fee_funded: Optional[int] = Field(default=None, ge=0)

    @property
    def normalized_size(self) -> str:
        return normalize_account_size(self.account_size)


class Program(BaseModel):
    id: str
    name: str = ""
    category: ProgramCategory = ProgramCategory.STEP_1
    pricing_tiers: list[PricingTier] = []
    activation_fee_value: Optional[int] = Field(default=None, ge=0)

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, v: Any) -> str:
        return str(v)


# ── Catalog: coupons ─────────────────────────────────────


class PercentageDiscount(BaseModel):
    type: Literal["percentage"] = "percentage"
    value: Decimal = Field(ge=0, le=100)


class FixedDiscount(BaseModel):
    type: Literal["fixed"] = "fixed"
    value: Decimal = Field(ge=0)  # same minor unit as the prices


Discount = Annotated[Union[PercentageDiscount, FixedDiscount], Field(discriminator="type")]


class UrlParamTrigger(BaseModel):
    """Coupon only applies when the checkout URL carries this parameter."""
    name: str
    value: Optional[str] = None  # None = any value


class AffiliateAttribution(BaseModel):
    affiliate_id: str
    affiliate_email: Optional[str] = None
    affiliate_username: Optional[str] = None


class Coupon(BaseModel):
    """A discount instrument, applied by explicit code or automatically."""
    code: str
    name: str = ""
    status: CouponStatus = CouponStatus.ACTIVE
    valid_from: datetime
    valid_to: Optional[datetime] = None
    discount: Optional[Discount] = None  # None = malformed, never applied
    account_size_discounts: dict[str, Decimal] = {}

    # Eligibility scope (empty = unrestricted)
    applicable_programs: list[str] = []
    excluded_programs: list[str] = []
    account_sizes: list[str] = []
    allowed_emails: list[str] = []
    allowed_user_ids: list[str] = []
    url_param_trigger: Optional[UrlParamTrigger] = None
    first_visit_only: bool = False

    # Auto-apply behaviour
    auto_apply: bool = False
    auto_apply_message: str = ""
    prevent_manual_entry: bool = False

    # Usage limits (0 = unlimited)
    total_usage_limit: int = 0
    usage_per_user: int = 0
    times_used: int = 0

    affiliate: Optional[AffiliateAttribution] = None

    @field_validator("code")
    @classmethod
    def _canonical_code(cls, v: str) -> str:
        return v.strip().upper()

    @field_validator("valid_from", "valid_to")
    @classmethod
    def _aware(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(v)

    @field_validator("applicable_programs", "excluded_programs", mode="before")
    @classmethod
    def _stringify_programs(cls, v: Any) -> list[str]:
        return [str(p) for p in (v or [])]

    @field_validator("account_sizes")
    @classmethod
    def _normalize_sizes(cls, v: list[str]) -> list[str]:
        return [normalize_account_size(s) for s in v]

    @field_validator("account_size_discounts")
    @classmethod
    def _normalize_size_keys(cls, v: dict[str, Decimal]) -> dict[str, Decimal]:
        return {normalize_account_size(k): val for k, val in v.items()}

    @field_validator("allowed_emails")
    @classmethod
    def _lower_emails(cls, v: list[str]) -> list[str]:
        return [e.strip().lower() for e in v]

    @property
    def scope_dimensions(self) -> int:
        """Number of declared scope constraints (higher = more specific)."""
        return sum([
            bool(self.applicable_programs or self.excluded_programs),
            bool(self.account_sizes),
            bool(self.allowed_emails or self.allowed_user_ids),
            self.url_param_trigger is not None,
            self.first_visit_only,
        ])


# ── Coupon resolution ────────────────────────────────────


class CouponContext(BaseModel):
    """Everything a coupon's eligibility rules may look at."""
    program_id: str
    account_size: str
    order_amount: int = Field(ge=0)
    url_params: dict[str, str] = {}
    user_id: Optional[str] = None
    user_email: Optional[str] = None
    is_first_visit: bool = False
    bound_affiliate_id: Optional[str] = None
    customer_usage: dict[str, int] = {}  # coupon code -> times used by this customer

    @field_validator("program_id", mode="before")
    @classmethod
    def _stringify_id(cls, v: Any) -> str:
        return str(v)


class SelectedCoupon(BaseModel):
    """A coupon that passed eligibility, with its effective discount."""
    code: str
    discount: Discount
    discount_amount: int  # against the context's order amount
    scope_dimensions: int = 0
    valid_from: datetime
    message: str = ""
    affiliate: Optional[AffiliateAttribution] = None


class CouponResolution(BaseModel):
    found: bool = False
    coupon: Optional[SelectedCoupon] = None
    rejections: dict[str, list[str]] = {}  # code -> failed rule details


# ── Discount calculation ─────────────────────────────────


class DiscountCalculation(BaseModel):
    original_price: int
    discount_amount: int
    final_price: int
    discount_type: DiscountType
    discount_value: Decimal


# ── Checkout ─────────────────────────────────────────────


class AddOnSelection(BaseModel):
    add_on_id: str
    price_increase_percentage: Decimal = Field(default=Decimal(0), ge=0, le=100)
    metadata: dict[str, Any] = {}


class CheckoutRequest(BaseModel):
    program_id: str
    account_size: str
    tier_id: Optional[str] = None
    selected_add_ons: list[AddOnSelection] = []
    coupon_code: Optional[str] = None
    purchase_type: PurchaseType = PurchaseType.ORIGINAL_ORDER
    reset_product_type: Optional[ResetProductType] = None
    user_email: Optional[str] = None
    user_id: Optional[str] = None
    url_params: dict[str, str] = {}
    is_first_visit: bool = False
    bound_affiliate_id: Optional[str] = None

    @field_validator("program_id", mode="before")
    @classmethod
    def _stringify_id(cls, v: Any) -> str:
        return str(v)


class CouponDetails(BaseModel):
    code: str
    discount_type: DiscountType
    discount_value: Decimal
    affiliate: Optional[AffiliateAttribution] = None


class CheckoutPriceCalculationResult(BaseModel):
    """The authoritative price breakdown for one checkout."""
    tier_price: int
    original_price: int
    applied_discount: int = 0
    final_purchase_price: int
    add_on_value: int = 0
    total_price: int
    coupon_valid: bool = False
    coupon_details: Optional[CouponDetails] = None
    explicit_coupon_rejected_reason: Optional[str] = None


class PriceVerification(BaseModel):
    """Server recalculation compared against a client-submitted total."""
    result: CheckoutPriceCalculationResult
    client_total: Optional[int] = None
    difference: int = 0  # server - client
    matches: bool = True
    quote_hash: str = ""
