"""
Coupon Rules — eligibility checks and best-coupon selection.

Pure filtering over a catalog snapshot supplied by the caller; nothing here
reads a database or the wall clock unless `now` is omitted.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Iterable, Optional

from checkout_pricing.models.enums import CouponStatus
from checkout_pricing.models.schemas import (
    Coupon,
    CouponContext,
    CouponResolution,
    Discount,
    SelectedCoupon,
    normalize_account_size,
)
from checkout_pricing.pricing.discount import apply_discount

logger = logging.getLogger(__name__)


class CouponRules:
    """Validity, scope and usage rules for coupons."""

    def check_coupon(
        self,
        coupon: Coupon,
        context: CouponContext,
        now: datetime,
        manual_entry: bool = False,
    ) -> list[dict[str, Any]]:
        """
        Check a coupon against a checkout context.
        Returns list of violations: {rule, detail}. Empty = eligible.
        """
        violations: list[dict[str, Any]] = []

        def fail(rule: str, detail: str) -> None:
            violations.append({"rule": rule, "detail": detail})

        # ── Descriptor ───────────────────────────────────
        if coupon.discount is None:
            fail("missing_discount", f"Coupon {coupon.code} has no discount configured")

        # ── Status & validity window ─────────────────────
        if coupon.status != CouponStatus.ACTIVE:
            fail("inactive", "This coupon is not active")
        if now < coupon.valid_from:
            fail("not_yet_valid", "This coupon is not yet valid")
        if coupon.valid_to is not None and now > coupon.valid_to:
            fail("expired", "This coupon has expired")

        # ── Manual entry ─────────────────────────────────
        if manual_entry and coupon.auto_apply and coupon.prevent_manual_entry:
            fail("manual_entry_blocked", "This coupon code cannot be entered manually")

        # ── Program scope ────────────────────────────────
        if coupon.applicable_programs and context.program_id not in coupon.applicable_programs:
            fail("program_not_applicable", "This coupon is not valid for the selected program")
        if context.program_id in coupon.excluded_programs:
            fail("program_excluded", "This coupon cannot be used with the selected program")

        # ── Account-size scope ───────────────────────────
        if coupon.account_sizes:
            if normalize_account_size(context.account_size) not in coupon.account_sizes:
                fail("account_size_not_applicable", "This coupon is not valid for the selected account size")

        # ── User scope ───────────────────────────────────
        if coupon.allowed_emails or coupon.allowed_user_ids:
            email = (context.user_email or "").strip().lower()
            allowed = (email and email in coupon.allowed_emails) or (
                context.user_id is not None and context.user_id in coupon.allowed_user_ids
            )
            if not allowed:
                fail("user_not_allowed", "This coupon is not available for your account")

        # ── Triggers ─────────────────────────────────────
        trigger = coupon.url_param_trigger
        if trigger is not None:
            present = trigger.name in context.url_params
            if not present or (trigger.value is not None and context.url_params[trigger.name] != trigger.value):
                fail("url_param_missing", f"This coupon requires the '{trigger.name}' link parameter")
        if coupon.first_visit_only and not context.is_first_visit:
            fail("first_visit_only", "This coupon is only available on your first visit")

        # ── Affiliate binding ────────────────────────────
        if coupon.affiliate and context.bound_affiliate_id:
            if str(context.bound_affiliate_id) != str(coupon.affiliate.affiliate_id):
                fail(
                    "affiliate_mismatch",
                    "This coupon is not applicable as you are bound to another affiliate.",
                )

        # ── Usage limits ─────────────────────────────────
        if coupon.total_usage_limit > 0 and coupon.times_used >= coupon.total_usage_limit:
            fail("usage_limit_reached", "This coupon has reached its usage limit")
        if coupon.usage_per_user > 0 and context.user_email:
            used = context.customer_usage.get(coupon.code, 0)
            if used >= coupon.usage_per_user:
                fail(
                    "user_usage_limit_reached",
                    "You have already used this coupon the maximum number of times",
                )

        return violations

    def effective_discount(self, coupon: Coupon, account_size: str) -> Optional[Discount]:
        """The coupon's discount, with any per-account-size override applied."""
        if coupon.discount is None:
            return None
        override: Optional[Decimal] = coupon.account_size_discounts.get(
            normalize_account_size(account_size)
        )
        if override is None:
            return coupon.discount
        return coupon.discount.model_copy(update={"value": override})

    def select(self, coupon: Coupon, context: CouponContext) -> SelectedCoupon:
        """Price an eligible coupon against the context's order amount."""
        discount = self.effective_discount(coupon, context.account_size)
        calc = apply_discount(context.order_amount, discount)
        return SelectedCoupon(
            code=coupon.code,
            discount=discount,
            discount_amount=min(calc.discount_amount, context.order_amount),
            scope_dimensions=coupon.scope_dimensions,
            valid_from=coupon.valid_from,
            message=coupon.auto_apply_message,
            affiliate=coupon.affiliate,
        )

    def resolve_best_coupon(
        self,
        context: CouponContext,
        catalog: Iterable[Coupon],
        now: Optional[datetime] = None,
    ) -> CouponResolution:
        """
        Pick the single best eligible coupon from `catalog`.

        Order: largest discount against the order amount, then most
        specific scope, then earliest valid_from, then code.
        """
        now = now or datetime.now(timezone.utc)
        candidates: list[SelectedCoupon] = []
        rejections: dict[str, list[str]] = {}

        for coupon in catalog:
            violations = self.check_coupon(coupon, context, now)
            if violations:
                rejections[coupon.code] = [v["detail"] for v in violations]
                continue
            candidates.append(self.select(coupon, context))

        if not candidates:
            logger.debug(f"No eligible coupon among {len(rejections)} checked")
            return CouponResolution(found=False, rejections=rejections)

        best = min(
            candidates,
            key=lambda c: (-c.discount_amount, -c.scope_dimensions, c.valid_from, c.code),
        )
        logger.info(
            f"Auto-selected coupon {best.code} "
            f"(discount {best.discount_amount} on {context.order_amount}, "
            f"{len(candidates)} candidates)"
        )
        return CouponResolution(found=True, coupon=best, rejections=rejections)


def resolve_best_coupon(
    context: CouponContext,
    catalog: Iterable[Coupon],
    now: Optional[datetime] = None,
) -> CouponResolution:
    """Module-level shortcut for CouponRules().resolve_best_coupon()."""
    return CouponRules().resolve_best_coupon(context, catalog, now)
