"""
Checkout Price Calculator — the server-side source of truth for prices.

Resolves the tier, the base price for the purchase type, add-on surcharges
and the coupon (explicit code first, best automatic coupon otherwise), and
returns one complete CheckoutPriceCalculationResult.

Every read happens once, concurrently, at the start of a calculation;
the rest is pure computation over that snapshot. Calling it twice with the
same input, catalog and clock gives the same result, so the same code path
prices a checkout and verifies a client-submitted total.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from checkout_pricing.config import get_settings
from checkout_pricing.models.enums import PurchaseType, ResetProductType
from checkout_pricing.models.errors import (
    FeeNotConfiguredError,
    ProgramNotFoundError,
    TierNotFoundError,
)
from checkout_pricing.models.schemas import (
    CheckoutPriceCalculationResult,
    CheckoutRequest,
    Coupon,
    CouponContext,
    CouponDetails,
    CouponResolution,
    PriceVerification,
    PricingTier,
    Program,
    SelectedCoupon,
    normalize_account_size,
)
from checkout_pricing.persistence.repositories import CouponRepository, ProgramRepository
from checkout_pricing.pricing.coupon_rules import CouponRules
from checkout_pricing.pricing.discount import apply_discount, percentage_of
from checkout_pricing.utils.hashing import sha256_hash

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Pure steps ───────────────────────────────────────────


def resolve_tier(program: Program, account_size: str, tier_id: Optional[str] = None) -> PricingTier:
    """Match by tier id first, then by normalized account size."""
    if tier_id:
        for tier in program.pricing_tiers:
            if tier.id == tier_id:
                return tier

    target = normalize_account_size(account_size)
    for tier in program.pricing_tiers:
        if tier.normalized_size == target:
            return tier

    raise TierNotFoundError(program.id, account_size, tier_id)


def resolve_base_price(
    program: Program,
    tier: PricingTier,
    purchase_type: PurchaseType,
    reset_product_type: Optional[ResetProductType] = None,
) -> int:
    """Base price for the purchase type. A missing or zero fee is not configured."""
    if purchase_type == PurchaseType.RESET_ORDER:
        if reset_product_type == ResetProductType.FUNDED and tier.reset_fee_funded:
            return tier.reset_fee_funded
        if tier.reset_fee:
            return tier.reset_fee
        raise FeeNotConfiguredError("reset", program.id, tier.account_size)

    if purchase_type == PurchaseType.ACTIVATION_ORDER:
        if not program.activation_fee_value:
            raise FeeNotConfiguredError("activation", program.id)
        return program.activation_fee_value

    if not tier.price:
        raise FeeNotConfiguredError("original-order", program.id, tier.account_size)
    return tier.price


def calculate_add_on_value(base_price: int, add_ons) -> int:
    """Sum of independent percentage surcharges on the base price."""
    return sum(percentage_of(base_price, a.price_increase_percentage) for a in add_ons)


def build_result(
    base_price: int,
    add_on_value: int,
    coupon: Optional[SelectedCoupon] = None,
    rejected_reason: Optional[str] = None,
) -> CheckoutPriceCalculationResult:
    """Assemble the breakdown, applying `coupon` to the base price if given."""
    final_price = base_price
    applied_discount = 0
    details = None

    if coupon is not None:
        calc = apply_discount(base_price, coupon.discount)
        final_price = calc.final_price
        applied_discount = base_price - final_price
        details = CouponDetails(
            code=coupon.code,
            discount_type=calc.discount_type,
            discount_value=calc.discount_value,
            affiliate=coupon.affiliate,
        )

    return CheckoutPriceCalculationResult(
        tier_price=base_price,
        original_price=base_price,
        applied_discount=applied_discount,
        final_purchase_price=final_price,
        add_on_value=add_on_value,
        total_price=final_price + add_on_value,
        coupon_valid=coupon is not None,
        coupon_details=details,
        explicit_coupon_rejected_reason=rejected_reason,
    )


def _coupon_context(
    request: CheckoutRequest, program: Program, base_price: int, usage: dict[str, int]
) -> CouponContext:
    return CouponContext(
        program_id=program.id,
        account_size=request.account_size,
        order_amount=base_price,
        url_params=request.url_params,
        user_id=request.user_id,
        user_email=request.user_email,
        is_first_visit=request.is_first_visit,
        bound_affiliate_id=request.bound_affiliate_id,
        customer_usage=usage,
    )


def quote_hash(result: CheckoutPriceCalculationResult) -> str:
    """Stable fingerprint of a result, for comparing recalculations."""
    return sha256_hash(result.model_dump_json())


# ── Orchestrator ─────────────────────────────────────────


class CheckoutPriceCalculator:
    """
    Prices checkout requests against injected program / coupon repositories.
    The clock is injectable so tests (and verification replays) are deterministic.
    """

    def __init__(
        self,
        programs: ProgramRepository,
        coupons: CouponRepository,
        rules: Optional[CouponRules] = None,
        clock: Optional[Clock] = None,
        auto_apply_limit: Optional[int] = None,
    ):
        self.programs = programs
        self.coupons = coupons
        self.rules = rules or CouponRules()
        self.clock = clock or _utcnow
        if auto_apply_limit is None:
            auto_apply_limit = get_settings().auto_apply_limit
        self.auto_apply_limit = auto_apply_limit

    async def _load_snapshot(
        self, request: CheckoutRequest, now: datetime
    ) -> tuple[Optional[Program], Optional[Coupon], list[Coupon], dict[str, int]]:
        """Fetch everything the calculation needs in one concurrent round."""
        wants_coupons = request.purchase_type == PurchaseType.ORIGINAL_ORDER
        code = (request.coupon_code or "").strip()
        # 0 disables auto-apply; pymongo would read limit(0) as "no limit"
        wants_auto = wants_coupons and self.auto_apply_limit > 0

        async def _none():
            return None

        async def _empty_list():
            return []

        async def _empty_usage():
            return {}

        program, explicit, catalog, usage = await asyncio.gather(
            self.programs.get_program(request.program_id),
            self.coupons.get_by_code(code) if wants_coupons and code else _none(),
            self.coupons.list_auto_apply_coupons(self.auto_apply_limit, now) if wants_auto else _empty_list(),
            self.coupons.get_customer_usage(request.user_email)
            if wants_coupons and request.user_email else _empty_usage(),
        )
        return program, explicit, catalog, usage

    async def calculate(self, request: CheckoutRequest) -> CheckoutPriceCalculationResult:
        """Compute the authoritative price breakdown for `request`."""
        now = self.clock()
        program, explicit, catalog, usage = await self._load_snapshot(request, now)

        if program is None:
            raise ProgramNotFoundError(request.program_id, request.account_size)

        tier = resolve_tier(program, request.account_size, request.tier_id)
        base_price = resolve_base_price(
            program, tier, request.purchase_type, request.reset_product_type
        )
        add_on_value = calculate_add_on_value(base_price, request.selected_add_ons)

        # Reset and activation fees never take coupons
        if request.purchase_type != PurchaseType.ORIGINAL_ORDER:
            return build_result(base_price, add_on_value)

        context = _coupon_context(request, program, base_price, usage)

        selected, rejected_reason = self._apply_explicit_code(request, explicit, context, now)
        if selected is None:
            resolution = self.rules.resolve_best_coupon(context, catalog, now)
            selected = resolution.coupon

        return build_result(base_price, add_on_value, selected, rejected_reason)

    def _apply_explicit_code(
        self,
        request: CheckoutRequest,
        coupon: Optional[Coupon],
        context: CouponContext,
        now: datetime,
    ) -> tuple[Optional[SelectedCoupon], Optional[str]]:
        """
        Validate the customer's code. A bad code never fails the checkout;
        it returns the reason and the caller falls back to auto-apply.
        """
        code = (request.coupon_code or "").strip().upper()
        if not code:
            return None, None

        if coupon is None:
            logger.info(f"Coupon {code} not found, falling back to auto-apply")
            return None, "Invalid coupon code"

        violations = self.rules.check_coupon(coupon, context, now, manual_entry=True)
        if violations:
            reason = violations[0]["detail"]
            logger.info(f"Coupon {code} rejected ({violations[0]['rule']}), falling back to auto-apply")
            return None, reason

        return self.rules.select(coupon, context), None

    async def preview_auto_coupon(self, request: CheckoutRequest) -> CouponResolution:
        """
        Best automatic coupon for a new order, ignoring any explicit code.
        Used to show the discount before the customer enters anything.
        """
        now = self.clock()
        auto_request = request.model_copy(
            update={"coupon_code": None, "purchase_type": PurchaseType.ORIGINAL_ORDER}
        )
        program, _, catalog, usage = await self._load_snapshot(auto_request, now)
        if program is None:
            raise ProgramNotFoundError(request.program_id, request.account_size)

        tier = resolve_tier(program, request.account_size, request.tier_id)
        base_price = resolve_base_price(program, tier, PurchaseType.ORIGINAL_ORDER)
        context = _coupon_context(auto_request, program, base_price, usage)
        return self.rules.resolve_best_coupon(context, catalog, now)

    async def verify_price(
        self,
        request: CheckoutRequest,
        client_total: Optional[int],
        tolerance: Optional[int] = None,
    ) -> PriceVerification:
        """
        Recalculate and compare against what the client submitted.
        The server result always wins; a mismatch is only reported.
        """
        if tolerance is None:
            tolerance = get_settings().price_tolerance

        result = await self.calculate(request)
        difference = 0 if client_total is None else result.total_price - client_total
        matches = abs(difference) <= tolerance

        if not matches:
            logger.error(
                f"Price manipulation suspected for program {request.program_id} "
                f"({request.account_size}): server={result.total_price} "
                f"client={client_total} diff={difference}"
            )

        return PriceVerification(
            result=result,
            client_total=client_total,
            difference=difference,
            matches=matches,
            quote_hash=quote_hash(result),
        )


async def calculate_checkout_prices(
    request: CheckoutRequest,
    programs: ProgramRepository,
    coupons: CouponRepository,
    clock: Optional[Clock] = None,
) -> CheckoutPriceCalculationResult:
    """Functional entry point: one-off calculation with the given repositories."""
    return await CheckoutPriceCalculator(programs, coupons, clock=clock).calculate(request)
