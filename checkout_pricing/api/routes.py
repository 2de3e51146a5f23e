"""
API routes — thin HTTP layer over the pricing core.

Routes:
  GET  /health                  → API health check
  POST /api/checkout/price      → Authoritative price breakdown
  POST /api/checkout/verify     → Recalculate and compare with a client total
  POST /api/coupons/resolve     → Best automatic coupon for a selection
  GET  /api/audit/mismatches    → Recorded client/server price mismatches
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from checkout_pricing.api.dependencies import get_audit_service, get_calculator
from checkout_pricing.models.errors import PricingError
from checkout_pricing.models.schemas import (
    CheckoutPriceCalculationResult,
    CheckoutRequest,
    CouponResolution,
    PriceVerification,
)
from checkout_pricing.pricing import CheckoutPriceCalculator
from checkout_pricing.services import PriceAuditService

logger = logging.getLogger(__name__)

# ── Routers ──────────────────────────────────────────────
health_router = APIRouter()
checkout_router = APIRouter()
coupon_router = APIRouter()
audit_router = APIRouter()


# ── Request schemas ──────────────────────────────────────
class VerifyRequest(BaseModel):
    checkout: CheckoutRequest
    client_total: Optional[int] = None


def _client_error(e: PricingError) -> HTTPException:
    logger.warning(f"Rejected checkout pricing: {e}")
    return HTTPException(status_code=400, detail=str(e))


# ── Health ───────────────────────────────────────────────

@health_router.get("/health")
async def health_check():
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


# ── Checkout pricing ─────────────────────────────────────

@checkout_router.post("/price", response_model=CheckoutPriceCalculationResult)
async def price_checkout(
    body: CheckoutRequest,
    calculator: CheckoutPriceCalculator = Depends(get_calculator),
):
    try:
        result = await calculator.calculate(body)
    except PricingError as e:
        raise _client_error(e)

    logger.info(
        f"Priced {body.program_id}/{body.account_size} ({body.purchase_type.value}): "
        f"total={result.total_price} coupon="
        f"{result.coupon_details.code if result.coupon_details else 'none'}"
    )
    return result


@checkout_router.post("/verify", response_model=PriceVerification)
async def verify_checkout(
    body: VerifyRequest,
    calculator: CheckoutPriceCalculator = Depends(get_calculator),
    audit: PriceAuditService = Depends(get_audit_service),
):
    """
    Recalculate server-side and compare with the client's total.
    A mismatch is recorded and reported, never used: the server price wins.
    """
    try:
        verification = await calculator.verify_price(body.checkout, body.client_total)
    except PricingError as e:
        raise _client_error(e)

    audit.record_verification(body.checkout, verification)
    return verification


# ── Coupons ──────────────────────────────────────────────

@coupon_router.post("/resolve", response_model=CouponResolution)
async def resolve_coupon(
    body: CheckoutRequest,
    calculator: CheckoutPriceCalculator = Depends(get_calculator),
):
    try:
        return await calculator.preview_auto_coupon(body)
    except PricingError as e:
        raise _client_error(e)


# ── Audit ────────────────────────────────────────────────

@audit_router.get("/mismatches")
async def list_mismatches(audit: PriceAuditService = Depends(get_audit_service)) -> list[dict[str, Any]]:
    return audit.get_mismatches()
