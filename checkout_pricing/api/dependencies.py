"""
FastAPI dependencies — repository wiring for the pricing routes.
Tests swap these out through `app.dependency_overrides`.
"""

from __future__ import annotations

from functools import lru_cache

from fastapi import Depends

from checkout_pricing.config import get_settings
from checkout_pricing.persistence import (
    CouponRepository,
    MongoClient,
    ProgramRepository,
    build_repositories,
)
from checkout_pricing.pricing import CheckoutPriceCalculator
from checkout_pricing.services import PriceAuditService


@lru_cache()
def _repositories() -> tuple[ProgramRepository, CouponRepository]:
    return build_repositories()


def get_program_repository() -> ProgramRepository:
    return _repositories()[0]


def get_coupon_repository() -> CouponRepository:
    return _repositories()[1]


def get_calculator(
    programs: ProgramRepository = Depends(get_program_repository),
    coupons: CouponRepository = Depends(get_coupon_repository),
) -> CheckoutPriceCalculator:
    return CheckoutPriceCalculator(programs, coupons)


@lru_cache()
def get_audit_service() -> PriceAuditService:
    settings = get_settings()
    if settings.mock_mode:
        return PriceAuditService(mock_mode=True)
    db = MongoClient().get_database()
    return PriceAuditService(mock_mode=False, collection=db["price_audit"])
