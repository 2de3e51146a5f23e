"""
Repository interfaces the pricing core reads its catalog snapshot through.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from checkout_pricing.models.schemas import Coupon, Program


class ProgramRepository(ABC):
    @abstractmethod
    async def get_program(self, program_id: str) -> Optional[Program]:
        """Return the program with its pricing tiers, or None."""


class CouponRepository(ABC):
    @abstractmethod
    async def get_by_code(self, code: str) -> Optional[Coupon]:
        """Return the coupon with this code (case-insensitive), or None."""

    @abstractmethod
    async def list_auto_apply_coupons(self, limit: int = 100, now: Optional[datetime] = None) -> list[Coupon]:
        """
        Return coupons flagged for automatic application.
        When `now` is given, only coupons whose validity window covers it.
        """

    @abstractmethod
    async def get_customer_usage(self, email: Optional[str]) -> dict[str, int]:
        """Return {coupon code: times used} for a customer email."""
