"""
In-memory repositories — used by tests and in mock mode.
Records are deep-copied in and out so callers cannot mutate the catalog.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, Optional

from pydantic import ValidationError

from checkout_pricing.models.errors import InvalidDiscountType
from checkout_pricing.models.schemas import Coupon, Program
from checkout_pricing.persistence.documents import coupon_from_document, program_from_document
from checkout_pricing.persistence.repositories import CouponRepository, ProgramRepository

logger = logging.getLogger(__name__)


def _in_window(coupon: Coupon, now: datetime) -> bool:
    return coupon.valid_from <= now and (coupon.valid_to is None or coupon.valid_to >= now)


class InMemoryProgramRepository(ProgramRepository):
    def __init__(self, programs: Iterable[Program] = ()):
        self._programs: dict[str, Program] = {}
        for program in programs:
            self.add(program)

    def add(self, program: Program) -> None:
        self._programs[program.id] = program.model_copy(deep=True)

    async def get_program(self, program_id: str) -> Optional[Program]:
        program = self._programs.get(str(program_id))
        return program.model_copy(deep=True) if program else None


class InMemoryCouponRepository(CouponRepository):
    def __init__(self, coupons: Iterable[Coupon] = (), usage: Optional[dict[str, dict[str, int]]] = None):
        self._coupons: dict[str, Coupon] = {}
        # email (lower-cased) -> {code: count}
        self._usage: dict[str, dict[str, int]] = {}
        for coupon in coupons:
            self.add(coupon)
        for email, counts in (usage or {}).items():
            for code, count in counts.items():
                self._usage.setdefault(email.lower(), {})[code.upper()] = count

    def add(self, coupon: Coupon) -> None:
        self._coupons[coupon.code] = coupon.model_copy(deep=True)

    def record_usage(self, code: str, email: str) -> None:
        """Count one redemption against the coupon and the customer."""
        code = code.upper()
        per_user = self._usage.setdefault(email.lower(), {})
        per_user[code] = per_user.get(code, 0) + 1
        if code in self._coupons:
            coupon = self._coupons[code]
            self._coupons[code] = coupon.model_copy(update={"times_used": coupon.times_used + 1})

    async def get_by_code(self, code: str) -> Optional[Coupon]:
        coupon = self._coupons.get(code.strip().upper())
        return coupon.model_copy(deep=True) if coupon else None

    async def list_auto_apply_coupons(self, limit: int = 100, now: Optional[datetime] = None) -> list[Coupon]:
        matches = [
            c.model_copy(deep=True)
            for c in self._coupons.values()
            if c.auto_apply and (now is None or _in_window(c, now))
        ]
        return matches[:limit]

    async def get_customer_usage(self, email: Optional[str]) -> dict[str, int]:
        if not email:
            return {}
        return dict(self._usage.get(email.strip().lower(), {}))


def load_catalog(path: str | Path) -> tuple[InMemoryProgramRepository, InMemoryCouponRepository]:
    """
    Seed in-memory repositories from a JSON file shaped like the CMS export:
    {"programs": [...], "coupons": [...], "usage": {email: {code: n}}}.
    Coupons that cannot be parsed are skipped with a warning.
    """
    data: dict[str, Any] = json.loads(Path(path).read_text(encoding="utf-8"))
    programs = [program_from_document(doc) for doc in data.get("programs", [])]

    coupons: list[Coupon] = []
    for doc in data.get("coupons", []):
        try:
            coupons.append(coupon_from_document(doc))
        except (InvalidDiscountType, KeyError, ValidationError) as e:
            logger.warning(f"Skipping coupon {doc.get('code')!r} from seed file: {e!r}")

    logger.info(f"Loaded catalog from {path}: {len(programs)} programs, {len(coupons)} coupons")
    return InMemoryProgramRepository(programs), InMemoryCouponRepository(coupons, data.get("usage"))
