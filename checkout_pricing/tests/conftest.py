"""Shared fixtures: a frozen clock and a small program/coupon catalog."""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from checkout_pricing.models.schemas import (
    Coupon,
    FixedDiscount,
    PercentageDiscount,
    PricingTier,
    Program,
)
from checkout_pricing.persistence import InMemoryCouponRepository, InMemoryProgramRepository
from checkout_pricing.pricing import CheckoutPriceCalculator

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def nitro_program() -> Program:
    return Program(
        id="nitro",
        name="Nitro",
        category="step-2",
        pricing_tiers=[
            PricingTier(id="t-10k", account_size="$10,000", price=10000, reset_fee=5000, reset_fee_funded=7000),
            PricingTier(id="t-25k", account_size="$25,000", price=20000, reset_fee=9000),
            PricingTier(id="t-50k", account_size="$50,000", price=None),
        ],
        activation_fee_value=15000,
    )


@pytest.fixture
def make_coupon():
    def _make(code: str, discount=None, **fields) -> Coupon:
        fields.setdefault("valid_from", NOW - timedelta(days=30))
        if discount is None:
            discount = PercentageDiscount(value=Decimal(10))
        elif isinstance(discount, tuple):
            kind, value = discount
            cls = PercentageDiscount if kind == "percentage" else FixedDiscount
            discount = cls(value=Decimal(value))
        return Coupon(code=code, discount=discount, **fields)

    return _make


@pytest.fixture
def make_calculator(nitro_program):
    def _make(coupons=(), usage=None, programs=None) -> CheckoutPriceCalculator:
        program_repo = InMemoryProgramRepository(programs if programs is not None else [nitro_program])
        coupon_repo = InMemoryCouponRepository(coupons, usage)
        return CheckoutPriceCalculator(program_repo, coupon_repo, clock=lambda: NOW)

    return _make


# ── Fake pymongo collection ──────────────────────────────


def _matches(doc: dict, query: dict) -> bool:
    """Subset of the Mongo query language used by the repositories."""
    for key, cond in query.items():
        if key == "$or":
            if not any(_matches(doc, q) for q in cond):
                return False
            continue
        value = doc.get(key)
        if isinstance(cond, dict):
            for op, arg in cond.items():
                if op == "$in" and value not in arg:
                    return False
                if op == "$lte" and (value is None or value > arg):
                    return False
                if op == "$gte" and (value is None or value < arg):
                    return False
        elif isinstance(cond, re.Pattern):
            if not isinstance(value, str) or not cond.search(value):
                return False
        elif value != cond:
            return False
    return True


class FakeCursor:
    def __init__(self, docs: list[dict]):
        self._docs = docs

    def sort(self, key: str, direction: int = 1) -> "FakeCursor":
        self._docs = sorted(self._docs, key=lambda d: (key in d, d.get(key)), reverse=direction < 0)
        return self

    def limit(self, n: int) -> "FakeCursor":
        if n:
            self._docs = self._docs[:n]
        return self

    def __iter__(self):
        return iter(self._docs)


class FakeCollection:
    """In-memory stand-in for a pymongo Collection; records every query."""

    def __init__(self, docs=()):
        self.docs = [dict(d) for d in docs]
        self.queries: list[dict] = []

    def find(self, query=None, projection=None) -> FakeCursor:
        query = query or {}
        self.queries.append(query)
        hidden = [k for k, v in (projection or {}).items() if not v]
        return FakeCursor([
            {k: v for k, v in d.items() if k not in hidden}
            for d in self.docs if _matches(d, query)
        ])

    def find_one(self, query):
        self.queries.append(query)
        return next((dict(d) for d in self.docs if _matches(d, query)), None)

    def insert_one(self, doc):
        self.docs.append({"_id": len(self.docs) + 1, **doc})

    def aggregate(self, pipeline):
        rows = self.docs
        for stage in pipeline:
            if "$match" in stage:
                rows = [d for d in rows if _matches(d, stage["$match"])]
            elif "$group" in stage:
                field = stage["$group"]["_id"].lstrip("$")
                counts: dict = {}
                for d in rows:
                    counts[d.get(field)] = counts.get(d.get(field), 0) + 1
                rows = [{"_id": k, "count": v} for k, v in counts.items()]
        return iter(rows)


class FakeMongoClient:
    def __init__(self, **collections: FakeCollection):
        self.db = collections

    def get_database(self):
        return self.db


@pytest.fixture
def fake_collection():
    return FakeCollection


@pytest.fixture
def fake_mongo():
    return FakeMongoClient
