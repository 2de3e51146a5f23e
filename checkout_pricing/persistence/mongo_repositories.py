"""
MongoDB repositories over the CMS collections.

pymongo is synchronous; each read runs in a worker thread so concurrent
reads in the calculator can overlap. Read errors propagate to the caller.
"""

from __future__ import annotations

import asyncio
import logging
import re
from datetime import datetime
from typing import Any, Optional

from pydantic import ValidationError

from checkout_pricing.config import get_settings
from checkout_pricing.models.errors import InvalidDiscountType
from checkout_pricing.models.schemas import Coupon, Program
from checkout_pricing.persistence.documents import coupon_from_document, program_from_document
from checkout_pricing.persistence.mongo_client import MongoClient
from checkout_pricing.persistence.repositories import CouponRepository, ProgramRepository

logger = logging.getLogger(__name__)


def _id_filter(program_id: str) -> dict[str, Any]:
    candidates: list[Any] = [program_id]
    if program_id.isdigit():
        candidates.append(int(program_id))
    return {"$or": [{"id": {"$in": candidates}}, {"_id": {"$in": candidates}}]}


class MongoProgramRepository(ProgramRepository):
    def __init__(self, client: Optional[MongoClient] = None):
        self.settings = get_settings()
        self._client = client or MongoClient()

    def _find_program(self, program_id: str) -> Optional[dict[str, Any]]:
        db = self._client.get_database()
        return db[self.settings.programs_collection].find_one(_id_filter(program_id))

    async def get_program(self, program_id: str) -> Optional[Program]:
        doc = await asyncio.to_thread(self._find_program, str(program_id))
        if doc is None:
            logger.info(f"Program {program_id} not found in MongoDB")
            return None
        return program_from_document(doc)


class MongoCouponRepository(CouponRepository):
    def __init__(self, client: Optional[MongoClient] = None):
        self.settings = get_settings()
        self._client = client or MongoClient()

    def _collection(self, name: str):
        return self._client.get_database()[name]

    @staticmethod
    def _parse(doc: dict[str, Any]) -> Optional[Coupon]:
        try:
            return coupon_from_document(doc)
        except (InvalidDiscountType, KeyError, ValidationError) as e:
            logger.warning(f"Skipping coupon record {doc.get('code')!r}: {e!r}")
            return None

    def _find_by_code(self, code: str) -> Optional[dict[str, Any]]:
        return self._collection(self.settings.coupons_collection).find_one({"code": code})

    def _find_auto_apply(self, limit: int, now: Optional[datetime] = None) -> list[dict[str, Any]]:
        query: dict[str, Any] = {"autoApply": True, "status": "active"}
        if now is not None:
            # Window filter must run before limit() or expired coupons crowd out live ones
            query["validFrom"] = {"$lte": now}
            query["$or"] = [{"validTo": {"$gte": now}}, {"validTo": None}]
        cursor = (
            self._collection(self.settings.coupons_collection)
            .find(query)
            .sort("validFrom", 1)
            .limit(limit)
        )
        return list(cursor)

    def _count_usage(self, email: str) -> dict[str, int]:
        pipeline = [
            {"$match": {"customerEmail": re.compile(f"^{re.escape(email)}$", re.IGNORECASE)}},
            {"$group": {"_id": "$couponCode", "count": {"$sum": 1}}},
        ]
        usage: dict[str, int] = {}
        for row in self._collection(self.settings.coupon_usage_collection).aggregate(pipeline):
            if row.get("_id"):
                code = str(row["_id"]).upper()
                usage[code] = usage.get(code, 0) + int(row["count"])
        return usage

    async def get_by_code(self, code: str) -> Optional[Coupon]:
        doc = await asyncio.to_thread(self._find_by_code, code.strip().upper())
        return self._parse(doc) if doc else None

    async def list_auto_apply_coupons(self, limit: int = 100, now: Optional[datetime] = None) -> list[Coupon]:
        docs = await asyncio.to_thread(self._find_auto_apply, limit, now)
        coupons = [c for c in (self._parse(d) for d in docs) if c is not None]
        logger.debug(f"Fetched {len(coupons)} auto-apply coupons")
        return coupons

    async def get_customer_usage(self, email: Optional[str]) -> dict[str, int]:
        if not email:
            return {}
        return await asyncio.to_thread(self._count_usage, email.strip())
