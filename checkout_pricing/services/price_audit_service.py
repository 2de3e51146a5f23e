"""
Price Audit Service — records quotes and client-price verifications.
"""

from __future__ import annotations

import logging
from collections import deque
from datetime import datetime, timezone
from typing import Any

from checkout_pricing.models.schemas import CheckoutRequest, PriceVerification

logger = logging.getLogger(__name__)


class PriceAuditService:
    """
    Keeps a trail of price verifications for operator review.
    In mock mode, entries live in a bounded in-memory buffer (dev only,
    oldest entries are dropped); otherwise they go to MongoDB.
    """

    def __init__(self, mock_mode: bool = True, collection: Any = None, max_entries: int = 1000):
        self.mock_mode = mock_mode
        self._collection = collection
        self._entries: deque[dict[str, Any]] = deque(maxlen=max_entries)

    def record_verification(
        self,
        request: CheckoutRequest,
        verification: PriceVerification,
    ) -> dict[str, Any]:
        """Record a verification outcome and return the entry."""
        result = verification.result
        entry = {
            "program_id": request.program_id,
            "account_size": request.account_size,
            "purchase_type": request.purchase_type.value,
            "user_email": request.user_email,
            "coupon_code": result.coupon_details.code if result.coupon_details else None,
            "server_total": result.total_price,
            "client_total": verification.client_total,
            "difference": verification.difference,
            "matches": verification.matches,
            "quote_hash": verification.quote_hash,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

        if self._uses_memory:
            self._entries.append(entry)
        else:
            self._collection.insert_one(dict(entry))

        if verification.matches:
            logger.debug(f"[AUDIT] {request.program_id} total {result.total_price} verified")
        else:
            logger.warning(
                f"[AUDIT] {request.program_id} price mismatch: "
                f"server={result.total_price} client={verification.client_total}"
            )
        return entry

    @property
    def _uses_memory(self) -> bool:
        return self.mock_mode or self._collection is None

    def get_mismatches(self) -> list[dict[str, Any]]:
        """Return recorded entries where the client total did not match."""
        if self._uses_memory:
            return [e for e in self._entries if not e["matches"]]
        return list(self._collection.find({"matches": False}, {"_id": 0}))

    def get_all(self) -> list[dict[str, Any]]:
        if self._uses_memory:
            return list(self._entries)
        return list(self._collection.find({}, {"_id": 0}))
