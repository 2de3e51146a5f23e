"""
Document mappers — raw CMS-shaped documents (camelCase) to pricing models.
"""

from __future__ import annotations

from typing import Any, Optional

from checkout_pricing.models.enums import DiscountType
from checkout_pricing.models.schemas import (
    AffiliateAttribution,
    Coupon,
    FixedDiscount,
    PercentageDiscount,
    PricingTier,
    Program,
    UrlParamTrigger,
)
from checkout_pricing.pricing.discount import parse_discount_type


def _doc_id(doc: dict[str, Any]) -> str:
    return str(doc.get("id", doc.get("_id", "")))


def _relation_ids(values: Optional[list[Any]]) -> list[str]:
    """Relationship fields hold either raw ids or populated objects."""
    ids = []
    for value in values or []:
        if isinstance(value, dict):
            ids.append(_doc_id(value))
        else:
            ids.append(str(value))
    return ids


def program_from_document(doc: dict[str, Any]) -> Program:
    tiers = [
        PricingTier(
            id=str(t.get("id", "")),
            account_size=str(t.get("accountSize", "")),
            price=t.get("price"),
            reset_fee=t.get("resetFee"),
            reset_fee_funded=t.get("resetFeeFunded"),
        )
        for t in doc.get("pricingTiers") or []
    ]
    fields: dict[str, Any] = {
        "id": _doc_id(doc),
        "name": doc.get("name") or doc.get("title") or "",
        "pricing_tiers": tiers,
        "activation_fee_value": doc.get("activationFeeValue"),
    }
    if doc.get("category"):
        fields["category"] = doc["category"]
    return Program(**fields)


def _discount_from_document(doc: dict[str, Any]):
    """None when the descriptor is missing; InvalidDiscountType when unknown."""
    raw_type = doc.get("discountType")
    value = doc.get("discountValue")
    if raw_type is None or value is None:
        return None
    dtype = parse_discount_type(raw_type, str(doc.get("code", "")))
    if dtype is DiscountType.PERCENTAGE:
        return PercentageDiscount(value=value)
    return FixedDiscount(value=value)


def coupon_from_document(doc: dict[str, Any]) -> Coupon:
    """Build a Coupon; raises InvalidDiscountType for an unknown discount type."""
    restriction = doc.get("restrictionType", "all")
    applicable = _relation_ids(doc.get("applicablePrograms")) if restriction == "whitelist" else []
    excluded = _relation_ids(doc.get("excludedPrograms")) if restriction == "blacklist" else []

    affiliate = None
    if doc.get("affiliateId"):
        affiliate = AffiliateAttribution(
            affiliate_id=str(doc["affiliateId"]),
            affiliate_email=doc.get("affiliateEmail"),
            affiliate_username=doc.get("affiliateUsername"),
        )

    trigger = None
    url_param = doc.get("urlParam")
    if isinstance(url_param, dict) and url_param.get("name"):
        trigger = UrlParamTrigger(name=url_param["name"], value=url_param.get("value"))
    elif isinstance(url_param, str) and url_param:
        trigger = UrlParamTrigger(name=url_param)

    return Coupon(
        code=str(doc.get("code", "")),
        name=doc.get("name") or "",
        status=doc.get("status", "active"),
        valid_from=doc["validFrom"],
        valid_to=doc.get("validTo"),
        discount=_discount_from_document(doc),
        account_size_discounts={
            str(d["accountSize"]): d["discountValue"]
            for d in doc.get("accountSizeDiscounts") or []
            if d.get("accountSize") and d.get("discountValue") is not None
        },
        applicable_programs=applicable,
        excluded_programs=excluded,
        account_sizes=doc.get("accountSizes") or [],
        allowed_emails=doc.get("allowedEmails") or [],
        allowed_user_ids=[str(u) for u in doc.get("allowedUserIds") or []],
        url_param_trigger=trigger,
        first_visit_only=bool(doc.get("firstVisitOnly", False)),
        auto_apply=bool(doc.get("autoApply", False)),
        auto_apply_message=doc.get("autoApplyMessage") or "",
        prevent_manual_entry=bool(doc.get("preventManualEntry", False)),
        total_usage_limit=doc.get("totalUsageLimit") or 0,
        usage_per_user=doc.get("usagePerUser") or 0,
        times_used=doc.get("timesUsed") or 0,
        affiliate=affiliate,
    )
