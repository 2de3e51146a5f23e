"""Services — PriceAuditService."""

from checkout_pricing.services.price_audit_service import PriceAuditService

__all__ = ["PriceAuditService"]
