"""
FastAPI application factory and API package.

Run with:
    uvicorn checkout_pricing.api:app --reload --port 8000

Or via main.py:
    python -m checkout_pricing --serve
"""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from checkout_pricing import __version__
from checkout_pricing.config import get_settings
from checkout_pricing.api.routes import (
    audit_router,
    checkout_router,
    coupon_router,
    health_router,
)

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    """Application factory — create and configure the FastAPI instance."""
    settings = get_settings()

    application = FastAPI(
        title="Checkout Pricing API",
        description="Server-side price calculation and verification for checkout",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # CORS — the storefront calls the price preview endpoints directly
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.include_router(health_router, tags=["Health"])
    application.include_router(checkout_router, prefix="/api/checkout", tags=["Checkout"])
    application.include_router(coupon_router, prefix="/api/coupons", tags=["Coupons"])
    application.include_router(audit_router, prefix="/api/audit", tags=["Audit"])

    logger.info(f"Created {settings.app_name} API (mock_mode={settings.mock_mode})")
    return application


# Module-level instance for `uvicorn checkout_pricing.api:app`
app = create_app()
