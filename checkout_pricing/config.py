"""
Application configuration using Pydantic Settings.
All environment-specific values are centralized here.
"""

from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # ── App ──────────────────────────────────────────────
    app_name: str = "Checkout Pricing Service"
    debug: bool = True
    mock_mode: bool = True  # When True, repositories are in-memory

    # ── MongoDB ──────────────────────────────────────────
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_database: str = "checkout_pricing"
    programs_collection: str = "programs"
    coupons_collection: str = "coupons"
    coupon_usage_collection: str = "coupon_usage"

    # ── Mock catalog ─────────────────────────────────────
    catalog_seed_path: str = ""  # e.g. checkout_pricing/catalog.sample.json

    # ── Pricing ──────────────────────────────────────────
    currency: str = "USD"
    price_tolerance: int = 1  # minor units a client total may drift
    auto_apply_limit: int = 100

    # ── Logging ──────────────────────────────────────────
    log_level: str = "INFO"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "env_prefix": "CHECKOUT_",
    }


@lru_cache()
def get_settings() -> Settings:
    """Return cached application settings (singleton)."""
    return Settings()
