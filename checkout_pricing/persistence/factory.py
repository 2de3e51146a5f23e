"""
Repository factory — picks in-memory or MongoDB repositories from settings.
"""

from __future__ import annotations

import logging

from checkout_pricing.config import get_settings
from checkout_pricing.persistence.memory import (
    InMemoryCouponRepository,
    InMemoryProgramRepository,
    load_catalog,
)
from checkout_pricing.persistence.mongo_client import MongoClient
from checkout_pricing.persistence.mongo_repositories import (
    MongoCouponRepository,
    MongoProgramRepository,
)
from checkout_pricing.persistence.repositories import CouponRepository, ProgramRepository

logger = logging.getLogger(__name__)


def build_repositories() -> tuple[ProgramRepository, CouponRepository]:
    """Mock mode: in-memory (seeded from catalog_seed_path if set). Else MongoDB."""
    settings = get_settings()
    if settings.mock_mode:
        if settings.catalog_seed_path:
            return load_catalog(settings.catalog_seed_path)
        logger.info("[MOCK] Using an empty in-memory catalog")
        return InMemoryProgramRepository(), InMemoryCouponRepository()

    client = MongoClient()
    return MongoProgramRepository(client), MongoCouponRepository(client)
