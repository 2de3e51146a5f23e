"""Persistence — repository interfaces, in-memory and MongoDB implementations."""

from checkout_pricing.persistence.repositories import ProgramRepository, CouponRepository
from checkout_pricing.persistence.memory import (
    InMemoryProgramRepository,
    InMemoryCouponRepository,
    load_catalog,
)
from checkout_pricing.persistence.mongo_client import MongoClient
from checkout_pricing.persistence.mongo_repositories import (
    MongoProgramRepository,
    MongoCouponRepository,
)

__all__ = [
    "ProgramRepository",
    "CouponRepository",
    "InMemoryProgramRepository",
    "InMemoryCouponRepository",
    "load_catalog",
    "MongoClient",
    "MongoProgramRepository",
    "MongoCouponRepository",
]

from checkout_pricing.persistence.factory import build_repositories

__all__.append("build_repositories")
