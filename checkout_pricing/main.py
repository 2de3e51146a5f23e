"""
Checkout Pricing — Main Entry Point

Price a checkout request from a JSON file (CLI):
    python -m checkout_pricing path/to/request.json

Run as an API server:
    python -m checkout_pricing --serve
    # or: uvicorn checkout_pricing.api:app --reload --port 8000

Or import and run programmatically:
    from checkout_pricing.main import run
    result = run("path/to/request.json")
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from checkout_pricing.config import get_settings
from checkout_pricing.models.schemas import CheckoutPriceCalculationResult, CheckoutRequest
from checkout_pricing.persistence import build_repositories
from checkout_pricing.pricing import CheckoutPriceCalculator
from checkout_pricing.pricing.discount import actual_discount_percentage, format_price
from checkout_pricing.utils.logger import setup_logging


def run(request_path: str) -> CheckoutPriceCalculationResult:
    """Price the checkout request stored at `request_path` and log a summary."""
    settings = get_settings()
    setup_logging(settings.log_level)
    logger = logging.getLogger(__name__)

    request = CheckoutRequest(**json.loads(Path(request_path).read_text(encoding="utf-8")))
    programs, coupons = build_repositories()
    calculator = CheckoutPriceCalculator(programs, coupons)

    logger.info("=" * 60)
    logger.info(f"  {settings.app_name.upper()}")
    logger.info(f"  Mode: {'MOCK' if settings.mock_mode else 'MONGODB'} | Request: {request_path}")
    logger.info("=" * 60)

    result = asyncio.run(calculator.calculate(request))
    _print_summary(request, result)
    return result


def _print_summary(request: CheckoutRequest, result: CheckoutPriceCalculationResult) -> None:
    """Print a human-readable price breakdown."""
    logger = logging.getLogger(__name__)
    currency = get_settings().currency

    logger.info("")
    logger.info("-" * 60)
    logger.info("  PRICE BREAKDOWN")
    logger.info("-" * 60)
    logger.info(f"  Program:        {request.program_id} ({request.account_size})")
    logger.info(f"  Purchase Type:  {request.purchase_type.value}")
    logger.info(f"  Tier Price:     {format_price(result.tier_price, currency)}")
    off = actual_discount_percentage(result.original_price, result.final_purchase_price)
    logger.info(f"  Discount:       -{format_price(result.applied_discount, currency)} ({off}%)")
    logger.info(f"  Purchase Price: {format_price(result.final_purchase_price, currency)}")
    logger.info(f"  Add-ons:        {format_price(result.add_on_value, currency)}")
    logger.info(f"  Total:          {format_price(result.total_price, currency)}")

    if result.coupon_details:
        logger.info(f"  Coupon:         {result.coupon_details.code}")
    if result.explicit_coupon_rejected_reason:
        logger.info(f"  Code Rejected:  {result.explicit_coupon_rejected_reason}")
    logger.info("-" * 60)


def serve(host: str = "0.0.0.0", port: int = 8000) -> None:
    """Start the FastAPI server."""
    import uvicorn

    settings = get_settings()
    setup_logging(settings.log_level)
    logger = logging.getLogger(__name__)
    logger.info(f"Starting API server on {host}:{port}")
    uvicorn.run("checkout_pricing.api:app", host=host, port=port, reload=settings.debug)


def main(argv: Optional[list[str]] = None) -> None:
    """Command-line dispatch: `--serve` starts the API, a path prices a request."""
    args = sys.argv[1:] if argv is None else argv
    if "--serve" in args:
        serve()
    elif args:
        run(args[0])
    else:
        print("usage: python -m checkout_pricing <request.json> | --serve")
        sys.exit(2)


if __name__ == "__main__":
    main()
