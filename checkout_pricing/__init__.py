"""Server-side checkout price calculation for funded trading accounts."""

__version__ = "0.1.0"
