"""Allow running as: python -m checkout_pricing"""

from checkout_pricing.main import main

if __name__ == "__main__":
    main()
