"""
Product scan resolution.

Resolves scanned or typed barcodes into display-ready product records,
cache first, with a rate-limited Open Food Facts fallback and a
denormalized scan history.

Structure:
- domain/: Barcode rules, product models, localization, ports
- infrastructure/: Open Food Facts client, cache, rate limiter, stores
- application/: Resolution pipeline and scan channel
- tests/: Test suite (unit)
"""

__version__ = "1.0.0"
