"""Domain layer: barcode rules, product models and ports."""
