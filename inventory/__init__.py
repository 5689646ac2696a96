"""Inventory tracking: products, locations, stock levels and movements."""

__version__ = "1.0.0"
