"""Bakery Control - production and inventory engine for a bakery."""

__version__ = "0.1.0"
