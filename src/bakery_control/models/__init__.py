"""
Database models package.

This package contains all SQLAlchemy ORM models for the application.
"""

from .base import Base, BaseModel
from .enums import MeasurementUnit, MovementReason, PaymentMethod, ProductionStatus
from .ingredient import Ingredient
from .product import Product
from .recipe import Recipe, RecipeLine
from .sale import Sale
from .daily_production import DailyProduction, ProductionDetail
from .stock_movement import StockMovement

__all__ = [
    "Base",
    "BaseModel",
    # Enums
    "MeasurementUnit",
    "MovementReason",
    "PaymentMethod",
    "ProductionStatus",
    # Catalog
    "Ingredient",
    "Product",
    "Recipe",
    "RecipeLine",
    "Sale",
    # Production
    "DailyProduction",
    "ProductionDetail",
    # Audit
    "StockMovement",
]
