"""
Repositories: per-entity persistence operations bound to a UnitOfWork.

Obtain them from a unit of work rather than constructing them directly:

    with unit_of_work() as uow:
        uow.ingredients.get_low_stock()
"""

from .daily_production_repository import DailyProductionRepository
from .ingredient_repository import IngredientRepository
from .product_repository import ProductRepository
from .recipe_repository import RecipeRepository
from .sale_repository import SaleRepository
from .stock_movement_repository import StockMovementRepository

__all__ = [
    "DailyProductionRepository",
    "IngredientRepository",
    "ProductRepository",
    "RecipeRepository",
    "SaleRepository",
    "StockMovementRepository",
]
