"""
Recipe models.

This module contains:
- Recipe: A batch recipe, optionally linked to the product it makes
- RecipeLine: Ingredient quantity needed for one batch

A recipe owns its lines (deleted with it). Ingredients are shared and only
referenced by id; lines never own them.
"""

from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .base import BaseModel
from bakery_control.utils.datetime_utils import utc_now


class Recipe(BaseModel):
    """
    Recipe model.

    Attributes:
        name: Recipe name
        product_id: Optional product this recipe produces (at most one
            recipe per product)
        instructions: Free-form preparation instructions
        preparation_time: Preparation time in minutes
        baking_time: Baking time in minutes
        yield_quantity: Product units produced by one batch (>= 1)
        total_cost: Last stored cost per unit (refreshed by recipe_service)
        last_updated: When the recipe or its cost last changed
        lines: Ordered ingredient lines
    """

    __tablename__ = "recipes"

    name = Column(String(200), nullable=False)
    product_id = Column(
        Integer,
        ForeignKey("products.id", ondelete="RESTRICT"),
        nullable=True,
        unique=True,
    )
    instructions = Column(Text, nullable=True)
    preparation_time = Column(Integer, nullable=False, default=0)
    baking_time = Column(Integer, nullable=False, default=0)
    yield_quantity = Column(Integer, nullable=False, default=1)
    total_cost = Column(Numeric(18, 2), nullable=False, default=Decimal("0.00"))
    last_updated = Column(DateTime, nullable=False, default=utc_now)

    lines = relationship(
        "RecipeLine",
        cascade="all, delete-orphan",
        order_by="RecipeLine.id",
        lazy="selectin",
    )

    __table_args__ = (
        Index("idx_recipe_name", "name"),
        CheckConstraint("yield_quantity >= 1", name="ck_recipe_yield_positive"),
    )

    def per_unit(self, batch_cost: Decimal) -> Decimal:
        """
        Divide a batch cost by the yield.

        Returns 0 when the yield is not positive instead of dividing by zero.
        """
        if not self.yield_quantity or self.yield_quantity <= 0:
            return Decimal("0")
        return Decimal(str(batch_cost)) / Decimal(self.yield_quantity)

    def __repr__(self) -> str:
        return f"Recipe(id={self.id}, name='{self.name}', yield={self.yield_quantity})"


class RecipeLine(BaseModel):
    """
    Ingredient line of a recipe.

    Attributes:
        recipe_id: Owning recipe
        ingredient_id: Referenced ingredient
        quantity: Amount of the ingredient per batch, in the ingredient's unit
    """

    __tablename__ = "recipe_lines"

    recipe_id = Column(Integer, ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False)
    ingredient_id = Column(
        Integer, ForeignKey("ingredients.id", ondelete="RESTRICT"), nullable=False
    )
    quantity = Column(Numeric(18, 3), nullable=False)

    __table_args__ = (
        Index("idx_recipe_line_recipe", "recipe_id"),
        Index("idx_recipe_line_ingredient", "ingredient_id"),
        UniqueConstraint("recipe_id", "ingredient_id", name="uq_recipe_line_ingredient"),
        CheckConstraint("quantity > 0", name="ck_recipe_line_quantity_positive"),
    )

    def __repr__(self) -> str:
        return (
            f"RecipeLine(id={self.id}, recipe_id={self.recipe_id}, "
            f"ingredient_id={self.ingredient_id}, quantity={self.quantity})"
        )
