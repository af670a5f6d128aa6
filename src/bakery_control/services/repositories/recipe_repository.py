"""
Recipe repository.

Lines are owned by their recipe and edited through it. Ingredients are
reached by explicit joins (get_lines_with_ingredients) rather than object
navigation.
"""

from decimal import Decimal
from typing import List, Optional, Tuple

from bakery_control.models import Ingredient, Recipe, RecipeLine
from bakery_control.services.exceptions import InvalidArgumentError, NotFoundError
from bakery_control.services.repositories.base import BaseRepository, reconcile_children
from bakery_control.utils.datetime_utils import utc_now
from bakery_control.utils.validators import (
    collect_errors,
    validate_positive_number,
    validate_required_string,
)

RECIPE_LINE_FIELDS = ("ingredient_id", "quantity")


class RecipeRepository(BaseRepository):
    model = Recipe
    entity_name = "Recipe"

    def get_by_name(self, name: str) -> Optional[Recipe]:
        return self.session.query(Recipe).filter(Recipe.name == name).first()

    def get_by_product_id(self, product_id: int) -> Optional[Recipe]:
        return self.session.query(Recipe).filter(Recipe.product_id == product_id).first()

    def get_all(self) -> List[Recipe]:
        return self.session.query(Recipe).order_by(Recipe.name, Recipe.id).all()

    def _validate(self, recipe: Recipe) -> None:
        errors = collect_errors([validate_required_string(recipe.name, "Name")])
        if recipe.yield_quantity is None or recipe.yield_quantity < 1:
            errors.append("Yield: Value must be at least 1")
        if errors:
            raise InvalidArgumentError(errors)

    def _prepare_new(self, recipe: Recipe) -> None:
        if recipe.yield_quantity is None:
            recipe.yield_quantity = 1
        self._validate(recipe)
        recipe.last_updated = utc_now()

    def _apply_update(self, existing: Recipe, incoming: Recipe) -> None:
        self._validate(existing)
        if existing is not incoming:
            reconcile_children(existing.lines, incoming.lines, RecipeLine, RECIPE_LINE_FIELDS)
        existing.last_updated = utc_now()

    # ------------------------------------------------------------------
    # Lines
    # ------------------------------------------------------------------

    def get_lines(self, recipe_id: int) -> List[RecipeLine]:
        return (
            self.session.query(RecipeLine)
            .filter(RecipeLine.recipe_id == recipe_id)
            .order_by(RecipeLine.id)
            .all()
        )

    def get_lines_with_ingredients(self, recipe_id: int) -> List[Tuple[RecipeLine, Ingredient]]:
        """Recipe lines paired with their ingredient rows, in line order."""
        return (
            self.session.query(RecipeLine, Ingredient)
            .join(Ingredient, RecipeLine.ingredient_id == Ingredient.id)
            .filter(RecipeLine.recipe_id == recipe_id)
            .order_by(RecipeLine.id)
            .all()
        )

    def get_line(self, line_id: int) -> RecipeLine:
        line = self.session.get(RecipeLine, line_id)
        if line is None:
            raise NotFoundError("Recipe line", line_id)
        return line

    def add_line(self, recipe_id: int, ingredient_id: int, quantity) -> RecipeLine:
        """
        Put ``quantity`` of an ingredient on the recipe.

        If the ingredient is already on the recipe its quantity grows by
        ``quantity`` instead of a second line being added.
        """
        self._require_transaction("Adding a line to")
        quantity = self._validated_quantity(quantity)
        recipe = self.get_required(recipe_id)
        if self.session.get(Ingredient, ingredient_id) is None:
            raise NotFoundError("Ingredient", ingredient_id)

        line = next(
            (existing for existing in recipe.lines if existing.ingredient_id == ingredient_id), None
        )
        if line is None:
            line = RecipeLine(ingredient_id=ingredient_id, quantity=quantity)
            recipe.lines.append(line)
        else:
            line.quantity = Decimal(str(line.quantity)) + quantity

        recipe.last_updated = utc_now()
        self._flush(f"add ingredient {ingredient_id} to recipe {recipe_id}")
        return line

    def update_line(self, line_id: int, quantity) -> RecipeLine:
        self._require_transaction("Updating a line of")
        quantity = self._validated_quantity(quantity)
        line = self.get_line(line_id)
        line.quantity = quantity
        self.get_required(line.recipe_id).last_updated = utc_now()
        self._flush(f"update recipe line {line_id}")
        return line

    def remove_line(self, line_id: int) -> None:
        self._require_transaction("Removing a line from")
        line = self.get_line(line_id)
        recipe = self.get_required(line.recipe_id)
        recipe.lines.remove(line)
        recipe.last_updated = utc_now()
        self._flush(f"remove recipe line {line_id}")

    @staticmethod
    def _validated_quantity(quantity) -> Decimal:
        is_valid, error = validate_positive_number(quantity, "Quantity")
        if not is_valid:
            raise InvalidArgumentError(error)
        return Decimal(str(quantity))
