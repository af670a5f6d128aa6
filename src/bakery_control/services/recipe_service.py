"""
Recipe Service - recipe management and the costing engine.

This module provides functions for:
- Batch cost and per-unit cost of a recipe from current ingredient prices
- Feasibility checks (can_produce / missing_ingredients) against stock
- Production plans with revenue and margin for product-linked recipes
- Recipe creation and line editing
- Linking a recipe to the product it makes (one recipe per product)

Costing reads are pure: nothing is written except by refresh_recipe_cost,
which stores the per-unit cost on the recipe and its product.

Quantities passed to can_produce, missing_ingredients and
calculate_production_plan are numbers of batches; each recipe line holds
the quantity for one batch.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Optional

from bakery_control.models import Recipe
from bakery_control.services.exceptions import (
    ConflictError,
    InvalidArgumentError,
    NotFoundError,
)
from bakery_control.services.logging_utils import get_service_logger, log_operation
from bakery_control.services.unit_of_work import read_scope, transaction_scope
from bakery_control.utils.constants import (
    CURRENCY_DECIMAL_PLACES,
    LOW_MARGIN_THRESHOLD,
    MAX_NAME_LENGTH,
)
from bakery_control.utils.datetime_utils import utc_now
from bakery_control.utils.validators import (
    collect_errors,
    to_decimal,
    validate_non_negative_number,
    validate_positive_number,
    validate_required_string,
    validate_string_length,
)

logger = get_service_logger(__name__)

_CENTS = Decimal(1).scaleb(-CURRENCY_DECIMAL_PLACES)


def _money(value: Decimal) -> Decimal:
    return value.quantize(_CENTS, rounding=ROUND_HALF_UP)


def _require_positive_quantity(quantity) -> Decimal:
    is_valid, error = validate_positive_number(quantity, "Quantity")
    if not is_valid:
        raise InvalidArgumentError(error)
    return to_decimal(quantity)


# =============================================================================
# Costing
# =============================================================================


def calculate_cost(recipe_id: int, *, uow=None) -> Decimal:
    """
    Total ingredient cost of one batch.

    Sum over the recipe lines of quantity x ingredient unit price; 0 for a
    recipe without lines.

    Raises:
        NotFoundError: If the recipe does not exist
    """
    with read_scope(uow) as work:
        work.recipes.get_required(recipe_id)
        total = Decimal("0")
        for line, ingredient in work.recipes.get_lines_with_ingredients(recipe_id):
            total += to_decimal(line.quantity) * to_decimal(ingredient.unit_price)
        return total


def cost_per_unit(recipe_id: int, *, uow=None) -> Decimal:
    """Batch cost divided by yield (0 if the yield is not positive)."""
    with read_scope(uow) as work:
        recipe = work.recipes.get_required(recipe_id)
        return recipe.per_unit(calculate_cost(recipe_id, uow=work))


def missing_ingredients(recipe_id: int, quantity, *, uow=None) -> List[Dict[str, Any]]:
    """
    Shortfalls for producing ``quantity`` batches of a recipe.

    Returns:
        One dict per line whose requirement exceeds stock, in line order,
        with keys ingredient_id, ingredient_name, required, available,
        missing and unit. Empty when everything is available.

    Raises:
        InvalidArgumentError: If quantity <= 0
        NotFoundError: If the recipe does not exist
    """
    quantity = _require_positive_quantity(quantity)

    with read_scope(uow) as work:
        work.recipes.get_required(recipe_id)
        shortages = []
        for line, ingredient in work.recipes.get_lines_with_ingredients(recipe_id):
            required = to_decimal(line.quantity) * quantity
            available = to_decimal(ingredient.current_stock)
            if required > available:
                shortages.append(
                    {
                        "ingredient_id": ingredient.id,
                        "ingredient_name": ingredient.name,
                        "required": required,
                        "available": available,
                        "missing": required - available,
                        "unit": ingredient.unit,
                    }
                )
        return shortages


def can_produce(recipe_id: int, quantity, *, uow=None) -> bool:
    """True iff stock covers every line for ``quantity`` batches."""
    return not missing_ingredients(recipe_id, quantity, uow=uow)


def calculate_production_plan(recipe_id: int, quantity, *, uow=None) -> Dict[str, Any]:
    """
    Cost and feasibility of producing ``quantity`` batches.

    Returns:
        Dict with keys:
            - "recipe_id", "recipe_name"
            - "batches": Decimal
            - "units": Decimal - batches x yield
            - "can_produce": bool
            - "missing": List[Dict] - as missing_ingredients()
            - "total_cost": Decimal
            - "cost_per_unit": Decimal
        and, when the recipe is linked to a product with a sale price:
            - "product_id", "revenue", "profit", "margin_percent"
            - "at_loss": bool
            - "low_margin": bool - margin below LOW_MARGIN_THRESHOLD
    """
    batches = _require_positive_quantity(quantity)

    with read_scope(uow) as work:
        recipe = work.recipes.get_required(recipe_id)
        batch_cost = calculate_cost(recipe_id, uow=work)
        missing = missing_ingredients(recipe_id, batches, uow=work)
        units = batches * Decimal(recipe.yield_quantity)
        total_cost = batch_cost * batches

        plan = {
            "recipe_id": recipe.id,
            "recipe_name": recipe.name,
            "batches": batches,
            "units": units,
            "can_produce": not missing,
            "missing": missing,
            "total_cost": _money(total_cost),
            "cost_per_unit": _money(recipe.per_unit(batch_cost)),
        }

        if recipe.product_id is not None:
            product = work.products.get_required(recipe.product_id)
            sale_price = to_decimal(product.sale_price)
            if sale_price > 0:
                revenue = sale_price * units
                profit = revenue - total_cost
                margin = profit / revenue * 100
                plan.update(
                    {
                        "product_id": product.id,
                        "revenue": _money(revenue),
                        "profit": _money(profit),
                        "margin_percent": margin.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP),
                        "at_loss": profit < 0,
                        "low_margin": margin < LOW_MARGIN_THRESHOLD,
                    }
                )
        return plan


def refresh_recipe_cost(recipe_id: int, *, uow=None) -> Decimal:
    """
    Store the current per-unit cost on the recipe.

    When the recipe is linked to a product, the product's production cost
    and profit margin are updated too.

    Returns:
        The stored per-unit cost
    """
    with transaction_scope(uow, "Recipe cost refresh") as work:
        recipe = work.recipes.get_required(recipe_id)
        unit_cost = _money(recipe.per_unit(calculate_cost(recipe_id, uow=work)))
        recipe.total_cost = unit_cost
        recipe.last_updated = utc_now()

        if recipe.product_id is not None:
            product = work.products.get_required(recipe.product_id)
            product.production_cost = unit_cost
            sale_price = to_decimal(product.sale_price)
            product.profit_margin = (
                _money((sale_price - unit_cost) / sale_price * 100) if sale_price > 0 else Decimal("0")
            )

        log_operation(
            logger,
            "refresh_recipe_cost",
            "success",
            recipe_id=recipe_id,
            cost_per_unit=str(unit_cost),
        )
        return unit_cost


# =============================================================================
# Recipe management
# =============================================================================


def get_recipe(recipe_id: int, *, uow=None) -> Recipe:
    with read_scope(uow) as work:
        return work.recipes.get_required(recipe_id)


def _line_values(line) -> tuple:
    if isinstance(line, dict):
        return line["ingredient_id"], line["quantity"]
    ingredient_id, quantity = line
    return ingredient_id, quantity


def create_recipe(
    data: Dict[str, Any],
    lines: Optional[Iterable] = None,
    *,
    uow=None,
) -> Recipe:
    """
    Create a recipe, optionally with its ingredient lines.

    Args:
        data: Dictionary with keys name (required), yield_quantity (>= 1,
            default 1), product_id, instructions, preparation_time,
            baking_time
        lines: Iterable of {"ingredient_id", "quantity"} dicts or
            (ingredient_id, quantity) pairs; repeated ingredients merge

    Raises:
        InvalidArgumentError: If the data fails validation
        NotFoundError: If the product or an ingredient does not exist
        ConflictError: If the product already has a recipe
    """
    checks = [validate_required_string(data.get("name"), "Name")]
    if data.get("name"):
        checks.append(validate_string_length(data["name"], MAX_NAME_LENGTH, "Name"))
    for field, label in (("preparation_time", "Preparation time"), ("baking_time", "Baking time")):
        if data.get(field) is not None:
            checks.append(validate_non_negative_number(data[field], label))
    errors = collect_errors(checks)
    if errors:
        raise InvalidArgumentError(errors)

    with transaction_scope(uow, "Recipe creation") as work:
        product_id = data.get("product_id")
        if product_id is not None:
            _check_product_free(work, product_id, recipe_id=None)

        recipe = Recipe(
            name=data["name"].strip(),
            product_id=product_id,
            instructions=data.get("instructions"),
            preparation_time=data.get("preparation_time", 0),
            baking_time=data.get("baking_time", 0),
            yield_quantity=data.get("yield_quantity", 1),
        )
        work.recipes.add(recipe)

        for line in lines or ():
            ingredient_id, quantity = _line_values(line)
            work.recipes.add_line(recipe.id, ingredient_id, quantity)

        recipe.total_cost = _money(recipe.per_unit(calculate_cost(recipe.id, uow=work)))

        log_operation(
            logger,
            "create_recipe",
            "success",
            recipe_id=recipe.id,
            line_count=len(recipe.lines),
        )
        return recipe


def add_ingredient_to_recipe(recipe_id: int, ingredient_id: int, quantity, *, uow=None):
    """
    Add ``quantity`` of an ingredient to a recipe.

    An ingredient already on the recipe has its quantity increased.

    Raises:
        InvalidArgumentError: If quantity <= 0
        NotFoundError: If the recipe or ingredient does not exist
    """
    with transaction_scope(uow, "Recipe line edit") as work:
        line = work.recipes.add_line(recipe_id, ingredient_id, quantity)
        log_operation(
            logger,
            "add_ingredient_to_recipe",
            "success",
            recipe_id=recipe_id,
            ingredient_id=ingredient_id,
            quantity=str(line.quantity),
        )
        return line


def update_recipe_line(line_id: int, quantity, *, uow=None):
    with transaction_scope(uow, "Recipe line edit") as work:
        return work.recipes.update_line(line_id, quantity)


def remove_ingredient_from_recipe(recipe_id: int, ingredient_id: int, *, uow=None) -> None:
    """
    Remove an ingredient's line from a recipe.

    Raises:
        NotFoundError: If the recipe does not exist or does not use the ingredient
    """
    with transaction_scope(uow, "Recipe line edit") as work:
        work.recipes.get_required(recipe_id)
        for line in work.recipes.get_lines(recipe_id):
            if line.ingredient_id == ingredient_id:
                work.recipes.remove_line(line.id)
                log_operation(
                    logger,
                    "remove_ingredient_from_recipe",
                    "success",
                    recipe_id=recipe_id,
                    ingredient_id=ingredient_id,
                )
                return
        raise NotFoundError("Recipe line for ingredient", ingredient_id)


def _check_product_free(work, product_id: int, recipe_id: Optional[int]) -> None:
    work.products.get_required(product_id)
    linked = work.recipes.get_by_product_id(product_id)
    if linked is not None and linked.id != recipe_id:
        raise ConflictError(
            f"Product {product_id} already has recipe '{linked.name}' (ID {linked.id})"
        )


def link_recipe_to_product(recipe_id: int, product_id: int, *, uow=None) -> Recipe:
    """
    Make ``recipe_id`` the recipe of ``product_id``.

    Raises:
        NotFoundError: If the recipe or product does not exist
        ConflictError: If another recipe is already linked to the product
    """
    with transaction_scope(uow, "Recipe link") as work:
        recipe = work.recipes.get_required(recipe_id)
        _check_product_free(work, product_id, recipe_id=recipe.id)
        recipe.product_id = product_id
        recipe.last_updated = utc_now()
        work.recipes.update(recipe)
        log_operation(
            logger, "link_recipe_to_product", "success", recipe_id=recipe_id, product_id=product_id
        )
        return recipe


def unlink_recipe_from_product(recipe_id: int, *, uow=None) -> Recipe:
    with transaction_scope(uow, "Recipe link") as work:
        recipe = work.recipes.get_required(recipe_id)
        recipe.product_id = None
        work.recipes.update(recipe)
        return recipe
