"""
Production Service - planning and registering daily production runs.

This module provides functions for:
- Planning a run for a product, directly or from its recipe
- Moving a run through its lifecycle (Planned -> InProgress -> Completed,
  or Cancelled)
- Registering a run: variances, completion and ingredient consumption in
  one atomic transaction
- Efficiency, waste and summary reporting

Lifecycle:
    Planned ----> InProgress ----> Completed
       |              |
       +------+-------+
              v
          Cancelled

Completed and Cancelled are terminal; a terminal run can no longer be
registered, started or cancelled.

register_production() either completes the run, stores its detail lines
and (optionally) deducts every line's actual usage from stock, or changes
nothing at all. An InsufficientStockError on any line rolls back the whole
registration, including earlier lines' deductions and the run record.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from bakery_control.models import DailyProduction, ProductionDetail
from bakery_control.models.enums import MovementReason, ProductionStatus
from bakery_control.services import inventory_service
from bakery_control.services.exceptions import (
    InvalidArgumentError,
    InvalidStateError,
    NotFoundError,
    ServiceError,
)
from bakery_control.services.logging_utils import get_service_logger, log_operation
from bakery_control.services.unit_of_work import read_scope, transaction_scope
from bakery_control.utils.constants import MAX_NOTES_LENGTH
from bakery_control.utils.datetime_utils import as_date
from bakery_control.utils.validators import (
    collect_errors,
    to_decimal,
    validate_non_negative_number,
    validate_positive_number,
    validate_production_status,
    validate_string_length,
)

logger = get_service_logger(__name__)


# =============================================================================
# Planning
# =============================================================================


def _build_details(details: Optional[Iterable[Dict[str, Any]]]) -> List[ProductionDetail]:
    built = []
    for index, detail in enumerate(details or (), start=1):
        errors = collect_errors(
            [
                validate_non_negative_number(
                    detail.get("planned_quantity", 0), f"Line {index} planned quantity"
                ),
                validate_non_negative_number(
                    detail.get("actual_quantity", 0), f"Line {index} actual quantity"
                ),
            ]
        )
        if errors:
            raise InvalidArgumentError(errors)
        built.append(
            ProductionDetail(
                ingredient_id=detail["ingredient_id"],
                planned_quantity=to_decimal(detail.get("planned_quantity", 0)),
                actual_quantity=to_decimal(detail.get("actual_quantity", 0)),
                variance=Decimal("0"),
            )
        )
    return built


def plan_production(
    product_id: int,
    planned_quantity: int,
    *,
    production_date=None,
    details: Optional[Iterable[Dict[str, Any]]] = None,
    notes: Optional[str] = None,
    uow=None,
) -> DailyProduction:
    """
    Schedule a production run in Planned status.

    Args:
        product_id: Product to produce
        planned_quantity: Units planned (> 0)
        production_date: Day of the run (date or ISO string, default today)
        details: Planned ingredient usage as dicts with keys ingredient_id,
            planned_quantity and optionally actual_quantity
        notes: Free-form notes
        uow: Unit of work with an open transaction to join

    Returns:
        The persisted DailyProduction

    Raises:
        InvalidArgumentError: If a quantity or the date is invalid
        NotFoundError: If the product or a detail ingredient does not exist
    """
    checks = [validate_positive_number(planned_quantity, "Planned quantity")]
    if notes:
        checks.append(validate_string_length(notes, MAX_NOTES_LENGTH, "Notes"))
    errors = collect_errors(checks)
    if errors:
        raise InvalidArgumentError(errors)

    day = _parse_date(production_date) if production_date is not None else None
    lines = _build_details(details)

    with transaction_scope(uow, "Production planning") as work:
        work.products.get_required(product_id)
        _check_ingredients_exist(work, lines)

        production = DailyProduction(
            production_date=day,
            product_id=product_id,
            planned_quantity=int(planned_quantity),
            actual_quantity=0,
            waste_quantity=0,
            status=ProductionStatus.PLANNED.value,
            notes=notes,
            details=lines,
        )
        work.daily_productions.add(production)

        log_operation(
            logger,
            "plan_production",
            "success",
            production_id=production.id,
            product_id=product_id,
            planned_quantity=int(planned_quantity),
        )
        return production


def plan_production_from_recipe(
    recipe_id: int,
    batches: int,
    *,
    production_date=None,
    notes: Optional[str] = None,
    uow=None,
) -> DailyProduction:
    """
    Schedule a run of a recipe's product sized in batches.

    Planned units are batches x yield and each recipe line becomes a planned
    detail line of line quantity x batches.

    Raises:
        InvalidArgumentError: If batches <= 0 or the recipe has no product
        NotFoundError: If the recipe does not exist
    """
    is_valid, error = validate_positive_number(batches, "Batches")
    if not is_valid:
        raise InvalidArgumentError(error)

    with transaction_scope(uow, "Production planning") as work:
        recipe = work.recipes.get_required(recipe_id)
        if recipe.product_id is None:
            raise InvalidArgumentError(f"Recipe '{recipe.name}' is not linked to a product")

        multiplier = to_decimal(batches)
        details = [
            {
                "ingredient_id": line.ingredient_id,
                "planned_quantity": to_decimal(line.quantity) * multiplier,
            }
            for line in work.recipes.get_lines(recipe_id)
        ]
        return plan_production(
            recipe.product_id,
            int(batches) * recipe.yield_quantity,
            production_date=production_date,
            details=details,
            notes=notes,
            uow=work,
        )


# =============================================================================
# Lifecycle
# =============================================================================


def start_production(production_id: int, *, uow=None) -> DailyProduction:
    """
    Move a Planned run to InProgress.

    Raises:
        NotFoundError: If the run does not exist
        InvalidStateError: If the run is not Planned
    """
    with transaction_scope(uow, "Production start") as work:
        production = work.daily_productions.get_required(production_id)
        if production.status != ProductionStatus.PLANNED.value:
            raise InvalidStateError(
                f"Production {production_id} is {production.status}; only Planned runs can start"
            )
        production.status = ProductionStatus.IN_PROGRESS.value
        work.daily_productions.update(production)
        log_operation(logger, "start_production", "success", production_id=production_id)
        return production


def cancel_production(
    production_id: int, *, reason: Optional[str] = None, uow=None
) -> DailyProduction:
    """
    Cancel a run that has not finished. No stock is touched.

    Raises:
        NotFoundError: If the run does not exist
        InvalidStateError: If the run is already Completed or Cancelled
    """
    with transaction_scope(uow, "Production cancellation") as work:
        production = work.daily_productions.get_required(production_id)
        if production.is_terminal:
            raise InvalidStateError(
                f"Production {production_id} is already {production.status}"
            )
        production.status = ProductionStatus.CANCELLED.value
        if reason:
            note = f"Cancelled: {reason}"
            production.notes = f"{production.notes}\n{note}" if production.notes else note
        work.daily_productions.update(production)
        log_operation(
            logger,
            "cancel_production",
            "success",
            production_id=production_id,
            reason=reason,
        )
        return production


# =============================================================================
# Registration
# =============================================================================


def _validate_registration(production: DailyProduction) -> List[str]:
    checks = [
        validate_non_negative_number(production.planned_quantity or 0, "Planned quantity"),
        validate_non_negative_number(production.actual_quantity or 0, "Actual quantity"),
        validate_non_negative_number(production.waste_quantity or 0, "Waste quantity"),
    ]
    if production.status:
        checks.append(validate_production_status(production.status))
    for index, detail in enumerate(production.details, start=1):
        checks.append(
            validate_non_negative_number(
                detail.planned_quantity or 0, f"Line {index} planned quantity"
            )
        )
        checks.append(
            validate_non_negative_number(detail.actual_quantity or 0, f"Line {index} actual quantity")
        )
    return collect_errors(checks)


def _check_ingredients_exist(work, details: Iterable[ProductionDetail]) -> None:
    for detail in details:
        if work.ingredients.get_by_id(detail.ingredient_id) is None:
            raise NotFoundError("Ingredient", detail.ingredient_id)


def _copy_detail(detail: ProductionDetail) -> ProductionDetail:
    return ProductionDetail(
        ingredient_id=detail.ingredient_id,
        planned_quantity=to_decimal(detail.planned_quantity or 0),
        actual_quantity=to_decimal(detail.actual_quantity or 0),
        variance=Decimal("0"),
    )


def register_production(
    production: DailyProduction,
    update_inventory: bool,
    *,
    uow=None,
) -> Dict[str, Any]:
    """
    Complete a production run atomically.

    Within one transaction:
    1. Computes variance = actual - planned on every detail line
    2. Sets the run to Completed
    3. Inserts the run, or reconciles the stored detail lines with
       ``production.details`` when the run already exists
    4. If ``update_inventory``, deducts every line's actual quantity from
       stock (reason "production", linked to the run)

    Any failure rolls all of it back. On success the caller's object
    receives the id, status, date and line ids/variances that were stored.

    Args:
        production: New (unsaved) or previously planned run
        update_inventory: Whether to consume ingredient stock. False
            completes the run without touching inventory.
        uow: Unit of work with an open transaction to join

    Returns:
        Dict with keys:
            - "production_id": int
            - "product_id": int
            - "production_date": date
            - "status": str
            - "planned_quantity", "actual_quantity", "waste_quantity": int
            - "efficiency_percentage", "waste_percentage": Decimal
            - "inventory_updated": bool
            - "details": List[Dict] - per line id, ingredient_id, planned,
              actual and variance
            - "stock_adjustments": List[Dict] - adjust_stock() results

    Raises:
        InvalidArgumentError: If a quantity is negative
        NotFoundError: If the run, product or a detail ingredient is missing
        InvalidStateError: If the run is Completed or Cancelled
        InsufficientStockError: If any line's deduction exceeds stock
        ConflictError: If stock changed concurrently or a write breaks a constraint
        DatabaseError: If the database fails, e.g. another writer holds the lock
    """
    errors = _validate_registration(production)
    if errors:
        raise InvalidArgumentError(errors)

    try:
        with transaction_scope(uow, "Production registration") as work:
            result = _register(work, production, update_inventory)
    except ServiceError as e:
        log_operation(
            logger,
            "register_production",
            "failed",
            level=logging.WARNING,
            production_id=production.id,
            product_id=production.product_id,
            error=str(e),
        )
        raise

    _copy_back(production, result)
    log_operation(
        logger,
        "register_production",
        "success",
        production_id=result["production_id"],
        product_id=result["product_id"],
        inventory_updated=update_inventory,
        line_count=len(result["details"]),
    )
    return result


def _register(work, production: DailyProduction, update_inventory: bool) -> Dict[str, Any]:
    work.products.get_required(production.product_id)
    _check_ingredients_exist(work, production.details)

    if production.id is None:
        if production.status and ProductionStatus(production.status).is_terminal:
            raise InvalidStateError(f"Cannot register a new run in status {production.status}")
        record = DailyProduction()
        record.copy_columns_from(production)
        record.details = [_copy_detail(detail) for detail in production.details]
        record.recompute_variances()
        record.status = ProductionStatus.COMPLETED.value
        work.daily_productions.add(record)
    else:
        stored = work.daily_productions.get_required(production.id)
        if stored.is_terminal:
            raise InvalidStateError(
                f"Production {production.id} is {stored.status}; it can no longer be registered"
            )
        record = work.daily_productions.update(production)
        record.recompute_variances()
        record.status = ProductionStatus.COMPLETED.value
        work.daily_productions.update(record)

    adjustments = []
    if update_inventory:
        for detail in record.details:
            used = to_decimal(detail.actual_quantity or 0)
            if used == 0:
                continue
            adjustments.append(
                inventory_service.adjust_stock(
                    detail.ingredient_id,
                    -used,
                    reason=MovementReason.PRODUCTION.value,
                    daily_production_id=record.id,
                    notes=f"Production run {record.id}",
                    uow=work,
                )
            )

    return {
        "production_id": record.id,
        "product_id": record.product_id,
        "production_date": record.production_date,
        "status": record.status,
        "planned_quantity": record.planned_quantity,
        "actual_quantity": record.actual_quantity,
        "waste_quantity": record.waste_quantity,
        "efficiency_percentage": record.efficiency_percentage(),
        "waste_percentage": record.waste_percentage(),
        "inventory_updated": bool(update_inventory),
        "details": [_detail_dict(detail) for detail in record.details],
        "stock_adjustments": adjustments,
    }


def _detail_dict(detail: ProductionDetail) -> Dict[str, Any]:
    return {
        "detail_id": detail.id,
        "ingredient_id": detail.ingredient_id,
        "planned_quantity": to_decimal(detail.planned_quantity),
        "actual_quantity": to_decimal(detail.actual_quantity),
        "variance": to_decimal(detail.variance),
    }


def _copy_back(production: DailyProduction, result: Dict[str, Any]) -> None:
    """Mirror the stored identity and derived values onto the caller's object."""
    production.id = result["production_id"]
    production.status = result["status"]
    production.production_date = result["production_date"]

    stored = result["details"]
    known_ids = {detail.id for detail in production.details if detail.id is not None}
    new_rows = iter(row for row in stored if row["detail_id"] not in known_ids)
    by_id = {row["detail_id"]: row for row in stored}
    for detail in production.details:
        row = by_id.get(detail.id) if detail.id is not None else next(new_rows, None)
        if row is not None:
            detail.id = row["detail_id"]
            detail.variance = row["variance"]


# =============================================================================
# Reporting
# =============================================================================


def _parse_date(value) -> date:
    try:
        return as_date(value)
    except (TypeError, ValueError) as e:
        raise InvalidArgumentError(f"Date: {e}") from e


def get_production(production_id: int, *, uow=None) -> DailyProduction:
    with read_scope(uow) as work:
        return work.daily_productions.get_required(production_id)


def efficiency_percentage(production_id: int, *, uow=None) -> Decimal:
    return get_production(production_id, uow=uow).efficiency_percentage()


def waste_percentage(production_id: int, *, uow=None) -> Decimal:
    return get_production(production_id, uow=uow).waste_percentage()


def aggregate_efficiency(day, *, uow=None) -> Decimal:
    """
    Mean efficiency of the runs on ``day``.

    Runs with 0% efficiency are left out of the average rather than
    counted as zero; 0 when no run qualifies.
    """
    day = _parse_date(day)
    with read_scope(uow) as work:
        values = [
            production.efficiency_percentage()
            for production in work.daily_productions.get_by_date(day)
        ]
    values = [value for value in values if value > 0]
    if not values:
        return Decimal("0")
    return sum(values, Decimal("0")) / len(values)


def get_waste_report(start, end, *, uow=None) -> Dict[int, int]:
    """Product id -> units wasted between ``start`` and ``end`` inclusive."""
    start, end = _parse_date(start), _parse_date(end)
    with read_scope(uow) as work:
        return work.daily_productions.get_waste_report(start, end)


def get_production_summary(production_id: int, *, uow=None) -> Dict[str, Any]:
    """
    Full picture of one run.

    Returns:
        Dict with the run's columns, product name, efficiency and waste
        percentages, and per-line details including ingredient name, unit
        and variance.
    """
    with read_scope(uow) as work:
        production = work.daily_productions.get_required(production_id)
        product = work.products.get_by_id(production.product_id)
        lines = []
        for detail in production.details:
            ingredient = work.ingredients.get_by_id(detail.ingredient_id)
            line = _detail_dict(detail)
            line["ingredient_name"] = ingredient.name if ingredient else None
            line["unit"] = ingredient.unit if ingredient else None
            lines.append(line)

        return {
            "production_id": production.id,
            "production_date": production.production_date,
            "product_id": production.product_id,
            "product_name": product.name if product else None,
            "status": production.status,
            "planned_quantity": production.planned_quantity,
            "actual_quantity": production.actual_quantity,
            "waste_quantity": production.waste_quantity,
            "efficiency_percentage": production.efficiency_percentage(),
            "waste_percentage": production.waste_percentage(),
            "notes": production.notes,
            "details": lines,
            "total_variance": sum((line["variance"] for line in lines), Decimal("0")),
        }
