"""
Inventory Service - the ingredient stock ledger.

This module provides functions for:
- Adjusting ingredient stock atomically (the only writer of current_stock)
- Restocking ingredients received from suppliers
- Availability checks and low-stock / expiry listings
- Inventory valuation
- Ingredient intake (creation) and deletion

Every stock change re-reads the ingredient row under a lock, computes the
new stock in Decimal, writes it only if the row still holds the value that
was read, and records a StockMovement audit row in the same transaction.

All functions accept an optional ``uow``. Mutating functions given a
``uow`` join its open transaction; without one they run in their own.
"""

import logging
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Dict, List, Optional

from bakery_control.models import Ingredient
from bakery_control.models.enums import MeasurementUnit, MovementReason
from bakery_control.services.exceptions import (
    ConflictError,
    InsufficientStockError,
    InvalidArgumentError,
    NotFoundError,
)
from bakery_control.services.logging_utils import get_service_logger, log_operation
from bakery_control.services.unit_of_work import read_scope, transaction_scope
from bakery_control.utils.constants import (
    MAX_COST,
    MAX_DESCRIPTION_LENGTH,
    MAX_NAME_LENGTH,
    MAX_QUANTITY,
    MAX_SUPPLIER_LENGTH,
    MIN_COST,
    MIN_QUANTITY,
    STOCK_SCALE,
)
from bakery_control.utils.datetime_utils import utc_now
from bakery_control.utils.validators import (
    collect_errors,
    to_decimal,
    validate_non_negative_number,
    validate_number_range,
    validate_positive_number,
    validate_required_string,
    validate_string_length,
    validate_unit,
)

logger = get_service_logger(__name__)

_MOVEMENT_REASONS = {reason.value for reason in MovementReason}
_STOCK_QUANTUM = Decimal(1).scaleb(-STOCK_SCALE)


# =============================================================================
# Stock adjustment
# =============================================================================


def adjust_stock(
    ingredient_id: int,
    delta,
    *,
    reason: str = MovementReason.CORRECTION.value,
    daily_production_id: Optional[int] = None,
    notes: Optional[str] = None,
    uow=None,
) -> Dict[str, Any]:
    """
    Apply ``current_stock += delta`` to one ingredient.

    The row is read under a lock, the new stock is computed in Decimal and
    rounded to the column scale, and the write only lands if the stored
    stock still equals what was read. Concurrent adjustments therefore can
    never both pass the non-negative check on the same starting value. A
    zero delta changes nothing and records nothing.

    Args:
        ingredient_id: Ingredient to adjust
        delta: Signed quantity in the ingredient's unit
        reason: MovementReason value recorded in the audit trail
        daily_production_id: Production run that caused the change, if any
        notes: Free-form audit note
        uow: Unit of work with an open transaction to join

    Returns:
        Dict with keys:
            - "ingredient_id": int
            - "ingredient_name": str
            - "delta": Decimal
            - "previous_stock": Decimal
            - "new_stock": Decimal
            - "movement_id": Optional[int] - audit row id (None for a no-op)

    Raises:
        InvalidArgumentError: If delta is not a number, lies outside
            +/- MAX_QUANTITY, or reason is unknown
        NotFoundError: If the ingredient does not exist
        InsufficientStockError: If the result would be negative
        ConflictError: If another transaction changed the stock between
            the read and the write
        InvalidStateError: If ``uow`` has no open transaction
        DatabaseError: If the database fails the write (e.g. it is locked
            by another writer)
    """
    errors = collect_errors([validate_number_range(delta, -MAX_QUANTITY, MAX_QUANTITY, "Delta")])
    if reason not in _MOVEMENT_REASONS:
        errors.append(f"Reason: Must be one of {', '.join(sorted(_MOVEMENT_REASONS))}")
    if errors:
        raise InvalidArgumentError(errors)
    delta = to_decimal(delta)

    with transaction_scope(uow, "Stock adjustment") as work:
        ingredient = work.ingredients.get_for_update(ingredient_id)
        if ingredient is None:
            log_operation(
                logger,
                "adjust_stock",
                "not_found",
                level=logging.WARNING,
                ingredient_id=ingredient_id,
            )
            raise NotFoundError("Ingredient", ingredient_id)

        previous = to_decimal(ingredient.current_stock)
        if delta == 0:
            return _adjustment_result(ingredient, delta, previous, None)

        if previous + delta < 0:
            _log_insufficient(ingredient, delta, previous)
            raise InsufficientStockError(ingredient.id, ingredient.name, -delta, previous)

        new_stock = (previous + delta).quantize(_STOCK_QUANTUM)
        if not work.ingredients.set_stock(ingredient.id, previous, new_stock):
            work.ingredients.refresh(ingredient)
            available = to_decimal(ingredient.current_stock)
            if available + delta < 0:
                _log_insufficient(ingredient, delta, available)
                raise InsufficientStockError(ingredient.id, ingredient.name, -delta, available)
            log_operation(
                logger,
                "adjust_stock",
                "concurrent_change",
                level=logging.WARNING,
                ingredient_id=ingredient.id,
                expected=str(previous),
                found=str(available),
            )
            raise ConflictError(
                f"Stock of {ingredient.name} changed during the adjustment; retry it"
            )

        work.ingredients.refresh(ingredient)
        if delta > 0:
            ingredient.last_restock_date = utc_now()

        movement = work.stock_movements.record(
            ingredient.id,
            delta,
            new_stock,
            reason,
            daily_production_id=daily_production_id,
            notes=notes,
        )

        log_operation(
            logger,
            "adjust_stock",
            "success",
            ingredient_id=ingredient.id,
            delta=str(delta),
            new_stock=str(new_stock),
            reason=reason,
        )
        return _adjustment_result(ingredient, delta, previous, movement.id)


def _adjustment_result(ingredient: Ingredient, delta: Decimal, previous: Decimal, movement_id):
    return {
        "ingredient_id": ingredient.id,
        "ingredient_name": ingredient.name,
        "delta": delta,
        "previous_stock": previous,
        "new_stock": to_decimal(ingredient.current_stock),
        "movement_id": movement_id,
    }


def _log_insufficient(ingredient: Ingredient, delta: Decimal, available: Decimal) -> None:
    log_operation(
        logger,
        "adjust_stock",
        "insufficient_stock",
        level=logging.WARNING,
        ingredient_id=ingredient.id,
        delta=str(delta),
        available=str(available),
    )


def restock_ingredient(
    ingredient_id: int,
    quantity,
    *,
    unit_price=None,
    notes: Optional[str] = None,
    uow=None,
) -> Dict[str, Any]:
    """
    Receive ``quantity`` of an ingredient into stock.

    Optionally records a new unit price for the delivery.

    Returns:
        The adjust_stock() result plus "unit_price"

    Raises:
        InvalidArgumentError: If quantity <= 0 or unit_price < 0
        NotFoundError: If the ingredient does not exist
    """
    checks = [validate_positive_number(quantity, "Quantity")]
    if unit_price is not None:
        checks.append(validate_number_range(unit_price, MIN_COST, MAX_COST, "Unit price"))
    errors = collect_errors(checks)
    if errors:
        raise InvalidArgumentError(errors)

    with transaction_scope(uow, "Restock") as work:
        result = adjust_stock(
            ingredient_id,
            quantity,
            reason=MovementReason.RESTOCK.value,
            notes=notes,
            uow=work,
        )
        ingredient = work.ingredients.get_required(ingredient_id)
        if unit_price is not None:
            ingredient.unit_price = to_decimal(unit_price)
        result["unit_price"] = to_decimal(ingredient.unit_price)
        return result


# =============================================================================
# Reads
# =============================================================================


def check_availability(ingredient_id: int, required_quantity, *, uow=None) -> bool:
    """True iff the ingredient has at least ``required_quantity`` in stock."""
    is_valid, error = validate_non_negative_number(required_quantity, "Required quantity")
    if not is_valid:
        raise InvalidArgumentError(error)

    with read_scope(uow) as work:
        ingredient = work.ingredients.get_required(ingredient_id)
        return to_decimal(ingredient.current_stock) >= to_decimal(required_quantity)


def get_ingredient(ingredient_id: int, *, uow=None) -> Ingredient:
    with read_scope(uow) as work:
        return work.ingredients.get_required(ingredient_id)


def get_low_stock(*, uow=None) -> List[Ingredient]:
    """Ingredients at or below minimum stock, most critical first."""
    with read_scope(uow) as work:
        return work.ingredients.get_low_stock()


def get_expiring_soon(days: int, *, uow=None) -> List[Ingredient]:
    with read_scope(uow) as work:
        return work.ingredients.get_expiring_soon(days)


def get_total_inventory_value(*, uow=None) -> Decimal:
    with read_scope(uow) as work:
        return work.ingredients.get_total_inventory_value()


def get_stock_alert_report(*, uow=None) -> Dict[str, Decimal]:
    with read_scope(uow) as work:
        return work.ingredients.get_stock_alert_report()


def get_stock_movements(ingredient_id: int, *, uow=None):
    """Audit trail of one ingredient, oldest first."""
    with read_scope(uow) as work:
        work.ingredients.get_required(ingredient_id)
        return work.stock_movements.get_by_ingredient(ingredient_id)


# =============================================================================
# Intake and deletion
# =============================================================================


def _validate_ingredient_data(data: Dict[str, Any]) -> List[str]:
    checks = [
        validate_required_string(data.get("name"), "Name"),
        validate_unit(data.get("unit", MeasurementUnit.UNIT.value)),
    ]
    if data.get("name"):
        checks.append(validate_string_length(data["name"], MAX_NAME_LENGTH, "Name"))
    if data.get("description"):
        checks.append(
            validate_string_length(data["description"], MAX_DESCRIPTION_LENGTH, "Description")
        )
    if data.get("supplier"):
        checks.append(validate_string_length(data["supplier"], MAX_SUPPLIER_LENGTH, "Supplier"))
    for field, label in (
        ("current_stock", "Current stock"),
        ("minimum_stock", "Minimum stock"),
        ("maximum_stock", "Maximum stock"),
    ):
        if data.get(field) is not None:
            checks.append(validate_number_range(data[field], MIN_QUANTITY, MAX_QUANTITY, label))
    if data.get("unit_price") is not None:
        checks.append(validate_number_range(data["unit_price"], MIN_COST, MAX_COST, "Unit price"))
    return collect_errors(checks)


def _as_datetime(value):
    if isinstance(value, date) and not isinstance(value, datetime):
        return datetime.combine(value, time.min)
    return value


def create_ingredient(data: Dict[str, Any], *, uow=None) -> Ingredient:
    """
    Register a new ingredient (inventory intake).

    Args:
        data: Dictionary with keys name (required), unit, description,
            current_stock, minimum_stock, maximum_stock, unit_price,
            supplier, expiration_date

    Returns:
        The created Ingredient

    Raises:
        InvalidArgumentError: If the data fails validation
        ConflictError: If an ingredient with the same name exists
    """
    errors = _validate_ingredient_data(data)
    if errors:
        raise InvalidArgumentError(errors)

    name = data["name"].strip()
    with transaction_scope(uow, "Ingredient intake") as work:
        if work.ingredients.get_by_name(name) is not None:
            raise ConflictError(f"Ingredient '{name}' already exists")

        ingredient = Ingredient(
            name=name,
            unit=data.get("unit", MeasurementUnit.UNIT.value).lower(),
            description=data.get("description"),
            current_stock=to_decimal(data.get("current_stock", 0)),
            minimum_stock=to_decimal(data.get("minimum_stock", 0)),
            maximum_stock=to_decimal(data.get("maximum_stock", 0)),
            unit_price=to_decimal(data.get("unit_price", 0)),
            supplier=data.get("supplier"),
            expiration_date=_as_datetime(data.get("expiration_date")),
        )
        work.ingredients.add(ingredient)

        log_operation(
            logger,
            "create_ingredient",
            "success",
            ingredient_id=ingredient.id,
            ingredient_name=name,
        )
        return ingredient


def delete_ingredient(ingredient_id: int, *, uow=None) -> None:
    """
    Delete an ingredient no recipe or production run refers to.

    Raises:
        NotFoundError: If the ingredient does not exist
        ConflictError: If recipe or production lines still reference it
    """
    with transaction_scope(uow, "Ingredient deletion") as work:
        work.ingredients.delete(ingredient_id)
        log_operation(logger, "delete_ingredient", "success", ingredient_id=ingredient_id)
