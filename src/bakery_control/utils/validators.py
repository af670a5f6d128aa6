"""
Input validation for the Bakery Control services.

Each validator returns ``(is_valid, error_message)`` with the message
prefixed by the field name, so a service can run every check on an input,
gather the failures with ``collect_errors`` and reject the input once with
all of them.
"""

import math
from datetime import date
from decimal import Decimal
from typing import Any, Iterable, List, Optional, Tuple

from bakery_control.models.enums import MeasurementUnit, ProductionStatus

from .constants import (
    ERROR_INVALID_NON_NEGATIVE,
    ERROR_INVALID_NUMBER,
    ERROR_INVALID_POSITIVE,
    ERROR_INVALID_STATUS,
    ERROR_INVALID_UNIT,
    ERROR_REQUIRED_FIELD,
)

Result = Tuple[bool, str]

_OK: Result = (True, "")
_UNITS = frozenset(unit.value for unit in MeasurementUnit)
_STATUSES = frozenset(status.value for status in ProductionStatus)


def _fail(field_name: str, message: str) -> Result:
    return False, f"{field_name}: {message}"


def _finite_number(value: Any) -> Optional[float]:
    """``value`` as a finite float, or None if it is not a usable number."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


# =============================================================================
# Strings
# =============================================================================


def validate_required_string(value: Optional[str], field_name: str = "Field") -> Result:
    """Fail for None, empty or whitespace-only strings."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return _fail(field_name, ERROR_REQUIRED_FIELD)
    return _OK


def validate_string_length(
    value: Optional[str], max_length: int, field_name: str = "Field"
) -> Result:
    if value and len(value) > max_length:
        return _fail(field_name, f"Must be {max_length} characters or less")
    return _OK


# =============================================================================
# Numbers
# =============================================================================


def validate_positive_number(value: Any, field_name: str = "Field") -> Result:
    """
    Check that ``value`` is a number greater than zero.

    Numeric strings are accepted; NaN and infinities are not numbers here.
    """
    number = _finite_number(value)
    if number is None:
        return _fail(field_name, ERROR_INVALID_NUMBER)
    if number <= 0:
        return _fail(field_name, ERROR_INVALID_POSITIVE)
    return _OK


def validate_non_negative_number(value: Any, field_name: str = "Field") -> Result:
    number = _finite_number(value)
    if number is None:
        return _fail(field_name, ERROR_INVALID_NUMBER)
    if number < 0:
        return _fail(field_name, ERROR_INVALID_NON_NEGATIVE)
    return _OK


def validate_number_range(
    value: Any, min_value: float, max_value: float, field_name: str = "Field"
) -> Result:
    """Check ``min_value <= value <= max_value``."""
    number = _finite_number(value)
    if number is None:
        return _fail(field_name, ERROR_INVALID_NUMBER)
    if not min_value <= number <= max_value:
        return _fail(field_name, f"Must be between {min_value} and {max_value}")
    return _OK


# =============================================================================
# Domain values
# =============================================================================


def validate_unit(unit: Optional[str], field_name: str = "Unit") -> Result:
    """Check ``unit`` names a MeasurementUnit (case-insensitive)."""
    if not unit:
        return _fail(field_name, ERROR_REQUIRED_FIELD)
    if unit.lower() not in _UNITS:
        return _fail(field_name, ERROR_INVALID_UNIT)
    return _OK


def validate_production_status(status: Optional[str], field_name: str = "Status") -> Result:
    if status not in _STATUSES:
        return _fail(field_name, ERROR_INVALID_STATUS)
    return _OK


def validate_date_range(start_date: date, end_date: date) -> Result:
    """Both ends are inclusive; a one-day range has start == end."""
    if start_date > end_date:
        return False, "Start date cannot be after end date"
    return _OK


# =============================================================================
# Helpers
# =============================================================================


def collect_errors(results: Iterable[Result]) -> List[str]:
    """Return the messages of every failed validation result."""
    return [message for is_valid, message in results if not is_valid]


def to_decimal(value: Any) -> Decimal:
    """Convert an already validated number or numeric string to Decimal."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value).strip())
