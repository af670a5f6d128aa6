"""
Enumerations for bakery models.

- MeasurementUnit: Units an ingredient is stocked and priced in
- ProductionStatus: Lifecycle of a daily production run
- PaymentMethod: How a sale was paid
- MovementReason: Why an ingredient's stock changed
"""

from enum import Enum


class MeasurementUnit(str, Enum):
    """Unit of measure for ingredient stock and unit price."""

    KILOGRAM = "kilogram"
    GRAM = "gram"
    LITER = "liter"
    MILLILITER = "milliliter"
    UNIT = "unit"
    PACKAGE = "package"
    DOZEN = "dozen"


class ProductionStatus(str, Enum):
    """
    Daily production lifecycle.

    Planned -> InProgress -> Completed
    Planned/InProgress -> Cancelled

    COMPLETED and CANCELLED are terminal: detail lines are frozen.
    """

    PLANNED = "Planned"
    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (ProductionStatus.COMPLETED, ProductionStatus.CANCELLED)


class PaymentMethod(str, Enum):
    """Payment method recorded on a sale."""

    CASH = "Cash"
    CARD = "Card"
    TRANSFER = "Transfer"
    CREDIT = "Credit"


class MovementReason(str, Enum):
    """Reason recorded on a stock movement."""

    RESTOCK = "restock"
    PRODUCTION = "production"
    CORRECTION = "correction"
    WASTE = "waste"
