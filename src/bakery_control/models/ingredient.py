"""
Ingredient model for stocked raw materials.

An ingredient carries its own stock level, reorder thresholds and current
unit price. Stock only changes through the inventory ledger
(inventory_service.adjust_stock), which keeps current_stock >= 0.
"""

from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Index,
    Numeric,
    String,
    Text,
)

from .base import BaseModel
from .enums import MeasurementUnit


class Ingredient(BaseModel):
    """
    Ingredient model representing a stocked raw material.

    Attributes:
        name: Unique ingredient name (e.g., "Flour")
        description: Optional description
        unit: Unit of measure, one of MeasurementUnit values
        current_stock: Quantity on hand (never negative)
        minimum_stock: Reorder threshold; at or below this the ingredient is low
        maximum_stock: Storage capacity / target level
        unit_price: Price per unit of measure
        supplier: Supplier name
        last_restock_date: When stock was last received
        expiration_date: When the current stock expires
    """

    __tablename__ = "ingredients"

    name = Column(String(200), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    unit = Column(String(20), nullable=False, default=MeasurementUnit.UNIT.value)

    current_stock = Column(Numeric(18, 3), nullable=False, default=Decimal("0"))
    minimum_stock = Column(Numeric(18, 3), nullable=False, default=Decimal("0"))
    maximum_stock = Column(Numeric(18, 3), nullable=False, default=Decimal("0"))
    unit_price = Column(Numeric(18, 2), nullable=False, default=Decimal("0.00"))

    supplier = Column(String(200), nullable=True)
    last_restock_date = Column(DateTime, nullable=True)
    expiration_date = Column(DateTime, nullable=True)

    __table_args__ = (
        Index("idx_ingredient_name", "name"),
        CheckConstraint("current_stock >= 0", name="ck_ingredient_stock_non_negative"),
        CheckConstraint("minimum_stock >= 0", name="ck_ingredient_minimum_non_negative"),
        CheckConstraint("unit_price >= 0", name="ck_ingredient_price_non_negative"),
    )

    def needs_restock(self) -> bool:
        """Return True when stock is at or below the minimum."""
        return Decimal(str(self.current_stock)) <= Decimal(str(self.minimum_stock))

    def inventory_value(self) -> Decimal:
        """Value of the stock on hand (current_stock x unit_price)."""
        return Decimal(str(self.current_stock)) * Decimal(str(self.unit_price))

    def stock_ratio(self) -> Decimal:
        """
        Stock relative to the minimum (1.0 means exactly at minimum).

        Returns 0 when no minimum is configured so those ingredients sort
        as most critical.
        """
        minimum = Decimal(str(self.minimum_stock))
        if minimum == 0:
            return Decimal("0")
        return Decimal(str(self.current_stock)) / minimum

    def __repr__(self) -> str:
        return (
            f"Ingredient(id={self.id}, name='{self.name}', "
            f"current_stock={self.current_stock} {self.unit})"
        )
