"""
StockMovement model: the audit trail of ingredient stock changes.

Every committed stock adjustment writes exactly one movement in the same
transaction, so a rolled-back adjustment leaves no movement behind.
Records are immutable after creation.
"""

from sqlalchemy import Column, ForeignKey, Index, Integer, Numeric, String, Text

from .base import BaseModel


class StockMovement(BaseModel):
    """
    StockMovement model.

    Attributes:
        ingredient_id: Ingredient whose stock changed
        delta: Signed quantity change
        resulting_stock: Stock after the change
        reason: MovementReason value
        daily_production_id: Production run that caused the change, if any
        notes: Optional explanation
    """

    __tablename__ = "stock_movements"

    ingredient_id = Column(
        Integer, ForeignKey("ingredients.id", ondelete="CASCADE"), nullable=False
    )
    delta = Column(Numeric(18, 3), nullable=False)
    resulting_stock = Column(Numeric(18, 3), nullable=False)
    reason = Column(String(20), nullable=False)
    daily_production_id = Column(
        Integer,
        ForeignKey("daily_productions.id", ondelete="SET NULL"),
        nullable=True,
    )
    notes = Column(Text, nullable=True)

    __table_args__ = (
        Index("idx_stock_movement_ingredient", "ingredient_id"),
        Index("idx_stock_movement_production", "daily_production_id"),
    )

    def __repr__(self) -> str:
        return (
            f"StockMovement(id={self.id}, ingredient_id={self.ingredient_id}, "
            f"delta={self.delta}, reason='{self.reason}')"
        )
