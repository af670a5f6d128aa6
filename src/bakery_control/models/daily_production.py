"""
Daily production models.

This module contains:
- DailyProduction: One production run of a product on a given day
- ProductionDetail: Planned vs. actual usage of one ingredient in a run

A run owns its detail lines (cascade delete). Variance on each line is
derived (actual - planned) and recomputed whenever the run is registered.
"""

from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from .base import BaseModel
from .enums import ProductionStatus
from bakery_control.utils.datetime_utils import today


class DailyProduction(BaseModel):
    """
    DailyProduction model.

    Attributes:
        production_date: Day the run belongs to
        product_id: Product being produced
        planned_quantity: Units planned
        actual_quantity: Units actually produced
        waste_quantity: Units wasted
        status: ProductionStatus value (Planned, InProgress, Completed, Cancelled)
        notes: Free-form notes
        details: Ingredient usage lines
    """

    __tablename__ = "daily_productions"

    production_date = Column(Date, nullable=False, default=today)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="RESTRICT"), nullable=False)
    planned_quantity = Column(Integer, nullable=False, default=0)
    actual_quantity = Column(Integer, nullable=False, default=0)
    waste_quantity = Column(Integer, nullable=False, default=0)
    status = Column(String(20), nullable=False, default=ProductionStatus.PLANNED.value)
    notes = Column(Text, nullable=True)

    details = relationship(
        "ProductionDetail",
        cascade="all, delete-orphan",
        order_by="ProductionDetail.id",
        lazy="selectin",
    )

    __table_args__ = (
        Index("idx_daily_production_date", "production_date"),
        Index("idx_daily_production_product", "product_id"),
        Index("idx_daily_production_status", "status"),
        CheckConstraint("planned_quantity >= 0", name="ck_daily_production_planned_non_negative"),
        CheckConstraint("actual_quantity >= 0", name="ck_daily_production_actual_non_negative"),
        CheckConstraint("waste_quantity >= 0", name="ck_daily_production_waste_non_negative"),
    )

    @property
    def is_terminal(self) -> bool:
        """True once the run is Completed or Cancelled."""
        return ProductionStatus(self.status).is_terminal

    def efficiency_percentage(self) -> Decimal:
        """(actual / planned) x 100, or 0 when nothing was planned."""
        if not self.planned_quantity:
            return Decimal("0")
        return Decimal(self.actual_quantity or 0) / Decimal(self.planned_quantity) * 100

    def waste_percentage(self) -> Decimal:
        """(waste / planned) x 100, or 0 when nothing was planned."""
        if not self.planned_quantity:
            return Decimal("0")
        return Decimal(self.waste_quantity or 0) / Decimal(self.planned_quantity) * 100

    def recompute_variances(self) -> None:
        """Set variance = actual - planned on every detail line."""
        for detail in self.details:
            detail.compute_variance()

    def __repr__(self) -> str:
        return (
            f"DailyProduction(id={self.id}, date={self.production_date}, "
            f"product_id={self.product_id}, status='{self.status}')"
        )


class ProductionDetail(BaseModel):
    """
    Ingredient usage line of a production run.

    Attributes:
        daily_production_id: Owning run
        ingredient_id: Ingredient used
        planned_quantity: Amount planned
        actual_quantity: Amount actually used
        variance: actual - planned (positive = overrun, negative = shortfall)
    """

    __tablename__ = "production_details"

    daily_production_id = Column(
        Integer,
        ForeignKey("daily_productions.id", ondelete="CASCADE"),
        nullable=False,
    )
    ingredient_id = Column(
        Integer, ForeignKey("ingredients.id", ondelete="RESTRICT"), nullable=False
    )
    planned_quantity = Column(Numeric(18, 3), nullable=False, default=Decimal("0"))
    actual_quantity = Column(Numeric(18, 3), nullable=False, default=Decimal("0"))
    variance = Column(Numeric(18, 3), nullable=False, default=Decimal("0"))

    __table_args__ = (
        Index("idx_production_detail_run", "daily_production_id"),
        Index("idx_production_detail_ingredient", "ingredient_id"),
        CheckConstraint("planned_quantity >= 0", name="ck_production_detail_planned_non_negative"),
        CheckConstraint("actual_quantity >= 0", name="ck_production_detail_actual_non_negative"),
    )

    def compute_variance(self) -> Decimal:
        """Set and return variance = actual - planned."""
        self.variance = Decimal(str(self.actual_quantity or 0)) - Decimal(
            str(self.planned_quantity or 0)
        )
        return self.variance

    def __repr__(self) -> str:
        return (
            f"ProductionDetail(id={self.id}, ingredient_id={self.ingredient_id}, "
            f"planned={self.planned_quantity}, actual={self.actual_quantity})"
        )
