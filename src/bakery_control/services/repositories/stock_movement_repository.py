"""Stock movement repository: append-only audit trail of stock changes."""

from decimal import Decimal
from typing import List, Optional

from bakery_control.models import StockMovement


class StockMovementRepository:
    """
    Records are only ever inserted, inside the transaction that changed the
    stock, so a rollback removes the change and its audit row together.
    """

    def __init__(self, uow):
        self._uow = uow

    @property
    def session(self):
        return self._uow.session

    def record(
        self,
        ingredient_id: int,
        delta: Decimal,
        resulting_stock: Decimal,
        reason: str,
        daily_production_id: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> StockMovement:
        self._uow.require_transaction("Recording a stock movement")
        movement = StockMovement(
            ingredient_id=ingredient_id,
            delta=delta,
            resulting_stock=resulting_stock,
            reason=reason,
            daily_production_id=daily_production_id,
            notes=notes,
        )
        self.session.add(movement)
        self.session.flush()
        return movement

    def get_by_ingredient(self, ingredient_id: int) -> List[StockMovement]:
        return (
            self.session.query(StockMovement)
            .filter(StockMovement.ingredient_id == ingredient_id)
            .order_by(StockMovement.id)
            .all()
        )

    def get_by_production(self, daily_production_id: int) -> List[StockMovement]:
        return (
            self.session.query(StockMovement)
            .filter(StockMovement.daily_production_id == daily_production_id)
            .order_by(StockMovement.id)
            .all()
        )
