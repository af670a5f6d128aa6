"""
Ingredient repository.

Besides CRUD this holds the two stock primitives the inventory ledger is
built on: a row-locking read and a compare-and-set stock write. Nothing
else writes current_stock; update() never copies it.
"""

from datetime import timedelta
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy import func, select, update

from bakery_control.models import Ingredient, ProductionDetail, RecipeLine
from bakery_control.services.exceptions import ConflictError, InvalidArgumentError
from bakery_control.services.repositories.base import BaseRepository
from bakery_control.utils.constants import DEFAULT_SHELF_LIFE_DAYS, STOCK_SCALE
from bakery_control.utils.datetime_utils import utc_now


class IngredientRepository(BaseRepository):
    model = Ingredient
    entity_name = "Ingredient"
    update_exclude = ("current_stock",)

    def get_by_name(self, name: str) -> Optional[Ingredient]:
        return self.session.query(Ingredient).filter(Ingredient.name == name).first()

    def get_all(self) -> List[Ingredient]:
        return self.session.query(Ingredient).order_by(Ingredient.name).all()

    def _prepare_new(self, ingredient: Ingredient) -> None:
        now = utc_now()
        if ingredient.current_stock is None:
            ingredient.current_stock = Decimal("0")
        if ingredient.last_restock_date is None:
            ingredient.last_restock_date = now
        if ingredient.expiration_date is None:
            ingredient.expiration_date = now + timedelta(days=DEFAULT_SHELF_LIFE_DAYS)

    def count_references(self, ingredient_id: int) -> Dict[str, int]:
        """Number of recipe lines and production lines pointing at the ingredient."""
        recipe_lines = (
            self.session.query(func.count(RecipeLine.id))
            .filter(RecipeLine.ingredient_id == ingredient_id)
            .scalar()
        )
        production_lines = (
            self.session.query(func.count(ProductionDetail.id))
            .filter(ProductionDetail.ingredient_id == ingredient_id)
            .scalar()
        )
        return {"recipe_lines": recipe_lines or 0, "production_lines": production_lines or 0}

    def _check_can_delete(self, ingredient: Ingredient) -> None:
        refs = self.count_references(ingredient.id)
        if refs["recipe_lines"] or refs["production_lines"]:
            raise ConflictError(
                f"Cannot delete ingredient '{ingredient.name}' (ID {ingredient.id}): "
                f"used in {refs['recipe_lines']} recipe line(s) and "
                f"{refs['production_lines']} production line(s)"
            )

    # ------------------------------------------------------------------
    # Stock primitives
    # ------------------------------------------------------------------

    def get_for_update(self, ingredient_id: int) -> Optional[Ingredient]:
        """
        Read the ingredient with a row lock held until the transaction ends.

        The row is re-read from the database even if the session already
        holds it. On SQLite, which has no row locks, the write lock taken by
        the guarded update below serializes writers instead.
        """
        self._require_transaction("Locking")
        stmt = (
            select(Ingredient)
            .where(Ingredient.id == ingredient_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def set_stock(self, ingredient_id: int, expected: Decimal, new_stock: Decimal) -> bool:
        """
        Write ``new_stock`` only if the stored stock still equals ``expected``.

        The comparison is made at the column's scale so a backend storing
        the value as a float still matches the Decimal that was read.

        Returns:
            True if the row was updated, False if the stock changed since
            it was read
        """
        self._require_transaction("Adjusting stock of")
        column = Ingredient.current_stock
        stmt = (
            update(Ingredient)
            .where(Ingredient.id == ingredient_id)
            .where(func.round(column, STOCK_SCALE, type_=column.type) == expected)
            .values(current_stock=new_stock, updated_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(stmt)
        return result.rowcount == 1

    def refresh(self, ingredient: Ingredient) -> Ingredient:
        self.session.refresh(ingredient)
        return ingredient

    # ------------------------------------------------------------------
    # Aggregate reads
    # ------------------------------------------------------------------

    def get_low_stock(self) -> List[Ingredient]:
        """
        Ingredients at or below their minimum, most critical first.

        Ordered by current/minimum ratio, then name and id so repeated calls
        return the same sequence.
        """
        rows = (
            self.session.query(Ingredient)
            .filter(Ingredient.current_stock <= Ingredient.minimum_stock)
            .all()
        )
        return sorted(rows, key=lambda i: (i.stock_ratio(), i.name, i.id))

    def get_expiring_soon(self, days: int) -> List[Ingredient]:
        """Ingredients expiring between now and ``days`` days from now."""
        if days < 0:
            raise InvalidArgumentError("Days threshold cannot be negative")
        now = utc_now()
        return (
            self.session.query(Ingredient)
            .filter(Ingredient.expiration_date.isnot(None))
            .filter(Ingredient.expiration_date >= now)
            .filter(Ingredient.expiration_date <= now + timedelta(days=days))
            .order_by(Ingredient.expiration_date, Ingredient.id)
            .all()
        )

    def get_total_inventory_value(self) -> Decimal:
        total = Decimal("0")
        for ingredient in self.session.query(Ingredient).all():
            total += ingredient.inventory_value()
        return total

    def get_stock_alert_report(self) -> Dict[str, Decimal]:
        """Low-stock ingredient name -> current stock as a percentage of minimum."""
        return {
            ingredient.name: ingredient.stock_ratio() * 100
            for ingredient in self.get_low_stock()
        }
