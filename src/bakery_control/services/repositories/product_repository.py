"""Product repository. Products are never hard-deleted, only deactivated."""

from datetime import date
from typing import List, Optional

from sqlalchemy import func

from bakery_control.models import Product, Recipe, Sale
from bakery_control.services.repositories.base import BaseRepository, day_bounds
from bakery_control.utils.datetime_utils import utc_now


class ProductRepository(BaseRepository):
    model = Product
    entity_name = "Product"

    def get_by_name(self, name: str) -> Optional[Product]:
        return self.session.query(Product).filter(Product.name == name).first()

    def get_all(self) -> List[Product]:
        return self.session.query(Product).order_by(Product.name).all()

    def get_active(self) -> List[Product]:
        return (
            self.session.query(Product)
            .filter(Product.is_active.is_(True))
            .order_by(Product.name)
            .all()
        )

    def get_by_category(self, category: str) -> List[Product]:
        return (
            self.session.query(Product)
            .filter(Product.category == category)
            .order_by(Product.name)
            .all()
        )

    def _prepare_new(self, product: Product) -> None:
        if product.creation_date is None:
            product.creation_date = utc_now()
        if product.is_active is None:
            product.is_active = True

    def delete(self, entity_id: int) -> None:
        """Deactivate the product; its sales and production history stay intact."""
        self._require_transaction("Deleting")
        product = self.get_required(entity_id)
        product.is_active = False
        self._flush(f"deactivate {self.entity_name} {entity_id}")

    def get_total_sold(self, product_id: int, start: date, end: date) -> int:
        """Units of the product sold between ``start`` and ``end`` inclusive."""
        lower, upper = day_bounds(start, end)
        total = (
            self.session.query(func.sum(Sale.quantity))
            .filter(Sale.product_id == product_id)
            .filter(Sale.sale_date >= lower, Sale.sale_date < upper)
            .scalar()
        )
        return int(total or 0)

    def get_primary_recipe(self, product_id: int) -> Optional[Recipe]:
        return self.session.query(Recipe).filter(Recipe.product_id == product_id).first()
