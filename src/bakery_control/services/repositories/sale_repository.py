"""Sale repository: sales records, daily totals and the two sales reports."""

from datetime import date
from decimal import Decimal
from typing import Dict, List

from sqlalchemy import func

from bakery_control.models import Product, Sale
from bakery_control.models.enums import PaymentMethod
from bakery_control.services.exceptions import InvalidArgumentError, NotFoundError
from bakery_control.services.repositories.base import BaseRepository, day_bounds
from bakery_control.utils.constants import INVOICE_DATE_FORMAT
from bakery_control.utils.datetime_utils import utc_now
from bakery_control.utils.validators import (
    collect_errors,
    validate_positive_number,
)


def _money(value) -> Decimal:
    return Decimal(str(value)) if value is not None else Decimal("0")


class SaleRepository(BaseRepository):
    model = Sale
    entity_name = "Sale"

    def get_all(self) -> List[Sale]:
        return self.session.query(Sale).order_by(Sale.sale_date.desc(), Sale.id.desc()).all()

    def _validate(self, sale: Sale) -> None:
        errors = collect_errors(
            [
                validate_positive_number(sale.quantity, "Quantity"),
                validate_positive_number(sale.unit_price, "Unit price"),
            ]
        )
        if sale.payment_method not in [m.value for m in PaymentMethod]:
            errors.append(f"Payment method: Must be one of {', '.join(m.value for m in PaymentMethod)}")
        if errors:
            raise InvalidArgumentError(errors)
        if self.session.get(Product, sale.product_id) is None:
            raise NotFoundError("Product", sale.product_id)

    def _prepare_new(self, sale: Sale) -> None:
        if sale.payment_method is None:
            sale.payment_method = PaymentMethod.CASH.value
        self._validate(sale)
        if sale.sale_date is None:
            sale.sale_date = utc_now()
        sale.calculate_total()
        if not sale.invoice_number:
            sale.invoice_number = self.generate_invoice_number(sale.sale_date.date())

    def _apply_update(self, existing: Sale, incoming: Sale) -> None:
        self._validate(existing)
        existing.calculate_total()

    def generate_invoice_number(self, day: date) -> str:
        """Next invoice number for ``day``: YYYYMMDD-NNNN, numbered from 0001."""
        lower, upper = day_bounds(day, day)
        count = (
            self.session.query(func.count(Sale.id))
            .filter(Sale.sale_date >= lower, Sale.sale_date < upper)
            .scalar()
        )
        return f"{day.strftime(INVOICE_DATE_FORMAT)}-{(count or 0) + 1:04d}"

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_by_date(self, day: date) -> List[Sale]:
        return self.get_by_date_range(day, day)

    def get_by_product(self, product_id: int) -> List[Sale]:
        return (
            self.session.query(Sale)
            .filter(Sale.product_id == product_id)
            .order_by(Sale.sale_date.desc(), Sale.id.desc())
            .all()
        )

    def get_by_date_range(self, start: date, end: date) -> List[Sale]:
        lower, upper = day_bounds(start, end)
        return (
            self.session.query(Sale)
            .filter(Sale.sale_date >= lower, Sale.sale_date < upper)
            .order_by(Sale.sale_date, Sale.id)
            .all()
        )

    def get_total_by_date(self, day: date) -> Decimal:
        return self.get_total_by_date_range(day, day)

    def get_total_by_date_range(self, start: date, end: date) -> Decimal:
        return sum((_money(s.total_price) for s in self.get_by_date_range(start, end)), Decimal("0"))

    def get_total_units_by_product(self, product_id: int) -> int:
        total = (
            self.session.query(func.sum(Sale.quantity))
            .filter(Sale.product_id == product_id)
            .scalar()
        )
        return int(total or 0)

    def get_report_by_product(self, start: date, end: date) -> Dict[str, Decimal]:
        """Product name -> total sales amount within the range."""
        lower, upper = day_bounds(start, end)
        rows = (
            self.session.query(Product.name, Sale.total_price)
            .join(Product, Sale.product_id == Product.id)
            .filter(Sale.sale_date >= lower, Sale.sale_date < upper)
            .all()
        )
        report: Dict[str, Decimal] = {}
        for name, total_price in rows:
            report[name] = report.get(name, Decimal("0")) + _money(total_price)
        return report

    def get_report_by_payment_method(self, start: date, end: date) -> Dict[str, Decimal]:
        """Payment method -> total sales amount within the range."""
        report: Dict[str, Decimal] = {}
        for sale in self.get_by_date_range(start, end):
            report[sale.payment_method] = report.get(sale.payment_method, Decimal("0")) + _money(
                sale.total_price
            )
        return report
