"""
DailyProduction repository.

A production run owns its detail lines. update() reconciles the stored
lines with the incoming set: unknown ids are removed, matching ids are
updated in place and lines without an id are appended.
"""

from datetime import date
from typing import Dict, List, Optional

from sqlalchemy import func

from bakery_control.models import DailyProduction, ProductionDetail
from bakery_control.models.enums import ProductionStatus
from bakery_control.services.exceptions import InvalidArgumentError
from bakery_control.services.repositories.base import BaseRepository, reconcile_children
from bakery_control.utils.datetime_utils import today
from bakery_control.utils.validators import validate_date_range

PRODUCTION_DETAIL_FIELDS = ("ingredient_id", "planned_quantity", "actual_quantity", "variance")


def _check_range(start: date, end: date) -> None:
    is_valid, error = validate_date_range(start, end)
    if not is_valid:
        raise InvalidArgumentError(error)


class DailyProductionRepository(BaseRepository):
    model = DailyProduction
    entity_name = "DailyProduction"

    def get_all(self) -> List[DailyProduction]:
        """All runs, newest first."""
        return (
            self.session.query(DailyProduction)
            .order_by(DailyProduction.production_date.desc(), DailyProduction.id.desc())
            .all()
        )

    def get_by_date(self, day: date) -> List[DailyProduction]:
        return (
            self.session.query(DailyProduction)
            .filter(DailyProduction.production_date == day)
            .order_by(DailyProduction.id)
            .all()
        )

    def get_by_date_and_product(self, day: date, product_id: int) -> Optional[DailyProduction]:
        return (
            self.session.query(DailyProduction)
            .filter(DailyProduction.production_date == day)
            .filter(DailyProduction.product_id == product_id)
            .order_by(DailyProduction.id)
            .first()
        )

    def get_by_date_range(self, start: date, end: date) -> List[DailyProduction]:
        _check_range(start, end)
        return (
            self.session.query(DailyProduction)
            .filter(DailyProduction.production_date.between(start, end))
            .order_by(DailyProduction.production_date, DailyProduction.id)
            .all()
        )

    def get_by_product(self, product_id: int) -> List[DailyProduction]:
        return (
            self.session.query(DailyProduction)
            .filter(DailyProduction.product_id == product_id)
            .order_by(DailyProduction.production_date.desc(), DailyProduction.id.desc())
            .all()
        )

    def _prepare_new(self, production: DailyProduction) -> None:
        if production.production_date is None:
            production.production_date = today()
        if not production.status:
            production.status = ProductionStatus.PLANNED.value

    def _apply_update(self, existing: DailyProduction, incoming: DailyProduction) -> None:
        if existing is not incoming:
            reconcile_children(
                existing.details, incoming.details, ProductionDetail, PRODUCTION_DETAIL_FIELDS
            )

    # ------------------------------------------------------------------
    # Aggregates
    # ------------------------------------------------------------------

    def get_total_by_date(self, day: date) -> int:
        """Units actually produced on ``day`` across all products."""
        total = (
            self.session.query(func.sum(DailyProduction.actual_quantity))
            .filter(DailyProduction.production_date == day)
            .scalar()
        )
        return int(total or 0)

    def get_total_units_by_product(self, product_id: int, start: date, end: date) -> int:
        _check_range(start, end)
        total = (
            self.session.query(func.sum(DailyProduction.actual_quantity))
            .filter(DailyProduction.product_id == product_id)
            .filter(DailyProduction.production_date.between(start, end))
            .scalar()
        )
        return int(total or 0)

    def get_waste_report(self, start: date, end: date) -> Dict[int, int]:
        """Product id -> total units wasted within the range."""
        _check_range(start, end)
        rows = (
            self.session.query(DailyProduction.product_id, func.sum(DailyProduction.waste_quantity))
            .filter(DailyProduction.production_date.between(start, end))
            .group_by(DailyProduction.product_id)
            .order_by(DailyProduction.product_id)
            .all()
        )
        return {product_id: int(waste or 0) for product_id, waste in rows}
