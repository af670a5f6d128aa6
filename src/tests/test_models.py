"""Tests for model arithmetic: efficiency, waste, variance, costs, ratios."""

from datetime import date
from decimal import Decimal

import pytest

from bakery_control.models import (
    DailyProduction,
    Ingredient,
    ProductionDetail,
    Recipe,
    Sale,
)
from bakery_control.models.enums import ProductionStatus


class TestDailyProductionPercentages:
    """Efficiency and waste are relative to planned quantity."""

    def test_efficiency_and_waste(self):
        production = DailyProduction(planned_quantity=100, actual_quantity=90, waste_quantity=5)
        assert production.efficiency_percentage() == Decimal("90")
        assert production.waste_percentage() == Decimal("5")

    def test_zero_planned_gives_zero(self):
        production = DailyProduction(planned_quantity=0, actual_quantity=10, waste_quantity=3)
        assert production.efficiency_percentage() == Decimal("0")
        assert production.waste_percentage() == Decimal("0")

    @pytest.mark.parametrize(
        "planned,actual,expected",
        [(8, 10, Decimal("125")), (3, 1, Decimal(1) / Decimal(3) * 100)],
    )
    def test_efficiency_is_ratio(self, planned, actual, expected):
        production = DailyProduction(planned_quantity=planned, actual_quantity=actual)
        assert production.efficiency_percentage() == expected

    def test_is_terminal(self):
        assert DailyProduction(status=ProductionStatus.COMPLETED.value).is_terminal
        assert DailyProduction(status=ProductionStatus.CANCELLED.value).is_terminal
        assert not DailyProduction(status=ProductionStatus.PLANNED.value).is_terminal
        assert not DailyProduction(status=ProductionStatus.IN_PROGRESS.value).is_terminal


class TestProductionDetailVariance:
    def test_overrun_is_positive(self):
        detail = ProductionDetail(planned_quantity=Decimal("10"), actual_quantity=Decimal("12.5"))
        assert detail.compute_variance() == Decimal("2.5")
        assert detail.variance == Decimal("2.5")

    def test_shortfall_is_negative(self):
        detail = ProductionDetail(planned_quantity=Decimal("10"), actual_quantity=Decimal("7"))
        assert detail.compute_variance() == Decimal("-3")

    def test_recompute_variances_covers_every_line(self):
        production = DailyProduction(
            details=[
                ProductionDetail(planned_quantity=Decimal("1"), actual_quantity=Decimal("2")),
                ProductionDetail(planned_quantity=Decimal("5"), actual_quantity=Decimal("5")),
            ]
        )
        production.recompute_variances()
        assert [d.variance for d in production.details] == [Decimal("1"), Decimal("0")]


class TestRecipePerUnit:
    def test_divides_by_yield(self):
        assert Recipe(yield_quantity=4).per_unit(Decimal("1.00")) == Decimal("0.25")

    def test_zero_yield_returns_zero(self):
        assert Recipe(yield_quantity=0).per_unit(Decimal("1.00")) == Decimal("0")


class TestIngredientHelpers:
    def test_needs_restock_at_minimum(self):
        ingredient = Ingredient(current_stock=Decimal("20"), minimum_stock=Decimal("20"))
        assert ingredient.needs_restock()

    def test_inventory_value(self):
        ingredient = Ingredient(current_stock=Decimal("10"), unit_price=Decimal("1.25"))
        assert ingredient.inventory_value() == Decimal("12.50")

    def test_stock_ratio_without_minimum(self):
        ingredient = Ingredient(current_stock=Decimal("5"), minimum_stock=Decimal("0"))
        assert ingredient.stock_ratio() == Decimal("0")


class TestSaleTotal:
    def test_calculate_total(self):
        sale = Sale(quantity=3, unit_price=Decimal("2.50"))
        assert sale.calculate_total() == Decimal("7.50")


class TestToDict:
    def test_serializes_dates_and_decimals(self):
        production = DailyProduction(
            production_date=date(2026, 10, 19), planned_quantity=5, product_id=1
        )
        data = production.to_dict()
        assert data["production_date"] == "2026-10-19"
        assert data["planned_quantity"] == 5

        ingredient = Ingredient(name="Salt", unit_price=Decimal("0.30"))
        assert ingredient.to_dict()["unit_price"] == "0.30"

    def test_update_from_dict_skips_protected_columns(self):
        ingredient = Ingredient(name="Salt")
        ingredient.update_from_dict({"id": 99, "name": "Sea Salt", "supplier": "Coast"})
        assert ingredient.id is None
        assert ingredient.name == "Sea Salt"
        assert ingredient.supplier == "Coast"
