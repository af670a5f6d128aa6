"""Tests for repository queries and write rules."""

from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest

from bakery_control.models import (
    DailyProduction,
    Ingredient,
    ProductionDetail,
    Recipe,
    RecipeLine,
    Sale,
)
from bakery_control.services.exceptions import (
    ConflictError,
    InvalidArgumentError,
    NotFoundError,
)
from bakery_control.services.unit_of_work import UnitOfWork, unit_of_work
from bakery_control.utils.datetime_utils import utc_now


# =============================================================================
# Ingredients
# =============================================================================


class TestIngredientRepository:
    def test_add_fills_restock_and_expiration_defaults(self, test_db):
        with unit_of_work() as uow:
            ingredient = uow.ingredients.add(Ingredient(name="Salt", unit="kilogram"))

        assert ingredient.current_stock == Decimal("0")
        assert ingredient.last_restock_date is not None
        shelf_life = ingredient.expiration_date - ingredient.last_restock_date
        assert shelf_life == timedelta(days=30)

    def test_update_never_copies_stock(self, test_db, flour):
        flour.current_stock = Decimal("1")
        flour.supplier = "Other Mill"
        with unit_of_work() as uow:
            stored = uow.ingredients.update(flour)
            assert stored.supplier == "Other Mill"
            assert stored.current_stock == Decimal("100")

    def test_set_stock_only_from_expected_value(self, test_db, flour):
        with unit_of_work() as uow:
            assert not uow.ingredients.set_stock(flour.id, Decimal("99"), Decimal("50"))
            assert uow.ingredients.set_stock(flour.id, Decimal("100"), Decimal("50"))

        with UnitOfWork() as uow:
            assert uow.ingredients.get_by_id(flour.id).current_stock == Decimal("50")

    def test_update_missing_raises_not_found(self, test_db):
        with unit_of_work() as uow:
            ghost = Ingredient(name="Ghost", unit="unit")
            ghost.id = 999
            with pytest.raises(NotFoundError):
                uow.ingredients.update(ghost)

    def test_delete_blocked_by_recipe_line(self, test_db, bread_recipe, flour):
        with pytest.raises(ConflictError, match="1 recipe line"):
            with unit_of_work() as uow:
                uow.ingredients.delete(flour.id)

    def test_delete_unreferenced(self, test_db, sugar):
        with unit_of_work() as uow:
            uow.ingredients.delete(sugar.id)
        with UnitOfWork() as uow:
            assert uow.ingredients.get_by_id(sugar.id) is None

    def test_low_stock_orders_by_ratio(self, test_db, flour, sugar, yeast):
        with unit_of_work() as uow:
            uow.ingredients.add(
                Ingredient(
                    name="Butter",
                    unit="kilogram",
                    current_stock=Decimal("1"),
                    minimum_stock=Decimal("10"),
                )
            )
        with UnitOfWork() as uow:
            names = [i.name for i in uow.ingredients.get_low_stock()]
        # Butter at 10% of minimum, Sugar at 66%
        assert names == ["Butter", "Sugar"]

    def test_low_stock_is_repeatable(self, test_db, flour, sugar):
        with UnitOfWork() as uow:
            first = [(i.id, i.current_stock) for i in uow.ingredients.get_low_stock()]
            second = [(i.id, i.current_stock) for i in uow.ingredients.get_low_stock()]
        assert first == second

    def test_expiring_soon(self, test_db):
        now = utc_now()
        with unit_of_work() as uow:
            uow.ingredients.add(
                Ingredient(name="Milk", unit="liter", expiration_date=now + timedelta(days=2))
            )
            uow.ingredients.add(
                Ingredient(name="Cream", unit="liter", expiration_date=now + timedelta(days=20))
            )
        with UnitOfWork() as uow:
            assert [i.name for i in uow.ingredients.get_expiring_soon(7)] == ["Milk"]
            with pytest.raises(InvalidArgumentError):
                uow.ingredients.get_expiring_soon(-1)

    def test_inventory_value_and_alert_report(self, test_db, flour, sugar):
        with UnitOfWork() as uow:
            # 100 x 0.50 + 10 x 1.20
            assert uow.ingredients.get_total_inventory_value() == Decimal("62.00")
            report = uow.ingredients.get_stock_alert_report()
        assert list(report) == ["Sugar"]
        assert report["Sugar"].quantize(Decimal("0.01")) == Decimal("66.67")


# =============================================================================
# Products
# =============================================================================


class TestProductRepository:
    def test_delete_is_soft(self, test_db, bread):
        with unit_of_work() as uow:
            uow.products.delete(bread.id)
        with UnitOfWork() as uow:
            product = uow.products.get_by_id(bread.id)
            assert product is not None
            assert product.is_active is False
            assert uow.products.get_active() == []

    def test_primary_recipe(self, test_db, bread, bread_recipe):
        with UnitOfWork() as uow:
            assert uow.products.get_primary_recipe(bread.id).id == bread_recipe.id
            assert [p.name for p in uow.products.get_by_category("Loaves")] == ["Bread"]

    def test_total_sold_in_range(self, test_db, bread):
        with unit_of_work() as uow:
            uow.sales.add(Sale(product_id=bread.id, quantity=3, unit_price=Decimal("2.50")))
            uow.sales.add(Sale(product_id=bread.id, quantity=2, unit_price=Decimal("2.50")))
        today = utc_now().date()
        with UnitOfWork() as uow:
            assert uow.products.get_total_sold(bread.id, today, today) == 5
            with pytest.raises(InvalidArgumentError, match="Start date"):
                uow.products.get_total_sold(bread.id, today, today - timedelta(days=1))


# =============================================================================
# Recipes
# =============================================================================


class TestRecipeRepository:
    def test_add_rejects_zero_yield(self, test_db):
        with pytest.raises(InvalidArgumentError, match="Yield"):
            with unit_of_work() as uow:
                uow.recipes.add(Recipe(name="Broken", yield_quantity=0))

    def test_add_rejects_blank_name(self, test_db):
        with pytest.raises(InvalidArgumentError, match="Name"):
            with unit_of_work() as uow:
                uow.recipes.add(Recipe(name="  ", yield_quantity=1))

    def test_add_line_merges_same_ingredient(self, test_db, bread_recipe, flour):
        with unit_of_work() as uow:
            uow.recipes.add_line(bread_recipe.id, flour.id, Decimal("0.5"))
        with UnitOfWork() as uow:
            lines = uow.recipes.get_lines(bread_recipe.id)
        assert len(lines) == 1
        assert lines[0].quantity == Decimal("2.5")

    def test_add_line_requires_positive_quantity(self, test_db, bread_recipe, sugar):
        with pytest.raises(InvalidArgumentError):
            with unit_of_work() as uow:
                uow.recipes.add_line(bread_recipe.id, sugar.id, 0)

    def test_add_line_unknown_ingredient(self, test_db, bread_recipe):
        with pytest.raises(NotFoundError, match="Ingredient with ID 404"):
            with unit_of_work() as uow:
                uow.recipes.add_line(bread_recipe.id, 404, 1)

    def test_lines_with_ingredients_join(self, test_db, bread_recipe, flour, sugar):
        with unit_of_work() as uow:
            uow.recipes.add_line(bread_recipe.id, sugar.id, Decimal("0.1"))
        with UnitOfWork() as uow:
            pairs = uow.recipes.get_lines_with_ingredients(bread_recipe.id)
        assert [(line.quantity, ingredient.name) for line, ingredient in pairs] == [
            (Decimal("2"), "Flour"),
            (Decimal("0.1"), "Sugar"),
        ]

    def test_update_and_remove_line(self, test_db, bread_recipe):
        line_id = bread_recipe.lines[0].id
        with unit_of_work() as uow:
            uow.recipes.update_line(line_id, Decimal("3"))
        with unit_of_work() as uow:
            assert uow.recipes.get_lines(bread_recipe.id)[0].quantity == Decimal("3")
            uow.recipes.remove_line(line_id)
        with UnitOfWork() as uow:
            assert uow.recipes.get_lines(bread_recipe.id) == []

    def test_update_reconciles_lines(self, test_db, bread_recipe, sugar, yeast):
        with unit_of_work() as uow:
            uow.recipes.add_line(bread_recipe.id, sugar.id, Decimal("1"))
        with UnitOfWork() as uow:
            detached = uow.recipes.get_by_id(bread_recipe.id)

        flour_line, sugar_line = detached.lines
        flour_line.quantity = Decimal("5")
        detached.lines.remove(sugar_line)
        detached.lines.append(RecipeLine(ingredient_id=yeast.id, quantity=Decimal("0.2")))

        with unit_of_work() as uow:
            uow.recipes.update(detached)
        with UnitOfWork() as uow:
            lines = uow.recipes.get_lines(bread_recipe.id)
        assert [(line.ingredient_id, line.quantity) for line in lines] == [
            (flour_line.ingredient_id, Decimal("5")),
            (yeast.id, Decimal("0.2")),
        ]

    def test_delete_cascades_lines(self, test_db, bread_recipe):
        with unit_of_work() as uow:
            uow.recipes.delete(bread_recipe.id)
        session = test_db()
        assert session.query(RecipeLine).count() == 0
        session.close()


# =============================================================================
# Sales
# =============================================================================


class TestSaleRepository:
    def test_add_computes_total_and_invoice(self, test_db, bread):
        with unit_of_work() as uow:
            first = uow.sales.add(Sale(product_id=bread.id, quantity=4, unit_price=Decimal("2.50")))
            second = uow.sales.add(Sale(product_id=bread.id, quantity=1, unit_price=Decimal("2.50")))

        assert first.total_price == Decimal("10.00")
        prefix = first.sale_date.strftime("%Y%m%d")
        assert first.invoice_number == f"{prefix}-0001"
        assert second.invoice_number == f"{prefix}-0002"

    @pytest.mark.parametrize("quantity,price", [(0, Decimal("1")), (1, Decimal("0"))])
    def test_add_rejects_non_positive_values(self, test_db, bread, quantity, price):
        with pytest.raises(InvalidArgumentError):
            with unit_of_work() as uow:
                uow.sales.add(Sale(product_id=bread.id, quantity=quantity, unit_price=price))

    def test_reports(self, test_db, bread):
        with unit_of_work() as uow:
            uow.sales.add(Sale(product_id=bread.id, quantity=2, unit_price=Decimal("2.50")))
            uow.sales.add(
                Sale(
                    product_id=bread.id,
                    quantity=1,
                    unit_price=Decimal("2.50"),
                    payment_method="Card",
                )
            )
        today = utc_now().date()
        with UnitOfWork() as uow:
            assert uow.sales.get_total_by_date(today) == Decimal("7.50")
            assert uow.sales.get_total_units_by_product(bread.id) == 3
            assert uow.sales.get_report_by_product(today, today) == {"Bread": Decimal("7.50")}
            assert uow.sales.get_report_by_payment_method(today, today) == {
                "Cash": Decimal("5.00"),
                "Card": Decimal("2.50"),
            }
            assert len(uow.sales.get_by_date(today)) == 2
            assert [s.quantity for s in uow.sales.get_by_product(bread.id)] == [1, 2]
            with pytest.raises(InvalidArgumentError):
                uow.sales.get_by_date_range(today, today - timedelta(days=1))


# =============================================================================
# Daily productions
# =============================================================================


def _production(product_id, ingredient_id, day, planned=10, actual=8, waste=1):
    return DailyProduction(
        production_date=day,
        product_id=product_id,
        planned_quantity=planned,
        actual_quantity=actual,
        waste_quantity=waste,
        details=[
            ProductionDetail(
                ingredient_id=ingredient_id,
                planned_quantity=Decimal("4"),
                actual_quantity=Decimal("5"),
            )
        ],
    )


class TestDailyProductionRepository:
    def test_add_defaults_to_today_and_planned(self, test_db, bread, flour):
        production = DailyProduction(product_id=bread.id, planned_quantity=5)
        with unit_of_work() as uow:
            uow.daily_productions.add(production)

        assert production.production_date == date.today()
        assert production.status == "Planned"

    def test_queries_by_date_and_product(self, test_db, bread, flour):
        day = date(2026, 10, 19)
        with unit_of_work() as uow:
            uow.daily_productions.add(_production(bread.id, flour.id, day))
            uow.daily_productions.add(_production(bread.id, flour.id, day + timedelta(days=1)))

        with UnitOfWork() as uow:
            assert len(uow.daily_productions.get_by_date(day)) == 1
            assert uow.daily_productions.get_by_date_and_product(day, bread.id) is not None
            assert len(uow.daily_productions.get_by_date_range(day, day + timedelta(days=1))) == 2
            newest_first = [p.production_date for p in uow.daily_productions.get_all()]
            assert newest_first == [day + timedelta(days=1), day]
            by_product = [p.production_date for p in uow.daily_productions.get_by_product(bread.id)]
            assert by_product == newest_first
            assert uow.daily_productions.get_total_by_date(day) == 8
            assert (
                uow.daily_productions.get_total_units_by_product(
                    bread.id, day, day + timedelta(days=1)
                )
                == 16
            )
            assert uow.daily_productions.get_waste_report(day, day + timedelta(days=1)) == {
                bread.id: 2
            }

    def test_update_reconciles_details(self, test_db, bread, flour, sugar, yeast):
        day = date(2026, 10, 19)
        production = _production(bread.id, flour.id, day)
        production.details.append(
            ProductionDetail(
                ingredient_id=sugar.id,
                planned_quantity=Decimal("1"),
                actual_quantity=Decimal("1"),
            )
        )
        with unit_of_work() as uow:
            uow.daily_productions.add(production)

        flour_line, sugar_line = production.details
        flour_line.actual_quantity = Decimal("6")
        production.details.remove(sugar_line)
        production.details.append(
            ProductionDetail(
                ingredient_id=yeast.id,
                planned_quantity=Decimal("0.5"),
                actual_quantity=Decimal("0.5"),
            )
        )

        with unit_of_work() as uow:
            uow.daily_productions.update(production)

        with UnitOfWork() as uow:
            stored = uow.daily_productions.get_by_id(production.id)
            lines = [(d.id, d.ingredient_id, d.actual_quantity) for d in stored.details]
        assert lines[0] == (flour_line.id, flour.id, Decimal("6"))
        assert [line[1] for line in lines] == [flour.id, yeast.id]

    def test_delete_cascades_details(self, test_db, bread, flour):
        production = _production(bread.id, flour.id, date(2026, 10, 19))
        with unit_of_work() as uow:
            uow.daily_productions.add(production)
        with unit_of_work() as uow:
            uow.daily_productions.delete(production.id)

        session = test_db()
        assert session.query(ProductionDetail).count() == 0
        session.close()


class TestStockMovementRepository:
    def test_record_and_query(self, test_db, flour):
        with unit_of_work() as uow:
            uow.stock_movements.record(flour.id, Decimal("-5"), Decimal("95"), "correction")
        with UnitOfWork() as uow:
            movements = uow.stock_movements.get_by_ingredient(flour.id)
        assert [(m.delta, m.resulting_stock, m.reason) for m in movements] == [
            (Decimal("-5"), Decimal("95"), "correction")
        ]

    def test_query_by_production(self, test_db, bread, flour):
        production = _production(bread.id, flour.id, date(2026, 10, 19))
        with unit_of_work() as uow:
            uow.daily_productions.add(production)
            uow.stock_movements.record(
                flour.id,
                Decimal("-5"),
                Decimal("95"),
                "production",
                daily_production_id=production.id,
            )
            uow.stock_movements.record(flour.id, Decimal("10"), Decimal("105"), "restock")

        with UnitOfWork() as uow:
            movements = uow.stock_movements.get_by_production(production.id)
        assert [(m.delta, m.reason) for m in movements] == [(Decimal("-5"), "production")]
