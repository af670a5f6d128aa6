"""
Bakery Control command line.

Non-interactive access to the inventory, costing and production services.

Usage Examples:
    # Create the database tables
    bakery-control init-db

    # Ingredients at or below their minimum stock
    bakery-control low-stock

    # Receive 25 units of ingredient 3 at a new price
    bakery-control restock 3 25 --unit-price 0.45

    # Correct stock of ingredient 3 by -1.5
    bakery-control adjust-stock 3 -1.5 --reason waste

    # Cost and feasibility of recipe 2
    bakery-control recipe-cost 2
    bakery-control can-produce 2 4

    # Complete production run 7 without touching inventory
    bakery-control register-production 7 --no-inventory

    # Average efficiency of the runs on a day
    bakery-control efficiency 2026-10-19
"""

import argparse
import logging
import sys
from decimal import Decimal

from bakery_control.models.enums import MovementReason
from bakery_control.services import inventory_service, production_service, recipe_service
from bakery_control.services.database import initialize_app_database
from bakery_control.services.exceptions import ServiceError
from bakery_control.services.logging_utils import configure_logging

logger = logging.getLogger(__name__)


def _fmt(value) -> str:
    if isinstance(value, Decimal):
        return f"{value:f}"
    return str(value)


def init_db_cmd():
    """Create any missing tables."""
    initialize_app_database()
    print("Database ready")
    return 0


def low_stock_cmd():
    ingredients = inventory_service.get_low_stock()
    if not ingredients:
        print("No ingredients at or below minimum stock")
        return 0
    for ingredient in ingredients:
        print(
            f"{ingredient.id:>4}  {ingredient.name:<30} "
            f"{_fmt(ingredient.current_stock)} / {_fmt(ingredient.minimum_stock)} {ingredient.unit}"
        )
    return 0


def inventory_value_cmd():
    total = inventory_service.get_total_inventory_value()
    print(f"Total inventory value: {total:.2f}")
    return 0


def restock_cmd(ingredient_id: int, quantity: str, unit_price: str = None):
    result = inventory_service.restock_ingredient(
        ingredient_id, quantity, unit_price=unit_price
    )
    print(
        f"{result['ingredient_name']}: {_fmt(result['previous_stock'])} -> "
        f"{_fmt(result['new_stock'])} (unit price {result['unit_price']:.2f})"
    )
    return 0


def adjust_stock_cmd(ingredient_id: int, delta: str, reason: str, notes: str = None):
    result = inventory_service.adjust_stock(ingredient_id, delta, reason=reason, notes=notes)
    print(
        f"{result['ingredient_name']}: {_fmt(result['previous_stock'])} -> "
        f"{_fmt(result['new_stock'])}"
    )
    return 0


def recipe_cost_cmd(recipe_id: int):
    batch_cost = recipe_service.calculate_cost(recipe_id)
    unit_cost = recipe_service.cost_per_unit(recipe_id)
    print(f"Batch cost: {batch_cost:.2f}")
    print(f"Cost per unit: {unit_cost:.2f}")
    return 0


def can_produce_cmd(recipe_id: int, quantity: str):
    plan = recipe_service.calculate_production_plan(recipe_id, quantity)
    print(f"Can produce: {'YES' if plan['can_produce'] else 'NO'}")
    print(f"Total cost: {plan['total_cost']:.2f}")
    print(f"Cost per unit: {plan['cost_per_unit']:.2f}")
    if "revenue" in plan:
        print(f"Revenue: {plan['revenue']:.2f}")
        print(f"Profit: {plan['profit']:.2f}")
        print(f"Profit margin: {plan['margin_percent']}%")
    for missing in plan["missing"]:
        print(
            f"  Missing {_fmt(missing['missing'])} {missing['unit']} of "
            f"{missing['ingredient_name']} (need {_fmt(missing['required'])}, "
            f"have {_fmt(missing['available'])})"
        )
    return 0


def register_production_cmd(
    production_id: int,
    update_inventory: bool,
    actual: int = None,
    waste: int = None,
    use_planned: bool = False,
):
    production = production_service.get_production(production_id)
    if actual is not None:
        production.actual_quantity = actual
    if waste is not None:
        production.waste_quantity = waste
    if use_planned:
        for detail in production.details:
            detail.actual_quantity = detail.planned_quantity

    result = production_service.register_production(production, update_inventory)
    print(
        f"Production {result['production_id']} {result['status']}: "
        f"efficiency {result['efficiency_percentage']:.1f}%, "
        f"waste {result['waste_percentage']:.1f}%"
    )
    for adjustment in result["stock_adjustments"]:
        print(
            f"  {adjustment['ingredient_name']}: {_fmt(adjustment['previous_stock'])} -> "
            f"{_fmt(adjustment['new_stock'])}"
        )
    return 0


def efficiency_cmd(day: str):
    value = production_service.aggregate_efficiency(day)
    print(f"Average efficiency on {day}: {value:.1f}%")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bakery-control",
        description="Bakery inventory, recipe costing and production control",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  bakery-control init-db
  bakery-control restock 3 25 --unit-price 0.45
  bakery-control register-production 7 --use-planned
  bakery-control efficiency 2026-10-19
""",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    subparsers.add_parser("init-db", help="Create the database tables")
    subparsers.add_parser("low-stock", help="List ingredients at or below minimum stock")
    subparsers.add_parser("inventory-value", help="Show the total value of stock on hand")

    restock_parser = subparsers.add_parser("restock", help="Receive stock of an ingredient")
    restock_parser.add_argument("ingredient_id", type=int, help="Ingredient ID")
    restock_parser.add_argument("quantity", help="Quantity received")
    restock_parser.add_argument("--unit-price", dest="unit_price", help="New unit price")

    adjust_parser = subparsers.add_parser("adjust-stock", help="Apply a signed stock correction")
    adjust_parser.add_argument("ingredient_id", type=int, help="Ingredient ID")
    adjust_parser.add_argument("delta", help="Signed quantity (negative to remove)")
    adjust_parser.add_argument(
        "--reason",
        choices=[reason.value for reason in MovementReason],
        default=MovementReason.CORRECTION.value,
        help="Reason recorded in the stock audit trail",
    )
    adjust_parser.add_argument("--notes", help="Audit note")

    cost_parser = subparsers.add_parser("recipe-cost", help="Show batch and per-unit cost")
    cost_parser.add_argument("recipe_id", type=int, help="Recipe ID")

    produce_parser = subparsers.add_parser(
        "can-produce", help="Check stock and cost for a number of batches"
    )
    produce_parser.add_argument("recipe_id", type=int, help="Recipe ID")
    produce_parser.add_argument("quantity", help="Number of batches")

    register_parser = subparsers.add_parser(
        "register-production", help="Complete a planned production run"
    )
    register_parser.add_argument("production_id", type=int, help="Production run ID")
    register_parser.add_argument(
        "--no-inventory",
        dest="update_inventory",
        action="store_false",
        help="Complete the run without deducting ingredient stock",
    )
    register_parser.add_argument("--actual", type=int, help="Units actually produced")
    register_parser.add_argument("--waste", type=int, help="Units wasted")
    register_parser.add_argument(
        "--use-planned",
        action="store_true",
        help="Record each line's planned quantity as its actual usage",
    )

    efficiency_parser = subparsers.add_parser(
        "efficiency", help="Average production efficiency for a day"
    )
    efficiency_parser.add_argument("date", help="Day as YYYY-MM-DD")

    return parser


def main(argv=None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    configure_logging(verbose=args.verbose)

    try:
        if args.command == "init-db":
            return init_db_cmd()

        initialize_app_database()

        if args.command == "low-stock":
            return low_stock_cmd()
        elif args.command == "inventory-value":
            return inventory_value_cmd()
        elif args.command == "restock":
            return restock_cmd(args.ingredient_id, args.quantity, args.unit_price)
        elif args.command == "adjust-stock":
            return adjust_stock_cmd(args.ingredient_id, args.delta, args.reason, args.notes)
        elif args.command == "recipe-cost":
            return recipe_cost_cmd(args.recipe_id)
        elif args.command == "can-produce":
            return can_produce_cmd(args.recipe_id, args.quantity)
        elif args.command == "register-production":
            return register_production_cmd(
                args.production_id,
                args.update_inventory,
                actual=args.actual,
                waste=args.waste,
                use_planned=args.use_planned,
            )
        elif args.command == "efficiency":
            return efficiency_cmd(args.date)
        else:
            print(f"Unknown command: {args.command}", file=sys.stderr)
            return 1
    except ServiceError as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"ERROR: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
