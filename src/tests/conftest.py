"""Pytest configuration and fixtures for Bakery Control tests."""

from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from bakery_control.models import Ingredient, Product, Recipe, RecipeLine
from bakery_control.models.base import Base
from bakery_control.services.database import create_database_engine


@pytest.fixture(scope="function")
def test_db(monkeypatch):
    """Provide a clean test database for each test function.

    This fixture:
    1. Creates an in-memory SQLite database
    2. Creates all tables
    3. Points the global session factory at it
    4. Drops all tables after the test completes

    Yields the session factory so fixtures can seed data directly.
    """
    engine = create_database_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    session_factory = sessionmaker(bind=engine, expire_on_commit=False)

    import bakery_control.services.database as db_module

    monkeypatch.setattr(db_module, "get_session_factory", lambda: session_factory)

    yield session_factory

    Base.metadata.drop_all(engine)
    engine.dispose()


def _persist(session_factory, *objects):
    session = session_factory()
    session.add_all(objects)
    session.commit()
    session.close()
    return objects[0] if len(objects) == 1 else objects


@pytest.fixture
def flour(test_db):
    """Flour: 100 kg on hand, minimum 20, 0.50 per kg."""
    return _persist(
        test_db,
        Ingredient(
            name="Flour",
            unit="kilogram",
            current_stock=Decimal("100"),
            minimum_stock=Decimal("20"),
            maximum_stock=Decimal("500"),
            unit_price=Decimal("0.50"),
            supplier="Mill Co",
        ),
    )


@pytest.fixture
def sugar(test_db):
    """Sugar: 10 kg on hand, minimum 15, 1.20 per kg (already low)."""
    return _persist(
        test_db,
        Ingredient(
            name="Sugar",
            unit="kilogram",
            current_stock=Decimal("10"),
            minimum_stock=Decimal("15"),
            unit_price=Decimal("1.20"),
        ),
    )


@pytest.fixture
def yeast(test_db):
    """Yeast: 2 kg on hand, minimum 1, 8.00 per kg."""
    return _persist(
        test_db,
        Ingredient(
            name="Yeast",
            unit="kilogram",
            current_stock=Decimal("2"),
            minimum_stock=Decimal("1"),
            unit_price=Decimal("8.00"),
        ),
    )


@pytest.fixture
def bread(test_db):
    """Bread product selling at 2.50."""
    return _persist(
        test_db,
        Product(name="Bread", category="Loaves", sale_price=Decimal("2.50")),
    )


@pytest.fixture
def bread_recipe(test_db, bread, flour):
    """Bread recipe: 2 kg flour per batch, yield 4, linked to the Bread product."""
    recipe = Recipe(name="Bread", product_id=bread.id, yield_quantity=4)
    recipe.lines.append(RecipeLine(ingredient_id=flour.id, quantity=Decimal("2")))
    return _persist(test_db, recipe)


@pytest.fixture
def file_db(tmp_path):
    """Provide a SQLite file database that several units of work can share.

    Unlike ``test_db`` every session gets its own connection, so two open
    transactions contend for the database lock the way separate processes
    would. The busy timeout is zero: a blocked writer fails at once.

    Yields (session_factory, flour, bread) with Flour at 40 kg.
    """
    engine = create_engine(
        f"sqlite:///{(tmp_path / 'bakery.db').as_posix()}",
        connect_args={"timeout": 0},
    )
    Base.metadata.create_all(engine)
    session_factory = sessionmaker(bind=engine, expire_on_commit=False)

    flour = _persist(
        session_factory,
        Ingredient(name="Flour", unit="kilogram", current_stock=Decimal("40")),
    )
    bread = _persist(
        session_factory,
        Product(name="Bread", category="Loaves", sale_price=Decimal("2.50")),
    )

    yield session_factory, flour, bread

    engine.dispose()
