"""Tests for engine creation and schema initialization on a file database."""

import pytest
from sqlalchemy import inspect

import bakery_control.main as cli
from bakery_control.services import database
from bakery_control.utils.config import ENV_VAR_DATABASE_URL, reset_config


@pytest.fixture
def file_database(tmp_path, monkeypatch):
    """Point the global configuration at a fresh SQLite file."""
    db_path = tmp_path / "bakery.db"
    monkeypatch.setenv(ENV_VAR_DATABASE_URL, f"sqlite:///{db_path.as_posix()}")
    reset_config()
    database.close_connections()

    yield db_path

    database.close_connections()
    reset_config()


def test_initialize_creates_tables(file_database):
    database.initialize_app_database()

    assert file_database.exists()
    assert database.verify_database()
    tables = set(inspect(database.get_engine()).get_table_names())
    assert {
        "ingredients",
        "products",
        "recipes",
        "recipe_lines",
        "sales",
        "daily_productions",
        "production_details",
        "stock_movements",
    } <= tables


def test_init_database_is_repeatable(file_database):
    database.init_database()
    database.init_database()
    assert database.verify_database()


def test_sqlite_pragmas(file_database):
    with database.get_engine().connect() as connection:
        assert connection.exec_driver_sql("PRAGMA foreign_keys").scalar() == 1
        assert connection.exec_driver_sql("PRAGMA journal_mode").scalar() == "wal"


def test_verify_fails_without_tables(file_database):
    assert not database.verify_database()


def test_engine_is_shared_until_recreated(file_database):
    engine = database.get_engine()
    assert database.get_engine() is engine
    assert database.get_engine(force_recreate=True) is not engine


def test_cli_against_file_database(file_database, capsys):
    assert cli.main(["init-db"]) == 0
    assert cli.main(["inventory-value"]) == 0
    assert "Total inventory value: 0.00" in capsys.readouterr().out
