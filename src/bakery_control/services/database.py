"""
Engine and session factory for Bakery Control.

One engine and one session factory exist per process. Both are created
lazily from the configuration; tests replace ``get_session_factory`` to
point every unit of work at their own database.

SQLite connections get foreign keys switched on (the RESTRICT/CASCADE
rules of the schema depend on it) and WAL journaling.
"""

import logging
from typing import Optional

from sqlalchemy import create_engine, event, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from bakery_control.models.base import Base
from bakery_control.utils.config import get_config

logger = logging.getLogger(__name__)

REQUIRED_TABLES = ("ingredients", "products", "recipes", "daily_productions", "stock_movements")

_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None


@event.listens_for(Engine, "connect")
def _configure_sqlite_connection(dbapi_connection, connection_record):
    if not type(dbapi_connection).__module__.startswith("sqlite3"):
        return
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA synchronous=NORMAL")
    finally:
        cursor.close()


def _is_memory_url(database_url: str) -> bool:
    return ":memory:" in database_url or "mode=memory" in database_url


def create_database_engine(database_url: Optional[str] = None, echo: Optional[bool] = None) -> Engine:
    """
    Build an engine for ``database_url`` (default: the configured database).

    In-memory SQLite databases exist only inside one connection, so they
    get a StaticPool that hands the same connection to every session.
    """
    config = get_config()
    if database_url is None:
        config.ensure_directories()
        database_url = config.database_url
    if echo is None:
        echo = config.sql_echo

    logger.info("Opening database %s", database_url)

    if not database_url.startswith("sqlite"):
        return create_engine(database_url, echo=echo, pool_pre_ping=True)
    if _is_memory_url(database_url):
        return create_engine(
            database_url,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(
        database_url,
        echo=echo,
        connect_args={"check_same_thread": False, "timeout": 30},
    )


def get_engine(force_recreate: bool = False) -> Engine:
    """Return the process engine, building it on first use or when forced."""
    global _engine

    if force_recreate or _engine is None:
        _engine = create_database_engine()
    return _engine


def get_session_factory() -> sessionmaker:
    """Return the process session factory (objects stay usable after commit)."""
    global _session_factory

    if _session_factory is None:
        _session_factory = sessionmaker(bind=get_engine(), expire_on_commit=False)
    return _session_factory


def init_database(engine: Optional[Engine] = None) -> None:
    """Create missing tables. Existing tables and rows are left alone."""
    # Importing the package registers every model on Base.metadata
    from bakery_control import models  # noqa: F401

    Base.metadata.create_all(engine or get_engine())
    logger.info("Schema up to date")


def verify_database() -> bool:
    """True if the database answers and holds every required table."""
    try:
        tables = set(inspect(get_engine()).get_table_names())
    except SQLAlchemyError as e:
        logger.error("Cannot inspect database: %s", e)
        return False

    missing = [table for table in REQUIRED_TABLES if table not in tables]
    if missing:
        logger.debug("Missing tables: %s", ", ".join(missing))
    return not missing


def close_connections() -> None:
    """Drop the session factory and dispose of the engine's pool."""
    global _engine, _session_factory

    _session_factory = None
    if _engine is not None:
        _engine.dispose()
        _engine = None
    logger.debug("Database connections closed")


def initialize_app_database() -> None:
    """Make sure the configured database exists and has the schema."""
    config = get_config()
    if config.uses_file_database and not config.database_exists():
        logger.info("Creating database file %s", config.database_path)

    init_database(get_engine())
    if not verify_database():
        logger.warning("Schema check failed after initialization")
