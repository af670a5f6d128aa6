"""
Configuration management for the Bakery Control application.

Where the database lives depends on the environment:

- production:  ~/Documents/BakeryControl/bakery_control.db
- development: <project>/data/bakery_control.db

BAKERY_CONTROL_DATABASE_URL replaces either location with any SQLAlchemy
URL, and BAKERY_CONTROL_SQL_ECHO=1 logs every statement.
"""

import logging
import os
from pathlib import Path
from typing import Optional

from .constants import APP_NAME, APP_VERSION, DATABASE_FILENAME, DATABASE_VERSION

logger = logging.getLogger(__name__)

ENV_VAR_ENVIRONMENT = "BAKERY_CONTROL_ENV"
ENV_VAR_DATABASE_URL = "BAKERY_CONTROL_DATABASE_URL"
ENV_VAR_SQL_ECHO = "BAKERY_CONTROL_SQL_ECHO"

ENVIRONMENTS = ("production", "development")


class Config:
    """
    Settings for one environment.

    An explicit ``database_url`` (argument or BAKERY_CONTROL_DATABASE_URL)
    wins over the environment's database file.
    """

    app_name = APP_NAME
    app_version = APP_VERSION
    database_version = DATABASE_VERSION

    def __init__(self, environment: str = "production", database_url: Optional[str] = None):
        if environment not in ENVIRONMENTS:
            raise ValueError(
                f"Unknown environment '{environment}' (expected one of {', '.join(ENVIRONMENTS)})"
            )
        self.environment = environment
        self._url_override = database_url or os.environ.get(ENV_VAR_DATABASE_URL)
        self.sql_echo = os.environ.get(ENV_VAR_SQL_ECHO, "").lower() in ("1", "true", "yes")
        self.data_dir = self._data_dir_for(environment)

    @staticmethod
    def _data_dir_for(environment: str) -> Path:
        if environment == "development":
            # src/bakery_control/utils/config.py -> project root
            return Path(__file__).resolve().parents[3] / "data"
        return Path.home() / "Documents" / "BakeryControl"

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def uses_file_database(self) -> bool:
        """True when the database is the environment's SQLite file."""
        return self._url_override is None

    @property
    def database_path(self) -> Path:
        return self.data_dir / DATABASE_FILENAME

    @property
    def database_url(self) -> str:
        if self._url_override:
            return self._url_override
        return f"sqlite:///{self.database_path.as_posix()}"

    def database_exists(self) -> bool:
        return self.database_path.exists()

    def ensure_directories(self) -> None:
        """Create the data directory when the file database is in use."""
        if self.uses_file_database:
            self.data_dir.mkdir(parents=True, exist_ok=True)

    def __repr__(self) -> str:
        return f"Config(environment='{self.environment}', database_url='{self.database_url}')"


_config: Optional[Config] = None


def get_config(environment: Optional[str] = None) -> Config:
    """
    Process-wide configuration.

    The first call fixes the environment (``environment``, else
    BAKERY_CONTROL_ENV, else production). Later calls asking for another
    environment get the existing instance and a warning, so the database
    cannot change underneath a running process.
    """
    global _config

    if _config is None:
        _config = Config(environment or os.environ.get(ENV_VAR_ENVIRONMENT, "production"))
    elif environment is not None and environment != _config.environment:
        logger.warning(
            "Configuration already loaded for '%s'; ignoring request for '%s'. "
            "Returning existing singleton.",
            _config.environment,
            environment,
        )
    return _config


def reset_config() -> None:
    """Forget the loaded configuration (tests switch databases this way)."""
    global _config
    _config = None


def get_database_url() -> str:
    return get_config().database_url
