"""Service layer logging utilities.

Provides structured logging functions for service operations, enabling
consistent log format and context across inventory, costing and production.

Usage:
    from bakery_control.services.logging_utils import get_service_logger, log_operation

    logger = get_service_logger(__name__)

    log_operation(
        logger,
        operation="adjust_stock",
        outcome="success",
        ingredient_id=4,
        delta="-2.500",
    )
"""

import logging
from typing import Any

LOGGER_PREFIX = "bakery_control.services"

# LogRecord attributes that extra= may not overwrite
_RESERVED = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}


def get_service_logger(name: str) -> logging.Logger:
    """
    Get a logger configured for service operations.

    Args:
        name: Logger name (typically __name__ of the calling module)

    Returns:
        Logger named 'bakery_control.services.<module>'

    Example:
        >>> get_service_logger("bakery_control.services.production_service").name
        'bakery_control.services.production_service'
    """
    if "." in name:
        name = name.split(".")[-1]
    return logging.getLogger(f"{LOGGER_PREFIX}.{name}")


def log_operation(
    logger: logging.Logger,
    operation: str,
    outcome: str,
    level: int = logging.INFO,
    **context: Any,
) -> None:
    """
    Log a service operation with structured context.

    The message is "<operation>: <outcome>"; context fields are attached to
    the record via ``extra`` so handlers can emit them as structured data.
    A context key that clashes with a LogRecord attribute (``name``,
    ``module``, ...) is stored with a trailing underscore.

    Args:
        logger: Logger instance to use
        operation: Operation name (e.g., "register_production")
        outcome: Outcome description (e.g., "success", "insufficient_stock")
        level: Log level (default: INFO)
        **context: Additional context fields (entity ids, error details, ...)
    """
    extra = {"operation": operation, "outcome": outcome}
    for key, value in context.items():
        extra[f"{key}_" if key in _RESERVED else key] = value
    logger.log(level, f"{operation}: {outcome}", extra=extra)


def configure_logging(verbose: bool = False) -> None:
    """Configure root logging for command line use."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
