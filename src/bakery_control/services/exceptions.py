"""Service layer exception classes for Bakery Control.

Exception Hierarchy:
    ServiceError (base)
    ├── NotFoundError
    ├── InvalidArgumentError
    ├── InsufficientStockError
    ├── InvalidStateError
    ├── ConflictError
    └── DatabaseError

Every error raised inside a transaction scope is raised only after that
scope has rolled back. Nothing in the service layer retries on its own.
"""

from decimal import Decimal
from typing import Iterable, Optional, Union


class ServiceError(Exception):
    """Base exception for all service layer errors."""

    pass


class NotFoundError(ServiceError):
    """Raised when a referenced entity id does not exist.

    Args:
        entity: Entity name (e.g., "Ingredient")
        entity_id: The id that was not found

    Example:
        >>> raise NotFoundError("Ingredient", 12)
        NotFoundError: Ingredient with ID 12 not found
    """

    def __init__(self, entity: str, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} with ID {entity_id} not found")


class InvalidArgumentError(ServiceError):
    """Raised when caller-supplied input fails a precondition.

    Args:
        errors: One message or a list of messages

    Example:
        >>> raise InvalidArgumentError(["Quantity: Value must be greater than zero"])
        InvalidArgumentError: Invalid argument: Quantity: Value must be greater than zero
    """

    def __init__(self, errors: Union[str, Iterable[str]]):
        if isinstance(errors, str):
            errors = [errors]
        self.errors = list(errors)
        super().__init__(f"Invalid argument: {'; '.join(self.errors)}")


class InsufficientStockError(ServiceError):
    """Raised when a stock change would drive an ingredient below zero.

    Args:
        ingredient_id: Ingredient being adjusted
        ingredient_name: Ingredient name for the message
        required: Quantity that had to be taken out
        available: Quantity on hand
    """

    def __init__(
        self,
        ingredient_id: int,
        ingredient_name: str,
        required: Decimal,
        available: Decimal,
    ):
        self.ingredient_id = ingredient_id
        self.ingredient_name = ingredient_name
        self.required = required
        self.available = available
        super().__init__(
            f"Insufficient stock for {ingredient_name} (ID {ingredient_id}): "
            f"required {required}, available {available}"
        )


class InvalidStateError(ServiceError):
    """Raised for operations on terminal production runs or transaction misuse."""

    pass


class ConflictError(ServiceError):
    """Raised when persistence rejects a write (duplicate key, blocked delete).

    Args:
        message: What was rejected
        original_error: Underlying database exception, if any
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        self.original_error = original_error
        super().__init__(message)


class DatabaseError(ServiceError):
    """Raised when a database operation fails for a non-constraint reason."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        self.original_error = original_error
        super().__init__(f"Database error: {message}")
