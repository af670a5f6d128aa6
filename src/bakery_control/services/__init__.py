"""Services package - Business logic layer for Bakery Control.

This package contains the service modules that implement inventory,
costing and production on top of the persistence layer.

Architecture:
- Services: Stateless functions organized by domain
- Transactions: Managed via unit_of_work() / UnitOfWork.transaction()
- Repositories: Per-entity queries bound to a unit of work
- Exceptions: Consistent error handling via ServiceError hierarchy
- Validation: Input validation before database operations

Service Modules:
- inventory_service: Stock ledger, restocking, low-stock and expiry reads
- recipe_service: Recipe management and the costing engine
- production_service: Production planning, registration and reporting

Infrastructure:
- database: Engine, session factory and schema creation
- unit_of_work: Transaction boundary and repository access
- repositories: Per-entity persistence operations
- exceptions: Custom exception classes for service layer errors
- logging_utils: Structured operation logging
"""

from . import (
    database,
    inventory_service,
    production_service,
    recipe_service,
)
from .exceptions import (
    ConflictError,
    DatabaseError,
    InsufficientStockError,
    InvalidArgumentError,
    InvalidStateError,
    NotFoundError,
    ServiceError,
)
from .unit_of_work import UnitOfWork, unit_of_work

__all__ = [
    "database",
    "inventory_service",
    "production_service",
    "recipe_service",
    "ConflictError",
    "DatabaseError",
    "InsufficientStockError",
    "InvalidArgumentError",
    "InvalidStateError",
    "NotFoundError",
    "ServiceError",
    "UnitOfWork",
    "unit_of_work",
]
