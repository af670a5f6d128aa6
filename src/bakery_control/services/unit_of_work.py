"""
Unit of work: the transaction boundary of the service layer.

A UnitOfWork owns one SQLAlchemy session and hands out repositories bound
to it. Mutations made through those repositories become durable only when
the unit of work commits; any failure rolls all of them back together.

Usage:
    from bakery_control.services.unit_of_work import unit_of_work

    with unit_of_work() as uow:
        flour = uow.ingredients.get_by_name("Flour")
        ...
    # committed here, or rolled back if the block raised

Only one transaction may be open per instance; there is no nesting.
"""

from contextlib import contextmanager
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from bakery_control.services import database
from bakery_control.services.exceptions import (
    ConflictError,
    DatabaseError,
    InvalidStateError,
)
from bakery_control.services.logging_utils import get_service_logger
from bakery_control.services.repositories import (
    DailyProductionRepository,
    IngredientRepository,
    ProductRepository,
    RecipeRepository,
    SaleRepository,
    StockMovementRepository,
)

logger = get_service_logger(__name__)


class UnitOfWork:
    """
    Transaction-scoped persistence gateway.

    Repositories are created lazily and share this instance's session.
    Reads work at any time; writes require an open transaction.
    """

    def __init__(self, session_factory: Optional[sessionmaker] = None):
        self._session_factory = session_factory
        self._session: Optional[Session] = None
        self._transaction_open = False
        self._closed = False

        self._products: Optional[ProductRepository] = None
        self._ingredients: Optional[IngredientRepository] = None
        self._recipes: Optional[RecipeRepository] = None
        self._sales: Optional[SaleRepository] = None
        self._daily_productions: Optional[DailyProductionRepository] = None
        self._stock_movements: Optional[StockMovementRepository] = None

    # ------------------------------------------------------------------
    # Session and repositories
    # ------------------------------------------------------------------

    @property
    def session(self) -> Session:
        """The session backing this unit of work, opened on first use."""
        if self._closed:
            raise InvalidStateError("Unit of work is closed")
        if self._session is None:
            factory = self._session_factory or database.get_session_factory()
            self._session = factory()
        return self._session

    @property
    def products(self) -> ProductRepository:
        if self._products is None:
            self._products = ProductRepository(self)
        return self._products

    @property
    def ingredients(self) -> IngredientRepository:
        if self._ingredients is None:
            self._ingredients = IngredientRepository(self)
        return self._ingredients

    @property
    def recipes(self) -> RecipeRepository:
        if self._recipes is None:
            self._recipes = RecipeRepository(self)
        return self._recipes

    @property
    def sales(self) -> SaleRepository:
        if self._sales is None:
            self._sales = SaleRepository(self)
        return self._sales

    @property
    def daily_productions(self) -> DailyProductionRepository:
        if self._daily_productions is None:
            self._daily_productions = DailyProductionRepository(self)
        return self._daily_productions

    @property
    def stock_movements(self) -> StockMovementRepository:
        if self._stock_movements is None:
            self._stock_movements = StockMovementRepository(self)
        return self._stock_movements

    # ------------------------------------------------------------------
    # Transaction lifecycle
    # ------------------------------------------------------------------

    @property
    def in_transaction(self) -> bool:
        """True between begin_transaction() and commit/rollback."""
        return self._transaction_open

    def require_transaction(self, operation: str = "This operation") -> None:
        """Raise InvalidStateError unless a transaction is open."""
        if not self._transaction_open:
            raise InvalidStateError(f"{operation} requires an open transaction")

    def begin_transaction(self) -> None:
        """
        Open a transaction.

        Raises:
            InvalidStateError: If a transaction is already open, or the
                session holds changes made outside any transaction
        """
        if self._transaction_open:
            raise InvalidStateError("Transaction already started")

        session = self.session
        if session.new or session.dirty or session.deleted:
            raise InvalidStateError("Unit of work has changes made outside a transaction")

        try:
            if session.in_transaction():
                # Reads autobegin a transaction; close it before starting ours
                session.commit()
            session.begin()
        except SQLAlchemyError as e:
            raise DatabaseError("Error starting transaction", e) from e

        self._transaction_open = True
        logger.debug("Transaction started")

    def commit_transaction(self) -> None:
        """
        Durably apply every change made since begin_transaction().

        If the database rejects the write, the transaction is rolled back
        first and the failure is then reported.

        Raises:
            InvalidStateError: If no transaction is open
            ConflictError: If a constraint (unique, foreign key, check) fails
            DatabaseError: For any other database failure
        """
        if not self._transaction_open:
            raise InvalidStateError("No transaction to commit")

        try:
            self.session.commit()
        except IntegrityError as e:
            self._discard()
            raise ConflictError(f"Commit rejected by database: {e.orig}", e) from e
        except SQLAlchemyError as e:
            self._discard()
            logger.error("Commit failed: %s", e)
            raise DatabaseError("Error committing transaction", e) from e
        finally:
            self._transaction_open = False

        logger.debug("Transaction committed")

    def rollback_transaction(self) -> None:
        """
        Discard every change made since begin_transaction().

        Raises:
            InvalidStateError: If no transaction is open
        """
        if not self._transaction_open:
            raise InvalidStateError("No transaction to rollback")

        try:
            self.session.rollback()
        except SQLAlchemyError as e:
            raise DatabaseError("Error rolling back transaction", e) from e
        finally:
            self._transaction_open = False

        logger.debug("Transaction rolled back")

    def _discard(self) -> None:
        """Roll back after a failed commit; the commit error is what gets reported."""
        try:
            self.session.rollback()
        except SQLAlchemyError:
            logger.exception("Rollback after failed commit also failed")

    @contextmanager
    def transaction(self):
        """
        Scope a transaction: commit on normal exit, roll back on any error.

        Database errors escaping the block are translated into
        ConflictError / DatabaseError after the rollback.
        """
        self.begin_transaction()
        try:
            yield self
        except IntegrityError as e:
            self.rollback_transaction()
            raise ConflictError(f"Write rejected by database: {e.orig}", e) from e
        except SQLAlchemyError as e:
            self.rollback_transaction()
            logger.error("Transaction aborted by database error: %s", e)
            raise DatabaseError(str(e), e) from e
        except BaseException:
            if self._transaction_open:
                self.rollback_transaction()
            raise
        self.commit_transaction()

    # ------------------------------------------------------------------
    # Resource handling
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Release the session, rolling back any transaction still open."""
        if self._closed:
            return
        if self._transaction_open:
            self.rollback_transaction()
        if self._session is not None:
            self._session.close()
        self._closed = True

    def __enter__(self) -> "UnitOfWork":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


@contextmanager
def unit_of_work(session_factory: Optional[sessionmaker] = None):
    """
    Open a unit of work with a transaction and release it on exit.

    Yields:
        UnitOfWork with an open transaction, committed when the block
        finishes and rolled back if it raises
    """
    uow = UnitOfWork(session_factory)
    try:
        with uow.transaction():
            yield uow
    finally:
        uow.close()


@contextmanager
def _joined(uow: UnitOfWork):
    """
    Run inside the caller's unit of work without ending its transaction.

    Database errors are translated like transaction() does, but rollback
    is left to the caller.
    """
    try:
        yield uow
    except IntegrityError as e:
        raise ConflictError(f"Write rejected by database: {e.orig}", e) from e
    except SQLAlchemyError as e:
        logger.error("Database error in caller's transaction: %s", e)
        raise DatabaseError(str(e), e) from e


def transaction_scope(uow: Optional[UnitOfWork] = None, operation: str = "This operation"):
    """
    Join the caller's transaction or open a new one.

    A caller-supplied unit of work must already hold an open transaction so
    the caller controls commit and rollback.
    """
    if uow is None:
        return unit_of_work()
    uow.require_transaction(operation)
    return _joined(uow)


def read_scope(uow: Optional[UnitOfWork] = None):
    """Use the caller's unit of work for reads, or a short-lived one."""
    if uow is None:
        return unit_of_work()
    return _joined(uow)
